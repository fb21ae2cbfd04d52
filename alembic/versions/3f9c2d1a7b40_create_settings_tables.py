"""create_settings_tables

Revision ID: 3f9c2d1a7b40
Revises:
Create Date: 2026-10-19 10:12:44.318204

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = '3f9c2d1a7b40'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _setting_columns() -> list[sa.Column]:
    """Columns shared by settings and user_settings."""
    return [
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('group', sa.String(length=255), nullable=True),
        sa.Column('label', sa.JSON(), nullable=True, comment='Display label, locale code -> text'),
        sa.Column('description', sa.JSON(), nullable=True, comment='Description, locale code -> text'),
        sa.Column('value', sa.Text(), nullable=True),
        sa.Column('type', sa.String(length=20), nullable=False),
        sa.Column('encrypted', sa.Boolean(), nullable=False),
        sa.Column('validation_rules', sa.JSON(), nullable=True),
        sa.Column('options', sa.JSON(), nullable=True, comment='Allowed choices, flat or keyed by locale code'),
        sa.Column('input_type', sa.String(length=50), nullable=False),
        sa.Column('order', sa.Integer(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=True),
    ]


def upgrade() -> None:
    """Upgrade schema."""
    op.create_table('settings',
        *_setting_columns(),
        sa.Column('key', sa.String(length=255), nullable=False),
        sa.Column('is_public', sa.Boolean(), nullable=False),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_settings_key', 'settings', ['key'], unique=True)
    op.create_index('ix_settings_group', 'settings', ['group'], unique=False)

    op.create_table('user_settings',
        *_setting_columns(),
        sa.Column('user_id', sa.Integer(), nullable=False),
        sa.Column('key', sa.String(length=255), nullable=False),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('user_id', 'key', name='uq_user_settings_user_key')
    )
    op.create_index('ix_user_settings_user_id', 'user_settings', ['user_id'], unique=False)
    op.create_index('ix_user_settings_key', 'user_settings', ['key'], unique=False)
    op.create_index('ix_user_settings_group', 'user_settings', ['group'], unique=False)

    op.create_table('setting_histories',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('setting_key', sa.String(length=255), nullable=False),
        sa.Column('old_value', sa.Text(), nullable=True),
        sa.Column('new_value', sa.Text(), nullable=True),
        sa.Column('old_type', sa.String(length=20), nullable=True),
        sa.Column('new_type', sa.String(length=20), nullable=True),
        sa.Column('user_id', sa.Integer(), nullable=True),
        sa.Column('ip_address', sa.String(length=45), nullable=True),
        sa.Column('user_agent', sa.Text(), nullable=True),
        sa.Column('action', sa.String(length=20), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_setting_histories_setting_key', 'setting_histories', ['setting_key'], unique=False)
    op.create_index('ix_setting_histories_user_id', 'setting_histories', ['user_id'], unique=False)
    op.create_index('ix_setting_histories_created_at', 'setting_histories', ['created_at'], unique=False)


def downgrade() -> None:
    """Downgrade schema."""
    op.drop_index('ix_setting_histories_created_at', table_name='setting_histories')
    op.drop_index('ix_setting_histories_user_id', table_name='setting_histories')
    op.drop_index('ix_setting_histories_setting_key', table_name='setting_histories')
    op.drop_table('setting_histories')
    op.drop_index('ix_user_settings_group', table_name='user_settings')
    op.drop_index('ix_user_settings_key', table_name='user_settings')
    op.drop_index('ix_user_settings_user_id', table_name='user_settings')
    op.drop_table('user_settings')
    op.drop_index('ix_settings_group', table_name='settings')
    op.drop_index('ix_settings_key', table_name='settings')
    op.drop_table('settings')
