"""
Setting stores: persistence for global and per-user settings.

Stores own row identity and uniqueness. After each committed write or
delete the global store hands a SettingChange to its listeners, in the
order they were registered (audit recorder first, then cache). That call
is the single place side effects are dispatched from.
"""

import logging
from dataclasses import dataclass
from typing import Any, Iterable, Protocol

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Query, Session

from settingstore.models import Setting, SettingAction, UserSetting

logger = logging.getLogger(__name__)

# Columns written by the metadata-aware upsert, always overwritten.
METADATA_FIELDS = (
    "group",
    "label",
    "description",
    "validation_rules",
    "options",
    "input_type",
    "is_public",
    "order",
)


@dataclass(frozen=True)
class SettingChange:
    """A committed create/update/delete of one global setting."""

    key: str
    action: SettingAction
    old_value: str | None
    new_value: str | None
    old_type: str | None
    new_type: str | None
    audited: bool = True


class SettingListener(Protocol):
    def on_change(self, change: SettingChange) -> None: ...


class SettingStore:
    """
    CRUD over the global ``settings`` table.

    Args:
        db: Database session
        listeners: Objects notified after every committed change
    """

    model = Setting

    def __init__(self, db: Session, listeners: Iterable[SettingListener] = ()):
        self.db = db
        self.listeners = list(listeners)

    def _query(self) -> Query:
        return self.db.query(self.model)

    def find(self, key: str) -> Any:
        return self._query().filter(self.model.key == key).first()

    def exists(self, key: str) -> bool:
        return self.db.query(self._query().filter(self.model.key == key).exists()).scalar()

    def list_ordered(self, group: str | None = None, public_only: bool = False) -> list:
        """
        Settings ordered by ``order`` (then id).

        Args:
            group: Only settings in this group
            public_only: Only settings flagged public
        """
        query = self._query()
        if group:
            query = query.filter(self.model.group == group)
        if public_only:
            query = query.filter(self.model.is_public.is_(True))
        return query.order_by(self.model.order, self.model.id).all()

    def _new(self, key: str) -> Any:
        return self.model(key=key)

    def upsert(
        self,
        key: str,
        value: str | None,
        value_type: str,
        encrypted: bool = False,
        group: str | None = None,
        metadata: dict[str, Any] | None = None,
        audited: bool = True,
    ) -> Any:
        """
        Create the setting or update it in place.

        ``value``, ``type`` and ``encrypted`` are always written. ``group``
        is only written when given. When ``metadata`` is passed every
        metadata column is overwritten with it, including to None.
        """
        setting = self.find(key)
        created = setting is None
        if created:
            setting = self._new(key)
            self.db.add(setting)
            old_value, old_type = None, None
        else:
            old_value, old_type = setting.value, setting.type

        setting.value = value
        setting.type = value_type
        setting.encrypted = encrypted
        if group is not None:
            setting.group = group
        if metadata is not None:
            for field in METADATA_FIELDS:
                if hasattr(setting, field):
                    setattr(setting, field, metadata.get(field))

        self._commit()
        self.db.refresh(setting)

        action = SettingAction.created if created else SettingAction.updated
        logger.info(f"{action.value.capitalize()} setting '{key}'")
        self._dispatch(
            SettingChange(
                key=key,
                action=action,
                old_value=old_value,
                new_value=setting.value,
                old_type=old_type if old_type is not None else setting.type,
                new_type=setting.type,
                audited=audited,
            )
        )
        return setting

    def delete(self, key: str) -> bool:
        """Delete the setting; returns whether a row was removed."""
        setting = self.find(key)
        if setting is None:
            return False

        old_value, old_type = setting.value, setting.type
        self.db.delete(setting)
        self._commit()

        logger.info(f"Deleted setting '{key}'")
        self._dispatch(
            SettingChange(
                key=key,
                action=SettingAction.deleted,
                old_value=old_value,
                new_value=None,
                old_type=old_type,
                new_type=old_type,
            )
        )
        return True

    def _commit(self) -> None:
        try:
            self.db.commit()
        except SQLAlchemyError:
            self.db.rollback()
            raise

    def _dispatch(self, change: SettingChange) -> None:
        for listener in self.listeners:
            listener.on_change(change)


class UserSettingStore(SettingStore):
    """
    CRUD over ``user_settings``, every query scoped to one user.

    Changes are not dispatched: user settings have no cache and no history.
    """

    model = UserSetting

    def __init__(self, db: Session, user_id: int):
        super().__init__(db, listeners=())
        self.user_id = user_id

    def _query(self) -> Query:
        return self.db.query(UserSetting).filter(UserSetting.user_id == self.user_id)

    def _new(self, key: str) -> UserSetting:
        return UserSetting(user_id=self.user_id, key=key)

    def list_ordered(self, group: str | None = None, public_only: bool = False) -> list[UserSetting]:
        query = self._query()
        if group:
            query = query.filter(UserSetting.group == group)
        return query.order_by(UserSetting.order, UserSetting.id).all()

    def delete_all(self) -> int:
        """Delete every setting of the user; returns the number removed."""
        removed = self._query().delete(synchronize_session=False)
        self._commit()
        logger.info(f"Deleted {removed} settings of user {self.user_id}")
        return removed
