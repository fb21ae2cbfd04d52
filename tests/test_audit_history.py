"""
Tests for the audit trail and restore.
"""

from unittest.mock import patch

import pytest
from sqlalchemy.exc import SQLAlchemyError

from settingstore.models import SettingHistory
from settingstore.services.audit import ActorContext, AuditRecorder
from settingstore.services.exceptions import HistoryKeyMismatchError, SettingNotFoundError
from settingstore.services.settings_manager import SettingsManager


def _chronological(manager, key):
    return list(reversed(manager.get_history(key)))


class TestHistoryRecording:
    """Test that every change is recorded."""

    def test_create_update_delete(self, manager):
        manager.set("k", "a")
        manager.set("k", "b")
        manager.forget("k")

        history = _chronological(manager, "k")
        assert [h.action for h in history] == ["created", "updated", "deleted"]

        updated = history[1]
        assert updated.decoded_old_value == "a"
        assert updated.decoded_new_value == "b"

    def test_created_record(self, manager):
        manager.set("count", 5)
        created = manager.get_history("count")[0]
        assert created.old_value is None
        assert created.decoded_new_value == 5
        assert created.new_type == "int"

    def test_type_change_is_decoded_per_side(self, manager):
        manager.set("k", 1)
        manager.set("k", [1, 2])
        updated = manager.get_history("k")[0]
        assert updated.decoded_old_value == 1
        assert updated.decoded_new_value == [1, 2]

    def test_most_recent_first_and_limit(self, manager):
        for i in range(5):
            manager.set("k", i)
        history = manager.get_history("k", limit=2)
        assert [h.decoded_new_value for h in history] == [4, 3]

    def test_all_history(self, manager):
        manager.set("a", 1)
        manager.set("b", 2)
        assert {h.setting_key for h in manager.get_all_history()} == {"a", "b"}

    def test_disabled(self, db_session, config, cache):
        config.audit_enabled = False
        manager = SettingsManager(db_session, config=config, cache=cache)
        manager.set("k", "a")
        assert db_session.query(SettingHistory).count() == 0


class TestActorContext:
    """Test provenance on history records."""

    def test_actor_is_recorded(self, db_session, config, cache):
        actor = ActorContext(user_id=9, ip_address="10.0.0.1", user_agent="pytest")
        manager = SettingsManager(db_session, config=config, cache=cache, actor=actor)
        manager.set("k", "a")

        record = manager.get_history("k")[0]
        assert (record.user_id, record.ip_address, record.user_agent) == (9, "10.0.0.1", "pytest")

    def test_tracking_flags(self, db_session, config, cache):
        config.audit_track_ip = False
        config.audit_track_user_agent = False
        actor = ActorContext(user_id=9, ip_address="10.0.0.1", user_agent="pytest")
        manager = SettingsManager(db_session, config=config, cache=cache, actor=actor)
        manager.set("k", "a")

        record = manager.get_history("k")[0]
        assert record.user_id == 9
        assert record.ip_address is None
        assert record.user_agent is None


class TestRecorderFailure:
    """Test that audit failures never undo the setting write."""

    def test_write_survives_failed_history(self, manager, db_session):
        original_commit = db_session.commit
        calls = {"n": 0}

        def flaky_commit():
            calls["n"] += 1
            # first commit is the setting itself, second the history row
            if calls["n"] == 2:
                raise SQLAlchemyError("history table unavailable")
            original_commit()

        with patch.object(db_session, "commit", side_effect=flaky_commit):
            manager.set("k", "a")

        assert manager.get("k") == "a"
        assert db_session.query(SettingHistory).count() == 0

    def test_record_returns_none_on_failure(self, db_session, config):
        recorder = AuditRecorder(db_session, config)
        with patch.object(db_session, "commit", side_effect=SQLAlchemyError("boom")):
            assert recorder.record("k", None, "a", None, "string", "created") is None


class TestRestore:
    """Test restore_to_version."""

    def test_restore_previous_value(self, manager):
        manager.set("k", "a")
        manager.set("k", "b")
        manager.forget("k")
        updated = _chronological(manager, "k")[1]

        manager.restore_to_version("k", updated.id)
        assert manager.get("k") == "a"

    def test_restore_does_not_add_history(self, manager):
        manager.set("k", "a")
        manager.set("k", "b")
        updated = manager.get_history("k")[0]

        manager.restore_to_version("k", updated.id)
        assert len(manager.get_history("k")) == 2

    def test_restore_invalidates_cache(self, manager, cache_store):
        manager.set("k", 1)
        manager.set("k", 2)
        assert manager.get("k") == 2

        manager.restore_to_version("k", manager.get_history("k")[0].id)
        assert manager.get("k") == 1

    def test_unknown_history_id(self, manager):
        with pytest.raises(SettingNotFoundError):
            manager.restore_to_version("k", 999)

    def test_key_mismatch(self, manager):
        manager.set("a", 1)
        manager.set("b", 2)
        record = manager.get_history("b")[0]
        with pytest.raises(HistoryKeyMismatchError):
            manager.restore_to_version("a", record.id)

    def test_restore_plaintext_clears_encrypted_flag(self, manager, db_session):
        """Test that restoring an unencrypted version leaves a readable plain row."""
        manager.set("api.key", "plain-old")
        manager.set("api.key", "sk-123", encrypted=True)
        updated = manager.get_history("api.key")[0]

        setting = manager.restore_to_version("api.key", updated.id)
        assert setting.encrypted is False
        assert manager.get("api.key") == "plain-old"
        assert manager.encrypted("api.key", "fallback") == "fallback"

    def test_restore_ciphertext_keeps_encrypted_flag(self, manager):
        manager.set("api.key", "sk-old", encrypted=True)
        manager.set("api.key", "plain-new")
        updated = manager.get_history("api.key")[0]

        setting = manager.restore_to_version("api.key", updated.id)
        assert setting.encrypted is True
        assert manager.encrypted("api.key") == "sk-old"
