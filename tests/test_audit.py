"""Tests for the edit-history logger and settings."""

from datetime import datetime, timedelta, timezone

import pytest

from familybudget.audit import EditHistoryLogger, edit_history_path
from familybudget.config import AppSettings, get_settings, validate_all_settings
from familybudget.models import EditAction, utc_now
from familybudget.services.storage import MemoryDocumentStore, StorageError

from conftest import OWNER


class FailingStore(MemoryDocumentStore):
    async def set(self, collection, doc_id, data, merge=False):
        raise StorageError("write rejected")


class TestEditHistoryLogger:
    """Tests for appending and reading edit events."""

    @pytest.mark.asyncio
    async def test_log_writes_to_sub_collection(self):
        store = MemoryDocumentStore()
        history = EditHistoryLogger(store)
        event = await history.log("b1", OWNER, EditAction.UPDATE_BUDGET)

        documents = await store.query(edit_history_path("b1"))
        assert len(documents) == 1
        assert documents[0].data["action"] == "update_budget"
        assert documents[0].data["userId"] == OWNER.uid
        assert event.user_email == OWNER.email

    @pytest.mark.asyncio
    async def test_events_are_filtered_and_sorted(self):
        store = MemoryDocumentStore()
        history = EditHistoryLogger(store)
        now = utc_now()
        for minutes, action in ((5, "delete_transaction"), (-60, "update_budget"), (1, "add_transaction")):
            await store.set(edit_history_path("b1"), f"e{minutes}", {
                "userId": OWNER.uid,
                "userEmail": OWNER.email,
                "timestamp": now + timedelta(minutes=minutes),
                "action": action,
            })

        events = await history.get_events("b1", now)
        assert [e.action for e in events] == [EditAction.ADD_TRANSACTION, EditAction.DELETE_TRANSACTION]

    @pytest.mark.asyncio
    async def test_naive_cutoff_is_utc(self):
        store = MemoryDocumentStore()
        history = EditHistoryLogger(store)
        await history.log("b1", OWNER, EditAction.ADD_TRANSACTION)
        naive = datetime.now(timezone.utc).replace(tzinfo=None) - timedelta(minutes=1)
        assert len(await history.get_events("b1", naive)) == 1

    @pytest.mark.asyncio
    async def test_storage_failure_propagates(self):
        history = EditHistoryLogger(FailingStore())
        with pytest.raises(StorageError):
            await history.log("b1", OWNER, EditAction.ADD_TRANSACTION)


class TestSettings:
    """Tests for configuration loading."""

    def test_app_defaults(self, monkeypatch):
        monkeypatch.delenv("RECONCILE_BATCH_SIZE", raising=False)
        settings = AppSettings(_env_file=None)
        assert settings.reconcile_batch_size == 50
        assert settings.edit_history_days == 30
        assert settings.invite_expiry_days == 7

    def test_env_overrides(self, monkeypatch):
        monkeypatch.setenv("RECONCILE_BATCH_SIZE", "10")
        monkeypatch.setenv("CORS_ORIGINS", "https://a.example.com, https://b.example.com")
        settings = AppSettings(_env_file=None)
        assert settings.reconcile_batch_size == 10
        assert settings.cors_origins_list == ["https://a.example.com", "https://b.example.com"]

    def test_invalid_backend(self):
        with pytest.raises(ValueError):
            AppSettings(_env_file=None, storage_backend="sqlite")

    def test_validate_all_settings_reports_missing_sections(self, monkeypatch):
        monkeypatch.delenv("FIREBASE_PROJECT_ID", raising=False)
        get_settings.cache_clear()
        results = validate_all_settings()
        assert results["app"] is True
        assert results["firebase"] is False
        assert "firebase_error" in results

        monkeypatch.setenv("FIREBASE_PROJECT_ID", "family-budget-test")
        assert validate_all_settings()["firebase"] is True
