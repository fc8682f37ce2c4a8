"""
Unit tests for commission adjustment state.

Tests:
- Collections bonus state machine (select, lock, unlock, clear)
- Manual override sanitizing
- Row notes
- Persistence and reload through in-memory and SQL stores
- Store failures fall back to in-memory state
- A week that could not be read is reloaded before any write
"""

import logging
import pytest
from datetime import date
from decimal import Decimal
from app.database import Base
from app.services.adjustment_state import (
    LOCKED,
    SELECTED,
    UNSELECTED,
    AdjustmentStateManager,
    InMemoryAdjustmentStore,
    SqlAdjustmentStore,
    CollectionsBonusState,
    sanitize_manual_value,
)
from app.services.commission_errors import (
    AdjustmentStoreError,
    CollectionsBonusLockedError,
    CollectionsBonusNotSelectedError,
    InvalidBonusTierError,
    InvalidManualAmountError,
)
from app.services.commission_snapshot import build_snapshot

WEEK = "2024-03-01"


class FailingStore(InMemoryAdjustmentStore):
    """Store whose backing database is down."""

    def _fail(self, *args):
        raise AdjustmentStoreError("database unavailable")

    load_collections = save_collections = delete_collections = _fail
    load_manual_overrides = save_manual_overrides = _fail
    load_notes = save_notes = _fail


class FlakyStore(InMemoryAdjustmentStore):
    """Store whose reads fail until the database comes back."""

    def __init__(self, failed_loads=1):
        super().__init__()
        self.failed_loads = failed_loads

    def load_collections(self, week_key):
        if self.failed_loads > 0:
            self.failed_loads -= 1
            raise AdjustmentStoreError("database unavailable")
        return super().load_collections(week_key)


@pytest.fixture
def store():
    return InMemoryAdjustmentStore()


@pytest.fixture
def manager(store):
    return AdjustmentStateManager(store, bonus_tiers=(0, 50, 100))


class TestCollectionsBonus:
    """Tests for the collections bonus state machine."""

    def test_starts_unselected(self, manager):
        state = manager.get_collections(WEEK)
        assert state.status == UNSELECTED
        assert state.value is None

    def test_select_then_lock(self, manager):
        assert manager.select_collections_bonus(WEEK, 50).status == SELECTED
        state = manager.lock_collections_bonus(WEEK)
        assert state.status == LOCKED
        assert state.value == Decimal("50")

    def test_reselect_while_unlocked(self, manager):
        manager.select_collections_bonus(WEEK, 50)
        assert manager.select_collections_bonus(WEEK, "100").value == Decimal("100")

    def test_lock_without_selection_rejected(self, manager):
        with pytest.raises(CollectionsBonusNotSelectedError):
            manager.lock_collections_bonus(WEEK)
        assert manager.get_collections(WEEK).status == UNSELECTED

    def test_change_while_locked_rejected(self, manager):
        manager.select_collections_bonus(WEEK, 50)
        manager.lock_collections_bonus(WEEK)
        with pytest.raises(CollectionsBonusLockedError):
            manager.select_collections_bonus(WEEK, 100)
        assert manager.get_collections(WEEK).value == Decimal("50")

    def test_clear_while_locked_is_ignored(self, manager):
        manager.select_collections_bonus(WEEK, 50)
        manager.lock_collections_bonus(WEEK)
        state = manager.select_collections_bonus(WEEK, None)
        assert state.status == LOCKED
        assert state.value == Decimal("50")

    def test_unlock_keeps_value(self, manager):
        manager.select_collections_bonus(WEEK, 50)
        manager.lock_collections_bonus(WEEK)
        state = manager.unlock_collections_bonus(WEEK)
        assert state.status == SELECTED
        assert state.value == Decimal("50")
        # Re-locking needs no new selection
        assert manager.lock_collections_bonus(WEEK).status == LOCKED

    def test_lock_is_idempotent(self, manager):
        manager.select_collections_bonus(WEEK, 50)
        first = manager.lock_collections_bonus(WEEK)
        assert manager.lock_collections_bonus(WEEK) is first

    def test_clear_selection(self, manager, store):
        manager.select_collections_bonus(WEEK, 50)
        assert manager.select_collections_bonus(WEEK, "").status == UNSELECTED
        assert store.load_collections(WEEK) is None

    def test_invalid_tier_rejected(self, manager):
        with pytest.raises(InvalidBonusTierError):
            manager.select_collections_bonus(WEEK, 75)
        with pytest.raises(InvalidBonusTierError):
            manager.select_collections_bonus(WEEK, "lots")

    def test_zero_tier_is_a_selection(self, manager):
        assert manager.select_collections_bonus(WEEK, 0).status == SELECTED

    def test_weeks_are_independent(self, manager):
        manager.select_collections_bonus(WEEK, 50)
        assert manager.get_collections("2024-03-08").status == UNSELECTED


class TestManualOverrides:
    """Tests for manual commission entries."""

    def test_sanitize(self):
        assert sanitize_manual_value("$1,250.50") == "1250.50"
        assert sanitize_manual_value("abc") == ""
        assert sanitize_manual_value(None) == ""

    def test_set_and_clear(self, manager, store):
        assert manager.set_manual_override(WEEK, "row-1", "$150") == {"row-1": "150"}
        assert store.load_manual_overrides(WEEK) == {"row-1": "150"}
        assert manager.set_manual_override(WEEK, "row-1", "") == {}
        assert store.load_manual_overrides(WEEK) == {}

    def test_snapshot_options_parse_amounts(self, manager, store):
        store.manual_overrides[WEEK] = {"row-1": "150.5", "row-2": "1.2.3", "row-3": "1" * 30}
        options = manager.snapshot_options(WEEK)
        assert options.manual_overrides == {"row-1": Decimal("150.5")}

    def test_unparsable_value_rejected(self, manager, store):
        manager.set_manual_override(WEEK, "row-1", "150")
        with pytest.raises(InvalidManualAmountError):
            manager.set_manual_override(WEEK, "row-2", "1.2.3")
        assert manager.manual_overrides(WEEK) == {"row-1": "150"}

    def test_out_of_range_value_rejected(self, manager, store):
        with pytest.raises(InvalidManualAmountError):
            manager.set_manual_override(WEEK, "row-1", "1" * 30)
        assert manager.manual_overrides(WEEK) == {}
        assert store.load_manual_overrides(WEEK) == {}


class TestNotes:
    """Tests for row notes."""

    def test_set_and_clear(self, manager, store):
        manager.set_note(WEEK, "row-1", "pay 60%")
        assert manager.notes(WEEK) == {"row-1": "pay 60%"}
        manager.set_note(WEEK, "row-1", "   ")
        assert manager.notes(WEEK) == {}
        assert store.load_notes(WEEK) == {}


class TestPersistence:
    """Tests for reload behavior."""

    def test_locked_bonus_survives_reload(self, manager, store):
        """Lock at 50, reload, and the report is complete with 50."""
        manager.select_collections_bonus(WEEK, 50)
        manager.lock_collections_bonus(WEEK)

        reloaded = AdjustmentStateManager(store, bonus_tiers=(0, 50, 100))
        options = reloaded.snapshot_options(WEEK)
        snapshot = build_snapshot(
            [{"saleId": "A1", "saleDate": WEEK, "salesperson": "Key", "saleDownPayment": 1000}],
            {},
            date(2024, 3, 1),
            date(2024, 3, 7),
            options,
        )
        assert snapshot.totals.collections_bonus == Decimal("50")
        assert snapshot.totals.collections_complete is True

    def test_persisted_fallback_offered_when_locked(self, manager):
        manager.select_collections_bonus(WEEK, 100)
        manager.lock_collections_bonus(WEEK)
        options = manager.snapshot_options(WEEK)
        assert options.persisted_collections_bonus == Decimal("100")
        assert options.collections_locks == {"Key": True}

    def test_no_fallback_when_unlocked(self, manager):
        manager.select_collections_bonus(WEEK, 100)
        assert manager.snapshot_options(WEEK).persisted_collections_bonus is None

    def test_refresh_rereads_store(self, manager, store):
        manager.get_collections(WEEK)
        store.save_collections(WEEK, CollectionsBonusState(Decimal("50"), True))
        assert manager.get_collections(WEEK).value is None
        assert manager.load_week(WEEK, refresh=True).collections.value == Decimal("50")


class TestStoreRecovery:
    """A week that could not be read is never written over."""

    @pytest.fixture
    def saved(self, store):
        first = AdjustmentStateManager(store, bonus_tiers=(0, 50, 100))
        first.select_collections_bonus(WEEK, 50)
        first.lock_collections_bonus(WEEK)
        first.set_manual_override(WEEK, "row-a", "300")
        return store

    def test_override_after_recovery_keeps_stored_rows(self, saved):
        flaky = FlakyStore()
        flaky.collections = saved.collections
        flaky.manual_overrides = saved.manual_overrides
        manager = AdjustmentStateManager(flaky, bonus_tiers=(0, 50, 100))

        assert manager.get_collections(WEEK).status == UNSELECTED
        overrides = manager.set_manual_override(WEEK, "row-b", "10")

        assert overrides == {"row-a": "300", "row-b": "10"}
        assert flaky.load_manual_overrides(WEEK) == {"row-a": "300", "row-b": "10"}

    def test_lock_seen_after_recovery(self, saved):
        flaky = FlakyStore()
        flaky.collections = saved.collections
        flaky.manual_overrides = saved.manual_overrides
        manager = AdjustmentStateManager(flaky, bonus_tiers=(0, 50, 100))

        manager.get_collections(WEEK)
        with pytest.raises(CollectionsBonusLockedError):
            manager.select_collections_bonus(WEEK, 100)

        stored = flaky.load_collections(WEEK)
        assert stored.value == Decimal("50")
        assert stored.locked is True

    def test_nothing_written_while_unreadable(self, saved, caplog):
        flaky = FlakyStore(failed_loads=10)
        flaky.collections = saved.collections
        flaky.manual_overrides = saved.manual_overrides
        manager = AdjustmentStateManager(flaky, bonus_tiers=(0, 50, 100))

        with caplog.at_level(logging.WARNING):
            manager.select_collections_bonus(WEEK, 100)
            manager.set_manual_override(WEEK, "row-b", "10")

        assert manager.get_collections(WEEK).value == Decimal("100")
        assert saved.collections[WEEK].value == Decimal("50")
        assert saved.collections[WEEK].locked is True
        assert saved.manual_overrides[WEEK] == {"row-a": "300"}
        assert "stored state was never loaded" in caplog.text

    def test_recovery_drops_unsaved_edits(self, saved):
        flaky = FlakyStore(failed_loads=2)
        flaky.collections = saved.collections
        flaky.manual_overrides = saved.manual_overrides
        manager = AdjustmentStateManager(flaky, bonus_tiers=(0, 50, 100))

        manager.set_note(WEEK, "row-a", "pay 50%")
        assert manager.notes(WEEK) == {"row-a": "pay 50%"}
        assert manager.get_collections(WEEK).status == LOCKED
        assert manager.notes(WEEK) == {}


class TestStoreFailures:
    """Persistence failures keep the in-memory state working."""

    def test_works_without_store(self, caplog):
        manager = AdjustmentStateManager(FailingStore(), bonus_tiers=(0, 50, 100))
        with caplog.at_level(logging.WARNING):
            manager.select_collections_bonus(WEEK, 50)
            state = manager.lock_collections_bonus(WEEK)
            manager.set_note(WEEK, "row-1", "note")
        assert state.status == LOCKED
        assert manager.notes(WEEK) == {"row-1": "note"}
        assert "database unavailable" in caplog.text

    def test_no_persisted_fallback_after_failed_save(self):
        manager = AdjustmentStateManager(FailingStore(), bonus_tiers=(0, 50, 100))
        manager.select_collections_bonus(WEEK, 50)
        manager.lock_collections_bonus(WEEK)
        assert manager.snapshot_options(WEEK).persisted_collections_bonus is None


class TestSqlAdjustmentStore:
    """Tests for the database-backed store."""

    def test_collections_round_trip(self, session_factory):
        store = SqlAdjustmentStore(session_factory)
        assert store.load_collections(WEEK) is None

        store.save_collections(WEEK, CollectionsBonusState(Decimal("50"), False))
        store.save_collections(WEEK, CollectionsBonusState(Decimal("50"), True))
        state = store.load_collections(WEEK)
        assert state.value == Decimal("50")
        assert state.locked is True

        store.delete_collections(WEEK)
        assert store.load_collections(WEEK) is None

    def test_manual_overrides_replaced(self, session_factory):
        store = SqlAdjustmentStore(session_factory)
        store.save_manual_overrides(WEEK, {"row-1": "$100", "row-2": "25"})
        store.save_manual_overrides(WEEK, {"row-2": "30"})
        assert store.load_manual_overrides(WEEK) == {"row-2": "30"}
        assert store.load_manual_overrides("2024-03-08") == {}

    def test_notes(self, session_factory):
        store = SqlAdjustmentStore(session_factory)
        store.save_notes(WEEK, {"row-1": "50/50 split"})
        assert store.load_notes(WEEK) == {"row-1": "50/50 split"}
        store.save_notes(WEEK, {})
        assert store.load_notes(WEEK) == {}

    def test_manager_reload_from_database(self, session_factory):
        manager = AdjustmentStateManager(SqlAdjustmentStore(session_factory), bonus_tiers=(0, 50, 100))
        manager.select_collections_bonus(WEEK, 50)
        manager.lock_collections_bonus(WEEK)
        manager.set_manual_override(WEEK, "row-1", "75")

        reloaded = AdjustmentStateManager(SqlAdjustmentStore(session_factory), bonus_tiers=(0, 50, 100))
        state = reloaded.get_collections(WEEK)
        assert state.status == LOCKED
        assert state.value == Decimal("50")
        assert reloaded.manual_overrides(WEEK) == {"row-1": "75"}

    def test_database_errors_wrapped(self, engine, session_factory):
        store = SqlAdjustmentStore(session_factory)
        Base.metadata.drop_all(bind=engine)
        with pytest.raises(AdjustmentStoreError):
            store.load_collections(WEEK)
