"""
Commission Adjustment State

Holds the hand-made adjustments for each reporting week and keeps them in
a durable store:

- Collections bonus for Key: Unselected -> Selected -> Locked, and
  Locked -> Selected only through unlock. A locked value cannot be edited
  or cleared; unlocking keeps the value so it can be re-locked.
- Manual commission per row (cash, trade-in, name change sales), stored as
  sanitized numeric text. Clearing an entry removes it.
- Row notes.

Persistence failures are logged and the report keeps working from the
in-memory state.
"""

import logging
import os
import re
from dataclasses import dataclass, field
from datetime import datetime, timezone
from decimal import Decimal, InvalidOperation
from typing import Dict, Iterable, Optional, Tuple

from sqlalchemy.exc import SQLAlchemyError

from app.services.commission_errors import (
    AdjustmentStoreError,
    CollectionsBonusLockedError,
    CollectionsBonusNotSelectedError,
    InvalidBonusTierError,
    InvalidManualAmountError,
)
from app.services.commission_math import MAX_CURRENCY
from app.services.commission_rows import KEY_ROLE
from app.services.commission_snapshot import SnapshotOptions

logger = logging.getLogger(__name__)

UNSELECTED = "unselected"
SELECTED = "selected"
LOCKED = "locked"


def _parse_tiers(raw: str) -> Tuple[Decimal, ...]:
    tiers = []
    for part in raw.split(","):
        part = part.strip()
        if not part:
            continue
        try:
            tiers.append(Decimal(part))
        except InvalidOperation:
            logger.warning("Ignoring invalid collections bonus tier %r", part)
    return tuple(tiers)


DEFAULT_BONUS_TIERS = _parse_tiers(os.getenv("COMMISSION_COLLECTIONS_TIERS", "0,50,100"))


def sanitize_manual_value(value: Optional[str]) -> str:
    """Keep only digits and decimal points."""
    return re.sub(r"[^0-9.]", "", value or "")


def sanitize_manual_overrides(overrides: Dict[str, str]) -> Dict[str, str]:
    sanitized = {}
    for key, value in overrides.items():
        if not isinstance(value, str):
            continue
        cleaned = sanitize_manual_value(value)
        if cleaned:
            sanitized[key] = cleaned
    return sanitized


def parse_manual_amount(value: str) -> Optional[Decimal]:
    """Parse a sanitized manual value; None unless it is a usable amount."""
    try:
        amount = Decimal(value)
    except (InvalidOperation, ValueError):
        return None
    if not amount.is_finite() or amount > MAX_CURRENCY:
        return None
    return amount


@dataclass
class CollectionsBonusState:
    value: Optional[Decimal] = None
    locked: bool = False
    saved_at: Optional[datetime] = None

    @property
    def status(self) -> str:
        if self.locked and self.value is not None:
            return LOCKED
        if self.value is not None:
            return SELECTED
        return UNSELECTED


@dataclass
class WeekAdjustments:
    week_key: str
    collections: CollectionsBonusState = field(default_factory=CollectionsBonusState)
    # Last collections record read from or written to the store
    persisted_collections: Optional[CollectionsBonusState] = None
    manual_overrides: Dict[str, str] = field(default_factory=dict)
    notes: Dict[str, str] = field(default_factory=dict)
    # False while the store could not be read; nothing is written through until it is
    loaded: bool = False


# ---------------------------------------------------------------------------
# Stores
# ---------------------------------------------------------------------------
class AdjustmentStore:
    """Durable key-value store scoped by reporting week key.

    Missing keys are "no prior state", never an error. Implementations raise
    AdjustmentStoreError when the backing store is unavailable.
    """

    def load_collections(self, week_key: str) -> Optional[CollectionsBonusState]:
        raise NotImplementedError

    def save_collections(self, week_key: str, state: CollectionsBonusState) -> None:
        raise NotImplementedError

    def delete_collections(self, week_key: str) -> None:
        raise NotImplementedError

    def load_manual_overrides(self, week_key: str) -> Dict[str, str]:
        raise NotImplementedError

    def save_manual_overrides(self, week_key: str, overrides: Dict[str, str]) -> None:
        raise NotImplementedError

    def load_notes(self, week_key: str) -> Dict[str, str]:
        raise NotImplementedError

    def save_notes(self, week_key: str, notes: Dict[str, str]) -> None:
        raise NotImplementedError


class InMemoryAdjustmentStore(AdjustmentStore):
    """Process-local store, used for previews and tests."""

    def __init__(self):
        self.collections: Dict[str, CollectionsBonusState] = {}
        self.manual_overrides: Dict[str, Dict[str, str]] = {}
        self.notes: Dict[str, Dict[str, str]] = {}

    def load_collections(self, week_key):
        state = self.collections.get(week_key)
        if state is None:
            return None
        return CollectionsBonusState(state.value, state.locked, state.saved_at)

    def save_collections(self, week_key, state):
        self.collections[week_key] = CollectionsBonusState(state.value, state.locked, state.saved_at)

    def delete_collections(self, week_key):
        self.collections.pop(week_key, None)

    def load_manual_overrides(self, week_key):
        return sanitize_manual_overrides(self.manual_overrides.get(week_key, {}))

    def save_manual_overrides(self, week_key, overrides):
        sanitized = sanitize_manual_overrides(overrides)
        if sanitized:
            self.manual_overrides[week_key] = sanitized
        else:
            self.manual_overrides.pop(week_key, None)

    def load_notes(self, week_key):
        return dict(self.notes.get(week_key, {}))

    def save_notes(self, week_key, notes):
        if notes:
            self.notes[week_key] = dict(notes)
        else:
            self.notes.pop(week_key, None)


class SqlAdjustmentStore(AdjustmentStore):
    """Adjustment store backed by the commission_* tables."""

    def __init__(self, session_factory):
        self.session_factory = session_factory

    def load_collections(self, week_key):
        from app.models import CommissionCollectionsBonus

        try:
            with self.session_factory() as db:
                record = (
                    db.query(CommissionCollectionsBonus)
                    .filter(CommissionCollectionsBonus.week_key == week_key)
                    .first()
                )
                if not record:
                    return None
                return CollectionsBonusState(
                    value=Decimal(str(record.collections_bonus)),
                    locked=bool(record.locked),
                    saved_at=record.updated_at,
                )
        except SQLAlchemyError as e:
            raise AdjustmentStoreError(f"Failed to load collections bonus for {week_key}") from e

    def save_collections(self, week_key, state):
        from app.models import CommissionCollectionsBonus

        try:
            with self.session_factory() as db:
                record = (
                    db.query(CommissionCollectionsBonus)
                    .filter(CommissionCollectionsBonus.week_key == week_key)
                    .first()
                )
                if not record:
                    record = CommissionCollectionsBonus(week_key=week_key)
                    db.add(record)
                record.collections_bonus = state.value
                record.locked = state.locked
                record.updated_at = (state.saved_at or datetime.now(timezone.utc)).replace(tzinfo=None)
                db.commit()
        except SQLAlchemyError as e:
            raise AdjustmentStoreError(f"Failed to save collections bonus for {week_key}") from e

    def delete_collections(self, week_key):
        from app.models import CommissionCollectionsBonus

        try:
            with self.session_factory() as db:
                db.query(CommissionCollectionsBonus).filter(
                    CommissionCollectionsBonus.week_key == week_key
                ).delete()
                db.commit()
        except SQLAlchemyError as e:
            raise AdjustmentStoreError(f"Failed to clear collections bonus for {week_key}") from e

    def _load_row_map(self, model, column, week_key):
        try:
            with self.session_factory() as db:
                records = db.query(model).filter(model.week_key == week_key).all()
                return {record.row_key: getattr(record, column) for record in records}
        except SQLAlchemyError as e:
            raise AdjustmentStoreError(f"Failed to load {model.__tablename__} for {week_key}") from e

    def _replace_row_map(self, model, column, week_key, values):
        try:
            with self.session_factory() as db:
                db.query(model).filter(model.week_key == week_key).delete()
                for row_key, value in sorted(values.items()):
                    db.add(model(week_key=week_key, row_key=row_key, **{column: value}))
                db.commit()
        except SQLAlchemyError as e:
            raise AdjustmentStoreError(f"Failed to save {model.__tablename__} for {week_key}") from e

    def load_manual_overrides(self, week_key):
        from app.models import CommissionManualOverride

        return sanitize_manual_overrides(
            self._load_row_map(CommissionManualOverride, "value", week_key)
        )

    def save_manual_overrides(self, week_key, overrides):
        from app.models import CommissionManualOverride

        self._replace_row_map(
            CommissionManualOverride, "value", week_key, sanitize_manual_overrides(overrides)
        )

    def load_notes(self, week_key):
        from app.models import CommissionRowNote

        return self._load_row_map(CommissionRowNote, "notes", week_key)

    def save_notes(self, week_key, notes):
        from app.models import CommissionRowNote

        self._replace_row_map(CommissionRowNote, "notes", week_key, notes)


# ---------------------------------------------------------------------------
# Manager
# ---------------------------------------------------------------------------
class AdjustmentStateManager:
    """Per-week adjustment state with write-through persistence."""

    def __init__(self, store: AdjustmentStore, bonus_tiers: Iterable = DEFAULT_BONUS_TIERS):
        self.store = store
        self.bonus_tiers = tuple(Decimal(str(tier)) for tier in bonus_tiers)
        self._weeks: Dict[str, WeekAdjustments] = {}

    # -- loading -------------------------------------------------------------

    def load_week(self, week_key: str, refresh: bool = False) -> WeekAdjustments:
        """
        Load a week's adjustments from the store (cached after first load).

        A week whose load failed is served from memory and retried on the
        next call. Once the store answers, its state replaces the in-memory
        edits made in the meantime, which were never written through.
        """
        cached = self._weeks.get(week_key)
        if cached is not None and cached.loaded and not refresh:
            return cached

        week = WeekAdjustments(week_key=week_key)
        try:
            persisted = self.store.load_collections(week_key)
            if persisted is not None:
                week.persisted_collections = persisted
                week.collections = CollectionsBonusState(
                    persisted.value, persisted.locked, persisted.saved_at
                )
            week.manual_overrides = self.store.load_manual_overrides(week_key)
            week.notes = self.store.load_notes(week_key)
            week.loaded = True
        except AdjustmentStoreError as e:
            logger.warning("Using in-memory commission adjustments for %s: %s", week_key, e)
            if cached is not None:
                return cached

        if cached is not None and not cached.loaded and week.loaded:
            logger.info("Commission adjustment store recovered for %s", week_key)

        self._weeks[week_key] = week
        return week

    def _persist(self, action: str, week: WeekAdjustments, func, *args) -> bool:
        if not week.loaded:
            logger.warning(
                "Not saving %s for %s: stored state was never loaded", action, week.week_key
            )
            return False
        try:
            func(week.week_key, *args)
            return True
        except AdjustmentStoreError as e:
            logger.warning("Failed to persist %s for %s: %s", action, week.week_key, e)
            return False

    # -- collections bonus -----------------------------------------------------

    def get_collections(self, week_key: str) -> CollectionsBonusState:
        return self.load_week(week_key).collections

    def select_collections_bonus(self, week_key: str, value) -> CollectionsBonusState:
        """
        Select (or with value=None clear) the Key collections bonus.

        Raises:
            CollectionsBonusLockedError: selecting a value while locked
            InvalidBonusTierError: value is not a configured tier
        """
        week = self.load_week(week_key)
        state = week.collections

        if value is None or value == "":
            if state.locked:
                logger.info("Ignoring clear of locked collections bonus for %s", week_key)
                return state
            week.collections = CollectionsBonusState()
            if self._persist("collections bonus", week, self.store.delete_collections):
                week.persisted_collections = None
            return week.collections

        if state.locked:
            raise CollectionsBonusLockedError("Unlock the collections bonus before changing it.")

        try:
            amount = Decimal(str(value))
        except InvalidOperation:
            raise InvalidBonusTierError(f"Invalid collections bonus: {value!r}")
        if amount not in self.bonus_tiers:
            raise InvalidBonusTierError(f"Collections bonus must be one of {self._tier_labels()}")

        week.collections = CollectionsBonusState(amount, False, datetime.now(timezone.utc))
        self._save_collections(week)
        return week.collections

    def lock_collections_bonus(self, week_key: str) -> CollectionsBonusState:
        """
        Lock the selected collections bonus.

        Raises:
            CollectionsBonusNotSelectedError: no bonus selected
        """
        week = self.load_week(week_key)
        state = week.collections
        if state.value is None:
            raise CollectionsBonusNotSelectedError("Select a collections bonus before locking.")
        if state.locked:
            return state

        week.collections = CollectionsBonusState(state.value, True, datetime.now(timezone.utc))
        self._save_collections(week)
        logger.info("Collections bonus %s locked for %s", state.value, week_key)
        return week.collections

    def unlock_collections_bonus(self, week_key: str) -> CollectionsBonusState:
        week = self.load_week(week_key)
        state = week.collections
        if not state.locked:
            return state

        week.collections = CollectionsBonusState(state.value, False, datetime.now(timezone.utc))
        if state.value is None:
            self._persist("collections bonus", week, self.store.delete_collections)
            week.persisted_collections = None
        else:
            self._save_collections(week)
        logger.info("Collections bonus unlocked for %s", week_key)
        return week.collections

    def _save_collections(self, week: WeekAdjustments) -> None:
        state = week.collections
        if self._persist("collections bonus", week, self.store.save_collections, state):
            week.persisted_collections = CollectionsBonusState(state.value, state.locked, state.saved_at)

    def _tier_labels(self) -> str:
        return ", ".join(str(tier) for tier in self.bonus_tiers)

    # -- manual overrides and notes ------------------------------------------

    def manual_overrides(self, week_key: str) -> Dict[str, str]:
        return dict(self.load_week(week_key).manual_overrides)

    def set_manual_override(self, week_key: str, row_key: str, raw_value: Optional[str]) -> Dict[str, str]:
        """
        Set a row's manual commission; an empty value after sanitizing removes it.

        Raises:
            InvalidManualAmountError: the value is not a usable amount
        """
        sanitized = sanitize_manual_value(raw_value)
        if sanitized and parse_manual_amount(sanitized) is None:
            raise InvalidManualAmountError(f"Invalid manual commission: {raw_value!r}")

        week = self.load_week(week_key)
        overrides = dict(week.manual_overrides)
        if sanitized:
            overrides[row_key] = sanitized
        else:
            overrides.pop(row_key, None)
        week.manual_overrides = overrides
        self._persist("manual overrides", week, self.store.save_manual_overrides, overrides)
        return dict(overrides)

    def notes(self, week_key: str) -> Dict[str, str]:
        return dict(self.load_week(week_key).notes)

    def set_note(self, week_key: str, row_key: str, text: Optional[str]) -> Dict[str, str]:
        week = self.load_week(week_key)
        notes = dict(week.notes)
        if text and text.strip():
            notes[row_key] = text
        else:
            notes.pop(row_key, None)
        week.notes = notes
        self._persist("row notes", week, self.store.save_notes, notes)
        return dict(notes)

    # -- snapshot inputs -------------------------------------------------------

    def snapshot_options(self, week_key: str, all_sales=None) -> SnapshotOptions:
        """Build the snapshot builder's options from this week's state."""
        week = self.load_week(week_key)
        state = week.collections

        persisted = week.persisted_collections
        fallback = persisted.value if persisted is not None and persisted.locked else None

        numeric_overrides = {}
        for row_key, value in week.manual_overrides.items():
            amount = parse_manual_amount(value)
            if amount is not None:
                numeric_overrides[row_key] = amount

        return SnapshotOptions(
            collections_selections={KEY_ROLE: state.value} if state.value is not None else {},
            collections_locks={KEY_ROLE: True} if state.locked else {},
            persisted_collections_bonus=fallback,
            manual_overrides=numeric_overrides,
            all_sales=all_sales,
        )
