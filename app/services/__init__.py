from app.services.commission_calendar import (
    parse_sale_date,
    reporting_week_of,
    week_key_of,
    bonus_window_of,
)
from app.services.commission_math import (
    CommissionPolicy,
    DefaultCommissionPolicy,
    OverrideResult,
)
from app.services.commission_rows import (
    normalize_name,
    resolve_split,
    build_rows_for_sale,
)
from app.services.weekly_bonus import compute_weekly_bonus
from app.services.commission_snapshot import (
    SnapshotOptions,
    build_snapshot,
    validate_for_publish,
    publish_snapshot,
)
from app.services.adjustment_state import (
    AdjustmentStateManager,
    InMemoryAdjustmentStore,
    SqlAdjustmentStore,
)
from app.services.week_selection import WeekSelectionController, build_week_buckets

__all__ = [
    'parse_sale_date',
    'reporting_week_of',
    'week_key_of',
    'bonus_window_of',
    'CommissionPolicy',
    'DefaultCommissionPolicy',
    'OverrideResult',
    'normalize_name',
    'resolve_split',
    'build_rows_for_sale',
    'compute_weekly_bonus',
    'SnapshotOptions',
    'build_snapshot',
    'validate_for_publish',
    'publish_snapshot',
    'AdjustmentStateManager',
    'InMemoryAdjustmentStore',
    'SqlAdjustmentStore',
    'WeekSelectionController',
    'build_week_buckets',
]
