"""
CivicAI - Dashboard Module
Operator view synchronization, filtering and status transitions.
"""

from civicai.dashboard.filters import (
    FilterState,
    IssueStatistics,
    apply_filter,
    compute_statistics,
)
from civicai.dashboard.sync_engine import SyncEngine, DashboardSnapshot
from civicai.dashboard.lifecycle import (
    LifecycleController,
    available_statuses,
    parse_status,
)

__all__ = [
    # Filters
    "FilterState",
    "IssueStatistics",
    "apply_filter",
    "compute_statistics",
    # Sync
    "SyncEngine",
    "DashboardSnapshot",
    # Lifecycle
    "LifecycleController",
    "available_statuses",
    "parse_status",
]
