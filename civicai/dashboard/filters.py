"""
Dashboard filters and statistics
Pure functions over the issue mirror
"""

from dataclasses import dataclass, field, replace
from typing import Any, Dict, Iterable, List, Sequence

from civicai.core.constants import FILTER_ALL
from civicai.core.errors import InvalidStatus
from civicai.issues.models import Issue, IssuePriority, IssueStatus


def _value(choice) -> str:
    return choice.value if hasattr(choice, "value") else str(choice)


@dataclass(frozen=True)
class FilterState:
    """
    Operator view predicate.

    Each field is "all" or one concrete value. Never mutates the records it
    filters.
    """
    status: str = FILTER_ALL
    category: str = FILTER_ALL
    priority: str = FILTER_ALL

    def __post_init__(self):
        status = _value(self.status)
        priority = _value(self.priority)
        if status != FILTER_ALL and status not in {s.value for s in IssueStatus}:
            raise InvalidStatus(status)
        if priority != FILTER_ALL and priority not in {p.value for p in IssuePriority}:
            raise ValueError(f"Unknown priority filter: {priority!r}")
        object.__setattr__(self, "status", status)
        object.__setattr__(self, "priority", priority)
        object.__setattr__(self, "category", _value(self.category))

    def matches(self, issue: Issue) -> bool:
        """True iff the issue matches every non-"all" predicate."""
        if self.status != FILTER_ALL and issue.status.value != self.status:
            return False
        if self.category != FILTER_ALL and issue.category != self.category:
            return False
        if self.priority != FILTER_ALL and issue.priority.value != self.priority:
            return False
        return True

    def with_changes(self, **changes) -> "FilterState":
        return replace(self, **changes)

    @property
    def is_unfiltered(self) -> bool:
        return self.status == self.category == self.priority == FILTER_ALL


def apply_filter(issues: Sequence[Issue], state: FilterState) -> List[Issue]:
    """Issues passing the filter, in their original order."""
    return [issue for issue in issues if state.matches(issue)]


@dataclass(frozen=True)
class IssueStatistics:
    """Counts over the whole mirror, independent of the active filter."""
    total: int
    by_status: Dict[str, int] = field(default_factory=dict)
    by_priority: Dict[str, int] = field(default_factory=dict)
    by_category: Dict[str, int] = field(default_factory=dict)

    @property
    def high_priority(self) -> int:
        return self.by_priority.get(IssuePriority.HIGH.value, 0)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            "total": self.total,
            "by_status": dict(self.by_status),
            "by_priority": dict(self.by_priority),
            "by_category": dict(self.by_category),
            "high_priority": self.high_priority,
        }


def compute_statistics(issues: Iterable[Issue]) -> IssueStatistics:
    """Total and per-status/priority/category counts."""
    by_status = {status.value: 0 for status in IssueStatus}
    by_priority = {priority.value: 0 for priority in IssuePriority}
    by_category: Dict[str, int] = {}
    total = 0

    for issue in issues:
        total += 1
        by_status[issue.status.value] += 1
        by_priority[issue.priority.value] += 1
        by_category[issue.category] = by_category.get(issue.category, 0) + 1

    return IssueStatistics(
        total=total,
        by_status=by_status,
        by_priority=by_priority,
        by_category=by_category,
    )
