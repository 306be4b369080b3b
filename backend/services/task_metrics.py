"""Story point and dev-time roll-ups over a fetched task tree."""

import math
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from enum import Enum
from fractions import Fraction
from typing import Optional

from services.errors import UnexpectedError
from services.settings import IN_PROGRESS_ORDER_INDEX
from services.task_models import RawTaskNode

MINUTES_PER_DAY = 60 * 24


class AggregationPolicy(Enum):
    """How a node's totals combine its own value with its subtasks'."""

    LEAF = "leaf"                    # descendants only
    NODE = "node"                    # own value only
    NODE_AND_LEAF = "node_and_leaf"  # own value plus descendants

    @classmethod
    def from_value(cls, value: str) -> "AggregationPolicy":
        try:
            return cls(str(value).lower())
        except ValueError:
            options = ", ".join(p.value for p in cls)
            raise ValueError(f"Unknown aggregation '{value}', expected one of: {options}")


class WeekendMode(Enum):
    """How weekends are removed from dev time."""

    RATIO = "ratio"
    CALENDAR = "calendar"

    @classmethod
    def from_value(cls, value: str) -> "WeekendMode":
        try:
            return cls(str(value).lower())
        except ValueError:
            options = ", ".join(m.value for m in cls)
            raise ValueError(f"Unknown weekend mode '{value}', expected one of: {options}")


@dataclass
class MetricNode:
    identifier: str
    name: str
    own_points: float = 0.0
    total_points: float = 0.0
    own_dev_days: int = 0
    total_dev_days: int = 0
    children: list = field(default_factory=list)
    dev_started_at: Optional[datetime] = None

    def to_dict(self) -> dict:
        return {
            "identifier": self.identifier,
            "name": self.name,
            "points": self.own_points,
            "totalPoints": self.total_points,
            "devDays": self.own_dev_days,
            "totalDevDays": self.total_dev_days,
            "devStartedAt": self.dev_started_at.isoformat() if self.dev_started_at else None,
            "children": [child.to_dict() for child in self.children],
        }


def get_days_in_dev_status(status_history, dev_order_index: int = IN_PROGRESS_ORDER_INDEX) -> int:
    """Whole days spent in statuses at or past ``dev_order_index``.

    Each status period is floored to whole days before summing. Periods
    without an orderindex are outside the tracked pipeline and count 0.
    """
    total = 0
    for period in status_history or []:
        if period.order_index is not None and period.order_index >= dev_order_index:
            total += period.total_minutes // MINUTES_PER_DAY
    return total


def get_dev_started_at(status_history,
                       dev_order_index: int = IN_PROGRESS_ORDER_INDEX) -> Optional[datetime]:
    """Earliest entry time among the development status periods."""
    starts = [
        period.entered_at for period in status_history or []
        if period.order_index is not None and period.order_index >= dev_order_index
    ]
    return min(starts) if starts else None


def count_weekend_days(start: datetime, days: int) -> int:
    """Count Saturdays and Sundays in the ``days`` calendar days from ``start``."""
    weekend_days = 0
    current = start
    end = start + timedelta(days=days)
    while current < end:
        if current.weekday() >= 5:  # Saturday = 5, Sunday = 6
            weekend_days += 1
        current += timedelta(days=1)
    return weekend_days


class TaskMetricsAggregator:
    """Converts a fetched task tree into a MetricNode tree.

    Args:
        policy: Aggregation policy applied at every level of the tree
        dev_order_index: Lowest status orderindex that counts as development
        working_days_per_week: Weekdays per 7-day week, for the ratio weekend rule
    """

    def __init__(self, policy: AggregationPolicy = AggregationPolicy.NODE_AND_LEAF,
                 dev_order_index: int = IN_PROGRESS_ORDER_INDEX,
                 working_days_per_week: int = 5):
        self.policy = policy
        self.dev_order_index = dev_order_index
        self.working_day_ratio = Fraction(working_days_per_week, 7)

    def build(self, task: RawTaskNode) -> MetricNode:
        """Convert a fully resolved task tree, subtasks before parents."""
        node, _, _ = self._convert(task)
        return node

    def _convert(self, task: RawTaskNode):
        # Returns (node, subtree points, subtree dev days), where the subtree
        # sums are own values of the node plus every descendant.
        children = []
        descendant_points = 0.0
        descendant_days = 0
        for child_ref in task.children:
            if child_ref.resolved is None:
                raise UnexpectedError(f"Subtask {child_ref.id} of {task.id} is not resolved")
            child, points, days = self._convert(child_ref.resolved)
            children.append(child)
            descendant_points += points
            descendant_days += days

        own_points = task.points or 0.0
        own_days = get_days_in_dev_status(task.status_history, self.dev_order_index)
        total_points, total_days = self._totals(
            own_points, own_days, descendant_points, descendant_days
        )

        node = MetricNode(
            identifier=task.identifier,
            name=task.name,
            own_points=own_points,
            total_points=total_points,
            own_dev_days=own_days,
            total_dev_days=total_days,
            children=children,
            dev_started_at=get_dev_started_at(task.status_history, self.dev_order_index),
        )
        return node, own_points + descendant_points, own_days + descendant_days

    def _totals(self, own_points, own_days, descendant_points, descendant_days):
        if self.policy is AggregationPolicy.LEAF:
            return descendant_points, descendant_days
        if self.policy is AggregationPolicy.NODE:
            return own_points, own_days
        return own_points + descendant_points, own_days + descendant_days

    def exclude_weekends(self, node: MetricNode, mode: WeekendMode = WeekendMode.RATIO) -> MetricNode:
        """Remove weekend days from dev time in place, for the whole tree.

        RATIO scales own and total days by the weekday fraction of a week and
        rounds up. It assumes time is spread evenly over the week. Applying
        it twice discounts twice.

        CALENDAR walks the calendar from each node's first development status
        and drops the Saturdays and Sundays, then recomputes the totals.
        """
        if mode is WeekendMode.CALENDAR:
            self._exclude_weekends_by_calendar(node)
        else:
            self._exclude_weekends_by_ratio(node)
        return node

    def _exclude_weekends_by_ratio(self, node: MetricNode) -> None:
        node.own_dev_days = math.ceil(node.own_dev_days * self.working_day_ratio)
        node.total_dev_days = math.ceil(node.total_dev_days * self.working_day_ratio)
        for child in node.children:
            self._exclude_weekends_by_ratio(child)

    def _exclude_weekends_by_calendar(self, node: MetricNode) -> int:
        descendant_days = 0
        for child in node.children:
            descendant_days += self._exclude_weekends_by_calendar(child)

        if node.dev_started_at is not None:
            node.own_dev_days -= count_weekend_days(node.dev_started_at, node.own_dev_days)

        _, node.total_dev_days = self._totals(0, node.own_dev_days, 0, descendant_days)
        return node.own_dev_days + descendant_days
