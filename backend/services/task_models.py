"""Typed records for ClickUp task and time-in-status payloads."""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Optional

from services.errors import UnexpectedError


def parse_millis(value) -> datetime:
    """Parse ClickUp's millisecond epoch (sent as a string) into a UTC datetime.

    Raises ValueError for values that are not a representable timestamp.
    """
    try:
        return datetime.fromtimestamp(int(value) / 1000, tz=timezone.utc)
    except (OverflowError, OSError) as e:
        raise ValueError(f"Timestamp out of range: {value!r}") from e


def _parse_points(value) -> Optional[float]:
    if value is None:
        return None
    return float(value)


@dataclass
class StatusPeriod:
    """One entry of a task's time-in-status history."""

    status_label: str
    status_type: str
    order_index: Optional[int]
    total_minutes: int
    entered_at: datetime

    @classmethod
    def from_payload(cls, payload: dict) -> "StatusPeriod":
        total_time = payload["total_time"]
        order_index = payload.get("orderindex")
        return cls(
            status_label=payload["status"],
            status_type=payload.get("type", ""),
            order_index=int(order_index) if order_index is not None else None,
            total_minutes=int(total_time["by_minute"]),
            entered_at=parse_millis(total_time["since"]),
        )


@dataclass
class CurrentStatus:
    status_label: str
    total_minutes: int
    entered_at: datetime

    @classmethod
    def from_payload(cls, payload: dict) -> "CurrentStatus":
        total_time = payload["total_time"]
        return cls(
            status_label=payload["status"],
            total_minutes=int(total_time["by_minute"]),
            entered_at=parse_millis(total_time["since"]),
        )


@dataclass
class StatusHistory:
    """Response record of the time-in-status endpoint."""

    current_status: Optional[CurrentStatus]
    periods: list

    @classmethod
    def from_payload(cls, payload: dict) -> "StatusHistory":
        current = payload.get("current_status")
        return cls(
            current_status=CurrentStatus.from_payload(current) if current else None,
            periods=[StatusPeriod.from_payload(p) for p in payload["status_history"]],
        )


@dataclass
class ChildRef:
    """Placeholder for a subtask listed on its parent.

    ``points`` is the preview value ClickUp embeds in the parent listing;
    ``resolved`` holds the fully fetched subtask once the tree fetcher has it.
    """

    id: str
    custom_id: Optional[str] = None
    name: str = ""
    points: Optional[float] = None
    resolved: Optional["RawTaskNode"] = None

    @classmethod
    def from_payload(cls, payload: dict) -> "ChildRef":
        return cls(
            id=str(payload["id"]),
            custom_id=payload.get("custom_id"),
            name=payload.get("name", ""),
            points=_parse_points(payload.get("points")),
        )

    def resolve(self, node: "RawTaskNode") -> None:
        if self.resolved is not None:
            raise UnexpectedError(f"Subtask {self.id} was resolved twice")
        if node.id != self.id:
            raise UnexpectedError(
                f"Fetched task {node.id} does not match subtask reference {self.id}"
            )
        self.resolved = node


@dataclass
class RawTaskNode:
    """A task as returned by ClickUp, with its status history attached."""

    id: str
    name: str
    custom_id: Optional[str] = None
    points: Optional[float] = None
    date_created: Optional[datetime] = None
    status_history: Optional[list] = None
    children: list = field(default_factory=list)

    @property
    def identifier(self) -> str:
        return self.custom_id or self.id

    @classmethod
    def from_payload(cls, payload: dict) -> "RawTaskNode":
        created = payload.get("date_created")
        return cls(
            id=str(payload["id"]),
            name=payload["name"],
            custom_id=payload.get("custom_id"),
            points=_parse_points(payload.get("points")),
            date_created=parse_millis(created) if created else None,
            children=[ChildRef.from_payload(s) for s in payload.get("subtasks") or []],
        )

    def attach_status_history(self, history: StatusHistory) -> None:
        self.status_history = list(history.periods)

    def iter_nodes(self):
        """Yield this node and every resolved descendant, pre-order."""
        yield self
        for child in self.children:
            if child.resolved is not None:
                yield from child.resolved.iter_nodes()
