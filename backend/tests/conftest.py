"""Shared fixtures for Task Time Analyzer tests."""

import os
import time
import sys

import pytest

sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))

from services.task_models import ChildRef, RawTaskNode, StatusHistory, StatusPeriod, parse_millis

# 2024-01-01T00:00:00Z, a Monday
MONDAY_MILLIS = "1704067200000"


def make_task_payload(task_id, name=None, points=None, custom_id=None, subtasks=None):
    """Build a ClickUp get-task body."""
    payload = {
        "id": task_id,
        "custom_id": custom_id,
        "name": name or f"Task {task_id}",
        "text_content": "",
        "description": "",
        "points": points,
        "date_created": MONDAY_MILLIS,
    }
    if subtasks is not None:
        payload["subtasks"] = [
            {
                "id": s["id"],
                "custom_id": s.get("custom_id"),
                "name": s.get("name", f"Task {s['id']}"),
                "points": s.get("points"),
                "date_created": MONDAY_MILLIS,
            }
            for s in subtasks
        ]
    return payload


def make_history_payload(periods=()):
    """Build a ClickUp time-in-status body from (status, orderindex, minutes) tuples."""
    return {
        "current_status": {
            "status": "in progress",
            "color": "#4194f6",
            "total_time": {"by_minute": 60, "since": MONDAY_MILLIS},
        },
        "status_history": [
            {
                "status": status,
                "color": "#87909e",
                "type": "custom",
                "orderindex": order_index,
                "total_time": {"by_minute": minutes, "since": MONDAY_MILLIS},
            }
            for status, order_index, minutes in periods
        ],
    }


def make_period(order_index, minutes, entered_at=MONDAY_MILLIS, label="in progress"):
    return StatusPeriod(
        status_label=label,
        status_type="custom",
        order_index=order_index,
        total_minutes=minutes,
        entered_at=parse_millis(entered_at),
    )


def make_node(task_id, points=None, periods=None, children=(), custom_id=None):
    """Build a resolved RawTaskNode tree by hand."""
    node = RawTaskNode(
        id=task_id,
        name=f"Task {task_id}",
        custom_id=custom_id,
        points=points,
        status_history=list(periods or []),
    )
    for child in children:
        ref = ChildRef(id=child.id, custom_id=child.custom_id, name=child.name, points=child.points)
        ref.resolve(child)
        node.children.append(ref)
    return node


class FakeClickUpClient:
    """In-memory stand-in for ClickUpClient keyed by task id."""

    def __init__(self, tasks, histories=None, errors=None, delays=None):
        self.tasks = tasks
        self.histories = histories or {}
        self.errors = errors or {}
        self.delays = delays or {}
        self.calls = []

    def _maybe_fail(self, kind, task_id):
        self.calls.append((kind, task_id))
        delay = self.delays.get(task_id)
        if delay:
            time.sleep(delay)
        error = self.errors.get((kind, task_id))
        if error is not None:
            raise error

    def fetch_task(self, task_id, workspace_id=None):
        self._maybe_fail("task", task_id)
        return RawTaskNode.from_payload(self.tasks[task_id])

    def fetch_status_history(self, task_id, workspace_id=None):
        self._maybe_fail("history", task_id)
        return StatusHistory.from_payload(
            self.histories.get(task_id) or make_history_payload()
        )


@pytest.fixture
def mock_clickup_credentials():
    """Mock ClickUp credentials for testing."""
    return {
        "token": "pk_test_token_123",
        "workspace_id": "9000001",
    }


@pytest.fixture
def sample_task_payload():
    """Sample task with two subtasks."""
    return make_task_payload(
        "86a8jcehg",
        name="Checkout redesign",
        points=3,
        custom_id="SHOP-12",
        subtasks=[
            {"id": "86a8jcexa", "custom_id": "SHOP-13", "points": 2},
            {"id": "86a8jcexb", "custom_id": "SHOP-14"},
        ],
    )


@pytest.fixture
def sample_history_payload():
    """Sample time in status: 2 days in development, 1 day in review, 3 days open."""
    return make_history_payload([
        ("open", 0, 3 * 1440),
        ("in progress", 5, 2 * 1440 + 300),
        ("code review", 6, 1440),
        ("blocked", None, 10 * 1440),
    ])


@pytest.fixture
def sample_tree_payloads():
    """Three-level tree: root -> (a -> (a1, a2), b)."""
    tasks = {
        "root": make_task_payload("root", points=None, subtasks=[
            {"id": "a", "points": 5}, {"id": "b", "points": 1},
        ]),
        "a": make_task_payload("a", points=5, subtasks=[
            {"id": "a1", "points": 2}, {"id": "a2", "points": 3},
        ]),
        "b": make_task_payload("b", points=1),
        "a1": make_task_payload("a1", points=2),
        "a2": make_task_payload("a2", points=3),
    }
    histories = {
        "root": make_history_payload([("in progress", 5, 1440)]),
        "a1": make_history_payload([("in progress", 5, 3 * 1440)]),
        "a2": make_history_payload([("in progress", 5, 4 * 1440)]),
    }
    return tasks, histories


@pytest.fixture
def app(tmp_path):
    """Create Flask test app with default settings."""
    from app import create_app
    app = create_app(config_path=str(tmp_path / "missing-config.json"))
    app.config['TESTING'] = True
    return app


@pytest.fixture
def client(app):
    """Create Flask test client."""
    return app.test_client()
