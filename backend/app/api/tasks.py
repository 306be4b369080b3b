"""Task analysis API endpoints."""

from flask import Blueprint, current_app, request, jsonify
from services.clickup_client import ClickUpClient
from services.errors import (
    ClickUpServiceError,
    FeatureDisabledError,
    IdentifierResolutionError,
    TransportError,
)
from services.report import render_report
from services.task_metrics import AggregationPolicy, TaskMetricsAggregator, WeekendMode
from services.task_tree import TaskTreeFetcher

bp = Blueprint("tasks", __name__, url_prefix="/api/tasks")

TIME_IN_STATUS_DISABLED_MESSAGE = "Time in status is not enabled for the selected workspace."
CUSTOM_ID_MESSAGE = (
    "You might be using a custom id without setting the `Use Custom ID` field to true."
)
GENERIC_ERROR_MESSAGE = (
    "Something went wrong, please review the information in the form and try again"
)


def get_clickup_credentials():
    """Extract the ClickUp token and selected workspace from request headers."""
    token = request.headers.get("X-ClickUp-Token")
    workspace_id = request.headers.get("X-ClickUp-Workspace") or None
    return token, workspace_id


def get_flag(data, name):
    """Read a boolean from JSON (true/false) or an HTML checkbox ("on")."""
    value = data.get(name)
    if isinstance(value, bool):
        return value
    if value is None:
        return False
    return str(value).lower() in ("on", "true", "1", "yes")


@bp.route("/analysis", methods=["POST"])
def analyze_task():
    """Fetch a task tree and report points vs. time spent in development.

    Requires headers:
        - X-ClickUp-Token: ClickUp API token
        - X-ClickUp-Workspace: Selected workspace id (needed for custom ids)

    Body (JSON or form):
        - task_id: Root task id
        - use_custom_id: Treat task_id as a custom id within the workspace
        - remove_weekends: Exclude weekend days from dev time
        - weekend_mode: "ratio" (default) or "calendar"
        - aggregation: "leaf", "node" or "node_and_leaf"

    Returns:
        - Text report and the metric tree as JSON
    """
    token, workspace_id = get_clickup_credentials()

    if not token:
        return jsonify({"error": "Missing ClickUp token in headers"}), 401

    data = request.get_json(silent=True) or request.form
    task_id = (data.get("task_id") or "").strip()

    if not task_id:
        return jsonify({"error": "Missing task id."}), 400

    settings = current_app.config["ANALYZER_SETTINGS"]

    try:
        policy = AggregationPolicy.from_value(
            data.get("aggregation") or settings.default_aggregation
        )
        weekend_mode = WeekendMode.from_value(data.get("weekend_mode") or "ratio")
    except ValueError as e:
        return jsonify({"error": str(e)}), 400

    if get_flag(data, "use_custom_id"):
        if not workspace_id:
            return jsonify({"error": "Select a workspace to use custom task ids"}), 400
    else:
        workspace_id = None

    client = ClickUpClient(token, settings.base_url, settings.request_timeout)
    fetcher = TaskTreeFetcher(client, settings.max_concurrent_requests)

    try:
        task = fetcher.fetch_tree(task_id, workspace_id)
    except FeatureDisabledError:
        return jsonify({"error": TIME_IN_STATUS_DISABLED_MESSAGE}), 422
    except IdentifierResolutionError:
        return jsonify({"error": CUSTOM_ID_MESSAGE}), 422
    except TransportError as e:
        current_app.logger.warning(f"ClickUp unreachable for task {task_id}: {e}")
        return jsonify({"error": f"Failed to connect to ClickUp: {str(e)}"}), 502
    except ClickUpServiceError as e:
        current_app.logger.exception(f"Task analysis failed for {task_id}: {e!r}")
        return jsonify({"error": GENERIC_ERROR_MESSAGE}), 500

    aggregator = TaskMetricsAggregator(
        policy, settings.dev_order_index, settings.working_days_per_week
    )
    metrics = aggregator.build(task)
    if get_flag(data, "remove_weekends"):
        aggregator.exclude_weekends(metrics, weekend_mode)

    return jsonify({
        "data": {
            "aggregation": policy.value,
            "weekendsRemoved": get_flag(data, "remove_weekends"),
            "report": render_report(metrics),
            "task": metrics.to_dict()
        }
    })
