"""Workspace listing API endpoints."""

from flask import Blueprint, current_app, request, jsonify
from services.clickup_client import ClickUpClient
from services.errors import ClickUpServiceError, TransportError

bp = Blueprint("workspaces", __name__, url_prefix="/api/workspaces")


@bp.route("", methods=["GET"])
def list_workspaces():
    """List the ClickUp workspaces the token can access.

    Requires headers:
        - X-ClickUp-Token: ClickUp API token
    """
    token = request.headers.get("X-ClickUp-Token")

    if not token:
        return jsonify({"error": "Missing ClickUp token in headers"}), 401

    settings = current_app.config["ANALYZER_SETTINGS"]
    client = ClickUpClient(token, settings.base_url, settings.request_timeout)

    try:
        teams = client.get_authorized_workspaces()
    except TransportError as e:
        return jsonify({"error": f"Failed to connect to ClickUp: {str(e)}"}), 502
    except ClickUpServiceError as e:
        current_app.logger.exception(f"Workspace listing failed: {e!r}")
        return jsonify({"error": "Failed to list workspaces"}), 500

    formatted_workspaces = [
        {
            "id": str(team.get("id")),
            "name": team.get("name"),
            "color": team.get("color"),
            "avatar": team.get("avatar"),
            "memberCount": len(team.get("members") or [])
        }
        for team in teams
    ]

    return jsonify({"data": formatted_workspaces})
