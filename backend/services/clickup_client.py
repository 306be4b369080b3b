"""ClickUp REST API client.

Every call is a single attempt. Failures are translated into the typed
errors in ``services.errors`` here, so nothing downstream has to look at
raw response text.
"""

import json
import logging
from typing import Optional

import requests

from services.errors import (
    FeatureDisabledError,
    IdentifierResolutionError,
    ParseError,
    TransportError,
)
from services.task_models import RawTaskNode, StatusHistory

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = "https://api.clickup.com"

# ClickUp error codes, matched against the raw body
TIME_IN_STATUS_NOT_ENABLED_ERROR_CODE = "TIS_027"
NOT_AUTHORIZED_ERROR_CODE = "OAUTH_018"


class ClickUpClient:
    """Read-only client for the ClickUp v2 API."""

    def __init__(self, token: str, base_url: str = DEFAULT_BASE_URL,
                 timeout: float = 30, session: Optional[requests.Session] = None):
        self.base_url = base_url.rstrip("/")
        self.token = token
        self.timeout = timeout
        self.session = session or requests.Session()
        self.session.headers.update({
            "Accept": "application/json",
            "Content-Type": "application/json",
            "Authorization": f"Bearer {token}",
        })

    def _request(self, endpoint: str, params: Optional[dict] = None):
        """Send a GET request and return ``(status_code, text)``."""
        try:
            response = self.session.get(
                f"{self.base_url}{endpoint}",
                params=params,
                timeout=self.timeout
            )
        except requests.exceptions.RequestException as e:
            raise TransportError(f"GET {endpoint} failed: {e}") from e
        return response.status_code, response.text

    @staticmethod
    def _workspace_params(workspace_id: Optional[str]) -> dict:
        if not workspace_id:
            return {}
        return {"custom_task_ids": "true", "team_id": workspace_id}

    def _raise_for_error_code(self, text: str, workspace_id: Optional[str]) -> None:
        if NOT_AUTHORIZED_ERROR_CODE in text and not workspace_id:
            raise IdentifierResolutionError(
                "Task not found; it may be a custom id used without a workspace"
            )

    @staticmethod
    def _decode(status_code: int, text: str, context: str):
        """Return the JSON object body of a 2xx response, else raise ParseError."""
        if not 200 <= status_code < 300:
            raise ParseError(f"{context} returned {status_code}", body=text)
        try:
            data = json.loads(text)
        except ValueError as e:
            raise ParseError(f"{context} returned invalid JSON: {e}", body=text) from e
        if not isinstance(data, dict):
            raise ParseError(
                f"{context} returned {type(data).__name__}, expected an object", body=text
            )
        return data

    def fetch_task(self, task_id: str, workspace_id: Optional[str] = None) -> RawTaskNode:
        """Fetch one task with its immediate subtask references.

        Args:
            task_id: Canonical task id, or a custom id when ``workspace_id`` is given
            workspace_id: Workspace (team) that scopes custom ids

        Returns:
            RawTaskNode without status history attached
        """
        params = {"include_subtasks": "true"}
        params.update(self._workspace_params(workspace_id))
        status_code, text = self._request(f"/api/v2/task/{task_id}", params=params)
        context = f"get_task {task_id}"

        try:
            payload = self._decode(status_code, text, context)
            return RawTaskNode.from_payload(payload)
        except (ParseError, KeyError, TypeError, ValueError) as e:
            self._raise_for_error_code(text, workspace_id)
            if isinstance(e, ParseError):
                raise
            raise ParseError(f"{context} has unexpected shape: {e!r}", body=text) from e

    def fetch_status_history(self, task_id: str,
                             workspace_id: Optional[str] = None) -> StatusHistory:
        """Fetch the time-in-status history of one task."""
        status_code, text = self._request(
            f"/api/v2/task/{task_id}/time_in_status",
            params=self._workspace_params(workspace_id) or None
        )
        context = f"get_task_time_in_status {task_id}"

        try:
            payload = self._decode(status_code, text, context)
            return StatusHistory.from_payload(payload)
        except (ParseError, KeyError, TypeError, ValueError) as e:
            if TIME_IN_STATUS_NOT_ENABLED_ERROR_CODE in text:
                raise FeatureDisabledError(
                    "Time in status is not enabled for this workspace"
                ) from e
            self._raise_for_error_code(text, workspace_id)
            if isinstance(e, ParseError):
                raise
            raise ParseError(f"{context} has unexpected shape: {e!r}", body=text) from e

    def get_authorized_workspaces(self) -> list:
        """List the workspaces (teams) the token has access to."""
        status_code, text = self._request("/api/v2/team")
        data = self._decode(status_code, text, "get_authorized_workspaces")
        try:
            teams = data["teams"]
        except (KeyError, TypeError) as e:
            raise ParseError("get_authorized_workspaces has no teams", body=text) from e

        logger.info(f"Token has access to {len(teams)} workspaces")
        return teams

    def get_authorized_user(self) -> dict:
        """Return the user that owns the token."""
        status_code, text = self._request("/api/v2/user")
        data = self._decode(status_code, text, "get_authorized_user")
        try:
            return data["user"]
        except (KeyError, TypeError) as e:
            raise ParseError("get_authorized_user has no user", body=text) from e
