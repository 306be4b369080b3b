"""Authentication API endpoints."""

from flask import Blueprint, current_app, request, jsonify
from services.clickup_client import ClickUpClient
from services.errors import ClickUpServiceError, ParseError, TransportError

bp = Blueprint("auth", __name__, url_prefix="/api/auth")


@bp.route("/validate", methods=["POST"])
def validate_token():
    """Validate a ClickUp API token by fetching the user that owns it.

    Expects JSON body with:
        - token: ClickUp API token

    Returns user info on success.
    """
    data = request.get_json(silent=True)

    if not data:
        return jsonify({"error": "Missing request body"}), 400

    token = data.get("token")

    if not token:
        return jsonify({"error": "Missing required field: token"}), 400

    settings = current_app.config["ANALYZER_SETTINGS"]

    try:
        user = ClickUpClient(token, settings.base_url, settings.request_timeout).get_authorized_user()
    except TransportError as e:
        return jsonify({"error": f"Failed to connect to ClickUp: {str(e)}"}), 502
    except ParseError:
        return jsonify({"error": "Invalid credentials"}), 401
    except ClickUpServiceError as e:
        return jsonify({"error": str(e)}), 500

    return jsonify({
        "data": {
            "valid": True,
            "user": {
                "id": user.get("id"),
                "username": user.get("username"),
                "email": user.get("email"),
                "avatarUrl": user.get("profilePicture")
            }
        }
    })
