"""Flask application factory."""

import logging
from flask import Flask
from flask_cors import CORS

from services.settings import CONFIG_PATH, load_settings

_LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def configure_logging(level: str):
    """Send app and service logs to stderr at the configured level."""
    log_level = getattr(logging, str(level).upper(), logging.INFO)
    logging.basicConfig(level=log_level, format=_LOG_FORMAT)
    for name in ("app", "services"):
        logging.getLogger(name).setLevel(log_level)


def load_analyzer_config(app, path: str = CONFIG_PATH):
    """Load analyzer settings into ``app.config["ANALYZER_SETTINGS"]``."""
    settings = load_settings(path)
    app.config["ANALYZER_SETTINGS"] = settings
    app.logger.info(
        f"Analyzer using {settings.base_url} with "
        f"{settings.max_concurrent_requests} concurrent requests"
    )
    return settings


def create_app(config_path: str = CONFIG_PATH):
    """Create and configure the Flask application."""
    app = Flask(__name__)

    # Enable CORS for frontend
    CORS(app, resources={
        r"/api/*": {
            "origins": ["http://localhost:5173", "http://127.0.0.1:5173"],
            "methods": ["GET", "POST", "OPTIONS"],
            "allow_headers": [
                "Content-Type",
                "X-ClickUp-Token", "X-ClickUp-Workspace"
            ]
        }
    })

    settings = load_analyzer_config(app, config_path)
    configure_logging(settings.log_level)

    # Register blueprints
    from app.api import auth, tasks, workspaces
    app.register_blueprint(auth.bp)
    app.register_blueprint(tasks.bp)
    app.register_blueprint(workspaces.bp)

    # Health check endpoint
    @app.route("/health")
    def health():
        return {"status": "ok"}

    return app
