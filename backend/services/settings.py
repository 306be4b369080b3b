"""Analyzer settings loaded from backend/config/analyzer-config.json."""

import json
import logging
import os
from dataclasses import dataclass

from services.clickup_client import DEFAULT_BASE_URL
from services.task_tree import DEFAULT_MAX_WORKERS

logger = logging.getLogger(__name__)

CONFIG_PATH = os.path.join(
    os.path.dirname(os.path.dirname(__file__)), "config", "analyzer-config.json"
)

# Lowest ClickUp status orderindex that counts as "in development"
IN_PROGRESS_ORDER_INDEX = 5


@dataclass
class AnalyzerSettings:
    base_url: str = DEFAULT_BASE_URL
    request_timeout: float = 30
    max_concurrent_requests: int = DEFAULT_MAX_WORKERS
    dev_order_index: int = IN_PROGRESS_ORDER_INDEX
    working_days_per_week: int = 5
    default_aggregation: str = "node_and_leaf"
    log_level: str = "INFO"

    # camelCase key in the config file -> attribute
    KEYS = {
        "baseUrl": "base_url",
        "requestTimeout": "request_timeout",
        "maxConcurrentRequests": "max_concurrent_requests",
        "devOrderIndex": "dev_order_index",
        "workingDaysPerWeek": "working_days_per_week",
        "defaultAggregation": "default_aggregation",
        "logLevel": "log_level",
    }

    @classmethod
    def from_dict(cls, data: dict) -> "AnalyzerSettings":
        """Build settings from a config mapping, ignoring unknown keys."""
        values = {}
        for key, attr in cls.KEYS.items():
            if key in data and data[key] is not None:
                values[attr] = data[key]

        settings = cls(**values)
        if settings.max_concurrent_requests < 1:
            raise ValueError("maxConcurrentRequests must be at least 1")
        if not 0 <= settings.working_days_per_week <= 7:
            raise ValueError("workingDaysPerWeek must be between 0 and 7")
        return settings


def load_settings(path: str = CONFIG_PATH) -> AnalyzerSettings:
    """Load settings from ``path``, falling back to defaults."""
    if not os.path.exists(path):
        logger.info("No analyzer-config.json found, using default settings")
        return AnalyzerSettings()

    try:
        with open(path, "r") as f:
            settings = AnalyzerSettings.from_dict(json.load(f))
    except (json.JSONDecodeError, IOError, TypeError, ValueError) as e:
        logger.warning(f"Failed to load analyzer config: {e}")
        return AnalyzerSettings()

    logger.info(f"Loaded analyzer settings from {path}")
    return settings
