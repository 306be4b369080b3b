"""Typed failures raised by the ClickUp client and the task tree fetcher."""

from typing import Optional


class ClickUpServiceError(Exception):
    """Base class for everything the ClickUp services raise."""


class TransportError(ClickUpServiceError):
    """The request could not be sent or the response could not be read."""


class ParseError(ClickUpServiceError):
    """The response body did not have the expected shape.

    The raw body is kept on ``body`` for diagnostics.
    """

    def __init__(self, message: str, body: Optional[str] = None):
        super().__init__(message)
        self.body = body


class FeatureDisabledError(ClickUpServiceError):
    """Time in status is not enabled for the workspace."""


class IdentifierResolutionError(ClickUpServiceError):
    """A custom task id was used without workspace qualification."""


class UnexpectedError(ClickUpServiceError):
    """An internal invariant was violated."""
