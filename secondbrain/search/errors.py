"""Exceptions raised by the search pipeline."""

from __future__ import annotations


class SearchValidationError(ValueError):
    """Raised when a search request is malformed.

    Attributes:
        field: Name of the offending input.
        message: Human-readable description.
    """

    def __init__(self, field: str, message: str) -> None:
        self.field = field
        self.message = message
        super().__init__(f"{field}: {message}")


class UpstreamUnavailableError(Exception):
    """Raised when a required upstream (the embedding provider) cannot serve the request."""

    def __init__(self, component: str, message: str) -> None:
        self.component = component
        self.message = message
        super().__init__(f"[{component}] {message}")
