"""Errors raised around the metrics core."""

from __future__ import annotations


class GatewayError(Exception):
    """Base error for the gateway."""


class InvalidRequestError(GatewayError):
    """Raised when query parameters are rejected before reaching the core."""

    def __init__(self, errors: list[str]) -> None:
        super().__init__("; ".join(errors))
        self.errors = errors


class StorageUnavailableError(GatewayError):
    """Raised when the metrics store cannot serve an operation."""

    def __init__(self, operation: str) -> None:
        super().__init__(f"Metrics storage unavailable during '{operation}'")
        self.operation = operation
