"""
Error taxonomy shared by the gateway, the view builders and the HTTP layer.

``user_message`` is what the admin sees; the exception text keeps the
technical detail for logs.
"""

from __future__ import annotations

from typing import Optional


class DashboardError(Exception):
    """Base exception for admin dashboard errors."""

    status_code = 500

    def __init__(self, message: str, user_message: Optional[str] = None):
        super().__init__(message)
        self.user_message = user_message or message


class GatewayError(DashboardError):
    """Raised when a query against the data store fails."""

    status_code = 502

    def __init__(self, operation: str, details: Optional[str] = None):
        super().__init__(
            f"Gateway error during {operation}: {details}",
            "Data store unavailable. Please try again later.",
        )
        self.operation = operation


class ConstraintViolation(GatewayError):
    """Raised when the data store rejects a write because of a constraint."""

    status_code = 409


class NotFoundError(DashboardError):
    status_code = 404

    def __init__(self, collection: str, identifier: str):
        super().__init__(
            f"{collection} row {identifier!r} not found",
            "Record not found or already processed.",
        )
        self.collection = collection
        self.identifier = identifier


class InvalidInputError(DashboardError):
    """Raised before any gateway call when admin input is malformed."""

    status_code = 422

    def __init__(self, field: str, reason: str):
        super().__init__(f"Invalid {field}: {reason}", reason)
        self.field = field


class InvalidTransitionError(DashboardError):
    status_code = 409

    def __init__(self, entity: str, current: str, target: str):
        super().__init__(
            f"{entity} cannot move from {current!r} to {target!r}",
            f"Status change from {current} to {target} is not allowed.",
        )
        self.current = current
        self.target = target


class DuplicateWinnerError(DashboardError):
    status_code = 409

    def __init__(self, draw_date: str):
        super().__init__(
            f"daily_winners already has a row for {draw_date}",
            "A winner already exists for this date!",
        )
        self.draw_date = draw_date


class GatewayNotConfiguredError(DashboardError):
    def __init__(self) -> None:
        super().__init__(
            "ADMIN_DASHBOARD_DATABASE_URL is not configured",
            "ADMIN_DASHBOARD_DATABASE_URL is not configured; no data source is available.",
        )
