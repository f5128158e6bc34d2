from __future__ import annotations


class DashboardError(Exception):
    """Base class for failures surfaced to the user as a notification."""

    category = "Error"
    status_code = 400

    def __init__(self, detail: str):
        super().__init__(detail)
        self.detail = detail


class ValidationError(DashboardError):
    category = "Validation Error"
    status_code = 422


class NotFoundError(DashboardError):
    category = "Not Found"
    status_code = 404


class PermissionDenied(DashboardError):
    category = "Permission Denied"
    status_code = 403


class AuthError(DashboardError):
    category = "Authentication Error"
    status_code = 401


class DataAccessError(DashboardError):
    category = "Error"
    status_code = 503


class ConflictError(DashboardError):
    category = "Conflict"
    status_code = 409
