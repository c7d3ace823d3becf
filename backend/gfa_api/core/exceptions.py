"""
Domain error taxonomy.

Services raise these instead of HTTPException; the handlers registered in
``gfa_api.main`` map them to ``{"status": "error", "error": <message>}``.
"""


class AppError(Exception):
    status_code: int = 500
    default_message: str = "Internal server error"

    def __init__(self, message: str | None = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class ValidationError(AppError):
    """Malformed or missing input."""

    status_code = 400
    default_message = "Invalid request"


class AuthError(AppError):
    """Bad credentials or session."""

    status_code = 401
    default_message = "Unauthorized"


class NotFoundError(AppError):
    status_code = 404
    default_message = "Not found"


class ConflictError(AppError):
    """Duplicate account or duplicate registration."""

    status_code = 400
    default_message = "Already exists"


class CapacityError(AppError):
    status_code = 400
    default_message = "This event is fully booked"


class ServerError(AppError):
    status_code = 500
    default_message = "Internal server error"
