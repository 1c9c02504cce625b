"""Domain exceptions raised by the service layer and mapped to HTTP responses."""


class HealthTrackError(Exception):
    status_code = 500
    message = "Internal error"

    def __init__(self, detail: str, message: str | None = None) -> None:
        super().__init__(detail)
        self.detail = detail
        if message is not None:
            self.message = message


class InputError(HealthTrackError):
    """Caller input could not be normalized to a valid value."""

    status_code = 400
    message = "Invalid input"


class NotFoundError(HealthTrackError):
    status_code = 404
    message = "Not found"


class PermissionDenied(HealthTrackError):
    status_code = 403
    message = "Access denied"


class Unauthenticated(HealthTrackError):
    status_code = 401
    message = "Unauthorized"


class UpstreamError(HealthTrackError):
    """The report LLM could not be reached or kept failing."""

    status_code = 502
    message = "Report service unavailable"


class ConflictError(HealthTrackError):
    status_code = 409
    message = "Already exists"
