class ApiError(Exception):
    """Base for errors that map straight onto an HTTP status."""

    status_code = 500
    error = "Internal server error"

    def __init__(self, message=None):
        super().__init__(message or self.error)
        self.message = message

    def to_dict(self):
        payload = {"error": self.error}
        if self.message and self.message != self.error:
            payload["message"] = self.message
        return payload


class ValidationError(ApiError):
    status_code = 400
    error = "validation"


class Unauthorized(ApiError):
    status_code = 401
    error = "Unauthorized"


class NotFound(ApiError):
    status_code = 404
    error = "Not found"


class Conflict(ApiError):
    status_code = 409
    error = "Conflict"
