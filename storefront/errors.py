class ServiceError(Exception):
    """Base for errors that are safe to return to the caller."""

    code = "internal"
    status_code = 500
    default_message = "An internal error occurred."

    def __init__(self, message: str | None = None):
        self.message = message or self.default_message
        super().__init__(self.message)

    def to_dict(self) -> dict:
        return {"error": {"code": self.code, "message": self.message}}


class Unauthenticated(ServiceError):
    code = "unauthenticated"
    status_code = 401
    default_message = "User must be authenticated."


class InvalidArgument(ServiceError):
    code = "invalid-argument"
    status_code = 400
    default_message = "Invalid argument."


class NotFound(ServiceError):
    code = "not-found"
    status_code = 404
    default_message = "Not found."


class FailedPrecondition(ServiceError):
    code = "failed-precondition"
    status_code = 412
    default_message = "Operation is not allowed in the current state."


class Internal(ServiceError):
    pass


class GatewayError(Internal):
    """A payment gateway step failed; the upstream reason is logged, not carried."""

    default_message = "Failed to create payment. Please try again later."
