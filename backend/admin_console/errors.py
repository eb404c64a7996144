"""Error taxonomy shared by the marketplace client, the workflows and the routes.

Every class carries the HTTP status the admin console answers with, so routes
can surface a workflow failure without re-deciding its status code.
"""

# Phrases used when an upstream error body carries no message of its own
STATUS_MESSAGES = {
    400: "Invalid request. Please check your input.",
    401: "Unauthorized. Please log in again.",
    403: "Access denied. You don't have permission.",
    404: "Resource not found.",
    500: "Server error. Please try again later.",
}


class AdminConsoleError(Exception):
    """Base class for every failure the console turns into a user-visible message."""

    http_status: int = 500
    default_message: str = "Something went wrong"

    def __init__(self, message: str | None = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class ValidationError(AdminConsoleError):
    """Client-local input problem. Never reaches the network."""

    http_status = 422
    default_message = "Invalid input"


class MissingFields(ValidationError):
    default_message = "Please select a resolution and provide a comment"


class SplitOutOfRange(ValidationError):
    default_message = "Buyer percentage must be between 0 and 70"


class InvalidAmount(ValidationError):
    default_message = "Override amount must be a number"


class InvalidState(AdminConsoleError):
    http_status = 409
    default_message = "This action is not allowed in the current state"


class AuthError(AdminConsoleError):
    http_status = 401
    default_message = "Unauthorized - Please log in again"

    def __init__(self, message: str | None = None, *, http_status: int = 401):
        super().__init__(message)
        self.http_status = http_status


class RemoteError(AdminConsoleError):
    """Non-2xx answer from the marketplace API."""

    def __init__(self, status_code: int, message: str | None = None):
        self.status_code = status_code
        self.message = message
        fallback = STATUS_MESSAGES.get(status_code, f"Something went wrong (Error {status_code})")
        Exception.__init__(self, message or fallback)

    @property
    def http_status(self) -> int:  # type: ignore[override]
        # Upstream client errors are relayed, upstream failures become a bad gateway
        if 400 <= self.status_code < 500:
            return self.status_code
        return 502


class NetworkError(AdminConsoleError):
    """The request never produced an HTTP response (offline, DNS, reset...)."""

    http_status = 502
    default_message = "Network error"


class BulkOperationError(AdminConsoleError):
    """Some ids of a bulk moderation action failed, others went through."""

    http_status = 207

    def __init__(self, result, message: str):
        super().__init__(message)
        self.result = result


def user_message(exc: Exception, fallback: str) -> str:
    """Reduce any failure to the single string shown in a screen's error slot.

    Network failures and upstream errors without a body message both collapse
    into the operation's fallback phrase; the user is not told which it was.
    """
    if isinstance(exc, NetworkError):
        return fallback
    if isinstance(exc, RemoteError):
        return exc.message or fallback
    if isinstance(exc, AdminConsoleError):
        return exc.message
    return fallback
