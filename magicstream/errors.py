class MagicStreamError(Exception):
    """
    Base class for errors rendered as ``{"error": message}`` responses.

    Args:
        message (str | None): Text returned to the client.
        details (list[str] | None): Optional extra messages (validation errors).
    """

    status_code = 500
    default_message = "Internal server error"

    def __init__(self, message: str | None = None, details: list[str] | None = None):
        self.message = message or self.default_message
        self.details = details
        super().__init__(self.message)

    def to_payload(self):
        payload = {"error": self.message}
        if self.details:
            payload["errors"] = self.details
        return payload


class InvalidInput(MagicStreamError):
    status_code = 400
    default_message = "Invalid input"


class Unauthorized(MagicStreamError):
    status_code = 401
    default_message = "Unauthorized"


class NotFound(MagicStreamError):
    status_code = 404
    default_message = "Not found"


class Conflict(MagicStreamError):
    status_code = 409
    default_message = "Already exists"


class ConfigurationError(MagicStreamError):
    default_message = "Server is not configured"


class UpstreamError(MagicStreamError):
    default_message = "Upstream service failed"


class DataShapeError(MagicStreamError):
    default_message = "Unexpected document shape"


class StoreError(MagicStreamError):
    default_message = "Database error"


class StoreTimeout(StoreError):
    status_code = 504
    default_message = "Database operation timed out"
