"""Exception types that map onto HTTP responses."""


class BridgeError(Exception):
    """Base class for errors that are reported to the webhook caller."""

    status_code = 500
    code = "INTERNAL_ERROR"

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)


class ValidationError(BridgeError):
    """Malformed payload, unknown source, or otherwise unacceptable request."""

    status_code = 400
    code = "VALIDATION_ERROR"


class UnauthorizedError(BridgeError):
    """Webhook signature did not match the configured secret."""

    status_code = 401
    code = "UNAUTHORIZED"


class SyncFailedError(BridgeError):
    """A synchronization run failed while a caller was waiting for it."""

    status_code = 500
    code = "SYNC_FAILED"


class EnrichmentError(Exception):
    """The enrichment provider failed; callers proceed without enrichment."""
