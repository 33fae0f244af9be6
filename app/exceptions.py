from typing import Any, Mapping, Optional


class LabelIQError(Exception):
    """Base class for errors that carry a message, details and a suggested HTTP status.

    Attributes:
        message: human-readable message
        details: optional mapping with extra context (field errors, validation info)
        code: optional machine-readable error code
        http_status: suggested HTTP status code for handlers
    """

    http_status = 500
    default_message = "Internal error"

    def __init__(self, message: Optional[str] = None, details: Optional[Mapping[str, Any]] = None, code: Optional[str] = None):
        message = message or self.default_message
        super().__init__(message)
        self.message = message
        self.details = details
        self.code = code

    def to_dict(self) -> dict:
        payload: dict[str, Any] = {"message": self.message}
        if self.code:
            payload["code"] = self.code
        if self.details:
            payload["details"] = self.details
        return payload

    def __str__(self) -> str:
        return self.message


class ServiceValidationError(LabelIQError):
    """Raised when input data is invalid or a computed value fails validation
    before it is persisted (e.g. a non-positive retention period). http_status is 400.
    """

    http_status = 400
    default_message = "Invalid input"


class NotFoundError(LabelIQError):
    """Raised when a requested resource was not found. http_status is 404."""

    http_status = 404
    default_message = "Not found"


class StorageError(LabelIQError):
    """Raised when the persistent store fails an I/O operation.

    The operation was aborted and can be retried; it is never a business-logic
    failure. http_status is 503.
    """

    http_status = 503
    default_message = "Storage unavailable"
    retryable = True

    def to_dict(self) -> dict:
        payload = super().to_dict()
        payload["retryable"] = self.retryable
        return payload


class ParseFailure(LabelIQError):
    """Raised inside the parser when no ingredient section can be located.

    Never leaves the parser: parse() turns it into an empty result.
    """

    http_status = 422
    default_message = "No ingredient section found"


class SourceUnavailable(LabelIQError):
    """Raised by a capability source adapter that cannot answer a request.

    Triggers failover to the next source of the same capability.
    """

    http_status = 502
    default_message = "Source unavailable"

    def __init__(self, source: str, message: Optional[str] = None, details: Optional[Mapping[str, Any]] = None):
        super().__init__(message or f"{source} unavailable", details=details, code="SOURCE_UNAVAILABLE")
        self.source = source


class AllSourcesExhausted(LabelIQError):
    """Raised when every source of a capability failed or was skipped.

    The orchestrator answers it with a locally synthesized fallback.
    """

    http_status = 502
    default_message = "All sources exhausted"


class KnowledgeBaseError(LabelIQError):
    """Raised when the bundled knowledge base cannot be loaded.

    Alias collisions and malformed entries abort loading; the process must
    not start with a partial index.
    """

    default_message = "Knowledge base could not be loaded"


class SyncTransportError(LabelIQError):
    """Raised when a queued offline write could not be delivered.

    The item stays queued and its retry counter is incremented.
    """

    http_status = 502
    default_message = "Sync delivery failed"
