"""Failure taxonomy shared by every Dreamboard component.

Each collaborator classifies its own upstream failures into exactly one
:class:`ErrorKind` and raises :class:`DreamboardError` carrying that kind.
Nothing above the collaborators re-classifies or hides these errors; the HTTP
layer only looks the kind up in :data:`HTTP_STATUS` and :data:`USER_MESSAGES`.
"""

from __future__ import annotations

from enum import Enum


class ErrorKind(str, Enum):
    """Closed set of failure categories."""

    VALIDATION_FAILED = "validation_failed"

    # GenerationClient
    MISSING_CREDENTIALS = "missing_credentials"
    UPSTREAM_BILLING_EXCEEDED = "upstream_billing_exceeded"
    UPSTREAM_RATE_LIMITED = "upstream_rate_limited"
    UPSTREAM_AUTH_FAILED = "upstream_auth_failed"
    UPSTREAM_INVALID_REQUEST = "upstream_invalid_request"
    UPSTREAM_UNAVAILABLE = "upstream_unavailable"

    # ArtifactStore
    STORAGE_AUTH_FAILED = "storage_auth_failed"
    STORAGE_REJECTED_PAYLOAD = "storage_rejected_payload"
    STORAGE_UNAVAILABLE = "storage_unavailable"

    # CatalogRepository
    REPOSITORY_VALIDATION_FAILED = "repository_validation_failed"
    REPOSITORY_UNAVAILABLE = "repository_unavailable"


HTTP_STATUS: dict[ErrorKind, int] = {
    ErrorKind.VALIDATION_FAILED: 400,
    ErrorKind.MISSING_CREDENTIALS: 500,
    ErrorKind.UPSTREAM_BILLING_EXCEEDED: 400,
    ErrorKind.UPSTREAM_RATE_LIMITED: 429,
    ErrorKind.UPSTREAM_AUTH_FAILED: 401,
    ErrorKind.UPSTREAM_INVALID_REQUEST: 400,
    ErrorKind.UPSTREAM_UNAVAILABLE: 500,
    ErrorKind.STORAGE_AUTH_FAILED: 401,
    ErrorKind.STORAGE_REJECTED_PAYLOAD: 400,
    ErrorKind.STORAGE_UNAVAILABLE: 500,
    ErrorKind.REPOSITORY_VALIDATION_FAILED: 400,
    ErrorKind.REPOSITORY_UNAVAILABLE: 500,
}

USER_MESSAGES: dict[ErrorKind, str] = {
    ErrorKind.VALIDATION_FAILED: "Please provide all required fields",
    ErrorKind.MISSING_CREDENTIALS: "Image generation is not configured on this server",
    ErrorKind.UPSTREAM_BILLING_EXCEEDED: (
        "OpenAI API billing limit reached. Please check your OpenAI account billing "
        "settings at https://platform.openai.com/account/billing"
    ),
    ErrorKind.UPSTREAM_RATE_LIMITED: "Rate limit exceeded. Please try again later.",
    ErrorKind.UPSTREAM_AUTH_FAILED: (
        "Invalid API key. Please check your OpenAI API key configuration."
    ),
    ErrorKind.UPSTREAM_INVALID_REQUEST: "Invalid request parameters",
    ErrorKind.UPSTREAM_UNAVAILABLE: (
        "Failed to generate image. Please check server logs for details."
    ),
    ErrorKind.STORAGE_AUTH_FAILED: "Invalid storage credentials",
    ErrorKind.STORAGE_REJECTED_PAYLOAD: "Invalid image data",
    ErrorKind.STORAGE_UNAVAILABLE: "Failed to upload image",
    ErrorKind.REPOSITORY_VALIDATION_FAILED: "Invalid catalog entry data",
    ErrorKind.REPOSITORY_UNAVAILABLE: "Catalog store is unavailable",
}


class DreamboardError(Exception):
    """A classified failure from one of the pipeline components.

    Args:
        kind: Taxonomy category
        message: Human-readable description (usually the upstream message)
        error_type: Upstream-declared error type, if any
        code: Upstream-declared error code, if any
    """

    def __init__(
        self,
        kind: ErrorKind,
        message: str,
        *,
        error_type: str | None = None,
        code: str | None = None,
    ) -> None:
        super().__init__(message)
        self.kind = kind
        self.message = message
        self.error_type = error_type
        self.code = code

    @property
    def status_code(self) -> int:
        return http_status_for(self.kind)

    @property
    def user_message(self) -> str:
        return user_message_for(self.kind)

    def to_detail(self) -> dict:
        """Return the structured ``{message, type, code}`` error body."""
        return {"message": self.message, "type": self.error_type, "code": self.code}

    def __repr__(self) -> str:
        return f"DreamboardError(kind={self.kind.value!r}, message={self.message!r})"


def http_status_for(kind: ErrorKind) -> int:
    """Map an error kind to the HTTP status reported to clients."""
    return HTTP_STATUS.get(kind, 500)


def user_message_for(kind: ErrorKind) -> str:
    """Map an error kind to the user-facing message."""
    return USER_MESSAGES.get(kind, "Internal server error")
