"""Text-to-image generation through the OpenAI images endpoint.

:class:`GenerationClient` makes exactly one outbound call per prompt and
returns the decoded bytes of a single image.  It never retries: the SDK client
is built with ``max_retries=0`` and any failure is classified once by
:func:`classify_generation_error` and raised as a
:class:`~dreamboard.core.errors.DreamboardError`.

Classification order
--------------------
1. Missing or placeholder API key (checked before any network call).
2. Billing / quota exhaustion.  Structured codes are preferred, but the
   upstream service does not always tag billing failures (``dall-e`` returns
   some of them as plain ``invalid_request_error``), so a keyword match on the
   message is accepted as long as the error does not already declare rate
   limiting or authentication through its code, exception class or status.
3. Rate limiting.
4. Authentication.
5. Malformed request.
6. Everything else, including an empty response payload.
"""

from __future__ import annotations

import base64
import binascii
import logging
from typing import Any

import openai
from openai import OpenAI

from dreamboard.core.errors import DreamboardError, ErrorKind
from dreamboard.core.models import GeneratedImage

logger = logging.getLogger(__name__)

PLACEHOLDER_API_KEYS = frozenset({"", "sk-..."})

BILLING_CODES = frozenset(
    {"billing_hard_limit_reached", "insufficient_quota", "billing_not_active"}
)
RATE_LIMIT_CODES = frozenset({"rate_limit_exceeded"})
AUTH_CODES = frozenset({"invalid_api_key", "invalid_authentication"})
BILLING_KEYWORDS = ("billing", "quota")


def _upstream_fields(exc: BaseException) -> tuple[str | None, str | None, int | None, str]:
    """Extract the declared ``code``, ``type``, HTTP status and message of an error."""
    code = getattr(exc, "code", None)
    error_type = getattr(exc, "type", None)
    status = getattr(exc, "status_code", None)
    message = getattr(exc, "message", None) or str(exc)
    return (
        str(code) if code is not None else None,
        str(error_type) if error_type is not None else None,
        status if isinstance(status, int) else None,
        str(message),
    )


def _mentions_billing(message: str) -> bool:
    lowered = message.lower()
    return any(keyword in lowered for keyword in BILLING_KEYWORDS)


def classify_generation_error(exc: BaseException) -> ErrorKind:
    """Map an upstream generation failure onto the error taxonomy.

    Args:
        exc: Exception raised by the OpenAI SDK (or any object exposing
            ``code``, ``type``, ``status_code`` and ``message`` attributes)

    Returns:
        The generation ErrorKind for this failure
    """
    if isinstance(exc, DreamboardError):
        return exc.kind

    code, error_type, status, message = _upstream_fields(exc)

    if code in BILLING_CODES or error_type in BILLING_CODES:
        return ErrorKind.UPSTREAM_BILLING_EXCEEDED

    # Keyword match only when no other category is declared.
    declares_other_category = (
        code in RATE_LIMIT_CODES
        or code in AUTH_CODES
        or isinstance(exc, (openai.RateLimitError, openai.AuthenticationError))
        or status in (401, 429)
    )
    if not declares_other_category and _mentions_billing(message):
        return ErrorKind.UPSTREAM_BILLING_EXCEEDED

    if isinstance(exc, openai.RateLimitError) or code in RATE_LIMIT_CODES or status == 429:
        return ErrorKind.UPSTREAM_RATE_LIMITED

    if isinstance(exc, openai.AuthenticationError) or code in AUTH_CODES or status == 401:
        return ErrorKind.UPSTREAM_AUTH_FAILED

    if (
        isinstance(exc, openai.BadRequestError)
        or error_type == "invalid_request_error"
        or status == 400
    ):
        return ErrorKind.UPSTREAM_INVALID_REQUEST

    return ErrorKind.UPSTREAM_UNAVAILABLE


class GenerationClient:
    """Generate one image per prompt with the OpenAI images API.

    Args:
        api_key: OpenAI API key
        model: Image model name (``dall-e-2`` by default)
        size: Requested size, ``"<width>x<height>"``
        timeout: Optional request timeout in seconds; ``None`` keeps the SDK default
        client: Pre-built SDK client (tests inject a fake exposing ``images.generate``)
    """

    def __init__(
        self,
        api_key: str,
        *,
        model: str = "dall-e-2",
        size: str = "1024x1024",
        timeout: float | None = None,
        client: Any | None = None,
    ):
        self.api_key = api_key
        self.model = model
        self.size = size
        self.timeout = timeout
        self._client = client

    @property
    def credentials_missing(self) -> bool:
        return (self.api_key or "").strip() in PLACEHOLDER_API_KEYS

    @property
    def client(self) -> Any:
        """Lazily build the SDK client so a placeholder key never reaches it."""
        if self._client is None:
            kwargs: dict[str, Any] = {"api_key": self.api_key, "max_retries": 0}
            if self.timeout is not None:
                kwargs["timeout"] = self.timeout
            logger.info(f"Initializing OpenAI client for model {self.model}")
            self._client = OpenAI(**kwargs)
        return self._client

    def generate(self, prompt: str) -> GeneratedImage:
        """Generate a single image for ``prompt``.

        Args:
            prompt: Non-empty text prompt

        Returns:
            GeneratedImage holding the decoded image bytes

        Raises:
            DreamboardError: VALIDATION_FAILED for an empty prompt, otherwise one
                of the generation kinds described in the module docstring
        """
        if not prompt or not prompt.strip():
            raise DreamboardError(ErrorKind.VALIDATION_FAILED, "Please provide a prompt")

        if self.credentials_missing:
            logger.error("OpenAI API key is missing or still set to a placeholder")
            raise DreamboardError(
                ErrorKind.MISSING_CREDENTIALS, "Invalid OpenAI API key configuration"
            )

        logger.info(f"Generating image with {self.model} ({self.size})")
        try:
            response = self.client.images.generate(
                model=self.model,
                prompt=prompt,
                n=1,
                size=self.size,
                response_format="b64_json",
            )
        except openai.OpenAIError as exc:
            kind = classify_generation_error(exc)
            code, error_type, status, message = _upstream_fields(exc)
            logger.error(
                f"OpenAI API error: kind={kind.value} status={status} "
                f"type={error_type} code={code} message={message}"
            )
            raise DreamboardError(kind, message, error_type=error_type, code=code) from exc

        data = getattr(response, "data", None) or []
        b64_payload = getattr(data[0], "b64_json", None) if data else None
        if not b64_payload:
            logger.error("OpenAI response contained no image data")
            raise DreamboardError(
                ErrorKind.UPSTREAM_UNAVAILABLE, "No image data received from OpenAI"
            )

        try:
            image_bytes = base64.b64decode(b64_payload, validate=True)
        except (binascii.Error, ValueError) as exc:
            raise DreamboardError(
                ErrorKind.UPSTREAM_UNAVAILABLE, "OpenAI returned malformed image data"
            ) from exc

        if not image_bytes:
            raise DreamboardError(
                ErrorKind.UPSTREAM_UNAVAILABLE, "No image data received from OpenAI"
            )

        logger.info(f"Image generated successfully ({len(image_bytes)} bytes)")
        return GeneratedImage(
            data=image_bytes,
            prompt=prompt,
            model=self.model,
            revised_prompt=getattr(data[0], "revised_prompt", None),
        )
