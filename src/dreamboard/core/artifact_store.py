"""Artifact upload to S3-compatible object storage.

Every artifact is written under one fixed key prefix (``storage_folder``) so
all images produced by Dreamboard can be found in a single namespace.  The URL
returned by :meth:`ArtifactStore.upload` is derived only from the bucket
configuration and the object key, which makes it stable for the lifetime of
the object.

Before any network call the payload is opened with Pillow.  Bytes that are not
a PNG, JPEG, WebP or GIF image are rejected as ``STORAGE_REJECTED_PAYLOAD``;
the detected format also selects the object's extension and Content-Type.
"""

from __future__ import annotations

import base64
import binascii
import logging
import uuid
from io import BytesIO
from typing import Any

import boto3
from botocore.exceptions import (
    BotoCoreError,
    ClientError,
    NoCredentialsError,
    PartialCredentialsError,
)
from PIL import Image

from dreamboard.core.errors import DreamboardError, ErrorKind

logger = logging.getLogger(__name__)

# Pillow format name -> (content type, file extension)
SUPPORTED_FORMATS: dict[str, tuple[str, str]] = {
    "PNG": ("image/png", "png"),
    "JPEG": ("image/jpeg", "jpg"),
    "WEBP": ("image/webp", "webp"),
    "GIF": ("image/gif", "gif"),
}

AUTH_ERROR_CODES = frozenset(
    {
        "InvalidAccessKeyId",
        "SignatureDoesNotMatch",
        "AccessDenied",
        "ExpiredToken",
        "InvalidToken",
    }
)
PAYLOAD_ERROR_CODES = frozenset(
    {"InvalidArgument", "EntityTooLarge", "BadDigest", "InvalidDigest", "InvalidRequest"}
)


def classify_storage_error(exc: BaseException) -> ErrorKind:
    """Map a storage failure onto the error taxonomy.

    Args:
        exc: Exception raised by boto3/botocore

    Returns:
        STORAGE_AUTH_FAILED, STORAGE_REJECTED_PAYLOAD or STORAGE_UNAVAILABLE
    """
    if isinstance(exc, DreamboardError):
        return exc.kind

    if isinstance(exc, (NoCredentialsError, PartialCredentialsError)):
        return ErrorKind.STORAGE_AUTH_FAILED

    if isinstance(exc, ClientError):
        error = exc.response.get("Error", {})
        code = error.get("Code")
        status = exc.response.get("ResponseMetadata", {}).get("HTTPStatusCode")

        if code in AUTH_ERROR_CODES or status in (401, 403):
            return ErrorKind.STORAGE_AUTH_FAILED
        if code in PAYLOAD_ERROR_CODES or status == 400:
            return ErrorKind.STORAGE_REJECTED_PAYLOAD

    return ErrorKind.STORAGE_UNAVAILABLE


def detect_image_format(image_bytes: bytes) -> tuple[str, str]:
    """Identify the image format of ``image_bytes``.

    Args:
        image_bytes: Raw image payload

    Returns:
        Tuple of ``(content_type, extension)``

    Raises:
        DreamboardError: STORAGE_REJECTED_PAYLOAD if the bytes are empty, not an
            image, or an unsupported format
    """
    if not image_bytes:
        raise DreamboardError(ErrorKind.STORAGE_REJECTED_PAYLOAD, "Image payload is empty")

    try:
        with Image.open(BytesIO(image_bytes)) as image:
            image_format = image.format
            image.verify()
    except (OSError, SyntaxError, ValueError, Image.DecompressionBombError) as exc:
        raise DreamboardError(
            ErrorKind.STORAGE_REJECTED_PAYLOAD, f"Invalid image data: {exc}"
        ) from exc

    if image_format not in SUPPORTED_FORMATS:
        raise DreamboardError(
            ErrorKind.STORAGE_REJECTED_PAYLOAD, f"Unsupported image format: {image_format}"
        )

    return SUPPORTED_FORMATS[image_format]


def decode_image_payload(payload: str) -> bytes:
    """Decode a ``data:image/...;base64,`` URI or a bare base64 string.

    Raises:
        DreamboardError: STORAGE_REJECTED_PAYLOAD if the payload is not valid base64
    """
    encoded = payload.strip()
    if encoded.startswith("data:"):
        header, _, encoded = encoded.partition(",")
        if ";base64" not in header:
            raise DreamboardError(
                ErrorKind.STORAGE_REJECTED_PAYLOAD, "Only base64 data URIs are supported"
            )

    try:
        decoded = base64.b64decode(encoded, validate=True)
    except (binascii.Error, ValueError) as exc:
        raise DreamboardError(
            ErrorKind.STORAGE_REJECTED_PAYLOAD, "Image payload is not valid base64"
        ) from exc

    if not decoded:
        raise DreamboardError(ErrorKind.STORAGE_REJECTED_PAYLOAD, "Image payload is empty")
    return decoded


class ArtifactStore:
    """Upload image bytes to a bucket and return their public URL.

    Args:
        bucket: Target bucket name
        access_key_id: Access key id
        secret_access_key: Secret access key
        region: Bucket region
        endpoint_url: Custom endpoint for S3-compatible stores
        public_base_url: Public base URL that replaces the computed bucket URL
        folder: Key prefix shared by every artifact
        client: Pre-built boto3 S3 client (tests inject a mock)
    """

    def __init__(
        self,
        bucket: str,
        *,
        access_key_id: str | None = None,
        secret_access_key: str | None = None,
        region: str = "us-east-1",
        endpoint_url: str | None = None,
        public_base_url: str | None = None,
        folder: str = "dreamboard",
        client: Any | None = None,
    ):
        self.bucket = bucket
        self.access_key_id = access_key_id
        self.secret_access_key = secret_access_key
        self.region = region
        self.endpoint_url = endpoint_url.rstrip("/") if endpoint_url else None
        self.public_base_url = public_base_url.rstrip("/") if public_base_url else None
        self.folder = folder.strip("/")
        self._client = client

    @property
    def client(self) -> Any:
        if self._client is None:
            s3_kwargs: dict[str, Any] = {"region_name": self.region}
            if self.endpoint_url:
                s3_kwargs["endpoint_url"] = self.endpoint_url
            if self.access_key_id and self.secret_access_key:
                s3_kwargs["aws_access_key_id"] = self.access_key_id
                s3_kwargs["aws_secret_access_key"] = self.secret_access_key
            logger.debug(f"Creating S3 client for bucket: {self.bucket}")
            self._client = boto3.client("s3", **s3_kwargs)
        return self._client

    def object_key(self, extension: str) -> str:
        return f"{self.folder}/{uuid.uuid4().hex}.{extension}"

    def public_url(self, key: str) -> str:
        """Return the stable public URL for an object key."""
        if self.public_base_url:
            return f"{self.public_base_url}/{key}"
        if self.endpoint_url:
            return f"{self.endpoint_url}/{self.bucket}/{key}"
        return f"https://{self.bucket}.s3.{self.region}.amazonaws.com/{key}"

    def upload(self, image_bytes: bytes) -> str:
        """Upload an image and return its public URL.

        Args:
            image_bytes: Non-empty raw image bytes

        Returns:
            Public URL of the stored artifact

        Raises:
            DreamboardError: STORAGE_REJECTED_PAYLOAD, STORAGE_AUTH_FAILED or
                STORAGE_UNAVAILABLE
        """
        content_type, extension = detect_image_format(image_bytes)
        key = self.object_key(extension)

        logger.info(f"Uploading artifact to s3://{self.bucket}/{key} ({len(image_bytes)} bytes)")
        try:
            self.client.put_object(
                Bucket=self.bucket,
                Key=key,
                Body=image_bytes,
                ContentType=content_type,
            )
        except (BotoCoreError, ClientError) as exc:
            kind = classify_storage_error(exc)
            logger.error(f"Storage upload error: kind={kind.value} error={exc}")
            raise DreamboardError(kind, f"Storage upload failed: {exc}") from exc

        url = self.public_url(key)
        logger.info(f"Artifact uploaded successfully to: {url}")
        return url
