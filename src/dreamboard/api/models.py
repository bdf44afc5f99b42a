"""Pydantic request models for the Dreamboard API.

These models define the JSON schema for every API endpoint.  FastAPI uses
them for automatic request validation and OpenAPI documentation generation.

Text fields default to an empty string rather than being required: an absent
field and an empty one are the same input error, and both are reported by the
service layer as ``VALIDATION_FAILED`` (HTTP 400) with a readable message.

Models
------
GenerateRequest
    Payload for ``POST /generate``: a single prompt.
CreateCatalogEntryRequest
    Payload for ``POST /catalog``: share an already generated image.
PublishRequest
    Payload for ``POST /publish``: generate, upload and persist in one call.
"""

from __future__ import annotations

from pydantic import AliasChoices, BaseModel, Field


class GenerateRequest(BaseModel):
    """Request body for the ``POST /generate`` endpoint.

    Attributes:
        prompt: Text prompt sent to the image model.
    """

    prompt: str = Field(
        default="",
        description="Text prompt describing the image to generate.",
    )


class CreateCatalogEntryRequest(BaseModel):
    """Request body for the ``POST /catalog`` endpoint.

    Attributes:
        name: Display name of the author.
        prompt: Prompt that produced the image.
        image_url: Either an already hosted image URL or a base64 data URI.
            Accepted as ``imageUrl`` (or ``photo``, the field name used by
            older clients).
    """

    name: str = Field(default="", description="Display name shown on the gallery card.")
    prompt: str = Field(default="", description="Prompt that produced the image.")
    image_url: str = Field(
        default="",
        validation_alias=AliasChoices("imageUrl", "photo", "image_url"),
        description="Hosted image URL or base64 data URI.",
    )


class PublishRequest(BaseModel):
    """Request body for the ``POST /publish`` endpoint.

    Attributes:
        name: Display name of the author.
        prompt: Text prompt sent to the image model.
    """

    name: str = Field(default="", description="Display name shown on the gallery card.")
    prompt: str = Field(default="", description="Text prompt describing the image.")
