"""Dreamboard: FastAPI Application.

This module defines the FastAPI application factory, all REST API routes,
and the ``main()`` CLI function that launches the uvicorn server.

Architecture
------------
- **Service handles** (:class:`~dreamboard.core.services.ServiceHandles`) are
  built once at startup and stored on ``app.state.services``.  Tests pass
  their own handles to :func:`create_app`.
- **Errors** raised by the pipeline are :class:`DreamboardError` instances; a
  single exception handler turns their ``kind`` into an HTTP status and a
  ``{success: false, message, error}`` body.
- **Blocking I/O**: generation, upload and database calls are synchronous, so
  the routes that make them are plain ``def`` functions that FastAPI runs in
  its worker threadpool.

Endpoints
---------
========  ================  ==============================================
Method    Path              Purpose
========  ================  ==============================================
GET       ``/``             Liveness message
GET       ``/catalog``      Full catalog, newest first
POST      ``/catalog``      Add an already generated image to the catalog
GET       ``/generate``     Liveness message for the generator
POST      ``/generate``     Generate an image, returned as base64
POST      ``/publish``      Generate, upload and persist in one call
========  ================  ==============================================

Usage
-----
CLI (installed entry point)::

    dreamboard

Direct invocation::

    python -m dreamboard.api.main
"""

from __future__ import annotations

import base64
import logging
import sys
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import APIRouter, FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import ValidationError

from dreamboard import __version__
from dreamboard.api.models import CreateCatalogEntryRequest, GenerateRequest, PublishRequest
from dreamboard.core.config import load_config
from dreamboard.core.errors import DreamboardError, ErrorKind
from dreamboard.core.services import ServiceHandles, build_services

logger = logging.getLogger(__name__)

# Kinds whose own message is more useful to the client than the generic one.
PASS_THROUGH_MESSAGES = frozenset(
    {
        ErrorKind.VALIDATION_FAILED,
        ErrorKind.UPSTREAM_INVALID_REQUEST,
        ErrorKind.REPOSITORY_VALIDATION_FAILED,
    }
)

router = APIRouter()


def get_services(request: Request) -> ServiceHandles:
    return request.app.state.services


# ---------------------------------------------------------------------------
# Error handlers.
# ---------------------------------------------------------------------------


async def handle_dreamboard_error(request: Request, exc: DreamboardError) -> JSONResponse:
    """Render a classified pipeline failure.

    Server-side failures (5xx) also carry the structured upstream detail
    ``{message, type, code}`` under ``error``.
    """
    status_code = exc.status_code
    message = exc.message if exc.kind in PASS_THROUGH_MESSAGES and exc.message else exc.user_message
    body: dict = {"success": False, "message": message}
    if status_code >= 500:
        body["error"] = exc.to_detail()

    logger.error(
        f"{request.method} {request.url.path} failed: kind={exc.kind.value} "
        f"status={status_code} detail={exc.message}"
    )
    return JSONResponse(status_code=status_code, content=body)


async def handle_request_validation_error(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    """Report malformed request bodies as 400 in the usual response shape."""
    problems = [
        f"{'.'.join(str(part) for part in error.get('loc', ()) if part != 'body')}: {error.get('msg')}"
        for error in exc.errors()
    ]
    message = "Invalid request body" + (f" ({'; '.join(problems)})" if problems else "")
    return JSONResponse(status_code=400, content={"success": False, "message": message})


# ---------------------------------------------------------------------------
# Routes.
# ---------------------------------------------------------------------------


@router.get("/")
async def index() -> dict:
    return {"message": "Hello from Dreamboard!"}


@router.get("/catalog")
def list_catalog(request: Request) -> dict:
    """Return every catalog entry, most recently created first.

    Returns:
        Dictionary with ``success`` and ``data`` (list of entries).

    Raises:
        DreamboardError: REPOSITORY_UNAVAILABLE (rendered as 500).
    """
    entries = get_services(request).catalog.list_all()
    return {"success": True, "data": [entry.to_dict() for entry in entries]}


@router.post("/catalog", status_code=201)
def create_catalog_entry(req: CreateCatalogEntryRequest, request: Request) -> dict:
    """Add an already generated image to the catalog.

    A base64 data URI in ``imageUrl`` is uploaded to object storage first; an
    ``http(s)`` URL is stored as-is.

    Returns:
        Dictionary with ``success`` and ``data`` (the created entry).

    Raises:
        DreamboardError: 400 for missing fields or an invalid image payload,
            401 for rejected storage credentials, 500 otherwise.
    """
    logger.info(f"Creating catalog entry for '{req.name}'")
    entry = get_services(request).publishing.share(req.name, req.prompt, req.image_url)
    return {"success": True, "data": entry.to_dict()}


@router.get("/generate")
async def generate_hello() -> dict:
    return {"message": "Hello from the image generator!"}


@router.post("/generate")
def generate_image(req: GenerateRequest, request: Request) -> dict:
    """Generate a single image for a prompt.

    Returns:
        Dictionary with ``success`` and ``photo`` (base64-encoded image).

    Raises:
        DreamboardError: 400 for a missing/invalid prompt or exhausted billing,
            401 for invalid credentials, 429 when rate limited, 500 otherwise.
    """
    logger.info(f"Received prompt: {req.prompt!r}")
    image = get_services(request).publishing.generate(req.prompt)
    return {"success": True, "photo": base64.b64encode(image.data).decode("ascii")}


@router.post("/publish", status_code=201)
def publish_image(req: PublishRequest, request: Request) -> dict:
    """Generate an image, upload it and record it in the catalog.

    Returns:
        Dictionary with ``success`` and ``data`` (the created entry).
    """
    entry = get_services(request).publishing.publish(req.name, req.prompt)
    return {"success": True, "data": entry.to_dict()}


# ---------------------------------------------------------------------------
# Application factory.
# ---------------------------------------------------------------------------


def create_app(services: ServiceHandles | None = None) -> FastAPI:
    """Build the FastAPI application.

    Args:
        services: Pre-built service handles.  When omitted, configuration is
            loaded from the environment and the handles are built during
            startup; a missing required setting aborts startup.

    Returns:
        Configured FastAPI application.
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        # --- Startup -------------------------------------------------------
        if services is None:
            app.state.services = build_services(load_config())
        else:
            app.state.services = services
        logger.info("Dreamboard services ready.")

        yield  # Application runs here.

        # --- Shutdown ------------------------------------------------------
        app.state.services.repository.engine.dispose()
        logger.info("Catalog engine disposed on shutdown.")

    app = FastAPI(
        title="Dreamboard",
        description="Prompt-to-image generation with a shared community gallery.",
        version=__version__,
        lifespan=lifespan,
    )

    # The browser client is served from a different origin during development.
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.add_exception_handler(DreamboardError, handle_dreamboard_error)
    app.add_exception_handler(RequestValidationError, handle_request_validation_error)
    app.include_router(router)
    return app


app = create_app()


# ---------------------------------------------------------------------------
# CLI entry point.
# ---------------------------------------------------------------------------


def main() -> None:
    """Validate configuration, build services and launch the uvicorn server.

    Missing or invalid configuration is fatal: the error is logged and the
    process exits with status 1 before the server starts.

    This function is registered as the ``dreamboard`` console script in
    ``pyproject.toml``.
    """
    import uvicorn

    try:
        config = load_config()
    except ValidationError as exc:
        logging.basicConfig(level=logging.ERROR)
        logger.critical(f"Invalid or missing configuration:\n{exc}")
        sys.exit(1)

    logging.basicConfig(
        level=config.log_level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    try:
        services = build_services(config)
    except DreamboardError as exc:
        logger.critical(f"Failed to start: {exc.message}")
        sys.exit(1)

    logger.info(f"Server starting on http://{config.server_host}:{config.server_port}")
    logger.info("API endpoints:")
    logger.info("- POST /generate - Generate images")
    logger.info("- POST /publish - Generate and publish to the gallery")
    logger.info("- GET/POST /catalog - Browse and share gallery entries")

    uvicorn.run(
        create_app(services),
        host=config.server_host,
        port=config.server_port,
    )


if __name__ == "__main__":
    main()
