"""Dreamboard: FastAPI REST API layer.

This package contains the FastAPI application and its Pydantic request models.

Modules
-------
main
    Application factory, route handlers, error handlers and the ``main()``
    CLI entry point.
models
    Pydantic models for API request validation.
"""
