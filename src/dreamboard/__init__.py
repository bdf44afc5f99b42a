"""Dreamboard - prompt-to-image generation with a searchable community gallery."""

__version__ = "0.1.0"

from dreamboard.core.config import DreamboardConfig, load_config
from dreamboard.core.errors import DreamboardError, ErrorKind
from dreamboard.core.models import CatalogEntry

__all__ = [
    "CatalogEntry",
    "DreamboardConfig",
    "DreamboardError",
    "ErrorKind",
    "load_config",
]
