"""Core publishing pipeline for Dreamboard.

This package holds everything between an incoming prompt and a persisted
gallery entry:

- **GenerationClient** (generation.py): wraps the OpenAI images endpoint and
  classifies its failures.
- **ArtifactStore** (artifact_store.py): uploads image bytes to S3-compatible
  object storage under a single folder prefix and returns a public URL.
- **CatalogRepository** (catalog_db.py): SQLAlchemy-backed create/list of
  catalog entries.
- **PublishingService** (publishing.py): the generate → upload → persist
  state machine.
- **CatalogQueryService** (catalog_query.py): newest-first listing for the
  gallery.

Architecture Overview
---------------------
1. **Configuration Layer** (config.py):
   - Environment-based configuration using Pydantic Settings
   - All settings prefixed with DREAMBOARD_ in .env files
   - Required credentials are validated once, at startup

2. **Collaborator Layer** (generation.py, artifact_store.py, catalog_db.py):
   - Each wraps exactly one external service
   - Each owns a single classification function that maps raw upstream
     failures onto :class:`~dreamboard.core.errors.ErrorKind`

3. **Service Layer** (publishing.py, catalog_query.py):
   - Sequencing and presentation order only, no SDK calls

4. **Wiring** (services.py):
   - ``build_services()`` constructs every handle once per process so the
     HTTP layer and tests can inject substitutes
"""

from dreamboard.core.config import DreamboardConfig, load_config
from dreamboard.core.errors import DreamboardError, ErrorKind
from dreamboard.core.models import CatalogEntry, GeneratedImage, NewCatalogEntry

__all__ = [
    "CatalogEntry",
    "DreamboardConfig",
    "DreamboardError",
    "ErrorKind",
    "GeneratedImage",
    "NewCatalogEntry",
    "load_config",
]
