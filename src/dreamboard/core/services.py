"""Process-wide service handles.

Every collaborator is constructed once, when the process starts, and passed
explicitly to the services that need it.  Tests build :class:`ServiceHandles`
directly from fakes instead of calling :func:`build_services`.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from dreamboard.core.artifact_store import ArtifactStore
from dreamboard.core.catalog_db import CatalogRepository
from dreamboard.core.catalog_query import CatalogQueryService
from dreamboard.core.config import DreamboardConfig
from dreamboard.core.generation import GenerationClient
from dreamboard.core.publishing import PublishingService

logger = logging.getLogger(__name__)


@dataclass
class ServiceHandles:
    publishing: PublishingService
    catalog: CatalogQueryService
    repository: CatalogRepository

    @classmethod
    def from_collaborators(
        cls,
        generator: GenerationClient,
        store: ArtifactStore,
        repository: CatalogRepository,
    ) -> ServiceHandles:
        return cls(
            publishing=PublishingService(generator, store, repository),
            catalog=CatalogQueryService(repository),
            repository=repository,
        )


def build_services(config: DreamboardConfig) -> ServiceHandles:
    """Construct all collaborators from configuration.

    The catalog schema is created here, so an unreachable database fails at
    startup rather than on the first request.

    Raises:
        DreamboardError: REPOSITORY_UNAVAILABLE if the schema cannot be created
    """
    generator = GenerationClient(
        config.openai_api_key,
        model=config.image_model,
        size=config.image_size,
        timeout=config.generation_timeout,
    )
    store = ArtifactStore(
        config.storage_bucket,
        access_key_id=config.storage_access_key_id,
        secret_access_key=config.storage_secret_access_key,
        region=config.storage_region,
        endpoint_url=config.storage_endpoint_url,
        public_base_url=config.storage_public_base_url,
        folder=config.storage_folder,
    )
    repository = CatalogRepository.from_url(config.database_url)
    repository.init_schema()

    logger.info("Service handles initialised")
    return ServiceHandles.from_collaborators(generator, store, repository)
