from __future__ import annotations

from dataclasses import dataclass

from sqlalchemy.orm import Session

from resuopti.config import Settings, get_settings
from resuopti.core.cache import LRUCache
from resuopti.core.clock import Clock, SystemClock
from resuopti.db.repositories import Repository
from resuopti.services.applications import ApplicationService
from resuopti.services.credentials import CredentialService
from resuopti.services.metadata import MetadataService
from resuopti.services.positions import PositionService
from resuopti.services.resumes import ResumeService
from resuopti.storage import LocalBlobStore


@dataclass
class Services:
    repo: Repository
    cache: LRUCache
    credentials: CredentialService
    positions: PositionService
    resumes: ResumeService
    metadata: MetadataService
    applications: ApplicationService


def build_services(
    session: Session,
    *,
    cache: LRUCache | None = None,
    clock: Clock | None = None,
    blob_store: LocalBlobStore | None = None,
    settings: Settings | None = None,
) -> Services:
    """Wire every service around one session and one shared cache."""
    settings = settings or get_settings()
    if cache is None:
        cache = LRUCache(max_entries=settings.cache_max_entries, default_ttl=settings.cache_ttl_sec)
    clock = clock or SystemClock(settings.timezone)
    blob_store = blob_store or LocalBlobStore(settings=settings)

    repo = Repository(session)
    metadata = MetadataService(repo, cache=cache, settings=settings)
    return Services(
        repo=repo,
        cache=cache,
        credentials=CredentialService(repo, cache=cache, settings=settings),
        positions=PositionService(repo, blob_store=blob_store),
        resumes=ResumeService(
            repo,
            cache=cache,
            blob_store=blob_store,
            metadata_service=metadata,
            settings=settings,
        ),
        metadata=metadata,
        applications=ApplicationService(repo, cache=cache, clock=clock, settings=settings),
    )
