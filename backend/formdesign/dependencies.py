"""
FastAPI dependency injection setup.

Provides factory functions for service instances used across routes.
"""

from functools import lru_cache

from formdesign.clients.http_client import PersistenceClient, RemoteClient
from formdesign.config import get_settings
from formdesign.services.builder import BuilderService
from formdesign.services.layout import LayoutService
from formdesign.services.options import OptionsFetcher
from formdesign.services.repository import DesignRepository
from formdesign.services.resolver import DependencyResolver
from formdesign.services.submission import ValueValidator


@lru_cache
def get_repository() -> DesignRepository:
    """Get cached design repository instance."""
    return DesignRepository(get_settings().designs_dir)


@lru_cache
def get_remote_client() -> RemoteClient:
    """Get the shared HTTP client for remote calls."""
    return RemoteClient(timeout=get_settings().http_timeout_seconds)


@lru_cache
def get_options_fetcher() -> OptionsFetcher:
    """Get cached option fetcher; its cache lives as long as the process."""
    return OptionsFetcher(
        get_remote_client(),
        ttl_seconds=get_settings().options_cache_ttl_seconds,
    )


@lru_cache
def get_resolver() -> DependencyResolver:
    return DependencyResolver(get_options_fetcher())


@lru_cache
def get_builder() -> BuilderService:
    return BuilderService(get_resolver())


@lru_cache
def get_layout_service() -> LayoutService:
    return LayoutService(max_height=get_settings().max_screen_height)


@lru_cache
def get_value_validator() -> ValueValidator:
    return ValueValidator(get_resolver())


@lru_cache
def get_persistence() -> PersistenceClient:
    """Get the client navigation buttons persist through."""
    return PersistenceClient(get_remote_client())
