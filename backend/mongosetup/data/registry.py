"""Process-wide registry holding one repository per entity type."""

from __future__ import annotations

import logging
import threading
from typing import TYPE_CHECKING, Callable, Optional

from mongosetup.config import DEFAULT_CONNECTION_STRING_NAME, Settings, get_settings
from mongosetup.data.repository import MongoRepository, Repository
from mongosetup.database import get_database, sanitize_mongodb_url
from mongosetup.exceptions import ConfigurationError

if TYPE_CHECKING:
    from mongosetup.data.entity import BaseEntity

logger = logging.getLogger(__name__)

RepositoryFactory = Callable[[type], Repository]


def connection_string_name(entity_type: type[BaseEntity]) -> str:
    """Connection string key from the entity's Settings, or the default."""
    name = getattr(entity_type.Settings, "connection_string_name", None)
    if not name or not name.strip():
        return DEFAULT_CONNECTION_STRING_NAME
    return name


def collection_name(entity_type: type[BaseEntity]) -> str:
    """Collection name from the entity's Settings, or the class name."""
    return getattr(entity_type.Settings, "collection_name", None) or entity_type.__name__


def create_mongo_repository(
    entity_type: type[BaseEntity],
    settings: Optional[Settings] = None,
) -> MongoRepository:
    """
    Build the pymongo repository for an entity type.

    Raises:
        ConfigurationError: If the entity's connection string is missing
    """
    settings = settings or get_settings()
    name = connection_string_name(entity_type)
    url = settings.get_connection_string(name)
    if url is None:
        raise ConfigurationError(
            f"MongoDB connection string '{name}' is missing from configuration",
            connection_string_name=name,
        )

    database = get_database(url, settings.default_database, settings.server_selection_timeout_ms)
    collection = database[collection_name(entity_type)]
    logger.info(
        f"Created repository for {entity_type.__name__} "
        f"({sanitize_mongodb_url(url)} -> {database.name}.{collection.name})"
    )
    return MongoRepository(entity_type, collection)


class RepositoryRegistry:
    """
    Maps entity types to their repository handles.

    Handles are built lazily on first access and reused for the life of
    the registry. Concurrent first access builds exactly one handle.
    """

    def __init__(
        self,
        settings: Optional[Settings] = None,
        factory: Optional[RepositoryFactory] = None,
    ):
        self._settings = settings
        self._factory = factory
        self._repositories: dict[type, Repository] = {}
        self._lock = threading.Lock()

    def _create(self, entity_type: type) -> Repository:
        if self._factory is not None:
            return self._factory(entity_type)
        return create_mongo_repository(entity_type, self._settings)

    def get(self, entity_type: type) -> Repository:
        repository = self._repositories.get(entity_type)
        if repository is not None:
            return repository

        with self._lock:
            repository = self._repositories.get(entity_type)
            if repository is None:
                repository = self._create(entity_type)
                self._repositories[entity_type] = repository
        return repository

    def register(self, entity_type: type, repository: Repository) -> None:
        """Install a repository for an entity type, replacing any existing one."""
        with self._lock:
            self._repositories[entity_type] = repository

    def __contains__(self, entity_type: type) -> bool:
        return entity_type in self._repositories

    def clear(self) -> None:
        """Forget every cached repository."""
        with self._lock:
            self._repositories.clear()


_registry = RepositoryRegistry()


def get_registry() -> RepositoryRegistry:
    """Get the process-wide registry."""
    return _registry


def set_registry(registry: RepositoryRegistry) -> RepositoryRegistry:
    """Replace the process-wide registry and return the previous one."""
    global _registry
    previous = _registry
    _registry = registry
    return previous
