"""Entity layer for mongosetup - pydantic documents over pymongo repositories.

This package provides:
- BaseEntity with save/delete lifecycle events and per-type repository access
- Repository interface, pymongo implementation and composable Query
- RepositoryRegistry holding one repository per entity type
- User, the seeded document type
"""

from .entity import (
    BaseEntity,
    CancelableEntityEventArgs,
    EntityEvent,
    EntityEventArgs,
)
from .registry import (
    RepositoryRegistry,
    create_mongo_repository,
    get_registry,
    set_registry,
)
from .repository import MongoRepository, Query, Repository
from .user import User

__all__ = [
    # Entities
    "BaseEntity",
    "User",
    # Events
    "EntityEvent",
    "EntityEventArgs",
    "CancelableEntityEventArgs",
    # Repositories
    "Repository",
    "MongoRepository",
    "Query",
    "RepositoryRegistry",
    "create_mongo_repository",
    "get_registry",
    "set_registry",
]
