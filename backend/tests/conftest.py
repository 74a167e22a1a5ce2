"""Shared fixtures: an in-memory repository installed through the registry."""

from typing import Any, List, Mapping, Optional

import pytest
from bson import ObjectId

from mongosetup.data import Repository, RepositoryRegistry, User, set_registry
from mongosetup.data.repository import to_object_id, translate_filter, translate_sort


def _matches(document: Mapping[str, Any], filter: Mapping[str, Any]) -> bool:
    for key, value in filter.items():
        if key == "$and":
            if not all(_matches(document, sub) for sub in value):
                return False
        elif key.startswith("$"):
            raise NotImplementedError(f"Operator {key} not supported in memory")
        elif document.get(key) != value:
            return False
    return True


class InMemoryRepository(Repository):
    """Stores documents the way MongoRepository would, in a dict keyed by _id."""

    def __init__(self, entity_type: type):
        super().__init__(entity_type)
        self.documents: dict = {}
        self.lookups = 0
        self.upserts = 0
        self.deletes = 0

    def get_by_id(self, id: str):
        self.lookups += 1
        document = self.documents.get(to_object_id(id))
        return None if document is None else self.entity_type.from_document(document)

    def upsert(self, entity):
        self.upserts += 1
        if entity.id is None:
            entity.id = str(ObjectId())
        key = to_object_id(entity.id)
        self.documents[key] = {"_id": key, **entity.to_document()}
        return entity

    def delete(self, entity) -> None:
        self.deletes += 1
        self.documents.pop(to_object_id(entity.id), None)

    def find(self, filter: Optional[Mapping[str, Any]] = None, sort=None, skip: int = 0, limit: int = 0) -> List:
        translated = translate_filter(self.entity_type, filter)
        documents = [d for d in self.documents.values() if _matches(d, translated)]
        for key, direction in reversed(translate_sort(self.entity_type, sort)):
            documents.sort(key=lambda d: d.get(key), reverse=direction < 0)
        documents = documents[skip:]
        if limit:
            documents = documents[:limit]
        return [self.entity_type.from_document(d) for d in documents]

    def count(self, filter: Optional[Mapping[str, Any]] = None) -> int:
        return len(self.find(filter))

    def delete_all(self) -> None:
        self.documents.clear()


@pytest.fixture
def memory_registry() -> RepositoryRegistry:
    """Registry that builds in-memory repositories. Not installed."""
    return RepositoryRegistry(factory=InMemoryRepository)


@pytest.fixture
def registry(memory_registry):
    """In-memory registry installed as the process-wide registry."""
    previous = set_registry(memory_registry)
    yield memory_registry
    set_registry(previous)


@pytest.fixture
def users(registry) -> InMemoryRepository:
    return registry.get(User)


@pytest.fixture
def clean_env(monkeypatch, tmp_path):
    """Run from an empty directory with no mongosetup settings in the environment."""
    for name in [
        "CONNECTION_STRINGS",
        "CONNECTION_STRINGS__MONGOSERVERSETTINGS",
        "DEFAULT_DATABASE",
        "CONFIG_FILE",
        "LOGFIRE_TOKEN",
        "LOG_LEVEL",
    ]:
        monkeypatch.delenv(name, raising=False)
    monkeypatch.chdir(tmp_path)
    return tmp_path
