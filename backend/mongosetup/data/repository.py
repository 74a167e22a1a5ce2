"""
Repository interface and pymongo implementation.

Methods every repository provides:
- get_by_id(id) -> Optional[T]: Find single entity
- upsert(entity) -> T: Insert or replace by identity, assigning an id if needed
- delete(entity): Delete by identity
- find(filter, sort, skip, limit) -> List[T]
- count(filter) -> int
- exists(filter) -> bool
- delete_all()

Filters are MongoDB query documents. Keys may be entity field names or
stored element names; field names are translated before the query runs.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Any, Generic, Iterator, List, Mapping, Optional, Sequence, Tuple, TypeVar

from bson import ObjectId
from pymongo import ASCENDING, DESCENDING
from pymongo.collection import Collection

if TYPE_CHECKING:
    from mongosetup.data.entity import BaseEntity

logger = logging.getLogger(__name__)

T = TypeVar("T", bound="BaseEntity")

SortSpec = Sequence[Tuple[str, int]]


def to_object_id(value: Any) -> Any:
    """Return an ObjectId for 24-hex strings, otherwise the value unchanged."""
    if isinstance(value, str) and ObjectId.is_valid(value):
        return ObjectId(value)
    return value


# Operators whose operands are _id values; $regex, $exists, $type etc. keep theirs
ID_OPERATORS = frozenset({"$eq", "$ne", "$in", "$nin", "$gt", "$gte", "$lt", "$lte"})


def _translate_id(value: Any) -> Any:
    if not isinstance(value, dict):
        return to_object_id(value)

    translated = {}
    for op, operand in value.items():
        if op not in ID_OPERATORS:
            translated[op] = operand
        elif isinstance(operand, list):
            translated[op] = [to_object_id(v) for v in operand]
        else:
            translated[op] = to_object_id(operand)
    return translated


def translate_filter(entity_type: type[BaseEntity], filter: Optional[Mapping[str, Any]]) -> dict:
    """Rewrite field names to stored element names and id strings to ObjectIds."""
    if not filter:
        return {}

    names = entity_type.stored_names()
    translated: dict = {}
    for key, value in filter.items():
        if key.startswith("$"):
            if isinstance(value, list):
                value = [translate_filter(entity_type, v) if isinstance(v, Mapping) else v for v in value]
            translated[key] = value
            continue

        stored = names.get(key, key)
        translated[stored] = _translate_id(value) if stored == "_id" else value
    return translated


def translate_sort(entity_type: type[BaseEntity], sort: Optional[SortSpec]) -> list:
    """Rewrite sort keys to stored element names."""
    if not sort:
        return []
    names = entity_type.stored_names()
    return [(names.get(key, key), direction) for key, direction in sort]


class Query(Generic[T]):
    """
    Lazily-evaluated, composable query over one repository.

    Every builder method returns a new Query; nothing touches the
    database until the query is iterated or a terminal method runs.
    """

    def __init__(
        self,
        source: Repository[T],
        filter: Optional[Mapping[str, Any]] = None,
        sort: SortSpec = (),
        skip: int = 0,
        limit: int = 0,
    ):
        self._source = source
        self._filter = dict(filter or {})
        self._sort = tuple(sort)
        self._skip = skip
        self._limit = limit

    def _copy(self, **changes: Any) -> Query[T]:
        params = {
            "filter": self._filter,
            "sort": self._sort,
            "skip": self._skip,
            "limit": self._limit,
        }
        params.update(changes)
        return Query(self._source, **params)

    @property
    def filter(self) -> dict:
        return dict(self._filter)

    def where(self, filter: Optional[Mapping[str, Any]] = None, **fields: Any) -> Query[T]:
        """Narrow the query. Conditions combine with AND."""
        extra = dict(filter or {})
        extra.update(fields)
        if not extra:
            return self
        if not self._filter:
            return self._copy(filter=extra)
        return self._copy(filter={"$and": [self._filter, extra]})

    def order_by(self, field: str, descending: bool = False) -> Query[T]:
        direction = DESCENDING if descending else ASCENDING
        return self._copy(sort=self._sort + ((field, direction),))

    def skip(self, count: int) -> Query[T]:
        return self._copy(skip=count)

    def limit(self, count: int) -> Query[T]:
        return self._copy(limit=count)

    def to_list(self) -> List[T]:
        return self._source.find(self._filter, sort=self._sort, skip=self._skip, limit=self._limit)

    def first(self) -> Optional[T]:
        results = self._source.find(self._filter, sort=self._sort, skip=self._skip, limit=1)
        return results[0] if results else None

    def count(self) -> int:
        return self._source.count(self._filter)

    def exists(self) -> bool:
        return self._source.exists(self._filter)

    def __iter__(self) -> Iterator[T]:
        return iter(self.to_list())


class Repository(ABC, Generic[T]):
    """
    Base repository interface for one entity type.

    Abstracts data access so the entity layer can run against MongoDB
    or an in-memory stand-in.
    """

    def __init__(self, entity_type: type[T]):
        self.entity_type = entity_type

    @abstractmethod
    def get_by_id(self, id: str) -> Optional[T]:
        """Get entity by ID."""
        pass

    @abstractmethod
    def upsert(self, entity: T) -> T:
        """Insert or replace entity by ID, assigning a new ID when missing."""
        pass

    @abstractmethod
    def delete(self, entity: T) -> None:
        """Delete entity by ID."""
        pass

    @abstractmethod
    def find(
        self,
        filter: Optional[Mapping[str, Any]] = None,
        sort: Optional[SortSpec] = None,
        skip: int = 0,
        limit: int = 0,
    ) -> List[T]:
        """Find entities matching a filter."""
        pass

    @abstractmethod
    def count(self, filter: Optional[Mapping[str, Any]] = None) -> int:
        """Count entities matching a filter."""
        pass

    @abstractmethod
    def delete_all(self) -> None:
        """Delete every entity in the collection."""
        pass

    def exists(self, filter: Mapping[str, Any]) -> bool:
        """Check if any entity matches the filter."""
        return bool(self.find(filter, limit=1))

    def as_queryable(self) -> Query[T]:
        return Query(self)


class MongoRepository(Repository[T]):
    """
    Repository backed by a pymongo collection.
    """

    def __init__(self, entity_type: type[T], collection: Collection):
        super().__init__(entity_type)
        self.collection = collection

    def get_by_id(self, id: str) -> Optional[T]:
        document = self.collection.find_one({"_id": to_object_id(id)})
        if document is None:
            return None
        return self.entity_type.from_document(document)

    def upsert(self, entity: T) -> T:
        if entity.id is None:
            entity.id = str(ObjectId())
        self.collection.replace_one(
            {"_id": to_object_id(entity.id)},
            entity.to_document(),
            upsert=True,
        )
        logger.debug(f"Upserted {self.collection.name} {entity.id}")
        return entity

    def delete(self, entity: T) -> None:
        if entity.id is None:
            return
        self.collection.delete_one({"_id": to_object_id(entity.id)})
        logger.debug(f"Deleted {self.collection.name} {entity.id}")

    def find(
        self,
        filter: Optional[Mapping[str, Any]] = None,
        sort: Optional[SortSpec] = None,
        skip: int = 0,
        limit: int = 0,
    ) -> List[T]:
        cursor = self.collection.find(
            translate_filter(self.entity_type, filter),
            sort=translate_sort(self.entity_type, sort) or None,
            skip=skip,
            limit=limit,
        )
        return [self.entity_type.from_document(document) for document in cursor]

    def count(self, filter: Optional[Mapping[str, Any]] = None) -> int:
        return self.collection.count_documents(translate_filter(self.entity_type, filter))

    def exists(self, filter: Mapping[str, Any]) -> bool:
        document = self.collection.find_one(
            translate_filter(self.entity_type, filter),
            projection={"_id": 1},
        )
        return document is not None

    def delete_all(self) -> None:
        result = self.collection.delete_many({})
        logger.info(f"Deleted {result.deleted_count} documents from {self.collection.name}")
