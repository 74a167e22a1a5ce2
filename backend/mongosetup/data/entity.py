"""
Base entity for all persisted document types.

This module provides:
- BaseEntity: pydantic model with save/delete lifecycle and per-type repository access
- EntityEvent: synchronous multicast event used for the lifecycle notifications
- EntityEventArgs / CancelableEntityEventArgs: arguments passed to handlers
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Callable, ClassVar, Generic, List, Mapping, Optional, TypeVar

from pydantic import BaseModel, ConfigDict, Field, PrivateAttr, field_validator

from mongosetup.data.registry import get_registry
from mongosetup.data.repository import Query, Repository
from mongosetup.exceptions import OperationCanceledError

logger = logging.getLogger(__name__)

TEntity = TypeVar("TEntity", bound="BaseEntity")
TRef = TypeVar("TRef", bound="BaseEntity")


@dataclass
class EntityEventArgs(Generic[TEntity]):
    """Passed to handlers after an entity event occurred."""

    entity: TEntity


@dataclass
class CancelableEntityEventArgs(EntityEventArgs[TEntity]):
    """Passed to handlers before an entity event occurs. Set canceled to veto it."""

    canceled: bool = False


EventHandler = Callable[[Any, EntityEventArgs], Optional[bool]]


class EntityEvent:
    """
    Ordered list of handlers called synchronously with (sender, args).

    A handler returning False cancels a cancelable event, the same as
    setting args.canceled. Every handler runs either way.
    """

    def __init__(self) -> None:
        self._handlers: List[EventHandler] = []

    def subscribe(self, handler: EventHandler) -> EventHandler:
        """Add a handler. Returns it, so this works as a decorator."""
        self._handlers.append(handler)
        return handler

    def unsubscribe(self, handler: EventHandler) -> None:
        self._handlers.remove(handler)

    def fire(self, sender: Any, args: EntityEventArgs) -> None:
        for handler in list(self._handlers):
            result = handler(sender, args)
            if result is False and isinstance(args, CancelableEntityEventArgs):
                args.canceled = True

    def __len__(self) -> int:
        return len(self._handlers)


class BaseEntity(BaseModel):
    """
    Base class for all persisted entity types.

    Subclasses declare their fields and may add an inner Settings class:

        class Settings:
            connection_string_name = "ReportingDb"
            collection_name = "reports"

    Both default to the MongoServerSettings connection string and the
    class name.
    """

    class Settings:
        connection_string_name = None
        collection_name = None

    # Fields whose stored element is dropped when the value is None
    omit_if_none: ClassVar[frozenset[str]] = frozenset()

    model_config = ConfigDict(populate_by_name=True, extra="ignore", validate_assignment=True)

    id: Optional[str] = Field(default=None, alias="_id")

    @field_validator("id")
    @classmethod
    def normalize_id(cls, v: Optional[str]) -> Optional[str]:
        """Ids are case-insensitive; keep them lowercase so lookups match."""
        return v.lower() if v is not None else v

    _refs: dict[str, Any] = PrivateAttr(default_factory=dict)
    _saving: EntityEvent = PrivateAttr(default_factory=EntityEvent)
    _saved: EntityEvent = PrivateAttr(default_factory=EntityEvent)
    _deleting: EntityEvent = PrivateAttr(default_factory=EntityEvent)
    _deleted: EntityEvent = PrivateAttr(default_factory=EntityEvent)

    # ========================================================================
    # Events
    # ========================================================================

    @property
    def saving(self) -> EntityEvent:
        """Fired before save with CancelableEntityEventArgs. Useful for validation."""
        return self._saving

    @property
    def saved(self) -> EntityEvent:
        """Fired after save with the saved entity."""
        return self._saved

    @property
    def deleting(self) -> EntityEvent:
        """Fired before delete with CancelableEntityEventArgs."""
        return self._deleting

    @property
    def deleted(self) -> EntityEvent:
        """Fired after delete with the deleted entity."""
        return self._deleted

    def on_saving(self) -> bool:
        """Called before saving. Returns whether the save should proceed."""
        args = CancelableEntityEventArgs(self)
        self._saving.fire(self, args)
        return not args.canceled

    def on_saved(self) -> None:
        self._saved.fire(self, EntityEventArgs(self))

    def on_deleting(self) -> bool:
        """Called before deleting. Returns whether the delete should proceed."""
        args = CancelableEntityEventArgs(self)
        self._deleting.fire(self, args)
        return not args.canceled

    def on_deleted(self) -> None:
        self._deleted.fire(self, EntityEventArgs(self))

    # ========================================================================
    # Lifecycle
    # ========================================================================

    def save(self: TEntity) -> TEntity:
        """
        Upsert this entity, setting its id if it did not exist yet.

        Raises:
            OperationCanceledError: If a saving handler canceled the save
        """
        if not self.on_saving():
            logger.info(f"Save of {type(self).__name__} {self.id} canceled")
            raise OperationCanceledError(self, "save")

        updated = type(self).repository().upsert(self)
        self.on_saved()
        return updated

    def delete(self) -> None:
        """
        Delete this entity.

        Raises:
            OperationCanceledError: If a deleting handler canceled the delete
        """
        if not self.on_deleting():
            logger.info(f"Delete of {type(self).__name__} {self.id} canceled")
            raise OperationCanceledError(self, "delete")

        type(self).repository().delete(self)
        self.on_deleted()

    # ========================================================================
    # References
    # ========================================================================

    def get_reference(self, ref_type: type[TRef], ref_id: Optional[str]) -> Optional[TRef]:
        """
        Resolve a referenced entity by id, reusing the cached instance when it matches.

        Returns None when ref_id is empty or nothing is found.
        """
        key = ref_type.__name__
        existing = self._refs.get(key)
        if not isinstance(existing, ref_type):
            existing = None

        if ref_id is None or not ref_id.strip():
            existing = None
        elif existing is None or existing.id != ref_id.lower():
            existing = ref_type.get_by_id(ref_id)

        self._refs[key] = existing
        return existing

    def set_reference(self, ref_type: type[TRef], value: Optional[TRef]) -> Optional[str]:
        """Cache a referenced entity and return its id for the owning field."""
        if value is None:
            return None

        self._refs[ref_type.__name__] = value
        return value.id

    # ========================================================================
    # Serialization
    # ========================================================================

    @classmethod
    def stored_names(cls) -> dict[str, str]:
        """Map of field name to stored element name."""
        return {name: field.alias or name for name, field in cls.model_fields.items()}

    def to_document(self) -> dict:
        """Stored document without _id."""
        document = self.model_dump(by_alias=True, exclude={"id"})
        names = self.stored_names()
        for name in self.omit_if_none:
            if getattr(self, name) is None:
                document.pop(names[name], None)
        return document

    @classmethod
    def from_document(cls: type[TEntity], document: Mapping[str, Any]) -> TEntity:
        data = dict(document)
        if data.get("_id") is not None:
            data["_id"] = str(data["_id"])
        return cls.model_validate(data)

    # ========================================================================
    # Repository
    # ========================================================================

    @classmethod
    def repository(cls: type[TEntity]) -> Repository[TEntity]:
        """Get the repository for this entity type."""
        return get_registry().get(cls)

    @classmethod
    def get_by_id(cls: type[TEntity], id: Optional[str]) -> Optional[TEntity]:
        """Get the entity by its id, or None for a blank id or no match."""
        if id is None or not id.strip():
            return None

        return cls.repository().get_by_id(id.lower())

    @classmethod
    def as_queryable(cls: type[TEntity]) -> Query[TEntity]:
        """Composable query over this entity type's collection."""
        return cls.repository().as_queryable()

    @classmethod
    def count(cls) -> int:
        return cls.repository().count()

    @classmethod
    def exists(cls, predicate: Mapping[str, Any]) -> bool:
        """Check if an entity matching the filter document exists."""
        return cls.repository().exists(predicate)

    @classmethod
    def delete_by_id(cls, id: Optional[str]) -> None:
        """Delete the entity with this id. Does nothing if it is not found."""
        entity = cls.get_by_id(id)
        if entity is not None:
            entity.delete()

    @classmethod
    def delete_all(cls) -> None:
        cls.repository().delete_all()
