"""Entity store interface and the in-memory implementation.

The core never talks to a backend directly: every read and write goes through
an :class:`EntityStore`, one per entity type, looked up in a
:class:`StoreRegistry` built once at startup.
"""

import asyncio
import dataclasses
import logging
from abc import ABC, abstractmethod
from datetime import datetime
from typing import Any, Dict, Generic, List, Mapping, Optional, Type, TypeVar
from uuid import uuid4

from planify.domain import (
    ENTITY_TYPES,
    Budget,
    Collaboration,
    Expense,
    Goal,
    Income,
    Notification,
    User,
)
from planify.errors import NotFoundError, ValidationError

logger = logging.getLogger(__name__)

T = TypeVar("T")


class EntityStore(ABC, Generic[T]):
    """Asynchronous CRUD over one entity type.

    ``filter`` matches by exact equality on named fields. ``sort`` names a
    field, prefixed with ``-`` for descending order.
    """

    entity_type: str

    @abstractmethod
    async def list(self, sort: Optional[str] = None) -> List[T]:
        pass

    @abstractmethod
    async def filter(self, fields: Mapping[str, Any], sort: Optional[str] = None) -> List[T]:
        pass

    @abstractmethod
    async def get(self, entity_id: str) -> T:
        pass

    @abstractmethod
    async def create(self, fields: Mapping[str, Any]) -> T:
        pass

    @abstractmethod
    async def update(self, entity_id: str, fields: Mapping[str, Any]) -> T:
        pass

    @abstractmethod
    async def delete(self, entity_id: str) -> None:
        pass


def _sorted(items: List[T], sort: Optional[str]) -> List[T]:
    if not sort:
        return items
    descending = sort.startswith("-")
    name = sort.lstrip("-")
    return sorted(items, key=lambda e: getattr(e, name), reverse=descending)


class InMemoryEntityStore(EntityStore[T]):
    """Insertion-ordered store of frozen dataclass records."""

    def __init__(self, entity_cls: Type[T], entity_type: str):
        self.entity_cls = entity_cls
        self.entity_type = entity_type
        self._fields = {f.name for f in dataclasses.fields(entity_cls)}
        self._rows: Dict[str, T] = {}

    def _check_fields(self, fields: Mapping[str, Any]) -> None:
        unknown = set(fields) - self._fields
        if unknown:
            raise ValidationError(f"unknown {self.entity_type} fields: {sorted(unknown)}")

    async def list(self, sort: Optional[str] = None) -> List[T]:
        await asyncio.sleep(0)
        return _sorted(list(self._rows.values()), sort)

    async def filter(self, fields: Mapping[str, Any], sort: Optional[str] = None) -> List[T]:
        self._check_fields(fields)
        await asyncio.sleep(0)
        matches = [
            row for row in self._rows.values()
            if all(getattr(row, name) == value for name, value in fields.items())
        ]
        return _sorted(matches, sort)

    async def get(self, entity_id: str) -> T:
        await asyncio.sleep(0)
        try:
            return self._rows[entity_id]
        except KeyError:
            raise NotFoundError(self.entity_type, entity_id) from None

    async def create(self, fields: Mapping[str, Any]) -> T:
        self._check_fields(fields)
        values = dict(fields)
        values.setdefault("id", uuid4().hex)
        if "created_date" in self._fields and not values.get("created_date"):
            values["created_date"] = datetime.now().isoformat()
        try:
            row = self.entity_cls(**values)
        except TypeError as e:
            raise ValidationError(f"cannot create {self.entity_type}: {e}") from e
        await asyncio.sleep(0)
        self._rows[row.id] = row
        logger.debug("created %s %s", self.entity_type, row.id)
        return row

    async def update(self, entity_id: str, fields: Mapping[str, Any]) -> T:
        self._check_fields(fields)
        if "id" in fields and fields["id"] != entity_id:
            raise ValidationError(f"{self.entity_type} id cannot change")
        current = await self.get(entity_id)
        row = dataclasses.replace(current, **fields)
        self._rows[entity_id] = row
        return row

    async def delete(self, entity_id: str) -> None:
        await self.get(entity_id)
        del self._rows[entity_id]
        logger.debug("deleted %s %s", self.entity_type, entity_id)


class StoreRegistry:
    """Entity-type tag -> store mapping, plus the auxiliary stores."""

    def __init__(
        self,
        entities: Mapping[str, EntityStore],
        collaborations: EntityStore,
        notifications: EntityStore,
        users: EntityStore,
    ):
        missing = set(ENTITY_TYPES) - set(entities)
        if missing:
            raise ValidationError(f"no store registered for {sorted(missing)}")
        self._entities = dict(entities)
        self.collaborations = collaborations
        self.notifications = notifications
        self.users = users

    def store_for(self, entity_type: str) -> EntityStore:
        try:
            return self._entities[entity_type]
        except KeyError:
            raise ValidationError(f"unknown entity type: {entity_type!r}") from None

    @property
    def budgets(self) -> EntityStore:
        return self._entities["budget"]

    @property
    def goals(self) -> EntityStore:
        return self._entities["goal"]

    @property
    def expenses(self) -> EntityStore:
        return self._entities["expense"]

    @property
    def incomes(self) -> EntityStore:
        return self._entities["income"]

    @classmethod
    def in_memory(cls) -> "StoreRegistry":
        return cls(
            entities={
                "budget": InMemoryEntityStore(Budget, "budget"),
                "goal": InMemoryEntityStore(Goal, "goal"),
                "expense": InMemoryEntityStore(Expense, "expense"),
                "income": InMemoryEntityStore(Income, "income"),
            },
            collaborations=InMemoryEntityStore(Collaboration, "collaboration"),
            notifications=InMemoryEntityStore(Notification, "notification"),
            users=InMemoryEntityStore(User, "user"),
        )
