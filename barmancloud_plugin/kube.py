"""Object keys, API errors and an in-memory object client."""

from __future__ import annotations

import copy
from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from typing import Any


@dataclass(frozen=True)
class NamespacedName:
    """The namespace and name that identify a namespaced object."""

    namespace: str
    name: str

    def __str__(self) -> str:
        return f"{self.namespace}/{self.name}"

    @classmethod
    def of(cls, obj: Mapping[str, Any]) -> NamespacedName:
        """Build the key of an object from its metadata."""
        metadata = obj.get("metadata") or {}
        return cls(metadata.get("namespace", ""), metadata.get("name", ""))


class NotFoundError(LookupError):
    """The requested object does not exist."""

    def __init__(self, kind: str, key: NamespacedName) -> None:
        super().__init__(f"{kind} {key} not found")
        self.kind = kind
        self.key = key


class AlreadyExistsError(Exception):
    """An object with the same kind and key already exists."""

    def __init__(self, kind: str, key: NamespacedName) -> None:
        super().__init__(f"{kind} {key} already exists")
        self.kind = kind
        self.key = key


class MemoryClient:
    """Keeps objects in memory, keyed by kind and namespaced name.

    Objects are plain dictionaries in their JSON form. Every object
    handed in or out is copied, so callers never share state with the store.
    """

    def __init__(self, objects: Iterable[tuple[str, Mapping[str, Any]]] = ()) -> None:
        self._objects: dict[tuple[str, NamespacedName], dict[str, Any]] = {}
        for kind, obj in objects:
            self.create(kind, obj)

    def get(self, kind: str, key: NamespacedName) -> dict[str, Any]:
        """Return a copy of the stored object, or raise NotFoundError."""
        try:
            return copy.deepcopy(self._objects[(kind, key)])
        except KeyError:
            raise NotFoundError(kind, key) from None

    def create(self, kind: str, obj: Mapping[str, Any]) -> None:
        """Store a new object, or raise AlreadyExistsError."""
        key = NamespacedName.of(obj)
        if (kind, key) in self._objects:
            raise AlreadyExistsError(kind, key)
        self._objects[(kind, key)] = copy.deepcopy(dict(obj))

    def patch(self, kind: str, obj: Mapping[str, Any]) -> None:
        """Replace an existing object with its new state, or raise NotFoundError."""
        key = NamespacedName.of(obj)
        if (kind, key) not in self._objects:
            raise NotFoundError(kind, key)
        self._objects[(kind, key)] = copy.deepcopy(dict(obj))