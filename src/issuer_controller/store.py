"""Object store contract and an in-memory implementation.

Stores expose get / update / update_status. ``update`` writes annotations
only and ``update_status`` the status sub-resource only. Both are guarded by
the object's ``resource_version``: a write carrying a stale version is
rejected with ``ConflictError`` and nothing is applied. On success the
caller's object receives the new version, so a later write in the same
reconcile does not conflict with its own earlier write.
"""

import logging
import threading
from typing import Dict, NamedTuple, Optional, Protocol, Tuple, Type, TypeVar, Union

from issuer_api.types import CertificateRequest, ClusterIssuer, Issuer, Secret

logger = logging.getLogger(__name__)

StoredObject = Union[CertificateRequest, Issuer, ClusterIssuer, Secret]
T = TypeVar("T", CertificateRequest, Issuer, ClusterIssuer, Secret)


class NamespacedName(NamedTuple):
    namespace: Optional[str]
    name: str

    def __str__(self) -> str:
        if self.namespace:
            return f"{self.namespace}/{self.name}"
        return self.name


class StoreError(Exception):
    """Base class for object store failures."""
    pass


class NotFoundError(StoreError):
    """Raised when the requested object does not exist."""
    pass


class ConflictError(StoreError):
    """Raised when a write carries a stale resource version."""
    pass


class ObjectStore(Protocol):
    def get(self, model: Type[T], key: NamespacedName) -> T:
        ...

    def update(self, obj: StoredObject) -> None:
        ...

    def update_status(self, obj: StoredObject) -> None:
        ...


def kind_of(model: Union[StoredObject, Type[StoredObject]]) -> str:
    cls = model if isinstance(model, type) else type(model)
    if cls in (Issuer, ClusterIssuer):
        return cls.model_fields["kind"].default
    return cls.__name__


class InMemoryObjectStore:
    """Thread-safe object store kept in process memory."""

    def __init__(self):
        self._objects: Dict[Tuple[str, Optional[str], str], StoredObject] = {}
        self._lock = threading.Lock()
        self._version = 0

    def _key(self, obj: StoredObject) -> Tuple[str, Optional[str], str]:
        return kind_of(obj), obj.metadata.namespace, obj.metadata.name

    def _next_version(self) -> str:
        self._version += 1
        return str(self._version)

    def create(self, obj: StoredObject) -> StoredObject:
        """Add a new object; returns a copy carrying its resource version."""
        with self._lock:
            key = self._key(obj)
            if key in self._objects:
                raise ConflictError(f"{key[0]} {NamespacedName(key[1], key[2])} already exists")
            stored = obj.model_copy(deep=True)
            stored.metadata.resource_version = self._next_version()
            obj.metadata.resource_version = stored.metadata.resource_version
            self._objects[key] = stored
            logger.debug(f"Created {key[0]} {NamespacedName(key[1], key[2])}")
            return stored.model_copy(deep=True)

    def get(self, model: Type[T], key: NamespacedName) -> T:
        with self._lock:
            stored = self._objects.get((kind_of(model), key.namespace, key.name))
            if stored is None:
                raise NotFoundError(f'{kind_of(model)} "{key}" not found')
            return stored.model_copy(deep=True)

    def _checked(self, obj: StoredObject) -> StoredObject:
        key = self._key(obj)
        stored = self._objects.get(key)
        if stored is None:
            raise NotFoundError(f'{key[0]} "{NamespacedName(key[1], key[2])}" not found')
        if obj.metadata.resource_version != stored.metadata.resource_version:
            raise ConflictError(
                f'Operation cannot be fulfilled on {key[0]} "{NamespacedName(key[1], key[2])}": '
                "the object has been modified; please apply your changes to the latest version and try again"
            )
        return stored

    def update(self, obj: StoredObject) -> None:
        """Write the object's annotations; spec and status are kept as stored."""
        with self._lock:
            stored = self._checked(obj)
            new = stored.model_copy(deep=True)
            new.metadata.annotations = dict(obj.metadata.annotations)
            new.metadata.resource_version = self._next_version()
            self._objects[self._key(obj)] = new
            obj.metadata.resource_version = new.metadata.resource_version

    def update_status(self, obj: StoredObject) -> None:
        """Replace the status sub-resource only."""
        with self._lock:
            stored = self._checked(obj)
            new = stored.model_copy(deep=True)
            new.status = obj.status.model_copy(deep=True)
            new.metadata.resource_version = self._next_version()
            self._objects[self._key(obj)] = new
            obj.metadata.resource_version = new.metadata.resource_version
