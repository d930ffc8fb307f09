from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Mapping

Document = dict[str, Any]


@dataclass(frozen=True)
class StoredDocument:
    id: str
    data: Document


@dataclass(frozen=True)
class DocumentChange:
    collection: str
    document_id: str
    before: Document | None
    after: Document | None

    @property
    def is_create(self) -> bool:
        return self.before is None and self.after is not None

    @property
    def is_delete(self) -> bool:
        return self.before is not None and self.after is None


ChangeHandler = Callable[[DocumentChange], Awaitable[None]]


class Subscription(ABC):
    """Owned handle for a change listener. Release it with close() or a with-block."""

    @abstractmethod
    def close(self) -> None:
        raise NotImplementedError

    @property
    @abstractmethod
    def closed(self) -> bool:
        raise NotImplementedError

    def __enter__(self) -> "Subscription":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()


class DocumentStorePort(ABC):
    @abstractmethod
    async def query(self, collection: str, filters: Mapping[str, Any] | None = None) -> list[StoredDocument]:
        """Return documents whose fields equal every filter value."""
        raise NotImplementedError

    @abstractmethod
    async def get(self, collection: str, doc_id: str) -> StoredDocument | None:
        raise NotImplementedError

    @abstractmethod
    async def add(self, collection: str, data: Mapping[str, Any]) -> str:
        """Insert a document under a generated id. Returns the id."""
        raise NotImplementedError

    @abstractmethod
    async def set(self, collection: str, doc_id: str, data: Mapping[str, Any]) -> None:
        """Create or fully overwrite the document with this id."""
        raise NotImplementedError

    @abstractmethod
    async def update(self, collection: str, doc_id: str, data: Mapping[str, Any]) -> None:
        """Merge fields into an existing document."""
        raise NotImplementedError

    @abstractmethod
    async def delete(self, collection: str, doc_id: str) -> None:
        raise NotImplementedError

    @abstractmethod
    def on_write(self, collection: str, handler: ChangeHandler) -> Subscription:
        """Call handler after every write to the collection the store can observe."""
        raise NotImplementedError

    async def aclose(self) -> None:
        """Release connections and listeners held by the store."""
        return None
