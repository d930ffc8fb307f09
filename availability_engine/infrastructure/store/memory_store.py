from __future__ import annotations

import copy
import uuid
from typing import Any, Mapping

from availability_engine.application.exceptions import DataFetchError
from availability_engine.application.ports.document_store import (
    ChangeHandler,
    Document,
    DocumentChange,
    DocumentStorePort,
    StoredDocument,
    Subscription,
)
from availability_engine.infrastructure.store.change_hub import ChangeHub


class MemoryDocumentStore(DocumentStorePort):
    def __init__(self) -> None:
        self._collections: dict[str, dict[str, Document]] = {}
        self._changes = ChangeHub()

    async def query(self, collection: str, filters: Mapping[str, Any] | None = None) -> list[StoredDocument]:
        return [
            StoredDocument(id=doc_id, data=copy.deepcopy(data))
            for doc_id, data in self._collections.get(collection, {}).items()
            if matches_filters(data, filters)
        ]

    async def get(self, collection: str, doc_id: str) -> StoredDocument | None:
        data = self._collections.get(collection, {}).get(doc_id)
        if data is None:
            return None
        return StoredDocument(id=doc_id, data=copy.deepcopy(data))

    async def add(self, collection: str, data: Mapping[str, Any]) -> str:
        doc_id = uuid.uuid4().hex
        self._write(collection, doc_id, dict(data))
        return doc_id

    async def set(self, collection: str, doc_id: str, data: Mapping[str, Any]) -> None:
        self._write(collection, doc_id, dict(data))

    async def update(self, collection: str, doc_id: str, data: Mapping[str, Any]) -> None:
        existing = self._collections.get(collection, {}).get(doc_id)
        if existing is None:
            raise DataFetchError(f"{collection}/{doc_id} does not exist")
        merged = {**existing, **data}
        self._write(collection, doc_id, merged)

    async def delete(self, collection: str, doc_id: str) -> None:
        before = self._collections.get(collection, {}).pop(doc_id, None)
        if before is not None:
            self._changes.publish(DocumentChange(collection, doc_id, before=before, after=None))

    def on_write(self, collection: str, handler: ChangeHandler) -> Subscription:
        return self._changes.subscribe(collection, handler)

    async def wait_for_listeners(self) -> None:
        await self._changes.drain()

    def count(self, collection: str) -> int:
        return len(self._collections.get(collection, {}))

    def _write(self, collection: str, doc_id: str, data: Document) -> None:
        docs = self._collections.setdefault(collection, {})
        before = docs.get(doc_id)
        docs[doc_id] = copy.deepcopy(data)
        self._changes.publish(
            DocumentChange(collection, doc_id, before=before, after=copy.deepcopy(data))
        )


def matches_filters(data: Mapping[str, Any], filters: Mapping[str, Any] | None) -> bool:
    if not filters:
        return True
    return all(data.get(field) == value for field, value in filters.items())
