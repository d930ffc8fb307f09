from __future__ import annotations

import asyncio
import json
import logging
import threading
import uuid
from pathlib import Path
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
from availability_engine.infrastructure.store.memory_store import matches_filters


class JsonDocumentStore(DocumentStorePort):
    """One JSON file per collection. Intended for dev/local runs."""

    def __init__(self, data_dir: str = "./data/documents") -> None:
        self._data_dir = Path(data_dir)
        self._data_dir.mkdir(parents=True, exist_ok=True)
        self._locks: dict[str, threading.Lock] = {}
        self._lock_lock = threading.Lock()  # Lock for managing locks dict
        self._changes = ChangeHub()
        self._logger = logging.getLogger(__name__)

    def _get_lock(self, collection: str) -> threading.Lock:
        """Get or create a lock for a collection."""
        with self._lock_lock:
            if collection not in self._locks:
                self._locks[collection] = threading.Lock()
            return self._locks[collection]

    def _get_file_path(self, collection: str) -> Path:
        return self._data_dir / f"{collection}.json"

    def _load_collection(self, collection: str) -> dict[str, Document]:
        """Load a collection from its JSON file, empty if missing or corrupted."""
        file_path = self._get_file_path(collection)
        if not file_path.exists():
            return {}

        try:
            with open(file_path, "r", encoding="utf-8") as f:
                data = json.load(f)
            return data.get("documents", {}) if isinstance(data, dict) else {}
        except (json.JSONDecodeError, IOError) as e:
            self._logger.warning(
                "Collection file unreadable, treating as empty",
                extra={"collection": collection, "error": str(e)},
            )
            return {}

    def _save_collection(self, collection: str, documents: dict[str, Document]) -> None:
        """Save a collection to its JSON file atomically."""
        file_path = self._get_file_path(collection)
        temp_path = file_path.with_suffix(".json.tmp")

        try:
            with open(temp_path, "w", encoding="utf-8") as f:
                json.dump({"collection": collection, "documents": documents}, f, indent=2, ensure_ascii=False, default=str)
            temp_path.replace(file_path)
        except Exception:
            if temp_path.exists():
                temp_path.unlink(missing_ok=True)
            raise

    def _read(self, collection: str) -> dict[str, Document]:
        with self._get_lock(collection):
            return self._load_collection(collection)

    def _mutate(self, collection: str, doc_id: str, data: Document | None, merge: bool) -> DocumentChange | None:
        with self._get_lock(collection):
            documents = self._load_collection(collection)
            before = documents.get(doc_id)
            if data is None:
                if before is None:
                    return None
                documents.pop(doc_id)
                after = None
            elif merge:
                if before is None:
                    raise DataFetchError(f"{collection}/{doc_id} does not exist")
                after = {**before, **data}
                documents[doc_id] = after
            else:
                after = dict(data)
                documents[doc_id] = after
            self._save_collection(collection, documents)
            return DocumentChange(collection, doc_id, before=before, after=after)

    async def query(self, collection: str, filters: Mapping[str, Any] | None = None) -> list[StoredDocument]:
        documents = await asyncio.to_thread(self._read, collection)
        return [
            StoredDocument(id=doc_id, data=data)
            for doc_id, data in documents.items()
            if matches_filters(data, filters)
        ]

    async def get(self, collection: str, doc_id: str) -> StoredDocument | None:
        documents = await asyncio.to_thread(self._read, collection)
        data = documents.get(doc_id)
        return StoredDocument(id=doc_id, data=data) if data is not None else None

    async def add(self, collection: str, data: Mapping[str, Any]) -> str:
        doc_id = uuid.uuid4().hex
        await self._apply(collection, doc_id, dict(data), merge=False)
        return doc_id

    async def set(self, collection: str, doc_id: str, data: Mapping[str, Any]) -> None:
        await self._apply(collection, doc_id, dict(data), merge=False)

    async def update(self, collection: str, doc_id: str, data: Mapping[str, Any]) -> None:
        await self._apply(collection, doc_id, dict(data), merge=True)

    async def delete(self, collection: str, doc_id: str) -> None:
        await self._apply(collection, doc_id, None, merge=False)

    def on_write(self, collection: str, handler: ChangeHandler) -> Subscription:
        return self._changes.subscribe(collection, handler)

    async def wait_for_listeners(self) -> None:
        await self._changes.drain()

    async def _apply(self, collection: str, doc_id: str, data: Document | None, merge: bool) -> None:
        change = await asyncio.to_thread(self._mutate, collection, doc_id, data, merge)
        if change is not None:
            self._changes.publish(change)
