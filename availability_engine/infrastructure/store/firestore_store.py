from __future__ import annotations

import asyncio
import functools
import logging
from typing import Any, AsyncIterator, Awaitable, Mapping, TypeVar

import firebase_admin
from firebase_admin import credentials, firestore, firestore_async
from google.api_core import exceptions as google_exceptions
from google.cloud.firestore_v1.base_query import FieldFilter

from availability_engine.application.exceptions import DataFetchError, StoreNotConfigured
from availability_engine.application.ports.document_store import (
    ChangeHandler,
    Document,
    DocumentChange,
    DocumentStorePort,
    StoredDocument,
    Subscription,
)
from availability_engine.core.config import settings
from availability_engine.infrastructure.store.change_hub import ChangeHub

T = TypeVar("T")

logger = logging.getLogger(__name__)

DEFAULT_DATABASE = "(default)"


def initialize_firebase(project_id: str, credentials_path: str | None = None) -> firebase_admin.App:
    """Return the default Firebase app, creating it on first use."""
    try:
        return firebase_admin.get_app()
    except ValueError:
        pass

    if credentials_path:
        cred = credentials.Certificate(credentials_path)
        logger.info("Firebase Admin initialized with credentials file")
    else:
        cred = credentials.ApplicationDefault()
        logger.info("Firebase Admin initialized with default credentials")
    return firebase_admin.initialize_app(cred, {"projectId": project_id})


class FirestoreDocumentStore(DocumentStorePort):
    """
    Firestore adapter over the Firebase Admin SDK.

    Reads and writes go through the async client. on_write is fed by one snapshot
    listener per collection on the sync client, so handlers see writes from every
    process, not only this one. The listener keeps the last seen version of each
    document to fill DocumentChange.before; the first snapshot only primes it.
    """

    def __init__(
        self,
        project_id: str | None = None,
        database: str | None = None,
        credentials_path: str | None = None,
        client: Any = None,
        listen_client: Any = None,
    ) -> None:
        if client is None or listen_client is None:
            project_id = project_id or settings.FIRESTORE_PROJECT_ID
            if not project_id:
                raise StoreNotConfigured("FIRESTORE_PROJECT_ID is required for the Firestore store")
            database = database or settings.FIRESTORE_DATABASE
            database_id = None if database in ("", DEFAULT_DATABASE) else database
            app = initialize_firebase(project_id, credentials_path or settings.FIREBASE_CREDENTIALS_PATH)
            client = client or firestore_async.client(app, database_id=database_id)
            listen_client = listen_client or firestore.client(app, database_id=database_id)

        self._client = client
        self._listen_client = listen_client
        self._changes = ChangeHub()
        self._watches: dict[str, Any] = {}
        self._seen: dict[str, dict[str, Document]] = {}
        self._primed: set[str] = set()
        self._loop: asyncio.AbstractEventLoop | None = None

    async def query(self, collection: str, filters: Mapping[str, Any] | None = None) -> list[StoredDocument]:
        query = self._client.collection(collection)
        for field, value in (filters or {}).items():
            query = query.where(filter=FieldFilter(field, "==", value))
        return await self._call(f"query {collection}", _collect(query.stream()))

    async def get(self, collection: str, doc_id: str) -> StoredDocument | None:
        ref = self._client.collection(collection).document(doc_id)
        snapshot = await self._call(f"get {collection}/{doc_id}", ref.get())
        if not snapshot.exists:
            return None
        return _to_stored(snapshot)

    async def add(self, collection: str, data: Mapping[str, Any]) -> str:
        _, ref = await self._call(f"add {collection}", self._client.collection(collection).add(dict(data)))
        return ref.id

    async def set(self, collection: str, doc_id: str, data: Mapping[str, Any]) -> None:
        ref = self._client.collection(collection).document(doc_id)
        await self._call(f"set {collection}/{doc_id}", ref.set(dict(data)))

    async def update(self, collection: str, doc_id: str, data: Mapping[str, Any]) -> None:
        """Merge fields. A missing document raises DataFetchError."""
        ref = self._client.collection(collection).document(doc_id)
        await self._call(f"update {collection}/{doc_id}", ref.update(dict(data)))

    async def delete(self, collection: str, doc_id: str) -> None:
        ref = self._client.collection(collection).document(doc_id)
        await self._call(f"delete {collection}/{doc_id}", ref.delete())

    def on_write(self, collection: str, handler: ChangeHandler) -> Subscription:
        subscription = self._changes.subscribe(collection, handler)
        if collection not in self._watches:
            self._loop = asyncio.get_running_loop()
            self._watches[collection] = self._listen_client.collection(collection).on_snapshot(
                functools.partial(self._on_snapshot, collection)
            )
            logger.info("Firestore listener started", extra={"collection": collection})
        return subscription

    async def wait_for_listeners(self) -> None:
        await self._changes.drain()

    async def aclose(self) -> None:
        for collection, watch in self._watches.items():
            watch.unsubscribe()
            logger.info("Firestore listener stopped", extra={"collection": collection})
        self._watches.clear()

    async def _call(self, operation: str, awaitable: Awaitable[T]) -> T:
        try:
            return await awaitable
        except google_exceptions.GoogleAPIError as e:
            logger.error("Firestore call failed", extra={"reason": operation, "error": str(e)})
            raise DataFetchError(f"Firestore {operation} failed: {e}") from e

    def _on_snapshot(self, collection: str, _documents: Any, changes: list[Any], _read_time: Any) -> None:
        # Runs on the SDK's listener thread; changes are handed to the event loop.
        seen = self._seen.setdefault(collection, {})
        primed = collection in self._primed
        pending: list[DocumentChange] = []
        for change in changes:
            doc_id = change.document.id
            before = seen.get(doc_id)
            if change.type.name == "REMOVED":
                after = None
                seen.pop(doc_id, None)
            else:
                after = change.document.to_dict() or {}
                seen[doc_id] = after
            if primed:
                pending.append(DocumentChange(collection, doc_id, before=before, after=after))
        self._primed.add(collection)

        if self._loop is None or self._loop.is_closed():
            return
        for item in pending:
            self._loop.call_soon_threadsafe(self._changes.publish, item)


async def _collect(stream: AsyncIterator[Any]) -> list[StoredDocument]:
    return [_to_stored(snapshot) async for snapshot in stream]


def _to_stored(snapshot: Any) -> StoredDocument:
    return StoredDocument(id=snapshot.id, data=snapshot.to_dict() or {})
