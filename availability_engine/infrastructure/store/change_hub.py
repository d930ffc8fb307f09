from __future__ import annotations

import asyncio
import logging

from availability_engine.application.ports.document_store import ChangeHandler, DocumentChange, Subscription


class HubSubscription(Subscription):
    def __init__(self, hub: ChangeHub, collection: str, handler: ChangeHandler) -> None:
        self._hub = hub
        self.collection = collection
        self.handler = handler
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        self._hub._remove(self)


class ChangeHub:
    """
    Fans document changes out to subscribed handlers.
    Handlers run as tracked tasks, so the write that published a change never waits on them
    and never sees their errors.
    """

    def __init__(self) -> None:
        self._subscriptions: dict[str, list[HubSubscription]] = {}
        self._pending: set[asyncio.Task] = set()
        self._logger = logging.getLogger(__name__)

    def subscribe(self, collection: str, handler: ChangeHandler) -> Subscription:
        subscription = HubSubscription(self, collection, handler)
        self._subscriptions.setdefault(collection, []).append(subscription)
        return subscription

    def subscriber_count(self, collection: str) -> int:
        return len(self._subscriptions.get(collection, []))

    def publish(self, change: DocumentChange) -> None:
        for subscription in list(self._subscriptions.get(change.collection, [])):
            task = asyncio.create_task(self._deliver(subscription, change))
            self._pending.add(task)
            task.add_done_callback(self._pending.discard)

    async def drain(self) -> None:
        """Wait until every handler scheduled so far has finished."""
        while self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)

    async def _deliver(self, subscription: HubSubscription, change: DocumentChange) -> None:
        if subscription.closed:
            return
        try:
            await subscription.handler(change)
        except Exception as e:
            self._logger.exception(
                "Change handler failed",
                extra={"collection": change.collection, "document_id": change.document_id, "error": str(e)},
            )

    def _remove(self, subscription: HubSubscription) -> None:
        subscriptions = self._subscriptions.get(subscription.collection, [])
        if subscription in subscriptions:
            subscriptions.remove(subscription)
