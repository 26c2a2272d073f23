"""
Snapshot Subscriptions

Storage backends push the full, authoritative list of a user's records
(or goals) to every subscriber whenever that list changes. Subscribers
never receive deltas, so each recomputation works on one consistent
snapshot.
"""

from typing import Callable, Generic, TypeVar

import structlog


T = TypeVar("T")

SnapshotCallback = Callable[[list[T]], None]


class Subscription:
    """Handle returned by a subscribe call. Call `unsubscribe()` to stop delivery."""

    def __init__(self, publisher: "SnapshotPublisher", owner_id: str, callback):
        self._publisher = publisher
        self._owner_id = owner_id
        self._callback = callback
        self._active = True

    @property
    def active(self) -> bool:
        return self._active

    def unsubscribe(self) -> None:
        if self._active:
            self._publisher.remove(self._owner_id, self._callback)
            self._active = False


class SnapshotPublisher(Generic[T]):
    """
    Per-owner listener registry.

    A callback that raises is logged and skipped; the remaining callbacks
    still receive the snapshot.
    """

    def __init__(self, collection: str):
        self._collection = collection
        self._listeners: dict[str, list[SnapshotCallback]] = {}
        self._logger = structlog.get_logger()

    def add(self, owner_id: str, callback: SnapshotCallback) -> Subscription:
        self._listeners.setdefault(owner_id, []).append(callback)
        return Subscription(self, owner_id, callback)

    def remove(self, owner_id: str, callback: SnapshotCallback) -> None:
        callbacks = self._listeners.get(owner_id, [])
        if callback in callbacks:
            callbacks.remove(callback)
        if not callbacks:
            self._listeners.pop(owner_id, None)

    def has_listeners(self, owner_id: str) -> bool:
        return bool(self._listeners.get(owner_id))

    def deliver(self, owner_id: str, callback: SnapshotCallback, snapshot: list[T]) -> None:
        try:
            callback(list(snapshot))
        except Exception as e:
            self._logger.error(
                "snapshot_callback_failed",
                collection=self._collection,
                owner_id=owner_id,
                error=str(e),
            )

    def publish(self, owner_id: str, snapshot: list[T]) -> None:
        # Copy: a callback may unsubscribe while we iterate
        for callback in list(self._listeners.get(owner_id, [])):
            self.deliver(owner_id, callback, snapshot)
