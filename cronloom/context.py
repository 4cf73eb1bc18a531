"""Broadcast channels and the shared context the scheduler's workers talk over."""

from __future__ import annotations

import asyncio
import weakref
from dataclasses import dataclass, field
from typing import Any, Generic, Optional, TypeVar

from .simple_metadata import SimpleMetadataStore
from .simple_notification import SimpleNotificationStore
from .store import MetaDataStorage, NotificationStore

__all__ = ["ChannelClosed", "Receiver", "Broadcast", "Context"]

T = TypeVar("T")

_CLOSED = object()


class ChannelClosed(Exception):
    """Raised when receiving from, or sending on, a closed channel."""


class Receiver(Generic[T]):
    """One subscription to a :class:`Broadcast`; sees every value sent after it subscribed."""

    def __init__(self, closed: bool = False) -> None:
        self._queue: asyncio.Queue[Any] = asyncio.Queue()
        self._closed = closed

    def _push(self, item: Any) -> None:
        self._queue.put_nowait(item)

    async def recv(self) -> T:
        """Wait for the next value; raise ChannelClosed once the channel is closed and drained."""
        if self._closed and self._queue.empty():
            raise ChannelClosed()
        item = await self._queue.get()
        if item is _CLOSED:
            self._closed = True
            raise ChannelClosed()
        return item

    def __aiter__(self) -> "Receiver[T]":
        return self

    async def __anext__(self) -> T:
        try:
            return await self.recv()
        except ChannelClosed:
            raise StopAsyncIteration from None


class Broadcast(Generic[T]):
    """A channel that hands every sent value to all current receivers."""

    def __init__(self) -> None:
        self._receivers: "weakref.WeakSet[Receiver[T]]" = weakref.WeakSet()
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    def subscribe(self) -> Receiver[T]:
        """A new receiver for values sent from now on."""
        receiver: Receiver[T] = Receiver(closed=self._closed)
        if not self._closed:
            self._receivers.add(receiver)
        return receiver

    def send(self, value: T) -> int:
        """Deliver a value to every receiver and return how many there were."""
        if self._closed:
            raise ChannelClosed()
        receivers = list(self._receivers)
        for receiver in receivers:
            receiver._push(value)
        return len(receivers)

    def close(self) -> None:
        """Close the channel; receivers get what is queued, then ChannelClosed."""
        if self._closed:
            return
        self._closed = True
        for receiver in list(self._receivers):
            receiver._push(_CLOSED)


@dataclass
class Context:
    """Storage and channels shared by the scheduler's workers.

    Message shapes:
    ``job_activation_tx``, ``job_delete_tx``: job id.
    ``notify_tx``: ``(job_id, JobState)``.
    ``job_create_tx``: ``(JobStoredData, code)``; ``notify_create_tx``: ``(NotificationData, code)``.
    ``job_created_tx``, ``job_deleted_tx``, ``notify_created_tx``: ``(id, error)`` with
    ``error`` None on success.
    ``notify_delete_tx``: ``(notification_id, states or None)``.
    ``notify_deleted_tx``: ``(notification_id, deleted, states or None, error)``.
    """

    metadata_storage: MetaDataStorage = field(default_factory=SimpleMetadataStore)
    notification_storage: NotificationStore = field(default_factory=SimpleNotificationStore)
    job_code: Optional[Any] = None
    notification_code: Optional[Any] = None
    metadata_lock: asyncio.Lock = field(default_factory=asyncio.Lock)
    notification_lock: asyncio.Lock = field(default_factory=asyncio.Lock)
    job_activation_tx: Broadcast = field(default_factory=Broadcast)
    notify_tx: Broadcast = field(default_factory=Broadcast)
    job_create_tx: Broadcast = field(default_factory=Broadcast)
    job_created_tx: Broadcast = field(default_factory=Broadcast)
    job_delete_tx: Broadcast = field(default_factory=Broadcast)
    job_deleted_tx: Broadcast = field(default_factory=Broadcast)
    notify_create_tx: Broadcast = field(default_factory=Broadcast)
    notify_created_tx: Broadcast = field(default_factory=Broadcast)
    notify_delete_tx: Broadcast = field(default_factory=Broadcast)
    notify_deleted_tx: Broadcast = field(default_factory=Broadcast)