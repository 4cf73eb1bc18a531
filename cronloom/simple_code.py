"""In-memory registries of the callables behind jobs and notifications."""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Callable, Coroutine, Optional
from uuid import UUID

from .context import Broadcast, Context, Receiver

__all__ = ["SimpleJobCode", "SimpleNotificationCode"]

logger = logging.getLogger(__name__)


def _report(channel: Broadcast, message: Any, level: int, failure: str, guid: UUID) -> None:
    if channel.closed:
        logger.log(level, failure, guid)
        return
    channel.send(message)


class _CodeRegistry:
    """Background-task bookkeeping shared by the code registries."""

    def __init__(self) -> None:
        self._tasks: set[asyncio.Task[None]] = set()

    def _spawn(self, *coros: Coroutine[Any, Any, None]) -> None:
        for coro in coros:
            task = asyncio.create_task(coro)
            self._tasks.add(task)
            task.add_done_callback(self._tasks.discard)


class SimpleJobCode(_CodeRegistry):
    """Keeps job callables by job id, following the context's create and delete channels."""

    def __init__(self) -> None:
        super().__init__()
        self.job_code: dict[UUID, Callable[..., Any]] = {}

    async def init(self, context: Context) -> None:
        """Start listening for job additions and removals."""
        self._spawn(
            self._listen_for_additions(context.job_create_tx.subscribe()),
            self._listen_for_removals(context.job_deleted_tx.subscribe()),
        )

    async def get(self, guid: UUID) -> Optional[Callable[..., Any]]:
        """Return the callable registered for a job, or None."""
        return self.job_code.get(guid)

    async def _listen_for_additions(self, receiver: Receiver) -> None:
        async for data, code in receiver:
            if data.id is None:
                logger.error("Job without id: %r", data)
                continue
            self.job_code[data.id] = code

    async def _listen_for_removals(self, receiver: Receiver) -> None:
        async for job_id, error in receiver:
            if error is None:
                self.job_code.pop(job_id, None)


class SimpleNotificationCode(_CodeRegistry):
    """Keeps notification callables by notification id."""

    def __init__(self) -> None:
        super().__init__()
        self.data: dict[UUID, Callable[..., Any]] = {}

    async def init(self, context: Context) -> None:
        """Start listening for notification additions and removals."""
        self._spawn(
            self._listen_for_additions(context.notify_create_tx.subscribe(), context),
            self._listen_for_removals(context.notify_delete_tx.subscribe(), context),
        )

    async def get(self, guid: UUID) -> Optional[Callable[..., Any]]:
        """Return the callable registered for a notification, or None."""
        return self.data.get(guid)

    async def _listen_for_additions(self, receiver: Receiver, context: Context) -> None:
        async for data, code in receiver:
            notification_id = data.notification_id
            if notification_id is None:
                continue
            self.data[notification_id] = code
            _report(
                context.notify_created_tx,
                (notification_id, None),
                logging.WARNING,
                "Could not report notification %s as created",
                notification_id,
            )

    async def _listen_for_removals(self, receiver: Receiver, context: Context) -> None:
        async for notification_id, states in receiver:
            self.data.pop(notification_id, None)
            _report(
                context.notify_deleted_tx,
                (notification_id, True, states, None),
                logging.ERROR,
                "Could not report notification %s as removed",
                notification_id,
            )