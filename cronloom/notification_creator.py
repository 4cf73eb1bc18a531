"""Registers notifications in the notification store."""

from __future__ import annotations

import asyncio
import logging
import uuid
from typing import Any, Callable, Iterable
from uuid import UUID

from .context import ChannelClosed, Context, Receiver
from .store import ErrorKind, JobSchedulerError, JobState, NotificationData

__all__ = ["NotificationCreator"]

logger = logging.getLogger(__name__)


class NotificationCreator:
    """Stores notifications sent on the context's create channel."""

    def __init__(self) -> None:
        self._tasks: set[asyncio.Task[None]] = set()

    async def init(self, context: Context) -> None:
        """Start listening for notification additions."""
        receiver = context.notify_create_tx.subscribe()
        task = asyncio.create_task(self._listen_for_additions(context, receiver))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    @staticmethod
    async def _listen_for_additions(context: Context, receiver: Receiver) -> None:
        async for data, _code in receiver:
            if data.job_id is None or data.notification_id is None:
                logger.error("Empty job id or notification id %r", data)
                continue
            notification_id = data.notification_id
            storage = context.notification_storage
            async with context.notification_lock:
                try:
                    existing = await storage.get(notification_id)
                except JobSchedulerError:
                    existing = None
                if existing is not None:
                    for state in data.job_states:
                        if state not in existing.job_states:
                            existing.job_states.append(state)
                    data = existing
                try:
                    await storage.add_or_update(data)
                except JobSchedulerError as error:
                    logger.error("Error adding or updating %r", error)
                    _report(context, (notification_id, error))
                    continue
            _report(context, (notification_id, None))

    @staticmethod
    async def add(
        context: Context,
        run: Callable[..., Any],
        job_states: Iterable[JobState],
        job_id: UUID,
    ) -> UUID:
        """Register ``run`` for ``job_id`` on the given states and return the new notification id."""
        notification_id = uuid.uuid4()
        data = NotificationData(
            job_id=job_id,
            notification_id=notification_id,
            job_states=list(job_states),
        )
        created = context.notify_created_tx.subscribe()
        try:
            context.notify_create_tx.send((data, run))
        except ChannelClosed:
            raise JobSchedulerError(ErrorKind.CANT_ADD, "create channel closed") from None

        while True:
            try:
                message_id, error = await created.recv()
            except ChannelClosed:
                raise JobSchedulerError(ErrorKind.CANT_ADD, "created channel closed") from None
            if message_id != notification_id:
                continue
            if error is not None:
                raise error
            return notification_id


def _report(context: Context, message: Any) -> None:
    try:
        context.notify_created_tx.send(message)
    except ChannelClosed:
        logger.warning("Could not report notification result %r", message)