"""Removes notifications when they or their jobs are deleted."""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Iterable, Optional
from uuid import UUID

from .context import ChannelClosed, Context, Receiver
from .store import ErrorKind, JobSchedulerError, JobState

__all__ = ["NotificationDeleter"]

logger = logging.getLogger(__name__)


class NotificationDeleter:
    """Follows job and notification deletions and clears them from the notification store."""

    def __init__(self) -> None:
        self._tasks: set[asyncio.Task[None]] = set()

    async def init(self, context: Context) -> None:
        """Start listening for job removals and notification removals."""
        job_removals = context.job_delete_tx.subscribe()
        notification_removals = context.notify_delete_tx.subscribe()
        self._spawn(self._listen_to_job_removals(context, job_removals))
        self._spawn(self._listen_for_notification_removals(context, notification_removals))

    def _spawn(self, coro: Any) -> None:
        task = asyncio.create_task(coro)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    @staticmethod
    async def _listen_to_job_removals(context: Context, receiver: Receiver) -> None:
        async for job_id in receiver:
            storage = context.notification_storage
            async with context.notification_lock:
                try:
                    guids = await storage.list_notification_guids_for_job_id(job_id)
                except JobSchedulerError as error:
                    logger.error("Error with getting guids for job id %r", error)
                    continue
                for notification_id in guids:
                    try:
                        await storage.delete(notification_id)
                    except JobSchedulerError as error:
                        logger.error("Error deleting notification %r", error)
                        continue
                    _report(context, (notification_id, True, None, None))

    @staticmethod
    async def _listen_for_notification_removals(context: Context, receiver: Receiver) -> None:
        async for notification_id, states in receiver:
            storage = context.notification_storage
            async with context.notification_lock:
                if states is not None:
                    for state in states:
                        try:
                            deleted = await storage.delete_notification_for_state(
                                notification_id, state
                            )
                        except JobSchedulerError as error:
                            logger.error("Error deleting notification for state %r", error)
                            continue
                        _report(context, (notification_id, deleted, [state], None))
                else:
                    try:
                        await storage.delete(notification_id)
                    except JobSchedulerError as error:
                        logger.error("Error deleting notification for all states %r", error)
                        continue
                    _report(context, (notification_id, True, None, None))

    @staticmethod
    async def remove(
        context: Context,
        notification_id: UUID,
        states: Optional[Iterable[JobState]] = None,
    ) -> tuple[UUID, bool]:
        """Remove a notification, for some states or for all; return its id and whether it went."""
        deleted = context.notify_deleted_tx.subscribe()
        wanted = None if states is None else list(states)
        try:
            context.notify_delete_tx.send((notification_id, wanted))
        except ChannelClosed:
            raise JobSchedulerError(ErrorKind.CANT_REMOVE, "delete channel closed") from None

        while True:
            try:
                message_id, was_deleted, _states, error = await deleted.recv()
            except ChannelClosed:
                raise JobSchedulerError(ErrorKind.CANT_REMOVE, "deleted channel closed") from None
            if message_id != notification_id:
                continue
            if error is not None:
                raise error
            return message_id, was_deleted


def _report(context: Context, message: Any) -> None:
    try:
        context.notify_deleted_tx.send(message)
    except ChannelClosed:
        logger.error("Could not report notification deletion %r", message)