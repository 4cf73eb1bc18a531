"""Runs notification callables when a job changes state."""

from __future__ import annotations

import asyncio
import inspect
import logging
from typing import Any, Callable
from uuid import UUID

from .context import Context, Receiver
from .store import JobSchedulerError, JobState

__all__ = ["NotificationRunner"]

logger = logging.getLogger(__name__)


class NotificationRunner:
    """Calls every notification registered for a job and state sent on the notify channel."""

    def __init__(self) -> None:
        self._tasks: set[asyncio.Task[None]] = set()

    async def init(self, context: Context) -> None:
        """Start listening for job state activations."""
        receiver = context.notify_tx.subscribe()
        self._spawn(self._listen_for_activations(context, receiver))

    def _spawn(self, coro: Any) -> None:
        task = asyncio.create_task(coro)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    async def _listen_for_activations(self, context: Context, receiver: Receiver) -> None:
        async for job_id, state in receiver:
            async with context.notification_lock:
                try:
                    notifications = await context.notification_storage.list_notification_guids_for_job_and_state(
                        job_id, state
                    )
                except JobSchedulerError:
                    logger.error(
                        "Error getting the list of notification guids for job %s and state %r",
                        job_id,
                        state,
                    )
                    continue
            code_store = context.notification_code
            for notification_id in notifications:
                code = None
                if code_store is not None:
                    try:
                        code = await code_store.get(notification_id)
                    except JobSchedulerError:
                        code = None
                if code is None:
                    logger.error("Could not get notification code for %s", notification_id)
                    continue
                self._spawn(_run(code, job_id, notification_id, state))


async def _run(
    code: Callable[..., Any], job_id: UUID, notification_id: UUID, state: JobState
) -> None:
    try:
        result = code(job_id, notification_id, state)
        if inspect.isawaitable(result):
            await result
    except Exception:
        logger.exception("Notification %s failed", notification_id)