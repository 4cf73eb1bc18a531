"""The ticker that decides which jobs are due and advances their next run."""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Optional
from uuid import UUID

from .context import Broadcast, ChannelClosed, Context
from .store import (
    ErrorKind,
    JobAndNextTick,
    JobSchedulerError,
    JobState,
    JobStoredData,
    JobType,
)

__all__ = ["must_run", "compute_next_tick", "Scheduler"]

logger = logging.getLogger(__name__)

NextCronTick = Callable[[str, datetime], Optional[datetime]]

_MAX_OFFSET_SECONDS = 86_400


def must_run(tick: JobAndNextTick, now: datetime) -> bool:
    """Whether a job is due: its next run has come and it has not run since."""
    next_tick = tick.next_tick_utc()
    last_tick = tick.last_tick_utc()
    if next_tick is None:
        return False
    if last_tick is None:
        return now >= next_tick
    return now >= next_tick and last_tick <= next_tick


def _fixed_offset(seconds: int) -> timezone:
    if -_MAX_OFFSET_SECONDS < seconds < _MAX_OFFSET_SECONDS:
        return timezone(timedelta(seconds=seconds))
    return timezone.utc


def compute_next_tick(
    job: JobStoredData,
    now: datetime,
    next_cron_tick: Optional[NextCronTick] = None,
) -> tuple[Optional[datetime], datetime]:
    """The job's next run after it runs at ``now``, and ``now`` as its last run, both in UTC.

    ``next_cron_tick(schedule, now)`` gives the next time a cron schedule fires after
    ``now``, which is passed in the job's own offset.
    """
    if now.tzinfo is None:
        now = now.replace(tzinfo=timezone.utc)
    local_now = now.astimezone(_fixed_offset(job.time_offset_seconds))

    next_tick: Optional[datetime] = None
    if job.job_type == JobType.CRON:
        if job.schedule is not None and next_cron_tick is not None:
            next_tick = next_cron_tick(job.schedule, local_now)
    elif job.job_type == JobType.REPEATED:
        current = job.next_tick_utc()
        if current is not None and job.repeated_every is not None:
            try:
                next_tick = current + timedelta(seconds=job.repeated_every)
            except OverflowError:
                next_tick = None

    return (
        next_tick.astimezone(timezone.utc) if next_tick is not None else None,
        local_now.astimezone(timezone.utc),
    )


class Scheduler:
    """Wakes every ``tick_interval`` seconds once started and activates the jobs that are due."""

    def __init__(
        self,
        tick_interval: float = 0.5,
        next_cron_tick: Optional[NextCronTick] = None,
    ) -> None:
        self.tick_interval = tick_interval
        self.next_cron_tick = next_cron_tick
        self._shutdown = False
        self._ticking = False
        self._inited = False
        self._started = asyncio.Event()
        self._task: Optional[asyncio.Task[None]] = None

    async def init(self, context: Context) -> None:
        """Start the ticker task; it waits for :meth:`start` before it ticks."""
        if self._inited:
            return
        self._inited = True
        self._task = asyncio.create_task(self._tick_loop(context))

    async def shutdown(self) -> None:
        """Ask the ticker to stop at its next tick."""
        self._shutdown = True

    async def start(self) -> None:
        """Let the ticker run; raises if it was already started."""
        if self._ticking:
            raise JobSchedulerError(ErrorKind.TICK_ERROR)
        self._ticking = True
        self._started.set()

    async def _tick_loop(self, context: Context) -> None:
        await self._started.wait()
        while not self._shutdown:
            await asyncio.sleep(self.tick_interval)
            now = datetime.now(timezone.utc)
            try:
                async with context.metadata_lock:
                    ticks = await context.metadata_storage.list_next_ticks()
            except JobSchedulerError as error:
                logger.error("Error with listing next ticks %r", error)
                continue

            for tick in ticks:
                if tick.id is not None and tick.next_tick == 0:
                    _send(context.job_delete_tx, tick.id)

            due = [
                tick.id
                for tick in ticks
                if tick.id is not None and tick.next_tick != 0 and must_run(tick, now)
            ]
            for job_id in due:
                _send(context.notify_tx, (job_id, JobState.SCHEDULED))
                _send(context.job_activation_tx, job_id)
                await self._advance(context, job_id, now)

    async def _advance(self, context: Context, job_id: UUID, now: datetime) -> None:
        storage = context.metadata_storage
        async with context.metadata_lock:
            try:
                job = await storage.get(job_id)
            except JobSchedulerError:
                job = None
            if job is None:
                logger.error("Could not get job metadata for %s", job_id)
                return
            next_tick, last_tick = compute_next_tick(job, now, self.next_cron_tick)
            try:
                await storage.set_next_and_last_tick(job_id, next_tick, last_tick)
            except JobSchedulerError as error:
                logger.error("Could not set next and last tick %r", error)


def _send(channel: Broadcast, message: Any) -> None:
    try:
        channel.send(message)
    except ChannelClosed:
        logger.error("Error sending %r", message)