"""Job metadata kept in memory."""

from __future__ import annotations

import copy
import time
from datetime import datetime, timedelta
from typing import Optional
from uuid import UUID

from .store import (
    ErrorKind,
    JobAndNextTick,
    JobSchedulerError,
    JobStoredData,
    MetaDataStorage,
)

__all__ = ["SimpleMetadataStore"]


class SimpleMetadataStore(MetaDataStorage):
    """Job metadata held in a dictionary keyed by job id."""

    def __init__(self) -> None:
        self.data: dict[UUID, JobStoredData] = {}
        self._inited = False

    async def init(self) -> None:
        self._inited = True

    async def inited(self) -> bool:
        return self._inited

    async def get(self, guid: UUID) -> Optional[JobStoredData]:
        found = self.data.get(guid)
        return copy.copy(found) if found is not None else None

    async def add_or_update(self, data: JobStoredData) -> None:
        if data.id is None:
            raise JobSchedulerError(ErrorKind.CANT_ADD, "job has no id")
        self.data[data.id] = data

    async def delete(self, guid: UUID) -> None:
        self.data.pop(guid, None)

    async def list_next_ticks(self) -> list[JobAndNextTick]:
        return [
            JobAndNextTick(
                id=job.id,
                job_type=job.job_type,
                next_tick=job.next_tick,
                last_tick=job.last_tick,
            )
            for job in self.data.values()
        ]

    async def set_next_and_last_tick(
        self,
        guid: UUID,
        next_tick: Optional[datetime],
        last_tick: Optional[datetime],
    ) -> None:
        job = self.data.get(guid)
        if job is None:
            raise JobSchedulerError(ErrorKind.UPDATE_JOB_DATA, str(guid))
        job.set_next_tick(next_tick)
        job.set_last_tick(last_tick)

    async def time_till_next_job(self) -> Optional[timedelta]:
        now = int(time.time())
        upcoming = [job.next_tick for job in self.data.values() if job.next_tick > now]
        if not upcoming:
            return None
        return timedelta(seconds=min(upcoming) - now)