"""Job and notification records, the scheduler error type and the storage interfaces."""

from __future__ import annotations

import abc
import enum
import math
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Generic, Optional, TypeVar
from uuid import UUID

__all__ = [
    "ErrorKind",
    "JobSchedulerError",
    "JobState",
    "JobType",
    "JobStoredData",
    "JobAndNextTick",
    "NotificationData",
    "InitStore",
    "DataStore",
    "MetaDataStorage",
    "NotificationStore",
]


class ErrorKind(enum.Enum):
    """What went wrong inside the scheduler or one of its stores."""

    CANT_ADD = "could not add"
    CANT_REMOVE = "could not remove"
    CANT_INIT = "could not initialise"
    CANT_LIST_GUIDS = "could not list guids"
    CANT_LIST_NEXT_TICKS = "could not list next ticks"
    CANT_GET_TIME_UNTIL = "could not get time until next job"
    COULD_NOT_GET_TIME_UNTIL_NEXT_TICK = "could not get time until next tick"
    ERROR_LOADING_GUID_LIST = "error loading guid list"
    GET_JOB_DATA = "could not get job data"
    UPDATE_JOB_DATA = "could not update job data"
    TICK_ERROR = "ticker already started"
    BUILDER_NEEDS_FIELD = "builder needs field"


class JobSchedulerError(Exception):
    """Raised by the scheduler and its stores; ``kind`` says what failed."""

    def __init__(self, kind: ErrorKind, detail: Optional[str] = None) -> None:
        self.kind = kind
        self.detail = detail
        message = kind.value if detail is None else f"{kind.value}: {detail}"
        super().__init__(message)


class JobState(enum.IntEnum):
    STOP = 0
    SCHEDULED = 1
    STARTED = 2
    DONE = 3


class JobType(enum.IntEnum):
    CRON = 0
    REPEATED = 1
    ONE_SHOT = 2


def _from_timestamp(ts: Optional[int]) -> Optional[datetime]:
    if ts is None:
        return None
    return datetime.fromtimestamp(ts, tz=timezone.utc)


def _to_timestamp(when: datetime) -> int:
    return math.floor(when.timestamp())


@dataclass
class JobStoredData:
    """Persisted metadata of one job. A ``next_tick`` of 0 means no next run."""

    id: Optional[UUID] = None
    job_type: JobType = JobType.CRON
    next_tick: int = 0
    last_tick: Optional[int] = None
    last_updated: Optional[int] = None
    count: int = 0
    ran: bool = False
    stopped: bool = False
    schedule: Optional[str] = None
    repeating: bool = False
    repeated_every: Optional[int] = None
    time_offset_seconds: int = 0
    extra: bytes = b""

    def next_tick_utc(self) -> Optional[datetime]:
        """The next run as an aware UTC datetime, or None when there is none."""
        return None if self.next_tick == 0 else _from_timestamp(self.next_tick)

    def last_tick_utc(self) -> Optional[datetime]:
        """The last run as an aware UTC datetime, or None."""
        return _from_timestamp(self.last_tick)

    def set_next_tick(self, when: Optional[datetime]) -> None:
        self.next_tick = 0 if when is None else _to_timestamp(when)

    def set_last_tick(self, when: Optional[datetime]) -> None:
        self.last_tick = None if when is None else _to_timestamp(when)


@dataclass
class JobAndNextTick:
    """The slice of a job's metadata the ticker needs."""

    id: Optional[UUID]
    job_type: JobType
    next_tick: int = 0
    last_tick: Optional[int] = None

    def next_tick_utc(self) -> Optional[datetime]:
        return None if self.next_tick == 0 else _from_timestamp(self.next_tick)

    def last_tick_utc(self) -> Optional[datetime]:
        return _from_timestamp(self.last_tick)


@dataclass
class NotificationData:
    """A notification registered for a job and the states it fires on."""

    job_id: Optional[UUID] = None
    notification_id: Optional[UUID] = None
    job_states: list[JobState] = field(default_factory=list)
    extra: bytes = b""

    def job_id_and_notification_id(self) -> Optional[tuple[UUID, UUID]]:
        """Both ids as a pair, or None if either is missing."""
        if self.job_id is None or self.notification_id is None:
            return None
        return self.job_id, self.notification_id


DataT = TypeVar("DataT")


class InitStore(abc.ABC):
    @abc.abstractmethod
    async def init(self) -> None:
        """Prepare the store for use."""

    @abc.abstractmethod
    async def inited(self) -> bool:
        """Whether the store has been prepared."""


class DataStore(abc.ABC, Generic[DataT]):
    @abc.abstractmethod
    async def get(self, guid: UUID) -> Optional[DataT]:
        """Fetch a record by id."""

    @abc.abstractmethod
    async def add_or_update(self, data: DataT) -> None:
        """Insert or replace a record."""

    @abc.abstractmethod
    async def delete(self, guid: UUID) -> None:
        """Remove a record."""


class MetaDataStorage(DataStore[JobStoredData], InitStore):
    @abc.abstractmethod
    async def list_next_ticks(self) -> list[JobAndNextTick]:
        """Tick information of the stored jobs."""

    @abc.abstractmethod
    async def set_next_and_last_tick(
        self,
        guid: UUID,
        next_tick: Optional[datetime],
        last_tick: Optional[datetime],
    ) -> None:
        """Record when a job runs next and when it last ran."""

    @abc.abstractmethod
    async def time_till_next_job(self) -> Optional[timedelta]:
        """Time until the earliest future run, or None if nothing is due."""


class NotificationStore(DataStore[NotificationData], InitStore):
    @abc.abstractmethod
    async def list_notification_guids_for_job_and_state(
        self, job: UUID, state: JobState
    ) -> list[UUID]:
        """Notifications of a job that fire on the given state."""

    @abc.abstractmethod
    async def list_notification_guids_for_job_id(self, job_id: UUID) -> list[UUID]:
        """All notifications of a job."""

    @abc.abstractmethod
    async def delete_notification_for_state(
        self, notification_id: UUID, state: JobState
    ) -> bool:
        """Stop a notification firing on a state; True if it did fire on it."""

    @abc.abstractmethod
    async def delete_for_job(self, job_id: UUID) -> None:
        """Remove every notification of a job."""