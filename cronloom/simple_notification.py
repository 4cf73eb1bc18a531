"""Notification registrations kept in memory."""

from __future__ import annotations

import copy
from typing import Optional
from uuid import UUID

from .store import (
    ErrorKind,
    JobSchedulerError,
    JobState,
    NotificationData,
    NotificationStore,
)

__all__ = ["SimpleNotificationStore"]


class SimpleNotificationStore(NotificationStore):
    """Notifications grouped per job, with a reverse index from notification to job."""

    def __init__(self) -> None:
        self.data: dict[UUID, dict[UUID, NotificationData]] = {}
        self.notification_vs_job: dict[UUID, UUID] = {}
        self._inited = False

    async def init(self) -> None:
        self._inited = True

    async def inited(self) -> bool:
        return self._inited

    async def get(self, guid: UUID) -> Optional[NotificationData]:
        job_id = self.notification_vs_job.get(guid)
        if job_id is None:
            raise JobSchedulerError(ErrorKind.GET_JOB_DATA, str(guid))
        notifications = self.data.get(job_id)
        if notifications is None:
            raise JobSchedulerError(ErrorKind.GET_JOB_DATA, str(guid))
        found = notifications.get(guid)
        if found is None:
            return None
        return copy.replace(found) if hasattr(copy, "replace") else _clone(found)

    async def add_or_update(self, data: NotificationData) -> None:
        ids = data.job_id_and_notification_id()
        if ids is None:
            raise JobSchedulerError(ErrorKind.UPDATE_JOB_DATA, "missing job or notification id")
        job_id, notification_id = ids
        self.notification_vs_job[notification_id] = job_id
        self.data.setdefault(job_id, {})[notification_id] = data

    async def delete(self, guid: UUID) -> None:
        job_id = self.notification_vs_job.pop(guid, None)
        if job_id is None:
            raise JobSchedulerError(ErrorKind.CANT_REMOVE, str(guid))
        notifications = self.data.get(job_id)
        if notifications is None:
            raise JobSchedulerError(ErrorKind.CANT_REMOVE, str(guid))
        notifications.pop(guid, None)
        if not notifications:
            del self.data[job_id]

    async def list_notification_guids_for_job_and_state(
        self, job: UUID, state: JobState
    ) -> list[UUID]:
        notifications = self.data.get(job, {})
        return [nid for nid, data in notifications.items() if state in data.job_states]

    async def list_notification_guids_for_job_id(self, job_id: UUID) -> list[UUID]:
        return list(self.data.get(job_id, {}))

    async def delete_notification_for_state(
        self, notification_id: UUID, state: JobState
    ) -> bool:
        job_id = self.notification_vs_job.get(notification_id)
        if job_id is None:
            raise JobSchedulerError(ErrorKind.CANT_REMOVE, str(notification_id))
        notifications = self.data.get(job_id)
        if notifications is None:
            raise JobSchedulerError(ErrorKind.CANT_REMOVE, str(notification_id))

        removed = False
        notification = notifications.get(notification_id)
        if notification is not None:
            removed = state in notification.job_states
            notification.job_states = [s for s in notification.job_states if s != state]
            if not notification.job_states:
                del notifications[notification_id]
                del self.notification_vs_job[notification_id]
        if not notifications:
            del self.data[job_id]
        return removed

    async def delete_for_job(self, job_id: UUID) -> None:
        self.notification_vs_job = {
            nid: jid for nid, jid in self.notification_vs_job.items() if jid != job_id
        }
        self.data.pop(job_id, None)


def _clone(data: NotificationData) -> NotificationData:
    return NotificationData(
        job_id=data.job_id,
        notification_id=data.notification_id,
        job_states=list(data.job_states),
        extra=data.extra,
    )