import asyncio
import uuid
from contextlib import asynccontextmanager

import pytest

from cronloom.context import Context
from cronloom.simple_code import SimpleJobCode, SimpleNotificationCode
from cronloom.store import ErrorKind, JobSchedulerError, JobState, JobStoredData, NotificationData

pytestmark = pytest.mark.asyncio

_CHANNELS = (
    "job_create_tx",
    "job_deleted_tx",
    "notify_create_tx",
    "notify_created_tx",
    "notify_delete_tx",
    "notify_deleted_tx",
)


async def _job_runner(*args):
    return args


async def _notification_runner(job_id, notification_id, state):
    return job_id, notification_id, state


@asynccontextmanager
async def _running(code_cls):
    context = Context()
    code = code_cls()
    await code.init(context)
    try:
        yield context, code
    finally:
        for name in _CHANNELS:
            getattr(context, name).close()


async def _settles(code, guid, present):
    for _ in range(200):
        if (await code.get(guid) is not None) == present:
            return True
        await asyncio.sleep(0)
    return False


def _notification(job_id, notification_id=None, states=()):
    data = NotificationData(job_id=job_id, notification_id=notification_id, job_states=list(states))
    return data, _notification_runner


async def test_job_code_registered_on_create():
    async with _running(SimpleJobCode) as (context, code):
        job_id = uuid.uuid4()
        context.job_create_tx.send((JobStoredData(id=job_id), _job_runner))
        assert await _settles(code, job_id, True)
        assert await code.get(job_id) is _job_runner


async def test_unknown_job_code_is_none():
    assert await SimpleJobCode().get(uuid.uuid4()) is None


async def test_job_code_removed_only_on_successful_delete():
    async with _running(SimpleJobCode) as (context, code):
        kept, dropped = uuid.uuid4(), uuid.uuid4()
        for job_id in (kept, dropped):
            context.job_create_tx.send((JobStoredData(id=job_id), _job_runner))
            assert await _settles(code, job_id, True)
        context.job_deleted_tx.send((kept, JobSchedulerError(ErrorKind.CANT_REMOVE)))
        context.job_deleted_tx.send((dropped, None))
        assert await _settles(code, dropped, False)
        assert await code.get(kept) is _job_runner


async def test_notification_code_registered_and_reported():
    async with _running(SimpleNotificationCode) as (context, code):
        created = context.notify_created_tx.subscribe()
        notification_id = uuid.uuid4()
        context.notify_create_tx.send(
            _notification(uuid.uuid4(), notification_id, [JobState.SCHEDULED])
        )
        assert await asyncio.wait_for(created.recv(), 1) == (notification_id, None)
        assert await code.get(notification_id) is _notification_runner


async def test_notification_without_id_is_skipped():
    async with _running(SimpleNotificationCode) as (context, code):
        created = context.notify_created_tx.subscribe()
        job_id, notification_id = uuid.uuid4(), uuid.uuid4()
        context.notify_create_tx.send(_notification(job_id))
        context.notify_create_tx.send(_notification(job_id, notification_id))
        assert await asyncio.wait_for(created.recv(), 1) == (notification_id, None)
        assert list(code.data) == [notification_id]


async def test_notification_code_removed_and_reported():
    async with _running(SimpleNotificationCode) as (context, code):
        created = context.notify_created_tx.subscribe()
        deleted = context.notify_deleted_tx.subscribe()
        notification_id = uuid.uuid4()
        context.notify_create_tx.send(_notification(uuid.uuid4(), notification_id))
        await asyncio.wait_for(created.recv(), 1)
        context.notify_delete_tx.send((notification_id, [JobState.DONE]))
        assert await asyncio.wait_for(deleted.recv(), 1) == (
            notification_id,
            True,
            [JobState.DONE],
            None,
        )
        assert await code.get(notification_id) is None