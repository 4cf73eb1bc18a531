import asyncio
import uuid

import pytest

from cronloom.context import Context
from cronloom.notification_deleter import NotificationDeleter
from cronloom.store import ErrorKind, JobSchedulerError, JobState, NotificationData

pytestmark = pytest.mark.asyncio


async def _running_context(job_id, notifications):
    """A context with a started deleter and the given notification ids and states stored."""
    context = Context()
    for notification_id, states in notifications:
        await context.notification_storage.add_or_update(
            NotificationData(job_id=job_id, notification_id=notification_id, job_states=list(states))
        )
    await NotificationDeleter().init(context)
    return context


async def _expect_error(kind, awaitable):
    with pytest.raises(JobSchedulerError) as info:
        await awaitable
    assert info.value.kind is kind


@pytest.mark.parametrize(
    "stored, removed, expected, remaining",
    [
        ([JobState.STARTED, JobState.DONE], [JobState.STARTED], True, [JobState.DONE]),
        ([JobState.DONE], [JobState.SCHEDULED], False, [JobState.DONE]),
    ],
)
async def test_remove_states(stored, removed, expected, remaining):
    nid = uuid.uuid4()
    context = await _running_context(uuid.uuid4(), [(nid, stored)])
    result = await asyncio.wait_for(NotificationDeleter.remove(context, nid, removed), 2)
    assert result == (nid, expected)
    assert (await context.notification_storage.get(nid)).job_states == remaining


async def test_remove_all_states_deletes_notification():
    nid = uuid.uuid4()
    context = await _running_context(uuid.uuid4(), [(nid, [JobState.DONE])])
    result = await asyncio.wait_for(NotificationDeleter.remove(context, nid, None), 2)
    assert result == (nid, True)
    await _expect_error(ErrorKind.GET_JOB_DATA, context.notification_storage.get(nid))


async def test_job_deletion_removes_its_notifications():
    job_id, first, second = uuid.uuid4(), uuid.uuid4(), uuid.uuid4()
    context = await _running_context(
        job_id, [(first, [JobState.DONE]), (second, [JobState.STARTED])]
    )
    deleted = context.notify_deleted_tx.subscribe()

    context.job_delete_tx.send(job_id)
    messages = [await asyncio.wait_for(deleted.recv(), 2) for _ in range(2)]

    assert {m[0] for m in messages} == {first, second}
    assert all(m[1:] == (True, None, None) for m in messages)
    assert await context.notification_storage.list_notification_guids_for_job_id(job_id) == []


@pytest.mark.parametrize(
    "channel, deferred",
    [("notify_delete_tx", False), ("notify_deleted_tx", True)],
)
async def test_remove_raises_when_a_channel_closes(channel, deferred):
    context = Context()
    close = getattr(context, channel).close
    if deferred:
        asyncio.get_running_loop().call_soon(close)
    else:
        close()
    await _expect_error(
        ErrorKind.CANT_REMOVE, NotificationDeleter.remove(context, uuid.uuid4(), None)
    )