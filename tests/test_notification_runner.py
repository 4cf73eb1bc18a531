import asyncio
import uuid

import pytest

from cronloom.context import Context
from cronloom.notification_runner import NotificationRunner
from cronloom.simple_code import SimpleNotificationCode
from cronloom.store import JobState, NotificationData


async def _register(context, job_id, states, callback):
    nid = uuid.uuid4()
    await context.notification_storage.add_or_update(
        NotificationData(job_id=job_id, notification_id=nid, job_states=list(states))
    )
    if callback is not None:
        context.notification_code.data[nid] = callback
    return nid


def _context():
    return Context(notification_code=SimpleNotificationCode())


@pytest.mark.asyncio
async def test_runs_callback_for_matching_state():
    context = _context()
    job_id = uuid.uuid4()
    calls = []
    done = asyncio.Event()

    def callback(*args):
        calls.append(args)
        done.set()

    nid = await _register(context, job_id, [JobState.STARTED], callback)
    await NotificationRunner().init(context)

    context.notify_tx.send((job_id, JobState.STARTED))
    await asyncio.wait_for(done.wait(), 2)

    assert calls == [(job_id, nid, JobState.STARTED)]


@pytest.mark.asyncio
async def test_awaits_async_callbacks():
    context = _context()
    job_id = uuid.uuid4()
    seen = []
    done = asyncio.Event()

    async def callback(job, notification, state):
        await asyncio.sleep(0)
        seen.append((job, notification, state))
        done.set()

    nid = await _register(context, job_id, [JobState.DONE], callback)
    await NotificationRunner().init(context)

    context.notify_tx.send((job_id, JobState.DONE))
    await asyncio.wait_for(done.wait(), 2)

    assert seen == [(job_id, nid, JobState.DONE)]


@pytest.mark.asyncio
async def test_other_states_do_not_fire():
    context = _context()
    job_id = uuid.uuid4()
    wrong = []
    done = asyncio.Event()

    await _register(context, job_id, [JobState.DONE], lambda *a: wrong.append(a))
    right = await _register(context, job_id, [JobState.SCHEDULED], lambda *a: done.set())
    await NotificationRunner().init(context)

    context.notify_tx.send((job_id, JobState.SCHEDULED))
    await asyncio.wait_for(done.wait(), 2)
    await asyncio.sleep(0.01)

    assert wrong == []
    assert await context.notification_code.get(right) is not None