# cronloom

cronloom is the core of an asyncio job scheduler.

- Job metadata and notifications are kept in stores. The package ships in-memory stores, and you can plug in your own.
- Components talk to each other over broadcast channels.
- A scheduler wakes at a fixed interval. It activates every job that is due and works out when each job runs next.

cronloom has no runtime dependencies.

## Modules

### `cronloom.store`

This module holds the data types, the errors and the store interfaces.

- `JobStoredData` holds a job's metadata.
  - Times are whole-second Unix timestamps.
  - A `next_tick` of `0` means the job has no next run.
  - `next_tick_utc()` and `last_tick_utc()` return aware UTC datetimes, or `None`.
  - `set_next_tick()` and `set_last_tick()` take datetimes, or `None`.
- `JobAndNextTick` is the part of a job that the scheduler needs.
- `NotificationData` links a notification id to a job id and to the `JobState` values it fires on.
  - `job_id_and_notification_id()` returns both ids, or `None` if either one is missing.
- `JobState` is one of `STOP`, `SCHEDULED`, `STARTED` or `DONE`.
- `JobType` is one of `CRON`, `REPEATED` or `ONE_SHOT`.
- `JobSchedulerError` is raised for every failure. It carries an `ErrorKind` in `kind` and an optional `detail`.
- The store interfaces are abstract classes, and all of their methods are coroutines:
  - `InitStore`
  - `DataStore`
  - `MetaDataStorage`
  - `NotificationStore`

### `cronloom.simple_metadata`

`SimpleMetadataStore` keeps job metadata in a dict keyed by job id.

- `get()` returns a copy of the job, or `None`.
- `add_or_update()` raises `CANT_ADD` when the job has no id.
- `set_next_and_last_tick()` raises `UPDATE_JOB_DATA` when the job is unknown.
- `time_till_next_job()` returns the time until the earliest future `next_tick`, or `None`.

### `cronloom.simple_notification`

`SimpleNotificationStore` keeps notifications grouped by job.

- `get()`, `delete()` and `delete_notification_for_state()` raise a `JobSchedulerError` when the notification is unknown.
- When a notification loses its last state, it is removed.

### `cronloom.context`

- `Broadcast` is a broadcast channel.
  - `subscribe()` returns a `Receiver`. The receiver sees every value sent after it subscribed.
  - `send()` returns the number of receivers the value went to.
  - `close()` closes the channel.
  - Once the channel is closed and a receiver has nothing left queued, `recv()` raises `ChannelClosed`.
  - A `Receiver` can be used with `async for`.
- `Context` holds what every component shares:
  - the two stores, which are in-memory by default;
  - a lock for each store;
  - the optional code registries `job_code` and `notification_code`;
  - all the channels. Its docstring lists the message shapes.

### `cronloom.simple_code`

- `SimpleJobCode` keeps job callables by job id. It follows `job_create_tx` and `job_deleted_tx`.
- `SimpleNotificationCode` keeps notification callables by notification id.
  - It follows `notify_create_tx` and `notify_delete_tx`.
  - It reports on `notify_created_tx` and `notify_deleted_tx`.

### `cronloom.notification_creator`

- `NotificationCreator` stores the notifications sent on `notify_create_tx`. When a notification already exists, it merges the new states into it.
- `NotificationCreator.add(context, run, job_states, job_id)` registers a callable and returns the new notification id.

### `cronloom.notification_deleter`

`NotificationDeleter` does two things:

- It removes all of a job's notifications when the job id is sent on `job_delete_tx`.
- It handles removal requests for single notifications.

`NotificationDeleter.remove(context, notification_id, states)` removes a notification. Pass `states=None` to remove it for every state, or pass a list of states to remove only those. It returns `(notification_id, deleted)`.

### `cronloom.notification_runner`

When `(job_id, state)` arrives on `notify_tx`, `NotificationRunner` calls every notification registered for that job and state. It looks the callables up in `context.notification_code`.

- Each callable is called as `code(job_id, notification_id, state)`.
- The callable may be a plain function or a coroutine function.
- Any exception it raises is logged.

### `cronloom.scheduler`

- `must_run(tick, now)` decides whether a job is due. A job is due when its next run has come and it has not run since that time.
- `compute_next_tick(job, now, next_cron_tick)` returns `(next_tick, last_tick)` in UTC. How the next tick is found depends on the job type:
  - Repeated jobs advance by `repeated_every` seconds.
  - One-shot jobs get no next tick.
  - Cron jobs use the `next_cron_tick(schedule, now)` callable, which you supply.
- `Scheduler(tick_interval=0.5, next_cron_tick=None)` runs the tick loop:
  - `init(context)` starts the loop task. The task waits until `start()` is called.
  - `start()` raises `TICK_ERROR` if it is called twice.
  - `shutdown()` stops the loop at its next tick.

On each tick, the scheduler handles every job like this:

- A job whose `next_tick` is `0` has its id sent on `job_delete_tx`.
- A job that is due is sent as `(id, JobState.SCHEDULED)` on `notify_tx`, and its id is sent on `job_activation_tx`. Its new next tick and last tick are then written back to the metadata store.

## Installing

```
pip install .
```

To run the tests:

```
pip install .[test]
pytest
```

## Example

```python
import asyncio
import time
import uuid

from cronloom.context import Context
from cronloom.notification_creator import NotificationCreator
from cronloom.notification_deleter import NotificationDeleter
from cronloom.notification_runner import NotificationRunner
from cronloom.scheduler import Scheduler
from cronloom.simple_code import SimpleNotificationCode
from cronloom.store import JobState, JobStoredData, JobType


async def on_scheduled(job_id, notification_id, state):
    print("job", job_id, "is", state.name)


async def main():
    context = Context()
    notification_code = SimpleNotificationCode()
    context.notification_code = notification_code

    creator = NotificationCreator()
    deleter = NotificationDeleter()
    runner = NotificationRunner()
    scheduler = Scheduler(tick_interval=0.1)

    await notification_code.init(context)
    for part in (creator, deleter, runner, scheduler):
        await part.init(context)

    job_id = uuid.uuid4()
    await context.metadata_storage.add_or_update(
        JobStoredData(id=job_id, job_type=JobType.ONE_SHOT, next_tick=int(time.time()))
    )
    await NotificationCreator.add(context, on_scheduled, [JobState.SCHEDULED], job_id)

    await scheduler.start()
    await asyncio.sleep(1)
    await scheduler.shutdown()


asyncio.run(main())
```

Keep references to the component objects for as long as they should run. Each of them holds its own background tasks.

## What it does not do

- **No persistent storage.** The only stores are in memory. Other backends must implement `MetaDataStorage` and `NotificationStore`.
- **No cron expression parsing.** Cron jobs get a next tick only when a `next_cron_tick` callable is given to `Scheduler`.
- **No job execution.** Due job ids are sent on `job_activation_tx`, but nothing in the package listens there. `SimpleJobCode` only keeps callables and does not run them.
- **No job management API.** There is no component that creates or deletes jobs. You add jobs to the metadata store yourself, and you send on `job_create_tx` yourself if you use `SimpleJobCode`.
- **Finished jobs stay in the store.** A job whose `next_tick` has become `0` stays in the metadata store, and its id is sent on `job_delete_tx` again on every tick.
- **No command-line tool.**