import asyncio

import pytest

from shimmer._cogs.structs.references import make_key
from shimmer._core.reactor.queueing import QueueShutDown, WorkQueue

KEY1 = make_key('ns1', 'gw1')
KEY2 = make_key('ns1', 'gw2')


async def test_waiting_getters_are_released(looptime):
    queue = WorkQueue()
    getter1 = asyncio.create_task(queue.get())
    getter2 = asyncio.create_task(queue.get())
    await asyncio.sleep(1)
    queue.shut_down()
    with pytest.raises(QueueShutDown):
        await getter1
    with pytest.raises(QueueShutDown):
        await getter2
    assert queue.shutting_down()
    assert looptime == 1


async def test_ready_keys_are_drained_first():
    queue = WorkQueue()
    queue.add(KEY1)
    queue.add(KEY2)
    queue.shut_down()
    assert await queue.get() == KEY1
    assert await queue.get() == KEY2
    with pytest.raises(QueueShutDown):
        await queue.get()


async def test_new_keys_are_ignored():
    queue = WorkQueue()
    queue.shut_down()
    queue.add(KEY1)
    queue.add_after(KEY2, 1)
    assert len(queue) == 0
    assert not queue.delayed


async def test_delayed_keys_are_dropped(looptime):
    queue = WorkQueue()
    queue.add_after(KEY1, 1)
    queue.shut_down()
    assert not queue.delayed
    await asyncio.sleep(2)
    assert len(queue) == 0


async def test_parked_keys_are_drained_when_done():
    queue = WorkQueue()
    queue.add(KEY1)
    key = await queue.get()
    queue.add(KEY1)
    queue.shut_down()
    queue.done(key)
    assert await queue.get() == KEY1
    with pytest.raises(QueueShutDown):
        await queue.get()


async def test_failed_keys_are_not_retried():
    queue = WorkQueue()
    queue.add(KEY1)
    key = await queue.get()
    queue.shut_down()
    queue.add_rate_limited(key)
    assert not queue.processing
    assert not queue.delayed
    with pytest.raises(QueueShutDown):
        await queue.get()
