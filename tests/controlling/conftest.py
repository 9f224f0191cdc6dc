import asyncio

import pytest

from shimmer._core.engines.caching import Informer


@pytest.fixture()
def parent_stream(stream_factory):
    return stream_factory(listed=False)


@pytest.fixture()
def dependent_stream(stream_factory):
    return stream_factory(listed=False)


@pytest.fixture()
def parents(parent_stream):
    return Informer(kind='Gateway', source=parent_stream)


@pytest.fixture()
def dependents(dependent_stream):
    return Informer(kind='Certificate', source=dependent_stream)


@pytest.fixture()
async def informers(parents, dependents):
    tasks = [asyncio.create_task(parents.run()), asyncio.create_task(dependents.run())]
    try:
        yield tasks
    finally:
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
