import asyncio
from unittest.mock import AsyncMock, Mock

import pytest

from shimmer._cogs.structs.bodies import Body
from shimmer._cogs.structs.references import make_key
from shimmer._core.actions.loggers import ObjectLogger


@pytest.fixture()
def key():
    return make_key('ns1', 'gw1')


@pytest.fixture()
def parent(make_object):
    return Body(make_object('Gateway', 'gw1'))


@pytest.fixture()
def lister(parent):
    return Mock(return_value=parent)


@pytest.fixture()
def reconciler():
    return AsyncMock(return_value=None)


@pytest.fixture()
def stopped():
    return asyncio.Event()


@pytest.fixture()
def logger(key):
    return ObjectLogger(key=key, kind='Gateway', controller='test')
