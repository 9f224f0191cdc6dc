import asyncio
import io
import logging
import re
import sys
from collections.abc import AsyncIterator
from typing import Any

import pytest

from shimmer._cogs.configs.configuration import ControllerSettings
from shimmer._cogs.structs.events import Bookmark
from shimmer._core.actions.loggers import ObjectPrefixingTextFormatter, configure


def pytest_configure(config):
    config.addinivalue_line('markers', "e2e: end-to-end tests with the full stack of controllers.")


@pytest.fixture()
def settings():
    return ControllerSettings()


#
# Builders of the objects and events, as they come from the watch-streams.
#

@pytest.fixture()
def make_object():
    def make_object_fn(
            kind: str,
            name: str,
            namespace: str | None = 'ns1',
            *,
            controller: tuple[str, str] | None = None,
            owner: tuple[str, str] | None = None,
            deleted: str | None = None,
            **fields: Any,
    ) -> dict[str, Any]:
        metadata: dict[str, Any] = {'name': name, 'uid': f'uid-{kind}-{name}'}
        if namespace is not None:
            metadata['namespace'] = namespace
        if deleted is not None:
            metadata['deletionTimestamp'] = deleted
        refs = []
        if controller is not None:
            refs.append({'kind': controller[0], 'name': controller[1], 'controller': True,
                         'apiVersion': 'v1', 'uid': f'uid-{controller[0]}-{controller[1]}'})
        if owner is not None:
            refs.append({'kind': owner[0], 'name': owner[1],
                         'apiVersion': 'v1', 'uid': f'uid-{owner[0]}-{owner[1]}'})
        if refs:
            metadata['ownerReferences'] = refs
        return {'apiVersion': 'v1', 'kind': kind, 'metadata': metadata, **fields}
    return make_object_fn


@pytest.fixture()
def make_event(make_object):
    def make_event_fn(etype: str, kind: str, name: str, namespace: str | None = 'ns1', **kwargs):
        return {'type': etype, 'object': make_object(kind, name, namespace, **kwargs)}
    return make_event_fn


class FakeStream:
    """
    A feedable stream of raw events, as the informers consume them.

    The initial events are followed by the end-of-listing bookmark (if listed).
    The stream is infinite unless closed explicitly: as the real watch-streams.
    """
    _END = object()

    def __init__(self, *events: Any, listed: bool = True) -> None:
        super().__init__()
        self._queue: asyncio.Queue[Any] = asyncio.Queue()
        for event in events:
            self._queue.put_nowait(event)
        if listed:
            self._queue.put_nowait(Bookmark.LISTED)

    def feed(self, *events: Any) -> None:
        for event in events:
            self._queue.put_nowait(event)

    def close(self) -> None:
        self._queue.put_nowait(self._END)

    async def __aiter__(self) -> AsyncIterator[Any]:
        while True:
            event = await self._queue.get()
            if event is self._END:
                return
            yield event


@pytest.fixture()
def stream_factory():
    return FakeStream


#
# Helpers for the logging checks.
#

@pytest.fixture()
def logstream(caplog):
    """ Prefixing is done at the final output. We have to intercept it. """

    logger = logging.getLogger()
    handlers = list(logger.handlers)

    # Setup all log levels of sub-libraries. A side-effect: the handlers are also added.
    configure(verbose=True)

    # Remove any stream handlers added in the step above. But keep the caplog's handlers.
    for handler in list(logger.handlers):
        if isinstance(handler, logging.StreamHandler) and handler.stream is sys.stderr:
            logger.removeHandler(handler)

    # Inject our stream-intercepting handler.
    stream = io.StringIO()
    handler = logging.StreamHandler(stream)
    formatter = ObjectPrefixingTextFormatter('prefix %(message)s')
    handler.setFormatter(formatter)
    logger.addHandler(handler)

    try:
        with caplog.at_level(logging.DEBUG):
            yield stream
    finally:
        logger.removeHandler(handler)
        logger.handlers[:] = handlers  # undo `configure()`


@pytest.fixture()
def assert_logs(caplog):
    """
    A function to assert the logs are present (by pattern).

    The listed message patterns MUST be present, in the order specified.
    Some other log messages can also be present, but they are ignored.
    """
    def assert_logs_fn(patterns, prohibited=[], strict=False):
        __traceback_hide__ = True
        remaining_patterns = list(patterns)
        for message in caplog.messages:
            # The expected pattern is at position 0.
            # Looking-ahead: if one of the following patterns matches, while the
            # 0th does not, then the log message is missing, and we fail the test.
            for idx, pattern in enumerate(remaining_patterns):
                m = re.search(pattern, message)
                if m:
                    if idx == 0:
                        remaining_patterns[:1] = []
                        break  # out of `remaining_patterns` cycle
                    else:
                        skipped_patterns = remaining_patterns[:idx]
                        raise AssertionError(f"Few patterns were skipped: {skipped_patterns!r}")
                elif strict:
                    raise AssertionError(f"Unexpected log message: {message!r}")

            # Check that the prohibited patterns do not appear in any message.
            for pattern in prohibited:
                m = re.search(pattern, message)
                if m:
                    raise AssertionError(f"Prohibited log pattern found: {message!r} ~ {pattern!r}")

        # If all patterns have been matched in order, we are done.
        # if some are left, but the messages are over, then we fail.
        if remaining_patterns:
            raise AssertionError(f"Few patterns were missed: {remaining_patterns!r}")

    return assert_logs_fn
