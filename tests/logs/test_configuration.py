import logging
from collections.abc import Collection

import pytest

from shimmer._core.actions.loggers import LogFormat, ObjectFormatter, ObjectJsonFormatter, \
                                          ObjectPrefixingJsonFormatter, \
                                          ObjectPrefixingTextFormatter, ObjectTextFormatter, \
                                          configure, make_formatter


@pytest.fixture(autouse=True)
def _clear_own_handlers():
    logger = logging.getLogger()
    logger.handlers[:] = [
        handler for handler in logger.handlers
        if not isinstance(handler, logging.StreamHandler) or
           not isinstance(handler.formatter, ObjectFormatter)
    ]
    original_handlers = logger.handlers[:]
    original_level = logger.level
    yield
    logger.handlers[:] = original_handlers
    logger.setLevel(original_level)


def _get_own_handlers(logger: logging.Logger) -> Collection[logging.Handler]:
    return [
        handler for handler in logger.handlers
        if isinstance(handler, logging.StreamHandler) and
           isinstance(handler.formatter, ObjectFormatter)
    ]


def test_own_formatter_is_used():
    configure()
    logger = logging.getLogger()
    own_handlers = _get_own_handlers(logger)
    assert len(own_handlers) == 1


def test_reconfiguration_replaces_own_handlers():
    configure()
    configure(log_format=LogFormat.JSON)
    logger = logging.getLogger()
    own_handlers = _get_own_handlers(logger)
    assert len(own_handlers) == 1
    assert isinstance(own_handlers[0].formatter, ObjectJsonFormatter)


@pytest.mark.parametrize('log_format', [LogFormat.FULL, LogFormat.PLAIN, '%(message)s'])
def test_formatter_nonprefixed_text(log_format):
    configure(log_format=log_format, log_prefix=False)
    logger = logging.getLogger()
    own_handlers = _get_own_handlers(logger)
    assert len(own_handlers) == 1
    assert type(own_handlers[0].formatter) is ObjectTextFormatter


@pytest.mark.parametrize('log_format', [LogFormat.FULL, LogFormat.PLAIN, '%(message)s'])
def test_formatter_prefixed_text(log_format):
    configure(log_format=log_format, log_prefix=True)
    logger = logging.getLogger()
    own_handlers = _get_own_handlers(logger)
    assert len(own_handlers) == 1
    assert type(own_handlers[0].formatter) is ObjectPrefixingTextFormatter


def test_formatter_nonprefixed_json():
    configure(log_format=LogFormat.JSON, log_prefix=False)
    logger = logging.getLogger()
    own_handlers = _get_own_handlers(logger)
    assert type(own_handlers[0].formatter) is ObjectJsonFormatter


def test_formatter_prefixed_json():
    configure(log_format=LogFormat.JSON, log_prefix=True)
    logger = logging.getLogger()
    own_handlers = _get_own_handlers(logger)
    assert type(own_handlers[0].formatter) is ObjectPrefixingJsonFormatter


@pytest.mark.parametrize('log_format, expected', [
    (LogFormat.FULL, ObjectPrefixingTextFormatter),
    (LogFormat.PLAIN, ObjectPrefixingTextFormatter),
    (LogFormat.JSON, ObjectJsonFormatter),
])
def test_prefixing_defaults_by_format(log_format, expected):
    assert type(make_formatter(log_format, log_prefix=None)) is expected


def test_unsupported_format():
    with pytest.raises(ValueError):
        make_formatter(123)  # type: ignore


@pytest.mark.parametrize('kwargs, level', [
    (dict(), logging.INFO),
    (dict(verbose=True), logging.DEBUG),
    (dict(debug=True), logging.DEBUG),
    (dict(quiet=True), logging.WARNING),
])
def test_levels(kwargs, level):
    configure(**kwargs)
    assert logging.getLogger().level == level


@pytest.mark.parametrize('name', ['asyncio', 'aiohttp.access'])
def test_library_loggers_are_silenced_unless_debug(name):
    configure(verbose=True)
    assert not logging.getLogger(name).propagate
    configure(debug=True)
    assert logging.getLogger(name).propagate
