"""
Errors of the framework and of the reconcilers, and the error-reporting sink.

Most errors never escalate: the reconciliation failures are retried,
the broken events are dropped. Still, they must be visible to the humans.
All such non-escalated errors go to :func:`report_error`, which logs them
to a dedicated logger (``shimmer.errors``) that can be routed elsewhere.

Only the startup errors (subscriptions, cache syncing) are fatal,
and only to the controller which fails, not to the whole process.
"""
import logging

from shimmer._cogs.helpers import typedefs

errors_logger = logging.getLogger('shimmer.errors')


class ShimmerError(Exception):
    """ A base class for the framework's own errors. """


class SubscriptionError(ShimmerError):
    """ Raised when the controller's handlers cannot be subscribed to the streams. """


class CacheSyncError(ShimmerError):
    """ Raised when the caches are not populated in time, or when stopped before that. """


class PermanentError(Exception):
    """ A fatal reconciliation error, the retries are useless until the parent changes. """


class TemporaryError(Exception):
    """
    A potentially recoverable error, should be retried after a specific delay.

    If the delay is not specified, the regular per-parent backoff is used,
    the same as for any arbitrary exception.
    """
    def __init__(
            self,
            __msg: str | None = None,
            delay: float | None = None,
    ) -> None:
        super().__init__(__msg)
        self.delay = delay


def report_error(
        exc: BaseException,
        message: str | None = None,
        *,
        logger: typedefs.Logger | None = None,
) -> None:
    """
    Report an error that is not escalated anywhere: e.g. retried or dropped.
    """
    text = f"{message}: {exc}" if message else f"{exc}"
    (logger if logger is not None else errors_logger).error(text, exc_info=exc)
