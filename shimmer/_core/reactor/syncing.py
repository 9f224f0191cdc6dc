"""
The startup barrier: no dispatching until the caches are populated.

If the workers start before the caches have listed all the existing objects,
the parents can be seen as absent, and the reconciliation would consider them
deleted. Or the dependents can be seen as absent, and would be re-created
as duplicates. So, the dispatching waits until all the caches are synced.
"""
import asyncio
import logging
from collections.abc import Callable, Iterable
from typing import Union

from shimmer._cogs.aiokits import aioflags, aiotasks, aiotoggles

logger = logging.getLogger(__name__)

# Either a toggle, which notifies on changes, or a plain predicate, which is polled.
ReadinessCheck = Union[aiotoggles.Toggle, Callable[[], bool]]


async def wait_for_sync(
        checks: Iterable[ReadinessCheck],
        *,
        timeout: float | None = None,
        poll_interval: float = 0.1,
        stop_flag: aioflags.Flag | None = None,
) -> bool:
    """
    Wait until all the readiness checks are satisfied.

    Returns ``True`` if all of them are satisfied, or ``False`` if the timeout
    is reached or the stop-flag is raised before that. The errors of the checks
    are escalated as is.
    """
    checks = list(checks)
    waiter = asyncio.create_task(_wait_all(checks, poll_interval=poll_interval),
                                 name='cache-sync waiter')
    stopper = asyncio.create_task(aioflags.wait_flag(stop_flag), name='cache-sync stopper')
    try:
        await aiotasks.wait({waiter, stopper}, timeout=timeout, return_when=asyncio.FIRST_COMPLETED)
    finally:
        await aiotasks.stop({waiter, stopper}, title="cache-sync", logger=logger)

    if waiter.done() and not waiter.cancelled():
        waiter.result()  # escalate the errors, if any.
        return True
    return False


async def _wait_all(checks: list[ReadinessCheck], *, poll_interval: float) -> None:
    for check in checks:
        if isinstance(check, aiotoggles.Toggle):
            await check.wait_for(True)
        else:
            while not check():
                await asyncio.sleep(poll_interval)
