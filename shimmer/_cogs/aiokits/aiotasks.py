"""
Helpers for running the root tasks, the workers, and other background tasks.

Only the tasks are supported, not arbitrary futures or coroutines:
the helpers not only wait for the tasks, but also cancel them.
"""
import asyncio
from collections.abc import Collection, Coroutine
from typing import TYPE_CHECKING, Any

from shimmer._cogs.helpers import typedefs

# A workaround for a difference in tasks at runtime and type-checking time.
# Otherwise, at runtime: TypeError: 'type' object is not subscriptable.
if TYPE_CHECKING:
    Future = asyncio.Future[Any]
    Task = asyncio.Task[Any]
else:
    Future = asyncio.Future
    Task = asyncio.Task


async def guard(
        coro: Coroutine[Any, Any, Any],
        name: str,
        *,
        finishable: bool = False,
        logger: typedefs.Logger | None = None,
) -> None:
    """
    Run a root task, and report its failure or its unexpected exit.

    The root tasks run until cancelled, so the cancellation is not reported.
    Unless the task is finishable, its normal exit is reported as a warning:
    it stops all other root tasks, and the humans should know why.
    """
    try:
        await coro
    except Exception as e:
        if logger is not None:
            logger.exception(f"{name.capitalize()} has failed: {e}")
        raise
    else:
        if logger is not None and not finishable:
            logger.warning(f"{name.capitalize()} has exited unexpectedly.")


def create_guarded_task(
        coro: Coroutine[Any, Any, Any],
        name: str,
        *,
        finishable: bool = False,
        logger: typedefs.Logger | None = None,
) -> Task:
    """ Start a named root task. See :func:`guard` for what is reported. """
    return asyncio.create_task(
        guard(coro, name, finishable=finishable, logger=logger),
        name=name,
    )


async def wait(
        tasks: Collection[Task],
        *,
        timeout: float | None = None,
        return_when: Any = asyncio.ALL_COMPLETED,
) -> tuple[set[Task], set[Task]]:
    """ Same as :func:`asyncio.wait`, but an empty collection is not an error. """
    if not tasks:
        return set(), set()
    return await asyncio.wait(tasks, timeout=timeout, return_when=return_when)


async def stop(
        tasks: Collection[Task],
        *,
        title: str,
        interval: float | None = None,
        logger: typedefs.Logger | None = None,
) -> set[Task]:
    """
    Cancel the tasks and wait until all of them exit, however long it takes.

    With an interval, the tasks that ignore the cancellation for too long
    (e.g. the sync reconcilers in the threads) are reported on every interval.
    If the stopping itself is cancelled, the remaining tasks are abandoned.
    """
    for task in tasks:
        task.cancel()

    done: set[Task] = set()
    pending: set[Task] = set(tasks)
    while pending:
        try:
            newly_done, pending = await wait(pending, timeout=interval)
        except asyncio.CancelledError:
            if logger is not None:
                abandoned = {task for task in tasks if not task.done()}
                logger.debug(f"{title.capitalize()} tasks are abandoned: {abandoned!r}")
            raise
        done |= newly_done
        if pending and logger is not None:
            logger.debug(f"{title.capitalize()} tasks are still stopping: {pending!r}")

    if done and logger is not None:
        logger.debug(f"{title.capitalize()} tasks are stopped: {len(done)} in total.")
    return done


def reraise(
        tasks: Collection[Task],
) -> None:
    """ Re-raise the error of the first failed task, if any; ignore the cancelled ones. """
    for task in tasks:
        if task.done() and not task.cancelled():
            exc = task.exception()
            if exc is not None:
                raise exc


def all_tasks(
        *,
        ignored: Collection[Task] = frozenset(),
) -> set[Task]:
    """
    All tasks of the running loop except the current one and the ignored ones.

    The ignored tasks are usually those that existed before the startup,
    so that only the tasks spawned since then are returned.
    """
    current_task = asyncio.current_task()
    return {task for task in asyncio.all_tasks()
            if task is not current_task and task not in ignored}
