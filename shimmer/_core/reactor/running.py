import asyncio
import logging
import signal
import threading
from collections.abc import Collection, Iterable

from shimmer._cogs.aiokits import aioflags, aiotasks
from shimmer._core.engines import caching, probing
from shimmer._core.reactor import controlling, syncing

logger = logging.getLogger(__name__)


def run(
        controllers: Iterable[controlling.Controller],
        *,
        loop: asyncio.AbstractEventLoop | None = None,
        liveness_endpoint: str | None = None,
        stop_flag: aioflags.Flag | None = None,
        ready_flag: aioflags.Flag | None = None,
) -> None:
    """
    Run the controllers synchronously, until stopped by a signal or a stop-flag.

    This function should be used to run the controllers in normal sync mode.
    """
    coro = operator(
        controllers,
        liveness_endpoint=liveness_endpoint,
        stop_flag=stop_flag,
        ready_flag=ready_flag,
    )
    try:
        if loop is not None:
            loop.run_until_complete(coro)
        else:
            asyncio.run(coro)
    except asyncio.CancelledError:
        pass


async def operator(
        controllers: Iterable[controlling.Controller],
        *,
        liveness_endpoint: str | None = None,
        stop_flag: aioflags.Flag | None = None,
        ready_flag: aioflags.Flag | None = None,
) -> None:
    """
    Run the controllers asynchronously.

    This function should be used to run the controllers in an asyncio event-loop
    if the process is orchestrated explicitly and manually.

    It is efficiently `spawn_tasks` + `run_tasks` with some safety.
    """
    existing_tasks = aiotasks.all_tasks()
    operator_tasks = await spawn_tasks(
        controllers,
        liveness_endpoint=liveness_endpoint,
        stop_flag=stop_flag,
        ready_flag=ready_flag,
    )
    await run_tasks(operator_tasks, ignored=existing_tasks)


async def spawn_tasks(
        controllers: Iterable[controlling.Controller],
        *,
        liveness_endpoint: str | None = None,
        stop_flag: aioflags.Flag | None = None,
        ready_flag: aioflags.Flag | None = None,
) -> Collection[aiotasks.Task]:
    """
    Spawn all the tasks needed to run the controllers.

    The tasks are properly inter-connected with the synchronisation primitives.
    """
    loop = asyncio.get_running_loop()
    controllers = list(controllers)
    names = [controller.name for controller in controllers]
    duplicates = sorted({name for name in names if names.count(name) > 1})
    if duplicates:
        raise ValueError(f"The controllers' names must be unique; duplicates: {duplicates!r}")

    # The informers can be shared by several controllers, but must be started only once.
    informers: list[caching.Informer] = []
    for controller in controllers:
        for informer in [controller.parents, controller.dependents]:
            if not any(informer is known for known in informers):
                informers.append(informer)

    # All the handlers must be subscribed before the informers start streaming.
    for controller in controllers:
        controller.register()

    # The signal flag is resolved on a SIGINT/SIGTERM, the stop-flag is given from outside.
    signal_flag: aiotasks.Future = loop.create_future()
    tasks: list[aiotasks.Task] = []

    tasks.append(aiotasks.create_guarded_task(
        name="stop-flag checker", finishable=True,
        coro=_stop_flag_checker(signal_flag=signal_flag, stop_flag=stop_flag)))

    tasks.append(aiotasks.create_guarded_task(
        name="informers", logger=logger,
        coro=_informers(informers)))

    tasks.append(aiotasks.create_guarded_task(
        name="readiness notifier", logger=logger,
        coro=_readiness_notifier(controllers, ready_flag=ready_flag)))

    for controller in controllers:
        tasks.append(aiotasks.create_guarded_task(
            name=f"controller {controller.name}", logger=logger,
            coro=controller.run()))

    if liveness_endpoint:
        tasks.append(aiotasks.create_guarded_task(
            name="health reporter", logger=logger,
            coro=probing.health_reporter(liveness_endpoint, controllers=controllers)))

    # Ensure that all guarded tasks got control for a moment to enter the guard.
    await asyncio.sleep(0)

    # On Ctrl+C or pod termination, cancel all tasks gracefully.
    if threading.current_thread() is threading.main_thread():
        # Handle NotImplementedError when ran on Windows since asyncio only supports Unix signals
        try:
            loop.add_signal_handler(signal.SIGINT, _resolve, signal_flag, signal.SIGINT)
            loop.add_signal_handler(signal.SIGTERM, _resolve, signal_flag, signal.SIGTERM)
        except NotImplementedError:
            logger.warning("OS signals are ignored: can't add signal handler in Windows.")
    else:
        logger.warning("OS signals are ignored: running not in the main thread.")

    return tasks


async def run_tasks(
        root_tasks: Collection[aiotasks.Task],
        *,
        ignored: Collection[aiotasks.Task] = frozenset(),
) -> None:
    """
    Orchestrate the tasks and terminate them gracefully when needed.

    The root tasks are expected to run forever. Their number is limited. Once
    any of them exits, the whole process and all other root tasks should exit.

    The root tasks, in turn, can spawn multiple sub-tasks of various purposes:
    e.g. the workers of the controllers, or the synchronous reconcilers.

    The hung tasks are those that were spawned during the runtime, and were
    not cancelled/exited on the root tasks termination. They are given
    some extra time to finish, after which they are forcedly terminated too.

    .. note::
        Every task created after the startup is assumed to be a task or
        a sub-task of the controllers, even if it was created by other means.
        Only the tasks that existed before the startup are ignored
        (for example, those that spawned the controllers themselves).
    """

    # Run the infinite tasks until one of them fails/exits (they never exit normally).
    # If the process is cancelled, propagate the cancellation to all the sub-tasks.
    try:
        root_done, root_pending = await aiotasks.wait(root_tasks, return_when=asyncio.FIRST_COMPLETED)
    except asyncio.CancelledError:
        await aiotasks.stop(root_tasks, title="Root", logger=logger, interval=10)
        hung_tasks = aiotasks.all_tasks(ignored=ignored)
        await aiotasks.stop(hung_tasks, title="Hung", logger=logger, interval=1)
        raise

    # If intact, but one of the root tasks has exited (successfully or not),
    # cancel all the remaining root tasks, and gracefully exit other spawned sub-tasks.
    root_cancelled = await aiotasks.stop(root_pending, title="Root", logger=logger)

    # After the root tasks are all gone, cancel any spawned sub-tasks (e.g. reconcilers).
    hung_tasks = aiotasks.all_tasks(ignored=ignored)
    try:
        hung_done, hung_pending = await aiotasks.wait(hung_tasks, timeout=5)
    except asyncio.CancelledError:
        await aiotasks.stop(hung_tasks, title="Hung", logger=logger, interval=1)
        raise

    # If intact, but the timeout is reached, forcedly cancel the sub-tasks.
    hung_cancelled = await aiotasks.stop(hung_pending, title="Hung", logger=logger, interval=1)

    # If succeeded or if cancellation is silenced, re-raise from failed tasks (if any).
    aiotasks.reraise(root_done | root_cancelled | hung_done | hung_cancelled)


def _resolve(future: aiotasks.Future, result: object) -> None:
    # A second signal while stopping must not fail the loop's signal handling.
    if not future.done():
        future.set_result(result)


async def _stop_flag_checker(
        signal_flag: aiotasks.Future,
        stop_flag: aioflags.Flag | None,
) -> None:
    """
    A top-level task for external stopping by setting a stop-flag. Once set,
    this task will exit, and thus all other top-level tasks will be cancelled.
    """

    # Selects the flags to be awaited (if set).
    flags: list[aiotasks.Future] = [signal_flag]
    if stop_flag is not None:
        flags.append(asyncio.create_task(aioflags.wait_flag(stop_flag), name="stop-flag waiter"))

    # Wait until one of the stoppers is set/raised.
    try:
        done, pending = await asyncio.wait(flags, return_when=asyncio.FIRST_COMPLETED)
        future = done.pop()
        result = await future
    except asyncio.CancelledError:
        pass  # the controllers are stopping for any other reason
    else:
        if result is None or result is True:
            logger.info("Stop-flag is raised. Controllers are stopping.")
        elif isinstance(result, signal.Signals):
            logger.info("Signal %s is received. Controllers are stopping.", result.name)
        else:
            logger.info("Stop-flag is set to %r. Controllers are stopping.", result)


async def _informers(
        informers: Collection[caching.Informer],
) -> None:
    """
    Stream the events of all the informers, and sleep after the finite ones end.

    A failure of any informer fails the whole root task at once: its cache will
    never be synced or updated, so the controllers must not keep waiting for it.
    """
    tasks = [asyncio.create_task(informer.run(), name=f"informer of {informer.kind}")
             for informer in informers]
    try:
        done, _ = await aiotasks.wait(tasks, return_when=asyncio.FIRST_EXCEPTION)
        aiotasks.reraise(done)

        # Even if the streams are depleted, the caches are still in use by the controllers.
        await asyncio.Event().wait()
    finally:
        await aiotasks.stop(tasks, title="informer", logger=logger)


async def _readiness_notifier(
        controllers: Collection[controlling.Controller],
        *,
        ready_flag: aioflags.Flag | None,
) -> None:
    """
    Raise the ready-flag once all the controllers' caches are synced.
    """
    checks: list[syncing.ReadinessCheck] = [
        check for controller in controllers for check in controller.register().must_sync
    ]
    await syncing.wait_for_sync(checks)
    logger.debug("All the caches are synced.")
    await aioflags.raise_flag(ready_flag)

    # Sleep forever: exiting would stop the other root tasks.
    await asyncio.Event().wait()
