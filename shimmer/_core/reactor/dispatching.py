"""
The workers: taking the keys from the queue and reconciling the parents.

The workers do not get the parents' bodies from the queue: only the keys.
The bodies are looked up in the cache at the time of processing, so that
the reconciliation always sees the latest known state of the parent,
regardless of how long the key was waiting in the queue.

The cache can lag behind the writes just made by the reconciler itself.
This is an accepted window of staleness: the reconcilers must be idempotent
and tolerate seeing their own changes with a delay.
"""
import asyncio
import logging
from collections.abc import Callable
from typing import Protocol

from shimmer._cogs.aiokits import aiotasks
from shimmer._cogs.helpers import typedefs
from shimmer._cogs.structs import bodies, references
from shimmer._core.actions import errors, invocation, loggers
from shimmer._core.reactor import queueing

logger = logging.getLogger(__name__)

# A lookup of the parents by their namespace & name; None if absent.
Lister = Callable[[references.Namespace | None, references.Name], bodies.Body | None]


class Reconciler(Protocol):
    def __call__(
            self,
            *,
            parent: bodies.Body,
            key: references.WorkKey,
            logger: typedefs.Logger,
            stopped: asyncio.Event,
    ) -> invocation.SyncOrAsync[object | None]: ...


async def process_item(
        key: references.WorkKey,
        *,
        lister: Lister,
        reconciler: invocation.Invokable,
        stopped: asyncio.Event,
        logger: typedefs.Logger,
) -> None:
    """
    Reconcile one parent, unless it is absent or being deleted.

    Both absent and terminating parents are considered as successfully
    processed: there is nothing to reconcile for them. Especially, no new
    dependents should be created for a parent which is being deleted --
    they would race with the garbage collection of the parent's dependents.
    """
    parent = lister(key.namespace, key.name)
    if parent is None:
        logger.debug("The parent is absent. Nothing to reconcile.")
        return

    if bodies.is_terminating(parent):
        since = bodies.deletion_time(parent)
        when = f" since {since.isoformat()}" if since is not None else ""
        logger.debug(f"The parent is being deleted{when}. Skipping the reconciliation.")
        return

    await invocation.invoke(reconciler, kwargs=dict(
        parent=parent,
        key=key,
        logger=logger,
        stopped=stopped,
    ))


async def worker(
        *,
        queue: queueing.WorkQueue,
        lister: Lister,
        reconciler: invocation.Invokable,
        stopped: asyncio.Event,
        kind: str | None = None,
        controller: str | None = None,
) -> None:
    """
    A single worker: process the keys one by one until the queue is shut down.

    No error of the reconciliation stops the worker. The failed keys are retried
    with increasing delays, and are reset to the base delay on success.
    Only the queue's shutdown or the cancellation stops the worker.
    """
    while True:
        try:
            key = await queue.get()
        except queueing.QueueShutDown:
            break

        object_logger = loggers.ObjectLogger(key=key, kind=kind, controller=controller)
        try:
            await process_item(
                key,
                lister=lister,
                reconciler=reconciler,
                stopped=stopped,
                logger=object_logger,
            )
        except asyncio.CancelledError:
            queue.retry_after(key, 0)  # unknown outcome, not a failure: retry if the queue is alive.
            raise
        except errors.PermanentError as e:
            errors.report_error(e, "Reconciliation has failed permanently", logger=object_logger)
            queue.done(key)
        except errors.TemporaryError as e:
            if e.delay is None:
                errors.report_error(e, "Reconciliation has failed temporarily", logger=object_logger)
                queue.add_rate_limited(key)
            else:
                errors.report_error(e, f"Reconciliation has failed temporarily, "
                                       f"retrying in {e.delay} seconds", logger=object_logger)
                queue.retry_after(key, e.delay)
        except Exception as e:
            errors.report_error(e, "Reconciliation has failed", logger=object_logger)
            queue.add_rate_limited(key)
        else:
            object_logger.debug("Reconciliation has succeeded.")
            queue.done(key)


async def run_workers(
        *,
        workers: int,
        queue: queueing.WorkQueue,
        lister: Lister,
        reconciler: invocation.Invokable,
        stopped: asyncio.Event,
        kind: str | None = None,
        controller: str | None = None,
) -> None:
    """
    Run a fixed pool of workers until the queue is shut down and depleted.

    The workers share nothing but the queue, which ensures that no parent
    is reconciled by two workers at the same time.
    """
    if workers < 1:
        raise ValueError(f"At least one worker is needed, got {workers}.")

    tasks = [
        asyncio.create_task(
            name=f"worker {idx} of {controller or queue.name or 'a controller'}",
            coro=worker(
                queue=queue,
                lister=lister,
                reconciler=reconciler,
                stopped=stopped,
                kind=kind,
                controller=controller,
            ))
        for idx in range(workers)
    ]
    try:
        await aiotasks.wait(tasks)
        aiotasks.reraise(tasks)
    finally:
        await aiotasks.stop(tasks, title="worker", logger=logger)
