"""
A controller: one parent kind, one dependent kind, one queue, one reconciler.

The controller does not own the informers: several controllers can share
the same informer (e.g. of the dependents, if they are owned by different
parent kinds), and the informers can have other consumers. The informers
are started by whoever creates them: usually by :func:`shimmer.operator`.

The lifecycle of a controller is:

* Registration: the event handlers are subscribed to both informers.
* Syncing: no dispatching until both informers have listed their objects.
* Dispatching: the workers reconcile the queued parents until stopped.
* Exiting: the queue is shut down, the workers finish what is ready,
  and are cancelled if they do not do so in time.
"""
import asyncio
import logging
from collections.abc import Sequence
from typing import NamedTuple

from shimmer._cogs.aiokits import aioflags, aiotasks
from shimmer._cogs.configs import configuration
from shimmer._core.actions import errors, invocation, throttlers
from shimmer._core.engines import caching
from shimmer._core.reactor import dispatching, queueing, routing, syncing

logger = logging.getLogger(__name__)


class Registration(NamedTuple):
    queue: queueing.WorkQueue
    must_sync: Sequence[syncing.ReadinessCheck]


class Controller:

    def __init__(
            self,
            *,
            name: str,
            parent_kind: str,
            parents: caching.Informer,
            dependents: caching.Informer,
            reconciler: invocation.Invokable,
            dependent_kind: str | None = None,
            settings: configuration.ControllerSettings | None = None,
    ) -> None:
        super().__init__()
        self.name = name
        self.parent_kind = parent_kind
        self.dependent_kind = dependent_kind if dependent_kind is not None else dependents.kind
        self.parents = parents
        self.dependents = dependents
        self.reconciler = reconciler
        self.settings = settings if settings is not None else configuration.ControllerSettings()
        self.queue = queueing.WorkQueue(name=name, backoff=throttlers.ExponentialBackoff(
            base_delay=self.settings.backoff.base_delay,
            max_delay=self.settings.backoff.max_delay,
        ))
        self.router = routing.EventRouter(
            queue=self.queue,
            parent_kind=self.parent_kind,
            dependent_kind=self.dependent_kind,
        )
        self.stopped = asyncio.Event()
        self._registration: Registration | None = None

    def __repr__(self) -> str:
        return f'<{self.__class__.__name__}: {self.name}>'

    def is_synced(self) -> bool:
        return self.parents.cache.has_synced() and self.dependents.cache.has_synced()

    def register(self) -> Registration:
        """
        Subscribe to the events of the parents and the dependents.

        Returns the queue to which the parents' keys are routed, and the checks
        which must be satisfied before the queue is processed. The registration
        is done only once; the repeated calls return the same registration.
        """
        if self._registration is not None:
            return self._registration

        try:
            self.parents.add_handler(self.router.on_parent_event)
            self.dependents.add_handler(self.router.on_dependent_event)
        except errors.SubscriptionError:
            raise
        except Exception as e:
            raise errors.SubscriptionError(f"Controller {self.name} cannot subscribe: {e}") from e

        self._registration = Registration(
            queue=self.queue,
            must_sync=[self.parents.cache.synced, self.dependents.cache.synced],
        )
        logger.debug(f"Controller {self.name} is registered for {self.parent_kind} "
                     f"and {self.dependent_kind}.")
        return self._registration

    async def run(
            self,
            *,
            stop_flag: aioflags.Flag | None = None,
    ) -> None:
        """
        Register, wait for the caches, and reconcile until stopped or cancelled.
        """
        registration = self.register()
        try:
            synced = await syncing.wait_for_sync(
                registration.must_sync,
                timeout=self.settings.syncing.timeout,
                poll_interval=self.settings.syncing.poll_interval,
                stop_flag=stop_flag,
            )
            if not synced and aioflags.check_flag(stop_flag):
                logger.info(f"Controller {self.name} is stopped before the caches are synced.")
            elif not synced:
                raise errors.CacheSyncError(f"Controller {self.name} has failed to sync the caches "
                                            f"in {self.settings.syncing.timeout} seconds.")
            else:
                await self._dispatch(registration, stop_flag=stop_flag)
        finally:
            # Whatever the reason of exit, no new keys must be accepted for this controller.
            self.stopped.set()
            registration.queue.shut_down()

    async def _dispatch(
            self,
            registration: Registration,
            *,
            stop_flag: aioflags.Flag | None,
    ) -> None:
        logger.info(f"Controller {self.name} is started with "
                    f"{self.settings.queueing.workers} workers.")
        workers = asyncio.create_task(
            name=f"workers of {self.name}",
            coro=dispatching.run_workers(
                workers=self.settings.queueing.workers,
                queue=registration.queue,
                lister=self.parents.cache.get,
                reconciler=self.reconciler,
                stopped=self.stopped,
                kind=self.parent_kind,
                controller=self.name,
            ))
        stopper = asyncio.create_task(aioflags.wait_flag(stop_flag), name=f"stopper of {self.name}")
        try:
            await aiotasks.wait({workers, stopper}, return_when=asyncio.FIRST_COMPLETED)
        finally:
            self.stopped.set()
            registration.queue.shut_down()
            await aiotasks.stop({stopper}, title="stopper", logger=logger)
            _, pending = await aiotasks.wait({workers}, timeout=self.settings.queueing.exit_timeout)
            await aiotasks.stop(pending, title="workers", logger=logger)
            logger.info(f"Controller {self.name} is stopped.")

        aiotasks.reraise({workers})
