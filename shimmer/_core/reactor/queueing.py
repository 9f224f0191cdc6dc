"""
The deduplicating, delaying, rate-limited queue of the parents to reconcile.

The queue does not contain events, only the keys of the parents. The events
themselves do not matter: the reconciliation is level-triggered, i.e. it looks
at the current state of the parent and its dependents, not at what has changed.
So, many events of the same parent collapse into one key while it is pending.

The keys pass through these states::

    (absent) --add()--> ready --get()--> processing --done()-------> (absent)
        ^                 ^                   |    \\
        |                 |                   |     `--add_rate_limited()--> delayed --> ready
        |                 `-- parked <--add()-'
        |                    (pending while processing; ready at done())
        `-- add_after() --> delayed --(timer)--> ready

A key is never given to two workers at the same time: if a key is re-added
while it is being processed (e.g. a fresh event has arrived), it is parked,
and becomes ready only when its current processing is over. This ensures that
one parent is never reconciled concurrently by two workers of the same queue.

The queue is coroutine-safe within one event loop: all mutations are done
synchronously, with no awaits in between. To add keys from other threads,
use ``loop.call_soon_threadsafe(queue.add, key)``.
"""
import asyncio
import collections
import logging
from collections.abc import Set

from shimmer._cogs.structs import references
from shimmer._core.actions import throttlers

logger = logging.getLogger(__name__)

DEFAULT_BASE_DELAY = 5.0
DEFAULT_MAX_DELAY = 5 * 60.0


class QueueShutDown(Exception):
    """ Raised to the getters when the queue is shut down and depleted. """


class WorkQueue:

    def __init__(
            self,
            *,
            name: str | None = None,
            backoff: throttlers.ExponentialBackoff | None = None,
    ) -> None:
        super().__init__()
        self._name = name
        self._backoff = backoff if backoff is not None else throttlers.ExponentialBackoff(
            base_delay=DEFAULT_BASE_DELAY, max_delay=DEFAULT_MAX_DELAY)
        self._ready: collections.deque[references.WorkKey] = collections.deque()
        self._pending: set[references.WorkKey] = set()  # ready or parked
        self._processing: set[references.WorkKey] = set()
        self._delayed: dict[references.WorkKey, asyncio.TimerHandle] = {}
        self._getters: collections.deque[asyncio.Future[None]] = collections.deque()
        self._shutting_down = False

    def __repr__(self) -> str:
        name = f'{self._name}: ' if self._name else ''
        return (f'<{self.__class__.__name__}: {name}'
                f'ready={len(self._ready)}, processing={len(self._processing)}, '
                f'delayed={len(self._delayed)}>')

    def __len__(self) -> int:
        """ The number of keys that can be taken by the workers right now. """
        return len(self._ready)

    @property
    def name(self) -> str | None:
        return self._name

    @property
    def pending(self) -> Set[references.WorkKey]:
        return frozenset(self._pending)

    @property
    def processing(self) -> Set[references.WorkKey]:
        return frozenset(self._processing)

    @property
    def delayed(self) -> Set[references.WorkKey]:
        return frozenset(self._delayed)

    def shutting_down(self) -> bool:
        return self._shutting_down

    def add(self, key: references.WorkKey) -> None:
        """
        Mark the key for processing, unless it is already pending.

        The keys are given to the workers in the order of their first addition.
        """
        if self._shutting_down:
            return
        if key in self._pending:
            return
        self._pending.add(key)
        if key in self._processing:
            return  # parked until done; see _release().
        self._ready.append(key)
        self._wakeup_next()

    def add_after(self, key: references.WorkKey, delay: float) -> None:
        """
        Add the key after some delay, unless it is already scheduled to be added earlier.
        """
        if self._shutting_down:
            return
        if delay <= 0:
            self.add(key)
            return

        loop = asyncio.get_running_loop()
        when = loop.time() + delay
        existing = self._delayed.get(key)
        if existing is not None:
            if existing.when() <= when:
                return
            existing.cancel()
        self._delayed[key] = loop.call_at(when, self._add_delayed, key)

    def add_rate_limited(self, key: references.WorkKey) -> None:
        """
        Finish the key's processing as failed, and re-add it after a backoff delay.

        Every consecutive failure of the same key increases the delay.
        If the key is re-added by new events meanwhile, it is processed earlier.
        """
        delay = self._backoff.when(key)
        logger.debug(f"Retrying {key} in {delay} seconds.")
        self._release(key)
        self.add_after(key, delay)

    def retry_after(self, key: references.WorkKey, delay: float) -> None:
        """
        Finish the key's processing as failed, and re-add it after an explicit delay.

        Unlike :meth:`add_rate_limited`, the backoff is neither increased nor reset.
        """
        self._release(key)
        self.add_after(key, delay)

    def done(self, key: references.WorkKey) -> None:
        """
        Finish the key's processing as succeeded, and reset its backoff.
        """
        self._backoff.forget(key)
        self._release(key)

    def forget(self, key: references.WorkKey) -> None:
        """ Reset the key's backoff, but do not affect its processing or queueing. """
        self._backoff.forget(key)

    def num_requeues(self, key: references.WorkKey) -> int:
        return self._backoff.retries(key)

    async def get(self) -> references.WorkKey:
        """
        Take the next ready key for processing, waiting for one if necessary.

        After the shutdown, the remaining ready keys are still given out,
        and only then :class:`QueueShutDown` is raised.
        """
        loop = asyncio.get_running_loop()
        while not self._ready and not self._shutting_down:
            getter: asyncio.Future[None] = loop.create_future()
            self._getters.append(getter)
            try:
                await getter
            except asyncio.CancelledError:
                getter.cancel()  # just in case the getter was not done yet.
                try:
                    self._getters.remove(getter)
                except ValueError:
                    pass  # it has been woken up and removed already.

                # If this getter was woken up but cancelled, pass the wake-up to the next one.
                if self._ready and not getter.cancelled():
                    self._wakeup_next()
                raise

        if not self._ready:
            raise QueueShutDown(f"The queue is shut down: {self!r}")

        key = self._ready.popleft()
        self._pending.discard(key)
        self._processing.add(key)
        return key

    def shut_down(self) -> None:
        """
        Stop accepting new keys, and release the getters once the queue is depleted.

        The keys being processed at the moment are not affected: the workers
        are expected to finish them. The delayed keys are dropped.
        """
        self._shutting_down = True
        for handle in self._delayed.values():
            handle.cancel()
        self._delayed.clear()
        while self._getters:
            getter = self._getters.popleft()
            if not getter.done():
                getter.set_result(None)

    def _release(self, key: references.WorkKey) -> None:
        if key in self._processing:
            self._processing.discard(key)
            if key in self._pending:
                self._ready.append(key)
                self._wakeup_next()

    def _add_delayed(self, key: references.WorkKey) -> None:
        self._delayed.pop(key, None)
        self.add(key)

    def _wakeup_next(self) -> None:
        while self._getters:
            getter = self._getters.popleft()
            if not getter.done():
                getter.set_result(None)
                break
