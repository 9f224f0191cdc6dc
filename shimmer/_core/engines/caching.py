"""
In-memory informers: watch-streams fanned out to a cache and to the handlers.

An informer consumes one stream of raw events of one resource kind
(as produced by the watch-requests: first the initial listing of all objects
as ``ADDED`` events, then a bookmark, then the live changes).
Every event is first applied to the informer's cache, and only then
is given to the subscribed handlers -- so that the handlers and whatever
they trigger see the cache at least as fresh as the event itself.

The cache is marked as synced when the initial listing is over
(:attr:`Bookmark.LISTED`), or when a finite stream is depleted.
Until then, the cache can lack some of the existing objects,
and the decisions based on it can be wrong (e.g. "the object is absent").

The transport of the events is not the concern of the informers:
any async iterable will do, e.g. a real watch-stream or a test fixture.
"""
import logging
from collections.abc import AsyncIterable, Callable, Iterator
from typing import Any

from shimmer._cogs.aiokits import aiotoggles
from shimmer._cogs.structs import bodies, events, references
from shimmer._core.actions import errors

logger = logging.getLogger(__name__)

EventHandler = Callable[[Any], None]


class ObjectCache:
    """
    The latest known state of all objects of one resource kind, by their keys.
    """

    def __init__(self, *, kind: str | None = None) -> None:
        super().__init__()
        self.kind = kind
        self.synced = aiotoggles.Toggle(name=f'{kind or "objects"} cache synced')
        self._objects: dict[references.WorkKey, bodies.Body] = {}

    def __repr__(self) -> str:
        return f'<{self.__class__.__name__}: {self.kind}: {len(self._objects)} objects>'

    def __len__(self) -> int:
        return len(self._objects)

    def __iter__(self) -> Iterator[references.WorkKey]:
        return iter(list(self._objects))

    def __contains__(self, key: object) -> bool:
        return key in self._objects

    def get(self, namespace: str | None, name: str) -> bodies.Body | None:
        return self._objects.get(references.make_key(namespace, name))

    def has_synced(self) -> bool:
        return self.synced.is_on()

    def apply(self, event: events.ChangeEvent) -> None:
        if event.type is events.EventType.DELETED:
            self._objects.pop(event.key, None)
        else:
            self._objects[event.key] = event.body


class Informer:

    def __init__(
            self,
            *,
            kind: str,
            source: AsyncIterable[Any],
    ) -> None:
        super().__init__()
        self.kind = kind
        self.cache = ObjectCache(kind=kind)
        self._source = source
        self._handlers: list[EventHandler] = []
        self._started = False
        self._closed = False

    def __repr__(self) -> str:
        return f'<{self.__class__.__name__}: {self.kind}>'

    def add_handler(self, handler: EventHandler) -> None:
        """
        Subscribe to the events of this informer.

        If the informer is already streaming, the handler first gets all
        the currently cached objects as ``ADDED`` events, so that it misses
        nothing that the earlier handlers have already seen.
        """
        if self._closed:
            raise errors.SubscriptionError(f"Cannot subscribe to a closed informer of {self.kind}.")
        self._handlers.append(handler)
        if self._started:
            for key in self.cache:
                body = self.cache.get(key.namespace, key.name)
                if body is not None:
                    self._notify(handler, {'type': 'ADDED', 'object': body.raw})

    async def run(self) -> None:
        """
        Consume the stream until it is depleted or until the task is cancelled.
        """
        if self._started or self._closed:
            raise RuntimeError(f"The informer of {self.kind} can be started only once.")
        self._started = True
        try:
            async for raw_event in self._source:
                if raw_event is events.Bookmark.LISTED:
                    logger.debug(f"The initial listing of {self.kind} is over.")
                    await self.cache.synced.turn_to(True)
                    continue

                # Malformed events are not cached, but still given to the handlers to report them.
                try:
                    event = events.parse_event(raw_event, kind=self.kind)
                except events.MalformedEventError:
                    pass
                else:
                    self.cache.apply(event)

                for handler in list(self._handlers):
                    self._notify(handler, raw_event)

            # A finite stream is fully listed by definition (as in tests or one-time listings).
            await self.cache.synced.turn_to(True)
        finally:
            self._closed = True

    def _notify(self, handler: EventHandler, raw_event: Any) -> None:
        try:
            handler(raw_event)
        except Exception as e:
            errors.report_error(e, f"A handler of {self.kind} events has failed")
