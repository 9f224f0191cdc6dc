"""
Change-events as seen by the routers: validated once at the stream boundary.

The raw watch-events are loosely typed dicts, which can contain anything:
e.g. a broken payload, an unexpected event type, or an object of another kind
(if the stream is misconfigured). Instead of checking the types on every use,
the events are parsed into a tagged union of an event type and an object body
once, when they leave the stream. Everything beyond this point can rely on the
objects being of the expected kind and having at least a name.
"""
import collections.abc
import dataclasses
import enum
from typing import Any

from shimmer._cogs.structs import bodies, references


class MalformedEventError(ValueError):
    """
    Raised when a raw event cannot be interpreted as a change of an object.

    Such events are reported and dropped, never queued, and never fatal.
    """


class Bookmark(enum.Enum):
    """ Special marks sent in the stream among raw events. """
    LISTED = enum.auto()  # the initial listing is over, now streaming.


class EventType(enum.Enum):
    ADDED = 'ADDED'
    MODIFIED = 'MODIFIED'
    DELETED = 'DELETED'


@dataclasses.dataclass(frozen=True)
class ChangeEvent:
    type: EventType
    body: bodies.Body

    @property
    def key(self) -> references.WorkKey:
        return bodies.get_key(self.body)


def parse_event(raw: Any, *, kind: str | None = None) -> ChangeEvent:
    """
    Validate a raw event and convert it to a typed change-event.

    If the kind is specified, the object must be of that kind (if it declares
    its kind at all: the kinds are often omitted in the list/watch responses).
    """
    if isinstance(raw, ChangeEvent):
        event = raw
    elif not isinstance(raw, collections.abc.Mapping):
        raise MalformedEventError(f"Not an event: {raw!r}")
    else:
        try:
            etype = EventType(raw.get('type'))
        except ValueError:
            raise MalformedEventError(f"Unsupported event type: {raw.get('type')!r}") from None

        obj = raw.get('object')
        if not isinstance(obj, collections.abc.Mapping):
            raise MalformedEventError(f"The event has no object: {raw!r}")
        if not isinstance(obj.get('metadata'), collections.abc.Mapping):
            raise MalformedEventError(f"The object has no metadata: {obj!r}")
        event = ChangeEvent(type=etype, body=bodies.Body(obj))

    if not isinstance(event.body.meta.name, str) or not event.body.meta.name:
        raise MalformedEventError(f"The object has no name: {event.body!r}")
    if kind is not None and event.body.kind is not None and event.body.kind != kind:
        raise MalformedEventError(f"Not a {kind} object: {event.body!r}")
    return event
