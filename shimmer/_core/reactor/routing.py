"""
Translation of the change-events of two resource kinds into the parents' keys.

There are two streams of events: of the parents, and of their dependents.
Both result in the same outcome: the parent's key is put into the queue,
so that the parent is reconciled with its dependents soon.

For the parents, all events are queued, including the deletions. The deleted
parents are not reconciled anyway (they are absent in the cache by the time),
but this keeps the behaviour uniform and predictable.

For the dependents, all events are treated equally too: the additions,
the modifications, and the deletions. The only question for the reconciliation
is whether the dependents are as the parent wants them to be, which does not
depend on what has happened to them: e.g. a deleted dependent is re-created,
a modified dependent is checked and maybe restored. The events of orphans
and of the dependents controlled by anything else are ignored.
"""
import logging
from typing import Any

from shimmer._cogs.structs import events
from shimmer._core.actions import errors
from shimmer._core.reactor import ownership, queueing

logger = logging.getLogger(__name__)


class EventRouter:

    def __init__(
            self,
            *,
            queue: queueing.WorkQueue,
            parent_kind: str,
            dependent_kind: str | None = None,
    ) -> None:
        super().__init__()
        self.queue = queue
        self.parent_kind = parent_kind
        self.dependent_kind = dependent_kind

    def on_parent_event(self, raw_event: Any) -> None:
        try:
            event = events.parse_event(raw_event, kind=self.parent_kind)
        except events.MalformedEventError as e:
            errors.report_error(e, f"Dropping a malformed {self.parent_kind} event")
            return

        self.queue.add(event.key)

    def on_dependent_event(self, raw_event: Any) -> None:
        try:
            event = events.parse_event(raw_event, kind=self.dependent_kind)
        except events.MalformedEventError as e:
            errors.report_error(e, f"Dropping a malformed {self.dependent_kind or 'dependent'} event")
            return

        key = ownership.match_owner(event.body, kind=self.parent_kind)
        if key is None:
            logger.debug(f"Ignoring {event.type.value} of {event.key}: "
                         f"not controlled by any {self.parent_kind}.")
            return

        self.queue.add(key)
