"""
All configuration flags, options, settings to fine-tune a controller.

All settings are grouped semantically just for convenience
(instead of a flat mega-object with all the values in it).

Some of the settings are flags, some are scalars, some are optional,
some are not (but all of them have reasonable defaults).
Every controller has its own settings object; it is not shared globally,
so that several controllers in one process can be tuned independently.
"""
import dataclasses


@dataclasses.dataclass
class QueueingSettings:

    workers: int = 5
    """
    How many workers drain the queue and reconcile the parents concurrently.

    The same parent is never reconciled by two workers at the same time,
    regardless of the number of workers.
    """

    exit_timeout: float = 2.0
    """
    How long the workers can finish their current and ready items on the
    controller's exit before they are cancelled. The delayed items are dropped.
    """


@dataclasses.dataclass
class BackoffSettings:
    """
    Per-parent retrying of failed reconciliations.

    Every consecutive failure of the same parent doubles the delay
    (``base_delay * 2 ** failures``) up to ``max_delay``.
    Every success resets the delay to the base one.
    """

    base_delay: float = 5.0
    """ The delay after the first failure, in seconds. """

    max_delay: float = 5 * 60
    """ The delay never grows beyond this value, in seconds. """


@dataclasses.dataclass
class SyncingSettings:
    """
    Settings for the startup: the caches must be populated before dispatching.
    """

    timeout: float | None = None
    """
    How long to wait for the caches to be populated, in seconds.

    If the caches are not populated in time, the controller fails to start.
    If ``None`` (the default), wait until the caches are populated or until
    the controller is stopped, however long it takes.
    """

    poll_interval: float = 0.1
    """
    How often to check the readiness checks which cannot notify on their own
    (e.g. plain callables), in seconds. The toggles are not polled.
    """


@dataclasses.dataclass
class ControllerSettings:
    queueing: QueueingSettings = dataclasses.field(default_factory=QueueingSettings)
    backoff: BackoffSettings = dataclasses.field(default_factory=BackoffSettings)
    syncing: SyncingSettings = dataclasses.field(default_factory=SyncingSettings)
