"""
The main module for all the exported functions & classes.
"""
# isort: skip_file

# Unlike all other places, where we import other modules and refer
# the functions via the modules, this is the framework's top-level interface,
# as it is seen by the users. So, we export the individual functions.

from shimmer._cogs.aiokits.aioflags import (
    Flag,
)
from shimmer._cogs.aiokits.aiotoggles import (
    Toggle,
)
from shimmer._cogs.configs.configuration import (
    ControllerSettings,
    QueueingSettings,
    BackoffSettings,
    SyncingSettings,
)
from shimmer._cogs.helpers.typedefs import (
    Logger,
)
from shimmer._cogs.helpers.versions import (
    version as __version__,
)
from shimmer._cogs.structs.bodies import (
    Body,
    Meta,
    OwnerReference,
    RawBody,
    RawEvent,
    get_controller_of,
)
from shimmer._cogs.structs.events import (
    Bookmark,
    ChangeEvent,
    EventType,
    MalformedEventError,
    parse_event,
)
from shimmer._cogs.structs.references import (
    Namespace,
    Name,
    WorkKey,
    make_key,
)
from shimmer._core.actions.errors import (
    ShimmerError,
    SubscriptionError,
    CacheSyncError,
    PermanentError,
    TemporaryError,
    report_error,
)
from shimmer._core.actions.loggers import (
    configure,
    LogFormat,
    ObjectLogger,
)
from shimmer._core.actions.throttlers import (
    ExponentialBackoff,
)
from shimmer._core.engines.caching import (
    ObjectCache,
    Informer,
)
from shimmer._core.reactor.controlling import (
    Controller,
    Registration,
)
from shimmer._core.reactor.dispatching import (
    Reconciler,
)
from shimmer._core.reactor.ownership import (
    match_owner,
)
from shimmer._core.reactor.queueing import (
    WorkQueue,
    QueueShutDown,
)
from shimmer._core.reactor.routing import (
    EventRouter,
)
from shimmer._core.reactor.running import (
    spawn_tasks,
    run_tasks,
    operator,
    run,
)
from shimmer._core.reactor.syncing import (
    ReadinessCheck,
    wait_for_sync,
)

__all__ = [
    'configure', 'LogFormat', 'ObjectLogger', 'Logger',
    'ControllerSettings', 'QueueingSettings', 'BackoffSettings', 'SyncingSettings',
    'Body', 'Meta', 'OwnerReference', 'RawBody', 'RawEvent',
    'get_controller_of',
    'Bookmark', 'ChangeEvent', 'EventType', 'MalformedEventError', 'parse_event',
    'Namespace', 'Name', 'WorkKey', 'make_key',
    'ShimmerError', 'SubscriptionError', 'CacheSyncError',
    'PermanentError', 'TemporaryError', 'report_error',
    'ExponentialBackoff',
    'ObjectCache', 'Informer',
    'Controller', 'Registration', 'Reconciler',
    'match_owner', 'EventRouter',
    'WorkQueue', 'QueueShutDown',
    'ReadinessCheck', 'wait_for_sync',
    'Flag', 'Toggle',
    'spawn_tasks', 'run_tasks', 'operator', 'run',
    '__version__',
]
