import asyncio
import logging
import urllib.parse
from collections.abc import Collection
from typing import Any, Protocol

import aiohttp.web

from shimmer._core.reactor import queueing

logger = logging.getLogger(__name__)

LOCALHOST: str = 'localhost'
HTTP_PORT: int = 80


class Probeable(Protocol):
    name: str
    queue: queueing.WorkQueue

    def is_synced(self) -> bool: ...


def collect_health(
        controllers: Collection[Probeable],
) -> tuple[bool, dict[str, dict[str, Any]]]:
    """
    Collect the controllers' status: healthy only if all of them are synced.
    """
    statuses = {
        controller.name: dict(
            synced=controller.is_synced(),
            queued=len(controller.queue),
            processing=len(controller.queue.processing),
            delayed=len(controller.queue.delayed),
        )
        for controller in controllers
    }
    healthy = all(status['synced'] for status in statuses.values())
    return healthy, statuses


def make_app(
        *,
        controllers: Collection[Probeable],
        path: str = '/',
) -> aiohttp.web.Application:

    async def get_health(
            request: aiohttp.web.Request,
    ) -> aiohttp.web.Response:
        healthy, statuses = collect_health(controllers)
        return aiohttp.web.json_response(statuses, status=200 if healthy else 503)

    app = aiohttp.web.Application()
    app.add_routes([aiohttp.web.get(path or '/', get_health)])
    return app


async def health_reporter(
        endpoint: str,
        *,
        controllers: Collection[Probeable],
        ready_flag: asyncio.Event | None = None,  # used for testing
) -> None:
    """
    Simple HTTP server to report the controllers' health to the probes.

    Runs forever until cancelled (which happens if any other root task
    is cancelled or failed). Once it will stop responding for any reason,
    the orchestrator will assume the process is not alive anymore, and restart it.
    """
    parts = urllib.parse.urlsplit(endpoint)
    if parts.scheme == 'http':
        host = parts.hostname or LOCALHOST
        port = parts.port or HTTP_PORT
        path = parts.path
    else:
        raise ValueError(f"Unsupported scheme: {endpoint}")

    app = make_app(controllers=controllers, path=path)
    runner = aiohttp.web.AppRunner(app, handle_signals=False)
    await runner.setup()

    site = aiohttp.web.TCPSite(runner, host, port)
    await site.start()

    # Log with the actual URL: normalised, with hostname/port set.
    url = urllib.parse.urlunsplit([parts.scheme, f'{host}:{port}', path, '', ''])
    logger.debug(f"Serving health status at {url}")
    if ready_flag is not None:
        ready_flag.set()

    try:
        # Sleep forever. No activity is needed.
        await asyncio.Event().wait()
    finally:
        # On any reason of exit, stop reporting the health.
        await asyncio.shield(runner.cleanup())
