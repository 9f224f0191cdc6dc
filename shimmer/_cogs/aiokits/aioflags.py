"""
Flags to stop the controllers or to notify that they are ready, from outside.

The flags can come from different worlds: e.g. from an asyncio test or from
a thread that embeds the controllers into an app. Non-asyncio primitives
are generally not our worry, but we support them for convenience.
"""
import asyncio
import concurrent.futures
import threading
from typing import Any, Union

from shimmer._cogs.aiokits import aiotasks

Flag = Union[aiotasks.Future, asyncio.Event, concurrent.futures.Future, threading.Event]


async def wait_flag(
        flag: Flag | None,
) -> Any:
    """ Wait for a flag to be raised; never return if there is no flag. """
    if flag is None:
        await asyncio.Event().wait()
    elif isinstance(flag, asyncio.Future):
        return await flag
    elif isinstance(flag, asyncio.Event):
        return await flag.wait()
    elif isinstance(flag, concurrent.futures.Future):
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, flag.result)
    elif isinstance(flag, threading.Event):
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, flag.wait)
    else:
        raise TypeError(f"Unsupported type of a flag: {flag!r}")


async def raise_flag(
        flag: Flag | None,
) -> None:
    if flag is None:
        pass
    elif isinstance(flag, asyncio.Future):
        if not flag.done():
            flag.set_result(None)
    elif isinstance(flag, asyncio.Event):
        flag.set()
    elif isinstance(flag, concurrent.futures.Future):
        if not flag.done():
            flag.set_result(None)
    elif isinstance(flag, threading.Event):
        flag.set()
    else:
        raise TypeError(f"Unsupported type of a flag: {flag!r}")


def check_flag(
        flag: Flag | None,
) -> bool | None:
    if flag is None:
        return None
    elif isinstance(flag, (asyncio.Future, concurrent.futures.Future)):
        return flag.done()
    elif isinstance(flag, (asyncio.Event, threading.Event)):
        return flag.is_set()
    else:
        raise TypeError(f"Unsupported type of a flag: {flag!r}")
