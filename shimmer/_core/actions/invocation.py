"""
Invoking the reconcilers, including the kwargs preparation.

Both sync & async functions are supported, so as their partials.
Also, decorated wrappers and lambdas are recognized.
All of this goes via the same invocation logic and protocol.
"""
import asyncio
import contextvars
import functools
import inspect
from collections.abc import Callable, Coroutine, Mapping
from typing import Any, TypeVar, Union

# An internal typing hack shows that the reconciler can be sync fn with the result,
# or an async fn which returns a coroutine which, in turn, returns the result.
_R = TypeVar('_R')
SyncOrAsync = Union[_R, Coroutine[None, None, _R]]

# A generic sync-or-async callable with no args/kwargs checks (unlike in protocols).
Invokable = Callable[..., SyncOrAsync[object | None]]


async def invoke(
        fn: Invokable,
        *,
        kwargs: Mapping[str, Any] | None = None,
) -> Any:
    """
    Invoke a single function, but safely for the main asyncio process.

    The function is expected to accept ``**kwargs`` for the args
    that it does not use -- for forward compatibility with the new features.

    The synchronous functions are executed in the default executor (threads),
    thus making it non-blocking for the main event loop of the controllers.
    """
    kwargs = {} if kwargs is None else kwargs
    if is_async_fn(fn):
        return await fn(**kwargs)  # type: ignore

    # Copy the asyncio context from current thread to the reconciler's thread.
    context = contextvars.copy_context()
    real_fn = functools.partial(context.run, functools.partial(fn, **kwargs))

    # Prevent orphaned threads on cancellation. It is better to be stuck in the task
    # than to have orphan threads which deplete the executor's pool capacity.
    # Cancellation is postponed until the thread exits, but it happens anyway (for consistency).
    loop = asyncio.get_running_loop()
    future = loop.run_in_executor(None, real_fn)
    cancellation: asyncio.CancelledError | None = None
    while not future.done():
        try:
            await asyncio.shield(future)  # slightly expensive: creates tasks
        except asyncio.CancelledError as e:
            cancellation = e
    if cancellation is not None:
        raise cancellation
    return future.result()


def is_async_fn(
        fn: Invokable | None,
) -> bool:
    if fn is None:
        return False
    elif isinstance(fn, functools.partial):
        return is_async_fn(fn.func)
    elif hasattr(fn, '__wrapped__'):  # @functools.wraps()
        return is_async_fn(fn.__wrapped__)
    elif inspect.iscoroutinefunction(fn):
        return True
    else:
        # Callable objects with an async __call__, e.g. reconciler classes.
        call = getattr(type(fn), '__call__', None)
        return inspect.iscoroutinefunction(call)
