"""
Helpers for calling user code from the dispatch loop.
"""

import asyncio
import functools
import inspect
import logging
from typing import Any, Callable

logger = logging.getLogger(__name__)


async def call_maybe_async(func: Callable, *args: Any, **kwargs: Any) -> Any:
    """Call a sync or async callable without blocking the event loop.

    Coroutine functions are awaited directly. Anything else runs on the
    loop's default executor; if it returns an awaitable, that is awaited too.
    """
    if inspect.iscoroutinefunction(func):
        return await func(*args, **kwargs)

    loop = asyncio.get_running_loop()
    result = await loop.run_in_executor(None, functools.partial(func, *args, **kwargs))
    if inspect.isawaitable(result):
        result = await result
    return result


async def call_and_reclaim(func: Callable, reclaim: Callable[[Any], Any], *args: Any) -> Any:
    """Like ``call_maybe_async``, for calls that hand out resources.

    Cancelling the caller does not stop a sync ``func`` already running on the
    executor. Whatever it returns after the caller was cancelled is passed to
    ``reclaim`` so that it does not outlive the request.
    """
    if inspect.iscoroutinefunction(func):
        return await func(*args)

    loop = asyncio.get_running_loop()
    future = loop.run_in_executor(None, functools.partial(func, *args))
    try:
        result = await asyncio.shield(future)
    except asyncio.CancelledError:
        future.add_done_callback(functools.partial(_reclaim_late, reclaim))
        raise
    if inspect.isawaitable(result):
        result = await result
    return result


def _reclaim_late(reclaim: Callable[[Any], Any], future: "asyncio.Future") -> None:
    if future.cancelled() or future.exception() is not None:
        return
    result = future.result()
    if result is None:
        return
    try:
        outcome = reclaim(result)
        if inspect.isawaitable(outcome):
            asyncio.ensure_future(outcome)
    except Exception as e:
        logger.error(f"Error reclaiming {type(result).__qualname__}: {e}", exc_info=True)
