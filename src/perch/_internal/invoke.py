"""Invoke helpers — call sync or async callables uniformly.

Route handlers, route middlewares, response filters, plugins and
observers can all be ``def`` or ``async def``. Any code that calls a
user-provided callable goes through this helper so the sync/async
check lives in exactly one place.

Usage::

    from perch._internal.invoke import invoke

    result = await invoke(handler, ctx)
"""

import inspect
from typing import Any


async def invoke(func: Any, *args: Any, **kwargs: Any) -> Any:
    """Call *func* and await the result if it's awaitable.

    Works with both sync and async callables::

        # sync: returns immediately
        def handler(ctx):
            return {"status": "ok"}

        # async: returns a coroutine, awaited here
        async def handler(ctx):
            return await load_status()
    """
    result = func(*args, **kwargs)
    if inspect.isawaitable(result):
        result = await result
    return result
