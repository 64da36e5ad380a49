"""Invoke helper: call sync or async user code uniformly.

Handlers, middleware and error handlers can all be ``def`` or
``async def``. Every call into user code goes through ``invoke`` so the
sync/async check lives in exactly one place.

Usage::

    from perch._internal.invoke import invoke

    request = await invoke(middleware, request)
"""

import inspect
from typing import Any


async def invoke(func: Any, *args: Any) -> Any:
    """Call *func* and await the result if it's awaitable.

    Works with both sync and async callables::

        def add_header(response):
            return response.with_header("X-Served-By", "perch")

        async def load_user(request):
            user = await users.fetch(request.headers["x-user"])
            request.context.set(user)
            return request
    """
    result = func(*args)
    if inspect.isawaitable(result):
        result = await result
    return result
