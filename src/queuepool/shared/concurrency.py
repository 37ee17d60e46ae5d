"""Handler invocation helpers.

Coroutine handlers run on the event loop; plain callables are offloaded to
the default threadpool so blocking work does not stall sibling workers.
"""

from __future__ import annotations

import asyncio
import inspect
from collections.abc import Callable
from typing import Any


async def call_handler(handler: Callable[..., Any], /, *args: Any) -> Any:
    """Invoke a sync or async handler and wait for its outcome."""
    if inspect.iscoroutinefunction(handler):
        return await handler(*args)

    result = await asyncio.to_thread(handler, *args)
    if inspect.isawaitable(result):
        return await result
    return result
