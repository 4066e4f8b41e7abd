"""Drive asynchronous scripting-engine calls from synchronous code.

Each call gets a fresh single-threaded event loop that is closed afterwards.
Calls are serialized per plugin by the plugin lock, so the setup cost is paid
rarely. Not reentrant: calling from inside a running loop is an error.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, Callable, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


def run_sync(factory: Callable[[], Awaitable[T]]) -> T:
    """Run the awaitable produced by ``factory`` to completion on a private loop."""

    try:
        asyncio.get_running_loop()
    except RuntimeError:
        pass
    else:
        raise RuntimeError("run_sync() cannot be called from a running event loop")

    loop = asyncio.new_event_loop()
    try:
        return loop.run_until_complete(_await(factory))
    finally:
        try:
            loop.run_until_complete(loop.shutdown_asyncgens())
        finally:
            loop.close()
            logger.debug("closed bridge event loop")


async def _await(factory: Callable[[], Awaitable[T]]) -> T:
    return await factory()
