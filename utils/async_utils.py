"""
Helpers for calling coroutines from synchronous code.
"""

import asyncio
import concurrent.futures
from collections.abc import Coroutine
from typing import Any, TypeVar

T = TypeVar("T")


def run_sync(coro: Coroutine[Any, Any, T]) -> T:
    """
    Run a coroutine to completion from synchronous code.

    Handles the case where an event loop is already running in this thread
    by executing in a separate thread with its own loop.
    """
    try:
        asyncio.get_running_loop()
    except RuntimeError:
        # No running loop - use asyncio.run directly
        return asyncio.run(coro)

    return _run_in_new_thread(coro)


def _run_in_new_thread(coro: Coroutine[Any, Any, T]) -> T:
    with concurrent.futures.ThreadPoolExecutor(max_workers=1) as executor:
        future = executor.submit(asyncio.run, coro)
        return future.result()
