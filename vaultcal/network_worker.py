"""
Network Worker - runs blocking network operations in background threads.

requests and caldav are blocking libraries. The worker runs them on a
ThreadPoolExecutor so that awaiting a fetch suspends only the calling
coroutine; every result is handed back to the event loop, where the index
is mutated.
"""

import asyncio
import functools
from concurrent.futures import ThreadPoolExecutor
from typing import Any, Callable


class NetworkWorker:
    """Runs blocking network calls in background threads."""

    def __init__(self, max_workers: int = 3):
        self._executor = ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix="network")

    async def run(self, func: Callable[..., Any], *args, **kwargs) -> Any:
        """
        Run a blocking function in a background thread and await its result.

        Exceptions raised by func are re-raised in the awaiting coroutine.
        """
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(self._executor, functools.partial(func, *args, **kwargs))

    def shutdown(self, wait: bool = True) -> None:
        """Shutdown the executor, optionally waiting for pending operations."""
        self._executor.shutdown(wait=wait)
