import asyncio
import threading
from typing import Any, Coroutine, Dict, Set

from catalog.config import SPAN_CACHE_CAPACITY
from catalog.services.processing.cache_utils import BoundedCache, ResourceCache

class Store:
    """
    Process-wide application context: the loaded dataset snapshot, readiness
    state, the resource cache and the span plan cache.
    """
    def __init__(self):
        self.cache: Dict[str, Any] = {}
        self.lock = threading.Lock()
        self.is_ready: bool = False
        self.resources = ResourceCache()
        self.span_cache = BoundedCache(SPAN_CACHE_CAPACITY)
        self.background_tasks: Set["asyncio.Task[Any]"] = set()

    def swap_cache(self, new_cache: Dict[str, Any]) -> None:
        """
        Atomically clears and updates the cache under a lock and sets the
        application state to ready. Span plans of the old snapshot are dropped.
        """
        with self.lock:
            self.cache.clear()
            self.cache.update(new_cache)
            self.span_cache.clear()
            self.is_ready = True

    def mark_loading(self) -> None:
        """
        Sets the application state to not ready (loading).
        """
        with self.lock:
            self.is_ready = False

    def run_in_background(self, coro: Coroutine[Any, Any, Any]) -> "asyncio.Task[Any]":
        """
        Schedules a coroutine and holds a reference to its task until it
        finishes, so a pending load is not garbage-collected.
        """
        task = asyncio.create_task(coro)
        self.background_tasks.add(task)
        task.add_done_callback(self.background_tasks.discard)
        return task

# Export a singleton instance for global use.
store = Store()
