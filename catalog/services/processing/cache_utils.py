import asyncio
from collections import OrderedDict
from enum import Enum
from typing import Any, Awaitable, Callable, Dict, Hashable, Optional, Set

from catalog.logging_setup import logger


class BoundedCache:
    """
    A capacity-bounded mapping that evicts the oldest inserted entry first.
    """
    def __init__(self, capacity: int):
        if capacity < 1:
            raise ValueError("capacity must be at least 1")
        self.capacity = capacity
        self._entries: "OrderedDict[Hashable, Any]" = OrderedDict()

    def get(self, key: Hashable, default: Any = None) -> Any:
        return self._entries.get(key, default)

    def put(self, key: Hashable, value: Any) -> None:
        if key not in self._entries and len(self._entries) >= self.capacity:
            self._entries.popitem(last=False)
        self._entries[key] = value

    def clear(self) -> None:
        self._entries.clear()

    def __contains__(self, key: Hashable) -> bool:
        return key in self._entries

    def __len__(self) -> int:
        return len(self._entries)


class ResourceStatus(str, Enum):
    MISSING = "missing"
    LOADING = "loading"
    READY = "ready"
    UNAVAILABLE = "unavailable"


class ResourceCache:
    """
    Memoized one-shot loader for named resources (datasets, lookup tables).

    Concurrent callers for the same name share a single in-flight load. A
    successful result is kept; a failure is remembered as unavailable and
    never retried until ``reset``.
    """
    def __init__(self):
        self._results: Dict[str, Any] = {}
        self._tasks: Dict[str, "asyncio.Future[Any]"] = {}
        self._failed: Set[str] = set()

    def status(self, name: str) -> ResourceStatus:
        if name in self._results:
            return ResourceStatus.READY
        if name in self._failed:
            return ResourceStatus.UNAVAILABLE
        if name in self._tasks:
            return ResourceStatus.LOADING
        return ResourceStatus.MISSING

    async def get(self, name: str, loader: Callable[[], Awaitable[Any]]) -> Optional[Any]:
        if name in self._results:
            return self._results[name]
        if name in self._failed:
            return None

        task = self._tasks.get(name)
        if task is None:
            task = asyncio.ensure_future(loader())
            self._tasks[name] = task
        try:
            result = await asyncio.shield(task)
        except Exception as e:
            if name not in self._failed:
                logger.warning("Resource unavailable", extra={"resource": name, "error": str(e)})
                self._failed.add(name)
            self._tasks.pop(name, None)
            return None

        self._results[name] = result
        self._tasks.pop(name, None)
        return result

    def reset(self) -> None:
        self._results.clear()
        self._failed.clear()
        self._tasks.clear()
