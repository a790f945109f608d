# kestrel/assets/registry.py
import threading
from concurrent.futures import Future
from typing import Callable, Dict, Optional


class AssetCache:
    """
    In-flight and finished fetches keyed by resolved path.
    Owned by one AssetServer session; `clear()` is the boundary between
    independent map loads.
    """

    def __init__(self) -> None:
        self._storage: Dict[str, "Future[bytes]"] = {}
        self._lock = threading.Lock()

    def get_or_create(
        self, path: str, create: Callable[[], "Future[bytes]"]
    ) -> "Future[bytes]":
        """
        Return the cached future for `path`. Otherwise call `create` under the
        lock and store its future, so only one fetch per path is ever started.
        """
        with self._lock:
            future = self._storage.get(path)
            if future is None:
                future = create()
                self._storage[path] = future
            return future

    def get(self, path: str) -> Optional["Future[bytes]"]:
        with self._lock:
            return self._storage.get(path)

    def __contains__(self, path: str) -> bool:
        with self._lock:
            return path in self._storage

    def __len__(self) -> int:
        with self._lock:
            return len(self._storage)

    def clear(self) -> None:
        """Forget every fetched asset."""
        with self._lock:
            self._storage.clear()
