# kestrel/assets/server.py
import logging
from concurrent.futures import Future, ThreadPoolExecutor
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Sequence

from kestrel.assets.importers.base import AssetImporter
from kestrel.assets.importers.ide import ItemDefinitionImporter
from kestrel.assets.importers.ipl import ItemPlacementImporter
from kestrel.assets.importers.texture import PngTextureImporter
from kestrel.assets.importers.timecyc import TimeCycleImporter
from kestrel.assets.importers.zon import ZoneImporter
from kestrel.assets.registry import AssetCache
from kestrel.errors import ResourceError

logger = logging.getLogger(__name__)

Fetcher = Callable[[str], bytes]


class FileSystemFetcher:
    """Reads assets below a root directory, tolerating case mismatches."""

    def __init__(self, root: Path) -> None:
        self.root = Path(root)

    def __call__(self, path: str) -> bytes:
        return self._resolve(path).read_bytes()

    def _resolve(self, path: str) -> Path:
        full_path = self.root / path
        if full_path.exists():
            return full_path

        # Map files reference each other with inconsistent casing.
        current = self.root
        for part in Path(path).parts:
            candidate = current / part
            if not candidate.exists() and current.is_dir():
                lowered = part.lower()
                for child in current.iterdir():
                    if child.name.lower() == lowered:
                        candidate = child
                        break
            current = candidate
        return current


class AssetServer:
    def __init__(
        self,
        fetcher: Fetcher,
        *,
        max_workers: int = 4,
        cache: Optional[AssetCache] = None,
    ) -> None:
        self._fetcher = fetcher
        self.cache = cache if cache is not None else AssetCache()

        self._executor = ThreadPoolExecutor(
            max_workers=max_workers, thread_name_prefix="AssetWorker"
        )

        self._importers: Dict[str, AssetImporter] = {
            ".ide": ItemDefinitionImporter(),
            ".ipl": ItemPlacementImporter(),
            ".zon": ZoneImporter(),
            ".dat": TimeCycleImporter(),
            ".png": PngTextureImporter(),
        }

    @classmethod
    def from_directory(cls, root: Path, **kwargs: Any) -> "AssetServer":
        return cls(FileSystemFetcher(root), **kwargs)

    def fetch(self, path: str) -> "Future[bytes]":
        """
        Non-blocking fetch request. Repeated requests share one fetch.
        """
        return self.cache.get_or_create(
            path, lambda: self._executor.submit(self._worker_fetch, path)
        )

    def _worker_fetch(self, path: str) -> bytes:
        """
        Fetch on a background thread.
        """
        try:
            data = self._fetcher(path)
        except ResourceError:
            raise
        except Exception as e:
            raise ResourceError(path, str(e)) from e
        logger.debug("fetched %s (%d bytes)", path, len(data))
        return data

    def fetch_all(self, paths: Sequence[str]) -> List[bytes]:
        """Issue every fetch, then wait for all of them in order."""
        futures = [self.fetch(p) for p in paths]
        return [f.result() for f in futures]

    def importer_for(self, path: str) -> AssetImporter:
        ext = Path(path).suffix.lower()
        importer = self._importers.get(ext)
        if importer is None:
            raise ValueError(f"No importer for {ext}")
        return importer

    def load(self, path: str) -> Any:
        return self.load_many([path])[0]

    def load_many(self, paths: Sequence[str]) -> List[Any]:
        """Fetch concurrently, then import on the calling thread."""
        blobs = self.fetch_all(paths)
        return [
            self.importer_for(path).import_bytes(data, path)
            for path, data in zip(paths, blobs)
        ]

    def invalidate(self) -> None:
        """Drop cached assets before loading an unrelated map."""
        self.cache.clear()

    def shutdown(self) -> None:
        self._executor.shutdown(wait=True)

    def __enter__(self) -> "AssetServer":
        return self

    def __exit__(self, *exc: object) -> None:
        self.shutdown()
