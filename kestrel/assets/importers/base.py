# kestrel/assets/importers/base.py
from abc import ABC, abstractmethod
from typing import Any


class AssetImporter(ABC):
    @abstractmethod
    def import_bytes(self, data: bytes, source: str) -> Any:
        """
        Decode raw file contents into a CPU-side record set.
        `source` names the file in error messages.
        Must be thread-safe.
        """
        pass


def decode_text(data: bytes) -> str:
    # Map files are plain ASCII; latin-1 never fails on stray bytes.
    return data.decode("latin-1")
