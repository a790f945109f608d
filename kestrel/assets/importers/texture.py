# kestrel/assets/importers/texture.py
from __future__ import annotations

import io
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Iterator, List

from PIL import Image

from kestrel.assets.importers.base import AssetImporter
from kestrel.assets.types import TextureData


class PngTextureImporter(AssetImporter):
    """Decode a PNG into RGB (24-bit) or RGBA (32-bit) pixels."""

    def import_bytes(self, data: bytes, source: str) -> TextureData:
        name = Path(source).stem.lower()
        with Image.open(io.BytesIO(data)) as img:
            has_alpha = img.mode in ("RGBA", "LA", "PA") or "transparency" in img.info
            converted = img.convert("RGBA" if has_alpha else "RGB")

            width, height = converted.size
            pixels = converted.tobytes()

        return TextureData(
            name=name,
            width=width,
            height=height,
            depth=32 if has_alpha else 24,
            pixels=pixels,
            has_alpha=has_alpha,
        )


@dataclass(frozen=True, slots=True)
class ExtractedTexture:
    txd_name: str
    texture_name: str
    path: str  # relative to the texture directory
    transparent: bool


class ExtractedTextureIndex:
    """
    Textures dumped from texture dictionaries into a directory tree:

        opaque.txt / transparent.txt   one `txd/texture` per line
        opaque/XX/YY.png               XXYY = line index as 4 hex digits
    """

    KINDS = ("opaque", "transparent")

    def __init__(self, entries: List[ExtractedTexture]) -> None:
        self._by_txd: Dict[str, List[ExtractedTexture]] = {}
        for entry in entries:
            self._by_txd.setdefault(entry.txd_name, []).append(entry)

    @staticmethod
    def texture_path(kind: str, index: int) -> str:
        digits = f"{index:04x}"
        return f"{kind}/{digits[:2]}/{digits[2:]}.png"

    @classmethod
    def parse(cls, listings: Dict[str, str]) -> ExtractedTextureIndex:
        """`listings` maps a kind ("opaque"/"transparent") to its list file text."""
        entries: List[ExtractedTexture] = []
        for kind in cls.KINDS:
            text = listings.get(kind, "")
            lines = [line.strip() for line in text.split("\n") if line.strip()]
            for index, line in enumerate(lines):
                txd_name, _, texture_name = line.lower().partition("/")
                entries.append(
                    ExtractedTexture(
                        txd_name=txd_name,
                        texture_name=texture_name,
                        path=cls.texture_path(kind, index),
                        transparent=kind == "transparent",
                    )
                )
        return cls(entries)

    def textures_for(self, txd_name: str) -> List[ExtractedTexture]:
        return list(self._by_txd.get(txd_name.lower(), ()))

    def __contains__(self, txd_name: str) -> bool:
        return txd_name.lower() in self._by_txd

    def __iter__(self) -> Iterator[ExtractedTexture]:
        for entries in self._by_txd.values():
            yield from entries
