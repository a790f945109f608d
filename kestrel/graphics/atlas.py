# kestrel/graphics/atlas.py
"""Texture atlas construction.

Textures are packed greedily into shelves (rows), tallest first. The layout
is fully deterministic so atlases built from the same texture set are
byte-identical.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import Dict, Iterable, List, Sequence, Tuple

import numpy as np
from PIL import Image

from kestrel.assets.types import TextureData
from kestrel.math import next_pow2

logger = logging.getLogger(__name__)

MAX_ATLAS_WIDTH = 2048
TEXTURE_ARRAY_CAPACITY = 256


@dataclass(frozen=True, slots=True)
class TexturePlacement:
    index: int  # atlas page or texture-array shard
    x: int
    y: int
    width: int
    height: int

    def as_vec4(self) -> Tuple[float, float, float, float]:
        return (float(self.x), float(self.y), float(self.width), float(self.height))


@dataclass(slots=True)
class Atlas:
    width: int
    height: int
    pixels: np.ndarray  # (height, width, 4) uint8
    placements: Dict[str, TexturePlacement]
    index: int = 0

    def to_image(self) -> Image.Image:
        return Image.fromarray(self.pixels)

    def tobytes(self) -> bytes:
        return self.pixels.tobytes()


@dataclass(slots=True)
class TextureArrayShard:
    """
    Up to `capacity` textures sharing one (width, height, depth) signature,
    shelf-packed into a single array layer.
    """

    index: int
    signature: Tuple[int, int, int]
    names: List[str]  # packing order
    atlas: Atlas

    @property
    def width(self) -> int:
        return self.atlas.width

    @property
    def height(self) -> int:
        return self.atlas.height

    @property
    def placements(self) -> Dict[str, TexturePlacement]:
        return self.atlas.placements


def atlas_width_for(area: int, max_width: int = MAX_ATLAS_WIDTH) -> int:
    """min(max_width, 2^ceil(log2(sqrt(area))))"""
    return min(max_width, next_pow2(math.sqrt(area)))


def packing_order(textures: Iterable[TextureData]) -> List[TextureData]:
    """Height descending, then width descending, then name in reverse order."""
    return sorted(textures, key=lambda t: (t.height, t.width, t.name), reverse=True)


def shelf_pack(
    textures: Sequence[TextureData], width: int
) -> Tuple[int, Dict[str, Tuple[int, int]]]:
    """
    Place already-sorted textures left to right on shelves of `width`.
    Returns the total height and the (x, y) of every texture.
    """
    positions: Dict[str, Tuple[int, int]] = {}
    ax = 0
    ay = 0
    shelf_h = textures[0].height if textures else 0

    for tex in textures:
        if tex.width > width - ax and ax != 0:
            ay += shelf_h
            ax = 0
            shelf_h = tex.height
        positions[tex.name] = (ax, ay)
        ax += tex.width

    return ay + shelf_h, positions


def _check_texture(tex: TextureData) -> None:
    if tex.depth not in (24, 32):
        raise ValueError(f"Texture {tex.name} has unsupported depth {tex.depth}")
    expected = tex.width * tex.height * tex.components
    if len(tex.pixels) != expected:
        raise ValueError(
            f"Texture {tex.name} has {len(tex.pixels)} bytes of pixels, expected {expected}"
        )


def _rgba(tex: TextureData) -> np.ndarray:
    src = np.frombuffer(tex.pixels, dtype=np.uint8).reshape(
        tex.height, tex.width, tex.components
    )
    if tex.components == 4:
        return src
    out = np.empty((tex.height, tex.width, 4), dtype=np.uint8)
    out[:, :, :3] = src
    out[:, :, 3] = 0xFF
    return out


def pack_atlas(
    textures: Iterable[TextureData],
    *,
    max_width: int = MAX_ATLAS_WIDTH,
    index: int = 0,
) -> Atlas:
    """Pack textures into one RGBA atlas."""
    ordered = packing_order(textures)
    if not ordered:
        raise ValueError("Cannot build an atlas from an empty texture set")
    for tex in ordered:
        _check_texture(tex)
    if len({t.name for t in ordered}) != len(ordered):
        raise ValueError("Texture names in one atlas must be unique")

    area = sum(t.width * t.height for t in ordered)
    widest = max(t.width for t in ordered)
    if widest > max_width:
        raise ValueError(f"Texture wider than the atlas limit of {max_width}")
    # Only the widest texture can push the width past the area estimate.
    width = max(atlas_width_for(area, max_width), next_pow2(widest))

    height, positions = shelf_pack(ordered, width)

    pixels = np.zeros((height, width, 4), dtype=np.uint8)
    placements: Dict[str, TexturePlacement] = {}
    for tex in ordered:
        x, y = positions[tex.name]
        pixels[y : y + tex.height, x : x + tex.width, :] = _rgba(tex)
        placements[tex.name] = TexturePlacement(index, x, y, tex.width, tex.height)

    logger.debug(
        "atlas %d: %d textures in %dx%d", index, len(ordered), width, height
    )
    return Atlas(width=width, height=height, pixels=pixels, placements=placements, index=index)


def pack_texture_arrays(
    textures: Iterable[TextureData],
    *,
    capacity: int = TEXTURE_ARRAY_CAPACITY,
    max_width: int = MAX_ATLAS_WIDTH,
) -> List[TextureArrayShard]:
    """
    Group textures by exact signature and spill each group into shards of at
    most `capacity` layers. Every shard is shelf-packed on its own.
    """
    if capacity <= 0:
        raise ValueError("capacity must be positive")

    groups: Dict[Tuple[int, int, int], List[TextureData]] = {}
    for tex in textures:
        groups.setdefault(tex.signature, []).append(tex)
    if not groups:
        raise ValueError("Cannot build texture arrays from an empty texture set")

    shards: List[TextureArrayShard] = []
    # Tallest signatures first, matching the atlas ordering.
    for signature in sorted(groups, key=lambda s: (s[1], s[0], s[2]), reverse=True):
        members = packing_order(groups[signature])
        for start in range(0, len(members), capacity):
            chunk = members[start : start + capacity]
            index = len(shards)
            atlas = pack_atlas(chunk, max_width=max_width, index=index)
            shards.append(
                TextureArrayShard(
                    index=index,
                    signature=signature,
                    names=[t.name for t in chunk],
                    atlas=atlas,
                )
            )

    logger.debug("%d texture array shards", len(shards))
    return shards


def merge_placements(shards: Iterable[TextureArrayShard]) -> Dict[str, TexturePlacement]:
    placements: Dict[str, TexturePlacement] = {}
    for shard in shards:
        placements.update(shard.placements)
    return placements
