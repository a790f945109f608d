# kestrel/assets/types.py
from dataclasses import dataclass, field
from enum import IntFlag
from typing import List, Optional, Tuple

import numpy as np

from kestrel.types import BoundingBox3D, Color, Quaternion, Vector3


class ObjectFlags(IntFlag):
    IS_ROAD = 0x01
    DO_NOT_FADE = 0x02
    DRAW_LAST = 0x04
    ADDITIVE = 0x08
    IS_SUBWAY = 0x10
    IGNORE_LIGHTING = 0x20
    NO_ZBUFFER_WRITE = 0x40
    DONT_RECEIVE_SHADOWS = 0x80
    IGNORE_DRAW_DISTANCE = 0x100
    IS_GLASS_TYPE_1 = 0x200
    IS_GLASS_TYPE_2 = 0x400


@dataclass(frozen=True)
class ObjectDefinition:
    """Static metadata for one model type."""

    model_name: str
    txd_name: str
    draw_distance: float
    flags: int = 0
    id: Optional[int] = None
    time_gated: bool = False
    time_on: Optional[int] = None
    time_off: Optional[int] = None

    def has_flag(self, flag: ObjectFlags) -> bool:
        return bool(self.flags & flag)


@dataclass(frozen=True)
class ItemInstance:
    """One placed occurrence of a model."""

    translation: Vector3
    rotation: Quaternion
    scale: Vector3 = Vector3(1.0, 1.0, 1.0)
    id: Optional[int] = None
    model_name: Optional[str] = None
    interior: Optional[int] = None
    lod: Optional[int] = None


@dataclass(frozen=True)
class Zone:
    name: str
    bounds: BoundingBox3D


@dataclass(frozen=True)
class ColorSet:
    """One time-of-day / weather sample."""

    ambient: Color
    sky_top: Color
    sky_bottom: Color


@dataclass(frozen=True)
class TextureData:
    """Decoded texture pixels, tightly packed rows."""

    name: str
    width: int
    height: int
    depth: int  # bits per pixel: 24 (RGB) or 32 (RGBA)
    pixels: bytes
    has_alpha: bool = False

    @property
    def components(self) -> int:
        return self.depth // 8

    @property
    def signature(self) -> Tuple[int, int, int]:
        return (self.width, self.height, self.depth)


@dataclass(frozen=True, eq=False)
class MeshFragment:
    """One material split of a decoded model."""

    positions: np.ndarray  # (N, 3) float32, model space
    indices: np.ndarray  # (M,) triangle list
    texture: Optional[str] = None
    base_color: Color = (1.0, 1.0, 1.0, 1.0)
    tex_coords: Optional[np.ndarray] = None  # (N, 2)
    colors: Optional[np.ndarray] = None  # (N, 4) 0..1
    texture_has_alpha: bool = False

    @property
    def vertex_count(self) -> int:
        return len(self.positions)

    @property
    def transparent(self) -> bool:
        return self.base_color[3] < 1.0 or self.texture_has_alpha


@dataclass(frozen=True)
class ItemDefinition:
    objects: List[ObjectDefinition] = field(default_factory=list)


@dataclass(frozen=True)
class ItemPlacement:
    instances: List[ItemInstance] = field(default_factory=list)
