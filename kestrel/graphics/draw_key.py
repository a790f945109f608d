# kestrel/graphics/draw_key.py
from __future__ import annotations

import dataclasses
import json
from dataclasses import dataclass
from enum import Enum
from typing import Optional

from kestrel.assets.types import ObjectDefinition, ObjectFlags

DRAW_DISTANCE_CUTOFF = 99.0


class RenderLayer(str, Enum):
    """Draw order buckets. Later layers draw after earlier ones."""

    OPAQUE = "opaque"
    TRANSLUCENT = "translucent"
    NO_DEPTH_WRITE = "no_depth_write"  # shadows and decals
    DRAW_LAST = "draw_last"  # foliage

    @property
    def order(self) -> int:
        return _LAYER_ORDER[self]

    @property
    def depth_write(self) -> bool:
        return self is not RenderLayer.NO_DEPTH_WRITE


_LAYER_ORDER = {
    RenderLayer.OPAQUE: 0,
    RenderLayer.TRANSLUCENT: 1,
    RenderLayer.NO_DEPTH_WRITE: 2,
    RenderLayer.DRAW_LAST: 3,
}


@dataclass(frozen=True, slots=True)
class DrawKey:
    """Everything that decides whether two items can share one batch."""

    zone: str
    render_layer: RenderLayer
    draw_distance: Optional[float] = None
    time_on: Optional[int] = None
    time_off: Optional[int] = None

    @property
    def time_gated(self) -> bool:
        return self.time_on is not None and self.time_off is not None

    def canonical(self) -> str:
        """Stable encoding used as the batch dictionary key. Absent fields are omitted."""
        fields = {
            f.name: getattr(self, f.name)
            for f in dataclasses.fields(self)
            if getattr(self, f.name) is not None
        }
        fields["render_layer"] = self.render_layer.value
        return json.dumps(fields, sort_keys=True, separators=(",", ":"))

    def with_layer(self, layer: RenderLayer) -> DrawKey:
        return dataclasses.replace(self, render_layer=layer)


def render_layer_for(definition: ObjectDefinition) -> RenderLayer:
    if definition.has_flag(ObjectFlags.DRAW_LAST):
        return RenderLayer.DRAW_LAST
    if definition.has_flag(ObjectFlags.NO_ZBUFFER_WRITE):
        return RenderLayer.NO_DEPTH_WRITE
    return RenderLayer.OPAQUE


def build_key(
    definition: ObjectDefinition,
    zone: str,
    *,
    has_lod: bool = False,
    cutoff: float = DRAW_DISTANCE_CUTOFF,
) -> DrawKey:
    """
    Derive the batch key of a definition placed in `zone`.

    Items with a distant LOD stand-in always render at full detail, so their
    draw distance is dropped. Translucency is not known here; the batcher
    upgrades OPAQUE once the model's materials are decoded.
    """
    draw_distance = None
    if not has_lod and definition.draw_distance < cutoff:
        draw_distance = float(definition.draw_distance)

    time_on = time_off = None
    if definition.time_gated:
        time_on = definition.time_on
        time_off = definition.time_off

    return DrawKey(
        zone=zone,
        render_layer=render_layer_for(definition),
        draw_distance=draw_distance,
        time_on=time_on,
        time_off=time_off,
    )
