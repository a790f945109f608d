# kestrel/graphics/batcher.py
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Dict, Iterator, List, Mapping, Optional, Set, Tuple

import numpy as np

from kestrel.assets.types import ItemInstance, MeshFragment, ObjectDefinition
from kestrel.graphics.atlas import TexturePlacement
from kestrel.graphics.draw_key import DrawKey, RenderLayer
from kestrel.math import model_matrix, transform_points
from kestrel.types import BoundingBox3D, Vector3

logger = logging.getLogger(__name__)

# position (3), color (4), uv (2), atlas rect (4)
VERTEX_FLOAT_COUNT = 13
VERTEX_STRIDE = VERTEX_FLOAT_COUNT * 4
VERTEX_FORMAT = "3f 4f 2f 4f"
VERTEX_ATTRIBUTES = ["in_pos", "in_color", "in_uv", "in_tex_rect"]

NO_TEXTURE = (-1.0, -1.0, -1.0, -1.0)


@dataclass(eq=False)
class ModelData:
    """Decoded geometry of one model type."""

    name: str
    definition: ObjectDefinition
    fragments: List[MeshFragment]

    @property
    def transparent(self) -> bool:
        return any(frag.transparent for frag in self.fragments)

    @property
    def textures(self) -> Set[str]:
        return {frag.texture for frag in self.fragments if frag.texture}


class ModelCache:
    """One ModelData per model name."""

    def __init__(self) -> None:
        self._models: Dict[str, ModelData] = {}

    def add(self, model: ModelData) -> None:
        self._models[model.name] = model

    def get(self, name: str) -> Optional[ModelData]:
        return self._models.get(name)

    def __contains__(self, name: str) -> bool:
        return name in self._models

    def __len__(self) -> int:
        return len(self._models)


@dataclass(eq=False)
class MeshInstance:
    model: ModelData
    item: ItemInstance
    matrix: np.ndarray = field(init=False, repr=False)

    def __post_init__(self) -> None:
        self.matrix = model_matrix(
            self.item.translation, self.item.rotation, self.item.scale
        )

    def world_positions(self, fragment: MeshFragment) -> np.ndarray:
        return transform_points(self.matrix, fragment.positions)

    def bounds(self) -> Optional[BoundingBox3D]:
        points = [
            self.world_positions(frag)
            for frag in self.model.fragments
            if frag.vertex_count
        ]
        if not points:
            return None
        return BoundingBox3D.from_points(np.concatenate(points))


class TextureUsageIndex:
    """Which batches (by canonical key) reference each texture."""

    def __init__(self) -> None:
        self._users: Dict[str, Set[str]] = {}

    def record(self, texture: str, key: DrawKey) -> None:
        self._users.setdefault(texture, set()).add(key.canonical())

    def users(self, texture: str) -> Set[str]:
        return set(self._users.get(texture, ()))

    def names(self) -> List[str]:
        return sorted(self._users)

    def __contains__(self, texture: str) -> bool:
        return texture in self._users

    def __len__(self) -> int:
        return len(self._users)


@dataclass(eq=False)
class Batch:
    key: DrawKey
    instances: List[MeshInstance] = field(default_factory=list)
    textures: Set[str] = field(default_factory=set)
    _bounds: Optional[BoundingBox3D] = field(default=None, init=False, repr=False)

    def add(self, instance: MeshInstance) -> None:
        self.instances.append(instance)
        self.textures |= instance.model.textures
        inst_bounds = instance.bounds()
        if inst_bounds is not None:
            self._bounds = (
                inst_bounds if self._bounds is None else self._bounds.union(inst_bounds)
            )

    @property
    def bounds(self) -> Optional[BoundingBox3D]:
        return self._bounds

    def bounding_sphere(self) -> Tuple[Vector3, float]:
        """Center and radius enclosing the batch bounds."""
        if self._bounds is None:
            return Vector3.zero(), 0.0
        return self._bounds.center, self._bounds.half_extents.length()

    @property
    def vertex_count(self) -> int:
        return sum(
            frag.vertex_count for inst in self.instances for frag in inst.model.fragments
        )

    @property
    def index_count(self) -> int:
        return sum(
            len(frag.indices) for inst in self.instances for frag in inst.model.fragments
        )

    def build_vertex_data(
        self, placements: Mapping[str, TexturePlacement]
    ) -> Tuple[np.ndarray, np.ndarray]:
        """
        Interleave every instance into one vertex buffer (N, VERTEX_FLOAT_COUNT)
        float32 and one uint32 index buffer, positions in world space.
        """
        vertex_blocks: List[np.ndarray] = []
        index_blocks: List[np.ndarray] = []
        base = 0

        for inst in self.instances:
            for frag in inst.model.fragments:
                n = frag.vertex_count
                block = np.empty((n, VERTEX_FLOAT_COUNT), dtype=np.float32)
                block[:, 0:3] = inst.world_positions(frag)

                color = np.asarray(frag.base_color, dtype=np.float32)
                if frag.colors is not None:
                    block[:, 3:7] = np.asarray(frag.colors, dtype=np.float32) * color
                else:
                    block[:, 3:7] = color

                if frag.tex_coords is not None:
                    block[:, 7:9] = frag.tex_coords
                else:
                    block[:, 7:9] = 0.0

                placement = placements.get(frag.texture) if frag.texture else None
                block[:, 9:13] = placement.as_vec4() if placement else NO_TEXTURE

                vertex_blocks.append(block)
                index_blocks.append(np.asarray(frag.indices, dtype=np.uint32) + base)
                base += n

        if not vertex_blocks:
            return (
                np.zeros((0, VERTEX_FLOAT_COUNT), dtype=np.float32),
                np.zeros((0,), dtype=np.uint32),
            )
        return np.concatenate(vertex_blocks), np.concatenate(index_blocks)


class MeshBatcher:
    """
    Groups instances by draw key. Keys compare by their canonical encoding,
    so equal keys built independently land in the same batch.
    """

    def __init__(self, usage: Optional[TextureUsageIndex] = None) -> None:
        self.usage = usage if usage is not None else TextureUsageIndex()
        self._batches: Dict[str, Batch] = {}

    def add(self, item: ItemInstance, model: ModelData, key: DrawKey) -> Batch:
        if key.render_layer is RenderLayer.OPAQUE and model.transparent:
            key = key.with_layer(RenderLayer.TRANSLUCENT)

        canonical = key.canonical()
        batch = self._batches.get(canonical)
        if batch is None:
            batch = Batch(key)
            self._batches[canonical] = batch
            logger.debug("new batch %s", canonical)

        batch.add(MeshInstance(model, item))
        for texture in model.textures:
            self.usage.record(texture, key)
        return batch

    def get(self, key: DrawKey) -> Optional[Batch]:
        return self._batches.get(key.canonical())

    def batches(self) -> List[Batch]:
        """Batches in the order their keys were first seen."""
        return list(self._batches.values())

    def __iter__(self) -> Iterator[Batch]:
        return iter(self._batches.values())

    def __len__(self) -> int:
        return len(self._batches)
