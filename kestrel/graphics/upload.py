# kestrel/graphics/upload.py
from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, List

import moderngl

from kestrel.graphics.atlas import Atlas, TextureArrayShard


@dataclass(slots=True)
class AtlasTextureHandle:
    """Wraps the GPU copy of an atlas page or texture array."""

    texture: moderngl.Texture | moderngl.TextureArray
    width: int
    height: int
    label: str


def _configure(texture: moderngl.Texture | moderngl.TextureArray) -> None:
    # Atlas rects are addressed in texels; no mips, no wrapping into neighbours.
    texture.filter = (moderngl.LINEAR, moderngl.LINEAR)
    texture.repeat_x = False
    texture.repeat_y = False


def upload_atlas(gl: moderngl.Context, atlas: Atlas, label: str = "") -> AtlasTextureHandle:
    texture = gl.texture((atlas.width, atlas.height), 4, data=atlas.tobytes())
    _configure(texture)
    return AtlasTextureHandle(
        texture=texture,
        width=atlas.width,
        height=atlas.height,
        label=label or f"textureAtlas{atlas.index}",
    )


def upload_texture_array(
    gl: moderngl.Context, shard: TextureArrayShard, label: str = ""
) -> AtlasTextureHandle:
    # One layer holding the shard's packed page, so placement rects address it directly.
    texture = gl.texture_array(
        (shard.width, shard.height, 1), 4, data=shard.atlas.tobytes()
    )
    _configure(texture)
    return AtlasTextureHandle(
        texture=texture,
        width=shard.width,
        height=shard.height,
        label=label or f"textureArray{shard.index}",
    )


class AtlasUploader:
    """Creates and caches GPU textures for a scene's atlases."""

    def __init__(self, gl: moderngl.Context) -> None:
        self._gl = gl
        self._atlases: Dict[int, AtlasTextureHandle] = {}
        self._arrays: Dict[int, AtlasTextureHandle] = {}

    def atlas(self, atlas: Atlas) -> AtlasTextureHandle:
        handle = self._atlases.get(atlas.index)
        if handle is None:
            handle = upload_atlas(self._gl, atlas)
            self._atlases[atlas.index] = handle
        return handle

    def texture_arrays(self, shards: List[TextureArrayShard]) -> List[AtlasTextureHandle]:
        handles = []
        for shard in shards:
            handle = self._arrays.get(shard.index)
            if handle is None:
                handle = upload_texture_array(self._gl, shard)
                self._arrays[shard.index] = handle
            handles.append(handle)
        return handles

    def release(self) -> None:
        for handles in (self._atlases, self._arrays):
            for handle in handles.values():
                handle.texture.release()
            handles.clear()
