import moderngl
import numpy as np
import pytest

from kestrel.graphics.atlas import merge_placements, pack_atlas, pack_texture_arrays
from kestrel.graphics.upload import AtlasUploader, upload_atlas


class FakeTexture:
    def __init__(self, size, components, data):
        self.size = size
        self.components = components
        self.data = data
        self.released = False

    def release(self):
        self.released = True


class FakeContext:
    """Records texture creation instead of talking to a GPU."""

    def __init__(self):
        self.textures = []
        self.arrays = []

    def texture(self, size, components, data=None):
        tex = FakeTexture(size, components, data)
        self.textures.append(tex)
        return tex

    def texture_array(self, size, components, data=None):
        tex = FakeTexture(size, components, data)
        self.arrays.append(tex)
        return tex


@pytest.fixture
def gl():
    return FakeContext()


def test_atlas_upload(gl, make_texture):
    atlas = pack_atlas([make_texture("a", 4, 4), make_texture("b", 4, 4)])

    handle = upload_atlas(gl, atlas)

    assert handle.label == "textureAtlas0"
    assert (handle.width, handle.height) == (atlas.width, atlas.height)
    tex = gl.textures[0]
    assert tex.size == (atlas.width, atlas.height)
    assert tex.components == 4
    assert tex.data == atlas.tobytes()
    assert tex.filter == (moderngl.LINEAR, moderngl.LINEAR)
    assert tex.repeat_x is False
    assert tex.repeat_y is False


def test_texture_array_layer_holds_every_placement(gl, make_texture):
    shards = pack_texture_arrays([make_texture("a", fill=1), make_texture("b", fill=2)])
    (shard,) = shards

    handles = AtlasUploader(gl).texture_arrays(shards)

    (uploaded,) = gl.arrays
    width, height, layers = uploaded.size
    assert layers == 1
    assert (handles[0].width, handles[0].height) == (width, height)
    assert uploaded.data == shard.atlas.tobytes()

    pixels = np.frombuffer(uploaded.data, dtype=np.uint8).reshape(height, width, 4)
    for name, fill in (("a", 1), ("b", 2)):
        rect = merge_placements(shards)[name]
        assert handles[rect.index] is handles[0]
        assert rect.x + rect.width <= width
        assert rect.y + rect.height <= height
        texels = pixels[rect.y : rect.y + rect.height, rect.x : rect.x + rect.width]
        assert (texels[:, :, 0] == fill).all()


def test_uploader_caches_and_releases(gl, make_texture):
    uploader = AtlasUploader(gl)
    atlas = pack_atlas([make_texture("a")])
    shards = pack_texture_arrays([make_texture("b"), make_texture("c", 8, 8)])

    first = uploader.atlas(atlas)
    assert uploader.atlas(atlas) is first

    handles = uploader.texture_arrays(shards)
    assert [h.label for h in handles] == ["textureArray0", "textureArray1"]
    assert gl.arrays[0].size == (8, 8, 1)
    assert uploader.texture_arrays(shards) == handles
    assert len(gl.textures) == 1
    assert len(gl.arrays) == 2

    uploader.release()

    assert all(t.released for t in gl.textures + gl.arrays)
