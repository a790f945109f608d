from typing import Dict

import numpy as np
import pytest

from kestrel.assets.server import AssetServer
from kestrel.assets.types import (
    ItemInstance,
    MeshFragment,
    ObjectDefinition,
    TextureData,
)
from kestrel.types import Quaternion, Vector3


class DictFetcher:
    """In-memory fetcher that remembers every request."""

    def __init__(self, files: Dict[str, bytes]):
        self.files = files
        self.calls = []

    def __call__(self, path: str) -> bytes:
        self.calls.append(path)
        if path not in self.files:
            raise FileNotFoundError(path)
        return self.files[path]


@pytest.fixture
def make_server():
    """Returns a factory for AssetServers over in-memory files."""
    servers = []

    def factory(files: Dict[str, bytes]) -> AssetServer:
        server = AssetServer(DictFetcher(files), max_workers=2)
        servers.append(server)
        return server

    yield factory

    for server in servers:
        server.shutdown()


@pytest.fixture
def make_texture():
    def factory(name, width=4, height=4, alpha=False, fill=0x80):
        depth = 32 if alpha else 24
        pixels = bytes([fill]) * (width * height * depth // 8)
        return TextureData(
            name=name,
            width=width,
            height=height,
            depth=depth,
            pixels=pixels,
            has_alpha=alpha,
        )

    return factory


@pytest.fixture
def triangle():
    """Returns a factory for one-triangle fragments."""

    def factory(texture=None, alpha=1.0, texture_has_alpha=False):
        return MeshFragment(
            positions=np.array(
                [[0.0, 0.0, 0.0], [1.0, 0.0, 0.0], [0.0, 1.0, 0.0]], dtype=np.float32
            ),
            indices=np.array([0, 1, 2], dtype=np.uint32),
            texture=texture,
            base_color=(1.0, 1.0, 1.0, alpha),
            tex_coords=np.array([[0.0, 0.0], [1.0, 0.0], [0.0, 1.0]], dtype=np.float32),
            texture_has_alpha=texture_has_alpha,
        )

    return factory


@pytest.fixture
def lamp_definition():
    return ObjectDefinition(
        model_name="lamp1", txd_name="generic", draw_distance=50.0, id=100
    )


def place(x=0.0, y=0.0, z=0.0, model_name="lamp1", **kwargs):
    return ItemInstance(
        translation=Vector3(x, y, z),
        rotation=Quaternion.identity(),
        model_name=model_name,
        **kwargs,
    )


@pytest.fixture
def item():
    """Returns a factory for placed items."""
    return place
