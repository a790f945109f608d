# kestrel/assets/__init__.py
from kestrel.assets.registry import AssetCache
from kestrel.assets.server import AssetServer, FileSystemFetcher
from kestrel.assets.types import (
    ColorSet,
    ItemDefinition,
    ItemInstance,
    ItemPlacement,
    MeshFragment,
    ObjectDefinition,
    ObjectFlags,
    TextureData,
    Zone,
)

__all__ = [
    "AssetServer",
    "AssetCache",
    "FileSystemFetcher",
    "ColorSet",
    "ItemDefinition",
    "ItemInstance",
    "ItemPlacement",
    "MeshFragment",
    "ObjectDefinition",
    "ObjectFlags",
    "TextureData",
    "Zone",
]
