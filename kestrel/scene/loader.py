# kestrel/scene/loader.py
"""Turns a map description into batches ready for the renderer.

    definitions + placements  ->  resolved items
    resolved items + zones    ->  draw keys
    texture dictionaries      ->  TextureDictionary
    models                    ->  ModelCache
    items + models + keys     ->  MeshBatcher
    used textures             ->  atlas (or texture arrays)
"""

from __future__ import annotations

import dataclasses
import logging
from collections import Counter
from dataclasses import dataclass, field
from typing import (
    Callable,
    Dict,
    Iterator,
    List,
    Optional,
    Sequence,
    Tuple,
)

from kestrel.assets.server import AssetServer
from kestrel.assets.types import (
    ColorSet,
    ItemDefinition,
    ItemInstance,
    ItemPlacement,
    MeshFragment,
    ObjectDefinition,
    TextureData,
    Zone,
)
from kestrel.errors import ResolutionError
from kestrel.graphics.atlas import (
    Atlas,
    TextureArrayShard,
    TexturePlacement,
    merge_placements,
    pack_atlas,
    pack_texture_arrays,
)
from kestrel.graphics.batcher import Batch, MeshBatcher, ModelCache, ModelData
from kestrel.graphics.draw_key import DrawKey, build_key
from kestrel.graphics.textures import TextureDictionary
from kestrel.settings import MapDescription, MapLayout, PipelineSettings
from kestrel.world.zones import classify

logger = logging.getLogger(__name__)

GeometryDecoder = Callable[[bytes, ObjectDefinition], Sequence[MeshFragment]]
TextureDecoder = Callable[[bytes, str], Sequence[TextureData]]

ResolvedItem = Tuple[ItemInstance, ObjectDefinition]
KeyedItem = Tuple[ItemInstance, ObjectDefinition, DrawKey]


class Diagnostics:
    """Recoverable problems met while building a scene."""

    def __init__(self) -> None:
        self.errors: List[ResolutionError] = []

    def record(self, error: ResolutionError) -> None:
        logger.warning("%s", error)
        self.errors.append(error)

    def extend(self, errors: Sequence[ResolutionError]) -> None:
        for error in errors:
            self.record(error)

    def __iter__(self) -> Iterator[ResolutionError]:
        return iter(self.errors)

    def __len__(self) -> int:
        return len(self.errors)


class DefinitionTable:
    """Object definitions by model name, plus the id -> name table."""

    def __init__(self, definitions: Sequence[ItemDefinition] = ()) -> None:
        self.by_name: Dict[str, ObjectDefinition] = {}
        self.names_by_id: Dict[int, str] = {}
        for ide in definitions:
            for obj in ide.objects:
                self.add(obj)

    def add(self, obj: ObjectDefinition) -> None:
        self.by_name[obj.model_name] = obj
        if obj.id is not None:
            self.names_by_id[obj.id] = obj.model_name

    def resolve(self, item: ItemInstance) -> ObjectDefinition:
        # Text rows resolve by name only; binary records carry just the id.
        if item.model_name is not None:
            obj = self.by_name.get(item.model_name)
            if obj is not None:
                return obj
        elif item.id is not None and item.id in self.names_by_id:
            return self.by_name[self.names_by_id[item.id]]

        subject = item.model_name if item.model_name is not None else f"#{item.id}"
        raise ResolutionError(f"No definition for object {subject}", subject=subject)

    def has_lod_variant(self, obj: ObjectDefinition) -> bool:
        # A distant stand-in is named like its model with "lod" over the first three letters.
        return f"lod{obj.model_name[3:]}" in self.by_name

    def __len__(self) -> int:
        return len(self.by_name)


@dataclass
class Scene:
    batches: List[Batch]
    placements: Dict[str, TexturePlacement]
    color_sets: List[ColorSet]
    zones: List[Zone]
    diagnostics: Diagnostics
    atlas: Optional[Atlas] = None
    texture_arrays: List[TextureArrayShard] = field(default_factory=list)


class SceneLoader:
    def __init__(
        self,
        server: AssetServer,
        *,
        decode_geometry: Optional[GeometryDecoder] = None,
        decode_textures: Optional[TextureDecoder] = None,
        settings: PipelineSettings = PipelineSettings(),
        layout: MapLayout = MapLayout(),
        texture_arrays: bool = False,
    ) -> None:
        self.server = server
        self.decode_geometry = decode_geometry
        self.decode_textures = decode_textures
        self.settings = settings
        self.layout = layout
        self.texture_arrays = texture_arrays

    # -- Map files --

    def load_definitions(self, desc: MapDescription) -> DefinitionTable:
        paths = [self.layout.definition_path(i) for i in desc.definition_ids(self.layout)]
        table = DefinitionTable(self.server.load_many(paths))
        logger.info("%d object definitions from %d files", len(table), len(paths))
        return table

    def load_placements(self, desc: MapDescription) -> List[ItemInstance]:
        paths = [self.layout.placement_path(i) for i in desc.placements]
        placements: List[ItemPlacement] = self.server.load_many(paths)
        return [item for ipl in placements for item in ipl.instances]

    def load_environment(self) -> Tuple[List[ColorSet], List[Zone]]:
        color_sets, zones = self.server.load_many(
            [self.layout.time_cycle_path(), self.layout.zones_path()]
        )
        return color_sets, zones

    def prefetch(self, desc: MapDescription) -> None:
        """Start every map-file fetch so they overlap."""
        for ide_id in desc.definition_ids(self.layout):
            self.server.fetch(self.layout.definition_path(ide_id))
        for ipl_id in desc.placements:
            self.server.fetch(self.layout.placement_path(ipl_id))
        self.server.fetch(self.layout.time_cycle_path())
        self.server.fetch(self.layout.zones_path())

    # -- Classification --

    def resolve_items(
        self,
        instances: Sequence[ItemInstance],
        table: DefinitionTable,
        diagnostics: Diagnostics,
    ) -> List[ResolvedItem]:
        items: List[ResolvedItem] = []
        skipped_lod = 0
        for item in instances:
            try:
                obj = table.resolve(item)
            except ResolutionError as e:
                diagnostics.record(e)
                continue
            if self.settings.is_lod_name(obj.model_name):
                skipped_lod += 1
                continue
            items.append((item, obj))
        logger.info(
            "%d items resolved, %d LOD stand-ins skipped", len(items), skipped_lod
        )
        return items

    def key_for(
        self, item: ItemInstance, obj: ObjectDefinition, zones: Sequence[Zone], table: DefinitionTable
    ) -> DrawKey:
        zone = classify(item.translation, zones, self.settings.default_zone)
        has_lod = (item.lod is not None and item.lod >= 0) or table.has_lod_variant(obj)
        return build_key(
            obj,
            zone,
            has_lod=has_lod,
            cutoff=self.settings.draw_distance_cutoff,
        )

    def classify_items(
        self,
        items: Sequence[ResolvedItem],
        zones: Sequence[Zone],
        table: DefinitionTable,
    ) -> List[KeyedItem]:
        return [(item, obj, self.key_for(item, obj, zones, table)) for item, obj in items]

    # -- Textures and models --

    def load_textures(
        self, items: Sequence[ResolvedItem], diagnostics: Diagnostics
    ) -> TextureDictionary:
        if self.decode_textures is None:
            raise ValueError("SceneLoader needs a texture decoder to load textures")

        txd_names = list(dict.fromkeys(obj.txd_name for _, obj in items))
        blobs = self.server.fetch_all(
            [self.layout.texture_dictionary_path(n) for n in txd_names]
        )
        dictionary = TextureDictionary()
        for name, data in zip(txd_names, blobs):
            dictionary.add_all(
                dataclasses.replace(t, name=t.name.lower())
                for t in self.decode_textures(data, name)
            )
        diagnostics.extend(dictionary.rejected)
        logger.info(
            "%d textures from %d dictionaries", len(dictionary), len(txd_names)
        )
        return dictionary

    def _bind_textures(
        self,
        fragment: MeshFragment,
        textures: TextureDictionary,
        diagnostics: Diagnostics,
        model_name: str,
    ) -> MeshFragment:
        if fragment.texture is None:
            return fragment
        name = fragment.texture.lower()
        texture = textures.get(name)
        if texture is None:
            diagnostics.record(
                ResolutionError(f"Missing texture {name} in {model_name}", subject=name)
            )
            return dataclasses.replace(fragment, texture=None)
        return dataclasses.replace(
            fragment,
            texture=name,
            texture_has_alpha=fragment.texture_has_alpha or texture.has_alpha,
        )

    def load_models(
        self,
        items: Sequence[ResolvedItem],
        textures: TextureDictionary,
        diagnostics: Diagnostics,
    ) -> ModelCache:
        if self.decode_geometry is None:
            raise ValueError("SceneLoader needs a geometry decoder to load models")

        definitions = list({obj.model_name: obj for _, obj in items}.values())
        blobs = self.server.fetch_all(
            [self.layout.model_path(obj.model_name) for obj in definitions]
        )
        cache = ModelCache()
        for obj, data in zip(definitions, blobs):
            fragments = [
                self._bind_textures(frag, textures, diagnostics, obj.model_name)
                for frag in self.decode_geometry(data, obj)
            ]
            cache.add(ModelData(obj.model_name, obj, fragments))
        logger.info("%d models decoded", len(cache))
        return cache

    # -- Whole scene --

    def batch(
        self, keyed: Sequence[KeyedItem], models: ModelCache
    ) -> MeshBatcher:
        batcher = MeshBatcher()
        for item, obj, key in keyed:
            model = models.get(obj.model_name)
            if model is None:
                raise KeyError(f"Model {obj.model_name} was not loaded")
            batcher.add(item, model, key)
        return batcher

    def pack(
        self, batcher: MeshBatcher, textures: TextureDictionary
    ) -> Tuple[Optional[Atlas], List[TextureArrayShard], Dict[str, TexturePlacement]]:
        used = [textures.get(name) for name in batcher.usage.names()]
        used = [t for t in used if t is not None]
        if not used:
            return None, [], {}

        if self.texture_arrays:
            shards = pack_texture_arrays(
                used,
                capacity=self.settings.texture_array_capacity,
                max_width=self.settings.atlas_max_width,
            )
            return None, shards, merge_placements(shards)

        atlas = pack_atlas(used, max_width=self.settings.atlas_max_width)
        logger.info(
            "atlas %dx%d holds %d textures", atlas.width, atlas.height, len(used)
        )
        return atlas, [], atlas.placements

    def load(self, desc: MapDescription) -> Scene:
        diagnostics = Diagnostics()
        self.prefetch(desc)

        table = self.load_definitions(desc)
        instances = self.load_placements(desc)
        items = self.resolve_items(instances, table, diagnostics)
        color_sets, zones = self.load_environment()

        textures = self.load_textures(items, diagnostics)
        models = self.load_models(items, textures, diagnostics)

        keyed = self.classify_items(items, zones, table)
        batcher = self.batch(keyed, models)
        atlas, shards, placements = self.pack(batcher, textures)

        logger.info(
            "%s: %d items in %d batches, %d diagnostics",
            desc.name,
            len(keyed),
            len(batcher),
            len(diagnostics),
        )
        return Scene(
            batches=batcher.batches(),
            placements=placements,
            color_sets=color_sets,
            zones=zones,
            diagnostics=diagnostics,
            atlas=atlas,
            texture_arrays=shards,
        )

    def summarize_keys(self, desc: MapDescription) -> Tuple[Counter, Diagnostics]:
        """Instance count per canonical draw key, without touching geometry."""
        diagnostics = Diagnostics()
        self.prefetch(desc)
        table = self.load_definitions(desc)
        items = self.resolve_items(self.load_placements(desc), table, diagnostics)
        _color_sets, zones = self.load_environment()
        counts: Counter = Counter(
            key.canonical() for _, _, key in self.classify_items(items, zones, table)
        )
        return counts, diagnostics
