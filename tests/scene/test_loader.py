from collections import Counter

import pytest

from kestrel.assets.types import ItemDefinition, ItemInstance, ObjectDefinition, TextureData
from kestrel.errors import ResolutionError, ResourceError
from kestrel.graphics.draw_key import DrawKey, RenderLayer
from kestrel.scene.loader import DefinitionTable, SceneLoader
from kestrel.settings import MapDescription, MapLayout
from kestrel.types import Quaternion, Vector3

MAPS = "GrandTheftAuto3/data/maps"

GENERIC_IDE = b"""
objs
100, lamp1, generic, 50, 0
101, bigtower, generic, 50, 0
102, lodtower, generic, 2000, 0
103, glassbox, glasstxd, 50, 0
end
"""

ZONES = b"""
zone
downtown, 0, 0, 0, 0, 100, 100, 100, 1
end
"""


def inst(model_id, name, x, y=10.0, z=5.0):
    return f"{model_id}, {name}, {x}, {y}, {z}, 1, 1, 1, 0, 0, 0, 1"


def ipl(*rows):
    return ("inst\n" + "\n".join(rows) + "\nend\n").encode()


@pytest.fixture
def files():
    return {
        f"{MAPS}/generic.ide": GENERIC_IDE,
        f"{MAPS}/downtown.ipl": ipl(inst(100, "lamp1", 10.0)),
        "GrandTheftAuto3/data/timecyc.dat": b"0 0 0 0 0 0 0 0 0 0 0 0\n",
        "GrandTheftAuto3/data/gta3.zon": ZONES,
        "GrandTheftAuto3/models/generic.txd": b"generic",
        "GrandTheftAuto3/models/gta3/glasstxd.txd": b"glasstxd",
        "GrandTheftAuto3/models/gta3/lamp1.dff": b"lamp1",
        "GrandTheftAuto3/models/gta3/bigtower.dff": b"bigtower",
        "GrandTheftAuto3/models/gta3/glassbox.dff": b"glassbox",
    }


@pytest.fixture
def make_loader(make_server, triangle):
    textures = {
        "generic": [TextureData("Lamp", 4, 4, 24, bytes(48))],
        "glasstxd": [TextureData("Pane", 4, 4, 32, bytes(64), has_alpha=True)],
    }
    geometry = {"lamp1": "LAMP", "bigtower": "lamp", "glassbox": "pane"}

    def decode_textures(data, txd_name):
        assert data == txd_name.encode()
        return textures[txd_name]

    def decode_geometry(data, definition):
        return [triangle(texture=geometry[definition.model_name])]

    def factory(files, **kwargs):
        kwargs.setdefault("decode_geometry", decode_geometry)
        kwargs.setdefault("decode_textures", decode_textures)
        return SceneLoader(
            make_server(files),
            layout=MapLayout(generic_definitions=("generic",)),
            **kwargs,
        )

    return factory


def test_single_item_scene(make_loader, files):
    scene = make_loader(files).load(MapDescription("test", ("downtown",)))

    (batch,) = scene.batches
    assert batch.key == DrawKey("downtown", RenderLayer.OPAQUE, 50.0)
    assert len(batch.instances) == 1
    assert batch.textures == {"lamp"}

    assert scene.atlas is not None
    assert set(scene.placements) == {"lamp"}
    assert scene.texture_arrays == []
    assert len(scene.diagnostics) == 0
    assert len(scene.color_sets) == 1
    assert [z.name for z in scene.zones] == ["downtown"]


def test_lod_stand_ins_are_skipped(make_loader, files):
    files[f"{MAPS}/downtown.ipl"] = ipl(
        inst(101, "bigtower", 10.0),
        inst(102, "lodtower", 10.0),
        inst(100, "lamp1", 500.0),
    )
    loader = make_loader(files)

    scene = loader.load(MapDescription("test", ("downtown",)))

    keys = {b.key for b in scene.batches}
    assert keys == {
        DrawKey("downtown", RenderLayer.OPAQUE),
        DrawKey("cityzon", RenderLayer.OPAQUE, 50.0),
    }
    calls = loader.server._fetcher.calls
    assert "GrandTheftAuto3/models/gta3/lodtower.dff" not in calls


def test_unresolved_items_are_reported_and_dropped(make_loader, files):
    files[f"{MAPS}/downtown.ipl"] = ipl(inst(999, "ghost", 10.0), inst(100, "lamp1", 10.0))

    scene = make_loader(files).load(MapDescription("test", ("downtown",)))

    (error,) = scene.diagnostics
    assert isinstance(error, ResolutionError)
    assert error.subject == "ghost"
    assert sum(len(b.instances) for b in scene.batches) == 1


def test_unknown_name_is_not_resolved_through_its_id(make_loader, files):
    files[f"{MAPS}/downtown.ipl"] = ipl(inst(100, "ghost", 10.0))

    scene = make_loader(files).load(MapDescription("test", ("downtown",)))

    (error,) = scene.diagnostics
    assert error.subject == "ghost"
    assert scene.batches == []


def test_lod_exception_stays_and_island_lods_are_skipped(make_loader, files, triangle):
    files[f"{MAPS}/generic.ide"] = GENERIC_IDE.replace(
        b"end",
        b"104, lodistancoast01, generic, 300, 0\n105, islandlodcomind, generic, 3000, 0\nend",
    )
    files["GrandTheftAuto3/models/gta3/lodistancoast01.dff"] = b"lodistancoast01"
    files[f"{MAPS}/downtown.ipl"] = ipl(
        inst(104, "lodistancoast01", 10.0), inst(105, "islandlodcomind", 20.0)
    )
    loader = make_loader(files, decode_geometry=lambda data, d: [triangle(texture="lamp")])

    scene = loader.load(MapDescription("test", ("downtown",)))

    (batch,) = scene.batches
    assert [i.model.name for i in batch.instances] == ["lodistancoast01"]
    calls = loader.server._fetcher.calls
    assert "GrandTheftAuto3/models/gta3/islandlodcomind.dff" not in calls
    assert len(scene.diagnostics) == 0


def test_missing_texture_is_reported(make_loader, files, triangle):
    loader = make_loader(files, decode_geometry=lambda data, d: [triangle(texture="nothere")])

    scene = loader.load(MapDescription("test", ("downtown",)))

    (error,) = scene.diagnostics
    assert error.subject == "nothere"
    (batch,) = scene.batches
    assert batch.textures == set()
    assert scene.atlas is None
    assert scene.placements == {}


def test_alpha_textures_make_batches_translucent(make_loader, files):
    files[f"{MAPS}/downtown.ipl"] = ipl(inst(103, "glassbox", 10.0))

    scene = make_loader(files).load(MapDescription("test", ("downtown",)))

    (batch,) = scene.batches
    assert batch.key.render_layer is RenderLayer.TRANSLUCENT


def test_each_file_is_fetched_once(make_loader, files):
    files[f"{MAPS}/downtown.ipl"] = ipl(
        inst(100, "lamp1", 10.0), inst(100, "lamp1", 20.0), inst(101, "bigtower", 30.0)
    )
    loader = make_loader(files)

    loader.load(MapDescription("test", ("downtown",)))

    calls = loader.server._fetcher.calls
    assert len(calls) == len(set(calls))
    assert "GrandTheftAuto3/models/generic.txd" in calls


def test_texture_array_mode(make_loader, files):
    scene = make_loader(files, texture_arrays=True).load(MapDescription("test", ("downtown",)))

    assert scene.atlas is None
    (shard,) = scene.texture_arrays
    assert shard.names == ["lamp"]
    assert scene.placements["lamp"].index == 0


def test_summarize_keys_needs_no_geometry(make_server, files):
    files[f"{MAPS}/downtown.ipl"] = ipl(
        inst(100, "lamp1", 10.0), inst(100, "lamp1", 20.0), inst(999, "ghost", 0.0)
    )
    loader = SceneLoader(make_server(files), layout=MapLayout(generic_definitions=("generic",)))

    counts, diagnostics = loader.summarize_keys(MapDescription("test", ("downtown",)))

    assert counts == Counter({DrawKey("downtown", RenderLayer.OPAQUE, 50.0).canonical(): 2})
    assert len(diagnostics) == 1


def test_missing_map_file_aborts(make_loader, files):
    del files[f"{MAPS}/downtown.ipl"]

    with pytest.raises(ResourceError, match="downtown.ipl"):
        make_loader(files).load(MapDescription("test", ("downtown",)))


def test_definition_table_resolution():
    first = ItemDefinition([ObjectDefinition("lamp1", "generic", 50.0, id=100)])
    second = ItemDefinition([ObjectDefinition("lamp1", "street", 80.0, id=100)])
    table = DefinitionTable([first, second])

    assert table.by_name["lamp1"].txd_name == "street"

    by_id = ItemInstance(Vector3.zero(), Quaternion.identity(), id=100)
    assert table.resolve(by_id).model_name == "lamp1"

    with pytest.raises(ResolutionError, match="#7"):
        table.resolve(ItemInstance(Vector3.zero(), Quaternion.identity(), id=7))


def test_city_map_reads_district_definitions():
    desc = MapDescription.parse("all")

    ids = desc.definition_ids(MapLayout())
    assert ids[0] == "generic"
    assert "comntop/comntop" in ids
    assert "props" not in ids
    assert MapLayout().placement_path("props") == f"{MAPS}/props.IPL"
