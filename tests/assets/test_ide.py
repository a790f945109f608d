import pytest

from kestrel.assets.importers.ide import (
    ItemDefinitionImporter,
    format_item_definition,
    parse_item_definition,
)
from kestrel.assets.types import ObjectFlags
from kestrel.errors import FormatError


def test_objs_record_without_mesh_count():
    ide = parse_item_definition("objs\n100, LAMP1, Generic, 50, 0\nend\n")

    (obj,) = ide.objects
    assert obj.id == 100
    assert obj.model_name == "lamp1"
    assert obj.txd_name == "generic"
    assert obj.draw_distance == 50.0
    assert obj.flags == 0
    assert not obj.time_gated


def test_objs_record_with_mesh_count():
    ide = parse_item_definition("objs\n2, bldg, bldgtxd, 1, 300, 4\nend\n")

    (obj,) = ide.objects
    assert obj.draw_distance == 300.0
    assert obj.has_flag(ObjectFlags.DRAW_LAST)


def test_tobj_reads_time_window_and_draw_distance():
    text = """
    tobj
    3, neon, neontxd, 1, 120, 0, 20, 6
    4, sign, signtxd, 80, 4, 19, 5
    end
    """
    neon, sign = parse_item_definition(text).objects

    assert neon.time_gated
    assert (neon.time_on, neon.time_off) == (20, 6)
    assert neon.draw_distance == 120.0
    assert neon.flags == 0

    assert sign.draw_distance == 80.0
    assert sign.flags == 4
    assert (sign.time_on, sign.time_off) == (19, 5)


def test_unknown_sections_and_comments_are_skipped():
    text = """
    # comment
    cars
    90, taxi, taxi, car
    end
    objs
    1, a, t, 10, 0
    end
    anim
    2, b, t, walk, 20, 0
    end
    path
    group, a
    end
    """
    objects = parse_item_definition(text).objects

    assert [o.model_name for o in objects] == ["a", "b"]
    # anim rows carry an animation name where the mesh count usually is
    assert objects[1].draw_distance == 20.0


def test_bad_number_reports_source_and_line():
    with pytest.raises(FormatError, match=r"maps/x\.ide:2") as exc:
        parse_item_definition("objs\n1, a, t, far, 0\nend\n", source="maps/x.ide")

    assert exc.value.line == 2
    assert exc.value.source == "maps/x.ide"


def test_short_record_is_rejected():
    with pytest.raises(FormatError, match="4 fields"):
        parse_item_definition("objs\n1, a, t, 10\nend\n")


def test_formatted_definitions_parse_back():
    original = parse_item_definition(
        "objs\n1, a, t, 10, 0\n2, b, t, 12.5, 64\nend\n"
        "tobj\n3, c, t, 30, 0, 20, 6\nend\n"
    )

    text = format_item_definition(original)
    assert text.startswith("objs\n")
    assert "\ntobj\n" in text

    assert parse_item_definition(text) == original


def test_importer_decodes_bytes():
    ide = ItemDefinitionImporter().import_bytes(b"objs\n1, a, t, 10, 0\nend\n", "a.ide")
    assert len(ide.objects) == 1
