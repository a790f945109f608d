# kestrel/assets/importers/ipl.py
import logging
import struct
from typing import List

from kestrel.assets.importers.base import AssetImporter, decode_text
from kestrel.assets.importers.sections import (
    SectionRecord,
    parse_float,
    parse_int,
    read_sections,
)
from kestrel.assets.types import ItemInstance, ItemPlacement
from kestrel.errors import FormatError
from kestrel.types import Quaternion, Vector3

logger = logging.getLogger(__name__)

BINARY_MAGIC = b"bnry"
BINARY_RECORD_OFFSET = 0x4C
BINARY_RECORD = struct.Struct("<7f3i")  # pos xyz, rot xyzw, id, interior, lod


def parse_item_instance(
    record: SectionRecord, *, source: str = "<ipl>"
) -> ItemInstance:
    row = record.fields
    line = record.line
    interior = lod = None

    if len(row) == 12:
        model_id, model, px, py, pz, sx, sy, sz, rx, ry, rz, rw = row
    elif len(row) == 13:
        model_id, model, interior, px, py, pz, sx, sy, sz, rx, ry, rz, rw = row
    elif len(row) == 11:
        model_id, model, interior, px, py, pz, rx, ry, rz, rw, lod = row
        sx = sy = sz = "1"
    else:
        raise FormatError(
            f"inst record has {len(row)} fields, expected 11, 12 or 13",
            source=source,
            line=line,
        )

    def num(value: str, what: str) -> float:
        return parse_float(value, what, source=source, line=line)

    def integer(value: str, what: str) -> int:
        return parse_int(value, what, source=source, line=line)

    return ItemInstance(
        id=integer(model_id, "id"),
        model_name=model,
        translation=Vector3(num(px, "x"), num(py, "y"), num(pz, "z")),
        scale=Vector3(num(sx, "scale x"), num(sy, "scale y"), num(sz, "scale z")),
        # Source rotations use the opposite handedness.
        rotation=Quaternion(
            num(rx, "rot x"), num(ry, "rot y"), num(rz, "rot z"), -num(rw, "rot w")
        ),
        interior=None if interior is None else integer(interior, "interior"),
        lod=None if lod is None else integer(lod, "lod"),
    )


def parse_item_placement(text: str, *, source: str = "<ipl>") -> ItemPlacement:
    instances: List[ItemInstance] = []
    for record in read_sections(text):
        if record.section == "inst":
            instances.append(parse_item_instance(record, source=source))
    logger.debug("%s: %d instances", source, len(instances))
    return ItemPlacement(instances=instances)


def parse_item_placement_binary(
    data: bytes, *, source: str = "<ipl>"
) -> ItemPlacement:
    if len(data) < BINARY_RECORD_OFFSET:
        raise FormatError(
            f"binary placement header truncated ({len(data)} bytes)", source=source
        )
    if data[:4] != BINARY_MAGIC:
        raise FormatError(f"bad magic {data[:4]!r}", source=source, offset=0)

    (count,) = struct.unpack_from("<I", data, 4)
    (offset,) = struct.unpack_from("<I", data, 7 * 4)
    if offset != BINARY_RECORD_OFFSET:
        raise FormatError(
            f"record offset 0x{offset:x}, expected 0x{BINARY_RECORD_OFFSET:x}",
            source=source,
            offset=7 * 4,
        )

    end = offset + count * BINARY_RECORD.size
    if end > len(data):
        raise FormatError(
            f"{count} records need {end} bytes, file has {len(data)}",
            source=source,
            offset=offset,
        )

    instances: List[ItemInstance] = []
    for px, py, pz, rx, ry, rz, rw, model_id, interior, lod in BINARY_RECORD.iter_unpack(
        data[offset:end]
    ):
        instances.append(
            ItemInstance(
                id=model_id,
                translation=Vector3(px, py, pz),
                rotation=Quaternion(rx, ry, rz, -rw),
                interior=interior,
                lod=lod,
            )
        )
    logger.debug("%s: %d binary instances", source, len(instances))
    return ItemPlacement(instances=instances)


def is_binary_placement(data: bytes) -> bool:
    return data[:4] == BINARY_MAGIC


class ItemPlacementImporter(AssetImporter):
    """Accepts both the text and the binary placement formats."""

    def import_bytes(self, data: bytes, source: str) -> ItemPlacement:
        if is_binary_placement(data):
            return parse_item_placement_binary(data, source=source)
        return parse_item_placement(decode_text(data), source=source)
