# kestrel/assets/importers/ide.py
import logging
from typing import List

from kestrel.assets.importers.base import AssetImporter, decode_text
from kestrel.assets.importers.sections import (
    SectionRecord,
    parse_float,
    parse_int,
    read_sections,
)
from kestrel.assets.types import ItemDefinition, ObjectDefinition
from kestrel.errors import FormatError

logger = logging.getLogger(__name__)

OBJECT_SECTIONS = ("objs", "tobj", "anim")

# id, model, txd, draw distance, flags
_MIN_FIELDS = 5


def parse_object_definition(
    record: SectionRecord, *, source: str = "<ide>"
) -> ObjectDefinition:
    row = record.fields
    line = record.line
    tobj = record.section == "tobj"

    # Time-gated records carry on/off hours at the very end; everything
    # before them has the regular layout with an optional mesh count.
    body = row[:-2] if tobj else row
    if len(body) < _MIN_FIELDS:
        raise FormatError(
            f"{record.section} record has {len(row)} fields", source=source, line=line
        )

    draw_distance = body[4] if len(body) > _MIN_FIELDS else body[3]

    time_on = time_off = None
    if tobj:
        time_on = parse_int(row[-2], "time on", source=source, line=line)
        time_off = parse_int(row[-1], "time off", source=source, line=line)

    return ObjectDefinition(
        id=parse_int(row[0], "id", source=source, line=line),
        model_name=row[1],
        txd_name=row[2],
        draw_distance=parse_float(draw_distance, "draw distance", source=source, line=line),
        flags=parse_int(body[-1], "flags", source=source, line=line),
        time_gated=tobj,
        time_on=time_on,
        time_off=time_off,
    )


def parse_item_definition(text: str, *, source: str = "<ide>") -> ItemDefinition:
    objects: List[ObjectDefinition] = []
    for record in read_sections(text):
        if record.section in OBJECT_SECTIONS:
            objects.append(parse_object_definition(record, source=source))
    logger.debug("%s: %d object definitions", source, len(objects))
    return ItemDefinition(objects=objects)


def _format_number(value: float) -> str:
    if float(value).is_integer():
        return str(int(value))
    return repr(float(value))


def format_object_definition(obj: ObjectDefinition) -> str:
    """Serialize one definition as a record line for its section."""
    fields = [
        str(-1 if obj.id is None else obj.id),
        obj.model_name,
        obj.txd_name,
        _format_number(obj.draw_distance),
        str(int(obj.flags)),
    ]
    if obj.time_gated:
        fields += [str(obj.time_on), str(obj.time_off)]
    return ", ".join(fields)


def format_item_definition(definition: ItemDefinition) -> str:
    plain = [o for o in definition.objects if not o.time_gated]
    gated = [o for o in definition.objects if o.time_gated]
    lines: List[str] = []
    for section, objects in (("objs", plain), ("tobj", gated)):
        if not objects:
            continue
        lines.append(section)
        lines.extend(format_object_definition(o) for o in objects)
        lines.append("end")
    return "\n".join(lines) + "\n"


class ItemDefinitionImporter(AssetImporter):
    def import_bytes(self, data: bytes, source: str) -> ItemDefinition:
        return parse_item_definition(decode_text(data), source=source)
