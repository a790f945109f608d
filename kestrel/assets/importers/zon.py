# kestrel/assets/importers/zon.py
import logging
from typing import List

from kestrel.assets.importers.base import AssetImporter, decode_text
from kestrel.assets.importers.sections import parse_float, read_sections
from kestrel.assets.types import Zone
from kestrel.errors import FormatError
from kestrel.types import BoundingBox3D

logger = logging.getLogger(__name__)

# Zone type 0 marks a city zone; navigation and info zones use other types.
CITY_ZONE_TYPE = "0"


def parse_zones(text: str, *, source: str = "<zon>") -> List[Zone]:
    """City zones in declaration order."""
    zones: List[Zone] = []
    for record in read_sections(text):
        if record.section != "zone":
            continue
        row = record.fields
        if len(row) < 8:
            raise FormatError(
                f"zone record has {len(row)} fields", source=source, line=record.line
            )
        name, zone_type = row[0], row[1]
        if zone_type != CITY_ZONE_TYPE:
            continue
        coords = [
            parse_float(v, "zone corner", source=source, line=record.line)
            for v in row[2:8]
        ]
        zones.append(Zone(name, BoundingBox3D.from_corners(coords[:3], coords[3:])))
    logger.debug("%s: %d city zones", source, len(zones))
    return zones


class ZoneImporter(AssetImporter):
    def import_bytes(self, data: bytes, source: str) -> List[Zone]:
        return parse_zones(decode_text(data), source=source)
