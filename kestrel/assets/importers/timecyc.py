# kestrel/assets/importers/timecyc.py
"""Time-cycle table: one row per (hour, weather), 24 rows per weather.

Only the colour columns the map renderer needs are kept:
    0-2   ambient RGB
    3-5   directional RGB (ignored)
    6-8   sky top RGB
    9-11  sky bottom RGB
"""

import logging
from typing import List, Sequence

from kestrel.assets.importers.base import AssetImporter, decode_text
from kestrel.assets.importers.sections import parse_float
from kestrel.assets.types import ColorSet
from kestrel.errors import FormatError
from kestrel.types import Color

logger = logging.getLogger(__name__)

HOURS_PER_WEATHER = 24
_MIN_COLUMNS = 12


def _rgb(values: Sequence[float], start: int) -> Color:
    r, g, b = values[start : start + 3]
    return (r / 255.0, g / 255.0, b / 255.0, 1.0)


def parse_time_cycle(text: str, *, source: str = "<timecyc>") -> List[ColorSet]:
    sets: List[ColorSet] = []
    for lineno, raw in enumerate(text.split("\n"), start=1):
        line = raw.strip()
        if line == "" or line.startswith("//"):
            continue
        columns = line.split()
        if len(columns) < _MIN_COLUMNS:
            raise FormatError(
                f"time-cycle row has {len(columns)} columns, expected at least {_MIN_COLUMNS}",
                source=source,
                line=lineno,
            )
        values = [
            parse_float(c, f"column {i}", source=source, line=lineno)
            for i, c in enumerate(columns[:_MIN_COLUMNS])
        ]
        sets.append(
            ColorSet(
                ambient=_rgb(values, 0),
                sky_top=_rgb(values, 6),
                sky_bottom=_rgb(values, 9),
            )
        )
    if len(sets) % HOURS_PER_WEATHER:
        logger.warning(
            "%s: %d rows is not a whole number of days", source, len(sets)
        )
    return sets


class TimeCycleImporter(AssetImporter):
    def import_bytes(self, data: bytes, source: str) -> List[ColorSet]:
        return parse_time_cycle(decode_text(data), source=source)
