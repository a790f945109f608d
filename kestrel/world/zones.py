# kestrel/world/zones.py
from typing import Iterable, Sequence

from kestrel.assets.types import Zone
from kestrel.types import Scalar

DEFAULT_ZONE = "cityzon"


def classify(
    point: Iterable[Scalar], zones: Sequence[Zone], default: str = DEFAULT_ZONE
) -> str:
    """
    Name of the first zone, in declaration order, whose box contains `point`.
    Overlaps resolve by order, never by size.
    """
    p = tuple(point)
    for zone in zones:
        if zone.bounds.contains_point(p):
            return zone.name
    return default
