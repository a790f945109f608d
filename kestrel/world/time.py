# kestrel/world/time.py
from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Sequence

from kestrel.assets.types import ColorSet
from kestrel.math import lerp
from kestrel.types import Color

# Elapsed milliseconds per in-game hour: a full day lasts one minute.
TIME_FACTOR = 2500.0
HOURS_PER_DAY = 24

WEATHERS = ("Sunny", "Cloudy", "Rainy", "Foggy")

# Fog colour sits two thirds of the way from sky top to sky bottom.
FOG_BLEND = 0.67


def hour_of_day(elapsed: float, time_factor: float = TIME_FACTOR) -> int:
    return int(math.floor(elapsed / time_factor)) % HOURS_PER_DAY


def color_set_index(hour: int, weather: int) -> int:
    return hour % HOURS_PER_DAY + HOURS_PER_DAY * weather


def lerp_color(a: Color, b: Color, t: float) -> Color:
    return (
        lerp(a[0], b[0], t),
        lerp(a[1], b[1], t),
        lerp(a[2], b[2], t),
        lerp(a[3], b[3], t),
    )


@dataclass(frozen=True, slots=True)
class SkyColors:
    ambient: Color
    sky_top: Color
    sky_bottom: Color
    fog: Color


def sky_colors(
    color_sets: Sequence[ColorSet],
    elapsed: float,
    weather: int = 0,
    time_factor: float = TIME_FACTOR,
) -> SkyColors:
    """Blend the colour sets of the current and next hour for one weather."""
    if not 0 <= weather < len(WEATHERS):
        raise ValueError(f"Unknown weather index {weather}")
    needed = 24 * (weather + 1)
    if len(color_sets) < needed:
        raise ValueError(
            f"Time cycle has {len(color_sets)} colour sets, weather {weather} needs {needed}"
        )
    t = elapsed / time_factor
    hour = int(math.floor(t))
    frac = t - hour

    cs1 = color_sets[color_set_index(hour, weather)]
    cs2 = color_sets[color_set_index(hour + 1, weather)]

    top = lerp_color(cs1.sky_top, cs2.sky_top, frac)
    bottom = lerp_color(cs1.sky_bottom, cs2.sky_bottom, frac)
    return SkyColors(
        ambient=lerp_color(cs1.ambient, cs2.ambient, frac),
        sky_top=top,
        sky_bottom=bottom,
        fog=lerp_color(top, bottom, FOG_BLEND),
    )
