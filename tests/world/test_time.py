import pytest

from kestrel.assets.types import ColorSet
from kestrel.world.time import (
    TIME_FACTOR,
    color_set_index,
    hour_of_day,
    sky_colors,
)

BLACK = (0.0, 0.0, 0.0, 1.0)
WHITE = (1.0, 1.0, 1.0, 1.0)


def cycle(weathers=4):
    """Even hours black, odd hours white; sky bottom always white."""
    return [
        ColorSet(
            ambient=WHITE if hour % 2 else BLACK,
            sky_top=WHITE if hour % 2 else BLACK,
            sky_bottom=WHITE,
        )
        for _ in range(weathers)
        for hour in range(24)
    ]


def test_hour_wraps_after_a_day():
    assert hour_of_day(0) == 0
    assert hour_of_day(22 * TIME_FACTOR + 1) == 22
    assert hour_of_day(24 * TIME_FACTOR) == 0
    assert hour_of_day(25 * 1000, time_factor=1000) == 1


def test_color_set_index_per_weather():
    assert color_set_index(5, 0) == 5
    assert color_set_index(5, 2) == 53
    assert color_set_index(24, 1) == 24


def test_sky_colors_interpolate_between_hours():
    colors = sky_colors(cycle(), elapsed=0.5 * TIME_FACTOR)

    assert colors.ambient == pytest.approx((0.5, 0.5, 0.5, 1.0))
    assert colors.sky_top == pytest.approx((0.5, 0.5, 0.5, 1.0))
    assert colors.sky_bottom == WHITE


def test_fog_sits_between_top_and_bottom():
    colors = sky_colors(cycle(), elapsed=0.0)

    assert colors.fog == pytest.approx((0.67, 0.67, 0.67, 1.0))


def test_last_hour_blends_into_midnight():
    colors = sky_colors(cycle(), elapsed=23.5 * TIME_FACTOR, weather=3)
    assert colors.ambient == pytest.approx((0.5, 0.5, 0.5, 1.0))


def test_unknown_weather():
    with pytest.raises(ValueError, match="weather"):
        sky_colors(cycle(), elapsed=0.0, weather=4)


def test_short_time_cycle_names_the_weather():
    with pytest.raises(ValueError, match="weather 2 needs 72"):
        sky_colors(cycle(weathers=2), elapsed=0.0, weather=2)
