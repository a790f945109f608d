import pytest

from kestrel.assets.importers.timecyc import TimeCycleImporter, parse_time_cycle
from kestrel.errors import FormatError


def test_colour_columns_are_scaled():
    text = """
    // amb        dir          sky top      sky bot
    255 0 0       9 9 9        0 255 0      0 0 255     100 200
    0 0 0         9 9 9        51 51 51     102 102 102
    """
    first, second = parse_time_cycle(text)

    assert first.ambient == (1.0, 0.0, 0.0, 1.0)
    assert first.sky_top == (0.0, 1.0, 0.0, 1.0)
    assert first.sky_bottom == (0.0, 0.0, 1.0, 1.0)
    assert second.sky_top == pytest.approx((0.2, 0.2, 0.2, 1.0))
    assert second.sky_bottom == pytest.approx((0.4, 0.4, 0.4, 1.0))


def test_short_row_is_rejected():
    with pytest.raises(FormatError, match="3 columns"):
        parse_time_cycle("1 2 3\n")


def test_non_numeric_column():
    with pytest.raises(FormatError, match="column 4"):
        parse_time_cycle("0 0 0 0 x 0 0 0 0 0 0 0\n", source="timecyc.dat")


def test_importer():
    rows = TimeCycleImporter().import_bytes(b"0 0 0 0 0 0 0 0 0 0 0 0\n" * 24, "t.dat")
    assert len(rows) == 24
