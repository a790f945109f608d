# kestrel/assets/importers/sections.py
"""Section grammar shared by the text map formats.

    section-name
    field, field, field
    end

Lines are trimmed and lowercased, blank lines and `#` comments are skipped.
"""

import re
from typing import Iterator, List, NamedTuple

from kestrel.errors import FormatError

_FIELD_SPLIT = re.compile(r"\s*,\s*")


class SectionRecord(NamedTuple):
    section: str
    fields: List[str]
    line: int


def read_sections(text: str) -> Iterator[SectionRecord]:
    section = None
    for lineno, raw in enumerate(text.split("\n"), start=1):
        line = raw.strip().lower()
        if line == "" or line[0] == "#":
            continue
        if section is None:
            section = line
        elif line == "end":
            section = None
        else:
            yield SectionRecord(section, _FIELD_SPLIT.split(line), lineno)


def parse_int(value: str, what: str, *, source: str, line: int) -> int:
    try:
        return int(value)
    except ValueError:
        raise FormatError(
            f"{what}: expected an integer, got {value!r}", source=source, line=line
        ) from None


def parse_float(value: str, what: str, *, source: str, line: int) -> float:
    try:
        result = float(value)
    except ValueError:
        raise FormatError(
            f"{what}: expected a number, got {value!r}", source=source, line=line
        ) from None
    if result != result:
        raise FormatError(f"{what}: NaN is not allowed", source=source, line=line)
    return result
