# kestrel/assets/importers/archive.py
"""`.img` asset archives.

Directory entries are 32 bytes: uint32 offset and a size, both counted in
2048-byte sectors, followed by a 24-byte null-terminated name.

    version 1: directory lives in a separate `.dir` file, no header,
               uint32 size.
    version 2: directory at the start of the `.img`, behind a `VER2` magic and
               a uint32 entry count; uint16 size followed by an unused uint16.
"""

from __future__ import annotations

import logging
import math
import struct
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Iterator, List, Literal, Mapping, Optional

from kestrel.errors import FormatError

logger = logging.getLogger(__name__)

SECTOR_SIZE = 2048
ENTRY_SIZE = 32
NAME_SIZE = 24
VER2_MAGIC = b"VER2"
VER2_HEADER_SIZE = 8

ArchiveVersion = Literal[1, 2]

_ENTRY_V1 = struct.Struct("<II24s")
_ENTRY_V2 = struct.Struct("<IHH24s")


@dataclass(frozen=True, slots=True)
class ArchiveEntry:
    name: str
    offset: int  # sectors
    size: int  # sectors

    @property
    def byte_offset(self) -> int:
        return self.offset * SECTOR_SIZE

    @property
    def byte_size(self) -> int:
        return self.size * SECTOR_SIZE


def _decode_name(raw: bytes) -> str:
    return raw.split(b"\0", 1)[0].decode("latin-1")


def read_directory(
    data: bytes, version: ArchiveVersion = 2, *, source: str = "<img>"
) -> List[ArchiveEntry]:
    entries: List[ArchiveEntry] = []

    if version == 1:
        if len(data) % ENTRY_SIZE:
            raise FormatError(
                f"directory size {len(data)} is not a multiple of {ENTRY_SIZE}",
                source=source,
            )
        for offset, size, name in _ENTRY_V1.iter_unpack(data):
            entries.append(ArchiveEntry(_decode_name(name), offset, size))
        return entries

    if version != 2:
        raise ValueError(f"Unknown archive version {version}")

    if len(data) < VER2_HEADER_SIZE or data[:4] != VER2_MAGIC:
        raise FormatError("missing VER2 header", source=source, offset=0)
    (count,) = struct.unpack_from("<I", data, 4)
    end = VER2_HEADER_SIZE + count * ENTRY_SIZE
    if end > len(data):
        raise FormatError(
            f"directory of {count} entries runs past end of file",
            source=source,
            offset=VER2_HEADER_SIZE,
        )
    for offset, size, _archive_size, name in _ENTRY_V2.iter_unpack(
        data[VER2_HEADER_SIZE:end]
    ):
        entries.append(ArchiveEntry(_decode_name(name), offset, size))
    return entries


class Archive:
    """Random access to the files stored in an `.img` image."""

    def __init__(
        self, image: bytes, entries: List[ArchiveEntry], *, source: str = "<img>"
    ) -> None:
        self.source = source
        self._image = image
        self._entries: Dict[str, ArchiveEntry] = {}
        for entry in entries:
            self._entries[entry.name.lower()] = entry

    @classmethod
    def from_bytes(
        cls,
        image: bytes,
        directory: Optional[bytes] = None,
        version: ArchiveVersion = 2,
        *,
        source: str = "<img>",
    ) -> Archive:
        if version == 1:
            if directory is None:
                raise ValueError("Version 1 archives need their .dir contents")
            entries = read_directory(directory, 1, source=source)
        else:
            entries = read_directory(image, 2, source=source)
        return cls(image, entries, source=source)

    @classmethod
    def open(
        cls, img_path: Path, version: Optional[ArchiveVersion] = None
    ) -> Archive:
        """Open an image; version 1 is assumed when a sibling `.dir` exists."""
        img_path = Path(img_path)
        dir_path = img_path.with_suffix(".dir")
        if version is None:
            version = 1 if dir_path.exists() else 2
        directory = dir_path.read_bytes() if version == 1 else None
        return cls.from_bytes(
            img_path.read_bytes(), directory, version, source=str(img_path)
        )

    def __contains__(self, name: str) -> bool:
        return name.lower() in self._entries

    def __iter__(self) -> Iterator[ArchiveEntry]:
        return iter(self._entries.values())

    def __len__(self) -> int:
        return len(self._entries)

    def read(self, name: str) -> bytes:
        entry = self._entries.get(name.lower())
        if entry is None:
            raise KeyError(f"{name} not in {self.source}")
        start = entry.byte_offset
        end = start + entry.byte_size
        if end > len(self._image):
            raise FormatError(
                f"{entry.name} extends past end of image",
                source=self.source,
                offset=start,
            )
        return self._image[start:end]


def pack_archive(files: Mapping[str, bytes]) -> bytes:
    """Write a version 2 image. Data starts at the first sector after the directory."""
    directory = bytearray(VER2_MAGIC + struct.pack("<I", len(files)))
    body = bytearray()

    offset = math.ceil((VER2_HEADER_SIZE + ENTRY_SIZE * len(files)) / SECTOR_SIZE)
    for name, data in files.items():
        raw_name = name.encode("latin-1")
        if len(raw_name) >= NAME_SIZE:
            raise ValueError(f"Archive names are limited to {NAME_SIZE - 1} bytes: {name}")
        size = math.ceil(len(data) / SECTOR_SIZE)
        if size > 0xFFFF:
            raise ValueError(f"{name} is too large for a version 2 archive")

        directory += _ENTRY_V2.pack(offset, size, 0, raw_name)
        body += data
        body += b"\0" * (size * SECTOR_SIZE - len(data))
        logger.debug("packed %s at sector %d (%d sectors)", name, offset, size)
        offset += size

    directory += b"\0" * (-len(directory) % SECTOR_SIZE)
    return bytes(directory + body)
