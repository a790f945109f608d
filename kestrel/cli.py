"""Command line tools for inspecting map data."""

from __future__ import annotations

import argparse
import dataclasses
import json
import logging
from pathlib import Path
from typing import List

from kestrel.assets.importers.archive import Archive
from kestrel.assets.importers.texture import ExtractedTextureIndex
from kestrel.assets.server import AssetServer
from kestrel.assets.types import TextureData
from kestrel.graphics.atlas import MAX_ATLAS_WIDTH, pack_atlas
from kestrel.scene.loader import SceneLoader
from kestrel.settings import MapDescription

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="kestrel")
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")
    sub = parser.add_subparsers(dest="command", required=True)

    keys = sub.add_parser("keys", help="Count placed items per draw key")
    keys.add_argument("--root", required=True, help="Directory holding the game files")
    keys.add_argument("--map", default="all", help="'all' or ';'-separated placement ids")

    archive = sub.add_parser("archive", help="Inspect .img archives")
    archive_sub = archive.add_subparsers(dest="archive_command", required=True)

    archive_list = archive_sub.add_parser("list", help="List archive entries")
    archive_list.add_argument("image", help="Path to the .img file")
    archive_list.add_argument("--version", type=int, choices=(1, 2), help="Archive version")

    archive_extract = archive_sub.add_parser("extract", help="Extract archive entries")
    archive_extract.add_argument("image", help="Path to the .img file")
    archive_extract.add_argument("names", nargs="*", help="Entries to extract (default: all)")
    archive_extract.add_argument("--dir", default=".", help="Output directory")
    archive_extract.add_argument("--version", type=int, choices=(1, 2), help="Archive version")

    atlas = sub.add_parser("atlas", help="Pack a directory of PNG textures into an atlas")
    atlas.add_argument("textures", help="Directory of PNGs or an extracted texture tree")
    atlas.add_argument("output", help="Path to the output atlas PNG")
    atlas.add_argument("--json", help="Placements JSON (default: next to the atlas)")
    atlas.add_argument("--max-width", type=int, default=MAX_ATLAS_WIDTH, help="Atlas width limit")

    return parser


def _run_keys(args: argparse.Namespace) -> int:
    desc = MapDescription.parse(args.map)
    with AssetServer.from_directory(Path(args.root)) as server:
        counts, diagnostics = SceneLoader(server).summarize_keys(desc)

    for key, count in sorted(counts.items(), key=lambda kv: (-kv[1], kv[0])):
        print(f"{count:8d}  {key}")
    print(f"{len(counts)} draw keys, {sum(counts.values())} items, {len(diagnostics)} unresolved")
    return 0


def _open_archive(args: argparse.Namespace) -> Archive:
    return Archive.open(Path(args.image), args.version)


def _run_archive(args: argparse.Namespace) -> int:
    archive = _open_archive(args)

    if args.archive_command == "list":
        for entry in archive:
            print(f"{entry.name:24s} {entry.byte_offset:10d} {entry.byte_size:10d}")
        return 0

    out_dir = Path(args.dir)
    out_dir.mkdir(parents=True, exist_ok=True)
    names = args.names or [entry.name for entry in archive]
    # Entry names come from the archive itself and must stay inside out_dir.
    unsafe = [n for n in names if Path(n).name != n or "\\" in n or n == ".."]
    if unsafe:
        raise SystemExit(f"Refusing to extract outside {out_dir}: {', '.join(unsafe)}")
    for name in names:
        (out_dir / name).write_bytes(archive.read(name))
        logger.info("extracted %s", name)
    print(f"extracted {len(names)} files to {out_dir}")
    return 0


def _texture_paths(root: Path) -> List[str]:
    return sorted(p.name for p in root.iterdir() if p.suffix.lower() == ".png")


def _load_textures(root: Path) -> List[TextureData]:
    listings = {
        kind: (root / f"{kind}.txt").read_text(encoding="latin-1")
        for kind in ExtractedTextureIndex.KINDS
        if (root / f"{kind}.txt").exists()
    }

    with AssetServer.from_directory(root) as server:
        if not listings:
            return server.load_many(_texture_paths(root))

        index = ExtractedTextureIndex.parse(listings)
        entries = list(index)
        textures = server.load_many([e.path for e in entries])
    # Texture names repeat across dictionaries.
    return [
        dataclasses.replace(tex, name=f"{e.txd_name}/{e.texture_name}")
        for e, tex in zip(entries, textures)
    ]


def _run_atlas(args: argparse.Namespace) -> int:
    textures = _load_textures(Path(args.textures))
    atlas = pack_atlas(textures, max_width=args.max_width)

    output = Path(args.output)
    atlas.to_image().save(output)
    json_path = Path(args.json) if args.json else output.with_suffix(".json")
    placements = {
        name: {"x": p.x, "y": p.y, "width": p.width, "height": p.height}
        for name, p in atlas.placements.items()
    }
    json_path.write_text(json.dumps(placements, indent=2, sort_keys=True), encoding="utf-8")

    print(f"{len(textures)} textures packed into {atlas.width}x{atlas.height} -> {output}")
    return 0


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(levelname)s %(name)s: %(message)s",
    )

    if args.command == "keys":
        return _run_keys(args)
    if args.command == "archive":
        return _run_archive(args)
    return _run_atlas(args)
