# kestrel/settings.py
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Tuple

# Placement files that make up the whole city.
CITY_PLACEMENTS: Tuple[str, ...] = (
    "comntop/comNtop",
    "comnbtm/comNbtm",
    "comse/comSE",
    "comsw/comSW",
    "industne/industNE",
    "industnw/industNW",
    "industse/industSE",
    "industsw/industSW",
    "landne/landne",
    "landsw/landsw",
    "overview",
    "props",
)


@dataclass(frozen=True, slots=True)
class PipelineSettings:
    """Classification, batching and packing policy."""

    lod_prefixes: Tuple[str, ...] = ("lod", "islandlod")
    # Distant-LOD model that is still real content.
    lod_exception: str = "lodistancoast01"
    draw_distance_cutoff: float = 99.0
    default_zone: str = "cityzon"
    # Elapsed milliseconds per in-game hour.
    time_factor: float = 2500.0
    distance_cull_factor: float = 3.0
    atlas_max_width: int = 2048
    texture_array_capacity: int = 256

    def is_lod_name(self, model_name: str) -> bool:
        name = model_name.lower()
        if name == self.lod_exception:
            return False
        return name.startswith(self.lod_prefixes)


@dataclass(frozen=True, slots=True)
class MapLayout:
    """Where map files live relative to the asset root."""

    base: str = "GrandTheftAuto3"
    generic_definitions: Tuple[str, ...] = (
        "generic",
        "temppart/temppart",
        "comroad/comroad",
        "indroads/indroads",
        "making/making",
        "subroads/subroads",
    )
    time_cycle: str = "data/timecyc.dat"
    zones: str = "data/gta3.zon"

    def definition_path(self, ide_id: str) -> str:
        return f"{self.base}/data/maps/{ide_id}.ide"

    def placement_path(self, ipl_id: str) -> str:
        if ipl_id == "props":
            return f"{self.base}/data/maps/props.IPL"
        return f"{self.base}/data/maps/{ipl_id}.ipl"

    def texture_dictionary_path(self, txd_name: str) -> str:
        if txd_name == "generic":
            return f"{self.base}/models/generic.txd"
        return f"{self.base}/models/gta3/{txd_name}.txd"

    def model_path(self, model_name: str) -> str:
        return f"{self.base}/models/gta3/{model_name}.dff"

    def time_cycle_path(self) -> str:
        return f"{self.base}/{self.time_cycle}"

    def zones_path(self) -> str:
        return f"{self.base}/{self.zones}"


@dataclass(frozen=True, slots=True)
class MapDescription:
    """One loadable map: the placement files to read."""

    name: str
    placements: Tuple[str, ...] = field(default_factory=tuple)

    @classmethod
    def all_city(cls) -> MapDescription:
        return cls("all", CITY_PLACEMENTS)

    @classmethod
    def parse(cls, ids: str) -> MapDescription:
        """'all' or a ';'-separated list of placement ids."""
        if ids == "all":
            return cls.all_city()
        return cls(ids, tuple(i for i in ids.split(";") if i))

    def definition_ids(self, layout: MapLayout) -> Tuple[str, ...]:
        # Placement ids with a directory part ship a definition file of the same name.
        extra = tuple(p.lower() for p in self.placements if "/" in p)
        return layout.generic_definitions + extra
