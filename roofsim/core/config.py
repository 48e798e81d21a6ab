from dataclasses import dataclass, field
from datetime import date
from typing import List, Optional, Tuple

from roofsim.core.errors import InvalidLocation
from roofsim.core.geometry import PanelSpec, PlatformSpec


@dataclass(frozen=True)
class GeoLocation:
    """
    Site of the house. Validated on construction.
    """
    latitude: float = 51.9553  # Culemborg, NL
    longitude: float = 5.2256
    timezone: str = "Europe/Amsterdam"
    name: str = "Culemborg"

    def __post_init__(self):
        if not (-90.0 <= self.latitude <= 90.0) or not (-180.0 <= self.longitude <= 180.0):
            raise InvalidLocation(self.latitude, self.longitude)


@dataclass
class SimulatorSettings:
    """
    Defaults for the simulated moment and the sun model.
    """
    default_date: date = date(2024, 8, 11)
    default_hour: float = 16.9  # 16:54
    solar_method: str = "nrel_numpy"  # any pvlib solarposition method
    # Compass bearing of the world +Y axis ("house north"); the house is
    # turned 30 deg counter-clockwise from true north.
    reference_bearing: float = 330.0


@dataclass
class OcclusionSettings:
    self_hit_epsilon: float = 0.1  # m, hits closer than this are self-intersection noise
    max_range: float = 50.0  # m
    min_occluder_extent: float = 0.2  # m, in at least one dimension
    sun_distance: float = 1000.0  # m
    sample_interval: int = 30  # ticks between samples of one cell
    stagger: bool = False  # spread cells over the interval instead of sampling all at once


# Hyundai HiT-H450LE-FB
PANEL = PanelSpec()

LANDSCAPE_PLATFORM = PlatformSpec(
    tilt_angle=13.0,
    length=1.145,
    thickness=0.082,
    panel_mount_offset=0.15,
    orientation="landscape",
    default_connector_length=1.320,
)

PORTRAIT_PLATFORM = PlatformSpec(
    tilt_angle=10.0,
    length=1.826,
    thickness=0.082,
    panel_mount_offset=0.05,
    orientation="portrait",
    default_connector_length=1.320,
)


def platform_for(orientation: str) -> PlatformSpec:
    if orientation == "portrait":
        return PORTRAIT_PLATFORM
    if orientation == "landscape":
        return LANDSCAPE_PLATFORM
    raise ValueError(f"Unknown orientation: {orientation!r}")


@dataclass(frozen=True)
class ChimneyPipe:
    diameter: float = 0.1
    height: float = 0.3
    # Edge offset from the chimney's west/south corner.
    offset: Tuple[float, float] = (0.1, 0.2)


@dataclass(frozen=True)
class RoofObject:
    """
    Box standing on the roof. position is the edge (min corner) in the
    house frame, z measured from the roof top.
    """
    id: str
    kind: str
    position: Tuple[float, float, float]
    dimensions: Tuple[float, float, float]
    pipe: Optional[ChimneyPipe] = None


@dataclass
class HouseModel:
    """
    House frame: origin at the south-west ground corner, X east, Y north
    (house north, see SimulatorSettings.reference_bearing), Z up. Metres.
    """
    width: float = 5.6  # east-west
    depth: float = 8.71  # north-south
    height: float = 3.0
    roof_thickness: float = 0.2
    roof_south_extension: float = 0.5
    parapet_height: float = 0.16
    parapet_width: float = 0.15
    parapet_sides: Tuple[str, ...] = ("north", "west", "south")
    # Counter-clockwise seen from above, matches SimulatorSettings.reference_bearing.
    rotation_from_north: float = 30.0
    roof_objects: List[RoofObject] = field(default_factory=lambda: [
        RoofObject(
            id="chimney-1",
            kind="chimney",
            position=(2.8, 3.855, 0.0),
            dimensions=(0.5, 0.5, 0.4),
            pipe=ChimneyPipe(),
        )
    ])

    @property
    def roof_top(self) -> float:
        return self.height + self.roof_thickness
