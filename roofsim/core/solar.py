import logging
from dataclasses import dataclass
from datetime import date, datetime
from typing import Union

import numpy as np
import pandas as pd
from pvlib import solarposition

from roofsim.core.config import GeoLocation

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SimulatedMoment:
    """
    Calendar date plus decimal hour of day (16.9 -> 16:54), wall clock at
    the site.
    """
    day: date
    hour: float

    def __post_init__(self):
        if not (0.0 <= self.hour < 24.0):
            raise ValueError(f"Hour must be in [0, 24), got {self.hour}")

    @property
    def seconds(self) -> int:
        # 23.99999999 must not roll over into the next day
        return min(int(round(self.hour * 3600.0)), 24 * 3600 - 1)

    def local_naive(self) -> pd.Timestamp:
        return pd.Timestamp(self.day) + pd.Timedelta(seconds=self.seconds)


@dataclass(frozen=True)
class SunVector:
    """
    azimuth: compass bearing in degrees, North=0, East=90, clockwise, [0, 360).
    elevation: degrees above the horizon, clamped to >= 0 for display.
    altitude: raw signed elevation, decides is_daylight.
    """
    azimuth: float
    elevation: float
    altitude: float

    @property
    def is_daylight(self) -> bool:
        return self.altitude > 0.0

    def direction(self, reference_bearing: float = 0.0) -> np.ndarray:
        """
        Unit vector pointing TO the sun in the world frame (X=East, Y=North,
        Z=Up), where world +Y sits at compass bearing `reference_bearing`.
        Uses the raw altitude so the vector dips below the horizon at night.
        """
        return sun_direction(self.azimuth, self.altitude, reference_bearing)


def sun_direction(azimuth, elevation, reference_bearing: float = 0.0) -> np.ndarray:
    """Vectorised: scalar inputs give (3,), arrays give (N, 3)."""
    az = np.radians(np.asarray(azimuth, dtype=float) - reference_bearing)
    el = np.radians(np.asarray(elevation, dtype=float))
    return np.stack((
        np.sin(az) * np.cos(el),
        np.cos(az) * np.cos(el),
        np.sin(el)
    ), axis=-1)


def remap_azimuth(south_referenced):
    """
    Azimuth output contract, fixed here and nowhere else.

    The ephemeris hands back azimuth measured from SOUTH, positive toward
    west (South=0, West=90, North=180, East=270). Adding 180 and wrapping
    gives a compass bearing from NORTH, clockwise (North=0, East=90,
    South=180, West=270).
    """
    return np.mod(np.asarray(south_referenced, dtype=float) + 180.0, 360.0)


def _south_referenced(north_referenced):
    return np.mod(np.asarray(north_referenced, dtype=float) - 180.0, 360.0)


class SolarCalculator:
    """
    Sun position for a fixed site using pvlib.
    Wall-clock moments are localised in the site's IANA timezone, so the
    same hour maps to different UTC instants across daylight saving.
    """

    def __init__(self, location: GeoLocation = None, method: str = "nrel_numpy"):
        self.location = location or GeoLocation()
        self.method = method
        logger.debug("SolarCalculator for %s (%.4f, %.4f, %s) using %s",
                    self.location.name, self.location.latitude, self.location.longitude,
                    self.location.timezone, method)

    def to_utc(self, moment: SimulatedMoment) -> pd.Timestamp:
        local = moment.local_naive().tz_localize(
            self.location.timezone, ambiguous=True, nonexistent="shift_forward")
        return local.tz_convert("UTC")

    def _ephemeris(self, times: pd.DatetimeIndex) -> pd.DataFrame:
        """
        pvlib already reports a compass bearing. It is restated south-referenced
        here so that remap_azimuth stays the one place the output azimuth is
        produced; the two steps cancel out.
        """
        pos = solarposition.get_solarposition(
            times, self.location.latitude, self.location.longitude, method=self.method)
        return pd.DataFrame({
            "azimuth_south": _south_referenced(pos["azimuth"].values),
            "altitude": pos["elevation"].values,
        }, index=times)

    def compute_sun_position(self, moment: SimulatedMoment) -> SunVector:
        utc = self.to_utc(moment)
        pos = self._ephemeris(pd.DatetimeIndex([utc]))
        altitude = float(pos["altitude"].iloc[0])
        azimuth = float(remap_azimuth(pos["azimuth_south"].iloc[0]))
        return SunVector(azimuth=azimuth % 360.0, elevation=max(0.0, altitude), altitude=altitude)

    def get_positions(self, times: Union[pd.DatetimeIndex, datetime]) -> pd.DataFrame:
        """
        Vectorised variant. Naive times are taken as site wall clock.
        Returns DataFrame (azimuth, elevation, altitude, is_daylight).
        """
        if not isinstance(times, pd.DatetimeIndex):
            times = pd.DatetimeIndex([pd.Timestamp(times)])
        if times.tz is None:
            # Repeated wall-clock times can be ordered by inference; a lone
            # fall-back time resolves to DST like to_utc does.
            ambiguous = "infer" if times.has_duplicates else np.ones(len(times), dtype=bool)
            times = times.tz_localize(self.location.timezone, ambiguous=ambiguous,
                                      nonexistent="shift_forward")
        pos = self._ephemeris(times.tz_convert("UTC"))
        out = pd.DataFrame(index=times)
        out["azimuth"] = np.mod(remap_azimuth(pos["azimuth_south"].values), 360.0)
        out["altitude"] = pos["altitude"].values
        out["elevation"] = np.maximum(0.0, out["altitude"].values)
        out["is_daylight"] = out["altitude"].values > 0.0
        return out


def compute_sun_position(moment: SimulatedMoment, location: GeoLocation,
                         method: str = "nrel_numpy") -> SunVector:
    """Pure function form of SolarCalculator.compute_sun_position."""
    return SolarCalculator(location, method).compute_sun_position(moment)


def cardinal(azimuth: float) -> str:
    names = ["N", "NE", "E", "SE", "S", "SW", "W", "NW"]
    return names[int(((azimuth % 360.0) + 22.5) // 45.0) % 8]
