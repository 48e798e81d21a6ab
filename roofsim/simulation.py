import logging
from datetime import date
from typing import Optional

import numpy as np
import pandas as pd

from roofsim.core.config import GeoLocation, HouseModel, OcclusionSettings, SimulatorSettings
from roofsim.core.layouts import LayoutCatalog
from roofsim.core.solar import SunVector
from roofsim.physics.engine import ShadowKernel

logger = logging.getLogger(__name__)


class SimulationRunner:
    """
    Sweeps one day in fixed steps and records, per step, the sun position
    and the mean shaded fraction of every installation.
    """

    def __init__(self, layout_id: str = None,
                 catalog: Optional[LayoutCatalog] = None,
                 house: Optional[HouseModel] = None,
                 location: Optional[GeoLocation] = None,
                 settings: Optional[SimulatorSettings] = None,
                 occlusion: Optional[OcclusionSettings] = None):
        self.catalog = catalog or LayoutCatalog()
        self.layout = self.catalog.select(layout_id or self.catalog.default_id)
        self.settings = settings or SimulatorSettings()
        self.kernel = ShadowKernel(self.layout, house=house, location=location,
                                   occlusion=occlusion, settings=self.settings)

    def day_times(self, day: date, step_minutes: int = 15) -> pd.DatetimeIndex:
        tz = self.kernel.solar.location.timezone
        start = pd.Timestamp(day).tz_localize(tz)
        end = (pd.Timestamp(day) + pd.Timedelta(days=1)).tz_localize(tz)
        return pd.date_range(start, end, freq=f"{step_minutes}min", inclusive="left")

    def run_day(self, day: date = None, step_minutes: int = 15) -> pd.DataFrame:
        """
        Returns one row per step: time, sun_az, sun_el, is_daylight and a
        shade_<installation> column per installation (0..1).
        """
        day = day or self.settings.default_date
        times = self.day_times(day, step_minutes)
        sun = self.kernel.solar.get_positions(times)

        logger.info("Sweeping %s: %d steps (%d daylight) for layout '%s'",
                    day, len(times), int(sun["is_daylight"].sum()), self.layout.id)

        ids = list(self.kernel.installations)
        rows = []
        for t, az, el, alt in zip(times, sun["azimuth"].values, sun["elevation"].values,
                                  sun["altitude"].values):
            vec = SunVector(azimuth=float(az), elevation=float(el), altitude=float(alt))
            self.kernel.solve_sun(vec)
            fractions = self.kernel.shaded_fraction()
            row = {
                "time": t,
                "sun_az": vec.azimuth,
                "sun_el": vec.elevation,
                "is_daylight": vec.is_daylight,
            }
            for k in ids:
                row[f"shade_{k}"] = fractions[k]
            rows.append(row)

        return pd.DataFrame(rows)

    @staticmethod
    def summarize(df: pd.DataFrame) -> pd.Series:
        """Mean shaded fraction per installation over daylight steps."""
        day = df[df["is_daylight"]]
        cols = [c for c in df.columns if c.startswith("shade_")]
        if day.empty:
            return pd.Series(np.zeros(len(cols)), index=cols)
        return day[cols].mean()
