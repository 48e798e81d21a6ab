import logging
from dataclasses import dataclass
from typing import Dict, List, Optional, Tuple

import numpy as np

from roofsim.core.config import (HouseModel, OcclusionSettings, PANEL, GeoLocation,
                                 SimulatorSettings)
from roofsim.core.geometry import PanelSpec
from roofsim.core.solar import SimulatedMoment, SolarCalculator, SunVector
from roofsim.physics.cells import SolarCell, build_all_cells
from roofsim.physics.layout import InstallationLayout, Layout, layout_installations
from roofsim.physics.occlusion import OcclusionEngine, classify
from roofsim.physics.scene import OccluderQuery, build_scene

logger = logging.getLogger(__name__)

# Per-string base colours for unshaded cells
STRING_COLORS = ("#ff7675", "#74b9ff", "#00b894")


@dataclass(frozen=True)
class CellState:
    cell_id: str
    installation_id: str
    panel_key: str
    string_index: int
    intensity: float
    bucket: str
    color: str
    opacity: float


class ShadowKernel:
    """
    Binds one layout to a house, a site and an occluder scene.

    Construction lays out every installation, so an invalid layout raises
    LayoutError here rather than mid-render. step() is called once per
    render tick; cells are re-sampled on the throttled cadence of the
    OcclusionEngine and otherwise keep their last intensity.
    """

    def __init__(self, layout: Layout,
                 house: Optional[HouseModel] = None,
                 location: Optional[GeoLocation] = None,
                 panel: PanelSpec = PANEL,
                 occlusion: Optional[OcclusionSettings] = None,
                 settings: Optional[SimulatorSettings] = None,
                 scene: Optional[OccluderQuery] = None):
        self.layout = layout
        self.house = house if house is not None else HouseModel()
        self.panel = panel
        self.settings = settings or SimulatorSettings()

        self.installations: Dict[str, InstallationLayout] = layout_installations(layout, panel)
        placements = [p for r in self.installations.values() for p in r.panels]
        self.cells: List[SolarCell] = build_all_cells(placements, panel)
        self.scene = scene if scene is not None else build_scene(self.house, self.installations.values())

        self.solar = SolarCalculator(location, self.settings.solar_method)
        self.occlusion = OcclusionEngine(occlusion, reference_bearing=self.settings.reference_bearing)
        self.tick = 0
        logger.info("ShadowKernel '%s': %d installations, %d panels, %d cells",
                    layout.id, len(self.installations), len(placements), len(self.cells))

    @property
    def reference_bearing(self) -> float:
        return self.settings.reference_bearing

    def sun_at(self, moment: SimulatedMoment) -> SunVector:
        return self.solar.compute_sun_position(moment)

    def sun_vector_world(self, sun: SunVector) -> np.ndarray:
        return sun.direction(self.reference_bearing)

    def step(self, moment: SimulatedMoment) -> Tuple[SunVector, List[CellState]]:
        """One render tick: throttled sampling against the current moment."""
        sun = self.sun_at(moment)
        self.occlusion.sample_tick(self.tick, self.cells, sun, self.scene)
        self.tick += 1
        return sun, self.states()

    def solve(self, moment: SimulatedMoment) -> Tuple[SunVector, List[CellState]]:
        """Samples every cell now, ignoring the throttle."""
        sun = self.sun_at(moment)
        return sun, self.solve_sun(sun)

    def solve_sun(self, sun: SunVector) -> List[CellState]:
        self.occlusion.sample_tick(self.tick, self.cells, sun, self.scene, force=True)
        return self.states()

    def states(self) -> List[CellState]:
        out = []
        for cell in self.cells:
            intensity = self.occlusion.intensity_of(cell.id)
            bucket = classify(intensity)
            base = STRING_COLORS[cell.string_index % len(STRING_COLORS)]
            out.append(CellState(
                cell_id=cell.id,
                installation_id=cell.installation_id,
                panel_key=cell.panel_key,
                string_index=cell.string_index,
                intensity=intensity,
                bucket=bucket.name,
                color=bucket.color or base,
                opacity=bucket.opacity,
            ))
        return out

    def shaded_fraction(self) -> Dict[str, float]:
        """Mean cell intensity per installation."""
        sums: Dict[str, List[float]] = {k: [] for k in self.installations}
        for cell in self.cells:
            sums[cell.installation_id].append(self.occlusion.intensity_of(cell.id))
        return {k: float(np.mean(v)) if v else 0.0 for k, v in sums.items()}
