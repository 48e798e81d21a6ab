from dataclasses import dataclass
from typing import Iterable, List

import numpy as np

from roofsim.core.geometry import PanelSpec, Vec3, relative_position, rotation_matrix
from roofsim.physics.layout import PanelPlacement
from roofsim.physics.spacing import cell_grid

CELL_FILL = 0.95
CELL_THICKNESS = 0.005  # m
CELL_LIFT = 0.002  # m, clearance above the panel glass


@dataclass(frozen=True)
class SolarCell:
    """
    One PV cell. local_center is in the panel frame (X along the row,
    Y along the tilt axis, Z panel normal); extent is (x, y, z) size.
    """
    id: str
    panel_key: str
    installation_id: str
    row: int
    column: int
    string_index: int
    local_center: Vec3
    extent: Vec3
    panel_center: Vec3
    panel_rotation: Vec3

    def world_transform(self):
        """(rotation 3x3, world centre)"""
        rot = rotation_matrix(self.panel_rotation)
        center = np.asarray(self.panel_center) + rot @ np.asarray(self.local_center)
        return rot, center

    @property
    def world_center(self) -> np.ndarray:
        return self.world_transform()[1]


def string_index(row: int, column: int, rows: int, columns: int,
                 orientation: str, string_count: int) -> int:
    """
    Strings split the cell rows in landscape and the cell columns in
    portrait into equal bands (6 rows / 3 strings -> 0,0,1,1,2,2).
    """
    if orientation == "landscape":
        return row * string_count // rows
    return column * string_count // columns


def build_cells(placement: PanelPlacement, panel: PanelSpec) -> List[SolarCell]:
    cols, rows = cell_grid(panel, placement.orientation)
    along, tilt_dim, thickness = placement.dimensions
    cw = along / cols
    ch = tilt_dim / rows
    panel_mid = (along / 2.0, tilt_dim / 2.0, 0.0)
    z_edge = thickness / 2.0 + CELL_LIFT

    cells = []
    for r in range(rows):
        for c in range(cols):
            local = relative_position(panel_mid, (c * cw, r * ch, z_edge), (cw, ch, CELL_THICKNESS))
            cells.append(SolarCell(
                id=f"{placement.key}/cell-{r}-{c}",
                panel_key=placement.key,
                installation_id=placement.installation_id,
                row=r,
                column=c,
                string_index=string_index(r, c, rows, cols, placement.orientation, panel.string_count),
                local_center=tuple(float(v) for v in local),
                extent=(cw * CELL_FILL, ch * CELL_FILL, CELL_THICKNESS),
                panel_center=placement.center,
                panel_rotation=placement.rotation,
            ))
    return cells


def build_all_cells(placements: Iterable[PanelPlacement], panel: PanelSpec) -> List[SolarCell]:
    out = []
    for p in placements:
        out.extend(build_cells(p, panel))
    return out
