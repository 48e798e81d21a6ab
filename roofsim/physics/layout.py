import logging
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple

import numpy as np
from shapely.geometry import Polygon
from shapely.ops import unary_union

from roofsim.core.errors import LayoutError
from roofsim.core.geometry import (PanelSpec, PlatformSpec, Vec3, array_item_center, box_corners,
                                   compose_euler, edge_to_center, rotation_matrix)
from roofsim.physics.spacing import SpacingCalculation, calculate_spacing, panel_dimensions

logger = logging.getLogger(__name__)

CONNECTOR_WIDTH = 0.08  # m


@dataclass(frozen=True)
class RowConfiguration:
    """
    One row of panels. connector_length is the pitch to the NEXT row;
    None marks the tail of a run (the next row, if any, butts against it).
    """
    columns: int
    connector_length: Optional[float] = None


@dataclass(frozen=True)
class Installation:
    """
    A contiguous string of rows on one platform type.

    Local frame: columns run along +X, rows advance along +Y, panels face
    -Y (low edge at the front). position is the world edge anchor of the
    local origin, rotation the Euler triple of the local frame.
    """
    id: str
    rows: Tuple[RowConfiguration, ...]
    platform: PlatformSpec
    position: Vec3 = (0.0, 0.0, 0.0)
    rotation: Vec3 = (0.0, 0.0, 0.0)

    @property
    def orientation(self) -> str:
        return self.platform.orientation

    @property
    def panel_count(self) -> int:
        return sum(r.columns for r in self.rows)

    @property
    def first_connector(self) -> Optional[float]:
        return next((r.connector_length for r in self.rows if r.connector_length), None)


@dataclass(frozen=True)
class Layout:
    """Named rooftop preset: the unit of user-facing configuration change."""
    id: str
    name: str
    description: str
    installations: Tuple[Installation, ...]

    @property
    def panel_count(self) -> int:
        return sum(i.panel_count for i in self.installations)


@dataclass(frozen=True)
class PanelPlacement:
    """
    Centre position + Euler rotation (radians) of one panel and of the
    platform it sits on, world frame, metres.
    dimensions: (along-row, along-tilt-axis, thickness).
    """
    installation_id: str
    row: int
    column: int
    orientation: str
    center: Vec3
    rotation: Vec3
    dimensions: Vec3
    platform_center: Vec3
    platform_rotation: Vec3
    platform_dimensions: Vec3

    @property
    def key(self) -> str:
        return f"{self.installation_id}-r{self.row}-c{self.column}"


@dataclass(frozen=True)
class ConnectorPlacement:
    installation_id: str
    row: int
    side: str  # "left" | "right"
    center: Vec3
    rotation: Vec3
    dimensions: Vec3

    @property
    def key(self) -> str:
        return f"{self.installation_id}-r{self.row}-{self.side}"


@dataclass(frozen=True)
class InstallationLayout:
    installation_id: str
    panels: Tuple[PanelPlacement, ...]
    connectors: Tuple[ConnectorPlacement, ...]
    row_offsets: Tuple[float, ...]  # leading edge of each row, local Y
    spacing: Tuple[SpacingCalculation, ...] = field(default=(), compare=False)


def _vec(a) -> Vec3:
    return tuple(float(v) for v in a)


class _Frame:
    """Installation-local -> world."""

    def __init__(self, installation: Installation):
        self.origin = np.asarray(installation.position, dtype=float)
        self.euler = np.asarray(installation.rotation, dtype=float)
        self.rot = rotation_matrix(self.euler)

    def point(self, local) -> Vec3:
        return _vec(self.origin + self.rot @ np.asarray(local, dtype=float))

    def rotation(self, local_euler=(0.0, 0.0, 0.0)) -> Vec3:
        if not np.any(local_euler):
            return _vec(self.euler)
        return _vec(compose_euler(self.euler, local_euler))


def layout_installation(installation: Installation, panel: PanelSpec) -> InstallationLayout:
    """
    Places every platform, panel and connector of an installation.

    Rows are stacked along local +Y. A row with a connector advances the
    next row by the connector length P (centre-to-centre pitch); a row
    without one advances by the projected depth D. Connectors sit in the
    air gap G = P - D, one at each end of the row.

    Raises LayoutError for non-positive columns, a tilt outside (0, 90)
    or a connector shorter than the projected depth.
    """
    platform = installation.platform
    if not (0.0 < platform.tilt_angle < 90.0):
        raise LayoutError(f"tilt angle {platform.tilt_angle} deg outside (0, 90)",
                          installation_id=installation.id)
    if not installation.rows:
        raise LayoutError("installation has no rows", installation_id=installation.id)

    frame = _Frame(installation)
    beta = np.radians(platform.tilt_angle)
    along, tilt_dim, thickness = panel_dimensions(panel, platform.orientation)
    normal = np.array([0.0, -np.sin(beta), np.cos(beta)])

    panels: List[PanelPlacement] = []
    connectors: List[ConnectorPlacement] = []
    offsets: List[float] = []
    spacings: List[SpacingCalculation] = []

    offset = 0.0
    for i, row in enumerate(installation.rows):
        if row.columns <= 0:
            raise LayoutError(f"row has {row.columns} columns, need at least 1",
                              row_index=i, installation_id=installation.id)

        pitch = row.connector_length
        s = calculate_spacing(panel, platform,
                              pitch if pitch is not None else platform.default_connector_length)
        if pitch is not None and s.air_gap < 0.0:
            raise LayoutError(
                f"connector {pitch * 1000:.0f}mm is shorter than the projected panel depth "
                f"{s.projected_depth * 1000:.0f}mm (air gap {s.air_gap * 1000:.0f}mm)",
                row_index=i, installation_id=installation.id)

        offsets.append(offset)
        spacings.append(s)
        d = s.projected_depth
        col_w = s.single_col_width
        # Shift of the panel footprint from the platform's leading edge
        mount_shift = s.panel_mount_offset - (tilt_dim - d) / 2.0

        for col in range(row.columns):
            plat_dims = (col_w, d, s.platform_thickness)
            plat_center = array_item_center((0.0, offset, 0.0), plat_dims, 0.0, col)

            # Footprint box of the tilted slab, standing on the platform
            foot_dims = (along, d, s.rear_elevation)
            foot_edge = (col * col_w + (col_w - along) / 2.0,
                         offset + mount_shift,
                         s.platform_thickness)
            panel_center = edge_to_center(foot_edge, foot_dims) + normal * thickness / 2.0

            panels.append(PanelPlacement(
                installation_id=installation.id,
                row=i,
                column=col,
                orientation=platform.orientation,
                center=frame.point(panel_center),
                rotation=frame.rotation((beta, 0.0, 0.0)),
                dimensions=(along, tilt_dim, thickness),
                platform_center=frame.point(plat_center),
                platform_rotation=frame.rotation(),
                platform_dimensions=_vec(plat_dims),
            ))

        if pitch is not None:
            conn_dims = (CONNECTOR_WIDTH, s.air_gap, s.platform_thickness)
            row_width = col_w * row.columns
            for side, x in (("left", 0.0), ("right", row_width - CONNECTOR_WIDTH)):
                center = edge_to_center((x, offset + d, 0.0), conn_dims)
                connectors.append(ConnectorPlacement(
                    installation_id=installation.id,
                    row=i,
                    side=side,
                    center=frame.point(center),
                    rotation=frame.rotation(),
                    dimensions=_vec(conn_dims),
                ))
            offset += pitch
        else:
            offset += d

    logger.debug("Installation %s: %d panels, %d connectors",
                 installation.id, len(panels), len(connectors))
    return InstallationLayout(
        installation_id=installation.id,
        panels=tuple(panels),
        connectors=tuple(connectors),
        row_offsets=tuple(offsets),
        spacing=tuple(spacings),
    )


def layout_installations(layout: Layout, panel: PanelSpec) -> Dict[str, InstallationLayout]:
    """Lays out every installation of a layout, tagging errors with the installation."""
    out = {}
    for inst in layout.installations:
        try:
            out[inst.id] = layout_installation(inst, panel)
        except LayoutError as e:
            if e.installation_id is None:
                raise e.for_installation(inst.id) from e
            raise
    return out


def footprint(result: InstallationLayout) -> Polygon:
    """
    Plan-view (XY) footprint of an installation: union of its platforms and
    connectors.
    """
    polys = []
    for p in result.panels:
        corners = box_corners(p.platform_center, p.platform_dimensions,
                              rotation_matrix(p.platform_rotation))
        polys.append(Polygon(corners[:4, :2]).convex_hull)
    for c in result.connectors:
        if c.dimensions[1] <= 0.0:
            continue
        corners = box_corners(c.center, c.dimensions, rotation_matrix(c.rotation))
        polys.append(Polygon(corners[:4, :2]).convex_hull)
    return unary_union(polys)
