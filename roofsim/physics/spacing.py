import numpy as np
from dataclasses import dataclass
from typing import Dict, Tuple

from roofsim.core.geometry import PanelSpec, PlatformSpec


@dataclass(frozen=True)
class SpacingCalculation:
    projected_depth: float  # D: footprint of the tilted panel on the roof
    rear_elevation: float  # H: rise of the rear edge above the mounting plane
    air_gap: float  # G = P - D
    row_spacing: float  # P: centre-to-centre row pitch (connector length)
    tilt_axis_dimension: float  # W
    single_col_width: float  # column pitch along the row
    platform_length: float
    platform_thickness: float
    panel_mount_offset: float


def tilt_axis_dimension(panel: PanelSpec, orientation: str) -> float:
    """
    W, the panel side the tilt is applied along.
    Landscape tilts along the short side, portrait along the long side.
    """
    return panel.length if orientation == "portrait" else panel.width


def projected_depth(panel: PanelSpec, platform: PlatformSpec) -> float:
    """D = W * cos(beta)"""
    beta = np.radians(platform.tilt_angle)
    return float(tilt_axis_dimension(panel, platform.orientation) * np.cos(beta))


def rear_elevation(panel: PanelSpec, platform: PlatformSpec) -> float:
    """H = W * sin(beta)"""
    beta = np.radians(platform.tilt_angle)
    return float(tilt_axis_dimension(panel, platform.orientation) * np.sin(beta))


def air_gap(depth: float, connector_length: float) -> float:
    """G = P - D. Negative means the connector is shorter than the footprint."""
    return connector_length - depth


def single_col_width(panel: PanelSpec, orientation: str) -> float:
    return panel.length if orientation == "landscape" else panel.width


def panel_dimensions(panel: PanelSpec, orientation: str) -> Tuple[float, float, float]:
    """
    (along-row, along-tilt-axis, thickness) for the given orientation.
    """
    if orientation == "landscape":
        return panel.length, panel.width, panel.thickness
    return panel.width, panel.length, panel.thickness


def cell_grid(panel: PanelSpec, orientation: str) -> Tuple[int, int]:
    """(columns along the row, rows along the tilt axis)."""
    if orientation == "landscape":
        return panel.cell_columns, panel.cell_rows
    return panel.cell_rows, panel.cell_columns


def calculate_spacing(panel: PanelSpec, platform: PlatformSpec,
                      connector_length: float) -> SpacingCalculation:
    d = projected_depth(panel, platform)
    return SpacingCalculation(
        projected_depth=d,
        rear_elevation=rear_elevation(panel, platform),
        air_gap=air_gap(d, connector_length),
        row_spacing=connector_length,
        tilt_axis_dimension=tilt_axis_dimension(panel, platform.orientation),
        single_col_width=single_col_width(panel, platform.orientation),
        platform_length=platform.length,
        platform_thickness=platform.thickness,
        panel_mount_offset=platform.panel_mount_offset,
    )


def spacing_info(panel: PanelSpec, platform: PlatformSpec,
                 connector_length: float) -> Dict[str, object]:
    """Human readable spacing summary, millimetres."""
    s = calculate_spacing(panel, platform, connector_length)
    d_mm = int(round(s.projected_depth * 1000))
    g_mm = int(round(s.air_gap * 1000))
    return {
        "projected_depth_mm": d_mm,
        "air_gap_mm": g_mm,
        "row_spacing_mm": int(round(s.row_spacing * 1000)),
        "tilt_axis_dimension_mm": int(round(s.tilt_axis_dimension * 1000)),
        "orientation": platform.orientation,
        "description": f"{platform.orientation.capitalize()} mode: "
                       f"Panel projected depth {d_mm}mm, Air gap {g_mm}mm",
    }
