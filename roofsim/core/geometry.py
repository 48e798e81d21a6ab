from dataclasses import dataclass
from typing import Literal, Sequence, Tuple

import numpy as np
from scipy.spatial.transform import Rotation

Orientation = Literal["landscape", "portrait"]
Vec3 = Tuple[float, float, float]

AXES = {"x": 0, "y": 1, "z": 2}


@dataclass(frozen=True)
class PanelSpec:
    """
    Physical dimensions of a single PV module.
    length is the long side, width the short side.
    """
    length: float = 1.762
    width: float = 1.134
    thickness: float = 0.04
    cell_columns: int = 16
    cell_rows: int = 6
    string_count: int = 3


@dataclass(frozen=True)
class PlatformSpec:
    """
    Tilted mounting platform carrying exactly one panel.
    """
    tilt_angle: float = 13.0  # degrees
    length: float = 1.145
    thickness: float = 0.082
    panel_mount_offset: float = 0.15
    orientation: Orientation = "landscape"
    default_connector_length: float = 1.320


# -----------------------------------------------------------------------------
# Edge <-> centre transforms
#
# Placement is specified the way installers measure it: distance of the
# object's minimum corner from a reference edge. Meshes are positioned by
# their centre. Every conversion goes through edge_to_center.
# -----------------------------------------------------------------------------

def edge_to_center(edge: Sequence[float], dims: Sequence[float]) -> np.ndarray:
    """
    Converts an edge (minimum corner) position to the centre position.
    center = edge + dimension / 2 per axis.

    >>> edge_to_center((0, 0, 0), (2, 1, 1))
    array([1. , 0.5, 0.5])
    """
    return np.asarray(edge, dtype=float) + np.asarray(dims, dtype=float) / 2.0


def center_to_edge(center: Sequence[float], dims: Sequence[float]) -> np.ndarray:
    """Inverse of edge_to_center."""
    return np.asarray(center, dtype=float) - np.asarray(dims, dtype=float) / 2.0


def relative_position(parent_center: Sequence[float],
                      child_edge: Sequence[float],
                      child_dims: Sequence[float]) -> np.ndarray:
    """
    Centre of a child object relative to its parent's centre, given the
    child's edge position in the parent's edge frame.
    """
    return edge_to_center(child_edge, child_dims) - np.asarray(parent_center, dtype=float)


def array_item_center(base_edge: Sequence[float],
                      dims: Sequence[float],
                      spacing: float,
                      index: int,
                      axis: str = "x") -> np.ndarray:
    """
    Centre of the index-th object in a row of identical objects laid out
    edge to edge (with `spacing` between them) along `axis`.
    """
    ax = AXES[axis]
    edge = np.asarray(base_edge, dtype=float).copy()
    edge[ax] += index * (dims[ax] + spacing)
    return edge_to_center(edge, dims)


# -----------------------------------------------------------------------------
# Rotations
# -----------------------------------------------------------------------------

def rotation_matrix(euler: Sequence[float]) -> np.ndarray:
    """
    3x3 rotation for an Euler triple in radians, applied as extrinsic
    rotations about world X, then Y, then Z (R = Rz @ Ry @ Rx).
    """
    return Rotation.from_euler("xyz", np.asarray(euler, dtype=float)).as_matrix()


def compose_euler(outer: Sequence[float], inner: Sequence[float]) -> np.ndarray:
    """Euler triple of rotation_matrix(outer) @ rotation_matrix(inner)."""
    r = Rotation.from_euler("xyz", np.asarray(outer, dtype=float)) * \
        Rotation.from_euler("xyz", np.asarray(inner, dtype=float))
    return r.as_euler("xyz")


def box_corners(center: Sequence[float], dims: Sequence[float],
                rotation: np.ndarray = None) -> np.ndarray:
    """
    The 8 world-space corners of an oriented box, shape (8, 3).
    Order: bottom face CCW from (-x,-y), then top face in the same order.
    """
    dx, dy, dz = np.asarray(dims, dtype=float) / 2.0
    local = np.array([
        [-dx, -dy, -dz], [dx, -dy, -dz], [dx, dy, -dz], [-dx, dy, -dz],
        [-dx, -dy, dz], [dx, -dy, dz], [dx, dy, dz], [-dx, dy, dz]
    ])
    if rotation is not None:
        local = (rotation @ local.T).T
    return local + np.asarray(center, dtype=float)
