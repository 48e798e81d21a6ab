import plotly.graph_objects as go
import numpy as np
from typing import Dict, List, Sequence

from roofsim.core.geometry import edge_to_center, rotation_matrix
from roofsim.core.solar import SunVector, sun_direction
from roofsim.physics.engine import CellState, ShadowKernel
from roofsim.physics.occlusion import SHADOW_BUCKETS

from roofsim.app.theme import Theme

# Unit box, 8 corners, bottom face then top face
_UNIT_BOX = np.array([
    [-0.5, -0.5, -0.5], [0.5, -0.5, -0.5], [0.5, 0.5, -0.5], [-0.5, 0.5, -0.5],
    [-0.5, -0.5, 0.5], [0.5, -0.5, 0.5], [0.5, 0.5, 0.5], [-0.5, 0.5, 0.5]
])

# Box topology (12 triangles)
_BOX_I = np.array([4, 4, 0, 0, 0, 0, 1, 1, 2, 2, 3, 3])
_BOX_J = np.array([5, 6, 2, 3, 1, 5, 2, 6, 3, 7, 0, 4])
_BOX_K = np.array([6, 7, 1, 2, 5, 4, 6, 5, 7, 6, 4, 7])


def box_mesh(centers: Sequence, dims: Sequence, rotations: Sequence,
             color: str, opacity: float = 1.0, name: str = None) -> go.Mesh3d:
    """
    One Mesh3d holding N oriented boxes.
    centers, dims: (N, 3); rotations: (N, 3) Euler triples or (N, 3, 3).
    """
    centers = np.asarray(centers, dtype=float).reshape(-1, 3)
    dims = np.asarray(dims, dtype=float).reshape(-1, 3)
    rots = np.asarray(rotations, dtype=float)
    if rots.ndim == 2:
        rots = np.array([rotation_matrix(r) for r in rots]).reshape(-1, 3, 3)
    n = len(centers)

    # (N, 8, 3) local corners -> world
    local = _UNIT_BOX[np.newaxis, :, :] * dims[:, np.newaxis, :]
    world = np.einsum("nij,nkj->nki", rots, local) + centers[:, np.newaxis, :]
    verts = world.reshape(-1, 3)

    offsets = np.arange(n) * 8
    return go.Mesh3d(
        x=verts[:, 0], y=verts[:, 1], z=verts[:, 2],
        i=(_BOX_I[np.newaxis, :] + offsets[:, np.newaxis]).flatten(),
        j=(_BOX_J[np.newaxis, :] + offsets[:, np.newaxis]).flatten(),
        k=(_BOX_K[np.newaxis, :] + offsets[:, np.newaxis]).flatten(),
        color=color, opacity=opacity, flatshading=True,
        name=name, showlegend=name is not None, hoverinfo="skip"
    )


class RoofVisualizer:
    def __init__(self, kernel: ShadowKernel):
        self.kernel = kernel

    def _house_traces(self) -> List[go.Mesh3d]:
        house = self.kernel.house
        data = []
        body = (house.width, house.depth, house.height)
        data.append(box_mesh([edge_to_center((0, 0, 0), body)], [body], [(0, 0, 0)], Theme.HOUSE, 0.6))

        ext = house.roof_south_extension
        roof = (house.width, house.depth + ext, house.roof_thickness)
        data.append(box_mesh([edge_to_center((0, -ext, house.height), roof)], [roof], [(0, 0, 0)], Theme.ROOF))

        top = house.roof_top
        pw, ph = house.parapet_width, house.parapet_height
        y0, y1 = -ext, house.depth
        sides = {
            "north": ((pw, y1 - pw, top), (house.width - pw, pw, ph)),
            "south": ((pw, y0, top), (house.width - pw, pw, ph)),
            "west": ((0.0, y0, top), (pw, y1 - y0, ph)),
            "east": ((house.width - pw, y0, top), (pw, y1 - y0, ph)),
        }
        par = [sides[s] for s in house.parapet_sides]
        if par:
            data.append(box_mesh([edge_to_center(e, d) for e, d in par], [d for _, d in par],
                                 [(0, 0, 0)] * len(par), Theme.PARAPET))

        for obj in house.roof_objects:
            x, y, z = obj.position
            data.append(box_mesh([edge_to_center((x, y, top + z), obj.dimensions)], [obj.dimensions],
                                 [(0, 0, 0)], Theme.CHIMNEY))
            if obj.pipe is not None:
                d, h = obj.pipe.diameter, obj.pipe.height
                edge = (x + obj.pipe.offset[0], y + obj.pipe.offset[1], top + z + obj.dimensions[2])
                data.append(box_mesh([edge_to_center(edge, (d, d, h))], [(d, d, h)], [(0, 0, 0)], Theme.PIPE))
        return data

    def _installation_traces(self) -> List[go.Mesh3d]:
        panels = [p for r in self.kernel.installations.values() for p in r.panels]
        connectors = [c for r in self.kernel.installations.values() for c in r.connectors
                      if c.dimensions[1] > 0.0]
        data = []
        if panels:
            data.append(box_mesh([p.platform_center for p in panels], [p.platform_dimensions for p in panels],
                                 [p.platform_rotation for p in panels], Theme.PLATFORM))
            data.append(box_mesh([p.center for p in panels], [p.dimensions for p in panels],
                                 [p.rotation for p in panels], Theme.PANEL_GLASS))
        if connectors:
            data.append(box_mesh([c.center for c in connectors], [c.dimensions for c in connectors],
                                 [c.rotation for c in connectors], Theme.CONNECTOR))
        return data

    def _cell_traces(self, states: List[CellState]) -> List[go.Mesh3d]:
        """One trace per (bucket, colour) since Mesh3d carries a single opacity."""
        cells = {c.id: c for c in self.kernel.cells}
        groups: Dict[tuple, list] = {}
        for s in states:
            groups.setdefault((s.bucket, s.color, s.opacity), []).append(cells[s.cell_id])

        order = {b.name: i for i, b in enumerate(SHADOW_BUCKETS)}
        data = []
        for (bucket, color, opacity), members in sorted(groups.items(), key=lambda kv: order[kv[0][0]]):
            transforms = [c.world_transform() for c in members]
            data.append(box_mesh(
                [t[1] for t in transforms], [c.extent for c in members], [t[0] for t in transforms],
                color, opacity, name=bucket if bucket != "clear" else None))
        return data

    def _compass_traces(self, sun: SunVector) -> list:
        house = self.kernel.house
        ref = self.kernel.reference_bearing
        origin = np.array([house.width / 2.0, house.depth / 2.0, house.roof_top + 0.5])
        data = []

        north = sun_direction(0.0, 0.0, ref) * 2.0
        data.append(go.Scatter3d(
            x=[-1.0, -1.0 + north[0]], y=[-1.0, -1.0 + north[1]], z=[0.05, 0.05],
            mode="lines+text", text=["", "N"], textposition="top center",
            line=dict(color=Theme.NORTH_ARROW, width=5), showlegend=False, hoverinfo="skip"
        ))

        if sun.is_daylight:
            tip = origin + sun.direction(ref) * 6.0
            data.append(go.Scatter3d(
                x=[origin[0], tip[0]], y=[origin[1], tip[1]], z=[origin[2], tip[2]],
                mode="lines", line=dict(color=Theme.SUN_RAY, width=3),
                showlegend=False, hoverinfo="skip"
            ))
            data.append(go.Scatter3d(
                x=[tip[0]], y=[tip[1]], z=[tip[2]], mode="markers",
                marker=dict(size=10, color=Theme.SUN), name="Sun",
                hovertext=f"Az {sun.azimuth:.1f} / El {sun.elevation:.1f}"
            ))
        return data

    def render_scene(self, sun: SunVector, states: List[CellState]) -> go.Figure:
        data = self._house_traces() + self._installation_traces() + \
            self._cell_traces(states) + self._compass_traces(sun)
        layout = go.Layout(scene=dict(aspectmode="data"), margin=dict(l=0, r=0, b=0, t=0),
                           legend=dict(title="Shadow"))
        return go.Figure(data=data, layout=layout)
