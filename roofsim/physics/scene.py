import logging
from dataclasses import dataclass
from typing import Iterable, List, Optional, Protocol, Sequence

import numpy as np
import trimesh

from roofsim.core.config import HouseModel
from roofsim.core.errors import OcclusionQueryUnavailable
from roofsim.core.geometry import Vec3, edge_to_center, rotation_matrix
from roofsim.physics.layout import InstallationLayout

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RayHit:
    object_id: str
    distance: float
    extent: Vec3  # bounding size of the object that was hit


class OccluderQuery(Protocol):
    """
    Read-only ray access to the scene. Implementations raise
    OcclusionQueryUnavailable when they cannot answer (scene not built).
    """

    def cast_ray(self, origin: np.ndarray, direction: np.ndarray) -> List[RayHit]:
        """Hits along the ray, ordered by distance."""
        ...

    def cast_rays(self, origins: np.ndarray, directions: np.ndarray) -> List[List[RayHit]]:
        return [self.cast_ray(o, d) for o, d in zip(origins, directions)]


def _transform(center: Sequence[float], euler: Sequence[float]) -> np.ndarray:
    t = np.eye(4)
    t[:3, :3] = rotation_matrix(euler)
    t[:3, 3] = np.asarray(center, dtype=float)
    return t


class MeshScene(OccluderQuery):
    """
    Occluder index backed by trimesh ray/triangle intersection.
    Objects are added, then build() concatenates them into one mesh and
    keeps a face -> object lookup so hits can be attributed.
    """

    def __init__(self):
        self._parts: List[trimesh.Trimesh] = []
        self._ids: List[str] = []
        self._extents: List[Vec3] = []
        self._mesh: Optional[trimesh.Trimesh] = None
        self._face_owner: Optional[np.ndarray] = None

    def __len__(self):
        return len(self._ids)

    @property
    def object_ids(self) -> List[str]:
        return list(self._ids)

    @property
    def is_ready(self) -> bool:
        return self._mesh is not None

    def add_mesh(self, object_id: str, mesh: trimesh.Trimesh, extent: Vec3 = None):
        if extent is None:
            extent = tuple(float(v) for v in mesh.extents)
        self._parts.append(mesh)
        self._ids.append(object_id)
        self._extents.append(extent)
        self._mesh = None

    def add_box(self, object_id: str, center: Sequence[float], dims: Sequence[float],
                euler: Sequence[float] = (0.0, 0.0, 0.0)):
        if min(dims) <= 0.0:
            logger.debug("Skipping degenerate box %s %s", object_id, tuple(dims))
            return
        mesh = trimesh.creation.box(extents=dims, transform=_transform(center, euler))
        self.add_mesh(object_id, mesh, tuple(float(v) for v in dims))

    def add_cylinder(self, object_id: str, center: Sequence[float], radius: float,
                     height: float, euler: Sequence[float] = (0.0, 0.0, 0.0), sections: int = 16):
        mesh = trimesh.creation.cylinder(radius=radius, height=height, sections=sections,
                                         transform=_transform(center, euler))
        self.add_mesh(object_id, mesh, (2.0 * radius, 2.0 * radius, float(height)))

    def build(self) -> "MeshScene":
        if not self._parts:
            raise OcclusionQueryUnavailable("scene has no objects")
        self._mesh = trimesh.util.concatenate(self._parts)
        self._face_owner = np.repeat(np.arange(len(self._parts)),
                                     [len(m.faces) for m in self._parts])
        logger.info("Scene built: %d objects, %d faces", len(self._parts), len(self._mesh.faces))
        return self

    def cast_rays(self, origins, directions) -> List[List[RayHit]]:
        if self._mesh is None:
            raise OcclusionQueryUnavailable("scene not built")
        origins = np.asarray(origins, dtype=float).reshape(-1, 3)
        directions = np.asarray(directions, dtype=float).reshape(-1, 3)
        hits: List[List[RayHit]] = [[] for _ in range(len(origins))]
        if len(origins) == 0:
            return hits

        locations, index_ray, index_tri = self._mesh.ray.intersects_location(
            origins, directions, multiple_hits=True)
        if len(index_ray) == 0:
            return hits

        dists = np.linalg.norm(locations - origins[index_ray], axis=1)
        owners = self._face_owner[index_tri]
        for r, d, o in zip(index_ray, dists, owners):
            hits[r].append(RayHit(self._ids[o], float(d), self._extents[o]))
        for h in hits:
            h.sort(key=lambda hit: hit.distance)
        return hits

    def cast_ray(self, origin, direction) -> List[RayHit]:
        return self.cast_rays([origin], [direction])[0]


# -----------------------------------------------------------------------------
# Builders
# -----------------------------------------------------------------------------

def add_house(scene: MeshScene, house: HouseModel):
    """House body, roof slab, parapets and roof objects."""
    scene.add_box("house", edge_to_center((0.0, 0.0, 0.0), (house.width, house.depth, house.height)),
                  (house.width, house.depth, house.height))

    ext = house.roof_south_extension
    roof_dims = (house.width, house.depth + ext, house.roof_thickness)
    scene.add_box("roof", edge_to_center((0.0, -ext, house.height), roof_dims), roof_dims)

    top = house.roof_top
    pw, ph = house.parapet_width, house.parapet_height
    y0, y1 = -ext, house.depth
    parapets = {
        "north": ((pw, y1 - pw, top), (house.width - pw, pw, ph)),
        "south": ((pw, y0, top), (house.width - pw, pw, ph)),
        "west": ((0.0, y0, top), (pw, y1 - y0, ph)),
        "east": ((house.width - pw, y0, top), (pw, y1 - y0, ph)),
    }
    for side in house.parapet_sides:
        edge, dims = parapets[side]
        scene.add_box(f"parapet-{side}", edge_to_center(edge, dims), dims)

    for obj in house.roof_objects:
        x, y, z = obj.position
        edge = (x, y, top + z)
        scene.add_box(obj.id, edge_to_center(edge, obj.dimensions), obj.dimensions)
        if obj.pipe is not None:
            d, h = obj.pipe.diameter, obj.pipe.height
            pipe_edge = (x + obj.pipe.offset[0], y + obj.pipe.offset[1], top + z + obj.dimensions[2])
            scene.add_cylinder(f"{obj.id}-pipe", edge_to_center(pipe_edge, (d, d, h)), d / 2.0, h)


def add_installation(scene: MeshScene, result: InstallationLayout):
    for p in result.panels:
        scene.add_box(f"{p.key}/platform", p.platform_center, p.platform_dimensions, p.platform_rotation)
        scene.add_box(p.key, p.center, p.dimensions, p.rotation)
    for c in result.connectors:
        scene.add_box(c.key, c.center, c.dimensions, c.rotation)


def build_scene(house: Optional[HouseModel],
                installations: Iterable[InstallationLayout]) -> MeshScene:
    scene = MeshScene()
    if house is not None:
        add_house(scene, house)
    for result in installations:
        add_installation(scene, result)
    return scene.build()
