import logging
from dataclasses import dataclass
from typing import Dict, List, Optional, Sequence

import numpy as np

from roofsim.core.config import OcclusionSettings
from roofsim.core.errors import OcclusionQueryUnavailable
from roofsim.core.solar import SunVector
from roofsim.physics.cells import SolarCell
from roofsim.physics.scene import OccluderQuery, RayHit

logger = logging.getLogger(__name__)

SAMPLE_COUNT = 5  # centre + 4 corners


@dataclass(frozen=True)
class ShadowBucket:
    name: str
    upper: float  # inclusive upper bound on intensity
    color: Optional[str]  # None keeps the cell's string colour
    opacity: float


# Opacity decreases as intensity rises.
SHADOW_BUCKETS = (
    ShadowBucket("clear", 0.0, None, 0.80),
    ShadowBucket("light", 0.2, "#FFE066", 0.75),
    ShadowBucket("partial", 0.4, "#FFB347", 0.70),
    ShadowBucket("half", 0.6, "#FF8C42", 0.65),
    ShadowBucket("heavy", 0.8, "#FF5E3A", 0.60),
    ShadowBucket("full", 1.0, "#D7263D", 0.55),
)


def classify(intensity: float) -> ShadowBucket:
    for bucket in SHADOW_BUCKETS:
        if intensity <= bucket.upper + 1e-9:
            return bucket
    return SHADOW_BUCKETS[-1]


def sample_points(cell: SolarCell) -> np.ndarray:
    """
    (5, 3) world points: centre, two near corners (front of the tilt axis),
    two far corners (rear). Recomputed on every call.
    """
    rot, center = cell.world_transform()
    hx, hy = cell.extent[0] / 2.0, cell.extent[1] / 2.0
    local = np.array([
        [0.0, 0.0, 0.0],
        [-hx, -hy, 0.0], [hx, -hy, 0.0],
        [-hx, hy, 0.0], [hx, hy, 0.0],
    ])
    return (rot @ local.T).T + center


def sun_world_position(sun: SunVector, distance: float, reference_bearing: float = 0.0) -> np.ndarray:
    return sun.direction(reference_bearing) * distance


def ray_directions(points: np.ndarray, sun_pos: np.ndarray) -> np.ndarray:
    d = sun_pos[np.newaxis, :] - points
    return d / np.linalg.norm(d, axis=1, keepdims=True)


def is_blocker(hit: RayHit, cell_id: str, settings: OcclusionSettings) -> bool:
    if hit.object_id == cell_id:
        return False
    if hit.distance <= settings.self_hit_epsilon or hit.distance > settings.max_range:
        return False
    return max(hit.extent) > settings.min_occluder_extent


def cast_all(query: OccluderQuery, origins: np.ndarray, directions: np.ndarray) -> List[List[RayHit]]:
    """
    Hits for every ray. Uses the query's batched cast_rays when it has one,
    otherwise one cast_ray per ray.
    """
    batched = getattr(query, "cast_rays", None)
    if batched is not None:
        return batched(origins, directions)
    return [query.cast_ray(o, d) for o, d in zip(origins, directions)]


def _intensity(cell: SolarCell, hits_per_point: Sequence[List[RayHit]],
               settings: OcclusionSettings) -> float:
    blocked = sum(1 for hits in hits_per_point
                  if any(is_blocker(h, cell.id, settings) for h in hits))
    return blocked / SAMPLE_COUNT


def sample_occlusion(cell: SolarCell, sun: SunVector, query: OccluderQuery,
                     settings: OcclusionSettings = None,
                     reference_bearing: float = 0.0) -> float:
    """
    Fraction of the cell's 5 sample points whose ray to the sun is blocked.
    Returns 0 at night without querying. Raises OcclusionQueryUnavailable
    if the scene cannot answer.
    """
    settings = settings or OcclusionSettings()
    if not sun.is_daylight:
        return 0.0
    points = sample_points(cell)
    dirs = ray_directions(points, sun_world_position(sun, settings.sun_distance, reference_bearing))
    hits = cast_all(query, points, dirs)
    return _intensity(cell, hits, settings)


class OcclusionEngine:
    """
    Throttled per-cell sampling driven by an explicit tick counter.

    A cell is sampled on ticks where (tick + phase) % sample_interval == 0.
    Between samples it keeps its last intensity, which is only used for
    display. Query failures leave the affected cells untouched.
    """

    def __init__(self, settings: OcclusionSettings = None, reference_bearing: float = 0.0):
        self.settings = settings or OcclusionSettings()
        self.reference_bearing = reference_bearing
        self.intensity: Dict[str, float] = {}

    def phase(self, index: int) -> int:
        if not self.settings.stagger:
            return 0
        return index % max(1, self.settings.sample_interval)

    def is_due(self, tick: int, index: int) -> bool:
        interval = max(1, self.settings.sample_interval)
        return (tick + self.phase(index)) % interval == 0

    def reset(self):
        self.intensity.clear()

    def intensity_of(self, cell_id: str) -> float:
        return self.intensity.get(cell_id, 0.0)

    def sample_tick(self, tick: int, cells: Sequence[SolarCell], sun: SunVector,
                    query: OccluderQuery, force: bool = False) -> Dict[str, float]:
        """
        Samples the cells due on this tick (every cell if force). Returns
        the intensities that were updated.
        """
        if not sun.is_daylight:
            updated = {c.id: 0.0 for c in cells}
            self.intensity.update(updated)
            return updated

        due = [c for i, c in enumerate(cells) if force or self.is_due(tick, i)]
        if not due:
            return {}

        sun_pos = sun_world_position(sun, self.settings.sun_distance, self.reference_bearing)
        points = np.concatenate([sample_points(c) for c in due])
        dirs = ray_directions(points, sun_pos)
        try:
            hits = cast_all(query, points, dirs)
        except OcclusionQueryUnavailable as e:
            logger.warning("Tick %d: occlusion query unavailable, keeping %d cells: %s",
                           tick, len(due), e)
            return {}

        updated = {}
        for k, cell in enumerate(due):
            block = hits[k * SAMPLE_COUNT:(k + 1) * SAMPLE_COUNT]
            updated[cell.id] = _intensity(cell, block, self.settings)
        self.intensity.update(updated)
        logger.debug("Tick %d: sampled %d/%d cells, %d shaded", tick, len(due), len(cells),
                     sum(1 for v in updated.values() if v > 0.0))
        return updated
