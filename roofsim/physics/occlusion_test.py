import unittest

import numpy as np

from roofsim.core.config import OcclusionSettings
from roofsim.core.errors import OcclusionQueryUnavailable
from roofsim.core.solar import SunVector
from roofsim.physics.cells import SolarCell
from roofsim.physics.occlusion import (SHADOW_BUCKETS, OcclusionEngine, classify, is_blocker,
                                       sample_occlusion, sample_points)
from roofsim.physics.scene import OccluderQuery, RayHit

NOON = SunVector(azimuth=180.0, elevation=45.0, altitude=45.0)
NIGHT = SunVector(azimuth=0.0, elevation=0.0, altitude=-20.0)


def make_cell(cell_id="p/cell-0-0", center=(0.0, 0.0, 0.0)):
    return SolarCell(id=cell_id, panel_key="p", installation_id="i", row=0, column=0,
                     string_index=0, local_center=(0.0, 0.0, 0.0), extent=(0.1, 0.1, 0.005),
                     panel_center=center, panel_rotation=(0.0, 0.0, 0.0))


class Open(OccluderQuery):
    def __init__(self):
        self.calls = 0

    def cast_ray(self, origin, direction):
        self.calls += 1
        return []


class Wall(OccluderQuery):
    def __init__(self, hit=RayHit("wall", 5.0, (3.0, 3.0, 3.0))):
        self.hit = hit

    def cast_ray(self, origin, direction):
        return [self.hit]


class WestHalf(OccluderQuery):
    """Blocks rays starting west of x = 0."""

    def cast_ray(self, origin, direction):
        if origin[0] < -1e-9:
            return [RayHit("wall", 5.0, (3.0, 3.0, 3.0))]
        return []


class PlainWall:
    """Structural query with cast_ray only."""

    def cast_ray(self, origin, direction):
        return [RayHit("wall", 5.0, (3.0, 3.0, 3.0))]


class Broken(OccluderQuery):
    def cast_ray(self, origin, direction):
        raise OcclusionQueryUnavailable("scene not built")


class TestSampling(unittest.TestCase):
    def test_sample_points(self):
        pts = sample_points(make_cell(center=(1.0, 2.0, 3.0)))
        self.assertEqual(pts.shape, (5, 3))
        np.testing.assert_allclose(pts[0], [1.0, 2.0, 3.0])
        np.testing.assert_allclose(pts[1:, 0], [0.95, 1.05, 0.95, 1.05])
        np.testing.assert_allclose(pts[1:, 1], [1.95, 1.95, 2.05, 2.05])

    def test_no_occluders(self):
        self.assertEqual(sample_occlusion(make_cell(), NOON, Open()), 0.0)

    def test_full_block(self):
        self.assertEqual(sample_occlusion(make_cell(), NOON, Wall()), 1.0)

    def test_partial(self):
        self.assertAlmostEqual(sample_occlusion(make_cell(), NOON, WestHalf()), 0.4)

    def test_night_skips_query(self):
        query = Open()
        self.assertEqual(sample_occlusion(make_cell(), NIGHT, query), 0.0)
        self.assertEqual(query.calls, 0)

    def test_unavailable_propagates(self):
        with self.assertRaises(OcclusionQueryUnavailable):
            sample_occlusion(make_cell(), NOON, Broken())


class TestBlockerFilter(unittest.TestCase):
    def setUp(self):
        self.settings = OcclusionSettings()

    def test_filters(self):
        big = (1.0, 1.0, 1.0)
        self.assertTrue(is_blocker(RayHit("x", 1.0, big), "me", self.settings))
        self.assertFalse(is_blocker(RayHit("me", 1.0, big), "me", self.settings))
        self.assertFalse(is_blocker(RayHit("x", 0.05, big), "me", self.settings))
        self.assertFalse(is_blocker(RayHit("x", 60.0, big), "me", self.settings))
        self.assertTrue(is_blocker(RayHit("x", 50.0, big), "me", self.settings))
        self.assertFalse(is_blocker(RayHit("x", 1.0, (0.1, 0.15, 0.2)), "me", self.settings))
        self.assertTrue(is_blocker(RayHit("x", 1.0, (0.1, 0.1, 0.25)), "me", self.settings))

    def test_self_hit_not_counted(self):
        cell = make_cell()
        self.assertEqual(sample_occlusion(cell, NOON, Wall(RayHit(cell.id, 5.0, (3.0, 3.0, 3.0)))), 0.0)

    def test_near_hit_not_counted(self):
        self.assertEqual(sample_occlusion(make_cell(), NOON, Wall(RayHit("wall", 0.01, (3.0, 3.0, 3.0)))), 0.0)


class TestBuckets(unittest.TestCase):
    def test_classify(self):
        self.assertEqual(classify(0.0).name, "clear")
        self.assertEqual(classify(0.2).name, "light")
        self.assertEqual(classify(0.4).name, "partial")
        self.assertEqual(classify(0.6).name, "half")
        self.assertEqual(classify(0.8).name, "heavy")
        self.assertEqual(classify(1.0).name, "full")

    def test_clear_keeps_base_colour(self):
        self.assertIsNone(classify(0.0).color)

    def test_opacity_decreases(self):
        opacities = [b.opacity for b in SHADOW_BUCKETS]
        self.assertEqual(opacities, sorted(opacities, reverse=True))


class TestOcclusionEngine(unittest.TestCase):
    def setUp(self):
        self.cells = [make_cell(f"p/cell-0-{i}", center=(float(i), 0.0, 0.0)) for i in range(3)]

    def test_throttle(self):
        engine = OcclusionEngine(OcclusionSettings(sample_interval=30))
        self.assertEqual(len(engine.sample_tick(0, self.cells, NOON, Wall())), 3)
        self.assertEqual(engine.sample_tick(1, self.cells, NOON, Open()), {})
        # Last value is kept between samples
        self.assertEqual(engine.intensity_of("p/cell-0-1"), 1.0)
        self.assertEqual(len(engine.sample_tick(30, self.cells, NOON, Open())), 3)
        self.assertEqual(engine.intensity_of("p/cell-0-1"), 0.0)

    def test_stagger(self):
        engine = OcclusionEngine(OcclusionSettings(sample_interval=30, stagger=True))
        self.assertEqual(list(engine.sample_tick(0, self.cells, NOON, Wall())), ["p/cell-0-0"])
        self.assertEqual(list(engine.sample_tick(29, self.cells, NOON, Wall())), ["p/cell-0-1"])
        self.assertEqual(list(engine.sample_tick(58, self.cells, NOON, Wall())), ["p/cell-0-2"])

    def test_force(self):
        engine = OcclusionEngine(OcclusionSettings(sample_interval=30))
        self.assertEqual(len(engine.sample_tick(7, self.cells, NOON, Wall(), force=True)), 3)

    def test_unavailable_keeps_last(self):
        engine = OcclusionEngine()
        engine.sample_tick(0, self.cells, NOON, Wall())
        with self.assertLogs("roofsim.physics.occlusion", level="WARNING"):
            updated = engine.sample_tick(0, self.cells, NOON, Broken())
        self.assertEqual(updated, {})
        self.assertEqual(engine.intensity_of("p/cell-0-2"), 1.0)

    def test_night_resets(self):
        engine = OcclusionEngine()
        engine.sample_tick(0, self.cells, NOON, Wall())
        engine.sample_tick(1, self.cells, NIGHT, Broken())
        for c in self.cells:
            self.assertEqual(engine.intensity_of(c.id), 0.0)

    def test_query_without_batch_method(self):
        engine = OcclusionEngine()
        updated = engine.sample_tick(0, self.cells, NOON, PlainWall())
        self.assertEqual(updated, {c.id: 1.0 for c in self.cells})
        self.assertEqual(sample_occlusion(self.cells[0], NOON, PlainWall()), 1.0)

    def test_unknown_cell(self):
        self.assertEqual(OcclusionEngine().intensity_of("nope"), 0.0)


if __name__ == "__main__":
    unittest.main()
