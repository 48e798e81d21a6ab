import unittest
from datetime import date

import numpy as np

from roofsim.core.config import HouseModel, OcclusionSettings, PANEL
from roofsim.core.errors import LayoutError
from roofsim.core.layouts import PRESETS, make_installation
from roofsim.core.solar import SimulatedMoment, SunVector
from roofsim.physics.engine import STRING_COLORS, ShadowKernel
from roofsim.physics.layout import Layout, layout_installations
from roofsim.physics.scene import MeshScene, OccluderQuery, RayHit, add_installation


class Open(OccluderQuery):
    def cast_ray(self, origin, direction):
        return []


class Wall(OccluderQuery):
    def cast_ray(self, origin, direction):
        return [RayHit("wall", 5.0, (3.0, 3.0, 3.0))]


SMALL = Layout("small", "Small", "", (make_installation("se", [(1, 1.32), (1, None)]),))


class TestShadowKernel(unittest.TestCase):
    def test_cells_built(self):
        kernel = ShadowKernel(SMALL, scene=Open())
        self.assertEqual(list(kernel.installations), ["se"])
        self.assertEqual(len(kernel.cells), 2 * 96)

    def test_invalid_layout_raises_at_load(self):
        bad = Layout("bad", "Bad", "", (make_installation("se", [(0, None)]),))
        with self.assertRaises(LayoutError):
            ShadowKernel(bad, scene=Open())

    def test_clear_sky(self):
        kernel = ShadowKernel(SMALL, scene=Open())
        sun, states = kernel.solve(SimulatedMoment(date(2024, 8, 11), 13.5))
        self.assertTrue(sun.is_daylight)
        self.assertTrue(all(s.bucket == "clear" for s in states))
        for s in states:
            self.assertEqual(s.color, STRING_COLORS[s.string_index])
        self.assertEqual(kernel.shaded_fraction(), {"se": 0.0})

    def test_fully_blocked(self):
        kernel = ShadowKernel(SMALL, scene=Wall())
        _, states = kernel.solve(SimulatedMoment(date(2024, 8, 11), 13.5))
        self.assertTrue(all(s.intensity == 1.0 for s in states))
        self.assertTrue(all(s.bucket == "full" and s.color == "#D7263D" for s in states))
        self.assertEqual(kernel.shaded_fraction(), {"se": 1.0})

    def test_night(self):
        kernel = ShadowKernel(SMALL, scene=Wall())
        sun, states = kernel.solve(SimulatedMoment(date(2024, 8, 11), 2.0))
        self.assertFalse(sun.is_daylight)
        self.assertTrue(all(s.intensity == 0.0 for s in states))

    def test_step_is_throttled(self):
        kernel = ShadowKernel(SMALL, scene=Wall(), occlusion=OcclusionSettings(sample_interval=2))
        moment = SimulatedMoment(date(2024, 8, 11), 13.5)
        kernel.step(moment)
        self.assertEqual(kernel.tick, 1)
        kernel.scene = Open()
        _, states = kernel.step(moment)
        # Tick 1 is not a sampling tick: previous values remain
        self.assertTrue(all(s.intensity == 1.0 for s in states))
        _, states = kernel.step(moment)
        self.assertTrue(all(s.intensity == 0.0 for s in states))

    def test_canopy_shades_everything(self):
        results = layout_installations(SMALL, PANEL)
        scene = MeshScene()
        for r in results.values():
            add_installation(scene, r)
        centers = np.array([p.center for r in results.values() for p in r.panels])
        mid = centers.mean(axis=0)
        scene.add_box("canopy", (mid[0], mid[1], mid[2] + 2.0), (10.0, 10.0, 0.5))
        scene.build()

        kernel = ShadowKernel(SMALL, scene=scene)
        states = kernel.solve_sun(SunVector(azimuth=150.0, elevation=60.0, altitude=60.0))
        self.assertTrue(all(s.bucket == "full" for s in states))

    def test_default_scene_from_house(self):
        kernel = ShadowKernel(PRESETS[0], house=HouseModel())
        self.assertIn("chimney-1", kernel.scene.object_ids)
        sun, states = kernel.solve(SimulatedMoment(date(2024, 8, 11), 16.9))
        self.assertTrue(sun.is_daylight)
        self.assertEqual(len(states), 12 * 96)
        fractions = kernel.shaded_fraction()
        self.assertEqual(set(fractions), {"se", "sw1", "sw2"})
        for v in fractions.values():
            self.assertTrue(0.0 <= v <= 1.0)

    def test_sun_vector_world(self):
        kernel = ShadowKernel(SMALL, scene=Open())
        v = kernel.sun_vector_world(SunVector(azimuth=330.0, elevation=0.0, altitude=0.0))
        np.testing.assert_allclose(v, [0.0, 1.0, 0.0], atol=1e-12)


if __name__ == "__main__":
    unittest.main()
