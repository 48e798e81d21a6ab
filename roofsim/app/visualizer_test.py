import unittest
from datetime import date

import numpy as np
import plotly.graph_objects as go

from roofsim.app.visualizer import RoofVisualizer, box_mesh
from roofsim.core.layouts import make_installation
from roofsim.core.solar import SimulatedMoment, SunVector
from roofsim.physics.engine import ShadowKernel
from roofsim.physics.layout import Layout
from roofsim.physics.scene import OccluderQuery


class Open(OccluderQuery):
    def cast_ray(self, origin, direction):
        return []


class TestBoxMesh(unittest.TestCase):
    def test_batched(self):
        mesh = box_mesh([(0, 0, 0), (2, 0, 0)], [(1, 1, 1), (1, 2, 1)], [(0, 0, 0), (0, 0, np.pi / 2)], "#000")
        self.assertEqual(len(mesh.x), 16)
        self.assertEqual(len(mesh.i), 24)
        self.assertEqual(max(mesh.k), 15)
        # Second box turned a quarter: its long side lies along X
        xs = np.asarray(mesh.x[8:])
        self.assertAlmostEqual(xs.max() - xs.min(), 2.0)


class TestRoofVisualizer(unittest.TestCase):
    def setUp(self):
        layout = Layout("small", "Small", "", (make_installation("se", [(1, 1.32), (1, None)]),))
        self.kernel = ShadowKernel(layout, scene=Open())

    def test_render_day(self):
        sun, states = self.kernel.solve(SimulatedMoment(date(2024, 8, 11), 13.0))
        fig = RoofVisualizer(self.kernel).render_scene(sun, states)
        self.assertIsInstance(fig, go.Figure)
        self.assertIn("Sun", [t.name for t in fig.data])

    def test_render_night(self):
        sun = SunVector(azimuth=0.0, elevation=0.0, altitude=-10.0)
        states = self.kernel.solve_sun(sun)
        fig = RoofVisualizer(self.kernel).render_scene(sun, states)
        self.assertNotIn("Sun", [t.name for t in fig.data])


if __name__ == "__main__":
    unittest.main()
