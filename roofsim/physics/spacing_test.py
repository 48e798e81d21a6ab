import unittest

import numpy as np

from roofsim.core.config import LANDSCAPE_PLATFORM, PANEL, PORTRAIT_PLATFORM
from roofsim.physics.spacing import (calculate_spacing, cell_grid, panel_dimensions, projected_depth,
                                     rear_elevation, spacing_info, tilt_axis_dimension)


class TestSpacing(unittest.TestCase):
    def test_tilt_axis_swaps_with_orientation(self):
        self.assertEqual(tilt_axis_dimension(PANEL, "landscape"), PANEL.width)
        self.assertEqual(tilt_axis_dimension(PANEL, "portrait"), PANEL.length)

    def test_pythagorean(self):
        for platform in (LANDSCAPE_PLATFORM, PORTRAIT_PLATFORM):
            d = projected_depth(PANEL, platform)
            h = rear_elevation(PANEL, platform)
            w = tilt_axis_dimension(PANEL, platform.orientation)
            self.assertAlmostEqual(d * d + h * h, w * w, places=9)

    def test_landscape_numbers(self):
        s = calculate_spacing(PANEL, LANDSCAPE_PLATFORM, 1.320)
        self.assertAlmostEqual(s.projected_depth, 1.134 * np.cos(np.radians(13.0)), places=9)
        self.assertAlmostEqual(s.air_gap, 1.320 - s.projected_depth, places=9)
        self.assertAlmostEqual(s.single_col_width, PANEL.length)
        self.assertGreater(s.air_gap, 0.0)

    def test_negative_gap_is_reported(self):
        s = calculate_spacing(PANEL, PORTRAIT_PLATFORM, 1.320)
        self.assertLess(s.air_gap, 0.0)

    def test_panel_dimensions(self):
        self.assertEqual(panel_dimensions(PANEL, "landscape"), (PANEL.length, PANEL.width, PANEL.thickness))
        self.assertEqual(panel_dimensions(PANEL, "portrait"), (PANEL.width, PANEL.length, PANEL.thickness))

    def test_cell_grid(self):
        self.assertEqual(cell_grid(PANEL, "landscape"), (16, 6))
        self.assertEqual(cell_grid(PANEL, "portrait"), (6, 16))

    def test_spacing_info(self):
        info = spacing_info(PANEL, LANDSCAPE_PLATFORM, 1.320)
        self.assertEqual(info["projected_depth_mm"], 1105)
        self.assertEqual(info["air_gap_mm"], 215)
        self.assertEqual(info["row_spacing_mm"], 1320)
        self.assertIn("Landscape mode", info["description"])


if __name__ == "__main__":
    unittest.main()
