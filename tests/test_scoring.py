import unittest

import numpy as np

from helpers import make_plate_image
from plate_redaction.models import Region
from plate_redaction.scoring import (
    RegionScorer,
    color_score_from_fraction,
    composite_score,
    position_score,
    score_region,
    text_score,
)


class ColorScoreTest(unittest.TestCase):
    def test_band(self):
        self.assertAlmostEqual(color_score_from_fraction(0.6), 1.0)
        self.assertAlmostEqual(color_score_from_fraction(0.4), 0.5)
        self.assertAlmostEqual(color_score_from_fraction(0.8), 0.5)

    def test_outside_band_penalized(self):
        self.assertAlmostEqual(color_score_from_fraction(0.3), 0.1)
        self.assertAlmostEqual(color_score_from_fraction(0.95), 0.1)
        self.assertAlmostEqual(color_score_from_fraction(0.0), 0.1)


class PositionScoreTest(unittest.TestCase):
    def test_bands(self):
        # tâm dọc của vùng cao 20px = y + 10
        self.assertEqual(position_score(Region(0, 70, 10, 20), 100), 1.0)
        self.assertEqual(position_score(Region(0, 50, 10, 20), 100), 0.6)
        self.assertEqual(position_score(Region(0, 10, 10, 20), 100), 0.2)


class RegionScorerTest(unittest.TestCase):
    def test_edge_score_stripes(self):
        image = np.zeros((40, 40, 3), dtype=np.uint8)
        image[:, ::2] = 255
        scorer = RegionScorer(image)
        self.assertAlmostEqual(scorer.edge_score(Region(0, 0, 40, 40)), 1.0)
        self.assertAlmostEqual(scorer.edge_score(Region(0, 0, 1, 40)), 0.0)

    def test_edge_score_uniform(self):
        scorer = RegionScorer(np.full((40, 40, 3), 90, dtype=np.uint8))
        self.assertEqual(scorer.edge_score(Region(5, 5, 20, 20)), 0.0)

    def test_bright_fraction(self):
        image = np.zeros((20, 40, 3), dtype=np.uint8)
        image[:, :20] = 255
        scorer = RegionScorer(image)
        self.assertAlmostEqual(scorer.bright_fraction(Region(0, 0, 40, 20)), 0.5)
        self.assertAlmostEqual(scorer.color_score(Region(0, 0, 40, 20)), 0.75)
        self.assertEqual(scorer.bright_fraction(Region(100, 100, 5, 5)), 0.0)

    def test_composite_consistent(self):
        image = make_plate_image(800, 600, Region(300, 450, 200, 60))
        region = Region(290, 440, 220, 80)
        scores = score_region(image, region)
        self.assertAlmostEqual(
            scores.composite,
            composite_score(scores.edge, scores.color, scores.position, scores.text),
        )
        for value in (scores.edge, scores.color, scores.position, scores.text, scores.composite):
            self.assertGreaterEqual(value, 0.0)
            self.assertLessEqual(value, 1.0)
        self.assertAlmostEqual(composite_score(1, 1, 1, 1), 1.0)


class TextScoreTest(unittest.TestCase):
    def test_uniform_has_no_text(self):
        self.assertEqual(text_score(np.full((30, 120, 3), 200, dtype=np.uint8)), 0.0)
        self.assertEqual(text_score(np.zeros((0, 0, 3), dtype=np.uint8)), 0.0)

    def test_plate_text_detected(self):
        plate = Region(0, 0, 200, 60)
        image = make_plate_image(200, 60, plate, background=255)
        self.assertGreater(text_score(image), 0.2)


if __name__ == '__main__':
    unittest.main()
