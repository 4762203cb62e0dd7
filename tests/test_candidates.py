import random
import unittest
from fractions import Fraction

import numpy as np

from helpers import make_plate_image
from plate_redaction.candidates import (
    STRATEGIES,
    deduplicate,
    generate_candidates,
    is_valid_plate_region,
    overlap_ratio,
    scan_candidates,
)
from plate_redaction.config import (
    PLATE_MAX_AREA,
    PLATE_MAX_ASPECT,
    PLATE_MIN_AREA,
    PLATE_MIN_ASPECT,
    PLATE_MIN_HEIGHT,
    PLATE_MIN_WIDTH,
)
from plate_redaction.models import Candidate, Region
from plate_redaction.scoring import RegionScorer

PLATE = Region(300, 450, 200, 60)


class PlateRegionValidityTest(unittest.TestCase):
    def test_boundaries_inclusive(self):
        self.assertTrue(is_valid_plate_region(Region(0, 0, 120, 30)))
        self.assertTrue(is_valid_plate_region(Region(0, 0, 150, 30)))    # tỷ lệ 5.0
        self.assertTrue(is_valid_plate_region(Region(0, 0, 140, 70)))    # tỷ lệ 2.0
        self.assertTrue(is_valid_plate_region(Region(0, 0, 400, 125)))   # diện tích 50000

    def test_just_outside_boundaries(self):
        self.assertFalse(is_valid_plate_region(Region(0, 0, 119, 30)))
        self.assertFalse(is_valid_plate_region(Region(0, 0, 151, 30)))
        self.assertFalse(is_valid_plate_region(Region(0, 0, 139, 70)))
        self.assertFalse(is_valid_plate_region(Region(0, 0, 401, 125)))
        self.assertFalse(is_valid_plate_region(Region(0, 0, 0, 30)))

    def test_randomized_against_definition(self):
        rng = random.Random(42)
        for _ in range(2000):
            w = rng.randint(1, 600)
            h = rng.randint(1, 200)
            aspect = Fraction(w, h)
            expected = (PLATE_MIN_AREA <= w * h <= PLATE_MAX_AREA
                        and Fraction(PLATE_MIN_ASPECT) <= aspect <= Fraction(PLATE_MAX_ASPECT)
                        and w >= PLATE_MIN_WIDTH and h >= PLATE_MIN_HEIGHT)
            self.assertEqual(is_valid_plate_region(Region(0, 0, w, h)), expected, (w, h))


class DeduplicateTest(unittest.TestCase):
    def test_overlap_ratio(self):
        a = Region(0, 0, 100, 40)
        self.assertEqual(overlap_ratio(a, a), 1.0)
        self.assertEqual(overlap_ratio(a, Region(200, 0, 100, 40)), 0.0)
        # vùng nhỏ nằm gọn trong vùng lớn
        self.assertEqual(overlap_ratio(a, Region(10, 10, 20, 10)), 1.0)

    def test_earlier_wins_and_idempotent(self):
        rng = random.Random(7)
        candidates = [
            Candidate(Region(rng.randint(0, 300), rng.randint(0, 200), rng.randint(120, 200), 40),
                      rng.random())
            for _ in range(60)
        ]
        once = deduplicate(candidates)
        self.assertEqual(deduplicate(once), once)
        self.assertIs(once[0], candidates[0])
        for i, a in enumerate(once):
            for b in once[i + 1:]:
                self.assertLessEqual(overlap_ratio(a.region, b.region), 0.5)


class GenerateCandidatesTest(unittest.TestCase):
    def test_uniform_image_has_no_candidates(self):
        image = np.full((600, 800, 3), 40, dtype=np.uint8)
        self.assertEqual(generate_candidates(image), [])

    def test_synthetic_plate(self):
        image = make_plate_image(800, 600, PLATE)
        candidates = generate_candidates(image)

        self.assertTrue(candidates)
        self.assertLessEqual(len(candidates), 8)
        scores = [c.score for c in candidates]
        self.assertEqual(scores, sorted(scores, reverse=True))
        for candidate in candidates:
            self.assertTrue(is_valid_plate_region(candidate.region))
            self.assertIn(candidate.source, ('edge', 'color', 'scan'))
        self.assertGreater(candidates[0].region.intersection_area(PLATE), 0)

    def test_each_strategy_returns_valid_regions(self):
        image = make_plate_image(800, 600, PLATE)
        scorer = RegionScorer(image)
        for strategy in STRATEGIES:
            for region, _ in strategy(image, scorer):
                self.assertTrue(is_valid_plate_region(region), (strategy.__name__, region))

    def test_scan_on_full_resolution_photo(self):
        plate = Region(1800, 2360, 400, 120)
        image = make_plate_image(4032, 3024, plate)
        found = scan_candidates(image, RegionScorer(image))

        self.assertTrue(found)
        for region, _ in found:
            self.assertTrue(is_valid_plate_region(region), region)
        self.assertTrue(any(region.intersection_area(plate) > 0 for region, _ in found))

    def test_limit(self):
        image = make_plate_image(800, 600, PLATE)
        self.assertLessEqual(len(generate_candidates(image, limit=2)), 2)
        only_color = generate_candidates(image, strategies=STRATEGIES[1:2])
        self.assertTrue(all(c.source == 'color' for c in only_color))

    def test_overlap_keeps_higher_score(self):
        image = make_plate_image(800, 600, PLATE)
        shifted = Region(340, 450, 200, 60)

        def first_candidates(image, scorer):
            return [(shifted, 'shifted')]

        def second_candidates(image, scorer):
            return [(PLATE, 'exact')]

        scorer = RegionScorer(image)
        scores = {shifted: scorer.score(shifted).composite, PLATE: scorer.score(PLATE).composite}
        ranked = generate_candidates(image, strategies=(first_candidates, second_candidates))

        self.assertEqual(len(ranked), 1)
        self.assertEqual(ranked[0].region, max(scores, key=scores.get))


if __name__ == '__main__':
    unittest.main()
