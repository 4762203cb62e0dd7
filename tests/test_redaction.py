import unittest

import numpy as np

from helpers import decode_jpeg, make_plate_image
from plate_redaction.models import Region
from plate_redaction.redaction import Redactor, estimate_region, is_region_usable


def _outside_mask(shape, region):
    mask = np.ones(shape[:2], dtype=bool)
    mask[region.y:region.y2, region.x:region.x2] = False
    return mask


class EstimateRegionTest(unittest.TestCase):
    def test_estimate(self):
        self.assertEqual(estimate_region(1000, 600), Region(360, 403, 280, 93))

    def test_estimate_stays_inside(self):
        for w, h in ((120, 40), (2000, 1500), (4000, 200), (300, 3000)):
            region = estimate_region(w, h)
            self.assertFalse(region.is_empty())
            self.assertEqual(region.clamp(w, h), region)

    def test_usable(self):
        self.assertTrue(is_region_usable(Region(400, 400, 200, 60), 1000, 600))
        self.assertFalse(is_region_usable(None, 1000, 600))
        self.assertFalse(is_region_usable(Region(0, 0, 900, 50), 1000, 600))   # quá rộng
        self.assertFalse(is_region_usable(Region(0, 0, 100, 300), 1000, 600))  # quá cao
        self.assertFalse(is_region_usable(Region(-5, 10, 100, 30), 1000, 600))
        self.assertFalse(is_region_usable(Region(950, 10, 100, 30), 1000, 600))
        self.assertFalse(is_region_usable(Region(10, 10, 0, 30), 1000, 600))


class RedactorTest(unittest.TestCase):
    def setUp(self):
        self.redactor = Redactor()
        rng = np.random.default_rng(5)
        self.image = rng.integers(0, 256, size=(600, 1000, 3), dtype=np.uint8)

    def test_resolve_expands_and_clamps(self):
        target = self.redactor.resolve_region(self.image, Region(400, 400, 200, 60))
        self.assertEqual(target, Region(370, 391, 260, 78))

        corner = self.redactor.resolve_region(self.image, Region(0, 0, 20, 10))
        self.assertEqual(corner, Region(0, 0, 26, 16))

    def test_resolve_falls_back_to_estimate(self):
        self.assertEqual(self.redactor.resolve_region(self.image, None), estimate_region(1000, 600))
        self.assertEqual(self.redactor.resolve_region(self.image, Region(0, 0, 900, 50)),
                         estimate_region(1000, 600))

    def test_pixels_outside_target_untouched(self):
        original = self.image.copy()
        for region in (Region(400, 400, 200, 60), Region(0, 0, 20, 10), None, Region(880, 560, 120, 40)):
            redacted, target = self.redactor.redact(self.image, region)

            np.testing.assert_array_equal(self.image, original)
            mask = _outside_mask(self.image.shape, target)
            self.assertEqual(int(redacted[mask].astype(np.int64).sum()),
                             int(original[mask].astype(np.int64).sum()))
            np.testing.assert_array_equal(redacted[mask], original[mask])
            self.assertFalse(np.array_equal(redacted[~mask], original[~mask]))

    def test_grayscale_image(self):
        gray = self.image[..., 0].copy()
        redacted, target = self.redactor.redact(gray, Region(400, 400, 200, 60))
        self.assertEqual(redacted.shape, gray.shape)
        mask = _outside_mask(gray.shape, target)
        np.testing.assert_array_equal(redacted[mask], gray[mask])

    def test_redact_and_compress_downscales(self):
        plate = Region(800, 1140, 400, 120)
        image = make_plate_image(plate=plate)

        data, target = self.redactor.redact_and_compress(image, plate)

        output = decode_jpeg(data)
        self.assertEqual(output.shape, (1080, 1440, 3))
        self.assertTrue(target.intersection_area(plate) == plate.area)

    def test_compress_keeps_small_image(self):
        small = np.zeros((200, 300, 3), dtype=np.uint8)
        self.assertEqual(decode_jpeg(self.redactor.compress(small)).shape, (200, 300, 3))


if __name__ == '__main__':
    unittest.main()
