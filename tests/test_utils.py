import random
import string
import unittest

from plate_redaction.models import PlateFormat
from plate_redaction.utils import (
    classify,
    clean,
    correct,
    dict_char_to_num,
    dict_num_to_char,
    format_plate,
    normalize_plate,
)


class CleanTest(unittest.TestCase):
    def test_clean(self):
        self.assertEqual(clean(" abc-1d23\n"), "ABC1D23")
        self.assertEqual(clean("ab.c 12·34"), "ABC1234")
        self.assertEqual(clean(None), "")
        self.assertEqual(clean(""), "")


class CorrectTest(unittest.TestCase):
    def test_letter_positions(self):
        self.assertEqual(correct("A8C1234"), "ABC1234")
        self.assertEqual(correct("0BC1234"), "OBC1234")
        self.assertEqual(correct("4B51234"), "ABS1234")

    def test_digit_positions(self):
        self.assertEqual(correct("ABCID23"), "ABC1D23")
        self.assertEqual(correct("ABC1DZ3"), "ABC1D23")
        self.assertEqual(correct("ABC1DSO"), "ABC1D50")

    def test_position_four_untouched(self):
        self.assertEqual(correct("ABC1O23"), "ABC1O23")
        self.assertEqual(correct("ABC1023"), "ABC1023")

    def test_length_handling(self):
        self.assertEqual(correct("AB12"), "AB12")
        self.assertEqual(correct("ABC1D234"), "ABC1D23")

    def test_mappings_are_one_directional(self):
        for digit, letter in dict_num_to_char.items():
            self.assertTrue(digit.isdigit() and letter.isalpha())
        for letter, digit in dict_char_to_num.items():
            self.assertTrue(letter.isalpha() and digit.isdigit())


class ClassifyTest(unittest.TestCase):
    def test_formats(self):
        self.assertEqual(classify("ABC1D23"), PlateFormat.MERCOSUL)
        self.assertEqual(classify("ABC1234"), PlateFormat.LEGACY)
        self.assertEqual(classify("ABCD123"), PlateFormat.UNKNOWN)
        self.assertIsNone(classify("ABC123"))
        self.assertIsNone(classify(correct(clean("abc12"))))
        self.assertIsNone(classify("ABC12345"))

    def test_normalize_plate(self):
        self.assertEqual(normalize_plate("abc-1d23 "), ("ABC1D23", PlateFormat.MERCOSUL))
        self.assertEqual(normalize_plate("A8C-12S4"), ("ABC1254", PlateFormat.LEGACY))
        self.assertEqual(normalize_plate("AB1"), ("AB1", None))
        self.assertEqual(normalize_plate(None), ("", None))


class RoundTripTest(unittest.TestCase):
    def _random_plate(self, rng, plate_format):
        letters = [rng.choice(string.ascii_uppercase) for _ in range(3)]
        digit = rng.choice(string.digits)
        middle = rng.choice(string.ascii_uppercase if plate_format == PlateFormat.MERCOSUL else string.digits)
        tail = [rng.choice(string.digits) for _ in range(2)]
        return "".join(letters) + digit + middle + "".join(tail)

    def test_valid_plates_are_fixed_points(self):
        rng = random.Random(2024)
        for plate_format in (PlateFormat.MERCOSUL, PlateFormat.LEGACY):
            for _ in range(200):
                text = self._random_plate(rng, plate_format)
                self.assertEqual(normalize_plate(text), (text, plate_format))
                self.assertEqual(normalize_plate(format_plate(text, plate_format)), (text, plate_format))

    def test_format_plate(self):
        self.assertEqual(format_plate("ABC1234", PlateFormat.LEGACY), "ABC-1234")
        self.assertEqual(format_plate("ABC1D23", PlateFormat.MERCOSUL), "ABC1D23")
        self.assertEqual(format_plate("AB1", None), "AB1")


if __name__ == '__main__':
    unittest.main()
