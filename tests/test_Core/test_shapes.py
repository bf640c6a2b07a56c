"""

Test the shape value type and shape standardization

"""

import unittest

import torch

from multidatasetlib import Core

print_errors = False


class test_Shape(unittest.TestCase):
    def test_parts(self):
        shape = Core.Shape([4, 3, 2, 7])
        self.assertEqual(shape.rank, 4)
        self.assertEqual(shape.rows, 4)
        self.assertEqual(shape.trailing, 7)
        self.assertEqual(shape.middle, (3, 2))
        self.assertEqual(shape.non_leading, (3, 2, 7))
        self.assertTrue(shape.has_time_axis)
        self.assertEqual(shape.numel, 168)

    def test_low_rank(self):
        shape = Core.Shape([5, 3])
        self.assertEqual(shape.middle, ())
        self.assertFalse(shape.has_time_axis)

        scalar = Core.Shape()
        self.assertEqual(scalar.numel, 1)
        self.assertEqual(scalar.middle, ())
        with self.assertRaises(IndexError):
            scalar.rows
        with self.assertRaises(IndexError):
            scalar.trailing

    def test_replacement(self):
        shape = Core.Shape([4, 3, 7])
        self.assertEqual(shape.with_rows(1), (1, 3, 7))
        self.assertEqual(shape.with_trailing(9), (4, 3, 9))
        self.assertIsInstance(shape.with_trailing(9), Core.Shape)

    def test_of_tensor(self):
        shape = Core.Shape.of(torch.zeros(2, 5))
        self.assertEqual(shape, (2, 5))
        self.assertEqual(str(shape), "[2, 5]")
        self.assertEqual(repr(shape), "Shape([2, 5])")


class test_standardize_shape(unittest.TestCase):
    """
    Test that the many ways of stating a shape all come out the same
    """
    def test_formats(self):
        expected = Core.Shape([3, 4])
        options = [[3, 4], (3, 4), torch.Size([3, 4]), torch.tensor([3, 4])]
        for option in options:
            self.assertEqual(Core.standardize_shape(option, "test"), expected)
        self.assertEqual(Core.standardize_shape(5, "test"), (5,))

    def test_zeros(self):
        self.assertEqual(Core.standardize_shape([0, 2], "test"), (0, 2))
        with self.assertRaises(Core.StandardizationError):
            Core.standardize_shape([0, 2], "test", allow_zeros=False)

    def test_errors(self):
        bad_options = [True, [1, 2.0], [1, -1], torch.tensor([1.0, 2.0]), torch.zeros(2, 2, dtype=torch.int64), "3"]
        for option in bad_options:
            try:
                Core.standardize_shape(option, "test", task="Testing")
                raise RuntimeError("Did not throw with %s" % (option,))
            except Core.StandardizationError as err:
                self.assertEqual(err.task, "Testing")
                if print_errors:
                    print(err)


class test_string_util(unittest.TestCase):
    def test_dedent(self):
        message = """\
        This is a test
            indented more
        """
        self.assertEqual(Core.dedent(message), "This is a test\n    indented more\n")

    def test_format_shape(self):
        self.assertEqual(Core.format_shape(torch.Size([1, 2, 3])), "[1, 2, 3]")
        self.assertEqual(Core.format_shape(()), "[]")
