"""
Tests for the trailing dimension padding helpers
"""

import unittest

import torch

from multidatasetlib import Core

print_errors = False


class test_pad_trailing(unittest.TestCase):
    """
    Test padding a single tensor along its last dimension
    """
    def test_pads_with_zeros(self):
        tensor = torch.tensor([[1., 2.], [3., 4.]])
        expected = torch.tensor([[1., 2., 0., 0.], [3., 4., 0., 0.]])
        got = Core.pad_trailing(tensor, 4)
        self.assertTrue(torch.equal(expected, got))

    def test_no_padding_needed(self):
        tensor = torch.randn(2, 3, 5)
        got = Core.pad_trailing(tensor, 5)
        self.assertIs(got, tensor)

    def test_keeps_dtype(self):
        tensor = torch.ones(2, 3, dtype=torch.int32)
        got = Core.pad_trailing(tensor, 5)
        self.assertEqual(got.dtype, torch.int32)
        self.assertEqual(got.sum().item(), 6)

    def test_errors(self):
        try:
            Core.pad_trailing(torch.randn(2, 5), 3)
            raise RuntimeError("Did not throw")
        except Core.PaddingException as err:
            self.assertEqual(err.length, 3)
            if print_errors:
                print(err)

        with self.assertRaises(Core.PaddingException):
            Core.pad_trailing(torch.tensor(1.0), 3)


class test_pad_and_concat(unittest.TestCase):
    """
    Test stacking ragged tensors into one zero padded tensor
    """
    def test_rank_three(self):
        first = torch.arange(4, dtype=torch.float32).reshape(1, 1, 4)
        second = torch.arange(3, dtype=torch.float32).reshape(1, 1, 3)
        expected = torch.tensor([[[0., 1., 2., 3.]], [[0., 1., 2., 0.]]])
        got = Core.pad_and_concat([first, second])
        self.assertTrue(torch.equal(expected, got))

    def test_rank_two(self):
        first = torch.ones(2, 3)
        second = torch.ones(1, 1)
        got = Core.pad_and_concat([first, second])
        expected = torch.tensor([[1., 1., 1.], [1., 1., 1.], [1., 0., 0.]])
        self.assertTrue(torch.equal(expected, got))

    def test_rank_four(self):
        first = torch.ones(1, 2, 3, 2)
        second = torch.full((2, 2, 3, 4), 2.0)
        got = Core.pad_and_concat([first, second])
        self.assertEqual(got.shape, (3, 2, 3, 4))
        self.assertTrue(torch.equal(got[0, :, :, :2], first[0]))
        self.assertTrue(torch.equal(got[0, :, :, 2:], torch.zeros(2, 3, 2)))
        self.assertTrue(torch.equal(got[1:], second))

    def test_explicit_length(self):
        got = Core.pad_and_concat([torch.ones(1, 2), torch.ones(1, 3)], length=5)
        self.assertEqual(got.shape, (2, 5))
        self.assertEqual(got.sum().item(), 5)

    def test_promotes_dtype(self):
        got = Core.pad_and_concat([torch.ones(1, 2, dtype=torch.int64), torch.ones(1, 3, dtype=torch.float32)])
        self.assertEqual(got.dtype, torch.float32)

    def test_errors(self):
        with self.assertRaises(Core.PaddingException):
            Core.pad_and_concat([])
        with self.assertRaises(Core.PaddingException):
            Core.pad_and_concat([torch.ones(3), torch.ones(2)])
        with self.assertRaises(Core.PaddingException):
            Core.pad_and_concat([torch.ones(1, 2, 3), torch.ones(1, 3)])
        with self.assertRaises(Core.PaddingException):
            Core.pad_and_concat([torch.ones(1, 2, 3), torch.ones(1, 4, 3)])
        try:
            Core.pad_and_concat([torch.ones(1, 2, 3), torch.ones(1, 2, 5)], length=4)
            raise RuntimeError("Did not throw")
        except Core.PaddingException as err:
            if print_errors:
                print(err)
