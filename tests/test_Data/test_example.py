"""

Tests for the example container and the slot wrapper

"""

import unittest

import torch

from multidatasetlib import Core
from multidatasetlib import Data

PRINT_ERRORS = False


class TestSlot(unittest.TestCase):
    def test_present(self):
        tensor = torch.ones(2, 3)
        slot = Data.Slot.of(tensor)
        self.assertTrue(slot.present)
        self.assertIs(slot.tensor, tensor)
        self.assertIs(slot.get(), tensor)

    def test_absent(self):
        slot = Data.Slot.absent()
        self.assertFalse(slot.present)
        self.assertIsNone(slot.get())
        self.assertIs(Data.Slot.wrap(None), slot)
        with self.assertRaises(Data.AbsentSlotError):
            slot.tensor

    def test_wrap(self):
        slot = Data.Slot.of(torch.ones(1))
        self.assertIs(Data.Slot.wrap(slot), slot)
        self.assertTrue(Data.Slot.wrap(torch.ones(1)).present)

    def test_immutable(self):
        slot = Data.Slot.of(torch.ones(1))
        with self.assertRaises(TypeError):
            slot._tensor = None

    def test_rejects_non_tensors(self):
        with self.assertRaises(Core.ValidationError):
            Data.Slot([1, 2, 3])
        with self.assertRaises(Core.ValidationError):
            Data.Slot.of(None)

    def test_equality(self):
        self.assertEqual(Data.Slot.of(torch.ones(2)), Data.Slot.of(torch.ones(2)))
        self.assertEqual(Data.Slot.absent(), Data.Slot.absent())
        self.assertNotEqual(Data.Slot.of(torch.ones(2)), Data.Slot.absent())
        self.assertNotEqual(Data.Slot.of(torch.ones(2)), Data.Slot.of(torch.ones(2, dtype=torch.float64)))
        self.assertEqual(hash(Data.Slot.of(torch.ones(2))), hash(Data.Slot.of(torch.ones(2))))


class TestExampleConstruction(unittest.TestCase):
    def test_single_tensors(self):
        features = torch.randn(3, 4)
        labels = torch.randn(3, 2)
        example = Data.Example(features, labels)
        self.assertEqual(example.num_feature_slots, 1)
        self.assertEqual(example.num_label_slots, 1)
        self.assertIs(example.get_feature(0), features)
        self.assertIs(example.get_label(0), labels)
        self.assertEqual(example.feature_masks, (None,))
        self.assertEqual(example.label_masks, (None,))

    def test_sequences(self):
        example = Data.Example([torch.ones(2, 1), None, torch.ones(2, 3)],
                               [torch.ones(2, 5)],
                               [None, None, torch.ones(2, 3)])
        self.assertEqual(example.num_feature_slots, 3)
        self.assertIsNone(example.get_feature(1))
        self.assertIsNone(example.get_feature_mask(0))
        self.assertEqual(example.get_feature_mask(2).shape, (2, 3))
        self.assertTrue(example.has_masks())

    def test_independent_slot_counts(self):
        example = Data.Example(None, [torch.ones(1, 2), torch.ones(1, 3)])
        self.assertEqual(example.num_feature_slots, 0)
        self.assertEqual(example.num_label_slots, 2)
        self.assertFalse(example.is_placeholder())

    def test_placeholder(self):
        example = Data.Example()
        self.assertTrue(example.is_placeholder())
        self.assertEqual(example.num_examples(), 0)
        self.assertEqual(example.memory_footprint(), 0)

    def test_mask_count_mismatch(self):
        try:
            Data.Example([torch.ones(1, 2), torch.ones(1, 2)], None, [torch.ones(1, 2)])
            raise RuntimeError("Did not throw")
        except Core.ShapeMismatchError as err:
            if PRINT_ERRORS:
                print(err)

    def test_from_slots(self):
        example = Data.Example.from_slots([Data.Slot.of(torch.ones(1, 2))], [],
                                          [Data.Slot.absent()], [])
        self.assertEqual(example, Data.Example(torch.ones(1, 2)))


class TestExampleAccess(unittest.TestCase):
    def make_example(self) -> Data.Example:
        return Data.Example([torch.ones(4, 3), torch.zeros(4, 2, 5)],
                            [torch.ones(4, 1)],
                            [None, torch.ones(4, 5)],
                            None)

    def test_out_of_range(self):
        example = self.make_example()
        accessors = [example.get_feature, example.get_label, example.get_feature_mask, example.get_label_mask]
        for accessor in accessors:
            with self.assertRaises(Core.IndexOutOfRange):
                accessor(5)
            with self.assertRaises(IndexError):
                accessor(-1)

    def test_setters(self):
        example = self.make_example()
        replacement = torch.full((4, 3), 2.0)
        example.set_feature(0, replacement)
        self.assertIs(example.get_feature(0), replacement)

        example.set_feature_mask(1, None)
        self.assertIsNone(example.get_feature_mask(1))
        example.set_label_mask(0, torch.ones(4, 1))
        self.assertIsNotNone(example.get_label_mask(0))
        example.set_label(0, None)
        self.assertIsNone(example.get_label(0))

    def test_setters_never_grow(self):
        example = self.make_example()
        try:
            example.set_feature(2, torch.ones(4, 1))
            raise RuntimeError("Did not throw")
        except Core.IndexOutOfRange as err:
            self.assertEqual(err.size, 2)
            if PRINT_ERRORS:
                print(err)
        self.assertEqual(example.num_feature_slots, 2)

    def test_copy_is_independent(self):
        example = self.make_example()
        duplicate = example.copy()
        self.assertEqual(example, duplicate)
        duplicate.set_feature(0, None)
        self.assertIsNotNone(example.get_feature(0))
        self.assertNotEqual(example, duplicate)

    def test_num_examples(self):
        self.assertEqual(self.make_example().num_examples(), 4)
        self.assertEqual(Data.Example([None], [torch.ones(6, 1)]).num_examples(), 6)
        self.assertEqual(Data.Example([None]).num_examples(), 0)

    def test_memory_footprint(self):
        example = Data.Example(torch.ones(2, 3, dtype=torch.float32), torch.ones(2, dtype=torch.int64),
                               torch.ones(2, 3, dtype=torch.uint8))
        self.assertEqual(example.memory_footprint(), 2 * 3 * 4 + 2 * 8 + 2 * 3)

    def test_equality(self):
        first = self.make_example()
        second = self.make_example()
        self.assertEqual(first, second)

        second.set_label(0, torch.ones(4, 1, dtype=torch.float64))
        self.assertNotEqual(first, second)
        self.assertNotEqual(first, "not an example")
        self.assertNotEqual(Data.Example(torch.ones(1, 2)), Data.Example(torch.ones(1, 2), torch.ones(1, 2)))

    def test_unhashable(self):
        """Examples change through their setters, so cannot be dict keys"""
        example = self.make_example()
        with self.assertRaises(TypeError):
            hash(example)
        with self.assertRaises(TypeError):
            {example}

    def test_string_forms(self):
        text = str(self.make_example())
        self.assertIn("rows=4", text)
        self.assertIn("absent", text)
        self.assertIn("[4, 2, 5]", repr(self.make_example()))
