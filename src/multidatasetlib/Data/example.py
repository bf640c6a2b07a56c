"""

The example container.

An example is one training instance, or, once merged,
a batch of them. It holds:

* features: An ordered collection of input slots
* labels: An ordered collection of output slots
* feature_masks: One mask slot per feature slot
* label_masks: One mask slot per label slot

Every slot may be absent. Absent mask slots mean no masking
is needed for that feature or label. The number of feature
slots and label slots are independent of each other.

A batch is not a distinct type. The only thing separating a batch
from a single example is the length of the leading dimension.

--- mutation ---

Slots are replaced through the setters. Setters never grow an
example; to change the number of slots, construct a new one.
"""

from typing import Iterable, List, Optional, Sequence, Tuple, Union

import torch

from multidatasetlib import Core
from .slot import Slot

SlotInput = Union[Slot, torch.Tensor, None]
GroupInput = Union[torch.Tensor, Slot, Sequence[SlotInput], None]

FEATURE = "feature"
LABEL = "label"
FEATURE_MASK = "feature mask"
LABEL_MASK = "label mask"


def _standardize_group(group: GroupInput) -> List[Slot]:
    if group is None:
        return []
    if isinstance(group, (torch.Tensor, Slot)):
        return [Slot.wrap(group)]
    return [Slot.wrap(item) for item in group]


def _standardize_masks(masks: GroupInput, data: List[Slot], name: str) -> List[Slot]:
    if masks is None:
        return [Slot.absent()] * len(data)
    slots = _standardize_group(masks)
    if len(slots) != len(data):
        reason = f"""\
        The {name}s must have one entry for every slot they
        mask. There are {len(data)} slots, but {len(slots)} {name}s
        were provided.
        """
        raise Core.ShapeMismatchError(Core.dedent(reason))
    return slots


class Example:
    """
    One training instance, or a batch of them, with multiple
    inputs and outputs and optional masks.

    Each group may be given as a single tensor, a sequence of
    tensors, Slots, and Nones, or left as None.
    """

    def __init__(self,
                 features: GroupInput = None,
                 labels: GroupInput = None,
                 feature_masks: GroupInput = None,
                 label_masks: GroupInput = None,
                 ):
        self._features = _standardize_group(features)
        self._labels = _standardize_group(labels)
        self._feature_masks = _standardize_masks(feature_masks, self._features, FEATURE_MASK)
        self._label_masks = _standardize_masks(label_masks, self._labels, LABEL_MASK)

    @classmethod
    def from_slots(cls,
                   features: Iterable[Slot],
                   labels: Iterable[Slot],
                   feature_masks: Iterable[Slot],
                   label_masks: Iterable[Slot]) -> "Example":
        return cls(list(features), list(labels), list(feature_masks), list(label_masks))

    # Slot access

    @staticmethod
    def _fetch(slots: List[Slot], index: int, direction: str) -> Slot:
        if index < 0 or index >= len(slots):
            raise Core.IndexOutOfRange(direction, index, len(slots))
        return slots[index]

    @staticmethod
    def _replace(slots: List[Slot], index: int, item: SlotInput, direction: str):
        if index < 0 or index >= len(slots):
            raise Core.IndexOutOfRange(direction, index, len(slots))
        slots[index] = Slot.wrap(item)

    def feature_slot(self, index: int) -> Slot:
        return self._fetch(self._features, index, FEATURE)

    def label_slot(self, index: int) -> Slot:
        return self._fetch(self._labels, index, LABEL)

    def feature_mask_slot(self, index: int) -> Slot:
        return self._fetch(self._feature_masks, index, FEATURE_MASK)

    def label_mask_slot(self, index: int) -> Slot:
        return self._fetch(self._label_masks, index, LABEL_MASK)

    def get_feature(self, index: int) -> Optional[torch.Tensor]:
        return self.feature_slot(index).get()

    def get_label(self, index: int) -> Optional[torch.Tensor]:
        return self.label_slot(index).get()

    def get_feature_mask(self, index: int) -> Optional[torch.Tensor]:
        return self.feature_mask_slot(index).get()

    def get_label_mask(self, index: int) -> Optional[torch.Tensor]:
        return self.label_mask_slot(index).get()

    def set_feature(self, index: int, tensor: SlotInput):
        self._replace(self._features, index, tensor, FEATURE)

    def set_label(self, index: int, tensor: SlotInput):
        self._replace(self._labels, index, tensor, LABEL)

    def set_feature_mask(self, index: int, tensor: SlotInput):
        self._replace(self._feature_masks, index, tensor, FEATURE_MASK)

    def set_label_mask(self, index: int, tensor: SlotInput):
        self._replace(self._label_masks, index, tensor, LABEL_MASK)

    # Whole group views

    @property
    def features(self) -> Tuple[Optional[torch.Tensor], ...]:
        return tuple(slot.get() for slot in self._features)

    @property
    def labels(self) -> Tuple[Optional[torch.Tensor], ...]:
        return tuple(slot.get() for slot in self._labels)

    @property
    def feature_masks(self) -> Tuple[Optional[torch.Tensor], ...]:
        return tuple(slot.get() for slot in self._feature_masks)

    @property
    def label_masks(self) -> Tuple[Optional[torch.Tensor], ...]:
        return tuple(slot.get() for slot in self._label_masks)

    @property
    def feature_slots(self) -> Tuple[Slot, ...]:
        return tuple(self._features)

    @property
    def label_slots(self) -> Tuple[Slot, ...]:
        return tuple(self._labels)

    @property
    def feature_mask_slots(self) -> Tuple[Slot, ...]:
        return tuple(self._feature_masks)

    @property
    def label_mask_slots(self) -> Tuple[Slot, ...]:
        return tuple(self._label_masks)

    @property
    def num_feature_slots(self) -> int:
        return len(self._features)

    @property
    def num_label_slots(self) -> int:
        return len(self._labels)

    # Inspection

    def is_placeholder(self) -> bool:
        """An example with no feature slots and no label slots at all."""
        return len(self._features) == 0 and len(self._labels) == 0

    def num_examples(self) -> int:
        """
        The number of rows held. This is the leading dimension of the
        first present feature, or failing that of the first present label.
        """
        for slot in self._features + self._labels:
            if slot.present and slot.tensor.dim() > 0:
                return slot.tensor.shape[0]
        return 0

    def has_masks(self) -> bool:
        return any(slot.present for slot in self._feature_masks + self._label_masks)

    def memory_footprint(self) -> int:
        """The number of bytes held by all present tensors, masks included."""
        total = 0
        for slot in self._all_slots():
            if slot.present:
                total += slot.tensor.numel() * slot.tensor.element_size()
        return total

    def copy(self) -> "Example":
        """
        Makes a new example whose slot assignments are independent of
        this one. The tensors themselves are shared.
        """
        return Example.from_slots(self._features, self._labels, self._feature_masks, self._label_masks)

    def _all_slots(self) -> List[Slot]:
        return self._features + self._labels + self._feature_masks + self._label_masks

    # Dunder logic

    def __eq__(self, other) -> bool:
        if not isinstance(other, Example):
            return False
        groups = zip((self._features, self._labels, self._feature_masks, self._label_masks),
                     (other._features, other._labels, other._feature_masks, other._label_masks))
        for mine, theirs in groups:
            if len(mine) != len(theirs):
                return False
            for my_slot, their_slot in zip(mine, theirs):
                if my_slot != their_slot:
                    return False
        return True

    def __ne__(self, other) -> bool:
        return not self.__eq__(other)

    # Mutable through the setters, so not hashable
    __hash__ = None

    def __str__(self) -> str:
        lines = ["Example(rows=%s)" % self.num_examples()]
        groups = (("features", self._features),
                  ("labels", self._labels),
                  ("feature masks", self._feature_masks),
                  ("label masks", self._label_masks))
        for name, slots in groups:
            lines.append("  %s: %s" % (name, [repr(slot) for slot in slots]))
        return "\n".join(lines)

    def __repr__(self) -> str:
        return "Example(features=%s, labels=%s, feature_masks=%s, label_masks=%s)" % (
            list(self._features), list(self._labels), list(self._feature_masks), list(self._label_masks))
