"""
The slot wrapper.

A slot is one position within the feature, label, or mask
lists of an example. It is either present, holding a tensor,
or absent. Absence is stated explicitly rather than by storing
None, so code which wants the tensor has to ask whether there
is one first.
"""
from typing import Optional, Union

import torch

from multidatasetlib import Core


class AbsentSlotError(Core.ValidationError, ValueError):
    """
    Raised when the tensor of an absent slot is requested.
    """
    def __init__(self, task: Optional[str] = None):
        type = "AbsentSlotError"
        reason = "The slot is absent, and so holds no tensor."
        super().__init__(type, reason, task)


class Slot:
    """
    An immutable present/absent wrapper around a tensor.
    """
    __slots__ = ("_tensor",)

    def __init__(self, tensor: Optional[torch.Tensor] = None):
        if tensor is not None and not isinstance(tensor, torch.Tensor):
            reason = f"""\
            A slot can only hold a torch.Tensor. Got {type(tensor)}
            """
            raise Core.ValidationError("SlotConstructionError", Core.dedent(reason))
        object.__setattr__(self, "_tensor", tensor)

    @classmethod
    def of(cls, tensor: torch.Tensor) -> "Slot":
        if tensor is None:
            raise Core.ValidationError("SlotConstructionError",
                                       "Slot.of needs a tensor. Use Slot.absent for an empty slot.")
        return cls(tensor)

    @classmethod
    def absent(cls) -> "Slot":
        return _ABSENT

    @classmethod
    def wrap(cls, item: Union["Slot", torch.Tensor, None]) -> "Slot":
        """Accepts a slot, a tensor, or None and gives back a slot."""
        if isinstance(item, Slot):
            return item
        if item is None:
            return _ABSENT
        return cls(item)

    @property
    def present(self) -> bool:
        return self._tensor is not None

    @property
    def tensor(self) -> torch.Tensor:
        if self._tensor is None:
            raise AbsentSlotError()
        return self._tensor

    def get(self) -> Optional[torch.Tensor]:
        return self._tensor

    def __setattr__(self, key, value):
        raise TypeError("Cannot modify a slot. Make a new one instead.")

    def __eq__(self, other) -> bool:
        if not isinstance(other, Slot):
            return False
        if self.present != other.present:
            return False
        if not self.present:
            return True
        return Core.tensor_ops.tensors_equal(self._tensor, other._tensor)

    def __ne__(self, other) -> bool:
        return not self.__eq__(other)

    def __hash__(self) -> int:
        if not self.present:
            return hash(None)
        return hash((tuple(self._tensor.shape), str(self._tensor.dtype)))

    def __repr__(self) -> str:
        if not self.present:
            return "Slot(absent)"
        return "Slot(%s, %s)" % (Core.format_shape(self._tensor.shape), self._tensor.dtype)


_ABSENT = Slot()
