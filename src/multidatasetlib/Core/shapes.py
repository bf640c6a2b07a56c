"""

A shape description value type, along with
the standardization logic needed to get one
out of the various ways people like to say
"shape".

The shape is broken up the way the batching
logic thinks about it:

* rows: The leading, batch, dimension
* middle: Everything between the rows and the trailing dimension
* trailing: The last dimension. For rank 3 and above this is
            the time dimension, and the only one allowed to be ragged.

"""
from typing import List, Optional, Sequence, Tuple, Union

import torch

from . import errors as Errors
from . import string_util

StandardShapeType = Union[torch.Tensor, torch.Size, List[int], Tuple[int, ...], int]


class Shape(tuple):
    """
    An immutable, ordered sequence of dimension sizes.
    """

    def __new__(cls, dims: Sequence[int] = ()):
        return super().__new__(cls, (int(dim) for dim in dims))

    @classmethod
    def of(cls, tensor: torch.Tensor) -> "Shape":
        return cls(tensor.shape)

    @property
    def rank(self) -> int:
        return len(self)

    @property
    def rows(self) -> int:
        if self.rank == 0:
            raise IndexError("A rank 0 shape has no rows")
        return self[0]

    @property
    def trailing(self) -> int:
        if self.rank == 0:
            raise IndexError("A rank 0 shape has no trailing dimension")
        return self[-1]

    @property
    def middle(self) -> "Shape":
        if self.rank < 2:
            return Shape()
        return Shape(self[1:-1])

    @property
    def non_leading(self) -> "Shape":
        return Shape(self[1:])

    @property
    def has_time_axis(self) -> bool:
        return self.rank >= 3

    @property
    def numel(self) -> int:
        total = 1
        for dim in self:
            total *= dim
        return total

    def with_rows(self, rows: int) -> "Shape":
        return Shape((rows,) + tuple(self[1:]))

    def with_trailing(self, length: int) -> "Shape":
        return Shape(tuple(self[:-1]) + (length,))

    def __repr__(self) -> str:
        return "Shape(%s)" % string_util.format_shape(self)

    def __str__(self) -> str:
        return string_util.format_shape(self)


def standardize_shape(input: StandardShapeType,
                      input_name: str,
                      allow_zeros: bool = True,
                      task: Optional[str] = None,
                      ) -> Shape:
    """
    Converts a sequence of things representing the shape
    of a tensor in one of several formats into a single
    standard Shape. Performs some validation as well.

    :param input: One of the possible input formats
    :param input_name: The name of the thing being standardized. Used to generate helpful error messages
    :param allow_zeros: Whether zero elements are allowed in the shape
    :param task: The task trace, used to make nice error messages.
    :return: A Shape
    """
    if isinstance(input, bool):
        reason = f"""\
        Expected parameter '{input_name}' to be one of
        int, List[int], Tuple[int], torch.Size or torch.Tensor.
        But instead found a bool.
        """
        raise Errors.StandardizationError(string_util.dedent(reason), task)
    if isinstance(input, int):
        dims = [input]
    elif isinstance(input, (list, tuple, torch.Size)):
        for item in input:
            if isinstance(item, bool) or not isinstance(item, int):
                reason = f"""\
                Expected parameter '{input_name}' to consist entirely of
                integers. However, found element {item!r} of type {type(item)}
                """
                raise Errors.StandardizationError(string_util.dedent(reason), task)
        dims = list(input)
    elif isinstance(input, torch.Tensor):
        if input.dim() != 1:
            dims = input.dim()
            reason = f"""\
            Expected parameter '{input_name}' to receive 1d tensor representing
            shape. Number of dimensions was actually {dims}
            """
            raise Errors.StandardizationError(string_util.dedent(reason), task)
        if torch.is_floating_point(input) or torch.is_complex(input):
            tensor_type = input.dtype
            reason = f"""\
            Expected parameter '{input_name}' to receive an integer tensor type.
            However, actually received a tensor of type {tensor_type}
            """
            raise Errors.StandardizationError(string_util.dedent(reason), task)
        dims = input.tolist()
    else:
        input_type = type(input)
        reason = f"""\
        Expected parameter '{input_name}' to be one of
        int, List[int], Tuple[int], torch.Size or torch.Tensor.
        But instead found {input_type}
        """
        raise Errors.StandardizationError(string_util.dedent(reason), task)

    if any(dim < 0 for dim in dims):
        reason = f"""\
        Expected parameter '{input_name}' to consist of no elements
        less than zero. This was not satisfied. Got {dims}
        """
        raise Errors.StandardizationError(string_util.dedent(reason), task)
    if not allow_zeros and any(dim == 0 for dim in dims):
        reason = f"""\
        Expected parameter '{input_name}' to consist of no elements
        equal to zero. This was not satisfied. Got {dims}
        """
        raise Errors.StandardizationError(string_util.dedent(reason), task)
    return Shape(dims)
