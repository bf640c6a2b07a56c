"""

The small set of tensor primitives the batching
logic is allowed to lean on. Everything else in the
library goes through these rather than poking torch
directly, which keeps the contract with the underlying
array library narrow and easy to audit.

"""
from typing import List, Optional, Sequence

import torch

from . import errors as Errors
from . import string_util
from .shapes import Shape, standardize_shape


def shape(tensor: torch.Tensor) -> Shape:
    return Shape.of(tensor)


def rank(tensor: torch.Tensor) -> int:
    return tensor.dim()


def element_type(tensor: torch.Tensor) -> torch.dtype:
    return tensor.dtype


def slice_axis(tensor: torch.Tensor, axis: int, start: int, end: int) -> torch.Tensor:
    """
    Selects the interval [start, end) along axis. The rank of the
    tensor is preserved; a length one interval gives back a
    length one dimension, not a squeezed one.
    """
    return tensor.narrow(axis, start, end - start)


def concat(axis: int, tensors: Sequence[torch.Tensor]) -> torch.Tensor:
    return torch.cat(list(tensors), dim=axis)


def create_zeros(shape, dtype: torch.dtype, device: Optional[torch.device] = None) -> torch.Tensor:
    dims = standardize_shape(shape, "shape")
    return torch.zeros(list(dims), dtype=dtype, device=device)


def create_ones(shape, dtype: torch.dtype, device: Optional[torch.device] = None) -> torch.Tensor:
    dims = standardize_shape(shape, "shape")
    return torch.ones(list(dims), dtype=dtype, device=device)


def copy_into(destination: torch.Tensor,
              source: torch.Tensor,
              offsets: Sequence[int],
              task: Optional[str] = None):
    """
    Writes the elements of source into the region of destination
    starting at the given per axis offsets. The destination is
    modified in place.

    :param destination: The tensor to write into
    :param source: The tensor to write
    :param offsets: One starting offset per axis.
    :param task: The task trace, for error messages
    :raises ShapeMismatchError: If the source does not fit.
    """
    if destination.dim() != source.dim() or len(offsets) != destination.dim():
        reason = f"""\
        Cannot copy a rank {source.dim()} tensor into a rank {destination.dim()}
        tensor using {len(offsets)} offsets. All three must agree.
        """
        raise Errors.ShapeMismatchError(string_util.dedent(reason), task)

    region: List[slice] = []
    for axis, (offset, length, limit) in enumerate(zip(offsets, source.shape, destination.shape)):
        if offset < 0 or offset + length > limit:
            reason = f"""\
            The source of shape {string_util.format_shape(source.shape)} does not fit into
            the destination of shape {string_util.format_shape(destination.shape)} at
            offsets {list(offsets)}. Axis {axis} would need {offset + length} entries
            but only has {limit}.
            """
            raise Errors.ShapeMismatchError(string_util.dedent(reason), task)
        region.append(slice(offset, offset + length))
    destination[tuple(region)] = source


def tensors_equal(first: torch.Tensor, second: torch.Tensor) -> bool:
    """
    Elementwise equality. Dtype and shape must match as well.
    """
    if first.dtype != second.dtype:
        return False
    if first.shape != second.shape:
        return False
    return bool(torch.equal(first, second))
