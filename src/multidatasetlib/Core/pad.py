"""
A small module containing the padding functions
used to line ragged time series up into one tensor.

Everything here pads along the trailing dimension, with
zeros, and only ever at the end. The valid data always
lives in the prefix.
"""


from typing import Optional, List, Sequence

import torch
from . import errors as Errors
from . import string_util
from . import tensor_ops
from .shapes import Shape


class PaddingException(Errors.ValidationError):
    """
    An exception to raise when something
    goes wrong when padding
    """
    def __init__(self,
                 reason: str,
                 task: Optional[str] = None,
                 length: Optional[int] = None,
                 shapes: Optional[List[Shape]] = None
                 ):
        type = "PaddingException"
        self.length = length
        self.shapes = shapes
        super().__init__(type, reason, task)


def pad_trailing(tensor: torch.Tensor, length: int, task: Optional[str] = None) -> torch.Tensor:
    """
    Zero pads the trailing dimension of a tensor out to
    the given length. The original data occupies [0, original_length)
    of the trailing dimension.

    :param tensor: The tensor to pad
    :param length: The trailing length to end up with
    :param task: The task trace, for error messages
    :return: A new, padded, tensor. Or the tensor itself if no padding was needed.
    """
    if tensor.dim() == 0:
        reason = """\
        A rank 0 tensor has no trailing dimension, and
        so cannot be padded.
        """
        raise PaddingException(string_util.dedent(reason), task, length, [Shape.of(tensor)])

    current = tensor.shape[-1]
    if length < current:
        reason = f"""\
        The tensor has a trailing length of {current}. However, it
        was asked to be padded to length {length}. Padding cannot
        remove entries.
        """
        raise PaddingException(string_util.dedent(reason), task, length, [Shape.of(tensor)])
    if length == current:
        return tensor

    output = tensor_ops.create_zeros(Shape.of(tensor).with_trailing(length), tensor.dtype, tensor.device)
    tensor_ops.copy_into(output, tensor, [0] * tensor.dim(), task)
    return output


def pad_and_concat(tensors: Sequence[torch.Tensor],
                   length: Optional[int] = None,
                   task: Optional[str] = None) -> torch.Tensor:
    """
    Stacks a collection of tensors along the leading dimension, zero
    padding each along the trailing dimension out to a common length.

    This is done by allocating one zero filled tensor of shape
    [total_rows, ...middle, length] and copying each tensor into the
    prefix of its own row range. It works identically for every rank
    of two or above.

    :param tensors: The tensors to stack. Must agree on rank and middle dimensions.
    :param length: The trailing length to pad to. Defaults to the longest
        trailing length among the tensors.
    :param task: The task trace, for error messages
    :return: The padded, stacked, tensor.
    """
    if len(tensors) == 0:
        reason = """\
        No tensors were provided. At least one tensor is
        needed to know what shape to produce.
        """
        raise PaddingException(string_util.dedent(reason), task, length, [])

    shapes = [Shape.of(tensor) for tensor in tensors]
    ranks = set(item.rank for item in shapes)
    if len(ranks) != 1 or min(ranks) < 2:
        reason = f"""\
        Padding and concatenating needs tensors which all share
        one rank of at least two. Instead got shapes
        {[str(item) for item in shapes]}
        """
        raise PaddingException(string_util.dedent(reason), task, length, shapes)

    middle = shapes[0].middle
    for item in shapes[1:]:
        if item.middle != middle:
            reason = f"""\
            Only the leading and trailing dimensions may differ between
            tensors being padded together. However, shape {item} has middle
            dimensions {item.middle} while shape {shapes[0]} has {middle}.
            """
            raise PaddingException(string_util.dedent(reason), task, length, shapes)

    longest = max(item.trailing for item in shapes)
    if length is None:
        length = longest
    if length < longest:
        reason = f"""\
        Asked to pad to trailing length {length}, but one of the tensors
        is already {longest} long. Padding cannot remove entries.
        """
        raise PaddingException(string_util.dedent(reason), task, length, shapes)

    dtype = tensors[0].dtype
    for tensor in tensors[1:]:
        dtype = torch.promote_types(dtype, tensor.dtype)

    total_rows = sum(item.rows for item in shapes)
    output_shape = Shape((total_rows,) + tuple(middle) + (length,))
    output = tensor_ops.create_zeros(output_shape, dtype, tensors[0].device)

    row = 0
    for tensor, item in zip(tensors, shapes):
        offsets = [row] + [0] * (item.rank - 1)
        tensor_ops.copy_into(output, tensor.to(dtype), offsets, task)
        row += item.rows
    return output
