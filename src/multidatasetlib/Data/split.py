"""

The batch split engine. The inverse of merging.

A batch is broken back up into one example per row. Each
produced example keeps the full rank of the batch; a row of
a [N, C, H, W] tensor comes out as [1, C, H, W], never as
[C, H, W]. Masks are sliced the same way, and absent slots
stay absent.

Splitting is lazy. Nothing is sliced until a row is asked
for, and the split may be iterated over as many times as
desired.
"""

from typing import Iterator, List, Optional

from multidatasetlib import Core
from multidatasetlib.Core import tensor_ops
from .example import Example
from .slot import Slot

logger = Core.get_logger(__name__)


def _row_count(batch: Example, task: Optional[str]) -> int:
    groups = (("feature", batch.feature_slots),
              ("label", batch.label_slots),
              ("feature mask", batch.feature_mask_slots),
              ("label mask", batch.label_mask_slots))
    rows: Optional[int] = None
    origin = None
    for name, slots in groups:
        for index, slot in enumerate(slots):
            if not slot.present:
                continue
            tensor = slot.tensor
            if tensor.dim() == 0:
                reason = f"""\
                The {name} at position {index} is a rank 0 tensor. It has no
                rows, and so the batch cannot be split.
                """
                raise Core.ShapeMismatchError(Core.dedent(reason), task)
            if rows is None:
                rows = tensor.shape[0]
                origin = "%s %s" % (name, index)
            elif tensor.shape[0] != rows:
                reason = f"""\
                Every tensor in a batch must share the leading dimension in
                order to be split. However, {origin} has {rows} rows while
                {name} {index} has {tensor.shape[0]}.
                """
                raise Core.ShapeMismatchError(Core.dedent(reason), task)
    return 0 if rows is None else rows


def _slice_row(slot: Slot, row: int) -> Slot:
    if not slot.present:
        return slot
    return Slot.of(tensor_ops.slice_axis(slot.tensor, 0, row, row + 1).clone())


class ExampleSplit:
    """
    A lazy, finite, restartable sequence of single row
    examples drawn from a batch.
    """

    def __init__(self, batch: Example, task: Optional[str] = None):
        self._batch = batch
        self._task = task
        self._rows = _row_count(batch, task)

    def __len__(self) -> int:
        return self._rows

    def __getitem__(self, row: int) -> Example:
        if row < 0:
            row += self._rows
        if row < 0 or row >= self._rows:
            raise Core.IndexOutOfRange("row", row, self._rows, self._task)
        batch = self._batch
        return Example.from_slots(
            [_slice_row(slot, row) for slot in batch.feature_slots],
            [_slice_row(slot, row) for slot in batch.label_slots],
            [_slice_row(slot, row) for slot in batch.feature_mask_slots],
            [_slice_row(slot, row) for slot in batch.label_mask_slots],
        )

    def __iter__(self) -> Iterator[Example]:
        logger.debug("batch_split", rows=self._rows)
        for row in range(self._rows):
            yield self[row]


def split(batch: Example, task: Optional[str] = None) -> ExampleSplit:
    """
    Splits a batch into one example per row.

    :param batch: The batch to split
    :param task: The task trace, for error messages
    :return: A lazy sequence of examples.
    :raises ShapeMismatchError: If the present tensors disagree on the number of rows.
    """
    return ExampleSplit(batch, task)


def split_list(batch: Example, task: Optional[str] = None) -> List[Example]:
    return list(split(batch, task))
