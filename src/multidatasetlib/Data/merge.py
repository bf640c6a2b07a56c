"""

The batch merge engine.

Merging takes a collection of examples and combines them, slot
by slot, into a single example whose leading dimension spans all
of the rows of the inputs, in order.

--- data ---

* Rank 1 and 2 tensors are simply concatenated along the rows.
* Rank 3 and above tensors have a trailing, time, dimension. If all
  contributors share the same trailing length, they are concatenated
  as well. Otherwise, they are zero padded out to the longest length
  and then stacked.

--- masks ---

A merged slot ends up with a mask when any contributor brought a mask
for it, or when padding was needed and the config asks for masks on
padding. Contributors which did not bring a mask get one of all ones over
their valid prefix, shaped like the explicit masks, and padded
with zeros exactly like the data. Broadcastable masks, such as
[1, 1, H, 1] masks over [N, C, H, W] images, keep their singleton
dimensions; only the rows are concatenated.

--- failure ---

Everything is checked up front, and a problem immediately raises:

* NullSlotError: A slot is present in some contributors and absent in others
* ShapeMismatchError: Slot counts, ranks, or dimensions cannot be lined up.
"""

from typing import List, Optional, Sequence, Tuple

import torch

from multidatasetlib import Core
from multidatasetlib.Core import tensor_ops
from .example import Example, FEATURE, LABEL
from .slot import Slot

logger = Core.get_logger(__name__)


def _count_slots(examples: Sequence[Example], direction: str, task: Optional[str]) -> int:
    if direction == FEATURE:
        counts = [example.num_feature_slots for example in examples]
    else:
        counts = [example.num_label_slots for example in examples]
    if len(set(counts)) > 1:
        reason = f"""\
        Examples being merged must all have the same number of {direction}
        slots. However, the {direction} slot counts were {counts}.
        """
        raise Core.ShapeMismatchError(Core.dedent(reason), task)
    return counts[0]


def _check_presence(direction: str,
                    index: int,
                    data: Sequence[Slot],
                    masks: Sequence[Slot],
                    task: Optional[str]) -> bool:
    """
    Verifies a slot is either present in every contributor, or absent in
    every contributor. Returns whether it is present.
    """
    presence = [slot.present for slot in data]
    if all(presence):
        return True
    if any(presence):
        absent_at = presence.index(False)
        present_at = presence.index(True)
        reason = f"""\
        The {direction} at position {index} is absent in example {absent_at},
        but present in example {present_at}. A slot must be present in every
        example being merged, or in none of them.
        """
        raise Core.NullSlotError(direction, index, Core.dedent(reason), task)
    if any(slot.present for slot in masks):
        reason = f"""\
        A mask was provided for {direction} {index}, but no example being
        merged holds a {direction} in that slot. There is nothing to mask.
        """
        raise Core.NullSlotError(direction, index, Core.dedent(reason), task)
    return False


def _check_data_shapes(direction: str,
                       index: int,
                       shapes: Sequence[Core.Shape],
                       task: Optional[str]):
    ranks = [shape.rank for shape in shapes]
    if len(set(ranks)) != 1:
        reason = f"""\
        The {direction} tensors at position {index} do not share a rank.
        Got ranks {ranks}. All examples must agree on the rank of a slot.
        """
        raise Core.ShapeMismatchError(Core.dedent(reason), task)
    if ranks[0] == 0:
        reason = f"""\
        The {direction} tensors at position {index} are rank 0. They have
        no rows, and so cannot be merged.
        """
        raise Core.ShapeMismatchError(Core.dedent(reason), task)

    first = shapes[0]
    for shape in shapes[1:]:
        if first.has_time_axis:
            agrees = shape.middle == first.middle
            what = "dimensions other than the leading and trailing ones"
        else:
            agrees = shape.non_leading == first.non_leading
            what = "dimensions other than the leading one"
        if not agrees:
            reason = f"""\
            The {direction} tensors at position {index} disagree on {what}.
            Shape {shape} cannot be merged with shape {first}.
            """
            raise Core.ShapeMismatchError(Core.dedent(reason), task)


def _mask_template(direction: str,
                   index: int,
                   data_rank: int,
                   data_shapes: Sequence[Core.Shape],
                   explicit: Sequence[Tuple[int, torch.Tensor]],
                   padded: bool,
                   task: Optional[str]) -> Core.Shape:
    """
    Works out the non leading shape every mask in the slot must share,
    and checks every explicit mask conforms to it. When padding, the
    trailing entry of the template is a placeholder; each mask
    instead carries its own row's length there.
    """
    if len(explicit) == 0:
        # Sequence mask: [rows, T], or [rows, 1, ..., 1, T] for spatial data
        if data_rank == 3:
            return Core.Shape([0])
        return Core.Shape([1] * (data_rank - 2) + [0])

    first_position, first = explicit[0]
    template = Core.Shape.of(first).non_leading
    for position, mask in explicit:
        shape = Core.Shape.of(mask)
        rows = data_shapes[position].rows
        if shape.rank != first.dim():
            reason = f"""\
            The masks for {direction} {index} do not share a rank. The mask
            of example {first_position} has shape {Core.Shape.of(first)}
            while the mask of example {position} has shape {shape}.
            """
            raise Core.ShapeMismatchError(Core.dedent(reason), task)
        if shape.rank == 0 or shape.rows != rows:
            reason = f"""\
            The mask for {direction} {index} in example {position} has shape
            {shape}, but the {direction} it masks has {rows} rows. A mask
            needs one row per row of data.
            """
            raise Core.ShapeMismatchError(Core.dedent(reason), task)
        if padded:
            if shape.rank < 2:
                reason = f"""\
                The {direction} tensors at position {index} need padding, but the
                mask of example {position} has shape {shape}, which has no time
                dimension to pad.
                """
                raise Core.ShapeMismatchError(Core.dedent(reason), task)
            length = data_shapes[position].trailing
            agrees = tuple(shape.middle) == tuple(template[:-1]) and shape.trailing in (1, length)
        else:
            agrees = shape.non_leading == template
        if not agrees:
            reason = f"""\
            The mask for {direction} {index} in example {position} has shape
            {shape}, which cannot be lined up with the mask of example
            {first_position}, of shape {Core.Shape.of(first)}.
            """
            raise Core.ShapeMismatchError(Core.dedent(reason), task)
    return template


def _merge_masks(direction: str,
                 index: int,
                 data_shapes: Sequence[Core.Shape],
                 masks: Sequence[Slot],
                 merged_dtype: torch.dtype,
                 device: torch.device,
                 padded: bool,
                 length: int,
                 task: Optional[str]) -> torch.Tensor:
    explicit = [(position, slot.tensor) for position, slot in enumerate(masks) if slot.present]
    template = _mask_template(direction, index, data_shapes[0].rank, data_shapes, explicit, padded, task)
    dtype = explicit[0][1].dtype if len(explicit) > 0 else merged_dtype

    pieces: List[torch.Tensor] = []
    for data_shape, slot in zip(data_shapes, masks):
        if padded:
            row_length = data_shape.trailing
            if slot.present:
                mask = slot.tensor
                if mask.shape[-1] != row_length:
                    mask = mask.expand(*mask.shape[:-1], row_length)
            else:
                shape = Core.Shape((data_shape.rows,) + tuple(template.with_trailing(row_length)))
                mask = tensor_ops.create_ones(shape, dtype, device)
        else:
            if slot.present:
                mask = slot.tensor
            else:
                shape = Core.Shape((data_shape.rows,) + tuple(template))
                mask = tensor_ops.create_ones(shape, dtype, device)
        pieces.append(mask.to(dtype))

    if padded:
        return Core.pad_and_concat(pieces, length, task)
    return tensor_ops.concat(0, pieces)


def _merge_slot(direction: str,
                index: int,
                data: Sequence[Slot],
                masks: Sequence[Slot],
                config: Core.DataConfig,
                task: Optional[str]) -> Tuple[Slot, Slot]:
    """
    Merges a single slot across every contributor.

    :return: The merged data slot, and the merged mask slot.
    """
    if not _check_presence(direction, index, data, masks, task):
        return Slot.absent(), Slot.absent()

    tensors = [slot.tensor for slot in data]
    shapes = [Core.Shape.of(tensor) for tensor in tensors]
    _check_data_shapes(direction, index, shapes, task)

    padded = shapes[0].has_time_axis and len(set(shape.trailing for shape in shapes)) > 1
    if padded:
        merged = Core.pad_and_concat(tensors, task=task)
        length = merged.shape[-1]
    else:
        merged = tensor_ops.concat(0, tensors)
        length = shapes[0].trailing

    needs_mask = any(slot.present for slot in masks) or (padded and config.mask_on_padding)
    if not needs_mask:
        return Slot.of(merged), Slot.absent()

    mask = _merge_masks(direction, index, shapes, masks, merged.dtype, merged.device, padded, length, task)
    return Slot.of(merged), Slot.of(mask)


def merge(examples: Sequence[Example],
          config: Optional[Core.DataConfig] = None,
          task: Optional[str] = None) -> Example:
    """
    Merges a collection of examples into one batch example.

    Placeholder examples, with no feature and no label slots, are
    skipped. If nothing is left, an empty placeholder is returned.

    :param examples: The examples to merge, in row order.
    :param config: The config to use. Defaults to the process wide config.
    :param task: The task trace, for error messages.
    :return: A new example holding every row of every contributor.
    :raises NullSlotError: If a slot is present in only some of the examples.
    :raises ShapeMismatchError: If slot counts or tensor shapes cannot be lined up.
    """
    if config is None:
        config = Core.get_config()

    contributing = [example for example in examples if not example.is_placeholder()]
    skipped = len(examples) - len(contributing)
    if len(contributing) == 0:
        logger.debug("merge_empty", skipped=skipped)
        return Example()

    num_features = _count_slots(contributing, FEATURE, task)
    num_labels = _count_slots(contributing, LABEL, task)

    features: List[Slot] = []
    feature_masks: List[Slot] = []
    for index in range(num_features):
        data = [example.feature_slot(index) for example in contributing]
        masks = [example.feature_mask_slot(index) for example in contributing]
        merged, mask = _merge_slot(FEATURE, index, data, masks, config, task)
        features.append(merged)
        feature_masks.append(mask)

    labels: List[Slot] = []
    label_masks: List[Slot] = []
    for index in range(num_labels):
        data = [example.label_slot(index) for example in contributing]
        masks = [example.label_mask_slot(index) for example in contributing]
        merged, mask = _merge_slot(LABEL, index, data, masks, config, task)
        labels.append(merged)
        label_masks.append(mask)

    output = Example.from_slots(features, labels, feature_masks, label_masks)
    logger.debug("examples_merged",
                 contributing=len(contributing),
                 skipped=skipped,
                 rows=output.num_examples(),
                 feature_slots=num_features,
                 label_slots=num_labels)
    return output
