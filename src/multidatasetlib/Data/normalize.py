"""

A min/max normalizer for multi input, multi output examples.

Statistics are gathered per slot and per channel, where the channel
is the second dimension: columns for [N, C] data, channels for
[N, C, T] time series and [N, C, H, W] images. Everything else is
reduced over. Entries which are masked out, with a mask value of
zero, do not contribute to the statistics.

Once fit, the normalizer scales data in place into
[min_range, max_range], and can revert it again.
"""

from typing import Iterable, List, Optional, Union

import torch

from multidatasetlib import Core
from .example import Example


class NormalizerException(Core.ValidationError):
    """
    Raised when the normalizer is misused, or given
    data it cannot handle.
    """
    def __init__(self, reason: str, task: Optional[str] = None):
        type = "NormalizerException"
        super().__init__(type, reason, task)


def _channel_view(tensor: torch.Tensor) -> torch.Tensor:
    """Moves the channel dimension first and flattens the rest: [C, everything]"""
    if tensor.dim() == 1:
        return tensor.reshape(1, -1)
    return tensor.transpose(0, 1).reshape(tensor.shape[1], -1)


def _stat_shape(tensor: torch.Tensor) -> List[int]:
    if tensor.dim() == 1:
        return [1]
    return [1, tensor.shape[1]] + [1] * (tensor.dim() - 2)


def _broadcast_mask(mask: torch.Tensor, tensor: torch.Tensor, task: Optional[str]) -> torch.Tensor:
    if mask.dim() == 2 and tensor.dim() == 3 and mask.shape[1] == tensor.shape[2]:
        # Per timestep mask over a time series
        mask = mask.unsqueeze(1)
    try:
        return torch.broadcast_to(mask, tensor.shape)
    except RuntimeError as err:
        reason = f"""\
        The mask of shape {Core.format_shape(mask.shape)} cannot be broadcast
        against data of shape {Core.format_shape(tensor.shape)}.
        """
        raise NormalizerException(Core.dedent(reason), task) from err


class _SlotStats:
    """
    The running min and max of a single slot.
    """
    def __init__(self):
        self.min: Optional[torch.Tensor] = None
        self.max: Optional[torch.Tensor] = None

    def update(self, tensor: torch.Tensor, mask: Optional[torch.Tensor], task: Optional[str]):
        data = tensor.detach().to(torch.float64)
        low = data
        high = data
        if mask is not None:
            keep = _broadcast_mask(mask.detach(), data, task) != 0
            low = torch.where(keep, data, torch.full_like(data, float("inf")))
            high = torch.where(keep, data, torch.full_like(data, float("-inf")))

        batch_min = _channel_view(low).amin(dim=1).reshape(_stat_shape(tensor))
        batch_max = _channel_view(high).amax(dim=1).reshape(_stat_shape(tensor))
        if self.min is None:
            self.min, self.max = batch_min, batch_max
            return
        if self.min.shape != batch_min.shape:
            reason = f"""\
            The data seen while fitting changed its number of channels,
            from {self.min.numel()} to {batch_min.numel()}.
            """
            raise NormalizerException(Core.dedent(reason), task)
        self.min = torch.minimum(self.min, batch_min)
        self.max = torch.maximum(self.max, batch_max)


class MinMaxNormalizer:
    """
    Scales every feature, and optionally every label, of an example
    so that the fitted minimum and maximum map onto min_range and
    max_range.

    --- usage ---

    normalizer = MinMaxNormalizer(fit_labels=True)
    normalizer.fit(examples)
    normalizer.transform(example)   # in place
    normalizer.revert(example)      # in place, back to where it started
    """

    def __init__(self, min_range: float = 0.0, max_range: float = 1.0, fit_labels: bool = False):
        if min_range >= max_range:
            reason = f"""\
            The normalizer range must have min_range < max_range.
            Got min_range {min_range} and max_range {max_range}.
            """
            raise NormalizerException(Core.dedent(reason))
        self.min_range = min_range
        self.max_range = max_range
        self.fit_labels = fit_labels
        self._feature_stats: Optional[List[_SlotStats]] = None
        self._label_stats: Optional[List[_SlotStats]] = None
        self._logger = Core.get_logger(__name__)

    # Fitting

    def fit(self, data: Union[Example, Iterable[Example]], task: Optional[str] = None):
        """
        Fits the normalizer, discarding anything previously fit.

        :param data: An example, or an iterable of examples
        """
        examples = [data] if isinstance(data, Example) else data
        feature_stats: Optional[List[_SlotStats]] = None
        label_stats: Optional[List[_SlotStats]] = None
        seen = 0
        for example in examples:
            if example.is_placeholder():
                continue
            if feature_stats is None:
                feature_stats = [_SlotStats() for _ in range(example.num_feature_slots)]
                label_stats = [_SlotStats() for _ in range(example.num_label_slots)]
            self._check_slot_counts(example, len(feature_stats), len(label_stats), task)
            for index, stats in enumerate(feature_stats):
                tensor = example.get_feature(index)
                if tensor is not None:
                    stats.update(tensor, example.get_feature_mask(index), task)
            if self.fit_labels:
                for index, stats in enumerate(label_stats):
                    tensor = example.get_label(index)
                    if tensor is not None:
                        stats.update(tensor, example.get_label_mask(index), task)
            seen += 1

        if feature_stats is None:
            raise NormalizerException("No examples were available to fit the normalizer on.", task)
        self._feature_stats = feature_stats
        self._label_stats = label_stats if self.fit_labels else None
        self._logger.debug("normalizer_fit",
                           examples=seen,
                           feature_slots=len(feature_stats),
                           label_slots=len(label_stats))

    @staticmethod
    def _check_slot_counts(example: Example, features: int, labels: int, task: Optional[str]):
        if example.num_feature_slots != features or example.num_label_slots != labels:
            reason = f"""\
            Expected examples with {features} feature slots and {labels} label
            slots, but got one with {example.num_feature_slots} and
            {example.num_label_slots}.
            """
            raise NormalizerException(Core.dedent(reason), task)

    # Statistics

    def _require_fit(self, task: Optional[str] = None):
        if self._feature_stats is None:
            raise NormalizerException("The normalizer must be fit before it can be used.", task)

    def _stats(self, direction: str, index: int, task: Optional[str] = None) -> _SlotStats:
        self._require_fit(task)
        if direction == "label":
            if self._label_stats is None:
                raise NormalizerException("The normalizer was not fit on labels.", task)
            group = self._label_stats
        else:
            group = self._feature_stats
        if index < 0 or index >= len(group):
            raise Core.IndexOutOfRange(direction, index, len(group), task)
        stats = group[index]
        if stats.min is None:
            reason = f"""\
            The {direction} at position {index} was absent in everything
            the normalizer was fit on, so it has no statistics.
            """
            raise NormalizerException(Core.dedent(reason), task)
        return stats

    def get_feature_min(self, index: int) -> torch.Tensor:
        return self._stats("feature", index).min.flatten()

    def get_feature_max(self, index: int) -> torch.Tensor:
        return self._stats("feature", index).max.flatten()

    def get_label_min(self, index: int) -> torch.Tensor:
        return self._stats("label", index).min.flatten()

    def get_label_max(self, index: int) -> torch.Tensor:
        return self._stats("label", index).max.flatten()

    # Scaling

    def _scale(self, tensor: torch.Tensor, stats: _SlotStats, revert: bool, task: Optional[str]) -> torch.Tensor:
        if not torch.is_floating_point(tensor):
            reason = f"""\
            Only floating point data can be normalized in place. Got
            a tensor of dtype {tensor.dtype}.
            """
            raise NormalizerException(Core.dedent(reason), task)
        shape = _stat_shape(tensor)
        if stats.min.numel() != (1 if tensor.dim() == 1 else tensor.shape[1]):
            reason = f"""\
            The normalizer was fit on {stats.min.numel()} channels, but got
            data of shape {Core.format_shape(tensor.shape)}.
            """
            raise NormalizerException(Core.dedent(reason), task)
        # Channels masked out everywhere have inf / -inf statistics, and are left at min 0, range 1
        seen = torch.isfinite(stats.min) & torch.isfinite(stats.max)
        low = torch.where(seen, stats.min, torch.zeros_like(stats.min))
        data_range = torch.where(seen, stats.max - stats.min, torch.ones_like(stats.min))
        data_range = torch.where(data_range == 0, torch.ones_like(data_range), data_range)
        low = low.reshape(shape).to(tensor.dtype)
        data_range = data_range.reshape(shape).to(tensor.dtype)
        target_range = self.max_range - self.min_range

        if revert:
            tensor.sub_(self.min_range).div_(target_range).mul_(data_range).add_(low)
        else:
            tensor.sub_(low).div_(data_range).mul_(target_range).add_(self.min_range)
        return tensor

    def _apply(self, example: Example, revert: bool, task: Optional[str]):
        self._require_fit(task)
        labels = example.num_label_slots if self._label_stats is None else len(self._label_stats)
        self._check_slot_counts(example, len(self._feature_stats), labels, task)
        for index in range(example.num_feature_slots):
            tensor = example.get_feature(index)
            if tensor is not None:
                self._scale(tensor, self._stats("feature", index, task), revert, task)
        if self._label_stats is None:
            return
        for index in range(example.num_label_slots):
            tensor = example.get_label(index)
            if tensor is not None:
                self._scale(tensor, self._stats("label", index, task), revert, task)

    def transform(self, example: Example, task: Optional[str] = None) -> Example:
        """Normalizes an example in place. Returns it for convenience."""
        self._apply(example, False, task)
        return example

    def revert(self, example: Example, task: Optional[str] = None) -> Example:
        """Undoes transform, in place. Returns the example for convenience."""
        self._apply(example, True, task)
        return example

    def revert_features(self, tensor: torch.Tensor, index: int, task: Optional[str] = None) -> torch.Tensor:
        return self._scale(tensor, self._stats("feature", index, task), True, task)

    def revert_labels(self, tensor: torch.Tensor, index: int, task: Optional[str] = None) -> torch.Tensor:
        return self._scale(tensor, self._stats("label", index, task), True, task)
