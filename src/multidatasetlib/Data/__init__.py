"""
The dataset containers and the logic which merges,
splits, serializes and normalizes them.
"""

from .slot import Slot, AbsentSlotError # noqa
from .example import Example # noqa
from .merge import merge # noqa
from .split import split, split_list, ExampleSplit # noqa
from .codec import save, load, to_bytes, from_bytes, save_path, load_path # noqa
from .normalize import MinMaxNormalizer, NormalizerException # noqa
