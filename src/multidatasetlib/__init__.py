"""
A library for multi input, multi output tensor datasets:
merging examples into padded batches, splitting them back
apart, and saving them.
"""

__version__ = "1.0.0"

from . import Core # noqa
from . import Data # noqa
