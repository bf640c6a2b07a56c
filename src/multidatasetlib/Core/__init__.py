"""
Core utilities shared across the library: errors,
shape handling, the tensor primitive contract, padding,
configuration, and logging.
"""

from . import errors # noqa
from . import string_util # noqa
from . import tensor_ops # noqa
from .errors import (ValidationError,
                     StandardizationError,
                     NullSlotError,
                     ShapeMismatchError,
                     IndexOutOfRange,
                     CodecError,
                     ConfigurationError) # noqa
from .string_util import dedent, format_shape # noqa
from .shapes import Shape, standardize_shape # noqa
from .pad import PaddingException, pad_trailing, pad_and_concat # noqa
from .config import DataConfig, get_config, set_config # noqa
from .logging_config import get_logger # noqa
