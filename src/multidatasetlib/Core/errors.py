"""
The error classes shared across the library.

Every error carries a dedented, human readable reason
plus, optionally, the task that was being performed
when the problem was discovered.
"""

from typing import Optional


class ValidationError(Exception):
    """
    An error class for validation problems
    """
    def __init__(self,
                 type: str,
                 reason: str,
                 task: Optional[str] = None
                 ):

        self.reason = reason
        self.task = task
        msg = ""
        msg += "A %s error occurred \n" % type
        msg += "The error occurred because: \n\n %s\n" % reason
        if task is not None:
            msg += "This happened while doing: \n %s" % task
        super().__init__(msg)


class StandardizationError(ValidationError):
    """
    Called when something cannot be converted to a
    shape description for whatever reason
    """
    def __init__(self, reason: str, task: Optional[str] = None):
        type = "StandardizationError"
        super().__init__(type, reason, task)


class NullSlotError(ValidationError):
    """
    Raised when a feature or label slot is present in some
    of the examples being merged and absent in others.
    """
    def __init__(self,
                 direction: str,
                 index: int,
                 reason: str,
                 task: Optional[str] = None):
        type = "NullSlotError"
        self.direction = direction
        self.index = index
        reason = "null %s array at position %s encountered during merging. \n%s" % (direction, index, reason)
        super().__init__(type, reason, task)


class ShapeMismatchError(ValidationError):
    """
    Raised when tensors, or slot groups, cannot be lined up
    because their shapes or counts disagree.
    """
    def __init__(self, reason: str, task: Optional[str] = None):
        type = "ShapeMismatchError"
        super().__init__(type, reason, task)


class IndexOutOfRange(ValidationError, IndexError):
    """
    Raised by the slot accessors when asked for a
    slot which does not exist.
    """
    def __init__(self, direction: str, index: int, size: int, task: Optional[str] = None):
        type = "IndexOutOfRange"
        self.direction = direction
        self.index = index
        self.size = size
        reason = "Asked for %s slot %s, but only %s %s slots exist." % (direction, index, size, direction)
        super().__init__(type, reason, task)


class CodecError(ValidationError, IOError):
    """
    Raised when a serialized example is truncated
    or otherwise malformed.
    """
    def __init__(self, reason: str, task: Optional[str] = None):
        type = "CodecError"
        super().__init__(type, reason, task)


class ConfigurationError(ValidationError):
    """
    Raised when the environment provides a setting
    which cannot be understood.
    """
    def __init__(self, reason: str, task: Optional[str] = None):
        type = "ConfigurationError"
        super().__init__(type, reason, task)
