"""

Small string helpers used when building
error messages.

"""
import textwrap
from typing import Sequence


def dedent(string: str) -> str:
    """
    Takes and eliminates common whitespace among the beginning
    of each line. Required to prevent error messages from
    looking weird, as they are usually written as indented
    triple quoted f-strings.

    :param string: The string to dedent
    :return: The dedented string
    """
    return textwrap.dedent(string)


def format_shape(shape: Sequence[int]) -> str:
    """
    Renders a shape as a list, for instance [3, 4, 5],
    regardless of whether it arrived as a tuple, a list,
    or a torch.Size
    """
    return "[" + ", ".join(str(int(dim)) for dim in shape) + "]"
