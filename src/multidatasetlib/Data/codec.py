"""

The serialization codec. Saves and restores a single example
as one binary record.

--- record layout ---

All integers are little endian.

    magic           4 bytes     b"MDSX"
    version         uint8       1

followed by four groups, in the order features, labels,
feature masks, label masks. Each group is

    present         uint8       0 or 1
    count           uint32      only if present

and then, per slot,

    slot flag       uint8       0 absent, 1 present
    dtype tag       uint8       only if present, see DTYPE_TAGS
    rank            uint8
    dims            rank x int64
    payload length  uint64
    payload         raw elements, row major, little endian

A data group is written as present whenever it has a slot. A mask group
is written as present only when at least one of its masks is present; on
load, an absent mask group becomes one absent mask per data slot.
"""

import io
import struct
from pathlib import Path
from typing import BinaryIO, Dict, List, Optional, Sequence, Tuple, Union

import numpy as np
import torch

from multidatasetlib import Core
from .example import Example
from .slot import Slot

logger = Core.get_logger(__name__)

MAGIC = b"MDSX"
VERSION = 1

_HEADER = struct.Struct("<4sB")
_FLAG = struct.Struct("<B")
_COUNT = struct.Struct("<I")
_TENSOR_HEADER = struct.Struct("<BB")
_DIM = struct.Struct("<q")
_PAYLOAD_LENGTH = struct.Struct("<Q")

# tag: (torch dtype, numpy dtype the bytes are stored as)
DTYPE_TAGS: Dict[int, Tuple[torch.dtype, str]] = {
    1: (torch.float64, "<f8"),
    2: (torch.float32, "<f4"),
    3: (torch.float16, "<f2"),
    4: (torch.bfloat16, "<i2"),
    5: (torch.int64, "<i8"),
    6: (torch.int32, "<i4"),
    7: (torch.int16, "<i2"),
    8: (torch.int8, "<i1"),
    9: (torch.uint8, "<u1"),
    10: (torch.bool, "|b1"),
}
_TAG_OF_DTYPE = {dtype: tag for tag, (dtype, _) in DTYPE_TAGS.items()}

PathLike = Union[str, Path]


# Writing

def _tensor_bytes(tensor: torch.Tensor, storage: str) -> bytes:
    tensor = tensor.detach().cpu().contiguous()
    if tensor.dtype == torch.bfloat16:
        tensor = tensor.view(torch.int16)
    array = tensor.numpy()
    return array.astype(np.dtype(storage), copy=False).tobytes(order="C")


def _write_tensor(stream: BinaryIO, tensor: torch.Tensor, task: Optional[str]):
    tag = _TAG_OF_DTYPE.get(tensor.dtype)
    if tag is None:
        reason = f"""\
        Tensors of dtype {tensor.dtype} cannot be serialized. Supported
        dtypes are {[str(dtype) for dtype, _ in DTYPE_TAGS.values()]}
        """
        raise Core.CodecError(Core.dedent(reason), task)
    if tensor.dim() > 255:
        raise Core.CodecError("Tensors of rank above 255 cannot be serialized", task)
    payload = _tensor_bytes(tensor, DTYPE_TAGS[tag][1])
    stream.write(_TENSOR_HEADER.pack(tag, tensor.dim()))
    for dim in tensor.shape:
        stream.write(_DIM.pack(dim))
    stream.write(_PAYLOAD_LENGTH.pack(len(payload)))
    stream.write(payload)


def _write_group(stream: BinaryIO, slots: Sequence[Slot], present: bool, task: Optional[str]):
    stream.write(_FLAG.pack(1 if present else 0))
    if not present:
        return
    stream.write(_COUNT.pack(len(slots)))
    for slot in slots:
        stream.write(_FLAG.pack(1 if slot.present else 0))
        if slot.present:
            _write_tensor(stream, slot.tensor, task)


def save(example: Example, stream: BinaryIO, task: Optional[str] = None):
    """
    Writes an example to a binary stream as one record.

    :param example: The example to save
    :param stream: A writable binary stream
    :param task: The task trace, for error messages
    """
    stream.write(_HEADER.pack(MAGIC, VERSION))
    _write_group(stream, example.feature_slots, example.num_feature_slots > 0, task)
    _write_group(stream, example.label_slots, example.num_label_slots > 0, task)
    _write_group(stream, example.feature_mask_slots,
                 any(slot.present for slot in example.feature_mask_slots), task)
    _write_group(stream, example.label_mask_slots,
                 any(slot.present for slot in example.label_mask_slots), task)
    logger.debug("example_saved", bytes=example.memory_footprint())


# Reading

def _read_exact(stream: BinaryIO, size: int, what: str, task: Optional[str]) -> bytes:
    data = stream.read(size)
    if data is None or len(data) != size:
        got = 0 if data is None else len(data)
        reason = f"""\
        The stream ended early while reading the {what}. Needed {size}
        bytes, but only {got} remained.
        """
        raise Core.CodecError(Core.dedent(reason), task)
    return data


def _read_struct(stream: BinaryIO, layout: struct.Struct, what: str, task: Optional[str]) -> tuple:
    return layout.unpack(_read_exact(stream, layout.size, what, task))


def _read_tensor(stream: BinaryIO, task: Optional[str]) -> torch.Tensor:
    tag, rank = _read_struct(stream, _TENSOR_HEADER, "tensor header", task)
    if tag not in DTYPE_TAGS:
        raise Core.CodecError("Unknown dtype tag %s in tensor header" % tag, task)
    dtype, storage = DTYPE_TAGS[tag]

    dims: List[int] = []
    for _ in range(rank):
        (dim,) = _read_struct(stream, _DIM, "tensor dimensions", task)
        if dim < 0:
            raise Core.CodecError("Negative dimension %s in tensor header" % dim, task)
        dims.append(dim)
    shape = Core.Shape(dims)

    (length,) = _read_struct(stream, _PAYLOAD_LENGTH, "payload length", task)
    expected = shape.numel * np.dtype(storage).itemsize
    if length != expected:
        reason = f"""\
        A tensor of shape {shape} and dtype {dtype} needs a payload of
        {expected} bytes, but the record declares {length}.
        """
        raise Core.CodecError(Core.dedent(reason), task)
    payload = _read_exact(stream, length, "tensor payload", task)

    native = np.dtype(storage).newbyteorder("=")
    if shape.numel == 0:
        array = np.zeros(tuple(shape), dtype=native)
    else:
        array = np.frombuffer(payload, dtype=np.dtype(storage)).reshape(tuple(shape))
        array = array.astype(native, copy=True)
    tensor = torch.from_numpy(array)
    if dtype == torch.bfloat16:
        tensor = tensor.view(torch.bfloat16)
    return tensor


def _read_group(stream: BinaryIO, what: str, task: Optional[str]) -> Optional[List[Slot]]:
    (present,) = _read_struct(stream, _FLAG, "%s presence flag" % what, task)
    if present not in (0, 1):
        raise Core.CodecError("Bad %s presence flag %s" % (what, present), task)
    if present == 0:
        return None
    (count,) = _read_struct(stream, _COUNT, "%s count" % what, task)
    slots: List[Slot] = []
    for _ in range(count):
        (flag,) = _read_struct(stream, _FLAG, "%s slot flag" % what, task)
        if flag == 0:
            slots.append(Slot.absent())
        elif flag == 1:
            slots.append(Slot.of(_read_tensor(stream, task)))
        else:
            raise Core.CodecError("Bad %s slot flag %s" % (what, flag), task)
    return slots


def _conform_masks(masks: Optional[List[Slot]], data: List[Slot], what: str, task: Optional[str]) -> List[Slot]:
    if masks is None:
        return [Slot.absent()] * len(data)
    if len(masks) != len(data):
        reason = f"""\
        The record holds {len(masks)} {what}s but {len(data)} slots
        for them to mask. These must be equal.
        """
        raise Core.CodecError(Core.dedent(reason), task)
    return masks


def load(stream: BinaryIO, task: Optional[str] = None) -> Example:
    """
    Reads one example record from a binary stream. The
    stream is left positioned just after the record.

    :param stream: A readable binary stream
    :param task: The task trace, for error messages
    :return: The restored example
    :raises CodecError: If the record is truncated or malformed.
    """
    magic, version = _read_struct(stream, _HEADER, "record header", task)
    if magic != MAGIC:
        raise Core.CodecError("Bad magic %r, expected %r" % (magic, MAGIC), task)
    if version != VERSION:
        raise Core.CodecError("Unsupported record version %s" % version, task)

    features = _read_group(stream, "feature", task) or []
    labels = _read_group(stream, "label", task) or []
    feature_masks = _conform_masks(_read_group(stream, "feature mask", task), features, "feature mask", task)
    label_masks = _conform_masks(_read_group(stream, "label mask", task), labels, "label mask", task)

    example = Example.from_slots(features, labels, feature_masks, label_masks)
    logger.debug("example_loaded", bytes=example.memory_footprint())
    return example


# Convenience

def to_bytes(example: Example, task: Optional[str] = None) -> bytes:
    buffer = io.BytesIO()
    save(example, buffer, task)
    return buffer.getvalue()


def from_bytes(data: bytes, task: Optional[str] = None) -> Example:
    """Loads exactly one record. Leftover bytes are an error."""
    buffer = io.BytesIO(data)
    example = load(buffer, task)
    leftover = len(data) - buffer.tell()
    if leftover != 0:
        raise Core.CodecError("%s unexpected bytes follow the record" % leftover, task)
    return example


def save_path(example: Example, path: PathLike, task: Optional[str] = None):
    with open(Path(path), "wb") as stream:
        save(example, stream, task)


def load_path(path: PathLike, task: Optional[str] = None) -> Example:
    with open(Path(path), "rb") as stream:
        return load(stream, task)
