"""NetSDR frame codec.

Every frame, on either channel, starts with a little-endian 16-bit header:

    bits 15-13: message type (MsgType)
    bits 12-0:  total frame length in bytes, header included

Control-item frames follow the header with a 16-bit item code and opaque
parameters. Data-item frames follow it with a 16-bit sequence number and the
raw packed sample bytes.
"""

import struct
from typing import Optional, Union

from .common import (
    HEADER_LENGTH,
    ITEM_CODE_LENGTH,
    MAX_DATA_ITEM_LENGTH,
    MAX_MESSAGE_LENGTH,
    SEQUENCE_LENGTH,
    _hex,
    log,
)
from .exceptions import FramingError, LengthExceeded, UnknownItemCode
from .models import ControlItem, ControlItemCode, DataItem, MsgType

Message = Union[ControlItem, DataItem]

_KNOWN_ITEM_CODES = frozenset(int(code) for code in ControlItemCode)


def pack_header(msg_type: MsgType, length: int) -> bytes:
    """Build the 2-byte header for a frame of ``length`` bytes (header included)."""
    msg_type = MsgType(msg_type)
    if msg_type.is_data_item and length == MAX_DATA_ITEM_LENGTH:
        length = 0
    elif length > MAX_MESSAGE_LENGTH:
        raise LengthExceeded(
            f"frame length {length} exceeds maximum of {MAX_MESSAGE_LENGTH} bytes"
        )
    return struct.pack("<H", (int(msg_type) << 13) | length)


def unpack_header(data: bytes) -> tuple[MsgType, int]:
    """Return (type, total length) from the first two bytes of ``data``."""
    if len(data) < HEADER_LENGTH:
        raise FramingError(f"need {HEADER_LENGTH} header bytes, got {len(data)}")
    word = struct.unpack_from("<H", data, 0)[0]
    msg_type = MsgType(word >> 13)
    length = word - (int(msg_type) << 13)
    if msg_type.is_data_item and length == 0:
        length = MAX_DATA_ITEM_LENGTH
    return msg_type, length


def encode_control_item(msg_type: MsgType, item_code: ControlItemCode,
                        parameters: bytes = b"") -> bytes:
    msg_type = MsgType(msg_type)
    if msg_type.is_data_item:
        raise ValueError(f"{msg_type.name} is not a control-item message type")
    parameters = bytes(parameters)
    length = HEADER_LENGTH + ITEM_CODE_LENGTH + len(parameters)
    if length > MAX_MESSAGE_LENGTH:
        raise LengthExceeded(
            f"control item frame of {length} bytes exceeds maximum of {MAX_MESSAGE_LENGTH}"
        )
    return pack_header(msg_type, length) + struct.pack("<H", int(item_code)) + parameters


def encode_data_item(msg_type: MsgType, payload: bytes) -> bytes:
    """
    Frame a data item. ``payload`` is written verbatim, so callers streaming
    samples put the 2-byte little-endian sequence number first.
    """
    msg_type = MsgType(msg_type)
    if not msg_type.is_data_item:
        raise ValueError(f"{msg_type.name} is not a data-item message type")
    payload = bytes(payload)
    length = HEADER_LENGTH + len(payload)
    if length > MAX_MESSAGE_LENGTH and length != MAX_DATA_ITEM_LENGTH:
        raise LengthExceeded(
            f"data item frame of {length} bytes exceeds maximum of {MAX_MESSAGE_LENGTH}"
        )
    return pack_header(msg_type, length) + payload


def parse_message(data: bytes) -> Message:
    """
    Validate and split a complete frame.
    Raises FramingError or UnknownItemCode for anything the receiver would reject.
    """
    data = bytes(data)
    msg_type, length = unpack_header(data)
    if length != len(data):
        raise FramingError(f"header declares {length} bytes, frame has {len(data)}")

    offset = HEADER_LENGTH
    if not msg_type.is_data_item:
        if len(data) < offset + ITEM_CODE_LENGTH:
            raise FramingError(f"control item frame too short: {len(data)} bytes")
        code = struct.unpack_from("<H", data, offset)[0]
        if code not in _KNOWN_ITEM_CODES:
            raise UnknownItemCode(code)
        offset += ITEM_CODE_LENGTH
        return ControlItem(msg_type, ControlItemCode(code), data[offset:])

    if len(data) < offset + SEQUENCE_LENGTH:
        raise FramingError(f"data item frame too short: {len(data)} bytes")
    sequence = struct.unpack_from("<H", data, offset)[0]
    offset += SEQUENCE_LENGTH
    return DataItem(msg_type, sequence, data[offset:])


def decode_message(data: bytes) -> Optional[Message]:
    """Parse a frame, returning None instead of raising when it is malformed."""
    try:
        return parse_message(data)
    except (FramingError, UnknownItemCode) as e:
        log.debug(f"Dropping invalid frame [{_hex(bytes(data))}]: {e}")
        return None


def is_valid_message(data: bytes) -> bool:
    return decode_message(data) is not None
