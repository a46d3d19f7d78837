"""Data structures for NetSDR messages, sample blocks and receiver settings."""

from dataclasses import dataclass
from enum import IntEnum

import numpy as np

from .common import (
    DEFAULT_RESPONSE_TIMEOUT,
    DEFAULT_SAMPLE_BITS,
    DEFAULT_SAMPLE_RATE,
    NETSDR_TCP_PORT,
    NETSDR_UDP_PORT,
)


class MsgType(IntEnum):
    """3-bit message type carried in the top bits of the frame header."""
    SET_CONTROL_ITEM     = 0
    CURRENT_CONTROL_ITEM = 1
    CONTROL_ITEM_RANGE   = 2
    ACK                  = 3
    DATA_ITEM_0          = 4
    DATA_ITEM_1          = 5
    DATA_ITEM_2          = 6
    DATA_ITEM_3          = 7

    @property
    def is_data_item(self) -> bool:
        return self >= MsgType.DATA_ITEM_0


class ControlItemCode(IntEnum):
    NONE                       = 0x0000
    RECEIVER_STATE             = 0x0018
    RECEIVER_FREQUENCY         = 0x0020
    RF_FILTER                  = 0x0044
    AD_MODES                   = 0x008A
    IQ_OUTPUT_DATA_SAMPLE_RATE = 0x00B8


class NetSdrMessage:
    """Common view of a decoded frame, whichever family it belongs to."""

    def as_tuple(self):
        return (self.type, self.item_code, self.sequence_number, self.body)


@dataclass(frozen=True)
class ControlItem(NetSdrMessage):
    """Decoded control-item frame (set/get/range/ack)."""
    type:       MsgType
    item_code:  ControlItemCode
    parameters: bytes = b""

    sequence_number = 0

    @property
    def body(self) -> bytes:
        return self.parameters


@dataclass(frozen=True)
class DataItem(NetSdrMessage):
    """Decoded data-item frame: stream sequence counter plus raw sample bytes."""
    type:            MsgType
    sequence_number: int        # unsigned 16-bit, wraps at 65536
    payload:         bytes = b""

    item_code = ControlItemCode.NONE

    @property
    def body(self) -> bytes:
        return self.payload


@dataclass
class SampleBlock:
    """Samples extracted from one data-item datagram."""
    sequence_number: int
    samples:         np.ndarray  # int32


@dataclass
class ReceiverConfig:
    host:             str = "127.0.0.1"
    tcp_port:         int = NETSDR_TCP_PORT
    udp_port:         int = NETSDR_UDP_PORT
    sample_rate:      int = DEFAULT_SAMPLE_RATE
    sample_bits:      int = DEFAULT_SAMPLE_BITS
    response_timeout: float = DEFAULT_RESPONSE_TIMEOUT
    data_queue_size:  int = 500
