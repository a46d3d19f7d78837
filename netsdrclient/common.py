"""Shared constants and logging for the NetSDR client."""

import logging

logging.basicConfig(level=logging.INFO, format='%(asctime)s %(levelname)s %(message)s')
log = logging.getLogger(__name__)

NETSDR_TCP_PORT = 50000         # TCP command/control port

NETSDR_UDP_PORT = 60000         # UDP port the receiver streams I/Q datagrams to

HEADER_LENGTH         = 2       # 16-bit header: 3-bit type + 13-bit length
ITEM_CODE_LENGTH      = 2
SEQUENCE_LENGTH       = 2

MAX_MESSAGE_LENGTH    = 0x1FFF  # 8191, largest value of the 13-bit length field
MAX_DATA_ITEM_LENGTH  = 8194    # sent with a length field of 0

SAMPLE_WIDTHS = (8, 16, 24, 32)

DEFAULT_SAMPLE_RATE   = 100000
DEFAULT_SAMPLE_BITS   = 16
DEFAULT_RESPONSE_TIMEOUT = 2.0  # seconds to wait for a control-channel reply


def _hex(data: bytes, limit: int = 32) -> str:
    """Short hex dump for debug logging."""
    if len(data) <= limit:
        return data.hex(" ")
    return f"{data[:limit].hex(' ')} ... ({len(data)} bytes)"
