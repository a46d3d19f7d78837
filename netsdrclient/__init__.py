"""NetSDR receiver client package.

Binary frame codec, sample extraction, TCP/UDP channels and the receiver
controller that ties them together.
"""

from .common import (
	NETSDR_TCP_PORT,
	NETSDR_UDP_PORT,
	MAX_MESSAGE_LENGTH,
	MAX_DATA_ITEM_LENGTH,
	SAMPLE_WIDTHS,
)
from .exceptions import (
	NetSdrError,
	FramingError,
	UnknownItemCode,
	LengthExceeded,
	UnsupportedSampleWidth,
	NotConnected,
)
from .models import MsgType, ControlItemCode, NetSdrMessage, ControlItem, DataItem, SampleBlock, ReceiverConfig
from .messages import (
	pack_header,
	unpack_header,
	encode_control_item,
	encode_data_item,
	parse_message,
	decode_message,
	is_valid_message,
)
from .samples import iter_samples, unpack_samples
from .sink import SampleFileSink, SampleQueueSink
from .tcp_client import NetSdrTCPClient
from .udp_client import NetSdrUDPReceiver
from .client import NetSdrClient

__all__ = [
	"NETSDR_TCP_PORT",
	"NETSDR_UDP_PORT",
	"MAX_MESSAGE_LENGTH",
	"MAX_DATA_ITEM_LENGTH",
	"SAMPLE_WIDTHS",
	"NetSdrError",
	"FramingError",
	"UnknownItemCode",
	"LengthExceeded",
	"UnsupportedSampleWidth",
	"NotConnected",
	"MsgType",
	"ControlItemCode",
	"NetSdrMessage",
	"ControlItem",
	"DataItem",
	"SampleBlock",
	"ReceiverConfig",
	"pack_header",
	"unpack_header",
	"encode_control_item",
	"encode_data_item",
	"parse_message",
	"decode_message",
	"is_valid_message",
	"iter_samples",
	"unpack_samples",
	"SampleFileSink",
	"SampleQueueSink",
	"NetSdrTCPClient",
	"NetSdrUDPReceiver",
	"NetSdrClient",
]
