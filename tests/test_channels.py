"""
Tests for the TCP control channel and UDP data channel adapters, using real
sockets on localhost.
"""
import socket
import threading

import pytest

from netsdrclient.exceptions import NotConnected
from netsdrclient.messages import encode_control_item, encode_data_item
from netsdrclient.models import ControlItemCode, MsgType
from netsdrclient.tcp_client import NetSdrTCPClient
from netsdrclient.udp_client import NetSdrUDPReceiver


class Collector:

    def __init__(self, expected):
        self.expected = expected
        self.items = []
        self.done = threading.Event()

    def __call__(self, data):
        self.items.append(bytes(data))
        if len(self.items) >= self.expected:
            self.done.set()


@pytest.fixture
def tcp_server():
    server = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
    server.bind(("127.0.0.1", 0))
    server.listen(1)
    yield server
    server.close()


class TestTCPClient:

    def test_initially_disconnected(self):
        client = NetSdrTCPClient("localhost", 8080)
        assert client.connected is False

    def test_disconnect_when_not_connected(self):
        client = NetSdrTCPClient("localhost", 8080)
        client.disconnect()
        client.disconnect()

    def test_send_when_not_connected_raises(self):
        client = NetSdrTCPClient("localhost", 8080)
        with pytest.raises(NotConnected):
            client.send_message(b"\x01\x02\x03")

    def test_split_frames_handles_partial_and_coalesced(self):
        client = NetSdrTCPClient("localhost")
        collector = Collector(2)
        client.set_message_callback(collector)
        a = encode_control_item(MsgType.ACK, ControlItemCode.RECEIVER_STATE, b"\x01")
        b = encode_control_item(MsgType.CURRENT_CONTROL_ITEM, ControlItemCode.RF_FILTER, b"\x00\x00")

        rest = client._split_frames(a + b[:3])
        assert collector.items == [a]
        assert rest == b[:3]

        rest = client._split_frames(rest + b[3:])
        assert collector.items == [a, b]
        assert rest == b""

    def test_round_trip_over_socket(self, tcp_server):
        host, port = tcp_server.getsockname()
        client = NetSdrTCPClient(host, port)
        collector = Collector(2)
        client.set_message_callback(collector)

        client.connect()
        conn, _ = tcp_server.accept()
        try:
            assert client.connected is True
            frame = encode_control_item(MsgType.SET_CONTROL_ITEM, ControlItemCode.RECEIVER_FREQUENCY,
                                        bytes([0, 1, 2, 3, 4, 5]))
            client.send_message(frame)

            received = b""
            while len(received) < len(frame):
                received += conn.recv(1024)
            assert received == frame

            # Two replies in one segment, the second split across two writes
            reply = encode_control_item(MsgType.ACK, ControlItemCode.RECEIVER_FREQUENCY, b"")
            conn.sendall(reply + frame[:5])
            conn.sendall(frame[5:])

            assert collector.done.wait(timeout=2.0)
            assert collector.items == [reply, frame]
        finally:
            client.disconnect()
            conn.close()
        assert client.connected is False

    def test_connect_refused_raises(self):
        spare = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
        spare.bind(("127.0.0.1", 0))
        port = spare.getsockname()[1]
        spare.close()

        client = NetSdrTCPClient("127.0.0.1", port)
        with pytest.raises(OSError):
            client.connect()
        assert client.connected is False


class TestUDPReceiver:

    def test_stop_when_not_started(self):
        receiver = NetSdrUDPReceiver(5001)
        receiver.stop_listening()
        assert receiver.listening is False

    def test_equal_by_port(self):
        assert NetSdrUDPReceiver(5007) == NetSdrUDPReceiver(5007)
        assert NetSdrUDPReceiver(5008) != NetSdrUDPReceiver(5009)

    def test_hash_by_port(self):
        assert hash(NetSdrUDPReceiver(5004)) == hash(NetSdrUDPReceiver(5004))
        assert len({NetSdrUDPReceiver(5005), NetSdrUDPReceiver(5005), NetSdrUDPReceiver(5006)}) == 2

    def test_not_equal_to_other_types(self):
        receiver = NetSdrUDPReceiver(5010)
        assert receiver != "not a receiver"
        assert receiver != None  # noqa: E711
        assert receiver == receiver

    def test_receives_datagrams(self):
        receiver = NetSdrUDPReceiver(0, bind_address="127.0.0.1")
        collector = Collector(2)
        receiver.set_datagram_callback(collector)
        receiver.start_listening()
        sender = socket.socket(socket.AF_INET, socket.SOCK_DGRAM)
        try:
            port = receiver.bound_port
            first = encode_data_item(MsgType.DATA_ITEM_0, b"\x00\x00\x01\x00")
            second = encode_data_item(MsgType.DATA_ITEM_0, b"\x01\x00\x02\x00")
            sender.sendto(first, ("127.0.0.1", port))
            sender.sendto(second, ("127.0.0.1", port))

            assert collector.done.wait(timeout=2.0)
            assert collector.items == [first, second]
            assert receiver.packet_count == 2
        finally:
            sender.close()
            receiver.stop_listening()
        assert receiver.listening is False
        receiver.stop_listening()

    def test_restart(self):
        receiver = NetSdrUDPReceiver(0, bind_address="127.0.0.1")
        receiver.start_listening()
        receiver.stop_listening()
        receiver.start_listening()
        assert receiver.listening is True
        receiver.stop_listening()
