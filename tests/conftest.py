"""
Pytest configuration for netsdrclient tests.

Provides in-memory stand-ins for the TCP control channel, the UDP data
channel and the sample sink so the controller can be driven without a radio.
"""
import sys
from pathlib import Path

import pytest

# Ensure netsdrclient package is importable
sys.path.insert(0, str(Path(__file__).parent.parent))

from netsdrclient.client import NetSdrClient
from netsdrclient.exceptions import NotConnected
from netsdrclient.models import ReceiverConfig


class FakeTCPClient:
    """Records calls; by default echoes every sent frame back as the reply."""

    def __init__(self, echo=True, fail_connect=None, fail_send=None):
        self.echo = echo
        self.fail_connect = fail_connect
        self.fail_send = fail_send
        self.connected = False
        self.connect_calls = 0
        self.disconnect_calls = 0
        self.sent = []
        self._cb = None

    def set_message_callback(self, cb):
        self._cb = cb

    def connect(self):
        self.connect_calls += 1
        if self.fail_connect:
            raise self.fail_connect
        self.connected = True

    def disconnect(self):
        self.disconnect_calls += 1
        self.connected = False

    def send_message(self, data):
        if not self.connected:
            raise NotConnected("fake channel closed")
        if self.fail_send:
            raise self.fail_send
        self.sent.append(bytes(data))
        if self.echo and self._cb:
            self._cb(bytes(data))

    def emit(self, data):
        self._cb(bytes(data))


class FakeUDPReceiver:

    def __init__(self, listen_port=60000):
        self.listen_port = listen_port
        self.start_calls = 0
        self.stop_calls = 0
        self.listening = False
        self._cb = None

    def set_datagram_callback(self, cb):
        self._cb = cb

    def start_listening(self):
        self.start_calls += 1
        self.listening = True

    def stop_listening(self):
        self.stop_calls += 1
        self.listening = False

    def emit(self, data):
        self._cb(bytes(data))


class RecordingSink:

    def __init__(self):
        self.blocks = []

    def write(self, sequence_number, samples):
        self.blocks.append((sequence_number, [int(s) for s in samples]))


@pytest.fixture
def tcp():
    return FakeTCPClient()


@pytest.fixture
def udp():
    return FakeUDPReceiver()


@pytest.fixture
def sink():
    return RecordingSink()


@pytest.fixture
def client(tcp, udp, sink):
    config = ReceiverConfig(response_timeout=0.5)
    c = NetSdrClient(tcp, udp, config=config, sink=sink)
    yield c
    c.disconnect()
