"""High-level NetSDR receiver control and I/Q streaming."""

import queue
import threading
import time
from typing import Optional

from .common import _hex, log
from .exceptions import NotConnected, UnsupportedSampleWidth
from .messages import Message, decode_message, encode_control_item
from .models import ControlItemCode, MsgType, ReceiverConfig
from .samples import _byte_width, unpack_samples
from .sink import SampleQueueSink, SampleSink
from .tcp_client import NetSdrTCPClient
from .udp_client import NetSdrUDPReceiver

# Receiver state parameters: [data mode, run/stop, capture mode, block count]
IQ_DATA_MODE     = 0x80             # complex I/Q
IQ_RUN           = 0x02
CAPTURE_FIFO     = 0x01             # FIFO capture, N blocks
CAPTURE_24_BIT   = 0x80             # capture-mode bit 7 selects 24-bit samples over 16-bit
STREAM_SAMPLE_BITS = (16, 24)

IQ_STOP_PARAMS  = bytes([0x00, 0x01, 0x00, 0x00])

RF_FILTER_AUTO  = (0).to_bytes(2, "little")
AD_MODES_DEFAULT = bytes([0x00, 0x03])              # dither + gain

_WAKE = object()    # unblocks a pending response wait on disconnect
_STOP = object()    # ends the dispatcher thread


def _five_byte_le(value: int) -> bytes:
    """Low five bytes of a little-endian 64-bit integer, as the receiver expects."""
    return int(value).to_bytes(8, "little", signed=True)[:5]


def iq_start_params(sample_bits: int) -> bytes:
    """Receiver-state parameters that start a FIFO I/Q capture at ``sample_bits``."""
    if sample_bits not in STREAM_SAMPLE_BITS:
        raise UnsupportedSampleWidth(sample_bits, STREAM_SAMPLE_BITS)
    capture = CAPTURE_FIFO | (CAPTURE_24_BIT if sample_bits == 24 else 0)
    return bytes([IQ_DATA_MODE, IQ_RUN, capture, 0x01])


class NetSdrClient:
    """
    Connects to a NetSDR receiver, configures it, and streams I/Q samples.

    Inbound traffic only ever lands on queues: control-channel frames on a
    response queue read by the calling operation, data datagrams on a bounded
    queue drained by one dispatcher thread that feeds the sample sink.
    ``connected`` and ``iq_started`` are written only by the public operations,
    all serialised by one lock.
    """

    def __init__(self, tcp: Optional[NetSdrTCPClient] = None,
                 udp: Optional[NetSdrUDPReceiver] = None,
                 config: Optional[ReceiverConfig] = None,
                 sink: Optional[SampleSink] = None):
        self.config = config or ReceiverConfig()
        _byte_width(self.config.sample_bits)
        iq_start_params(self.config.sample_bits)

        self._tcp = tcp if tcp is not None else NetSdrTCPClient(self.config.host, self.config.tcp_port)
        self._udp = udp if udp is not None else NetSdrUDPReceiver(self.config.udp_port)
        self.sink = sink if sink is not None else SampleQueueSink()

        self._lock        = threading.RLock()
        self._connected   = False
        self._iq_started  = False
        self._responses   = queue.Queue()
        self._data_q      = queue.Queue(maxsize=self.config.data_queue_size)
        self._dispatcher  = None
        self._last_seq    = None

        self.block_count   = 0
        self.drop_count    = 0
        self.invalid_count = 0
        self.missed_count  = 0

        self._tcp.set_message_callback(self._on_control_message)
        self._udp.set_datagram_callback(self._on_datagram)

    @property
    def connected(self) -> bool:
        return self._connected and self._tcp.connected

    @property
    def iq_started(self) -> bool:
        return self._iq_started and self.connected

    # ── Operations ───────────────────────────────────────────────────────────

    def connect(self) -> bool:
        """
        Open the control channel and push the default receiver configuration.
        Does nothing when already connected. Returns True when connected.
        """
        with self._lock:
            if self.connected:
                log.debug("Already connected, skipping initialisation")
                return True

            if self._iq_started:
                # Peer dropped the link mid-stream
                self._udp.stop_listening()
                self._iq_started = False

            try:
                self._tcp.connect()
            except OSError as e:
                log.error(f"Could not connect to receiver: {e}")
                return False
            if not self._tcp.connected:
                log.error("Control channel did not report a connection")
                return False

            self._connected = True
            self._iq_started = False
            self._start_dispatcher()

            init_msgs = [
                (ControlItemCode.IQ_OUTPUT_DATA_SAMPLE_RATE, _five_byte_le(self.config.sample_rate)),
                (ControlItemCode.RF_FILTER, RF_FILTER_AUTO),
                (ControlItemCode.AD_MODES, AD_MODES_DEFAULT),
            ]
            for code, params in init_msgs:
                frame = encode_control_item(MsgType.SET_CONTROL_ITEM, code, params)
                try:
                    self._send_request(frame)
                except OSError as e:
                    log.error(f"Failed to send {code.name} during initialisation: {e}")

            log.info(f"Connected, sample rate {self.config.sample_rate} Hz")
            return True

    def disconnect(self):
        """Close both channels. Safe to call at any time, any number of times."""
        # Closing first makes an in-flight request fail fast instead of
        # holding the lock until its response timeout
        self._tcp.disconnect()
        self._responses.put(_WAKE)

        with self._lock:
            self._udp.stop_listening()
            self._tcp.disconnect()
            self._stop_dispatcher()
            self._connected = False
            self._iq_started = False
        log.info("Disconnected")

    def start_iq(self) -> bool:
        with self._lock:
            if not self.connected:
                log.warning("No active connection, cannot start I/Q stream")
                return False

            frame = encode_control_item(MsgType.SET_CONTROL_ITEM,
                                        ControlItemCode.RECEIVER_STATE,
                                        iq_start_params(self.config.sample_bits))
            try:
                self._send_request(frame)
                if not self._tcp.connected:
                    log.warning("Control channel closed while starting I/Q stream")
                    return False
                self._udp.start_listening()
            except OSError as e:
                log.error(f"Failed to start I/Q stream: {e}")
                return False

            self._iq_started = True
            log.info("I/Q stream started")
            return True

    def stop_iq(self) -> bool:
        with self._lock:
            if not self.connected:
                log.warning("No active connection, nothing to stop")
                return False

            frame = encode_control_item(MsgType.SET_CONTROL_ITEM,
                                        ControlItemCode.RECEIVER_STATE, IQ_STOP_PARAMS)
            sent = True
            try:
                self._send_request(frame)
            except OSError as e:
                log.error(f"Failed to send I/Q stop command: {e}")
                sent = False
            finally:
                self._udp.stop_listening()
                self._iq_started = False
            log.info("I/Q stream stopped")
            return sent

    def change_frequency(self, frequency_hz: int, channel: int = 0) -> Optional[Message]:
        """
        Tune ``channel`` to ``frequency_hz``. Raises NotConnected when the
        control channel is down. Returns the receiver's decoded reply, or None.
        """
        if not 0 <= channel <= 0xFF:
            raise ValueError(f"channel must fit in one byte, got {channel}")
        if not 0 <= frequency_hz < (1 << 40):
            raise ValueError(f"frequency out of range: {frequency_hz}")

        with self._lock:
            if not self.connected:
                raise NotConnected("cannot change frequency while disconnected")

            params = bytes([channel]) + _five_byte_le(frequency_hz)
            frame = encode_control_item(MsgType.SET_CONTROL_ITEM,
                                        ControlItemCode.RECEIVER_FREQUENCY, params)
            try:
                response = self._send_request(frame)
            except OSError as e:
                log.error(f"Failed to change frequency: {e}")
                return None
            log.info(f"Channel {channel} tuned to {frequency_hz / 1e6:.6f} MHz")
            return response

    def flush(self):
        """Block until every queued datagram has reached the sink."""
        if self._dispatcher is not None:
            self._data_q.join()

    # ── Control channel ──────────────────────────────────────────────────────

    def _on_control_message(self, data: bytes):
        self._responses.put(data)

    def _drain_responses(self):
        while True:
            try:
                data = self._responses.get_nowait()
            except queue.Empty:
                return
            if data is not _WAKE:
                log.debug(f"Unsolicited control frame: {_hex(data)}")

    def _send_request(self, frame: bytes) -> Optional[Message]:
        """Send a frame and wait for the next control-channel reply."""
        self._drain_responses()
        self._tcp.send_message(frame)

        timeout = self.config.response_timeout
        try:
            data = self._responses.get(timeout=timeout)
        except queue.Empty:
            log.warning(f"No response within {timeout}s to [{_hex(frame)}]")
            return None
        if data is _WAKE:
            return None

        response = decode_message(data)
        if response is None:
            log.warning(f"Invalid response frame: {_hex(data)}")
            return None
        log.debug(f"Response: {response.type.name} {response.item_code.name} [{_hex(response.body)}]")
        return response

    # ── Data channel ─────────────────────────────────────────────────────────

    def _on_datagram(self, data: bytes):
        if self._dispatcher is None:
            return
        try:
            self._data_q.put_nowait(data)
        except queue.Full:
            self.drop_count += 1
            log.warning(f"Data queue full, dropping datagram (total drops: {self.drop_count})")

    def _start_dispatcher(self):
        if self._dispatcher is not None:
            return
        self._last_seq = None
        self._dispatcher = threading.Thread(target=self._dispatch_loop, daemon=True)
        self._dispatcher.start()

    def _stop_dispatcher(self):
        thread, self._dispatcher = self._dispatcher, None
        if thread is None:
            return
        self._data_q.put(_STOP)
        thread.join(timeout=2.0)
        # Anything that arrived behind the stop marker is discarded
        while True:
            try:
                self._data_q.get_nowait()
            except queue.Empty:
                break
            self._data_q.task_done()

    def _dispatch_loop(self):
        while True:
            item = self._data_q.get()
            try:
                if item is _STOP:
                    return
                self._dispatch_datagram(item)
            except Exception as e:
                log.error(f"Datagram dispatch failed: {e}", exc_info=True)
            finally:
                self._data_q.task_done()

    def _dispatch_datagram(self, data: bytes):
        msg = decode_message(data)
        if msg is None or not msg.type.is_data_item:
            self.invalid_count += 1
            return

        seq = msg.sequence_number
        if self._last_seq is not None:
            expected = (self._last_seq + 1) & 0xFFFF
            if seq != expected:
                missed = (seq - expected) & 0xFFFF
                self.missed_count += missed
                log.warning(f"Sequence gap: expected {expected}, got {seq} "
                            f"({missed} datagrams missed)")
        self._last_seq = seq

        samples = unpack_samples(self.config.sample_bits, msg.payload)
        self.block_count += 1
        self.sink.write(seq, samples)


if __name__ == "__main__":
    import argparse

    from .common import NETSDR_TCP_PORT, NETSDR_UDP_PORT
    from .sink import SampleFileSink

    parser = argparse.ArgumentParser(description="NetSDR I/Q capture")
    parser.add_argument("--host", default="127.0.0.1", help="Receiver IP")
    parser.add_argument("--tcp-port", default=NETSDR_TCP_PORT, type=int, help="Control port")
    parser.add_argument("--udp-port", default=NETSDR_UDP_PORT, type=int, help="I/Q data port")
    parser.add_argument("--freq", default=14.0, type=float, help="Center freq MHz")
    parser.add_argument("--channel", default=0, type=int, help="Receiver channel")
    parser.add_argument("--rate", default=100000, type=int, help="I/Q sample rate Hz")
    parser.add_argument("--bits", default=16, type=int, help="Sample width in bits, 16 or 24")
    parser.add_argument("--secs", default=5, type=int, help="Seconds to run")
    parser.add_argument("--out", default="samples.bin", help="Output file")
    args = parser.parse_args()

    config = ReceiverConfig(
        host=args.host,
        tcp_port=args.tcp_port,
        udp_port=args.udp_port,
        sample_rate=args.rate,
        sample_bits=args.bits,
    )

    with SampleFileSink(args.out) as sink:
        client = NetSdrClient(config=config, sink=sink)
        try:
            if not client.connect():
                raise SystemExit(1)
            client.change_frequency(int(args.freq * 1e6), args.channel)
            client.start_iq()
            time.sleep(args.secs)
            client.stop_iq()
            client.flush()
            log.info(f"Done. {client.block_count} datagrams, {sink.sample_count} samples, "
                     f"{client.missed_count} missed, {client.drop_count} drops")
        except KeyboardInterrupt:
            log.info("Interrupted")
        finally:
            client.disconnect()
