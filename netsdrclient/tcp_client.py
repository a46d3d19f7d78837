"""NetSDR TCP command/control channel."""

import socket
import threading
from typing import Callable, Optional

from .common import HEADER_LENGTH, NETSDR_TCP_PORT, _hex, log
from .exceptions import FramingError, NotConnected
from .messages import unpack_header

class NetSdrTCPClient:
    """
    Manages the TCP control connection to the receiver.
    Sends framed messages and reassembles inbound frames from the byte stream,
    handing each complete frame to the registered message callback.
    """

    CONNECT_TIMEOUT: float = 5.0
    READ_CHUNK_SIZE: int = 4096

    def __init__(self, host: str, port: int = NETSDR_TCP_PORT):
        self.host       = host
        self.port       = port
        self._sock      = None
        self._lock      = threading.Lock()
        self._message_cb: Optional[Callable[[bytes], None]] = None
        self._running   = False
        self._recv_thread = None

    @property
    def connected(self) -> bool:
        return self._running and self._sock is not None

    def set_message_callback(self, cb: Optional[Callable[[bytes], None]]):
        """Register callback invoked with every complete inbound frame."""
        self._message_cb = cb

    def connect(self):
        if self.connected:
            log.info("TCP already connected")
            return
        if self._sock is not None:
            # Peer closed the previous connection; release it before reconnecting
            self.disconnect()
        log.info(f"Connecting to {self.host}:{self.port}")
        sock = socket.create_connection((self.host, self.port), timeout=self.CONNECT_TIMEOUT)
        sock.settimeout(None)
        with self._lock:
            self._sock = sock
            self._running = True
        self._recv_thread = threading.Thread(target=self._recv_loop, args=(sock,), daemon=True)
        self._recv_thread.start()
        log.info("TCP connected")

    def disconnect(self):
        with self._lock:
            sock, self._sock = self._sock, None
            self._running = False
        if sock is None:
            return
        try:
            sock.shutdown(socket.SHUT_RDWR)
        except OSError:
            pass
        sock.close()
        if self._recv_thread and self._recv_thread is not threading.current_thread():
            self._recv_thread.join(timeout=1.0)
        log.info("TCP disconnected")

    def send_message(self, data: bytes):
        """Send one frame. Raises NotConnected when the channel is closed."""
        sock = self._sock
        if not self._running or sock is None:
            raise NotConnected(f"not connected to {self.host}:{self.port}")
        log.debug(f"TX: {_hex(data)}")
        sock.sendall(data)

    def _recv_loop(self, sock: socket.socket):
        buf = b""
        while self._running:
            try:
                chunk = sock.recv(self.READ_CHUNK_SIZE)
            except OSError as e:
                if self._running:
                    log.error(f"TCP recv error: {e}")
                break
            if not chunk:
                if self._running:
                    log.warning("TCP connection closed by receiver")
                break
            buf += chunk
            try:
                buf = self._split_frames(buf)
            except FramingError as e:
                # The stream cannot be resynchronised once a header is bad
                log.error(f"TCP framing error, discarding {len(buf)} bytes: {e}")
                buf = b""

        with self._lock:
            if self._sock is sock:
                self._running = False

    def _split_frames(self, buf: bytes) -> bytes:
        """Deliver every complete frame at the start of ``buf``; return the remainder."""
        while len(buf) >= HEADER_LENGTH:
            _, length = unpack_header(buf)
            if length < HEADER_LENGTH:
                raise FramingError(f"header declares impossible length {length}")
            if len(buf) < length:
                break
            frame, buf = buf[:length], buf[length:]
            log.debug(f"RX: {_hex(frame)}")
            if self._message_cb:
                try:
                    self._message_cb(frame)
                except Exception as e:
                    log.error(f"Message callback failed: {e}", exc_info=True)
        return buf
