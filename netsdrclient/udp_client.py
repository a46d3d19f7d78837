"""UDP receiver for NetSDR I/Q data datagrams."""

import socket
import threading
from typing import Callable, Optional

from .common import NETSDR_UDP_PORT, log

class NetSdrUDPReceiver:
    """
    Receives I/Q datagrams streamed by the receiver and hands each one,
    undecoded, to the registered datagram callback.

    Two receivers bound to the same port compare equal and hash alike.
    """

    RECV_BUFFER_SIZE: int = 4 * 1024 * 1024

    def __init__(self, listen_port: int = NETSDR_UDP_PORT, bind_address: str = ""):
        self.listen_port  = listen_port
        self.bind_address = bind_address
        self._sock        = None
        self._running     = False
        self._thread      = None
        self._datagram_cb: Optional[Callable[[bytes], None]] = None
        self.packet_count = 0

    def __eq__(self, other):
        if not isinstance(other, NetSdrUDPReceiver):
            return NotImplemented
        return self.listen_port == other.listen_port

    def __hash__(self):
        return hash((NetSdrUDPReceiver, self.listen_port))

    def __repr__(self):
        return f"NetSdrUDPReceiver(listen_port={self.listen_port})"

    @property
    def listening(self) -> bool:
        return self._running

    @property
    def bound_port(self) -> Optional[int]:
        """Actual local port while listening (differs from listen_port when it is 0)."""
        if self._sock is None:
            return None
        return int(self._sock.getsockname()[1])

    def set_datagram_callback(self, cb: Optional[Callable[[bytes], None]]):
        self._datagram_cb = cb

    def start_listening(self):
        if self._running:
            log.debug(f"UDP receiver already listening on {self.listen_port}")
            return
        sock = socket.socket(socket.AF_INET, socket.SOCK_DGRAM)
        sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
        sock.setsockopt(socket.SOL_SOCKET, socket.SO_RCVBUF, self.RECV_BUFFER_SIZE)
        sock.bind((self.bind_address, self.listen_port))
        sock.settimeout(1.0)
        self._sock = sock
        self._running = True
        self._thread = threading.Thread(target=self._recv_loop, args=(sock,), daemon=True)
        self._thread.start()
        log.info(f"UDP receiver listening on UDP:{self.bound_port}")

    def stop_listening(self):
        if not self._running and self._sock is None:
            return
        self._running = False
        sock, self._sock = self._sock, None
        if sock:
            sock.close()
        if self._thread and self._thread is not threading.current_thread():
            self._thread.join(timeout=2.0)
        self._thread = None
        log.info(f"UDP receiver on port {self.listen_port} stopped")

    def _recv_loop(self, sock: socket.socket):
        while self._running:
            try:
                data, addr = sock.recvfrom(65536)
            except socket.timeout:
                continue
            except OSError as e:
                if self._running:
                    log.error(f"UDP recv error: {e}")
                break
            self.packet_count += 1
            if self._datagram_cb:
                try:
                    self._datagram_cb(data)
                except Exception as e:
                    log.error(f"Datagram callback failed: {e}", exc_info=True)
