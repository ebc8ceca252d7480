#!/usr/bin/env python3
"""
cvbridge OSC Infrastructure - UDP ingest server, constants and statistics.

Classes:
    - ReusePortBlockingOSCUDPServer: Blocking OSC server with SO_REUSEPORT
    - ControlIngestServer: Raw-datagram ingest server feeding a callback
    - MessageStatistics: Thread-safe message counter with formatted output

Functions:
    - validate_port(port): Validate port in range 1-65535

Constants:
    - PORT_CONTROL: Default control-surface listen port (8000)
    - MAX_DATAGRAM_SIZE: Largest datagram read per receive (1024 bytes)
    - POLL_INTERVAL: Seconds between stop-request checks in the receive loop
"""

import socket
import threading
from typing import Callable
from pythonosc import osc_server

from cvbridge.log import get_logger

logger = get_logger("osc")


# ============================================================================
# CONSTANTS
# ============================================================================

PORT_CONTROL = 8000      # Control surface → bridge
MAX_DATAGRAM_SIZE = 1024  # Longer datagrams are truncated by recvfrom()
POLL_INTERVAL = 0.5       # serve_forever() poll, bounds stop() latency

# Port validation range
PORT_MIN = 1
PORT_MAX = 65535


# ============================================================================
# SO_REUSEPORT SERVER CLASSES
# ============================================================================

class ReusePortBlockingOSCUDPServer(osc_server.BlockingOSCUDPServer):
    """BlockingOSCUDPServer with SO_REUSEPORT socket option enabled.

    Lets a monitoring tool listen on the same port as the bridge while a
    performance is running. On systems without SO_REUSEPORT, binding proceeds
    without the option.
    """

    def server_bind(self):
        """Bind server socket with SO_REUSEPORT socket option."""
        if hasattr(socket, 'SO_REUSEPORT'):
            self.socket.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEPORT, 1)
        self.socket.bind(self.server_address)
        self.server_address = self.socket.getsockname()


class ControlIngestServer(ReusePortBlockingOSCUDPServer):
    """Blocking UDP server handing each raw datagram to a callback.

    pythonosc's dispatcher unpacks bundles and drops the raw bytes, so this
    server bypasses it: finish_request() passes the datagram straight to
    ``on_datagram``, which does its own decoding. Everything else (binding,
    serve_forever() with a poll interval, shutdown()) is the stock
    socketserver machinery, which is what gives the ingest loop its stop path.

    Args:
        server_address: (host, port) tuple; port 0 picks a free port
        on_datagram: Callable receiving the datagram bytes
    """

    max_packet_size = MAX_DATAGRAM_SIZE

    def __init__(self, server_address, on_datagram: Callable[[bytes], object]):
        self.on_datagram = on_datagram
        # Dispatcher unused: datagrams are routed through finish_request()
        super().__init__(server_address, None)

    def verify_request(self, request, client_address):
        # Accept everything; rejection is counted by the ingest loop
        return True

    def finish_request(self, request, client_address):
        data, _sock = request
        self.on_datagram(data)

    def handle_error(self, request, client_address):
        """Log handler failures instead of printing to stderr, keep serving."""
        logger.exception(f"Error handling datagram from {client_address}")


# ============================================================================
# VALIDATION FUNCTIONS
# ============================================================================

def validate_port(port: int) -> None:
    """Validate UDP port number is in valid range.

    Args:
        port: Port number to validate

    Raises:
        ValueError: If port is outside range 1-65535

    Examples:
        >>> validate_port(8000)  # OK
        >>> validate_port(0)  # Raises ValueError
    """
    if port < PORT_MIN or port > PORT_MAX:
        raise ValueError(f"Port must be in range {PORT_MIN}-{PORT_MAX}, got {port}")


# ============================================================================
# MESSAGE STATISTICS
# ============================================================================

class MessageStatistics:
    """Thread-safe message statistics tracker with formatted output.

    Counters used by the bridge:
        - datagrams_received: Every datagram read from the socket
        - messages_applied: Datagrams that updated a channel
        - messages_discarded: Malformed, unknown-address or non-float datagrams
        - midi_sent: Controller-change frames delivered to the port
        - midi_errors: Controller-change frames the port rejected

    Never touched from the audio callback: increment() takes a lock.

    Examples:
        >>> stats = MessageStatistics()
        >>> stats.increment('datagrams_received')
        >>> stats.get('datagrams_received')
        1
    """

    def __init__(self):
        self.counters = {}
        self.lock = threading.Lock()

    def increment(self, counter_name: str, amount: int = 1) -> None:
        """Increment a counter by specified amount (thread-safe).

        Creates the counter at 0 if it doesn't exist yet.
        """
        with self.lock:
            self.counters[counter_name] = self.counters.get(counter_name, 0) + amount

    def get(self, counter_name: str) -> int:
        """Get current value of a counter, or 0 if it doesn't exist."""
        with self.lock:
            return self.counters.get(counter_name, 0)

    def snapshot(self) -> dict:
        """Return a copy of all counters."""
        with self.lock:
            return dict(self.counters)

    def log_stats(self, title: str = "STATISTICS") -> None:
        """Log counters as a formatted block.

        Output format:
            ============================================================
            TITLE
            ============================================================
            Counter Name: value
            ...
            ============================================================
        """
        # Snapshot under lock, log without holding it
        snapshot = self.snapshot()

        logger.info("=" * 60)
        logger.info(title)
        logger.info("=" * 60)
        for name in sorted(snapshot.keys()):
            display_name = name.replace('_', ' ').title()
            logger.info(f"{display_name}: {snapshot[name]}")
        logger.info("=" * 60)
