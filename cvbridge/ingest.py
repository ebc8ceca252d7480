#!/usr/bin/env python3
"""
Control Ingest Loop - UDP datagrams → channel store + MIDI.

ARCHITECTURE:
- Single thread owns the UDP socket (ControlIngestServer, SO_REUSEPORT)
- Per datagram: decode → resolve address → write store → send MIDI CC
- Applied in arrival order; the audio callback sees the latest write

STATE MACHINE:
    LISTENING → DECODING → {DISPATCHING | DISCARDING} → LISTENING

VALUE MAPPING (input v clamped to [0, 1] first):
    audio = 2v - 1            (bipolar, [-1, 1])
    midi  = round(v * 127)    (half-up, [0, 127])

Examples:
    /lfo1 0.5 → audio 0.0, CC 0 = 64
    /stepped8 1.0 → audio 1.0, CC 7 = 127

STOPPING:
    serve_forever() checks for a stop request every POLL_INTERVAL seconds,
    so stop() returns without waiting for another datagram.
"""

import enum
import math
import threading
from typing import Optional, Tuple

from cvbridge import osc
from cvbridge.address_map import AddressMap
from cvbridge.decoder import ControlMessage, ControlMessageDecoder
from cvbridge.log import get_logger
from cvbridge.midi import MIDI_VALUE_MAX, HardwareControlEmitter
from cvbridge.store import ChannelStateStore

logger = get_logger("ingest")


class IngestState(enum.Enum):
    LISTENING = "listening"
    DECODING = "decoding"
    DISPATCHING = "dispatching"
    DISCARDING = "discarding"


def clamp_unit(value: float) -> float:
    """Limit a control value to [0, 1] before scaling.

    Doubles as large as 1e307 decode fine but overflow once scaled.
    """
    return max(0.0, min(1.0, value))


def to_audio_value(value: float) -> float:
    """Map a [0, 1] control value to a bipolar [-1, 1] audio value."""
    return clamp_unit(value) * 2.0 - 1.0


def to_midi_value(value: float) -> int:
    """Map a [0, 1] control value to a 0-127 controller value.

    Rounds half up, so 0.5 → 64.
    """
    return min(MIDI_VALUE_MAX, math.floor(clamp_unit(value) * MIDI_VALUE_MAX + 0.5))


class ControlIngestLoop:
    """Applies incoming control messages to the store and the MIDI port.

    Args:
        address_map: Address → channel lookup
        store: ChannelStateStore shared with the audio callback
        emitter: HardwareControlEmitter for controller changes
        verbose: Log one diagnostic line per applied message
        stats: Optional shared MessageStatistics

    Attributes:
        state (IngestState): Current step of the receive cycle
        server (ControlIngestServer): Bound server, after bind()
    """

    def __init__(self, address_map: AddressMap, store: ChannelStateStore,
                 emitter: HardwareControlEmitter, verbose: bool = False,
                 stats: Optional[osc.MessageStatistics] = None):
        if address_map.channel_count > store.channel_count:
            raise ValueError(
                f"Address map uses {address_map.channel_count} channels "
                f"but the store only has {store.channel_count}"
            )

        self.address_map = address_map
        self.store = store
        self.emitter = emitter
        self.verbose = verbose
        self.stats = stats or osc.MessageStatistics()
        self.decoder = ControlMessageDecoder(address_map)

        self.state = IngestState.LISTENING
        self.server: Optional[osc.ControlIngestServer] = None
        self._serving = threading.Event()

    # ------------------------------------------------------------------
    # Per-datagram processing
    # ------------------------------------------------------------------

    def handle_datagram(self, dgram: bytes) -> bool:
        """Process one datagram.

        Args:
            dgram: Raw datagram bytes

        Returns:
            True if the datagram was applied, False if it was discarded
        """
        self.stats.increment('datagrams_received')
        self.state = IngestState.DECODING

        message = self.decoder.decode(dgram)
        if message is None:
            self.state = IngestState.DISCARDING
            self.stats.increment('messages_discarded')
            logger.debug(f"Discarded datagram ({len(dgram)} bytes)")
            self.state = IngestState.LISTENING
            return False

        self.state = IngestState.DISPATCHING
        self.apply(message)
        self.state = IngestState.LISTENING
        return True

    def apply(self, message: ControlMessage) -> Optional[Tuple[int, float, int]]:
        """Write a decoded message to the store and the MIDI port.

        Args:
            message: Decoded ControlMessage

        Returns:
            (channel, audio_value, midi_value), or None if the address
            isn't mapped
        """
        channel = self.address_map.lookup(message.address)
        if channel is None:
            return None

        audio_val = to_audio_value(message.value)
        midi_val = to_midi_value(message.value)

        self.store.write(channel, audio_val)
        self.emitter.send(channel, midi_val)
        self.stats.increment('messages_applied')

        if self.verbose:
            logger.info(
                f"{message.address} -> Channel {channel + 1}: "
                f"Audio {audio_val:.4f}, MIDI {midi_val}"
            )

        return channel, audio_val, midi_val

    # ------------------------------------------------------------------
    # Socket lifecycle
    # ------------------------------------------------------------------

    def bind(self, host: str = "0.0.0.0", port: int = osc.PORT_CONTROL) -> Tuple[str, int]:
        """Bind the UDP socket.

        Args:
            host: Listen address
            port: Listen port (0 picks a free port)

        Returns:
            The bound (host, port)

        Raises:
            OSError: If the port can't be bound
        """
        self.server = osc.ControlIngestServer((host, port), self.handle_datagram)
        logger.info(f"Listening for control messages on {self.server.server_address[0]}:"
                    f"{self.server.server_address[1]}")
        return self.server.server_address

    def run(self, poll_interval: float = osc.POLL_INTERVAL) -> None:
        """Serve datagrams until stop() is called. Blocks."""
        if self.server is None:
            raise RuntimeError("bind() must be called before run()")

        self._serving.set()
        try:
            self.server.serve_forever(poll_interval=poll_interval)
        finally:
            self._serving.clear()
            logger.info("Ingest loop exiting")

    def wait_until_serving(self, timeout: Optional[float] = None) -> bool:
        """Block until run() has started serving. Returns False on timeout."""
        return self._serving.wait(timeout)

    def stop(self) -> None:
        """Stop a running loop and close the socket.

        Must be called from a thread other than the one running run();
        returns within one poll interval.
        """
        if self.server is None:
            return

        server = self.server
        self.server = None
        if self._serving.is_set():
            server.shutdown()
        server.server_close()
