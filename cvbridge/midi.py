#!/usr/bin/env python3
"""
Hardware Control Emitter - channel updates → MIDI controller change.

Each applied control message becomes one 3-byte Control Change frame on MIDI
channel 1 (status 0xB0): controller number = channel index, value = 0-127.

A failing MIDI port must not take down audio or ingest, so send errors are
logged and counted, and the frame is dropped. The next update on the same
channel supersedes it anyway.
"""

import threading
from typing import List, Optional

import mido

from cvbridge import osc
from cvbridge.log import get_logger

logger = get_logger("midi")


# ============================================================================
# CONSTANTS
# ============================================================================

MIDI_CHANNEL = 0         # mido channels are 0-based: 0 → status byte 0xB0
CONTROL_CHANGE_STATUS = 0xB0
MIDI_VALUE_MAX = 127


def control_change_frame(index: int, value: int) -> List[int]:
    """Serialize a channel update as raw MIDI bytes.

    Args:
        index: Channel index, used as the controller number (0-127)
        value: Controller value (0-127)

    Returns:
        [status, controller, value]

    Raises:
        ValueError: If index or value are outside 0-127

    Examples:
        >>> control_change_frame(0, 64)
        [176, 0, 64]
        >>> control_change_frame(7, 127)
        [176, 7, 127]
    """
    return build_control_change(index, value).bytes()


def build_control_change(index: int, value: int) -> mido.Message:
    """Build the mido Control Change message for a channel update."""
    return mido.Message(
        'control_change',
        channel=MIDI_CHANNEL,
        control=index,
        value=value,
    )


class HardwareControlEmitter:
    """Sends controller-change frames to a mido output port.

    Only the ingest thread sends, but the port is still guarded by a lock so
    close() from the shutdown path can't interleave with a send.

    Args:
        port: Open mido output port (anything with send() and close())
        stats: Optional MessageStatistics for midi_sent / midi_errors
    """

    def __init__(self, port, stats: Optional[osc.MessageStatistics] = None):
        self.port = port
        self.stats = stats or osc.MessageStatistics()
        self._lock = threading.Lock()
        self._closed = False

    def send(self, index: int, value: int) -> bool:
        """Send one controller change.

        Args:
            index: Channel index / controller number
            value: Controller value 0-127

        Returns:
            True if the port accepted the frame, False if it was dropped
        """
        message = build_control_change(index, value)

        with self._lock:
            if self._closed:
                return False
            try:
                self.port.send(message)
            except Exception as e:
                self.stats.increment('midi_errors')
                logger.warning(f"MIDI send failed for CC {index}={value}: {e}")
                return False

        self.stats.increment('midi_sent')
        return True

    def close(self) -> None:
        """Close the MIDI port; later sends are dropped."""
        with self._lock:
            if self._closed:
                return
            self._closed = True
            try:
                self.port.close()
            except Exception as e:
                logger.warning(f"Failed to close MIDI port: {e}")
