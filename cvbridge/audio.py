#!/usr/bin/env python3
"""
Audio Render Callback - channel values → continuous output buffer.

Runs on the PortAudio thread via sounddevice.OutputStream. Every frame of a
buffer receives the same snapshot of channel values (sample-and-hold): a
value change shows up as a step at the next buffer boundary.

NO locks, NO logging, NO allocations beyond what numpy broadcasting needs.
Backend status flags are parked in a deque and logged later from the main
thread via drain_status().
"""

from collections import deque
from typing import List

import numpy as np

from cvbridge.store import ChannelStateStore


SAMPLE_RATE = 48000
STATUS_BACKLOG = 64  # Oldest status reports are dropped beyond this


class AudioRenderCallback:
    """sounddevice output callback broadcasting the store across a buffer.

    Args:
        store: ChannelStateStore read once per render pass

    Attributes:
        render_count (int): Render passes completed
        status_count (int): Render passes that carried a backend status
    """

    def __init__(self, store: ChannelStateStore):
        self.store = store
        self.render_count = 0
        self.status_count = 0
        # deque.append/popleft are thread-safe; no lock needed
        self._status_reports = deque(maxlen=STATUS_BACKLOG)

    def __call__(self, outdata, frames, time_info, status):
        """Fill ``outdata`` (frames × channels) with the current values."""
        if status:
            self.status_count += 1
            self._status_reports.append(str(status))

        snapshot = self.store.read_snapshot()
        out_channels = outdata.shape[1]

        if out_channels == snapshot.shape[0]:
            outdata[:] = snapshot
        elif out_channels < snapshot.shape[0]:
            outdata[:] = snapshot[:out_channels]
        else:
            outdata[:, :snapshot.shape[0]] = snapshot
            outdata[:, snapshot.shape[0]:] = 0.0

        self.render_count += 1

    def drain_status(self) -> List[str]:
        """Return and clear the backend status reports recorded so far."""
        reports = []
        while True:
            try:
                reports.append(self._status_reports.popleft())
            except IndexError:
                return reports


def render_buffer(store: ChannelStateStore, frames: int, channels: int) -> np.ndarray:
    """Render one buffer offline, as the stream would.

    Handy for checking what the outputs hold without an audio device.
    """
    outdata = np.empty((frames, channels), dtype=np.float32)
    AudioRenderCallback(store)(outdata, frames, None, None)
    return outdata
