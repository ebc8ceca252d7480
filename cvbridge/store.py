"""
Channel State Store - latest value per channel, shared with the audio thread.

One writer role (the ingest thread) and one reader role (the audio callback).
The reader must never wait on the writer, so the store never hands out a
buffer that is later mutated:

- write() copies the current snapshot, changes one slot, and publishes the
  copy with a single attribute assignment (atomic under the GIL)
- read_snapshot() returns whatever array is published at that instant

A snapshot is therefore always complete: either before or after a write,
never half-way. Writers serialize on a lock that the reader never touches.
"""

import threading
from typing import List

import numpy as np

NEUTRAL_VALUE = 0.0  # Bipolar zero: silence on the audio side


class ChannelStateStore:
    """Latest bipolar value for each channel, last write wins.

    Attributes:
        channel_count (int): Fixed number of channels

    Examples:
        >>> store = ChannelStateStore(8)
        >>> store.write(0, 0.5)
        >>> float(store.read_snapshot()[0])
        0.5
    """

    def __init__(self, channel_count: int = 8, dtype=np.float32):
        if channel_count < 1:
            raise ValueError(f"channel_count must be >= 1, got {channel_count}")

        self._channel_count = channel_count
        self._write_lock = threading.Lock()

        initial = np.full(channel_count, NEUTRAL_VALUE, dtype=dtype)
        initial.flags.writeable = False
        self._current = initial

    @property
    def channel_count(self) -> int:
        return self._channel_count

    def write(self, index: int, value: float) -> None:
        """Replace the value of one channel.

        Args:
            index: Channel index in [0, channel_count)
            value: New bipolar value

        Raises:
            IndexError: If index is out of range
        """
        if not 0 <= index < self._channel_count:
            raise IndexError(
                f"Channel index {index} out of range 0-{self._channel_count - 1}"
            )

        with self._write_lock:
            updated = self._current.copy()
            updated[index] = value
            updated.flags.writeable = False
            self._current = updated

    def read_snapshot(self) -> np.ndarray:
        """Return a consistent, read-only view of all channel values.

        Lock-free; safe to call from the audio callback.
        """
        return self._current

    def values(self) -> List[float]:
        """Return the current values as a list of Python floats."""
        return [float(v) for v in self._current]
