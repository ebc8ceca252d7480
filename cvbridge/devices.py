#!/usr/bin/env python3
"""
Device setup - audio output and MIDI output selection.

Both selectors are substring matches against the names the backends report
(sounddevice for audio, mido for MIDI). A selector that matches nothing is a
setup fault: DeviceNotFoundError, and the bridge refuses to start.

sounddevice loads PortAudio when imported, so it is imported inside the
functions that need a device rather than at module level.
"""

from typing import List, Optional, Tuple

import mido

from cvbridge.log import get_logger

logger = get_logger("devices")


class DeviceNotFoundError(RuntimeError):
    """Requested audio or MIDI device is not available."""


# ============================================================================
# AUDIO
# ============================================================================

def list_audio_outputs() -> List[Tuple[int, str]]:
    """Return (index, name) for every device with output channels."""
    import sounddevice as sd

    return [
        (i, device['name'])
        for i, device in enumerate(sd.query_devices())
        if device['max_output_channels'] > 0
    ]


def find_audio_device(substring: Optional[str]) -> Optional[int]:
    """Find the first audio output device whose name contains a substring.

    Args:
        substring: Case-insensitive substring, or None for the default device

    Returns:
        Device index, or None for the backend default

    Raises:
        DeviceNotFoundError: If no output device matches

    Examples:
        >>> find_audio_device("MOTU")
        4
        >>> find_audio_device(None) is None
        True
    """
    if substring is None:
        return None

    substring_lower = substring.lower()
    outputs = list_audio_outputs()
    for index, name in outputs:
        if substring_lower in name.lower():
            logger.debug(f"Matched audio device {index}: {name}")
            return index

    available = ", ".join(name for _, name in outputs) or "none"
    raise DeviceNotFoundError(
        f"Audio device not found: '{substring}' (available: {available})"
    )


def audio_device_name(device: Optional[int]) -> str:
    """Return the display name of an audio device index (None = default)."""
    import sounddevice as sd

    return sd.query_devices(device, 'output')['name']


def open_output_stream(callback, channels: int, samplerate: int,
                       device: Optional[int] = None):
    """Create (but don't start) a float32 output stream.

    Args:
        callback: sounddevice callback (outdata, frames, time_info, status)
        channels: Output channel count
        samplerate: Sample rate in Hz
        device: Device index or None for default

    Returns:
        sounddevice.OutputStream

    Raises:
        sounddevice.PortAudioError: If the device can't open the stream
    """
    import sounddevice as sd

    # Default blocksize: let the backend pick its buffer size
    return sd.OutputStream(
        device=device,
        channels=channels,
        samplerate=samplerate,
        dtype='float32',
        callback=callback,
    )


# ============================================================================
# MIDI
# ============================================================================

def find_midi_output(substring: Optional[str]) -> str:
    """Pick a MIDI output port name.

    Args:
        substring: Substring to match, or None for the first port

    Returns:
        Port name

    Raises:
        DeviceNotFoundError: If there are no ports, or none match
    """
    ports = mido.get_output_names()
    if not ports:
        raise DeviceNotFoundError("No MIDI output ports available")

    if substring is None:
        return ports[0]

    for name in ports:
        if substring in name:
            return name

    raise DeviceNotFoundError(
        f"MIDI device not found: '{substring}' (available: {', '.join(ports)})"
    )


def open_midi_output(substring: Optional[str]):
    """Find and open a MIDI output port.

    Returns:
        Open mido output port
    """
    name = find_midi_output(substring)
    port = mido.open_output(name)
    logger.info(f"Using MIDI device: {name}")
    return port


# ============================================================================
# LISTING
# ============================================================================

def list_devices() -> None:
    """Print every audio output device and MIDI output port.

    Goes to stdout whatever the log level.
    """
    print("** Available Audio devices **")
    for index, name in list_audio_outputs():
        print(f"  {index:2d} {name}")

    print("** Available MIDI devices **")
    for name in mido.get_output_names():
        print(f"  - {name}")
