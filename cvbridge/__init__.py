"""
cvbridge - OSC to control-voltage audio and MIDI bridge.

Modules:
    osc: OSC ingest server, constants, message statistics
    address_map: OSC address to channel lookup (built-in or YAML)
    store: Shared channel values read by the audio callback
    decoder: Datagram to control message parsing
    ingest: Receive loop applying control messages
    midi: Controller-change emission over a mido output port
    audio: Real-time output buffer fill
    devices: Audio/MIDI device enumeration and selection
    bridge: Process wiring and command-line entry point
    cli: One-shot control message sender
    log: Logger setup
"""

__version__ = "0.1.0"

# Note: Modules are imported on-demand so that python -m cvbridge.cli works
# without loading PortAudio.
# Use: from cvbridge import store, ingest, etc.
