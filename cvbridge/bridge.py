#!/usr/bin/env python3
"""
cvbridge - OSC control surface → audio control voltages + MIDI CC.

ARCHITECTURE:
- Ingest thread: UDP port 8000, decodes /address float messages, writes the
  channel store, sends one MIDI Control Change per message
- Audio thread (PortAudio): 8-channel 48 kHz float32 stream, every frame
  holds the current channel values (DC outputs for a DC-coupled interface)
- Main thread: waits, logs audio backend status reports, handles signals

DEFAULT ADDRESSES:
    /lfo1 → 0, /lfo2 → 1, /lfo3 → 2, /lfo4 → 3, /stepped32 → 4, /stepped8 → 5
    Override with --config (see config/address_map.yaml).

USAGE:
    python3 -m cvbridge
    python3 -m cvbridge --osc-port 9000 --audio-device MOTU --midi-device Minilab
    python3 -m cvbridge --config config/address_map.yaml --debug
    python3 -m cvbridge --list-devices

SHUTDOWN:
    Ctrl+C or SIGTERM stops the ingest loop, the audio stream and the MIDI
    port, then logs message statistics.
"""

import argparse
import os
import signal
import sys
import threading
from typing import Optional

import yaml

from cvbridge import devices, log, osc
from cvbridge.address_map import AddressMap, load_address_map
from cvbridge.audio import SAMPLE_RATE, AudioRenderCallback
from cvbridge.ingest import ControlIngestLoop
from cvbridge.midi import HardwareControlEmitter
from cvbridge.store import ChannelStateStore

logger = log.get_logger("bridge")

STATUS_REPORT_INTERVAL = 1.0  # Seconds between audio status checks


class Bridge:
    """Wires the ingest loop, audio stream and MIDI port together.

    Args:
        address_map: Address → channel lookup
        midi_port: Open mido output port
        audio_device: sounddevice device index, or None for default
        verbose: Log one line per applied message
        samplerate: Audio sample rate
        stream_factory: Callable building the output stream
                        (callback, channels, samplerate, device)
    """

    def __init__(self, address_map: AddressMap, midi_port,
                 audio_device: Optional[int] = None, verbose: bool = False,
                 samplerate: int = SAMPLE_RATE, stream_factory=devices.open_output_stream):
        self.address_map = address_map
        self.samplerate = samplerate
        self.stats = osc.MessageStatistics()

        self.store = ChannelStateStore(address_map.channel_count)
        self.emitter = HardwareControlEmitter(midi_port, stats=self.stats)
        self.renderer = AudioRenderCallback(self.store)
        self.ingest = ControlIngestLoop(
            address_map, self.store, self.emitter, verbose=verbose, stats=self.stats
        )
        self.stream = stream_factory(
            self.renderer, address_map.channel_count, samplerate, audio_device
        )

        self.ingest_thread: Optional[threading.Thread] = None
        self._shutdown = threading.Event()
        self._shutdown_lock = threading.Lock()
        self._closed = False

    def start(self, host: str = "0.0.0.0", port: int = osc.PORT_CONTROL) -> None:
        """Bind the socket, start audio, then start the ingest thread.

        Raises:
            OSError: If the UDP port can't be bound
        """
        self.ingest.bind(host, port)

        self.stream.start()
        logger.info(f"Audio stream started: {self.address_map.channel_count} channels "
                    f"@ {self.samplerate} Hz")

        self.ingest_thread = threading.Thread(
            target=self.ingest.run, name="ingest", daemon=True
        )
        self.ingest_thread.start()

    def report_audio_status(self) -> int:
        """Log backend status reports recorded by the audio callback.

        Returns:
            Number of reports logged
        """
        reports = self.renderer.drain_status()
        for report in reports:
            logger.warning(f"Audio error: {report}")
        return len(reports)

    def wait(self) -> None:
        """Block until shutdown() is requested, reporting audio status."""
        while not self._shutdown.wait(STATUS_REPORT_INTERVAL):
            self.report_audio_status()
        self.report_audio_status()

    def request_shutdown(self) -> None:
        self._shutdown.set()

    def shutdown(self) -> None:
        """Stop ingest, audio and MIDI. Idempotent."""
        with self._shutdown_lock:
            if self._closed:
                return
            self._closed = True

        self._shutdown.set()
        logger.info("Shutting down...")

        self.ingest.stop()
        if self.ingest_thread is not None:
            self.ingest_thread.join(timeout=2.0)
            if self.ingest_thread.is_alive():
                logger.warning("Ingest thread did not terminate cleanly")

        try:
            self.stream.stop()
            self.stream.close()
        except Exception as e:
            logger.warning(f"Failed to stop audio stream: {e}")

        self.emitter.close()
        self.stats.log_stats("CVBRIDGE STATISTICS")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Bridge OSC control messages to audio control voltages and MIDI CC"
    )
    parser.add_argument(
        "--osc-port",
        type=int,
        default=osc.PORT_CONTROL,
        help=f"UDP port to listen for OSC messages (default: {osc.PORT_CONTROL})",
    )
    parser.add_argument(
        "--host",
        type=str,
        default="0.0.0.0",
        help="Address to listen on (default: 0.0.0.0)",
    )
    parser.add_argument(
        "--audio-device",
        type=str,
        default=None,
        help="Audio output device substring (default: system default output)",
    )
    parser.add_argument(
        "--midi-device",
        type=str,
        default=None,
        help="MIDI output port substring (default: first port)",
    )
    parser.add_argument(
        "--config",
        type=str,
        default=None,
        help="YAML address map (default: built-in /lfo1-4, /stepped32, /stepped8)",
    )
    parser.add_argument(
        "--debug",
        action="store_true",
        help="Log every applied message with its audio and MIDI values",
    )
    parser.add_argument(
        "--list-devices",
        action="store_true",
        help="List audio and MIDI output devices and exit",
    )
    parser.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        default=os.getenv(log.LEVEL_ENV_VAR, "INFO"),
        help="Logging verbosity (default: INFO)",
    )
    return parser


def main(argv=None):
    """Main entry point with command-line argument parsing.

    Exits with status 1 on any setup fault (bad port or config, missing
    device, port already in use).
    """
    args = build_parser().parse_args(argv)

    log.set_level("DEBUG" if args.debug else args.log_level)

    if args.list_devices:
        devices.list_devices()
        return

    try:
        osc.validate_port(args.osc_port)
    except ValueError as e:
        logger.error(f"{e}")
        sys.exit(1)

    try:
        address_map = load_address_map(args.config) if args.config else AddressMap.default()
    except (FileNotFoundError, ValueError, yaml.YAMLError) as e:
        logger.error(f"{e}")
        sys.exit(1)

    try:
        audio_device = devices.find_audio_device(args.audio_device)
        logger.info(f"Using audio device: {devices.audio_device_name(audio_device)}")
        midi_port = devices.open_midi_output(args.midi_device)
    except devices.DeviceNotFoundError as e:
        logger.error(f"{e}")
        sys.exit(1)
    except Exception as e:
        # PortAudio or rtmidi backend failure while opening a device
        logger.error(f"Failed to open device: {e}")
        sys.exit(1)

    try:
        bridge = Bridge(address_map, midi_port, audio_device=audio_device, verbose=args.debug)
    except Exception as e:
        logger.error(f"Failed to open audio stream: {e}")
        midi_port.close()
        sys.exit(1)

    def signal_handler(sig, frame):
        bridge.request_shutdown()

    signal.signal(signal.SIGINT, signal_handler)
    signal.signal(signal.SIGTERM, signal_handler)

    try:
        bridge.start(args.host, args.osc_port)
    except OSError as e:
        if "Address already in use" in str(e):
            logger.error(f"Port {args.osc_port} already in use")
        else:
            logger.error(f"{e}")
        bridge.shutdown()
        sys.exit(1)
    except Exception as e:
        logger.error(f"Failed to start audio stream: {e}")
        bridge.shutdown()
        sys.exit(1)

    for address in address_map:
        logger.info(f"  {address} → channel {address_map.lookup(address)}")
    logger.info("Bridge running. Press Ctrl+C to exit.")

    try:
        bridge.wait()
    finally:
        bridge.shutdown()


if __name__ == "__main__":
    main()
