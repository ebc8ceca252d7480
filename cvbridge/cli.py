#!/usr/bin/env python3
"""
Send a single control message to a running bridge.

Usage:
    python -m cvbridge.cli <address> [arg1] [arg2] ... [--host H] [--port P]

Examples:
    python -m cvbridge.cli /lfo1 0.5
    python -m cvbridge.cli /stepped8 1.0 --port 9000
"""

import argparse
from typing import List

from pythonosc.osc_message_builder import OscMessageBuilder
from pythonosc.udp_client import SimpleUDPClient

from cvbridge import osc
from cvbridge.log import get_logger

logger = get_logger("cli")


def parse_argument(arg: str):
    """Parse a command-line argument to the appropriate OSC type.

    Any number becomes a float, bare integers included: the bridge discards
    int arguments, so "1" has to go out as 1.0. Anything else is a string.

    Examples:
        >>> parse_argument("0.5")
        0.5
        >>> parse_argument("1")
        1.0
        >>> parse_argument("on")
        'on'
    """
    try:
        return float(arg)
    except ValueError:
        return arg


def build_message(address: str, args: List):
    """Build an OSC message, sending Python floats as OSC float32."""
    builder = OscMessageBuilder(address=address)
    for arg in args:
        if isinstance(arg, float):
            builder.add_arg(arg, OscMessageBuilder.ARG_TYPE_FLOAT)
        else:
            builder.add_arg(arg)
    return builder.build()


def send_control_message(address: str, args: List, host: str = "127.0.0.1",
                         port: int = osc.PORT_CONTROL) -> None:
    """Send one OSC message to the bridge."""
    client = SimpleUDPClient(host, port)
    client.send(build_message(address, args))
    logger.info(f"Sent to {host}:{port} → {address} {args}")


def main(argv=None):
    """CLI entry point for sending control messages."""
    parser = argparse.ArgumentParser(
        description="Send one OSC control message to the bridge"
    )
    parser.add_argument("address", help="OSC address, e.g. /lfo1")
    parser.add_argument("values", nargs="*", help="Arguments, e.g. 0.5")
    parser.add_argument("--host", default="127.0.0.1",
                        help="Bridge host (default: 127.0.0.1)")
    parser.add_argument("--port", type=int, default=osc.PORT_CONTROL,
                        help=f"Bridge port (default: {osc.PORT_CONTROL})")
    args = parser.parse_args(argv)

    osc.validate_port(args.port)
    values = [parse_argument(value) for value in args.values]
    send_control_message(args.address, values, host=args.host, port=args.port)


if __name__ == "__main__":
    main()
