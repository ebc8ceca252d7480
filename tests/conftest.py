"""Pytest fixtures shared across cvbridge tests.

Provides:
- osc_dgram: builds raw OSC datagrams with explicit type tags
- midi_port: Mock standing in for an open mido output port
- address_map: the deployment used in the end-to-end examples
  (/lfo1 → 0 ... /stepped8 → 7)
- wait_for: polls a predicate until it holds or a timeout expires
"""

import time
from unittest.mock import Mock

import pytest
from pythonosc.osc_message_builder import OscMessageBuilder

from cvbridge.address_map import AddressMap
from cvbridge.store import ChannelStateStore


@pytest.fixture
def osc_dgram():
    """Fixture returning a datagram builder.

    Example:
        def test_decode(osc_dgram):
            data = osc_dgram("/lfo1", (0.5, "f"))
    """
    def build(address, *args):
        builder = OscMessageBuilder(address=address)
        for arg in args:
            if isinstance(arg, tuple):
                value, arg_type = arg
                builder.add_arg(value, arg_type)
            else:
                builder.add_arg(arg)
        return builder.build().dgram

    return build


@pytest.fixture
def midi_port():
    """Fixture providing a Mock MIDI output port (send/close recorded)."""
    return Mock(name="midi_port")


@pytest.fixture
def address_map():
    """Fixture providing an 8-channel map with /stepped8 on channel 7."""
    return AddressMap({
        "/lfo1": 0,
        "/lfo2": 1,
        "/lfo3": 2,
        "/lfo4": 3,
        "/stepped32": 6,
        "/stepped8": 7,
    }, channel_count=8)


@pytest.fixture
def store():
    """Fixture providing a fresh 8-channel store."""
    return ChannelStateStore(8)


@pytest.fixture
def wait_for():
    """Fixture returning wait_for(predicate, timeout=2.0) -> bool."""
    def wait(predicate, timeout=2.0, interval=0.01):
        deadline = time.time() + timeout
        while time.time() < deadline:
            if predicate():
                return True
            time.sleep(interval)
        return predicate()

    return wait
