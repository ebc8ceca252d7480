"""
Tests for the cvbridge-send tool
"""

import socket

import pytest
from pythonosc.osc_message import OscMessage

from cvbridge import cli


class TestParseArgument:
    """Test argument type inference."""

    @pytest.mark.parametrize("text,expected", [
        ("0.5", 0.5),
        ("1.0", 1.0),
        ("1e-3", 0.001),
        ("-0.25", -0.25),
    ])
    def test_float(self, text, expected):
        value = cli.parse_argument(text)

        assert isinstance(value, float)
        assert value == expected

    @pytest.mark.parametrize("text", ["1", "0", "-3"])
    def test_bare_integer_becomes_float(self, text):
        """Test whole numbers are sent as floats the bridge will accept."""
        value = cli.parse_argument(text)

        assert isinstance(value, float)
        assert value == int(text)

    def test_string(self):
        assert cli.parse_argument("on") == "on"


class TestBuildMessage:
    """Test message construction."""

    def test_float_is_float32(self):
        message = cli.build_message("/lfo1", [0.5])

        assert message.address == "/lfo1"
        assert OscMessage(message.dgram).params == [0.5]
        assert b",f\x00\x00" in message.dgram

    def test_mixed_arguments(self):
        message = cli.build_message("/lfo1", [0.5, 2, "x"])

        assert OscMessage(message.dgram).params == [0.5, 2, "x"]


@pytest.fixture
def receiver():
    """Fixture providing a bound loopback UDP socket."""
    sock = socket.socket(socket.AF_INET, socket.SOCK_DGRAM)
    sock.bind(("127.0.0.1", 0))
    sock.settimeout(2.0)
    yield sock
    sock.close()


class TestSend:
    """Test sending over UDP."""

    def test_send_control_message(self, receiver):
        port = receiver.getsockname()[1]

        cli.send_control_message("/stepped8", [1.0], port=port)

        data, _ = receiver.recvfrom(1024)
        message = OscMessage(data)
        assert message.address == "/stepped8"
        assert message.params == [1.0]

    def test_main(self, receiver):
        port = receiver.getsockname()[1]

        cli.main(["/lfo2", "0.25", "--port", str(port)])

        data, _ = receiver.recvfrom(1024)
        assert OscMessage(data).params == [0.25]

    def test_main_invalid_port(self):
        with pytest.raises(ValueError, match="Port must be in range"):
            cli.main(["/lfo1", "0.5", "--port", "0"])

    def test_main_whole_number_sent_as_float(self, receiver):
        """Test `/stepped8 1` arrives as OSC float 1.0."""
        port = receiver.getsockname()[1]

        cli.main(["/stepped8", "1", "--port", str(port)])

        data, _ = receiver.recvfrom(1024)
        assert b",f\x00\x00" in data
        assert OscMessage(data).params == [1.0]
