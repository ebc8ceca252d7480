"""
Control Message Decoder - raw datagram → ControlMessage.

Accepts exactly one OSC message whose first argument is a float. Anything
else (bundles, undecodable bytes, missing or non-float first argument,
NaN/inf, and addresses outside the address map when one is given) decodes to
None. Decoding never raises.
"""

import math
from dataclasses import dataclass
from typing import Optional

from pythonosc import osc_message

from cvbridge.address_map import AddressMap


@dataclass(frozen=True)
class ControlMessage:
    """One decoded control-surface update."""
    address: str
    value: float


class ControlMessageDecoder:
    """Parse datagrams into ControlMessage, discarding everything else.

    Args:
        address_map: Optional AddressMap; when given, unmapped addresses
                     are treated as not applicable

    Examples:
        >>> from pythonosc.osc_message_builder import OscMessageBuilder
        >>> builder = OscMessageBuilder("/lfo1")
        >>> builder.add_arg(0.5)
        >>> ControlMessageDecoder().decode(builder.build().dgram)
        ControlMessage(address='/lfo1', value=0.5)
    """

    def __init__(self, address_map: Optional[AddressMap] = None):
        self.address_map = address_map

    def decode(self, dgram: bytes) -> Optional[ControlMessage]:
        """Decode one datagram.

        Args:
            dgram: Raw datagram bytes

        Returns:
            ControlMessage, or None if the datagram is not applicable
        """
        # Bundles start with '#bundle', messages with '/'
        if not osc_message.OscMessage.dgram_is_message(dgram):
            return None

        try:
            message = osc_message.OscMessage(dgram)
            address = message.address
            params = message.params
        except (osc_message.ParseError, ValueError, IndexError, UnicodeDecodeError):
            return None

        if self.address_map is not None and address not in self.address_map:
            return None

        if not params:
            return None

        value = params[0]
        # OSC 'f' and 'd' both parse to float; ints, strings, True/False don't
        if not isinstance(value, float) or not math.isfinite(value):
            return None

        return ControlMessage(address=address, value=value)
