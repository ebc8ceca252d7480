"""
Address Map - OSC address to channel index lookup.

The table is configuration, not behavior: deployments differ only in which
addresses exist and which channel each one drives. The built-in default
covers the stock LFO/stepped patch; a YAML file replaces it.

YAML format:
    channels: 8            # optional, default 8
    addresses:
      /lfo1: 0
      /lfo2: 1
      /stepped8: 7
"""

from pathlib import Path
from types import MappingProxyType
from typing import Dict, Iterator, Mapping, Optional

import yaml

from cvbridge.log import get_logger

logger = get_logger("address_map")


DEFAULT_CHANNEL_COUNT = 8
MAX_CHANNEL_COUNT = 128  # One MIDI controller number per channel

DEFAULT_ADDRESSES = {
    "/lfo1": 0,
    "/lfo2": 1,
    "/lfo3": 2,
    "/lfo4": 3,
    "/stepped32": 4,
    "/stepped8": 5,
}


class AddressMap:
    """Immutable mapping from OSC address to channel index.

    Lookups are exact string matches; unknown addresses return None rather
    than raising.

    Args:
        addresses: Mapping of address string → channel index
        channel_count: Number of channels the indices must fit into

    Raises:
        ValueError: If any entry is invalid (see validate_address_map_config)

    Examples:
        >>> amap = AddressMap({"/lfo1": 0})
        >>> amap.lookup("/lfo1")
        0
        >>> amap.lookup("/unknown") is None
        True
    """

    def __init__(self, addresses: Mapping[str, int], channel_count: int = DEFAULT_CHANNEL_COUNT):
        validate_address_map_config({"channels": channel_count, "addresses": dict(addresses)})
        self._channel_count = channel_count
        self._addresses = MappingProxyType(dict(addresses))

    @classmethod
    def default(cls) -> "AddressMap":
        """Return the built-in LFO/stepped address table on 8 channels."""
        return cls(DEFAULT_ADDRESSES, DEFAULT_CHANNEL_COUNT)

    @property
    def channel_count(self) -> int:
        return self._channel_count

    def lookup(self, address: str) -> Optional[int]:
        """Return the channel for ``address``, or None if it isn't mapped."""
        return self._addresses.get(address)

    def as_dict(self) -> Dict[str, int]:
        return dict(self._addresses)

    def __contains__(self, address) -> bool:
        return address in self._addresses

    def __len__(self) -> int:
        return len(self._addresses)

    def __iter__(self) -> Iterator[str]:
        return iter(self._addresses)

    def __repr__(self) -> str:
        return f"AddressMap({dict(self._addresses)!r}, channel_count={self._channel_count})"


def validate_address_map_config(config: dict) -> None:
    """
    Validate an address map configuration dictionary.

    Validates:
    - 'channels' (optional) is an integer in 1-128
    - 'addresses' exists and is a non-empty mapping
    - every address is a string starting with '/'
    - every channel index is an integer in [0, channels)

    Args:
        config: Parsed configuration dictionary

    Raises:
        ValueError: If any validation fails
    """
    if not isinstance(config, dict):
        raise ValueError(
            "Address map configuration must be a mapping\n"
            "Expected keys: 'channels' (optional), 'addresses'"
        )

    channels = config.get('channels', DEFAULT_CHANNEL_COUNT)
    # bool is an int subclass; True is not a channel count
    if isinstance(channels, bool) or not isinstance(channels, int) \
            or not (1 <= channels <= MAX_CHANNEL_COUNT):
        raise ValueError(
            f"Invalid channel count: {channels!r}\n"
            f"Must be an integer in range 1-{MAX_CHANNEL_COUNT}"
        )

    addresses = config.get('addresses')
    if addresses is None:
        raise ValueError(
            "Configuration missing 'addresses'\n"
            "Must map OSC addresses to channel indices, e.g. /lfo1: 0"
        )
    if not isinstance(addresses, dict) or not addresses:
        raise ValueError(
            "'addresses' must be a non-empty mapping of OSC address to channel index"
        )

    for address, channel in addresses.items():
        if not isinstance(address, str) or not address.startswith('/'):
            raise ValueError(
                f"Invalid OSC address: {address!r}\n"
                f"Addresses must be strings starting with '/'"
            )
        if isinstance(channel, bool) or not isinstance(channel, int):
            raise ValueError(
                f"Invalid channel for {address}: {channel!r}\n"
                f"Channel must be an integer"
            )
        if not (0 <= channel < channels):
            raise ValueError(
                f"Invalid channel for {address}: {channel}\n"
                f"Channel must be in range 0-{channels - 1}"
            )


def load_address_map(path: str) -> AddressMap:
    """
    Load and validate an address map from a YAML file.

    Args:
        path: Path to the YAML file

    Returns:
        AddressMap built from the file

    Raises:
        FileNotFoundError: If the file doesn't exist
        yaml.YAMLError: If YAML syntax is invalid
        ValueError: If the configuration is invalid
    """
    config_path = Path(path)

    if not config_path.exists():
        raise FileNotFoundError(
            f"Address map file not found: {path}\n"
            f"See config/address_map.yaml for a template."
        )

    with open(config_path, 'r') as f:
        config = yaml.safe_load(f)

    validate_address_map_config(config)

    address_map = AddressMap(
        config['addresses'],
        config.get('channels', DEFAULT_CHANNEL_COUNT),
    )
    logger.info(f"Loaded {len(address_map)} addresses on {address_map.channel_count} channels from {path}")
    return address_map
