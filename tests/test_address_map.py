"""
Tests for AddressMap

Validates lookups, immutability, configuration validation and YAML loading.
"""

from pathlib import Path

import pytest
import yaml

from cvbridge.address_map import (
    DEFAULT_ADDRESSES,
    AddressMap,
    load_address_map,
    validate_address_map_config,
)


class TestAddressMapLookup:
    """Test exact-match lookups."""

    def test_default_table(self):
        """Test built-in table maps the LFO and stepped addresses."""
        amap = AddressMap.default()

        assert amap.channel_count == 8
        assert amap.lookup("/lfo1") == 0
        assert amap.lookup("/lfo4") == 3
        assert amap.lookup("/stepped32") == 4
        assert amap.lookup("/stepped8") == 5
        assert len(amap) == len(DEFAULT_ADDRESSES)

    def test_unknown_address_is_no_match(self):
        """Test unknown addresses return None instead of raising."""
        amap = AddressMap.default()

        assert amap.lookup("/unknown") is None
        assert "/unknown" not in amap

    def test_lookup_is_exact(self):
        """Test no prefix, suffix or case folding is applied."""
        amap = AddressMap.default()

        assert amap.lookup("/lfo") is None
        assert amap.lookup("/lfo1/") is None
        assert amap.lookup("/LFO1") is None

    def test_custom_assignments(self, address_map):
        """Test a deployment with different channel assignments."""
        assert address_map.lookup("/stepped8") == 7
        assert address_map.lookup("/stepped32") == 6
        assert set(address_map) == {"/lfo1", "/lfo2", "/lfo3", "/lfo4", "/stepped32", "/stepped8"}

    def test_source_dict_changes_do_not_leak(self):
        """Test the map is immutable after construction."""
        source = {"/a": 0}
        amap = AddressMap(source)

        source["/b"] = 1
        copy = amap.as_dict()
        copy["/c"] = 2

        assert "/b" not in amap
        assert "/c" not in amap
        assert len(amap) == 1


class TestValidation:
    """Test configuration validation errors."""

    def test_missing_addresses(self):
        with pytest.raises(ValueError, match="missing 'addresses'"):
            validate_address_map_config({"channels": 8})

    def test_empty_addresses(self):
        with pytest.raises(ValueError, match="non-empty mapping"):
            validate_address_map_config({"addresses": {}})

    def test_address_without_slash(self):
        with pytest.raises(ValueError, match="Invalid OSC address"):
            validate_address_map_config({"addresses": {"lfo1": 0}})

    def test_channel_out_of_range(self):
        """Test channel indices must be below the channel count."""
        with pytest.raises(ValueError, match="range 0-7"):
            validate_address_map_config({"channels": 8, "addresses": {"/lfo1": 8}})

        with pytest.raises(ValueError, match="range 0-3"):
            AddressMap({"/lfo1": 4}, channel_count=4)

    def test_negative_channel(self):
        with pytest.raises(ValueError, match="Invalid channel"):
            validate_address_map_config({"addresses": {"/lfo1": -1}})

    def test_non_integer_channel(self):
        """Test floats, strings and booleans are rejected as channels."""
        for bad in (1.5, "2", True):
            with pytest.raises(ValueError, match="must be an integer"):
                validate_address_map_config({"addresses": {"/lfo1": bad}})

    def test_invalid_channel_count(self):
        for bad in (0, 129, "8", True):
            with pytest.raises(ValueError, match="Invalid channel count"):
                validate_address_map_config({"channels": bad, "addresses": {"/lfo1": 0}})

    def test_not_a_mapping(self):
        with pytest.raises(ValueError, match="must be a mapping"):
            validate_address_map_config(["/lfo1"])


class TestLoadAddressMap:
    """Test YAML loading."""

    def test_load_yaml(self, tmp_path):
        """Test a YAML file with channels and addresses."""
        path = tmp_path / "map.yaml"
        path.write_text(yaml.safe_dump({
            "channels": 8,
            "addresses": {"/lfo1": 0, "/stepped8": 7},
        }))

        amap = load_address_map(str(path))

        assert amap.channel_count == 8
        assert amap.lookup("/stepped8") == 7
        assert amap.lookup("/lfo2") is None

    def test_channels_default_to_eight(self, tmp_path):
        path = tmp_path / "map.yaml"
        path.write_text("addresses:\n  /fader1: 3\n")

        amap = load_address_map(str(path))

        assert amap.channel_count == 8
        assert amap.lookup("/fader1") == 3

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError, match="Address map file not found"):
            load_address_map(str(tmp_path / "missing.yaml"))

    def test_invalid_content(self, tmp_path):
        path = tmp_path / "map.yaml"
        path.write_text("addresses:\n  /fader1: 12\n")

        with pytest.raises(ValueError, match="Invalid channel"):
            load_address_map(str(path))

    def test_shipped_config_matches_default(self):
        """Test config/address_map.yaml describes the built-in table."""
        shipped = Path(__file__).resolve().parents[1] / "config" / "address_map.yaml"
        amap = load_address_map(str(shipped))

        assert amap.as_dict() == AddressMap.default().as_dict()
        assert amap.channel_count == AddressMap.default().channel_count
