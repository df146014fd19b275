"""Tests for configuration management."""

import json
import tempfile
from pathlib import Path

import pytest

from netreach.core.config import Config
from netreach.core.errors import ConfigValidationError
from netreach.providers import InterfacePollingProvider, default_provider


@pytest.fixture
def temp_config_file():
    """Create a temporary config file."""
    with tempfile.NamedTemporaryFile(mode="w", suffix=".json", delete=False) as f:
        config_path = Path(f.name)
    yield config_path
    if config_path.exists():
        config_path.unlink()


def test_config_initialization(temp_config_file):
    """Test config initialization."""
    config = Config(temp_config_file)
    assert config.config_path == temp_config_file
    assert isinstance(config.config_data, dict)


def test_config_default_values(temp_config_file):
    """Test default configuration values."""
    config = Config(temp_config_file)
    assert config.get("allow_cellular") is True
    assert config.get("poll_interval") == 2.0
    assert "wwan*" in config.get("interfaces.cellular")
    assert config.get("interfaces.transient") == ["ppp*"]
    assert config.get_targets() == []


def test_config_get_set(temp_config_file):
    """Test getting and setting config values."""
    config = Config(temp_config_file)

    # Test simple key
    config.set("allow_cellular", False)
    assert config.get("allow_cellular") is False

    # Test nested key
    config.set("interfaces.cellular", ["usb*"])
    assert config.get("interfaces.cellular") == ["usb*"]

    # Test default value
    assert config.get("nonexistent_key", "default") == "default"
    assert config.get("allow_cellular.nested", "default") == "default"


def test_config_add_remove_target(temp_config_file):
    """Test adding and removing targets."""
    config = Config(temp_config_file)

    assert config.add_target("example.com") is True
    assert config.add_target("example.com") is False
    assert config.get_targets() == ["example.com"]

    assert config.remove_target("example.com") is True
    assert config.get_targets() == []

    # Try removing non-existent target
    assert config.remove_target("nonexistent") is False


def test_config_persistence(temp_config_file):
    """Test configuration persistence."""
    config1 = Config(temp_config_file)
    config1.set("poll_interval", 5.0)
    config1.add_target("example.org")

    config2 = Config(temp_config_file)
    assert config2.get("poll_interval") == 5.0
    assert config2.get_targets() == ["example.org"]


def test_config_corrupt_file_uses_defaults(temp_config_file):
    temp_config_file.write_text("{not json", encoding="utf-8")

    config = Config(temp_config_file)

    assert config.get("allow_cellular") is True


def test_config_dir_from_environment(tmp_path, monkeypatch):
    monkeypatch.setenv("NETREACH_CONFIG_DIR", str(tmp_path / "custom"))

    config = Config()

    assert config.config_path == tmp_path / "custom" / "config.json"
    assert config.config_path.exists()


@pytest.mark.parametrize("file_format, suffix", [("json", ".json"), ("yaml", ".yaml")])
def test_config_export_import(temp_config_file, file_format, suffix):
    """Test config export and import."""
    config = Config(temp_config_file)
    config.set("custom_key", "custom_value")

    export_file = temp_config_file.parent / f"netreach-export{suffix}"
    new_config_file = temp_config_file.parent / "netreach-new-config.json"
    try:
        assert config.export_config(export_file, file_format) is True
        assert export_file.exists()

        new_config = Config(new_config_file)
        assert new_config.import_config(export_file, file_format) is True
        assert new_config.get("custom_key") == "custom_value"
    finally:
        for path in (export_file, new_config_file):
            if path.exists():
                path.unlink()


def test_config_import_missing_file(temp_config_file):
    config = Config(temp_config_file)
    assert config.import_config(temp_config_file.parent / "does-not-exist.json") is False


def test_default_provider_from_config(temp_config_file):
    config = Config(temp_config_file)
    config.set("poll_interval", 0.5)
    config.set("interfaces.cellular", ["usb*"])

    provider = default_provider(config)

    assert isinstance(provider, InterfacePollingProvider)
    assert provider.poll_interval == 0.5
    assert provider.cellular_patterns == ["usb*"]
    assert provider.transient_patterns == ["ppp*"]


def test_config_fills_missing_keys_from_defaults(temp_config_file):
    temp_config_file.write_text(json.dumps({"interfaces": {"cellular": ["usb*"]}}), encoding="utf-8")

    config = Config(temp_config_file)

    assert config.get("interfaces.cellular") == ["usb*"]
    assert config.get("interfaces.transient") == ["ppp*"]
    assert config.get("poll_interval") == 2.0


@pytest.mark.parametrize(
    "key, value",
    [
        ("poll_interval", "fast"),
        ("poll_interval", 0),
        ("poll_interval", True),
        ("allow_cellular", "yes"),
        ("log_level", "loud"),
        ("interfaces.cellular", "wwan*"),
        ("targets", ["bad host"]),
    ],
)
def test_config_set_rejects_invalid_values(temp_config_file, key, value):
    config = Config(temp_config_file)
    before = config.get(key)

    with pytest.raises(ConfigValidationError) as exc_info:
        config.set(key, value)

    assert exc_info.value.key == key
    assert config.get(key) == before


def test_invalid_stored_values_fall_back(temp_config_file):
    temp_config_file.write_text(
        json.dumps({"poll_interval": "fast", "allow_cellular": "no", "targets": "example.com"}),
        encoding="utf-8",
    )

    config = Config(temp_config_file)

    assert config.get_poll_interval() == 2.0
    assert config.get_allow_cellular() is True
    assert config.get_targets() == []
    assert default_provider(config).poll_interval == 2.0


def test_add_target_rejects_invalid_hostname(temp_config_file):
    config = Config(temp_config_file)

    with pytest.raises(ConfigValidationError):
        config.add_target("bad host")

    assert config.get_targets() == []


def test_import_skips_invalid_values(temp_config_file, tmp_path):
    import_file = tmp_path / "import.yaml"
    import_file.write_text(
        "poll_interval: soon\n"
        "allow_cellular: false\n"
        "interfaces:\n"
        "  transient: [ppp*, tun*]\n"
        "targets: [example.com, example.com, 10.0.0.1]\n",
        encoding="utf-8",
    )
    config = Config(temp_config_file)

    assert config.import_config(import_file, "yaml") is True

    assert config.get("poll_interval") == 2.0
    assert config.get_allow_cellular() is False
    assert config.get_interface_patterns("transient") == ["ppp*", "tun*"]
    assert config.get_interface_patterns("cellular") == config.get("interfaces.cellular")
    assert config.get_targets() == ["example.com", "10.0.0.1"]


def test_import_rejects_non_mapping(temp_config_file, tmp_path):
    import_file = tmp_path / "import.json"
    import_file.write_text("[1, 2, 3]", encoding="utf-8")

    assert Config(temp_config_file).import_config(import_file) is False
