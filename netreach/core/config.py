"""Configuration management for netreach."""

import copy
import json
import numbers
import platform
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional

import yaml
from loguru import logger

from netreach.core.constants import (
    CELLULAR_INTERFACE_PATTERNS,
    DEFAULT_LOG_LEVEL,
    DEFAULT_POLL_INTERVAL,
    TRANSIENT_INTERFACE_PATTERNS,
    config_dir_override,
)
from netreach.core.errors import ConfigValidationError
from netreach.providers.base import is_valid_hostname

LOG_LEVELS = ("trace", "debug", "info", "success", "warning", "error", "critical")


def _check_log_level(value: Any) -> Optional[str]:
    if not isinstance(value, str) or value.lower() not in LOG_LEVELS:
        return f"expected one of {', '.join(LOG_LEVELS)}"
    return None


def _check_log_file(value: Any) -> Optional[str]:
    if value is not None and not isinstance(value, str):
        return "expected a path or null"
    return None


def _check_bool(value: Any) -> Optional[str]:
    return None if isinstance(value, bool) else "expected true or false"


def _check_poll_interval(value: Any) -> Optional[str]:
    if isinstance(value, bool) or not isinstance(value, numbers.Real):
        return "expected a number of seconds"
    if value <= 0:
        return "must be greater than zero"
    return None


def _check_patterns(value: Any) -> Optional[str]:
    if not isinstance(value, list) or not all(isinstance(p, str) and p for p in value):
        return "expected a list of interface name patterns"
    return None


def _check_targets(value: Any) -> Optional[str]:
    if not isinstance(value, list):
        return "expected a list of hostnames"
    invalid = [t for t in value if not is_valid_hostname(t)]
    if invalid:
        return f"not a hostname or IP address: {', '.join(map(str, invalid))}"
    return None


# Keys with a fixed type. Anything else is stored as given.
VALIDATORS: Dict[str, Callable[[Any], Optional[str]]] = {
    "log_level": _check_log_level,
    "log_file": _check_log_file,
    "allow_cellular": _check_bool,
    "poll_interval": _check_poll_interval,
    "interfaces.cellular": _check_patterns,
    "interfaces.transient": _check_patterns,
    "targets": _check_targets,
}


def validate(key: str, value: Any) -> None:
    """Raise ConfigValidationError if value does not fit a known key."""
    check = VALIDATORS.get(key)
    if check is None:
        return
    reason = check(value)
    if reason:
        raise ConfigValidationError(key, value, reason)


def _flatten(data: Dict[str, Any], prefix: str = "") -> Dict[str, Any]:
    """Dot-notation view of nested dicts: {"a": {"b": 1}} -> {"a.b": 1}."""
    flat = {}
    for key, value in data.items():
        path = f"{prefix}{key}"
        if isinstance(value, dict):
            flat.update(_flatten(value, f"{path}."))
        else:
            flat[path] = value
    return flat


class Config:
    """Manages netreach configuration."""

    def __init__(self, config_path: Optional[Path] = None):
        """Initialize configuration.

        Args:
            config_path: Path to configuration file. If None, uses default path.
        """
        self.config_path = config_path or self._get_default_config_path()
        self.config_data: Dict[str, Any] = {}
        self._load_config()

    @staticmethod
    def _get_default_config_path() -> Path:
        """Get default configuration path based on platform."""
        config_dir = config_dir_override()

        if config_dir is None:
            system = platform.system()
            home = Path.home()

            if system == "Windows":
                config_dir = home / "AppData" / "Roaming" / "netreach"
            elif system == "Darwin":
                config_dir = home / "Library" / "Application Support" / "netreach"
            else:  # Linux and others
                config_dir = home / ".config" / "netreach"

        config_dir.mkdir(parents=True, exist_ok=True)
        return config_dir / "config.json"

    def _load_config(self) -> None:
        """Load configuration from file, filling keys it lacks with defaults."""
        self.config_data = self._get_default_config()

        if not self.config_path.exists() or self.config_path.stat().st_size == 0:
            self.save()
            return

        try:
            with open(self.config_path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except (json.JSONDecodeError, IOError) as e:
            logger.error(f"[Config] Error loading {self.config_path}: {e}. Using default configuration.")
            return

        if not isinstance(data, dict):
            logger.error(f"[Config] {self.config_path} does not hold an object. Using default configuration.")
            return

        # Stored values are kept even when invalid; typed getters fall back per key
        self._merge(data, check=False)

    @staticmethod
    def _get_default_config() -> Dict[str, Any]:
        """Get default configuration."""
        return {
            "log_level": DEFAULT_LOG_LEVEL,
            "log_file": None,
            "allow_cellular": True,
            "poll_interval": DEFAULT_POLL_INTERVAL,
            "interfaces": {
                "cellular": list(CELLULAR_INTERFACE_PATTERNS),
                "transient": list(TRANSIENT_INTERFACE_PATTERNS),
            },
            "targets": [],
        }

    def _merge(self, data: Dict[str, Any], check: bool) -> List[str]:
        """
        Merge nested data into the configuration key by key.

        Args:
            data: Nested configuration values
            check: Skip values that fail validation instead of storing them

        Returns:
            Keys that were skipped
        """
        skipped = []
        for key, value in _flatten(data).items():
            if check:
                try:
                    validate(key, value)
                except ConfigValidationError as e:
                    logger.warning(f"[Config] Skipping {e}")
                    skipped.append(key)
                    continue
            self._assign(key, copy.deepcopy(value))
        return skipped

    def save(self) -> None:
        """Save configuration to file."""
        self.config_path.parent.mkdir(parents=True, exist_ok=True)
        with open(self.config_path, "w", encoding="utf-8") as f:
            json.dump(self.config_data, f, indent=2)

    def get(self, key: str, default: Any = None) -> Any:
        """Get configuration value.

        Args:
            key: Configuration key (supports dot notation, e.g., 'interfaces.cellular')
            default: Default value if key doesn't exist

        Returns:
            Configuration value or default
        """
        value = self.config_data
        for k in key.split("."):
            if not isinstance(value, dict) or value.get(k) is None:
                return default
            value = value[k]
        return value

    def _get_checked(self, key: str, fallback: Any) -> Any:
        """Stored value of a typed key, or fallback (with a warning) if it is invalid."""
        value = self.get(key, fallback)
        try:
            validate(key, value)
        except ConfigValidationError as e:
            logger.warning(f"[Config] {e}; using {fallback!r}")
            return fallback
        return value

    def set(self, key: str, value: Any) -> None:
        """Set configuration value.

        Args:
            key: Configuration key (supports dot notation)
            value: Value to set

        Raises:
            ConfigValidationError: value does not fit a known key
        """
        validate(key, value)
        self._assign(key, value)

    def _assign(self, key: str, value: Any) -> None:
        keys = key.split(".")
        data = self.config_data
        for k in keys[:-1]:
            if not isinstance(data.get(k), dict):
                data[k] = {}
            data = data[k]
        data[keys[-1]] = value

    def get_poll_interval(self) -> float:
        """Seconds between interface polls."""
        return float(self._get_checked("poll_interval", DEFAULT_POLL_INTERVAL))

    def get_allow_cellular(self) -> bool:
        """Whether a cellular (WWAN) connection counts as reachable."""
        return self._get_checked("allow_cellular", True)

    def get_log_level(self) -> str:
        return self._get_checked("log_level", "info")

    def get_interface_patterns(self, kind: str) -> List[str]:
        """Interface name patterns for 'cellular' or 'transient' links."""
        defaults = {
            "cellular": CELLULAR_INTERFACE_PATTERNS,
            "transient": TRANSIENT_INTERFACE_PATTERNS,
        }
        return list(self._get_checked(f"interfaces.{kind}", list(defaults[kind])))

    def get_targets(self) -> List[str]:
        """Get the hostnames watched when no target is given."""
        return list(self._get_checked("targets", []))

    def add_target(self, hostname: str) -> bool:
        """Add a watched hostname.

        Returns:
            True if added, False if it was already present

        Raises:
            ConfigValidationError: hostname is not a hostname or IP address
        """
        targets = self.get_targets()
        if hostname in targets:
            return False
        self.set("targets", targets + [hostname])
        self.save()
        return True

    def remove_target(self, hostname: str) -> bool:
        """Remove a watched hostname.

        Returns:
            True if target was removed, False otherwise
        """
        targets = self.get_targets()
        if hostname not in targets:
            return False
        self.config_data["targets"] = [t for t in targets if t != hostname]
        self.save()
        return True

    def import_config(self, config_file: Path, file_format: str = "json") -> bool:
        """Import configuration from file.

        Values are merged key by key. Invalid values for known keys are
        skipped with a warning; duplicate targets are dropped.

        Args:
            config_file: Path to configuration file
            file_format: File format ('json' or 'yaml')

        Returns:
            True if successful, False otherwise
        """
        try:
            with open(config_file, "r", encoding="utf-8") as f:
                if file_format.lower() == "yaml":
                    data = yaml.safe_load(f)
                else:
                    data = json.load(f)
        except (OSError, ValueError, yaml.YAMLError) as e:
            logger.error(f"[Config] Error importing {config_file}: {e}")
            return False

        if not isinstance(data, dict):
            logger.error(f"[Config] {config_file} does not hold a configuration mapping")
            return False

        data = copy.deepcopy(data)
        if isinstance(data.get("targets"), list):
            data["targets"] = list(dict.fromkeys(data["targets"]))

        skipped = self._merge(data, check=True)
        self.save()
        logger.info(f"[Config] Imported {config_file} ({len(skipped)} invalid value(s) skipped)")
        return True

    def export_config(self, output_file: Path, file_format: str = "json") -> bool:
        """Export configuration to file.

        Args:
            output_file: Path to output file
            file_format: File format ('json' or 'yaml')

        Returns:
            True if successful, False otherwise
        """
        try:
            with open(output_file, "w", encoding="utf-8") as f:
                if file_format.lower() == "yaml":
                    yaml.safe_dump(self.config_data, f, default_flow_style=False, sort_keys=False)
                else:
                    json.dump(self.config_data, f, indent=2)
        except (OSError, yaml.YAMLError) as e:
            logger.error(f"[Config] Error exporting to {output_file}: {e}")
            return False
        return True
