"""Configuration sources and the MongoDB settings accessor."""
from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Any, Dict, Iterator, Mapping, Optional

import yaml

from .errors import ConfigurationMissing, InvalidArgument

logger = logging.getLogger("multitarget.config")

DEFAULT_CONNECTION_KEY = "ConnectionStrings:MongoDB"
DEFAULT_DATABASE_NAME_KEY = "MongoDB:DatabaseName"
ENVIRONMENT_PREFIX = "MULTITARGET__"
KEY_DELIMITER = ":"


def _flatten(values: Mapping[str, Any], prefix: str = "") -> Dict[str, Any]:
    flattened: Dict[str, Any] = {}
    for raw_key, value in values.items():
        key = f"{prefix}{KEY_DELIMITER}{raw_key}" if prefix else str(raw_key)
        if isinstance(value, Mapping):
            flattened.update(_flatten(value, key))
        else:
            flattened[key] = value
    return flattened


class Configuration(Mapping[str, Any]):
    """Read-only key-value settings addressed by ``Section:Key`` paths.

    Nested mappings are flattened on construction so ``{"MongoDB": {"DatabaseName": "app"}}``
    is exposed as ``"MongoDB:DatabaseName"``. Key lookups ignore case.
    """

    def __init__(self, values: Optional[Mapping[str, Any]] = None) -> None:
        flattened = _flatten(values or {})
        self._values: Dict[str, Any] = {key.lower(): value for key, value in flattened.items()}
        self._keys: Dict[str, str] = {key.lower(): key for key in flattened}

    @classmethod
    def from_yaml(cls, path: Path) -> "Configuration":
        """Load settings from a YAML document."""
        with path.open("r", encoding="utf-8") as handle:
            raw = yaml.safe_load(handle) or {}

        if not isinstance(raw, Mapping):
            raise ValueError(f"Configuration file {path} must contain a mapping at the top level")
        return cls(raw)

    @classmethod
    def from_environ(
        cls,
        environ: Optional[Mapping[str, str]] = None,
        *,
        prefix: str = ENVIRONMENT_PREFIX,
    ) -> "Configuration":
        """Collect ``PREFIX__Section__Key`` variables as ``Section:Key`` settings."""
        source = os.environ if environ is None else environ
        values = {
            name[len(prefix):].replace("__", KEY_DELIMITER): value
            for name, value in source.items()
            if name.startswith(prefix) and len(name) > len(prefix)
        }
        return cls(values)

    def merged(self, *others: Mapping[str, Any]) -> "Configuration":
        """Return a new configuration where later sources override earlier ones."""
        combined: Dict[str, Any] = {self._keys[key]: value for key, value in self._values.items()}
        for other in others:
            for key, value in _flatten(other).items():
                existing = next((name for name in combined if name.lower() == key.lower()), None)
                if existing is not None:
                    del combined[existing]
                combined[key] = value
        return Configuration(combined)

    def __getitem__(self, key: str) -> Any:
        return self._values[key.lower()]

    def __iter__(self) -> Iterator[str]:
        return iter(self._keys.values())

    def __len__(self) -> int:
        return len(self._values)

    def __contains__(self, key: object) -> bool:
        return isinstance(key, str) and key.lower() in self._values

    def __repr__(self) -> str:
        return f"Configuration(keys={sorted(self._keys.values())!r})"


def resolve_config_path(env_value: Optional[str]) -> Path:
    """Resolve the path to the library configuration file."""
    if env_value:
        candidate = Path(env_value).expanduser().resolve(strict=False)
    else:
        candidate = (Path(__file__).resolve().parent.parent / "config" / "library.yaml").resolve(strict=False)
    return candidate


def load_configuration(
    path: Optional[Path] = None,
    environ: Optional[Mapping[str, str]] = None,
) -> Configuration:
    """Load the YAML configuration file (when present) overlaid with environment variables."""
    config_path = path or resolve_config_path(
        (os.environ if environ is None else environ).get("MULTITARGET_CONFIG")
    )
    if config_path.is_file():
        base = Configuration.from_yaml(config_path)
        logger.info("Loaded configuration from %s", config_path)
    else:
        base = Configuration()
        logger.info("Configuration file %s not found; using environment only", config_path)
    return base.merged(Configuration.from_environ(environ))


class ConfigurationHelper:
    """Resolve the MongoDB connection settings from a key-value configuration."""

    def __init__(self, configuration: Mapping[str, Any], logger: Optional[logging.Logger] = None) -> None:
        if configuration is None:
            raise InvalidArgument("configuration", "configuration must be provided")
        self._configuration = configuration
        self._logger = logger or logging.getLogger("multitarget.config")

    @property
    def configuration(self) -> Mapping[str, Any]:
        return self._configuration

    def get_connection_endpoint(self, key: Optional[str] = None) -> str:
        """Return the MongoDB connection string stored under ``key``."""
        return self._require(key or DEFAULT_CONNECTION_KEY, "MongoDB connection string")

    def get_database_name(self, key: Optional[str] = None) -> str:
        """Return the MongoDB database name stored under ``key``."""
        return self._require(key or DEFAULT_DATABASE_NAME_KEY, "MongoDB database name")

    def _require(self, key: str, label: str) -> str:
        value = self._configuration.get(key)
        if value is None or not str(value).strip():
            self._logger.warning("%s not found for key: %s", label, key)
            raise ConfigurationMissing(key, f"{label} not found for key: {key}")

        self._logger.info("Retrieved %s for key: %s", label, key)
        return str(value)


__all__ = [
    "Configuration",
    "ConfigurationHelper",
    "DEFAULT_CONNECTION_KEY",
    "DEFAULT_DATABASE_NAME_KEY",
    "load_configuration",
    "resolve_config_path",
]
