"""Layered configuration resolution for the harness.

Values come from, in increasing priority, ``config/application.yml``, the
``config/application-<ENV>.yml`` profile, environment variables and explicit
overrides such as behave ``-D`` user data.
"""

from __future__ import annotations

import logging
import os
from collections.abc import Mapping
from pathlib import Path
from types import MappingProxyType
from typing import Any

import yaml
from omegaconf import DictConfig, OmegaConf
from omegaconf.errors import OmegaConfBaseException

from apiharness.constants import (
    BASE_CONFIG_PATH,
    DEFAULT_ENVIRONMENT,
    ENV_CONFIG_TEMPLATE,
    ENVIRONMENT_OVERRIDE_KEY,
    ENVIRONMENT_VARIABLE,
    INT_MAX,
    INT_MIN,
    RESOURCE_ROOT_VARIABLE,
)
from apiharness.exceptions import ConfigError, ConfigParseError

logger = logging.getLogger(__name__)


def env_var_name(key: str) -> str:
    """Return the environment variable that overrides a dotted config key.

    Parameters
    ----------
    key : str
        Dotted configuration key, e.g. ``rest.base-url``

    Returns
    -------
    str
        Upper-cased name with ``.`` and ``-`` replaced by ``_``, e.g. ``REST_BASE_URL``
    """
    return key.upper().replace(".", "_").replace("-", "_")


def stringify_scalar(value: Any) -> str:
    """Coerce a scalar config value to its string form.

    Booleans render as lowercase ``true``/``false`` so that documents written
    with YAML booleans read the same as documents written with strings.
    """
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def flatten(data: Mapping[str, Any], prefix: str = "") -> dict[str, Any]:
    """Flatten nested mappings into dotted keys.

    Parameters
    ----------
    data : Mapping[str, Any]
        Nested mapping as loaded from YAML
    prefix : str
        Key prefix accumulated during recursion

    Returns
    -------
    dict[str, Any]
        Flat mapping; scalars are string-coerced, lists are kept verbatim
        and null values are dropped
    """
    flat: dict[str, Any] = {}
    for raw_key, value in data.items():
        key = f"{prefix}.{raw_key}" if prefix else str(raw_key)
        if isinstance(value, Mapping):
            flat.update(flatten(value, key))
        elif value is None:
            continue
        elif isinstance(value, list):
            flat[key] = value
        else:
            flat[key] = stringify_scalar(value)
    return flat


class ConfigResolver:
    """Hierarchical configuration with ordered overrides.

    Loads ``config/application.yml`` as the base document and overlays
    ``config/application-<env>.yml``. Lookups check, highest priority first:
    process-level overrides, environment variables, the overlay, the base
    document and finally the caller-supplied default.

    Parameters
    ----------
    environment : str | None
        Environment name. If None, the ``env`` override, then the ``ENV``
        environment variable, then ``dev`` is used
    overrides : Mapping[str, str] | None
        Process-level overrides keyed by exact dotted key
    resource_root : str | Path | None
        Directory holding ``config/``. If None, ``APIHARNESS_RESOURCE_ROOT``
        or the current working directory is used

    Raises
    ------
    ConfigError
        If a configuration document exists but is not a valid YAML mapping
    """

    def __init__(
        self,
        environment: str | None = None,
        overrides: Mapping[str, str] | None = None,
        resource_root: str | Path | None = None,
    ) -> None:
        self._overrides: dict[str, str] = {
            str(key): stringify_scalar(value) for key, value in (overrides or {}).items()
        }
        self.resource_root = resolve_resource_root(resource_root)
        self.environment = (
            environment
            or self._overrides.get(ENVIRONMENT_OVERRIDE_KEY)
            or os.environ.get(ENVIRONMENT_VARIABLE)
            or DEFAULT_ENVIRONMENT
        )

        self._base = self._load_document(self.resource_root / BASE_CONFIG_PATH)
        self._overlay = self._load_document(
            self.resource_root / ENV_CONFIG_TEMPLATE.format(env=self.environment)
        )

        merged = dict(self._base)
        merged.update(self._overlay)
        self._snapshot = MappingProxyType(merged)

        logger.info(
            "Configuration loaded for environment '%s' - %d keys",
            self.environment,
            len(self._snapshot),
        )

    @property
    def snapshot(self) -> Mapping[str, Any]:
        """Merged flat view of base and overlay documents, read-only."""
        return self._snapshot

    @property
    def overrides(self) -> Mapping[str, str]:
        return MappingProxyType(self._overrides)

    def get_string(self, key: str, default: str | None = None) -> str | None:
        """Resolve a key as a string.

        Parameters
        ----------
        key : str
            Dotted configuration key
        default : str | None
            Value returned when no source defines the key

        Returns
        -------
        str | None
            Resolved value or default
        """
        value = self._resolve(key)
        return value if value is not None else default

    def get_int(self, key: str, default: int = 0) -> int:
        """Resolve a key as a 32-bit signed integer.

        Raises
        ------
        ConfigParseError
            If a value exists but is not an integer in the 32-bit range
        """
        value = self._resolve(key)
        if value is None:
            return default
        number = self._parse_integer(key, value, "int")
        if number < INT_MIN or number > INT_MAX:
            raise ConfigParseError(key, value, "int")
        return number

    def get_long(self, key: str, default: int = 0) -> int:
        """Resolve a key as an integer without a range limit.

        Raises
        ------
        ConfigParseError
            If a value exists but is not an integer
        """
        value = self._resolve(key)
        if value is None:
            return default
        return self._parse_integer(key, value, "long")

    def get_boolean(self, key: str, default: bool = False) -> bool:
        """Resolve a key as a boolean; only a case-insensitive ``true`` is truthy."""
        value = self._resolve(key)
        if value is None:
            return default
        return value.strip().lower() == "true"

    def _resolve(self, key: str) -> str | None:
        if key in self._overrides:
            return self._overrides[key]

        env_value = os.environ.get(env_var_name(key))
        if env_value is not None:
            return env_value

        if key in self._overlay:
            return stringify_scalar(self._overlay[key])
        if key in self._base:
            return stringify_scalar(self._base[key])
        return None

    @staticmethod
    def _parse_integer(key: str, value: str, kind: str) -> int:
        try:
            return int(value.strip())
        except ValueError:
            raise ConfigParseError(key, value, kind) from None

    @staticmethod
    def _load_document(path: Path) -> dict[str, Any]:
        """Load and flatten one YAML document; a missing file is empty.

        Parameters
        ----------
        path : Path
            Location of the YAML document

        Returns
        -------
        dict[str, Any]
            Flattened document

        Raises
        ------
        ConfigError
            If the file cannot be read, parsed or resolved, or is not a mapping
        """
        if not path.is_file():
            logger.debug("Config file not found: %s", path)
            return {}

        try:
            cfg = OmegaConf.load(path)
        except yaml.YAMLError as e:
            logger.error("Failed to parse YAML config file %s: %s", path, e)
            raise ConfigError(f"Invalid YAML in {path}: {e}") from e
        except OSError as e:
            logger.error("Failed to read config file %s: %s", path, e)
            raise ConfigError(f"Failed to read config file {path}: {e}") from e

        if cfg is None:
            return {}

        if not isinstance(cfg, DictConfig):
            raise ConfigError(f"Config file {path} must contain a mapping")

        try:
            raw = OmegaConf.to_container(cfg, resolve=True)
        except OmegaConfBaseException as e:
            logger.error("Failed to resolve configuration variables in %s: %s", path, e)
            raise ConfigError(f"Configuration variable resolution error in {path}: {e}") from e

        flat = flatten(raw or {})
        logger.debug("Loaded %d properties from %s", len(flat), path)
        return flat


def resolve_resource_root(resource_root: str | Path | None = None) -> Path:
    """Return the directory that holds ``config/`` and request body files."""
    if resource_root is not None:
        return Path(resource_root)
    env_root = os.environ.get(RESOURCE_ROOT_VARIABLE)
    if env_root:
        return Path(env_root)
    return Path.cwd()
