"""
BlankArt Configuration System

Unified configuration management with YAML files, environment variables,
validation, and runtime updates.

Configuration Sources (in order of precedence):
    1. Environment variables (BLANKART_*)
    2. Runtime overrides
    3. User config file (~/.blankart/config.yaml)
    4. Project config file (./blankart.yaml)
    5. Default values

Copyright (c) 2026 BlankArt. All rights reserved.
"""

from __future__ import annotations

import logging
import os
import threading
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable, Dict, Generic, List, Optional, TypeVar, Union

import yaml

logger = logging.getLogger(__name__)

T = TypeVar("T")


class ConfigError(Exception):
    """Configuration error."""
    pass


class ConfigValidationError(ConfigError):
    """Configuration validation error."""
    pass


@dataclass
class ConfigValue(Generic[T]):
    """
    A single configuration value with metadata.

    Supports default values, environment variable binding,
    validation, and change callbacks.
    """
    default: T
    env_var: Optional[str] = None
    description: str = ""
    validator: Optional[Callable[[T], bool]] = None
    _value: Optional[T] = field(default=None, repr=False)
    _callbacks: List[Callable[[Optional[T], T], None]] = field(default_factory=list, repr=False)

    def get(self) -> T:
        """Get the current value; environment overrides are validated too."""
        if self.env_var and self.env_var in os.environ:
            value = self._coerce(os.environ[self.env_var])
            self._validate(value, source=self.env_var)
            return value

        return self._value if self._value is not None else self.default

    def set(self, value: T) -> None:
        """Set the value with validation."""
        self._validate(value)

        old_value = self._value
        self._value = value

        for callback in self._callbacks:
            callback(old_value, value)

    def _validate(self, value: Any, source: str = "config") -> None:
        if self.validator:
            try:
                ok = self.validator(value)
            except TypeError:
                ok = False
            if not ok:
                raise ConfigValidationError(f"Invalid value for {source}: {value!r}")

    def reset(self) -> None:
        """Drop any runtime override."""
        self._value = None

    def _coerce(self, value: str) -> T:
        """Coerce string value to target type."""
        target_type = type(self.default)

        try:
            if target_type == bool:
                return value.lower() in ("true", "1", "yes", "on")  # type: ignore
            elif target_type == int:
                return int(value)  # type: ignore
        except ValueError as ex:
            raise ConfigValidationError(
                f"{self.env_var} must be an integer, got {value!r}"
            ) from ex
        return value  # type: ignore

    def on_change(self, callback: Callable[[Optional[T], T], None]) -> None:
        """Register a change callback."""
        self._callbacks.append(callback)


@dataclass
class SigningConfig:
    """EIP-712 signing domain shared by the authorizer helper and the verifier."""
    domain_name: ConfigValue[str] = field(default_factory=lambda: ConfigValue(
        default="BlankNFT",
        env_var="BLANKART_SIGNING_DOMAIN_NAME",
        description="EIP-712 domain name",
        validator=lambda x: bool(x),
    ))
    domain_version: ConfigValue[str] = field(default_factory=lambda: ConfigValue(
        default="1",
        env_var="BLANKART_SIGNING_DOMAIN_VERSION",
        description="EIP-712 domain version",
        validator=lambda x: bool(x),
    ))
    chain_id: ConfigValue[int] = field(default_factory=lambda: ConfigValue(
        default=1337,
        env_var="BLANKART_CHAIN_ID",
        description="Network identity bound into every voucher digest",
        validator=lambda x: x > 0,
    ))
    default_voucher_ttl_seconds: ConfigValue[int] = field(default_factory=lambda: ConfigValue(
        default=30 * 24 * 3600,
        env_var="BLANKART_VOUCHER_TTL",
        description="Voucher lifetime when no expiration is given",
        validator=lambda x: x > 0,
    ))


@dataclass
class EngineConfig:
    """Configuration for the issuance engine."""
    name: ConfigValue[str] = field(default_factory=lambda: ConfigValue(
        default="BlankArt",
        env_var="BLANKART_NAME",
        description="Collection name",
    ))
    symbol: ConfigValue[str] = field(default_factory=lambda: ConfigValue(
        default="BLANK",
        env_var="BLANKART_SYMBOL",
        description="Collection symbol",
    ))
    default_member_cap: ConfigValue[int] = field(default_factory=lambda: ConfigValue(
        default=5,
        env_var="BLANKART_MEMBER_CAP",
        description="Per-address issuance cap at construction",
        validator=lambda x: x >= 0,
    ))
    default_mint_price_wei: ConfigValue[int] = field(default_factory=lambda: ConfigValue(
        default=0,
        env_var="BLANKART_MINT_PRICE",
        description="Public mint unit price in wei at construction",
        validator=lambda x: x >= 0,
    ))


@dataclass
class MetadataConfig:
    """Configuration for token URI resolution."""
    uri_suffix: ConfigValue[str] = field(default_factory=lambda: ConfigValue(
        default=".json",
        env_var="BLANKART_URI_SUFFIX",
        description="Appended after the token id ('' for bare ids)",
        validator=lambda x: isinstance(x, str) and "/" not in x,
    ))


@dataclass
class ObservabilityConfig:
    """Configuration for Observability."""
    log_level: ConfigValue[str] = field(default_factory=lambda: ConfigValue(
        default="info",
        env_var="BLANKART_LOG_LEVEL",
        description="Log level (debug, info, warning, error)",
        validator=lambda x: x in ("debug", "info", "warning", "error", "critical"),
    ))
    log_format: ConfigValue[str] = field(default_factory=lambda: ConfigValue(
        default="json",
        env_var="BLANKART_LOG_FORMAT",
        description="Log format (json, text)",
        validator=lambda x: x in ("json", "text"),
    ))


@dataclass
class BlankArtConfig:
    """
    Root configuration.

    Aggregates all component configurations and provides
    loading/saving functionality.
    """
    signing: SigningConfig = field(default_factory=SigningConfig)
    engine: EngineConfig = field(default_factory=EngineConfig)
    metadata: MetadataConfig = field(default_factory=MetadataConfig)
    observability: ObservabilityConfig = field(default_factory=ObservabilityConfig)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        def extract_values(obj: Any) -> Any:
            if isinstance(obj, ConfigValue):
                return obj.get()
            elif hasattr(obj, "__dataclass_fields__"):
                return {k: extract_values(getattr(obj, k)) for k in obj.__dataclass_fields__}
            return obj

        return extract_values(self)

    def to_yaml(self) -> str:
        """Convert to YAML string."""
        return yaml.safe_dump(self.to_dict(), default_flow_style=False, sort_keys=True)


class ConfigManager:
    """
    Configuration manager with file loading and environment binding.

    Thread-safe singleton that manages configuration lifecycle.
    """

    _instance: Optional["ConfigManager"] = None
    _lock = threading.Lock()

    def __new__(cls) -> "ConfigManager":
        with cls._lock:
            if cls._instance is None:
                cls._instance = super().__new__(cls)
                cls._instance._initialized = False
            return cls._instance

    def __init__(self):
        if self._initialized:
            return

        self._config = BlankArtConfig()
        self._config_paths: List[Path] = []
        self._initialized = True

    @property
    def config(self) -> BlankArtConfig:
        """Get the current configuration."""
        return self._config

    def load_from_file(self, path: Union[str, Path]) -> None:
        """Load configuration from a YAML file."""
        path = Path(path)
        if not path.exists():
            raise ConfigError(f"Configuration file not found: {path}")

        with open(path, encoding="utf-8") as f:
            try:
                data = yaml.safe_load(f)
            except yaml.YAMLError as ex:
                raise ConfigError(f"Malformed YAML in {path}: {ex}") from ex

        if data is None:
            return
        if not isinstance(data, dict):
            raise ConfigError(f"Configuration root must be a mapping: {path}")

        self._apply_dict(data)
        if path not in self._config_paths:
            self._config_paths.append(path)
        logger.debug("Loaded configuration from %s", path)

    def load_defaults(self) -> None:
        """Load default configuration files if they exist."""
        default_paths = [
            Path("blankart.yaml"),
            Path("config/blankart.yaml"),
            Path.home() / ".blankart" / "config.yaml",
        ]

        for path in default_paths:
            if path.exists():
                try:
                    self.load_from_file(path)
                except ConfigError as ex:
                    logger.warning("Skipping config file %s: %s", path, ex)

    def _apply_dict(self, data: Dict[str, Any]) -> None:
        """Apply dictionary values to configuration."""
        def apply_to_config(config_obj: Any, values: Dict[str, Any], prefix: str) -> None:
            for key, value in values.items():
                path = f"{prefix}{key}"
                if not hasattr(config_obj, key):
                    raise ConfigError(f"Unknown configuration key: {path}")
                attr = getattr(config_obj, key)
                if isinstance(attr, ConfigValue):
                    attr.set(value)
                elif hasattr(attr, "__dataclass_fields__") and isinstance(value, dict):
                    apply_to_config(attr, value, f"{path}.")
                else:
                    raise ConfigError(f"Expected a mapping for section: {path}")

        apply_to_config(self._config, data, "")

    def set(self, path: str, value: Any) -> None:
        """
        Set a configuration value by path.

        Example: config.set("engine.default_member_cap", 3)
        """
        attr = self._resolve(path)
        if not isinstance(attr, ConfigValue):
            raise ConfigError(f"Invalid config path: {path}")
        attr.set(value)

    def get(self, path: str) -> Any:
        """
        Get a configuration value by path.

        Example: config.get("metadata.uri_suffix")
        """
        obj = self._resolve(path)
        if isinstance(obj, ConfigValue):
            return obj.get()
        return obj

    def _resolve(self, path: str) -> Any:
        obj: Any = self._config
        for part in path.split("."):
            if not hasattr(obj, part):
                raise ConfigError(f"Invalid config path: {path}")
            obj = getattr(obj, part)
        return obj

    def reload(self) -> None:
        """Reload configuration from all loaded files."""
        for path in self._config_paths:
            if path.exists():
                self.load_from_file(path)

    def reset(self) -> None:
        """Restore defaults (used between tests)."""
        self._config = BlankArtConfig()
        self._config_paths = []

    def validate(self) -> List[str]:
        """
        Validate all configuration values.

        Returns list of validation errors.
        """
        errors: List[str] = []

        def validate_config(obj: Any, path: str = "") -> None:
            if isinstance(obj, ConfigValue):
                try:
                    value = obj.get()
                    if obj.validator and not obj.validator(value):
                        errors.append(f"{path}: validation failed for value {value!r}")
                except ConfigError as e:
                    errors.append(f"{path}: {e}")
            elif hasattr(obj, "__dataclass_fields__"):
                for field_name in obj.__dataclass_fields__:
                    field_path = f"{path}.{field_name}" if path else field_name
                    validate_config(getattr(obj, field_name), field_path)

        validate_config(self._config)
        return errors


def get_config() -> BlankArtConfig:
    """Get the current configuration."""
    return ConfigManager().config


def get_config_manager() -> ConfigManager:
    """Get the configuration manager instance."""
    return ConfigManager()
