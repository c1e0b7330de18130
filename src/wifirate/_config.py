"""
Global configuration for the wifirate package.

This module provides a simple configuration system following Convention over Configuration (CoC).
Users can optionally call WIFIRATE.configure() at application startup to customize defaults.
If not called, sensible defaults are used.

Hierarchy of precedence (highest to lowest):
1. Arguments passed to rate manager constructors
2. Values set via WIFIRATE.configure()
3. Environment variables (WIFIRATE_*) - when allow_env_override=True
4. Hardcoded defaults (in dataclass fields)

Example:
    >>> from wifirate import WIFIRATE
    >>>
    >>> # Pre-loaded with defaults + env vars
    >>> threshold = WIFIRATE.config.arf.success_threshold
    >>>
    >>> # Custom configuration
    >>> WIFIRATE.configure(
    ...     arf={"success_threshold": 5, "timer_threshold": 10},
    ...     station={"use_non_erp_protection": True},
    ... )
"""

from __future__ import annotations

import os
from collections.abc import Callable
from dataclasses import dataclass, field, fields, replace
from functools import wraps
from typing import Any, Self

SECTIONS = ("arf", "station")


# =============================================================================
# Exceptions
# =============================================================================


class ConfigEnvVarError(ValueError):
    """Raised when an environment variable has an invalid value."""

    def __init__(
        self,
        env_var: str,
        value: str,
        expected_type: str,
        cause: Exception | None = None,
    ):
        self.env_var = env_var
        self.value = value
        self.expected_type = expected_type
        super().__init__(f"Invalid value for {env_var}: '{value}' (expected {expected_type})")
        self.__cause__ = cause


class ConfigValidationError(ValueError):
    """Raised when a configuration value fails validation."""

    def __init__(
        self,
        field: str,
        value: Any,
        message: str,
        section: str | None = None,
    ):
        self.field = field
        self.value = value
        self.section = section
        prefix = f"[{section}] " if section else ""
        super().__init__(f"{prefix}Invalid value for '{field}': {value!r}. {message}")


# =============================================================================
# Environment Variables
# =============================================================================


class EnvVars:
    """
    Utility class for reading environment variables with type conversion.

    Example:
        >>> EnvVars.get("WIFIRATE_ARF_SUCCESS_THRESHOLD", type_hint=int)
        10
        >>> EnvVars.get("UNDEFINED_VAR")
        None
    """

    @staticmethod
    def get(
        var_name: str,
        type_hint: Any = str,
        converter: Callable[[str], Any] | None = None,
    ) -> Any:
        """
        Read an environment variable with optional type conversion.

        Args:
            var_name: The environment variable name.
            type_hint: Type hint used to infer the converter (ignored if converter is provided).
            converter: Custom converter function (takes precedence over type_hint).

        Returns:
            The converted value, or None if env var is not set/empty.

        Raises:
            ConfigEnvVarError: If the value cannot be converted.
        """
        raw_value = os.environ.get(var_name)
        if not raw_value:  # None or empty string
            return None

        actual_converter = converter or EnvVars._infer_converter(type_hint)
        try:
            return actual_converter(raw_value)
        except (ValueError, TypeError) as e:
            raise ConfigEnvVarError(
                env_var=var_name,
                value=raw_value,
                expected_type=type_hint.__name__ if hasattr(type_hint, "__name__") else str(type_hint),
                cause=e,
            ) from e

    @staticmethod
    def _infer_converter(type_hint: Any) -> Callable[[str], Any]:
        """
        Infer converter function from type hint.

        Handles both actual types and string annotations (PEP 563).
        """
        type_str = str(type_hint)

        if type_hint is int or type_str == "int":
            return int
        if type_hint is float or type_str == "float":
            return float
        if type_hint is bool or type_str == "bool":
            return lambda v: v.lower() in ("true", "1", "yes")
        return str


# =============================================================================
# Base Class
# =============================================================================


@dataclass(frozen=True)
class OverridableConfig:
    """
    Base class for immutable configuration dataclasses.

    Provides `.with_overrides()` method for creating new instances
    with partial field updates. Uses strict validation to catch
    typos and invalid field names early.

    Example:
        >>> config = ArfConfig()
        >>> custom = config.with_overrides({"success_threshold": 5})
        >>> custom.success_threshold
        5
    """

    def with_overrides(self, overrides: dict[str, Any]) -> Self:
        """
        Return a new instance with specified fields overridden.

        None values are ignored, so callers can pass optional arguments through.

        Raises:
            ValueError: If overrides contains unknown field names.
        """
        if not overrides:
            return self

        valid_fields = {f.name for f in fields(self)}
        invalid_fields = set(overrides.keys()) - valid_fields

        if invalid_fields:
            raise ValueError(
                f"Unknown config fields: {invalid_fields}. "
                f"Valid fields are: {valid_fields}"
            )

        filtered = {k: v for k, v in overrides.items() if v is not None}
        return replace(self, **filtered) if filtered else self

    def with_env_vars(self) -> Self:
        """
        Return new instance with environment variables applied.

        Reads env vars declared in field metadata and applies them as overrides.

        Raises:
            ConfigEnvVarError: If an env var has an invalid value.
        """
        overrides: dict[str, Any] = {}
        for f in fields(self):
            env_var = f.metadata.get("env")
            if env_var:
                value = EnvVars.get(var_name=env_var, type_hint=f.type)
                if value is not None:
                    overrides[f.name] = value
        return self.with_overrides(overrides)


# =============================================================================
# Configuration Dataclasses
# =============================================================================


@dataclass(frozen=True)
class ArfConfig(OverridableConfig):
    """
    Thresholds of the ARF rate adaptation algorithm.

    Values are copied into each peer's state when the peer is added, so
    changing the configuration never affects peers already tracked.

    Attributes:
        success_threshold: Consecutive successful transmissions needed to try
            the next faster rate.
            Env var: WIFIRATE_ARF_SUCCESS_THRESHOLD

        timer_threshold: Transmissions since the last rate change after which
            the next faster rate is tried anyway.
            Env var: WIFIRATE_ARF_TIMER_THRESHOLD
    """

    success_threshold: int = field(default=10, metadata={"env": "WIFIRATE_ARF_SUCCESS_THRESHOLD"})
    timer_threshold: int = field(default=15, metadata={"env": "WIFIRATE_ARF_TIMER_THRESHOLD"})

    def validate(self) -> Self:
        """Validate ARF configuration fields."""
        if self.success_threshold < 1:
            raise ConfigValidationError(
                "success_threshold", self.success_threshold,
                "Must be greater than or equal to 1.", section="arf"
            )
        if self.timer_threshold < 1:
            raise ConfigValidationError(
                "timer_threshold", self.timer_threshold,
                "Must be greater than or equal to 1.", section="arf"
            )
        return self


@dataclass(frozen=True)
class StationManagerConfig(OverridableConfig):
    """
    Transmission parameters shared by every rate manager.

    Power level and preamble settings are forwarded into every TxVector;
    `max_slrc` is the attempt budget the transmission pipeline applies.

    Attributes:
        default_tx_power_level: Power level index used for every transmission.
            Env var: WIFIRATE_STATION_DEFAULT_TX_POWER_LEVEL

        max_slrc: Maximum number of transmission attempts of a data frame.
            The TxVector carries the peer's current long retry count instead.
            Env var: WIFIRATE_STATION_MAX_SLRC

        use_non_erp_protection: Whether RTS frames must use non-ERP modes.
            Env var: WIFIRATE_STATION_USE_NON_ERP_PROTECTION

        short_preamble_enabled: Whether short DSSS preambles may be used with
            peers that support them.
            Env var: WIFIRATE_STATION_SHORT_PREAMBLE_ENABLED
    """

    default_tx_power_level: int = field(default=0, metadata={"env": "WIFIRATE_STATION_DEFAULT_TX_POWER_LEVEL"})
    max_slrc: int = field(default=7, metadata={"env": "WIFIRATE_STATION_MAX_SLRC"})
    use_non_erp_protection: bool = field(default=False, metadata={"env": "WIFIRATE_STATION_USE_NON_ERP_PROTECTION"})
    short_preamble_enabled: bool = field(default=False, metadata={"env": "WIFIRATE_STATION_SHORT_PREAMBLE_ENABLED"})

    def validate(self) -> Self:
        """Validate station manager configuration fields."""
        if self.default_tx_power_level < 0:
            raise ConfigValidationError(
                "default_tx_power_level", self.default_tx_power_level,
                "Must be greater than or equal to 0.", section="station"
            )
        if self.max_slrc < 1:
            raise ConfigValidationError(
                "max_slrc", self.max_slrc,
                "Must be greater than or equal to 1.", section="station"
            )
        return self


@dataclass(frozen=True)
class ConfigEntry:
    """
    A configuration field with its resolved value and source.

    Attributes:
        name: The field name (e.g., "success_threshold").
        value: The resolved value.
        source: Where the value came from:
            - "default": Hardcoded default value
            - "env:VAR_NAME": Environment variable
            - "user": Set via WIFIRATE.configure()

    Example:
        >>> entry = ConfigEntry("success_threshold", 5, "user")
        >>> entry.formatted_value
        '5'
    """

    name: str
    value: Any
    source: str

    @property
    def formatted_value(self) -> str:
        """Return value formatted for display, truncating long strings."""
        if self.value is None:
            return "None"

        str_value = str(self.value)
        max_length = 50
        if len(str_value) > max_length:
            return str_value[: max_length - 3] + "..."

        return str_value


@dataclass(frozen=True)
class ConfigTracker:
    """
    Tracks the source of config field values.

    An immutable tracker that records where each configuration value came from
    (default, env var, or configure()). Used by WIFIRATE.explain().

    Attributes:
        sources: Dict tracking source of each field value.
            Structure: {"section": {"field": "source"}}
    """

    sources: dict[str, dict[str, str]] = field(default_factory=dict)

    @staticmethod
    def track_changes(
        source_type: str,
    ) -> Callable[[Callable[..., WifiRateConfig]], Callable[..., WifiRateConfig]]:
        """
        Decorator that records which fields the decorated method touched.

        Args:
            source_type: Source label for tracking ("env" or "user").
        """

        def decorator(
            method: Callable[..., WifiRateConfig],
        ) -> Callable[..., WifiRateConfig]:
            @wraps(method)
            def wrapper(self: WifiRateConfig, *args: Any, **kwargs: Any) -> WifiRateConfig:
                new_config = method(self, *args, **kwargs)
                new_tracker = self._tracker.with_changes_tracked(new_config, source_type, overrides=kwargs)
                return replace(new_config, _tracker=new_tracker)

            return wrapper

        return decorator

    def with_changes_tracked(
        self,
        new_config: WifiRateConfig,
        source_type: str,
        overrides: dict[str, Any] | None = None,
    ) -> ConfigTracker:
        """Return new tracker with the fields touched by `source_type` recorded."""
        new_sources = {section: dict(flds) for section, flds in self.sources.items()}

        for section_name in SECTIONS:
            section_config = getattr(new_config, section_name)
            section_sources = new_sources.setdefault(section_name, {})

            for f in fields(section_config):
                if source_type == "env":
                    # Touched if its env var is set and non-empty (consistent with EnvVars.get)
                    env_var = f.metadata.get("env")
                    if env_var and os.environ.get(env_var):
                        section_sources[f.name] = f"env:{env_var}"
                elif overrides:
                    section_overrides = overrides.get(section_name) or {}
                    if section_overrides.get(f.name) is not None:
                        section_sources[f.name] = source_type

        return ConfigTracker(sources={k: v for k, v in new_sources.items() if v})


@dataclass(frozen=True)
class WifiRateConfig:
    """
    Global configuration for the wifirate package.

    Aggregates all configuration sections. Access via the global
    `WIFIRATE.config` property.

    Attributes:
        arf: ARF algorithm thresholds.
        station: Transmission parameters shared by every rate manager.

    Example:
        >>> from wifirate import WIFIRATE
        >>> WIFIRATE.config.arf.timer_threshold
        15
        >>> WIFIRATE.config.station.max_slrc
        7
    """

    arf: ArfConfig = field(default_factory=ArfConfig)
    station: StationManagerConfig = field(default_factory=StationManagerConfig)
    _tracker: ConfigTracker = field(default_factory=ConfigTracker, repr=False)

    @ConfigTracker.track_changes("env")
    def with_env_vars(self) -> WifiRateConfig:
        """
        Return a new config with WIFIRATE_* environment variables applied on top.

        Example:
            >>> config = WifiRateConfig().with_env_vars()
        """
        return WifiRateConfig(
            arf=self.arf.with_env_vars(),
            station=self.station.with_env_vars(),
        )

    @ConfigTracker.track_changes("user")
    def with_section_overrides(
        self,
        *,
        arf: dict[str, Any] | None = None,
        station: dict[str, Any] | None = None,
    ) -> WifiRateConfig:
        """
        Return a new config with overrides applied to nested sections.

        Each section dict is merged with the existing section config,
        only overriding the specified fields.

        Example:
            >>> config = WifiRateConfig().with_section_overrides(arf={"success_threshold": 5})
        """
        return WifiRateConfig(
            arf=self.arf.with_overrides(arf or {}),
            station=self.station.with_overrides(station or {}),
        )

    def explain_data(self) -> dict[str, list[ConfigEntry]]:
        """
        Return config data structured for explain output.

        Returns:
            Dict mapping section names to list of ConfigEntry objects.
        """
        result: dict[str, list[ConfigEntry]] = {}
        for section_name in SECTIONS:
            section_config = getattr(self, section_name)
            section_sources = self._tracker.sources.get(section_name, {})
            result[section_name] = [
                ConfigEntry(
                    name=f.name,
                    value=getattr(section_config, f.name),
                    source=section_sources.get(f.name, "default"),
                )
                for f in fields(section_config)
            ]
        return result


# =============================================================================
# Global Configuration Singleton
# =============================================================================


class _WIFIRATE:
    """
    Singleton for package configuration.

    Use `WIFIRATE.configure()` to customize settings and `WIFIRATE.config`
    to access current configuration.

    Example:
        >>> from wifirate import WIFIRATE
        >>> WIFIRATE.configure(arf={"timer_threshold": 20})
        >>> print(WIFIRATE.config.arf.timer_threshold)
        20
    """

    def __init__(self) -> None:
        """Initialize with defaults and environment variables."""
        self._config: WifiRateConfig = WifiRateConfig().with_env_vars()

    def configure(
        self,
        *,
        arf: dict[str, Any] | None = None,
        station: dict[str, Any] | None = None,
        allow_env_override: bool = True,
    ) -> WifiRateConfig:
        """
        Configure package settings.

        Call at application startup to customize defaults. Rate managers
        created afterwards pick the new values up; existing ones keep theirs.

        Args:
            arf: ARF config overrides (success_threshold, timer_threshold).
            station: Station manager config overrides (default_tx_power_level,
                max_slrc, use_non_erp_protection, short_preamble_enabled).
            allow_env_override: If True (default), env vars are used as fallback
                for fields NOT provided. If False, ignores env vars entirely.

        Returns:
            The configured WifiRateConfig instance.

        Raises:
            ValueError: If any dict contains unknown field names.
            ConfigValidationError: If any config value fails validation.
        """
        base = WifiRateConfig()
        if allow_env_override:
            base = base.with_env_vars()

        self._config = base.with_section_overrides(arf=arf, station=station)
        return self.validate()

    @property
    def config(self) -> WifiRateConfig:
        """Access current configuration (read-only)."""
        return self._config

    def reset(self) -> WifiRateConfig:
        """
        Reset configuration to defaults + env vars.

        Useful for testing to ensure clean state between tests.

        Raises:
            ConfigValidationError: If any config value is invalid.
        """
        self._config = WifiRateConfig().with_env_vars()
        return self.validate()

    def validate(self) -> WifiRateConfig:
        """
        Validate current configuration.

        Raises:
            ConfigValidationError: If any config value is invalid.
        """
        self._config.arf.validate()
        self._config.station.validate()
        return self._config

    def explain(
        self,
        output: Callable[[str], None] = print,
    ) -> None:
        """
        Print current configuration with sources.

        Args:
            output: Callable to output each line. Defaults to print.
                    Can be used with logging: `WIFIRATE.explain(logger.info)`
        """
        name_width = 25
        value_width = 20

        output("WIFIRATE Configuration:")
        output("=" * (name_width + value_width + 20))
        for section_name, entries in self._config.explain_data().items():
            output(f"[{section_name}]")
            for entry in entries:
                dots = "." * (name_width - len(entry.name))
                marker = "✎" if entry.source != "default" else " "
                output(f"  {entry.name} {dots} {entry.formatted_value.ljust(value_width)} {marker} {entry.source}")
        output("=" * (name_width + value_width + 20))

    def __repr__(self) -> str:
        return f"WIFIRATE(config={self._config!r})"


# Global singleton instance - always reflects current configuration
WIFIRATE: _WIFIRATE = _WIFIRATE()
WIFIRATE.validate()  # Validate defaults + env vars on module load
