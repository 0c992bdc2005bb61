"""Configuration utilities for the logging runtime."""

from __future__ import annotations

import os
import re
from dataclasses import dataclass, field, replace
from types import MappingProxyType
from typing import Any, Iterable, Mapping, MutableMapping

from .errors import ConfigurationError
from .message import Level


def _comma_tuple(value: str | None, *, default: tuple[str, ...]) -> tuple[str, ...]:
    """Convert a comma-separated string to a tuple."""

    if not value:
        return default

    return tuple(filter(None, (part.strip() for part in value.split(","))))


def _bool_env(value: str | None, default: bool) -> bool:
    """Convert a string to a boolean."""

    if value is None:
        return default

    return value.lower() in {"1", "true", "yes", "on"}


def _int_env(value: str | None, default: int) -> int:
    if value is None:
        return default

    try:
        return int(value)
    except (TypeError, ValueError):
        return default


def as_sequence(value: Any, *, field_name: str) -> tuple[str, ...]:
    """Accept a comma-separated string or an iterable of strings."""

    if value is None:
        return ()
    if isinstance(value, str):
        return _comma_tuple(value, default=())
    if isinstance(value, Iterable):
        return tuple(
            item.name if isinstance(item, Level) else str(item).strip() for item in value
        )

    raise ConfigurationError(f"{field_name} must be a string or a list, got {value!r}")


def strict_int(value: Any, *, field_name: str) -> int:
    if isinstance(value, bool):
        raise ConfigurationError(f"{field_name} must be an integer, got {value!r}")

    try:
        parsed = int(value)
    except (TypeError, ValueError):
        raise ConfigurationError(f"{field_name} must be an integer, got {value!r}") from None

    if parsed < 0:
        raise ConfigurationError(f"{field_name} must not be negative")

    return parsed


def strict_bool(value: Any, *, field_name: str) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered in {"1", "true", "yes", "on"}:
            return True
        if lowered in {"0", "false", "no", "off"}:
            return False

    raise ConfigurationError(f"{field_name} must be a boolean, got {value!r}")


def _env_key(name: str) -> str:
    return re.sub(r"[^A-Z0-9]", "_", name.upper())


@dataclass(frozen=True)
class TargetSettings:
    """Declared configuration of one named target."""

    name: str
    kind: str
    enabled: bool = True
    levels: tuple[str, ...] = ()
    categories: tuple[str, ...] = ()
    except_: tuple[str, ...] = ()
    export_interval: int = 1000
    max_buffer_size: int = 10000
    retain_on_failure: bool = True
    options: Mapping[str, Any] = field(default_factory=lambda: MappingProxyType({}))

    def common_options(self) -> dict[str, Any]:
        """Keyword arguments shared by every target constructor."""

        return {
            "enabled": self.enabled,
            "levels": self.levels,
            "categories": self.categories,
            "except_": self.except_,
            "export_interval": self.export_interval,
            "max_buffer_size": self.max_buffer_size,
            "retain_on_failure": self.retain_on_failure,
        }


@dataclass(frozen=True)
class LoggingSettings:
    """Immutable runtime configuration."""

    flush_interval: int = 1000
    trace_level: int = 0
    background: bool = False
    queue_size: int = 64
    stop_timeout_ms: int = 5000
    service: str = "unknown-service"
    env: str = "local"
    targets: tuple[TargetSettings, ...] = ()

    def with_overrides(self, **kwargs: Any) -> "LoggingSettings":
        return replace(self, **kwargs)

    def target(self, name: str) -> TargetSettings:
        for target in self.targets:
            if target.name == name:
                return target
        raise KeyError(name)


def load_settings(env: Mapping[str, str] | None = None) -> LoggingSettings:
    """Build settings from ``LOG_*`` environment variables."""

    source = env if env is not None else os.environ

    names = _comma_tuple(source.get("LOG_TARGETS"), default=("stdout",))
    targets = tuple(_target_from_env(name, source) for name in names)

    return LoggingSettings(
        flush_interval=max(0, _int_env(source.get("LOG_FLUSH_INTERVAL"), 1000)),
        trace_level=max(0, _int_env(source.get("LOG_TRACE_LEVEL"), 0)),
        background=_bool_env(source.get("LOG_BACKGROUND"), False),
        queue_size=max(1, _int_env(source.get("LOG_QUEUE_SIZE"), 64)),
        stop_timeout_ms=max(0, _int_env(source.get("LOG_STOP_TIMEOUT_MS"), 5000)),
        service=source.get("LOG_SERVICE_NAME", "unknown-service"),
        env=source.get("LOG_ENV", "local"),
        targets=_unique(targets),
    )


def _target_from_env(name: str, source: Mapping[str, str]) -> TargetSettings:
    prefix = f"LOG_TARGET_{_env_key(name)}_"
    option_prefix = prefix + "OPT_"

    options: MutableMapping[str, Any] = {
        key[len(option_prefix):].lower(): value
        for key, value in source.items()
        if key.startswith(option_prefix)
    }

    def _get(suffix: str) -> str | None:
        return source.get(prefix + suffix)

    raw_interval = _get("EXPORT_INTERVAL")
    raw_max = _get("MAX_BUFFER")
    raw_retain = _get("RETAIN")
    raw_enabled = _get("ENABLED")

    return TargetSettings(
        name=name,
        kind=(_get("KIND") or name).strip().lower(),
        enabled=True if raw_enabled is None else strict_bool(raw_enabled, field_name=prefix + "ENABLED"),
        levels=_comma_tuple(_get("LEVELS"), default=()),
        categories=_comma_tuple(_get("CATEGORIES"), default=()),
        except_=_comma_tuple(_get("EXCEPT"), default=()),
        export_interval=1000 if raw_interval is None else strict_int(raw_interval, field_name=prefix + "EXPORT_INTERVAL"),
        max_buffer_size=10000 if raw_max is None else strict_int(raw_max, field_name=prefix + "MAX_BUFFER"),
        retain_on_failure=True if raw_retain is None else strict_bool(raw_retain, field_name=prefix + "RETAIN"),
        options=MappingProxyType(dict(options)),
    )


_SETTINGS_KEYS = {
    "flush_interval",
    "trace_level",
    "background",
    "queue_size",
    "stop_timeout_ms",
    "service",
    "env",
    "targets",
}

_TARGET_KEYS = {
    "kind",
    "enabled",
    "levels",
    "categories",
    "except",
    "export_interval",
    "max_buffer_size",
    "retain_on_failure",
}


def settings_from_mapping(config: Mapping[str, Any]) -> LoggingSettings:
    """Build settings from a nested mapping, e.g. parsed from JSON or YAML.

    ``targets`` is either a mapping of name to target options, in declaration
    order, or a list of option mappings each carrying a ``name``.
    """

    unknown = set(config) - _SETTINGS_KEYS
    if unknown:
        raise ConfigurationError(f"Unknown logging settings: {sorted(unknown)}")

    defaults = LoggingSettings()
    raw_targets = config.get("targets", {})

    if isinstance(raw_targets, Mapping):
        declared = list(raw_targets.items())
    elif isinstance(raw_targets, (list, tuple)):
        declared = []
        for entry in raw_targets:
            if not isinstance(entry, Mapping) or "name" not in entry:
                raise ConfigurationError("target list entries must be mappings with a 'name'")
            options = dict(entry)
            declared.append((str(options.pop("name")), options))
    else:
        raise ConfigurationError("targets must be a mapping or a list")

    targets = tuple(_target_from_mapping(name, options) for name, options in declared)

    return LoggingSettings(
        flush_interval=strict_int(config.get("flush_interval", defaults.flush_interval), field_name="flush_interval"),
        trace_level=strict_int(config.get("trace_level", defaults.trace_level), field_name="trace_level"),
        background=strict_bool(config.get("background", defaults.background), field_name="background"),
        queue_size=max(1, strict_int(config.get("queue_size", defaults.queue_size), field_name="queue_size")),
        stop_timeout_ms=strict_int(config.get("stop_timeout_ms", defaults.stop_timeout_ms), field_name="stop_timeout_ms"),
        service=str(config.get("service", defaults.service)),
        env=str(config.get("env", defaults.env)),
        targets=_unique(targets),
    )


def _target_from_mapping(name: str, options: Any) -> TargetSettings:
    if not isinstance(options, Mapping):
        raise ConfigurationError(f"target {name!r} must be configured with a mapping")

    extra = {key: value for key, value in options.items() if key not in _TARGET_KEYS}
    kind = options.get("kind") or name

    return TargetSettings(
        name=name,
        kind=str(kind).strip().lower(),
        enabled=strict_bool(options.get("enabled", True), field_name=f"{name}.enabled"),
        levels=as_sequence(options.get("levels"), field_name=f"{name}.levels"),
        categories=as_sequence(options.get("categories"), field_name=f"{name}.categories"),
        except_=as_sequence(options.get("except"), field_name=f"{name}.except"),
        export_interval=strict_int(options.get("export_interval", 1000), field_name=f"{name}.export_interval"),
        max_buffer_size=strict_int(options.get("max_buffer_size", 10000), field_name=f"{name}.max_buffer_size"),
        retain_on_failure=strict_bool(options.get("retain_on_failure", True), field_name=f"{name}.retain_on_failure"),
        options=MappingProxyType(extra),
    )


def _unique(targets: tuple[TargetSettings, ...]) -> tuple[TargetSettings, ...]:
    seen: set[str] = set()

    for target in targets:
        if target.name in seen:
            raise ConfigurationError(f"Duplicate target name: {target.name!r}")
        seen.add(target.name)

    return targets
