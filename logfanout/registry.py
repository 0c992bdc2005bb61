"""Registry resolving declared target settings into target instances."""

from __future__ import annotations

import sys
import threading
from typing import Any, Callable, Dict, List, Mapping

from .config import LoggingSettings, TargetSettings, strict_bool, strict_int, as_sequence
from .errors import ConfigurationError
from .targets.base import Target
from .targets.email import EmailConfig, EmailTarget
from .targets.file import FileTarget
from .targets.memory import MemoryTarget
from .targets.stream import StreamTarget

TargetFactory = Callable[[TargetSettings, LoggingSettings], Target]

_REGISTRY_LOCK = threading.RLock()
_FACTORIES: Dict[str, TargetFactory] = {}


def register_target_kind(kind: str, factory: TargetFactory) -> None:
    """Register ``factory`` for targets declared with ``kind``."""

    with _REGISTRY_LOCK:
        _FACTORIES[kind.strip().lower()] = factory


def target_kinds() -> List[str]:
    with _REGISTRY_LOCK:
        return sorted(_FACTORIES)


def create_target(declared: TargetSettings, settings: LoggingSettings | None = None) -> Target:
    """Build one target, wrapping constructor failures as configuration errors."""

    with _REGISTRY_LOCK:
        factory = _FACTORIES.get(declared.kind)

    if factory is None:
        raise ConfigurationError(
            f"Unknown target kind {declared.kind!r} for target {declared.name!r}"
        )

    try:
        return factory(declared, settings or LoggingSettings())
    except ConfigurationError:
        raise
    except (TypeError, ValueError) as exc:
        raise ConfigurationError(
            f"Invalid options for target {declared.name!r}: {exc}"
        ) from exc


def build_targets(settings: LoggingSettings) -> Dict[str, Target]:
    """Resolve every declared target, preserving declaration order."""

    targets: Dict[str, Target] = {}

    for declared in settings.targets:
        if declared.name in targets:
            raise ConfigurationError(f"Duplicate target name: {declared.name!r}")
        targets[declared.name] = create_target(declared, settings)

    return targets


# --------------------- built-in kinds ---------------------
def _require(options: Mapping[str, Any], key: str, declared: TargetSettings) -> Any:
    value = options.get(key)

    if value in (None, ""):
        raise ConfigurationError(f"target {declared.name!r} requires option {key!r}")

    return value


def _check_options(declared: TargetSettings, allowed: set[str]) -> Mapping[str, Any]:
    unknown = set(declared.options) - allowed

    if unknown:
        raise ConfigurationError(
            f"Unknown options for target {declared.name!r}: {sorted(unknown)}"
        )

    return declared.options


def _memory_factory(declared: TargetSettings, _settings: LoggingSettings) -> Target:
    _check_options(declared, set())
    return MemoryTarget(declared.name, **declared.common_options())


def _stream_factory(declared: TargetSettings, _settings: LoggingSettings) -> Target:
    options = _check_options(declared, {"stream", "project"})
    stream = options.get("stream")

    if isinstance(stream, str):
        if stream not in {"stdout", "stderr"}:
            raise ConfigurationError(
                f"target {declared.name!r}: stream must be 'stdout' or 'stderr'"
            )
        stream = getattr(sys, stream)

    return StreamTarget(
        declared.name,
        stream=stream,
        project=options.get("project"),
        **declared.common_options(),
    )


def _file_factory(declared: TargetSettings, _settings: LoggingSettings) -> Target:
    options = _check_options(
        declared, {"path", "max_file_size_kb", "max_log_files", "rotate", "encoding"}
    )

    return FileTarget(
        declared.name,
        path=_require(options, "path", declared),
        max_file_size_kb=strict_int(
            options.get("max_file_size_kb", 10240), field_name=f"{declared.name}.max_file_size_kb"
        ),
        max_log_files=strict_int(
            options.get("max_log_files", 5), field_name=f"{declared.name}.max_log_files"
        ),
        rotate=strict_bool(options.get("rotate", True), field_name=f"{declared.name}.rotate"),
        encoding=str(options.get("encoding", "utf-8")),
        **declared.common_options(),
    )


def _email_factory(declared: TargetSettings, settings: LoggingSettings) -> Target:
    options = _check_options(
        declared,
        {
            "to",
            "subject",
            "smtp_host",
            "smtp_port",
            "username",
            "password",
            "use_tls",
            "from_email",
            "timeout_seconds",
        },
    )

    config = EmailConfig(
        smtp_host=str(_require(options, "smtp_host", declared)),
        smtp_port=strict_int(options.get("smtp_port", 587), field_name=f"{declared.name}.smtp_port"),
        username=options.get("username"),
        password=options.get("password"),
        use_tls=strict_bool(options.get("use_tls", True), field_name=f"{declared.name}.use_tls"),
        from_email=options.get("from_email"),
        timeout_seconds=float(options.get("timeout_seconds", 15.0)),
    )

    return EmailTarget(
        declared.name,
        config=config,
        to=as_sequence(_require(options, "to", declared), field_name=f"{declared.name}.to"),
        subject=str(options.get("subject", f"{settings.service} log ({settings.env})")),
        **declared.common_options(),
    )


def _gcl_factory(declared: TargetSettings, settings: LoggingSettings) -> Target:
    options = _check_options(declared, {"project", "log_name"})

    from .targets.gcl import GoogleCloudLoggingTarget

    return GoogleCloudLoggingTarget(
        declared.name,
        project=options.get("project"),
        log_name=str(options.get("log_name", settings.service)),
        service=settings.service,
        env=settings.env,
        **declared.common_options(),
    )


register_target_kind("memory", _memory_factory)
register_target_kind("stream", _stream_factory)
register_target_kind("stdout", _stream_factory)
register_target_kind("file", _file_factory)
register_target_kind("email", _email_factory)
register_target_kind("gcl", _gcl_factory)
