"""Configuration loader that parses and validates user-provided TOML."""

from __future__ import annotations

import logging
import tomllib
from dataclasses import fields, is_dataclass
from enum import Enum
from typing import Any, Dict

from PIL import ImageColor

from .datatypes import (
    DEFAULT_ZOOM,
    ZOOM_LEVELS,
    AppConfig,
    CaptureConfig,
    HostConfig,
    OutputConfig,
    OverlayConfig,
)

logger = logging.getLogger(__name__)


class ConfigError(ValueError):
    """Raised when the configuration file is malformed or fails validation."""


def _coerce_bool(value: Any, dotted_key: str) -> bool:
    """Return a bool, coercing simple 0/1 representations when necessary."""

    if isinstance(value, bool):
        return value
    if isinstance(value, int) and value in (0, 1):
        return bool(value)
    if isinstance(value, str):
        normalized = value.strip().lower()
        if normalized in {"0", "1"}:
            return normalized == "1"
        if normalized in {"true", "false"}:
            return normalized == "true"
    raise ConfigError(f"{dotted_key} must be a boolean (use true/false).")


def _coerce_enum(value: Any, dotted_key: str, enum_type: type[Enum]) -> Enum:
    """Return an enum member, coercing string values case-insensitively."""

    if isinstance(value, enum_type):
        return value
    if isinstance(value, str):
        normalized = value.strip().lower()
        if normalized == "jpg":
            normalized = "jpeg"
        for member in enum_type:
            member_value = str(member.value).lower()
            if normalized == member_value:
                return member
    raise ConfigError(
        f"{dotted_key} must be one of: {', '.join(str(member.value) for member in enum_type)}"
    )


def _coerce_int(value: Any, dotted_key: str) -> int:
    """Return an integer, rejecting booleans and fractional numbers."""

    if isinstance(value, bool):
        raise ConfigError(f"{dotted_key} must be an integer")
    if isinstance(value, int):
        return value
    if isinstance(value, float) and value.is_integer():
        return int(value)
    raise ConfigError(f"{dotted_key} must be an integer")


def _sanitize_section(raw: dict[str, Any], name: str, cls):
    """
    Coerce a raw TOML table into an instance of ``cls`` with cleaned values.

    Parameters:
        raw (dict[str, Any]): Raw TOML section data.
        name (str): Section name used when reporting validation errors.
        cls: Dataclass type used to construct the section object.

    Returns:
        Any: Instantiated dataclass populated with values from ``raw``.

    Raises:
        ConfigError: If the section is not a table or contains invalid keys or values.
    """
    if not isinstance(raw, dict):
        raise ConfigError(f"[{name}] must be a table")
    cleaned: Dict[str, Any] = {}
    cls_fields = {field.name: field for field in fields(cls)}
    bool_fields = {name for name, field in cls_fields.items() if field.type is bool}
    int_fields = {name for name, field in cls_fields.items() if field.type is int}
    enum_fields = {
        field_name: field.type
        for field_name, field in cls_fields.items()
        if isinstance(field.type, type) and issubclass(field.type, Enum)
    }
    nested_fields = {
        name: field.type
        for name, field in cls_fields.items()
        if is_dataclass(field.type)
    }
    for key, value in raw.items():
        if key not in cls_fields:
            raise ConfigError(f"Invalid keys in [{name}]: unknown key '{key}'")
        if key in bool_fields:
            cleaned[key] = _coerce_bool(value, f"{name}.{key}")
        elif key in int_fields:
            cleaned[key] = _coerce_int(value, f"{name}.{key}")
        elif key in enum_fields:
            cleaned[key] = _coerce_enum(value, f"{name}.{key}", enum_fields[key])
        elif key in nested_fields:
            if not isinstance(value, dict):
                raise ConfigError(f"[{name}.{key}] must be a table")
            cleaned[key] = _sanitize_section(value, f"{name}.{key}", nested_fields[key])
        else:
            cleaned[key] = value
    try:
        return cls(**cleaned)
    except TypeError as exc:
        raise ConfigError(f"Invalid keys in [{name}]: {exc}") from exc


def _validate_color(value: Any, dotted_key: str) -> str:
    """Return *value* when Pillow can parse it as a colour."""

    if not isinstance(value, str) or not value.strip():
        raise ConfigError(f"{dotted_key} must be a colour string")
    try:
        ImageColor.getrgb(value.strip())
    except ValueError as exc:
        raise ConfigError(f"{dotted_key} is not a recognised colour: {value!r}") from exc
    return value.strip()


def _validate_capture(capture: CaptureConfig) -> None:
    if capture.zoom not in ZOOM_LEVELS:
        raise ConfigError(
            f"capture.zoom must be a multiple of 10 between {ZOOM_LEVELS[0]} and {ZOOM_LEVELS[-1]}"
            f" (default {DEFAULT_ZOOM})"
        )
    if capture.retry_budget < 0:
        raise ConfigError("capture.retry_budget must be >= 0")
    if capture.max_frame_waits < 1:
        raise ConfigError("capture.max_frame_waits must be >= 1")
    if capture.settle_frames < 0:
        raise ConfigError("capture.settle_frames must be >= 0")
    if capture.grid_cell_size <= 0:
        raise ConfigError("capture.grid_cell_size must be > 0")


def _validate_overlay(overlay: OverlayConfig) -> None:
    overlay.background_color = _validate_color(overlay.background_color, "overlay.background_color")
    overlay.text_color = _validate_color(overlay.text_color, "overlay.text_color")
    if overlay.font_size <= 0:
        raise ConfigError("overlay.font_size must be > 0")
    candidates = overlay.font_candidates
    if not isinstance(candidates, list) or not all(isinstance(item, str) for item in candidates):
        raise ConfigError("overlay.font_candidates must be a list of font file names")


def _validate_output(output: OutputConfig) -> None:
    if output.compression_level not in (0, 1, 2):
        raise ConfigError("output.compression_level must be 0, 1, or 2")
    if not 1 <= output.jpeg_quality <= 95:
        raise ConfigError("output.jpeg_quality must be between 1 and 95")
    if output.resolution < 0:
        raise ConfigError("output.resolution must be >= 0")


def _validate_host(host: HostConfig) -> None:
    for field in fields(host):
        value = getattr(host, field.name)
        if not isinstance(value, str) or not value.strip():
            raise ConfigError(f"host.{field.name} must be a non-empty selector string")
        setattr(host, field.name, value.strip())


def validate_config(app: AppConfig) -> AppConfig:
    """Run cross-field validation on *app* in place and return it."""

    _validate_capture(app.capture)
    _validate_overlay(app.overlay)
    _validate_output(app.output)
    _validate_host(app.host)
    return app


def load_config(path: str) -> AppConfig:
    """
    Load and validate an application configuration from a TOML file.

    Reads the file at `path`, parses it as UTF-8 TOML (BOM is accepted), coerces and validates
    every section, and returns an AppConfig ready for a capture session.

    Returns:
        AppConfig: The validated configuration.

    Raises:
        ConfigError: If the file is not UTF-8, TOML parsing fails, or any validation rule is violated.
    """

    with open(path, "rb") as handle:
        raw_bytes = handle.read()
    if raw_bytes.startswith(b"\xef\xbb\xbf"):
        raw_bytes = raw_bytes[3:]
    try:
        raw = tomllib.loads(raw_bytes.decode("utf-8"))
    except UnicodeDecodeError as exc:
        raise ConfigError("Configuration file must be UTF-8 encoded") from exc
    except tomllib.TOMLDecodeError as exc:
        raise ConfigError(f"Failed to parse TOML: {exc}") from exc

    known_sections = {"capture", "overlay", "output", "host"}
    unknown = sorted(set(raw) - known_sections)
    if unknown:
        logger.warning("Config: ignoring unknown section(s): %s", ", ".join(unknown))

    app = AppConfig(
        capture=_sanitize_section(raw.get("capture", {}), "capture", CaptureConfig),
        overlay=_sanitize_section(raw.get("overlay", {}), "overlay", OverlayConfig),
        output=_sanitize_section(raw.get("output", {}), "output", OutputConfig),
        host=_sanitize_section(raw.get("host", {}), "host", HostConfig),
    )
    return validate_config(app)
