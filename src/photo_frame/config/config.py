"""Configuration manager for the photo frame."""

from __future__ import annotations

import copy
import os
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Any

import yaml

from photo_frame.errors import ConfigError


DEFAULT_CONFIG: dict[str, Any] = {
    "source": {
        "endpoint": None,
        "backend": "auto",
        "password": None,
        "timeout_seconds": 30,
        "source_size": "L",
    },
    "slideshow": {
        "order": "by_date",
        "interval": 30.0,
        "show_captions": False,
        "splash": None,
        "tick_interval": 0.033,
        "shutdown_grace": 2.0,
    },
    "transition": {
        "kind": "fade",
        "duration": 1.0,
        "slide_direction": "left",
    },
    "display": {
        "width": None,
        "height": None,
        "rotation": 0,
        "fullscreen": True,
    },
    "compositor": {
        "background": "blur",
        "blur_radius": 40,
        "darken": 0.7,
    },
    "backoff": {
        "initial_delay": 1.0,
        "multiplier": 2.0,
        "max_delay": 60.0,
        "max_attempts": 5,
    },
    "ambient": {
        "standby_debounce": 5.0,
    },
    "logging": {
        "level": "INFO",
        "log_to_file": False,
        "log_file": "photo_frame.log",
    },
}

MIN_INTERVAL_SECONDS = 5.0
MIN_TIMEOUT_SECONDS = 5
PASSWORD_ENV_VAR = "PHOTO_FRAME_PASSWORD"


class Backend(str, Enum):
    AUTO = "auto"
    SYNOLOGY = "synology"
    IMMICH = "immich"
    FTP = "ftp"


class OrderMode(str, Enum):
    BY_DATE = "by_date"
    BY_NAME = "by_name"
    RANDOM = "random"
    RANDOM_START = "random_start"


class TransitionKind(str, Enum):
    NONE = "none"
    FADE = "fade"
    SLIDE = "slide"
    FADE_TO_BLACK = "fade_to_black"


class SlideDirection(str, Enum):
    LEFT = "left"
    RIGHT = "right"
    UP = "up"
    DOWN = "down"


class BackgroundFill(str, Enum):
    BLUR = "blur"
    NONE = "none"


class SourceSize(str, Enum):
    S = "S"
    M = "M"
    L = "L"


ROTATIONS = (0, 90, 180, 270)


def _deep_merge(base: dict, override: dict) -> dict:
    """Recursively merge override into base, returning a new dict."""
    result = copy.deepcopy(base)
    for key, value in override.items():
        if key in result and isinstance(result[key], dict) and isinstance(value, dict):
            result[key] = _deep_merge(result[key], value)
        else:
            result[key] = copy.deepcopy(value)
    return result


class ConfigManager:
    """Load, save, and access YAML configuration with defaults."""

    def __init__(self, config_path: str | Path | None = None):
        self._path = Path(config_path) if config_path else None
        self._config: dict[str, Any] = copy.deepcopy(DEFAULT_CONFIG)
        if self._path and self._path.exists():
            self.load()

    @property
    def path(self) -> Path | None:
        return self._path

    @property
    def config(self) -> dict[str, Any]:
        return self._config

    def load(self, config_path: str | Path | None = None) -> None:
        """Load config from YAML file, merging with defaults."""
        path = Path(config_path) if config_path else self._path
        if path is None:
            raise ValueError("No config path specified")
        self._path = path
        with open(path, "r", encoding="utf-8") as f:
            try:
                user_config = yaml.safe_load(f) or {}
            except yaml.YAMLError as e:
                raise ConfigError(f"Invalid YAML in {path}: {e}") from e
        if not isinstance(user_config, dict):
            raise ConfigError(f"Config file {path} must contain a mapping")
        self._config = _deep_merge(DEFAULT_CONFIG, user_config)

    def save(self, config_path: str | Path | None = None) -> None:
        """Save current config to YAML file."""
        path = Path(config_path) if config_path else self._path
        if path is None:
            raise ValueError("No config path specified")
        self._path = path
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, "w", encoding="utf-8") as f:
            yaml.dump(self._config, f, default_flow_style=False, sort_keys=False)

    def get(self, dotted_key: str, default: Any = None) -> Any:
        """Get a config value using dotted notation (e.g. 'slideshow.interval')."""
        keys = dotted_key.split(".")
        value = self._config
        for key in keys:
            if isinstance(value, dict) and key in value:
                value = value[key]
            else:
                return default
        return value

    def set(self, dotted_key: str, value: Any) -> None:
        """Set a config value using dotted notation."""
        keys = dotted_key.split(".")
        target = self._config
        for key in keys[:-1]:
            if key not in target or not isinstance(target[key], dict):
                target[key] = {}
            target = target[key]
        target[keys[-1]] = value

    def reset(self) -> None:
        """Reset config to defaults."""
        self._config = copy.deepcopy(DEFAULT_CONFIG)


@dataclass(frozen=True)
class BackoffSettings:
    initial_delay: float = 1.0
    multiplier: float = 2.0
    max_delay: float = 60.0
    max_attempts: int = 5


@dataclass(frozen=True)
class FrameSettings:
    """Validated, typed view of the configuration used to build the pipeline."""

    endpoint: str
    backend: Backend
    password: str | None
    timeout_seconds: int
    source_size: SourceSize
    order: OrderMode
    interval: float
    show_captions: bool
    splash: Path | None
    tick_interval: float
    shutdown_grace: float
    transition: TransitionKind
    transition_duration: float
    slide_direction: SlideDirection
    display_size: tuple[int, int] | None
    rotation: int
    fullscreen: bool
    background: BackgroundFill
    blur_radius: float
    darken: float
    backoff: BackoffSettings
    standby_debounce: float

    @classmethod
    def from_config(cls, config: ConfigManager) -> "FrameSettings":
        endpoint = config.get("source.endpoint")
        if not endpoint:
            raise ConfigError("source.endpoint is required (album share link or ftp:// URL)")

        password = os.environ.get(PASSWORD_ENV_VAR) or config.get("source.password")

        timeout = _number(config, "source.timeout_seconds", int)
        if timeout < MIN_TIMEOUT_SECONDS:
            raise ConfigError(f"source.timeout_seconds must be at least {MIN_TIMEOUT_SECONDS}")

        interval = _number(config, "slideshow.interval", float)
        if interval < MIN_INTERVAL_SECONDS:
            raise ConfigError(f"slideshow.interval must be at least {MIN_INTERVAL_SECONDS:g} seconds")

        splash = config.get("slideshow.splash")

        width = config.get("display.width")
        height = config.get("display.height")
        if (width is None) != (height is None):
            raise ConfigError("display.width and display.height must be set together")
        display_size = None
        if width is not None:
            display_size = (_number(config, "display.width", int), _number(config, "display.height", int))
            if min(display_size) < 1:
                raise ConfigError("display size must be positive")

        rotation = _number(config, "display.rotation", int)
        if rotation not in ROTATIONS:
            raise ConfigError(f"display.rotation must be one of {ROTATIONS}, got {rotation}")

        darken = _number(config, "compositor.darken", float)
        if not 0.0 <= darken <= 1.0:
            raise ConfigError("compositor.darken must be between 0 and 1")

        backoff = BackoffSettings(
            initial_delay=_number(config, "backoff.initial_delay", float),
            multiplier=_number(config, "backoff.multiplier", float),
            max_delay=_number(config, "backoff.max_delay", float),
            max_attempts=_number(config, "backoff.max_attempts", int),
        )
        if backoff.max_attempts < 1:
            raise ConfigError("backoff.max_attempts must be at least 1")
        if backoff.initial_delay < 0 or backoff.max_delay < 0 or backoff.multiplier < 1:
            raise ConfigError("backoff delays must be non-negative and multiplier at least 1")

        return cls(
            endpoint=str(endpoint),
            backend=_choice(config, "source.backend", Backend),
            password=password,
            timeout_seconds=timeout,
            source_size=_choice(config, "source.source_size", SourceSize),
            order=_choice(config, "slideshow.order", OrderMode),
            interval=interval,
            show_captions=bool(config.get("slideshow.show_captions")),
            splash=Path(splash) if splash else None,
            tick_interval=_number(config, "slideshow.tick_interval", float),
            shutdown_grace=_number(config, "slideshow.shutdown_grace", float),
            transition=_choice(config, "transition.kind", TransitionKind),
            transition_duration=_number(config, "transition.duration", float),
            slide_direction=_choice(config, "transition.slide_direction", SlideDirection),
            display_size=display_size,
            rotation=rotation,
            fullscreen=bool(config.get("display.fullscreen")),
            background=_choice(config, "compositor.background", BackgroundFill),
            blur_radius=_number(config, "compositor.blur_radius", float),
            darken=darken,
            backoff=backoff,
            standby_debounce=_number(config, "ambient.standby_debounce", float),
        )


def _number(config: ConfigManager, key: str, kind: type) -> Any:
    value = config.get(key)
    try:
        return kind(value)
    except (TypeError, ValueError) as e:
        raise ConfigError(f"{key} must be a number, got {value!r}") from e


def _choice(config: ConfigManager, key: str, enum_type: type[Enum]) -> Any:
    value = config.get(key)
    raw = str(value).upper() if enum_type is SourceSize else str(value).lower().replace("-", "_")
    try:
        return enum_type(raw)
    except ValueError as e:
        allowed = ", ".join(member.value for member in enum_type)
        raise ConfigError(f"{key} must be one of: {allowed} (got {value!r})") from e
