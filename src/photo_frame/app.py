"""Command line entry point for the photo frame.

Usage:
    photo-frame <share link or ftp:// URL> [options]

The slideshow engine runs on a worker thread while the Qt event loop owns
the main thread. Esc or Q quits, Space pauses, S requests standby.
"""

from __future__ import annotations

import argparse
import locale
import logging
import sys
import threading
from pathlib import Path

from photo_frame import __version__
from photo_frame.config.config import ConfigManager, FrameSettings
from photo_frame.display.base import Display
from photo_frame.errors import ConfigError, PhotoFrameError
from photo_frame.render.compositor import Compositor
from photo_frame.render.transition import TransitionEngine
from photo_frame.slideshow.controller import AmbientControl
from photo_frame.slideshow.engine import SlideshowEngine
from photo_frame.slideshow.ordering import OrderingEngine
from photo_frame.slideshow.resilience import RetryPolicy, ShutdownInterrupt, list_with_retry
from photo_frame.sources.factory import create_source


logger = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
LOG_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Unattended slideshow of a shared photo album",
        prog="photo-frame",
    )
    parser.add_argument(
        "endpoint",
        nargs="?",
        default=None,
        help="Album share link (Synology Photos, Immich) or ftp:// URL",
    )
    parser.add_argument("--config", "-c", default=None, help="Path to config YAML file")
    parser.add_argument("--password", "-p", default=None, help="Album or FTP password")
    parser.add_argument(
        "--backend",
        choices=["auto", "synology", "immich", "ftp"],
        default=None,
        help="Photo source type (default: detect from the endpoint)",
    )
    parser.add_argument(
        "--order",
        choices=["by_date", "by_name", "random", "random_start"],
        default=None,
        help="Order in which photos are shown",
    )
    parser.add_argument("--interval", "-i", type=float, default=None, help="Seconds per photo (at least 5)")
    parser.add_argument(
        "--transition",
        choices=["none", "fade", "slide", "fade_to_black"],
        default=None,
        help="Transition between photos",
    )
    parser.add_argument("--captions", action="store_true", default=None, help="Show date and place of each photo")
    parser.add_argument("--splash", default=None, help="Image shown while the first photo loads")
    parser.add_argument("--rotate", type=int, choices=[0, 90, 180, 270], default=None, help="Rotate output")
    parser.add_argument("--windowed", action="store_true", help="Run in a window instead of fullscreen")
    parser.add_argument("--verbose", "-v", action="store_true", help="Enable debug logging")
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    return parser


def load_config(args: argparse.Namespace) -> ConfigManager:
    """Defaults, then the YAML file, then command line overrides."""
    config = ConfigManager()
    if args.config:
        config_path = Path(args.config)
        if not config_path.exists():
            raise ConfigError(f"Config file not found: {config_path}")
        config.load(config_path)

    overrides = {
        "source.endpoint": args.endpoint,
        "source.password": args.password,
        "source.backend": args.backend,
        "slideshow.order": args.order,
        "slideshow.interval": args.interval,
        "slideshow.show_captions": args.captions,
        "slideshow.splash": args.splash,
        "transition.kind": args.transition,
        "display.rotation": args.rotate,
    }
    for key, value in overrides.items():
        if value is not None:
            config.set(key, value)
    if args.windowed:
        config.set("display.fullscreen", False)
    if args.verbose:
        config.set("logging.level", "DEBUG")
    return config


def setup_logging(config: ConfigManager) -> None:
    """Configure the root logger from the logging section."""
    level_name = str(config.get("logging.level", "INFO")).upper()
    level = getattr(logging, level_name, logging.INFO)
    handlers: list[logging.Handler] = [logging.StreamHandler()]
    if config.get("logging.log_to_file"):
        handlers.append(logging.FileHandler(config.get("logging.log_file"), encoding="utf-8"))
    logging.basicConfig(level=level, format=LOG_FORMAT, datefmt=LOG_DATE_FORMAT, handlers=handlers, force=True)


def setup_locale() -> None:
    """Use the environment's LC_TIME for caption dates."""
    try:
        locale.setlocale(locale.LC_TIME, "")
    except locale.Error as e:
        logger.warning(f"Unsupported locale in LC_ALL/LC_TIME/LANG ({e}), falling back to POSIX date format")


def exit_code_for(error: BaseException | None) -> int:
    if error is None:
        return 0
    if isinstance(error, PhotoFrameError):
        return error.exit_code
    return 1


class SlideshowWorker(threading.Thread):
    """Lists the album and runs the engine; remembers a fatal error."""

    def __init__(self, settings: FrameSettings, display: Display, control: AmbientControl):
        super().__init__(name="slideshow", daemon=True)
        self.settings = settings
        self.display = display
        self.control = control
        self.stop_event = threading.Event()
        self.error: BaseException | None = None

    def run(self) -> None:
        settings = self.settings
        source = None
        try:
            compositor = Compositor(
                self.display.size(),
                background=settings.background,
                blur_radius=settings.blur_radius,
                darken=settings.darken,
                show_captions=settings.show_captions,
                rotation=settings.rotation,
            )
            splash = compositor.splash_frame(settings.splash)
            self.display.present(splash)

            policy = RetryPolicy(settings.backoff, stop_event=self.stop_event)
            source = create_source(settings)
            photos = list_with_retry(source, policy)
            engine = SlideshowEngine(
                source=source,
                ordering=OrderingEngine(photos, settings.order),
                compositor=compositor,
                transition=TransitionEngine(
                    settings.transition,
                    settings.transition_duration,
                    settings.slide_direction,
                ),
                display=self.display,
                policy=policy,
                control=self.control,
                interval=settings.interval,
                tick_interval=settings.tick_interval,
                shutdown_grace=settings.shutdown_grace,
                splash=splash,
            )
            source = None  # closed by the engine
            engine.run()
        except ShutdownInterrupt:
            logger.info("Stopped before the album was listed")
        except Exception as e:
            self.error = e
            logger.error(f"{type(e).__name__}: {e}")
        finally:
            if source is not None:
                source.close()
            self.display.close()


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    try:
        config = load_config(args)
        setup_logging(config)
        settings = FrameSettings.from_config(config)
    except PhotoFrameError as e:
        logging.basicConfig(format=LOG_FORMAT, datefmt=LOG_DATE_FORMAT)
        logger.error(f"{type(e).__name__}: {e}")
        return exit_code_for(e)
    setup_locale()
    logger.info(f"photo-frame {__version__} starting")

    from PyQt6.QtWidgets import QApplication

    from photo_frame.display.qt_display import QtDisplay

    app = QApplication.instance()
    if app is None:
        app = QApplication(sys.argv)

    control = AmbientControl(settings.standby_debounce)
    display = QtDisplay(settings.display_size, fullscreen=settings.fullscreen, control=control)
    display.show()

    worker = SlideshowWorker(settings, display, control)
    worker.start()
    app.exec()

    worker.stop_event.set()
    worker.join(settings.shutdown_grace + 1)
    return exit_code_for(worker.error)


if __name__ == "__main__":
    sys.exit(main())
