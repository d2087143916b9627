"""Display driver contract."""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass

from photo_frame.models import Frame


@dataclass(frozen=True)
class ShutdownRequested:
    reason: str = "user"


class Display(ABC):
    """Where frames end up. Called from the engine thread only."""

    @abstractmethod
    def size(self) -> tuple[int, int]:
        """Physical resolution in pixels."""

    @abstractmethod
    def present(self, frame: Frame) -> None: ...

    @abstractmethod
    def poll_events(self) -> ShutdownRequested | None: ...

    def set_standby(self, enabled: bool) -> None:
        """Enter or leave low-power mode. Displays without one ignore it."""

    def close(self) -> None:
        """Tear down the output once the slideshow has ended."""
