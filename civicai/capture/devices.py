"""
Capture device abstraction
Camera/microphone hardware seen as exclusive, releasable streams
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Tuple

from civicai.core.config import settings
from civicai.core.constants import CAMERA_FACING_MODE


@dataclass(frozen=True)
class StreamConstraints:
    """What to ask the device for when acquiring a stream."""
    facing_mode: str = CAMERA_FACING_MODE
    width: int = settings.camera_width
    height: int = settings.camera_height
    audio: bool = False


class MediaStream(ABC):
    """
    A live, acquired capture stream.

    Holding an active stream holds the device. stop() must be idempotent.
    """

    recording_mime_type: str = "video/webm"

    @property
    @abstractmethod
    def frame_size(self) -> Tuple[int, int]:
        """(width, height) of the live frame; (0, 0) while the camera warms up."""

    @property
    @abstractmethod
    def active(self) -> bool:
        """True until stop() has released every track."""

    @abstractmethod
    async def snapshot(self, mime_type: str, quality: float) -> bytes:
        """Encode the current frame as a still image."""

    @abstractmethod
    async def read_chunk(self, timeout: float) -> bytes:
        """Recorded data produced during the next `timeout` seconds."""

    @abstractmethod
    async def finish(self) -> bytes:
        """Flush recorder data not yet returned by read_chunk."""

    @abstractmethod
    def stop(self) -> None:
        """Stop all tracks and release the device."""


class CaptureDevice(ABC):
    """Camera/microphone hardware."""

    @abstractmethod
    async def open(self, constraints: StreamConstraints) -> MediaStream:
        """
        Acquire a stream.

        Raises:
            DeviceAccessDenied: permission refused or device unavailable
        """
