"""
OpenCV camera backend
Local webcam capture for snapshots and video recordings
"""

import asyncio
import logging
import os
import tempfile
from pathlib import Path
from typing import Optional, Tuple

from civicai.core.config import settings
from civicai.core.errors import DeviceAccessDenied
from civicai.capture.devices import CaptureDevice, MediaStream, StreamConstraints

logger = logging.getLogger(__name__)


class OpenCVStream(MediaStream):
    """
    Frames pulled from a cv2.VideoCapture by a background task.

    Recordings are written as Motion-JPEG AVI to a temporary file and
    returned in one piece by finish(); read_chunk() only paces the recorder.
    """

    recording_mime_type = "video/x-msvideo"

    def __init__(self, cv2, capture, fps: float = 15.0):
        self._cv2 = cv2
        self._capture = capture
        self._fps = fps

        self._latest = None
        self._active = True
        self._recording = False
        self._writer = None
        self._record_path: Optional[Path] = None

        self._pump_task = asyncio.get_running_loop().create_task(self._pump())

    async def _pump(self) -> None:
        """Read frames until stopped, then release the device."""
        try:
            while self._active:
                ok, frame = await asyncio.to_thread(self._capture.read)
                if not self._active:
                    break
                if not ok:
                    await asyncio.sleep(1.0 / self._fps)
                    continue
                self._latest = frame
                if self._recording:
                    self._write_frame(frame)
        finally:
            self._capture.release()
            self._close_writer()
            logger.debug("OpenCV capture released")

    def _write_frame(self, frame) -> None:
        if self._writer is None:
            height, width = frame.shape[:2]
            fd, path = tempfile.mkstemp(suffix=".avi", prefix="civicai-")
            os.close(fd)
            self._record_path = Path(path)
            fourcc = self._cv2.VideoWriter_fourcc(*"MJPG")
            self._writer = self._cv2.VideoWriter(path, fourcc, self._fps, (width, height))
        self._writer.write(frame)

    def _close_writer(self) -> None:
        if self._writer is not None:
            self._writer.release()
            self._writer = None

    def _discard_recording(self) -> None:
        if self._record_path is not None:
            self._record_path.unlink(missing_ok=True)
            self._record_path = None

    @property
    def frame_size(self) -> Tuple[int, int]:
        if self._latest is None:
            return (0, 0)
        height, width = self._latest.shape[:2]
        return (width, height)

    @property
    def active(self) -> bool:
        return self._active

    async def snapshot(self, mime_type: str, quality: float) -> bytes:
        if self._latest is None:
            return b""
        if mime_type == "image/png":
            ok, buffer = self._cv2.imencode(".png", self._latest)
        else:
            params = [self._cv2.IMWRITE_JPEG_QUALITY, int(quality * 100)]
            ok, buffer = self._cv2.imencode(".jpg", self._latest, params)
        return buffer.tobytes() if ok else b""

    async def read_chunk(self, timeout: float) -> bytes:
        self._recording = True
        await asyncio.sleep(timeout)
        return b""

    async def finish(self) -> bytes:
        self._recording = False
        self._close_writer()
        if self._record_path is None:
            return b""
        data = self._record_path.read_bytes()
        self._discard_recording()
        return data

    def stop(self) -> None:
        if not self._active:
            return
        self._active = False
        self._recording = False
        if self._pump_task.done():
            self._capture.release()
        self._close_writer()
        self._discard_recording()


class OpenCVCamera(CaptureDevice):
    """
    Webcam device backed by OpenCV.

    OpenCV has no audio capture; recordings are video-only.
    """

    def __init__(self, index: Optional[int] = None, fps: float = 15.0):
        """
        Initialize camera device.

        Args:
            index: OpenCV camera index
            fps: Frame rate used for pulling frames and writing recordings
        """
        self.index = index if index is not None else settings.camera_index
        self.fps = fps

    async def open(self, constraints: StreamConstraints) -> MediaStream:
        try:
            import cv2
        except ImportError as e:
            raise DeviceAccessDenied("OpenCV is not installed") from e

        capture = await asyncio.to_thread(cv2.VideoCapture, self.index)
        if not capture.isOpened():
            capture.release()
            raise DeviceAccessDenied(f"Camera {self.index} could not be opened")

        capture.set(cv2.CAP_PROP_FRAME_WIDTH, constraints.width)
        capture.set(cv2.CAP_PROP_FRAME_HEIGHT, constraints.height)

        if constraints.audio:
            logger.warning("OpenCV cannot capture audio; recording video only")

        logger.info(f"Camera {self.index} opened at {constraints.width}x{constraints.height}")
        return OpenCVStream(cv2, capture, fps=self.fps)
