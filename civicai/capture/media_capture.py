"""
Media capture state machine
Camera snapshot and video recording with guaranteed device release

States:
    Idle -> Acquiring -> CameraActive -> PhotoReady
    CameraActive -> Acquiring -> Recording -> VideoReady
    Recording -> Failed -> (stop_recording) -> Idle
    any active state -> (cancel) -> Idle
"""

import asyncio
import logging
from contextlib import asynccontextmanager
from dataclasses import dataclass, replace
from typing import AsyncIterator, Optional, Type, Union

from civicai.core.config import settings
from civicai.core.constants import MIN_SNAPSHOT_BYTES, SNAPSHOT_MIME_TYPE
from civicai.core.errors import (
    DeviceAccessDenied,
    DeviceNotReady,
    InvalidCaptureState,
    RecordingFailed,
)
from civicai.capture.devices import CaptureDevice, MediaStream, StreamConstraints
from civicai.issues.models import CaptureOrigin, MediaAsset

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Idle:
    """No device held, no asset."""


@dataclass(eq=False)
class Acquiring:
    """Device open in flight. cancel() marks it abandoned; the stream is then released on arrival."""
    cancelled: bool = False


@dataclass(frozen=True)
class CameraActive:
    """Preview stream open; the stream is the live frame surface."""
    stream: MediaStream


@dataclass(frozen=True)
class Recording:
    """Audio+video stream open and being recorded by a background task."""
    stream: MediaStream
    stop_requested: asyncio.Event
    task: asyncio.Task


@dataclass(frozen=True)
class PhotoReady:
    asset: MediaAsset


@dataclass(frozen=True)
class VideoReady:
    asset: MediaAsset


@dataclass(frozen=True)
class Failed:
    """Recording stopped by an error, held until stop_recording() reports it."""
    error: RecordingFailed


CaptureState = Union[Idle, Acquiring, CameraActive, Recording, PhotoReady, VideoReady, Failed]


class MediaCapture:
    """
    Owns camera/microphone acquisition for one citizen session.

    The device is released on every transition out of CameraActive or
    Recording, including errors and cancellation. Use session() to scope
    acquisition so that an exception escaping the caller releases it too.
    """

    def __init__(
        self,
        device: CaptureDevice,
        constraints: Optional[StreamConstraints] = None,
        snapshot_quality: Optional[float] = None,
        max_recording_seconds: Optional[float] = None,
        chunk_seconds: Optional[float] = None
    ):
        """
        Initialize media capture.

        Args:
            device: Camera/microphone hardware
            constraints: Stream constraints (rear camera, ideal resolution)
            snapshot_quality: JPEG quality for snapshots (0-1)
            max_recording_seconds: Recording ceiling; recording stops by itself after this
            chunk_seconds: Interval at which recorded data is collected
        """
        self.device = device
        self.constraints = constraints or StreamConstraints()
        self.snapshot_quality = snapshot_quality or settings.snapshot_quality
        self.max_recording_seconds = max_recording_seconds or settings.max_recording_seconds
        self.chunk_seconds = chunk_seconds or settings.recording_chunk_seconds

        self._state: CaptureState = Idle()

    @property
    def state(self) -> CaptureState:
        return self._state

    @property
    def device_held(self) -> bool:
        """True while a stream acquired by this capture is still active."""
        stream = getattr(self._state, "stream", None)
        return stream is not None and stream.active

    @property
    def surface(self) -> Optional[MediaStream]:
        """Live frame surface while the camera is active."""
        if isinstance(self._state, CameraActive):
            return self._state.stream
        return None

    @property
    def asset(self) -> Optional[MediaAsset]:
        """The captured asset in PhotoReady/VideoReady, else None."""
        if isinstance(self._state, (PhotoReady, VideoReady)):
            return self._state.asset
        return None

    def _require(self, state_type: Type, action: str):
        if not isinstance(self._state, state_type):
            raise InvalidCaptureState(
                f"Cannot {action} while {type(self._state).__name__}"
            )
        return self._state

    @staticmethod
    def _release(stream: MediaStream) -> None:
        if stream.active:
            stream.stop()
            logger.debug("Capture device released")

    async def _acquire(self, constraints: StreamConstraints) -> MediaStream:
        """
        Open the device while holding the Acquiring state.

        The caller installs the next state; on any failure the state
        returns to Idle.

        Raises:
            DeviceAccessDenied: permission refused or device unavailable
            InvalidCaptureState: cancel() was called while the device opened
        """
        acquiring = Acquiring()
        self._state = acquiring
        try:
            stream = await self.device.open(constraints)
        except DeviceAccessDenied as e:
            logger.warning(f"Device access denied: {e}")
            raise
        except OSError as e:
            logger.warning(f"Device access denied: {e}")
            raise DeviceAccessDenied(str(e)) from e
        finally:
            if self._state is acquiring:
                self._state = Idle()

        if acquiring.cancelled:
            self._release(stream)
            raise InvalidCaptureState("Capture was cancelled while the device was opening")
        return stream

    async def open_camera(self) -> MediaStream:
        """
        Acquire the rear camera.

        Returns:
            The live frame surface

        Raises:
            DeviceAccessDenied: state stays Idle
            InvalidCaptureState: not Idle, including while another open is in flight
        """
        self._require(Idle, "open the camera")
        stream = await self._acquire(replace(self.constraints, audio=False))
        self._state = CameraActive(stream)
        logger.info("Camera active")
        return stream

    async def capture_snapshot(self) -> MediaAsset:
        """
        Render the current frame into a still image and release the camera.

        Raises:
            DeviceNotReady: no frame yet; the camera stays open for a retry
        """
        state = self._require(CameraActive, "capture a snapshot")

        width, height = state.stream.frame_size
        if width == 0 or height == 0:
            raise DeviceNotReady("Camera is still loading")

        data = await state.stream.snapshot(SNAPSHOT_MIME_TYPE, self.snapshot_quality)
        if self._state is not state:
            raise InvalidCaptureState("Capture was cancelled during the snapshot")
        if len(data) < MIN_SNAPSHOT_BYTES:
            raise DeviceNotReady("Camera returned an empty frame")

        self._release(state.stream)
        asset = MediaAsset(data=data, mime_type=SNAPSHOT_MIME_TYPE, origin=CaptureOrigin.CAMERA_SNAPSHOT)
        self._state = PhotoReady(asset)
        logger.info(f"Photo captured: {width}x{height}, {asset.size} bytes")
        return asset

    async def start_recording(self) -> None:
        """
        Switch from the preview to a combined audio+video recording.

        The recording stops by itself after max_recording_seconds.
        """
        state = self._require(CameraActive, "start recording")
        self._release(state.stream)

        stream = await self._acquire(replace(self.constraints, audio=True))
        stop_requested = asyncio.Event()
        task = asyncio.get_running_loop().create_task(self._record(stream, stop_requested))
        task.add_done_callback(self._log_recording_failure)
        self._state = Recording(stream=stream, stop_requested=stop_requested, task=task)
        logger.info(f"Recording started (ceiling {self.max_recording_seconds}s)")

    async def _record(self, stream: MediaStream, stop_requested: asyncio.Event) -> MediaAsset:
        loop = asyncio.get_running_loop()
        deadline = loop.time() + self.max_recording_seconds
        chunks = []

        try:
            while not stop_requested.is_set():
                remaining = deadline - loop.time()
                if remaining <= 0:
                    logger.info("Recording reached its time ceiling")
                    break
                chunk = await stream.read_chunk(min(self.chunk_seconds, remaining))
                if chunk:
                    chunks.append(chunk)
            chunks.append(await stream.finish())
        except Exception as e:
            error = RecordingFailed(str(e) or type(e).__name__)
            if self._owns(stream):
                self._state = Failed(error)
            raise error from e
        finally:
            self._release(stream)

        asset = MediaAsset(
            data=b"".join(chunks),
            mime_type=stream.recording_mime_type,
            origin=CaptureOrigin.CAMERA_RECORDING,
        )
        if self._owns(stream):
            self._state = VideoReady(asset)
            logger.info(f"Recording finished: {asset.size} bytes")
        return asset

    def _owns(self, stream: MediaStream) -> bool:
        return isinstance(self._state, Recording) and self._state.stream is stream

    @staticmethod
    def _log_recording_failure(task: asyncio.Task) -> None:
        if not task.cancelled() and task.exception() is not None:
            logger.error(f"Recording failed: {task.exception()}")

    def _raise_failure(self, state: Failed) -> None:
        self._state = Idle()
        raise state.error

    async def stop_recording(self) -> MediaAsset:
        """
        Finalize the recording into one asset.

        Returns the existing asset when the ceiling already stopped it.

        Raises:
            RecordingFailed: the recorder failed; the state returns to Idle
        """
        if isinstance(self._state, VideoReady):
            return self._state.asset
        if isinstance(self._state, Failed):
            self._raise_failure(self._state)

        state = self._require(Recording, "stop recording")
        state.stop_requested.set()
        await asyncio.wait({state.task})
        if state.task.cancelled():
            raise InvalidCaptureState("Recording was cancelled")
        if isinstance(self._state, Failed):
            self._raise_failure(self._state)
        return state.task.result()

    def select_file(self, asset: MediaAsset) -> None:
        """Use a picked file instead of the camera, releasing any held device."""
        self.cancel()
        if asset.mime_type.startswith("video/"):
            self._state = VideoReady(asset)
        else:
            self._state = PhotoReady(asset)
        logger.info(f"File selected: {asset!r}")

    def cancel(self) -> None:
        """
        Release the device without producing an asset.

        An open still in flight is marked cancelled and its stream is
        released as soon as it arrives. Idempotent; a no-op in Idle,
        PhotoReady and VideoReady.
        """
        state = self._state
        if isinstance(state, Acquiring):
            if not state.cancelled:
                state.cancelled = True
                logger.info("Capture cancelled while the device was opening")
            return
        if isinstance(state, CameraActive):
            self._release(state.stream)
        elif isinstance(state, Recording):
            state.task.cancel()
            self._release(state.stream)
        elif not isinstance(state, Failed):
            return
        self._state = Idle()
        logger.info("Capture cancelled")

    def discard(self) -> None:
        """Drop any captured asset (retake/remove) and return to Idle."""
        self.cancel()
        if not isinstance(self._state, Acquiring):
            self._state = Idle()

    @asynccontextmanager
    async def session(self) -> AsyncIterator["MediaCapture"]:
        """Scope device acquisition; the device is released on exit."""
        try:
            yield self
        finally:
            self.cancel()
