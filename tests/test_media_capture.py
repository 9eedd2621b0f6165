"""
Tests for the media capture state machine
"""
import asyncio
import time
import pytest
from types import SimpleNamespace

import sys
sys.path.insert(0, '.')

from civicai.capture.devices import StreamConstraints
from civicai.capture.opencv_camera import OpenCVStream
from civicai.capture.media_capture import (
    Acquiring,
    CameraActive,
    Failed,
    Idle,
    MediaCapture,
    PhotoReady,
    Recording,
    VideoReady,
)
from civicai.core.errors import (
    DeviceAccessDenied,
    DeviceNotReady,
    InvalidCaptureState,
    RecordingFailed,
    describe_error,
)
from civicai.issues.models import CaptureOrigin, MediaAsset
from tests.helpers import FakeCamera


class TestCameraSnapshot:
    """Test suite for photo capture."""

    def setup_method(self):
        """Setup test fixtures."""
        self.camera = FakeCamera()
        self.capture = MediaCapture(self.camera, chunk_seconds=0.01, max_recording_seconds=0.05)

    def test_open_camera_requests_rear_camera(self):
        """Test the camera opens with the rear camera at 1280x720 without audio."""
        async def run():
            await self.capture.open_camera()
            return self.camera.streams[0].constraints

        constraints = asyncio.run(run())

        assert constraints.facing_mode == "environment"
        assert (constraints.width, constraints.height) == (1280, 720)
        assert constraints.audio is False
        assert isinstance(self.capture.state, CameraActive)
        assert self.capture.device_held

    def test_snapshot_releases_camera(self):
        """Test a snapshot produces a JPEG and stops every track."""
        async def run():
            await self.capture.open_camera()
            return await self.capture.capture_snapshot()

        asset = asyncio.run(run())

        assert asset.mime_type == "image/jpeg"
        assert asset.origin == CaptureOrigin.CAMERA_SNAPSHOT
        assert isinstance(self.capture.state, PhotoReady)
        assert self.capture.asset is asset
        assert not self.capture.device_held
        assert self.camera.streams[0].stop_calls == 1

    def test_snapshot_before_first_frame(self):
        """Test a zero-size frame raises DeviceNotReady and keeps the camera for a retry."""
        camera = FakeCamera(frame_size=(0, 0))
        capture = MediaCapture(camera)

        async def run():
            await capture.open_camera()
            with pytest.raises(DeviceNotReady):
                await capture.capture_snapshot()
            assert isinstance(capture.state, CameraActive)
            camera.streams[0].warm_up()
            return await capture.capture_snapshot()

        asset = asyncio.run(run())

        assert asset.size > 100
        assert len(camera.streams) == 1
        assert camera.active_streams == []

    def test_tiny_frame_is_rejected(self):
        """Test an encoded frame of 100 bytes or fewer is treated as not ready."""
        async def run():
            stream = await self.capture.open_camera()
            stream.frame = b"\xff\xd8"
            with pytest.raises(DeviceNotReady):
                await self.capture.capture_snapshot()

        asyncio.run(run())

        assert isinstance(self.capture.state, CameraActive)

    def test_session_releases_on_error(self):
        """Test leaving the session releases the camera after DeviceNotReady."""
        camera = FakeCamera(frame_size=(0, 0))
        capture = MediaCapture(camera)

        async def run():
            async with capture.session():
                await capture.open_camera()
                await capture.capture_snapshot()

        with pytest.raises(DeviceNotReady):
            asyncio.run(run())

        assert isinstance(capture.state, Idle)
        assert camera.active_streams == []

    def test_permission_denied_stays_idle(self):
        """Test denied access raises and leaves the state Idle."""
        capture = MediaCapture(FakeCamera(deny=True))

        with pytest.raises(DeviceAccessDenied):
            asyncio.run(capture.open_camera())

        assert isinstance(capture.state, Idle)
        assert not capture.device_held

    def test_snapshot_requires_active_camera(self):
        """Test a snapshot without an open camera is rejected."""
        with pytest.raises(InvalidCaptureState):
            asyncio.run(self.capture.capture_snapshot())

    def test_open_twice_is_rejected(self):
        """Test the camera cannot be opened while already active."""
        async def run():
            await self.capture.open_camera()
            await self.capture.open_camera()

        with pytest.raises(InvalidCaptureState):
            asyncio.run(run())

        assert len(self.camera.streams) == 1

    def test_cancel_is_idempotent(self):
        """Test cancelling twice releases once and ends Idle."""
        async def run():
            await self.capture.open_camera()

        asyncio.run(run())
        self.capture.cancel()
        self.capture.cancel()

        assert isinstance(self.capture.state, Idle)
        assert self.camera.streams[0].stop_calls == 1

    def test_discard_after_photo(self):
        """Test discarding a captured photo returns to Idle."""
        async def run():
            await self.capture.open_camera()
            await self.capture.capture_snapshot()

        asyncio.run(run())
        self.capture.discard()

        assert isinstance(self.capture.state, Idle)
        assert self.capture.asset is None


class TestDeviceAcquisition:
    """Test suite for the window while the device is opening."""

    def setup_method(self):
        """Setup test fixtures."""
        self.camera = FakeCamera(open_delay=0.01)
        self.capture = MediaCapture(self.camera, chunk_seconds=0.01, max_recording_seconds=5.0)

    def test_overlapping_open_is_rejected(self):
        """Test a second open while the first is in flight fails and only one stream is opened."""
        async def run():
            return await asyncio.gather(
                self.capture.open_camera(),
                self.capture.open_camera(),
                return_exceptions=True,
            )

        results = asyncio.run(run())

        assert sum(isinstance(r, InvalidCaptureState) for r in results) == 1
        assert len(self.camera.streams) == 1
        assert isinstance(self.capture.state, CameraActive)

        self.capture.cancel()

        assert self.camera.active_streams == []

    def test_cancel_while_opening(self):
        """Test cancel during the open releases the arriving stream and stays Idle."""
        async def run():
            task = asyncio.get_running_loop().create_task(self.capture.open_camera())
            await asyncio.sleep(0)
            self.capture.cancel()
            state = self.capture.state
            with pytest.raises(InvalidCaptureState):
                await task
            return state

        state = asyncio.run(run())

        assert isinstance(state, Acquiring)
        assert isinstance(self.capture.state, Idle)
        assert len(self.camera.streams) == 1
        assert self.camera.active_streams == []

    def test_open_during_recording_switch_is_rejected(self):
        """Test opening the camera while the recording stream is being acquired fails."""
        async def run():
            await self.capture.open_camera()
            starting = asyncio.get_running_loop().create_task(self.capture.start_recording())
            await asyncio.sleep(0)
            with pytest.raises(InvalidCaptureState):
                await self.capture.open_camera()
            await starting
            return await self.capture.stop_recording()

        asset = asyncio.run(run())

        assert asset.origin == CaptureOrigin.CAMERA_RECORDING
        assert len(self.camera.streams) == 2
        assert self.camera.active_streams == []

    def test_cancel_while_switching_to_recording(self):
        """Test cancel during the recording switch leaves no stream held."""
        async def run():
            await self.capture.open_camera()
            starting = asyncio.get_running_loop().create_task(self.capture.start_recording())
            await asyncio.sleep(0)
            self.capture.cancel()
            with pytest.raises(InvalidCaptureState):
                await starting

        asyncio.run(run())

        assert isinstance(self.capture.state, Idle)
        assert self.camera.active_streams == []


class TestVideoRecording:
    """Test suite for video recording."""

    def setup_method(self):
        """Setup test fixtures."""
        self.camera = FakeCamera()
        self.capture = MediaCapture(self.camera, chunk_seconds=0.01, max_recording_seconds=5.0)

    def test_start_recording_reacquires_with_audio(self):
        """Test recording releases the preview and opens an audio+video stream."""
        async def run():
            await self.capture.open_camera()
            await self.capture.start_recording()
            state = self.capture.state
            asset = await self.capture.stop_recording()
            return state, asset

        state, asset = asyncio.run(run())

        preview, recording = self.camera.streams
        assert isinstance(state, Recording)
        assert preview.stop_calls == 1
        assert recording.constraints.audio is True
        assert asset.mime_type == "video/webm"
        assert asset.origin == CaptureOrigin.CAMERA_RECORDING
        assert isinstance(self.capture.state, VideoReady)

    def test_recording_collects_chunks(self):
        """Test the recorded asset joins every chunk and the final flush."""
        async def run():
            await self.capture.open_camera()
            await self.capture.start_recording()
            await asyncio.sleep(0.05)
            return await self.capture.stop_recording()

        asset = asyncio.run(run())

        stream = self.camera.streams[1]
        assert stream.chunks_read >= 1
        assert asset.data == b"chunk" * stream.chunks_read + b"tail"
        assert stream.stop_calls == 1

    def test_recording_ceiling_stops_automatically(self):
        """Test recording stops by itself at the ceiling and stop is then harmless."""
        capture = MediaCapture(self.camera, chunk_seconds=0.01, max_recording_seconds=0.05)

        async def run():
            await capture.open_camera()
            await capture.start_recording()
            await asyncio.sleep(0.2)
            state = capture.state
            asset = await capture.stop_recording()
            return state, asset

        state, asset = asyncio.run(run())

        assert isinstance(state, VideoReady)
        assert asset is state.asset
        assert self.camera.streams[1].stop_calls == 1
        assert self.camera.streams[1].finish_calls == 1

    def test_recording_denied_audio(self):
        """Test denied microphone access leaves the capture Idle with nothing held."""
        camera = FakeCamera(deny_audio=True)
        capture = MediaCapture(camera)

        async def run():
            await capture.open_camera()
            await capture.start_recording()

        with pytest.raises(DeviceAccessDenied):
            asyncio.run(run())

        assert isinstance(capture.state, Idle)
        assert camera.active_streams == []

    def test_cancel_during_recording(self):
        """Test cancelling mid-recording releases the device and produces no asset."""
        async def run():
            await self.capture.open_camera()
            await self.capture.start_recording()
            task = self.capture.state.task
            await asyncio.sleep(0.02)
            self.capture.cancel()
            await asyncio.wait({task})
            return task

        task = asyncio.run(run())

        assert task.cancelled()
        assert isinstance(self.capture.state, Idle)
        assert self.capture.asset is None
        assert self.camera.active_streams == []

    def test_stop_without_recording(self):
        """Test stopping while idle is rejected."""
        with pytest.raises(InvalidCaptureState):
            asyncio.run(self.capture.stop_recording())

    def test_recorder_failure_is_reported(self):
        """Test a recorder error surfaces from stop_recording with its own message."""
        camera = FakeCamera(read_error=OSError("disk full"))
        capture = MediaCapture(camera, chunk_seconds=0.01, max_recording_seconds=5.0)

        async def run():
            await capture.open_camera()
            await capture.start_recording()
            await asyncio.sleep(0.05)
            state = capture.state
            with pytest.raises(RecordingFailed) as exc_info:
                await capture.stop_recording()
            return state, exc_info.value

        state, error = asyncio.run(run())

        assert isinstance(state, Failed)
        assert "disk full" in str(error)
        assert describe_error(error) == RecordingFailed.user_message
        assert isinstance(capture.state, Idle)
        assert camera.active_streams == []

    def test_cancel_clears_failed_recording(self):
        """Test cancel after a recorder failure returns to Idle."""
        camera = FakeCamera(read_error=OSError("disk full"))
        capture = MediaCapture(camera, chunk_seconds=0.01, max_recording_seconds=5.0)

        async def run():
            await capture.open_camera()
            await capture.start_recording()
            await asyncio.sleep(0.05)

        asyncio.run(run())
        capture.cancel()

        assert isinstance(capture.state, Idle)
        assert camera.active_streams == []


class TestFileSelection:
    """Test suite for picking an existing file."""

    def test_select_image(self):
        """Test an image file yields PhotoReady."""
        capture = MediaCapture(FakeCamera())
        asset = MediaAsset(data=b"x" * 200, mime_type="image/png", origin=CaptureOrigin.FILE_PICK)

        capture.select_file(asset)

        assert isinstance(capture.state, PhotoReady)
        assert capture.asset is asset

    def test_select_video_releases_camera(self):
        """Test selecting a video while the camera is open releases it."""
        camera = FakeCamera()
        capture = MediaCapture(camera)
        asset = MediaAsset(data=b"x" * 200, mime_type="video/mp4", origin=CaptureOrigin.FILE_PICK)

        asyncio.run(capture.open_camera())
        capture.select_file(asset)

        assert isinstance(capture.state, VideoReady)
        assert camera.active_streams == []

    def test_asset_from_file(self, tmp_path):
        """Test MediaAsset.from_file guesses the MIME type from the extension."""
        path = tmp_path / "pothole.jpg"
        path.write_bytes(b"\xff\xd8" + b"\x00" * 300)

        asset = MediaAsset.from_file(path)

        assert asset.mime_type == "image/jpeg"
        assert asset.origin == CaptureOrigin.FILE_PICK
        assert asset.size == 302


class TestStreamConstraints:
    """Test suite for stream constraints."""

    def test_defaults(self):
        """Test default constraints ask for the rear camera at 720p."""
        constraints = StreamConstraints()

        assert constraints.facing_mode == "environment"
        assert constraints.width == 1280
        assert constraints.height == 720


class FakeFrame:
    shape = (720, 1280, 3)


class FakeVideoCapture:
    def __init__(self):
        self.released = 0

    def read(self):
        time.sleep(0.001)
        return True, FakeFrame()

    def release(self):
        self.released += 1


class FakeBuffer:
    def tobytes(self):
        return b"\xff\xd8" + b"\x00" * 200


class TestOpenCVStream:
    """Test suite for the OpenCV stream with a stand-in cv2 module."""

    def setup_method(self):
        """Setup test fixtures."""
        self.cv2 = SimpleNamespace(
            IMWRITE_JPEG_QUALITY=1,
            imencode=lambda ext, frame, params=None: (True, FakeBuffer()),
        )
        self.capture = FakeVideoCapture()

    def test_snapshot_and_release(self):
        """Test frames are pumped, encoded, and the device released once on stop."""
        async def run():
            stream = OpenCVStream(self.cv2, self.capture, fps=100)
            for _ in range(100):
                if stream.frame_size != (0, 0):
                    break
                await asyncio.sleep(0.01)
            size = stream.frame_size
            data = await stream.snapshot("image/jpeg", 0.8)
            stream.stop()
            stream.stop()
            await asyncio.sleep(0.05)
            return stream, size, data

        stream, size, data = asyncio.run(run())

        assert size == (1280, 720)
        assert data.startswith(b"\xff\xd8")
        assert not stream.active
        assert self.capture.released == 1
