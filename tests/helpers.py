"""
Shared test fakes for devices and stores.
"""

import asyncio
from typing import List, Optional, Tuple

from civicai.capture.devices import CaptureDevice, MediaStream, StreamConstraints
from civicai.capture.geocoding import Geocoder, PositionProvider
from civicai.core.errors import DeviceAccessDenied, LocationUnavailable, StoreUnreachable
from civicai.issues.models import Coordinates, Issue, NewIssue
from civicai.store.memory import InMemoryBlobStore, InMemoryIssueStore

JPEG_FRAME = b"\xff\xd8\xff\xe0" + b"\x10" * 4096


async def spin(times: int = 10) -> None:
    """Let scheduled callbacks and tasks run."""
    for _ in range(times):
        await asyncio.sleep(0)


class FakeStream(MediaStream):
    """Stream that counts stop() calls and produces fixed data."""

    recording_mime_type = "video/webm"

    def __init__(self, constraints: StreamConstraints, frame_size=(1280, 720), frame=JPEG_FRAME, read_error=None):
        self.constraints = constraints
        self.read_error = read_error
        self._frame_size = frame_size
        self.frame = frame
        self._active = True
        self.stop_calls = 0
        self.finish_calls = 0
        self.chunks_read = 0

    def warm_up(self, width: int = 1280, height: int = 720) -> None:
        self._frame_size = (width, height)

    @property
    def frame_size(self) -> Tuple[int, int]:
        return self._frame_size

    @property
    def active(self) -> bool:
        return self._active

    async def snapshot(self, mime_type: str, quality: float) -> bytes:
        return self.frame

    async def read_chunk(self, timeout: float) -> bytes:
        await asyncio.sleep(timeout)
        if self.read_error is not None:
            raise self.read_error
        self.chunks_read += 1
        return b"chunk"

    async def finish(self) -> bytes:
        self.finish_calls += 1
        return b"tail"

    def stop(self) -> None:
        self.stop_calls += 1
        self._active = False


class FakeCamera(CaptureDevice):
    """Camera that hands out FakeStreams, optionally refusing access or opening slowly."""

    def __init__(
        self,
        frame_size=(1280, 720),
        deny: bool = False,
        deny_audio: bool = False,
        open_delay: float = 0.0,
        read_error: Optional[Exception] = None
    ):
        self.frame_size = frame_size
        self.deny = deny
        self.deny_audio = deny_audio
        self.open_delay = open_delay
        self.read_error = read_error
        self.streams: List[FakeStream] = []

    async def open(self, constraints: StreamConstraints) -> MediaStream:
        if self.open_delay:
            await asyncio.sleep(self.open_delay)
        if self.deny or (constraints.audio and self.deny_audio):
            raise DeviceAccessDenied("Permission denied")
        stream = FakeStream(constraints, frame_size=self.frame_size, read_error=self.read_error)
        self.streams.append(stream)
        return stream

    @property
    def active_streams(self) -> List[FakeStream]:
        return [s for s in self.streams if s.active]


class FakePositionProvider(PositionProvider):
    def __init__(self, position: Optional[Coordinates] = None, delay: float = 0.0, deny: bool = False):
        self.position = position or Coordinates(19.076, 72.8777)
        self.delay = delay
        self.deny = deny

    async def current_position(self) -> Coordinates:
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.deny:
            raise LocationUnavailable("User denied Geolocation")
        return self.position


class FakeGeocoder(Geocoder):
    def __init__(self, places=None, address: str = "Main Street, Mumbai"):
        self.places = places or {}
        self.address = address
        self.reverse_calls = 0

    async def geocode(self, query: str):
        return self.places.get(query)

    async def reverse_geocode(self, latitude: float, longitude: float):
        self.reverse_calls += 1
        return self.address


class SpyBlobStore(InMemoryBlobStore):
    """Blob store counting calls, optionally failing every put."""

    def __init__(self, fail: bool = False):
        super().__init__()
        self.fail = fail
        self.put_calls = 0
        self.delete_calls = 0

    async def put(self, data: bytes, mime_type: str, bucket: str, key: str) -> str:
        self.put_calls += 1
        if self.fail:
            raise StoreUnreachable("storage timeout")
        return await super().put(data, mime_type, bucket, key)

    async def delete(self, bucket: str, key: str) -> None:
        self.delete_calls += 1
        await super().delete(bucket, key)


class SpyIssueStore(InMemoryIssueStore):
    """Issue store counting calls, with switchable failures and gated loads."""

    def __init__(self, issues=None, fail_create: bool = False, fail_update: bool = False):
        super().__init__(issues)
        self.fail_create = fail_create
        self.fail_update = fail_update
        self.created: List[NewIssue] = []
        self.update_calls = 0
        self.list_calls = 0
        self.gate_loads = False
        self.gates: List[asyncio.Event] = []

    async def create(self, record: NewIssue) -> Issue:
        self.created.append(record)
        if self.fail_create:
            raise StoreUnreachable("connection reset")
        return await super().create(record)

    async def update(self, issue_id, status, assigned_to=None) -> Issue:
        self.update_calls += 1
        if self.fail_update:
            raise StoreUnreachable("connection reset")
        return await super().update(issue_id, status, assigned_to)

    async def list_all(self) -> List[Issue]:
        self.list_calls += 1
        snapshot = await super().list_all()
        if self.gate_loads:
            gate = asyncio.Event()
            self.gates.append(gate)
            await gate.wait()
        return snapshot
