"""
CivicAI - Capture Module
Camera, recording and location capture for citizen reports.
"""

from civicai.capture.devices import CaptureDevice, MediaStream, StreamConstraints
from civicai.capture.media_capture import (
    MediaCapture,
    CaptureState,
    Idle,
    Acquiring,
    CameraActive,
    Recording,
    PhotoReady,
    VideoReady,
    Failed,
)
from civicai.capture.opencv_camera import OpenCVCamera
from civicai.capture.geocoding import (
    PositionProvider,
    Geocoder,
    IPGeolocationProvider,
    NominatimGeocoder,
)
from civicai.capture.location_capture import LocationCapture

__all__ = [
    # Devices
    "CaptureDevice",
    "MediaStream",
    "StreamConstraints",
    "OpenCVCamera",
    # Media capture
    "MediaCapture",
    "CaptureState",
    "Idle",
    "Acquiring",
    "CameraActive",
    "Recording",
    "PhotoReady",
    "VideoReady",
    "Failed",
    # Location
    "PositionProvider",
    "Geocoder",
    "IPGeolocationProvider",
    "NominatimGeocoder",
    "LocationCapture",
]
