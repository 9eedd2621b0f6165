"""
CivicAI - Constants and Reference Data
Static values used throughout the application.
"""

from typing import Dict, Tuple

# =============================================================================
# CATEGORIES AND DEPARTMENTS
# =============================================================================

# Department responsible for each known issue category
CATEGORY_DEPARTMENTS: Dict[str, str] = {
    "pothole": "Public Works",
    "streetlight": "Electrical",
    "garbage": "Sanitation",
    "traffic": "Traffic Management",
}

# Department for "other" and any category outside the table
DEFAULT_DEPARTMENT = "General Services"

TITLE_SUFFIX = " Issue Report"

# =============================================================================
# MEDIA POLICY
# =============================================================================

MIB = 1024 * 1024

IMAGE_MAX_BYTES = 10 * MIB
VIDEO_MAX_BYTES = 100 * MIB

# File extension used for storage keys, by mime type
MIME_EXTENSIONS: Dict[str, str] = {
    "image/jpeg": "jpg",
    "image/jpg": "jpg",
    "image/png": "png",
    "image/gif": "gif",
    "image/webp": "webp",
    "image/heic": "heic",
    "video/mp4": "mp4",
    "video/webm": "webm",
    "video/quicktime": "mov",
    "video/x-msvideo": "avi",
    "video/3gpp": "3gp",
}

# =============================================================================
# CAPTURE
# =============================================================================

CAMERA_FACING_MODE = "environment"
CAMERA_IDEAL_RESOLUTION: Tuple[int, int] = (1280, 720)

SNAPSHOT_MIME_TYPE = "image/jpeg"
SNAPSHOT_JPEG_QUALITY = 0.8

# Encoded frames shorter than this were not rendered from a live frame
MIN_SNAPSHOT_BYTES = 100

MAX_RECORDING_SECONDS = 30.0
RECORDING_CHUNK_SECONDS = 1.0

# =============================================================================
# LOCATION
# =============================================================================

# Used for manual entry when no geocoder is available (Mumbai city centre)
MANUAL_LOCATION_FALLBACK: Tuple[float, float] = (19.0760, 72.8777)

# =============================================================================
# DASHBOARD
# =============================================================================

FILTER_ALL = "all"
