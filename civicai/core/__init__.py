"""
CivicAI - Core Utilities
Central configuration, constants, and error types.
"""

from civicai.core.config import settings, get_settings, Settings
from civicai.core.constants import (
    CATEGORY_DEPARTMENTS,
    DEFAULT_DEPARTMENT,
    IMAGE_MAX_BYTES,
    VIDEO_MAX_BYTES,
    MAX_RECORDING_SECONDS,
    FILTER_ALL,
)
from civicai.core.errors import CivicAIError, describe_error

__all__ = [
    "settings",
    "get_settings",
    "Settings",
    "CATEGORY_DEPARTMENTS",
    "DEFAULT_DEPARTMENT",
    "IMAGE_MAX_BYTES",
    "VIDEO_MAX_BYTES",
    "MAX_RECORDING_SECONDS",
    "FILTER_ALL",
    "CivicAIError",
    "describe_error",
]
