"""Config module - settings and constants."""

from src.config.settings import settings
from src.config.constants import (
    DEFAULT_HEADERS,
    DEFAULT_USER_AGENT,
    UNKNOWN_JURISDICTION,
)

__all__ = [
    "settings",
    "DEFAULT_HEADERS",
    "DEFAULT_USER_AGENT",
    "UNKNOWN_JURISDICTION",
]
