"""Core configuration and logging for memory-search."""

from memory_search.core.config import Settings, get_settings
from memory_search.core.logging import (
    clear_correlation_id,
    get_correlation_id,
    set_correlation_id,
    setup_structured_logging,
)

__all__ = [
    "Settings",
    "get_settings",
    "clear_correlation_id",
    "get_correlation_id",
    "set_correlation_id",
    "setup_structured_logging",
]
