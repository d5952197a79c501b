"""Environment variables understood by genplay."""

import os
from typing import List, Optional


def get_genplay_log_level() -> str:
    """Log level, ``GENPLAY_LOG_LEVEL``. Default ``WARNING``."""
    return os.environ.get("GENPLAY_LOG_LEVEL", "WARNING").upper()


def get_genplay_plugin_cache_capacity() -> Optional[int]:
    """Plugin cache capacity, ``GENPLAY_PLUGIN_CACHE_CAPACITY``. None when unset."""
    value = os.environ.get("GENPLAY_PLUGIN_CACHE_CAPACITY")
    if value is None or value.strip() == "":
        return None
    return int(value)


def get_genplay_execution_mode() -> Optional[str]:
    """Execution mode, ``GENPLAY_EXECUTION_MODE`` (``in_process`` or ``subprocess``)."""
    value = os.environ.get("GENPLAY_EXECUTION_MODE")
    return value.strip().lower() if value else None


def get_genplay_execution_timeout() -> Optional[float]:
    """Execution timeout in seconds for the subprocess host, ``GENPLAY_EXECUTION_TIMEOUT``."""
    value = os.environ.get("GENPLAY_EXECUTION_TIMEOUT")
    if value is None or value.strip() == "":
        return None
    return float(value)


def get_genplay_libraries() -> Optional[List[str]]:
    """Comma separated library names making up the reference set, ``GENPLAY_LIBRARIES``."""
    value = os.environ.get("GENPLAY_LIBRARIES")
    if value is None:
        return None
    return [name.strip() for name in value.split(",") if name.strip()]


def get_genplay_reference_url() -> Optional[str]:
    """Base URL of a hosted reference manifest, ``GENPLAY_REFERENCE_URL``."""
    value = os.environ.get("GENPLAY_REFERENCE_URL")
    return value.strip() if value and value.strip() else None
