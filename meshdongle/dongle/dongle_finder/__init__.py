from .core import (
    DongleInfo,
    EXPECTED_VID,
    EXPECTED_PID,
    find_dongles,
    find_single_dongle,
    is_matching_dongle,
    is_dongle_available,
)
from .errors import DongleNotFoundError, MultipleDonglesError

__all__ = [
    "DongleInfo",
    "EXPECTED_VID",
    "EXPECTED_PID",
    "find_dongles",
    "find_single_dongle",
    "is_matching_dongle",
    "is_dongle_available",
    "DongleNotFoundError",
    "MultipleDonglesError",
]
