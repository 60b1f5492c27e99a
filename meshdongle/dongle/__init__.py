"""Dongle layer for the USB mesh controller.

This module provides:
- Low-level USB bulk connection management (DongleConnection) - Raw packets
- Outbound commands with a bounded retry policy (CommandIssuer, RetryPolicy)
- Inbound frame routing as typed events (EventDispatcher)
- The controller facade tying them together (MeshController)
- Device discovery utilities (find_single_dongle, find_dongles)
"""

from .connection import DongleConnection, UsbDeviceConfig
from .retry import RetryPolicy
from .issuer import CommandIssuer
from .dispatcher import EventDispatcher
from .manager import MeshController
from .dongle_finder import (
    DongleInfo,
    DongleNotFoundError,
    MultipleDonglesError,
    find_dongles,
    find_single_dongle,
    is_dongle_available,
    is_matching_dongle,
)

__all__ = [
    # Connection
    'DongleConnection',
    'UsbDeviceConfig',

    # Commands and events
    'RetryPolicy',
    'CommandIssuer',
    'EventDispatcher',
    'MeshController',

    # Finder
    'DongleInfo',
    'DongleNotFoundError',
    'MultipleDonglesError',
    'find_dongles',
    'find_single_dongle',
    'is_dongle_available',
    'is_matching_dongle',
]
