"""Exception hierarchy for the mesh dongle driver."""
from __future__ import annotations

from typing import Optional


class MeshDongleError(RuntimeError):
    """Base class for all driver errors."""
    pass


class FrameError(MeshDongleError, ValueError):
    """Raised when a frame cannot be encoded or a known frame is truncated."""
    pass


# Open / setup failures. Each stage of opening the dongle has its own type.

class OpenError(MeshDongleError):
    """Raised when the dongle cannot be opened."""
    stage = "open"


class KernelDriverError(OpenError):
    """Raised when the kernel driver cannot be detached from the interface."""
    stage = "detach"


class ConfigurationError(OpenError):
    """Raised when the USB configuration cannot be selected."""
    stage = "configuration"


class InterfaceClaimError(OpenError):
    """Raised when the interface cannot be claimed."""
    stage = "interface"


class EndpointError(OpenError):
    """Raised when a bulk endpoint is missing or unusable."""
    stage = "endpoint"


# Transfer failures

class TransportError(MeshDongleError):
    """Raised by a transport when a transfer fails."""
    pass


class TransientTransportError(TransportError):
    """A single transfer failed but the device is still usable."""
    pass


class DeviceDisconnectedError(TransportError):
    """The device is gone. Nothing further can be sent or received."""
    pass


class WriteFailedError(MeshDongleError):
    """Raised when a command could not be written after all retries.

    Attributes:
        frame: The frame that was being sent
        attempts: Number of writes that were attempted
    """

    def __init__(self, message: str, frame: bytes = b"", attempts: int = 0,
                 last_error: Optional[Exception] = None):
        super().__init__(message)
        self.frame = frame
        self.attempts = attempts
        self.last_error = last_error
