"""Abstract base class for the transport layer.

The Transport interface moves raw frames between the host and the mesh
controller dongle over two fixed channels, one per direction. It knows
nothing about opcodes or events.

Key principles:
- Blocking send/receive of whole packets
- Send and receive use separate channels and may run concurrently
- Scoped lifetime: everything acquired by open() is released by close()
"""
from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Optional


class Transport(ABC):
    """Abstract transport interface for dongle communication.

    Transports are responsible for:
    1. Acquiring and releasing the device
    2. Writing one frame per send()
    3. Reading one packet per receive()

    Transports should NOT retry or decode. Those are the job of the
    command issuer and the event dispatcher.
    """

    @abstractmethod
    def open(self) -> None:
        """Acquire the device.

        Raises:
            OpenError: A subclass naming the stage that failed. Anything
                acquired before the failure has been released.
        """
        pass

    @abstractmethod
    def close(self) -> None:
        """Release the device.

        Should be safe to call multiple times.
        """
        pass

    @abstractmethod
    def is_open(self) -> bool:
        """Check if the transport currently holds the device."""
        pass

    @abstractmethod
    def send(self, data: bytes) -> None:
        """Write one frame to the outbound channel.

        Raises:
            TransportError: The write failed or was short
        """
        pass

    @abstractmethod
    def receive(self, timeout_ms: Optional[int] = None) -> Optional[bytes]:
        """Read one packet from the inbound channel.

        Args:
            timeout_ms: Milliseconds to wait, or None for the transport default

        Returns:
            Packet bytes (up to max_packet_size), or None on timeout

        Raises:
            TransientTransportError: This read failed, later reads may succeed
            DeviceDisconnectedError: The device is gone
        """
        pass

    @property
    @abstractmethod
    def max_packet_size(self) -> int:
        """Size of the buffer used for each receive()."""
        pass

    def __enter__(self) -> Transport:
        """Context manager support - open on enter."""
        self.open()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        """Context manager support - close on exit."""
        self.close()
