"""Abstract base class for dongle protocols.

Defines the interface for parsing incoming frames and serializing commands.
"""
from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Optional

from ..models import Command, Event


class Protocol(ABC):
    """Abstract protocol for dongle communication.

    Protocols handle:
    - Parsing inbound frames into events
    - Serializing commands into wire format
    """

    @abstractmethod
    def parse_frame(self, frame: bytes) -> Optional[Event]:
        """Parse an inbound frame into an event.

        Args:
            frame: Raw packet from the dongle

        Returns:
            Event if the frame is recognised, None otherwise
        """
        pass

    @abstractmethod
    def serialize_command(self, command: Command) -> bytes:
        """Serialize command into wire format.

        Args:
            command: Command object to serialize

        Returns:
            Bytes ready to send to the dongle
        """
        pass

    @property
    @abstractmethod
    def name(self) -> str:
        """Protocol identifier (e.g., 'binary')."""
        pass
