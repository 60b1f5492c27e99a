"""Fixed-layout binary protocol implementation.

Wraps FrameParser and CommandSerializer.
"""
from __future__ import annotations

from typing import Optional

from ..models import Command, Event
from .base import Protocol
from .parser import FrameParser
from .serializer import CommandSerializer


class BinaryProtocol(Protocol):
    """Opcode-tagged binary protocol spoken by the mesh controller firmware.

    Frames are an opcode byte followed by a fixed payload, 16-bit fields
    little-endian.
    """

    def __init__(self):
        self._parser = FrameParser()
        self._serializer = CommandSerializer()

    def parse_frame(self, frame: bytes) -> Optional[Event]:
        return self._parser.parse_frame(frame)

    def serialize_command(self, command: Command) -> bytes:
        return self._serializer.serialize_command(command)

    @property
    def name(self) -> str:
        return "binary"
