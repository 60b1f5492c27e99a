"""Protocol layer for the mesh controller's binary frames."""

from .base import Protocol
from .binary_protocol import BinaryProtocol
from .codec import FrameCodec, DecodedFrame, FRAME_LAYOUTS, MAX_FRAME_SIZE
from .parser import FrameParser
from .serializer import CommandSerializer

__all__ = [
    "Protocol",
    "BinaryProtocol",
    "FrameCodec",
    "DecodedFrame",
    "FRAME_LAYOUTS",
    "MAX_FRAME_SIZE",
    "FrameParser",
    "CommandSerializer",
]
