"""Frame parser for inbound dongle traffic.

Turns raw inbound frames into typed Event dataclasses.
Pure functions with no side effects.
"""
from __future__ import annotations

from typing import Dict, Optional, Type

from ..models import Event, Opcode, EVENT_TYPES
from .codec import FrameCodec

# Only opcodes the dongle sends are mapped. Outbound opcodes echoed back
# on the IN endpoint are treated like unknown ones.
EVENT_BY_OPCODE: Dict[Opcode, Type[Event]] = {cls.OPCODE: cls for cls in EVENT_TYPES}


class FrameParser:
    """Parser for the dongle's inbound frames.

    Handles eight frame types:
    - SETUP_STATUS, CONFIGURE_NODE_STATUS, CONFIGURE_ELEMENT_STATUS (no payload)
    - ADD_KEY_STATUS <app_idx>
    - UNPROVISIONED_BEACON <uuid>
    - NODE_ADDED <addr>
    - STATE <addr> <state>
    - EVENT <addr>
    """

    @staticmethod
    def parse_frame(frame: bytes) -> Optional[Event]:
        """Parse one inbound packet.

        Args:
            frame: Raw packet as read from the IN endpoint (may carry
                trailing padding)

        Returns:
            Event if the frame carries a known inbound opcode, None otherwise

        Raises:
            FrameError: The opcode is known but the payload is truncated

        Examples:
            >>> FrameParser.parse_frame(bytes([0x20, 0x0A, 0x00]))
            NodeEvent(addr=10)
        """
        decoded = FrameCodec.decode(frame)
        if not decoded.is_known:
            return None

        event_type = EVENT_BY_OPCODE.get(decoded.opcode)
        if event_type is None:
            return None

        return event_type(*decoded.fields)
