"""Command serializer for the mesh controller dongle.

Converts command objects to wire frames.
Pure functions with no side effects.
"""
from __future__ import annotations

from ..models import Command, COMMAND_TYPES
from .codec import FrameCodec


class CommandSerializer:
    """Serializer for outbound commands."""

    @staticmethod
    def serialize_command(command: Command) -> bytes:
        """Convert a command object to a frame.

        Args:
            command: Command object to serialize

        Returns:
            Frame bytes ready to write to the OUT endpoint

        Raises:
            ValueError: Not a supported command, or a field does not fit its
                wire width (FrameError)

        Examples:
            >>> CommandSerializer.serialize_command(AddKeyCommand(app_idx=1))
            b'\\x02\\x01\\x00'
        """
        if not isinstance(command, COMMAND_TYPES):
            raise ValueError(f"Unknown command type: {type(command)}")

        return FrameCodec.encode(command.OPCODE, *command.wire_fields())
