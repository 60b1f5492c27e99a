"""Binary frame codec for the mesh controller dongle.

Every frame is one opcode byte followed by a fixed-width payload whose
layout depends only on the opcode. There is no length field. Multi-byte
integers are little-endian.

Pure functions with no side effects.
"""
from __future__ import annotations

import struct
from dataclasses import dataclass
from typing import Dict, Optional, Tuple

from ..errors import FrameError
from ..models import Opcode, UUID_SIZE

# struct codes for each field kind
U8 = "B"
U16 = "H"
UUID = f"{UUID_SIZE}s"

# Payload layout per opcode as (field name, struct code) pairs in wire order.
FRAME_LAYOUTS: Dict[Opcode, Tuple[Tuple[str, str], ...]] = {
    Opcode.SETUP: (),
    Opcode.SETUP_STATUS: (),
    Opcode.ADD_KEY: (("app_idx", U16),),
    Opcode.ADD_KEY_STATUS: (("app_idx", U16),),
    Opcode.UNPROVISIONED_BEACON: (("uuid", UUID),),
    Opcode.PROVISION: (("uuid", UUID),),
    Opcode.NODE_ADDED: (("addr", U16),),
    Opcode.CONFIGURE_NODE: (("addr", U16), ("app_idx", U16)),
    Opcode.CONFIGURE_NODE_STATUS: (),
    Opcode.SEND_MESSAGE: (("state", U8), ("addr", U16), ("app_idx", U16)),
    Opcode.RESET: (),
    Opcode.REBOOT: (),
    Opcode.NODE_RESET: (("addr", U16),),
    Opcode.STATE: (("addr", U16), ("state", U8)),
    Opcode.CONFIGURE_ELEMENT: (
        ("group_addr", U16),
        ("node_addr", U16),
        ("elem_addr", U16),
        ("app_idx", U16),
    ),
    Opcode.CONFIGURE_ELEMENT_STATUS: (),
    Opcode.SEND_RECALL_MESSAGE: (("scene_number", U16), ("addr", U16), ("app_idx", U16)),
    Opcode.SEND_STORE_MESSAGE: (("scene_number", U16), ("addr", U16), ("app_idx", U16)),
    Opcode.SEND_DELETE_MESSAGE: (("scene_number", U16), ("addr", U16), ("app_idx", U16)),
    Opcode.SEND_BIND_MESSAGE: (("scene_number", U16), ("addr", U16), ("app_idx", U16)),
    Opcode.EVENT: (("addr", U16),),
}

# Opcode byte plus payload, "<" keeps struct from inserting padding.
_STRUCTS: Dict[Opcode, struct.Struct] = {
    opcode: struct.Struct("<B" + "".join(code for _, code in layout))
    for opcode, layout in FRAME_LAYOUTS.items()
}

MAX_FRAME_SIZE = max(s.size for s in _STRUCTS.values())


@dataclass(frozen=True)
class DecodedFrame:
    """Result of decoding one inbound buffer.

    Attributes:
        opcode: Recognised opcode, or None if byte 0 matched nothing
        fields: Payload values in wire order (empty for unknown frames)
    """
    opcode: Optional[Opcode]
    fields: Tuple = ()

    @property
    def is_known(self) -> bool:
        return self.opcode is not None


class FrameCodec:
    """Encoder/decoder for fixed-layout opcode frames."""

    @staticmethod
    def frame_size(opcode: Opcode) -> int:
        """Total length in bytes of a frame with this opcode."""
        return _STRUCTS[Opcode(opcode)].size

    @staticmethod
    def encode(opcode: Opcode, *fields) -> bytes:
        """Build a frame from an opcode and its payload fields.

        Args:
            opcode: Frame opcode
            *fields: Payload values in wire order. Integers for u8/u16
                fields, 16 bytes for UUID fields.

        Returns:
            Exactly frame_size(opcode) bytes

        Raises:
            FrameError: Wrong field count, value out of range, or bad UUID length

        Examples:
            >>> FrameCodec.encode(Opcode.SEND_MESSAGE, 0x00, 0x000A, 0x0000).hex()
            '09000a000000'
        """
        opcode = Opcode(opcode)
        layout = FRAME_LAYOUTS[opcode]

        if len(fields) != len(layout):
            raise FrameError(
                f"{opcode.name} takes {len(layout)} field(s), got {len(fields)}"
            )

        values = []
        for (name, code), value in zip(layout, fields):
            if code == UUID:
                if isinstance(value, int):
                    raise FrameError(f"{opcode.name}.{name} must be bytes, got int")
                try:
                    value = bytes(value)
                except TypeError as e:
                    raise FrameError(
                        f"{opcode.name}.{name} must be bytes, got {type(value).__name__}"
                    ) from e
                if len(value) != UUID_SIZE:
                    raise FrameError(
                        f"{opcode.name}.{name} must be {UUID_SIZE} bytes, got {len(value)}"
                    )
            values.append(value)

        try:
            return _STRUCTS[opcode].pack(int(opcode), *values)
        except struct.error as e:
            raise FrameError(f"Cannot encode {opcode.name}: {e}") from e

    @staticmethod
    def decode(frame: bytes) -> DecodedFrame:
        """Split a frame into its opcode and payload fields.

        Unknown opcodes and empty buffers are not errors: they decode to
        DecodedFrame(None, ()). Bytes past the opcode's payload are ignored,
        since reads always fill a whole USB packet.

        Raises:
            FrameError: A known opcode with fewer payload bytes than its layout
        """
        if not frame:
            return DecodedFrame(None)

        try:
            opcode = Opcode(frame[0])
        except ValueError:
            return DecodedFrame(None)

        codec = _STRUCTS[opcode]
        if len(frame) < codec.size:
            raise FrameError(
                f"Truncated {opcode.name} frame: {len(frame)} of {codec.size} bytes"
            )

        values = codec.unpack_from(bytes(frame))
        return DecodedFrame(opcode, tuple(values[1:]))
