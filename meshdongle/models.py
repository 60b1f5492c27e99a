"""Immutable data models for mesh controller commands and events.

All models are frozen dataclasses so they can be handed across threads
without copying. Field order in each dataclass is the order the fields
appear on the wire.
"""
from __future__ import annotations

from dataclasses import dataclass, astuple
from enum import IntEnum
from typing import ClassVar, Tuple

# Field widths
UUID_SIZE = 16
U16_MAX = 0xFFFF
U8_MAX = 0xFF

# Semantic aliases for wire fields
Address = int
AppKeyIndex = int
SceneNumber = int
StateValue = int
DeviceUUID = bytes


class Opcode(IntEnum):
    """One-byte tag at the start of every frame.

    Values are fixed by the dongle firmware and must never be reused.
    """
    SETUP = 0x00
    SETUP_STATUS = 0x01
    ADD_KEY = 0x02
    ADD_KEY_STATUS = 0x03
    UNPROVISIONED_BEACON = 0x04
    PROVISION = 0x05
    NODE_ADDED = 0x06
    CONFIGURE_NODE = 0x07
    CONFIGURE_NODE_STATUS = 0x08
    SEND_MESSAGE = 0x09
    RESET = 0x10
    REBOOT = 0x11
    NODE_RESET = 0x12
    STATE = 0x13
    CONFIGURE_ELEMENT = 0x14
    CONFIGURE_ELEMENT_STATUS = 0x15
    SEND_RECALL_MESSAGE = 0x16
    SEND_STORE_MESSAGE = 0x17
    SEND_DELETE_MESSAGE = 0x18
    SEND_BIND_MESSAGE = 0x19
    EVENT = 0x20


# Command types (host -> dongle)

@dataclass(frozen=True)
class Command:
    """Base class for all outbound commands."""
    OPCODE: ClassVar[Opcode]

    def wire_fields(self) -> Tuple:
        """Field values in wire order."""
        return astuple(self)


@dataclass(frozen=True)
class SetupCommand(Command):
    """Create a new mesh network on the dongle."""
    OPCODE: ClassVar[Opcode] = Opcode.SETUP


@dataclass(frozen=True)
class AddKeyCommand(Command):
    """Generate an application key in the given slot."""
    OPCODE: ClassVar[Opcode] = Opcode.ADD_KEY
    app_idx: AppKeyIndex


@dataclass(frozen=True)
class ProvisionCommand(Command):
    """Add the unprovisioned device with this UUID to the network."""
    OPCODE: ClassVar[Opcode] = Opcode.PROVISION
    uuid: DeviceUUID


@dataclass(frozen=True)
class ConfigureNodeCommand(Command):
    """Bind an application key to a node."""
    OPCODE: ClassVar[Opcode] = Opcode.CONFIGURE_NODE
    addr: Address
    app_idx: AppKeyIndex


@dataclass(frozen=True)
class ConfigureElementCommand(Command):
    """Subscribe a node element to a group address using an app key."""
    OPCODE: ClassVar[Opcode] = Opcode.CONFIGURE_ELEMENT
    group_addr: Address
    node_addr: Address
    elem_addr: Address
    app_idx: AppKeyIndex


@dataclass(frozen=True)
class SendMessageCommand(Command):
    """Send a state byte to a node or group."""
    OPCODE: ClassVar[Opcode] = Opcode.SEND_MESSAGE
    state: StateValue
    addr: Address
    app_idx: AppKeyIndex


@dataclass(frozen=True)
class SceneCommand(Command):
    """Common shape of the four scene messages."""
    scene_number: SceneNumber
    addr: Address
    app_idx: AppKeyIndex


@dataclass(frozen=True)
class SendRecallMessageCommand(SceneCommand):
    OPCODE: ClassVar[Opcode] = Opcode.SEND_RECALL_MESSAGE


@dataclass(frozen=True)
class SendStoreMessageCommand(SceneCommand):
    OPCODE: ClassVar[Opcode] = Opcode.SEND_STORE_MESSAGE


@dataclass(frozen=True)
class SendDeleteMessageCommand(SceneCommand):
    OPCODE: ClassVar[Opcode] = Opcode.SEND_DELETE_MESSAGE


@dataclass(frozen=True)
class SendBindMessageCommand(SceneCommand):
    OPCODE: ClassVar[Opcode] = Opcode.SEND_BIND_MESSAGE


@dataclass(frozen=True)
class NodeResetCommand(Command):
    """Remove the node with the given address from the network."""
    OPCODE: ClassVar[Opcode] = Opcode.NODE_RESET
    addr: Address


@dataclass(frozen=True)
class ResetCommand(Command):
    """Erase all mesh state from the dongle's flash. Follow with a reboot."""
    OPCODE: ClassVar[Opcode] = Opcode.RESET


@dataclass(frozen=True)
class RebootCommand(Command):
    OPCODE: ClassVar[Opcode] = Opcode.REBOOT


# Event types (dongle -> host)

@dataclass(frozen=True)
class Event:
    """Base class for all decoded inbound frames."""
    OPCODE: ClassVar[Opcode]


@dataclass(frozen=True)
class SetupStatus(Event):
    """The dongle finished creating the network."""
    OPCODE: ClassVar[Opcode] = Opcode.SETUP_STATUS


@dataclass(frozen=True)
class AddKeyStatus(Event):
    """An application key was created.

    Attributes:
        app_idx: Slot of the new key
    """
    OPCODE: ClassVar[Opcode] = Opcode.ADD_KEY_STATUS
    app_idx: AppKeyIndex


@dataclass(frozen=True)
class UnprovisionedBeacon(Event):
    """An unprovisioned device is advertising.

    Attributes:
        uuid: 16-byte device UUID, usable with ProvisionCommand
    """
    OPCODE: ClassVar[Opcode] = Opcode.UNPROVISIONED_BEACON
    uuid: DeviceUUID


@dataclass(frozen=True)
class NodeAdded(Event):
    """Provisioning completed and the node received a unicast address."""
    OPCODE: ClassVar[Opcode] = Opcode.NODE_ADDED
    addr: Address


@dataclass(frozen=True)
class ConfigureNodeStatus(Event):
    """Acknowledgement of ConfigureNodeCommand. The payload is reserved."""
    OPCODE: ClassVar[Opcode] = Opcode.CONFIGURE_NODE_STATUS


@dataclass(frozen=True)
class StateReport(Event):
    """A node reported its current state byte."""
    OPCODE: ClassVar[Opcode] = Opcode.STATE
    addr: Address
    state: StateValue


@dataclass(frozen=True)
class ConfigureElementStatus(Event):
    """Acknowledgement of ConfigureElementCommand. The payload is reserved."""
    OPCODE: ClassVar[Opcode] = Opcode.CONFIGURE_ELEMENT_STATUS


@dataclass(frozen=True)
class NodeEvent(Event):
    """Generic notification raised by a node (e.g. a button press)."""
    OPCODE: ClassVar[Opcode] = Opcode.EVENT
    addr: Address


COMMAND_TYPES = (
    SetupCommand,
    AddKeyCommand,
    ProvisionCommand,
    ConfigureNodeCommand,
    ConfigureElementCommand,
    SendMessageCommand,
    SendRecallMessageCommand,
    SendStoreMessageCommand,
    SendDeleteMessageCommand,
    SendBindMessageCommand,
    NodeResetCommand,
    ResetCommand,
    RebootCommand,
)

EVENT_TYPES = (
    SetupStatus,
    AddKeyStatus,
    UnprovisionedBeacon,
    NodeAdded,
    ConfigureNodeStatus,
    StateReport,
    ConfigureElementStatus,
    NodeEvent,
)
