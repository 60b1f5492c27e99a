"""Mesh Dongle SDK - host-side driver for the USB Bluetooth mesh controller."""

from .models import (
    Opcode,
    Command,
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
    Event,
    SetupStatus,
    AddKeyStatus,
    UnprovisionedBeacon,
    NodeAdded,
    ConfigureNodeStatus,
    StateReport,
    ConfigureElementStatus,
    NodeEvent,
)
from .errors import (
    MeshDongleError,
    FrameError,
    OpenError,
    TransportError,
    TransientTransportError,
    DeviceDisconnectedError,
    WriteFailedError,
)
from .transport import Transport
from .dongle import MeshController, RetryPolicy

__all__ = [
    "Opcode",
    "Command",
    "SetupCommand",
    "AddKeyCommand",
    "ProvisionCommand",
    "ConfigureNodeCommand",
    "ConfigureElementCommand",
    "SendMessageCommand",
    "SendRecallMessageCommand",
    "SendStoreMessageCommand",
    "SendDeleteMessageCommand",
    "SendBindMessageCommand",
    "NodeResetCommand",
    "ResetCommand",
    "RebootCommand",
    "Event",
    "SetupStatus",
    "AddKeyStatus",
    "UnprovisionedBeacon",
    "NodeAdded",
    "ConfigureNodeStatus",
    "StateReport",
    "ConfigureElementStatus",
    "NodeEvent",
    "MeshDongleError",
    "FrameError",
    "OpenError",
    "TransportError",
    "TransientTransportError",
    "DeviceDisconnectedError",
    "WriteFailedError",
    "Transport",
    "MeshController",
    "RetryPolicy",
]
