"""Command issuer: one method per outbound command.

Each method builds a frame with the protocol layer and writes it to the
transport under the retry policy. There is no write queue and no lock;
callers that need strict ordering across threads must serialize their
own calls.
"""
from __future__ import annotations

import logging
from typing import Optional

from ..errors import TransportError, WriteFailedError
from ..models import (
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
)
from ..protocol import Protocol, BinaryProtocol
from ..transport.base import Transport
from .retry import RetryPolicy

logger = logging.getLogger(__name__)


class CommandIssuer:
    """Encodes commands and writes them to the dongle.

    Every public command method either returns None after the frame has
    been written, or raises WriteFailedError once the retry policy is
    exhausted. Encoding errors (a field that does not fit its wire width)
    surface as FrameError before anything is written.
    """

    def __init__(self,
                 transport: Transport,
                 protocol: Optional[Protocol] = None,
                 retry_policy: Optional[RetryPolicy] = None):
        """Initialize CommandIssuer.

        Args:
            transport: Open transport to write to
            protocol: Protocol implementation (default: BinaryProtocol)
            retry_policy: Write retry policy (default: one retry after 200 ms)
        """
        self._transport = transport
        self._protocol = protocol or BinaryProtocol()
        self._retry_policy = retry_policy or RetryPolicy()

    @property
    def retry_policy(self) -> RetryPolicy:
        return self._retry_policy

    def send(self, frame: bytes) -> None:
        """Write a frame, retrying per the retry policy.

        Raises:
            WriteFailedError: Every attempt failed
        """
        policy = self._retry_policy
        last_error: Optional[TransportError] = None

        for attempt in range(1, policy.attempts + 1):
            try:
                self._transport.send(frame)
                if attempt > 1:
                    logger.info(f"Write succeeded on attempt {attempt}")
                return
            except TransportError as e:
                last_error = e
                logger.warning(f"Write attempt {attempt}/{policy.attempts} failed: {e}")

            if attempt < policy.attempts:
                policy.wait()

        raise WriteFailedError(
            f"Write failed after {policy.attempts} attempt(s): {last_error}",
            frame=frame,
            attempts=policy.attempts,
            last_error=last_error,
        ) from last_error

    def send_command(self, command: Command) -> None:
        """Serialize a command object and send it."""
        frame = self._protocol.serialize_command(command)
        logger.debug(f"Sending {type(command).__name__}: {frame.hex(' ')}")
        self.send(frame)

    # --- Network management ---

    def setup(self) -> None:
        """Create a new mesh network."""
        self.send_command(SetupCommand())

    def add_key(self, app_idx: int) -> None:
        """Generate an application key at the given index."""
        self.send_command(AddKeyCommand(app_idx=app_idx))

    def provision(self, uuid: bytes) -> None:
        """Add the device with the given 16-byte UUID to the network."""
        self.send_command(ProvisionCommand(uuid=bytes(uuid)))

    def configure_node(self, addr: int, app_idx: int) -> None:
        """Bind the app key at app_idx to the node at addr."""
        self.send_command(ConfigureNodeCommand(addr=addr, app_idx=app_idx))

    def configure_element(self, group_addr: int, node_addr: int,
                          elem_addr: int, app_idx: int) -> None:
        """Subscribe an element of a node to a group address."""
        self.send_command(ConfigureElementCommand(
            group_addr=group_addr,
            node_addr=node_addr,
            elem_addr=elem_addr,
            app_idx=app_idx,
        ))

    def reset_node(self, addr: int) -> None:
        """Remove the node with the given address from the network."""
        self.send_command(NodeResetCommand(addr=addr))

    def reset(self) -> None:
        """Remove all mesh items from the dongle's flash. Must be followed by reboot()."""
        self.send_command(ResetCommand())

    def reboot(self) -> None:
        self.send_command(RebootCommand())

    # --- Messaging ---

    def send_message(self, state: int, addr: int, app_idx: int) -> None:
        """Send a state byte to addr using the app key at app_idx."""
        self.send_command(SendMessageCommand(state=state, addr=addr, app_idx=app_idx))

    def send_recall_message(self, scene_number: int, addr: int, app_idx: int) -> None:
        self.send_command(SendRecallMessageCommand(
            scene_number=scene_number, addr=addr, app_idx=app_idx))

    def send_store_message(self, scene_number: int, addr: int, app_idx: int) -> None:
        self.send_command(SendStoreMessageCommand(
            scene_number=scene_number, addr=addr, app_idx=app_idx))

    def send_delete_message(self, scene_number: int, addr: int, app_idx: int) -> None:
        self.send_command(SendDeleteMessageCommand(
            scene_number=scene_number, addr=addr, app_idx=app_idx))

    def send_bind_message(self, scene_number: int, addr: int, app_idx: int) -> None:
        self.send_command(SendBindMessageCommand(
            scene_number=scene_number, addr=addr, app_idx=app_idx))
