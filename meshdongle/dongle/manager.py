"""Mesh controller facade.

Owns the transport and wires the command issuer and event dispatcher to
it, exposing a single object to applications.
"""
from __future__ import annotations

import logging
from typing import Callable, Iterator, Mapping, Optional, Type

from ..models import Command, Event
from ..protocol import Protocol, BinaryProtocol
from ..transport.base import Transport
from .connection import DongleConnection
from .dispatcher import EventDispatcher, EventHandler, DEFAULT_READ_TIMEOUT_MS
from .issuer import CommandIssuer
from .retry import RetryPolicy

logger = logging.getLogger(__name__)


class MeshController:
    """High-level interface to the mesh controller dongle.

    This class acts as a facade, managing:
    1. The physical connection (a Transport, DongleConnection by default)
    2. Outbound commands with retry (CommandIssuer)
    3. Inbound event routing (EventDispatcher)

    The transport is owned exclusively by the controller; the issuer and
    dispatcher only reach it through here.

    Example:
        >>> with MeshController() as controller:
        ...     controller.listen({NodeAdded: lambda e: controller.configure_node(e.addr, 0)})
        ...     controller.setup()
        ...     for event in controller.events(timeout=10.0):
        ...         print(event)
    """

    def __init__(self,
                 transport: Optional[Transport] = None,
                 protocol: Optional[Protocol] = None,
                 retry_policy: Optional[RetryPolicy] = None,
                 read_timeout_ms: int = DEFAULT_READ_TIMEOUT_MS):
        """Initialize MeshController.

        Args:
            transport: Transport to own, or None to create a DongleConnection
            protocol: Protocol implementation (default: BinaryProtocol)
            retry_policy: Write retry policy (default: one retry after 200 ms)
            read_timeout_ms: Dispatcher read timeout
        """
        self._transport = transport or DongleConnection()
        protocol = protocol or BinaryProtocol()

        self._issuer = CommandIssuer(self._transport, protocol=protocol, retry_policy=retry_policy)
        self._dispatcher = EventDispatcher(
            self._transport,
            protocol=protocol,
            read_timeout_ms=read_timeout_ms,
        )

    # --- Lifecycle ---

    def open(self) -> MeshController:
        """Open the dongle.

        Raises:
            OpenError: A subclass naming the stage that failed
        """
        self._transport.open()
        return self

    def close(self) -> None:
        """Stop listening and release the dongle. Safe to call multiple times."""
        self._dispatcher.stop()
        self._transport.close()
        logger.debug("Mesh controller closed")

    @property
    def is_open(self) -> bool:
        return self._transport.is_open()

    def __enter__(self) -> MeshController:
        return self.open()

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()

    # --- Event Interface ---

    def on(self, event_type: Type[Event], handler: EventHandler) -> Callable[[], None]:
        """Register the handler for one event type. Returns an unregister function."""
        return self._dispatcher.on(event_type, handler)

    def listen(self, handlers: Optional[Mapping[Type[Event], EventHandler]] = None) -> None:
        """Register handlers and start the dispatcher thread."""
        self._dispatcher.listen(handlers)

    def stop_listening(self, timeout: Optional[float] = 2.0) -> None:
        self._dispatcher.stop(timeout=timeout)

    def events(self, timeout: Optional[float] = None) -> Iterator[Event]:
        """Iterate over events that have no registered handler."""
        return self._dispatcher.events(timeout=timeout)

    def get_event(self, timeout: Optional[float] = None) -> Optional[Event]:
        """Next event without a registered handler, or None on timeout."""
        return self._dispatcher.get_event(timeout=timeout)

    def wait(self, timeout: Optional[float] = None) -> bool:
        """Block until the dispatcher stops; re-raises a fatal transport error."""
        return self._dispatcher.wait(timeout=timeout)

    @property
    def is_listening(self) -> bool:
        return self._dispatcher.is_running

    # --- Command Interface ---

    def send_command(self, command: Command) -> None:
        self._issuer.send_command(command)

    def setup(self) -> None:
        self._issuer.setup()

    def add_key(self, app_idx: int) -> None:
        self._issuer.add_key(app_idx)

    def provision(self, uuid: bytes) -> None:
        self._issuer.provision(uuid)

    def configure_node(self, addr: int, app_idx: int) -> None:
        self._issuer.configure_node(addr, app_idx)

    def configure_element(self, group_addr: int, node_addr: int,
                          elem_addr: int, app_idx: int) -> None:
        self._issuer.configure_element(group_addr, node_addr, elem_addr, app_idx)

    def send_message(self, state: int, addr: int, app_idx: int) -> None:
        self._issuer.send_message(state, addr, app_idx)

    def send_recall_message(self, scene_number: int, addr: int, app_idx: int) -> None:
        self._issuer.send_recall_message(scene_number, addr, app_idx)

    def send_store_message(self, scene_number: int, addr: int, app_idx: int) -> None:
        self._issuer.send_store_message(scene_number, addr, app_idx)

    def send_delete_message(self, scene_number: int, addr: int, app_idx: int) -> None:
        self._issuer.send_delete_message(scene_number, addr, app_idx)

    def send_bind_message(self, scene_number: int, addr: int, app_idx: int) -> None:
        self._issuer.send_bind_message(scene_number, addr, app_idx)

    def reset_node(self, addr: int) -> None:
        self._issuer.reset_node(addr)

    def reset(self) -> None:
        self._issuer.reset()

    def reboot(self) -> None:
        self._issuer.reboot()
