"""Low-level USB bulk connection to the mesh controller dongle.

The dongle is a vendor-specific USB device that:
- Connects to the PC via USB (VID=0x2FE3, PID=0x0100)
- Runs the Bluetooth mesh stack in its own firmware
- Exchanges fixed-layout binary frames on two bulk endpoints

This module handles:
- Finding and claiming the device with pyusb
- Writing one frame per bulk OUT transfer
- Reading one packet per bulk IN transfer
- Releasing every acquired resource, including after a failed open

Note: This is a RAW PACKET layer. It does not interpret frames.
      Use the protocol layer to encode and decode them.
"""
from __future__ import annotations

import errno
import logging
from dataclasses import dataclass
from typing import Optional

import usb.core
import usb.util

from ..errors import (
    ConfigurationError,
    DeviceDisconnectedError,
    EndpointError,
    InterfaceClaimError,
    KernelDriverError,
    TransientTransportError,
    TransportError,
)
from ..protocol.codec import MAX_FRAME_SIZE
from ..transport.base import Transport
from .dongle_finder import (
    DongleInfo,
    DongleNotFoundError,
    EXPECTED_PID,
    EXPECTED_VID,
    find_single_dongle,
)

logger = logging.getLogger(__name__)

CONFIGURATION_VALUE = 1
INTERFACE_NUMBER = 1
ALTERNATE_SETTING = 0
ENDPOINT_IN = 0x82  # IN endpoint 2
ENDPOINT_OUT = 0x01  # OUT endpoint 1

READ_TIMEOUT_MS = 500
WRITE_TIMEOUT_MS = 1000


@dataclass(frozen=True)
class UsbDeviceConfig:
    """Where the dongle's endpoints live.

    Attributes:
        vid: USB Vendor ID
        pid: USB Product ID
        configuration: bConfigurationValue to select
        interface: Interface number to claim
        alt_setting: Alternate setting of that interface
        endpoint_in: bEndpointAddress of the bulk IN endpoint
        endpoint_out: bEndpointAddress of the bulk OUT endpoint
        read_timeout_ms: Default timeout for receive()
        write_timeout_ms: Timeout for each bulk write
    """
    vid: int = EXPECTED_VID
    pid: int = EXPECTED_PID
    configuration: int = CONFIGURATION_VALUE
    interface: int = INTERFACE_NUMBER
    alt_setting: int = ALTERNATE_SETTING
    endpoint_in: int = ENDPOINT_IN
    endpoint_out: int = ENDPOINT_OUT
    read_timeout_ms: int = READ_TIMEOUT_MS
    write_timeout_ms: int = WRITE_TIMEOUT_MS


def _map_usb_error(error: usb.core.USBError) -> TransportError:
    """Classify a pyusb error as fatal (device gone) or transient."""
    if error.errno == errno.ENODEV:
        return DeviceDisconnectedError(f"Dongle disconnected: {error}")
    return TransientTransportError(f"USB transfer failed: {error}")


class DongleConnection(Transport):
    """USB bulk transport to the mesh controller dongle.

    Owns the device, configuration, interface and both endpoints as one
    resource: open() acquires all of them or none, close() releases all
    of them.

    Example:
        >>> with DongleConnection() as conn:
        ...     conn.send(b"\\x00")           # Setup
        ...     packet = conn.receive()      # e.g. SetupStatus
    """

    def __init__(self,
                 config: Optional[UsbDeviceConfig] = None,
                 dongle: Optional[DongleInfo] = None):
        """Initialize dongle connection.

        Args:
            config: Device/endpoint layout (default: the mesh controller's)
            dongle: A specific dongle from find_dongles(), or None to auto-detect
        """
        self._config = config or UsbDeviceConfig()
        self._dongle = dongle

        self._dev = None
        self._ep_in = None
        self._ep_out = None

        # What has been acquired so far, so partial opens can be undone
        self._detached = False
        self._claimed = False

    @property
    def config(self) -> UsbDeviceConfig:
        return self._config

    def open(self) -> None:
        """Find, configure and claim the dongle.

        If no dongle was given, auto-detects exactly one by VID/PID.

        Raises:
            DongleNotFoundError: No dongle plugged in
            MultipleDonglesError: More than one candidate while auto-detecting
            KernelDriverError: The kernel driver could not be detached
            ConfigurationError: The configuration could not be selected
            InterfaceClaimError: The interface is missing or busy
            EndpointError: A bulk endpoint is missing or too small
        """
        if self._dev is not None:
            logger.warning("Already open")
            return

        cfg = self._config
        dongle = self._dongle
        if dongle is None:
            dongle = find_single_dongle(expected_vid=cfg.vid, expected_pid=cfg.pid)
            logger.info(f"Auto-detected dongle on bus {dongle.bus} address {dongle.address}")

        match = {"idVendor": cfg.vid, "idProduct": cfg.pid}
        if dongle.bus is not None and dongle.address is not None:
            match.update(bus=dongle.bus, address=dongle.address)

        dev = usb.core.find(**match)
        if dev is None:
            raise DongleNotFoundError(
                f"USB device {cfg.vid:04x}:{cfg.pid:04x} not found "
                f"on bus {dongle.bus} address {dongle.address}"
            )

        try:
            self._acquire(dev)
        except Exception:
            self._release(dev)
            raise

        self._dev = dev
        logger.info(
            "Opened dongle %04x:%04x (EP OUT=0x%02x, EP IN=0x%02x, max packet %d)",
            cfg.vid, cfg.pid,
            self._ep_out.bEndpointAddress,
            self._ep_in.bEndpointAddress,
            self._ep_in.wMaxPacketSize,
        )

    def _acquire(self, dev) -> None:
        """Detach, configure, claim and locate endpoints, in that order."""
        cfg = self._config

        try:
            if dev.is_kernel_driver_active(cfg.interface):
                dev.detach_kernel_driver(cfg.interface)
                self._detached = True
                logger.debug("Detached kernel driver from interface %d", cfg.interface)
        except NotImplementedError:
            # Backend has no kernel driver concept (Windows, macOS)
            pass
        except usb.core.USBError as e:
            raise KernelDriverError(f"Cannot detach kernel driver: {e}") from e

        try:
            dev.set_configuration(cfg.configuration)
            usb_cfg = dev.get_active_configuration()
        except usb.core.USBError as e:
            raise ConfigurationError(
                f"Cannot select configuration {cfg.configuration}: {e}"
            ) from e

        try:
            intf = usb_cfg[(cfg.interface, cfg.alt_setting)]
        except (KeyError, IndexError, usb.core.USBError) as e:
            raise InterfaceClaimError(
                f"Interface {cfg.interface} alt {cfg.alt_setting} not present: {e}"
            ) from e

        try:
            usb.util.claim_interface(dev, cfg.interface)
            self._claimed = True
            if cfg.alt_setting:
                intf.set_altsetting()
        except usb.core.USBError as e:
            raise InterfaceClaimError(f"Cannot claim interface {cfg.interface}: {e}") from e

        ep_in = usb.util.find_descriptor(intf, bEndpointAddress=cfg.endpoint_in)
        ep_out = usb.util.find_descriptor(intf, bEndpointAddress=cfg.endpoint_out)
        if ep_in is None or ep_out is None:
            raise EndpointError(
                f"Could not find bulk endpoints IN=0x{cfg.endpoint_in:02x} "
                f"OUT=0x{cfg.endpoint_out:02x}"
            )

        # Every inbound frame must fit in one packet
        if ep_in.wMaxPacketSize < MAX_FRAME_SIZE:
            raise EndpointError(
                f"IN endpoint max packet size {ep_in.wMaxPacketSize} is smaller "
                f"than the largest frame ({MAX_FRAME_SIZE} bytes)"
            )

        self._ep_in = ep_in
        self._ep_out = ep_out

    def _release(self, dev) -> None:
        """Undo whatever _acquire() managed to do."""
        cfg = self._config

        if self._claimed:
            try:
                usb.util.release_interface(dev, cfg.interface)
            except usb.core.USBError as e:
                logger.warning(f"Error releasing interface: {e}")

        if self._detached:
            try:
                dev.attach_kernel_driver(cfg.interface)
            except (usb.core.USBError, NotImplementedError) as e:
                logger.warning(f"Error re-attaching kernel driver: {e}")

        usb.util.dispose_resources(dev)

        self._claimed = False
        self._detached = False
        self._ep_in = None
        self._ep_out = None

    def close(self) -> None:
        """Release the dongle and all its sub-resources."""
        if self._dev is None:
            return

        dev = self._dev
        self._dev = None
        self._release(dev)
        logger.info("Dongle closed")

    def is_open(self) -> bool:
        return self._dev is not None

    def send(self, data: bytes) -> None:
        """Write one frame with a single bulk OUT transfer.

        Raises:
            TransportError: Not open
            TransientTransportError: Transfer failed, timed out or was short
            DeviceDisconnectedError: The dongle is gone
        """
        ep = self._ep_out
        if ep is None:
            raise TransportError("Cannot send, not open")

        try:
            written = ep.write(data, timeout=self._config.write_timeout_ms)
        except usb.core.USBError as e:
            raise _map_usb_error(e) from e

        if written != len(data):
            raise TransientTransportError(f"Short write: {written} of {len(data)} bytes")

        logger.debug("TX %s", bytes(data).hex(" "))

    def receive(self, timeout_ms: Optional[int] = None) -> Optional[bytes]:
        """Read one packet (a full max-packet-size buffer) from the IN endpoint.

        Returns:
            Packet bytes, or None if nothing arrived within the timeout
        """
        ep = self._ep_in
        if ep is None:
            raise TransportError("Cannot receive, not open")

        if timeout_ms is None:
            timeout_ms = self._config.read_timeout_ms

        try:
            data = ep.read(ep.wMaxPacketSize, timeout=timeout_ms)
        except usb.core.USBTimeoutError:
            return None
        except usb.core.USBError as e:
            if e.errno == errno.ETIMEDOUT:
                return None
            raise _map_usb_error(e) from e

        packet = bytes(data)
        logger.debug("RX %s", packet.hex(" "))
        return packet

    @property
    def max_packet_size(self) -> int:
        if self._ep_in is None:
            return 0
        return self._ep_in.wMaxPacketSize
