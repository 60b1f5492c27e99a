from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable, List, Optional

import usb.core
import usb.util

from .errors import DongleNotFoundError, MultipleDonglesError

logger = logging.getLogger(__name__)

EXPECTED_VID = 0x2FE3
EXPECTED_PID = 0x0100


@dataclass(frozen=True)
class DongleInfo:
    """
    Representation of one mesh controller dongle as seen by pyusb.

    Attributes:
        bus: USB bus number.
        address: Device address on that bus.
        vid: USB Vendor ID.
        pid: USB Product ID.
        manufacturer: USB manufacturer string, if readable.
        product: USB product string, if readable.
        serial_number: USB serial string, if readable.
    """
    bus: Optional[int]
    address: Optional[int]
    vid: int
    pid: int
    manufacturer: Optional[str] = None
    product: Optional[str] = None
    serial_number: Optional[str] = None

    @property
    def device_id(self) -> str:
        """
        Identifier for the dongle.

        Prefer the USB serial_number (stable across replugs);
        fall back to bus/address if serial is missing.
        """
        if self.serial_number:
            return self.serial_number
        return f"{self.bus}-{self.address}"


def _read_string(dev, index: int) -> Optional[str]:
    """Read a string descriptor, or None if it is absent or unreadable.

    Reading strings needs permission on the device node, which enumeration
    does not.
    """
    if not index:
        return None
    try:
        return usb.util.get_string(dev, index)
    except (usb.core.USBError, ValueError, NotImplementedError):
        return None


def _device_to_info(dev) -> DongleInfo:
    """Convert a pyusb Device to DongleInfo."""
    return DongleInfo(
        bus=dev.bus,
        address=dev.address,
        vid=dev.idVendor,
        pid=dev.idProduct,
        manufacturer=_read_string(dev, dev.iManufacturer),
        product=_read_string(dev, dev.iProduct),
        serial_number=_read_string(dev, dev.iSerialNumber),
    )


def _ids_match(vid: int, pid: int,
               expected_vid: Optional[int], expected_pid: Optional[int]) -> bool:
    """True if vid/pid equal the expected ids. A None expectation matches anything."""
    return ((expected_vid is None or vid == expected_vid)
            and (expected_pid is None or pid == expected_pid))


def is_matching_dongle(
    info: DongleInfo,
    *,
    expected_vid: Optional[int] = EXPECTED_VID,
    expected_pid: Optional[int] = EXPECTED_PID,
) -> bool:
    """Check whether a DongleInfo carries the mesh controller's USB ids."""
    return _ids_match(info.vid, info.pid, expected_vid, expected_pid)


def find_dongles(
    *,
    matcher: Optional[Callable[[DongleInfo], bool]] = None,
    expected_vid: Optional[int] = EXPECTED_VID,
    expected_pid: Optional[int] = EXPECTED_PID,
) -> List[DongleInfo]:
    """
    Enumerate USB devices and return the mesh controller dongles among them.

    Devices are filtered by VID/PID before their string descriptors are
    read. A `matcher(info) -> bool` replaces the id check entirely, for
    picking a dongle by serial number or product string.
    """
    results: List[DongleInfo] = []

    for dev in usb.core.find(find_all=True) or []:
        if matcher is None:
            if _ids_match(dev.idVendor, dev.idProduct, expected_vid, expected_pid):
                results.append(_device_to_info(dev))
            continue

        info = _device_to_info(dev)
        if matcher(info):
            results.append(info)

    return results


def find_single_dongle(
    *,
    matcher: Optional[Callable[[DongleInfo], bool]] = None,
    expected_vid: Optional[int] = EXPECTED_VID,
    expected_pid: Optional[int] = EXPECTED_PID,
) -> DongleInfo:
    """
    Find exactly one dongle.

    Behaviour:
        - 0 matches  -> DongleNotFoundError
        - 1 match    -> return it
        - >1 matches -> log error and raise MultipleDonglesError
    """
    matches = find_dongles(
        matcher=matcher,
        expected_vid=expected_vid,
        expected_pid=expected_pid,
    )

    if not matches:
        raise DongleNotFoundError(
            f"No matching dongle found (VID={expected_vid!r}, PID={expected_pid!r})"
        )

    if len(matches) > 1:
        # Do not pick one implicitly.
        logger.error(
            "Multiple matching dongles found; refusing to choose automatically. "
            "Devices: %s",
            matches,
        )
        raise MultipleDonglesError(
            f"Multiple matching dongles found ({len(matches)} devices)",
            devices=matches,
        )

    return matches[0]


def is_dongle_available(
    expected_vid: int = EXPECTED_VID,
    expected_pid: int = EXPECTED_PID,
) -> bool:
    """Check if exactly one dongle is plugged in and ready to be opened."""
    try:
        find_single_dongle(expected_vid=expected_vid, expected_pid=expected_pid)
        return True
    except (DongleNotFoundError, MultipleDonglesError):
        return False
