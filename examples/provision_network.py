#!/usr/bin/env python3
"""
Interactive provisioning script.

Creates a mesh network, adds an application key, provisions every
unprovisioned device that beacons, binds the key to each new node and
toggles it once.

Run with --reset to wipe the dongle's mesh state first.
"""

import argparse
import logging
import sys
import time
from pathlib import Path

# Add SDK to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from meshdongle import (
    MeshController,
    OpenError,
    WriteFailedError,
    DeviceDisconnectedError,
    SetupStatus,
    AddKeyStatus,
    UnprovisionedBeacon,
    NodeAdded,
    StateReport,
    NodeEvent,
)

APP_IDX = 0x0000

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(levelname)s - %(message)s'
)


def main():
    parser = argparse.ArgumentParser(description=__doc__.strip().splitlines()[0])
    parser.add_argument("--reset", action="store_true", help="wipe mesh state before setup")
    parser.add_argument("--duration", type=float, default=60.0, help="seconds to run")
    args = parser.parse_args()

    controller = MeshController()

    print("Opening mesh controller...")
    try:
        controller.open()
    except OpenError as e:
        print(f"Failed to open dongle ({e.stage}): {e}")
        return 1

    seen = set()

    def on_setup_status(event: SetupStatus):
        print("Network ready, adding app key")
        controller.add_key(APP_IDX)

    def on_add_key_status(event: AddKeyStatus):
        print(f"App key {event.app_idx} added, waiting for beacons...")

    def on_beacon(event: UnprovisionedBeacon):
        if event.uuid in seen:
            return
        seen.add(event.uuid)
        print(f"Unprovisioned device {event.uuid.hex()}, provisioning")
        controller.provision(event.uuid)

    def on_node_added(event: NodeAdded):
        print(f"Node added at 0x{event.addr:04x}, binding app key")
        controller.configure_node(event.addr, APP_IDX)
        controller.send_message(0x01, event.addr, APP_IDX)

    try:
        controller.listen({
            SetupStatus: on_setup_status,
            AddKeyStatus: on_add_key_status,
            UnprovisionedBeacon: on_beacon,
            NodeAdded: on_node_added,
        })

        if args.reset:
            controller.reset()
            time.sleep(1)
            controller.reboot()
            time.sleep(1)

        controller.setup()

        # Everything without a handler lands here
        deadline = time.monotonic() + args.duration
        while time.monotonic() < deadline:
            event = controller.get_event(timeout=1.0)
            if isinstance(event, StateReport):
                print(f"State of 0x{event.addr:04x}: {event.state}")
            elif isinstance(event, NodeEvent):
                print(f"Event from 0x{event.addr:04x}")
            elif event is not None:
                print(f"Other event: {event}")
            elif not controller.is_listening:
                controller.wait()
                break

    except WriteFailedError as e:
        print(f"Command failed after {e.attempts} attempts: {e}")
        return 1
    except DeviceDisconnectedError as e:
        print(f"Dongle unplugged: {e}")
        return 1
    except KeyboardInterrupt:
        print("\nInterrupted by user.")
    finally:
        print("\nClosing...")
        controller.close()
        print("Done.")

    return 0


if __name__ == "__main__":
    sys.exit(main())
