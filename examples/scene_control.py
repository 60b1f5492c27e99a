#!/usr/bin/env python3
"""
Scene control walk-through.

Subscribes a node element to a group, stores the current state of the
group as a scene, changes it, then recalls the scene.
"""

import argparse
import logging
import sys
import time
from pathlib import Path

# Add SDK to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from meshdongle import MeshController, MeshDongleError, StateReport


def parse_int(value: str) -> int:
    return int(value, 0)


def main():
    parser = argparse.ArgumentParser(description="Store and recall a scene on a group")
    parser.add_argument("node", type=parse_int, help="node unicast address, e.g. 0x0002")
    parser.add_argument("--group", type=parse_int, default=0xC000)
    parser.add_argument("--element", type=parse_int, default=None,
                        help="element address (default: the node address)")
    parser.add_argument("--scene", type=parse_int, default=1)
    parser.add_argument("--app-idx", type=parse_int, default=0)
    parser.add_argument("--delete", action="store_true", help="delete the scene afterwards")
    args = parser.parse_args()

    logging.basicConfig(level=logging.INFO, format='%(asctime)s - %(levelname)s - %(message)s')

    element = args.node if args.element is None else args.element

    try:
        with MeshController() as controller:
            controller.on(StateReport, lambda e: print(f"State of 0x{e.addr:04x}: {e.state}"))
            controller.listen()

            print(f"Subscribing element 0x{element:04x} to group 0x{args.group:04x}")
            controller.configure_element(args.group, args.node, element, args.app_idx)
            controller.send_bind_message(args.scene, args.group, args.app_idx)
            time.sleep(1)

            controller.send_message(0x01, args.group, args.app_idx)
            controller.send_store_message(args.scene, args.group, args.app_idx)
            print(f"Stored scene {args.scene}")
            time.sleep(1)

            controller.send_message(0x00, args.group, args.app_idx)
            time.sleep(1)

            controller.send_recall_message(args.scene, args.group, args.app_idx)
            print(f"Recalled scene {args.scene}")
            time.sleep(1)

            if args.delete:
                controller.send_delete_message(args.scene, args.group, args.app_idx)
                print(f"Deleted scene {args.scene}")
    except MeshDongleError as e:
        print(f"Error: {e}")
        return 1

    return 0


if __name__ == "__main__":
    sys.exit(main())
