#!/usr/bin/env python3
"""Example: Quickstart

Creates a few objects through the Atlas façade, then looks one up by
name and waits for another to appear.

Usage:
    python examples/01_quickstart.py

Requirements:
    pip install object-atlas
"""
from __future__ import annotations

import threading

import object_atlas
from object_atlas import Atlas, AtlasConfig, ManagedObject


def main() -> None:
    print(f"object-atlas version: {object_atlas.__version__}")

    with Atlas(AtlasConfig(timeout=1.0)) as atlas:
        # Step 1: Create an object; it is tagged "Framework" automatically
        door = atlas.new("Part")
        atlas.apply_settings(door, {"name": "Door", "anchored": True, "wings": 2})
        print(f"Created: {door!r}")

        # Step 2: Look it up by name, case-insensitively
        print(f"get_object('DOOR') -> {atlas.get_object('DOOR')!r}")

        # Step 3: Wait for an object that is tagged a moment later
        lamp = ManagedObject("Part", name="Lamp")
        threading.Timer(0.05, atlas.tag_object, args=(lamp, "Framework")).start()
        result = atlas.retrieve("Framework", "lamp")
        print(f"retrieve('lamp') -> {result.outcome.value} after {result.attempts} attempt(s)")

        # Step 4: Log an operation
        atlas.log_operation("quickstart", {"objects": len(atlas.get_objects("Framework"))})
        print(f"Logged: {atlas.telemetry.read_log()[-1]}")

    print("\nQuickstart complete.")


if __name__ == "__main__":
    main()
