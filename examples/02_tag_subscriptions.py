#!/usr/bin/env python3
"""Example: Tag subscriptions

Binds a callback to a tag, shows the replay of existing members, and
follows objects that gain the tag afterwards (including a cloned tree).

Usage:
    python examples/02_tag_subscriptions.py

Requirements:
    pip install object-atlas
"""
from __future__ import annotations

import threading

from object_atlas import Atlas


def main() -> None:
    lock = threading.Lock()

    def on_enemy(obj: object) -> None:
        with lock:
            print(f"  enemy arrived: {obj!r}")

    with Atlas() as atlas:
        squad = atlas.new("Model")
        atlas.apply_settings(squad, {"name": "Squad"})
        for name in ("Grunt", "Sniper"):
            member = atlas.new("Part")
            atlas.apply_settings(member, {"name": name, "parent": squad})
            atlas.tag_object(member, "Enemy")

        print("Binding to 'Enemy' (replays existing members):")
        handle = atlas.bind_to_tag("Enemy", on_enemy)
        atlas.subscriber.drain(timeout=5.0)

        print("Tagging a new enemy:")
        boss = atlas.new("Part")
        atlas.apply_settings(boss, {"name": "Boss"})
        atlas.tag_object(boss, "Enemy")
        atlas.tag_object(boss, "Enemy")  # already tagged: no second delivery
        atlas.subscriber.drain(timeout=5.0)

        handle.cancel()
        atlas.tag_object(atlas.new("Part"), "Enemy")
        atlas.subscriber.drain(timeout=5.0)
        print(f"After cancel, active subscriptions: {len(atlas.subscriber.active_subscriptions())}")

        copy = atlas.deep_clone(squad)
        tagged = [d.name for d in copy.iter_descendants() if atlas.index.has_tag(d, "Framework")]
        print(f"Cloned squad descendants tagged Framework: {tagged}")


if __name__ == "__main__":
    main()
