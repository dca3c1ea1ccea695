#!/usr/bin/env python3
"""
Depth-bounded tree watcher demo.

This example demonstrates:
1. Registering a directory with a depth budget of 2
2. New subdirectories being watched while they are within the budget
3. Directories past the budget being reported but not watched
4. Watches of deleted directories being dropped

Usage:
    python examples/tree_watch_demo.py
"""

import shutil
import sys
import tempfile
import time
from pathlib import Path

# Add the project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from src.treewatch import EventKind, TreeWatcher, WatchEvent, WatcherConfig


EVENT_ICONS = {
    EventKind.CREATED: "➕",
    EventKind.DELETED: "❌",
    EventKind.MODIFIED: "📝",
    EventKind.OVERFLOW: "⚠️",
}


def print_event(path: Path, event: WatchEvent):
    """Callback invoked from the dispatcher thread."""
    icon = EVENT_ICONS.get(event.kind, "❓")
    print(f"[EVENT] {icon} {event.kind.value.upper()}: {path}")


def show_registered(watcher: TreeWatcher, root: Path):
    print("[DEMO] Watched directories:")
    for path in watcher.registered_paths():
        print(f"         {path.relative_to(root.parent)}")


def main():
    """Run the demo."""
    print("=" * 60)
    print("Tree Watcher Demo")
    print("=" * 60)

    demo_dir = Path(tempfile.mkdtemp(prefix="treewatch_demo_")).resolve()
    root = demo_dir / "watched"
    root.mkdir()
    print(f"\nDemo directory: {demo_dir}\n")

    config = WatcherConfig(sweep_interval_ms=20)

    try:
        with TreeWatcher(config=config) as watcher:
            # === Step 1: Register with depth 2 ===
            print(f"[DEMO] Registering {root} with max depth 2")
            stats = watcher.register(root, 2, ["created", "deleted", "modified"], print_event)
            print(f"[DEMO] Walk: {stats.to_dict()}")
            time.sleep(0.5)

            # === Step 2: Create nested directories one level at a time ===
            print("\n[DEMO] Creating level1/level2/level3...")
            level1 = root / "level1"
            level1.mkdir()
            time.sleep(0.5)
            (level1 / "level2").mkdir()
            time.sleep(0.5)
            (level1 / "level2" / "level3").mkdir()
            time.sleep(0.5)
            show_registered(watcher, root)

            # === Step 3: Files at every level ===
            print("\n[DEMO] Creating files...")
            (root / "top.txt").write_text("top")
            (level1 / "level2" / "deep.txt").write_text("deep")
            (level1 / "level2" / "level3" / "too_deep.txt").write_text("not reported")
            time.sleep(0.5)

            # === Step 4: Delete a watched directory ===
            print("\n[DEMO] Deleting level1...")
            shutil.rmtree(level1)
            time.sleep(0.5)
            show_registered(watcher, root)

            # === Step 5: Summary of the event log ===
            print("\n[DEMO] Triggered events:")
            for path, kinds in sorted(watcher.triggered_events().items(), key=lambda item: str(item[0])):
                print(f"         {path.relative_to(demo_dir)}: {[k.value for k in kinds]}")

        print("\n" + "=" * 60)
        print("Demo completed successfully!")
        print("=" * 60)

    except KeyboardInterrupt:
        print("\n\nInterrupted!")

    finally:
        print(f"\nCleaning up demo directory: {demo_dir}")
        shutil.rmtree(demo_dir, ignore_errors=True)


if __name__ == "__main__":
    main()
