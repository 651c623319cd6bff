#!/usr/bin/env python3
"""Snapshot probe for the core-state reconciler.

Feeds snapshots into a fresh :class:`mosusync.CoreStateSync` and reports which
stores were actually republished. Snapshots come either from a JSON-lines file
(``--jsonl``, one snapshot object per line) or live from the MQTT bridge
configured through ``MOSU_*`` environment variables.

Examples::

    python scripts/snapshot_probe.py --jsonl captured.jsonl
    MOSU_MQTT_HOST=broker.local python scripts/snapshot_probe.py --duration 30
"""

from __future__ import annotations

import argparse
import asyncio
import dataclasses
import json
import logging
import signal
import sys
import time
from pathlib import Path
from typing import Any

from mosusync import BridgeRegistry, CoreStateSync, InMemoryBridge, SyncConfig
from mosusync._summarize import summarize_for_log
from mosusync.exceptions import MosuSyncError
from mosusync.reconciler import changed_view_fields
from mosusync.state.models import ViewState

_LOG = logging.getLogger("mosusync.snapshot_probe")


@dataclasses.dataclass
class ProbeStats:
    started_at: float
    snapshots: int = 0
    skipped_lines: int = 0
    collection_publishes: int = 0
    view_publishes: int = 0


def _parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Replay or listen to core-state snapshots and report store publishes.",
    )
    parser.add_argument(
        "--jsonl",
        type=Path,
        default=None,
        help="Replay snapshots from a JSON-lines file instead of listening on MQTT.",
    )
    parser.add_argument(
        "--duration",
        type=int,
        default=0,
        help="Maximum live runtime in seconds (0 = run until Ctrl+C).",
    )
    parser.add_argument(
        "--json",
        action="store_true",
        help="Print each snapshot (summarized) as it arrives.",
    )
    parser.add_argument(
        "--verbose",
        "-v",
        action="store_true",
        help="Enable debug logs.",
    )
    return parser.parse_args()


def _attach_reporting(sync: CoreStateSync, stats: ProbeStats) -> None:
    previous_view: list[ViewState] = [sync.view_store.get()]

    def on_collection(state: Any) -> None:
        stats.collection_publishes += 1
        print(
            f"[probe] collection#{stats.collection_publishes} items={len(state.items)} "
            f"todo={len(state.todo_ids)} done={len(state.done_ids)}",
        )

    def on_view(state: ViewState) -> None:
        stats.view_publishes += 1
        fields = changed_view_fields(previous_view[0], state)
        previous_view[0] = state
        print(f"[probe] view#{stats.view_publishes} changed={','.join(fields) or '-'}")

    sync.collection_store.subscribe(on_collection)
    sync.view_store.subscribe(on_view)


def _print_snapshot(stats: ProbeStats, snapshot: Any, *, as_json: bool) -> None:
    print(f"[probe] snapshot#{stats.snapshots}")
    if as_json:
        print(json.dumps(summarize_for_log(snapshot), ensure_ascii=False, sort_keys=True, default=str))


def _print_summary(stats: ProbeStats) -> None:
    runtime = time.time() - stats.started_at
    print("[probe] Summary")
    print(f"[probe]   runtime_s            : {runtime:.1f}")
    print(f"[probe]   snapshots            : {stats.snapshots}")
    print(f"[probe]   skipped_lines        : {stats.skipped_lines}")
    print(f"[probe]   collection_publishes : {stats.collection_publishes}")
    print(f"[probe]   view_publishes       : {stats.view_publishes}")


async def _replay(path: Path, config: SyncConfig, stats: ProbeStats, *, as_json: bool) -> None:
    registry = BridgeRegistry()
    bridge = InMemoryBridge()
    registry.register(config.core_state_bridge, bridge)

    async with CoreStateSync(config, registry) as sync:
        _attach_reporting(sync, stats)
        with path.open(encoding="utf-8") as handle:
            for line_no, line in enumerate(handle, start=1):
                line = line.strip()
                if not line:
                    continue
                try:
                    snapshot = json.loads(line)
                except json.JSONDecodeError as exc:
                    stats.skipped_lines += 1
                    _LOG.warning("Skipping line %d: %s", line_no, exc)
                    continue
                stats.snapshots += 1
                _print_snapshot(stats, snapshot, as_json=as_json)
                bridge.publish(snapshot)


async def _listen(config: SyncConfig, stats: ProbeStats, *, duration: int, as_json: bool) -> None:
    stop = asyncio.Event()
    loop = asyncio.get_running_loop()
    for signum in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(signum, stop.set)

    print(f"[probe] Listening on {config.mqtt_host}:{config.mqtt_port} topic={config.snapshot_topic}")
    async with CoreStateSync(config) as sync:
        _attach_reporting(sync, stats)

        def on_snapshot(snapshot: Any) -> None:
            stats.snapshots += 1
            _print_snapshot(stats, snapshot, as_json=as_json)

        bridge = sync.registry.get(config.core_state_bridge)
        if bridge is not None and hasattr(bridge, "subscribe"):
            bridge.subscribe(on_snapshot)

        try:
            await asyncio.wait_for(stop.wait(), timeout=duration or None)
        except TimeoutError:
            print(f"[probe] Reached --duration={duration}s, stopping.")


def _main() -> int:
    args = _parse_args()
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(levelname)s %(name)s: %(message)s",
    )

    stats = ProbeStats(started_at=time.time())
    try:
        if args.jsonl is not None:
            config = SyncConfig.from_env(mqtt_enabled=False, trace_snapshots=args.verbose)
            asyncio.run(_replay(args.jsonl, config, stats, as_json=args.json))
        else:
            config = SyncConfig.from_env(mqtt_enabled=True, trace_snapshots=args.verbose)
            asyncio.run(_listen(config, stats, duration=args.duration, as_json=args.json))
    except (MosuSyncError, OSError) as exc:
        print(f"[probe] Failed: {exc}", file=sys.stderr)
        return 2

    _print_summary(stats)
    return 0


if __name__ == "__main__":
    raise SystemExit(_main())
