from __future__ import annotations

import argparse
import json
import logging
import sys
import warnings

from idlecore.definition import GameDefinition
from idlecore.errors import ContentValidationError, ContentWarning
from idlecore.loader import load_file
from idlecore.offline import (
    PRIMARY_RESOURCE,
    OfflineConfig,
    OfflineProgressSimulator,
    ResourceGainBatch,
)
from idlecore.resolver import ModifierResolver, active_modifiers
from idlecore.store import InMemoryStateStore


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="idlecore",
        description="idlecore: idle economy content tools",
    )
    parser.add_argument(
        "-v", "--verbose", action="store_true", help="Log engine activity to stderr"
    )
    sub = parser.add_subparsers(dest="command")

    val = sub.add_parser("validate", help="Validate a content file")
    val.add_argument("content", help="Path to a JSON content document")

    off = sub.add_parser("offline", help="Compute offline progress for a saved state")
    off.add_argument("content", help="Path to a JSON content document")
    off.add_argument(
        "--seconds", type=float, required=True, help="Seconds spent away"
    )
    off.add_argument(
        "--state", default=None, help="JSON state snapshot (default: fresh state)"
    )
    off.add_argument(
        "--primary-resource",
        default=PRIMARY_RESOURCE,
        help=f"Resource accrued offline (default: {PRIMARY_RESOURCE})",
    )
    off.add_argument(
        "--max-offline", type=float, default=None, help="Cap on credited seconds"
    )
    off.add_argument("--json", action="store_true", help="Print the batch as JSON")

    return parser


def load_content(path: str) -> GameDefinition:
    """Load a content file, exiting with status 1 if it is invalid."""
    with warnings.catch_warnings():
        # Diagnostics are printed by the caller instead
        warnings.simplefilter("ignore", ContentWarning)
        try:
            return load_file(path)
        except ContentValidationError as exc:
            print(f"Error: {exc}", file=sys.stderr)
            sys.exit(1)
        except OSError as exc:
            print(f"Error: cannot read {path}: {exc}", file=sys.stderr)
            sys.exit(1)


def load_state(path: str | None) -> InMemoryStateStore:
    if path is None:
        return InMemoryStateStore()
    with open(path, encoding="utf-8") as fh:
        return InMemoryStateStore.from_snapshot(json.load(fh))


def format_batch(batch: ResourceGainBatch) -> str:
    lines = [f"Offline for {batch.elapsed_seconds:.0f}s"]
    if not batch.has_meaningful_gain():
        lines.append("  no gains")
    for rid, amount in sorted(batch.gains.items()):
        lines.append(f"  {rid}: +{amount:.2f}")
    return "\n".join(lines)


def main(argv: list[str] | None = None) -> None:
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        sys.exit(0)

    logging.basicConfig(
        level=logging.INFO if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )

    definition = load_content(args.content)

    if args.command == "validate":
        print(f"OK: {definition.config.name}")
        print(f"  resources:      {len(definition.resources)}")
        print(f"  nodes:          {len(definition.nodes)}")
        print(f"  node instances: {len(definition.node_instances)}")
        print(f"  modifiers:      {len(definition.modifiers)}")
        print(f"  upgrades:       {len(definition.upgrades)}")
        print(f"  milestones:     {len(definition.milestones)}")
        print(f"  triggers:       {len(definition.triggers)}")
        print(f"  reward pools:   {len(definition.reward_pools)}")
        for message in definition.diagnostics:
            print(f"warning: {message}")

    elif args.command == "offline":
        store = load_state(args.state)
        simulator = OfflineProgressSimulator(
            definition,
            ModifierResolver(definition, active_modifiers(definition, store)),
            OfflineConfig(
                primary_resource=args.primary_resource,
                max_offline_seconds=args.max_offline,
            ),
        )
        batch = simulator.simulate(args.seconds, store.get_generator_states())
        if args.json:
            print(json.dumps({"elapsedSeconds": batch.elapsed_seconds, "gains": batch.gains}))
        else:
            print(format_batch(batch))


if __name__ == "__main__":
    main()
