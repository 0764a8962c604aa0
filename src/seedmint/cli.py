"""Seedmint CLI: render, inspect, verify and simulate seed-derived graphics."""

import argparse
import logging
import sys
from importlib.metadata import version as get_version, PackageNotFoundError
from pathlib import Path
from typing import Optional

from seedmint.config import DEFAULT_CONFIG, MintConfig


def _configure_logging(args) -> None:
    if args.verbose:
        level = logging.DEBUG
    elif args.quiet:
        level = logging.ERROR
    else:
        level = logging.WARNING
    logging.basicConfig(level=level, format="%(levelname)s %(name)s: %(message)s")


def _load_config(path: Optional[Path]) -> MintConfig:
    if path is None:
        return DEFAULT_CONFIG
    from .api import load_config
    return load_config(Path(path).resolve())


def main():
    """Main CLI entry point for seedmint commands."""
    try:
        seedmint_version = get_version("seedmint")
    except PackageNotFoundError:
        seedmint_version = "dev"

    parser = argparse.ArgumentParser(
        prog="seedmint",
        description="Seedmint: deterministic graphics from verifiable random seeds"
    )
    parser.add_argument("--version", action="version", version=f"seedmint {seedmint_version}")
    # Common arguments
    parent_parser = argparse.ArgumentParser(add_help=False)
    parent_parser.add_argument(
        "--quiet",
        action="store_true",
        help="Suppress all non-error output."
    )
    parent_parser.add_argument(
        "--verbose",
        action="store_true",
        help="Log ledger state transitions."
    )
    parent_parser.add_argument(
        "--config",
        type=Path,
        default=None,
        help="Path to configuration JSON (defaults to built-in configuration)"
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # render command
    render_parser = subparsers.add_parser(
        "render",
        help="Render the SVG for a seed",
        parents=[parent_parser]
    )
    render_parser.add_argument(
        "--seed",
        required=True,
        help="Seed as decimal or 0x-prefixed hex"
    )
    render_parser.add_argument(
        "--out",
        type=Path,
        default=None,
        help="Write SVG to this file instead of stdout"
    )

    # describe command
    describe_parser = subparsers.add_parser(
        "describe",
        help="Summarize the shape generated for a seed",
        parents=[parent_parser]
    )
    describe_parser.add_argument(
        "--seed",
        required=True,
        help="Seed as decimal or 0x-prefixed hex"
    )
    describe_parser.add_argument(
        "--json",
        action="store_true",
        help="Emit canonical JSON instead of text"
    )

    # verify command
    verify_parser = subparsers.add_parser(
        "verify",
        help="Check that an SVG file is exactly the graphic for a seed",
        parents=[parent_parser]
    )
    verify_parser.add_argument(
        "--seed",
        required=True,
        help="Seed as decimal or 0x-prefixed hex"
    )
    verify_parser.add_argument(
        "--svg",
        type=Path,
        required=True,
        help="Path to SVG file"
    )

    # simulate command
    simulate_parser = subparsers.add_parser(
        "simulate",
        help="Run request -> callback -> finalize against in-memory collaborators",
        parents=[parent_parser]
    )
    simulate_parser.add_argument(
        "--count",
        type=int,
        default=1,
        help="Number of items to generate"
    )
    simulate_parser.add_argument(
        "--base-seed",
        default=None,
        help="Derive provider seeds from this value (random if omitted)"
    )
    simulate_parser.add_argument(
        "--balance",
        type=int,
        default=None,
        help="Prepaid balance (defaults to count * configured fee)"
    )
    simulate_parser.add_argument(
        "--requester",
        default="cli",
        help="Requester identity recorded on each request"
    )

    args = parser.parse_args()

    if not args.command:
        parser.print_help()
        sys.exit(1)

    _configure_logging(args)

    from .errors import SeedmintError
    from pydantic import ValidationError

    try:
        config = _load_config(args.config)

        if args.command == "render":
            from .api import parse_seed, render

            markup = render(parse_seed(args.seed), config)
            if args.out is not None:
                out_path = Path(args.out).resolve()
                out_path.parent.mkdir(parents=True, exist_ok=True)
                out_path.write_text(markup, encoding="utf-8")
                if not args.quiet:
                    print("[OK] Render complete")
                    print(f"  SVG: {out_path}")
            else:
                sys.stdout.write(markup)

        elif args.command == "describe":
            from .api import describe, parse_seed

            summary = describe(parse_seed(args.seed), config)
            if args.json:
                from ._internal.canonical_json import canonical_dumps
                print(canonical_dumps(summary.model_dump()))
            elif not args.quiet:
                print(f"Seed: {summary.seed}")
                print(f"  Paths: {summary.path_count}")
                for i, (count, stroke) in enumerate(zip(summary.commands_per_path, summary.strokes)):
                    print(f"  Path {i}: {count} commands, stroke {stroke}")
                print(f"  Digest: {summary.digest}")

        elif args.command == "verify":
            from .api import parse_seed, verify_markup

            svg_path = Path(args.svg).resolve()
            result = verify_markup(parse_seed(args.seed), svg_path.read_bytes(), config)
            if not args.quiet:
                status = "OK" if result.ok else "FAILED"
                print(f"[{status}] Verification complete")
                print(f"  Status: {status}")
                print(f"  Expected: {result.expected_digest}")
                print(f"  Actual: {result.actual_digest}")
            if not result.ok:
                sys.exit(1)

        elif args.command == "simulate":
            from .api import build_simulation, parse_seed

            if args.count < 1:
                print("Error: --count must be at least 1", file=sys.stderr)
                sys.exit(1)
            base_seed = parse_seed(args.base_seed) if args.base_seed is not None else None
            balance = args.balance if args.balance is not None else args.count * config.randomness.fee
            sim = build_simulation(config, balance=balance, base_seed=base_seed)

            handles = [sim.ledger.begin_generation(args.requester) for _ in range(args.count)]
            for handle in handles:
                sim.provider.fulfill(handle)
            report = sim.inbox.drain()
            for fulfillment, code in report.rejected:
                print(f"Rejected {fulfillment.request_handle}: {code.value}", file=sys.stderr)
            for fulfillment, error in report.failed:
                print(f"Failed {fulfillment.request_handle}: {error}", file=sys.stderr)

            for fulfillment, item_id in report.applied:
                locator = sim.ledger.finalize(item_id)
                if not args.quiet:
                    print(f"Item {item_id}")
                    print(f"  Handle: {fulfillment.request_handle}")
                    print(f"  Seed: 0x{fulfillment.seed:064x}")
                    print(f"  Owner: {sim.registry.owner_of(item_id)}")
                    print(f"  Content: {locator[:64]}...")
            if not args.quiet:
                print(f"[OK] Simulation complete ({len(report.applied)} finalized)")
            if report.rejected or report.failed:
                sys.exit(1)

        else:
            parser.print_help()
            sys.exit(1)
    except (SeedmintError, ValidationError, ValueError, OSError) as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()
