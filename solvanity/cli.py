"""
Command-line interface for solvanity.

Usage:
    python -m solvanity serve --config config.json
    python -m solvanity search --prefix abc
    python -m solvanity search --prefix Sol --workers 8 --rng system
"""

import argparse
import logging
import sys

from solvanity import __version__
from solvanity.client import VanityClient
from solvanity.config import load_config
from solvanity.core import ENTROPY_SOURCES, EntropyError, os_entropy
from solvanity.export import (
    RARE_LOG_FILE,
    VANITY_LOG_FILE,
    JsonLineSink,
    ProgressMessage,
    RareMessage,
    RareWalletLog,
    save_vanity_wallet,
)
from solvanity.generator import SearchCoordinator
from solvanity.matcher import compile_rules, estimate_difficulty, validate_base58_prefix
from solvanity.protocol import serve
from solvanity.verify import is_valid, verify_keypair

logger = logging.getLogger(__name__)


def _add_search_options(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--config", "-c", metavar="PATH",
        help="Rarity pattern config (default: ./config.json if present)",
    )
    parser.add_argument(
        "--workers", "-w", type=int, default=0,
        help="Number of worker processes (default: auto)",
    )
    parser.add_argument(
        "--rng", choices=sorted(ENTROPY_SOURCES), default="chacha",
        help="Seed source: per-worker ChaCha20 stream or OS entropy per key",
    )
    parser.add_argument(
        "--rare-log", metavar="PATH", default=RARE_LOG_FILE,
        help=f"Append rare finds to this file (default: {RARE_LOG_FILE})",
    )


def create_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="solvanity",
        description="Solana Vanity Address Generator",
        epilog=(
            "Examples:\n"
            '  echo \'{"prefix": "abc"}\' | solvanity serve\n'
            "  solvanity search --prefix abc\n"
            "  solvanity search --prefix Sol --workers 8\n"
        ),
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )

    parser.add_argument(
        "--version", action="version", version=f"solvanity {__version__}"
    )
    parser.add_argument(
        "--log-level", default="INFO",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Log level for messages on stderr (default: INFO)",
    )

    sub = parser.add_subparsers(dest="command")

    serve_parser = sub.add_parser(
        "serve", help="Read JSON search requests on stdin, write events to stdout",
    )
    _add_search_options(serve_parser)

    search = sub.add_parser("search", help="Search for one prefix interactively")
    search.add_argument(
        "--prefix", "-p", metavar="BASE58", required=True,
        help="Find address starting with this base-58 string (case-sensitive)",
    )
    _add_search_options(search)
    search.add_argument(
        "--output", "-o", metavar="PATH", default=VANITY_LOG_FILE,
        help=f"Append the found wallet to this file (default: {VANITY_LOG_FILE})",
    )
    search.add_argument(
        "--no-verify", action="store_true",
        help="Skip keypair verification",
    )
    search.add_argument(
        "--dry-run", action="store_true",
        help="Show difficulty estimate without searching",
    )
    search.add_argument(
        "--quiet", "-q", action="store_true",
        help="Minimal output (just the result address)",
    )

    return parser


TIME_UNITS = ((60, 1, "s"), (3600, 60, "m"), (86400, 3600, "h"))


def format_time(seconds: float) -> str:
    if seconds < 1:
        return f"{seconds * 1000:.0f}ms"
    for limit, scale, unit in TIME_UNITS:
        if seconds < limit:
            return f"{seconds / scale:.1f}{unit}"
    return f"{seconds / 86400:.1f}d"


def format_rate(rate: float) -> str:
    """Keys per second with a K or M suffix."""
    if rate >= 1_000_000:
        return f"{rate / 1_000_000:.2f}M"
    if rate >= 1000:
        return f"{rate / 1000:.1f}K"
    return f"{rate:.0f}"


def progress_callback(msg: ProgressMessage, elapsed: float, quiet: bool = False) -> None:
    if quiet:
        return
    rate = msg.attempts / elapsed if elapsed > 0 else 0
    sys.stderr.write(
        f"\r  Checked: {msg.attempts:,}  |  "
        f"Rate: {format_rate(rate)}/sec  |  "
        f"Elapsed: {format_time(elapsed)}  "
    )
    sys.stderr.flush()


def rare_callback(msg: RareMessage, quiet: bool = False) -> None:
    if quiet:
        return
    sys.stderr.write("\n")
    print(f"  Rare address: {msg.address}  (pattern {msg.pattern})")


def server_args(args: argparse.Namespace) -> list[str]:
    """Forward the shared search options to a server subprocess."""
    forwarded = ["--workers", str(args.workers), "--rng", args.rng, "--rare-log", args.rare_log]
    if args.config:
        forwarded = ["--config", args.config, *forwarded]
    return forwarded


def run_serve(args: argparse.Namespace) -> int:
    try:
        os_entropy(32)
    except EntropyError as e:
        logger.error(str(e))
        return 1

    rules = compile_rules(load_config(args.config))
    coordinator = SearchCoordinator(
        JsonLineSink(sys.stdout),
        num_workers=args.workers,
        rng=args.rng,
        rare_log=RareWalletLog(args.rare_log) if rules else None,
    )

    logger.info(f"solvanity {__version__} ready ({coordinator.num_workers} workers)")
    try:
        serve(sys.stdin, coordinator, rules)
    except KeyboardInterrupt:
        coordinator.cancel()
    return 0


def run_search(args: argparse.Namespace) -> int:
    try:
        prefix = validate_base58_prefix(args.prefix)
    except ValueError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    difficulty = estimate_difficulty(prefix)
    client = VanityClient(server_args=server_args(args), log_level="WARNING")

    if not args.quiet:
        print(f"solvanity v{__version__}")
        print(f"  Prefix:     '{prefix}'")
        print(f"  Workers:    {args.workers or 'auto'}")
        print(f"  Expected:   ~{difficulty['expected_attempts']:,} attempts")
        print(f"  Difficulty: {difficulty['difficulty_description']}")
        print()

    if args.dry_run:
        return 0

    client.on_progress = lambda msg, elapsed: progress_callback(msg, elapsed, args.quiet)
    client.on_rare = lambda msg: rare_callback(msg, args.quiet)

    if not args.quiet:
        print("Searching...")

    try:
        found = client.search(prefix)
    except KeyboardInterrupt:
        found = None

    if not args.quiet:
        sys.stderr.write("\n")

    if found is None:
        print("No result found (search was interrupted).", file=sys.stderr)
        return 1

    elapsed = client.elapsed
    rate = found.attempts / elapsed if elapsed > 0 else 0

    if not args.quiet:
        print(f"\n{'=' * 60}")
        print("  MATCH FOUND")
        print(f"  Address:        {found.address}")
        print(f"  Private Key:    {found.private_key}")
        print(f"  Time:           {format_time(elapsed)}")
        print(f"  Keys Checked:   {found.attempts:,}")
        print(f"  Rate:           {format_rate(rate)}/sec")
        print(f"{'=' * 60}")

    try:
        path = save_vanity_wallet(
            found.address, found.private_key, found.attempts, elapsed, args.output
        )
    except OSError as e:
        print(f"Error saving wallet to {args.output}: {e}", file=sys.stderr)
        print(f"Address: {found.address}", file=sys.stderr)
        print(f"Private Key: {found.private_key}", file=sys.stderr)
        return 1
    if not args.quiet:
        print(f"\n  Saved wallet: {path}")

    if not args.no_verify:
        check = verify_keypair(found.address, found.private_key)
        if not is_valid(check):
            print(f"\n  Verification FAILED: {check}", file=sys.stderr)
            return 1
        if not args.quiet:
            print("  Verification: PASS")

    if args.quiet:
        print(found.address)

    return 0


def main(argv: list[str] = None) -> int:
    parser = create_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=getattr(logging, args.log_level),
        format="%(asctime)s - %(levelname)s - %(message)s",
        handlers=[logging.StreamHandler(sys.stderr)],
    )

    if args.command == "search":
        return run_search(args)
    if args.command is None:
        # Bare invocation is the subprocess protocol server with defaults
        args = parser.parse_args(["--log-level", args.log_level, "serve"])
    return run_serve(args)
