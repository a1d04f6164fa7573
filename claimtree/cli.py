"""
claimtree command line.

    claimtree build --discord discord.csv --twitter twitter.csv [-o gen]
    claimtree migrate --previous gen/claim_points.json --discord ... --twitter ...
    claimtree unclaimed --previous gen/claim_points.json
    claimtree proof --points gen/claim_points.json --id discord:12345
    claimtree clawback-time

Contract commands read CLAIMTREE_RPC_URL / CLAIMTREE_CLAIM_ADDRESS (a
`.env` file is honoured). Every command builds its results fully in
memory before writing anything, and exits 1 on any pipeline error.
"""

import argparse
import json
import logging
import sys
from datetime import datetime, timezone
from pathlib import Path
from typing import List, Optional, Sequence

from dotenv import load_dotenv
from eth_utils import encode_hex

from .amounts import format_amount
from .claims import ClaimSet, PointsMap
from .config import Settings, load_settings
from .contract import Web3ClaimOracle
from .errors import ClaimTreeError, ConfigurationError
from .ingest import DISCORD_PREFIX, TWITTER_PREFIX, ClaimSource, ingest
from .log import configure_logging
from .merkle import MerkleCommitment, build_commitment, claim_proof
from .reconcile import MergeMode, reconcile
from .resolver import resolve_carry_over
from .storage import CLAIM_POINTS_FILE, load_points, save_artifact, save_tree

log = logging.getLogger(__name__)

UNCLAIMED_POINTS_FILE = "unclaimed_points.json"


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def connect_oracle(settings: Settings) -> Web3ClaimOracle:
    settings.require_contract()
    return Web3ClaimOracle.connect(
        settings.rpc_url,
        settings.claim_address,
        timeout=settings.rpc_timeout,
        expected_chain_id=settings.expected_chain_id,
    )


def parse_source(value: str) -> ClaimSource:
    """Parse a PREFIX=PATH argument, e.g. 'telegram:=points.csv'."""
    prefix, sep, location = value.partition("=")
    if not sep or not prefix or not location:
        raise argparse.ArgumentTypeError(f"expected PREFIX=PATH, got {value!r}")
    return ClaimSource(location=location, prefix=prefix)


def collect_sources(args: argparse.Namespace) -> List[ClaimSource]:
    sources: List[ClaimSource] = []
    if args.discord:
        sources.append(ClaimSource(location=args.discord, prefix=DISCORD_PREFIX))
    if args.twitter:
        sources.append(ClaimSource(location=args.twitter, prefix=TWITTER_PREFIX))
    sources.extend(args.source or [])
    return sources


def write_tree(output_dir: Path, claims: ClaimSet) -> MerkleCommitment:
    """Build the points map and tree in memory, then persist both."""
    points = PointsMap.from_records(claims)
    commitment = build_commitment(claims)

    points_path, tree_path = save_tree(output_dir, points, commitment)

    print("merkleRoot:", commitment.root_hex)
    print("depth:", commitment.depth)
    print("claims:", len(points))
    print("total points:", format_amount(commitment.total_amount))
    print("total points *1E18:", commitment.total_amount)
    print("wrote:", points_path)
    print("wrote:", tree_path)
    return commitment


def check_not_previous(output_path: Path, previous: str) -> None:
    """Refuse to write over the points file a migration reads from."""
    if Path(output_path).resolve() == Path(previous).resolve():
        raise ConfigurationError(
            f"output {str(output_path)!r} would overwrite --previous {previous!r}; pick another --output-dir"
        )


def carry_over_from(args: argparse.Namespace, settings: Settings) -> ClaimSet:
    prior = load_points(args.previous).to_records()
    oracle = connect_oracle(settings)
    return resolve_carry_over(
        prior,
        oracle,
        max_workers=settings.oracle_workers,
        timeout=args.timeout,
    )


# ---------------------------------------------------------------------------
# Commands
# ---------------------------------------------------------------------------

def cmd_build(args: argparse.Namespace, settings: Settings) -> int:
    claims = ingest(collect_sources(args), timeout=args.timeout)
    write_tree(args.output_dir or settings.output_dir, reconcile(claims))
    return 0


def cmd_migrate(args: argparse.Namespace, settings: Settings) -> int:
    output_dir = args.output_dir or settings.output_dir
    check_not_previous(Path(output_dir) / CLAIM_POINTS_FILE, args.previous)

    carry_over = carry_over_from(args, settings)
    print("carried over claims:", len(carry_over))

    claims = ingest(collect_sources(args), timeout=args.timeout)
    mode = MergeMode(args.mode) if args.mode else settings.merge_mode
    write_tree(output_dir, reconcile(claims, carry_over, mode=mode))
    return 0


def cmd_unclaimed(args: argparse.Namespace, settings: Settings) -> int:
    output_dir = args.output_dir or settings.output_dir
    check_not_previous(Path(output_dir) / UNCLAIMED_POINTS_FILE, args.previous)

    carry_over = carry_over_from(args, settings)
    points = PointsMap.from_records(carry_over)
    path = save_artifact(output_dir, UNCLAIMED_POINTS_FILE, points.to_dict())
    print("unclaimed claims:", len(points))
    print("unclaimed points:", format_amount(sum(points.values())))
    print("wrote:", path)
    return 0


def cmd_proof(args: argparse.Namespace, settings: Settings) -> int:
    claims = load_points(args.points).to_records()
    try:
        claim, proof, root = claim_proof(claims, args.id)
    except KeyError:
        print(f"error: no claim for {args.id!r} in {args.points}", file=sys.stderr)
        return 1

    out = {
        "id": claim.id,
        "points": str(claim.amount),
        "proof": [encode_hex(p) for p in proof],
        "merkleRoot": encode_hex(root),
    }
    print(json.dumps(out, indent=2))
    return 0


def cmd_clawback_time(args: argparse.Namespace, settings: Settings) -> int:
    end = connect_oracle(settings).claim_period_end()
    try:
        when = datetime.fromtimestamp(end, tz=timezone.utc).isoformat()
    except (OverflowError, ValueError, OSError):
        # past what datetime can represent
        print(f"Clawback timestamp: {end}")
    else:
        print(f"Clawback timestamp: {end} ({when})")
    return 0


# ---------------------------------------------------------------------------
# Main
# ---------------------------------------------------------------------------

def _add_source_args(p: argparse.ArgumentParser) -> None:
    p.add_argument("--discord", help="discord points CSV (id,points with a header row)")
    p.add_argument("--twitter", help="twitter points CSV (id,points with a header row)")
    p.add_argument(
        "--source", action="append", type=parse_source, metavar="PREFIX=PATH",
        help="additional points CSV with its id prefix; may be repeated",
    )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="claimtree", description="Build claim points merkle trees.")
    parser.add_argument("-v", "--verbose", action="store_true", help="debug logging")
    parser.add_argument("--timeout", type=float, default=None, help="seconds allowed for reads")
    sub = parser.add_subparsers(dest="command", required=True)

    p = sub.add_parser("build", help="build a fresh tree from points exports")
    _add_source_args(p)
    p.add_argument("-o", "--output-dir", type=Path, help="artifact directory (default: CLAIMTREE_OUTPUT_DIR or gen)")
    p.set_defaults(func=cmd_build, needs_sources=True)

    p = sub.add_parser("migrate", help="carry unclaimed points of a deployed tree into a new tree")
    p.add_argument("--previous", required=True, help="claim_points.json the deployed tree was built from")
    _add_source_args(p)
    p.add_argument("--mode", choices=[m.value for m in MergeMode], help="how carry-over combines with new points")
    p.add_argument("-o", "--output-dir", type=Path)
    p.set_defaults(func=cmd_migrate, needs_sources=True)

    p = sub.add_parser("unclaimed", help="write the still-unclaimed points of a deployed tree")
    p.add_argument("--previous", required=True, help="claim_points.json the deployed tree was built from")
    p.add_argument("-o", "--output-dir", type=Path)
    p.set_defaults(func=cmd_unclaimed, needs_sources=False)

    p = sub.add_parser("proof", help="print the inclusion proof of one identity")
    p.add_argument("--points", required=True, help="claim_points.json the tree was built from")
    p.add_argument("--id", required=True, help="prefixed identity, e.g. discord:12345")
    p.set_defaults(func=cmd_proof, needs_sources=False)

    p = sub.add_parser("clawback-time", help="print when the claim period ends")
    p.set_defaults(func=cmd_clawback_time, needs_sources=False)

    return parser


def main(argv: Optional[Sequence[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.needs_sources and not collect_sources(args):
        parser.error("at least one of --discord, --twitter or --source is required")

    configure_logging(logging.DEBUG if args.verbose else logging.INFO)

    load_dotenv()
    try:
        settings = load_settings()
        return args.func(args, settings)
    except ClaimTreeError as e:
        log.debug("command failed", exc_info=True)
        print(f"error: {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    raise SystemExit(main())
