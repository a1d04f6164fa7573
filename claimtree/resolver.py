"""
Working out which claims of a deployed tree are still unclaimed.

The prior claim set must rebuild to exactly the root the contract was
deployed with; otherwise the carry-over would be computed against the
wrong universe of identities and amounts, so that is a hard failure.
"""

import logging
import time
from concurrent.futures import ThreadPoolExecutor, TimeoutError as FutureTimeout
from typing import Dict, Optional, Protocol, Sequence

from .claims import ClaimRecord, ClaimSet
from .errors import OracleQueryError, RootMismatch
from .merkle import build_commitment

log = logging.getLogger(__name__)

DEFAULT_WORKERS = 8


class ClaimOracle(Protocol):
    """Read side of the claim contract."""

    def committed_root(self) -> bytes:
        ...

    def is_claimed(self, identity: str) -> bool:
        ...


def verify_root(prior: Sequence[ClaimRecord], oracle: ClaimOracle) -> bytes:
    """Rebuild the tree for `prior` and check it against the contract. Returns the root."""
    local_root = build_commitment(prior).root
    try:
        committed = oracle.committed_root()
    except Exception as e:
        raise OracleQueryError(f"failed to read committed root: {e}") from e

    if local_root != committed:
        raise RootMismatch(local_root, committed)
    return committed


def resolve_carry_over(
    prior: Sequence[ClaimRecord],
    oracle: ClaimOracle,
    max_workers: int = DEFAULT_WORKERS,
    timeout: Optional[float] = None,
) -> ClaimSet:
    """
    Return the claims of `prior` that have not been claimed yet, in input order.

    Raises
    ------
    RootMismatch
        `prior` does not rebuild to the contract's committed root.
    OracleQueryError
        Any single claimed-state query failed or timed out, or the
        committed root changed while the queries were running.
    """
    root = verify_root(prior, oracle)
    identities = list(dict.fromkeys(c.id for c in prior))

    # phase 1: collect claimed flags, every query fully awaited
    claimed: Dict[str, bool] = {}
    deadline = None if timeout is None else time.monotonic() + timeout
    pool = ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix="oracle")
    try:
        futures = {identity: pool.submit(oracle.is_claimed, identity) for identity in identities}
        for identity, future in futures.items():
            remaining = None if deadline is None else max(0.0, deadline - time.monotonic())
            try:
                claimed[identity] = bool(future.result(timeout=remaining))
            except FutureTimeout as e:
                raise OracleQueryError(f"timed out querying claimed state of {identity!r}") from e
            except OracleQueryError:
                raise
            except Exception as e:
                raise OracleQueryError(f"failed to query claimed state of {identity!r}: {e}") from e
    finally:
        pool.shutdown(wait=False, cancel_futures=True)

    # the flags are only meaningful for the root verified above
    try:
        root_after = oracle.committed_root()
    except Exception as e:
        raise OracleQueryError(f"failed to re-read committed root: {e}") from e
    if root_after != root:
        raise OracleQueryError(
            f"committed root changed from 0x{root.hex()} to 0x{root_after.hex()} while querying claims"
        )

    # phase 2: build the filtered set
    unclaimed = [c for c in prior if not claimed[c.id]]
    log.info(
        "%d of %d prior claims are unclaimed and carry over",
        len(unclaimed), len(prior),
    )
    return unclaimed
