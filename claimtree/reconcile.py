"""
Folding carry-over (previously unclaimed) points into a new claim set.
"""

import enum
import logging
from typing import Dict, Optional

from .claims import ClaimRecord, ClaimSet
from .errors import DuplicateIdentity

log = logging.getLogger(__name__)


class MergeMode(enum.Enum):
    """How a carry-over amount combines with a new amount for the same identity."""
    ADD = "add"
    REPLACE = "replace"


def reconcile(
    new: ClaimSet,
    carry_over: Optional[ClaimSet] = None,
    mode: MergeMode = MergeMode.ADD,
) -> ClaimSet:
    """
    Merge `carry_over` into `new` without touching either input.

    - No carry-over: a copy of `new`, as-is.
    - Identity in both: one record, amount = new + carry-over (ADD) or
      the carry-over amount (REPLACE). Amounts are Python ints, so sums
      past 2**256 are still exact.
    - Identity only in carry-over: appended after the new records, in
      carry-over order.

    Repeated identities in `new` are folded into their first position so
    the result never repeats an identity. A repeated identity inside
    `carry_over` raises DuplicateIdentity.
    """
    if carry_over is None:
        return list(new)

    amounts: Dict[str, int] = {}
    for record in new:
        amounts[record.id] = amounts.get(record.id, 0) + record.amount

    seen = set()
    matched = 0
    for record in carry_over:
        if record.id in seen:
            raise DuplicateIdentity(f"carry-over lists identity {record.id!r} more than once")
        seen.add(record.id)

        if record.id in amounts:
            matched += 1
            if mode is MergeMode.ADD:
                amounts[record.id] += record.amount
            else:
                amounts[record.id] = record.amount
        else:
            # dicts keep insertion order, so unmatched ids land at the end
            amounts[record.id] = record.amount

    log.info(
        "reconciled %d new claims with %d carry-over claims (%d matched, mode=%s)",
        len(new), len(carry_over), matched, mode.value,
    )
    return [ClaimRecord(id=identity, amount=amount) for identity, amount in amounts.items()]
