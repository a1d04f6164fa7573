"""
Loading raw points exports into claim records.

Each source is a CSV dump with a header row, the raw social id in
column 0 and the raw points balance in column 1:

    id,points
    12345,7.1
    67890,0.25

The id is prefixed with the source's network ("discord:", "twitter:")
so that equal raw handles coming from different networks stay distinct.
Rows with a balance of zero or less, or one that truncates to zero at
18 decimals, are skipped. Duplicate ids are kept
as-is; merging them is the reconciler's job.
"""

import csv
import logging
import time
from concurrent.futures import ThreadPoolExecutor, TimeoutError as FutureTimeout
from dataclasses import dataclass
from typing import List, Optional, Sequence

from .amounts import is_positive, normalize
from .claims import ClaimRecord, ClaimSet
from .errors import MalformedAmount, RowParseError, ScalingError, SourceUnreadable

log = logging.getLogger(__name__)

# the possible prefixes for the two social networks' ids
DISCORD_PREFIX = "discord:"
TWITTER_PREFIX = "twitter:"

ID_COLUMN = 0
AMOUNT_COLUMN = 1


@dataclass(frozen=True)
class ClaimSource:
    """A points export on disk and the id prefix of its network."""
    location: str
    prefix: str


def load_source(source: ClaimSource) -> ClaimSet:
    """
    Read one points export.

    Raises
    ------
    SourceUnreadable
        The file cannot be opened or read.
    RowParseError
        A row is too short or its amount cannot be normalized.
    """
    claims: ClaimSet = []
    skipped = 0

    try:
        with open(source.location, "r", newline="", encoding="utf-8") as f:
            reader = csv.reader(f, delimiter=",")
            next(reader, None)  # header

            for row in reader:
                line = reader.line_num
                if not row or not any(c.strip() for c in row):
                    continue
                if len(row) <= AMOUNT_COLUMN:
                    raise RowParseError(source.location, line, f"expected at least 2 columns, got {len(row)}")

                raw_id = row[ID_COLUMN].strip()
                raw_amount = row[AMOUNT_COLUMN].strip()
                try:
                    if not is_positive(raw_amount):
                        skipped += 1
                        log.debug("%s:%d: dropping non-positive amount %r", source.location, line, raw_amount)
                        continue
                    amount = int(normalize(raw_amount))
                    if amount == 0:
                        skipped += 1
                        log.debug("%s:%d: dropping amount %r, zero once truncated", source.location, line, raw_amount)
                        continue
                except (MalformedAmount, ScalingError) as e:
                    raise RowParseError(source.location, line, str(e)) from e

                claims.append(ClaimRecord(id=source.prefix + raw_id, amount=amount))
    except (OSError, csv.Error, UnicodeDecodeError) as e:
        raise SourceUnreadable(f"cannot read points source {source.location!r}: {e}") from e

    log.info("loaded %d claims from %s (%d zero or negative rows skipped)", len(claims), source.location, skipped)
    return claims


def ingest(
    sources: Sequence[ClaimSource],
    timeout: Optional[float] = None,
    max_workers: Optional[int] = None,
) -> ClaimSet:
    """
    Read every source concurrently and concatenate the results.

    The output keeps the order of `sources`, then row order within each
    source, regardless of which read finishes first. `timeout` (seconds)
    bounds the whole batch.
    """
    if not sources:
        return []

    deadline = None if timeout is None else time.monotonic() + timeout
    workers = max_workers or len(sources)
    pool = ThreadPoolExecutor(max_workers=workers, thread_name_prefix="ingest")
    try:
        futures = [pool.submit(load_source, s) for s in sources]
        per_source: List[ClaimSet] = []
        for source, future in zip(sources, futures):
            remaining = None if deadline is None else max(0.0, deadline - time.monotonic())
            try:
                per_source.append(future.result(timeout=remaining))
            except FutureTimeout as e:
                raise SourceUnreadable(f"timed out reading points source {source.location!r}") from e
    finally:
        pool.shutdown(wait=False, cancel_futures=True)

    claims: ClaimSet = []
    for chunk in per_source:
        claims.extend(chunk)

    log.info("ingested %d claims from %d sources", len(claims), len(sources))
    return claims
