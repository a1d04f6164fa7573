import threading
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Sequence

import pytest

from claimtree.claims import ClaimRecord
from claimtree.merkle import build_commitment

# the unique claims and redeemable point values the claim contract tests were deployed with
CLAIM_ELEMENTS = [
    ClaimRecord(id="t1", amount=120),
    ClaimRecord(id="t2", amount=240),
    ClaimRecord(id="t3", amount=360),
    ClaimRecord(id="t4", amount=480),
    ClaimRecord(id="t5", amount=600),
    ClaimRecord(id="t6", amount=720),
    ClaimRecord(id="t7", amount=840),
]


class FakeOracle:
    """In-memory stand-in for the claim contract's read interface."""

    def __init__(
        self,
        root: bytes,
        claimed: Iterable[str] = (),
        failing: Iterable[str] = (),
        roots_after: Optional[Sequence[bytes]] = None,
        delay: float = 0.0,
    ):
        self.root = root
        self.claimed = set(claimed)
        self.failing = set(failing)
        self.roots_after = list(roots_after or [])
        self.delay = delay
        self.queries: List[str] = []
        self.root_reads = 0
        self._lock = threading.Lock()

    def committed_root(self) -> bytes:
        with self._lock:
            self.root_reads += 1
            if self.root_reads > 1 and self.roots_after:
                return self.roots_after.pop(0)
        return self.root

    def is_claimed(self, identity: str) -> bool:
        if self.delay:
            threading.Event().wait(self.delay)
        with self._lock:
            self.queries.append(identity)
        if identity in self.failing:
            raise ConnectionError(f"rpc down while reading {identity}")
        return identity in self.claimed


@pytest.fixture
def claim_elements() -> List[ClaimRecord]:
    return list(CLAIM_ELEMENTS)


@pytest.fixture
def deployed_oracle(claim_elements):
    """Oracle committed to the tree over CLAIM_ELEMENTS, nothing claimed yet."""
    return FakeOracle(build_commitment(claim_elements).root)


@pytest.fixture
def write_csv(tmp_path: Path):
    def _write(name: str, rows: Sequence[Sequence[str]], header: Sequence[str] = ("id", "points")) -> str:
        path = tmp_path / name
        lines = [",".join(header)] + [",".join(r) for r in rows]
        path.write_text("\n".join(lines) + "\n", encoding="utf-8")
        return str(path)

    return _write


def points_of(claims: Iterable[ClaimRecord]) -> Dict[str, int]:
    return {c.id: c.amount for c in claims}
