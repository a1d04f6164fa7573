"""
Claim records and the persisted points map.

A ClaimSet is just an ordered list of ClaimRecord. It can hold the same
identity twice (ingestion does not merge), which is why the persisted
form goes through PointsMap: an ordered identity -> amount mapping that
refuses duplicate keys instead of silently keeping the last one.
"""

from dataclasses import dataclass
from typing import Any, Dict, Iterable, Iterator, List, Mapping, Optional, Tuple

from .errors import DuplicateIdentity, MalformedAmount


@dataclass(frozen=True)
class ClaimRecord:
    """
    One (identity, amount) entitlement.

    Attributes
    ----------
    id : str
        "<network-prefix>:<raw-handle>", e.g. "discord:12345".
    amount : int
        Points scaled by 10**18.
    """
    id: str
    amount: int

    def __post_init__(self) -> None:
        if self.amount < 0:
            raise ValueError(f"claim amount cannot be negative: {self.id}={self.amount}")


ClaimSet = List[ClaimRecord]


def total_amount(claims: Iterable[ClaimRecord]) -> int:
    return sum(c.amount for c in claims)


def parse_amount_int(value: Any) -> int:
    """Parse a persisted integer amount, given either as an int or a decimal integer string."""
    if isinstance(value, bool):
        raise MalformedAmount(f"amount must be an integer, got {value!r}")
    if isinstance(value, int):
        if value < 0:
            raise MalformedAmount(f"amount cannot be negative (got: {value!r})")
        return value

    v = str(value).strip()
    if v.startswith("+"):
        v = v[1:]
    if not v.isascii() or not v.isdigit():
        raise MalformedAmount(f"amount must be a non-negative integer string (got: {value!r})")
    return int(v)


class PointsMap(Mapping[str, int]):
    """Ordered identity -> amount mapping with unique identities."""

    def __init__(self, items: Optional[Iterable[Tuple[str, int]]] = None):
        self._points: Dict[str, int] = {}
        for identity, amount in items or ():
            if identity in self._points:
                raise DuplicateIdentity(f"identity {identity!r} appears more than once")
            self._points[identity] = amount

    def __getitem__(self, identity: str) -> int:
        return self._points[identity]

    def __iter__(self) -> Iterator[str]:
        return iter(self._points)

    def __len__(self) -> int:
        return len(self._points)

    def __repr__(self) -> str:
        return f"PointsMap({self._points!r})"

    # conversions ------------------------------------------------------------

    @classmethod
    def from_records(cls, records: Iterable[ClaimRecord]) -> "PointsMap":
        return cls((r.id, r.amount) for r in records)

    def to_records(self) -> ClaimSet:
        return [ClaimRecord(id=identity, amount=amount) for identity, amount in self._points.items()]

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "PointsMap":
        """Load the persisted JSON form {identity: "amount"}."""
        return cls((str(identity), parse_amount_int(amount)) for identity, amount in data.items())

    def to_dict(self) -> Dict[str, str]:
        return {identity: str(amount) for identity, amount in self._points.items()}
