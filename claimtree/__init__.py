"""Claims reconciliation and merkle commitment generation for points-based token claims."""

from .amounts import DECIMALS, normalize
from .claims import ClaimRecord, ClaimSet, PointsMap
from .errors import (
    ClaimTreeError,
    DuplicateIdentity,
    MalformedAmount,
    OracleQueryError,
    RootMismatch,
    RowParseError,
    ScalingError,
    SourceUnreadable,
    UnbalancedTree,
)
from .ingest import ClaimSource, ingest
from .merkle import MerkleCommitment, build_commitment
from .reconcile import MergeMode, reconcile
from .resolver import ClaimOracle, resolve_carry_over

__version__ = "0.1.0"

__all__ = [
    "DECIMALS",
    "ClaimOracle",
    "ClaimRecord",
    "ClaimSet",
    "ClaimSource",
    "ClaimTreeError",
    "DuplicateIdentity",
    "MalformedAmount",
    "MergeMode",
    "MerkleCommitment",
    "OracleQueryError",
    "PointsMap",
    "RootMismatch",
    "RowParseError",
    "ScalingError",
    "SourceUnreadable",
    "UnbalancedTree",
    "build_commitment",
    "ingest",
    "normalize",
    "reconcile",
    "resolve_carry_over",
]
