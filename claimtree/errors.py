"""
Error types raised by the claims pipeline.

Input malformation    : MalformedAmount, ScalingError, RowParseError, SourceUnreadable
Invariant violation   : UnbalancedTree
Consistency failure   : RootMismatch
External dependency   : OracleQueryError

Every one of them is fatal for the current run: the CLI reports it and
exits non-zero without writing any artifact.
"""


class ClaimTreeError(Exception):
    """Base class for all claimtree errors."""


# ---------------------------------------------------------------------------
# Input malformation
# ---------------------------------------------------------------------------

class MalformedAmount(ClaimTreeError, ValueError):
    """Raw amount is not a decimal string with exactly one decimal point."""


class ScalingError(ClaimTreeError, ValueError):
    """Fractional part did not end up with exactly DECIMALS digits."""


class SourceUnreadable(ClaimTreeError):
    """A points source could not be opened or read."""


class RowParseError(ClaimTreeError):
    """A row of a points source could not be turned into a claim."""

    def __init__(self, location: str, line: int, message: str):
        self.location = location
        self.line = line
        super().__init__(f"{location}:{line}: {message}")


class DuplicateIdentity(ClaimTreeError, ValueError):
    """The same identity appears twice where identities must be unique."""


# ---------------------------------------------------------------------------
# Tree / consistency / oracle
# ---------------------------------------------------------------------------

class UnbalancedTree(ClaimTreeError):
    """Built tree is not a full binary tree. Indicates a bug, never bad input."""


class RootMismatch(ClaimTreeError):
    """Reconstructed commitment does not match the external contract's committed root."""

    def __init__(self, local_root: bytes, committed_root: bytes):
        self.local_root = local_root
        self.committed_root = committed_root
        super().__init__(
            "reconstructed commitment does not match the external contract's committed root "
            f"(local 0x{local_root.hex()}, contract 0x{committed_root.hex()})"
        )


class OracleQueryError(ClaimTreeError):
    """A claimed-state read against the contract failed or was inconsistent."""


# ---------------------------------------------------------------------------
# Configuration
# ---------------------------------------------------------------------------

class ConfigurationError(ClaimTreeError):
    """Raised when configuration values are invalid."""


class MissingConfigurationError(ConfigurationError):
    """Raised when required configuration values are absent or blank."""
