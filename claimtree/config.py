"""Environment-driven settings for the claimtree CLI."""

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Mapping, Optional

from .contract import TIMEOUT
from .errors import ConfigurationError, MissingConfigurationError
from .reconcile import MergeMode
from .resolver import DEFAULT_WORKERS

ENV_PREFIX = "CLAIMTREE_"


@dataclass(frozen=True)
class Settings:
    rpc_url: Optional[str] = None
    claim_address: Optional[str] = None
    expected_chain_id: Optional[int] = None
    output_dir: Path = Path("gen")
    rpc_timeout: float = TIMEOUT
    oracle_workers: int = DEFAULT_WORKERS
    merge_mode: MergeMode = MergeMode.ADD

    def require_contract(self) -> None:
        """Raise unless everything needed to talk to the claim contract is set."""
        missing = []
        if not self.rpc_url:
            missing.append(ENV_PREFIX + "RPC_URL")
        if not self.claim_address:
            missing.append(ENV_PREFIX + "CLAIM_ADDRESS")
        if missing:
            raise MissingConfigurationError(f"Missing configuration for: {', '.join(missing)}")


def _get(env: Mapping[str, str], name: str) -> Optional[str]:
    value = env.get(ENV_PREFIX + name)
    if value is None or not value.strip():
        return None
    return value.strip()


def _parse(env: Mapping[str, str], name: str, convert, default):
    raw = _get(env, name)
    if raw is None:
        return default
    try:
        return convert(raw)
    except ValueError as e:
        raise ConfigurationError(f"invalid value for {ENV_PREFIX + name}: {raw!r}") from e


def load_settings(environ: Optional[Mapping[str, str]] = None) -> Settings:
    """Build Settings from CLAIMTREE_* environment variables (os.environ by default)."""
    if environ is None:
        environ = os.environ

    settings = Settings(
        rpc_url=_get(environ, "RPC_URL"),
        claim_address=_get(environ, "CLAIM_ADDRESS"),
        expected_chain_id=_parse(environ, "EXPECTED_CHAIN_ID", int, None),
        output_dir=Path(_get(environ, "OUTPUT_DIR") or "gen"),
        rpc_timeout=_parse(environ, "RPC_TIMEOUT", float, TIMEOUT),
        oracle_workers=_parse(environ, "ORACLE_WORKERS", int, DEFAULT_WORKERS),
        merge_mode=_parse(environ, "MERGE_MODE", lambda v: MergeMode(v.lower()), MergeMode.ADD),
    )
    if settings.rpc_timeout <= 0:
        raise ConfigurationError(f"{ENV_PREFIX}RPC_TIMEOUT must be > 0")
    if settings.oracle_workers < 1:
        raise ConfigurationError(f"{ENV_PREFIX}ORACLE_WORKERS must be >= 1")
    return settings
