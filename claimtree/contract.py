"""
Read-only access to a deployed claim contract over web3.

Only three views are needed:

    _pointsMerkleRoot()          -> bytes32   root the contract was deployed with
    _claimedBalances(string id)  -> bool      whether `id` already claimed
    _claimPeriodEnd()            -> uint256   clawback timestamp

All reads of one oracle are pinned to the block number observed when it
connected, so a batch of claimed-state queries sees a single chain state.
"""

import logging
import time
from typing import Any, Callable, Optional, Union

from requests.exceptions import RequestException
from web3 import Web3
from web3.exceptions import Web3Exception

from .errors import ConfigurationError, OracleQueryError

log = logging.getLogger(__name__)

RETRY_MAX = 5
RETRY_BACKOFF = 1.6  # exponential backoff factor for retries
TIMEOUT = 30  # seconds

CLAIM_ABI = [
    {
        "type": "function",
        "name": "_pointsMerkleRoot",
        "stateMutability": "view",
        "inputs": [],
        "outputs": [{"name": "", "type": "bytes32"}],
    },
    {
        "type": "function",
        "name": "_claimedBalances",
        "stateMutability": "view",
        "inputs": [{"name": "", "type": "string"}],
        "outputs": [{"name": "", "type": "bool"}],
    },
    {
        "type": "function",
        "name": "_claimPeriodEnd",
        "stateMutability": "view",
        "inputs": [],
        "outputs": [{"name": "", "type": "uint256"}],
    },
]

BlockIdentifier = Union[int, str]


def assert_rpc_ok(w3: Web3, expected_chain_id: Optional[int] = None) -> int:
    try:
        chain_id = w3.eth.chain_id
        _ = w3.eth.block_number
    except (Web3Exception, RequestException, OSError) as e:
        raise OracleQueryError(f"RPC connection failed: {e}") from e

    if expected_chain_id is not None and chain_id != expected_chain_id:
        raise ConfigurationError(f"Wrong chain_id {chain_id}. Expected {expected_chain_id}.")

    return chain_id


class Web3ClaimOracle:
    """
    Claim contract reader with retries.

    Parameters
    ----------
    contract
        A web3 contract object exposing CLAIM_ABI.
    block_identifier
        Block every read is pinned to.
    """

    def __init__(
        self,
        contract: Any,
        block_identifier: BlockIdentifier = "latest",
        retry_max: int = RETRY_MAX,
        retry_backoff: float = RETRY_BACKOFF,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.contract = contract
        self.block_identifier = block_identifier
        self.retry_max = retry_max
        self.retry_backoff = retry_backoff
        self._sleep = sleep

    @classmethod
    def connect(
        cls,
        rpc_url: str,
        address: str,
        timeout: float = TIMEOUT,
        expected_chain_id: Optional[int] = None,
    ) -> "Web3ClaimOracle":
        w3 = Web3(Web3.HTTPProvider(rpc_url, request_kwargs={"timeout": timeout}))
        chain_id = assert_rpc_ok(w3, expected_chain_id)

        try:
            contract_address = Web3.to_checksum_address(address)
        except ValueError as e:
            raise ConfigurationError(f"invalid claim contract address {address!r}: {e}") from e

        block = w3.eth.block_number
        log.info("connected to chain_id=%d, claim contract %s pinned at block %d", chain_id, contract_address, block)
        contract = w3.eth.contract(address=contract_address, abi=CLAIM_ABI)
        return cls(contract, block_identifier=block)

    def _call(self, name: str, *args: Any) -> Any:
        last_exc: Optional[Exception] = None

        for attempt in range(1, self.retry_max + 1):
            try:
                fn = getattr(self.contract.functions, name)
                return fn(*args).call(block_identifier=self.block_identifier)
            except (Web3Exception, RequestException, OSError) as e:
                last_exc = e
                log.warning("%s%r failed (attempt %d/%d): %s", name, args, attempt, self.retry_max, e)
                if attempt == self.retry_max:
                    break
                self._sleep(self.retry_backoff ** (attempt - 1))

        raise OracleQueryError(f"{name} failed after {self.retry_max} attempts: {last_exc}") from last_exc

    def committed_root(self) -> bytes:
        return bytes(self._call("_pointsMerkleRoot"))

    def is_claimed(self, identity: str) -> bool:
        return bool(self._call("_claimedBalances", identity))

    def claim_period_end(self) -> int:
        return int(self._call("_claimPeriodEnd"))
