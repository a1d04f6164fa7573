import pytest
from requests.exceptions import ConnectionError as RequestsConnectionError
from web3.exceptions import Web3Exception

from claimtree.contract import CLAIM_ABI, Web3ClaimOracle
from claimtree.errors import OracleQueryError


class FakeCall:
    def __init__(self, contract, name, args):
        self.contract = contract
        self.name = name
        self.args = args

    def call(self, block_identifier=None):
        self.contract.calls.append((self.name, self.args, block_identifier))
        if self.contract.failures:
            raise self.contract.failures.pop(0)
        return self.contract.values[self.name](*self.args)


class FakeFunctions:
    def __init__(self, contract):
        self._contract = contract

    def __getattr__(self, name):
        return lambda *args: FakeCall(self._contract, name, args)


class FakeContract:
    def __init__(self, root=b"\xab" * 32, claimed=(), period_end=1700000000, failures=()):
        self.values = {
            "_pointsMerkleRoot": lambda: root,
            "_claimedBalances": lambda identity: identity in claimed,
            "_claimPeriodEnd": lambda: period_end,
        }
        self.failures = list(failures)
        self.calls = []
        self.functions = FakeFunctions(self)


def make_oracle(contract, **kwargs):
    sleeps = []
    oracle = Web3ClaimOracle(contract, block_identifier=1234, sleep=sleeps.append, **kwargs)
    return oracle, sleeps


def test_reads_are_pinned_to_one_block():
    contract = FakeContract(claimed={"discord:1"})
    oracle, _ = make_oracle(contract)

    assert oracle.committed_root() == b"\xab" * 32
    assert oracle.is_claimed("discord:1") is True
    assert oracle.is_claimed("discord:2") is False
    assert oracle.claim_period_end() == 1700000000
    assert {block for _, _, block in contract.calls} == {1234}
    assert contract.calls[1] == ("_claimedBalances", ("discord:1",), 1234)


def test_transient_failures_are_retried_with_backoff():
    contract = FakeContract(failures=[Web3Exception("boom"), RequestsConnectionError("reset")])
    oracle, sleeps = make_oracle(contract)

    assert oracle.committed_root() == b"\xab" * 32
    assert len(contract.calls) == 3
    assert sleeps == [1.0, 1.6]


def test_exhausted_retries_raise_oracle_error():
    contract = FakeContract(failures=[Web3Exception("boom")] * 3)
    oracle, sleeps = make_oracle(contract, retry_max=3)

    with pytest.raises(OracleQueryError, match="_claimedBalances"):
        oracle.is_claimed("twitter:7")
    assert len(sleeps) == 2


def test_abi_declares_the_views_used():
    names = {entry["name"] for entry in CLAIM_ABI}
    assert names == {"_pointsMerkleRoot", "_claimedBalances", "_claimPeriodEnd"}
    assert all(entry["stateMutability"] == "view" for entry in CLAIM_ABI)
