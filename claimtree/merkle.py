"""
Merkle commitment over a claim set.

Must match the claim contract's verification:

    leaf = keccak256(abi.encodePacked(string id, uint256 amount))
    node = keccak256(min(a, b) || max(a, b))      // sorted-pair hash

The leaf list is padded with all-zero leaves up to a power of two (at
least two leaves), so every inclusion proof has exactly `depth`
siblings and the contract can be deployed with a fixed proof depth.
"""

import logging
import re
from dataclasses import dataclass
from typing import Any, Dict, List, Mapping, Sequence, Tuple

from eth_abi.packed import encode_packed
from eth_utils import decode_hex, encode_hex, keccak

from .amounts import MAX_UINT256
from .claims import ClaimRecord, total_amount
from .errors import ScalingError, UnbalancedTree

log = logging.getLogger(__name__)

ZERO_LEAF = b"\x00" * 32

_HASH_HEX = re.compile(r"0x[0-9a-fA-F]{64}")


def hash_leaf(identity: str, amount: int) -> bytes:
    return keccak(encode_packed(["string", "uint256"], [identity, amount]))


def hash_pair(a: bytes, b: bytes) -> bytes:
    """
    Node hash compatible with OpenZeppelin MerkleProof sorted-pair assumption:
    keccak256(min(a,b) || max(a,b))
    """
    return keccak(a + b) if a <= b else keccak(b + a)


def next_power_of_two(n: int) -> int:
    """Smallest power of two >= n, never less than 2."""
    p = 2
    while p < n:
        p <<= 1
    return p


def balance_leaves(leaves: Sequence[bytes]) -> List[bytes]:
    """Pad with ZERO_LEAF up to a power of two. No leaves at all gives two zero leaves."""
    target = next_power_of_two(len(leaves))
    return list(leaves) + [ZERO_LEAF] * (target - len(leaves))


def build_layers(leaves: Sequence[bytes]) -> List[List[bytes]]:
    """
    Build merkle layers; layers[0] = leaves, layers[-1][0] = root.
    An unpaired last node is carried up to the next layer unchanged.
    """
    if not leaves:
        raise ValueError("No leaves (empty input).")

    layers = [list(leaves)]
    while len(layers[-1]) > 1:
        cur = layers[-1]
        nxt: List[bytes] = []
        for i in range(0, len(cur), 2):
            if i + 1 < len(cur):
                nxt.append(hash_pair(cur[i], cur[i + 1]))
            else:
                nxt.append(cur[i])
        layers.append(nxt)
    return layers


def get_proof(layers: List[List[bytes]], leaf_index: int) -> List[bytes]:
    """
    Proof is list of sibling hashes from leaf level up to (but excluding) root.
    """
    proof: List[bytes] = []
    idx = leaf_index

    for layer in layers[:-1]:
        sibling_idx = idx ^ 1
        if sibling_idx < len(layer):
            proof.append(layer[sibling_idx])
        idx //= 2

    return proof


def verify_proof(leaf: bytes, proof: Sequence[bytes], root: bytes) -> bool:
    node = leaf
    for sibling in proof:
        node = hash_pair(node, sibling)
    return node == root


def parse_hash(value: str) -> bytes:
    if not isinstance(value, str) or not _HASH_HEX.fullmatch(value):
        raise ValueError(f"expected a 0x-prefixed 32-byte hex hash, got {value!r}")
    return decode_hex(value)


@dataclass(frozen=True)
class MerkleCommitment:
    """
    Root, depth, total points and padded leaves of one built tree.

    `total_amount` only counts real claims, never the zero padding.
    """
    root: bytes
    depth: int
    total_amount: int
    leaves: Tuple[bytes, ...]

    @property
    def root_hex(self) -> str:
        return encode_hex(self.root)

    def to_json(self) -> Dict[str, Any]:
        return {
            "root": encode_hex(self.root),
            "depth": self.depth,
            "points": str(self.total_amount),
            "leaves": [encode_hex(leaf) for leaf in self.leaves],
        }

    @classmethod
    def from_json(cls, data: Mapping[str, Any]) -> "MerkleCommitment":
        points = data.get("points", data.get("totalAmount"))
        return cls(
            root=parse_hash(data["root"]),
            depth=int(data["depth"]),
            total_amount=int(str(points)),
            leaves=tuple(parse_hash(leaf) for leaf in data["leaves"]),
        )


def check_balanced(layers: List[List[bytes]]) -> int:
    """Return the depth of a full binary tree, raising UnbalancedTree otherwise."""
    leaves = layers[0]
    depth = len(layers) - 1
    if 2 ** depth != len(leaves):
        raise UnbalancedTree(f"Merkle tree is unbalanced: depth {depth} for {len(leaves)} leaves")
    for i in range(len(leaves)):
        if len(get_proof(layers, i)) != depth:
            raise UnbalancedTree(f"Merkle tree is unbalanced: proof for leaf {i} is not {depth} long")
    return depth


def build_commitment(claims: Sequence[ClaimRecord]) -> MerkleCommitment:
    """
    Hash every claim in order, pad, build the tree and self-check it.

    Raises
    ------
    UnbalancedTree
        The padded tree is not full. This is a bug in the padding or
        layering code, not a problem with the claims.
    ScalingError
        A claim amount does not fit the contract's uint256.
    """
    for c in claims:
        if c.amount > MAX_UINT256:
            raise ScalingError(f"amount of {c.id!r} does not fit in uint256: {c.amount}")

    unbalanced = [hash_leaf(c.id, c.amount) for c in claims]
    log.debug("unbalanced leaves length %d", len(unbalanced))

    leaves = balance_leaves(unbalanced)
    log.debug("balanced leaves length %d", len(leaves))

    layers = build_layers(leaves)
    depth = check_balanced(layers)

    commitment = MerkleCommitment(
        root=layers[-1][0],
        depth=depth,
        total_amount=total_amount(claims),
        leaves=tuple(leaves),
    )
    log.info(
        "built merkle tree root=%s depth=%d claims=%d total=%d",
        commitment.root_hex, depth, len(unbalanced), commitment.total_amount,
    )
    return commitment


def claim_proof(claims: Sequence[ClaimRecord], identity: str) -> Tuple[ClaimRecord, List[bytes], bytes]:
    """
    Inclusion proof for the first claim of `identity`.

    Returns (claim, proof, root). Raises KeyError when the identity has no claim.
    """
    for index, claim in enumerate(claims):
        if claim.id == identity:
            break
    else:
        raise KeyError(identity)

    layers = build_layers(balance_leaves([hash_leaf(c.id, c.amount) for c in claims]))
    check_balanced(layers)
    return claim, get_proof(layers, index), layers[-1][0]
