import pytest

from claimtree.claims import ClaimRecord
from claimtree.errors import DuplicateIdentity
from claimtree.reconcile import MergeMode, reconcile

from .conftest import points_of


def test_without_carry_over_returns_a_copy(claim_elements):
    out = reconcile(claim_elements)
    assert out == claim_elements
    assert out is not claim_elements


def test_matching_identities_are_summed_and_others_appended():
    new = [ClaimRecord("discord:1", 10), ClaimRecord("twitter:2", 20)]
    carry = [ClaimRecord("discord:9", 5), ClaimRecord("twitter:2", 7), ClaimRecord("discord:3", 1)]

    out = reconcile(new, carry)

    assert out == [
        ClaimRecord("discord:1", 10),
        ClaimRecord("twitter:2", 27),
        ClaimRecord("discord:9", 5),
        ClaimRecord("discord:3", 1),
    ]


def test_identity_union_property():
    a = [ClaimRecord(f"id{i}", i + 1) for i in range(0, 30, 2)]
    b = [ClaimRecord(f"id{i}", 100 * (i + 1)) for i in range(0, 30, 3)]

    out = reconcile(a, b)
    ids = [c.id for c in out]
    amounts_a, amounts_b, merged = points_of(a), points_of(b), points_of(out)

    assert len(ids) == len(set(ids))
    assert set(ids) == set(amounts_a) | set(amounts_b)
    for identity in set(amounts_a) & set(amounts_b):
        assert merged[identity] == amounts_a[identity] + amounts_b[identity]


def test_sums_past_64_bits_are_exact():
    big = 2 ** 63 + 11
    out = reconcile([ClaimRecord("x", big)], [ClaimRecord("x", big)])
    assert out == [ClaimRecord("x", 2 ** 64 + 22)]


def test_inputs_are_not_mutated():
    new = [ClaimRecord("a", 1), ClaimRecord("b", 2)]
    carry = [ClaimRecord("b", 3), ClaimRecord("c", 4)]
    new_before, carry_before = list(new), list(carry)

    reconcile(new, carry)

    assert new == new_before
    assert carry == carry_before


def test_empty_carry_over_still_reconciles():
    assert reconcile([ClaimRecord("a", 1)], []) == [ClaimRecord("a", 1)]


def test_replace_mode_takes_carry_over_amount():
    out = reconcile([ClaimRecord("a", 1), ClaimRecord("b", 2)], [ClaimRecord("b", 50)], mode=MergeMode.REPLACE)
    assert out == [ClaimRecord("a", 1), ClaimRecord("b", 50)]


def test_repeated_new_identities_are_folded_when_merging():
    new = [ClaimRecord("discord:5", 1), ClaimRecord("twitter:5", 2), ClaimRecord("discord:5", 3)]
    out = reconcile(new, [ClaimRecord("discord:5", 100)])
    assert out == [ClaimRecord("discord:5", 104), ClaimRecord("twitter:5", 2)]


def test_repeated_carry_over_identity_is_rejected():
    with pytest.raises(DuplicateIdentity):
        reconcile([], [ClaimRecord("a", 1), ClaimRecord("a", 2)])
