from claimtree import (
    ClaimRecord,
    ClaimSource,
    MergeMode,
    PointsMap,
    build_commitment,
    ingest,
    reconcile,
    resolve_carry_over,
)
from claimtree.ingest import DISCORD_PREFIX, TWITTER_PREFIX

from .conftest import FakeOracle


def test_carry_over_is_added_to_ingested_points(write_csv):
    discord = write_csv("discord.csv", [("5", "1.5"), ("7", "0.25")])
    twitter = write_csv("twitter.csv", [("5", "3.0")])

    claims = ingest([ClaimSource(discord, DISCORD_PREFIX), ClaimSource(twitter, TWITTER_PREFIX)])
    assert [c.id for c in claims].count("discord:5") == 1

    merged = reconcile(claims, [ClaimRecord("discord:5", 100)])
    points = PointsMap.from_records(merged)
    assert points["discord:5"] == 1500000000000000000 + 100
    assert points["twitter:5"] == 3000000000000000000

    commitment = build_commitment(merged)
    assert commitment.total_amount == sum(points.values())
    assert len(commitment.leaves) == 4


def test_second_cycle_from_persisted_points(write_csv, claim_elements):
    # cycle 1 was deployed over claim_elements; t1 and t6 have been claimed since
    persisted = PointsMap.from_records(claim_elements).to_dict()
    prior = PointsMap.from_dict(persisted).to_records()
    oracle = FakeOracle(build_commitment(claim_elements).root, claimed={"t1", "t6"})

    carry_over = resolve_carry_over(prior, oracle)
    new = [ClaimRecord("t2", 10), ClaimRecord("discord:1", 5)]
    merged = reconcile(new, carry_over, mode=MergeMode.ADD)

    assert [c.id for c in merged] == ["t2", "discord:1", "t3", "t4", "t5", "t7"]
    assert PointsMap.from_records(merged)["t2"] == 250
    commitment = build_commitment(merged)
    assert commitment.total_amount == 3360 - 120 - 720 + 15
    assert commitment.depth == 3
