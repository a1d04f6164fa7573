import pytest

from claimtree.claims import ClaimRecord, PointsMap, parse_amount_int, total_amount
from claimtree.errors import DuplicateIdentity, MalformedAmount


def test_points_map_round_trips_through_dict(claim_elements):
    points = PointsMap.from_records(claim_elements)
    data = points.to_dict()

    assert data["t1"] == "120"
    assert PointsMap.from_dict(data).to_records() == claim_elements


def test_points_map_keeps_insertion_order():
    points = PointsMap([("twitter:2", 5), ("discord:1", 7)])
    assert list(points) == ["twitter:2", "discord:1"]
    assert points["discord:1"] == 7
    assert len(points) == 2


def test_points_map_refuses_duplicates():
    records = [ClaimRecord("discord:5", 1), ClaimRecord("discord:5", 2)]
    with pytest.raises(DuplicateIdentity):
        PointsMap.from_records(records)


def test_from_dict_accepts_json_numbers_and_strings():
    points = PointsMap.from_dict({"a": 12, "b": "340282366920938463463374607431768211456"})
    assert points["a"] == 12
    assert points["b"] == 2 ** 128


@pytest.mark.parametrize("value", ["1.5", "-3", "abc", "", -1, True, "١٢"])
def test_parse_amount_int_rejects(value):
    with pytest.raises(MalformedAmount):
        parse_amount_int(value)


def test_claim_record_rejects_negative_amount():
    with pytest.raises(ValueError):
        ClaimRecord("t1", -1)


def test_total_amount(claim_elements):
    assert total_amount(claim_elements) == 3360
    assert total_amount([]) == 0
