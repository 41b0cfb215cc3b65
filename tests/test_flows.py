import pandas as pd
import pytest

from odflows.flows import aggregate_flows, build_trajectories, pair_id
from odflows.models import AggregationError


def test_pair_id_is_directed():
    assert pair_id("A", "B") == "A-B"
    assert pair_id("A", "B") != pair_id("B", "A")
    assert pair_id("A", "B", sep="→") == "A→B"


def test_one_path_per_distinct_non_self_pair(make_record):
    records = [
        make_record((0, 0), (10, 0), "A-B", 5),
        make_record((0, 0), (10, 0), "A-B", 5),     # duplicate
        make_record((10, 0), (0, 0), "B-A", 2),
        make_record((3, 3), (3, 3), "C-C", 40),     # self-flow
        make_record((0, 0), (0, 8), "A-D", 0),
    ]
    paths = build_trajectories(records)
    assert [p.pair_id for p in paths] == ["A-B", "B-A", "A-D"]
    assert all(len(p.points) == 3 for p in paths)


def test_all_self_flows_give_nothing(make_record):
    records = [make_record((1, 1), (1, 1), f"S{i}", i) for i in range(4)]
    assert build_trajectories(records) == []


def test_conflicting_weights_require_aggregation(make_record):
    records = [
        make_record((0, 0), (10, 0), "A-B", 5),
        make_record((0, 0), (10, 0), "A-B", 7),
    ]
    with pytest.raises(AggregationError, match="A-B"):
        build_trajectories(records)


def test_parameters_forwarded(make_record):
    rec = make_record((0, 0), (12, 0))
    (flat,) = build_trajectories([rec], curvature=12)
    assert flat.control.as_tuple() == pytest.approx((12.0, 1.0), abs=1e-12)


def test_thread_pool_keeps_order(make_record):
    records = [make_record((0, 0), (i + 1, i), f"P{i}", i) for i in range(50)]
    serial = build_trajectories(records)
    pooled = build_trajectories(records, workers=4)
    assert pooled == serial


def test_aggregate_flows_sums_and_keeps_input():
    df = pd.DataFrame(
        {
            "origin": ["A", "A", "B", "A"],
            "destination": ["B", "B", "A", "C"],
            "count": [3, 4, 1, 2],
            "mode": ["bus", "car", "bus", "walk"],
        }
    )
    before = df.copy()
    out = aggregate_flows(df)
    pd.testing.assert_frame_equal(df, before)

    totals = dict(zip(out["pair_id"], out["count"]))
    assert totals == {"A-B": 7, "B-A": 1, "A-C": 2}
    assert list(out.columns) == ["origin", "destination", "count", "pair_id"]


def test_aggregate_flows_missing_column():
    with pytest.raises(ValueError, match="Missing columns"):
        aggregate_flows(pd.DataFrame({"origin": [], "destination": []}))


def test_pair_id_escapes_separator_inside_codes():
    assert pair_id("A-B", "C") != pair_id("A", "B-C")
    assert pair_id("A\\", "B") != pair_id("A", "\\B")
    assert pair_id("E02000001", "E02000002") == "E02000001-E02000002"


def test_codes_containing_separator_stay_distinct_pairs(make_record):
    df = pd.DataFrame({"origin": ["A-B", "A"], "destination": ["C", "B-C"], "count": [1, 2]})
    out = aggregate_flows(df)
    assert out["pair_id"].nunique() == 2

    records = [
        make_record((0, 0), (10, 0), out["pair_id"][0], 1),
        make_record((0, 5), (10, 5), out["pair_id"][1], 2),
    ]
    paths = build_trajectories(records)
    assert [p.weight for p in paths] == [1, 2]
