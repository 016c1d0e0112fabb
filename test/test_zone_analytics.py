#
# test_zone_analytics.py: unit tests for zone temporal analytics
#
# Copyright DeGirum Corporation 2025
# All rights reserved
#
# Implements unit tests to test zone occupancy, entries, exits, latency and transitions
#

import math
import numpy as np
import pandas as pd
import pytest
from typing import List

T, F = True, False


def test_series_metrics():
    """
    Test series-level occupancy, entries, exits and latency
    """

    import arena_tools

    nan = float("nan")

    test_cases: List[dict] = [
        {
            "case": "Empty series",
            "params": {"fps": 30, "min_duration": 0},
            "inp": [],
            "res": {"n_frames": 0, "entries": 0, "exits": 0, "latency": nan},
        },
        {
            "case": "Never in zone",
            "params": {"fps": 30, "min_duration": 0},
            "inp": [F] * 5,
            "res": {"n_frames": 0, "entries": 0, "exits": 0, "latency": nan},
        },
        {
            "case": "Whole series in zone has no exit",
            "params": {"fps": 30, "min_duration": 0},
            "inp": [T] * 3,
            "res": {"n_frames": 3, "entries": 1, "exits": 0, "latency": 0.0},
        },
        {
            "case": "Visit at start then exit",
            "params": {"fps": 30, "min_duration": 0},
            "inp": [T, T, F, F],
            "res": {"n_frames": 2, "entries": 1, "exits": 1, "latency": 0.0},
        },
        {
            "case": "Two visits, last one terminal",
            "params": {"fps": 1, "min_duration": 0},
            "inp": [F, T, F, T],
            "res": {"n_frames": 2, "entries": 2, "exits": 1, "latency": 1.0},
        },
        {
            "case": "Initial glitch filtered",
            "params": {"fps": 2, "min_duration": 1.0},
            "inp": [T, F, F, F, T, T, T, F],
            "res": {"n_frames": 4, "entries": 1, "exits": 1, "latency": 2.0},
        },
        {
            "case": "Terminal glitch filtered",
            "params": {"fps": 1, "min_duration": 2},
            "inp": [F, T, T, F, T],
            "res": {"n_frames": 3, "entries": 1, "exits": 1, "latency": 1.0},
        },
        {
            "case": "Duration equal to minimum qualifies",
            "params": {"fps": 4, "min_duration": 0.5},
            "inp": [F, T, T, F],
            "res": {"n_frames": 2, "entries": 1, "exits": 1, "latency": 0.25},
        },
        {
            "case": "Nothing qualifies",
            "params": {"fps": 1, "min_duration": 5},
            "inp": [T, F, T],
            "res": {"n_frames": 2, "entries": 0, "exits": 0, "latency": nan},
        },
        {
            "case": "Missing flags count as not in zone",
            "params": {"fps": 1, "min_duration": 0},
            "inp": [T, None, T],
            "res": {"n_frames": 2, "entries": 2, "exits": 1, "latency": 0.0},
        },
    ]

    for case in test_cases:
        fps = case["params"]["fps"]
        min_duration = case["params"]["min_duration"]
        series = case["inp"]
        res = case["res"]
        msg = f"Case `{case['case']}` failed"

        occ = arena_tools.zone_occupancy(series, fps)
        assert occ.n_frames == res["n_frames"], msg
        assert occ.time_seconds == pytest.approx(res["n_frames"] / fps), msg
        assert occ.total_frames == len(series), msg

        entries = arena_tools.zone_entries(series, fps, min_duration)
        assert entries.n_entries == res["entries"], msg
        assert arena_tools.zone_exits(series, fps, min_duration) == res["exits"], msg

        latency = arena_tools.zone_latency(series, fps, min_duration)
        if math.isnan(res["latency"]):
            assert math.isnan(latency.latency_seconds), msg
            assert latency.first_entry_frame is None, msg
        else:
            assert latency.latency_seconds == pytest.approx(res["latency"]), msg


def test_occupancy_ignores_min_duration():
    """
    Test that glitch frames still count toward occupancy
    """

    import arena_tools

    series = [T, F, F, T, F, F, F, F, F, F]
    occ = arena_tools.zone_occupancy(series, fps=10)
    assert occ.n_frames == 2
    assert occ.percentage == pytest.approx(20.0)
    assert arena_tools.zone_entries(series, 10, min_duration=0.5).n_entries == 0

    assert math.isnan(arena_tools.zone_occupancy([], 10).percentage)


def test_entries_durations():
    """
    Test mean and total duration of qualifying visits
    """

    import arena_tools

    series = [T, F, F, F, T, T, T, F, T, T, T, T, T]
    entries = arena_tools.zone_entries(series, fps=2, min_duration=1.0)
    assert entries.n_entries == 2
    assert entries.mean_duration == pytest.approx(2.0)
    assert entries.total_time == pytest.approx(4.0)

    none = arena_tools.zone_entries([F, F], fps=2)
    assert none.n_entries == 0
    assert math.isnan(none.mean_duration)
    assert none.total_time == 0.0


def test_latency_skips_short_visit():
    """
    Test that latency reports the first visit meeting the minimum duration
    """

    import arena_tools

    series = np.zeros(80, dtype=bool)
    series[5] = True
    series[20:60] = True

    filtered = arena_tools.zone_latency(series, fps=30, min_duration=1.0)
    assert filtered.first_entry_frame == 20
    assert filtered.latency_seconds == pytest.approx(20 / 30)

    unfiltered = arena_tools.zone_latency(series, fps=30)
    assert unfiltered.first_entry_frame == 5
    assert unfiltered.latency_seconds == pytest.approx(5 / 30)

    # frame numbers come from the series index when present
    indexed = pd.Series(series, index=np.arange(100, 180))
    assert arena_tools.zone_latency(indexed, 30, 1.0).first_entry_frame == 120
    assert arena_tools.zone_latency(indexed, 30, 1.0).latency_seconds == pytest.approx(4.0)


def test_entries_monotonic_in_min_duration():
    """
    Test that raising the minimum duration never increases entries or exits
    """

    import arena_tools

    rng = np.random.default_rng(3)
    for _ in range(20):
        run_lengths = rng.integers(1, 40, size=30)
        series = np.repeat(np.arange(30) % 2 == 0, run_lengths)
        if rng.random() < 0.5:
            series = ~series

        previous_entries = None
        previous_exits = None
        for min_duration in [0, 0.05, 0.1, 0.25, 0.5, 1.0, 2.0]:
            entries = arena_tools.zone_entries(series, 30, min_duration).n_entries
            exits = arena_tools.zone_exits(series, 30, min_duration)
            assert exits <= entries <= exits + 1
            if previous_entries is not None:
                assert entries <= previous_entries
                assert exits <= previous_exits
            previous_entries, previous_exits = entries, exits


def test_extract_visits():
    """
    Test run-length visit extraction
    """

    import arena_tools

    series = pd.Series([F, T, T, F, T], index=np.arange(10, 15))
    visits = arena_tools.extract_visits(series, fps=10, zone_id="z")
    assert visits == [
        arena_tools.ZoneVisit("z", 11, 12, 2, pytest.approx(0.2), False, False),
        arena_tools.ZoneVisit("z", 14, 14, 1, pytest.approx(0.1), False, True),
    ]
    assert visits[0].qualifies(0.2)
    assert not visits[1].qualifies(0.2)

    visits = arena_tools.extract_visits([T, T], fps=1)
    assert len(visits) == 1
    assert visits[0].is_initial and visits[0].is_terminal
    assert visits[0].duration_seconds == 2.0

    runs = arena_tools.extract_label_runs(["a", "a", None, np.nan, "b"], fps=1)
    assert [(r.zone_id, r.start_frame, r.end_frame) for r in runs] == [
        ("a", 0, 1),
        (None, 2, 3),
        ("b", 4, 4),
    ]


def test_zone_transitions():
    """
    Test transition counting between qualifying visits
    """

    import arena_tools

    A, B, C, O = "a", "b", "c", None

    test_cases: List[dict] = [
        {
            "case": "a-b-a",
            "params": {"fps": 30},
            "inp": [A] * 3 + [B] * 3 + [A] * 3,
            "res": {(A, B): 1, (B, A): 1},
        },
        {
            "case": "a-b-a-b",
            "params": {"fps": 30},
            "inp": [A] * 3 + [B] * 3 + [A] * 3 + [B] * 3,
            "res": {(A, B): 2, (B, A): 1},
        },
        {
            "case": "Short visit between two zones is skipped",
            "params": {"fps": 30, "min_duration": 0.5},
            "inp": [A] * 30 + [B] + [C] * 30,
            "res": {(A, C): 1},
        },
        {
            "case": "Short visit inside one zone merges its neighbors",
            "params": {"fps": 30, "min_duration": 0.5},
            "inp": [A] * 30 + [B] * 2 + [A] * 30,
            "res": {},
        },
        {
            "case": "Transitions through outside",
            "params": {"fps": 30},
            "inp": [A] * 5 + [O] * 5 + [B] * 5,
            "res": {(A, O): 1, (O, B): 1},
        },
        {
            "case": "Outside excluded",
            "params": {"fps": 30, "include_outside": False},
            "inp": [A] * 5 + [O] * 5 + [B] * 5 + [O] * 5 + [B] * 5,
            "res": {(A, B): 1},
        },
        {
            "case": "Short outside gap is skipped",
            "params": {"fps": 10, "min_duration": 0.3},
            "inp": [A] * 5 + [O] * 2 + [B] * 5,
            "res": {(A, B): 1},
        },
        {
            "case": "Single zone",
            "params": {"fps": 30},
            "inp": [A] * 10,
            "res": {},
        },
        {
            "case": "Empty",
            "params": {"fps": 30},
            "inp": [],
            "res": {},
        },
    ]

    for case in test_cases:
        result = arena_tools.zone_transitions(case["inp"], **case["params"])
        assert result == case["res"], (
            f"Case `{case['case']}` failed: got `{result}`, expected `{case['res']}`"
        )


def test_invalid_arguments():
    """
    Test rejection of negative minimum duration and non-positive frame rate
    """

    import arena_tools

    series = [T, F, T]
    membership = arena_tools.empty_membership()

    for func in [arena_tools.zone_entries, arena_tools.zone_exits, arena_tools.zone_latency]:
        with pytest.raises(arena_tools.InvalidArgument):
            func(series, 30, -0.1)
        with pytest.raises(arena_tools.InvalidArgument):
            func(series, 0, 0)

    with pytest.raises(arena_tools.InvalidArgument):
        arena_tools.zone_transitions(["a"], 30, min_duration=-1)
    with pytest.raises(arena_tools.InvalidArgument):
        arena_tools.zone_occupancy(series, -30)
    with pytest.raises(arena_tools.InvalidArgument):
        arena_tools.extract_visits(series, float("nan"))

    # invalid arguments fail even when there is nothing to analyze
    for func in [
        arena_tools.calculate_zone_entries,
        arena_tools.calculate_zone_exits,
        arena_tools.calculate_zone_latency,
        arena_tools.calculate_zone_transitions,
    ]:
        with pytest.raises(arena_tools.InvalidArgument):
            func(membership, 30, -1)
        with pytest.raises(ValueError):
            func(membership, 0)


def test_zone_tables(strip_arena, strip_tracking):
    """
    Test table-level metrics on the a-b-a-b scenario
    """

    import arena_tools

    zones = arena_tools.build_all_zone_geometries(strip_arena)
    tracking = strip_tracking(["a"] * 3 + ["b"] * 3 + ["a"] * 3 + ["b"] * 3, fps=30)
    membership = arena_tools.classify_points_by_zone(tracking, zones)

    occupancy = arena_tools.calculate_zone_occupancy(membership, 30)
    assert list(occupancy.columns) == arena_tools.OCCUPANCY_COLUMNS
    assert list(occupancy["zone_id"]) == ["a", "b"]
    assert list(occupancy["n_frames"]) == [6, 6]
    assert list(occupancy["time_seconds"]) == pytest.approx([0.2, 0.2])
    assert list(occupancy["percentage"]) == pytest.approx([50.0, 50.0])

    entries = arena_tools.calculate_zone_entries(membership, 30, zone_ids=["a", "b", "c"])
    assert list(entries.columns) == arena_tools.ENTRIES_COLUMNS
    assert list(entries["n_entries"]) == [2, 2, 0]
    assert entries["mean_duration"].iloc[0] == pytest.approx(0.1)
    assert entries["total_time"].iloc[1] == pytest.approx(0.2)
    assert math.isnan(entries["mean_duration"].iloc[2])

    exits = arena_tools.calculate_zone_exits(membership, 30)
    assert list(exits.columns) == arena_tools.EXITS_COLUMNS
    assert dict(zip(exits["zone_id"], exits["n_exits"])) == {"a": 2, "b": 1}

    latency = arena_tools.calculate_zone_latency(membership, 30, zone_ids=["b", "c"])
    assert list(latency.columns) == arena_tools.LATENCY_COLUMNS
    assert latency["latency_seconds"].iloc[0] == pytest.approx(0.1)
    assert latency["first_entry_frame"].iloc[0] == 3
    assert math.isnan(latency["latency_seconds"].iloc[1])
    assert latency["first_entry_frame"].iloc[1] is pd.NA

    transitions = arena_tools.calculate_zone_transitions(membership, 30)
    assert list(transitions.columns) == arena_tools.TRANSITIONS_COLUMNS
    assert list(transitions.itertuples(index=False, name=None)) == [
        ("mouse_center", "a", "b", 2),
        ("mouse_center", "b", "a", 1),
    ]


def test_occupancy_partition_and_overlap(strip_arena, strip_tracking, zones):
    """
    Test that a partition sums to 100% with outside, while overlapping zones may exceed it
    """

    import arena_tools

    strip_zones = arena_tools.build_all_zone_geometries(strip_arena)
    tracking = strip_tracking(["a"] * 10 + [None] * 5 + ["b"] * 3 + ["c"] * 2, fps=25)
    membership = arena_tools.classify_points_by_zone(tracking, strip_zones)
    occupancy = arena_tools.calculate_zone_occupancy(membership, 25, include_outside=True)

    assert list(occupancy["zone_id"]) == ["a", "b", "c", None]
    assert list(occupancy["percentage"]) == pytest.approx([50.0, 15.0, 10.0, 25.0])
    assert occupancy["percentage"].sum() == pytest.approx(100.0)

    # every point is in both `arena` and `center` of the open-field arena
    tracking = arena_tools.tracking_data_from_arrays(range(10), [50] * 10, [50] * 10, 10)
    membership = arena_tools.classify_points_by_zone(tracking, zones)
    occupancy = arena_tools.calculate_zone_occupancy(membership, 10, include_outside=True)
    by_zone = dict(zip(occupancy["zone_id"], occupancy["percentage"]))
    assert by_zone == {"arena": 100.0, "center": 100.0, None: 0.0}
    assert occupancy["percentage"].sum() > 100.0


def test_tables_multiple_landmarks(strip_arena, strip_tracking):
    """
    Test that table-level metrics report each landmark separately
    """

    import arena_tools

    zones = arena_tools.build_all_zone_geometries(strip_arena)
    nose = strip_tracking(["b"] * 4 + ["a"] * 4, landmark="nose", fps=4)
    tail = strip_tracking(["a"] * 8, landmark="tail", fps=4)
    tracking = arena_tools.TrackingData(
        pd.concat([tail.positions, nose.positions]), fps=4
    )
    membership = arena_tools.classify_points_by_zone(tracking, zones)

    entries = arena_tools.calculate_zone_entries(membership, 4, min_duration=0.5)
    assert list(entries.itertuples(index=False, name=None))[:2] == [
        ("nose", "a", 1, 1.0, 1.0),
        ("nose", "b", 1, 1.0, 1.0),
    ]
    assert list(entries["landmark"]) == ["nose", "nose", "tail", "tail"]
    assert list(entries["n_entries"]) == [1, 1, 1, 0]

    latency = arena_tools.calculate_zone_latency(membership, 4)
    assert list(latency["latency_seconds"].iloc[:3]) == pytest.approx([1.0, 0.0, 0.0])

    transitions = arena_tools.calculate_zone_transitions(membership, 4)
    assert list(transitions.itertuples(index=False, name=None)) == [
        ("nose", "b", "a", 1)
    ]


def test_empty_tables(strip_arena, strip_tracking):
    """
    Test that zero frames or zero zones give empty tables rather than errors
    """

    import arena_tools

    membership = arena_tools.empty_membership()
    tables = {
        "occupancy": (arena_tools.calculate_zone_occupancy, arena_tools.OCCUPANCY_COLUMNS),
        "entries": (arena_tools.calculate_zone_entries, arena_tools.ENTRIES_COLUMNS),
        "exits": (arena_tools.calculate_zone_exits, arena_tools.EXITS_COLUMNS),
        "latency": (arena_tools.calculate_zone_latency, arena_tools.LATENCY_COLUMNS),
        "transitions": (arena_tools.calculate_zone_transitions, arena_tools.TRANSITIONS_COLUMNS),
    }
    for name, (func, columns) in tables.items():
        result = func(membership, 30)
        assert result.empty, f"Table `{name}` is not empty"
        assert list(result.columns) == columns, f"Table `{name}` columns differ"

    # an arena without zones classifies everything as outside
    tracking = strip_tracking(["a", "b", "c"])
    membership = arena_tools.classify_points_by_zone(tracking, {})
    for name, (func, columns) in tables.items():
        if name == "transitions":
            continue
        assert func(membership, 30).empty, f"Table `{name}` is not empty"


def test_latency_uses_absolute_frames(strip_arena, strip_tracking):
    """
    Test that latency is measured from frame 0 even when the recording starts later
    """

    import arena_tools

    zones = arena_tools.build_all_zone_geometries(strip_arena)
    tracking = strip_tracking([None] * 5 + ["a"] * 5, fps=10, first_frame=20)
    membership = arena_tools.classify_points_by_zone(tracking, zones)

    latency = arena_tools.calculate_zone_latency(membership, 10)
    assert latency["first_entry_frame"].iloc[0] == 25
    assert latency["latency_seconds"].iloc[0] == pytest.approx(2.5)


def test_outside_label_is_none(strip_arena, strip_tracking):
    """
    Test that the outside label is None, not NaN, in every table carrying zone labels
    """

    import arena_tools

    zones = arena_tools.build_all_zone_geometries(strip_arena)
    tracking = strip_tracking(["a"] * 5 + [None] * 5 + ["b"] * 5, fps=10)
    membership = arena_tools.classify_points_by_zone(tracking, zones)
    assert membership["zone_id"].dtype == object
    assert membership["zone_id"].iloc[5] is None

    occupancy = arena_tools.calculate_zone_occupancy(membership, 10, include_outside=True)
    assert occupancy["zone_id"].dtype == object
    assert list(occupancy["zone_id"]) == ["a", "b", None]
    assert occupancy["zone_id"].iloc[-1] is None
    assert occupancy["n_frames"].iloc[-1] == 5

    transitions = arena_tools.calculate_zone_transitions(membership, 10)
    assert list(transitions.itertuples(index=False, name=None)) == [
        ("mouse_center", "a", None, 1),
        ("mouse_center", None, "b", 1),
    ]
    assert transitions["to_zone"].iloc[0] is None
    assert transitions["from_zone"].iloc[1] is None

    distance = arena_tools.calculate_distance_traveled(
        tracking, "mouse_center", zones=zones
    )
    assert distance["zone_id"].dtype == object
    outside = [z for z in distance["zone_id"] if z not in ("a", "b")]
    assert outside == [None]
    assert outside[0] is None


def test_dropped_frames_split_visits(strip_arena):
    """
    Test that frames missing from the tracking table end a visit like missing coordinates do
    """

    import arena_tools

    zones = arena_tools.build_all_zone_geometries(strip_arena)
    # frames 0-9 and 90-99 in zone `a`; frames 10-89 were never tracked
    frames = list(range(10)) + list(range(90, 100))
    tracking = arena_tools.tracking_data_from_arrays(frames, [5.0] * 20, [5.0] * 20, 10)
    membership = arena_tools.classify_points_by_zone(tracking, zones)

    visits = arena_tools.extract_visits(
        arena_tools.zone_membership_series(membership, "a"), fps=10, zone_id="a"
    )
    assert [(v.start_frame, v.end_frame, v.n_frames) for v in visits] == [
        (0, 9, 10),
        (90, 99, 10),
    ]
    assert visits[0].is_initial and not visits[0].is_terminal
    assert visits[1].is_terminal

    entries = arena_tools.calculate_zone_entries(membership, 10, zone_ids=["a"])
    assert entries["n_entries"].iloc[0] == 2
    assert entries["total_time"].iloc[0] == pytest.approx(2.0)
    exits = arena_tools.calculate_zone_exits(membership, 10, zone_ids=["a"])
    assert exits["n_exits"].iloc[0] == 1
    occupancy = arena_tools.calculate_zone_occupancy(membership, 10, zone_ids=["a"])
    assert occupancy["percentage"].iloc[0] == pytest.approx(20.0)

    # the same gap written as rows with missing coordinates gives the same tables
    x = [5.0] * 10 + [np.nan] * 80 + [5.0] * 10
    gap_rows = arena_tools.tracking_data_from_arrays(range(100), x, [5.0] * 100, 10)
    gap_membership = arena_tools.classify_points_by_zone(gap_rows, zones)
    for func, kwargs in [
        (arena_tools.calculate_zone_occupancy, dict(zone_ids=["a"], include_outside=True)),
        (arena_tools.calculate_zone_entries, dict(zone_ids=["a"])),
        (arena_tools.calculate_zone_exits, dict(zone_ids=["a"])),
        (arena_tools.calculate_zone_latency, dict(zone_ids=["a"])),
        (arena_tools.calculate_zone_transitions, {}),
    ]:
        pd.testing.assert_frame_equal(
            func(membership, 10, **kwargs), func(gap_membership, 10, **kwargs)
        )

    # series with a gap in the frame index
    series = pd.Series([T, T, T, T], index=[0, 1, 5, 6])
    visits = arena_tools.extract_visits(series, fps=1)
    assert [(v.start_frame, v.end_frame) for v in visits] == [(0, 1), (5, 6)]
    runs = arena_tools.extract_label_runs(pd.Series(["a", "a", "a"], index=[3, 4, 8]), fps=1)
    assert [(r.zone_id, r.start_frame, r.end_frame) for r in runs] == [
        ("a", 3, 4),
        (None, 5, 7),
        ("a", 8, 8),
    ]
    assert arena_tools.zone_occupancy(series, fps=1).total_frames == 7
