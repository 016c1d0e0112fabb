#
# zone_analytics.py: zone temporal analytics
#
# Copyright DeGirum Corporation 2025
# All rights reserved
#
# Implements zone occupancy, entries, exits, latency and transition metrics
#

"""
Zone Analytics Module Overview
==============================

This module computes temporal zone metrics from per-frame zone membership: how long a landmark
stayed in each zone, how many times it entered and left, when it first entered, and how it moved
between zones.

Key Concepts:
    - **Visit**: a maximal run of consecutive frames in a zone; `duration = n_frames / fps`.
      Runs touching the first or last frame of the recording are valid visits.
    - **Minimum Duration**: visits shorter than `min_duration` seconds are treated as tracking
      glitches. They are ignored by entries, exits, latency and transitions, but every in-zone
      frame still counts toward occupancy.
    - **Exit**: a qualifying visit that ends before the last frame of the recording. A visit
      still in progress when the recording stops has no observed exit.
    - **Latency**: `start_frame / fps` of the first visit meeting `min_duration`; NaN if none.
    - **Transition**: change of zone label between consecutive qualifying visits. Visits that do
      not qualify are dropped before pairing, so A -> (short B) -> C counts as A -> C.

Typical Usage:
    ```python
    membership = classify_points_by_zone(tracking, zones)
    occupancy = calculate_zone_occupancy(membership, tracking.fps)
    entries = calculate_zone_entries(membership, tracking.fps, min_duration=0.5)
    transitions = calculate_zone_transitions(membership, tracking.fps, min_duration=0.5)
    ```

Overlapping zones:
    A frame inside two overlapping zones counts toward the occupancy of both, so occupancy
    percentages may add up to more than 100%. Transitions use the primary label of each frame
    (first zone in resolution order).

Series-level functions take a boolean (or label) series for one landmark; table-level
`calculate_*` functions take a membership table and report per landmark and zone.
"""

import math
import numpy as np
import pandas as pd
from collections import Counter
from dataclasses import dataclass
from typing import Any, Dict, Iterator, List, Optional, Sequence, Tuple, Union

from .exceptions import InvalidArgument
from .math_support import run_length_encode, true_runs
from .zone_classifier import (
    as_labels,
    complete_frame_range,
    zone_label_series,
    zone_membership_series,
)

SeriesLike = Union[pd.Series, Sequence, np.ndarray]
TransitionKey = Tuple[Optional[str], Optional[str]]

OCCUPANCY_COLUMNS = ["landmark", "zone_id", "n_frames", "time_seconds", "percentage"]
ENTRIES_COLUMNS = ["landmark", "zone_id", "n_entries", "mean_duration", "total_time"]
EXITS_COLUMNS = ["landmark", "zone_id", "n_exits"]
LATENCY_COLUMNS = ["landmark", "zone_id", "latency_seconds", "first_entry_frame"]
TRANSITIONS_COLUMNS = ["landmark", "from_zone", "to_zone", "n_transitions"]


@dataclass(frozen=True)
class ZoneVisit:
    """Maximal run of consecutive frames with the same zone state.

    Attributes:
        zone_id (str, optional): Zone of the visit; None for runs outside all zones.
        start_frame (int): First frame of the run.
        end_frame (int): Last frame of the run (inclusive).
        n_frames (int): Number of frames in the run.
        duration_seconds (float): `n_frames / fps`.
        is_initial (bool): Run starts at the first frame of the series.
        is_terminal (bool): Run ends at the last frame of the series.
    """

    zone_id: Optional[str]
    start_frame: int
    end_frame: int
    n_frames: int
    duration_seconds: float
    is_initial: bool
    is_terminal: bool

    def qualifies(self, min_duration: float) -> bool:
        return self.duration_seconds >= min_duration


@dataclass(frozen=True)
class ZoneOccupancy:
    n_frames: int
    time_seconds: float
    percentage: float
    total_frames: int


@dataclass(frozen=True)
class ZoneEntries:
    n_entries: int
    mean_duration: float
    total_time: float


@dataclass(frozen=True)
class ZoneLatency:
    latency_seconds: float
    first_entry_frame: Optional[int]


def _check_fps(fps: float):
    if fps is None or not fps > 0 or not math.isfinite(fps):
        raise InvalidArgument(f"fps must be a positive number, got {fps}")


def _check_min_duration(min_duration: float):
    if min_duration is None or not min_duration >= 0:
        raise InvalidArgument(
            f"min_duration must be a non-negative number, got {min_duration}"
        )


def _frames_and_values(
    series: SeriesLike, fill_value: Any
) -> Tuple[np.ndarray, np.ndarray]:
    """Split a series into frame numbers and values; plain sequences are numbered from 0.

    A `pd.Series` is first completed to every frame between its first and last frame, so frames
    dropped by the tracker get `fill_value` and split runs on either side of them.
    """
    if isinstance(series, pd.Series):
        series = complete_frame_range(series.sort_index(), fill_value)
        return series.index.to_numpy(dtype=int), series.to_numpy()
    values = np.asarray(series)
    return np.arange(len(values)), values


def extract_visits(
    series: SeriesLike, fps: float, zone_id: Optional[str] = None
) -> List[ZoneVisit]:
    """Run-length encode a boolean in-zone series into visits.

    Args:
        series: Boolean flags, one per frame. A `pd.Series` index supplies frame numbers;
            otherwise frames are numbered from 0. Missing values, and frames absent from the
            index between its first and last frame, count as "not in zone".
        fps (float): Frame rate.
        zone_id (str, optional): Zone id stored in the returned visits.

    Returns:
        List[ZoneVisit]: Visits in chronological order.

    Raises:
        InvalidArgument: If `fps` is not positive.
    """
    _check_fps(fps)
    frames, values = _frames_and_values(series, False)
    mask = pd.array(values, dtype="boolean").to_numpy(dtype=bool, na_value=False)
    starts, ends = true_runs(mask)
    last = len(mask) - 1
    return [
        ZoneVisit(
            zone_id=zone_id,
            start_frame=int(frames[s]),
            end_frame=int(frames[e]),
            n_frames=int(e - s + 1),
            duration_seconds=(e - s + 1) / fps,
            is_initial=bool(s == 0),
            is_terminal=bool(e == last),
        )
        for s, e in zip(starts, ends)
    ]


def extract_label_runs(labels: SeriesLike, fps: float) -> List[ZoneVisit]:
    """Run-length encode a zone label series (None outside all zones) into runs.

    Frames absent from a `pd.Series` index between its first and last frame are labeled None.

    Raises:
        InvalidArgument: If `fps` is not positive.
    """
    _check_fps(fps)
    frames, values = _frames_and_values(labels, None)
    values = as_labels(values)
    starts, lengths, run_values = run_length_encode(values)
    last = len(values) - 1
    return [
        ZoneVisit(
            zone_id=label,
            start_frame=int(frames[s]),
            end_frame=int(frames[s + n - 1]),
            n_frames=int(n),
            duration_seconds=n / fps,
            is_initial=bool(s == 0),
            is_terminal=bool(s + n - 1 == last),
        )
        for s, n, label in zip(starts, lengths, run_values)
    ]


def zone_occupancy(series: SeriesLike, fps: float) -> ZoneOccupancy:
    """Frames, time and percentage of the recording spent in a zone.

    Every in-zone frame counts, regardless of visit length. The percentage is NaN for an
    empty series.

    Raises:
        InvalidArgument: If `fps` is not positive.
    """
    _check_fps(fps)
    _, values = _frames_and_values(series, False)
    mask = pd.array(values, dtype="boolean").to_numpy(dtype=bool, na_value=False)
    total = len(mask)
    n = int(mask.sum())
    return ZoneOccupancy(
        n_frames=n,
        time_seconds=n / fps,
        percentage=(n / total * 100.0) if total else float("nan"),
        total_frames=total,
    )


def zone_entries(
    series: SeriesLike, fps: float, min_duration: float = 0.0
) -> ZoneEntries:
    """Count visits lasting at least `min_duration` seconds.

    Returns:
        ZoneEntries: Number of qualifying visits, their mean duration (NaN when there are none)
        and total duration.

    Raises:
        InvalidArgument: If `fps` is not positive or `min_duration` is negative.
    """
    _check_min_duration(min_duration)
    durations = [
        v.duration_seconds for v in extract_visits(series, fps) if v.qualifies(min_duration)
    ]
    return ZoneEntries(
        n_entries=len(durations),
        mean_duration=float(np.mean(durations)) if durations else float("nan"),
        total_time=float(np.sum(durations)) if durations else 0.0,
    )


def zone_exits(series: SeriesLike, fps: float, min_duration: float = 0.0) -> int:
    """Count qualifying visits that end before the last frame of the series.

    Raises:
        InvalidArgument: If `fps` is not positive or `min_duration` is negative.
    """
    _check_min_duration(min_duration)
    return sum(
        1
        for v in extract_visits(series, fps)
        if v.qualifies(min_duration) and not v.is_terminal
    )


def zone_latency(
    series: SeriesLike, fps: float, min_duration: float = 0.0
) -> ZoneLatency:
    """Time until the first visit lasting at least `min_duration` seconds.

    Shorter visits are skipped while scanning, so an early glitch never determines latency.

    Returns:
        ZoneLatency: `start_frame / fps` and the start frame of the first qualifying visit,
        or NaN and None when no visit qualifies.

    Raises:
        InvalidArgument: If `fps` is not positive or `min_duration` is negative.
    """
    _check_min_duration(min_duration)
    for visit in extract_visits(series, fps):
        if visit.qualifies(min_duration):
            return ZoneLatency(visit.start_frame / fps, visit.start_frame)
    return ZoneLatency(float("nan"), None)


def zone_transitions(
    labels: SeriesLike,
    fps: float,
    min_duration: float = 0.0,
    include_outside: bool = True,
) -> Dict[TransitionKey, int]:
    """Count transitions between consecutive qualifying visits.

    Args:
        labels: Zone label per frame, None outside all zones.
        fps (float): Frame rate.
        min_duration (float): Visits (including runs outside all zones) shorter than this are
            dropped before pairing neighbors. Default 0.
        include_outside (bool): If True, the outside label None takes part in transitions;
            if False, outside runs are dropped like non-qualifying visits. Default True.

    Returns:
        Dict[Tuple[from_zone, to_zone], int]: Transition counts; zone ids may be None.

    Raises:
        InvalidArgument: If `fps` is not positive or `min_duration` is negative.
    """
    _check_min_duration(min_duration)
    sequence = [
        run.zone_id
        for run in extract_label_runs(labels, fps)
        if run.qualifies(min_duration) and (include_outside or run.zone_id is not None)
    ]
    counts: Counter = Counter()
    previous = None
    for i, label in enumerate(sequence):
        # neighbors with the same label merge into one visit
        if i > 0 and label != previous:
            counts[(previous, label)] += 1
        previous = label
    return dict(counts)


#
# Table-level metrics over a membership table
#


def _result_table(
    rows: List[tuple], columns: List[str], dtypes: Dict[str, Any]
) -> pd.DataFrame:
    """Build a result table; columns not named in `dtypes` are object columns.

    Zone label columns stay object so the outside label is None rather than NaN.
    """
    values = list(zip(*rows)) if rows else [()] * len(columns)
    return pd.DataFrame(
        {
            column: pd.Series(
                as_labels(col_values) if column not in dtypes else list(col_values),
                dtype=dtypes.get(column, object),
            )
            for column, col_values in zip(columns, values)
        }
    )


def _landmarks(membership: pd.DataFrame) -> List[str]:
    return sorted(pd.unique(membership["landmark"]))


def _zone_ids(membership: pd.DataFrame, zone_ids: Optional[Sequence[str]]) -> List[str]:
    if zone_ids is not None:
        return list(zone_ids)
    return sorted(z for z in pd.unique(membership["zone_id"]) if not pd.isna(z))


def _zone_series(
    membership: pd.DataFrame, zone_ids: Optional[Sequence[str]]
) -> Iterator[Tuple[str, str, pd.Series]]:
    zones = _zone_ids(membership, zone_ids)
    for landmark in _landmarks(membership):
        for zone_id in zones:
            yield landmark, zone_id, zone_membership_series(membership, zone_id, landmark)


def calculate_zone_occupancy(
    membership: pd.DataFrame,
    fps: float,
    zone_ids: Optional[Sequence[str]] = None,
    include_outside: bool = False,
) -> pd.DataFrame:
    """Occupancy per landmark and zone.

    Args:
        membership (pd.DataFrame): Membership table from `classify_points_by_zone()`.
        fps (float): Frame rate.
        zone_ids (Sequence[str], optional): Zones to report, in this order. Default None reports
            zones present in the table, sorted by id.
        include_outside (bool): Add a row with `zone_id = None` for frames outside all zones.

    Returns:
        pd.DataFrame: Columns `landmark, zone_id, n_frames, time_seconds, percentage`.
    """
    _check_fps(fps)
    zones = _zone_ids(membership, zone_ids)
    rows = []
    if zones:
        for landmark, zone_id, series in _zone_series(membership, zones):
            occ = zone_occupancy(series, fps)
            rows.append((landmark, zone_id, occ.n_frames, occ.time_seconds, occ.percentage))
        if include_outside:
            for landmark in _landmarks(membership):
                labels = zone_label_series(membership, landmark)
                occ = zone_occupancy(labels.isna(), fps)
                rows.append((landmark, None, occ.n_frames, occ.time_seconds, occ.percentage))
    return _result_table(
        rows,
        OCCUPANCY_COLUMNS,
        {"n_frames": int, "time_seconds": float, "percentage": float},
    )


def calculate_zone_entries(
    membership: pd.DataFrame,
    fps: float,
    min_duration: float = 0.0,
    zone_ids: Optional[Sequence[str]] = None,
) -> pd.DataFrame:
    """Entries per landmark and zone.

    Returns:
        pd.DataFrame: Columns `landmark, zone_id, n_entries, mean_duration, total_time`.

    Raises:
        InvalidArgument: If `fps` is not positive or `min_duration` is negative.
    """
    _check_fps(fps)
    _check_min_duration(min_duration)
    rows = []
    for landmark, zone_id, series in _zone_series(membership, zone_ids):
        e = zone_entries(series, fps, min_duration)
        rows.append((landmark, zone_id, e.n_entries, e.mean_duration, e.total_time))
    return _result_table(
        rows,
        ENTRIES_COLUMNS,
        {"n_entries": int, "mean_duration": float, "total_time": float},
    )


def calculate_zone_exits(
    membership: pd.DataFrame,
    fps: float,
    min_duration: float = 0.0,
    zone_ids: Optional[Sequence[str]] = None,
) -> pd.DataFrame:
    """Exits per landmark and zone.

    Returns:
        pd.DataFrame: Columns `landmark, zone_id, n_exits`.
    """
    _check_fps(fps)
    _check_min_duration(min_duration)
    rows = [
        (landmark, zone_id, zone_exits(series, fps, min_duration))
        for landmark, zone_id, series in _zone_series(membership, zone_ids)
    ]
    return _result_table(rows, EXITS_COLUMNS, {"n_exits": int})


def calculate_zone_latency(
    membership: pd.DataFrame,
    fps: float,
    min_duration: float = 0.0,
    zone_ids: Optional[Sequence[str]] = None,
) -> pd.DataFrame:
    """First-entry latency per landmark and zone.

    Zones never entered are reported with NaN latency and a missing first entry frame.

    Returns:
        pd.DataFrame: Columns `landmark, zone_id, latency_seconds, first_entry_frame`;
        `first_entry_frame` is a nullable integer column.
    """
    _check_fps(fps)
    _check_min_duration(min_duration)
    rows = []
    for landmark, zone_id, series in _zone_series(membership, zone_ids):
        lat = zone_latency(series, fps, min_duration)
        rows.append((landmark, zone_id, lat.latency_seconds, lat.first_entry_frame))
    return _result_table(
        rows,
        LATENCY_COLUMNS,
        {"latency_seconds": float, "first_entry_frame": "Int64"},
    )


def calculate_zone_transitions(
    membership: pd.DataFrame,
    fps: float,
    min_duration: float = 0.0,
    include_outside: bool = True,
) -> pd.DataFrame:
    """Zone-to-zone transition counts per landmark.

    Returns:
        pd.DataFrame: Columns `landmark, from_zone, to_zone, n_transitions`, sorted by landmark
        and then by first appearance of each transition.
    """
    _check_fps(fps)
    _check_min_duration(min_duration)
    rows = []
    for landmark in _landmarks(membership):
        labels = zone_label_series(membership, landmark)
        counts = zone_transitions(labels, fps, min_duration, include_outside)
        rows.extend((landmark, src, dst, n) for (src, dst), n in counts.items())
    return _result_table(rows, TRANSITIONS_COLUMNS, {"n_transitions": int})
