#
# zone_classifier.py: per-frame zone classification
#
# Copyright DeGirum Corporation 2025
# All rights reserved
#
# Implements classification of tracked landmark positions into arena zones
#

"""
Zone Classifier Module Overview
===============================

This module applies zone containment tests to every frame of every tracked landmark and produces
a long-form zone membership table.

Membership Table Contract:
    Columns `frame`, `time`, `landmark`, `x`, `y`, `zone_id`. For every input (frame, landmark):

    - one row per zone containing the point (overlapping zones give several rows, in zone
      resolution order);
    - exactly one row with `zone_id = None` when the point is in no zone or a coordinate is missing.

    Hence every input row yields at least one output row, and never more than one `None` row.

Key Functions:
    - `classify_points_by_zone()`: Build the membership table
    - `zone_membership_series()`: Per-frame in-zone flags for one zone and landmark
    - `zone_label_series()`: Per-frame primary zone label for one landmark
    - `complete_frame_range()`: Fill frames dropped by the tracker in a per-frame series

Both per-frame series cover every frame from the first to the last tracked frame. Frames with no
row in the membership table are "not in zone" (label None), the same as missing coordinates.
"""

import numpy as np
import pandas as pd
from typing import Any, Iterable, List, Mapping, Optional

from . import logger_get
from .exceptions import InvalidArgument, NotFound
from .tracking_data import POSITION_COLUMNS, TrackingData
from .zone_geometry import ZoneGeometry, point_in_zone

MEMBERSHIP_COLUMNS = POSITION_COLUMNS + ["zone_id"]

_ORDER = "_zone_order"


def empty_membership() -> pd.DataFrame:
    """Empty membership table with the documented columns."""
    return pd.DataFrame(
        {
            "frame": pd.Series(dtype=int),
            "time": pd.Series(dtype=float),
            "landmark": pd.Series(dtype=object),
            "x": pd.Series(dtype=float),
            "y": pd.Series(dtype=float),
            "zone_id": pd.Series(dtype=object),
        }
    )


def classify_points_by_zone(
    tracking: TrackingData,
    zones: Mapping[str, ZoneGeometry],
    landmark: Optional[str] = None,
) -> pd.DataFrame:
    """Classify tracked positions into zones.

    Args:
        tracking (TrackingData): Landmark positions.
        zones (Mapping[str, ZoneGeometry]): Resolved zone geometries, as returned by
            `build_all_zone_geometries()`.
        landmark (str, optional): Classify only this landmark. Default None (all landmarks).

    Returns:
        pd.DataFrame: Membership table sorted by frame, landmark and zone resolution order.

    Raises:
        NotFound: If `landmark` is given but not present in `tracking`.
    """
    df = tracking.positions if landmark is None else tracking.landmark_positions(landmark)
    if df.empty:
        return empty_membership()

    x = df["x"].to_numpy()
    y = df["y"].to_numpy()
    matched = np.zeros(len(df), dtype=bool)
    pieces: List[pd.DataFrame] = []

    for order, (zone_id, geometry) in enumerate(zones.items()):
        inside = point_in_zone(geometry, x, y).to_numpy(dtype=bool, na_value=False)
        if inside.any():
            part = df.loc[inside, POSITION_COLUMNS].copy()
            part["zone_id"] = zone_id
            part[_ORDER] = order
            pieces.append(part)
        matched |= inside

    # points in no zone, including points with missing coordinates
    outside = df.loc[~matched, POSITION_COLUMNS].copy()
    outside["zone_id"] = None
    outside[_ORDER] = len(zones)
    pieces.append(outside)

    result = pd.concat(pieces, ignore_index=True)
    result["zone_id"] = pd.Series(
        as_labels(result["zone_id"]), index=result.index, dtype=object
    )
    result = result.sort_values(["frame", "landmark", _ORDER], kind="stable")
    result = result.drop(columns=_ORDER).reset_index(drop=True)

    logger_get().debug(
        f"Classified {len(df)} position(s) of {df['landmark'].nunique()} landmark(s) "
        f"against {len(zones)} zone(s): {int(matched.sum())} in at least one zone"
    )
    return result[MEMBERSHIP_COLUMNS]


def _select_landmark(membership: pd.DataFrame, landmark: Optional[str]) -> pd.DataFrame:
    landmarks = pd.unique(membership["landmark"])
    if landmark is None:
        if len(landmarks) > 1:
            raise InvalidArgument(
                f"membership contains {len(landmarks)} landmarks; specify one of: "
                + ", ".join(str(lm) for lm in landmarks)
            )
        return membership
    if landmark not in landmarks:
        raise NotFound(f"Landmark '{landmark}' not found in membership table")
    return membership[membership["landmark"] == landmark]


def complete_frame_range(series: pd.Series, fill_value: Any) -> pd.Series:
    """Reindex a per-frame series to every frame from its first to its last frame.

    Frames without an entry (dropped by the tracker) get `fill_value`, so they are treated like
    frames with missing coordinates and split visits on either side of them.

    Args:
        series (pd.Series): Series indexed by unique, ascending frame numbers.
        fill_value: Value for frames without an entry.

    Returns:
        pd.Series: `series` itself when no frame is missing, otherwise a reindexed copy.
    """
    if series.empty:
        return series
    frames = series.index.to_numpy(dtype=int)
    first, last = int(frames[0]), int(frames[-1])
    if last - first + 1 == len(series):
        return series
    full = pd.RangeIndex(first, last + 1, name=series.index.name)
    return series.reindex(full, fill_value=fill_value)


def zone_membership_series(
    membership: pd.DataFrame, zone_id: str, landmark: Optional[str] = None
) -> pd.Series:
    """Per-frame in-zone flags for one zone.

    Every other label, including None, counts as "not in zone". Frames missing from the table
    between the first and last frame count as "not in zone" too.

    Args:
        membership (pd.DataFrame): Membership table from `classify_points_by_zone()`.
        zone_id (str): Zone to extract.
        landmark (str, optional): Landmark to extract; may be omitted when the table holds one landmark.

    Returns:
        pd.Series: Boolean series indexed by frame (every frame from first to last), named `zone_id`.

    Raises:
        NotFound: If `landmark` is not present.
        InvalidArgument: If `landmark` is omitted and the table holds several landmarks.
    """
    df = _select_landmark(membership, landmark)
    frames = np.sort(pd.unique(df["frame"]))
    in_zone_frames = df.loc[df["zone_id"] == zone_id, "frame"]
    flags = np.isin(frames, in_zone_frames.to_numpy())
    series = pd.Series(flags, index=pd.Index(frames, name="frame"), name=zone_id)
    return complete_frame_range(series, False)


def zone_label_series(
    membership: pd.DataFrame, landmark: Optional[str] = None
) -> pd.Series:
    """Per-frame primary zone label.

    When a point lies in several overlapping zones the first zone in resolution order is used.
    Frames missing from the table between the first and last frame are labeled None.

    Args:
        membership (pd.DataFrame): Membership table from `classify_points_by_zone()`.
        landmark (str, optional): Landmark to extract; may be omitted when the table holds one landmark.

    Returns:
        pd.Series: Object series of zone ids (None outside all zones) indexed by frame.
    """
    df = _select_landmark(membership, landmark)
    first = df.drop_duplicates("frame", keep="first").sort_values("frame")
    labels = pd.Series(
        first["zone_id"].to_numpy(dtype=object),
        index=pd.Index(first["frame"].to_numpy(), name="frame"),
        dtype=object,
    )
    labels = complete_frame_range(labels, None)
    return pd.Series(
        as_labels(labels), index=labels.index, name="zone_id", dtype=object
    )


def as_labels(values: Iterable) -> List[Optional[str]]:
    """Zone labels with every missing value (None, NaN, pd.NA) normalized to None."""
    return [None if pd.isna(v) else v for v in values]
