#
# movement_metrics.py: movement metrics
#
# Copyright DeGirum Corporation 2025
# All rights reserved
#
# Implements distance, velocity and movement bout metrics for tracked landmarks
#

"""
Movement Metrics Module Overview
================================

This module computes locomotion metrics of a single landmark: distance traveled (in total or per
zone), frame-to-frame speed, a movement summary, and movement bouts (runs of frames above a speed
threshold).

Units:
    Coordinates are divided by `scale` (coordinate units per centimeter) when it is given, so
    distances are in cm and speeds in cm/s; otherwise they stay in coordinate units (pixels).

Missing Data:
    Frames with a missing coordinate are skipped for distance. Speed at a frame is NaN unless
    both that frame and the previous one have valid coordinates.
"""

import numpy as np
import pandas as pd
from dataclasses import dataclass
from typing import Dict, Mapping, Optional, Sequence, Union

from . import logger_get
from .analyzer_base import TrackingAnalyzerBase
from .exceptions import InvalidArgument
from .math_support import moving_average, true_runs
from .tracking_data import TrackingData
from .zone_classifier import as_labels, classify_points_by_zone, zone_label_series
from .zone_geometry import ZoneGeometry

DISTANCE_COLUMNS = ["zone_id", "total_distance", "units"]
VELOCITY_COLUMNS = ["frame", "time", "velocity", "velocity_x", "velocity_y"]
BOUT_COLUMNS = ["bout_id", "start_frame", "end_frame", "start_time", "end_time", "duration"]


def _check_scale(scale: Optional[float]):
    if scale is not None and not scale > 0:
        raise InvalidArgument(f"scale must be a positive number, got {scale}")


def _units(scale: Optional[float], suffix: str = "") -> str:
    return ("cm" if scale is not None else "pixels") + suffix


def calculate_distance_traveled(
    tracking: TrackingData,
    landmark: str,
    scale: Optional[float] = None,
    zones: Optional[Mapping[str, ZoneGeometry]] = None,
) -> Union[float, pd.DataFrame]:
    """Total path length of a landmark.

    Args:
        tracking (TrackingData): Landmark positions.
        landmark (str): Landmark to measure.
        scale (float, optional): Coordinate units per centimeter.
        zones (Mapping[str, ZoneGeometry], optional): If given, report distance per zone; each
            step is attributed to the zone of the frame it ends on.

    Returns:
        Total distance as float, or a DataFrame with columns `zone_id, total_distance, units`
        (zone_id None for steps ending outside all zones) when `zones` is given.

    Raises:
        NotFound: If `landmark` is not present.
        InvalidArgument: If `scale` is not positive.
    """
    _check_scale(scale)
    df = tracking.landmark_positions(landmark)
    valid = df[df["x"].notna() & df["y"].notna()]

    if len(valid) < 2:
        logger_get().warning(
            f"Landmark '{landmark}': insufficient valid tracking points for distance"
        )
        steps = np.zeros(0)
    else:
        steps = np.hypot(np.diff(valid["x"].to_numpy()), np.diff(valid["y"].to_numpy()))
        if scale is not None:
            steps = steps / scale

    if zones is None:
        return float(steps.sum())

    membership = classify_points_by_zone(tracking, zones, landmark)
    labels = zone_label_series(membership, landmark)
    step_zones = labels.reindex(valid["frame"].to_numpy()[1:]).to_numpy()
    per_zone = (
        pd.DataFrame(
            {
                "zone_id": pd.Series(step_zones, dtype=object),
                "total_distance": steps,
            }
        )
        .groupby("zone_id", dropna=False, sort=False)["total_distance"]
        .sum()
        .reset_index()
    )
    per_zone["zone_id"] = pd.Series(
        as_labels(per_zone["zone_id"]), index=per_zone.index, dtype=object
    )
    per_zone["units"] = _units(scale)
    return per_zone[DISTANCE_COLUMNS]


def calculate_velocity(
    tracking: TrackingData,
    landmark: str,
    scale: Optional[float] = None,
    smooth_window: int = 5,
) -> pd.DataFrame:
    """Per-frame speed of a landmark.

    Args:
        tracking (TrackingData): Landmark positions.
        landmark (str): Landmark to measure.
        scale (float, optional): Coordinate units per centimeter.
        smooth_window (int): Centered moving-average window; values <= 1 disable smoothing.

    Returns:
        pd.DataFrame: Columns `frame, time, velocity, velocity_x, velocity_y`; the `units`
        entry of `DataFrame.attrs` holds "cm/s" or "pixels/s".
    """
    _check_scale(scale)
    df = tracking.landmark_positions(landmark)
    frames = df["frame"].to_numpy()
    x = df["x"].to_numpy()
    y = df["y"].to_numpy()

    vx = np.full(len(df), np.nan)
    vy = np.full(len(df), np.nan)
    if len(df) > 1:
        dt = np.diff(frames) / tracking.fps
        with np.errstate(invalid="ignore", divide="ignore"):
            step_vx = np.where(dt > 0, np.diff(x) / dt, np.nan)
            step_vy = np.where(dt > 0, np.diff(y) / dt, np.nan)
        vx[1:] = step_vx
        vy[1:] = step_vy
    if scale is not None:
        vx /= scale
        vy /= scale
    speed = np.hypot(vx, vy)

    if smooth_window > 1:
        speed = moving_average(speed, smooth_window)
        vx = moving_average(vx, smooth_window)
        vy = moving_average(vy, smooth_window)

    result = pd.DataFrame(
        {
            "frame": frames,
            "time": df["time"].to_numpy(),
            "velocity": speed,
            "velocity_x": vx,
            "velocity_y": vy,
        }
    )
    result.attrs["units"] = _units(scale, "/s")
    return result


@dataclass(frozen=True)
class MovementSummary:
    """Movement summary of one landmark."""

    total_distance: float
    distance_units: str
    mean_velocity: float
    median_velocity: float
    max_velocity: float
    velocity_units: str
    duration_seconds: float
    percent_time_moving: float


def calculate_movement_summary(
    tracking: TrackingData,
    landmark: str,
    scale: Optional[float] = None,
    movement_threshold: Optional[float] = None,
) -> MovementSummary:
    """Summarize distance and speed of a landmark.

    Args:
        movement_threshold (float, optional): Speed above which the landmark counts as moving.
            Default 0.1 cm/s when `scale` is given, else 1.0 pixels/s.
    """
    total = calculate_distance_traveled(tracking, landmark, scale)
    vel = calculate_velocity(tracking, landmark, scale)
    speed = vel["velocity"].to_numpy()
    valid = speed[~np.isnan(speed)]
    if movement_threshold is None:
        movement_threshold = 0.1 if scale is not None else 1.0

    times = vel["time"].to_numpy()
    return MovementSummary(
        total_distance=float(total),
        distance_units=_units(scale),
        mean_velocity=float(valid.mean()) if valid.size else float("nan"),
        median_velocity=float(np.median(valid)) if valid.size else float("nan"),
        max_velocity=float(valid.max()) if valid.size else float("nan"),
        velocity_units=_units(scale, "/s"),
        duration_seconds=float(times.max() - times.min()) if times.size else 0.0,
        percent_time_moving=(
            float(100.0 * (valid > movement_threshold).sum() / valid.size)
            if valid.size
            else float("nan")
        ),
    )


def detect_movement_bouts(
    tracking: TrackingData,
    landmark: str,
    velocity_threshold: float = 1.0,
    min_bout_duration: float = 0.5,
    scale: Optional[float] = None,
) -> pd.DataFrame:
    """Find runs of consecutive frames with speed above a threshold.

    Frames with undefined speed count as not moving. Bouts shorter than `min_bout_duration`
    seconds (measured as `end_time - start_time`) are dropped.

    Returns:
        pd.DataFrame: Columns `bout_id, start_frame, end_frame, start_time, end_time, duration`.

    Raises:
        InvalidArgument: If `min_bout_duration` is negative.
    """
    if not min_bout_duration >= 0:
        raise InvalidArgument(
            f"min_bout_duration must be a non-negative number, got {min_bout_duration}"
        )
    vel = calculate_velocity(tracking, landmark, scale)
    speed = vel["velocity"].to_numpy()
    moving = np.nan_to_num(speed, nan=-np.inf) > velocity_threshold
    starts, ends = true_runs(moving)

    frames = vel["frame"].to_numpy()
    times = vel["time"].to_numpy()
    bouts = pd.DataFrame(
        {
            "start_frame": frames[starts],
            "end_frame": frames[ends],
            "start_time": times[starts],
            "end_time": times[ends],
        }
    )
    bouts["duration"] = bouts["end_time"] - bouts["start_time"]
    bouts = bouts[bouts["duration"] >= min_bout_duration].reset_index(drop=True)
    bouts.insert(0, "bout_id", np.arange(1, len(bouts) + 1))
    return bouts[BOUT_COLUMNS]


class MovementAnalyzer(TrackingAnalyzerBase):
    """Analyzer summarizing movement of selected landmarks.

    Args:
        landmarks (Sequence[str], optional): Landmarks to summarize. Default None summarizes
            every landmark of each recording.
        scale (float, optional): Coordinate units per centimeter.
    """

    def __init__(
        self, landmarks: Optional[Sequence[str]] = None, scale: Optional[float] = None
    ):
        _check_scale(scale)
        self._landmarks = None if landmarks is None else list(landmarks)
        self._scale = scale

    def analyze(self, tracking: TrackingData) -> Dict[str, MovementSummary]:
        """Return movement summary per landmark.

        Raises:
            NotFound: If a requested landmark is absent from `tracking`.
        """
        landmarks = tracking.landmarks if self._landmarks is None else self._landmarks
        return {
            lm: calculate_movement_summary(tracking, lm, self._scale) for lm in landmarks
        }
