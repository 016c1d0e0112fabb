#
# tracking_data.py: tracked landmark position series
#
# Copyright DeGirum Corporation 2025
# All rights reserved
#
# Implements immutable container for per-frame landmark coordinates
#

"""
Tracking Data Module Overview
=============================

This module provides `TrackingData`, an immutable container for the per-frame coordinates of one
or more tracked landmarks (body parts such as "nose" or "mouse_center") together with the frame
rate of the recording.

Positions are held in a long-form pandas DataFrame with columns:

    - `frame` (int): Frame number
    - `time` (float): Time in seconds; derived as `frame / fps` when not supplied
    - `landmark` (str): Landmark name
    - `x`, `y` (float): Coordinates, NaN when missing

Parsing of pose-estimation or tracking-software exports and trajectory preprocessing happen
upstream; positions may still contain NaNs.
"""

import numpy as np
import pandas as pd
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Mapping, Optional, Sequence, Tuple

from .exceptions import InvalidArgument, NotFound

POSITION_COLUMNS = ["frame", "time", "landmark", "x", "y"]


@dataclass(frozen=True, eq=False)
class TrackingData:
    """Per-frame landmark coordinates of one recording.

    Attributes:
        positions (pd.DataFrame): Long-form positions sorted by landmark and frame.
        fps (float): Frame rate in frames per second.
        source (str, optional): Where the data came from (file name, subject id).
        metadata (Mapping): Free-form metadata.
    """

    positions: pd.DataFrame
    fps: float
    source: Optional[str] = None
    metadata: Mapping = field(default_factory=dict, compare=False)

    def __post_init__(self):
        if self.fps is None or not np.isfinite(self.fps) or self.fps <= 0:
            raise InvalidArgument(f"fps must be a positive number, got {self.fps}")

        df = self.positions
        missing = {"frame", "landmark", "x", "y"} - set(df.columns)
        if missing:
            raise InvalidArgument(
                f"positions missing required columns: {', '.join(sorted(missing))}"
            )
        df = df.copy()
        if "time" not in df.columns:
            df["time"] = df["frame"] / self.fps
        df["frame"] = df["frame"].astype(int)
        df["time"] = df["time"].astype(float)
        df["landmark"] = df["landmark"].astype(str)
        df["x"] = pd.to_numeric(df["x"], errors="coerce").astype(float)
        df["y"] = pd.to_numeric(df["y"], errors="coerce").astype(float)
        if df.duplicated(["landmark", "frame"]).any():
            raise InvalidArgument("positions contain duplicate (frame, landmark) rows")
        df = df[POSITION_COLUMNS].sort_values(["landmark", "frame"], kind="stable")

        object.__setattr__(self, "positions", df.reset_index(drop=True))
        object.__setattr__(self, "metadata", MappingProxyType(dict(self.metadata)))

    @property
    def landmarks(self) -> Tuple[str, ...]:
        """Landmark names in first-appearance order of the sorted positions."""
        return tuple(pd.unique(self.positions["landmark"]))

    @property
    def n_frames(self) -> int:
        """Number of distinct frames across all landmarks."""
        return int(self.positions["frame"].nunique())

    @property
    def is_empty(self) -> bool:
        return self.positions.empty

    def for_landmark(self, landmark: str) -> "TrackingData":
        """Return tracking data restricted to a single landmark.

        Raises:
            NotFound: If `landmark` is not present.
        """
        if landmark not in self.landmarks:
            raise NotFound(f"Landmark '{landmark}' not found in tracking data")
        return TrackingData(
            self.positions[self.positions["landmark"] == landmark],
            self.fps,
            self.source,
            self.metadata,
        )

    def landmark_positions(self, landmark: str) -> pd.DataFrame:
        """Positions of one landmark sorted by frame.

        Raises:
            NotFound: If `landmark` is not present.
        """
        return self.for_landmark(landmark).positions


def tracking_data_from_arrays(
    frames: Sequence[int],
    x: Sequence[float],
    y: Sequence[float],
    fps: float,
    landmark: str = "mouse_center",
    source: Optional[str] = None,
) -> TrackingData:
    """Build single-landmark `TrackingData` from parallel arrays.

    Raises:
        InvalidArgument: If the arrays have different lengths or `fps` is invalid.
    """
    if not (len(frames) == len(x) == len(y)):
        raise InvalidArgument(
            f"frames, x and y must have the same length, got {len(frames)}, {len(x)}, {len(y)}"
        )
    df = pd.DataFrame(
        {
            "frame": np.asarray(frames, dtype=int),
            "landmark": landmark,
            "x": np.asarray(x, dtype=float),
            "y": np.asarray(y, dtype=float),
        }
    )
    return TrackingData(df, fps, source)
