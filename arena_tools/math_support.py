#
# math_support.py: mathematical utilities for array operations
#
# Copyright DeGirum Corporation 2025
# All rights reserved
#
# Implements geometric predicates and run-length utilities for coordinate arrays
#

"""
Math Support Module Overview
===========================

This module provides low-level numeric utilities used by zone geometry and trajectory analytics.
All functions operate on NumPy arrays and never modify their inputs.

Key Features:
    - **Polygon Containment**: Even-odd ray casting with half-open edge intervals
    - **Circle Containment**: Closed-disk distance test
    - **Bounding Boxes**: Axis-aligned extents of vertex lists
    - **Run-Length Encoding**: Maximal runs of equal values in label or boolean sequences
    - **Moving Average**: NaN-aware centered smoothing of numeric sequences

Integration Notes:
    - Missing coordinates (NaN) never count as inside; callers that need three-valued
      results mask them separately (see `zone_geometry.point_in_zone`)
    - Results are deterministic: the same inputs always produce the same outputs

Key Functions:
    - `point_in_polygon()`: Vectorized ray-casting test
    - `point_in_circle()`: Vectorized closed-disk test
    - `bounding_box()`: Axis-aligned bounding box of polygon vertices
    - `run_length_encode()`: Split a sequence into maximal equal-value runs
    - `moving_average()`: Centered moving average ignoring NaNs
"""

import numpy as np
from typing import Any, Sequence, Tuple


def as_coordinates(x: Any, y: Any) -> Tuple[np.ndarray, np.ndarray]:
    """Convert coordinate inputs to float arrays of equal length.

    Args:
        x: Scalar or sequence of x coordinates; None values become NaN.
        y: Scalar or sequence of y coordinates; None values become NaN.

    Returns:
        Tuple of 1-D float arrays ``(x, y)``.

    Raises:
        ValueError: If `x` and `y` have different lengths.
    """
    xa = np.atleast_1d(np.asarray(x, dtype=float))
    ya = np.atleast_1d(np.asarray(y, dtype=float))
    if xa.shape != ya.shape:
        raise ValueError(
            f"x and y must have the same length, got {xa.size} and {ya.size}"
        )
    return xa.ravel(), ya.ravel()


def point_in_polygon(x: np.ndarray, y: np.ndarray, vertices: np.ndarray) -> np.ndarray:
    """Test which points lie inside a polygon using the even-odd rule.

    A horizontal ray is cast from each point in the +x direction. An edge from
    ``(x1, y1)`` to ``(x2, y2)`` is crossed when ``y1 <= py < y2`` or ``y2 <= py < y1``
    and ``px`` is strictly less than the x coordinate of the edge at height ``py``.
    The polygon is implicitly closed.

    Args:
        x (np.ndarray): X coordinates of points.
        y (np.ndarray): Y coordinates of points.
        vertices (np.ndarray): Polygon vertices as ``(N, 2)`` array, ``N >= 3``.

    Returns:
        np.ndarray: Boolean array, True for points inside the polygon. NaN points are False.
    """
    x = np.asarray(x, dtype=float)
    y = np.asarray(y, dtype=float)
    inside = np.zeros(x.shape, dtype=bool)
    vx = vertices[:, 0]
    vy = vertices[:, 1]
    for x1, y1, x2, y2 in zip(vx, vy, np.roll(vx, -1), np.roll(vy, -1)):
        spans = ((y1 <= y) & (y < y2)) | ((y2 <= y) & (y < y1))
        if not spans.any():
            continue
        # horizontal edges never span, so division is safe where it matters
        with np.errstate(divide="ignore", invalid="ignore"):
            x_cross = (x2 - x1) * (y - y1) / (y2 - y1) + x1
        inside ^= spans & (x < x_cross)
    return inside


def point_in_circle(
    x: np.ndarray, y: np.ndarray, center: Tuple[float, float], radius: float
) -> np.ndarray:
    """Test which points lie inside a closed disk (boundary included).

    Args:
        x (np.ndarray): X coordinates of points.
        y (np.ndarray): Y coordinates of points.
        center (Tuple[float, float]): Circle center ``(cx, cy)``.
        radius (float): Circle radius.

    Returns:
        np.ndarray: Boolean array. NaN points are False.
    """
    dx = np.asarray(x, dtype=float) - center[0]
    dy = np.asarray(y, dtype=float) - center[1]
    return dx * dx + dy * dy <= radius * radius


def bounding_box(vertices: np.ndarray) -> Tuple[float, float, float, float]:
    """Axis-aligned bounding box of polygon vertices.

    Returns:
        Tuple ``(x_min, x_max, y_min, y_max)``.
    """
    return (
        float(vertices[:, 0].min()),
        float(vertices[:, 0].max()),
        float(vertices[:, 1].min()),
        float(vertices[:, 1].max()),
    )


def run_length_encode(values: Sequence) -> Tuple[np.ndarray, np.ndarray, list]:
    """Split a sequence into maximal runs of equal consecutive values.

    Values are compared with ``==``; None compares equal to None, so runs of
    missing labels are merged like any other label.

    Args:
        values (Sequence): Sequence of hashable values (labels or booleans).

    Returns:
        Tuple ``(starts, lengths, run_values)`` where `starts` and `lengths` are integer
        arrays of run start positions and lengths, and `run_values` is the list of values.
    """
    n = len(values)
    if n == 0:
        return np.zeros(0, dtype=int), np.zeros(0, dtype=int), []
    arr = np.empty(n, dtype=object)
    arr[:] = list(values)
    change = np.fromiter(
        (a != b for a, b in zip(arr[1:], arr[:-1])), dtype=bool, count=n - 1
    )
    starts = np.concatenate(([0], np.flatnonzero(change) + 1))
    lengths = np.diff(np.append(starts, n))
    return starts, lengths, [arr[s] for s in starts]


def true_runs(mask: np.ndarray) -> Tuple[np.ndarray, np.ndarray]:
    """Locate maximal runs of True in a boolean array.

    Args:
        mask (np.ndarray): 1-D boolean array.

    Returns:
        Tuple ``(starts, ends)`` of integer arrays; `ends` are inclusive positions.
    """
    mask = np.asarray(mask, dtype=bool)
    if mask.size == 0:
        return np.zeros(0, dtype=int), np.zeros(0, dtype=int)
    padded = np.concatenate(([False], mask, [False])).astype(np.int8)
    edges = np.diff(padded)
    starts = np.flatnonzero(edges == 1)
    ends = np.flatnonzero(edges == -1) - 1
    return starts, ends


def moving_average(values: np.ndarray, window: int) -> np.ndarray:
    """Centered moving average that ignores NaNs.

    Positions holding NaN stay NaN; other positions average the non-NaN values
    in a window of `window` samples centered on them (truncated at the edges).

    Args:
        values (np.ndarray): 1-D numeric array.
        window (int): Window size; values <= 1 or longer than the data disable smoothing.

    Returns:
        np.ndarray: Smoothed copy of `values`.
    """
    values = np.asarray(values, dtype=float)
    if window <= 1 or values.size < window:
        return values.copy()
    half = window // 2
    valid = ~np.isnan(values)
    filled = np.where(valid, values, 0.0)
    kernel = np.ones(2 * half + 1)
    sums = np.convolve(filled, kernel, mode="same")
    counts = np.convolve(valid.astype(float), kernel, mode="same")
    smoothed = np.full(values.shape, np.nan)
    smoothed[valid] = sums[valid] / counts[valid]
    return smoothed
