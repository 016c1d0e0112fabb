#
# zone_geometry.py: zone geometry support
#
# Copyright DeGirum Corporation 2025
# All rights reserved
#
# Implements resolution of declarative zone specifications into polygons and circles,
# and point-in-zone testing
#

"""
Zone Geometry Module Overview
=============================

This module turns the declarative zone specifications of an `ArenaConfig` into concrete geometric
primitives and tests coordinates against them.

Key Features:
    - **Two Geometry Kinds**: `PolygonGeometry` (implicitly closed vertex list) and `CircleGeometry`
    - **Dependency Resolution**: Proportional zones may reference zones declared before or after them,
      at any depth; unresolvable parents and cycles are reported explicitly
    - **Unit Conversion**: Circle radii are converted from centimeters using the arena scale
    - **Three-Valued Containment**: Points with a missing coordinate yield "unknown" rather than False

Typical Usage:
    ```python
    zones = build_all_zone_geometries(arena)
    inside = point_in_zone(zones["center"], df["x"], df["y"])
    ```

Boundary Rules:
    - Circles are closed disks: points at exactly `radius` from the center are inside
    - Polygons use even-odd ray casting with half-open edge intervals, so for an axis-aligned
      rectangle the bottom and left edges (smaller y, smaller x) are inside while the top and right
      edges are outside

Key Functions:
    - `build_zone_geometry()`: Resolve a single zone specification
    - `build_all_zone_geometries()`: Resolve every zone of an arena
    - `point_in_zone()`: Vectorized containment test
    - `contains()`: Scalar containment test
"""

import numpy as np
import pandas as pd
from dataclasses import dataclass
from types import MappingProxyType
from typing import Any, Dict, Mapping, Optional, Tuple, Union

from . import logger_get
from .arena_config import (
    ArenaConfig,
    CircleZone,
    PointsZone,
    ProportionZone,
    RectangleZone,
    ZoneSpec,
)
from .exceptions import (
    CyclicDependency,
    InsufficientPoints,
    InvalidArgument,
    InvalidZoneSpec,
    UnknownZoneType,
    UnresolvedParent,
    UnsupportedParentType,
)
from .math_support import as_coordinates, bounding_box, point_in_circle, point_in_polygon


@dataclass(frozen=True)
class PolygonGeometry:
    """Resolved polygon zone.

    Attributes:
        vertices (Tuple[Tuple[float, float], ...]): Vertices in edge order; the last vertex
            connects back to the first.
        zone_id (str): Id of the zone this geometry was built from.
        zone_name (str): Display name of the zone.
        parent_zone (str, optional): Parent zone id for geometries derived from a proportion zone.
    """

    vertices: Tuple[Tuple[float, float], ...]
    zone_id: str = ""
    zone_name: str = ""
    parent_zone: Optional[str] = None

    def __post_init__(self):
        object.__setattr__(
            self, "vertices", tuple((float(x), float(y)) for x, y in self.vertices)
        )
        if len(self.vertices) < 3:
            raise InsufficientPoints(
                f"Zone '{self.zone_id}': polygon requires at least 3 vertices, got {len(self.vertices)}"
            )

    @property
    def vertex_array(self) -> np.ndarray:
        """Vertices as a read-only ``(N, 2)`` float array."""
        arr = np.array(self.vertices, dtype=float)
        arr.flags.writeable = False
        return arr

    def bounding_box(self) -> Tuple[float, float, float, float]:
        """Return ``(x_min, x_max, y_min, y_max)``."""
        return bounding_box(self.vertex_array)


@dataclass(frozen=True)
class CircleGeometry:
    """Resolved circular zone; `radius` is in coordinate units."""

    center_x: float
    center_y: float
    radius: float
    zone_id: str = ""
    zone_name: str = ""

    def bounding_box(self) -> Tuple[float, float, float, float]:
        """Return ``(x_min, x_max, y_min, y_max)``."""
        return (
            self.center_x - self.radius,
            self.center_x + self.radius,
            self.center_y - self.radius,
            self.center_y + self.radius,
        )


ZoneGeometry = Union[PolygonGeometry, CircleGeometry]


def _polygon_from_points(spec: PointsZone, arena: ArenaConfig) -> PolygonGeometry:
    if len(spec.point_names) < 3:
        raise InsufficientPoints(
            f"Zone '{spec.id}': polygon zones require at least 3 points, got {len(spec.point_names)}"
        )
    # declared order defines the edges; vertices are not re-sorted
    vertices = tuple(
        (arena.get_point(n).x, arena.get_point(n).y) for n in spec.point_names
    )
    return PolygonGeometry(vertices, spec.id, spec.name)


def _rectangle_from_corners(spec: RectangleZone, arena: ArenaConfig) -> PolygonGeometry:
    if len(spec.point_names) != 2:
        raise InvalidZoneSpec(
            f"Zone '{spec.id}': rectangle zones require exactly 2 corner points, got {len(spec.point_names)}"
        )
    p1 = arena.get_point(spec.point_names[0])
    p2 = arena.get_point(spec.point_names[1])
    vertices = ((p1.x, p1.y), (p2.x, p1.y), (p2.x, p2.y), (p1.x, p2.y))
    return PolygonGeometry(vertices, spec.id, spec.name)


def _circle(spec: CircleZone, arena: ArenaConfig) -> CircleGeometry:
    if spec.radius_cm < 0:
        raise InvalidZoneSpec(
            f"Zone '{spec.id}': radius_cm must be non-negative, got {spec.radius_cm}"
        )
    center = arena.get_point(spec.center_point)
    if arena.scale is None:
        logger_get().warning(
            f"Zone '{spec.id}': arena '{arena.id}' has no scale; "
            f"using radius_cm={spec.radius_cm} as a coordinate-space radius"
        )
        radius = spec.radius_cm
    else:
        radius = spec.radius_cm * arena.scale
    return CircleGeometry(center.x, center.y, radius, spec.id, spec.name)


def _proportional(
    spec: ProportionZone, resolved: Mapping[str, ZoneGeometry]
) -> PolygonGeometry:
    parent = resolved.get(spec.parent_zone)
    if parent is None:
        raise UnresolvedParent(
            f"Zone '{spec.id}': parent zone '{spec.parent_zone}' is not resolved"
        )
    if not isinstance(parent, PolygonGeometry):
        raise UnsupportedParentType(
            f"Zone '{spec.id}': proportional zones support only polygon parents, "
            f"but parent '{spec.parent_zone}' is a {type(parent).__name__}"
        )
    x_min, x_max, y_min, y_max = parent.bounding_box()
    width = x_max - x_min
    height = y_max - y_min
    left, top, right, bottom = spec.proportion
    x0 = x_min + left * width
    x1 = x_min + right * width
    y0 = y_min + top * height
    y1 = y_min + bottom * height
    return PolygonGeometry(
        ((x0, y0), (x1, y0), (x1, y1), (x0, y1)),
        spec.id,
        spec.name,
        parent_zone=spec.parent_zone,
    )


def build_zone_geometry(
    spec: ZoneSpec,
    arena: ArenaConfig,
    resolved: Optional[Mapping[str, ZoneGeometry]] = None,
) -> ZoneGeometry:
    """Resolve one zone specification into a geometry.

    Args:
        spec (ZoneSpec): Zone specification.
        arena (ArenaConfig): Arena providing reference points and scale.
        resolved (Mapping[str, ZoneGeometry], optional): Already resolved geometries, required
            for proportional zones.

    Returns:
        ZoneGeometry: `PolygonGeometry` for points, rectangle and proportion zones;
        `CircleGeometry` for circle zones.

    Raises:
        UnknownZoneType: If `spec` is not a known zone specification type.
        InsufficientPoints: If a points zone names fewer than 3 points.
        MissingReferencePoint: If a named point is not defined in the arena.
        UnresolvedParent: If a proportional zone parent is not in `resolved`.
        UnsupportedParentType: If a proportional zone parent is not a polygon.
    """
    if isinstance(spec, PointsZone):
        return _polygon_from_points(spec, arena)
    if isinstance(spec, RectangleZone):
        return _rectangle_from_corners(spec, arena)
    if isinstance(spec, CircleZone):
        return _circle(spec, arena)
    if isinstance(spec, ProportionZone):
        return _proportional(spec, resolved or {})
    raise UnknownZoneType(
        f"Unknown zone specification {getattr(spec, 'id', spec)!r} of type {type(spec).__name__}"
    )


def build_all_zone_geometries(arena: ArenaConfig) -> Mapping[str, ZoneGeometry]:
    """Resolve every zone of an arena.

    Non-proportional zones are resolved first, in declaration order. Proportional zones are
    then resolved in repeated passes: a zone resolves once its parent is resolved. Resolution
    stops after a pass that makes no progress, and never runs more passes than there are zones.

    Args:
        arena (ArenaConfig): Arena configuration.

    Returns:
        Read-only mapping of zone id to geometry, in resolution order.

    Raises:
        UnresolvedParent: If a proportional zone refers to a zone id absent from the arena.
        CyclicDependency: If proportional zones depend on each other in a cycle.
        (plus any error raised by `build_zone_geometry`)
    """
    logger = logger_get()
    geometries: Dict[str, ZoneGeometry] = {}

    for spec in arena.zones:
        if not isinstance(spec, ProportionZone):
            geometries[spec.id] = build_zone_geometry(spec, arena, geometries)
            logger.debug(f"Arena '{arena.id}': resolved zone '{spec.id}'")

    remaining = [spec for spec in arena.zones if isinstance(spec, ProportionZone)]
    max_passes = len(arena.zones)
    passes = 0
    while remaining and passes < max_passes:
        passes += 1
        pending = []
        for spec in remaining:
            if spec.parent_zone in geometries:
                geometries[spec.id] = build_zone_geometry(spec, arena, geometries)
            else:
                pending.append(spec)
        logger.debug(
            f"Arena '{arena.id}': pass {passes} resolved {len(remaining) - len(pending)} proportional zone(s)"
        )
        if len(pending) == len(remaining):
            break
        remaining = pending

    if remaining:
        known_ids = set(arena.zone_ids)
        missing = [spec for spec in remaining if spec.parent_zone not in known_ids]
        if missing:
            raise UnresolvedParent(
                "Cannot resolve zone dependencies; missing parent zones: "
                + ", ".join(f"'{s.parent_zone}' (for '{s.id}')" for s in missing)
            )
        raise CyclicDependency(
            "Cannot resolve zone dependencies; cyclic parent references among zones: "
            + ", ".join(f"'{s.id}' -> '{s.parent_zone}'" for s in remaining)
        )

    return MappingProxyType(geometries)


def point_in_zone(geometry: ZoneGeometry, x: Any, y: Any) -> pd.arrays.BooleanArray:
    """Test coordinates against a zone geometry.

    Args:
        geometry (ZoneGeometry): Polygon or circle geometry.
        x: Scalar or sequence of x coordinates.
        y: Scalar or sequence of y coordinates.

    Returns:
        pandas nullable boolean array, one element per point: True inside, False outside,
        `pd.NA` when either coordinate is missing.

    Raises:
        InvalidArgument: If `x` and `y` have different lengths.
        UnknownZoneType: If `geometry` is not a known geometry type.
    """
    try:
        xa, ya = as_coordinates(x, y)
    except ValueError as e:
        raise InvalidArgument(str(e)) from e

    if isinstance(geometry, CircleGeometry):
        inside = point_in_circle(
            xa, ya, (geometry.center_x, geometry.center_y), geometry.radius
        )
    elif isinstance(geometry, PolygonGeometry):
        inside = point_in_polygon(xa, ya, geometry.vertex_array)
    else:
        raise UnknownZoneType(f"Unknown zone geometry type {type(geometry).__name__}")

    missing = np.isnan(xa) | np.isnan(ya)
    return pd.arrays.BooleanArray(inside, missing)


def contains(geometry: ZoneGeometry, x: Optional[float], y: Optional[float]) -> Optional[bool]:
    """Scalar form of `point_in_zone`.

    Returns:
        True or False, or None when `x` or `y` is missing.
    """
    result = point_in_zone(geometry, x, y)[0]
    return None if result is pd.NA else bool(result)
