#
# arena_config.py: arena configuration support
#
# Copyright DeGirum Corporation 2025
# All rights reserved
#
# Implements arena reference points, declarative zone specifications and YAML arena loading
#

"""
Arena Configuration Module Overview
===================================

This module defines the declarative description of a behavioral arena: named reference points
(pixel coordinates of landmarks such as arm ends or compartment corners), zone specifications
expressed in terms of those points or of other zones, and an optional scale converting
real-world centimeters into coordinate units.

Key Features:
    - **Reference Points**: Named coordinate anchors, unique within an arena
    - **Tagged Zone Specifications**: `PointsZone`, `RectangleZone`, `CircleZone`, `ProportionZone`
    - **YAML Loading**: Load one or many arenas from YAML files, YAML text, or dictionaries
    - **Schema Validation**: Arena documents are validated with `jsonschema` before parsing
    - **Immutable Values**: All configuration objects are frozen dataclasses

Typical Usage:
    ```python
    arena = load_arena_configs("arenas.yaml", arena_id="epm_arena")
    spec = arena.get_zone("open_top")
    point = arena.get_point("center")
    ```

YAML Layout:
    ```yaml
    arenas:
      - id: oft_arena
        scale: 5.0            # pixels per cm, optional
        points:
          top_left: [100, 100]
          bottom_right: [500, 500]
        zones:
          - id: arena
            name: Whole arena
            type: rectangle
            point_names: [top_left, bottom_right]
          - id: center
            name: Center
            type: proportion
            parent_zone: arena
            proportion: [0.25, 0.25, 0.75, 0.75]
    ```
"""

import yaml, jsonschema
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from types import MappingProxyType
from typing import Any, Dict, Mapping, Optional, Tuple, Union

from .exceptions import (
    InvalidArenaConfig,
    InvalidZoneSpec,
    MissingReferencePoint,
    NotFound,
    UnknownZoneType,
)


class ZoneType(Enum):
    """Zone specification kinds."""

    POINTS = "points"
    RECTANGLE = "rectangle"
    CIRCLE = "circle"
    PROPORTION = "proportion"


@dataclass(frozen=True)
class ReferencePoint:
    """Named coordinate anchor."""

    name: str
    x: float
    y: float


@dataclass(frozen=True)
class PointsZone:
    """Polygon zone built from named points in the declared vertex order."""

    id: str
    name: str
    point_names: Tuple[str, ...]
    zone_type = ZoneType.POINTS


@dataclass(frozen=True)
class RectangleZone:
    """Axis-aligned rectangle zone built from two opposite corner points."""

    id: str
    name: str
    point_names: Tuple[str, ...]
    zone_type = ZoneType.RECTANGLE


@dataclass(frozen=True)
class CircleZone:
    """Circular zone centered on a named point; radius is in centimeters."""

    id: str
    name: str
    center_point: str
    radius_cm: float
    zone_type = ZoneType.CIRCLE


@dataclass(frozen=True)
class ProportionZone:
    """Rectangle carved out of (or extending) the bounding box of another zone.

    `proportion` is ``(left, top, right, bottom)`` expressed as fractions of the parent
    bounding box width and height; values outside [0, 1] extend beyond the parent.
    """

    id: str
    name: str
    parent_zone: str
    proportion: Tuple[float, float, float, float]
    zone_type = ZoneType.PROPORTION


ZoneSpec = Union[PointsZone, RectangleZone, CircleZone, ProportionZone]


def _required(zone: Mapping, key: str, zone_id: Any) -> Any:
    value = zone.get(key)
    if value is None:
        raise InvalidZoneSpec(f"Zone '{zone_id}' is missing required field '{key}'")
    return value


def _number(value: Any, key: str, zone_id: str) -> float:
    try:
        return float(value)
    except (TypeError, ValueError):
        raise InvalidZoneSpec(
            f"Zone '{zone_id}' field '{key}' must be numeric, got {value!r}"
        ) from None


def zone_spec_from_dict(zone: Mapping) -> ZoneSpec:
    """Convert a raw zone mapping into a typed zone specification.

    Args:
        zone (Mapping): Zone definition with `id`, `name`, `type` and type-specific fields.

    Returns:
        ZoneSpec: One of `PointsZone`, `RectangleZone`, `CircleZone`, `ProportionZone`.

    Raises:
        InvalidZoneSpec: If a required field is missing or malformed.
        UnknownZoneType: If `type` is not a supported zone type.
    """
    if not isinstance(zone, Mapping):
        raise InvalidZoneSpec(f"Zone definition must be a mapping, got {type(zone)}")
    zone_id = zone.get("id")
    if zone_id is None:
        raise InvalidZoneSpec(f"Zone definition is missing 'id' field: {dict(zone)}")
    zone_id = str(zone_id)
    name = str(zone.get("name", zone_id))
    type_tag = _required(zone, "type", zone_id)
    try:
        zone_type = ZoneType(type_tag)
    except ValueError:
        raise UnknownZoneType(
            f"Zone '{zone_id}' has unknown type '{type_tag}'; "
            f"must be one of: {', '.join(t.value for t in ZoneType)}"
        ) from None

    if zone_type == ZoneType.POINTS:
        names = _required(zone, "point_names", zone_id)
        return PointsZone(zone_id, name, tuple(str(n) for n in names))
    if zone_type == ZoneType.RECTANGLE:
        names = _required(zone, "point_names", zone_id)
        return RectangleZone(zone_id, name, tuple(str(n) for n in names))
    if zone_type == ZoneType.CIRCLE:
        center = _required(zone, "center_point", zone_id)
        radius = _required(zone, "radius_cm", zone_id)
        return CircleZone(
            zone_id, name, str(center), _number(radius, "radius_cm", zone_id)
        )

    parent = _required(zone, "parent_zone", zone_id)
    proportion = _required(zone, "proportion", zone_id)
    if not isinstance(proportion, (list, tuple)) or len(proportion) != 4:
        raise InvalidZoneSpec(
            f"Zone '{zone_id}' proportion must be [left, top, right, bottom], got {proportion}"
        )
    left, top, right, bottom = (_number(v, "proportion", zone_id) for v in proportion)
    return ProportionZone(zone_id, name, str(parent), (left, top, right, bottom))


@dataclass(frozen=True)
class ArenaConfig:
    """Arena geometry description: reference points, zone specifications and scale.

    Attributes:
        id (str): Arena identifier.
        points (Tuple[ReferencePoint, ...]): Reference points with unique names.
        zones (Tuple[ZoneSpec, ...]): Zone specifications with unique ids.
        scale (float, optional): Coordinate units per centimeter (pixels/cm).
        image (str, optional): Reference image the points were annotated on.
        metadata (Mapping): Free-form metadata.
    """

    id: str
    points: Tuple[ReferencePoint, ...] = ()
    zones: Tuple[ZoneSpec, ...] = ()
    scale: Optional[float] = None
    image: Optional[str] = None
    metadata: Mapping = field(default_factory=dict, compare=False)
    _point_index: Mapping = field(init=False, repr=False, compare=False)
    _zone_index: Mapping = field(init=False, repr=False, compare=False)

    def __post_init__(self):
        object.__setattr__(self, "points", tuple(self.points))
        object.__setattr__(self, "zones", tuple(self.zones))
        object.__setattr__(self, "metadata", MappingProxyType(dict(self.metadata)))

        point_index: Dict[str, ReferencePoint] = {}
        for p in self.points:
            if p.name in point_index:
                raise InvalidArenaConfig(
                    f"Arena '{self.id}' contains duplicate point name '{p.name}'"
                )
            point_index[p.name] = p

        zone_index: Dict[str, ZoneSpec] = {}
        for z in self.zones:
            if z.id in zone_index:
                raise InvalidZoneSpec(
                    f"Arena '{self.id}' contains duplicate zone id '{z.id}'"
                )
            zone_index[z.id] = z

        if self.scale is not None and not self.scale > 0:
            raise InvalidArenaConfig(
                f"Arena '{self.id}' scale must be a positive number, got {self.scale}"
            )

        object.__setattr__(self, "_point_index", MappingProxyType(point_index))
        object.__setattr__(self, "_zone_index", MappingProxyType(zone_index))

    @property
    def point_names(self) -> Tuple[str, ...]:
        return tuple(self._point_index)

    @property
    def zone_ids(self) -> Tuple[str, ...]:
        return tuple(self._zone_index)

    def get_point(self, name: str) -> ReferencePoint:
        """Look up a reference point by name.

        Raises:
            MissingReferencePoint: If the point is not defined in this arena.
        """
        point = self._point_index.get(name)
        if point is None:
            raise MissingReferencePoint(
                f"Point '{name}' is not defined in arena '{self.id}'"
            )
        return point

    def get_zone(self, zone_id: str) -> ZoneSpec:
        """Look up a zone specification by id.

        Raises:
            NotFound: If the zone is not defined in this arena.
        """
        zone = self._zone_index.get(zone_id)
        if zone is None:
            raise NotFound(f"Zone '{zone_id}' is not defined in arena '{self.id}'")
        return zone

    def validate_references(self):
        """Check that every point named by a zone is defined in the arena.

        Raises:
            MissingReferencePoint: Naming the first zone and point that do not resolve.
        """
        for z in self.zones:
            if isinstance(z, (PointsZone, RectangleZone)):
                names: Tuple[str, ...] = z.point_names
            elif isinstance(z, CircleZone):
                names = (z.center_point,)
            else:
                continue
            for n in names:
                if n not in self._point_index:
                    raise MissingReferencePoint(
                        f"Zone '{z.id}' references undefined point '{n}' in arena '{self.id}'"
                    )


#
# Schema for arena configuration documents
#

arena_config_schema_text = """
type: object
required: [arenas]
properties:
    arenas:
        type: array
        items:
            type: object
            required: [id]
            properties:
                id:
                    type: string
                    description: Arena identifier
                image:
                    type: string
                    description: Reference image the points were annotated on
                scale:
                    type: [number, "null"]
                    description: Coordinate units (pixels) per centimeter
                points:
                    type: object
                    additionalProperties:
                        type: array
                        prefixItems:
                            - type: number
                            - type: number
                        minItems: 2
                        items: false
                    description: Named reference points as [x, y]
                zones:
                    type: array
                    items:
                        type: object
                        required: [id, type]
                        properties:
                            id:
                                type: [string, integer]
                            name:
                                type: string
                            type:
                                type: string
                            point_names:
                                type: array
                                items:
                                    type: string
                            center_point:
                                type: string
                            radius_cm:
                                type: number
                            parent_zone:
                                type: string
                            proportion:
                                type: array
                                items:
                                    type: number
                metadata:
                    type: object
"""

arena_config_schema = yaml.safe_load(arena_config_schema_text)


def arena_config_from_dict(arena_def: Mapping) -> ArenaConfig:
    """Build an `ArenaConfig` from one entry of the `arenas` list.

    Raises:
        InvalidZoneSpec: If a zone definition is malformed.
        MissingReferencePoint: If a zone references an undefined point.
        InvalidArenaConfig: If points or scale are invalid.
    """
    points = tuple(
        ReferencePoint(str(name), float(xy[0]), float(xy[1]))
        for name, xy in (arena_def.get("points") or {}).items()
    )
    zones = tuple(zone_spec_from_dict(z) for z in (arena_def.get("zones") or []))
    arena = ArenaConfig(
        id=str(arena_def["id"]),
        points=points,
        zones=zones,
        scale=arena_def.get("scale"),
        image=arena_def.get("image"),
        metadata=arena_def.get("metadata") or {},
    )
    arena.validate_references()
    return arena


def load_arena_configs(
    source: Union[str, Path, Mapping], arena_id: Optional[str] = None
) -> Union[Dict[str, ArenaConfig], ArenaConfig]:
    """Load arena configurations.

    Args:
        source (Union[str, Path, Mapping]): Path to a YAML file, YAML text, or parsed dictionary.
        arena_id (str, optional): If given, return only the arena with this id.

    Returns:
        Dictionary of arena id to `ArenaConfig`, or a single `ArenaConfig` when `arena_id` is given.

    Raises:
        InvalidArenaConfig: If the document cannot be parsed or does not match the schema.
        NotFound: If `arena_id` is given but not present in the document.
    """
    if isinstance(source, Mapping):
        doc = source
    else:
        path = Path(source)
        try:
            is_file = "\n" not in str(source) and path.is_file()
        except OSError:
            is_file = False
        try:
            if is_file:
                with open(path, encoding="utf-8") as f:
                    doc = yaml.safe_load(f)
            else:
                doc = yaml.safe_load(str(source))
        except yaml.YAMLError as e:
            raise InvalidArenaConfig(f"Cannot parse arena configuration: {e}") from e

    try:
        jsonschema.validate(instance=doc, schema=arena_config_schema)
    except jsonschema.ValidationError as e:
        raise InvalidArenaConfig(f"Invalid arena configuration: {e.message}") from e
    # from here we guarantee that the document structure matches the schema

    arenas: Dict[str, ArenaConfig] = {}
    for arena_def in doc["arenas"]:
        arena = arena_config_from_dict(arena_def)
        if arena.id in arenas:
            raise InvalidArenaConfig(f"Duplicate arena id '{arena.id}'")
        arenas[arena.id] = arena

    if arena_id is not None:
        if arena_id not in arenas:
            raise NotFound(f"Arena ID '{arena_id}' not found in configuration")
        return arenas[arena_id]
    return arenas
