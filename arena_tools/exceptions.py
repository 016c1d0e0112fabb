#
# exceptions.py: arena_tools exception classes
#
# Copyright DeGirum Corporation 2025
# All rights reserved
#
# Implements exception hierarchy raised by zone geometry and zone analytics
#

"""
Exceptions Module Overview
==========================

All errors raised by `arena_tools` derive from `ArenaToolsError`. Each concrete error also
derives from the closest builtin exception, so code catching `ValueError` or `LookupError`
keeps working.

Error taxonomy:
    - `InvalidZoneSpec`: malformed zone definition (missing fields, wrong shapes)
    - `UnknownZoneType`: zone `type` tag is not one of the supported zone types
    - `InsufficientPoints`: polygon zone with fewer than 3 named points
    - `MissingReferencePoint`: zone refers to a point absent from the arena
    - `UnresolvedParent`: proportional zone refers to a zone id that does not exist
    - `CyclicDependency`: proportional zones depend on each other in a cycle
    - `UnsupportedParentType`: proportional zone parent is not a polygon
    - `InvalidArgument`: bad numeric argument or mismatched array lengths
    - `NotFound`: requested zone, landmark or arena is absent
    - `InvalidArenaConfig`: arena configuration document fails validation
"""


class ArenaToolsError(Exception):
    """Base class for all arena_tools errors."""


class InvalidZoneSpec(ArenaToolsError, ValueError):
    """Zone definition is malformed."""


class UnknownZoneType(InvalidZoneSpec):
    """Zone type tag is not recognized."""


class InsufficientPoints(InvalidZoneSpec):
    """Polygon zone has fewer than 3 points."""


class MissingReferencePoint(ArenaToolsError, LookupError):
    """Named reference point is not defined in the arena."""


class UnresolvedParent(ArenaToolsError, LookupError):
    """Proportional zone parent does not exist among arena zones."""


class CyclicDependency(ArenaToolsError, ValueError):
    """Proportional zones form a dependency cycle."""


class UnsupportedParentType(ArenaToolsError, TypeError):
    """Proportional zone parent geometry is not a polygon."""


class InvalidArgument(ArenaToolsError, ValueError):
    """Argument value is out of the allowed range."""


class NotFound(ArenaToolsError, LookupError):
    """Requested item is not present."""


class InvalidArenaConfig(ArenaToolsError, ValueError):
    """Arena configuration document is invalid."""
