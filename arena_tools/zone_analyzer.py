#
# zone_analyzer.py: arena zone analyzer
#
# Copyright DeGirum Corporation 2025
# All rights reserved
#
# Implements analyzer computing all zone metrics of a recording for one arena
#

"""
Zone Analyzer Module Overview
=============================

This module provides an analyzer (`ZoneAnalyzer`) that bundles zone geometry resolution, per-frame
zone classification and zone temporal analytics for one arena.

Key Features:
    - **Resolve Once**: Zone geometry is built when the analyzer is created and shared read-only
      by every analysis
    - **Complete Metrics**: Membership, occupancy, entries, exits, latency and transitions in one call
    - **Glitch Filtering**: `min_duration` suppresses short tracking-noise visits
    - **Batch Processing**: `analyze_many()` processes independent recordings concurrently

Typical Usage:
    ```python
    arena = load_arena_configs("arenas.yaml", arena_id="epm_arena")
    analyzer = ZoneAnalyzer(arena, min_duration=0.5)
    result = analyzer.analyze(tracking, landmark="mouse_center")
    print(result.occupancy)
    ```
"""

import pandas as pd
from dataclasses import dataclass
from typing import Mapping, Optional, Sequence

from .analyzer_base import TrackingAnalyzerBase
from .arena_config import ArenaConfig
from .exceptions import InvalidArgument, NotFound
from .tracking_data import TrackingData
from .zone_analytics import (
    calculate_zone_entries,
    calculate_zone_exits,
    calculate_zone_latency,
    calculate_zone_occupancy,
    calculate_zone_transitions,
)
from .zone_classifier import classify_points_by_zone
from .zone_geometry import ZoneGeometry, build_all_zone_geometries


@dataclass(frozen=True, eq=False)
class ZoneAnalysisResult:
    """Zone metrics of one recording.

    Attributes:
        membership (pd.DataFrame): Per-frame zone membership table.
        occupancy (pd.DataFrame): Occupancy per landmark and zone, plus the outside row.
        entries (pd.DataFrame): Entries per landmark and zone.
        exits (pd.DataFrame): Exits per landmark and zone.
        latency (pd.DataFrame): First-entry latency per landmark and zone.
        transitions (pd.DataFrame): Transition counts per landmark.
    """

    membership: pd.DataFrame
    occupancy: pd.DataFrame
    entries: pd.DataFrame
    exits: pd.DataFrame
    latency: pd.DataFrame
    transitions: pd.DataFrame


class ZoneAnalyzer(TrackingAnalyzerBase):
    """Analyzer computing zone metrics of recordings in one arena.

    Attributes:
        arena (ArenaConfig): Arena configuration.
        zones (Mapping[str, ZoneGeometry]): Resolved zone geometries (read-only).
        min_duration (float): Minimum visit duration in seconds.
    """

    def __init__(
        self,
        arena: ArenaConfig,
        *,
        min_duration: float = 0.0,
        zone_ids: Optional[Sequence[str]] = None,
        include_outside_transitions: bool = True,
    ):
        """
        Constructor.

        Args:
            arena (ArenaConfig): Arena configuration with zone specifications.
            min_duration (float, optional): Minimum visit duration (seconds) for entries, exits,
                latency and transitions. Default 0 (no filtering).
            zone_ids (Sequence[str], optional): Zones to report. Default None reports all arena zones
                in resolution order.
            include_outside_transitions (bool, optional): Count transitions to and from the outside
                of all zones. Default True.

        Raises:
            InvalidArgument: If `min_duration` is negative.
            NotFound: If `zone_ids` names a zone absent from the arena.
            (plus any error raised while resolving zone geometry)
        """
        if min_duration is None or not min_duration >= 0:
            raise InvalidArgument(
                f"min_duration must be a non-negative number, got {min_duration}"
            )
        self.arena = arena
        self.min_duration = min_duration
        self.zones: Mapping[str, ZoneGeometry] = build_all_zone_geometries(arena)
        if zone_ids is None:
            self._zone_ids = list(self.zones)
        else:
            for zone_id in zone_ids:
                if zone_id not in self.zones:
                    raise NotFound(f"Zone '{zone_id}' is not defined in arena '{arena.id}'")
            self._zone_ids = list(zone_ids)
        self._include_outside = include_outside_transitions

    @property
    def zone_ids(self) -> Sequence[str]:
        return tuple(self._zone_ids)

    def analyze(
        self, tracking: TrackingData, landmark: Optional[str] = None
    ) -> ZoneAnalysisResult:
        """Compute all zone metrics of a recording.

        Args:
            tracking (TrackingData): Landmark positions.
            landmark (str, optional): Analyze only this landmark. Default None (all landmarks).

        Returns:
            ZoneAnalysisResult: Freshly computed metric tables.

        Raises:
            NotFound: If `landmark` is not present in `tracking`.
        """
        fps = tracking.fps
        membership = classify_points_by_zone(tracking, self.zones, landmark)
        return ZoneAnalysisResult(
            membership=membership,
            occupancy=calculate_zone_occupancy(
                membership, fps, self._zone_ids, include_outside=True
            ),
            entries=calculate_zone_entries(
                membership, fps, self.min_duration, self._zone_ids
            ),
            exits=calculate_zone_exits(membership, fps, self.min_duration, self._zone_ids),
            latency=calculate_zone_latency(
                membership, fps, self.min_duration, self._zone_ids
            ),
            transitions=calculate_zone_transitions(
                membership, fps, self.min_duration, self._include_outside
            ),
        )
