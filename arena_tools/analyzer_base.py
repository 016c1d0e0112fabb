# analyzer_base.py: base class for tracking analyzers
# Copyright DeGirum Corporation 2025
# All rights reserved

"""
Tracking Analyzer Base Module Overview
======================================

This module provides a base class (`TrackingAnalyzerBase`) for analyzers that compute behavioral
metrics from a recorded trajectory. Analyzers are configured once (arena geometry, thresholds) and
then applied to any number of recordings.

Key Concepts
------------

- **Analysis**:
  By overriding the `analyze()` method, child classes compute a result object from a
  `TrackingData` instance. `analyze()` must not modify its input or the analyzer itself,
  so one analyzer can serve many recordings.

- **Batch Processing**:
  `analyze_many()` fans independent recordings out over a thread pool and returns the
  results in input order.

Typical Usage Example
---------------------

1. Create a custom analyzer subclass:
   ```python
   from arena_tools.analyzer_base import TrackingAnalyzerBase

   class FrameCounter(TrackingAnalyzerBase):
       def analyze(self, tracking):
           return tracking.n_frames
   ```
2. Apply it to recordings:
   ```python
   counts = FrameCounter().analyze_many([tracking1, tracking2])
   ```
"""

from abc import ABC, abstractmethod
from concurrent.futures import ThreadPoolExecutor, as_completed
from typing import Any, Iterable, List, Optional

from . import logger_get
from .tracking_data import TrackingData


class TrackingAnalyzerBase(ABC):
    """
    Base class for analyzers which compute metrics from tracked trajectories.

    Subclasses should override:
      - `analyze(tracking)`: to compute and return the analysis result.
    """

    @abstractmethod
    def analyze(self, tracking: TrackingData) -> Any:
        """
        Analyze one recording.

        Args:
            tracking (TrackingData): Positions of tracked landmarks for one recording.

        Returns:
            Analysis result; the type is defined by the subclass.
        """

    def analyze_many(
        self, trackings: Iterable[TrackingData], max_workers: Optional[int] = None
    ) -> List[Any]:
        """
        Analyze several independent recordings concurrently.

        Args:
            trackings (Iterable[TrackingData]): Recordings to analyze.
            max_workers (int, optional): Maximum number of worker threads. Default None lets
                `ThreadPoolExecutor` choose.

        Returns:
            List of analysis results in the same order as `trackings`.

        Raises:
            Exception: The first error raised by `analyze()`; no partial results are returned.
        """
        items = list(trackings)
        results: List[Any] = [None] * len(items)
        if not items:
            return results

        with ThreadPoolExecutor(max_workers=max_workers) as executor:
            futures = {
                executor.submit(self.analyze, tracking): idx
                for idx, tracking in enumerate(items)
            }
            for future in as_completed(futures):
                idx = futures[future]
                results[idx] = future.result()
                logger_get().debug(
                    f"{type(self).__name__}: finished recording {idx + 1} of {len(items)}"
                )
        return results
