"""
Filtrowanie segmentów po liczbie punktów i agregacja cech

Segmenty mniejsze niż min_point_count są usuwane całkowicie - ich punkty
nie pojawiają się w żadnym wyniku.
"""

import numpy as np
from dataclasses import dataclass
from typing import List
import logging

from .segmentation import Segment, SegmentSet

logger = logging.getLogger(__name__)


@dataclass
class RetainedSegments:
    """Segmenty zachowane do klasyfikacji"""
    segments: List[Segment]
    n_points: int  # N - suma rozmiarów
    n_discarded: int = 0

    def __len__(self) -> int:
        return len(self.segments)

    def feature_matrix(self) -> np.ndarray:
        """(S, F) cechy w kolejności segmentów"""
        if not self.segments:
            return np.zeros((0, 0))
        return np.vstack([s.features for s in self.segments])


def filter_segments(segment_set: SegmentSet, min_point_count: int) -> RetainedSegments:
    """
    Zachowuje segmenty z size >= min_point_count i liczy ich cechy

    Args:
        segment_set: wynik segmentacji
        min_point_count: minimalna liczba punktów segmentu

    Returns:
        RetainedSegments (kolejność segmentów zachowana)
    """
    retained = []
    n_points = 0

    for segment in segment_set.segments:
        if segment.size >= min_point_count:
            segment.compute_features()
            retained.append(segment)
            n_points += segment.size

    n_discarded = len(segment_set.segments) - len(retained)
    logger.info(f"Remaining valid points: {n_points:,} "
                f"({len(retained):,} segments kept, {n_discarded:,} discarded)")

    return RetainedSegments(segments=retained, n_points=n_points, n_discarded=n_discarded)
