"""
Segmentacja na supervoxele i cechy segmentów
"""

from .segmentation import (
    Segment,
    SegmentSet,
    Segmenter,
    VoxelSegmenter,
    SEGMENT_FEATURE_NAMES,
    N_SEGMENT_FEATURES
)
from .segment_filter import RetainedSegments, filter_segments

__all__ = [
    'Segment',
    'SegmentSet',
    'Segmenter',
    'VoxelSegmenter',
    'SEGMENT_FEATURE_NAMES',
    'N_SEGMENT_FEATURES',
    'RetainedSegments',
    'filter_segments'
]
