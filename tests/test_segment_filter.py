"""
Tests for segment filtering, feature aggregation and segmentation
"""

import logging

import numpy as np

from labelfusion.core.point_cloud import PointCloud
from labelfusion.features import (
    N_SEGMENT_FEATURES,
    VoxelSegmenter,
    filter_segments
)

logger = logging.getLogger(__name__)


def test_two_segments_one_below_threshold(segment_set_factory):
    """Sizes 5 and 2, threshold 3 -> one segment, N = 5"""
    segment_set = segment_set_factory([5, 2])

    retained = filter_segments(segment_set, min_point_count=3)

    assert len(retained) == 1
    assert retained.n_points == 5
    assert retained.n_discarded == 1
    assert retained.segments[0].segment_id == 0


def test_all_segments_below_threshold(segment_set_factory):
    segment_set = segment_set_factory([1, 2, 2])

    retained = filter_segments(segment_set, min_point_count=3)

    assert len(retained) == 0
    assert retained.n_points == 0
    assert retained.feature_matrix().shape == (0, 0)


def test_n_points_is_sum_of_kept_sizes(segment_set_factory):
    rng = np.random.default_rng(7)
    for _ in range(10):
        sizes = rng.integers(1, 12, size=rng.integers(1, 8)).tolist()
        threshold = int(rng.integers(1, 10))

        retained = filter_segments(segment_set_factory(sizes), min_point_count=threshold)

        expected = sum(s for s in sizes if s >= threshold)
        assert retained.n_points == expected, f"sizes={sizes} threshold={threshold}"
        assert all(s.size >= threshold for s in retained.segments)


def test_features_computed_only_for_kept_segments(segment_set_factory):
    segment_set = segment_set_factory([4, 1, 6])

    retained = filter_segments(segment_set, min_point_count=3)

    kept_ids = [s.segment_id for s in retained.segments]
    assert kept_ids == [0, 2], "Segment order must be preserved"
    for segment in segment_set.segments:
        assert segment.features_computed == (segment.segment_id in kept_ids)
    assert retained.feature_matrix().shape == (2, N_SEGMENT_FEATURES)


def test_compute_features_runs_once(segment_set_factory):
    segment = segment_set_factory([8]).segments[0]

    first = segment.compute_features()
    segment.cloud.colors[:] = 0  # later changes must not recompute
    second = segment.compute_features()

    assert first is second
    assert np.all(np.isfinite(first))


def test_segment_features_use_sensor_origin(segment_set_factory):
    segment = segment_set_factory([10]).segments[0]
    features = segment.compute_features()

    centroid = segment.cloud.coords[segment.indices].mean(axis=0)
    assert np.isclose(features[11], centroid[2])
    assert np.isclose(features[12], np.linalg.norm(centroid))
    assert np.isclose(features[13], np.log(10))


def test_voxel_segmenter_groups_by_seed_cell(observation_cloud_factory):
    cloud = observation_cloud_factory()

    segment_set = VoxelSegmenter(voxel_resolution=0.02, seed_resolution=0.15).segment(cloud)

    assert len(segment_set.cloud) == 66, "Every point sits in its own voxel"
    sizes = sorted(s.size for s in segment_set.segments)
    assert sizes == [2, 64]

    covered = np.concatenate([s.indices for s in segment_set.segments])
    assert np.array_equal(np.sort(covered), np.arange(len(segment_set.cloud)))
    ids = [s.segment_id for s in segment_set.segments]
    assert ids == sorted(ids)


def test_voxel_segmenter_empty_cloud():
    segment_set = VoxelSegmenter().segment(PointCloud.empty())

    assert len(segment_set) == 0
    assert len(segment_set.cloud) == 0
