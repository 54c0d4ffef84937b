"""
Tests for the classifier adapter, point index map and energy matrices
"""

import numpy as np
import pytest

from labelfusion.exceptions import InvariantViolation
from labelfusion.features import filter_segments
from labelfusion.ml import (
    EnergyMatrixBuilder,
    PointIndexMap,
    SegmentClassifier,
    SegmentClassifierAdapter
)


class PerSegmentClassifier(SegmentClassifier):
    """Posterior depends on the segment size (log_size feature)"""

    n_labels = 3

    def class_log_posterior(self, features):
        size = int(round(np.exp(features[13])))
        posterior = np.full(3, 0.1)
        posterior[size % 3] = 0.8
        return np.log(posterior)


def _prepare(segment_set_factory, sizes, classifier, min_point_count=3):
    segment_set = segment_set_factory(sizes)
    retained = filter_segments(segment_set, min_point_count)
    index_map = PointIndexMap(retained)
    posteriors = SegmentClassifierAdapter(classifier, 3).classify(retained)
    return segment_set, retained, index_map, posteriors


def test_adapter_calls_classifier_once_per_segment(segment_set_factory, fixed_classifier):
    segment_set = segment_set_factory([10, 4, 1, 7])
    retained = filter_segments(segment_set, 3)

    posteriors = SegmentClassifierAdapter(fixed_classifier, 3).classify(retained)

    assert fixed_classifier.calls == 3, "One call per kept segment, not per point"
    assert posteriors.segment_ids == [0, 1, 3]
    assert posteriors.log_posteriors.shape == (3, 3)


def test_adapter_rejects_label_count_mismatch(fixed_classifier):
    with pytest.raises(InvariantViolation):
        SegmentClassifierAdapter(fixed_classifier, 4)


def test_adapter_rejects_wrong_output_length(segment_set_factory):
    class BrokenClassifier(SegmentClassifier):
        n_labels = 3

        def class_log_posterior(self, features):
            return np.zeros(2)

    retained = filter_segments(segment_set_factory([5]), 3)
    with pytest.raises(InvariantViolation):
        SegmentClassifierAdapter(BrokenClassifier(), 3).classify(retained)


def test_index_map_is_segment_major(segment_set_factory):
    segment_set = segment_set_factory([4, 2, 5])
    retained = filter_segments(segment_set, 3)

    index_map = PointIndexMap(retained)

    assert index_map.n_points == 9
    assert index_map.point_indices.tolist() == [0, 1, 2, 3, 6, 7, 8, 9, 10]
    assert index_map.segment_ids.tolist() == [0] * 4 + [2] * 5
    assert index_map.slices[2] == slice(4, 9)
    assert index_map.column_of(6) == 4
    with pytest.raises(KeyError):
        index_map.column_of(4)  # discarded segment


def test_matrix_shapes(segment_set_factory, config, fixed_classifier):
    segment_set, retained, index_map, posteriors = _prepare(segment_set_factory, [5, 2, 6], fixed_classifier)

    energies = EnergyMatrixBuilder(config.crf).build(retained, posteriors, index_map, segment_set.cloud)

    assert energies.unary.shape == (3, 11)
    assert energies.appearance.features.shape == (6, 11)
    assert energies.smoothness.features.shape == (3, 11)
    assert energies.n_points == retained.n_points


def test_unary_replicates_segment_posterior(segment_set_factory, config):
    segment_set, retained, index_map, posteriors = _prepare(segment_set_factory, [4, 5, 6], PerSegmentClassifier())

    energies = EnergyMatrixBuilder(config.crf).build(retained, posteriors, index_map, segment_set.cloud)

    for segment in retained.segments:
        columns = energies.unary[:, index_map.slices[segment.segment_id]]
        expected = -posteriors.for_segment(segment.segment_id)
        assert np.allclose(columns, expected[:, None])
        assert np.argmin(columns[:, 0]) == segment.size % 3


def test_columns_refer_to_same_point(segment_set_factory, config, fixed_classifier):
    segment_set, retained, index_map, posteriors = _prepare(segment_set_factory, [3, 1, 4, 6], fixed_classifier)
    cloud = segment_set.cloud
    crf = config.crf

    energies = EnergyMatrixBuilder(crf).build(retained, posteriors, index_map, cloud)

    for j, point_index in enumerate(index_map.point_indices):
        xyz = cloud.coords[point_index]
        lab = cloud.colors[point_index].astype(float)
        assert np.allclose(energies.appearance.features[:3, j], xyz / crf.appearance_range_sigma)
        assert np.allclose(energies.appearance.features[3:, j], lab / crf.appearance_color_sigma)
        assert np.allclose(energies.smoothness.features[:, j], xyz / crf.smoothness_range_sigma)


def test_weights_attached_not_baked_in(segment_set_factory, config, fixed_classifier):
    segment_set, retained, index_map, posteriors = _prepare(segment_set_factory, [5], fixed_classifier)

    energies = EnergyMatrixBuilder(config.crf).build(retained, posteriors, index_map, segment_set.cloud)

    assert energies.appearance.weight == config.crf.appearance_weight
    assert energies.smoothness.weight == config.crf.smoothness_weight
    coords = segment_set.cloud.coords[index_map.point_indices].T
    assert np.allclose(energies.smoothness.features, coords / config.crf.smoothness_range_sigma)


def test_empty_retained_set(segment_set_factory, config, fixed_classifier):
    segment_set, retained, index_map, posteriors = _prepare(segment_set_factory, [1, 2], fixed_classifier)

    energies = EnergyMatrixBuilder(config.crf).build(retained, posteriors, index_map, segment_set.cloud)

    assert fixed_classifier.calls == 0
    assert energies.unary.shape == (3, 0)
    assert energies.appearance.features.shape == (6, 0)
    assert energies.smoothness.features.shape == (3, 0)
