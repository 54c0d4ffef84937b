"""
Tests for label decoding and cloud colorization
"""

import numpy as np
import pytest

from labelfusion.core.labels import EMPTY_COLOR
from labelfusion.exceptions import InvariantViolation
from labelfusion.features import filter_segments
from labelfusion.ml import LabelDecoder, PointIndexMap


def _index_map(segment_set_factory, sizes, min_point_count=3):
    segment_set = segment_set_factory(sizes)
    index_map = PointIndexMap(filter_segments(segment_set, min_point_count))
    return segment_set.cloud, index_map


def test_argmax_and_tie_to_lowest_index(segment_set_factory, label_space):
    cloud, index_map = _index_map(segment_set_factory, [4])
    probabilities = np.array([
        [0.2, 0.4, 0.5, 0.1],
        [0.7, 0.4, 0.25, 0.45],
        [0.1, 0.2, 0.25, 0.45],
    ])

    decoded, _ = LabelDecoder(label_space).decode(probabilities, index_map, cloud)

    assert decoded.labels.tolist() == [1, 0, 0, 1]


def test_frequencies_are_mean_probabilities(segment_set_factory, label_space):
    cloud, index_map = _index_map(segment_set_factory, [6, 1, 4])
    rng = np.random.default_rng(3)
    probabilities = rng.dirichlet(np.ones(3), size=10).T

    decoded, _ = LabelDecoder(label_space).decode(probabilities, index_map, cloud)

    assert decoded.probabilities.shape == (10, 3)
    assert np.allclose(decoded.probabilities, probabilities.T)
    assert np.allclose(decoded.frequencies, probabilities.mean(axis=1))
    assert np.isclose(decoded.frequencies.sum(), 1.0)


def test_points_follow_column_order(segment_set_factory, label_space):
    cloud, index_map = _index_map(segment_set_factory, [3, 2, 5])
    probabilities = np.full((3, 8), 1.0 / 3)

    decoded, _ = LabelDecoder(label_space).decode(probabilities, index_map, cloud)

    assert np.allclose(decoded.points, cloud.coords[index_map.point_indices])


def test_colored_cloud(segment_set_factory, label_space):
    cloud, index_map = _index_map(segment_set_factory, [3, 2])
    probabilities = np.array([
        [0.1, 0.1, 0.8],
        [0.8, 0.1, 0.1],
        [0.1, 0.8, 0.1],
    ])

    decoded, colored = LabelDecoder(label_space).decode(probabilities, index_map, cloud)

    assert len(colored) == len(cloud)
    assert np.allclose(colored.coords, cloud.coords)
    table = label_space.color_table
    assert colored.colors[0].tolist() == table[1].tolist()
    assert colored.colors[1].tolist() == table[2].tolist()
    assert colored.colors[2].tolist() == table[0].tolist()
    # punkty odrzuconego segmentu
    assert colored.colors[3].tolist() == list(EMPTY_COLOR)
    assert colored.colors[4].tolist() == list(EMPTY_COLOR)
    assert colored is not cloud


def test_input_cloud_not_modified(segment_set_factory, label_space):
    cloud, index_map = _index_map(segment_set_factory, [5])
    before = cloud.colors.copy()

    LabelDecoder(label_space).decode(np.full((3, 5), 1.0 / 3), index_map, cloud)

    assert np.array_equal(cloud.colors, before)


def test_no_labeled_points(segment_set_factory, label_space):
    cloud, index_map = _index_map(segment_set_factory, [1, 2])

    decoded, colored = LabelDecoder(label_space).decode(np.zeros((3, 0)), index_map, cloud)

    assert decoded.n_points == 0
    assert decoded.probabilities.shape == (0, 3)
    assert decoded.frequencies.tolist() == [0.0, 0.0, 0.0]
    assert not np.any(np.isnan(decoded.frequencies))
    assert np.all(colored.colors == 0)


def test_shape_mismatch(segment_set_factory, label_space):
    cloud, index_map = _index_map(segment_set_factory, [5])

    with pytest.raises(InvariantViolation):
        LabelDecoder(label_space).decode(np.full((3, 4), 0.25), index_map, cloud)
