"""
Shared fixtures: configuration, fake collaborators, synthetic clouds
"""

import copy
import logging

import numpy as np
import pytest

from labelfusion.config import config_from_dict
from labelfusion.core.acquisition import CloudSource, OriginSource
from labelfusion.core.labels import LabelSpace
from labelfusion.core.point_cloud import PointCloud
from labelfusion.exceptions import CloudAcquisitionError, OriginAcquisitionError
from labelfusion.features.segmentation import Segment, SegmentSet
from labelfusion.ml.classifiers import SegmentClassifier
from labelfusion.pipeline.publisher import CloudPublisher

logging.basicConfig(level=logging.INFO)

CONFIG_DICT = {
    "min_point_count": 3,
    "appearance_color_sigma": 3.0,
    "appearance_range_sigma": 0.3,
    "appearance_weight": 5.0,
    "smoothness_range_sigma": 0.1,
    "smoothness_weight": 2.0,
    "crf_iterations": 5,
    "crf_neighbors": 8,
    "voxel_resolution": 0.02,
    "seed_resolution": 0.15,
    "cloud_resolution": 0.01,
    "acquisition_timeout": 5.0,
    "inference_timeout": 30.0,
    "frame_id": "map",
    "labels": [
        {"name": "floor", "color": [0, 0, 255]},
        {"name": "wall", "color": [0, 255, 0]},
        {"name": "table", "color": [255, 0, 0]},
    ],
}


class FixedClassifier(SegmentClassifier):
    """Returns the same posterior for every segment and counts calls"""

    def __init__(self, posterior):
        self.log_posterior = np.log(np.asarray(posterior, dtype=np.float64))
        self.calls = 0

    @property
    def n_labels(self) -> int:
        return len(self.log_posterior)

    def class_log_posterior(self, features):
        self.calls += 1
        return self.log_posterior.copy()


class RecordingPublisher(CloudPublisher):
    def __init__(self):
        self.published = []

    def publish(self, cloud):
        self.published.append(cloud)


class DictCloudSource(CloudSource):
    """(waypoint_id, instance_number) -> PointCloud"""

    def __init__(self, clouds=None):
        self.clouds = dict(clouds or {})
        self.requests = []

    def get_cloud(self, waypoint_id, resolution, instance_number=None):
        self.requests.append((waypoint_id, resolution, instance_number))
        key = (waypoint_id, instance_number)
        if key not in self.clouds:
            raise CloudAcquisitionError(f"Unknown observation {key}", waypoint_id=waypoint_id)
        return self.clouds[key].copy()


class DictOriginSource(OriginSource):
    def __init__(self, origins=None):
        self.origins = dict(origins or {})

    def get_origin(self, waypoint_id):
        if waypoint_id not in self.origins:
            raise OriginAcquisitionError(f"Unknown origin {waypoint_id}", waypoint_id=waypoint_id)
        return np.asarray(self.origins[waypoint_id], dtype=np.float64)


def make_segment_set(sizes, seed=0) -> SegmentSet:
    """Segments with consecutive point indices over a random Lab cloud"""
    rng = np.random.default_rng(seed)
    total = int(sum(sizes))
    cloud = PointCloud(
        coords=rng.uniform(0, 2, size=(total, 3)),
        colors=rng.integers(0, 256, size=(total, 3)),
        sensor_origin=np.zeros(3),
    )

    segments = []
    start = 0
    for seg_id, size in enumerate(sizes):
        segments.append(Segment(segment_id=seg_id, indices=np.arange(start, start + size), cloud=cloud))
        start += size
    return SegmentSet(segments=segments, cloud=cloud)


def make_observation_cloud(offset=(0.0, 0.0, 0.0)) -> PointCloud:
    """64-point cube (one supervoxel) plus a 2-point cluster far away"""
    steps = 0.005 + 0.03 * np.arange(4)
    cube = np.array(np.meshgrid(steps, steps, steps, indexing='ij')).reshape(3, -1).T
    far = np.array([[1.005, 1.005, 1.005], [1.045, 1.005, 1.005]])
    coords = np.vstack([cube, far]) + np.asarray(offset)

    colors = np.zeros((len(coords), 3), dtype=np.uint8)
    colors[:len(cube)] = (200, 180, 160)
    colors[len(cube):] = (20, 40, 60)
    return PointCloud(coords=coords, colors=colors)


@pytest.fixture
def config_dict():
    return copy.deepcopy(CONFIG_DICT)


@pytest.fixture
def config(config_dict):
    return config_from_dict(config_dict)


@pytest.fixture
def label_space(config):
    return LabelSpace.from_definitions(config.labels)


@pytest.fixture
def segment_set_factory():
    return make_segment_set


@pytest.fixture
def observation_cloud_factory():
    return make_observation_cloud


@pytest.fixture
def fixed_classifier():
    return FixedClassifier([0.7, 0.2, 0.1])


@pytest.fixture
def recording_publisher():
    return RecordingPublisher()


@pytest.fixture
def cloud_source():
    return DictCloudSource({
        ("A", None): make_observation_cloud(),
        ("B", None): make_observation_cloud(offset=(3.0, 0.0, 0.0)),
        ("A", 2): make_observation_cloud(offset=(0.0, 3.0, 0.0)),
    })


@pytest.fixture
def origin_source():
    return DictOriginSource({"A": [0.0, 0.0, 1.5], "B": [3.0, 0.0, 1.5]})
