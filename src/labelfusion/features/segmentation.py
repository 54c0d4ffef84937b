"""
Segmentacja chmury na supervoxele i cechy segmentów

Segment = spójny przestrzennie zbiór punktów z jednym wektorem cech
i jednym wywołaniem klasyfikatora.

Cechy segmentu (SEGMENT_FEATURE_NAMES):
- Wygląd: średnia i odchylenie Lab
- Geometria PCA: linearity, planarity, sphericity, verticality, roughness (Weinmann et al.)
- Położenie względem sensora: wysokość, odległość
- Rozmiar: log(liczba punktów)
"""

import numpy as np
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import List, Optional
import logging

from ..core.point_cloud import PointCloud, voxel_downsample, voxel_grid_keys

logger = logging.getLogger(__name__)

SEGMENT_FEATURE_NAMES = [
    'L_mean', 'a_mean', 'b_mean',
    'L_std', 'a_std', 'b_std',
    'linearity', 'planarity', 'sphericity',
    'verticality', 'roughness',
    'height', 'range',
    'log_size',
]

N_SEGMENT_FEATURES = len(SEGMENT_FEATURE_NAMES)


@dataclass
class Segment:
    """Pojedynczy supervoxel"""
    segment_id: int
    indices: np.ndarray  # indeksy punktów w chmurze zvoxelizowanej
    cloud: PointCloud = field(repr=False)  # kolory w Lab
    features: Optional[np.ndarray] = field(default=None, repr=False)
    features_computed: bool = False

    @property
    def size(self) -> int:
        return len(self.indices)

    def compute_features(self) -> np.ndarray:
        """Oblicza wektor cech (raz - kolejne wywołania zwracają zapamiętany wynik)"""
        if self.features_computed:
            return self.features

        points = self.cloud.coords[self.indices]
        lab = self.cloud.colors[self.indices].astype(np.float64)

        features = np.zeros(N_SEGMENT_FEATURES)
        features[0:3] = lab.mean(axis=0)
        features[3:6] = lab.std(axis=0)
        features[6:11] = _pca_features(points)

        centroid = points.mean(axis=0)
        origin = self.cloud.sensor_origin
        if origin is not None:
            features[11] = centroid[2] - origin[2]
            features[12] = np.linalg.norm(centroid - origin)
        else:
            features[11] = centroid[2]
        features[13] = np.log(self.size)

        self.features = features
        self.features_computed = True
        return features


def _pca_features(points: np.ndarray) -> np.ndarray:
    """linearity, planarity, sphericity, verticality, roughness"""
    centered = points - points.mean(axis=0)
    cov_matrix = (centered.T @ centered) / len(points)

    eigenvalues, eigenvectors = np.linalg.eigh(cov_matrix)
    idx = eigenvalues.argsort()[::-1]
    eigenvalues = np.clip(eigenvalues[idx], 0.0, None)
    eigenvectors = eigenvectors[:, idx].T

    l1, l2, l3 = eigenvalues
    epsilon = 1e-8
    normal = eigenvectors[2]

    return np.array([
        (l1 - l2) / (l1 + epsilon),
        (l2 - l3) / (l1 + epsilon),
        l3 / (l1 + epsilon),
        1.0 - abs(normal[2]),
        np.abs(centered @ normal).std(),
    ])


@dataclass
class SegmentSet:
    """Wynik segmentacji: segmenty (posortowane po id) i chmura, którą indeksują"""
    segments: List[Segment]
    cloud: PointCloud

    def __len__(self) -> int:
        return len(self.segments)


class Segmenter(ABC):
    """Segmentacja chmury (Lab) na supervoxele"""

    @abstractmethod
    def segment(self, cloud: PointCloud) -> SegmentSet:
        pass


class VoxelSegmenter(Segmenter):
    """
    Supervoxele na siatce

    1. Downsampling chmury do voxel_resolution (chmura zvoxelizowana)
    2. Grupowanie voxeli w komórki seed_resolution - każda komórka to segment

    Usage:
        segmenter = VoxelSegmenter(voxel_resolution=0.02, seed_resolution=0.15)
        segment_set = segmenter.segment(lab_cloud)
    """

    def __init__(self, voxel_resolution: float = 0.02, seed_resolution: float = 0.15):
        if seed_resolution < voxel_resolution:
            raise ValueError(f"seed_resolution ({seed_resolution}) < voxel_resolution ({voxel_resolution})")
        self.voxel_resolution = voxel_resolution
        self.seed_resolution = seed_resolution

    def segment(self, cloud: PointCloud) -> SegmentSet:
        voxelized = voxel_downsample(cloud, self.voxel_resolution)
        if len(voxelized) == 0:
            return SegmentSet(segments=[], cloud=voxelized)

        _, inverse = voxel_grid_keys(voxelized.coords, self.seed_resolution)
        order = np.argsort(inverse, kind='stable')
        counts = np.bincount(inverse)
        groups = np.split(order, np.cumsum(counts)[:-1])

        segments = [
            Segment(segment_id=seg_id, indices=np.sort(group), cloud=voxelized)
            for seg_id, group in enumerate(groups)
            if len(group) > 0
        ]

        logger.info(f"Voxelized the cloud: {len(voxelized):,} points, {len(segments):,} supervoxels")
        return SegmentSet(segments=segments, cloud=voxelized)
