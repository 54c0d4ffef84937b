"""
Energy Matrix Builder - macierze dla dense CRF

Kolumna j we wszystkich macierzach (unary, appearance, smoothness) oraz pozycja j
w zdekodowanych wynikach odnosi sie do tego samego punktu. Kolejnosc kolumn
ustala PointIndexMap, budowany raz na zadanie: segmenty w kolejnosci, potem ich punkty.
"""

import numpy as np
from dataclasses import dataclass
from typing import Dict, List
import logging

from ..config import CRFConfig
from ..core.point_cloud import PointCloud
from ..exceptions import InvariantViolation
from ..features.segment_filter import RetainedSegments
from .classifier_adapter import SegmentPosteriors

logger = logging.getLogger(__name__)


class PointIndexMap:
    """
    Mapowanie indeks punktu (chmura zvoxelizowana) <-> kolumna macierzy

    Attributes:
        point_indices: (N,) kolumna -> indeks punktu
        segment_ids: (N,) kolumna -> id segmentu
        slices: id segmentu -> zakres kolumn
    """

    def __init__(self, retained: RetainedSegments):
        self.slices: Dict[int, slice] = {}
        indices: List[np.ndarray] = []
        owners: List[np.ndarray] = []

        column = 0
        for segment in retained.segments:
            self.slices[segment.segment_id] = slice(column, column + segment.size)
            indices.append(np.asarray(segment.indices, dtype=np.int64))
            owners.append(np.full(segment.size, segment.segment_id, dtype=np.int64))
            column += segment.size

        self.point_indices = np.concatenate(indices) if indices else np.zeros(0, dtype=np.int64)
        self.segment_ids = np.concatenate(owners) if owners else np.zeros(0, dtype=np.int64)
        self._column_of = {int(p): j for j, p in enumerate(self.point_indices)}

        if column != retained.n_points:
            raise InvariantViolation(f"Index map has {column} columns, retained set has {retained.n_points} points")

    @property
    def n_points(self) -> int:
        return len(self.point_indices)

    def column_of(self, point_index: int) -> int:
        """Kolumna dla punktu (KeyError dla punktow odrzuconych)"""
        return self._column_of[point_index]

    def __len__(self) -> int:
        return self.n_points


@dataclass
class PairwiseTerm:
    """Czlon parowy: cechy (D, N) i waga kompatybilnosci Potts"""
    features: np.ndarray
    weight: float
    name: str = ""


@dataclass
class EnergyMatrices:
    """Macierze wejsciowe inferencji"""
    unary: np.ndarray  # (C, N) energia = -log posterior
    appearance: PairwiseTerm  # (6, N) pozycja + kolor Lab
    smoothness: PairwiseTerm  # (3, N) pozycja

    @property
    def n_points(self) -> int:
        return self.unary.shape[1]

    @property
    def n_labels(self) -> int:
        return self.unary.shape[0]

    @property
    def pairwise(self) -> List[PairwiseTerm]:
        return [self.appearance, self.smoothness]


class EnergyMatrixBuilder:
    """
    Buduje macierze unary i cechy parowe z posteriorow segmentow

    Usage:
        builder = EnergyMatrixBuilder(config.crf)
        energies = builder.build(retained, posteriors, index_map, voxelized_cloud)
    """

    def __init__(self, config: CRFConfig):
        self.config = config

    def build(
        self,
        retained: RetainedSegments,
        posteriors: SegmentPosteriors,
        index_map: PointIndexMap,
        cloud: PointCloud
    ) -> EnergyMatrices:
        """
        Args:
            retained: zachowane segmenty
            posteriors: log-posteriory klas segmentow
            index_map: kolejnosc kolumn
            cloud: chmura zvoxelizowana (kolory Lab)

        Returns:
            EnergyMatrices
        """
        n_points = index_map.n_points
        n_labels = posteriors.log_posteriors.shape[1]

        unary = np.zeros((n_labels, n_points))
        for segment in retained.segments:
            columns = index_map.slices[segment.segment_id]
            unary[:, columns] = -posteriors.for_segment(segment.segment_id)[:, None]

        coords = cloud.coords[index_map.point_indices].T  # (3, N)
        colors = cloud.colors[index_map.point_indices].astype(np.float64).T  # (3, N)

        cfg = self.config
        appearance = np.vstack([
            coords / cfg.appearance_range_sigma,
            colors / cfg.appearance_color_sigma,
        ])
        smoothness = coords / cfg.smoothness_range_sigma

        logger.debug(f"Energy matrices: unary {unary.shape}, appearance {appearance.shape}, "
                     f"smoothness {smoothness.shape}")

        return EnergyMatrices(
            unary=unary,
            appearance=PairwiseTerm(appearance, cfg.appearance_weight, 'appearance'),
            smoothness=PairwiseTerm(smoothness, cfg.smoothness_weight, 'smoothness'),
        )
