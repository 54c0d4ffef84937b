"""
Label Decoder - prawdopodobienstwa CRF -> etykiety punktow

- Twarda etykieta: argmax, remis -> najnizszy indeks klasy
- Prawdopodobienstwa (N, C) i czestosci klas (C,) znormalizowane przez N
- Kolorowanie chmury: etykieta -> kolor, punkty bez etykiety -> EMPTY_COLOR
"""

import numpy as np
from dataclasses import dataclass
from typing import Tuple
import logging

from ..core.labels import EMPTY_COLOR, LabelSpace
from ..core.point_cloud import PointCloud
from ..exceptions import InvariantViolation
from .energy import PointIndexMap

logger = logging.getLogger(__name__)


@dataclass
class DecodedLabels:
    """Wynik dekodowania (pozycja j = kolumna j macierzy)"""
    labels: np.ndarray  # (N,) int
    probabilities: np.ndarray  # (N, C)
    frequencies: np.ndarray  # (C,)
    points: np.ndarray  # (N, 3)

    @property
    def n_points(self) -> int:
        return len(self.labels)


class LabelDecoder:
    """
    Usage:
        decoder = LabelDecoder(label_space)
        decoded, colored = decoder.decode(probabilities, index_map, voxelized_cloud)
    """

    def __init__(self, label_space: LabelSpace):
        self.label_space = label_space

    def decode(
        self,
        probabilities: np.ndarray,
        index_map: PointIndexMap,
        cloud: PointCloud
    ) -> Tuple[DecodedLabels, PointCloud]:
        """
        Args:
            probabilities: (C, N) wynik inferencji
            index_map: kolejnosc kolumn
            cloud: chmura zvoxelizowana

        Returns:
            (DecodedLabels, pokolorowana kopia chmury)
        """
        n_labels = self.label_space.n_labels
        n_points = index_map.n_points
        if probabilities.shape != (n_labels, n_points):
            raise InvariantViolation(
                f"Probability matrix shape {probabilities.shape}, expected ({n_labels}, {n_points})"
            )

        per_point = probabilities.T.copy()  # (N, C)
        # np.argmax zwraca pierwszy indeks maksimum
        labels = np.argmax(per_point, axis=1) if n_points else np.zeros(0, dtype=np.int64)

        if n_points > 0:
            frequencies = per_point.sum(axis=0) / float(n_points)
        else:
            frequencies = np.zeros(n_labels)

        colored = cloud.copy()
        colored.colors[:] = EMPTY_COLOR
        colored.colors[index_map.point_indices] = self.label_space.colorize(labels)

        decoded = DecodedLabels(
            labels=labels.astype(np.int64),
            probabilities=per_point,
            frequencies=frequencies,
            points=cloud.coords[index_map.point_indices].copy(),
        )

        if n_points:
            unique, counts = np.unique(labels, return_counts=True)
            names = self.label_space.names
            summary = ", ".join(f"{names[c]}={n:,}" for c, n in zip(unique, counts))
            logger.info(f"Done classifying all the supervoxels: {summary}")
        else:
            logger.info("No labeled points in this request")

        return decoded, colored
