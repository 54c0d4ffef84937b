"""
Kontener chmury punktów (XYZ + RGB) i downsampling na siatce voxeli

Kolory przechowywane jako uint8 [0-255], współrzędne jako float64.
"""

import numpy as np
from dataclasses import dataclass, field
from typing import Iterable, Optional, Tuple
import logging

logger = logging.getLogger(__name__)


@dataclass
class PointCloud:
    """Chmura punktów z kolorami"""
    coords: np.ndarray  # (P, 3) float64
    colors: np.ndarray  # (P, 3) uint8
    frame_id: str = "map"
    sensor_origin: Optional[np.ndarray] = None  # (3,)

    def __post_init__(self):
        self.coords = np.asarray(self.coords, dtype=np.float64).reshape(-1, 3)
        self.colors = np.asarray(self.colors, dtype=np.uint8).reshape(-1, 3)
        if len(self.coords) != len(self.colors):
            raise ValueError(f"coords/colors length mismatch: {len(self.coords)} != {len(self.colors)}")
        if self.sensor_origin is not None:
            self.sensor_origin = np.asarray(self.sensor_origin, dtype=np.float64).reshape(3)

    def __len__(self) -> int:
        return len(self.coords)

    def __repr__(self):
        return f"PointCloud(points={len(self):,}, frame_id='{self.frame_id}')"

    def copy(self) -> 'PointCloud':
        origin = None if self.sensor_origin is None else self.sensor_origin.copy()
        return PointCloud(self.coords.copy(), self.colors.copy(), self.frame_id, origin)

    @classmethod
    def empty(cls, frame_id: str = "map") -> 'PointCloud':
        return cls(np.zeros((0, 3)), np.zeros((0, 3), dtype=np.uint8), frame_id)

    @classmethod
    def concatenate(cls, clouds: Iterable['PointCloud'], frame_id: str = "map") -> 'PointCloud':
        """Skleja chmury w jedną (bez metadanych sensora)"""
        clouds = list(clouds)
        if not clouds:
            return cls.empty(frame_id)
        coords = np.vstack([c.coords for c in clouds])
        colors = np.vstack([c.colors for c in clouds])
        return cls(coords, colors, frame_id)


def voxel_grid_keys(coords: np.ndarray, resolution: float) -> Tuple[np.ndarray, np.ndarray]:
    """
    Przypisuje punkty do komórek siatki

    Args:
        coords: (P, 3) współrzędne
        resolution: rozmiar komórki w metrach

    Returns:
        (unique_cells, inverse) - komórki posortowane leksykograficznie (K, 3)
        i indeks komórki dla każdego punktu (P,)
    """
    cells = np.floor(coords / resolution).astype(np.int64)
    unique_cells, inverse = np.unique(cells, axis=0, return_inverse=True)
    return unique_cells, inverse.reshape(-1)


def voxel_downsample(cloud: PointCloud, resolution: float) -> PointCloud:
    """
    Downsampling: jeden punkt (centroid, średni kolor) na voxel

    Args:
        cloud: chmura wejściowa
        resolution: rozmiar voxela w metrach

    Returns:
        Nowa chmura, punkty w kolejności komórek siatki
    """
    if len(cloud) == 0:
        return cloud.copy()

    _, inverse = voxel_grid_keys(cloud.coords, resolution)
    n_voxels = int(inverse.max()) + 1
    counts = np.bincount(inverse, minlength=n_voxels).astype(np.float64)

    coords = np.zeros((n_voxels, 3))
    colors = np.zeros((n_voxels, 3))
    for d in range(3):
        coords[:, d] = np.bincount(inverse, weights=cloud.coords[:, d], minlength=n_voxels) / counts
        colors[:, d] = np.bincount(inverse, weights=cloud.colors[:, d].astype(np.float64),
                                   minlength=n_voxels) / counts

    logger.debug(f"Voxel downsample ({resolution}m): {len(cloud):,} -> {n_voxels:,} points")

    return PointCloud(
        coords=coords,
        colors=np.clip(np.round(colors), 0, 255).astype(np.uint8),
        frame_id=cloud.frame_id,
        sensor_origin=cloud.sensor_origin
    )
