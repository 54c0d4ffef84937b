"""
Wczytywanie i zapis chmur punktów LAS/LAZ

Używa laspy; kolory w plikach LAS są 16-bitowe, w PointCloud 8-bitowe.
"""

import laspy
import numpy as np
from pathlib import Path
from typing import Dict
import logging

from .point_cloud import PointCloud

logger = logging.getLogger(__name__)


class LASLoader:
    """Wczytywanie chmur punktów LAS/LAZ do PointCloud"""

    def __init__(self, file_path: str):
        """
        Args:
            file_path: Ścieżka do pliku LAS/LAZ
        """
        self.file_path = Path(file_path)
        if not self.file_path.exists():
            raise FileNotFoundError(f"Plik nie istnieje: {file_path}")

    def load(self, frame_id: str = "map") -> PointCloud:
        """
        Wczytuje chmurę punktów

        Args:
            frame_id: Układ współrzędnych przypisany chmurze

        Returns:
            PointCloud (kolory uint8; czarne jeśli plik nie ma RGB)
        """
        with laspy.open(self.file_path) as f:
            las = f.read()

        coords = np.vstack([las.x, las.y, las.z]).T
        n_points = len(coords)

        colors = np.zeros((n_points, 3), dtype=np.uint8)
        if 'red' in las.point_format.dimension_names:
            rgb = np.vstack([las.red, las.green, las.blue]).T.astype(np.float64)
            # 16-bit RGB -> 8-bit (pliki z 8-bitowymi wartościami zostawiamy)
            if rgb.size and rgb.max() > 255:
                rgb = rgb / 257.0
            colors = np.clip(np.round(rgb), 0, 255).astype(np.uint8)
        else:
            logger.info(f"{self.file_path.name}: brak RGB, kolory czarne")

        logger.info(f"Wczytano {n_points:,} punktów z {self.file_path.name}")
        return PointCloud(coords=coords, colors=colors, frame_id=frame_id)

    @staticmethod
    def get_file_info(file_path: str) -> Dict:
        """Szybka informacja o pliku (tylko nagłówek)"""
        with laspy.open(file_path) as f:
            header = f.header
            return {
                'n_points': header.point_count,
                'version': str(header.version),
                'point_format': header.point_format.id,
            }


class LASWriter:
    """Zapis chmur punktów z kolorami"""

    @staticmethod
    def write(output_path: str, cloud: PointCloud) -> None:
        """
        Zapisuje chmurę do pliku LAS/LAZ (LAS 1.2, point format 3)

        Args:
            output_path: Ścieżka wyjściowa (*.las lub *.laz)
            cloud: PointCloud
        """
        output_path = Path(output_path)
        n_points = len(cloud)

        header = laspy.LasHeader(point_format=3, version="1.2")
        header.offsets = cloud.coords.min(axis=0) if n_points else np.zeros(3)
        header.scales = [0.001, 0.001, 0.001]  # 1mm precision

        las = laspy.LasData(header)
        las.x = cloud.coords[:, 0]
        las.y = cloud.coords[:, 1]
        las.z = cloud.coords[:, 2]

        # 8-bit -> 16-bit
        colors = cloud.colors.astype(np.uint16) * 257
        las.red = colors[:, 0]
        las.green = colors[:, 1]
        las.blue = colors[:, 2]

        output_path.parent.mkdir(parents=True, exist_ok=True)
        las.write(output_path)

        logger.info(f"Zapisano {n_points:,} punktów do: {output_path.name}")
