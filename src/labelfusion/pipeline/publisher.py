"""
Kanał wyjściowy dla mapy zbiorczej
"""

from abc import ABC, abstractmethod
from pathlib import Path
import logging

from ..core.las_io import LASWriter
from ..core.point_cloud import PointCloud

logger = logging.getLogger(__name__)


class CloudPublisher(ABC):
    """Odbiorca pokolorowanej chmury (wizualizacja)"""

    @abstractmethod
    def publish(self, cloud: PointCloud) -> None:
        pass


class LASFilePublisher(CloudPublisher):
    """Nadpisuje plik LAS/LAZ przy każdej publikacji (ostatnia mapa zawsze na dysku)"""

    def __init__(self, output_path: str):
        self.output_path = Path(output_path)

    def publish(self, cloud: PointCloud) -> None:
        LASWriter.write(str(self.output_path), cloud)
