"""
Źródła danych dla żądań etykietowania

- CloudSource / OriginSource: interfejsy zewnętrznych serwisów
- LASObservationSource: chmury obserwacji z katalogu plików LAS/LAZ
- JSONOriginSource: pozycje sensora z pliku JSON
- PlainObservationStrategy / InstanceObservationStrategy: wybór chmury dla typu żądania
- call_with_timeout: ograniczenie czasu blokujących wywołań
"""

import json
import logging
from abc import ABC, abstractmethod
from concurrent.futures import ThreadPoolExecutor, TimeoutError as FuturesTimeout
from pathlib import Path
from typing import Callable, Dict, Optional, TypeVar

import laspy
import numpy as np

from ..exceptions import CloudAcquisitionError, OriginAcquisitionError
from .las_io import LASLoader
from .point_cloud import PointCloud, voxel_downsample

logger = logging.getLogger(__name__)

T = TypeVar('T')


def call_with_timeout(func: Callable[..., T], timeout: Optional[float], on_timeout: Callable[[], Exception],
                      *args, **kwargs) -> T:
    """
    Wywołuje func z limitem czasu

    Wątek roboczy nie jest przerywany po przekroczeniu limitu - wynik jest porzucany.

    Args:
        func: funkcja do wywołania
        timeout: limit w sekundach (None = bez limitu, wywołanie bezpośrednie)
        on_timeout: fabryka wyjątku rzucanego po przekroczeniu limitu

    Returns:
        Wynik func
    """
    if timeout is None:
        return func(*args, **kwargs)

    executor = ThreadPoolExecutor(max_workers=1)
    future = executor.submit(func, *args, **kwargs)
    try:
        return future.result(timeout=timeout)
    except FuturesTimeout:
        future.cancel()
        raise on_timeout() from None
    finally:
        executor.shutdown(wait=False)


class CloudSource(ABC):
    """Serwis zwracający chmurę obserwacji"""

    @abstractmethod
    def get_cloud(self, waypoint_id: str, resolution: float,
                  instance_number: Optional[int] = None) -> PointCloud:
        """Zwraca chmurę lub rzuca CloudAcquisitionError"""
        pass


class OriginSource(ABC):
    """Serwis zwracający pozycję sensora dla obserwacji"""

    @abstractmethod
    def get_origin(self, waypoint_id: str) -> np.ndarray:
        """Zwraca (3,) lub rzuca OriginAcquisitionError"""
        pass


class LASObservationSource(CloudSource):
    """
    Chmury obserwacji z katalogu

    Układ plików:
        <root>/<waypoint_id>.las              - obserwacja
        <root>/<waypoint_id>_<instance>.las   - obserwacja instancji
    (rozszerzenie .las lub .laz)
    """

    EXTENSIONS = ('.las', '.laz')

    def __init__(self, root: str, frame_id: str = "map"):
        self.root = Path(root)
        self.frame_id = frame_id
        if not self.root.is_dir():
            raise FileNotFoundError(f"Katalog obserwacji nie istnieje: {root}")

    def _find(self, stem: str) -> Optional[Path]:
        for ext in self.EXTENSIONS:
            candidate = self.root / f"{stem}{ext}"
            if candidate.exists():
                return candidate
        return None

    def get_cloud(self, waypoint_id: str, resolution: float,
                  instance_number: Optional[int] = None) -> PointCloud:
        stem = waypoint_id if instance_number is None else f"{waypoint_id}_{instance_number}"
        path = self._find(stem)
        if path is None:
            raise CloudAcquisitionError(f"No observation '{stem}' in {self.root}", waypoint_id=waypoint_id)

        try:
            cloud = LASLoader(str(path)).load(frame_id=self.frame_id)
        except (OSError, ValueError, laspy.errors.LaspyException) as e:
            raise CloudAcquisitionError(f"Could not read {path.name}: {e}", waypoint_id=waypoint_id) from e

        if resolution and resolution > 0:
            cloud = voxel_downsample(cloud, resolution)
        return cloud


class JSONOriginSource(OriginSource):
    """Pozycje sensora z pliku JSON: {"waypoint_id": [x, y, z], ...}"""

    def __init__(self, path: str):
        self.path = Path(path)
        with open(self.path, 'r', encoding='utf-8') as f:
            raw = json.load(f)
        self._origins: Dict[str, np.ndarray] = {
            str(k): np.asarray(v, dtype=np.float64).reshape(3) for k, v in raw.items()
        }
        logger.info(f"Loaded {len(self._origins)} sensor origins from {self.path.name}")

    def get_origin(self, waypoint_id: str) -> np.ndarray:
        if waypoint_id not in self._origins:
            raise OriginAcquisitionError(f"No sensor origin for '{waypoint_id}'", waypoint_id=waypoint_id)
        return self._origins[waypoint_id].copy()


class AcquisitionStrategy(ABC):
    """Pobranie chmury dla typu żądania (obserwacja / instancja)"""

    kind: str = ""

    @abstractmethod
    def fetch_cloud(self, waypoint_id: str, resolution: float,
                    instance_number: Optional[int] = None) -> PointCloud:
        pass


class PlainObservationStrategy(AcquisitionStrategy):
    """Zwykła obserwacja waypointu"""

    kind = "observation"

    def __init__(self, source: CloudSource):
        self.source = source

    def fetch_cloud(self, waypoint_id: str, resolution: float,
                    instance_number: Optional[int] = None) -> PointCloud:
        return self.source.get_cloud(waypoint_id, resolution)


class InstanceObservationStrategy(AcquisitionStrategy):
    """Obserwacja konkretnej instancji waypointu"""

    kind = "instance"

    def __init__(self, source: CloudSource):
        self.source = source

    def fetch_cloud(self, waypoint_id: str, resolution: float,
                    instance_number: Optional[int] = None) -> PointCloud:
        if instance_number is None:
            raise CloudAcquisitionError("Instance request without instance number", waypoint_id=waypoint_id)
        return self.source.get_cloud(waypoint_id, resolution, instance_number=instance_number)
