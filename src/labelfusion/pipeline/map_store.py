"""
Map Store & Fuser - pokolorowane obserwacje i mapa zbiorcza

Klucz obserwacji: (rodzaj pipeline, identyfikator). Ponowne zapisanie klucza
zastępuje poprzednią chmurę. Mapa zbiorcza budowana od zera przy każdym fuse().
"""

import threading
from collections import OrderedDict
from typing import List, Optional, Tuple
import logging

from ..core.point_cloud import PointCloud
from .publisher import CloudPublisher

logger = logging.getLogger(__name__)

ObservationKey = Tuple[str, str]


class MapStore:
    """
    Słownik obserwacji (kind, identifier) -> PointCloud (XYZ + kolory)

    Usage:
        store = MapStore()
        store.store("observation", "WayPoint1", colored_cloud)
        fused = store.fuse()
    """

    def __init__(self, capacity: Optional[int] = None):
        """
        Args:
            capacity: maksymalna liczba obserwacji (None = bez limitu);
                po przekroczeniu usuwana jest najdawniej zapisana
        """
        if capacity is not None and capacity < 1:
            raise ValueError(f"capacity must be >= 1, got {capacity}")
        self.capacity = capacity
        self._clouds: "OrderedDict[ObservationKey, PointCloud]" = OrderedDict()
        self._lock = threading.Lock()

    def store(self, kind: str, identifier: str, cloud: PointCloud) -> None:
        """Wstawia lub nadpisuje obserwację (bez etykiet - tylko XYZ i kolory)"""
        key = (kind, identifier)
        entry = PointCloud(cloud.coords.copy(), cloud.colors.copy(), cloud.frame_id)

        with self._lock:
            replaced = key in self._clouds
            self._clouds[key] = entry
            self._clouds.move_to_end(key)

            evicted = []
            if self.capacity is not None:
                while len(self._clouds) > self.capacity:
                    evicted.append(self._clouds.popitem(last=False)[0])

        logger.info(f"{'Replaced' if replaced else 'Stored'} observation {kind}/{identifier}: {len(entry):,} points")
        for old_key in evicted:
            logger.info(f"Evicted observation {old_key[0]}/{old_key[1]} (capacity {self.capacity})")

    def get(self, kind: str, identifier: str) -> Optional[PointCloud]:
        with self._lock:
            return self._clouds.get((kind, identifier))

    def keys(self) -> List[ObservationKey]:
        with self._lock:
            return list(self._clouds.keys())

    def total_points(self) -> int:
        with self._lock:
            return sum(len(c) for c in self._clouds.values())

    def __len__(self) -> int:
        with self._lock:
            return len(self._clouds)

    def __contains__(self, key: ObservationKey) -> bool:
        with self._lock:
            return key in self._clouds

    def fuse(self, frame_id: str = "map") -> PointCloud:
        """
        Skleja wszystkie obserwacje w nową chmurę

        Liczba punktów = suma punktów obserwacji; współrzędne i kolory bez zmian.
        """
        with self._lock:
            clouds = list(self._clouds.values())

        fused = PointCloud.concatenate(clouds, frame_id=frame_id)
        logger.debug(f"Fused {len(clouds)} observations: {len(fused):,} points")
        return fused


class MapPublisher:
    """
    Jedyny właściciel zapisu + publikacji mapy zbiorczej

    Wszystkie pipeline'y publikują przez tę samą instancję, więc publikacje
    są serializowane. Mapa zbiorcza ma zawsze układ frame_id z konfiguracji.
    """

    def __init__(self, store: MapStore, publisher: CloudPublisher, frame_id: str = "map"):
        self.store = store
        self.publisher = publisher
        self.frame_id = frame_id
        self._lock = threading.Lock()
        self.published_count = 0

    def store_and_publish(self, kind: str, identifier: str, cloud: PointCloud) -> PointCloud:
        """Zapisuje obserwację i publikuje mapę zbiorczą"""
        with self._lock:
            self.store.store(kind, identifier, cloud)
            fused = self.store.fuse(frame_id=self.frame_id)
            self.publisher.publish(fused)
            self.published_count += 1

        logger.info(f"Published fused map: {len(fused):,} points from {len(self.store)} observations")
        return fused
