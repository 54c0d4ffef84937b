"""
Pipeline etykietowania i mapa zbiorcza

- SemanticLabeler: Serwis (oba typy żądań, wspólna mapa)
- LabelingOrchestrator: Sekwencja etapów dla żądania
- MapStore / MapPublisher: Obserwacje i publikacja mapy zbiorczej
- CloudPublisher / LASFilePublisher: Kanał wyjściowy
"""

from .publisher import CloudPublisher, LASFilePublisher
from .map_store import MapStore, MapPublisher
from .orchestrator import (
    LabelingOrchestrator,
    LabelRequest,
    LabelResponse,
    RequestState,
    SemanticLabeler
)

__all__ = [
    'CloudPublisher',
    'LASFilePublisher',
    'MapStore',
    'MapPublisher',
    'LabelingOrchestrator',
    'LabelRequest',
    'LabelResponse',
    'RequestState',
    'SemanticLabeler'
]
