"""
Label Fusion - semantyczne etykietowanie chmur punktów i mapa zbiorcza

Moduły:
- core: Chmura punktów, kolory Lab, etykiety, LAS I/O, źródła danych
- features: Segmentacja na supervoxele, filtrowanie segmentów
- ml: Random Forest, macierze energii, dense CRF (mean-field), dekodowanie
- pipeline: Orchestrator żądań, mapa zbiorcza, publikacja

Przykład użycia:
    from labelfusion import SemanticLabeler, LASObservationSource, JSONOriginSource, LASFilePublisher

    labeler = SemanticLabeler.from_files(
        "config.json", "rf.pkl",
        cloud_source=LASObservationSource("observations/"),
        origin_source=JSONOriginSource("origins.json"),
        publisher=LASFilePublisher("output/fused.las")
    )

    response = labeler.label_cloud("WayPoint1")
"""

from .config import LabelerConfig, load_config
from .core import PointCloud, LabelSpace, LASObservationSource, JSONOriginSource
from .ml import RandomForestSegmentClassifier, MeanFieldSolver
from .pipeline import (
    SemanticLabeler,
    LabelRequest,
    LabelResponse,
    MapStore,
    LASFilePublisher
)

__version__ = "2.0.0"
__all__ = [
    'LabelerConfig',
    'load_config',
    'PointCloud',
    'LabelSpace',
    'LASObservationSource',
    'JSONOriginSource',
    'RandomForestSegmentClassifier',
    'MeanFieldSolver',
    'SemanticLabeler',
    'LabelRequest',
    'LabelResponse',
    'MapStore',
    'LASFilePublisher'
]
