"""
Centralna konfiguracja serwisu etykietowania

Wszystkie parametry liczbowe wczytywane raz, przy starcie, z pliku JSON.
Brak pliku lub wymaganego klucza kończy start procesu (ConfigError).
"""

import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

from .exceptions import ConfigError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CRFConfig:
    """Parametry modelu CRF (dense CRF, kompatybilność Potts)"""
    appearance_color_sigma: float
    appearance_range_sigma: float
    appearance_weight: float
    smoothness_range_sigma: float
    smoothness_weight: float
    iterations: int
    k_neighbors: int = 16


@dataclass(frozen=True)
class SegmentationConfig:
    """Konfiguracja segmentacji na supervoxele"""
    min_point_count: int
    voxel_resolution: float = 0.02  # metry
    seed_resolution: float = 0.15  # metry


@dataclass(frozen=True)
class ServiceConfig:
    """Konfiguracja serwisu (źródła danych, limity czasu, mapa)"""
    cloud_resolution: float = 0.01  # metry
    acquisition_timeout: Optional[float] = 10.0  # sekund
    inference_timeout: Optional[float] = 60.0  # sekund
    map_capacity: Optional[int] = None  # None = bez limitu
    frame_id: str = "map"


@dataclass(frozen=True)
class LabelDefinition:
    """Pojedyncza klasa: nazwa + kolor RGB"""
    name: str
    color: Tuple[int, int, int]


@dataclass(frozen=True)
class LabelerConfig:
    """Pełna konfiguracja serwisu"""
    crf: CRFConfig
    segmentation: SegmentationConfig
    service: ServiceConfig = field(default_factory=ServiceConfig)
    labels: List[LabelDefinition] = field(default_factory=list)


REQUIRED_KEYS = (
    "min_point_count",
    "appearance_color_sigma",
    "appearance_range_sigma",
    "appearance_weight",
    "smoothness_range_sigma",
    "smoothness_weight",
    "crf_iterations",
)


def _number(data: Dict[str, Any], key: str, kind=float, positive: bool = False, default=None):
    if key not in data:
        if default is not None or key not in REQUIRED_KEYS:
            return default
        raise ConfigError(f"Missing configuration key: '{key}'", key=key)

    value = data[key]
    if value is None and key not in REQUIRED_KEYS:
        return None
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ConfigError(f"Configuration key '{key}' must be a number, got {value!r}", key=key)
    if kind is int and float(value) != int(value):
        raise ConfigError(f"Configuration key '{key}' must be an integer, got {value!r}", key=key)
    value = kind(value)
    if positive and value <= 0:
        raise ConfigError(f"Configuration key '{key}' must be positive, got {value!r}", key=key)
    return value


def _parse_labels(raw: Any) -> List[LabelDefinition]:
    if not isinstance(raw, list) or not raw:
        raise ConfigError("Configuration key 'labels' must be a non-empty list", key="labels")

    labels = []
    for i, entry in enumerate(raw):
        try:
            name = str(entry["name"])
            color = tuple(int(c) for c in entry["color"])
        except (KeyError, TypeError, ValueError) as e:
            raise ConfigError(f"Invalid label definition #{i}: {entry!r}", key="labels") from e

        if len(color) != 3 or any(c < 0 or c > 255 for c in color):
            raise ConfigError(f"Label '{name}' color must be 3 values in [0, 255]", key="labels")
        labels.append(LabelDefinition(name=name, color=color))

    names = [label.name for label in labels]
    if len(set(names)) != len(names):
        raise ConfigError("Label names must be unique", key="labels")

    return labels


def config_from_dict(data: Dict[str, Any]) -> LabelerConfig:
    """Buduje LabelerConfig ze słownika (zawartość pliku JSON)"""
    if not isinstance(data, dict):
        raise ConfigError("Configuration root must be a JSON object")

    crf = CRFConfig(
        appearance_color_sigma=_number(data, "appearance_color_sigma", positive=True),
        appearance_range_sigma=_number(data, "appearance_range_sigma", positive=True),
        appearance_weight=_number(data, "appearance_weight"),
        smoothness_range_sigma=_number(data, "smoothness_range_sigma", positive=True),
        smoothness_weight=_number(data, "smoothness_weight"),
        iterations=_number(data, "crf_iterations", kind=int),
        k_neighbors=_number(data, "crf_neighbors", kind=int, positive=True, default=16),
    )
    if crf.iterations < 0:
        raise ConfigError("Configuration key 'crf_iterations' must be >= 0", key="crf_iterations")

    segmentation = SegmentationConfig(
        min_point_count=_number(data, "min_point_count", kind=int),
        voxel_resolution=_number(data, "voxel_resolution", positive=True, default=0.02),
        seed_resolution=_number(data, "seed_resolution", positive=True, default=0.15),
    )

    service = ServiceConfig(
        cloud_resolution=_number(data, "cloud_resolution", positive=True, default=0.01),
        acquisition_timeout=_number(data, "acquisition_timeout", positive=True, default=10.0),
        inference_timeout=_number(data, "inference_timeout", positive=True, default=60.0),
        map_capacity=_number(data, "map_capacity", kind=int, positive=True),
        frame_id=str(data.get("frame_id", "map")),
    )

    return LabelerConfig(
        crf=crf,
        segmentation=segmentation,
        service=service,
        labels=_parse_labels(data.get("labels")),
    )


def load_config(path: str) -> LabelerConfig:
    """
    Wczytuje konfigurację z pliku JSON

    Args:
        path: Ścieżka do pliku konfiguracji

    Returns:
        LabelerConfig

    Raises:
        ConfigError: brak pliku, niepoprawny JSON lub brakujące/niepoprawne klucze
    """
    path = Path(path)
    if not path.exists():
        raise ConfigError(f"Configuration file not found: {path}")

    try:
        with open(path, 'r', encoding='utf-8') as f:
            data = json.load(f)
    except (OSError, json.JSONDecodeError) as e:
        raise ConfigError(f"Could not read configuration {path}: {e}") from e

    config = config_from_dict(data)
    logger.info(f"Configuration loaded from {path.name}: "
                f"{len(config.labels)} labels, min_point_count={config.segmentation.min_point_count}, "
                f"crf_iterations={config.crf.iterations}")
    return config
