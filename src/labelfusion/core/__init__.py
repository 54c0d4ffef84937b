"""
Moduły podstawowe (core) do obsługi chmur punktów

- PointCloud: Kontener XYZ + RGB, voxel downsampling
- rgb_to_lab: Konwersja kolorów do Lab
- LabelSpace: Nazwy i kolory klas
- LASLoader / LASWriter: Odczyt i zapis LAS/LAZ
- Źródła danych i strategie pobierania chmur (acquisition)
"""

from .point_cloud import PointCloud, voxel_downsample, voxel_grid_keys
from .color import rgb_to_lab
from .labels import LabelSpace, EMPTY_COLOR
from .las_io import LASLoader, LASWriter
from .acquisition import (
    CloudSource,
    OriginSource,
    LASObservationSource,
    JSONOriginSource,
    AcquisitionStrategy,
    PlainObservationStrategy,
    InstanceObservationStrategy,
    call_with_timeout
)

__all__ = [
    'PointCloud',
    'voxel_downsample',
    'voxel_grid_keys',
    'rgb_to_lab',
    'LabelSpace',
    'EMPTY_COLOR',
    'LASLoader',
    'LASWriter',
    'CloudSource',
    'OriginSource',
    'LASObservationSource',
    'JSONOriginSource',
    'AcquisitionStrategy',
    'PlainObservationStrategy',
    'InstanceObservationStrategy',
    'call_with_timeout'
]
