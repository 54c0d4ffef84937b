"""
ML Module - klasyfikacja segmentow i dense CRF

Zawiera:
- Klasyfikatory segmentow: Random Forest (classifiers.py)
- Adapter klasyfikatora - jedno wywolanie na segment (classifier_adapter.py)
- Macierze energii i mapowanie kolumn (energy.py)
- Inferencja mean-field (inference.py)
- Dekodowanie etykiet (decoder.py)
"""

from .classifiers import (
    SegmentClassifier,
    RandomForestSegmentClassifier,
    PROBABILITY_FLOOR
)

from .classifier_adapter import (
    SegmentClassifierAdapter,
    SegmentPosteriors
)

from .energy import (
    PointIndexMap,
    PairwiseTerm,
    EnergyMatrices,
    EnergyMatrixBuilder
)

from .inference import (
    PairwiseSolver,
    MeanFieldSolver,
    InferenceInvoker
)

from .decoder import (
    DecodedLabels,
    LabelDecoder
)

__all__ = [
    # Classifiers
    'SegmentClassifier',
    'RandomForestSegmentClassifier',
    'PROBABILITY_FLOOR',
    'SegmentClassifierAdapter',
    'SegmentPosteriors',

    # Energy
    'PointIndexMap',
    'PairwiseTerm',
    'EnergyMatrices',
    'EnergyMatrixBuilder',

    # Inference
    'PairwiseSolver',
    'MeanFieldSolver',
    'InferenceInvoker',

    # Decoding
    'DecodedLabels',
    'LabelDecoder',
]
