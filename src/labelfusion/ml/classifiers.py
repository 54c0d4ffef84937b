"""
ML Classifiers - Klasyfikatory segmentow

Zawiera:
- SegmentClassifier - interfejs: wektor cech -> log-posterior klas
- RandomForestSegmentClassifier - wytrenowany Random Forest (scikit-learn, pickle)

Trening modelu odbywa sie poza serwisem; tutaj tylko wczytanie i predykcja.
"""

import numpy as np
from typing import List, Optional
from abc import ABC, abstractmethod
from pathlib import Path
import pickle
import logging

from sklearn.ensemble import RandomForestClassifier
from sklearn.preprocessing import StandardScaler

from ..exceptions import ModelLoadError

logger = logging.getLogger(__name__)

# Minimalne prawdopodobienstwo przed logarytmem
PROBABILITY_FLOOR = 1e-6


class SegmentClassifier(ABC):
    """Abstrakcyjna klasa bazowa dla klasyfikatorow segmentow"""

    @property
    @abstractmethod
    def n_labels(self) -> int:
        """Dlugosc zwracanego wektora (C)"""
        pass

    @abstractmethod
    def class_log_posterior(self, features: np.ndarray) -> np.ndarray:
        """(F,) cechy -> (C,) log-posterior klas"""
        pass


class RandomForestSegmentClassifier(SegmentClassifier):
    """
    Random Forest dla segmentow (supervoxeli)

    Usage:
        clf = RandomForestSegmentClassifier.load("model.pkl")
        log_post = clf.class_log_posterior(segment.features)
    """

    def __init__(
        self,
        model: RandomForestClassifier,
        n_labels: Optional[int] = None,
        scaler: Optional[StandardScaler] = None,
        feature_names: Optional[List[str]] = None
    ):
        """
        Args:
            model: wytrenowany RandomForestClassifier (etykiety 0..C-1)
            n_labels: C - dlugosc wektora posteriorow (None = max(classes_) + 1)
            scaler: opcjonalny StandardScaler cech
            feature_names: nazwy cech
        """
        if not hasattr(model, 'classes_'):
            raise ValueError("Model not fitted")

        self.model = model
        self.scaler = scaler
        self.feature_names = feature_names or []
        self.classes_ = np.asarray(model.classes_).astype(np.int64)

        if self.classes_.min() < 0:
            raise ValueError(f"Model classes must be >= 0, got {self.classes_.tolist()}")

        self._n_labels = int(n_labels) if n_labels is not None else int(self.classes_.max()) + 1
        if self.classes_.max() >= self._n_labels:
            raise ValueError(f"Model class {int(self.classes_.max())} outside label space of size {self._n_labels}")

    @property
    def n_labels(self) -> int:
        return self._n_labels

    @property
    def n_features(self) -> int:
        return int(self.model.n_features_in_)

    def predict_proba(self, X: np.ndarray) -> np.ndarray:
        """(S, F) -> (S, C) prawdopodobienstwa w pelnej przestrzeni etykiet"""
        X = np.atleast_2d(np.asarray(X, dtype=np.float64))
        if self.scaler is not None:
            X = self.scaler.transform(X)

        proba = self.model.predict_proba(X)
        full = np.zeros((len(X), self._n_labels))
        full[:, self.classes_] = proba
        return full

    def class_log_posterior(self, features: np.ndarray) -> np.ndarray:
        proba = self.predict_proba(features.reshape(1, -1))[0]
        return np.log(np.maximum(proba, PROBABILITY_FLOOR))

    def save(self, path: str) -> None:
        """Zapisuje model do pliku"""
        data = {
            'model': self.model,
            'scaler': self.scaler,
            'feature_names': self.feature_names,
            'n_labels': self._n_labels
        }
        with open(path, 'wb') as f:
            pickle.dump(data, f)
        logger.info(f"Model saved to {path}")

    @classmethod
    def load(cls, path: str) -> 'RandomForestSegmentClassifier':
        """
        Wczytuje model z pliku

        Raises:
            ModelLoadError: brak pliku lub niepoprawna zawartosc
        """
        path = Path(path)
        if not path.exists():
            raise ModelLoadError(f"Could not load the random forest model file: {path} not found")

        try:
            with open(path, 'rb') as f:
                data = pickle.load(f)
            instance = cls(
                model=data['model'],
                n_labels=data.get('n_labels'),
                scaler=data.get('scaler'),
                feature_names=data.get('feature_names')
            )
        except (OSError, pickle.UnpicklingError, EOFError, KeyError, TypeError, ValueError) as e:
            raise ModelLoadError(f"Could not load the random forest model file {path}: {e}") from e

        logger.info(f"Model loaded from {path}: {len(instance.classes_)} classes, "
                    f"{instance.n_features} features")
        return instance
