"""
Przestrzeń etykiet: nazwy klas i kolory do wizualizacji

Stała przez cały czas życia procesu, wczytywana raz z konfiguracji.
"""

import numpy as np
from typing import List, Sequence, Tuple
import logging

from ..config import LabelDefinition

logger = logging.getLogger(__name__)

# Kolor punktów bez etykiety (odrzucone, zbyt małe segmenty)
EMPTY_COLOR = (0, 0, 0)


class LabelSpace:
    """
    Mapowanie id klasy -> nazwa, kolor RGB

    Usage:
        space = LabelSpace.from_definitions(config.labels)
        r, g, b = space.label_to_rgb(2)
    """

    def __init__(self, names: Sequence[str], colors: Sequence[Tuple[int, int, int]]):
        if len(names) != len(colors):
            raise ValueError(f"names/colors length mismatch: {len(names)} != {len(colors)}")
        if len(names) == 0:
            raise ValueError("Label space must contain at least one class")

        self._names = list(names)
        self._colors = np.asarray(colors, dtype=np.uint8).reshape(-1, 3)

    @classmethod
    def from_definitions(cls, definitions: Sequence[LabelDefinition]) -> 'LabelSpace':
        space = cls([d.name for d in definitions], [d.color for d in definitions])
        logger.info(f"Label space: {space.n_labels} classes ({', '.join(space.names)})")
        return space

    @property
    def n_labels(self) -> int:
        return len(self._names)

    @property
    def names(self) -> List[str]:
        return list(self._names)

    @property
    def color_table(self) -> np.ndarray:
        """(C, 3) uint8"""
        return self._colors.copy()

    def label_to_rgb(self, label: int) -> Tuple[int, int, int]:
        if not 0 <= label < self.n_labels:
            raise IndexError(f"Label {label} outside [0, {self.n_labels})")
        r, g, b = self._colors[label]
        return int(r), int(g), int(b)

    def colorize(self, labels: np.ndarray) -> np.ndarray:
        """(N,) etykiety -> (N, 3) kolory uint8"""
        return self._colors[np.asarray(labels, dtype=np.int64)]

    def __repr__(self):
        return f"LabelSpace(n_labels={self.n_labels})"
