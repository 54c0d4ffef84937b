"""
Classifier Adapter - jedno wywolanie klasyfikatora na segment

Koszt klasyfikacji zalezy od liczby segmentow, nie od liczby punktow.
Brak cache pomiedzy zadaniami.
"""

import numpy as np
from dataclasses import dataclass
from typing import List
import time
import logging

from ..exceptions import InvariantViolation
from ..features.segment_filter import RetainedSegments
from .classifiers import SegmentClassifier

logger = logging.getLogger(__name__)


@dataclass
class SegmentPosteriors:
    """Log-posteriory klas dla zachowanych segmentow"""
    segment_ids: List[int]
    log_posteriors: np.ndarray  # (S, C)

    def __post_init__(self):
        self._row_of = {seg_id: row for row, seg_id in enumerate(self.segment_ids)}

    def for_segment(self, segment_id: int) -> np.ndarray:
        return self.log_posteriors[self._row_of[segment_id]]


class SegmentClassifierAdapter:
    """
    Wywoluje klasyfikator dla kazdego zachowanego segmentu

    Usage:
        adapter = SegmentClassifierAdapter(classifier, n_labels=C)
        posteriors = adapter.classify(retained)
    """

    def __init__(self, classifier: SegmentClassifier, n_labels: int):
        if classifier.n_labels != n_labels:
            raise InvariantViolation(
                f"Classifier produces {classifier.n_labels} classes, label space has {n_labels}"
            )
        self.classifier = classifier
        self.n_labels = n_labels

    def classify(self, retained: RetainedSegments) -> SegmentPosteriors:
        start_time = time.time()

        segment_ids = []
        rows = []
        for segment in retained.segments:
            log_post = np.asarray(self.classifier.class_log_posterior(segment.features), dtype=np.float64)
            if log_post.shape != (self.n_labels,):
                raise InvariantViolation(
                    f"Classifier returned shape {log_post.shape} for segment {segment.segment_id}, "
                    f"expected ({self.n_labels},)"
                )
            segment_ids.append(segment.segment_id)
            rows.append(log_post)

        log_posteriors = np.vstack(rows) if rows else np.zeros((0, self.n_labels))

        logger.info(f"Classified {len(segment_ids):,} segments in {time.time() - start_time:.2f}s")
        return SegmentPosteriors(segment_ids=segment_ids, log_posteriors=log_posteriors)
