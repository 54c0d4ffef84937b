"""
Orchestrator etykietowania chmur punktów

Jeden orchestrator dla obu typów żądań (obserwacja / instancja) - typ żądania
wybiera tylko strategię pobrania chmury. Kolejne stany:

    ACQUIRE_CLOUD -> ACQUIRE_ORIGIN -> SEGMENT -> FILTER -> BUILD_ENERGIES
    -> INFER -> DECODE -> STORE_AND_PUBLISH -> RESPOND

Błąd pobrania chmury/pozycji sensora lub przekroczony czas inferencji kończy
żądanie w stanie FAILED, zanim zmieni się mapa.
"""

import numpy as np
import threading
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Optional
import time
import logging

from ..config import LabelerConfig, load_config
from ..core.acquisition import (
    AcquisitionStrategy,
    CloudSource,
    InstanceObservationStrategy,
    OriginSource,
    PlainObservationStrategy,
    call_with_timeout
)
from ..core.color import rgb_to_lab
from ..core.labels import LabelSpace
from ..core.point_cloud import PointCloud
from ..exceptions import AcquisitionError, AcquisitionTimeout, InferenceTimeout, OriginAcquisitionError
from ..features.segment_filter import filter_segments
from ..features.segmentation import Segmenter, VoxelSegmenter
from ..ml.classifier_adapter import SegmentClassifierAdapter
from ..ml.classifiers import RandomForestSegmentClassifier, SegmentClassifier
from ..ml.decoder import DecodedLabels, LabelDecoder
from ..ml.energy import EnergyMatrixBuilder, PointIndexMap
from ..ml.inference import InferenceInvoker, MeanFieldSolver, PairwiseSolver
from .map_store import MapPublisher, MapStore
from .publisher import CloudPublisher

logger = logging.getLogger(__name__)


class RequestState(Enum):
    IDLE = "idle"
    ACQUIRE_CLOUD = "acquire_cloud"
    ACQUIRE_ORIGIN = "acquire_origin"
    SEGMENT = "segment"
    FILTER = "filter"
    BUILD_ENERGIES = "build_energies"
    INFER = "infer"
    DECODE = "decode"
    STORE_AND_PUBLISH = "store_and_publish"
    RESPOND = "respond"
    FAILED = "failed"


@dataclass
class LabelRequest:
    """Żądanie etykietowania obserwacji (instance_number tylko dla instancji)"""
    waypoint_id: str
    instance_number: Optional[int] = None


@dataclass
class LabelResponse:
    """
    Wynik etykietowania

    label_probabilities: (N*C,) wierszami - punkt, potem klasa
    """
    success: bool
    index_to_label_name: List[str] = field(default_factory=list)
    label: np.ndarray = field(default_factory=lambda: np.zeros(0, dtype=np.int64))
    label_probabilities: np.ndarray = field(default_factory=lambda: np.zeros(0))
    label_frequencies: np.ndarray = field(default_factory=lambda: np.zeros(0))
    points: np.ndarray = field(default_factory=lambda: np.zeros((0, 3)))

    @classmethod
    def failure(cls) -> 'LabelResponse':
        return cls(success=False)

    @classmethod
    def from_decoded(cls, decoded: DecodedLabels, label_names: List[str]) -> 'LabelResponse':
        return cls(
            success=True,
            index_to_label_name=list(label_names),
            label=decoded.labels,
            label_probabilities=decoded.probabilities.reshape(-1),
            label_frequencies=decoded.frequencies,
            points=decoded.points,
        )

    def to_dict(self) -> Dict:
        return {
            'success': self.success,
            'index_to_label_name': self.index_to_label_name,
            'label': self.label.tolist(),
            'label_probabilities': self.label_probabilities.tolist(),
            'label_frequencies': self.label_frequencies.tolist(),
            'points': self.points.tolist(),
        }


class LabelingOrchestrator:
    """
    Sekwencja etapów dla pojedynczego żądania

    Usage:
        orchestrator = LabelingOrchestrator(...)
        response = orchestrator.handle(LabelRequest("WayPoint1"), PlainObservationStrategy(source))
    """

    def __init__(
        self,
        config: LabelerConfig,
        label_space: LabelSpace,
        origin_source: OriginSource,
        segmenter: Segmenter,
        adapter: SegmentClassifierAdapter,
        builder: EnergyMatrixBuilder,
        invoker: InferenceInvoker,
        decoder: LabelDecoder,
        map_publisher: MapPublisher
    ):
        self.config = config
        self.label_space = label_space
        self.origin_source = origin_source
        self.segmenter = segmenter
        self.adapter = adapter
        self.builder = builder
        self.invoker = invoker
        self.decoder = decoder
        self.map_publisher = map_publisher

        self.state = RequestState.IDLE

    def _transition(self, state: RequestState) -> None:
        logger.debug(f"State: {self.state.value} -> {state.value}")
        self.state = state

    def _acquire(self, request: LabelRequest, strategy: AcquisitionStrategy) -> PointCloud:
        service = self.config.service
        timeout = service.acquisition_timeout

        self._transition(RequestState.ACQUIRE_CLOUD)
        cloud = call_with_timeout(
            strategy.fetch_cloud,
            timeout,
            lambda: AcquisitionTimeout(f"Cloud request timed out after {timeout}s", request.waypoint_id),
            request.waypoint_id, service.cloud_resolution, request.instance_number
        )

        self._transition(RequestState.ACQUIRE_ORIGIN)
        origin = call_with_timeout(
            self.origin_source.get_origin,
            timeout,
            lambda: AcquisitionTimeout(f"Origin request timed out after {timeout}s", request.waypoint_id),
            request.waypoint_id
        )

        try:
            cloud.sensor_origin = np.asarray(origin, dtype=np.float64).reshape(3)
        except (TypeError, ValueError) as e:
            raise OriginAcquisitionError(f"Malformed sensor origin {origin!r}: {e}", request.waypoint_id) from e
        return cloud

    def handle(self, request: LabelRequest, strategy: AcquisitionStrategy) -> LabelResponse:
        """
        Przetwarza żądanie od pobrania chmury do publikacji mapy

        Returns:
            LabelResponse (success=False przy błędzie pobrania lub timeoucie inferencji)
        """
        start_time = time.time()
        logger.info(f"Labeling {strategy.kind} '{request.waypoint_id}'"
                    + (f" (instance {request.instance_number})" if request.instance_number is not None else ""))

        try:
            cloud = self._acquire(request, strategy)
        except AcquisitionError as e:
            logger.error(f"Acquisition failed in state {self.state.value}: {e}")
            self._transition(RequestState.FAILED)
            return LabelResponse.failure()

        logger.info(f"Cloud received, a total of {len(cloud):,} points found")

        self._transition(RequestState.SEGMENT)
        lab_cloud = PointCloud(cloud.coords, rgb_to_lab(cloud.colors), cloud.frame_id, cloud.sensor_origin)
        segment_set = self.segmenter.segment(lab_cloud)

        self._transition(RequestState.FILTER)
        retained = filter_segments(segment_set, self.config.segmentation.min_point_count)
        index_map = PointIndexMap(retained)

        self._transition(RequestState.BUILD_ENERGIES)
        posteriors = self.adapter.classify(retained)
        energies = self.builder.build(retained, posteriors, index_map, segment_set.cloud)

        self._transition(RequestState.INFER)
        try:
            probabilities = self.invoker.infer(energies)
        except InferenceTimeout as e:
            logger.error(f"Inference failed: {e}")
            self._transition(RequestState.FAILED)
            return LabelResponse.failure()

        self._transition(RequestState.DECODE)
        decoded, colored = self.decoder.decode(probabilities, index_map, segment_set.cloud)

        self._transition(RequestState.STORE_AND_PUBLISH)
        self.map_publisher.store_and_publish(strategy.kind, request.waypoint_id, colored)

        self._transition(RequestState.RESPOND)
        response = LabelResponse.from_decoded(decoded, self.label_space.names)

        logger.info(f"Request '{request.waypoint_id}' done in {time.time() - start_time:.1f}s: "
                    f"{decoded.n_points:,} labeled points")
        return response


class SemanticLabeler:
    """
    Serwis etykietowania: wspólny klasyfikator, przestrzeń etykiet i mapa
    dla obu typów żądań; żądania obsługiwane pojedynczo

    Usage:
        labeler = SemanticLabeler.from_files("config.json", "rf.pkl", cloud_source, origin_source, publisher)
        response = labeler.label_cloud("WayPoint1")
        response = labeler.label_cloud_plus("WayPoint1", instance_number=2)
    """

    def __init__(
        self,
        config: LabelerConfig,
        classifier: SegmentClassifier,
        cloud_source: CloudSource,
        origin_source: OriginSource,
        publisher: CloudPublisher,
        instance_source: Optional[CloudSource] = None,
        segmenter: Optional[Segmenter] = None,
        solver: Optional[PairwiseSolver] = None
    ):
        """
        Args:
            config: konfiguracja serwisu
            classifier: wczytany klasyfikator segmentów
            cloud_source: źródło chmur obserwacji
            origin_source: źródło pozycji sensora
            publisher: kanał wyjściowy mapy zbiorczej
            instance_source: źródło chmur instancji (None = cloud_source)
            segmenter: segmentacja (None = VoxelSegmenter z konfiguracji)
            solver: solver CRF (None = MeanFieldSolver)
        """
        self.config = config
        self.label_space = LabelSpace.from_definitions(config.labels)
        n_labels = self.label_space.n_labels

        self.store = MapStore(capacity=config.service.map_capacity)
        self.map_publisher = MapPublisher(self.store, publisher, frame_id=config.service.frame_id)

        self.strategies: Dict[str, AcquisitionStrategy] = {
            PlainObservationStrategy.kind: PlainObservationStrategy(cloud_source),
            InstanceObservationStrategy.kind: InstanceObservationStrategy(instance_source or cloud_source),
        }

        self.orchestrator = LabelingOrchestrator(
            config=config,
            label_space=self.label_space,
            origin_source=origin_source,
            segmenter=segmenter or VoxelSegmenter(
                voxel_resolution=config.segmentation.voxel_resolution,
                seed_resolution=config.segmentation.seed_resolution
            ),
            adapter=SegmentClassifierAdapter(classifier, n_labels),
            builder=EnergyMatrixBuilder(config.crf),
            invoker=InferenceInvoker(
                solver or MeanFieldSolver(k_neighbors=config.crf.k_neighbors),
                iterations=config.crf.iterations,
                n_labels=n_labels,
                timeout=config.service.inference_timeout
            ),
            decoder=LabelDecoder(self.label_space),
            map_publisher=self.map_publisher,
        )

        self._lock = threading.Lock()
        logger.info("Semantic segmentation service ready.")

    @classmethod
    def from_files(
        cls,
        config_path: str,
        model_path: str,
        cloud_source: CloudSource,
        origin_source: OriginSource,
        publisher: CloudPublisher,
        **kwargs
    ) -> 'SemanticLabeler':
        """
        Wczytuje konfigurację i model - błąd kończy start serwisu

        Raises:
            ConfigError, ModelLoadError
        """
        config = load_config(config_path)
        classifier = RandomForestSegmentClassifier.load(model_path)
        return cls(config, classifier, cloud_source, origin_source, publisher, **kwargs)

    def handle(self, request: LabelRequest) -> LabelResponse:
        kind = PlainObservationStrategy.kind if request.instance_number is None else InstanceObservationStrategy.kind
        with self._lock:
            return self.orchestrator.handle(request, self.strategies[kind])

    def label_cloud(self, waypoint_id: str) -> LabelResponse:
        return self.handle(LabelRequest(waypoint_id))

    def label_cloud_plus(self, waypoint_id: str, instance_number: int) -> LabelResponse:
        return self.handle(LabelRequest(waypoint_id, instance_number))

    @property
    def state(self) -> RequestState:
        return self.orchestrator.state
