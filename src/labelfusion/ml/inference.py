"""
Inference - dense CRF (mean-field) nad macierzami energii

Zawiera:
- PairwiseSolver - interfejs solvera inferencji
- MeanFieldSolver - mean-field z kompatybilnoscia Potts i jadrami Gaussa
  obcietymi do k najblizszych sasiadow w przestrzeni cech
- InferenceInvoker - walidacja wymiarow, limit czasu, wywolanie solvera
"""

import numpy as np
from abc import ABC, abstractmethod
from typing import List, Optional
from scipy.spatial import cKDTree
import time
import logging

from ..core.acquisition import call_with_timeout
from ..exceptions import InferenceTimeout, InvariantViolation
from .energy import EnergyMatrices, PairwiseTerm

logger = logging.getLogger(__name__)


def _softmax(neg_energy: np.ndarray) -> np.ndarray:
    """Softmax po osi klas (N, C)"""
    shifted = neg_energy - neg_energy.max(axis=1, keepdims=True)
    exp = np.exp(shifted)
    return exp / exp.sum(axis=1, keepdims=True)


class PairwiseSolver(ABC):
    """Zewnetrzny solver inferencji przyblizonej"""

    @abstractmethod
    def inference(
        self,
        n_points: int,
        n_labels: int,
        unary: np.ndarray,
        pairwise: List[PairwiseTerm],
        iterations: int
    ) -> np.ndarray:
        """
        Args:
            n_points: N
            n_labels: C
            unary: (C, N) energie
            pairwise: czlony parowe (D, N) z wagami
            iterations: liczba iteracji

        Returns:
            (C, N) prawdopodobienstwa klas (kolumny sumuja sie do 1)
        """
        pass


class MeanFieldSolver(PairwiseSolver):
    """
    Mean-field inference dla dense CRF z kompatybilnoscia Potts

    Dla kazdego czlonu parowego m:
        k_m(i, j) = exp(-|f_i - f_j|^2 / 2), j w k najblizszych sasiadach i
    Iteracja:
        Q_i <- softmax(-unary_i + sum_m w_m * sum_j k_m(i, j) Q_j)
    """

    def __init__(self, k_neighbors: int = 16):
        """
        Args:
            k_neighbors: liczba sasiadow w przyblizeniu jadra
        """
        self.k_neighbors = k_neighbors

    def _neighbour_kernel(self, features: np.ndarray):
        """(D, N) -> (wagi (N, K), indeksy (N, K))"""
        points = features.T
        n_points = len(points)
        k_query = min(self.k_neighbors + 1, n_points)

        tree = cKDTree(points)
        dist, idx = tree.query(points, k=k_query)
        dist = np.asarray(dist).reshape(n_points, -1)
        idx = np.asarray(idx).reshape(n_points, -1)

        weights = np.exp(-0.5 * dist ** 2)
        # Bez wiadomosci od samego siebie
        weights[idx == np.arange(n_points)[:, None]] = 0.0
        return weights, idx

    def inference(
        self,
        n_points: int,
        n_labels: int,
        unary: np.ndarray,
        pairwise: List[PairwiseTerm],
        iterations: int
    ) -> np.ndarray:
        if n_points == 0:
            return np.zeros((n_labels, 0))

        unary_t = unary.T  # (N, C)
        kernels = [
            (term.weight, *self._neighbour_kernel(term.features))
            for term in pairwise
            if term.weight != 0
        ]

        Q = _softmax(-unary_t)

        for iteration in range(iterations):
            energy = unary_t.copy()
            for weight, k_weights, k_idx in kernels:
                message = np.einsum('nk,nkc->nc', k_weights, Q[k_idx])
                energy -= weight * message

            Q_new = _softmax(-energy)
            change = np.abs(Q_new - Q).max()
            Q = Q_new

            logger.debug(f"Mean-field iteration {iteration + 1}: max change {change:.5f}")

        return Q.T


class InferenceInvoker:
    """
    Wywolanie solvera z kontrola wymiarow i limitem czasu

    Usage:
        invoker = InferenceInvoker(MeanFieldSolver(), iterations=5, n_labels=C)
        probabilities = invoker.infer(energies)
    """

    def __init__(
        self,
        solver: PairwiseSolver,
        iterations: int,
        n_labels: int,
        timeout: Optional[float] = None
    ):
        self.solver = solver
        self.iterations = iterations
        self.n_labels = n_labels
        self.timeout = timeout

    def _validate(self, energies: EnergyMatrices) -> None:
        unary = energies.unary
        if unary.ndim != 2 or unary.shape[0] != self.n_labels:
            raise InvariantViolation(f"Unary matrix shape {unary.shape}, expected ({self.n_labels}, N)")

        n_points = unary.shape[1]
        for term in energies.pairwise:
            if term.features.ndim != 2 or term.features.shape[1] != n_points:
                raise InvariantViolation(
                    f"Pairwise '{term.name}' features shape {term.features.shape}, expected (D, {n_points})"
                )

    def infer(self, energies: EnergyMatrices) -> np.ndarray:
        """
        Returns:
            (C, N) prawdopodobienstwa

        Raises:
            InvariantViolation: niezgodne wymiary wejscia lub wyniku
            InferenceTimeout: przekroczony limit czasu
        """
        self._validate(energies)
        n_labels, n_points = energies.unary.shape

        start_time = time.time()
        probabilities = call_with_timeout(
            self.solver.inference,
            self.timeout,
            lambda: InferenceTimeout(f"Inference exceeded {self.timeout}s for {n_points:,} points"),
            n_points, n_labels, energies.unary, energies.pairwise, self.iterations
        )

        probabilities = np.asarray(probabilities)
        if probabilities.shape != (n_labels, n_points):
            raise InvariantViolation(
                f"Solver returned shape {probabilities.shape}, expected ({n_labels}, {n_points})"
            )

        elapsed = time.time() - start_time
        logger.info(f"Inference complete: {n_points:,} points, {self.iterations} iterations, {elapsed:.2f}s")
        return probabilities
