"""
Iterated Conditional Modes (ICM) minimisation of the MRF energy.

Implements Besag's ICM ("On the Statistical Analysis of Dirty Pictures",
J. Royal Stat. Soc. B, 1986) with a synchronous update scheme:

1. Pass 1 evaluates every element; later passes only evaluate elements
   that changed, or have a neighbor that changed, on the previous pass.
2. Every decision of a pass reads the labels committed by the previous
   pass; new labels become visible together once the pass completes.
3. Passes repeat until the error drops to the tolerance or the iteration
   budget is spent.

Minimizer is the strategy interface the filter drives; ICMController is
the only variant shipped.
"""

import logging
import threading
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, List, Optional, Protocol

import numpy as np

from ..energy.evaluator import EnergyEvaluator
from .config import ErrorPolicy, MRFConfig
from .tracker import ChangeTracker

logger = logging.getLogger(__name__)


class ICMState(Enum):
    """Lifecycle of a minimisation run."""
    INITIALIZING = "initializing"
    RUNNING = "running"
    CONVERGED = "converged"
    MAX_ITERATIONS_REACHED = "max_iterations_reached"
    STOPPED = "stopped"


TERMINAL_STATES = (ICMState.CONVERGED, ICMState.MAX_ITERATIONS_REACHED, ICMState.STOPPED)


@dataclass
class PassReport:
    """Outcome of one committed pass."""
    pass_index: int
    """1-based pass number."""

    n_evaluated: int
    """Elements evaluated during the pass."""

    changed_count: int
    """Elements whose label changed."""

    error: float
    """Error compared against the tolerance (ratio or count)."""

    energy: Optional[float] = None
    """Total energy after the pass, when energy recording is enabled."""


@dataclass
class MRFResult:
    """
    Final labels and summary of a minimisation run.

    Attributes:
        labels: Label image after the last committed pass
        state: Terminal state (converged, iteration cap, or stopped)
        n_passes: Number of committed passes
        changed_count: Changed elements on the last pass
        error: Error of the last pass
        n_elements: Elements in the region
        history: One PassReport per pass
        initial_energy: Total energy of the seed labels, when recorded
    """
    labels: np.ndarray
    state: ICMState
    n_passes: int
    changed_count: int
    error: float
    n_elements: int
    history: List[PassReport] = field(default_factory=list)
    initial_energy: Optional[float] = None

    @property
    def converged(self) -> bool:
        return self.state is ICMState.CONVERGED

    @property
    def changed_ratio(self) -> float:
        return self.changed_count / self.n_elements if self.n_elements else 0.0


class Minimizer(Protocol):
    """Strategy interface for minimising the MRF labelling energy."""

    @property
    def state(self) -> ICMState: ...

    def minimize(self, labels: np.ndarray, distance_map: np.ndarray) -> MRFResult: ...

    def request_stop(self) -> None: ...


class ICMController:
    """
    Drives ICM passes until convergence or the iteration cap.

    Example:
        >>> evaluator = EnergyEvaluator(table, n_classes=3)
        >>> controller = ICMController(evaluator, MRFConfig(n_classes=3))
        >>> result = controller.minimize(initial_labels, distance_map)
        >>> result.state, result.n_passes
        (<ICMState.CONVERGED: 'converged'>, 4)

    Args:
        evaluator: Energy evaluator holding the weight table
        config: Iteration budget, tolerance and error policy
        on_pass: Called with each PassReport after its pass is committed
        on_evaluate: Called with (pass_index, eligible_mask) before each sweep
        stop_event: Shared stop flag. When given, the caller owns it and
            minimize() does not clear it; otherwise a private flag is
            cleared at the start of every run.
    """

    def __init__(
        self,
        evaluator: EnergyEvaluator,
        config: MRFConfig,
        on_pass: Optional[Callable[[PassReport], None]] = None,
        on_evaluate: Optional[Callable[[int, np.ndarray], None]] = None,
        stop_event: Optional[threading.Event] = None
    ):
        self.evaluator = evaluator
        self.config = config
        self.on_pass = on_pass
        self.on_evaluate = on_evaluate
        self._state = ICMState.INITIALIZING
        self._owns_stop = stop_event is None
        self._stop_requested = threading.Event() if stop_event is None else stop_event

    @property
    def state(self) -> ICMState:
        return self._state

    def request_stop(self) -> None:
        """Ask the running loop to stop after the current pass commits."""
        self._stop_requested.set()

    def _error(self, changed_count: int, n_elements: int) -> float:
        if self.config.error_policy is ErrorPolicy.COUNT:
            return float(changed_count)
        return changed_count / n_elements if n_elements else 0.0

    def minimize(self, labels: np.ndarray, distance_map: np.ndarray) -> MRFResult:
        """
        Run ICM from the given seed labels.

        Args:
            labels: Seed label image, shape S. Not modified.
            distance_map: Per-class distances, shape (K,) + S

        Returns:
            MRFResult with the final labels and per-pass history
        """
        self._state = ICMState.INITIALIZING
        if self._owns_stop:
            self._stop_requested.clear()

        # Wide enough for any class index, whatever the seed dtype.
        labels = np.array(labels, dtype=np.intp)
        n_elements = labels.size
        tracker = ChangeTracker(labels.shape, self.evaluator.weights.radius)
        tracker.initialize()

        history: List[PassReport] = []
        initial_energy = None
        if self.config.record_energy:
            initial_energy = self.evaluator.total_energy(labels, distance_map)

        self._state = ICMState.RUNNING
        pass_index = 0
        while True:
            pass_index += 1
            if pass_index == 1:
                eligible = np.ones(labels.shape, dtype=bool)
            else:
                eligible = tracker.eligible_mask()
            n_evaluated = int(np.count_nonzero(eligible))
            logger.debug("Pass %d: %d eligible elements", pass_index, n_evaluated)
            if self.on_evaluate is not None:
                self.on_evaluate(pass_index, eligible)

            new_labels, changed = self.evaluator.evaluate(labels, distance_map, eligible)

            # Commit the pass.
            labels = new_labels
            tracker.commit(changed)

            changed_count = tracker.changed_count
            error = self._error(changed_count, n_elements)
            energy = None
            if self.config.record_energy:
                energy = self.evaluator.total_energy(labels, distance_map)

            report = PassReport(pass_index, n_evaluated, changed_count, error, energy)
            history.append(report)
            logger.info(
                "ICM pass %d: %d/%d changed (error %.6g)",
                pass_index, changed_count, n_elements, error
            )
            if self.on_pass is not None:
                self.on_pass(report)

            if error <= self.config.error_tolerance:
                self._state = ICMState.CONVERGED
            elif pass_index >= self.config.max_iterations:
                self._state = ICMState.MAX_ITERATIONS_REACHED
            elif self._stop_requested.is_set():
                self._state = ICMState.STOPPED
            if self._state in TERMINAL_STATES:
                break

        logger.info("ICM finished in %d pass(es): %s", pass_index, self._state.value)
        labels.setflags(write=False)
        return MRFResult(
            labels=labels,
            state=self._state,
            n_passes=pass_index,
            changed_count=changed_count,
            error=error,
            n_elements=n_elements,
            history=history,
            initial_energy=initial_energy,
        )
