from __future__ import annotations

import math
import threading
from dataclasses import dataclass, field
from typing import Protocol

import numpy as np

from contact_calib.errors import ModelConfigurationError
from contact_calib.model import FootModel, StatesTrajectory
from contact_calib.model_pool import ModelPool
from contact_calib.parameters import ParameterMapping
from contact_calib.signal import ExperimentalForceSignal


class ComparisonSink(Protocol):
    def append(self, time_s: float, simulated_n: float, experimental_n: float) -> None: ...


@dataclass
class ForceComparison:
    """Collects (time, simulated Fy, experimental Fy) rows."""

    time_s: list[float] = field(default_factory=list)
    simulated_n: list[float] = field(default_factory=list)
    experimental_n: list[float] = field(default_factory=list)

    def append(self, time_s: float, simulated_n: float, experimental_n: float) -> None:
        self.time_s.append(float(time_s))
        self.simulated_n.append(float(simulated_n))
        self.experimental_n.append(float(experimental_n))

    def __len__(self) -> int:
        return len(self.time_s)

    def as_arrays(self) -> tuple[np.ndarray, np.ndarray, np.ndarray]:
        return (
            np.asarray(self.time_s, dtype=float),
            np.asarray(self.simulated_n, dtype=float),
            np.asarray(self.experimental_n, dtype=float),
        )


class EvaluationStats:
    """
    Objective counters, one pair per thread, summed by snapshot().

    record() takes the lock only the first time a thread records; afterwards
    each thread updates its own counters.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._local = threading.local()
        self._counters: list[list[int]] = []
        self.registrations = 0

    def _own_counters(self) -> list[int]:
        counters = getattr(self._local, 'counters', None)
        if counters is None:
            counters = [0, 0]
            with self._lock:
                self._counters.append(counters)
                self.registrations += 1
            self._local.counters = counters
        return counters

    def record(self, value: float) -> None:
        counters = self._own_counters()
        counters[0] += 1
        if not math.isfinite(value):
            counters[1] += 1

    def snapshot(self) -> dict:
        with self._lock:
            evaluations = sum(c[0] for c in self._counters)
            nonfinite = sum(c[1] for c in self._counters)
        return {'evaluations': evaluations, 'nonfinite': nonfinite}


class ContactObjective:
    """
    Vertical ground-reaction-force tracking error of a contact parameter set.

      J(x) = sum_states (Fy_sim(x, state) - Fy_exp(t))^2 / (m g * n_states)

    Fy_sim is the summed vertical force of every contact element, with the
    model kinematics prescribed by the states trajectory. evaluate() may be
    called concurrently from any number of threads: each thread works on its
    own model clone from the pool, and the result depends only on x.
    """

    def __init__(
        self,
        model: FootModel,
        trajectory: StatesTrajectory,
        signal: ExperimentalForceSignal,
        mapping: ParameterMapping,
        *,
        stats: EvaluationStats | None = None,
    ):
        # Fail fast on a broken model definition, before any clone is taken.
        model.init_system()
        mapping.read(model)
        if trajectory.num_coordinates() != model.num_coordinates():
            raise ModelConfigurationError(
                f'Trajectory has {trajectory.num_coordinates()} coordinates, '
                f'model has {model.num_coordinates()} ({", ".join(model.coordinate_names)}).'
            )
        if model.total_weight() <= 0.0:
            raise ModelConfigurationError('Model weight must be > 0 to normalize the objective.')

        self.trajectory = trajectory
        self.signal = signal
        self.mapping = mapping
        self.stats = stats or EvaluationStats()
        self.pool = ModelPool(model)

    @property
    def num_parameters(self) -> int:
        return self.mapping.num_parameters

    def evaluate(self, x) -> float:
        model = self.pool.acquire()
        value = self._tracking_error(model, x, sink=None)
        self.stats.record(value)
        return value

    __call__ = evaluate

    def diagnostic_comparison(self, x, sink: ComparisonSink) -> float:
        """
        Evaluate x and emit every (time, simulated, experimental) triple to sink.

        Not for concurrent use; meant for reporting after the optimization.
        """
        model = self.pool.acquire()
        return self._tracking_error(model, x, sink=sink)

    def _tracking_error(self, model: FootModel, x, *, sink: ComparisonSink | None) -> float:
        self.mapping.apply(model, x)
        model.refresh()

        contacts = model.contacts
        total = 0.0
        # Iteration yields fresh copies, so no marker geometry cached for a
        # previous parameter set survives on a state.
        for state in self.trajectory:
            model.realize_velocity(state)
            sim_fy = 0.0
            for contact in contacts:
                sim_fy += contact.calc_contact_force(model, state)[1]
            exp_fy = self.signal.at(state.time)
            if sink is not None:
                sink.append(state.time, sim_fy, exp_fy)
            total += (sim_fy - exp_fy) ** 2

        return float(total / (model.total_weight() * len(self.trajectory)))
