from __future__ import annotations

import math
import os
import threading
import time
from collections.abc import Callable
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from enum import Enum

import numpy as np
from scipy.optimize import differential_evolution, minimize

from contact_calib.errors import CalibrationError
from contact_calib.log import get_logger


logger = get_logger(__name__)

METHODS = ('differential_evolution', 'l-bfgs-b')

# Stand-in for NaN/inf objective values: a maximally bad, comparable number.
NONFINITE_PENALTY = 1.0e300

NUMERICAL_FAILURES = (ArithmeticError, np.linalg.LinAlgError)


class CalibrationStatus(str, Enum):
    IDLE = 'idle'
    RUNNING = 'running'
    CONVERGED = 'converged'
    ITERATION_BUDGET_EXHAUSTED = 'iteration_budget_exhausted'
    FAILED = 'failed'


@dataclass
class CalibrationResult:
    x: np.ndarray
    objective: float
    status: CalibrationStatus
    message: str
    n_evaluations: int
    n_iterations: int
    runtime_s: float

    @property
    def success(self) -> bool:
        return self.status is CalibrationStatus.CONVERGED


class _BestObserved:
    """Lowest finite objective value seen across all worker threads."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self.x: np.ndarray | None = None
        self.value = math.inf
        self.evaluations = 0
        self.nonfinite = 0

    def offer(self, x: np.ndarray, value: float) -> None:
        with self._lock:
            self.evaluations += 1
            if not math.isfinite(value):
                self.nonfinite += 1
                return
            if value < self.value:
                self.value = value
                self.x = np.array(x, dtype=float, copy=True)


class OptimizerAdapter:
    """
    Runs a bounded optimizer over [0, 1]^n against a scalar objective.

    Methods:
      - 'differential_evolution': derivative-free, population-based. With
        workers > 1 each generation's population is evaluated on a thread pool,
        so the objective is called concurrently from several threads.
      - 'l-bfgs-b': bounded quasi-Newton with finite-difference gradients,
        single-threaded.

    The adapter moves IDLE -> RUNNING -> CONVERGED / ITERATION_BUDGET_EXHAUSTED
    / FAILED. When to stop is left to the optimizer (tolerance or iteration cap).
    Numerical failures inside the optimizer are reported as FAILED, never
    swallowed; configuration errors raised by the objective propagate.
    """

    def __init__(
        self,
        objective: Callable[[np.ndarray], float],
        num_parameters: int,
        *,
        method: str = 'differential_evolution',
        max_iterations: int = 3000,
        tolerance: float = 1e-3,
        population_size: int = 15,
        workers: int = 1,
        seed: int | None = None,
        initial_value: float = 0.5,
        polish: bool = False,
    ):
        method = method.lower()
        if method not in METHODS:
            raise ValueError(f"Unknown optimizer method '{method}'. Use: {list(METHODS)}")
        if num_parameters < 1:
            raise ValueError('num_parameters must be >= 1.')
        if max_iterations < 1:
            raise ValueError('max_iterations must be >= 1.')
        if not 0.0 <= initial_value <= 1.0:
            raise ValueError('initial_value must lie in [0, 1].')

        self.objective = objective
        self.num_parameters = int(num_parameters)
        self.method = method
        self.max_iterations = int(max_iterations)
        self.tolerance = float(tolerance)
        self.population_size = int(population_size)
        self.workers = (os.cpu_count() or 1) if workers < 0 else max(int(workers), 1)
        self.seed = seed
        self.initial_value = float(initial_value)
        self.polish = bool(polish)
        self.status = CalibrationStatus.IDLE

    def optimize(self, x0=None) -> CalibrationResult:
        if self.status is CalibrationStatus.RUNNING:
            raise RuntimeError('Optimization is already running.')

        if x0 is None:
            x0 = np.full(self.num_parameters, self.initial_value, dtype=float)
        x0 = np.asarray(x0, dtype=float)
        if x0.shape != (self.num_parameters,):
            raise ValueError(f'x0 must have shape ({self.num_parameters},), got {x0.shape}.')

        best = _BestObserved()
        iterations = 0
        # scipy re-wraps ValueError raised through its map as RuntimeError.
        fatal: list[CalibrationError] = []

        def fun(x: np.ndarray) -> float:
            try:
                value = float(self.objective(x))
            except CalibrationError as e:
                fatal.append(e)
                raise
            best.offer(x, value)
            if not math.isfinite(value):
                logger.warning('nonfinite_objective', value=value, x=[round(float(v), 6) for v in x])
                return NONFINITE_PENALTY
            return value

        def callback(intermediate_result) -> None:
            nonlocal iterations
            iterations += 1
            logger.info(
                'calibration_progress',
                iteration=iterations,
                best_objective=float(intermediate_result.fun),
                evaluations=best.evaluations,
            )

        self.status = CalibrationStatus.RUNNING
        logger.info(
            'calibration_started',
            method=self.method,
            num_parameters=self.num_parameters,
            workers=self.workers,
            max_iterations=self.max_iterations,
            tolerance=self.tolerance,
        )
        t0 = time.monotonic()

        try:
            if self.method == 'differential_evolution':
                status, message, nit = self._run_differential_evolution(fun, x0, callback)
            else:
                status, message, nit = self._run_lbfgsb(fun, x0, callback)
        except NUMERICAL_FAILURES as e:
            status = CalibrationStatus.FAILED
            message = f'{type(e).__name__}: {e}'
            nit = iterations
            logger.error('optimizer_failed', error=message)
        except Exception:
            self.status = CalibrationStatus.FAILED
            if fatal:
                raise fatal[0] from None
            raise

        if best.x is None and status is not CalibrationStatus.FAILED:
            status = CalibrationStatus.FAILED
            message = 'No finite objective value was observed.'
            logger.error('optimizer_failed', error=message)

        runtime_s = time.monotonic() - t0
        result = CalibrationResult(
            x=best.x if best.x is not None else x0.copy(),
            objective=best.value if best.x is not None else math.nan,
            status=status,
            message=message,
            n_evaluations=best.evaluations,
            n_iterations=int(nit),
            runtime_s=runtime_s,
        )
        self.status = status
        logger.info(
            'calibration_finished',
            status=status.value,
            objective=result.objective,
            evaluations=result.n_evaluations,
            nonfinite=best.nonfinite,
            iterations=result.n_iterations,
            runtime_s=round(runtime_s, 3),
        )
        return result

    def _run_differential_evolution(self, fun, x0, callback) -> tuple[CalibrationStatus, str, int]:
        bounds = [(0.0, 1.0)] * self.num_parameters
        kwargs = dict(
            maxiter=self.max_iterations,
            popsize=self.population_size,
            tol=self.tolerance,
            seed=self.seed,
            x0=x0,
            polish=self.polish,
            updating='deferred',
            callback=callback,
        )

        if self.workers > 1:
            with ThreadPoolExecutor(max_workers=self.workers, thread_name_prefix='objective') as pool:
                res = differential_evolution(fun, bounds, workers=pool.map, **kwargs)
        else:
            res = differential_evolution(fun, bounds, workers=1, **kwargs)

        message = str(res.message)
        if res.success:
            status = CalibrationStatus.CONVERGED
        elif 'maximum number' in message.lower():
            status = CalibrationStatus.ITERATION_BUDGET_EXHAUSTED
        else:
            status = CalibrationStatus.FAILED
        return status, message, int(res.nit)

    def _run_lbfgsb(self, fun, x0, callback) -> tuple[CalibrationStatus, str, int]:
        res = minimize(
            fun,
            x0,
            method='L-BFGS-B',
            bounds=[(0.0, 1.0)] * self.num_parameters,
            callback=callback,
            options={'maxiter': self.max_iterations, 'ftol': self.tolerance},
        )

        # L-BFGS-B: 0 converged, 1 iteration/evaluation cap, 2 abnormal termination.
        if res.status == 0:
            status = CalibrationStatus.CONVERGED
        elif res.status == 1:
            status = CalibrationStatus.ITERATION_BUDGET_EXHAUSTED
        else:
            status = CalibrationStatus.FAILED
        return status, str(res.message), int(res.nit)
