from __future__ import annotations

import numpy as np
from scipy.interpolate import make_interp_spline, make_smoothing_spline

from contact_calib.errors import TrajectoryError


MIN_SAMPLES = 5


class ExperimentalForceSignal:
    """
    Immutable time -> force reference, built once from measured samples.

    By default a cubic smoothing spline with the smoothing weight picked by
    generalized cross-validation; smooth=False interpolates the samples.
    If any force sample is non-finite the signal is poisoned: at() returns NaN.
    """

    def __init__(self, spline, t_start: float, t_end: float, *, poisoned: bool = False):
        self._spline = spline
        self.t_start = float(t_start)
        self.t_end = float(t_end)
        self.poisoned = bool(poisoned)

    @classmethod
    def from_samples(
        cls,
        time_s,
        force_n,
        *,
        lam: float | None = None,
        smooth: bool = True,
    ) -> ExperimentalForceSignal:
        t = np.asarray(time_s, dtype=float)
        f = np.asarray(force_n, dtype=float)
        if t.ndim != 1 or t.shape != f.shape:
            raise TrajectoryError(f'time and force must be 1-D of equal length, got {t.shape} and {f.shape}.')
        if t.size < MIN_SAMPLES:
            raise TrajectoryError(f'Need at least {MIN_SAMPLES} force samples, got {t.size}.')
        if not np.all(np.isfinite(t)):
            raise TrajectoryError('Force sample times must be finite.')

        order = np.argsort(t, kind='stable')
        t = t[order]
        f = f[order]
        if np.any(np.diff(t) <= 0.0):
            raise TrajectoryError('Force sample times must be unique.')

        poisoned = not np.all(np.isfinite(f))
        if poisoned:
            # Keep the time support; values are never read.
            f = np.zeros_like(f)

        if smooth:
            spline = make_smoothing_spline(t, f, lam=lam)
        else:
            spline = make_interp_spline(t, f, k=3)
        return cls(spline, t[0], t[-1], poisoned=poisoned)

    def at(self, time_s):
        """Force at time_s (scalar -> float, array -> ndarray)."""
        if self.poisoned:
            if np.ndim(time_s) == 0:
                return float('nan')
            return np.full(np.shape(time_s), np.nan)
        value = self._spline(time_s)
        if np.ndim(value) == 0:
            return float(value)
        return np.asarray(value, dtype=float)
