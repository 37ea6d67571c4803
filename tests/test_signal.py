"""Tests for the experimental reference force signal."""

from __future__ import annotations

import math

import numpy as np
import pytest

from contact_calib.errors import TrajectoryError
from contact_calib.signal import ExperimentalForceSignal


class TestExperimentalForceSignal:
    """Construction and queries."""

    def test_interpolating_spline_hits_samples(self) -> None:
        t = np.linspace(0.0, 1.0, 21)
        f = 700.0 + 100.0 * np.sin(2 * np.pi * t)
        signal = ExperimentalForceSignal.from_samples(t, f, smooth=False)
        np.testing.assert_allclose(signal.at(t), f, rtol=1e-10, atol=1e-8)

    def test_scalar_query_returns_float(self) -> None:
        t = np.linspace(0.0, 1.0, 11)
        signal = ExperimentalForceSignal.from_samples(t, 2.0 * t, smooth=False)
        value = signal.at(0.25)
        assert isinstance(value, float)
        assert value == pytest.approx(0.5)

    def test_smoothing_spline_reduces_noise(self) -> None:
        rng = np.random.default_rng(0)
        t = np.linspace(0.0, 1.0, 200)
        clean = 800.0 * np.sin(np.pi * t)
        noisy = clean + rng.normal(0.0, 20.0, t.size)
        signal = ExperimentalForceSignal.from_samples(t, noisy)
        err_smooth = np.sqrt(np.mean((signal.at(t) - clean) ** 2))
        err_raw = np.sqrt(np.mean((noisy - clean) ** 2))
        assert err_smooth < err_raw

    def test_fixed_smoothing_weight(self) -> None:
        t = np.linspace(0.0, 1.0, 30)
        signal = ExperimentalForceSignal.from_samples(t, t**2, lam=1e-8)
        assert signal.at(0.5) == pytest.approx(0.25, abs=1e-3)

    def test_unsorted_samples_are_sorted(self) -> None:
        t = np.array([0.4, 0.0, 0.2, 0.1, 0.3, 0.5])
        signal = ExperimentalForceSignal.from_samples(t, 10.0 * t, smooth=False)
        assert signal.t_start == 0.0
        assert signal.t_end == 0.5
        assert signal.at(0.15) == pytest.approx(1.5)

    def test_zero_signal_is_exactly_zero(self) -> None:
        t = np.linspace(0.0, 1.0, 10)
        signal = ExperimentalForceSignal.from_samples(t, np.zeros_like(t), smooth=False)
        assert np.all(signal.at(np.linspace(0.0, 1.0, 37)) == 0.0)

    def test_nonfinite_force_poisons_signal(self) -> None:
        t = np.linspace(0.0, 1.0, 10)
        f = np.ones_like(t)
        f[3] = np.nan
        signal = ExperimentalForceSignal.from_samples(t, f)
        assert signal.poisoned
        assert math.isnan(signal.at(0.5))
        assert np.all(np.isnan(signal.at(t)))

    def test_too_few_samples(self) -> None:
        with pytest.raises(TrajectoryError, match='at least'):
            ExperimentalForceSignal.from_samples([0.0, 1.0], [0.0, 1.0])

    def test_duplicate_times(self) -> None:
        with pytest.raises(TrajectoryError, match='unique'):
            ExperimentalForceSignal.from_samples([0, 1, 1, 2, 3], [0, 1, 2, 3, 4])

    def test_shape_mismatch(self) -> None:
        with pytest.raises(TrajectoryError):
            ExperimentalForceSignal.from_samples(np.arange(6.0), np.arange(5.0))
