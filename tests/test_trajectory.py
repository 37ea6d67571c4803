"""Tests for building states trajectories from coordinate samples."""

from __future__ import annotations

import numpy as np
import pytest

from contact_calib.errors import TrajectoryError
from contact_calib.filters import lowpass_filter
from contact_calib.trajectory import states_from_motion


def _linear_motion(n: int = 20) -> tuple[np.ndarray, dict[str, np.ndarray]]:
    t = np.linspace(0.0, 0.19, n)
    return t, {
        'calcn_r_rz': 10.0 * t,
        'calcn_r_tx': 1.2 * t,
        'calcn_r_ty': 0.05 - 0.1 * t,
        'toes_r_rz': np.zeros_like(t),
        'pelvis_tilt': np.ones_like(t),
    }


class TestStatesFromMotion:
    """states_from_motion()."""

    def test_speeds_from_linear_coordinates(self, foot_model) -> None:
        t, coords = _linear_motion()
        traj = states_from_motion(foot_model, t, coords, lowpass_hz=0.0)
        assert foot_model.is_initialized()
        assert len(traj) == t.size
        state = traj[5]
        np.testing.assert_allclose(state.q, [10.0 * t[5], 1.2 * t[5], 0.05 - 0.1 * t[5], 0.0])
        np.testing.assert_allclose(state.u, [10.0, 1.2, -0.1, 0.0], atol=1e-10)

    def test_degrees_converted_for_rotations_only(self, foot_model) -> None:
        t, coords = _linear_motion()
        traj = states_from_motion(foot_model, t, coords, lowpass_hz=0.0, in_degrees=True)
        state = traj[5]
        assert state.q[0] == pytest.approx(np.deg2rad(10.0 * t[5]))
        assert state.q[1] == pytest.approx(1.2 * t[5])

    def test_lowpass_keeps_slow_motion(self, foot_model) -> None:
        t = np.linspace(0.0, 2.0, 201)
        slow = 0.05 * np.sin(2 * np.pi * 0.5 * t)
        coords = {name: np.zeros_like(t) for name in ('calcn_r_rz', 'calcn_r_tx', 'toes_r_rz')}
        coords['calcn_r_ty'] = slow + 0.002 * np.sin(2 * np.pi * 40.0 * t)
        traj = states_from_motion(foot_model, t, coords, lowpass_hz=6.0)
        ty = np.array([s.q[2] for s in traj])
        interior = slice(20, -20)
        assert np.max(np.abs(ty[interior] - slow[interior])) < 1e-3

    def test_missing_coordinate(self, foot_model) -> None:
        t, coords = _linear_motion()
        del coords['toes_r_rz']
        with pytest.raises(TrajectoryError, match='toes_r_rz'):
            states_from_motion(foot_model, t, coords)

    def test_non_increasing_time(self, foot_model) -> None:
        t, coords = _linear_motion()
        t[3] = t[2]
        with pytest.raises(TrajectoryError, match='increasing'):
            states_from_motion(foot_model, t, coords)

    def test_row_count_mismatch(self, foot_model) -> None:
        t, coords = _linear_motion()
        with pytest.raises(TrajectoryError, match='rows'):
            states_from_motion(foot_model, t[:-1], coords)


class TestLowpassFilter:
    """lowpass_filter()."""

    def test_cutoff_above_nyquist_is_identity(self) -> None:
        x = np.random.default_rng(0).normal(size=(50, 2))
        np.testing.assert_array_equal(lowpass_filter(x, 100.0, 60.0), x)

    def test_constant_signal_preserved(self) -> None:
        x = np.full((40, 3), 2.5)
        np.testing.assert_allclose(lowpass_filter(x, 100.0, 6.0), x, atol=1e-9)
