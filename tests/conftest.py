"""Pytest configuration and shared fixtures."""

from __future__ import annotations

import copy

import numpy as np
import pytest

from contact_calib.model import StatesTrajectory
from contact_calib.model_components import build_foot_model
from contact_calib.parameters import ParameterMapping
from contact_calib.settings import read_config
from contact_calib.signal import ExperimentalForceSignal


NUM_STATES = 100


@pytest.fixture
def config() -> dict:
    """Repository config.json (validated)."""
    return read_config()


@pytest.fixture
def foot_model(config):
    """Uninitialized calcn_r + toes_r model with 6 contacts on calcn_r."""
    return build_foot_model(config)


@pytest.fixture
def mapping(config) -> ParameterMapping:
    return ParameterMapping(num_contacts=config['contact']['num_contacts'])


def gait_motion(n: int = NUM_STATES) -> tuple[np.ndarray, np.ndarray, np.ndarray]:
    """
    Rocking, walking foot: coordinates (calcn_r_rz, calcn_r_tx, calcn_r_ty, toes_r_rz)
    and their exact time derivatives, sampled uniformly over one second.
    """
    t = np.linspace(0.0, 1.0, n, endpoint=False)
    w = 2.0 * np.pi
    q = np.column_stack(
        [
            0.2 * np.sin(w * t),
            1.1 * t,
            0.03 + 0.04 * np.cos(w * t),
            0.1 * np.sin(w * t),
        ]
    )
    u = np.column_stack(
        [
            0.2 * w * np.cos(w * t),
            np.full_like(t, 1.1),
            -0.04 * w * np.sin(w * t),
            0.1 * w * np.cos(w * t),
        ]
    )
    return t, q, u


@pytest.fixture
def trajectory() -> StatesTrajectory:
    t, q, u = gait_motion()
    return StatesTrajectory.from_arrays(t, q, u)


@pytest.fixture
def zero_signal() -> ExperimentalForceSignal:
    t = np.linspace(0.0, 1.0, NUM_STATES, endpoint=False)
    return ExperimentalForceSignal.from_samples(t, np.zeros_like(t), smooth=False)


@pytest.fixture
def grf_signal() -> ExperimentalForceSignal:
    t = np.linspace(0.0, 1.0, NUM_STATES, endpoint=False)
    force = np.clip(800.0 * np.sin(np.pi * t / 0.6), 0.0, None)
    return ExperimentalForceSignal.from_samples(t, force, smooth=False)


@pytest.fixture
def model_copy(foot_model):
    """Factory for independent deep copies of the model fixture."""
    return lambda: copy.deepcopy(foot_model)
