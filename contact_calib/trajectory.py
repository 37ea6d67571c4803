"""Turn a coordinate time series into a states trajectory."""

from __future__ import annotations

import numpy as np

from contact_calib.errors import TrajectoryError
from contact_calib.filters import lowpass_filter
from contact_calib.model import FootModel, StatesTrajectory


ROTATIONAL_SUFFIX = '_rz'


def states_from_motion(
    model: FootModel,
    time_s,
    coordinates: dict[str, np.ndarray],
    *,
    lowpass_hz: float = 6.0,
    in_degrees: bool = False,
) -> StatesTrajectory:
    """
    Build states from generalized coordinate samples.

    Coordinates are matched to the model by name, rotational ones converted
    from degrees when in_degrees, lowpass filtered, and differentiated
    (central differences) for the speeds.
    """
    if not model.is_initialized():
        model.init_system()

    t = np.asarray(time_s, dtype=float)
    if t.ndim != 1 or t.size < 2:
        raise TrajectoryError('Motion needs at least two time samples.')
    dt = np.diff(t)
    if np.any(dt <= 0.0):
        raise TrajectoryError('Motion time must be strictly increasing.')

    missing = [name for name in model.coordinate_names if name not in coordinates]
    if missing:
        raise TrajectoryError(f'Motion is missing model coordinates: {missing}')

    q = np.column_stack([np.asarray(coordinates[name], dtype=float) for name in model.coordinate_names])
    if q.shape[0] != t.size:
        raise TrajectoryError(f'Coordinates have {q.shape[0]} rows, time has {t.size}.')

    if in_degrees:
        rot = [i for i, name in enumerate(model.coordinate_names) if name.endswith(ROTATIONAL_SUFFIX)]
        q[:, rot] = np.deg2rad(q[:, rot])

    sample_rate_hz = 1.0 / float(np.median(dt))
    q = lowpass_filter(q, sample_rate_hz, lowpass_hz)
    u = np.gradient(q, t, axis=0)

    return StatesTrajectory.from_arrays(t, q, u)
