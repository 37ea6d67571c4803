"""Normalized calibration vector <-> physical contact properties."""

from __future__ import annotations

from dataclasses import dataclass

import numpy as np

from contact_calib.model import FootModel


MARKER_HEIGHT_BOUNDS_M = (-0.06, 0.05)
STIFFNESS_SCALE_FACTOR = 1.0e8
STIFFNESS_BASE_UNIT_N_PER_M = 1.0


def marker_name(i: int) -> str:
    return f'marker{i}'


def contact_name(i: int) -> str:
    return f'{marker_name(i)}_contact'


@dataclass(frozen=True)
class ParameterMapping:
    """
    Affine map from x in [0, 1]^(2n) to model properties, n = num_contacts:

      x[i]     -> height of marker<i> in its body frame (location index 1)
      x[n + i] -> stiffness of marker<i>_contact

    Heights are evaluated as lo*(1 - x) + hi*x, which equals lo + x*(hi - lo)
    and hits both bounds exactly at x = 0 and x = 1.
    """

    num_contacts: int
    height_bounds_m: tuple[float, float] = MARKER_HEIGHT_BOUNDS_M
    stiffness_scale_factor: float = STIFFNESS_SCALE_FACTOR
    stiffness_base_unit_n_per_m: float = STIFFNESS_BASE_UNIT_N_PER_M

    def __post_init__(self) -> None:
        if self.num_contacts < 1:
            raise ValueError('num_contacts must be >= 1.')
        lo, hi = self.height_bounds_m
        if not hi > lo:
            raise ValueError(f'Invalid height bounds [{lo}, {hi}].')

    @property
    def num_parameters(self) -> int:
        return 2 * self.num_contacts

    def bounds(self) -> list[tuple[float, float]]:
        return [(0.0, 1.0)] * self.num_parameters

    def physical(self, x) -> tuple[np.ndarray, np.ndarray]:
        """Return (marker heights [m], contact stiffnesses [N/m])."""
        x = np.asarray(x, dtype=float)
        if x.shape != (self.num_parameters,):
            raise ValueError(f'Expected {self.num_parameters} parameters, got shape {x.shape}.')
        n = self.num_contacts
        lo, hi = self.height_bounds_m
        heights = lo * (1.0 - x[:n]) + hi * x[:n]
        stiffness = x[n:] * self.stiffness_scale_factor * self.stiffness_base_unit_n_per_m
        return heights, stiffness

    def normalized(self, heights, stiffness) -> np.ndarray:
        """Inverse of physical()."""
        lo, hi = self.height_bounds_m
        heights = np.asarray(heights, dtype=float)
        stiffness = np.asarray(stiffness, dtype=float)
        x_h = (heights - lo) / (hi - lo)
        x_k = stiffness / (self.stiffness_scale_factor * self.stiffness_base_unit_n_per_m)
        return np.concatenate([x_h, x_k])

    def apply(self, model: FootModel, x) -> None:
        """Write x into the model's markers and contacts. Call model.refresh() afterwards."""
        heights, stiffness = self.physical(x)
        for i in range(self.num_contacts):
            model.marker(marker_name(i)).location_m[1] = heights[i]
            model.contact(contact_name(i)).stiffness_n_per_m = float(stiffness[i])

    def read(self, model: FootModel) -> tuple[np.ndarray, np.ndarray]:
        heights = np.array(
            [model.marker(marker_name(i)).location_m[1] for i in range(self.num_contacts)],
            dtype=float,
        )
        stiffness = np.array(
            [model.contact(contact_name(i)).stiffness_n_per_m for i in range(self.num_contacts)],
            dtype=float,
        )
        return heights, stiffness
