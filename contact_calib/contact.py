from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING

import numpy as np

if TYPE_CHECKING:
    from contact_calib.model import FootModel, State


FICTITIOUS_STIFFNESS_N_PER_M = 1.0
GROUND_HEIGHT_M = 0.0

DEFAULT_CONTACT_STIFFNESS_N_PER_M = 5.0e7
DEFAULT_FRICTION_COEFFICIENT = 0.95
DEFAULT_VELOCITY_SCALING_MPS = 0.3


def contact_force(
    stiffness,
    height,
    *,
    ground_height: float = GROUND_HEIGHT_M,
    fictitious_stiffness: float = FICTITIOUS_STIFFNESS_N_PER_M,
):
    """
    Smoothed unilateral normal force (N, up positive):

      depth = ground_height - height          (positive when penetrating)
      F     = stiffness * max(0, depth) + fictitious_stiffness * depth

    The fictitious term keeps F continuous and non-zero above the ground
    (F = fictitious_stiffness * depth <= 0 there). Works elementwise on arrays;
    NaN inputs give NaN.
    """
    depth = ground_height - height
    depth_pos = np.maximum(0.0, depth)
    return stiffness * depth_pos + fictitious_stiffness * depth


@dataclass
class ContactElement:
    """Point contact between a model marker and the ground plane."""

    name: str
    marker: str
    stiffness_n_per_m: float = DEFAULT_CONTACT_STIFFNESS_N_PER_M
    friction_coefficient: float = DEFAULT_FRICTION_COEFFICIENT
    velocity_scaling_mps: float = DEFAULT_VELOCITY_SCALING_MPS

    # Resolved by FootModel.init_system().
    marker_index: int = field(default=-1, repr=False)
    contact_index: int = field(default=-1, repr=False)

    def calc_contact_force(self, model: FootModel, state: State) -> np.ndarray:
        """
        Force on the marker in ground, shape (2,): [fore-aft, vertical].

        The vertical component is exactly contact_force() with the stiffness
        stacked by the model's last refresh(). Fore-aft is a
        regularized Coulomb friction on the penetrating part of it.
        """
        positions = state.cache.get('marker_positions')
        if positions is None or self.marker_index < 0 or self.contact_index < 0:
            raise RuntimeError(
                f"Contact '{self.name}': state must be realized by an initialized model first."
            )
        velocities = state.cache['marker_velocities']

        height = positions[self.marker_index, 1]
        fy = contact_force(
            model.contact_stiffness(self.contact_index),
            height,
            ground_height=model.ground_height_m,
            fictitious_stiffness=model.fictitious_stiffness_n_per_m,
        )
        slip = velocities[self.marker_index, 0] / self.velocity_scaling_mps
        fx = -self.friction_coefficient * np.maximum(fy, 0.0) * np.tanh(slip)
        return np.array([fx, fy], dtype=float)
