from __future__ import annotations

from collections.abc import Iterable, Iterator
from dataclasses import dataclass, field

import numpy as np

from contact_calib.contact import (
    FICTITIOUS_STIFFNESS_N_PER_M,
    GROUND_HEIGHT_M,
    ContactElement,
)
from contact_calib.errors import ModelConfigurationError, TrajectoryError


G0 = 9.80665
GROUND = 'ground'
JOINT_COORDINATES = {
    'planar': ('rz', 'tx', 'ty'),
    'pin': ('rz',),
}


@dataclass(eq=False)
class Body:
    name: str
    mass_kg: float
    parent: str  # GROUND or the name of a body defined earlier
    joint: str  # 'planar' or 'pin'
    location_in_parent_m: np.ndarray  # shape (2,)

    def coordinate_names(self) -> list[str]:
        return [f'{self.name}_{c}' for c in JOINT_COORDINATES[self.joint]]


@dataclass(eq=False)
class Marker:
    name: str
    body: str
    location_m: np.ndarray  # shape (2,) in the body frame; index 1 is height


@dataclass(eq=False)
class State:
    """
    Generalized coordinates/speeds at one instant, plus the realization cache.

    A realized state keeps its marker kinematics; realize_velocity() does not
    recompute them. Use copy() to get an unrealized state.
    """

    time: float
    q: np.ndarray
    u: np.ndarray
    cache: dict = field(default_factory=dict, repr=False)

    def copy(self) -> State:
        return State(time=self.time, q=self.q, u=self.u)

    def is_realized(self) -> bool:
        return 'marker_positions' in self.cache


class StatesTrajectory:
    """Immutable, time-ordered sequence of states. Iteration yields copies."""

    def __init__(self, states: Iterable[State]):
        frozen: list[State] = []
        for s in states:
            q = np.array(s.q, dtype=float)
            u = np.array(s.u, dtype=float)
            if q.ndim != 1 or u.shape != q.shape:
                raise TrajectoryError(f'State at t={s.time} has mismatched q/u shapes {q.shape}/{u.shape}.')
            q.setflags(write=False)
            u.setflags(write=False)
            frozen.append(State(time=float(s.time), q=q, u=u))

        if not frozen:
            raise TrajectoryError('A states trajectory needs at least one state.')
        if len({s.q.size for s in frozen}) != 1:
            raise TrajectoryError('All states must have the same number of coordinates.')

        times = np.array([s.time for s in frozen], dtype=float)
        if not np.all(np.isfinite(times)):
            raise TrajectoryError('State times must be finite.')
        if np.any(np.diff(times) <= 0.0):
            raise TrajectoryError('State times must be strictly increasing.')
        times.setflags(write=False)

        self._states = tuple(frozen)
        self.times = times

    @classmethod
    def from_arrays(cls, time_s, q, u) -> StatesTrajectory:
        """Build from time (T,), coordinates (T, N) and speeds (T, N)."""
        time_s = np.asarray(time_s, dtype=float)
        q = np.atleast_2d(np.asarray(q, dtype=float))
        u = np.atleast_2d(np.asarray(u, dtype=float))
        if q.shape != u.shape or q.shape[0] != time_s.size:
            raise TrajectoryError(
                f'Shape mismatch: time {time_s.shape}, coordinates {q.shape}, speeds {u.shape}.'
            )
        return cls(State(time=t, q=q[i], u=u[i]) for i, t in enumerate(time_s))

    def __len__(self) -> int:
        return len(self._states)

    def __iter__(self) -> Iterator[State]:
        for s in self._states:
            yield s.copy()

    def __getitem__(self, i: int) -> State:
        return self._states[i].copy()

    def front(self) -> State:
        return self._states[0].copy()

    def num_coordinates(self) -> int:
        return int(self._states[0].q.size)


def _rotate(angle, v: np.ndarray) -> np.ndarray:
    c = np.cos(angle)
    s = np.sin(angle)
    return np.array([c * v[0] - s * v[1], s * v[0] + c * v[1]], dtype=float)


def _cross_z(omega: float, r: np.ndarray) -> np.ndarray:
    # omega k x r for a planar vector r.
    return np.array([-omega * r[1], omega * r[0]], dtype=float)


@dataclass(eq=False)
class FootModel:
    """
    Planar (sagittal) rigid-body chain with markers and ground contacts.

    Lifecycle:
      - init_system(): one-time topology validation and handle resolution.
      - refresh(): cheap re-initialization after marker/contact properties change.
      - realize_velocity(state): marker positions/velocities in ground.
    """

    bodies: list[Body]
    markers: list[Marker]
    contacts: list[ContactElement]
    gravity_mps2: float = G0
    ground_height_m: float = GROUND_HEIGHT_M
    fictitious_stiffness_n_per_m: float = FICTITIOUS_STIFFNESS_N_PER_M

    coordinate_names: list[str] = field(default_factory=list, init=False)
    _parent_index: np.ndarray | None = field(default=None, init=False, repr=False)
    _coord_offset: np.ndarray | None = field(default=None, init=False, repr=False)
    _marker_body: np.ndarray | None = field(default=None, init=False, repr=False)
    _marker_locations: np.ndarray | None = field(default=None, init=False, repr=False)
    _contact_stiffness: np.ndarray | None = field(default=None, init=False, repr=False)

    def is_initialized(self) -> bool:
        return self._parent_index is not None

    def num_coordinates(self) -> int:
        return len(self.coordinate_names)

    def init_system(self) -> None:
        body_index: dict[str, int] = {}
        parent_index = np.zeros(len(self.bodies), dtype=int)
        coord_offset = np.zeros(len(self.bodies), dtype=int)
        coord_names: list[str] = []

        for i, body in enumerate(self.bodies):
            if body.name == GROUND or body.name in body_index:
                raise ModelConfigurationError(f"Duplicate or reserved body name '{body.name}'.")
            if body.joint not in JOINT_COORDINATES:
                raise ModelConfigurationError(f"Body '{body.name}' has unknown joint '{body.joint}'.")
            if body.parent == GROUND:
                parent_index[i] = -1
            elif body.parent in body_index:
                parent_index[i] = body_index[body.parent]
            else:
                raise ModelConfigurationError(
                    f"Body '{body.name}' references parent '{body.parent}', "
                    'which is not defined before it.'
                )
            body_index[body.name] = i
            coord_offset[i] = len(coord_names)
            coord_names.extend(body.coordinate_names())

        marker_index: dict[str, int] = {}
        marker_body = np.zeros(len(self.markers), dtype=int)
        for j, marker in enumerate(self.markers):
            if marker.name in marker_index:
                raise ModelConfigurationError(f"Duplicate marker name '{marker.name}'.")
            if marker.body not in body_index:
                raise ModelConfigurationError(
                    f"Marker '{marker.name}' references body '{marker.body}', which is not in the model."
                )
            marker_index[marker.name] = j
            marker_body[j] = body_index[marker.body]

        names: set[str] = set()
        for k, contact in enumerate(self.contacts):
            if contact.name in names:
                raise ModelConfigurationError(f"Duplicate contact name '{contact.name}'.")
            if contact.marker not in marker_index:
                raise ModelConfigurationError(
                    f"Contact '{contact.name}' references marker '{contact.marker}', "
                    'which is not in the model.'
                )
            names.add(contact.name)
            contact.marker_index = marker_index[contact.marker]
            contact.contact_index = k

        self.coordinate_names = coord_names
        self._parent_index = parent_index
        self._coord_offset = coord_offset
        self._marker_body = marker_body
        self.refresh()

    def refresh(self) -> None:
        if not self.is_initialized():
            raise ModelConfigurationError('init_system() must run before refresh().')
        self._marker_locations = np.array(
            [np.asarray(m.location_m, dtype=float) for m in self.markers], dtype=float
        ).reshape(-1, 2)
        self._contact_stiffness = np.array([c.stiffness_n_per_m for c in self.contacts], dtype=float)

    def contact_stiffness(self, index: int) -> float:
        """Stiffness of contact <index> as of the last refresh()."""
        return float(self._contact_stiffness[index])

    def marker(self, name: str) -> Marker:
        for m in self.markers:
            if m.name == name:
                return m
        raise ModelConfigurationError(f"Marker '{name}' is not in the model.")

    def contact(self, name: str) -> ContactElement:
        for c in self.contacts:
            if c.name == name:
                return c
        raise ModelConfigurationError(f"Contact '{name}' is not in the model.")

    def total_mass(self) -> float:
        return float(sum(b.mass_kg for b in self.bodies))

    def total_weight(self) -> float:
        return self.total_mass() * abs(float(self.gravity_mps2))

    def realize_velocity(self, state: State) -> None:
        """Compute marker kinematics in ground and cache them on the state."""
        if state.is_realized():
            return
        if not self.is_initialized():
            raise ModelConfigurationError('init_system() must run before realizing states.')
        if state.q.size != self.num_coordinates():
            raise TrajectoryError(
                f'State has {state.q.size} coordinates, model expects {self.num_coordinates()}.'
            )

        n = len(self.bodies)
        angle = np.zeros(n, dtype=float)
        omega = np.zeros(n, dtype=float)
        origin = np.zeros((n, 2), dtype=float)
        vel = np.zeros((n, 2), dtype=float)
        zero = np.zeros(2, dtype=float)

        for i, body in enumerate(self.bodies):
            p = int(self._parent_index[i])
            k = int(self._coord_offset[i])
            if p < 0:
                pa, pw, po, pv = 0.0, 0.0, zero, zero
            else:
                pa, pw, po, pv = angle[p], omega[p], origin[p], vel[p]

            r = _rotate(pa, body.location_in_parent_m)
            o = po + r
            v = pv + _cross_z(pw, r)
            if body.joint == 'planar':
                t = _rotate(pa, state.q[k + 1 : k + 3])
                o = o + t
                v = v + _rotate(pa, state.u[k + 1 : k + 3]) + _cross_z(pw, t)

            angle[i] = pa + state.q[k]
            omega[i] = pw + state.u[k]
            origin[i] = o
            vel[i] = v

        b = self._marker_body
        loc = self._marker_locations
        c = np.cos(angle[b])
        s = np.sin(angle[b])
        rx = c * loc[:, 0] - s * loc[:, 1]
        ry = s * loc[:, 0] + c * loc[:, 1]

        state.cache['marker_positions'] = origin[b] + np.column_stack([rx, ry])
        state.cache['marker_velocities'] = vel[b] + np.column_stack([-omega[b] * ry, omega[b] * rx])
