"""Single source of truth for config + repo paths (no env overrides).

Policy:
- No fallback/default config values in code.
- If required config keys are missing, terminate with a clear error.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any


REPO_ROOT = Path(__file__).parent.parent
DEFAULT_CONFIG_PATH = REPO_ROOT / 'config.json'

VALID_METHODS = ('differential_evolution', 'l-bfgs-b')
VALID_JOINTS = ('planar', 'pin')


def resolve_path(p: str) -> Path:
    path = Path(p)
    return path if path.is_absolute() else (REPO_ROOT / path)


def load_json(path: Path) -> dict:
    return json.loads(path.read_text(encoding='utf-8'))


def _require_path(cfg: dict, keys: list[str]) -> Any:
    cur: Any = cfg
    prefix: list[str] = []
    for k in keys:
        prefix.append(k)
        if not isinstance(cur, dict) or k not in cur:
            raise KeyError(f'Missing required config key: {".".join(prefix)}')
        cur = cur[k]
    return cur


def req_str(cfg: dict, keys: list[str]) -> str:
    v = _require_path(cfg, keys)
    if not isinstance(v, str) or not v.strip():
        raise ValueError(f'Config key {".".join(keys)} must be a non-empty string.')
    return v


def req_float(cfg: dict, keys: list[str]) -> float:
    v = _require_path(cfg, keys)
    try:
        return float(v)
    except Exception as e:
        raise ValueError(f'Config key {".".join(keys)} must be a float-like value.') from e


def req_int(cfg: dict, keys: list[str]) -> int:
    v = _require_path(cfg, keys)
    try:
        return int(v)
    except Exception as e:
        raise ValueError(f'Config key {".".join(keys)} must be an int-like value.') from e


def req_bool(cfg: dict, keys: list[str]) -> bool:
    v = _require_path(cfg, keys)
    if not isinstance(v, bool):
        raise ValueError(f'Config key {".".join(keys)} must be true or false.')
    return v


def req_float_list(cfg: dict, keys: list[str], length: int | None = None) -> list[float]:
    v = _require_path(cfg, keys)
    if not isinstance(v, list):
        raise ValueError(f'Config key {".".join(keys)} must be a list of numbers.')
    try:
        out = [float(item) for item in v]
    except Exception as e:
        raise ValueError(f'Config key {".".join(keys)} must be a list of numbers.') from e
    if length is not None and len(out) != length:
        raise ValueError(f'Config key {".".join(keys)} must have exactly {length} entries.')
    return out


def read_config(path: Path | None = None) -> dict:
    cfg = load_json(path or DEFAULT_CONFIG_PATH)
    validate_config(cfg)
    return cfg


def validate_config(cfg: dict) -> None:
    # Existence/type checks (no defaults).
    req_float(cfg, ['model', 'gravity_mps2'])
    bodies = _require_path(cfg, ['model', 'bodies'])
    if not isinstance(bodies, list) or not bodies:
        raise ValueError('Config key model.bodies must be a non-empty list.')
    for i, body in enumerate(bodies):
        req_str(body, ['name'])
        req_str(body, ['parent'])
        req_float(body, ['mass_kg'])
        req_float_list(body, ['location_in_parent_m'], length=2)
        joint = req_str(body, ['joint'])
        if joint not in VALID_JOINTS:
            raise ValueError(f'model.bodies[{i}].joint must be one of {VALID_JOINTS}, got {joint!r}.')

    req_int(cfg, ['contact', 'num_contacts'])
    req_str(cfg, ['contact', 'body'])
    req_float(cfg, ['contact', 'x_heel_m'])
    req_float(cfg, ['contact', 'x_toes_m'])
    req_float(cfg, ['contact', 'marker_height_m'])
    req_float(cfg, ['contact', 'stiffness_n_per_m'])
    req_float(cfg, ['contact', 'friction_coefficient'])
    req_float(cfg, ['contact', 'velocity_scaling_mps'])
    req_float(cfg, ['contact', 'fictitious_stiffness_n_per_m'])
    req_float(cfg, ['contact', 'ground_height_m'])

    req_float_list(cfg, ['calibration', 'marker_height_bounds_m'], length=2)
    req_float(cfg, ['calibration', 'stiffness_scale_factor'])
    req_float(cfg, ['calibration', 'stiffness_base_unit_n_per_m'])
    method = req_str(cfg, ['calibration', 'method'])
    if method not in VALID_METHODS:
        raise ValueError(f'calibration.method must be one of {VALID_METHODS}, got {method!r}.')
    req_int(cfg, ['calibration', 'max_iterations'])
    req_float(cfg, ['calibration', 'tolerance'])
    req_int(cfg, ['calibration', 'population_size'])
    req_int(cfg, ['calibration', 'workers'])
    req_int(cfg, ['calibration', 'seed'])
    req_float(cfg, ['calibration', 'initial_value'])

    req_str(cfg, ['signal', 'force_column'])
    req_bool(cfg, ['signal', 'smooth'])

    req_float(cfg, ['trajectory', 'lowpass_hz'])

    req_str(cfg, ['logging', 'level'])
    req_bool(cfg, ['logging', 'json'])
