from __future__ import annotations

import json
from pathlib import Path

import numpy as np

from contact_calib.calibration import CalibrationResult
from contact_calib.parameters import ParameterMapping, contact_name, marker_name


def _finite_or_none(v: float) -> float | None:
    return float(v) if np.isfinite(v) else None


def calibration_doc(result: CalibrationResult, mapping: ParameterMapping) -> dict:
    heights, stiffness = mapping.physical(result.x)
    return {
        'num_contacts': mapping.num_contacts,
        'x': [float(v) for v in result.x],
        'result': {
            'status': result.status.value,
            'success': result.success,
            'objective': _finite_or_none(result.objective),
            'message': result.message,
            'evaluations': result.n_evaluations,
            'iterations': result.n_iterations,
            'runtime_s': result.runtime_s,
        },
        'markers': {marker_name(i): {'height_m': float(heights[i])} for i in range(mapping.num_contacts)},
        'contacts': {
            contact_name(i): {'stiffness_n_per_m': float(stiffness[i])} for i in range(mapping.num_contacts)
        },
    }


def write_calibration_result(path: Path, result: CalibrationResult, mapping: ParameterMapping) -> None:
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    doc = calibration_doc(result, mapping)
    path.write_text(json.dumps(doc, indent=2) + '\n', encoding='utf-8')


def load_calibration_x(path: Path, mapping: ParameterMapping) -> np.ndarray:
    """Normalized parameter vector stored by write_calibration_result()."""
    doc = json.loads(Path(path).read_text(encoding='utf-8'))
    if int(doc.get('num_contacts', -1)) != mapping.num_contacts:
        raise ValueError(
            f"Calibration file {path} is for {doc.get('num_contacts')} contacts, "
            f'expected {mapping.num_contacts}.'
        )
    x = np.asarray(doc['x'], dtype=float)
    if x.shape != (mapping.num_parameters,):
        raise ValueError(f'Calibration file {path} has {x.size} parameters, expected {mapping.num_parameters}.')
    return x
