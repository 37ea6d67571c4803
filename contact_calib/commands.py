"""Calibration and comparison commands."""

from __future__ import annotations

from pathlib import Path

from contact_calib.calibration import CalibrationResult, CalibrationStatus, OptimizerAdapter
from contact_calib.calibration_store import load_calibration_x, write_calibration_result
from contact_calib.io import read_force_signal, read_table
from contact_calib.model_components import build_foot_model
from contact_calib.objective import ContactObjective, ForceComparison
from contact_calib.output import write_comparison_csv
from contact_calib.parameters import ParameterMapping
from contact_calib.plotting import plot_force_comparison
from contact_calib.settings import req_bool, req_float, req_float_list, req_int, req_str
from contact_calib.signal import ExperimentalForceSignal
from contact_calib.trajectory import states_from_motion


COMPARISON_CSV = 'comparison.csv'
COMPARISON_PNG = 'comparison.png'
CALIBRATION_JSON = 'calibration.json'


def build_mapping(config: dict) -> ParameterMapping:
    lo, hi = req_float_list(config, ['calibration', 'marker_height_bounds_m'], length=2)
    return ParameterMapping(
        num_contacts=req_int(config, ['contact', 'num_contacts']),
        height_bounds_m=(lo, hi),
        stiffness_scale_factor=req_float(config, ['calibration', 'stiffness_scale_factor']),
        stiffness_base_unit_n_per_m=req_float(config, ['calibration', 'stiffness_base_unit_n_per_m']),
    )


def build_objective(config: dict, *, states_path: Path, grf_path: Path, echo=print) -> ContactObjective:
    model = build_foot_model(config)
    model.init_system()

    motion = read_table(states_path)
    trajectory = states_from_motion(
        model,
        motion.time_s,
        motion.columns(),
        lowpass_hz=req_float(config, ['trajectory', 'lowpass_hz']),
        in_degrees=motion.in_degrees,
    )

    time_s, force_n = read_force_signal(grf_path, req_str(config, ['signal', 'force_column']))
    signal = ExperimentalForceSignal.from_samples(time_s, force_n, smooth=req_bool(config, ['signal', 'smooth']))

    echo(f'Model: {len(model.bodies)} bodies, {len(model.contacts)} contacts, weight {model.total_weight():.1f} N')
    echo(f'Number of states in trajectory: {len(trajectory)}')

    return ContactObjective(model, trajectory, signal, build_mapping(config))


def write_report(objective: ContactObjective, x, output_dir: Path) -> float:
    """Diagnostic comparison for x: comparison.csv + comparison.png. Returns the objective."""
    output_dir.mkdir(parents=True, exist_ok=True)
    comparison = ForceComparison()
    value = objective.diagnostic_comparison(x, comparison)

    write_comparison_csv(output_dir / COMPARISON_CSV, comparison)
    time_s, sim_n, exp_n = comparison.as_arrays()
    plot_force_comparison(
        time_s,
        sim_n,
        exp_n,
        output_dir / COMPARISON_PNG,
        body_weight_n=objective.pool.acquire().total_weight(),
    )
    return value


def run_calibrate(
    config: dict,
    *,
    states_path: Path,
    grf_path: Path,
    output_dir: Path,
    method: str | None = None,
    workers: int | None = None,
    max_iterations: int | None = None,
    echo=print,
) -> CalibrationResult:
    objective = build_objective(config, states_path=states_path, grf_path=grf_path, echo=echo)

    adapter = OptimizerAdapter(
        objective,
        objective.num_parameters,
        method=method or req_str(config, ['calibration', 'method']),
        max_iterations=max_iterations or req_int(config, ['calibration', 'max_iterations']),
        tolerance=req_float(config, ['calibration', 'tolerance']),
        population_size=req_int(config, ['calibration', 'population_size']),
        workers=workers if workers is not None else req_int(config, ['calibration', 'workers']),
        seed=req_int(config, ['calibration', 'seed']),
        initial_value=req_float(config, ['calibration', 'initial_value']),
    )
    result = adapter.optimize()

    echo(f'status: {result.status.value} ({result.message})')
    echo(f'objective: {result.objective:.6g}')
    echo(f'variables: {[round(float(v), 6) for v in result.x]}')
    echo(f'Runtime: {result.runtime_s:.1f} s, {result.n_evaluations} evaluations, {len(objective.pool)} model clones')

    write_calibration_result(output_dir / CALIBRATION_JSON, result, objective.mapping)
    if result.status is not CalibrationStatus.FAILED:
        write_report(objective, result.x, output_dir)
    objective.pool.clear()

    echo(f'\nResults written to {output_dir}/')
    return result


def run_compare(
    config: dict,
    *,
    states_path: Path,
    grf_path: Path,
    calibration_path: Path,
    output_dir: Path,
    echo=print,
) -> float:
    objective = build_objective(config, states_path=states_path, grf_path=grf_path, echo=echo)
    x = load_calibration_x(calibration_path, objective.mapping)
    value = write_report(objective, x, output_dir)
    echo(f'objective: {value:.6g}')
    echo(f'\nComparison written to {output_dir}/')
    return value
