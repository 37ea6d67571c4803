#!/usr/bin/env -S uv run

from __future__ import annotations

import argparse
from pathlib import Path

from contact_calib.calibration import CalibrationStatus
from contact_calib.commands import run_calibrate, run_compare
from contact_calib.log import configure_logging
from contact_calib.settings import DEFAULT_CONFIG_PATH, read_config, req_bool, req_str, resolve_path


def main() -> None:
    parser = argparse.ArgumentParser(
        description='Calibrate foot-ground contact marker heights and stiffness to a measured vertical GRF.'
    )
    parser.add_argument('--config', type=Path, default=DEFAULT_CONFIG_PATH, help='Path to config.json.')
    parser.add_argument('--states', type=Path, required=True, help='Coordinates (.mot/.sto/.csv), one column per model coordinate.')
    parser.add_argument('--grf', type=Path, required=True, help='Ground reaction forces (.mot/.sto/.csv).')
    parser.add_argument('--output-dir', type=Path, default=Path('output'), help='Directory for results.')
    parser.add_argument('--method', choices=['differential_evolution', 'l-bfgs-b'], help='Override calibration.method.')
    parser.add_argument('--workers', type=int, help='Override calibration.workers (-1 = all cores).')
    parser.add_argument('--max-iterations', type=int, help='Override calibration.max_iterations.')
    parser.add_argument(
        '--compare-only',
        action='store_true',
        help='Skip optimization; write the comparison for <output-dir>/calibration.json.',
    )
    args = parser.parse_args()

    config = read_config(args.config)
    configure_logging(
        level=req_str(config, ['logging', 'level']),
        format_json=req_bool(config, ['logging', 'json']),
    )

    output_dir = resolve_path(str(args.output_dir))

    if args.compare_only:
        run_compare(
            config,
            states_path=args.states,
            grf_path=args.grf,
            calibration_path=output_dir / 'calibration.json',
            output_dir=output_dir,
        )
        return

    result = run_calibrate(
        config,
        states_path=args.states,
        grf_path=args.grf,
        output_dir=output_dir,
        method=args.method,
        workers=args.workers,
        max_iterations=args.max_iterations,
    )
    if result.status is CalibrationStatus.FAILED:
        raise SystemExit(f'Calibration failed: {result.message}')


if __name__ == '__main__':
    main()
