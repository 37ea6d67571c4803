"""Output utilities for calibration results."""

from __future__ import annotations

import csv
from pathlib import Path

from contact_calib.objective import ForceComparison


COMPARISON_HEADERS = ['time_s', 'simulation_n', 'experiment_n']


def write_comparison_csv(path: Path, comparison: ForceComparison) -> None:
    """Write the simulated vs experimental vertical force table to CSV."""
    time_s, sim_n, exp_n = comparison.as_arrays()
    with Path(path).open('w', newline='', encoding='utf-8') as f:
        w = csv.writer(f)
        w.writerow(COMPARISON_HEADERS)
        for i in range(time_s.size):
            w.writerow([f'{time_s[i]:.6f}', f'{sim_n[i]:.6f}', f'{exp_n[i]:.6f}'])
