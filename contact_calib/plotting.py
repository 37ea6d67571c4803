from __future__ import annotations

from pathlib import Path

import matplotlib

matplotlib.use('Agg')

import matplotlib.pyplot as plt
import numpy as np


def plot_force_comparison(
    time_s: np.ndarray,
    simulated_n: np.ndarray,
    experimental_n: np.ndarray,
    out_path: Path,
    *,
    body_weight_n: float | None = None,
) -> None:
    """Plot simulated vs experimental vertical GRF with the residual below."""
    fig, (ax1, ax2) = plt.subplots(
        2, 1, figsize=(12, 8), sharex=True, gridspec_kw={'height_ratios': [3, 1]}
    )

    ax1.plot(time_s, experimental_n, color='black', linewidth=1.6, label='experiment')
    ax1.plot(time_s, simulated_n, color='tab:blue', linewidth=1.2, label='simulation')
    if body_weight_n is not None:
        ax1.axhline(y=body_weight_n, color='gray', linewidth=0.8, linestyle='--', label='model weight')
    ax1.set_ylabel('Vertical GRF (N)')
    ax1.set_title('Foot-Ground Contact Calibration')
    ax1.grid(True, alpha=0.3)
    ax1.legend(fontsize=9)

    ax2.plot(time_s, np.asarray(simulated_n) - np.asarray(experimental_n), color='tab:red', linewidth=1.0)
    ax2.axhline(y=0, color='gray', linewidth=0.8, linestyle='--')
    ax2.set_xlabel('Time (s)')
    ax2.set_ylabel('Residual (N)')
    ax2.grid(True, alpha=0.3)

    plt.tight_layout()
    plt.savefig(out_path, dpi=160)
    plt.close(fig)
