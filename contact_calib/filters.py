from __future__ import annotations

import numpy as np
from scipy.signal import butter, sosfiltfilt


def lowpass_filter(x: np.ndarray, sample_rate_hz: float, cutoff_hz: float, order: int = 2) -> np.ndarray:
    """
    Butterworth lowpass of the given order per pass, applied forward+backward
    along axis 0 (zero-phase, twice the effective order).

    A cutoff at or above Nyquist returns the input unchanged.
    """
    x = np.asarray(x, dtype=float)
    if cutoff_hz <= 0.0 or cutoff_hz >= 0.5 * sample_rate_hz:
        return x.copy()
    sos = butter(N=order, Wn=cutoff_hz, btype='low', fs=sample_rate_hz, output='sos')
    return sosfiltfilt(sos, x, axis=0, padtype=None, padlen=0)
