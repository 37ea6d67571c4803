"""Exception hierarchy for contact calibration.

Optimizer non-convergence is not an exception: it is reported through
``CalibrationStatus`` on the result.
"""

from __future__ import annotations


class CalibrationError(Exception):
    """Base class for calibration errors."""


class ModelConfigurationError(CalibrationError, ValueError):
    """
    The model definition is structurally invalid (missing marker, body or
    contact element, bad topology). Fatal and non-retryable: aborts the run.
    """


class TrajectoryError(CalibrationError, ValueError):
    """Input time series (states or reference force) is unusable."""
