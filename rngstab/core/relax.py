"""Under-relaxation helpers."""

from __future__ import annotations

import numpy as np


def implicit_relaxation(
    diagonal: np.ndarray,
    source: np.ndarray,
    field_values: np.ndarray,
    alpha: float,
    off_diag_sum: np.ndarray | None = None,
):
    """Relax ``A psi = b`` towards the current ``field_values``.

    When ``off_diag_sum`` (row sums of ``|a_nb|``) is given the diagonal is
    first raised to diagonal dominance.
    """

    if alpha <= 0.0 or alpha > 1.0:
        raise ValueError("alpha must be in (0, 1]")
    if alpha == 1.0:
        return diagonal, source
    base = diagonal if off_diag_sum is None else np.maximum(np.abs(diagonal), off_diag_sum)
    diag_relaxed = base / alpha
    correction = (diag_relaxed - diagonal) * field_values
    return diag_relaxed, source + correction
