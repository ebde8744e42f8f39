"""Zero-gradient (Neumann) boundary condition."""

from __future__ import annotations

import numpy as np

from .base import BoundaryCondition


class ZeroGradient(BoundaryCondition):
    def value_coeffs(self, field):
        n = len(self.faces)
        return np.ones(n), np.zeros(n)

    def gradient_coeffs(self, field):
        n = len(self.faces)
        return np.zeros(n), np.zeros(n)

    def update_face_values(self, face_values, field) -> None:
        values = getattr(field, "values", field)
        face_values[self.local] = values[self.cells]
