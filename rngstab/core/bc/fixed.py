"""Fixed-value (Dirichlet) boundary conditions."""

from __future__ import annotations

import numpy as np

from .base import BoundaryCondition


class FixedValue(BoundaryCondition):
    """Uniform or per-face fixed value; vector values apply to vector fields."""

    def __init__(self, name, mesh, faces, value):
        super().__init__(name, mesh, faces)
        self.value = np.asarray(value, dtype=float)

    def value_coeffs(self, field):
        return np.zeros(len(self.faces)), np.broadcast_to(self.value, (len(self.faces),))

    def gradient_coeffs(self, field):
        delta = self.mesh.delta_coeffs[self.faces]
        return -delta, delta * self.value

    def update_face_values(self, face_values, field) -> None:
        face_values[self.local] = self.value


class Calculated(BoundaryCondition):
    """Face values assigned by the owner of the field (e.g. ``nut``)."""

    def value_coeffs(self, field):
        return np.zeros(len(self.faces)), field.boundary_values[self.local]

    def gradient_coeffs(self, field):
        delta = self.mesh.delta_coeffs[self.faces]
        return -delta, delta * field.boundary_values[self.local]

    def update_face_values(self, face_values, field) -> None:
        return
