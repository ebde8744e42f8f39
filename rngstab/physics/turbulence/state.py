"""Owned state of a two-equation closure: k, epsilon and the eddy viscosity."""

from __future__ import annotations

from typing import Iterable, Optional

import numpy as np

from ...core.bc import Calculated
from ...core.dimensions import DISSIPATION_RATE, ENERGY_PER_MASS, KINEMATIC_VISCOSITY
from ...core.field import ScalarField
from ...core.mesh import Mesh


class TurbulentFieldState:
    """Transported fields ``k`` and ``epsilon`` plus the derived ``nut``.

    Only the owning model mutates these fields. The state holds large
    per-cell arrays and refuses to be copied.
    """

    def __init__(
        self,
        mesh: Mesh,
        k: ScalarField,
        epsilon: ScalarField,
        k_min: float = 1.0e-15,
        epsilon_min: float = 1.0e-15,
        nut_bcs: Optional[Iterable] = None,
    ) -> None:
        ENERGY_PER_MASS.check(k.dimensions, "field k")
        DISSIPATION_RATE.check(epsilon.dimensions, "field epsilon")
        for field in (k, epsilon):
            if field.mesh is not mesh:
                raise ValueError(f"field {field.name} lives on a different mesh")
        if k_min <= 0.0 or epsilon_min <= 0.0:
            raise ValueError("kMin and epsilonMin must be positive")
        self.mesh = mesh
        self._k = k
        self._epsilon = epsilon
        self.k_min = float(k_min)
        self.epsilon_min = float(epsilon_min)
        if nut_bcs is None:
            nut_bcs = [Calculated.for_patch(mesh, patch) for patch in mesh.patches()]
        self._nut = ScalarField(
            "nut", mesh, np.zeros(mesh.ncells), KINEMATIC_VISCOSITY, nut_bcs
        )
        self.bound()

    def __copy__(self):
        raise TypeError("TurbulentFieldState owns its fields and cannot be copied")

    def __deepcopy__(self, memo):
        raise TypeError("TurbulentFieldState owns its fields and cannot be copied")

    @property
    def k(self) -> ScalarField:
        return self._k

    @property
    def epsilon(self) -> ScalarField:
        return self._epsilon

    @property
    def nut(self) -> ScalarField:
        return self._nut

    def bound(self) -> None:
        """Clamp k and epsilon (cells and faces) to their floors."""

        bound_field(self._k, self.k_min)
        bound_field(self._epsilon, self.epsilon_min)

    def update_nut(self, Cmu: float) -> None:
        """``nut = Cmu k^2 / epsilon`` in cells and on calculated patches."""

        k, eps = self._k, self._epsilon
        nut = self._nut
        nut.values[:] = np.maximum(Cmu * k.values**2 / eps.values, 0.0)
        nut.boundary_values[:] = np.maximum(
            Cmu * k.boundary_values**2 / np.maximum(eps.boundary_values, self.epsilon_min), 0.0
        )
        for bc in nut.boundary_conditions:
            bc.update_face_values(nut.boundary_values, nut)

    def snapshot(self):
        return self._k.snapshot(), self._epsilon.snapshot()

    def restore(self, snapshot) -> None:
        k_snap, eps_snap = snapshot
        self._k.restore(k_snap)
        self._epsilon.restore(eps_snap)


def bound_field(field: ScalarField, minimum: float) -> None:
    np.maximum(field.values, minimum, out=field.values)
    np.maximum(field.boundary_values, minimum, out=field.boundary_values)
