"""Field containers for collocated FV variables."""

from __future__ import annotations

from typing import Iterable, List, Optional

import numpy as np

from .dimensions import DIMLESS, Dimensions
from .mesh import Mesh


class Field:
    """Base class for collocated fields with boundary-face values.

    Patches without an explicit boundary condition behave as zero-gradient.
    """

    def __init__(
        self,
        name: str,
        mesh: Mesh,
        values,
        dimensions: Dimensions = DIMLESS,
        boundary_conditions: Optional[Iterable] = None,
    ) -> None:
        self.name = name
        self.mesh = mesh
        self.dimensions = dimensions
        arr = np.array(values, dtype=float)
        self._check_shape(arr)
        self.values = arr
        self.boundary_values = arr[mesh.owner[mesh.n_internal_faces :]].copy()
        self.boundary_conditions: List = []
        for bc in boundary_conditions or []:
            self.add_boundary_condition(bc)
        self.correct_boundary_conditions()

    def _check_shape(self, arr: np.ndarray) -> None:
        if arr.ndim != 1 or arr.shape[0] != self.mesh.ncells:
            raise ValueError(f"Field {self.name} expects {self.mesh.ncells} cells, got {arr.shape}")

    def add_boundary_condition(self, bc) -> None:
        for existing in self.boundary_conditions:
            if existing.name == bc.name:
                raise ValueError(f"Patch {bc.name} of {self.name} already has a boundary condition")
        self.boundary_conditions.append(bc)

    def boundary_condition(self, patch: str):
        for bc in self.boundary_conditions:
            if bc.name == patch:
                return bc
        return None

    def correct_boundary_conditions(self) -> None:
        mesh = self.mesh
        self.boundary_values[:] = self.values[mesh.owner[mesh.n_internal_faces :]]
        for bc in self.boundary_conditions:
            bc.update_face_values(self.boundary_values, self)

    def snapshot(self):
        return self.values.copy(), self.boundary_values.copy()

    def restore(self, snapshot) -> None:
        values, boundary = snapshot
        self.values[:] = values
        self.boundary_values[:] = boundary


class ScalarField(Field):
    """Scalar field stored at cell centres."""


class VectorField(Field):
    """Vector field with three components per cell."""

    def _check_shape(self, arr: np.ndarray) -> None:
        if arr.shape != (self.mesh.ncells, 3):
            raise ValueError(
                f"VectorField {self.name} expects shape {(self.mesh.ncells, 3)}, got {arr.shape}"
            )


class UniformVectorField:
    """Mesh-independent vector, e.g. gravitational acceleration."""

    def __init__(self, name: str, value: Iterable[float], dimensions: Dimensions = DIMLESS) -> None:
        arr = np.array(list(value), dtype=float)
        if arr.shape != (3,):
            raise ValueError(f"{name} must have three components, got {arr.shape}")
        arr.setflags(write=False)
        self.name = name
        self._value = arr
        self.dimensions = dimensions

    @property
    def value(self) -> np.ndarray:
        return self._value

    def magnitude(self) -> float:
        return float(np.linalg.norm(self._value))

    def __repr__(self) -> str:
        return f"UniformVectorField({self.name!r}, {self._value.tolist()}, {self.dimensions})"
