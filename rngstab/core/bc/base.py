"""Boundary condition base classes."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Iterable, Tuple

import numpy as np

from ..mesh import Mesh


class BoundaryCondition(ABC):
    """Patch condition expressed through value and gradient coefficients.

    The face value is ``vic * phi_P + vbc`` and the surface-normal gradient
    is ``gic * phi_P + gbc``, with ``phi_P`` the owner-cell value.
    """

    def __init__(self, name: str, mesh: Mesh, faces: Iterable[int]) -> None:
        self.name = name
        self.mesh = mesh
        self.faces = np.asarray(list(faces), dtype=int)
        self.local = self.faces - mesh.n_internal_faces
        if np.any(self.local < 0):
            raise ValueError(f"Patch {name} refers to internal faces")
        self.cells = mesh.owner[self.faces]

    @classmethod
    def for_patch(cls, mesh: Mesh, patch: str, *args, **kwargs) -> "BoundaryCondition":
        return cls(patch, mesh, mesh.patch_faces(patch), *args, **kwargs)

    @abstractmethod
    def value_coeffs(self, field) -> Tuple[np.ndarray, np.ndarray]:
        """Internal and boundary coefficients of the face value."""

    @abstractmethod
    def gradient_coeffs(self, field) -> Tuple[np.ndarray, np.ndarray]:
        """Internal and boundary coefficients of the face-normal gradient."""

    @abstractmethod
    def update_face_values(self, face_values: np.ndarray, field) -> None:
        """Recompute face values consistent with the boundary condition."""

    def apply_coeffs(self, matrix, gamma_face: np.ndarray, face_flux: np.ndarray | None, field) -> None:
        """Add convection and diffusion contributions of the patch to ``matrix``."""

        diag = np.zeros(len(self.faces))
        source = np.zeros(len(self.faces))
        if face_flux is not None:
            flux = face_flux[self.faces]
            vic, vbc = self.value_coeffs(field)
            diag += flux * vic
            source -= flux * vbc
        gic, gbc = self.gradient_coeffs(field)
        g = gamma_face[self.faces] * self.mesh.magSf[self.faces]
        diag -= g * gic
        source += g * gbc
        matrix.add_boundary(self.cells, diag, source)
