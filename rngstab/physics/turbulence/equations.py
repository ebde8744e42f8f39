"""Assembly of the k and epsilon transport equations."""

from __future__ import annotations

from typing import Optional

import numpy as np

from ...core import fv_ops
from ...core.field import ScalarField
from ...core.linalg import FvMatrix
from ...core.mesh import Mesh
from ...numerics.schemes import make_scheme
from .coefficients import ModelCoefficients
from .production import ProductionTerms


class EquationAssembler:
    """Builds ``ddt + div(phi, psi) - laplacian(D, psi) = sources`` as an ``FvMatrix``.

    The assembler never solves; the returned matrix goes to the caller's
    linear solve service.
    """

    def __init__(
        self,
        mesh: Mesh,
        coeffs: ModelCoefficients,
        convection: str = "upwind",
        k_min: float = 1.0e-15,
        epsilon_min: float = 1.0e-15,
    ) -> None:
        self.mesh = mesh
        self.coeffs = coeffs
        self.k_min = k_min
        self.epsilon_min = epsilon_min
        self.scheme = make_scheme(convection)

    def transport(
        self,
        psi: ScalarField,
        face_flux: np.ndarray,
        diffusivity: ScalarField | np.ndarray,
        delta_t: Optional[float] = None,
        psi_old: Optional[np.ndarray] = None,
    ) -> FvMatrix:
        """Temporal, convection and diffusion operators including boundary patches."""

        mesh = self.mesh
        ni = mesh.n_internal_faces
        own = mesh.owner[:ni]
        nei = mesh.neighbour
        matrix = FvMatrix(mesh, psi.name)

        if delta_t is not None:
            rdt = mesh.cell_volumes / delta_t
            old = psi.values if psi_old is None else psi_old
            matrix.add_diag(rdt)
            matrix.add_source(rdt * old)

        # Convection: owner row gains +F psi_f, neighbour row -F psi_f
        flux = face_flux[:ni]
        w = self.scheme.weights(mesh, face_flux)
        np.add.at(matrix.diag, own, flux * w)
        matrix.upper += flux * (1.0 - w)
        matrix.lower -= flux * w
        np.add.at(matrix.diag, nei, -flux * (1.0 - w))

        gamma_face = fv_ops.interpolate(mesh, diffusivity)
        d = gamma_face[:ni] * mesh.magSf[:ni] * mesh.delta_coeffs[:ni]
        np.add.at(matrix.diag, own, d)
        np.add.at(matrix.diag, nei, d)
        matrix.upper -= d
        matrix.lower -= d

        covered = np.zeros(mesh.n_boundary_faces, dtype=bool)
        for bc in psi.boundary_conditions:
            bc.apply_coeffs(matrix, gamma_face, face_flux, psi)
            covered[bc.local] = True
        # Patches without a condition are zero-gradient: the face takes the cell value
        bare = np.flatnonzero(~covered) + ni
        if bare.size:
            matrix.add_boundary(mesh.owner[bare], face_flux[bare], np.zeros(bare.size))
        return matrix

    def epsilon_equation(
        self,
        epsilon: ScalarField,
        k: np.ndarray,
        terms: ProductionTerms,
        face_flux: np.ndarray,
        diffusivity: ScalarField | np.ndarray,
        delta_t: Optional[float] = None,
        epsilon_old: Optional[np.ndarray] = None,
        compressible: bool = False,
        extra_source: Optional[np.ndarray] = None,
    ) -> FvMatrix:
        c = self.coeffs
        eps = epsilon.values
        matrix = self.transport(epsilon, face_flux, diffusivity, delta_t, epsilon_old)

        G = terms.buoyancy
        buoyancy = np.where(G > 0.0, G, c.C3 * G)
        matrix.add_source_linearised(
            c.C1 * (terms.production + buoyancy) * eps / k, eps, self.epsilon_min
        )
        if compressible:
            matrix.add_susp(((2.0 / 3.0) * c.C1 - c.C3) * terms.divU, eps)
        matrix.add_susp(terms.C2_effective(c.C2) * eps / k, eps)
        if extra_source is not None:
            matrix.add_su(extra_source)
        return matrix

    def k_equation(
        self,
        k: ScalarField,
        epsilon: np.ndarray,
        terms: ProductionTerms,
        face_flux: np.ndarray,
        diffusivity: ScalarField | np.ndarray,
        delta_t: Optional[float] = None,
        k_old: Optional[np.ndarray] = None,
        compressible: bool = False,
        extra_source: Optional[np.ndarray] = None,
    ) -> FvMatrix:
        kv = k.values
        matrix = self.transport(k, face_flux, diffusivity, delta_t, k_old)
        matrix.add_su(terms.production)
        matrix.add_source_linearised(terms.buoyancy, kv, self.k_min)
        if compressible:
            matrix.add_susp((2.0 / 3.0) * terms.divU, kv)
        matrix.add_sp(epsilon / kv)
        if extra_source is not None:
            matrix.add_su(extra_source)
        return matrix

