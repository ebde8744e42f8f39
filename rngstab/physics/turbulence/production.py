"""Shear and buoyancy production, RNG strain correction and potential-flow stabilization.

All terms are evaluated per cell from the velocity-gradient tensor
``gradU[c, i, j] = d U_j / d x_i``.

Stabilization
-------------
Beneath surface waves the flow is nearly irrotational: strain is large while
the vorticity is close to zero, and an unmodified closure produces turbulence
there. The ratio ``r = Omega2 / (S2 + pOmegaSmall)`` is 0 for irrotational
strain and 1 for simple shear. Shear production is scaled by

    f = tanh((r / (lambda2 * alphaBS))**2)

which is smooth, monotonic in ``r`` and bounded in [0, 1]. The attenuated
strain rate is ``f S2 + (1 - f) min(S2, pOmegaSmall)``, so irrotational cells
fall to the ``pOmegaSmall`` floor and sheared cells keep their production.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

import numpy as np

from .coefficients import ModelCoefficients


@dataclass
class ProductionTerms:
    S2: np.ndarray
    Omega2: np.ndarray
    divU: np.ndarray
    shear: np.ndarray
    stabilization: np.ndarray
    production: np.ndarray
    buoyancy: np.ndarray
    eta: np.ndarray
    C2_correction: np.ndarray

    def C2_effective(self, C2: float) -> np.ndarray:
        return C2 + self.C2_correction


def strain_invariants(grad_u: np.ndarray):
    """``S2 = gradU && dev(twoSymm(gradU))``, ``Omega2 = 2 W:W`` and ``div U``."""

    grad_u = np.asarray(grad_u, dtype=float)
    grad_t = np.swapaxes(grad_u, 1, 2)
    div_u = np.trace(grad_u, axis1=1, axis2=2)
    symm = 0.5 * (grad_u + grad_t)
    skew = 0.5 * (grad_u - grad_t)
    S2 = 2.0 * np.einsum("cij,cij->c", symm, symm) - (2.0 / 3.0) * div_u**2
    Omega2 = 2.0 * np.einsum("cij,cij->c", skew, skew)
    return np.maximum(S2, 0.0), Omega2, div_u


class ProductionEvaluator:
    def __init__(
        self,
        coeffs: ModelCoefficients,
        k_min: float = 1.0e-15,
        epsilon_min: float = 1.0e-15,
        stabilize: bool = True,
    ) -> None:
        self.coeffs = coeffs
        self.k_min = k_min
        self.epsilon_min = epsilon_min
        self.stabilize = stabilize

    def shear_production(self, nut: np.ndarray, S2: np.ndarray) -> np.ndarray:
        return nut * S2

    def buoyancy_production(
        self,
        nut: np.ndarray,
        grad_rho: Optional[np.ndarray],
        gravity: Optional[np.ndarray],
        rho_ref: float,
    ) -> np.ndarray:
        """``G = -(nut/sigmak) (g . grad rho) / rho_ref``; positive when heavy fluid lies above light."""

        if grad_rho is None or gravity is None:
            return np.zeros_like(nut)
        g_dot = np.asarray(grad_rho, dtype=float) @ np.asarray(gravity, dtype=float)
        return -(nut / self.coeffs.sigmak) * g_dot / rho_ref

    def rng_correction(self, S2: np.ndarray, k: np.ndarray, epsilon: np.ndarray):
        """Strain parameter ``eta`` and the RNG increment of ``C2``."""

        c = self.coeffs
        eta = np.sqrt(S2) * np.maximum(k, self.k_min) / np.maximum(epsilon, self.epsilon_min)
        eta3 = eta**3
        R = eta * (1.0 - eta / c.eta0) / (1.0 + c.beta * eta3)
        return eta, c.Cmu * eta**2 * R

    def stabilization_factor(self, S2: np.ndarray, Omega2: np.ndarray) -> np.ndarray:
        if not self.stabilize:
            return np.ones_like(S2)
        c = self.coeffs
        ratio = Omega2 / (S2 + c.pOmegaSmall)
        return np.tanh((ratio / (c.lambda2 * c.alphaBS)) ** 2)

    def attenuated_strain(self, S2: np.ndarray, factor: np.ndarray) -> np.ndarray:
        floor = np.minimum(S2, self.coeffs.pOmegaSmall)
        return factor * S2 + (1.0 - factor) * floor

    def evaluate(
        self,
        grad_u: np.ndarray,
        k: np.ndarray,
        epsilon: np.ndarray,
        nut: np.ndarray,
        grad_rho: Optional[np.ndarray] = None,
        gravity: Optional[np.ndarray] = None,
        rho_ref: float = 1.0,
    ) -> ProductionTerms:
        S2, Omega2, div_u = strain_invariants(grad_u)
        factor = self.stabilization_factor(S2, Omega2)
        eta, C2_correction = self.rng_correction(S2, k, epsilon)
        return ProductionTerms(
            S2=S2,
            Omega2=Omega2,
            divU=div_u,
            shear=self.shear_production(nut, S2),
            stabilization=factor,
            production=self.shear_production(nut, self.attenuated_strain(S2, factor)),
            buoyancy=self.buoyancy_production(nut, grad_rho, gravity, rho_ref),
            eta=eta,
            C2_correction=C2_correction,
        )
