"""Flow-state capability consumed by turbulence closures.

Closures do not inherit from a flow model; they are handed an object that
provides velocity, flux, viscosity and (optionally) density.
"""

from __future__ import annotations

from typing import Optional, Protocol, runtime_checkable

import numpy as np

from ..core import fv_ops
from ..core.dimensions import DENSITY, DIMLESS, VELOCITY, Dimensions
from ..core.field import ScalarField, VectorField
from ..core.mesh import Mesh
from .transport import Transport


@runtime_checkable
class FlowState(Protocol):
    mesh: Mesh
    compressible: bool

    def U(self) -> VectorField: ...

    def phi(self) -> np.ndarray: ...

    def nu(self) -> np.ndarray: ...

    def rho(self) -> Optional[ScalarField]: ...

    def rho_ref(self) -> float: ...

    def delta_t(self) -> Optional[float]: ...


def _check_dimensions(field, expected: Dimensions) -> None:
    # Fields built without units are taken at face value
    if field is not None and field.dimensions != DIMLESS:
        expected.check(field.dimensions, f"field {field.name}")


class FlowFields:
    """Frozen flow state for single-phase or two-phase (``alpha``) flows.

    ``phi`` defaults to the linearly interpolated volumetric flux of ``U``.
    ``rho`` overrides the density derived from ``alpha``; without either the
    density is uniform and buoyancy vanishes.
    """

    def __init__(
        self,
        mesh: Mesh,
        U: VectorField,
        transport: Transport,
        phi: Optional[np.ndarray] = None,
        alpha: Optional[ScalarField] = None,
        rho: Optional[ScalarField] = None,
        delta_t: Optional[float] = None,
        compressible: bool = False,
    ) -> None:
        _check_dimensions(U, VELOCITY)
        _check_dimensions(rho, DENSITY)
        self.mesh = mesh
        self._U = U
        self.transport = transport
        self.alpha = alpha
        self._phi = fv_ops.velocity_flux(mesh, U) if phi is None else np.asarray(phi, dtype=float)
        if self._phi.shape != (mesh.nfaces,):
            raise ValueError(f"phi expects {mesh.nfaces} faces, got {self._phi.shape}")
        if delta_t is not None and delta_t <= 0.0:
            raise ValueError("delta_t must be positive")
        self._delta_t = delta_t
        self.compressible = compressible
        self._rho = rho if rho is not None else self._mixture_density()

    def _mixture_density(self) -> Optional[ScalarField]:
        if self.alpha is None:
            return None
        rho = ScalarField(
            "rho", self.mesh, self.transport.density(self.alpha.values), DENSITY
        )
        rho.boundary_values[:] = self.transport.density(self.alpha.boundary_values)
        return rho

    def U(self) -> VectorField:
        return self._U

    def phi(self) -> np.ndarray:
        return self._phi

    def nu(self) -> np.ndarray:
        alpha = None if self.alpha is None else self.alpha.values
        return np.broadcast_to(self.transport.nu(alpha), (self.mesh.ncells,)).astype(float)

    def rho(self) -> Optional[ScalarField]:
        return self._rho

    def rho_ref(self) -> float:
        return float(self.transport.reference_density())

    def delta_t(self) -> Optional[float]:
        return self._delta_t
