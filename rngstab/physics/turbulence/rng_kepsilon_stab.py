"""Stabilized RNG k-epsilon model for free-surface wave simulations.

Builds on the RNG k-epsilon model of Yakhot et al. (1991), adds a buoyancy
production term (Umlauf et al. 2003; Burchard 2002) and attenuates shear
production in nearly irrotational regions beneath waves (Larsen and Fuhrman
2018). For compressible flows the rapid-distortion terms of El Tahry (1983)
are included.

The default coefficients are::

    RNGkEpsilonStabCoeffs:
      Cmu: 0.0845
      C1: 1.42
      C2: 1.68
      C3: -0.33
      sigmak: 0.71942
      sigmaEps: 0.71942
      eta0: 4.38
      beta: 0.012
      alphaBS: 1.36
      lambda2: 0.05
"""

from __future__ import annotations

import logging
from enum import Enum
from typing import Any, Callable, Dict, Mapping, Optional

import numpy as np

from ...core import fv_ops
from ...core.dimensions import ACCELERATION, DIMLESS, KINEMATIC_VISCOSITY
from ...core.field import ScalarField, UniformVectorField
from ...core.linalg import SOLVER_METHODS, FvMatrix, solve_matrix
from ...utils.logging import IterationLogger
from ..flow import FlowState
from .base import TurbulenceModel, register_turbulence
from .coefficients import ModelCoefficients
from .equations import EquationAssembler
from .production import ProductionEvaluator, ProductionTerms
from .state import TurbulentFieldState, bound_field

logger = logging.getLogger(__name__)

COEFFS_KEY = "RNGkEpsilonStabCoeffs"


class CorrectorStage(Enum):
    IDLE = 0
    PRODUCTION_EVALUATED = 1
    EPSILON_SOLVED = 2
    K_SOLVED = 3
    BOUNDED = 4
    NUT_UPDATED = 5


@register_turbulence("RNGkEpsilonStab", "rng-kepsilon-stab")
class RNGkEpsilonStab(TurbulenceModel):
    requires = {"k": True, "epsilon": True}

    def __init__(
        self,
        flow: FlowState,
        fields: Dict[str, ScalarField],
        config: Optional[Dict[str, Any]] = None,
        gravity: Optional[UniformVectorField] = None,
        coeffs_source: Optional[Callable[[], Mapping[str, Any]]] = None,
        linear_solver: Callable = solve_matrix,
        iteration_logger: Optional[IterationLogger] = None,
    ) -> None:
        super().__init__(flow, fields, config)
        cfg = self.config
        self.coeffs_source = coeffs_source
        self.coeffs = ModelCoefficients.from_dict(self._coefficient_block())

        if gravity is not None and gravity.dimensions != DIMLESS:
            ACCELERATION.check(gravity.dimensions, "gravity")
        self.gravity = gravity

        k_min = float(cfg.get("kMin", 1.0e-15))
        epsilon_min = float(cfg.get("epsilonMin", 1.0e-15))
        self.state = TurbulentFieldState(
            self.mesh, self.fields["k"], self.fields["epsilon"], k_min, epsilon_min
        )
        self.fields["nut"] = self.state.nut

        self.evaluator = ProductionEvaluator(
            self.coeffs, k_min, epsilon_min, stabilize=bool(cfg.get("stabilize", True))
        )
        self.assembler = EquationAssembler(
            self.mesh, self.coeffs, str(cfg.get("convection", "upwind")), k_min, epsilon_min
        )
        self.relaxation = {"k": 1.0, "epsilon": 1.0}
        self.relaxation.update({k: float(v) for k, v in (cfg.get("relaxationFactors") or {}).items()})
        for name, alpha in self.relaxation.items():
            if alpha <= 0.0 or alpha > 1.0:
                raise ValueError(f"relaxation factor for {name} must be in (0, 1], got {alpha}")
        self.solver_settings = dict(cfg.get("solvers") or {})
        self.linear_solver = linear_solver
        if linear_solver is solve_matrix:
            for name, settings in self.solver_settings.items():
                method = str((settings or {}).get("method", "direct")).lower()
                if method not in SOLVER_METHODS:
                    raise ValueError(f"unknown solver method '{method}' for {name}")
        self.iteration_logger = iteration_logger or IterationLogger(
            "RNGkEpsilonStab", echo=bool(cfg.get("verbose", False))
        )

        self.stage = CorrectorStage.IDLE
        self.iteration = 0
        self.terms: Optional[ProductionTerms] = None
        self.state.update_nut(self.coeffs.Cmu)
        logger.info("RNGkEpsilonStab coefficients: %s", self.coeffs.as_dict())

    # configuration --------------------------------------------------------

    def _coefficient_block(self, config: Optional[Mapping[str, Any]] = None) -> Mapping[str, Any]:
        if config is None:
            if self.coeffs_source is not None:
                return self.coeffs_source() or {}
            config = self.config
        if COEFFS_KEY in config:
            return config[COEFFS_KEY] or {}
        if "coeffs" in config:
            return config["coeffs"] or {}
        return config

    def read(self, config: Optional[Mapping[str, Any]] = None) -> bool:
        """Re-read the coefficient block; returns whether any coefficient changed."""

        changed = self.coeffs.read(self._coefficient_block(config))
        if changed:
            logger.info("RNGkEpsilonStab coefficients updated: %s", self.coeffs.as_dict())
        return changed

    # accessors ------------------------------------------------------------

    def k(self) -> ScalarField:
        return self.state.k

    def epsilon(self) -> ScalarField:
        return self.state.epsilon

    def nut(self) -> ScalarField:
        return self.state.nut

    def _effective_diffusivity(self, name: str, sigma: float) -> ScalarField:
        nut = self.state.nut
        nu = self.flow.nu()
        field = ScalarField(name, self.mesh, nut.values / sigma + nu, KINEMATIC_VISCOSITY)
        nu_b = nu[self.mesh.owner[self.mesh.n_internal_faces :]]
        field.boundary_values[:] = nut.boundary_values / sigma + nu_b
        return field

    def DkEff(self) -> ScalarField:
        """Effective diffusivity for k."""

        return self._effective_diffusivity("DkEff", self.coeffs.sigmak)

    def DepsilonEff(self) -> ScalarField:
        """Effective diffusivity for epsilon."""

        return self._effective_diffusivity("DepsilonEff", self.coeffs.sigmaEps)

    def production(self) -> ScalarField:
        values = np.zeros(self.mesh.ncells) if self.terms is None else self.terms.production
        return ScalarField("G", self.mesh, values)

    # source hooks ---------------------------------------------------------

    def k_source(self) -> Optional[np.ndarray]:
        """Additional explicit k source per unit volume."""

        return None

    def epsilon_source(self) -> Optional[np.ndarray]:
        """Additional explicit epsilon source per unit volume."""

        return None

    # correction -----------------------------------------------------------

    def _advance(self, stage: CorrectorStage) -> None:
        if stage.value != self.stage.value + 1:
            raise RuntimeError(f"Corrector cannot move from {self.stage.name} to {stage.name}")
        self.stage = stage

    def evaluate_production(self) -> ProductionTerms:
        flow = self.flow
        state = self.state
        grad_u = fv_ops.grad(self.mesh, flow.U())
        rho = flow.rho()
        grad_rho = None
        gravity = None
        if rho is not None and self.gravity is not None:
            grad_rho = fv_ops.grad(self.mesh, rho)
            gravity = self.gravity.value
        return self.evaluator.evaluate(
            grad_u,
            state.k.values,
            state.epsilon.values,
            state.nut.values,
            grad_rho=grad_rho,
            gravity=gravity,
            rho_ref=flow.rho_ref(),
        )

    def _solve(self, matrix: FvMatrix, field: ScalarField) -> Dict[str, float]:
        matrix.relax(self.relaxation.get(field.name, 1.0), field.values)
        solution, stats = self.linear_solver(
            matrix, field.values.copy(), self.solver_settings.get(field.name)
        )
        field.values[:] = solution
        return stats

    def correct(self) -> None:
        """Solve epsilon, then k, bound both and recompute ``nut``.

        Any failure propagates; k and epsilon keep the values they had when
        the call started.
        """

        if self.stage is not CorrectorStage.IDLE:
            raise RuntimeError("correct() is already in progress")
        snapshot = self.state.snapshot()
        try:
            stats = self._correct()
        except Exception:
            self.state.restore(snapshot)
            raise
        finally:
            self.stage = CorrectorStage.IDLE
        self.iteration += 1
        self.iteration_logger.log(self.iteration, stats)

    def _correct(self) -> Dict[str, Dict[str, float]]:
        flow = self.flow
        state = self.state
        k, epsilon = state.k, state.epsilon
        phi = flow.phi()
        delta_t = flow.delta_t()
        compressible = bool(flow.compressible)

        terms = self.evaluate_production()
        self.terms = terms
        self._advance(CorrectorStage.PRODUCTION_EVALUATED)

        eps_eqn = self.assembler.epsilon_equation(
            epsilon,
            k.values,
            terms,
            phi,
            self.DepsilonEff(),
            delta_t=delta_t,
            compressible=compressible,
            extra_source=self.epsilon_source(),
        )
        eps_stats = self._solve(eps_eqn, epsilon)
        bound_field(epsilon, state.epsilon_min)
        epsilon.correct_boundary_conditions()
        bound_field(epsilon, state.epsilon_min)
        self._advance(CorrectorStage.EPSILON_SOLVED)

        k_eqn = self.assembler.k_equation(
            k,
            epsilon.values,
            terms,
            phi,
            self.DkEff(),
            delta_t=delta_t,
            compressible=compressible,
            extra_source=self.k_source(),
        )
        k_stats = self._solve(k_eqn, k)
        self._advance(CorrectorStage.K_SOLVED)

        bound_field(k, state.k_min)
        k.correct_boundary_conditions()
        bound_field(k, state.k_min)
        self._advance(CorrectorStage.BOUNDED)

        state.update_nut(self.coeffs.Cmu)
        self._advance(CorrectorStage.NUT_UPDATED)

        return {"epsilon": eps_stats, "k": k_stats}
