"""Turbulence model package."""

from .base import TurbulenceModel, make_turbulence_model, register_turbulence, turbulence_registry
from .coefficients import ModelCoefficients
from .equations import EquationAssembler
from .production import ProductionEvaluator, ProductionTerms, strain_invariants
from .rng_kepsilon_stab import CorrectorStage, RNGkEpsilonStab
from .state import TurbulentFieldState

__all__ = [
    "CorrectorStage",
    "EquationAssembler",
    "ModelCoefficients",
    "ProductionEvaluator",
    "ProductionTerms",
    "RNGkEpsilonStab",
    "TurbulenceModel",
    "TurbulentFieldState",
    "make_turbulence_model",
    "register_turbulence",
    "strain_invariants",
    "turbulence_registry",
]
