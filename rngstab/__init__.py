"""Stabilized RNG k-epsilon turbulence closure for free-surface wave flows."""

from .core import Mesh, ScalarField, SolverDivergenceError, UniformVectorField, UnitMismatchError, VectorField
from .physics import ConstantTransport, FlowFields, TwoPhaseTransport
from .physics.turbulence import ModelCoefficients, RNGkEpsilonStab, make_turbulence_model
from .run import Case, TimeControl

__version__ = "0.1.0"

__all__ = [
    "Case",
    "ConstantTransport",
    "FlowFields",
    "Mesh",
    "ModelCoefficients",
    "RNGkEpsilonStab",
    "ScalarField",
    "SolverDivergenceError",
    "TimeControl",
    "TwoPhaseTransport",
    "UniformVectorField",
    "UnitMismatchError",
    "VectorField",
    "make_turbulence_model",
]
