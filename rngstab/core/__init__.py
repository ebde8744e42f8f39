"""Core finite-volume data structures."""

from .dimensions import DimensionedScalar, Dimensions, UnitMismatchError
from .field import ScalarField, UniformVectorField, VectorField
from .linalg import FvMatrix, SolverDivergenceError, solve_matrix
from .mesh import Mesh

__all__ = [
    "DimensionedScalar",
    "Dimensions",
    "FvMatrix",
    "Mesh",
    "ScalarField",
    "SolverDivergenceError",
    "UniformVectorField",
    "UnitMismatchError",
    "VectorField",
    "solve_matrix",
]
