"""Boundary condition implementations."""

from .base import BoundaryCondition
from .fixed import Calculated, FixedValue
from .zero import ZeroGradient

BOUNDARY_TYPES = {
    "fixedvalue": FixedValue,
    "zerogradient": ZeroGradient,
    "calculated": Calculated,
}

__all__ = [
    "BOUNDARY_TYPES",
    "BoundaryCondition",
    "Calculated",
    "FixedValue",
    "ZeroGradient",
]
