"""Base turbulence model interface and registry."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, Dict, Optional

import numpy as np

from ...core.field import ScalarField
from ...utils.registry import Registry
from ..flow import FlowState


turbulence_registry = Registry("turbulence")


def register_turbulence(*names: str):
    return turbulence_registry.register(*names)


def make_turbulence_model(name: str, *args, **kwargs):
    return turbulence_registry.create(name, *args, **kwargs)


class TurbulenceModel(ABC):
    """Eddy-viscosity closure driven by a ``FlowState``.

    ``fields`` maps names to the transported fields the model should adopt;
    ``config`` is the model's options block.
    """

    requires: Dict[str, bool] = {"k": False, "epsilon": False}

    def __init__(
        self,
        flow: FlowState,
        fields: Optional[Dict[str, ScalarField]] = None,
        config: Optional[Dict[str, Any]] = None,
    ) -> None:
        if not isinstance(flow, FlowState):
            raise TypeError(f"{type(flow).__name__} does not provide the FlowState interface")
        self.flow = flow
        self.mesh = flow.mesh
        self.fields = fields if fields is not None else {}
        self.config = config or {}
        for name, required in self.requires.items():
            if required and name not in self.fields:
                raise KeyError(f"{type(self).__name__} requires an initial '{name}' field")

    @abstractmethod
    def correct(self) -> None:
        """Advance the model by one outer iteration."""

    @abstractmethod
    def nut(self) -> ScalarField:
        """Turbulent kinematic viscosity."""

    @abstractmethod
    def read(self, config: Optional[Dict[str, Any]] = None) -> bool:
        """Re-read coefficients; returns whether any changed."""

    def nu_eff(self) -> np.ndarray:
        return self.nut().values + self.flow.nu()
