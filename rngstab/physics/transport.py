"""Transport properties models."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Optional, Union

import numpy as np


@dataclass
class ConstantTransport:
    rho: float = 1.0
    mu: float = 1.0e-3

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, float]]) -> "ConstantTransport":
        data = data or {}
        rho = float(data.get("rho", 1.0))
        if "nu" in data:
            mu = float(data["nu"]) * rho
        else:
            mu = float(data.get("mu", 1.0e-3))
        if rho <= 0.0 or mu < 0.0:
            raise ValueError("transport requires rho > 0 and mu >= 0")
        return cls(rho=rho, mu=mu)

    def density(self, alpha=None) -> float:
        return self.rho

    def nu(self, alpha=None) -> float:
        return self.mu / self.rho

    def reference_density(self) -> float:
        return self.rho


@dataclass
class TwoPhaseTransport:
    """Immiscible two-phase mixture weighted by the phase fraction ``alpha``.

    ``alpha = 1`` is phase 1 (typically water), ``alpha = 0`` phase 2 (air).
    """

    rho1: float = 1000.0
    nu1: float = 1.0e-6
    rho2: float = 1.0
    nu2: float = 1.48e-5

    @classmethod
    def from_dict(cls, data: Dict[str, Dict[str, float]]) -> "TwoPhaseTransport":
        phase1 = data.get("phase1", {}) or {}
        phase2 = data.get("phase2", {}) or {}
        model = cls(
            rho1=float(phase1.get("rho", 1000.0)),
            nu1=float(phase1.get("nu", 1.0e-6)),
            rho2=float(phase2.get("rho", 1.0)),
            nu2=float(phase2.get("nu", 1.48e-5)),
        )
        if min(model.rho1, model.rho2) <= 0.0:
            raise ValueError("phase densities must be positive")
        return model

    def _alpha(self, alpha) -> np.ndarray:
        if alpha is None:
            raise ValueError("two-phase transport needs a phase fraction")
        return np.clip(np.asarray(alpha, dtype=float), 0.0, 1.0)

    def density(self, alpha=None) -> np.ndarray:
        a = self._alpha(alpha)
        return a * self.rho1 + (1.0 - a) * self.rho2

    def nu(self, alpha=None) -> np.ndarray:
        a = self._alpha(alpha)
        mu = a * self.rho1 * self.nu1 + (1.0 - a) * self.rho2 * self.nu2
        return mu / self.density(a)

    def reference_density(self) -> float:
        return max(self.rho1, self.rho2)


Transport = Union[ConstantTransport, TwoPhaseTransport]


def make_transport(data: Optional[Dict]) -> Transport:
    data = data or {}
    if "phase1" in data or "phase2" in data:
        return TwoPhaseTransport.from_dict(data)
    return ConstantTransport.from_dict(data)
