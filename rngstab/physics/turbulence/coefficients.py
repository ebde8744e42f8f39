"""Model coefficients of the stabilized RNG k-epsilon closure."""

from __future__ import annotations

import logging
from typing import Any, Dict, Iterator, Mapping, Optional, Tuple

from ...core.dimensions import DIMLESS, DimensionedScalar, Dimensions

logger = logging.getLogger(__name__)

PER_TIME_SQUARED = Dimensions.of(time=-2)

DEFAULTS: Dict[str, Tuple[float, Dimensions]] = {
    "Cmu": (0.0845, DIMLESS),
    "C1": (1.42, DIMLESS),
    "C2": (1.68, DIMLESS),
    "C3": (-0.33, DIMLESS),
    "sigmak": (0.71942, DIMLESS),
    "sigmaEps": (0.71942, DIMLESS),
    "eta0": (4.38, DIMLESS),
    "beta": (0.012, DIMLESS),
    "alphaBS": (1.36, DIMLESS),
    "lambda2": (0.05, DIMLESS),
    "pOmegaSmall": (1.0e-15, PER_TIME_SQUARED),
}

ALIASES = {
    "sigma_k": "sigmak",
    "sigma_eps": "sigmaEps",
    "sigmaEpsilon": "sigmaEps",
}

POSITIVE = ("Cmu", "sigmak", "sigmaEps", "alphaBS", "lambda2", "pOmegaSmall")


def _parse_entry(name: str, entry: Any) -> Tuple[float, Optional[Dimensions]]:
    if isinstance(entry, Mapping):
        if "value" not in entry:
            raise ValueError(f"coefficient {name} needs a 'value' entry")
        dims = entry.get("dimensions")
        return float(entry["value"]), None if dims is None else Dimensions.parse(dims)
    if isinstance(entry, (list, tuple)):
        # [dimensions, value] as in a dimensioned dictionary entry
        if len(entry) != 2:
            raise ValueError(f"coefficient {name} must be [dimensions, value]")
        return float(entry[1]), Dimensions.parse(entry[0])
    return float(entry), None


class ModelCoefficients:
    """Dimensioned coefficients, re-readable without losing their units.

    >>> coeffs = ModelCoefficients.from_dict({"C2": 1.9})
    >>> coeffs.C2, coeffs.Cmu
    (1.9, 0.0845)
    """

    def __init__(self) -> None:
        self._coeffs: Dict[str, DimensionedScalar] = {
            name: DimensionedScalar(name, dims, value) for name, (value, dims) in DEFAULTS.items()
        }

    @classmethod
    def from_dict(cls, config: Optional[Mapping[str, Any]] = None) -> "ModelCoefficients":
        coeffs = cls()
        coeffs.read(config or {})
        return coeffs

    def read(self, config: Mapping[str, Any]) -> bool:
        """Re-parse ``config`` into the existing coefficients.

        Missing keys fall back to the compiled-in defaults. Returns whether
        any value changed.
        """

        entries: Dict[str, Any] = {}
        for key, entry in (config or {}).items():
            name = ALIASES.get(key, key)
            if name not in self._coeffs:
                logger.debug("Ignoring unknown coefficient %s", key)
                continue
            entries[name] = entry

        parsed: Dict[str, Tuple[float, Optional[Dimensions]]] = {}
        for name, coeff in self._coeffs.items():
            if name in entries:
                value, dims = _parse_entry(name, entries[name])
                if dims is not None:
                    coeff.dimensions.check(dims, f"coefficient {name}")
                parsed[name] = (value, dims)
            else:
                logger.info("Coefficient %s not specified, using default %g", name, DEFAULTS[name][0])
                parsed[name] = (DEFAULTS[name][0], None)

        for name in POSITIVE:
            if parsed[name][0] <= 0.0:
                raise ValueError(f"coefficient {name} must be positive, got {parsed[name][0]}")

        changed = False
        for name, (value, dims) in parsed.items():
            changed = self._coeffs[name].assign(value, dims) or changed
        return changed

    def __getattr__(self, name: str) -> float:
        coeffs = self.__dict__.get("_coeffs")
        if coeffs is not None and name in coeffs:
            return coeffs[name].value
        raise AttributeError(name)

    def __getitem__(self, name: str) -> DimensionedScalar:
        return self._coeffs[ALIASES.get(name, name)]

    def __iter__(self) -> Iterator[DimensionedScalar]:
        return iter(self._coeffs.values())

    def as_dict(self) -> Dict[str, float]:
        return {name: coeff.value for name, coeff in self._coeffs.items()}
