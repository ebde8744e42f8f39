"""Physical unit signatures for fields and model coefficients."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Tuple

BASE_UNITS = ("kg", "m", "s", "K", "mol", "A", "cd")


class UnitMismatchError(ValueError):
    """Raised when a quantity carries an unexpected unit signature."""


@dataclass(frozen=True)
class Dimensions:
    """Exponents of the SI base units, ordered ``[kg m s K mol A cd]``."""

    exponents: Tuple[float, ...] = (0.0,) * 7

    def __post_init__(self) -> None:
        exps = tuple(float(e) for e in self.exponents)
        if len(exps) != len(BASE_UNITS):
            raise ValueError(f"Dimensions need {len(BASE_UNITS)} exponents, got {len(exps)}")
        object.__setattr__(self, "exponents", exps)

    @classmethod
    def of(
        cls,
        mass: float = 0,
        length: float = 0,
        time: float = 0,
        temperature: float = 0,
        moles: float = 0,
        current: float = 0,
        luminous: float = 0,
    ) -> "Dimensions":
        return cls((mass, length, time, temperature, moles, current, luminous))

    @classmethod
    def parse(cls, data: Iterable[float]) -> "Dimensions":
        values = list(data)
        # Short forms such as [0, 2, -2] pad the trailing exponents with zero
        if len(values) < len(BASE_UNITS):
            values = values + [0.0] * (len(BASE_UNITS) - len(values))
        return cls(tuple(values))

    def __mul__(self, other: "Dimensions") -> "Dimensions":
        return Dimensions(tuple(a + b for a, b in zip(self.exponents, other.exponents)))

    def __truediv__(self, other: "Dimensions") -> "Dimensions":
        return Dimensions(tuple(a - b for a, b in zip(self.exponents, other.exponents)))

    def __pow__(self, power: float) -> "Dimensions":
        return Dimensions(tuple(a * power for a in self.exponents))

    @property
    def dimensionless(self) -> bool:
        return all(e == 0.0 for e in self.exponents)

    def check(self, other: "Dimensions", what: str) -> None:
        if self != other:
            raise UnitMismatchError(f"{what}: expected dimensions {self}, got {other}")

    def __str__(self) -> str:
        pieces = [f"{e:g}" for e in self.exponents]
        return "[" + " ".join(pieces) + "]"


DIMLESS = Dimensions()
LENGTH = Dimensions.of(length=1)
TIME = Dimensions.of(time=1)
DENSITY = Dimensions.of(mass=1, length=-3)
VELOCITY = LENGTH / TIME
ACCELERATION = LENGTH / TIME**2
KINEMATIC_VISCOSITY = LENGTH**2 / TIME
ENERGY_PER_MASS = LENGTH**2 / TIME**2
DISSIPATION_RATE = LENGTH**2 / TIME**3


@dataclass
class DimensionedScalar:
    name: str
    dimensions: Dimensions
    value: float

    def assign(self, value: float, dimensions: Dimensions | None = None) -> bool:
        """Set a new value, keeping the unit signature. Returns whether it changed."""

        if dimensions is not None:
            self.dimensions.check(dimensions, f"coefficient {self.name}")
        new_value = float(value)
        changed = new_value != self.value
        self.value = new_value
        return changed

    def __float__(self) -> float:
        return self.value

    def __repr__(self) -> str:
        return f"{self.name} {self.dimensions} {self.value:g}"
