"""Residual history of the turbulence corrector."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, List, Mapping, Optional


@dataclass
class IterationLogger:
    """Records per-field solve statistics of each ``correct()`` call.

    ``history`` holds one flat entry per iteration: ``<field>`` is the
    initial residual, ``<field>_final`` the final one and
    ``<field>_iterations`` the solver iteration count.
    """

    name: str
    echo: bool = True
    history: List[Dict[str, float]] = field(default_factory=list)

    def log(self, iteration: int, solves: Mapping[str, Mapping[str, float]]) -> None:
        entry: Dict[str, float] = {"iter": iteration}
        pieces = [f"{self.name} iter {iteration:3d}"]
        for name, stats in solves.items():
            initial = float(stats.get("initial", float("nan")))
            final = float(stats.get("final", float("nan")))
            entry[name] = initial
            entry[f"{name}_final"] = final
            if "iterations" in stats:
                entry[f"{name}_iterations"] = float(stats["iterations"])
            pieces.append(f"{name} {initial:.3e} -> {final:.3e}")
        self.history.append(entry)
        if self.echo:
            print(" | ".join(pieces), flush=True)

    def last(self, key: str) -> Optional[float]:
        for entry in reversed(self.history):
            if key in entry:
                return entry[key]
        return None
