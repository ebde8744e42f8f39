"""Turbulence growth beneath a frozen linear wave with and without stabilization.

The velocity is the Airy (linear potential-flow) solution below a progressive
wave, frozen at ``t = 0``. The flow is irrotational, so a stabilized closure
should let the initial turbulence decay while the standard RNG closure
produces turbulence from the wave strain. Results are written to
``tests/artifacts``.
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import Dict, Iterable, List

import matplotlib.pyplot as plt
import numpy as np

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from rngstab.core.bc import FixedValue
from rngstab.core.dimensions import DISSIPATION_RATE, ENERGY_PER_MASS, VELOCITY
from rngstab.core.field import ScalarField, VectorField
from rngstab.core.mesh import Mesh
from rngstab.physics.flow import FlowFields
from rngstab.physics.transport import ConstantTransport
from rngstab.physics.turbulence import RNGkEpsilonStab

ARTIFACT_DIR = Path("tests/artifacts")
GRAVITY = 9.81


def airy_velocity(points: np.ndarray, amplitude: float, wavelength: float, depth: float) -> np.ndarray:
    wavenumber = 2.0 * np.pi / wavelength
    omega = np.sqrt(GRAVITY * wavenumber * np.tanh(wavenumber * depth))
    x = points[:, 0]
    z = points[:, 1] + depth
    scale = amplitude * omega / np.sinh(wavenumber * depth)
    velocity = np.zeros((len(points), 3))
    velocity[:, 0] = scale * np.cosh(wavenumber * z) * np.cos(wavenumber * x)
    velocity[:, 1] = scale * np.sinh(wavenumber * z) * np.sin(wavenumber * x)
    return velocity


def build_model(mesh: Mesh, U: VectorField, stabilize: bool, k0: float, eps0: float, dt: float) -> RNGkEpsilonStab:
    flow = FlowFields(mesh, U, ConstantTransport(rho=1000.0, mu=1.0e-3), delta_t=dt)
    fields = {
        "k": ScalarField("k", mesh, np.full(mesh.ncells, k0), ENERGY_PER_MASS),
        "epsilon": ScalarField("epsilon", mesh, np.full(mesh.ncells, eps0), DISSIPATION_RATE),
    }
    return RNGkEpsilonStab(flow, fields, config={"stabilize": stabilize, "convection": "upwind"})


def run(args: argparse.Namespace) -> Dict[str, List[float]]:
    mesh = Mesh.structured(
        args.nx, args.ny, lengths=(args.wavelength, args.depth), origin=(0.0, -args.depth)
    )
    bcs = [
        FixedValue.for_patch(
            mesh,
            patch,
            airy_velocity(mesh.Cf[mesh.patch_faces(patch)], args.amplitude, args.wavelength, args.depth),
        )
        for patch in mesh.patches()
    ]
    U = VectorField(
        "U",
        mesh,
        airy_velocity(mesh.cell_centers, args.amplitude, args.wavelength, args.depth),
        VELOCITY,
        bcs,
    )

    histories: Dict[str, List[float]] = {}
    for label, stabilize in (("stabilized", True), ("standard", False)):
        model = build_model(mesh, U, stabilize, args.k0, args.eps0, args.dt)
        history = [float(model.k().values.mean())]
        for _ in range(args.steps):
            model.correct()
            history.append(float(model.k().values.mean()))
        histories[label] = history
        logging.info("%s: mean k %.3e -> %.3e", label, history[0], history[-1])
    return histories


def plot(histories: Dict[str, List[float]], dt: float, output: Path) -> None:
    fig, ax = plt.subplots(figsize=(6, 4))
    for label, history in histories.items():
        times = np.arange(len(history)) * dt
        ax.semilogy(times, history, label=label)
    ax.set_xlabel("t [s]")
    ax.set_ylabel("mean k [m$^2$/s$^2$]")
    ax.set_title("Turbulence under a frozen linear wave")
    ax.legend()
    fig.tight_layout()
    fig.savefig(output, dpi=150)
    plt.close(fig)


def parse_args(argv: Iterable[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Compare RNG k-epsilon with and without stabilization")
    parser.add_argument("--nx", type=int, default=40)
    parser.add_argument("--ny", type=int, default=20)
    parser.add_argument("--wavelength", type=float, default=2.0)
    parser.add_argument("--depth", type=float, default=1.0)
    parser.add_argument("--amplitude", type=float, default=0.05)
    parser.add_argument("--k0", type=float, default=1.0e-5)
    parser.add_argument("--eps0", type=float, default=1.0e-6)
    parser.add_argument("--dt", type=float, default=0.05)
    parser.add_argument("--steps", type=int, default=100)
    parser.add_argument("--output", type=Path, default=ARTIFACT_DIR / "stabilization_probe.json")
    return parser.parse_args(list(argv) if argv is not None else None)


def main(argv: Iterable[str] | None = None) -> None:
    logging.basicConfig(level=logging.INFO, format="%(levelname)s %(name)s: %(message)s")
    args = parse_args(argv)
    args.output.parent.mkdir(parents=True, exist_ok=True)
    histories = run(args)
    args.output.write_text(json.dumps(histories, indent=2))
    plot(histories, args.dt, args.output.with_suffix(".png"))


if __name__ == "__main__":
    main()
