"""Finite-volume scalar matrices and the default linear solve service."""

from __future__ import annotations

from typing import Dict, List, Optional, Tuple

import numpy as np
from scipy import sparse
from scipy.sparse import linalg as spla

try:  # Optional dependency for multigrid solves
    import pyamg  # type: ignore
except ImportError:  # pragma: no cover - optional path
    pyamg = None

from .mesh import Mesh
from .relax import implicit_relaxation


SOLVER_METHODS = ("direct", "bicgstab", "amg")


class SolverDivergenceError(RuntimeError):
    """The linear solve failed or did not converge."""

    def __init__(self, name: str, message: str, stats: Optional[Dict[str, float]] = None) -> None:
        super().__init__(f"{name}: {message}")
        self.name = name
        self.stats = stats or {}


class FvMatrix:
    """Face-addressed matrix for ``A psi = source``.

    ``upper[f]`` couples owner row to neighbour column and ``lower[f]``
    neighbour row to owner column of internal face ``f``.
    """

    def __init__(self, mesh: Mesh, name: str = "psi") -> None:
        self.mesh = mesh
        self.name = name
        self.diag = np.zeros(mesh.ncells)
        self.lower = np.zeros(mesh.n_internal_faces)
        self.upper = np.zeros(mesh.n_internal_faces)
        self.source = np.zeros(mesh.ncells)

    # assembly -------------------------------------------------------------

    def add_diag(self, coeffs: np.ndarray) -> None:
        self.diag += coeffs

    def add_source(self, values: np.ndarray) -> None:
        self.source += values

    def add_boundary(self, cells: np.ndarray, diag: np.ndarray, source: np.ndarray) -> None:
        np.add.at(self.diag, cells, diag)
        np.add.at(self.source, cells, source)

    def add_sp(self, coeff: np.ndarray) -> None:
        """Implicit source ``-coeff * psi`` per unit volume."""

        self.diag += coeff * self.mesh.cell_volumes

    def add_su(self, value: np.ndarray) -> None:
        """Explicit source per unit volume."""

        self.source += value * self.mesh.cell_volumes

    def add_susp(self, coeff: np.ndarray, psi: np.ndarray) -> None:
        """Sink ``-coeff * psi``: implicit where ``coeff > 0``, explicit otherwise."""

        coeff = np.asarray(coeff, dtype=float)
        self.add_sp(np.maximum(coeff, 0.0))
        self.add_su(-np.minimum(coeff, 0.0) * psi)

    def add_source_linearised(self, rate: np.ndarray, psi: np.ndarray, psi_min: float) -> None:
        """Explicit rate: gains go to the source, losses become an implicit sink."""

        rate = np.asarray(rate, dtype=float)
        self.add_su(np.maximum(rate, 0.0))
        self.add_sp(-np.minimum(rate, 0.0) / np.maximum(psi, psi_min))

    def off_diag_sum(self) -> np.ndarray:
        mesh = self.mesh
        total = np.zeros(mesh.ncells)
        np.add.at(total, mesh.owner[: mesh.n_internal_faces], np.abs(self.upper))
        np.add.at(total, mesh.neighbour, np.abs(self.lower))
        return total

    def relax(self, alpha: float, psi: np.ndarray) -> None:
        self.diag, self.source = implicit_relaxation(
            self.diag, self.source, psi, alpha, self.off_diag_sum()
        )

    # algebra --------------------------------------------------------------

    def to_csr(self) -> sparse.csr_matrix:
        mesh = self.mesh
        n = mesh.ncells
        own = mesh.owner[: mesh.n_internal_faces]
        nei = mesh.neighbour
        rows = np.concatenate([np.arange(n), own, nei])
        cols = np.concatenate([np.arange(n), nei, own])
        data = np.concatenate([self.diag, self.upper, self.lower])
        return sparse.csr_matrix((data, (rows, cols)), shape=(n, n))

    def to_dense(self) -> np.ndarray:
        return self.to_csr().toarray()

    def matvec(self, vector: np.ndarray) -> np.ndarray:
        vec = np.asarray(vector, dtype=float)
        mesh = self.mesh
        own = mesh.owner[: mesh.n_internal_faces]
        nei = mesh.neighbour
        result = self.diag * vec
        np.add.at(result, own, self.upper * vec[nei])
        np.add.at(result, nei, self.lower * vec[own])
        return result

    def residual(self, psi: np.ndarray) -> float:
        """Normalised residual in the style of ``sum|b - Ax| / normFactor``."""

        psi = np.asarray(psi, dtype=float)
        r = self.source - self.matvec(psi)
        Apsi_mean = self.matvec(np.full_like(psi, psi.mean()))
        norm_factor = (
            np.abs(self.matvec(psi) - Apsi_mean).sum()
            + np.abs(self.source - Apsi_mean).sum()
            + 1.0e-20
        )
        return float(np.abs(r).sum() / norm_factor)

    def solve(
        self,
        method: str = "direct",
        tol: float = 1e-10,
        maxiter: int = 500,
        initial_guess: np.ndarray | None = None,
    ) -> Tuple[np.ndarray, Dict[str, float]]:
        method = method.lower()
        if method not in SOLVER_METHODS:
            raise NotImplementedError(f"Unknown solver method '{method}'")

        b = self.source
        x0 = np.zeros_like(b) if initial_guess is None else np.asarray(initial_guess, dtype=float)
        initial_res = self.residual(x0)

        if method == "direct":
            with np.errstate(all="ignore"):
                solution = np.asarray(spla.spsolve(self.to_csr().tocsc(), b))
            iterations = 1.0
        elif method == "amg":
            if pyamg is None:  # pragma: no cover - import guard
                raise RuntimeError("AMG solver requested but pyamg is not available.")
            ml = pyamg.smoothed_aggregation_solver(self.to_csr())
            residuals: List[float] = []
            solution = np.asarray(ml.solve(b, x0=x0, tol=tol, maxiter=maxiter, residuals=residuals))
            iterations = float(len(residuals))
        else:
            solution, iterations = self._bicgstab(b, x0, tol, maxiter)

        if not np.all(np.isfinite(solution)):
            raise SolverDivergenceError(self.name, f"{method} solve produced non-finite values")

        final_res = self.residual(solution)
        stats = {"initial": initial_res, "final": final_res, "iterations": iterations}
        if method != "direct" and final_res > max(tol, tol * initial_res) * 1.0e3:
            raise SolverDivergenceError(
                self.name, f"{method} did not converge (residual {final_res:.3e})", stats
            )
        return solution, stats

    def _bicgstab(self, b: np.ndarray, x0: np.ndarray, tol: float, maxiter: int) -> Tuple[np.ndarray, float]:
        inv_diag = np.zeros_like(self.diag)
        mask = self.diag != 0.0
        inv_diag[mask] = 1.0 / self.diag[mask]

        x = x0.copy()
        residual = b - self.matvec(x)
        initial_res = float(np.linalg.norm(residual))
        if initial_res == 0.0:
            return x, 0.0
        tol_target = max(tol, tol * initial_res)
        maxiter = max(1, maxiter)

        r_tilde = residual.copy()
        rho_old = alpha = omega = 1.0
        v = np.zeros_like(residual)
        p_vec = np.zeros_like(residual)
        iteration = 0
        for iteration in range(1, maxiter + 1):
            rho_new = np.dot(r_tilde, residual)
            if rho_new == 0.0:
                break
            if iteration == 1:
                p_vec = residual.copy()
            else:
                beta = (rho_new / rho_old) * (alpha / omega)
                p_vec = residual + beta * (p_vec - omega * v)

            y = inv_diag * p_vec
            v = self.matvec(y)
            denom = np.dot(r_tilde, v)
            if denom == 0.0:
                break
            alpha = rho_new / denom
            s = residual - alpha * v
            if float(np.linalg.norm(s)) <= tol_target:
                x += alpha * y
                break

            z = inv_diag * s
            t = self.matvec(z)
            tt = np.dot(t, t)
            if tt == 0.0:
                break
            omega = np.dot(t, s) / tt
            x += alpha * y + omega * z
            residual = s - omega * t
            if float(np.linalg.norm(residual)) <= tol_target or omega == 0.0:
                break
            rho_old = rho_new
        return x, float(iteration)


def solve_matrix(
    matrix: FvMatrix,
    initial_guess: np.ndarray | None = None,
    settings: Optional[Dict] = None,
) -> Tuple[np.ndarray, Dict[str, float]]:
    """Default solve service: ``settings`` may carry ``method``, ``tol``, ``maxiter``."""

    settings = settings or {}
    return matrix.solve(
        method=str(settings.get("method", "direct")),
        tol=float(settings.get("tol", 1e-10)),
        maxiter=int(settings.get("maxiter", 500)),
        initial_guess=initial_guess,
    )
