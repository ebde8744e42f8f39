"""Finite-volume helper operations."""

from __future__ import annotations

from typing import Optional

import numpy as np

from .field import Field
from .mesh import Mesh


def _values_array(field: Field | np.ndarray) -> np.ndarray:
    if isinstance(field, Field):
        return field.values
    return np.asarray(field, dtype=float)


def _boundary_array(mesh: Mesh, field: Field | np.ndarray) -> np.ndarray:
    if isinstance(field, Field):
        return field.boundary_values
    values = np.asarray(field, dtype=float)
    return values[mesh.owner[mesh.n_internal_faces :]]


def interpolate(
    mesh: Mesh,
    field: Field | np.ndarray,
    scheme: str = "linear",
    face_flux: Optional[np.ndarray] = None,
) -> np.ndarray:
    """Face values: internal faces by ``scheme``, boundary faces from the field's BCs."""

    values = _values_array(field)
    ni = mesh.n_internal_faces
    own = values[mesh.owner[:ni]]
    nei = values[mesh.neighbour]
    if scheme.lower() == "upwind":
        if face_flux is None:
            raise ValueError("Upwind interpolation requires face_flux")
        positive = face_flux[:ni] >= 0.0
        if values.ndim > 1:
            positive = positive[:, None]
        internal = np.where(positive, own, nei)
    else:
        w = mesh.weights if values.ndim == 1 else mesh.weights[:, None]
        internal = w * own + (1.0 - w) * nei
    return np.concatenate([internal, _boundary_array(mesh, field)])


def grad(mesh: Mesh, field: Field | np.ndarray) -> np.ndarray:
    """Gauss linear gradient.

    Scalars give shape ``(ncells, 3)``; vectors give ``(ncells, 3, 3)`` with
    ``grad[c, i, j] = d phi_j / d x_i``.
    """

    values = _values_array(field)
    face_vals = interpolate(mesh, field)
    ni = mesh.n_internal_faces
    if values.ndim == 1:
        contrib = mesh.Sf * face_vals[:, None]
        grads = np.zeros((mesh.ncells, 3))
    else:
        contrib = mesh.Sf[:, :, None] * face_vals[:, None, :]
        grads = np.zeros((mesh.ncells, 3, values.shape[1]))
    np.add.at(grads, mesh.owner, contrib)
    np.add.at(grads, mesh.neighbour, -contrib[:ni])
    shape = (-1,) + (1,) * (grads.ndim - 1)
    return grads / mesh.cell_volumes.reshape(shape)


def div(mesh: Mesh, face_flux: np.ndarray) -> np.ndarray:
    if face_flux.ndim != 1:
        raise ValueError("div expects scalar flux per face")
    divergence = np.zeros(mesh.ncells)
    np.add.at(divergence, mesh.owner, face_flux)
    np.add.at(divergence, mesh.neighbour, -face_flux[: mesh.n_internal_faces])
    return divergence / mesh.cell_volumes


def face_flux(
    mesh: Mesh,
    face_velocity: np.ndarray,
    density: float | np.ndarray = 1.0,
) -> np.ndarray:
    """Flux ``rho_f U_f . S_f``; ``density`` may be a scalar or per-face array."""

    flux = np.einsum("ij,ij->i", face_velocity, mesh.Sf)
    return np.asarray(density, dtype=float) * flux


def velocity_flux(mesh: Mesh, velocity: Field) -> np.ndarray:
    """Volumetric face flux of a velocity field by linear interpolation."""

    return face_flux(mesh, interpolate(mesh, velocity))
