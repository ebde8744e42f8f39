"""Convection interpolation schemes."""

from __future__ import annotations

import numpy as np

from ..core.mesh import Mesh
from ..utils.registry import Registry


scheme_registry = Registry("schemes")


def make_scheme(name: str) -> "Scheme":
    return scheme_registry.create(name)


class Scheme:
    name = "generic"

    def weights(self, mesh: Mesh, face_flux: np.ndarray) -> np.ndarray:
        """Owner-cell weight of the face value on each internal face."""

        raise NotImplementedError


@scheme_registry.register("linear")
class LinearScheme(Scheme):
    name = "Linear"

    def weights(self, mesh: Mesh, face_flux: np.ndarray) -> np.ndarray:
        return mesh.weights


@scheme_registry.register("upwind")
class UpwindScheme(Scheme):
    name = "Upwind"

    def weights(self, mesh: Mesh, face_flux: np.ndarray) -> np.ndarray:
        return np.where(face_flux[: mesh.n_internal_faces] >= 0.0, 1.0, 0.0)
