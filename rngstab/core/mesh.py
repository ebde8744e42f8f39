"""Structured finite-volume mesh with owner/neighbour face addressing."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, List, Optional, Sequence, Tuple

import numpy as np


@dataclass
class Face:
    """Face connecting two cells or a cell and boundary."""

    owner: int
    neighbour: Optional[int]
    area_vector: np.ndarray
    center: np.ndarray
    patch: Optional[str] = None


class Mesh:
    """Collocated mesh; internal faces are numbered before boundary faces.

    Area vectors point from owner to neighbour on internal faces and out of
    the domain on boundary faces.
    """

    def __init__(
        self,
        cell_centers: np.ndarray,
        cell_volumes: np.ndarray,
        faces: Sequence[Face],
        shape: Tuple[int, int],
        spacing: Tuple[float, float],
        boundary_patches: Dict[str, List[int]],
    ) -> None:
        self.cell_centers = np.asarray(cell_centers, dtype=float)
        self.cell_volumes = np.asarray(cell_volumes, dtype=float)
        self.faces = list(faces)
        self.shape = shape
        self.spacing = spacing
        self.boundary_patches: Dict[str, List[int]] = {
            name: list(face_ids) for name, face_ids in boundary_patches.items()
        }

        internal = [f.neighbour is not None for f in self.faces]
        self.n_internal_faces = int(sum(internal))
        if not all(internal[: self.n_internal_faces]):
            raise ValueError("Internal faces must be numbered before boundary faces")

        self.owner = np.array([f.owner for f in self.faces], dtype=int)
        self.neighbour = np.array(
            [f.neighbour for f in self.faces[: self.n_internal_faces]], dtype=int
        )
        self.Sf = np.array([f.area_vector for f in self.faces], dtype=float).reshape(-1, 3)
        self.Cf = np.array([f.center for f in self.faces], dtype=float).reshape(-1, 3)
        self.magSf = np.linalg.norm(self.Sf, axis=1)
        self._build_geometry()

    def _build_geometry(self) -> None:
        ni = self.n_internal_faces
        own = self.owner
        C = self.cell_centers

        d_internal = C[self.neighbour] - C[own[:ni]]
        d_boundary = self.Cf[ni:] - C[own[ni:]]
        d = np.vstack([d_internal, d_boundary]) if len(self.faces) else np.zeros((0, 3))
        dist = np.linalg.norm(d, axis=1)
        if np.any(dist <= 0.0):
            raise ValueError("Degenerate face: zero cell-to-face distance")
        self.delta_coeffs = 1.0 / dist

        # Linear interpolation weight of the owner value on internal faces
        d_own = np.linalg.norm(self.Cf[:ni] - C[own[:ni]], axis=1)
        d_nei = np.linalg.norm(C[self.neighbour] - self.Cf[:ni], axis=1)
        self.weights = d_nei / (d_own + d_nei)

    @property
    def ncells(self) -> int:
        return int(len(self.cell_centers))

    @property
    def nfaces(self) -> int:
        return len(self.faces)

    @property
    def n_boundary_faces(self) -> int:
        return self.nfaces - self.n_internal_faces

    @classmethod
    def structured(
        cls,
        nx: int,
        ny: int,
        lengths: Tuple[float, float] = (1.0, 1.0),
        origin: Tuple[float, float] = (0.0, 0.0),
        patch_aliases: Optional[Dict[str, str]] = None,
    ) -> "Mesh":
        """Uniform Cartesian mesh in the x-y plane with unit depth.

        Boundary patches are ``xmin``, ``xmax``, ``ymin`` and ``ymax``; ``y``
        is the vertical direction for gravity-driven cases.
        """

        if nx <= 0 or ny <= 0:
            raise ValueError("Structured mesh requires nx, ny > 0")
        lx, ly = lengths
        x0, y0 = origin
        dx = lx / nx
        dy = ly / ny

        def cell_index(i: int, j: int) -> int:
            return j * nx + i

        centers = np.array(
            [[x0 + (i + 0.5) * dx, y0 + (j + 0.5) * dy, 0.0] for j in range(ny) for i in range(nx)]
        )
        volumes = np.full(nx * ny, dx * dy)

        faces: List[Face] = []
        for j in range(ny):
            for i in range(1, nx):
                faces.append(
                    Face(
                        owner=cell_index(i - 1, j),
                        neighbour=cell_index(i, j),
                        area_vector=np.array([dy, 0.0, 0.0]),
                        center=np.array([x0 + i * dx, y0 + (j + 0.5) * dy, 0.0]),
                    )
                )
        for j in range(1, ny):
            for i in range(nx):
                faces.append(
                    Face(
                        owner=cell_index(i, j - 1),
                        neighbour=cell_index(i, j),
                        area_vector=np.array([0.0, dx, 0.0]),
                        center=np.array([x0 + (i + 0.5) * dx, y0 + j * dy, 0.0]),
                    )
                )

        boundary_patches: Dict[str, List[int]] = {}

        def add_patch(name: str, entries) -> None:
            ids = []
            for owner, area_vector, center in entries:
                ids.append(len(faces))
                faces.append(
                    Face(owner=owner, neighbour=None, area_vector=area_vector, center=center, patch=name)
                )
            boundary_patches[name] = ids

        add_patch(
            "xmin",
            [
                (cell_index(0, j), np.array([-dy, 0.0, 0.0]), np.array([x0, y0 + (j + 0.5) * dy, 0.0]))
                for j in range(ny)
            ],
        )
        add_patch(
            "xmax",
            [
                (cell_index(nx - 1, j), np.array([dy, 0.0, 0.0]), np.array([x0 + lx, y0 + (j + 0.5) * dy, 0.0]))
                for j in range(ny)
            ],
        )
        add_patch(
            "ymin",
            [
                (cell_index(i, 0), np.array([0.0, -dx, 0.0]), np.array([x0 + (i + 0.5) * dx, y0, 0.0]))
                for i in range(nx)
            ],
        )
        add_patch(
            "ymax",
            [
                (cell_index(i, ny - 1), np.array([0.0, dx, 0.0]), np.array([x0 + (i + 0.5) * dx, y0 + ly, 0.0]))
                for i in range(nx)
            ],
        )

        if patch_aliases:
            for base_name, alias in patch_aliases.items():
                if base_name not in boundary_patches:
                    raise KeyError(f"Unknown base patch '{base_name}'")
                boundary_patches[alias] = boundary_patches.pop(base_name)
                for fid in boundary_patches[alias]:
                    faces[fid].patch = alias

        return cls(
            cell_centers=centers,
            cell_volumes=volumes,
            faces=faces,
            shape=(nx, ny),
            spacing=(dx, dy),
            boundary_patches=boundary_patches,
        )

    def patch_faces(self, name: str) -> List[int]:
        try:
            return self.boundary_patches[name]
        except KeyError as exc:
            raise KeyError(f"Unknown patch '{name}'") from exc

    def patch_slice(self, name: str) -> np.ndarray:
        """Indices of a patch's faces into boundary-value arrays."""

        return np.asarray(self.patch_faces(name), dtype=int) - self.n_internal_faces

    def patches(self) -> List[str]:
        return list(self.boundary_patches.keys())
