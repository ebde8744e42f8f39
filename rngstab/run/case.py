"""Case management: frozen-flow turbulence runs configured by YAML files.

Layout of a case directory::

    system/case.yaml          mesh, time control, flow options
    constant/transport.yaml   rho/nu or phase1/phase2 properties
    constant/g.yaml           gravity (optional)
    constant/turbulence.yaml  TurbulenceModel, model options, <Model>Coeffs
    0/U.yaml, 0/k.yaml, 0/epsilon.yaml, 0/alpha.yaml (optional)
"""

from __future__ import annotations

from pathlib import Path
from typing import Dict, Optional

import numpy as np

from ..core.bc import BOUNDARY_TYPES, FixedValue
from ..core.dimensions import ACCELERATION, DIMLESS, DISSIPATION_RATE, ENERGY_PER_MASS, VELOCITY
from ..core.field import ScalarField, UniformVectorField, VectorField
from ..core.mesh import Mesh
from ..physics.flow import FlowFields
from ..physics.transport import make_transport
from ..physics.turbulence import make_turbulence_model
from ..utils.io import YamlDictSource, read_yaml_file
from ..utils.logging import IterationLogger
from .time import TimeControl


FIELD_DIMENSIONS = {
    "U": VELOCITY,
    "k": ENERGY_PER_MASS,
    "epsilon": DISSIPATION_RATE,
    "alpha": DIMLESS,
}


class Case:
    def __init__(self, root: Path, config: Dict) -> None:
        self.root = Path(root)
        self.config = config
        self.mesh = self._build_mesh(config.get("mesh", {}))
        self.time_control = TimeControl.from_dict(config.get("time"))
        self.transport = make_transport(self._read_optional("constant", "transport.yaml"))
        self.gravity = self._load_gravity()
        self.fields: Dict[str, ScalarField | VectorField] = {}
        self._load_primary_fields()
        self.reread_coefficients = bool(config.get("rereadCoefficients", False))

        flow_cfg = config.get("flow", {}) or {}
        self.flow = FlowFields(
            self.mesh,
            self.U,
            self.transport,
            alpha=self.fields.get("alpha"),
            delta_t=self.time_control.delta_t,
            compressible=bool(flow_cfg.get("compressible", False)),
        )

        turbulence_path = self.root / "constant" / "turbulence.yaml"
        turbulence_cfg = read_yaml_file(turbulence_path)
        model_name = turbulence_cfg.get("TurbulenceModel", "RNGkEpsilonStab")
        model_config = dict(turbulence_cfg.get(model_name) or {})
        self.logger = IterationLogger(model_name, echo=bool(model_config.get("verbose", False)))
        self.turbulence_model = make_turbulence_model(
            model_name,
            flow=self.flow,
            fields={name: f for name, f in self.fields.items() if name in ("k", "epsilon")},
            config=model_config,
            gravity=self.gravity,
            coeffs_source=YamlDictSource(turbulence_path, f"{model_name}Coeffs"),
            iteration_logger=self.logger,
        )

    @classmethod
    def from_yaml(cls, path: str | Path) -> "Case":
        case_path = Path(path)
        if case_path.name.lower() != "case.yaml":
            raise ValueError("Expected system/case.yaml")
        root = case_path.parent.parent
        config = read_yaml_file(case_path)
        return cls(root=root, config=config)

    def _read_optional(self, *parts: str) -> Optional[Dict]:
        path = self.root.joinpath(*parts)
        if not path.exists():
            return None
        return read_yaml_file(path)

    def _build_mesh(self, mesh_cfg: Dict) -> Mesh:
        mtype = mesh_cfg.get("type", "structured").lower()
        if mtype != "structured":
            raise NotImplementedError("Only structured meshes are supported")
        nx = int(mesh_cfg.get("nx", 10))
        ny = int(mesh_cfg.get("ny", 10))
        lengths = tuple(mesh_cfg.get("lengths", [1.0, 1.0]))
        origin = tuple(mesh_cfg.get("origin", [0.0, 0.0]))
        patches = mesh_cfg.get("patches")
        return Mesh.structured(nx, ny, lengths=lengths, origin=origin, patch_aliases=patches)

    def _load_gravity(self) -> Optional[UniformVectorField]:
        data = self._read_optional("constant", "g.yaml")
        if data is None:
            return None
        return UniformVectorField("g", data.get("value", [0.0, -9.81, 0.0]), ACCELERATION)

    def _evaluate(self, entry, points: np.ndarray, vector: bool) -> np.ndarray:
        """Values of an initial-condition entry at ``points``.

        Supported forms: a number or list (uniform), ``{uniform: ...}``,
        ``{linear: {value, gradient}}`` and ``{step: {axis, level, below, above}}``.
        """

        n = len(points)
        if isinstance(entry, dict) and "uniform" in entry:
            entry = entry["uniform"]
        if isinstance(entry, dict) and "linear" in entry:
            spec = entry["linear"]
            value = np.asarray(spec.get("value", 0.0), dtype=float)
            gradient = np.asarray(spec.get("gradient", 0.0), dtype=float)
            if vector:
                return value + points @ gradient.reshape(3, 3)
            return value + points @ gradient.reshape(3)
        if isinstance(entry, dict) and "step" in entry:
            spec = entry["step"]
            axis = int(spec.get("axis", 1))
            level = float(spec.get("level", 0.0))
            below = float(spec.get("below", 1.0))
            above = float(spec.get("above", 0.0))
            return np.where(points[:, axis] < level, below, above)
        values = np.asarray(entry, dtype=float)
        if vector:
            if values.size == 1:
                values = np.repeat(values.reshape(-1), 3)
            return np.tile(values.reshape(1, 3), (n, 1))
        return np.full(n, float(values.reshape(-1)[0]))

    def _build_bcs(self, name: str, internal, boundary_cfg: Dict, vector: bool):
        bcs = []
        for patch, cfg in (boundary_cfg or {}).items():
            info = cfg or {}
            if isinstance(info, str):
                info = {"type": info}
            bc_type = str(info.get("type", "zeroGradient"))
            cls = BOUNDARY_TYPES.get(bc_type.lower())
            if cls is None:
                raise KeyError(f"Unknown boundary type '{bc_type}' for {name} on {patch}")
            if cls is FixedValue:
                # Without an explicit value the initial condition is evaluated on the faces
                faces = self.mesh.patch_faces(patch)
                entry = info.get("value", internal)
                value = self._evaluate(entry, self.mesh.Cf[faces], vector)
                bcs.append(FixedValue.for_patch(self.mesh, patch, value))
            else:
                bcs.append(cls.for_patch(self.mesh, patch))
        return bcs

    def _load_field_file(self, name: str, vector: bool):
        path = self.root / "0" / f"{name}.yaml"
        if not path.exists():
            return None
        data = read_yaml_file(path)
        internal = data.get("internalField", 0.0 if not vector else [0.0, 0.0, 0.0])
        values = self._evaluate(internal, self.mesh.cell_centers, vector)
        bcs = self._build_bcs(name, internal, data.get("boundaryField", {}), vector)
        cls = VectorField if vector else ScalarField
        field = cls(name, self.mesh, values, FIELD_DIMENSIONS[name], bcs)
        self.fields[name] = field
        return field

    def _load_primary_fields(self) -> None:
        self.U = self._load_field_file("U", vector=True)
        if self.U is None:
            raise RuntimeError("Velocity field U is required")
        for name in ("k", "epsilon"):
            if self._load_field_file(name, vector=False) is None:
                raise RuntimeError(f"Initial field {name} is required")
        self._load_field_file("alpha", vector=False)

    def solve(self):
        model = self.turbulence_model
        for _, _time in self.time_control:
            if self.reread_coefficients:
                model.read()
            model.correct()
        return model

    def field(self, name: str):
        return self.fields[name]
