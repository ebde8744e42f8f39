import pathlib
import shutil
import sys

import numpy as np
import pytest
import yaml

ROOT = pathlib.Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from rngstab.physics.transport import TwoPhaseTransport
from rngstab.physics.turbulence import RNGkEpsilonStab
from rngstab.run.case import Case
from rngstab.run.time import TimeControl
from rngstab.utils.io import YamlDictSource, read_yaml_file

CASE_DIR = ROOT / "tests" / "cases" / "wave"


def _copy_case(tmp_path):
    target = tmp_path / "wave"
    shutil.copytree(CASE_DIR, target)
    return target


def _update_yaml(path, updater):
    data = read_yaml_file(path)
    updater(data)
    with path.open("w", encoding="utf-8") as handle:
        yaml.safe_dump(data, handle)


def test_case_builds_two_phase_flow():
    case = Case.from_yaml(CASE_DIR / "system" / "case.yaml")
    assert case.mesh.ncells == 36
    assert isinstance(case.transport, TwoPhaseTransport)
    assert case.time_control.delta_t == pytest.approx(0.05)
    assert case.gravity.value == pytest.approx([0.0, -9.81, 0.0])

    alpha = case.field("alpha")
    below = case.mesh.cell_centers[:, 1] < 0.0
    assert np.all(alpha.values[below] == 1.0)
    assert np.all(alpha.values[~below] == 0.0)
    assert case.flow.rho() is not None
    assert case.flow.rho_ref() == pytest.approx(1000.0)

    # Velocity patches take the initial linear profile at the face centres
    U = case.field("U")
    ymax = case.mesh.patch_slice("ymax")
    assert U.boundary_values[ymax, 1] == pytest.approx(np.full(6, -0.25))

    model = case.turbulence_model
    assert isinstance(model, RNGkEpsilonStab)
    assert model.state.k_min == 1e-12
    assert model.coeffs.Cmu == 0.0845


def test_case_runs_and_keeps_fields_bounded():
    case = Case.from_yaml(CASE_DIR / "system" / "case.yaml")
    model = case.solve()
    assert model.iteration == 5
    assert len(case.logger.history) == 5

    k = model.k().values
    epsilon = model.epsilon().values
    nut = model.nut().values
    for values in (k, epsilon, nut):
        assert np.all(np.isfinite(values))
    assert np.all(k >= 1e-12)
    assert np.all(epsilon >= 1e-14)
    assert np.all(nut >= 0.0)
    # Irrotational strain under a stable interface cannot feed k
    assert k.max() <= 1.0e-4 * (1.0 + 1e-9)
    assert np.all(model.production().values < 1.0e-12)
    assert np.all(model.terms.buoyancy <= 0.0)


def test_coefficients_are_reread_between_steps(tmp_path):
    root = _copy_case(tmp_path)
    _update_yaml(root / "system" / "case.yaml", lambda data: data.update(rereadCoefficients=True))
    case = Case.from_yaml(root / "system" / "case.yaml")
    assert case.turbulence_model.coeffs.Cmu == 0.0845

    def drop_cmu(data):
        data["RNGkEpsilonStabCoeffs"].pop("Cmu")
        data["RNGkEpsilonStabCoeffs"]["C2"] = 1.9

    _update_yaml(root / "constant" / "turbulence.yaml", drop_cmu)
    model = case.solve()
    assert model.coeffs.C2 == 1.9
    assert model.coeffs.Cmu == 0.0845


def test_missing_initial_field_is_reported(tmp_path):
    root = _copy_case(tmp_path)
    (root / "0" / "epsilon.yaml").unlink()
    with pytest.raises(RuntimeError, match="epsilon"):
        Case.from_yaml(root / "system" / "case.yaml")


def test_unknown_boundary_type_is_reported(tmp_path):
    root = _copy_case(tmp_path)
    _update_yaml(
        root / "0" / "k.yaml", lambda data: data["boundaryField"].update(xmin={"type": "slip"})
    )
    with pytest.raises(KeyError, match="slip"):
        Case.from_yaml(root / "system" / "case.yaml")


def test_case_path_must_be_case_yaml(tmp_path):
    with pytest.raises(ValueError):
        Case.from_yaml(tmp_path / "controlDict.yaml")


def test_yaml_source_rereads_file(tmp_path):
    path = tmp_path / "turbulence.yaml"
    path.write_text("RNGkEpsilonStabCoeffs:\n  C2: 1.9\n", encoding="utf-8")
    source = YamlDictSource(path, "RNGkEpsilonStabCoeffs")
    assert source() == {"C2": 1.9}
    path.write_text("RNGkEpsilonStabCoeffs:\n  C2: 2.0\n", encoding="utf-8")
    assert source() == {"C2": 2.0}
    assert YamlDictSource(path, "missing")() == {}


def test_yaml_file_must_hold_mapping(tmp_path):
    path = tmp_path / "list.yaml"
    path.write_text("- 1\n- 2\n", encoding="utf-8")
    with pytest.raises(ValueError):
        read_yaml_file(path)


def test_time_control_modes():
    steady = TimeControl.from_dict({"mode": "steady", "iterations": 3})
    assert steady.delta_t is None
    assert [index for index, _ in steady] == [0, 1, 2]

    transient = TimeControl.from_dict({"mode": "transient", "start": 0.0, "end": 0.3, "dt": 0.1})
    times = [t for _, t in transient]
    assert times == pytest.approx([0.1, 0.2, 0.3])

    with pytest.raises(ValueError):
        TimeControl.from_dict({"mode": "adaptive"})
    with pytest.raises(ValueError):
        TimeControl.from_dict({"mode": "transient", "dt": 0.0})
    with pytest.raises(ValueError):
        TimeControl.from_dict({"mode": "steady", "iterations": 0})
