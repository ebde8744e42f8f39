import logging
import pathlib
import sys

import numpy as np
import pytest

ROOT = pathlib.Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from rngstab.core.bc import FixedValue
from rngstab.core.dimensions import ACCELERATION, DIMLESS, DISSIPATION_RATE, ENERGY_PER_MASS, VELOCITY
from rngstab.core.field import ScalarField, UniformVectorField, VectorField
from rngstab.core.linalg import SolverDivergenceError
from rngstab.core.mesh import Mesh
from rngstab.physics.flow import FlowFields
from rngstab.physics.transport import ConstantTransport, TwoPhaseTransport
from rngstab.physics.turbulence import (
    CorrectorStage,
    RNGkEpsilonStab,
    make_turbulence_model,
    turbulence_registry,
)

GRAVITY = UniformVectorField("g", [0.0, -9.81, 0.0], ACCELERATION)


def _linear_velocity(mesh, gradient):
    gradient = np.asarray(gradient, dtype=float)
    bcs = [
        FixedValue.for_patch(mesh, patch, mesh.Cf[mesh.patch_faces(patch)] @ gradient)
        for patch in mesh.patches()
    ]
    return VectorField("U", mesh, mesh.cell_centers @ gradient, VELOCITY, bcs)


def _turbulence_fields(mesh, k, epsilon):
    return {
        "k": ScalarField("k", mesh, np.full(mesh.ncells, k), ENERGY_PER_MASS),
        "epsilon": ScalarField("epsilon", mesh, np.full(mesh.ncells, epsilon), DISSIPATION_RATE),
    }


def _model(
    mesh,
    U=None,
    k=1.0,
    epsilon=1.0,
    delta_t=0.1,
    config=None,
    transport=None,
    alpha=None,
    gravity=None,
    **kwargs,
):
    if U is None:
        U = VectorField("U", mesh, np.zeros((mesh.ncells, 3)), VELOCITY)
    flow = FlowFields(
        mesh,
        U,
        transport or ConstantTransport(rho=1.0, mu=1.0e-6),
        phi=np.zeros(mesh.nfaces),
        alpha=alpha,
        delta_t=delta_t,
    )
    return RNGkEpsilonStab(
        flow, _turbulence_fields(mesh, k, epsilon), config=config, gravity=gravity, **kwargs
    )


def _quiet_config(**extra):
    config = {"verbose": False}
    config.update(extra)
    return config


def test_model_is_selected_by_name():
    mesh = Mesh.structured(2, 2)
    U = VectorField("U", mesh, np.zeros((4, 3)), VELOCITY)
    flow = FlowFields(mesh, U, ConstantTransport())
    assert "rng-kepsilon-stab" in turbulence_registry
    for name in ("RNGkEpsilonStab", "rngkepsilonstab", "rng-kepsilon-stab"):
        model = make_turbulence_model(name, flow=flow, fields=_turbulence_fields(mesh, 1.0, 1.0))
        assert isinstance(model, RNGkEpsilonStab)
    with pytest.raises(KeyError):
        make_turbulence_model("kOmegaSST", flow=flow, fields={})


def test_construction_requires_flow_state_and_fields():
    mesh = Mesh.structured(2, 2)
    with pytest.raises(TypeError):
        RNGkEpsilonStab(object(), _turbulence_fields(mesh, 1.0, 1.0))
    U = VectorField("U", mesh, np.zeros((4, 3)), VELOCITY)
    flow = FlowFields(mesh, U, ConstantTransport())
    fields = _turbulence_fields(mesh, 1.0, 1.0)
    del fields["epsilon"]
    with pytest.raises(KeyError):
        RNGkEpsilonStab(flow, fields)


def test_gravity_with_wrong_units_is_rejected():
    mesh = Mesh.structured(2, 2)
    with pytest.raises(ValueError):
        _model(mesh, gravity=UniformVectorField("g", [0.0, -9.81, 0.0], VELOCITY))


def test_initial_nut_from_initial_fields():
    mesh = Mesh.structured(2, 2)
    model = _model(mesh, k=0.2, epsilon=0.05, config=_quiet_config())
    assert model.nut().values == pytest.approx(np.full(4, 0.0845 * 0.04 / 0.05))
    assert model.fields["nut"] is model.nut()
    assert model.nu_eff() == pytest.approx(model.nut().values + 1.0e-6)


def test_pure_decay_matches_backward_euler():
    mesh = Mesh.structured(3, 3)
    model = _model(mesh, k=1.0, epsilon=1.0, delta_t=0.1, config=_quiet_config())
    model.correct()

    eps1 = 1.0 / (1.0 + 0.1 * 1.68)
    k1 = 1.0 / (1.0 + 0.1 * eps1)
    assert model.epsilon().values == pytest.approx(np.full(9, eps1))
    assert model.k().values == pytest.approx(np.full(9, k1))
    assert model.nut().values == pytest.approx(np.full(9, 0.0845 * k1**2 / eps1))
    assert model.stage is CorrectorStage.IDLE
    assert model.iteration == 1

    previous_k = model.k().values.copy()
    previous_eps = model.epsilon().values.copy()
    for _ in range(3):
        model.correct()
        assert np.all(model.k().values < previous_k)
        assert np.all(model.epsilon().values < previous_eps)
        previous_k = model.k().values.copy()
        previous_eps = model.epsilon().values.copy()


def test_stabilization_suppresses_growth_under_potential_flow():
    mesh = Mesh.structured(3, 3)
    strain = [[1.0, 0.0, 0.0], [0.0, -1.0, 0.0], [0.0, 0.0, 0.0]]

    stabilized = _model(
        mesh, U=_linear_velocity(mesh, strain), k=0.01, epsilon=0.001, config=_quiet_config()
    )
    plain = _model(
        mesh,
        U=_linear_velocity(mesh, strain),
        k=0.01,
        epsilon=0.001,
        config=_quiet_config(stabilize=False),
    )
    stabilized.correct()
    plain.correct()

    assert np.all(stabilized.production().values < 1.0e-15)
    assert np.all(plain.production().values > 0.03)
    assert np.all(stabilized.k().values < 0.01)
    assert np.all(plain.k().values > 0.01)
    assert stabilized.k().values == pytest.approx(np.full(9, 0.00988), rel=2e-3)
    assert plain.k().values == pytest.approx(np.full(9, 0.01315), rel=2e-3)


def test_shear_production_survives_stabilization():
    mesh = Mesh.structured(3, 3)
    shear = [[0.0, 0.0, 0.0], [1.0, 0.0, 0.0], [0.0, 0.0, 0.0]]
    model = _model(mesh, U=_linear_velocity(mesh, shear), k=0.01, epsilon=0.001, config=_quiet_config())
    terms = model.evaluate_production()
    assert terms.stabilization == pytest.approx(np.ones(9))
    assert terms.production == pytest.approx(terms.shear)
    assert model.stage is CorrectorStage.IDLE


def _convected_model(mesh, k_values, convection):
    U = VectorField("U", mesh, np.tile([1.0, 0.0, 0.0], (mesh.ncells, 1)), VELOCITY)
    flow = FlowFields(mesh, U, ConstantTransport(rho=1.0, mu=1.0e-6), delta_t=0.1)
    fields = {
        "k": ScalarField("k", mesh, k_values, ENERGY_PER_MASS),
        "epsilon": ScalarField("epsilon", mesh, np.ones(mesh.ncells), DISSIPATION_RATE),
    }
    return RNGkEpsilonStab(flow, fields, config=_quiet_config(convection=convection))


@pytest.mark.parametrize("convection", ["linear", "upwind"])
def test_uniform_fields_are_unchanged_by_convection(convection):
    mesh = Mesh.structured(3, 3)
    model = _convected_model(mesh, np.ones(9), convection)
    assert np.any(model.flow.phi() != 0.0)
    model.correct()

    eps1 = 1.0 / (1.0 + 0.1 * 1.68)
    k1 = 1.0 / (1.0 + 0.1 * eps1)
    assert model.epsilon().values == pytest.approx(np.full(9, eps1))
    assert model.k().values == pytest.approx(np.full(9, k1))


def test_linear_and_upwind_convection_differ_for_curved_profile():
    mesh = Mesh.structured(3, 3)
    k0 = 1.0 + mesh.cell_centers[:, 0] ** 2
    linear = _convected_model(mesh, k0, "linear")
    upwind = _convected_model(mesh, k0, "upwind")
    linear.correct()
    upwind.correct()

    for model in (linear, upwind):
        assert np.all(np.isfinite(model.k().values))
        assert np.all(model.k().values > 0.0)
    assert not np.allclose(linear.k().values, upwind.k().values)


def test_fields_are_clamped_to_floors():
    mesh = Mesh.structured(2, 2)

    def negative_solver(matrix, initial_guess, settings):
        return np.full_like(initial_guess, -1.0), {"initial": 1.0, "final": 0.0}

    model = _model(
        mesh,
        config=_quiet_config(kMin=1e-8, epsilonMin=1e-10),
        linear_solver=negative_solver,
    )
    model.correct()
    assert np.all(model.k().values == 1e-8)
    assert np.all(model.epsilon().values == 1e-10)
    assert np.all(model.k().boundary_values >= 1e-8)
    assert np.all(model.epsilon().boundary_values >= 1e-10)
    assert np.all(np.isfinite(model.nut().values))
    assert model.nut().values == pytest.approx(np.full(4, 0.0845 * 1e-16 / 1e-10))


def test_failed_solve_restores_fields_and_propagates():
    mesh = Mesh.structured(2, 2)
    calls = []

    def failing_solver(matrix, initial_guess, settings):
        calls.append(matrix.name)
        if len(calls) == 2:
            raise SolverDivergenceError(matrix.name, "diverged")
        return np.full_like(initial_guess, 5.0), {"initial": 1.0, "final": 0.0}

    model = _model(mesh, k=0.3, epsilon=0.2, config=_quiet_config(), linear_solver=failing_solver)
    nut_before = model.nut().values.copy()
    with pytest.raises(SolverDivergenceError):
        model.correct()
    assert calls == ["epsilon", "k"]
    assert np.all(model.epsilon().values == 0.2)
    assert np.all(model.epsilon().boundary_values == 0.2)
    assert np.all(model.k().values == 0.3)
    assert model.nut().values == pytest.approx(nut_before)
    assert model.stage is CorrectorStage.IDLE
    assert model.iteration == 0

    # The model stays usable after a failure
    model.linear_solver = lambda matrix, x0, settings: (x0, {"initial": 0.0, "final": 0.0})
    model.correct()
    assert model.iteration == 1


@pytest.mark.parametrize(
    "error",
    [NotImplementedError("unknown method"), ValueError("bad relaxation"), RuntimeError("no pyamg")],
)
def test_any_failure_in_k_stage_restores_fields(error):
    mesh = Mesh.structured(2, 2)
    calls = []

    def solver(matrix, initial_guess, settings):
        calls.append(matrix.name)
        if matrix.name == "k":
            raise error
        return np.full_like(initial_guess, 5.0), {"initial": 1.0, "final": 0.0}

    model = _model(mesh, k=0.3, epsilon=0.2, config=_quiet_config(), linear_solver=solver)
    nut_before = model.nut().values.copy()
    with pytest.raises(type(error)):
        model.correct()
    assert calls == ["epsilon", "k"]
    assert np.all(model.epsilon().values == 0.2)
    assert np.all(model.epsilon().boundary_values == 0.2)
    assert np.all(model.k().values == 0.3)
    assert model.nut().values == pytest.approx(nut_before)
    assert model.nut().values == pytest.approx(0.0845 * 0.3**2 / 0.2)
    assert model.stage is CorrectorStage.IDLE
    assert model.iteration == 0


@pytest.mark.parametrize(
    "config",
    [
        {"relaxationFactors": {"k": 0.0}},
        {"relaxationFactors": {"epsilon": 1.5}},
        {"solvers": {"k": {"method": "gmres"}}},
    ],
)
def test_invalid_solution_controls_are_rejected_at_construction(config):
    mesh = Mesh.structured(2, 2)
    with pytest.raises(ValueError):
        _model(mesh, k=0.3, epsilon=0.2, config=_quiet_config(**config))


def test_corrector_stages_run_in_order():
    mesh = Mesh.structured(2, 2)
    model = _model(mesh, config=_quiet_config())
    with pytest.raises(RuntimeError):
        model._advance(CorrectorStage.EPSILON_SOLVED)
    model.stage = CorrectorStage.K_SOLVED
    with pytest.raises(RuntimeError):
        model.correct()


def test_solver_settings_and_relaxation_reach_the_solver():
    mesh = Mesh.structured(2, 2)
    seen = {}

    def recording_solver(matrix, initial_guess, settings):
        seen[matrix.name] = (settings, matrix.diag.copy())
        return initial_guess, {"initial": 0.5, "final": 0.0}

    config = _quiet_config(
        solvers={"k": {"method": "bicgstab", "tol": 1e-8}},
        relaxationFactors={"epsilon": 0.5},
    )
    model = _model(mesh, config=config, linear_solver=recording_solver)
    model.correct()
    assert seen["k"][0] == {"method": "bicgstab", "tol": 1e-8}
    assert seen["epsilon"][0] is None
    # Unit k and epsilon: each cell has two internal faces with unit distance factor
    D = 0.0845 / 0.71942 + 1e-6
    expected_eps_diag = (1.0 / 0.1 + 1.68) * mesh.cell_volumes + 2.0 * D
    assert seen["epsilon"][1] == pytest.approx(expected_eps_diag / 0.5)
    assert model.iteration_logger.last("k") == 0.5


def test_effective_diffusivities():
    mesh = Mesh.structured(2, 2)
    model = _model(mesh, k=1.0, epsilon=1.0, config=_quiet_config(sigmak=1.0, sigmaEps=1.3))
    nut = 0.0845
    DkEff = model.DkEff()
    DepsEff = model.DepsilonEff()
    assert DkEff.values == pytest.approx(np.full(4, nut / 1.0 + 1e-6))
    assert DepsEff.values == pytest.approx(np.full(4, nut / 1.3 + 1e-6))
    assert DkEff.boundary_values == pytest.approx(np.full(mesh.n_boundary_faces, nut + 1e-6))

    again = model.DkEff()
    assert again is not DkEff
    assert again.values == pytest.approx(DkEff.values)
    assert model.k_source() is None
    assert model.epsilon_source() is None


def test_read_updates_coefficients(caplog):
    mesh = Mesh.structured(2, 2)
    model = _model(mesh, config=_quiet_config(RNGkEpsilonStabCoeffs={"Cmu": 0.09}))
    assert model.coeffs.Cmu == 0.09

    caplog.set_level(logging.INFO, logger="rngstab.physics.turbulence.coefficients")
    assert model.read({"RNGkEpsilonStabCoeffs": {"C2": 1.68}}) is True
    assert model.coeffs.Cmu == 0.0845
    assert "Cmu not specified" in caplog.text
    assert model.read({"RNGkEpsilonStabCoeffs": {}}) is False


def test_read_uses_coefficient_source():
    mesh = Mesh.structured(2, 2)
    block = {"C2": 1.9}
    model = _model(mesh, config=_quiet_config(), coeffs_source=lambda: block)
    assert model.coeffs.C2 == 1.9
    assert model.read() is False
    block["C2"] = 2.1
    assert model.read() is True
    assert model.coeffs.C2 == 2.1


def _layered_alpha(mesh):
    values = np.where(mesh.cell_centers[:, 1] < 0.5, 1.0, 0.0)
    return ScalarField("alpha", mesh, values, DIMLESS)


def test_stable_stratification_destroys_turbulence():
    mesh = Mesh.structured(4, 6)
    model = _model(
        mesh,
        k=0.01,
        epsilon=0.001,
        config=_quiet_config(),
        transport=TwoPhaseTransport(),
        alpha=_layered_alpha(mesh),
        gravity=GRAVITY,
    )
    G = model.evaluate_production().buoyancy
    assert np.all(G <= 0.0)
    assert np.any(G < 0.0)
    interface = np.abs(mesh.cell_centers[:, 1] - 0.5) < 0.1
    assert np.all(G[interface] < 0.0)
    assert np.all(G[~interface] == 0.0)


def test_unstable_stratification_produces_turbulence():
    mesh = Mesh.structured(4, 6)
    alpha = _layered_alpha(mesh)
    alpha.values[:] = 1.0 - alpha.values
    alpha.correct_boundary_conditions()
    model = _model(
        mesh,
        k=0.01,
        epsilon=0.001,
        config=_quiet_config(),
        transport=TwoPhaseTransport(),
        alpha=alpha,
        gravity=GRAVITY,
    )
    G = model.evaluate_production().buoyancy
    assert np.all(G >= 0.0)
    assert np.any(G > 0.0)


def test_uniform_density_has_no_buoyancy():
    mesh = Mesh.structured(4, 6)
    model = _model(mesh, k=0.01, epsilon=0.001, config=_quiet_config(), gravity=GRAVITY)
    assert np.all(model.evaluate_production().buoyancy == 0.0)


def test_history_plot_of_decay(tmp_path):
    plt = pytest.importorskip("matplotlib.pyplot")
    mesh = Mesh.structured(2, 2)
    model = _model(mesh, config=_quiet_config())
    history = []
    for _ in range(5):
        model.correct()
        history.append(float(model.k().values.mean()))
    fig, ax = plt.subplots()
    ax.semilogy(history)
    ax.set_xlabel("iteration")
    ax.set_ylabel("mean k")
    out = tmp_path / "decay.png"
    fig.savefig(out)
    plt.close(fig)
    assert out.exists()
    assert history == sorted(history, reverse=True)
