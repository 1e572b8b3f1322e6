# test_integrators.py

import jax.numpy as jnp
import numpy as np
import pytest

from densetraj.dense_output import HermitianDenseOutput, IntegrationStep
from densetraj.integrators import solve_ivp_diffrax, solve_ivp_rk45


def decay(t, y):
    return -y


def oscillator(t, y, omega):
    return jnp.array([y[1], -(omega**2) * y[0]])


@pytest.mark.parametrize("num_steps", [11, 21])
def test_solve_ivp_rk45_decay(num_steps):
    """RK45 fixed-step should approximate exp(-t) at and between nodes."""
    y0 = jnp.array([1.0])
    result = solve_ivp_rk45(decay, (0.0, 1.0), y0, num_steps=num_steps)

    np.testing.assert_allclose(np.array(result.ts), np.linspace(0.0, 1.0, num_steps))
    np.testing.assert_allclose(np.array(result.ys[:, 0]), np.exp(-np.array(result.ts)), rtol=1e-6)

    dense_output = result.dense_output
    assert not dense_output.is_empty()
    assert dense_output.get_start_time() == 0.0
    assert dense_output.get_end_time() == 1.0
    assert dense_output.get_dimensions() == 1
    assert dense_output.get_step_count() == num_steps - 1

    ts = np.linspace(0.0, 1.0, 97)
    values = np.array(dense_output.sample(ts.tolist()))[:, 0]
    np.testing.assert_allclose(values, np.exp(-ts), rtol=1e-5)


def test_solve_ivp_rk45_substeps_are_recorded():
    result = solve_ivp_rk45(decay, (0.0, 1.0), jnp.array([1.0]), num_steps=6, num_substeps=4)

    steps = result.dense_output.get_committed_steps()
    assert len(steps) == 5
    assert all(len(step) == 5 for step in steps)
    np.testing.assert_allclose(steps[0].get_times(), np.linspace(0.0, 0.2, 5))
    np.testing.assert_allclose(
        np.array(result.dense_output.evaluate(0.55)), [np.exp(-0.55)], rtol=1e-6
    )


def test_solve_ivp_rk45_with_args_and_debug():
    omega = 2.0
    y0 = jnp.array([1.0, 0.0])
    result = solve_ivp_rk45(
        oscillator, (0.0, np.pi), y0, args=(omega,), num_steps=101, debug=True
    )

    ts = np.linspace(0.0, np.pi, 37)
    values = np.array(result.dense_output.sample(ts.tolist()))
    np.testing.assert_allclose(values[:, 0], np.cos(omega * ts), atol=1e-5)
    np.testing.assert_allclose(values[:, 1], -omega * np.sin(omega * ts), atol=1e-5)


def test_rejected_step_is_rolled_back_and_halts():
    def accept_step(step):
        return step.get_end_time() <= 0.5 + 1e-12

    result = solve_ivp_rk45(
        decay, (0.0, 1.0), jnp.array([1.0]), num_steps=11, accept_step=accept_step
    )

    assert result.halted
    assert result.n_rejected == 1
    assert len(result.ts) == 6
    assert float(result.t_final) == pytest.approx(0.5)
    dense_output = result.dense_output
    assert dense_output.get_step_count() == 5
    assert dense_output.get_pending_count() == 0
    assert dense_output.get_end_time() == pytest.approx(0.5)
    with pytest.raises(ValueError):
        dense_output.evaluate(0.75)


def test_rejecting_first_step_leaves_output_empty():
    result = solve_ivp_rk45(
        decay, (0.0, 1.0), jnp.array([1.0]), num_steps=11, accept_step=lambda step: False
    )

    assert result.halted
    assert result.dense_output.is_empty()
    assert len(result.ts) == 1


@pytest.mark.parametrize("consolidate_every", [1, 3, 20])
def test_consolidate_every(consolidate_every):
    result = solve_ivp_rk45(
        decay, (0.0, 1.0), jnp.array([1.0]), num_steps=11, consolidate_every=consolidate_every
    )

    assert result.dense_output.get_step_count() == 10
    assert result.dense_output.get_pending_count() == 0


def test_continues_existing_dense_output():
    dense_output = HermitianDenseOutput()
    solve_ivp_rk45(decay, (0.0, 1.0), jnp.array([1.0]), num_steps=11, dense_output=dense_output)

    # A step that does not start at t = 1 breaks continuity.
    with pytest.raises(ValueError):
        solve_ivp_rk45(decay, (2.0, 3.0), jnp.array([1.0]), num_steps=11, dense_output=dense_output)
    assert dense_output.get_end_time() == 1.0


@pytest.mark.parametrize("solve", [solve_ivp_rk45, solve_ivp_diffrax])
def test_refuses_dense_output_with_staged_steps(solve, capsys):
    dense_output = HermitianDenseOutput()
    solve_ivp_rk45(decay, (0.0, 1.0), jnp.array([1.0]), num_steps=3, dense_output=dense_output)
    last_step = dense_output.get_committed_steps()[-1]
    staged = IntegrationStep(
        1.0, last_step.get_states()[-1], last_step.get_state_derivatives()[-1]
    )
    staged.extend(1.5, jnp.array([0.6]), jnp.array([-0.6]))
    dense_output.update(staged)

    with pytest.raises(ValueError):
        solve(
            decay, (1.5, 2.0), jnp.array([0.6]), num_steps=3,
            accept_step=lambda step: False, dense_output=dense_output, printing=True,
        )

    # the caller's staged step is neither committed nor discarded
    assert dense_output.get_pending_count() == 1
    assert dense_output.get_step_count() == 2
    assert dense_output.get_end_time() == 1.0
    assert capsys.readouterr().out == ""


@pytest.mark.parametrize(
    "kwargs",
    [
        {"t_span": (1.0, 0.0)},
        {"t_span": (0.0, 1.0), "num_steps": 1},
        {"t_span": (0.0, 1.0), "num_substeps": 0},
    ],
)
def test_solve_ivp_rk45_rejects_bad_arguments(kwargs):
    with pytest.raises(ValueError):
        solve_ivp_rk45(decay, y_0=jnp.array([1.0]), **kwargs)


@pytest.mark.parametrize("solver_name", ["Tsit5", "Dopri5", "Dopri8"])
@pytest.mark.parametrize("num_steps", [11, 21])
def test_solve_ivp_diffrax_decay(solver_name, num_steps):
    """Diffrax adaptive solver should approximate exp(-t) at and between nodes."""
    result = solve_ivp_diffrax(
        decay,
        (0.0, 1.0),
        jnp.array([1.0]),
        num_steps=num_steps,
        solver_name=solver_name,
        rtol=1e-10,
        atol=1e-12,
    )

    np.testing.assert_allclose(np.array(result.ys[:, 0]), np.exp(-np.array(result.ts)), rtol=1e-8)
    assert result.dense_output.get_step_count() == num_steps - 1

    ts = np.linspace(0.0, 1.0, 41)
    values = np.array(result.dense_output.sample(ts.tolist()))[:, 0]
    np.testing.assert_allclose(values, np.exp(-ts), rtol=1e-5)


def test_solve_ivp_diffrax_fixed_step_solver():
    result = solve_ivp_diffrax(decay, (0.0, 1.0), jnp.array([1.0]), num_steps=101, solver_name="Euler")

    np.testing.assert_allclose(float(result.y_final[0]), np.exp(-1.0), rtol=1e-2)


def test_solve_ivp_diffrax_unknown_solver():
    with pytest.raises(ValueError):
        solve_ivp_diffrax(decay, (0.0, 1.0), jnp.array([1.0]), solver_name="NotASolver")


if __name__ == "__main__":
    pytest.main([__file__])
