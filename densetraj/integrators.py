import time
from typing import TYPE_CHECKING, Callable, Iterable, Optional

import diffrax as dfx
import jax
import jax.numpy as jnp
import numpy as np

from densetraj import io
from densetraj.dense_output import HermitianDenseOutput, IntegrationStep
from densetraj.results import IntegrationResult

if TYPE_CHECKING:
    from densetraj.config import Config

SOLVER_MAP = {
    "Tsit5": dfx.Tsit5,
    "Euler": dfx.Euler,
    "Heun": dfx.Heun,
    "Midpoint": dfx.Midpoint,
    "Ralston": dfx.Ralston,
    "Dopri5": dfx.Dopri5,
    "Dopri8": dfx.Dopri8,
    "Bosh3": dfx.Bosh3,
    "ReversibleHeun": dfx.ReversibleHeun,
    "ImplicitEuler": dfx.ImplicitEuler,
    "KenCarp3": dfx.KenCarp3,
    "KenCarp4": dfx.KenCarp4,
    "KenCarp5": dfx.KenCarp5,
}

# Solvers without an embedded error estimate cannot drive a PID controller.
FIXED_STEP_SOLVERS = {"Euler"}


# fmt: off
def rk45_step(f, t, y, h, *args):
    k1 = f(t, y, *args)
    k2 = f(t + h/4, y + h*k1/4, *args)
    k3 = f(t + 3*h/8, y + 3*h*k1/32 + 9*h*k2/32, *args)
    k4 = f(t + 12*h/13, y + 1932*h*k1/2197 - 7200*h*k2/2197 + 7296*h*k3/2197, *args)
    k5 = f(t + h, y + 439*h*k1/216 - 8*h*k2 + 3680*h*k3/513 - 845*h*k4/4104, *args)
    y_next = y + h * (25*k1/216 + 1408*k3/2565 + 2197*k4/4104 - k5/5)
    return y_next
# fmt: on


def _time_grid(t_span, num_steps):
    t0, t1 = t_span
    if not t1 > t0:
        raise ValueError(f"Time span must be increasing, got {t_span}")
    if num_steps < 2:
        raise ValueError(f"num_steps must be at least 2, got {num_steps}")
    return np.linspace(t0, t1, num_steps).tolist()


def _prepare_dense_output(dense_output):
    if dense_output is None:
        return HermitianDenseOutput()
    if dense_output.get_pending_count():
        raise ValueError(
            f"Dense output has {dense_output.get_pending_count()} staged step(s); "
            "consolidate or roll them back before integrating into it"
        )
    return dense_output


def _record_steps(
    dense_output: HermitianDenseOutput,
    steps: Iterable[IntegrationStep],
    accept_step: Optional[Callable[[IntegrationStep], bool]],
    consolidate_every: int,
    printing: bool,
):
    """Stage each step, rolling back and halting on the first rejected one.

    Returns:
        Tuple of (accepted steps, halted, number of rejected steps).
    """
    accepted = []
    halted = False
    n_rejected = 0
    for k, step in enumerate(steps):
        dense_output.update(step)
        ok = accept_step is None or bool(accept_step(step))
        if not ok:
            dense_output.rollback()
            n_rejected += 1
            halted = True
        if printing:
            io.step_row(
                k, step.get_start_time(), step.get_end_time(), len(step),
                dense_output.get_pending_count(), ok,
            )
        if halted:
            break
        accepted.append(step)
        if dense_output.get_pending_count() >= consolidate_every:
            dense_output.consolidate()
            if printing:
                io.consolidate_row(consolidate_every, step.get_end_time())

    n_pending = dense_output.get_pending_count()
    if n_pending:
        dense_output.consolidate()
        if printing:
            io.consolidate_row(n_pending, accepted[-1].get_end_time())
    return accepted, halted, n_rejected


def _collect_result(y_0, t_0, accepted, dense_output, halted, n_rejected):
    ts = [t_0] + [step.get_end_time() for step in accepted]
    ys = [jnp.asarray(y_0)] + [step.get_states()[-1] for step in accepted]
    return IntegrationResult(
        ts=jnp.asarray(ts),
        ys=jnp.stack(ys),
        dense_output=dense_output,
        halted=halted,
        n_rejected=n_rejected,
    )


def solve_ivp_rk45(
    f,
    t_span,
    y_0,
    args=(),
    num_steps=50,
    num_substeps=1,
    accept_step=None,
    consolidate_every=1,
    dense_output=None,
    printing=False,
    debug=False,
):
    """Fixed-step RK45 integration recorded into a Hermite dense output.

    The span is split into ``num_steps - 1`` equal steps. Each step is taken
    as ``num_substeps`` RK45 sub-steps whose results, together with
    ``f(t, y, *args)``, become the samples of one ``IntegrationStep``.

    Args:
        f: Dynamics ``f(t, y, *args) -> dy/dt``.
        t_span: ``(t0, t1)`` with ``t1 > t0``.
        y_0: Initial state, shape (n_states,).
        args: Extra positional arguments for ``f``.
        num_steps: Number of grid nodes, including both ends.
        num_substeps: RK45 sub-steps (and recorded samples) per step.
        accept_step: Optional predicate called on each staged step. A step for
            which it returns False is rolled back and integration stops.
        consolidate_every: Number of staged steps between consolidations.
        dense_output: Existing output to continue. A new one is created if None.
            It must have no staged steps.
        printing: Whether to print a progress table.
        debug: Disables JIT compilation of the step function.

    Returns:
        IntegrationResult: Grid nodes reached and the consolidated dense output.

    Raises:
        ValueError: If the arguments are invalid or ``dense_output`` holds
            staged steps.
    """
    grid = _time_grid(t_span, num_steps)
    if num_substeps < 1:
        raise ValueError(f"num_substeps must be at least 1, got {num_substeps}")
    dense_output = _prepare_dense_output(dense_output)

    def step_fn(t, y, h):
        return rk45_step(f, t, y, h, *args)

    def rate_fn(t, y):
        return f(t, y, *args)

    if not debug:
        step_fn = jax.jit(step_fn)
        rate_fn = jax.jit(rate_fn)

    def generate_steps():
        y = jnp.asarray(y_0)
        dy = rate_fn(grid[0], y)
        for t_start, t_end in zip(grid[:-1], grid[1:]):
            h = (t_end - t_start) / num_substeps
            step = IntegrationStep(t_start, y, dy)
            for i in range(1, num_substeps + 1):
                # Land exactly on the grid node so the next step starts there.
                t = t_end if i == num_substeps else t_start + i * h
                y = step_fn(step.get_end_time(), y, t - step.get_end_time())
                dy = rate_fn(t, y)
                step.extend(t, y, dy)
            yield step

    start = time.time()
    if printing:
        io.header()
    accepted, halted, n_rejected = _record_steps(
        dense_output, generate_steps(), accept_step, consolidate_every, printing
    )
    if printing:
        io.footer(dense_output, time.time() - start)
    return _collect_result(y_0, grid[0], accepted, dense_output, halted, n_rejected)


def solve_ivp_diffrax(
    f,
    t_span,
    y_0,
    args=(),
    num_steps=50,
    solver_name="Tsit5",
    rtol=1e-3,
    atol=1e-6,
    extra_kwargs=None,
    accept_step=None,
    consolidate_every=1,
    dense_output=None,
    printing=False,
):
    """Diffrax integration recorded into a Hermite dense output.

    Diffrax solves the problem with its own step-size control and saves the
    solution on a uniform grid of ``num_steps`` nodes. Each pair of consecutive
    nodes, with derivatives ``f(t, y, *args)``, becomes one ``IntegrationStep``.

    Raises:
        ValueError: If ``solver_name`` is not in ``SOLVER_MAP``, the arguments are
            invalid, or ``dense_output`` holds staged steps.
    """
    solver_class = SOLVER_MAP.get(solver_name)
    if solver_class is None:
        raise ValueError(f"Unknown solver: {solver_name}")
    solver = solver_class()

    grid = _time_grid(t_span, num_steps)
    dense_output = _prepare_dense_output(dense_output)

    if solver_name in FIXED_STEP_SOLVERS:
        stepsize_controller = dfx.ConstantStepSize()
    else:
        stepsize_controller = dfx.PIDController(rtol=rtol, atol=atol)

    start = time.time()
    term = dfx.ODETerm(lambda t, y, args: f(t, y, *args))
    solution = dfx.diffeqsolve(
        term,
        solver=solver,
        t0=grid[0],
        t1=grid[-1],
        dt0=(grid[-1] - grid[0]) / (len(grid) - 1),
        y0=jnp.asarray(y_0),
        args=args,
        stepsize_controller=stepsize_controller,
        saveat=dfx.SaveAt(ts=jnp.asarray(grid)),
        **(extra_kwargs or {}),
    )

    ys = list(solution.ys)
    dys = [f(t, y, *args) for t, y in zip(grid, ys)]

    def generate_steps():
        for k in range(len(grid) - 1):
            step = IntegrationStep(grid[k], ys[k], dys[k])
            step.extend(grid[k + 1], ys[k + 1], dys[k + 1])
            yield step

    if printing:
        io.header()
    accepted, halted, n_rejected = _record_steps(
        dense_output, generate_steps(), accept_step, consolidate_every, printing
    )
    if printing:
        io.footer(dense_output, time.time() - start)
    return _collect_result(ys[0], grid[0], accepted, dense_output, halted, n_rejected)


def solve_ivp(f, t_span, y_0, args=(), settings: "Config" = None, accept_step=None, dense_output=None):
    """Integrate ``f`` over ``t_span`` with the integrator selected in ``settings``."""
    if settings is None:
        from densetraj.config import Config

        settings = Config.default()
    cfg = settings.integration
    if cfg.solver == "RK45":
        return solve_ivp_rk45(
            f,
            t_span,
            y_0,
            args=args,
            num_steps=cfg.num_steps,
            num_substeps=cfg.num_substeps,
            accept_step=accept_step,
            consolidate_every=cfg.consolidate_every,
            dense_output=dense_output,
            printing=settings.dev.printing,
            debug=settings.dev.debug,
        )
    return solve_ivp_diffrax(
        f,
        t_span,
        y_0,
        args=args,
        num_steps=cfg.num_steps,
        solver_name=cfg.solver,
        rtol=cfg.rtol,
        atol=cfg.atol,
        extra_kwargs=cfg.args,
        accept_step=accept_step,
        consolidate_every=cfg.consolidate_every,
        dense_output=dense_output,
        printing=settings.dev.printing,
    )
