import jax.numpy as jnp
import numpy as np

from densetraj import Config, DevConfig, IntegrationConfig, solve_ivp
from densetraj.plotting import plot_dense_output

g = 9.81
length = 1.0
damping = 0.2

theta_max = 1.5  # Stop once the pendulum swings past this angle


def pendulum(t, x, g, length, damping):
    theta, omega = x[0], x[1]
    return jnp.array([omega, -g / length * jnp.sin(theta) - damping * omega])


def accept_step(step):
    # Reject any step that leaves the allowed angle range
    return bool(jnp.all(jnp.abs(jnp.stack(step.get_states())[:, 0]) <= theta_max))


x0 = jnp.array([1.0, 0.0])

settings = Config(
    integration=IntegrationConfig(solver="RK45", num_steps=201, num_substeps=2, consolidate_every=10),
    dev=DevConfig(printing=True),
)

if __name__ == "__main__":
    result = solve_ivp(
        pendulum, (0.0, 10.0), x0, args=(g, length, damping), settings=settings, accept_step=accept_step
    )
    dense_output = result.dense_output

    t_query = np.linspace(dense_output.get_start_time(), dense_output.get_end_time(), 7)
    for t, x in zip(t_query, dense_output.sample(t_query.tolist())):
        print(f"t = {t:6.3f}  theta = {float(x[0]): .6f}  omega = {float(x[1]): .6f}")

    plot_dense_output(dense_output).show()
