from dataclasses import dataclass

import jax.numpy as jnp

from densetraj.dense_output import HermitianDenseOutput


@dataclass
class IntegrationResult:
    """Outcome of integrating a system into a dense output.

    Attributes:
        ts: Times of the accepted grid nodes, shape (n_nodes,)
        ys: States at the accepted grid nodes, shape (n_nodes, n_states)
        dense_output: Dense output holding every accepted step, consolidated
        halted: Whether integration stopped early because a step was rejected
        n_rejected: Number of steps rolled back
    """

    ts: jnp.ndarray
    ys: jnp.ndarray
    dense_output: HermitianDenseOutput
    halted: bool = False
    n_rejected: int = 0

    @property
    def t_final(self):
        """Time reached by the last accepted step."""
        return self.ts[-1]

    @property
    def y_final(self) -> jnp.ndarray:
        """State at the last accepted grid node."""
        return self.ys[-1]
