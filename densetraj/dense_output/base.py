"""Base classes for dense output.

This module defines the query interface shared by every dense output, plus the
stepwise extension used by integrators that build an output one step at a time.

A dense output answers questions about a continuous trajectory ``x(t)`` over a
closed time span ``[start, end]``. The public query methods perform the state
and range checks here, so implementations only supply the raw evaluation:

- ``is_empty`` / ``get_start_time`` / ``get_end_time`` / ``get_dimensions``
- ``_do_evaluate``: evaluate at a time already known to be in range

Stepwise outputs add a staged update protocol:

1. **update**: stage a candidate step (validated, but not yet queryable)
2. **rollback**: discard the most recently staged step
3. **consolidate**: commit every staged step, making it queryable
"""

from abc import ABC, abstractmethod

import jax.numpy as jnp


class DenseOutput(ABC):
    """Abstract base class for continuous trajectory approximations.

    Times and returned values may be any array-like scalar type, including
    JAX tracers, so derivatives can be taken through :meth:`evaluate` with
    ``jax.jvp`` or ``jax.jacfwd``.

    Example:
        Querying a dense output::

            if not dense_output.is_empty():
                t = 0.5 * (dense_output.get_start_time() + dense_output.get_end_time())
                x_mid = dense_output.evaluate(t)
                vx_mid = dense_output.evaluate_nth(t, 1)
    """

    @abstractmethod
    def is_empty(self) -> bool:
        """Whether the output covers no time span at all."""
        ...

    @abstractmethod
    def get_start_time(self):
        """Start of the covered time span.

        Raises:
            RuntimeError: If the output is empty.
        """
        ...

    @abstractmethod
    def get_end_time(self):
        """End of the covered time span.

        Raises:
            RuntimeError: If the output is empty.
        """
        ...

    @abstractmethod
    def get_dimensions(self) -> int:
        """Dimension of the output vector.

        Raises:
            RuntimeError: If the output is empty.
        """
        ...

    @abstractmethod
    def _do_evaluate(self, t):
        """Evaluate the output at a time already checked to be in range."""
        ...

    def evaluate(self, t):
        """Evaluate the output at time ``t``.

        Args:
            t: Time within ``[get_start_time(), get_end_time()]``.

        Returns:
            jnp.ndarray: Output value, shape (n,) with n = ``get_dimensions()``.

        Raises:
            RuntimeError: If the output is empty.
            ValueError: If ``t`` lies outside the covered time span.
        """
        self._validate_time(t)
        return self._do_evaluate(t)

    def evaluate_nth(self, t, n: int):
        """Evaluate the ``n``-th component of the output at time ``t``.

        Raises:
            RuntimeError: If the output is empty.
            ValueError: If ``t`` lies outside the covered time span or ``n``
                is not a valid component index.
        """
        dimensions = self.get_dimensions()
        if n < 0 or n >= dimensions:
            raise ValueError(f"Component {n} out of range (dimensions={dimensions})")
        return self.evaluate(t)[n]

    def sample(self, ts):
        """Evaluate the output at every time in ``ts``.

        Returns:
            jnp.ndarray: Stacked values, shape (len(ts), n).
        """
        return jnp.stack([self.evaluate(t) for t in ts])

    def _validate_time(self, t):
        start_time = self.get_start_time()
        end_time = self.get_end_time()
        if not (start_time <= t <= end_time):
            raise ValueError(
                f"Time {t} is outside the dense output span [{start_time}, {end_time}]"
            )


class StepwiseDenseOutput(DenseOutput):
    """Dense output built incrementally from integration steps.

    Updates are staged: :meth:`update` validates a step and holds it back,
    :meth:`rollback` discards the latest staged step, and :meth:`consolidate`
    commits all staged steps at once. Queries only ever see committed steps.

    Example:
        Speculative stepping from an integrator::

            dense_output.update(step)
            if not accept(step):
                dense_output.rollback()
            else:
                dense_output.consolidate()
    """

    @abstractmethod
    def update(self, step) -> None:
        """Stage ``step`` for the next consolidation.

        Raises:
            ValueError: If ``step`` would break the continuity of the output.
        """
        ...

    @abstractmethod
    def rollback(self):
        """Discard the most recently staged step.

        Raises:
            RuntimeError: If no step is staged.
        """
        ...

    @abstractmethod
    def consolidate(self) -> None:
        """Commit every staged step.

        Raises:
            RuntimeError: If no step is staged.
        """
        ...
