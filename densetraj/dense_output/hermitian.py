import bisect
from typing import List

import jax.numpy as jnp

from densetraj.dense_output.base import StepwiseDenseOutput
from densetraj.interpolation import cubic_hermite


def _as_vector(value, name: str) -> jnp.ndarray:
    """Convert a state-like value to a 1D array, accepting (n,) or (n, 1)."""
    array = jnp.asarray(value)
    if array.ndim == 1:
        return array
    if array.ndim == 2 and array.shape[1] == 1:
        return array.reshape(-1)
    raise ValueError(f"{name} must be a single column vector, got shape {array.shape}")


class IntegrationStep:
    """A run of (time, state, state derivative) samples from one integrator step.

    Samples are stored in strictly increasing time order and all share the
    dimension fixed by the first sample. States and derivatives may be given
    as 1D arrays of shape (n,) or column arrays of shape (n, 1); they are
    stored as 1D arrays.

    A freshly constructed step holds a single sample and therefore has zero
    length; call :meth:`extend` at least once before handing it to a dense
    output.

    Example:
        ```python
        step = IntegrationStep(0.0, x0, f(0.0, x0))
        step.extend(h / 2, x_half, f(h / 2, x_half))
        step.extend(h, x1, f(h, x1))
        ```
    """

    def __init__(self, initial_time, initial_state, initial_state_derivative):
        """Initialize a single-sample step.

        Args:
            initial_time: Time of the first sample.
            initial_state: State at ``initial_time``, shape (n,) or (n, 1).
            initial_state_derivative: State derivative at ``initial_time``,
                shape (n,) or (n, 1).

        Raises:
            ValueError: If either value is not a single column vector or their
                dimensions differ.
        """
        state = _as_vector(initial_state, "Initial state")
        state_derivative = _as_vector(initial_state_derivative, "Initial state derivative")
        if state.shape[0] != state_derivative.shape[0]:
            raise ValueError(
                f"Initial state and state derivative dimensions differ: "
                f"{state.shape[0]} != {state_derivative.shape[0]}"
            )
        self._times = [initial_time]
        self._states = [state]
        self._state_derivatives = [state_derivative]

    def extend(self, time, state, state_derivative) -> None:
        """Append a sample at ``time``, past the current end of the step.

        The step is left untouched if any check fails.

        Raises:
            ValueError: If ``time`` does not exceed the current end time, if
                either value is not a single column vector, or if its
                dimension differs from the step's.
        """
        if not time > self.get_end_time():
            raise ValueError(
                f"Step must be extended forward in time: {time} is not past {self.get_end_time()}"
            )
        state = _as_vector(state, "State")
        state_derivative = _as_vector(state_derivative, "State derivative")
        dimensions = self.get_dimensions()
        if state.shape[0] != dimensions:
            raise ValueError(f"State dimension {state.shape[0]} != step dimension {dimensions}")
        if state_derivative.shape[0] != dimensions:
            raise ValueError(
                f"State derivative dimension {state_derivative.shape[0]} "
                f"!= step dimension {dimensions}"
            )
        self._times.append(time)
        self._states.append(state)
        self._state_derivatives.append(state_derivative)

    def get_start_time(self):
        return self._times[0]

    def get_end_time(self):
        return self._times[-1]

    def get_dimensions(self) -> int:
        return self._states[0].shape[0]

    def get_times(self) -> tuple:
        return tuple(self._times)

    def get_states(self) -> tuple:
        return tuple(self._states)

    def get_state_derivatives(self) -> tuple:
        return tuple(self._state_derivatives)

    def copy(self) -> "IntegrationStep":
        """Return an independent step holding the same samples."""
        duplicate = IntegrationStep.__new__(IntegrationStep)
        duplicate._times = list(self._times)
        duplicate._states = list(self._states)
        duplicate._state_derivatives = list(self._state_derivatives)
        return duplicate

    def _evaluate(self, t):
        # Bracketing sample pair; the final sample closes the last segment.
        i = bisect.bisect_right(self._times, t) - 1
        i = min(max(i, 0), len(self._times) - 2)
        return cubic_hermite(
            t,
            self._times[i],
            self._times[i + 1],
            self._states[i],
            self._state_derivatives[i],
            self._states[i + 1],
            self._state_derivatives[i + 1],
        )

    def __len__(self) -> int:
        return len(self._times)

    def __repr__(self) -> str:
        return (
            f"IntegrationStep(start={self.get_start_time()}, end={self.get_end_time()}, "
            f"samples={len(self)}, dimensions={self.get_dimensions()})"
        )


class HermitianDenseOutput(StepwiseDenseOutput):
    """Piecewise cubic Hermite dense output built from integration steps.

    Steps go through a staged protocol: :meth:`update` validates a step
    against the most recently known one (last staged, else last committed) and
    stages a copy of it; :meth:`rollback` pops the last staged step; and
    :meth:`consolidate` commits every staged step in order. Only committed
    steps are visible to queries.

    Every new step must start exactly where its predecessor ends, in time,
    state and state derivative (exact equality, no tolerance), and must share
    its dimension. This makes the interpolant continuous with a continuous
    first derivative across step boundaries.

    Attributes:
        _pending (List[IntegrationStep]): Staged, uncommitted steps.
        _committed (List[IntegrationStep]): Consolidated steps, contiguous in time.
        _committed_end_times (list): End time of each committed step, used to
            bisect for the step containing a query time.
    """

    def __init__(self):
        self._pending: List[IntegrationStep] = []
        self._committed: List[IntegrationStep] = []
        self._committed_end_times = []

    def update(self, step: IntegrationStep) -> None:
        """Validate ``step`` and stage a copy of it.

        Nothing is staged if validation fails.

        Raises:
            ValueError: If the step has zero length, or does not continue the
                most recently known step in dimension, time, state or state
                derivative.
        """
        if step.get_start_time() == step.get_end_time():
            raise ValueError("Dense output cannot be updated with a zero length step")
        previous = self._last_known_step()
        if previous is not None:
            if step.get_dimensions() != previous.get_dimensions():
                raise ValueError(
                    f"Step dimension {step.get_dimensions()} != dense output "
                    f"dimension {previous.get_dimensions()}"
                )
            if step.get_start_time() != previous.get_end_time():
                raise ValueError(
                    f"Step start time {step.get_start_time()} != previous step "
                    f"end time {previous.get_end_time()}"
                )
            if not jnp.array_equal(step.get_states()[0], previous.get_states()[-1]):
                raise ValueError("Step start state != previous step end state")
            if not jnp.array_equal(
                step.get_state_derivatives()[0], previous.get_state_derivatives()[-1]
            ):
                raise ValueError("Step start state derivative != previous step end state derivative")
        self._pending.append(step.copy())

    def rollback(self) -> IntegrationStep:
        """Discard the most recently staged step and return it."""
        if not self._pending:
            raise RuntimeError("No updates to roll back")
        return self._pending.pop()

    def consolidate(self) -> None:
        """Commit every staged step, in order, and clear the staging area."""
        if not self._pending:
            raise RuntimeError("No updates to consolidate")
        self._committed.extend(self._pending)
        self._committed_end_times.extend(step.get_end_time() for step in self._pending)
        self._pending = []

    def is_empty(self) -> bool:
        return len(self._committed) == 0

    def get_start_time(self):
        self._assert_not_empty()
        return self._committed[0].get_start_time()

    def get_end_time(self):
        self._assert_not_empty()
        return self._committed[-1].get_end_time()

    def get_dimensions(self) -> int:
        self._assert_not_empty()
        return self._committed[0].get_dimensions()

    def get_pending_count(self) -> int:
        return len(self._pending)

    def get_step_count(self) -> int:
        return len(self._committed)

    def get_committed_steps(self) -> tuple:
        return tuple(self._committed)

    def _do_evaluate(self, t):
        # Steps are contiguous, so the first one ending at or after t holds it.
        index = bisect.bisect_left(self._committed_end_times, t)
        index = min(index, len(self._committed) - 1)
        return self._committed[index]._evaluate(t)

    def _last_known_step(self):
        if self._pending:
            return self._pending[-1]
        if self._committed:
            return self._committed[-1]
        return None

    def _assert_not_empty(self):
        if self.is_empty():
            raise RuntimeError("Dense output is empty")
