"""Dense output for numerical ODE integrators.

This module provides continuous, queryable approximations of ODE solutions
built from the discrete samples an integrator produces. Dense outputs are the
bridge between integrators (which advance the state in discrete steps) and
consumers (which want the trajectory at arbitrary times).

Current Implementations:
    Hermitian Dense Output: Piecewise cubic Hermite interpolation through
        (time, state, state derivative) samples. Steps are staged with
        ``update``, discarded with ``rollback`` and committed with
        ``consolidate``; only committed steps are visible to queries.

Core Classes:
    DenseOutput: Abstract query interface (``evaluate``, ``evaluate_nth``,
        ``sample``, time span and dimension accessors).
    StepwiseDenseOutput: Abstract staged update protocol on top of
        ``DenseOutput``.
    IntegrationStep: Strictly time-increasing run of samples produced by one
        integrator step.
    HermitianDenseOutput: Cubic Hermite implementation of
        ``StepwiseDenseOutput``.

Example:
    .. code-block:: python

        from densetraj.dense_output import HermitianDenseOutput, IntegrationStep

        dense_output = HermitianDenseOutput()
        step = IntegrationStep(0.0, x0, dx0)
        step.extend(0.1, x1, dx1)
        dense_output.update(step)
        dense_output.consolidate()
        x = dense_output.evaluate(0.05)

Note:
    Continuity between steps is checked with exact equality. Integrators must
    start each step from the exact state and derivative arrays that ended the
    previous one.
"""

from .base import DenseOutput, StepwiseDenseOutput
from .hermitian import HermitianDenseOutput, IntegrationStep

__all__ = [
    "DenseOutput",
    "StepwiseDenseOutput",
    "HermitianDenseOutput",
    "IntegrationStep",
]
