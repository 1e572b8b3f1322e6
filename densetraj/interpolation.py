"""Cubic Hermite interpolation primitives.

Everything here is plain ``jax.numpy`` arithmetic on the inputs, so the same
functions work on floats, numpy arrays, JAX arrays and JAX tracers. Derivatives
taken with ``jax.jvp`` / ``jax.jacfwd`` through these functions are exact.
"""

import jax.numpy as jnp


# fmt: off
def hermite_basis(s):
    """Cubic Hermite basis functions evaluated at normalized time ``s``.

    Args:
        s: Normalized time within the segment, 0 at the left node and 1 at
            the right node.

    Returns:
        Tuple ``(H00, H10, H01, H11)`` weighting, respectively, the left value,
        the (scaled) left derivative, the right value and the (scaled) right
        derivative.
    """
    s2 = s * s
    s3 = s2 * s
    h00 = 2*s3 - 3*s2 + 1
    h10 = s3 - 2*s2 + s
    h01 = -2*s3 + 3*s2
    h11 = s3 - s2
    return h00, h10, h01, h11


def hermite_basis_derivative(s):
    """Derivatives of :func:`hermite_basis` with respect to ``s``."""
    s2 = s * s
    dh00 = 6*s2 - 6*s
    dh10 = 3*s2 - 4*s + 1
    dh01 = -6*s2 + 6*s
    dh11 = 3*s2 - 2*s
    return dh00, dh10, dh01, dh11
# fmt: on


def cubic_hermite(t, t0, t1, x0, dx0, x1, dx1):
    """Evaluate the cubic Hermite segment through ``(t0, x0, dx0)`` and ``(t1, x1, dx1)``.

    Args:
        t: Evaluation time, expected in ``[t0, t1]``.
        t0: Left node time.
        t1: Right node time, strictly greater than ``t0``.
        x0: Value at the left node, shape (n,).
        dx0: Time derivative at the left node, shape (n,).
        x1: Value at the right node, shape (n,).
        dx1: Time derivative at the right node, shape (n,).

    Returns:
        jnp.ndarray: Interpolated value, shape (n,).
    """
    h = t1 - t0
    s = (t - t0) / h
    h00, h10, h01, h11 = hermite_basis(s)
    x0, dx0 = jnp.asarray(x0), jnp.asarray(dx0)
    x1, dx1 = jnp.asarray(x1), jnp.asarray(dx1)
    return h00 * x0 + h10 * h * dx0 + h01 * x1 + h11 * h * dx1


def hermite_derivative(t, t0, t1, x0, dx0, x1, dx1):
    """Time derivative of :func:`cubic_hermite` on the same segment."""
    h = t1 - t0
    s = (t - t0) / h
    dh00, dh10, dh01, dh11 = hermite_basis_derivative(s)
    x0, dx0 = jnp.asarray(x0), jnp.asarray(dx0)
    x1, dx1 = jnp.asarray(x1), jnp.asarray(dx1)
    # chain rule: ds/dt = 1/h
    return (dh00 * x0 + dh01 * x1) / h + dh10 * dx0 + dh11 * dx1
