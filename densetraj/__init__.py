import jax

# Hermite evaluation is checked against 1e-12 tolerances; JAX defaults to float32.
jax.config.update("jax_enable_x64", True)

from densetraj.config import Config, DevConfig, IntegrationConfig
from densetraj.dense_output import (
    DenseOutput,
    HermitianDenseOutput,
    IntegrationStep,
    StepwiseDenseOutput,
)
from densetraj.integrators import solve_ivp, solve_ivp_diffrax, solve_ivp_rk45
from densetraj.results import IntegrationResult

__all__ = [
    # Dense output
    "DenseOutput",
    "StepwiseDenseOutput",
    "HermitianDenseOutput",
    "IntegrationStep",
    # Integration entrypoints
    "solve_ivp",
    "solve_ivp_rk45",
    "solve_ivp_diffrax",
    "IntegrationResult",
    # Configuration
    "Config",
    "IntegrationConfig",
    "DevConfig",
]
