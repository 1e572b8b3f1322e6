from dataclasses import dataclass
from typing import Dict, Optional

from densetraj.integrators import SOLVER_MAP


@dataclass
class IntegrationConfig:

    def __init__(
        self,
        solver: str = "RK45",
        num_steps: int = 50,
        num_substeps: int = 1,
        consolidate_every: int = 1,
        args: Optional[Dict] = None,
        atol: float = 1e-6,
        rtol: float = 1e-3,
    ):
        """
        Configuration class for integration settings.

        This class defines the parameters used to integrate a system and record its dense output.

        Main arguments:
        These are the arguments most commonly used day-to-day.

        Args:
            solver (str): "RK45" enables our custom fixed-step Runge-Kutta-Fehlberg integrator. Any other
                name must be a Diffrax solver listed in `SOLVER_MAP` (e.g. "Tsit5", "Dopri8"). Defaults to "RK45".
            num_steps (int): Number of grid nodes over the time span, including both ends. Defaults to 50.

        Other arguments:
        These arguments are less frequently used, and for most purposes you shouldn't need to understand these.

        Args:
            num_substeps (int): Samples recorded inside each dense output step by the RK45 integrator. Defaults to 1.
            consolidate_every (int): Number of staged steps between consolidations. Defaults to 1.
            args (Dict): Additional arguments to pass to `diffrax.diffeqsolve`. Defaults to an empty dictionary.
            atol (float): Absolute tolerance for Diffrax solvers. Defaults to 1e-6.
            rtol (float): Relative tolerance for Diffrax solvers. Defaults to 1e-3.
        """
        self.solver = solver
        self.num_steps = num_steps
        self.num_substeps = num_substeps
        self.consolidate_every = consolidate_every
        self.args = args if args is not None else {}
        self.atol = atol
        self.rtol = rtol

        self.__post_init__()

    def __post_init__(self):
        if self.solver != "RK45" and self.solver not in SOLVER_MAP:
            raise ValueError(f"Unknown solver: {self.solver}")
        if self.num_steps < 2:
            raise ValueError(f"num_steps must be at least 2, got {self.num_steps}")
        if self.num_substeps < 1:
            raise ValueError(f"num_substeps must be at least 1, got {self.num_substeps}")
        if self.consolidate_every < 1:
            raise ValueError(f"consolidate_every must be at least 1, got {self.consolidate_every}")


@dataclass
class DevConfig:

    def __init__(self, debug: bool = False, printing: bool = False):
        """
        Configuration class for development settings.

        Args:
            debug (bool): Disables JIT compilation of the dynamics so you can place breakpoints and inspect
                values. Defaults to False.
            printing (bool): Whether to print a progress table while integrating. Defaults to False.
        """
        self.debug = debug
        self.printing = printing


@dataclass
class Config:
    integration: IntegrationConfig
    dev: DevConfig

    @classmethod
    def default(cls) -> "Config":
        return cls(integration=IntegrationConfig(), dev=DevConfig())
