from .controller import ConfigError, DEConfig, RunController
from .engine import StepResult, TrialRecord, step
from .objective import evaluate, rosenbrock
from .population import Bounds, Individual, initialize_population

__all__ = [
    "Bounds",
    "ConfigError",
    "DEConfig",
    "Individual",
    "RunController",
    "StepResult",
    "TrialRecord",
    "evaluate",
    "initialize_population",
    "rosenbrock",
    "step",
]

__version__ = "0.1.0"
