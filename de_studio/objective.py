from __future__ import annotations

from dataclasses import dataclass
from typing import Tuple

import numpy as np

GLOBAL_MINIMUM: Tuple[float, float] = (1.0, 1.0)

PLOT_X_RANGE: Tuple[float, float] = (-2.0, 2.0)
PLOT_Y_RANGE: Tuple[float, float] = (-1.0, 3.0)


@dataclass(frozen=True)
class RosenbrockTerms:
    """Rosenbrock value split into the pieces shown in a worked calculation."""

    x: float
    y: float
    a: float
    b: float
    term1: float
    inner: float
    term2: float
    value: float


def evaluate(x: float, y: float, a: float = 1.0, b: float = 100.0) -> RosenbrockTerms:
    x = float(x)
    y = float(y)
    term1 = (a - x) ** 2
    inner = y - x ** 2
    term2 = b * inner ** 2
    return RosenbrockTerms(x=x, y=y, a=a, b=b, term1=term1, inner=inner, term2=term2, value=term1 + term2)


def rosenbrock(x: float, y: float) -> float:
    return evaluate(x, y).value


def landscape_grid(
    x_range: Tuple[float, float] = PLOT_X_RANGE,
    y_range: Tuple[float, float] = PLOT_Y_RANGE,
    resolution: int = 200,
    a: float = 1.0,
    b: float = 100.0,
) -> Tuple[np.ndarray, np.ndarray, np.ndarray]:
    res = max(2, int(resolution))
    xg = np.linspace(x_range[0], x_range[1], res)
    yg = np.linspace(y_range[0], y_range[1], res)
    xx, yy = np.meshgrid(xg, yg)
    zz = (a - xx) ** 2 + b * (yy - xx ** 2) ** 2
    return xx, yy, zz


def format_worked_calculation(x: float, y: float) -> str:
    t = evaluate(x, y)
    return (
        f"f({t.x:.6f}, {t.y:.6f}) = (1 - {t.x:.6f})^2 + 100 * ({t.y:.6f} - {t.x:.6f}^2)^2"
        f" = {t.term1:.6f} + {t.term2:.6f} = {t.value:.6f}"
    )
