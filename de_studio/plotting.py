from __future__ import annotations

from typing import Dict, List, Optional, Sequence, Tuple

import numpy as np
from matplotlib.colors import LogNorm
from matplotlib.figure import Figure

from .objective import GLOBAL_MINIMUM, PLOT_X_RANGE, PLOT_Y_RANGE, landscape_grid
from .population import Individual

LOG_MIN_EXPONENT = -4.0
LOG_MAX_EXPONENT = 3.0
LOG_STEP = 0.8

_landscape_cache: Dict[int, Tuple[np.ndarray, np.ndarray, np.ndarray]] = {}


def log_thresholds() -> np.ndarray:
    exps = np.arange(LOG_MIN_EXPONENT, LOG_MAX_EXPONENT + 1e-9, LOG_STEP)
    return 10.0 ** exps


def cached_landscape(resolution: int) -> Tuple[np.ndarray, np.ndarray, np.ndarray]:
    key = max(2, int(resolution))
    if key not in _landscape_cache:
        _landscape_cache[key] = landscape_grid(PLOT_X_RANGE, PLOT_Y_RANGE, key)
    return _landscape_cache[key]


def draw_landscape(ax, cax=None, resolution: int = 200, figure: Optional[Figure] = None):
    xx, yy, zz = cached_landscape(resolution)
    levels = log_thresholds()
    norm = LogNorm(vmin=10.0 ** LOG_MIN_EXPONENT, vmax=10.0 ** LOG_MAX_EXPONENT)

    # values outside the level range are drawn with the end colors
    cs = ax.contourf(xx, yy, zz, levels=levels, cmap="viridis", norm=norm, extend="both")
    ax.contour(xx, yy, zz, levels=levels, colors="white", linewidths=0.5)

    ax.scatter([GLOBAL_MINIMUM[0]], [GLOBAL_MINIMUM[1]], marker="x", s=60, c="red", zorder=3)
    ax.set_xlim(*PLOT_X_RANGE)
    ax.set_ylim(*PLOT_Y_RANGE)
    ax.set_aspect("equal", adjustable="box")
    ax.set_xlabel("x")
    ax.set_ylabel("y")
    ax.set_title("Rosenbrock f(x,y) = (1 - x)^2 + 100 (y - x^2)^2")

    if cax is not None:
        fig = figure if figure is not None else ax.figure
        cbar = fig.colorbar(cs, cax=cax)
        cbar.set_label("f(x,y)")
    return cs


def draw_population(
    ax,
    population: Sequence[Individual],
    prev_population: Optional[Sequence[Individual]] = None,
    show_paths: bool = True,
    show_labels: bool = False,
) -> List:
    artists: List = []
    if not population:
        return artists

    xs = [p.x for p in population]
    ys = [p.y for p in population]
    colors = [p.color for p in population]

    if show_paths and prev_population is not None:
        for old, new in zip(prev_population, population):
            if old.x == new.x and old.y == new.y:
                continue
            artists += ax.plot(
                [old.x, new.x],
                [old.y, new.y],
                linestyle="--",
                linewidth=0.8,
                color=new.color,
                alpha=0.8,
                zorder=4,
            )

    artists.append(ax.scatter(xs, ys, s=44, c=colors, edgecolors="white", linewidths=1.0, zorder=5))

    if show_labels:
        for idx, (xv, yv) in enumerate(zip(xs, ys), start=1):
            artists.append(ax.text(xv, yv, str(idx), fontsize=7, color="white", zorder=6))
    return artists


def draw_convergence(
    ax,
    best_history: Sequence[float],
    diversity_history: Sequence[float],
    current: Optional[int] = None,
):
    ax.clear()
    ax.set_title("Convergence + diversity")
    ax.set_xlabel("Generation")
    if not best_history:
        ax.set_ylabel("Best fitness")
        return None

    gens = list(range(len(best_history)))
    # keep the log axis finite at the exact optimum
    best = np.maximum(np.asarray(best_history, dtype=float), 1e-16)
    l_best = ax.plot(gens, best, color="tab:blue", linewidth=1.6, label="best fitness")
    ax.set_yscale("log")
    ax.set_ylabel("Best fitness", color="tab:blue")
    ax.tick_params(axis="y", labelcolor="tab:blue")

    right = ax.twinx()
    l_div = right.plot(gens, list(diversity_history), color="tab:orange", linewidth=1.3, label="diversity")
    right.set_ylabel("Population diversity", color="tab:orange")
    right.tick_params(axis="y", labelcolor="tab:orange")

    handles: List = l_best + l_div
    if current is not None:
        handles.append(ax.axvline(current, color="tab:red", linestyle="--", linewidth=1.0, label="current"))

    ax.set_xlim(0, max(1, len(gens) - 1))
    ax.grid(True, alpha=0.25)
    ax.legend(handles, [h.get_label() for h in handles], loc="upper right", fontsize=8)
    return right


class RunFigure:
    """Landscape drawn once; population overlay and metrics redrawn per update."""

    def __init__(self, figure: Optional[Figure] = None, resolution: int = 200):
        self.figure = figure if figure is not None else Figure(figsize=(8.0, 9.5), dpi=100)
        self.figure.clf()
        gs = self.figure.add_gridspec(2, 2, width_ratios=[28, 1], height_ratios=[3, 1], hspace=0.3, wspace=0.08)
        self.ax_main = self.figure.add_subplot(gs[0, 0])
        self.ax_cbar = self.figure.add_subplot(gs[0, 1])
        self.ax_metrics = self.figure.add_subplot(gs[1, :])
        self.ax_metrics_right = None

        draw_landscape(self.ax_main, cax=self.ax_cbar, resolution=resolution, figure=self.figure)
        self._overlay: List = []

    def update(self, controller, show_paths: bool = True, show_labels: bool = False) -> Figure:
        for artist in self._overlay:
            artist.remove()
        self._overlay = draw_population(
            self.ax_main,
            controller.population,
            controller.prev_population,
            show_paths=show_paths,
            show_labels=show_labels,
        )
        self.ax_main.set_title(
            f"Generation {controller.generation}/{controller.config.max_iterations} | best f = {controller.best_fitness:.4e}"
        )

        if self.ax_metrics_right is not None:
            self.ax_metrics_right.remove()
        self.ax_metrics_right = draw_convergence(
            self.ax_metrics,
            controller.best_history,
            controller.diversity_history,
            current=controller.generation,
        )
        return self.figure


def render_figure(
    controller,
    figure: Optional[Figure] = None,
    show_paths: bool = True,
    show_labels: bool = False,
    resolution: int = 200,
) -> Figure:
    return RunFigure(figure, resolution=resolution).update(controller, show_paths=show_paths, show_labels=show_labels)
