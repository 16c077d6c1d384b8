#!/usr/bin/env python3

from __future__ import annotations

import argparse
import logging
import os
import sys
from typing import Dict, List, Optional, Sequence

import matplotlib

if "--batch" in sys.argv:
    matplotlib.use("Agg")

from .controller import PARAMETER_RANGES, ConfigError, DEConfig, RunController
from .plotting import render_figure
from .population import best_index, make_rng
from .report import format_batch_summary, format_parameters_table
from .utils import ensure_dir


def run_batch(
    config: DEConfig,
    generations: int,
    seeds: Sequence[int],
    plot_path: Optional[str] = None,
) -> List[Dict[str, object]]:
    # a trial must finish before the wraparound restarts the experiment
    limits = PARAMETER_RANGES["max_iterations"]
    if not limits.contains(generations):
        raise ConfigError(
            f"generations={generations!r} must be an integer value in [{limits.minimum:g}, {limits.maximum:g}]"
        )
    generations = int(generations)
    cfg = config.replace(max_iterations=max(config.max_iterations, generations)).validate()

    rows: List[Dict[str, object]] = []
    for n, seed in enumerate(seeds):
        ctl = RunController(cfg, rng=make_rng(seed))
        initial_best = ctl.best_fitness

        accepted = 0
        trials = 0
        for _ in range(generations):
            result = ctl.step()
            accepted += result.accepted_count
            trials += len(result.trace)

        best = ctl.population[best_index(ctl.population)]
        rows.append(
            {
                "seed": seed,
                "population": cfg.population_size,
                "generations": ctl.generation,
                "F": cfg.F,
                "CR": cfg.CR,
                "initial_best_f": float(initial_best),
                "final_best_f": float(ctl.best_fitness),
                "best_x": float(best.x),
                "best_y": float(best.y),
                "accept_rate": accepted / trials if trials else 0.0,
            }
        )

        if plot_path and n == 0:
            ensure_dir(os.path.dirname(os.path.abspath(plot_path)))
            fig = render_figure(ctl)
            fig.savefig(plot_path, dpi=140)

    return rows


def parse_args(argv: Optional[Sequence[str]] = None) -> argparse.Namespace:
    d = DEConfig()
    p = argparse.ArgumentParser(description="Differential Evolution on the Rosenbrock function")
    p.add_argument("--batch", action="store_true", help="Run headless and print a summary instead of opening the GUI")
    p.add_argument("--generations", type=int, default=200, help="Generations per batch trial (1-1000)")
    p.add_argument("--population", type=int, default=d.population_size, help="Population size NP (4-36)")
    p.add_argument("--cr", type=float, default=d.crossover_probability, help="Crossover probability CR (0-1)")
    p.add_argument("--f", type=float, default=d.differential_weight, help="Differential weight F (0-2)")
    p.add_argument("--max-iterations", type=int, default=d.max_iterations, help="Generations before the GUI run restarts")
    p.add_argument("--interval", type=int, default=d.step_interval_ms, help="GUI step interval in ms (30-1000)")
    p.add_argument("--seed", type=int, default=0, help="First seed for batch trials")
    p.add_argument("--trials", type=int, default=1, help="Number of seeded batch trials")
    p.add_argument("--plot", default=None, help="Save the first batch trial's final figure to this PNG path")
    p.add_argument("--log-level", default="WARNING", help="Logging level (DEBUG, INFO, WARNING, ...)")
    return p.parse_args(argv)


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = parse_args(argv)
    logging.basicConfig(
        level=getattr(logging, str(args.log_level).upper(), logging.WARNING),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    try:
        cfg = DEConfig(
            population_size=args.population,
            crossover_probability=args.cr,
            differential_weight=args.f,
            max_iterations=args.max_iterations,
            step_interval_ms=args.interval,
        ).validate()
    except ConfigError as exc:
        print(f"error: {exc}", file=sys.stderr)
        return 2

    if args.batch:
        seeds = [args.seed + k for k in range(max(1, args.trials))]
        try:
            rows = run_batch(cfg, args.generations, seeds, plot_path=args.plot)
        except ConfigError as exc:
            print(f"error: {exc}", file=sys.stderr)
            return 2
        print(format_parameters_table(cfg))
        print()
        print("Batch summary:")
        print(format_batch_summary(rows))
        if args.plot:
            print(f"\nPlot: {args.plot}")
        return 0

    from .gui import DEStudioApp

    app = DEStudioApp(RunController(cfg))
    app.mainloop()
    return 0


if __name__ == "__main__":
    sys.exit(main())
