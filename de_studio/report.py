from __future__ import annotations

from typing import Dict, List, Optional, Sequence

from .controller import PARAMETER_LABELS, PARAMETER_RANGES, DEConfig
from .engine import MUTANT, TrialRecord
from .objective import format_worked_calculation
from .population import Individual, best_index, population_fitness

FITNESS_FORMULA = "f(x,y) = (1 - x)^2 + 100 * (y - x^2)^2"


def _pt(x: float, y: float, digits: int = 3) -> str:
    return f"({x:.{digits}f}, {y:.{digits}f})"


def format_log_table(trace: Sequence[TrialRecord], max_entries: Optional[int] = 4) -> str:
    header = ["i", "f(x_i)", "x_i", "u_i", "f(u_i)", "x_new"]
    rows: List[List[str]] = []
    shown = trace if max_entries is None else trace[:max_entries]
    for rec in shown:
        rows.append(
            [
                str(rec.index + 1),
                f"{rec.prev_fitness:.4f}",
                _pt(rec.prev_x, rec.prev_y),
                _pt(rec.trial_x, rec.trial_y),
                f"{rec.trial_fitness:.4f}",
                f"{_pt(rec.new_x, rec.new_y)} {'✓' if rec.accepted else '✗'}",
            ]
        )

    widths = [len(h) for h in header]
    for row in rows:
        widths = [max(w, len(c)) for w, c in zip(widths, row)]

    lines = ["  ".join(h.ljust(w) for h, w in zip(header, widths)).rstrip()]
    lines.append("  ".join("-" * w for w in widths))
    for row in rows:
        lines.append("  ".join(c.ljust(w) for c, w in zip(row, widths)).rstrip())

    if max_entries is not None and len(trace) > max_entries:
        lines.append(f"...and {len(trace) - max_entries} more entries")
    return "\n".join(lines)


def format_trial_details(rec: TrialRecord, F: float, CR: float) -> str:
    ux = "v_x" if rec.source_x == MUTANT else "x_i"
    uy = "v_y" if rec.source_y == MUTANT else "x_i"
    return "\n".join(
        [
            f"Trial vector for i = {rec.index + 1} (F = {F:g}, CR = {CR:g})",
            "Parents:",
            f"  a = {_pt(rec.a_x, rec.a_y, 6)}  [i = {rec.a_index + 1}]",
            f"  b = {_pt(rec.b_x, rec.b_y, 6)}  [i = {rec.b_index + 1}]",
            f"  c = {_pt(rec.c_x, rec.c_y, 6)}  [i = {rec.c_index + 1}]",
            "",
            "Mutation (v = a + F * (b - c)):",
            f"  v_x = {rec.a_x:.6f} + {F:.3f} * ({rec.b_x:.6f} - {rec.c_x:.6f}) = {rec.mutation_x:.6f}",
            f"  v_y = {rec.a_y:.6f} + {F:.3f} * ({rec.b_y:.6f} - {rec.c_y:.6f}) = {rec.mutation_y:.6f}",
            "",
            f"Binomial crossover (j_rand = {rec.j_rand}):",
            f"  u_x = {ux} = {rec.trial_x:.6f}",
            f"  u_y = {uy} = {rec.trial_y:.6f}",
            "",
            "Trial fitness f(u):",
            f"  {format_worked_calculation(rec.trial_x, rec.trial_y)}",
            f"Accepted: {'yes' if rec.accepted else 'no'} (new x = {_pt(rec.new_x, rec.new_y, 6)})",
        ]
    )


def format_iteration_details(
    generation: int,
    population: Sequence[Individual],
    trace: Sequence[TrialRecord],
    F: float,
    CR: float,
) -> str:
    lines = ["Iteration details", f"Current iteration: {generation}"]
    if not population or not trace:
        lines.append("Run a few iterations to see detailed calculations here.")
        return "\n".join(lines)

    idx = best_index(population)
    best = population[idx]
    fit = float(population_fitness(population)[idx])
    lines.append(f"Best individual: i = {idx + 1}, x = {_pt(best.x, best.y, 6)}, f(x) = {fit:.6f}")
    lines.append("")
    lines.append(f"Fitness {FITNESS_FORMULA}")
    lines.append(format_worked_calculation(best.x, best.y))
    lines.append("")

    entry = next((r for r in trace if r.index == idx), None)
    if entry is None:
        lines.append("No trial info available for the best individual yet.")
    else:
        lines.append(format_trial_details(entry, F, CR))
    return "\n".join(lines)


def format_parameters_table(config: DEConfig) -> str:
    rows = []
    for name, limits in PARAMETER_RANGES.items():
        label = f"{PARAMETER_LABELS[name]} ({limits.symbol})"
        rows.append((label, f"{getattr(config, name):g}", limits.constraint_text()))
    w0 = max(len("Parameter"), *(len(r[0]) for r in rows))
    w1 = max(len("Value"), *(len(r[1]) for r in rows))
    lines = [f"{'Parameter'.ljust(w0)}  {'Value'.ljust(w1)}  Constraints"]
    for label, value, constraint in rows:
        lines.append(f"{label.ljust(w0)}  {value.ljust(w1)}  {constraint}")
    return "\n".join(lines)


def format_batch_summary(rows: Sequence[Dict[str, object]]) -> str:
    lines = []
    for row in rows:
        lines.append(
            f"seed={row['seed']!s:>4s} NP={row['population']:2d} gens={row['generations']:4d} "
            f"F={row['F']:.2f} CR={row['CR']:.2f} "
            f"best0={row['initial_best_f']:.6e} best={row['final_best_f']:.6e} "
            f"x=({row['best_x']:.5f}, {row['best_y']:.5f}) accept={row['accept_rate']:.3f}"
        )
    return "\n".join(lines)
