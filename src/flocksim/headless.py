from __future__ import annotations

import argparse
import csv
import json
import logging
import math
from pathlib import Path
from typing import Optional, Sequence

from pygame.math import Vector2

from .agent import AttractionPoint
from .config import SimulationConfig
from .logging_config import configure_logging
from .metrics import TickMetrics
from .simulation import Simulation

logger = logging.getLogger(__name__)

_HEADER = [
    "tick",
    "population",
    "neighbor_checks",
    "avg_speed",
    "attraction_points",
    "index_nodes",
    "index_depth",
    "desyncs",
    "tick_ms",
]


def _format_row(metrics: TickMetrics, tick_ms: float) -> list[object]:
    return [
        metrics.tick,
        metrics.population,
        metrics.neighbor_checks,
        f"{metrics.average_speed:.4f}",
        metrics.attraction_points,
        metrics.index_nodes,
        metrics.index_depth,
        metrics.desyncs,
        f"{tick_ms:.3f}",
    ]


def _percentile(sorted_values: list[float], percentile: float) -> float:
    if not sorted_values:
        return 0.0
    if len(sorted_values) == 1:
        return float(sorted_values[0])
    pos = (len(sorted_values) - 1) * percentile
    low = int(math.floor(pos))
    high = int(math.ceil(pos))
    if low == high:
        return float(sorted_values[low])
    weight = pos - low
    return float(sorted_values[low] + (sorted_values[high] - sorted_values[low]) * weight)


def _summary_stats(values: list[float]) -> dict[str, float]:
    if not values:
        return {"min": 0.0, "max": 0.0, "avg": 0.0, "p50": 0.0, "p90": 0.0, "p99": 0.0}
    sorted_values = sorted(values)
    return {
        "min": float(sorted_values[0]),
        "max": float(sorted_values[-1]),
        "avg": float(sum(values) / len(values)),
        "p50": _percentile(sorted_values, 0.50),
        "p90": _percentile(sorted_values, 0.90),
        "p99": _percentile(sorted_values, 0.99),
    }


def build_config(
    config_path: Optional[Path] = None,
    seed: Optional[int] = None,
    agents: Optional[int] = None,
    workers: Optional[int] = None,
) -> SimulationConfig:
    config = SimulationConfig.from_yaml(config_path) if config_path else SimulationConfig()
    if seed is not None:
        config.seed = seed
    if agents is not None:
        config.agent_count = agents
    if workers is not None:
        config.workers = workers
    return config.validate()


def run_headless(
    steps: int,
    seed: Optional[int],
    log_path: Optional[Path],
    deterministic_log: bool = False,
    config_path: Optional[Path] = None,
    agents: Optional[int] = None,
    workers: Optional[int] = None,
    attractors: Sequence[tuple[float, float]] = (),
    summary_path: Optional[Path] = None,
    summary_window: int = 500,
) -> TickMetrics | None:
    config = build_config(config_path, seed, agents, workers)
    simulation = Simulation(config)
    simulation.set_attraction_points(AttractionPoint(Vector2(x, y)) for x, y in attractors)

    writer = None
    csv_file = None
    if log_path:
        csv_file = Path(log_path).open("w", newline="")
        writer = csv.writer(csv_file)
        writer.writerow(_HEADER)

    tick_ms_series: list[float] = []
    neighbor_checks_series: list[float] = []
    depth_series: list[float] = []
    total_desyncs = 0
    metrics: TickMetrics | None = None
    try:
        for _ in range(steps):
            metrics = simulation.advance_tick()
            tick_ms = 0.0 if deterministic_log else metrics.tick_duration_ms
            total_desyncs += metrics.desyncs
            if summary_path:
                tick_ms_series.append(tick_ms)
                neighbor_checks_series.append(float(metrics.neighbor_checks))
                depth_series.append(float(metrics.index_depth))
            if writer:
                writer.writerow(_format_row(metrics, tick_ms))
    finally:
        simulation.close()
        if csv_file:
            csv_file.close()

    if summary_path:
        window = max(1, int(summary_window))
        tail_slice = slice(max(0, len(tick_ms_series) - window), len(tick_ms_series))
        summary = {
            "steps": steps,
            "seed": config.seed,
            "agents": config.agent_count,
            "workers": config.workers,
            "deterministic_log": deterministic_log,
            "desyncs": total_desyncs,
            "tick_ms": _summary_stats(tick_ms_series),
            "neighbor_checks": _summary_stats(neighbor_checks_series),
            "index_depth": _summary_stats(depth_series),
            "tail_window": {
                "window": window,
                "tick_ms": _summary_stats(tick_ms_series[tail_slice]),
                "neighbor_checks": _summary_stats(neighbor_checks_series[tail_slice]),
            },
        }
        Path(summary_path).write_text(json.dumps(summary, indent=2))

    logger.info("Headless run finished after %d steps (%d desyncs)", steps, total_desyncs)
    return metrics


def main(argv: Optional[Sequence[str]] = None) -> None:
    parser = argparse.ArgumentParser(description="Headless boids flocking simulation")
    parser.add_argument("--steps", type=int, default=600)
    parser.add_argument("--seed", type=int, default=None)
    parser.add_argument("--config", type=Path, default=None, help="YAML configuration file")
    parser.add_argument("--agents", type=int, default=None, help="Override agent_count")
    parser.add_argument("--workers", type=int, default=None, help="Threads for the force computation")
    parser.add_argument(
        "--attractor",
        type=float,
        nargs=2,
        action="append",
        default=[],
        metavar=("X", "Y"),
        help="Attraction point position; repeat for several points.",
    )
    parser.add_argument("--log", type=Path, default=None, help="CSV file to write metrics")
    parser.add_argument(
        "--deterministic-log",
        action="store_true",
        help="Write deterministic CSV (tick_ms is forced to 0.000 so identical seeds match).",
    )
    parser.add_argument("--summary", type=Path, default=None, help="Optional JSON file for run summary stats.")
    parser.add_argument("--summary-window", type=int, default=500, help="Tail window size (ticks) for summary stats.")
    parser.add_argument("--log-level", default=None, help="Logging level (default: FLOCKSIM_LOG_LEVEL or WARNING)")
    args = parser.parse_args(argv)

    configure_logging(level=args.log_level)
    run_headless(
        args.steps,
        args.seed,
        args.log,
        deterministic_log=args.deterministic_log,
        config_path=args.config,
        agents=args.agents,
        workers=args.workers,
        attractors=[tuple(point) for point in args.attractor],
        summary_path=args.summary,
        summary_window=args.summary_window,
    )


if __name__ == "__main__":
    main()
