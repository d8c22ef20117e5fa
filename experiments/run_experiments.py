"""
experiments/run_experiments.py

Experiment harness that loads the baseline config, applies scenario overrides,
runs multiple replications of the harbour model, and reports KPIs with
confidence intervals. Optionally plots the berth occupancy over time.
"""

from __future__ import annotations
import argparse
import copy
import logging
import math
import os
from statistics import mean, stdev
from typing import Callable, Dict, List, Optional

from scipy.stats import t

from dessim.config import ROOT, apply_overrides, load_cfg
from dessim.simulation import run_one_replication

from .scenarios import SCENARIOS

logger = logging.getLogger(__name__)

OUT_DIR = os.path.join(ROOT, "experiments", "output")


def mean_ci(values: List[float], confidence_level: float) -> tuple[float, float]:
    """Return (mean, half-width) using a Student t critical value."""
    if not values:
        return 0.0, 0.0
    mu = mean(values)
    n = len(values)
    if n < 2:
        return mu, 0.0
    level = min(max(confidence_level, 0.0), 0.999999)
    alpha = 1.0 - level
    tcrit = t.ppf(1 - alpha / 2.0, n - 1)
    half = tcrit * (stdev(values) / math.sqrt(n))
    return mu, half


def series(results: List[Dict], extractor: Callable[[Dict], float]) -> List[float]:
    """Collect a numeric series from each replication result."""
    return [float(extractor(res)) for res in results]


def run_scenario(cfg: Dict, scenario: Dict, replications: int) -> List[Dict]:
    sc_base_cfg = apply_overrides(cfg, scenario["overrides"])
    scenario_seed = sc_base_cfg.get("sim", {}).get("seed", 0)
    results = []
    for rep in range(replications):
        sc_cfg = copy.deepcopy(sc_base_cfg)
        sc_cfg.setdefault("sim", {})
        # Advance the seed per replication so replications stay iid but scenario-specific seeds stick.
        sc_cfg["sim"]["seed"] = scenario_seed + rep
        res = run_one_replication(sc_cfg)
        res["seed"] = sc_cfg["sim"]["seed"]
        results.append(res)
    return results


def plot_occupancy(results: List[Dict], scenario_name: str, capacity: int) -> Optional[str]:
    """
    Persist a PNG step plot of berths in use and queue length over time for
    the first replication of a scenario.
    """
    if not results or not results[0].get("time_series"):
        return None
    import matplotlib
    matplotlib.use("Agg")
    import matplotlib.pyplot as plt

    pts = results[0]["time_series"]
    x = [pt["time"] for pt in pts]
    plt.figure(figsize=(9, 5))
    plt.step(x, [pt["in_use"] for pt in pts], where="post", label="Berths in use", color="#2563eb")
    plt.step(x, [pt["queue_length"] for pt in pts], where="post", label="Ships waiting", color="#d97706")
    plt.axhline(capacity, color="#6b7280", linestyle="--", label="Capacity")
    plt.xlabel("Time")
    plt.ylabel("Count")
    plt.title(f"{scenario_name}: berth occupancy (seed {results[0].get('seed')})")
    plt.legend()
    plt.grid(True, linestyle="--", alpha=0.4)
    os.makedirs(OUT_DIR, exist_ok=True)
    safe_name = scenario_name.lower().replace(" ", "_")
    out_path = os.path.join(OUT_DIR, f"{safe_name}_occupancy.png")
    plt.tight_layout()
    plt.savefig(out_path, dpi=160)
    plt.close()
    return out_path


def report(scenario: Dict, results: List[Dict], confidence: float):
    level_pct = confidence * 100.0
    seeds = [r["seed"] for r in results]
    wait = mean_ci(series(results, lambda r: r["avg_berth_wait"]), confidence)
    p90 = mean_ci(series(results, lambda r: r["p90_berth_wait"]), confidence)
    port = mean_ci(series(results, lambda r: r["avg_time_in_port"]), confidence)
    util = mean_ci(series(results, lambda r: r["berths"]["utilization"] * 100.0), confidence)
    qlen = mean_ci(series(results, lambda r: r["berths"]["avg_queue_length"]), confidence)
    departed = mean_ci(series(results, lambda r: r["ships_departed"]), confidence)
    stuck = mean_ci(series(results, lambda r: r["ships_waiting_at_end"]), confidence)

    print(f"Scenario: {scenario['name']} (replications={len(results)}, {level_pct:.1f}% CI, seeds {seeds[0]}-{seeds[-1]})")
    print("  Avg berth wait by seed:")
    for res in results:
        print(f"    seed {res['seed']}: {res['avg_berth_wait']:.2f}")
    print(f"  Avg berth wait: {wait[0]:.2f} ± {wait[1]:.2f}")
    print(f"  P90 berth wait: {p90[0]:.2f} ± {p90[1]:.2f}")
    print(f"  Avg time in port: {port[0]:.2f} ± {port[1]:.2f}")
    print(f"  Berth utilization: {util[0]:.1f}% ± {util[1]:.1f}%")
    print(f"  Avg queue length: {qlen[0]:.2f} ± {qlen[1]:.2f}")
    print(f"  Ships departed: {departed[0]:.1f} ± {departed[1]:.1f}")
    print(f"  Ships still waiting at stop: {stuck[0]:.1f} ± {stuck[1]:.1f}")


def main(argv: Optional[List[str]] = None):
    """Entry point: drive all scenarios, replications, and report KPIs."""
    parser = argparse.ArgumentParser(description="Run harbour berth allocation experiments.")
    parser.add_argument("--config", default=None, help="YAML config (default: config/baseline.yaml)")
    parser.add_argument("--scenario", action="append", help="run only the named scenario(s)")
    parser.add_argument("--replications", type=int, default=None)
    parser.add_argument("--no-plot", action="store_true")
    parser.add_argument("-v", "--verbose", action="store_true")
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s [%(levelname)s] %(name)s - %(message)s",
    )
    if not args.verbose:
        logging.getLogger("dessim.simulation").setLevel(logging.INFO)

    cfg = load_cfg(args.config)
    exp_cfg = cfg.get("experiments", {})
    replications = max(1, int(args.replications or exp_cfg.get("replications", 1)))
    confidence = float(exp_cfg.get("confidence_level", 0.95))
    do_plot = bool(exp_cfg.get("plot", False)) and not args.no_plot

    scenarios = SCENARIOS
    if args.scenario:
        wanted = set(args.scenario)
        scenarios = [sc for sc in SCENARIOS if sc["name"] in wanted]
        missing = wanted - {sc["name"] for sc in scenarios}
        for name in sorted(missing):
            print(f"[warn] unknown scenario: {name}")

    for sc in scenarios:
        results = run_scenario(cfg, sc, replications)
        report(sc, results, confidence)
        if do_plot:
            plot_path = plot_occupancy(results, sc["name"], results[0]["berths"]["capacity"])
            if plot_path:
                print(f"  Occupancy plot saved to: {plot_path}")
        print("-")


if __name__ == "__main__":
    main()
