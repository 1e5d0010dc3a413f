#!/usr/bin/env python3
"""
Event Generator Comparison Script.

Samples a Johnson S_U distribution with the direct (sinh transform)
generator and with the numeric samplers, then compares moments, binned
agreement with the analytic density and timing.

Usage:
    python scripts/compare_generators.py
    python scripts/compare_generators.py --events 50000 --methods foam accept_reject
    python scripts/compare_generators.py --config configs/num_gen.yaml --output-dir ./generator_comparison
"""

import argparse
import json
import logging
import time
from pathlib import Path
from typing import Any, Dict

import numpy as np

from rootlite.infrastructure import get_reproducibility_info, set_seed, setup_logging
from rootlite.roofit import Johnson, NumGenConfig, NumGenFactory, RealVar, load_num_gen_config


logger = logging.getLogger(__name__)


def build_pdf(args) -> Johnson:
    mass = RealVar("mass", args.mu, args.low, args.high)
    return Johnson(
        "johnson",
        mass,
        mu=args.mu,
        lambda_=args.lambda_,
        gamma=args.gamma,
        delta=args.delta,
        mass_threshold=args.threshold,
    )


def sample(pdf: Johnson, method: str, n_events: int, config: NumGenConfig, rng) -> Dict[str, Any]:
    """
    Draw events with one method.

    Args:
        pdf: Johnson PDF
        method: "direct" or a registered sampler name
        n_events: Number of events
        config: Numeric generator settings
        rng: Random generator

    Returns:
        Dictionary with the sample and timing
    """
    start = time.time()
    if method == "direct":
        values = pdf.generate([pdf.mass], n_events, rng=rng)["mass"]
        setup_time = 0.0
    else:
        generator = NumGenFactory.create(method, pdf, [pdf.mass], config, rng=rng)
        setup_time = time.time() - start
        values = np.array([generator.generate_event(n_events - i)[0]["mass"] for i in range(n_events)])
    total_time = time.time() - start

    return {
        "values": values,
        "setup_time": setup_time,
        "total_time": total_time,
    }


def binned_chi2(pdf: Johnson, values: np.ndarray, bins: int) -> float:
    """Chi-square per bin of the sample against the normalized density."""
    low, high = pdf.mass.min(), pdf.mass.max()
    edges = np.linspace(low, high, bins + 1)
    counts, _ = np.histogram(values, bins=edges)

    fine = np.linspace(low, high, bins * 200 + 1)
    density = pdf.compute_batch(fine, normalize=True)
    cumulative = np.concatenate([[0.0], np.cumsum((density[1:] + density[:-1]) * np.diff(fine) / 2.0)])
    expected = np.diff(cumulative[::200]) * len(values)

    mask = expected > 0
    return float(np.sum((counts[mask] - expected[mask]) ** 2 / expected[mask]) / mask.sum())


def print_comparison(results: Dict[str, Dict[str, Any]]) -> None:
    print("\n" + "=" * 80)
    print("GENERATOR COMPARISON")
    print("=" * 80)
    print(f"  {'method':15s} {'mean':>10s} {'std':>10s} {'chi2/bin':>10s} {'setup':>9s} {'total':>9s}")
    for method, r in results.items():
        print(
            f"  {method:15s} {r['mean']:10.4f} {r['std']:10.4f} {r['chi2_per_bin']:10.3f} "
            f"{r['setup_time']:8.2f}s {r['total_time']:8.2f}s"
        )
    print("=" * 80)


def main():
    parser = argparse.ArgumentParser(
        description="Compare direct and numeric generation of a Johnson distribution",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("--events", type=int, default=10000, help="Events per method (default: 10000)")
    parser.add_argument(
        "--methods",
        nargs="+",
        default=["foam", "accept_reject"],
        choices=NumGenFactory.list_samplers(),
        help="Numeric samplers to compare with the direct generator",
    )
    parser.add_argument("--config", help="Numeric generator YAML config (default: built-in defaults)")
    parser.add_argument("--mu", type=float, default=0.0)
    parser.add_argument("--lambda", dest="lambda_", type=float, default=1.0)
    parser.add_argument("--gamma", type=float, default=0.5)
    parser.add_argument("--delta", type=float, default=1.0)
    parser.add_argument("--threshold", type=float, default=float("-inf"), help="Mass threshold")
    parser.add_argument("--low", type=float, default=-5.0, help="Lower edge of the mass range")
    parser.add_argument("--high", type=float, default=5.0, help="Upper edge of the mass range")
    parser.add_argument("--bins", type=int, default=50)
    parser.add_argument("--seed", type=int, default=42)
    parser.add_argument(
        "--output-dir",
        type=Path,
        default=Path("./generator_comparison"),
        help="Output directory (default: ./generator_comparison)",
    )
    parser.add_argument("--log-level", default="INFO")

    args = parser.parse_args()
    setup_logging(args.log_level)
    args.output_dir.mkdir(parents=True, exist_ok=True)

    config = load_num_gen_config(args.config) if args.config else NumGenConfig()
    pdf = build_pdf(args)
    rng = set_seed(args.seed)

    results = {}
    for method in ["direct"] + list(args.methods):
        logger.info(f"Sampling {args.events} events with {method}")
        drawn = sample(pdf, method, args.events, config, rng)
        values = drawn.pop("values")
        results[method] = {
            **drawn,
            "mean": float(values.mean()),
            "std": float(values.std()),
            "chi2_per_bin": binned_chi2(pdf, values, args.bins),
        }

    report = {
        "parameters": {k: v for k, v in vars(args).items() if k != "output_dir"},
        "results": results,
        "environment": get_reproducibility_info(),
    }
    results_file = args.output_dir / "comparison_results.json"
    with open(results_file, "w") as f:
        json.dump(report, f, indent=2, default=str)
    logger.info(f"Results saved to {results_file}")

    print_comparison(results)


if __name__ == "__main__":
    main()
