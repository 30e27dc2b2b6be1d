"""The two published analyses and the command-line entry point.

Analysis 1 asks what task impurity does: 22 scores (as in the
Comprehensive Aphasia Test), 1..22 true latents, with and without 95%
weight sparsity.

Analysis 2 asks whether more tasks help: 40, 60, 80 or 100 scores,
1..22 true latents, no sparsity.

CLI usage::

    python scripts/run_pcadimest_analysis.py --analysis 1 --jobs 8
    pcadimest --analysis 2 --reps 200 --no-plots
    pcadimest --analysis 1 --save-figs figures
"""

from __future__ import annotations

import argparse
import sys
from contextlib import nullcontext
from typing import Dict, List, Optional

from pcadimest.analysis import autosave_show, format_table, plot_results, summarize_dimensions
from pcadimest.config import CAT_SCORE_COUNT, DEFAULT_REPS, DEFAULT_SAMPLE_SIZE, LATENT_RANGE, SEED
from pcadimest.errors import ConfigurationError
from pcadimest.simulation import SweepResult, run_sweep

PRESETS: Dict[int, dict] = {
    1: {
        "sample_sizes": [DEFAULT_SAMPLE_SIZE],
        "n_latents_values": LATENT_RANGE,
        "n_scores_values": [CAT_SCORE_COUNT],
        "sparsity_values": [0.0, 0.95],
        "n_reps": DEFAULT_REPS,
    },
    2: {
        "sample_sizes": [DEFAULT_SAMPLE_SIZE],
        "n_latents_values": LATENT_RANGE,
        "n_scores_values": [40, 60, 80, 100],
        "sparsity_values": [0.0],
        "n_reps": DEFAULT_REPS,
    },
}

# Grouping keys for the printed summary of each preset.
SUMMARY_KEYS: Dict[int, List[str]] = {
    1: ["sparsity", "num_latents"],
    2: ["num_scores", "num_latents"],
}


def run_preset(
    analysis: int,
    *,
    n_reps: Optional[int] = None,
    seed: int = SEED,
    jobs: int = 1,
    executor: str = "process",
    fail_fast: bool = True,
    verbose: bool = False,
) -> SweepResult:
    """Run the sweep for preset *analysis*, optionally with fewer reps."""
    if analysis not in PRESETS:
        raise ConfigurationError(f"analysis must be one of {sorted(PRESETS)}, got {analysis!r}")
    params = dict(PRESETS[analysis])
    if n_reps is not None:
        params["n_reps"] = n_reps
    if verbose:
        print(f"[preset] analysis {analysis}: {params['n_reps']} reps per configuration")
    return run_sweep(
        **params, seed=seed, jobs=jobs, executor=executor, fail_fast=fail_fast, verbose=verbose,
    )


def main(argv: Optional[List[str]] = None) -> int:
    parser = argparse.ArgumentParser(
        description="PCA latent-dimension under-estimation simulations."
    )
    parser.add_argument(
        "--analysis", type=int, choices=sorted(PRESETS), required=True,
        help="1: task impurity vs sparsity; 2: number of scores",
    )
    parser.add_argument(
        "--reps", type=int, default=None,
        help=f"Replications per configuration (default: {DEFAULT_REPS})",
    )
    parser.add_argument("--jobs", type=int, default=1, help="Parallel workers (default: 1)")
    parser.add_argument(
        "--executor", choices=["process", "thread"], default="process",
        help="Pool type when --jobs > 1 (default: process)",
    )
    parser.add_argument("--seed", type=int, default=SEED, help=f"Root random seed (default: {SEED})")
    parser.add_argument(
        "--keep-going", action="store_true",
        help="Record failing configurations instead of aborting the sweep",
    )
    parser.add_argument("--no-plots", action="store_true", help="Skip figures")
    parser.add_argument(
        "--save-figs", metavar="DIR", default=None,
        help="Also save every figure shown into DIR (default: do not save)",
    )
    parser.add_argument("--quiet", action="store_true", help="No progress output")
    args = parser.parse_args(argv)

    try:
        result = run_preset(
            args.analysis,
            n_reps=args.reps,
            seed=args.seed,
            jobs=args.jobs,
            executor=args.executor,
            fail_fast=not args.keep_going,
            verbose=not args.quiet,
        )
    except ConfigurationError as exc:
        print(f"Invalid configuration: {exc}", file=sys.stderr)
        return 2

    print(result.summary())
    if not result.table.empty:
        keys = SUMMARY_KEYS[args.analysis]
        summ = summarize_dimensions(result.table, by=keys)
        print()
        print(summ.to_string(index=False, float_format=lambda v: f"{v:.3f}"))
        if not args.no_plots:
            saving = autosave_show(args.save_figs) if args.save_figs else nullcontext([])
            with saving as saved:
                tables = plot_results(result.table, args.analysis)
            for tbl in tables:
                print()
                print(format_table(tbl))
            for path in saved:
                print(f"Wrote {path}")
    return 0 if result.ok else 1


if __name__ == "__main__":
    sys.exit(main())
