"""Replication and sweep engine for the dimension-counting experiment.

Two layers:

1. ``run_trials`` -- all replications of a single configuration.  Every
   replication draws a *new* weight matrix as well as new latents, so
   the spread of the counts reflects the whole generative model and not
   just participant sampling under one fixed mixture.
2. ``run_sweep`` -- the Cartesian product of parameter grids.  Each
   configuration is one unit of work (bundling its replications keeps
   dispatch overhead negligible), optionally spread over a process or
   thread pool.

Random streams
--------------
A root ``numpy.random.SeedSequence(seed)`` is spawned into one child per
configuration, in enumeration order.  Configuration i always consumes
child i, whichever worker runs it, so a sweep is reproducible for a
given seed and independent of ``jobs`` and the executor.  No generator
is ever shared between tasks.

Usage::

    from pcadimest import run_sweep
    result = run_sweep(300, range(1, 23), 22, [0, 0.95], n_reps=1000, jobs=8)
    print(result.summary())
    result.table.head()
"""

from __future__ import annotations

import itertools
from concurrent.futures import as_completed
from dataclasses import dataclass, field, astuple
from numbers import Integral, Real
from typing import Dict, Iterable, List, Sequence, Tuple, Union

import numpy as np
import pandas as pd

from pcadimest.config import SEED
from pcadimest.dimensions import count_dimensions
from pcadimest.mixture import SimulationConfig, generate

RESULT_COLUMNS = [
    "sample_size",
    "num_latents",
    "num_scores",
    "sparsity",
    "replication_index",
    "dims_joliffe",
    "dims_kaiser",
]

_RESULT_DTYPES = {
    "sample_size": "int64",
    "num_latents": "int64",
    "num_scores": "int64",
    "sparsity": "float64",
    "replication_index": "int64",
    "dims_joliffe": "int64",
    "dims_kaiser": "int64",
}

Grid = Union[Real, Iterable[Real]]


@dataclass(frozen=True)
class ReplicationResult:
    """One row of the results table."""

    sample_size: int
    num_latents: int
    num_scores: int
    sparsity: float
    replication_index: int
    dims_joliffe: int
    dims_kaiser: int


@dataclass(frozen=True)
class ConfigFailure:
    """A configuration whose replications raised instead of finishing."""

    index: int
    config: SimulationConfig
    error: str


@dataclass
class SweepResult:
    """Results of a parameter sweep.

    ``table`` holds one row per (configuration, replication) that
    completed, with columns ``RESULT_COLUMNS``.  ``failures`` lists the
    configurations that raised (only populated with ``fail_fast=False``).
    """

    table: pd.DataFrame
    configs: List[SimulationConfig]
    failures: List[ConfigFailure] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.failures

    def summary(self) -> str:
        """Return a short human-readable account of the sweep."""
        n_reps = self.configs[0].n_reps if self.configs else 0
        lines = [
            f"PCA dimension sweep  ({len(self.configs)} configurations x "
            f"{n_reps} reps, {len(self.table):,} rows)",
        ]
        if self.failures:
            lines.append(f"{len(self.failures)} configuration(s) failed:")
            for f in self.failures:
                c = f.config
                lines.append(
                    f"  [{f.index:4d}] n={c.sample_size} latents={c.n_latents} "
                    f"scores={c.n_scores} sparsity={c.sparsity:g}: {f.error}"
                )
        else:
            lines.append("All configurations completed.")
        return "\n".join(lines)


def _as_grid(values: Grid) -> List:
    if isinstance(values, (str, bytes)):
        raise TypeError(f"Expected a number or iterable of numbers, got {values!r}")
    if np.ndim(values) == 0:
        return [values.item() if isinstance(values, np.generic) else values]
    return [v.item() if isinstance(v, np.generic) else v for v in values]


def build_configs(
    sample_sizes: Grid,
    n_latents_values: Grid,
    n_scores_values: Grid,
    sparsity_values: Grid,
    n_reps: int,
) -> List[SimulationConfig]:
    """Enumerate the Cartesian product of the grids.

    Nesting order (outermost first): sample size, latents, scores,
    sparsity.  Scalars are treated as single-value grids.
    """
    grids = [_as_grid(g) for g in (sample_sizes, n_latents_values, n_scores_values, sparsity_values)]
    return [
        SimulationConfig(sample_size=n, n_latents=k, n_scores=p, sparsity=s, n_reps=n_reps)
        for n, k, p, s in itertools.product(*grids)
    ]


def run_trials(config: SimulationConfig, rng: np.random.Generator) -> List[ReplicationResult]:
    """Run every replication of *config* sequentially on one generator.

    Any exception (e.g. ``DegenerateScoresError``) propagates and aborts
    the whole batch.
    """
    results: List[ReplicationResult] = []
    for rep in range(1, config.n_reps + 1):
        scores, _ = generate(config, rng)
        dims = count_dimensions(scores)
        results.append(
            ReplicationResult(
                sample_size=config.sample_size,
                num_latents=config.n_latents,
                num_scores=config.n_scores,
                sparsity=config.sparsity,
                replication_index=rep,
                dims_joliffe=dims.joliffe,
                dims_kaiser=dims.kaiser,
            )
        )
    return results


def results_to_table(results: Iterable[ReplicationResult]) -> pd.DataFrame:
    """Stack replication records into a typed DataFrame."""
    rows = [astuple(r) for r in results]
    table = pd.DataFrame(rows, columns=RESULT_COLUMNS)
    return table.astype(_RESULT_DTYPES)


# -------------------------
# Worker (top-level so ProcessPoolExecutor can pickle it)
# -------------------------


def _run_config_worker(
    index: int,
    config: SimulationConfig,
    seed_seq: np.random.SeedSequence,
) -> Tuple[int, List[ReplicationResult]]:
    rng = np.random.default_rng(seed_seq)
    return index, run_trials(config, rng)


def _executor_class(executor: str):
    if executor == "thread":
        from concurrent.futures import ThreadPoolExecutor as Executor
    elif executor == "process":
        from concurrent.futures import ProcessPoolExecutor as Executor
    else:
        raise ValueError(f"executor must be 'process' or 'thread', got {executor!r}")
    return Executor


def run_configs(
    configs: Sequence[SimulationConfig],
    *,
    seed: int = SEED,
    jobs: int = 1,
    executor: str = "process",
    fail_fast: bool = True,
    verbose: bool = False,
) -> SweepResult:
    """Run an explicit list of configurations; see ``run_sweep``."""
    configs = list(configs)
    if isinstance(jobs, bool) or not isinstance(jobs, Integral) or jobs < 1:
        raise ValueError(f"jobs must be a positive integer, got {jobs!r}")
    jobs = int(jobs)
    Executor = _executor_class(executor)

    children = np.random.SeedSequence(seed).spawn(len(configs))
    by_index: Dict[int, List[ReplicationResult]] = {}
    failures: List[ConfigFailure] = []
    n_total = len(configs)

    def _record_failure(i: int, exc: BaseException) -> None:
        failures.append(ConfigFailure(index=i, config=configs[i], error=f"{type(exc).__name__}: {exc}"))

    def _progress() -> None:
        if verbose:
            done = len(by_index) + len(failures)
            print(f"[sweep] {done}/{n_total} configurations done")

    # Single-process path
    if jobs == 1:
        for i, (cfg, ss) in enumerate(zip(configs, children)):
            try:
                _, rows = _run_config_worker(i, cfg, ss)
            except Exception as exc:
                if fail_fast:
                    raise
                _record_failure(i, exc)
            else:
                by_index[i] = rows
            _progress()
    else:
        with Executor(max_workers=jobs) as pool:
            futs = {
                pool.submit(_run_config_worker, i, cfg, ss): i
                for i, (cfg, ss) in enumerate(zip(configs, children))
            }
            for fut in as_completed(futs):
                i = futs[fut]
                try:
                    _, rows = fut.result()
                except Exception as exc:
                    if fail_fast:
                        for other in futs:
                            other.cancel()
                        raise
                    _record_failure(i, exc)
                else:
                    # One merge per finished task; order restored below.
                    by_index[i] = rows
                _progress()

    failures.sort(key=lambda f: f.index)
    ordered = itertools.chain.from_iterable(by_index[i] for i in sorted(by_index))
    return SweepResult(table=results_to_table(ordered), configs=configs, failures=failures)


def run_sweep(
    sample_sizes: Grid,
    n_latents_values: Grid,
    n_scores_values: Grid,
    sparsity_values: Grid,
    n_reps: int,
    *,
    seed: int = SEED,
    jobs: int = 1,
    executor: str = "process",
    fail_fast: bool = True,
    verbose: bool = False,
) -> SweepResult:
    """Run ``n_reps`` replications for every configuration in the grid.

    Parameters
    ----------
    sample_sizes, n_latents_values, n_scores_values, sparsity_values
        Parameter grids (numbers or iterables of numbers).
    n_reps : int
        Replications per configuration.
    seed : int
        Root seed; see the module docstring for how streams are split.
    jobs : int
        Worker count.  1 runs everything in the calling process.
    executor : {"process", "thread"}
        Pool type used when ``jobs > 1``.
    fail_fast : bool
        If True, the first failing configuration aborts the sweep and its
        exception propagates.  If False, failures are collected on the
        result and every other configuration's rows are kept.
    verbose : bool
        Print a progress line after each configuration.

    Returns
    -------
    SweepResult
        ``table`` rows are ordered by configuration, then replication.
    """
    configs = build_configs(sample_sizes, n_latents_values, n_scores_values, sparsity_values, n_reps)
    if verbose:
        print(f"[sweep] {len(configs)} configurations x {n_reps} reps, jobs={jobs}")
    return run_configs(
        configs, seed=seed, jobs=jobs, executor=executor, fail_fast=fail_fast, verbose=verbose,
    )
