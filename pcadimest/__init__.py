"""
pcadimest -- PCA latent-dimension under-estimation with impure tasks.

When behavioural scores are linear mixtures of several independent
latent variables (task impurity), PCA on those scores retains fewer
components than there are latent dimensions.  This package simulates
that artefact: it draws synthetic latent/score data under a known
ground truth, runs PCA on the z-scored scores and counts the components
kept by the Joliffe (lambda > 0.7) and Kaiser (lambda > 1.0) rules, over
many replications and parameter configurations.

Key exports
-----------
SimulationConfig : dataclass
    One point in the parameter sweep (sample size, true latent count,
    score count, weight sparsity, replications).  Validated on creation.
generate : function
    Draw (scores, latents) for one replication from an explicit
    ``numpy.random.Generator``.
count_dimensions : function
    Joliffe and Kaiser component counts for a score matrix.
run_trials, run_sweep : functions
    All replications of one configuration; the full Cartesian sweep,
    optionally process-parallel, returning a ``SweepResult``.
summarize_dimensions : function
    Per-group mean/SD of the counts, for plotting and reporting.
run_preset : function
    The two published analyses.
"""

from pcadimest.errors import ConfigurationError, DegenerateScoresError
from pcadimest.mixture import SimulationConfig, generate, generate_dataset
from pcadimest.dimensions import DimensionCount, count_dimensions
from pcadimest.simulation import (
    RESULT_COLUMNS, ReplicationResult, SweepResult, run_trials, run_sweep,
)
from pcadimest.analysis import summarize_dimensions
from pcadimest.presets import PRESETS, run_preset

__all__ = [
    "ConfigurationError",
    "DegenerateScoresError",
    "SimulationConfig",
    "generate",
    "generate_dataset",
    "DimensionCount",
    "count_dimensions",
    "RESULT_COLUMNS",
    "ReplicationResult",
    "SweepResult",
    "run_trials",
    "run_sweep",
    "summarize_dimensions",
    "PRESETS",
    "run_preset",
]
