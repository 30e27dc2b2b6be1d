"""Package-wide constants.

This module centralizes every tuneable parameter for the simulation --
retention thresholds, the sparsified-weight floor, preset defaults and
figure format -- so that scripts and tests import a single source of
truth.  Importing it has no side effects.
"""

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

# Standard deviations below this are treated as zero when z-scoring the
# score matrix (see utils.safe_zscore_columns).
EPS = 1e-12

# Root seed for the sweep.  Every configuration gets its own child stream
# spawned from this seed, so results do not depend on worker count.
SEED = 42

# Value written into sparsified weights.  Not zero: a score column with
# exactly zero weight on every latent would be constant and break the
# z-scoring step.
WEIGHT_FLOOR = 1e-6

# Eigenvalue retention thresholds on the correlation-matrix spectrum.
# Joliffe (1972) keeps components with lambda > 0.7, Kaiser (1960) keeps
# lambda > 1.0.  Both comparisons are strict.
JOLIFFE_THRESHOLD = 0.7
KAISER_THRESHOLD = 1.0

# Sparsity value separating the "dense" and "sparse" halves of the
# preset-1 results when plotting.
SPARSITY_SPLIT = 0.1

# --- Preset defaults --------------------------------------------------------

# 300 participants, as in Sperber et al. (Brain, 2023).
DEFAULT_SAMPLE_SIZE = 300

# Replications per configuration; results are less noisy with more reps.
DEFAULT_REPS = 1000

# True latent dimensionalities swept by both presets.
LATENT_RANGE = list(range(1, 23))

# 22 language scores in the Comprehensive Aphasia Test (Swinburn & Howard, 2004).
CAT_SCORE_COUNT = 22

# --- Figure output ---------------------------------------------------------

# Image format used when figures are saved (presets.main --save-figs).
FIG_FORMAT = "png"
