"""Count "real" dimensions in a score matrix with eigenvalue stopping rules.

The scores are z-scored, PCA is run on the result, and the eigenvalues
of the correlation matrix are compared against two classic thresholds:

  - Joliffe criterion: keep components with lambda > 0.7
  - Kaiser criterion:  keep components with lambda > 1.0

Since any eigenvalue above 1.0 is also above 0.7, the Kaiser count can
never exceed the Joliffe count.
"""

from typing import NamedTuple

import numpy as np

from pcadimest.config import JOLIFFE_THRESHOLD, KAISER_THRESHOLD
from pcadimest.utils import safe_zscore_columns, pca_eigenvalues


class DimensionCount(NamedTuple):
    joliffe: int
    kaiser: int


def count_from_eigenvalues(
    eigvals: np.ndarray,
    *,
    joliffe: float = JOLIFFE_THRESHOLD,
    kaiser: float = KAISER_THRESHOLD,
) -> DimensionCount:
    """Number of eigenvalues strictly above each threshold."""
    ev = np.asarray(eigvals, dtype=np.float64)
    return DimensionCount(
        joliffe=int(np.count_nonzero(ev > joliffe)),
        kaiser=int(np.count_nonzero(ev > kaiser)),
    )


def count_dimensions(
    scores: np.ndarray,
    *,
    joliffe: float = JOLIFFE_THRESHOLD,
    kaiser: float = KAISER_THRESHOLD,
) -> DimensionCount:
    """Estimate the latent dimensionality of *scores* with both criteria.

    Raises ``DegenerateScoresError`` if any score column is constant.
    """
    Xz, _, _ = safe_zscore_columns(scores)
    ev = pca_eigenvalues(Xz)
    return count_from_eigenvalues(ev, joliffe=joliffe, kaiser=kaiser)
