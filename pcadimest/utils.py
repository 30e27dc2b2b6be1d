"""Numerical building blocks for the dimension-counting step.

* **Z-scoring** -- column-wise standardisation with an explicit failure
  on constant columns.
* **PCA spectrum** -- eigenvalues of the sample covariance of the
  z-scored scores, i.e. of the sample correlation matrix of the raw
  scores.

Key notation throughout:
  - X  : (n x p) score matrix, n participants by p scores
  - Xz : (n x p) z-scored score matrix (zero mean, unit variance per column)
  - ev : eigenvalues lambda_1 >= lambda_2 >= ... of Cov(Xz)
"""

from typing import Tuple

import numpy as np
from sklearn.decomposition import PCA

from pcadimest.config import EPS
from pcadimest.errors import DegenerateScoresError


def safe_zscore_columns(X: np.ndarray, *, eps: float = EPS) -> Tuple[np.ndarray, np.ndarray, np.ndarray]:
    """Z-score each score (column) independently across participants.

    Returns (Xz, mean, std) where Xz has zero mean and unit sample
    variance (ddof=1) per column.

    Implementation notes
    --------------------
    * Everything is computed in float64.  Heavily sparsified columns
      can have standard deviations around 1e-6, and float32 would lose
      most of their signal once rescaled.
    * A column whose sd is below *eps* (or not finite, e.g. with a
      single participant) raises ``DegenerateScoresError``.  Eigenvalues
      of a matrix with such a column are not defined on the correlation
      scale, and silently substituting a value would bias the counts at
      extreme sparsity.
    """
    X = np.asarray(X, dtype=np.float64)
    if X.ndim != 2:
        raise ValueError(f"Expected a 2-d score matrix, got shape {X.shape}")
    mu = X.mean(axis=0, keepdims=True)
    Xc = X - mu
    if X.shape[0] < 2:
        sd = np.full((1, X.shape[1]), np.nan)
    else:
        sd = Xc.std(axis=0, ddof=1, keepdims=True)
    bad = ~np.isfinite(sd[0]) | (sd[0] < eps)
    if np.any(bad):
        raise DegenerateScoresError(np.flatnonzero(bad).tolist())
    Xz = Xc / sd
    return Xz, mu.squeeze(0), sd.squeeze(0)


def pca_eigenvalues(Xz: np.ndarray) -> np.ndarray:
    """Eigenvalue spectrum of the z-scored score matrix, largest first.

    Uses a full (exact) SVD through scikit-learn's PCA.  The eigenvalues
    are those of the sample covariance Xz^T Xz / (n - 1), which for
    z-scored data is the sample correlation matrix, so they sum to p.

    Only the first min(p, n - 1) eigenvalues are returned: with n
    participants, centring leaves at most n - 1 non-trivial components.
    """
    Xz = np.asarray(Xz, dtype=np.float64)
    n, p = Xz.shape
    k = int(min(p, n - 1))
    if k <= 0:
        raise ValueError("Need at least 2 participants for PCA.")
    pca = PCA(n_components=k, svd_solver="full")
    pca.fit(Xz)
    # explained_variance_ is already sorted in decreasing order.
    return np.asarray(pca.explained_variance_, dtype=np.float64)
