"""Synthetic data from a linear latent-to-score mixture.

Each simulated participant has ``n_latents`` independent latent values
(the intactness of some cognitive subsystem, say), drawn uniformly on
[0, 1).  Each of ``n_scores`` observed scores is a weighted sum of all
latents, with weights also uniform on [0, 1).  Because weights are
non-negative, no score gets worse when a latent system works better --
the usual intuition in lesion-symptom mapping.

Task impurity is the default: every score loads on every latent.  Purer
tasks are modelled by *sparsifying* the weights, i.e. pushing a fixed
proportion of them down to ``WEIGHT_FLOOR``.

Everything here is a pure function of its arguments plus an explicit
``numpy.random.Generator``; nothing holds random state between calls.
"""

from dataclasses import dataclass
from numbers import Integral, Real
from typing import NamedTuple, Tuple

import numpy as np

from pcadimest.config import WEIGHT_FLOOR
from pcadimest.errors import ConfigurationError


def _positive_int(value, name: str) -> int:
    if isinstance(value, bool) or not isinstance(value, Integral) or value <= 0:
        raise ConfigurationError(f"{name} must be a positive integer, got {value!r}")
    return int(value)


@dataclass(frozen=True)
class SimulationConfig:
    """One point in the parameter sweep.

    Validated at construction so a bad grid fails before any simulation
    work starts.  ``n_latents > n_scores`` is allowed; it just yields a
    rank-deficient mixture.
    """

    sample_size: int
    n_latents: int
    n_scores: int
    sparsity: float = 0.0
    n_reps: int = 1

    def __post_init__(self):
        object.__setattr__(self, "sample_size", _positive_int(self.sample_size, "sample_size"))
        object.__setattr__(self, "n_latents", _positive_int(self.n_latents, "n_latents"))
        object.__setattr__(self, "n_scores", _positive_int(self.n_scores, "n_scores"))
        object.__setattr__(self, "n_reps", _positive_int(self.n_reps, "n_reps"))
        if isinstance(self.sparsity, bool) or not isinstance(self.sparsity, Real):
            raise ConfigurationError(f"sparsity must be a number, got {self.sparsity!r}")
        sparsity = float(self.sparsity)
        if not 0.0 <= sparsity <= 1.0:
            raise ConfigurationError(f"sparsity must lie in [0, 1], got {sparsity}")
        object.__setattr__(self, "sparsity", sparsity)


class SyntheticDataset(NamedTuple):
    """Everything drawn for one replication."""

    scores: np.ndarray   # (sample_size, n_scores)
    latents: np.ndarray  # (sample_size, n_latents)
    weights: np.ndarray  # (n_latents, n_scores)


def n_sparsified(n_weights: int, sparsity: float) -> int:
    """Number of weights forced to the floor: round(sparsity * n_weights).

    Halves round away from zero, unlike Python's banker's ``round``.
    """
    return int(np.floor(n_weights * sparsity + 0.5))


def sparsify_weights(weights: np.ndarray, sparsity: float, rng: np.random.Generator) -> np.ndarray:
    """Return a copy of *weights* with a proportion of entries set to the floor.

    The positions are the first ``n_sparsified`` entries of a random
    permutation of all flat indices, so they are chosen uniformly
    without replacement.
    """
    out = np.array(weights, dtype=np.float64, copy=True)
    n = n_sparsified(out.size, sparsity)
    if n > 0:
        idx = rng.permutation(out.size)[:n]
        out.flat[idx] = WEIGHT_FLOOR
    return out


def draw_weights(n_latents: int, n_scores: int, sparsity: float, rng: np.random.Generator) -> np.ndarray:
    """Latent-to-score weights, uniform on [0, 1), optionally sparsified."""
    weights = rng.random((n_latents, n_scores))
    if sparsity > 0:
        weights = sparsify_weights(weights, sparsity, rng)
    return weights


def draw_latents(sample_size: int, n_latents: int, rng: np.random.Generator) -> np.ndarray:
    """Latent values for each simulated participant, uniform on [0, 1)."""
    return rng.random((sample_size, n_latents))


def generate_dataset(config: SimulationConfig, rng: np.random.Generator) -> SyntheticDataset:
    """Draw a fresh mixture and a fresh sample of participants.

    Weights are drawn first, then latents; scores are latents @ weights.
    """
    weights = draw_weights(config.n_latents, config.n_scores, config.sparsity, rng)
    latents = draw_latents(config.sample_size, config.n_latents, rng)
    scores = latents @ weights
    return SyntheticDataset(scores=scores, latents=latents, weights=weights)


def generate(config: SimulationConfig, rng: np.random.Generator) -> Tuple[np.ndarray, np.ndarray]:
    """Return (scores, latents) for one replication of *config*."""
    data = generate_dataset(config, rng)
    return data.scores, data.latents
