"""Run one of the two simulation analyses from the repository root.

Thin wrapper around ``pcadimest.presets.main`` so that the script works
without installing the package.

Usage::

    python scripts/run_pcadimest_analysis.py --analysis 1
    python scripts/run_pcadimest_analysis.py --analysis 2 --jobs 8 --reps 200
"""

import os
import sys

REPO_ROOT = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
sys.path.insert(0, REPO_ROOT)

from pcadimest.presets import main  # noqa: E402

if __name__ == "__main__":
    sys.exit(main())
