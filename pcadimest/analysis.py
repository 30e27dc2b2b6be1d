"""Summaries and figures built from a sweep's results table.

This module only consumes the table produced by
``pcadimest.simulation.run_sweep``; it never runs simulations.

  - summarize_dimensions(): per-group mean and SD of both counts.
  - plot_sparsity_comparison(): preset-1 figures (dense vs sparse
    weights, Joliffe and Kaiser curves over the true latent count).
  - plot_score_count_comparison(): preset-2 figures (one figure per
    criterion, one curve per number of scores).

Plot functions return summary tables as dicts with "title", "headers"
and "rows" keys, ready for printing.  Figures are only written to disk
inside an explicit ``autosave_show(fig_dir)`` block.
"""

from contextlib import contextmanager
from pathlib import Path
from typing import Dict, Iterator, List, Sequence, Tuple

import pandas as pd
import matplotlib.pyplot as plt

from pcadimest.config import FIG_FORMAT, SPARSITY_SPLIT

CRITERIA = {"dims_joliffe": "JOLIFFE", "dims_kaiser": "KAISER"}


def summarize_dimensions(table: pd.DataFrame, by: Sequence[str] = ("num_latents",)) -> pd.DataFrame:
    """Mean and sample SD (ddof=1) of both counts for each group.

    Returns a flat DataFrame with the ``by`` columns followed by ``n``,
    ``joliffe_mean``, ``joliffe_std``, ``kaiser_mean``, ``kaiser_std``,
    sorted by the group keys.  Groups with a single replication get a
    NaN SD.
    """
    by = list(by)
    missing = [c for c in by + list(CRITERIA) if c not in table.columns]
    if missing:
        raise KeyError(f"results table is missing columns: {missing}")
    grouped = table.groupby(by, sort=True)
    out = grouped.agg(
        n=("dims_joliffe", "size"),
        joliffe_mean=("dims_joliffe", "mean"),
        joliffe_std=("dims_joliffe", "std"),
        kaiser_mean=("dims_kaiser", "mean"),
        kaiser_std=("dims_kaiser", "std"),
    )
    return out.reset_index()


def split_by_sparsity(table: pd.DataFrame, threshold: float = SPARSITY_SPLIT) -> Tuple[pd.DataFrame, pd.DataFrame]:
    """Rows with sparsity below and above *threshold* (equal goes nowhere)."""
    low = table[table["sparsity"] < threshold]
    high = table[table["sparsity"] > threshold]
    return low, high


def _summary_table(title: str, summary: pd.DataFrame, keys: List[str]) -> dict:
    headers = keys + ["n", "joliffe_mean", "joliffe_std", "kaiser_mean", "kaiser_std"]
    rows = []
    for rec in summary[headers].itertuples(index=False):
        row = [int(v) for v in rec[: len(keys) + 1]]
        row += [f"{v:.3f}" for v in rec[len(keys) + 1:]]
        rows.append(row)
    return {"title": title, "headers": headers, "rows": rows}


def _finish(show: bool) -> None:
    if show:
        plt.show()
    plt.close()


def plot_sparsity_comparison(
    table: pd.DataFrame,
    *,
    threshold: float = SPARSITY_SPLIT,
    show: bool = True,
) -> List[dict]:
    """Error-bar curves of recovered vs true dimensionality, per sparsity half.

    One figure for sparsity < threshold and one for sparsity > threshold,
    each with a JOLIFFE and a KAISER series over ``num_latents``.  Halves
    with no rows are skipped.
    """
    tables = []
    for label, part in zip(("SPARSITY LOW", "SPARSITY HIGH"), split_by_sparsity(table, threshold)):
        if part.empty:
            continue
        levels = sorted(part["sparsity"].unique())
        title = "SPARSITY = " + ", ".join(f"{s:g}" for s in levels)
        summ = summarize_dimensions(part, by=["num_latents"])

        plt.figure(figsize=(8, 6))
        for name in CRITERIA.values():
            key = name.lower()
            plt.errorbar(summ["num_latents"], summ[f"{key}_mean"], yerr=summ[f"{key}_std"],
                         linewidth=2, capsize=3, label=name)
        k = summ["num_latents"].to_numpy()
        plt.plot(k, k, linestyle=":", color="gray", linewidth=1, label="true")
        plt.xlabel("true number of latent variables"); plt.ylabel("components retained")
        plt.title(title)
        plt.grid(True, linestyle="--", linewidth=0.5)
        plt.legend()
        _finish(show)

        tables.append(_summary_table(f"{title} ({label.lower()})", summ, ["num_latents"]))
    return tables


def plot_score_count_comparison(table: pd.DataFrame, *, show: bool = True) -> List[dict]:
    """One figure per criterion, one error-bar series per number of scores."""
    summ = summarize_dimensions(table, by=["num_latents", "num_scores"])
    score_counts = sorted(summ["num_scores"].unique())

    for name in CRITERIA.values():
        key = name.lower()
        plt.figure(figsize=(8, 6))
        for p in score_counts:
            s = summ[summ["num_scores"] == p]
            plt.errorbar(s["num_latents"], s[f"{key}_mean"], yerr=s[f"{key}_std"],
                         linewidth=2, capsize=3, label=str(int(p)))
        plt.xlabel("true number of latent variables"); plt.ylabel("components retained")
        plt.title(name)
        plt.grid(True, linestyle="--", linewidth=0.5)
        plt.legend(title="scores")
        _finish(show)

    return [_summary_table("Recovered dimensions by number of scores", summ, ["num_latents", "num_scores"])]


def plot_results(table: pd.DataFrame, analysis: int, *, show: bool = True) -> List[dict]:
    """Draw the figures belonging to preset *analysis* (1 or 2)."""
    if analysis == 1:
        return plot_sparsity_comparison(table, show=show)
    if analysis == 2:
        return plot_score_count_comparison(table, show=show)
    raise ValueError(f"No figures defined for analysis {analysis!r}")


def format_table(tbl: Dict) -> str:
    """Render a summary table dict as fixed-width text."""
    headers = tbl["headers"]
    widths = [len(str(h)) for h in headers]
    for r in tbl["rows"]:
        widths = [max(w, len(str(c))) for w, c in zip(widths, r)]
    lines = [
        tbl["title"],
        "  ".join(f"{h:>{w}s}" for h, w in zip(headers, widths)),
        "-" * (sum(widths) + 2 * (len(widths) - 1)),
    ]
    for r in tbl["rows"]:
        lines.append("  ".join(f"{str(c):>{w}s}" for c, w in zip(r, widths)))
    return "\n".join(lines)


@contextmanager
def autosave_show(fig_dir: Path, fmt: str = FIG_FORMAT) -> Iterator[List[Path]]:
    """Save the current figure on every ``plt.show()`` inside the block.

    Figures are numbered fig_001.<fmt>, fig_002.<fmt>, ... in *fig_dir*
    (created if absent).  ``plt.show`` is restored on exit, even if the
    block raises.  Yields the list of written paths, filled as figures
    are saved.
    """
    fig_dir = Path(fig_dir)
    fig_dir.mkdir(parents=True, exist_ok=True)
    saved: List[Path] = []
    original_show = plt.show

    def show_and_save(*args, **kwargs):
        out = fig_dir / f"fig_{len(saved) + 1:03d}.{fmt}"
        plt.gcf().savefig(out, format=fmt, bbox_inches="tight")
        saved.append(out)
        return original_show(*args, **kwargs)

    plt.show = show_and_save
    try:
        yield saved
    finally:
        plt.show = original_show
