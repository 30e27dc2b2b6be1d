import numpy as np
import pandas as pd
import pytest

from pcadimest.errors import ConfigurationError, DegenerateScoresError
from pcadimest.mixture import SimulationConfig
from pcadimest.simulation import (
    RESULT_COLUMNS,
    ReplicationResult,
    build_configs,
    results_to_table,
    run_configs,
    run_sweep,
    run_trials,
)


def _mean_dims(sample_size, n_latents, n_scores, sparsity, n_reps=200, seed=1):
    table = run_sweep(sample_size, n_latents, n_scores, sparsity, n_reps, seed=seed).table
    return table["dims_joliffe"].mean(), table["dims_kaiser"].mean()


# -- TrialRunner --


def test_run_trials_rows(rng):
    cfg = SimulationConfig(60, 3, 8, 0.5, n_reps=7)
    results = run_trials(cfg, rng)
    assert len(results) == 7
    assert [r.replication_index for r in results] == list(range(1, 8))
    for r in results:
        assert isinstance(r, ReplicationResult)
        assert (r.sample_size, r.num_latents, r.num_scores, r.sparsity) == (60, 3, 8, 0.5)
        assert 0 <= r.dims_kaiser <= r.dims_joliffe <= 8


def test_run_trials_propagates_degenerate_scores(rng):
    with pytest.raises(DegenerateScoresError):
        run_trials(SimulationConfig(1, 2, 3, n_reps=4), rng)


def test_replications_vary(rng):
    # Fresh mixtures every rep: with 22 latents the counts are not constant.
    results = run_trials(SimulationConfig(300, 22, 22, 0.95, n_reps=30), rng)
    assert len({r.dims_joliffe for r in results}) > 1


# -- SweepEngine --


def test_build_configs_order_and_scalars():
    configs = build_configs(100, [1, 2], [5, 6], [0.0, 0.5], n_reps=3)
    assert len(configs) == 8
    assert [(c.n_latents, c.n_scores, c.sparsity) for c in configs[:3]] == [
        (1, 5, 0.0), (1, 5, 0.5), (1, 6, 0.0),
    ]
    assert all(c.sample_size == 100 and c.n_reps == 3 for c in configs)


def test_build_configs_accepts_ranges_and_arrays():
    configs = build_configs(np.array([50]), range(1, 4), np.int64(10), [0], n_reps=1)
    assert [c.n_latents for c in configs] == [1, 2, 3]
    assert all(type(c.n_scores) is int for c in configs)


def test_build_configs_fails_fast_on_bad_grid():
    with pytest.raises(ConfigurationError):
        build_configs(100, [1, 2], 5, [0.0, 1.2], n_reps=3)


def test_sweep_row_count_and_uniqueness():
    result = run_sweep([40, 60], [1, 3], [5, 8], [0.0, 0.9], n_reps=4, seed=3)
    table = result.table
    assert result.ok
    assert len(result.configs) == 16
    assert len(table) == 2 * 2 * 2 * 2 * 4
    key = ["sample_size", "num_latents", "num_scores", "sparsity", "replication_index"]
    assert not table.duplicated(subset=key).any()
    counts = table.groupby(key[:-1]).size()
    assert (counts == 4).all() and len(counts) == 16


def test_sweep_table_schema():
    table = run_sweep(30, 2, 4, 0.25, n_reps=3).table
    assert list(table.columns) == RESULT_COLUMNS
    assert table["sparsity"].dtype == np.float64
    for col in RESULT_COLUMNS:
        if col != "sparsity":
            assert table[col].dtype == np.int64
    assert table["replication_index"].tolist() == [1, 2, 3]


def test_sweep_table_columns_match_published_schema():
    table = run_sweep(30, [1, 2], 4, 0.0, n_reps=2).table
    assert list(table.columns) == [
        "sample_size",
        "num_latents",
        "num_scores",
        "sparsity",
        "replication_index",
        "dims_joliffe",
        "dims_kaiser",
    ]
    assert table.groupby("num_latents").size().to_dict() == {1: 2, 2: 2}


def test_sweep_rows_follow_config_order():
    result = run_sweep(30, [3, 1, 2], 5, 0.0, n_reps=2)
    assert result.table["num_latents"].tolist() == [3, 3, 1, 1, 2, 2]


def test_sweep_reproducible_for_seed():
    a = run_sweep(50, [2, 5], 10, [0.0, 0.5], n_reps=5, seed=11).table
    b = run_sweep(50, [2, 5], 10, [0.0, 0.5], n_reps=5, seed=11).table
    pd.testing.assert_frame_equal(a, b)


def test_sweep_independent_of_parallelism():
    args = (50, [1, 4, 7], [6, 12], [0.0, 0.8], 4)
    serial = run_sweep(*args, seed=5, jobs=1).table
    threaded = run_sweep(*args, seed=5, jobs=3, executor="thread").table
    processes = run_sweep(*args, seed=5, jobs=2, executor="process").table
    pd.testing.assert_frame_equal(serial, threaded)
    pd.testing.assert_frame_equal(serial, processes)


def test_configs_get_distinct_streams():
    # Identical configurations must not replay the same random draws.
    configs = [SimulationConfig(300, 22, 22, 0.95, n_reps=20)] * 2
    table = run_configs(configs, seed=9).table
    first, second = table.iloc[:20], table.iloc[20:]
    assert first["dims_joliffe"].tolist() != second["dims_joliffe"].tolist()


def test_sweep_fail_fast_raises():
    with pytest.raises(DegenerateScoresError):
        run_sweep([1, 30], 2, 4, 0.0, n_reps=2)


@pytest.mark.parametrize("jobs, executor", [(1, "process"), (2, "thread"), (2, "process")])
def test_sweep_keep_going_records_failures(jobs, executor):
    result = run_sweep([30, 1, 40], 2, 4, 0.0, n_reps=3, jobs=jobs, executor=executor, fail_fast=False)
    assert not result.ok
    assert len(result.failures) == 1
    failure = result.failures[0]
    assert failure.index == 1
    assert failure.config.sample_size == 1
    assert failure.error.startswith("DegenerateScoresError")
    assert result.table["sample_size"].tolist() == [30] * 3 + [40] * 3
    assert "1 configuration(s) failed" in result.summary()


def test_sweep_rejects_bad_executor_and_jobs():
    with pytest.raises(ValueError):
        run_sweep(30, 1, 3, 0.0, n_reps=1, jobs=2, executor="gpu")
    with pytest.raises(ValueError):
        run_sweep(30, 1, 3, 0.0, n_reps=1, jobs=0)


@pytest.mark.parametrize("jobs", [2.5, "2", True, -1])
def test_sweep_rejects_non_integral_jobs(jobs):
    with pytest.raises(ValueError):
        run_sweep(30, 1, 3, 0.0, n_reps=1, jobs=jobs)


def test_sweep_accepts_numpy_integer_jobs():
    result = run_sweep(30, [1, 2], 3, 0.0, n_reps=1, jobs=np.int64(2), executor="thread")
    assert len(result.table) == 2


def test_results_to_table_empty():
    table = results_to_table([])
    assert table.empty
    assert list(table.columns) == RESULT_COLUMNS


def test_summary_text():
    result = run_sweep(30, [1, 2], 4, 0.0, n_reps=2)
    text = result.summary()
    assert "2 configurations x 2 reps, 4 rows" in text
    assert "All configurations completed." in text


def test_verbose_progress(capsys):
    run_sweep(30, [1, 2], 4, 0.0, n_reps=1, verbose=True)
    out = capsys.readouterr().out
    assert "[sweep] 2 configurations x 1 reps" in out
    assert "[sweep] 2/2 configurations done" in out


# -- End-to-end behaviour of the artefact --


def test_one_latent_is_recovered():
    joliffe, kaiser = _mean_dims(300, 1, 22, 0.0)
    assert joliffe < 1.5
    assert kaiser < 1.5


def test_impure_tasks_underestimate_dimensionality():
    joliffe, kaiser = _mean_dims(300, 22, 22, 0.0)
    assert joliffe < 11
    assert kaiser < 11


def test_sparsity_mitigates_underestimation():
    dense = _mean_dims(300, 22, 22, 0.0)
    sparse = _mean_dims(300, 22, 22, 0.95)
    assert sparse[0] > dense[0] + 1
    assert sparse[1] > dense[1]


def test_more_scores_mitigate_underestimation():
    table = run_sweep(300, 10, [40, 60, 80, 100], 0.0, n_reps=200, seed=4).table
    means = table.groupby("num_scores")[["dims_joliffe", "dims_kaiser"]].mean()
    assert list(means.index) == [40, 60, 80, 100]
    for col in means.columns:
        assert np.all(np.diff(means[col].to_numpy()) >= -0.05)
    assert means["dims_kaiser"].iloc[-1] > means["dims_kaiser"].iloc[0]
    assert means["dims_joliffe"].iloc[-1] <= 10
