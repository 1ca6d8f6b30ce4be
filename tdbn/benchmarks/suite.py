"""tdbn benchmark suite using pytest-benchmark.

Run:
    pytest tdbn/benchmarks/suite.py --benchmark-only --benchmark-autosave

CI integration:
    pytest tdbn/benchmarks/suite.py --benchmark-only --benchmark-autosave \
        --benchmark-compare --benchmark-compare-fail=mean:10%
"""

from __future__ import annotations

import tracemalloc

import numpy as np
import pytest

from tdbn.data.observations import Observations
from tdbn.scoring.functions import LLScoringFunction, MDLScoringFunction
from tdbn.structure.branching import optimum_branching
from tdbn.structure.learn import learn_structure
from tdbn.structure.scores import Scores


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------

def _random_series(subjects: int, slices: int, n: int, seed: int) -> np.ndarray:
    """Binary series where each variable copies its past value 80% of the time."""
    rng = np.random.default_rng(seed)
    series = np.empty((subjects, slices, n), dtype=np.int64)
    series[:, 0, :] = rng.integers(0, 2, size=(subjects, n))
    for t in range(1, slices):
        keep = rng.random((subjects, n)) < 0.8
        noise = rng.integers(0, 2, size=(subjects, n))
        series[:, t, :] = np.where(keep, series[:, t - 1, :], noise)
    return series


@pytest.fixture
def observations_5():
    """5 binary variables, 200 subjects, 3 transitions."""
    return Observations.from_time_series(_random_series(200, 4, 5, seed=42))


@pytest.fixture
def weights_100():
    """Dense 100 x 100 random weight matrix."""
    return np.random.default_rng(42).normal(size=(100, 100))


# ---------------------------------------------------------------------------
# Benchmark: Optimum Branching Speed
# ---------------------------------------------------------------------------

def test_optimum_branching_speed(benchmark, weights_100):
    """Optimum branching of a 100-node complete graph must complete in <1s."""
    result = benchmark(optimum_branching, weights_100)

    # Verify output structure
    assert len(result) == 99
    heads = {e.head for e in result}
    assert len(heads) == 99

    median_ms = benchmark.stats.stats.median * 1000
    assert median_ms < 1000.0, (
        f"Optimum branching took {median_ms:.3f}ms (limit: 1000ms)"
    )


# ---------------------------------------------------------------------------
# Benchmark: Scoring Throughput
# ---------------------------------------------------------------------------

def test_mdl_scoring_throughput(benchmark, observations_5):
    """One transition of candidate search with max_parents=2 must take <5s."""
    scores = Scores(observations_5, max_parents=2, stationary_process=True)

    result = benchmark.pedantic(
        scores.evaluate, args=(MDLScoringFunction(),), rounds=3, iterations=1
    )

    assert result.scores_matrix().shape == (5, 5)

    median_ms = benchmark.stats.stats.median * 1000
    assert median_ms < 5000.0, (
        f"Candidate search took {median_ms:.3f}ms (limit: 5000ms)"
    )


# ---------------------------------------------------------------------------
# Benchmark: Memory Scaling
# ---------------------------------------------------------------------------

def test_memory_scaling(observations_5):
    """Learning a 3-transition network must use <10MB of memory."""
    tracemalloc.start()
    snapshot_before = tracemalloc.take_snapshot()

    dbn = learn_structure(observations_5, max_parents=1, scoring="ll")

    snapshot_after = tracemalloc.take_snapshot()
    tracemalloc.stop()

    stats = snapshot_after.compare_to(snapshot_before, "lineno")
    total_bytes = sum(s.size_diff for s in stats if s.size_diff > 0)
    total_mb = total_bytes / (1024 * 1024)

    assert total_mb < 10.0, (
        f"Memory usage: {total_mb:.2f}MB (limit: 10MB)"
    )
    assert dbn.num_transitions == 3


# ---------------------------------------------------------------------------
# Benchmark: Recovery Accuracy
# ---------------------------------------------------------------------------

class TestRecoveryAccuracy:
    """Validate learnt structures against the generating process."""

    def test_self_transitions_recovered(self, observations_5):
        """Each variable's strongest past parent is its own previous value."""
        scores = Scores(observations_5, max_parents=1).evaluate(LLScoringFunction())
        n = observations_5.num_attributes()
        for t in range(scores.num_transitions):
            assert scores.parent_nodes_past(t) == [(i,) for i in range(n)]
