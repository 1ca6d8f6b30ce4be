"""End-to-end tests for tdbn/structure/learn.py.

Covers:
- Recovery of a known present-slice chain with MDL
- Ingestion from time series with a missing subject
- Independent variables produce no positive intra-slice gains
- Argument validation and logging
"""

from __future__ import annotations

import logging

import numpy as np
import pytest

from tdbn.core.types import Edge
from tdbn.data.observations import MISSING, Observations
from tdbn.networks.dbn import DynamicBayesNet, TransitionNetwork
from tdbn.scoring.functions import LLScoringFunction, MDLScoringFunction
from tdbn.structure.learn import learn_structure
from tdbn.structure.scores import Scores


# ------------------------------------------------------------------ #
#  Helpers
# ------------------------------------------------------------------ #

def _chain_rows() -> np.ndarray:
    """96 rows [past0, past1, past2, x0, x1, x2].

    The past slice and x0 form a full factorial design, so the past is
    independent of the present.  In the present slice x1 = min(x0, 2)
    and x2 = min(x1, 1), giving cardinalities 4, 3 and 2.
    """
    s = np.arange(96)
    x0 = s % 4
    past0 = (s // 4) % 4
    past1 = (s // 16) % 3
    past2 = (s // 48) % 2
    x1 = np.minimum(x0, 2)
    x2 = np.minimum(x1, 1)
    return np.stack([past0, past1, past2, x0, x1, x2], axis=1)


def _expected_chain(observations: Observations) -> TransitionNetwork:
    """0 -> 1 -> 2 in the present, every node with past2 as past parent."""
    return TransitionNetwork(
        observations.attributes,
        1,
        [Edge(0, 1), Edge(1, 2)],
        [Edge(2, 0), Edge(2, 1), Edge(2, 2)],
    )


# ------------------------------------------------------------------ #
#  Chain recovery
# ------------------------------------------------------------------ #

class TestChainRecovery:
    """A deterministic chain is recovered exactly."""

    def test_intra_edges(self) -> None:
        """The optimum tree rooted at 0 is the chain 0 -> 1 -> 2.

        Reversed chains are Markov equivalent and score the same, so the
        root is fixed to pin the edge directions.
        """
        rows = _chain_rows()
        obs = Observations([rows, rows])
        dbn = learn_structure(obs, max_parents=1, scoring="mdl", root=0)
        assert dbn.num_transitions == 2
        for net in dbn:
            assert sorted((e.tail, e.head) for e in net.intra_edges) == [(0, 1), (1, 2)]

    def test_parent_nodes(self) -> None:
        """Past parents prefer the smallest cardinality when all are independent."""
        obs = Observations([_chain_rows()])
        net = learn_structure(obs, max_parents=1, root=0)[0]
        assert net.parent_nodes(0) == [2]
        assert net.parent_nodes(1) == [2, 3]
        assert net.parent_nodes(2) == [2, 4]

    def test_comparison_with_truth(self) -> None:
        """The learnt network matches the generating structure."""
        obs = Observations([_chain_rows()])
        learnt = learn_structure(obs, max_parents=1, root=0)
        truth = DynamicBayesNet(obs.attributes, [_expected_chain(obs)])
        (result,) = DynamicBayesNet.compare(truth, learnt)
        assert result.precision == 1.0
        assert result.recall == 1.0
        assert result.f1 == 1.0

    def test_weights(self) -> None:
        """Intra-slice gains follow mutual information minus the penalty."""
        obs = Observations([_chain_rows()])
        scores = Scores(obs, max_parents=1).evaluate(MDLScoringFunction())
        w = scores.scores_matrix(0)
        np.testing.assert_allclose(w - np.diag(np.diag(w)), (w - np.diag(np.diag(w))).T)
        assert w[1, 0] > w[2, 1] > w[2, 0] > 0
        assert scores.parent_nodes_past(0) == [(2,), (2,), (2,)]

    def test_from_time_series_stationary(self) -> None:
        """Time series input with a missing subject gives the same chain."""
        rows = _chain_rows()
        series = np.stack([rows[:, :3], rows[:, 3:]], axis=1)
        gap = np.array([[[0, 0, 0], [MISSING, MISSING, MISSING]]])
        series = np.concatenate([series, gap])
        obs = Observations.from_time_series(series)
        assert obs.num_observations(0) == 96

        dbn = learn_structure(obs, max_parents=1, root=0, stationary_process=True)
        assert dbn.num_transitions == 1
        (result,) = DynamicBayesNet.compare(
            DynamicBayesNet(obs.attributes, [_expected_chain(obs)]), dbn
        )
        assert result.f1 == 1.0


# ------------------------------------------------------------------ #
#  Independence
# ------------------------------------------------------------------ #

class TestIndependence:
    """Independent variables gain nothing from intra-slice edges."""

    @staticmethod
    def _independent() -> Observations:
        s = np.arange(16)
        rows = np.stack([(s >> k) & 1 for k in range(4)], axis=1)
        return Observations([rows, rows])

    def test_ll_gains_vanish(self) -> None:
        """LL off-diagonal weights are zero up to rounding."""
        scores = Scores(self._independent(), max_parents=1).evaluate(LLScoringFunction())
        for t in range(2):
            w = scores.scores_matrix(t)
            assert abs(w[0, 1]) <= 1e-9
            assert abs(w[1, 0]) <= 1e-9

    def test_mdl_gains_negative(self) -> None:
        """MDL off-diagonal weights are negative."""
        scores = Scores(self._independent(), max_parents=1).evaluate(MDLScoringFunction())
        w = scores.scores_matrix(0)
        assert w[0, 1] < 0
        assert w[1, 0] < 0

    def test_tree_still_spans(self) -> None:
        """The branching still connects both nodes."""
        scores = Scores(self._independent(), max_parents=1).evaluate(LLScoringFunction())
        (edge,) = scores.branching(0)
        assert edge.weight <= 1e-9


# ------------------------------------------------------------------ #
#  Arguments
# ------------------------------------------------------------------ #

class TestArguments:
    """Validation and logging of learn_structure."""

    def test_unknown_scoring(self) -> None:
        """Unknown scoring names raise ValueError."""
        with pytest.raises(ValueError, match="Unknown scoring function"):
            learn_structure(Observations([_chain_rows()]), 1, scoring="aic")

    def test_root_checked_first(self) -> None:
        """An invalid root fails before any scoring."""
        with pytest.raises(ValueError, match="Root 5"):
            learn_structure(Observations([_chain_rows()]), 1, root=5)

    def test_scoring_instance(self) -> None:
        """A scoring function instance is accepted."""
        dbn = learn_structure(
            Observations([_chain_rows()]), 1, scoring=LLScoringFunction()
        )
        assert len(dbn[0].intra_edges) == 2

    def test_logs_progress(self, caplog) -> None:
        """The pipeline logs its milestones at INFO level."""
        caplog.set_level(logging.INFO, logger="tdbn")
        learn_structure(Observations([_chain_rows()]), 1, root=0)
        assert "Learning structure" in caplog.text
        assert "Evaluating 1 transition(s)" in caplog.text
