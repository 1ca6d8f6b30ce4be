"""Candidate parent-set search for dynamic Bayesian networks.

For each transition and each node ``i`` of the present slice,
:class:`Scores` finds

* the best set of past-slice parents of ``i`` (:meth:`Scores.parent_nodes_past`);
* for every other node ``j``, the best set of past-slice parents of ``i``
  when ``j`` is also a parent of ``i`` (:meth:`Scores.parent_nodes`);

and assembles them into a weight matrix whose off-diagonal entry
``[i, j]`` is the score gained by adding the intra-slice edge ``j -> i``.
The optimum branching of that matrix is the intra-slice tree of the
transition network (:meth:`Scores.to_dbn`).

The candidate space holds every set of 1 to ``max_parents`` past
positions in lexicographic order; on equal scores the earlier candidate
wins, so results are reproducible.
"""

from __future__ import annotations

import logging
import multiprocessing
from itertools import combinations
from typing import List, Optional, Sequence, Tuple

import numpy as np

from tdbn.core.types import Edge
from tdbn.data.observations import Observations
from tdbn.networks.dbn import DynamicBayesNet, TransitionNetwork
from tdbn.scoring.functions import ScoringFunction
from tdbn.structure.branching import optimum_branching

logger = logging.getLogger(__name__)

ParentSet = Tuple[int, ...]


def generate_combinations(m: int, k: int) -> List[ParentSet]:
    """Return every *k*-subset of ``range(m)`` in lexicographic order.

    Each subset is an ascending tuple, and there are ``C(m, k)`` of them.
    """
    if k < 0 or m < 0:
        raise ValueError(f"m and k must be non-negative, got m={m}, k={k}")
    return list(combinations(range(m), k))


def _evaluate_transition(
    observations: Observations,
    scoring_function: ScoringFunction,
    parent_sets: Sequence[ParentSet],
    transition: int,
) -> Tuple[np.ndarray, List[ParentSet], List[List[Optional[ParentSet]]]]:
    """Score every candidate for one transition (negative: all of them).

    Returns the weight matrix, the best past-only parent set of each node
    and, per ``[i][j]``, the best past parent set of ``i`` when ``j`` is a
    parent of ``i`` too (None on the diagonal).
    """
    n = observations.num_attributes()
    matrix = np.zeros((n, n))
    past_only: List[ParentSet] = []
    with_edge: List[List[Optional[ParentSet]]] = [[None] * n for _ in range(n)]

    for i in range(n):
        best_score = -np.inf
        best_set: ParentSet = ()
        for parent_set in parent_sets:
            score = scoring_function.evaluate(
                observations, transition, parent_set, i
            )
            if best_score < score:
                best_score = score
                best_set = parent_set
        past_only.append(best_set)
        matrix[i, :] = -best_score

    for i in range(n):
        logger.debug("Transition %d: scoring intra-slice parents of node %d", transition, i)
        for j in range(n):
            if i == j:
                continue
            best_score = -np.inf
            best_set = ()
            for parent_set in parent_sets:
                score = scoring_function.evaluate(
                    observations, transition, parent_set, i, j
                )
                if best_score < score:
                    best_score = score
                    best_set = parent_set
            with_edge[i][j] = best_set
            matrix[i, j] += best_score

    return matrix, past_only, with_edge


def _run_transition(args):
    """Worker entry point for :class:`multiprocessing.Pool`."""
    return _evaluate_transition(*args)


class Scores:
    """Local score search over candidate past-slice parent sets.

    Parameters
    ----------
    observations : Observations
        Coded data to learn from.
    max_parents : int
        Upper bound on the number of past-slice parents per node, in
        ``[1, n * markov_lag]``.
    stationary_process : bool, optional
        If True, a single weight matrix is learnt from all transitions
        pooled together.
    n_workers : int, optional
        Number of worker processes used to score transitions in parallel.
        ``1`` (the default) scores them in this process.

    Raises
    ------
    ValueError
        If *max_parents* is out of range or *n_workers* is not positive.

    Examples
    --------
    >>> scores = Scores(observations, max_parents=1)    # doctest: +SKIP
    >>> scores.evaluate(MDLScoringFunction())          # doctest: +SKIP
    >>> dbn = scores.to_dbn()                          # doctest: +SKIP
    """

    def __init__(
        self,
        observations: Observations,
        max_parents: int,
        stationary_process: bool = False,
        n_workers: Optional[int] = None,
    ) -> None:
        n = observations.num_attributes()
        num_past = n * observations.markov_lag
        if not 1 <= max_parents <= num_past:
            raise ValueError(
                f"max_parents must be in [1, {num_past}], got {max_parents}"
            )
        self.n_workers = n_workers if n_workers is not None else 1
        if self.n_workers < 1:
            raise ValueError(f"n_workers must be positive, got {self.n_workers}")

        self.observations = observations
        self.max_parents = max_parents
        self.stationary_process = stationary_process

        self.parent_sets: List[ParentSet] = []
        for k in range(1, max_parents + 1):
            self.parent_sets.extend(generate_combinations(num_past, k))
        logger.debug(
            "Candidate space: %d parent sets over %d past positions",
            len(self.parent_sets), num_past,
        )

        self._matrices: Optional[List[np.ndarray]] = None
        self._past_only: List[List[ParentSet]] = []
        self._with_edge: List[List[List[Optional[ParentSet]]]] = []

    @property
    def num_transitions(self) -> int:
        """Number of weight matrices: 1 if stationary."""
        return 1 if self.stationary_process else self.observations.num_transitions()

    @property
    def evaluated(self) -> bool:
        """Whether :meth:`evaluate` has been called."""
        return self._matrices is not None

    def evaluate(self, scoring_function: ScoringFunction) -> "Scores":
        """Score the candidate space with *scoring_function*.

        Returns
        -------
        Scores
            ``self``, to allow chaining.
        """
        if self.stationary_process:
            transitions = [-1]
        else:
            transitions = list(range(self.observations.num_transitions()))

        tasks = [
            (self.observations, scoring_function, self.parent_sets, t)
            for t in transitions
        ]
        logger.info(
            "Evaluating %d transition(s) with %r over %d candidate parent sets",
            len(tasks), scoring_function, len(self.parent_sets),
        )
        if self.n_workers <= 1 or len(tasks) <= 1:
            results = [_run_transition(task) for task in tasks]
        else:
            with multiprocessing.Pool(processes=min(self.n_workers, len(tasks))) as pool:
                results = pool.map(_run_transition, tasks)

        self._matrices = [matrix for matrix, _, _ in results]
        self._past_only = [past for _, past, _ in results]
        self._with_edge = [edge for _, _, edge in results]
        return self

    # ------------------------------------------------------------------ #
    #  Results
    # ------------------------------------------------------------------ #

    def _check(self, transition: int) -> None:
        if not self.evaluated:
            raise RuntimeError("Scores must be evaluated before being queried")
        if not 0 <= transition < len(self._matrices):
            raise ValueError(
                f"Transition {transition} not in [0, {len(self._matrices)})"
            )

    def scores_matrix(self, transition: int = 0) -> np.ndarray:
        """Return a copy of the weight matrix of *transition*.

        Entry ``[i, j]`` (``i != j``) is the gain of the intra-slice edge
        ``j -> i``; entry ``[i, i]`` is minus the best past-only score of
        node ``i``.
        """
        self._check(transition)
        return self._matrices[transition].copy()

    def parent_nodes_past(self, transition: int = 0) -> List[ParentSet]:
        """Best past-slice parent set of each node without intra parents."""
        self._check(transition)
        return list(self._past_only[transition])

    def parent_nodes(self, transition: int = 0) -> List[List[Optional[ParentSet]]]:
        """``[i][j]``: best past parent set of ``i`` when ``j -> i`` is present."""
        self._check(transition)
        return [list(row) for row in self._with_edge[transition]]

    def branching(self, transition: int = 0, root: Optional[int] = None) -> List[Edge]:
        """Optimum intra-slice tree of *transition*."""
        self._check(transition)
        return optimum_branching(self._matrices[transition], root)

    def to_dbn(self, root: Optional[int] = None) -> DynamicBayesNet:
        """Assemble the learnt dynamic Bayesian network.

        Each node takes its parent from the transition's optimum branching
        together with the past parents cached for that edge; the root of
        the branching keeps its best past-only parent set.

        Parameters
        ----------
        root : int, optional
            Node forced to be the root of every intra-slice tree.

        Raises
        ------
        RuntimeError
            If :meth:`evaluate` has not been called.
        ValueError
            If *root* is not a valid node.
        """
        if not self.evaluated:
            raise RuntimeError("Scores must be evaluated before being converted to DBN")
        n = self.observations.num_attributes()
        if root is not None and not 0 <= root < n:
            raise ValueError(f"Root {root} not in [0, {n})")

        networks = []
        for t in range(len(self._matrices)):
            intra = self.branching(t, root)
            inter: List[Edge] = []
            has_parent = [False] * n
            for edge in intra:
                for past in self._with_edge[t][edge.head][edge.tail]:
                    inter.append(Edge(past, edge.head))
                has_parent[edge.head] = True
            for i in range(n):
                if not has_parent[i]:
                    inter.extend(Edge(past, i) for past in self._past_only[t][i])
            networks.append(
                TransitionNetwork(
                    self.observations.attributes,
                    self.observations.markov_lag,
                    intra,
                    inter,
                )
            )
            logger.debug("Transition %d: intra-slice edges %s", t, [str(e) for e in intra])

        return DynamicBayesNet(self.observations.attributes, networks)
