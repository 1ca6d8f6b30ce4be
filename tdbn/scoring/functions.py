"""Decomposable scoring functions for local parent sets.

A scoring function rates how well a set of parents explains a child node
in the observations of one transition (or of all transitions when the
process is stationary).  Higher is better.

Provides:

* :class:`ScoringFunction` – abstract interface.
* :class:`LLScoringFunction` – log-likelihood.
* :class:`MDLScoringFunction` – log-likelihood with the minimum
  description length (BIC) complexity penalty.
* :func:`get_scoring_function` – lookup by name (``"ll"``, ``"mdl"``).
"""

from __future__ import annotations

import math
from abc import ABC, abstractmethod
from typing import Dict, Optional, Sequence, Tuple, Type

import numpy as np

from tdbn.core.configuration import LocalConfiguration
from tdbn.data.observations import Observations


class ScoringFunction(ABC):
    """Abstract base class for local structure scores.

    Subclasses implement :meth:`evaluate`; instances are also callable
    with the same arguments.
    """

    @abstractmethod
    def evaluate(
        self,
        observations: Observations,
        transition: int,
        parent_nodes_past: Sequence[int],
        child_node: int,
        parent_node_present: Optional[int] = None,
    ) -> float:
        """Score *parent_nodes_past* (plus *parent_node_present*) for *child_node*.

        Parameters
        ----------
        observations : Observations
            Coded data to count from.
        transition : int
            Transition index; negative for all transitions (stationary
            process).
        parent_nodes_past : sequence of int
            Sorted past-slice parent positions.
        child_node : int
            Present-slice variable being explained.
        parent_node_present : int, optional
            Same-slice variable forced as an extra parent.

        Returns
        -------
        float
            Goodness of fit; higher is better.
        """

    def __call__(
        self,
        observations: Observations,
        transition: int,
        parent_nodes_past: Sequence[int],
        child_node: int,
        parent_node_present: Optional[int] = None,
    ) -> float:
        return self.evaluate(
            observations, transition, parent_nodes_past, child_node,
            parent_node_present,
        )

    def __repr__(self) -> str:
        return f"{type(self).__name__}()"


class LLScoringFunction(ScoringFunction):
    """Log-likelihood score ``sum_ijk Nijk * (ln Nijk - ln Nij)``.

    ``Nij`` counts rows matching the parent combination ``j`` and
    ``Nijk`` those that additionally have child value ``k``.  Terms with
    ``Nijk == 0`` are skipped, so unseen combinations add nothing.

    Counts are gathered into dense tables indexed by
    :meth:`LocalConfiguration.parents_index` before scoring.
    """

    def counts(
        self,
        observations: Observations,
        transition: int,
        parent_nodes_past: Sequence[int],
        child_node: int,
        parent_node_present: Optional[int] = None,
    ) -> Tuple[np.ndarray, np.ndarray]:
        """Return the ``(Nij, Nijk)`` tables of a local parent set.

        ``Nij`` has one entry per parent combination ``j`` (a single one
        when there are no parents); ``Nijk`` adds a column per child value.
        """
        c = LocalConfiguration(
            observations.attributes,
            observations.markov_lag,
            parent_nodes_past,
            child_node,
            parent_node_present,
        )
        num_combinations = max(c.parents_range, 1)
        nij = np.zeros(num_combinations, dtype=np.int64)
        nijk = np.zeros((num_combinations, c.child_range), dtype=np.int64)

        while True:
            j = c.parents_index()
            c.set_consider_child(False)
            nij[j] = observations.count(c, transition)
            c.set_consider_child(True)
            # with no matching row every Nijk is 0 as well
            if nij[j] > 0:
                while True:
                    nijk[j, c.child_value] = observations.count(c, transition)
                    if not c.next_child():
                        break
            if not c.next_parents():
                break

        return nij, nijk

    def evaluate(
        self,
        observations: Observations,
        transition: int,
        parent_nodes_past: Sequence[int],
        child_node: int,
        parent_node_present: Optional[int] = None,
    ) -> float:
        nij, nijk = self.counts(
            observations, transition, parent_nodes_past, child_node,
            parent_node_present,
        )

        score = 0.0
        for total, row in zip(nij.tolist(), nijk.tolist()):
            for count in row:
                if count != 0 and count != total:
                    score += count * (math.log(count) - math.log(total))

        return score


class MDLScoringFunction(LLScoringFunction):
    """Log-likelihood penalized by ``0.5 * ln(N) * num_parameters``.

    ``N`` is the number of observations of the transition (all
    transitions if stationary).  Without observations there is no
    penalty.
    """

    def evaluate(
        self,
        observations: Observations,
        transition: int,
        parent_nodes_past: Sequence[int],
        child_node: int,
        parent_node_present: Optional[int] = None,
    ) -> float:
        score = super().evaluate(
            observations, transition, parent_nodes_past, child_node,
            parent_node_present,
        )

        c = LocalConfiguration(
            observations.attributes,
            observations.markov_lag,
            parent_nodes_past,
            child_node,
            parent_node_present,
        )
        num_observations = observations.num_observations(transition)
        if num_observations > 0:
            score -= 0.5 * math.log(num_observations) * c.num_parameters()

        return score


_SCORING_FUNCTIONS: Dict[str, Type[ScoringFunction]] = {
    "ll": LLScoringFunction,
    "mdl": MDLScoringFunction,
}


def get_scoring_function(name: str) -> ScoringFunction:
    """Return a new scoring function by case-insensitive *name*.

    Raises
    ------
    ValueError
        If *name* is neither ``"ll"`` nor ``"mdl"``.
    """
    key = name.lower()
    if key not in _SCORING_FUNCTIONS:
        raise ValueError(
            f"Unknown scoring function '{name}'. "
            f"Valid names: {sorted(_SCORING_FUNCTIONS)}"
        )
    return _SCORING_FUNCTIONS[key]()
