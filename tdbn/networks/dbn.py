"""Dynamic Bayesian network structures.

Provides :class:`TransitionNetwork`, the graph of one transition between
``markov_lag`` past slices and the present slice, and
:class:`DynamicBayesNet`, a sequence of transition networks sharing the
same attributes.  Graphs are stored in a :class:`networkx.DiGraph` whose
nodes are ``(slice, attribute)`` pairs, the present slice being
``markov_lag``.

Two index conventions are used for the edges of a transition:

* intra-slice edges connect present-slice nodes and use *unshifted*
  indices in ``[0, n)``;
* inter-slice edges have a *shifted* tail in ``[0, markov_lag * n)``
  (slice ``tail // n``, attribute ``tail % n``) and an unshifted head.

:meth:`TransitionNetwork.parent_nodes` returns the parents of a node in
the shifted convention of an observation row, the order a configuration
mask expects.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import List, Sequence, Tuple

import networkx as nx

from tdbn.core.types import Attribute, Edge


@dataclass(frozen=True)
class StructureComparison:
    """Edge counts of a learnt network against a reference one.

    Attributes
    ----------
    true_positive : int
        Parent relations present in both networks.
    condition_positive : int
        Parent relations of the reference network.
    test_positive : int
        Parent relations of the learnt network.
    """

    true_positive: int
    condition_positive: int
    test_positive: int

    @property
    def precision(self) -> float:
        if self.test_positive == 0:
            return 0.0
        return self.true_positive / self.test_positive

    @property
    def recall(self) -> float:
        if self.condition_positive == 0:
            return 0.0
        return self.true_positive / self.condition_positive

    @property
    def f1(self) -> float:
        p, r = self.precision, self.recall
        if p + r == 0:
            return 0.0
        return 2 * p * r / (p + r)


class TransitionNetwork:
    """Structure of one transition of a dynamic Bayesian network.

    Parameters
    ----------
    attributes : list of Attribute
        Variables of one time slice.
    markov_lag : int
        Number of past slices.
    intra_relations : sequence of Edge
        Present-slice edges, unshifted tail and head.
    inter_relations : sequence of Edge
        Past-to-present edges, shifted tail and unshifted head.

    Raises
    ------
    ValueError
        If an index is out of range or the intra-slice edges contain a
        cycle.

    Examples
    --------
    >>> attrs = [Attribute.with_cardinality("a", 2), Attribute.with_cardinality("b", 2)]
    >>> net = TransitionNetwork(attrs, 1, [Edge(0, 1)], [Edge(0, 0), Edge(1, 1)])
    >>> net.parent_nodes(1)
    [1, 2]
    >>> net.topological_order
    [0, 1]
    """

    def __init__(
        self,
        attributes: Sequence[Attribute],
        markov_lag: int,
        intra_relations: Sequence[Edge],
        inter_relations: Sequence[Edge],
    ) -> None:
        self.attributes: List[Attribute] = list(attributes)
        self.markov_lag: int = int(markov_lag)
        n = len(self.attributes)
        num_past = self.markov_lag * n

        self._intra: List[Edge] = list(intra_relations)
        self._inter: List[Edge] = list(inter_relations)

        self._graph: nx.DiGraph = nx.DiGraph()
        for s in range(self.markov_lag + 1):
            for i, attribute in enumerate(self.attributes):
                self._graph.add_node((s, i), name=attribute.name)

        self._parents: List[List[int]] = [[] for _ in range(n)]
        for e in self._inter:
            if not 0 <= e.tail < num_past or not 0 <= e.head < n:
                raise ValueError(f"Inter-slice edge {e} out of range")
            self._graph.add_edge((e.tail // n, e.tail % n), (self.markov_lag, e.head))
            self._parents[e.head].append(e.tail)

        present = nx.DiGraph()
        present.add_nodes_from(range(n))
        for e in self._intra:
            if not 0 <= e.tail < n or not 0 <= e.head < n or e.tail == e.head:
                raise ValueError(f"Intra-slice edge {e} out of range")
            self._graph.add_edge((self.markov_lag, e.tail), (self.markov_lag, e.head))
            self._parents[e.head].append(num_past + e.tail)
            present.add_edge(e.tail, e.head)

        if not nx.is_directed_acyclic_graph(present):
            raise ValueError("Intra-slice relations must not contain a cycle")
        self._topological_order: List[int] = list(
            nx.lexicographical_topological_sort(present)
        )

        for parents in self._parents:
            parents.sort()

    # ------------------------------------------------------------------ #
    #  Structure queries
    # ------------------------------------------------------------------ #

    @property
    def graph(self) -> nx.DiGraph:
        """The underlying graph over ``(slice, attribute)`` nodes."""
        return self._graph

    @property
    def intra_edges(self) -> List[Edge]:
        return list(self._intra)

    @property
    def inter_edges(self) -> List[Edge]:
        return list(self._inter)

    @property
    def topological_order(self) -> List[int]:
        """Present-slice nodes, parents before children."""
        return list(self._topological_order)

    def parent_nodes(self, node: int) -> List[int]:
        """Sorted shifted indices of the parents of present-slice *node*."""
        return list(self._parents[node])

    @property
    def parent_nodes_per_slice(self) -> List[List[List[int]]]:
        """``[slice][node]``: unshifted parents of *node* lying in *slice*."""
        n = len(self.attributes)
        per_slice: List[List[List[int]]] = [
            [[] for _ in range(n)] for _ in range(self.markov_lag + 1)
        ]
        for head, parents in enumerate(self._parents):
            for p in parents:
                per_slice[p // n][head].append(p % n)
        return per_slice

    def edges(self) -> List[Tuple[int, int]]:
        """All parent relations as ``(shifted tail, head)`` pairs."""
        return [(p, i) for i, parents in enumerate(self._parents) for p in parents]

    @staticmethod
    def compare(
        original: "TransitionNetwork",
        recovered: "TransitionNetwork",
    ) -> StructureComparison:
        """Count the parent relations *recovered* shares with *original*."""
        if len(original.attributes) != len(recovered.attributes):
            raise ValueError("Networks must have the same attributes")
        true_positive = condition_positive = test_positive = 0
        for i in range(len(original.attributes)):
            expected = set(original.parent_nodes(i))
            found = set(recovered.parent_nodes(i))
            true_positive += len(expected & found)
            condition_positive += len(expected)
            test_positive += len(found)
        return StructureComparison(true_positive, condition_positive, test_positive)

    def __repr__(self) -> str:
        return (
            f"TransitionNetwork(markov_lag={self.markov_lag}, "
            f"intra={[str(e) for e in self._intra]}, "
            f"inter={[str(e) for e in self._inter]})"
        )


class DynamicBayesNet:
    """A dynamic Bayesian network as one structure per transition.

    A stationary network holds a single transition network.

    Parameters
    ----------
    attributes : list of Attribute
        Variables of one time slice.
    transition_networks : sequence of TransitionNetwork
        One network per transition, all with the same Markov lag.
    """

    def __init__(
        self,
        attributes: Sequence[Attribute],
        transition_networks: Sequence[TransitionNetwork],
    ) -> None:
        self.attributes: List[Attribute] = list(attributes)
        self.transition_networks: List[TransitionNetwork] = list(transition_networks)
        if not self.transition_networks:
            raise ValueError("A dynamic Bayesian network needs a transition network")
        lags = {net.markov_lag for net in self.transition_networks}
        if len(lags) != 1:
            raise ValueError(f"Transition networks disagree on markov_lag: {sorted(lags)}")
        self.markov_lag: int = lags.pop()

    @property
    def num_transitions(self) -> int:
        return len(self.transition_networks)

    def __getitem__(self, transition: int) -> TransitionNetwork:
        return self.transition_networks[transition]

    def __iter__(self):
        return iter(self.transition_networks)

    def __len__(self) -> int:
        return len(self.transition_networks)

    @staticmethod
    def compare(
        original: "DynamicBayesNet",
        recovered: "DynamicBayesNet",
    ) -> List[StructureComparison]:
        """Compare two networks transition by transition.

        Raises
        ------
        ValueError
            If the networks have different numbers of transitions.
        """
        if original.num_transitions != recovered.num_transitions:
            raise ValueError(
                f"Cannot compare {original.num_transitions} transitions "
                f"with {recovered.num_transitions}"
            )
        return [
            TransitionNetwork.compare(a, b)
            for a, b in zip(original.transition_networks, recovered.transition_networks)
        ]

    def __repr__(self) -> str:
        return (
            f"DynamicBayesNet(attributes={[a.name for a in self.attributes]}, "
            f"markov_lag={self.markov_lag}, transitions={self.num_transitions})"
        )
