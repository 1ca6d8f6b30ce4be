"""Tests for tdbn/structure/branching.py.

Covers:
- DisjointSets labelling and EdgeForest bookkeeping
- Optimum branching on hand-checked graphs
- Structural guarantees (n - 1 edges, single root, forced root)
- Optimality against a brute-force search and networkx's Edmonds
- Error handling
"""

from __future__ import annotations

import itertools

import networkx as nx
import numpy as np
import pytest

from tdbn.structure.branching import DisjointSets, EdgeForest, optimum_branching


# ------------------------------------------------------------------ #
#  Helpers
# ------------------------------------------------------------------ #

def _total(weights: np.ndarray, edges) -> float:
    return sum(weights[e.head, e.tail] for e in edges)


def _is_arborescence(n: int, edges) -> bool:
    graph = nx.DiGraph()
    graph.add_nodes_from(range(n))
    graph.add_edges_from((e.tail, e.head) for e in edges)
    return nx.is_arborescence(graph)


def _brute_force(weights: np.ndarray, root=None) -> float:
    """Best total weight over every spanning arborescence."""
    n = weights.shape[0]
    best = -np.inf
    roots = range(n) if root is None else [root]
    for r in roots:
        others = [i for i in range(n) if i != r]
        choices = [[j for j in range(n) if j != i] for i in others]
        for parents in itertools.product(*choices):
            graph = nx.DiGraph()
            graph.add_nodes_from(range(n))
            graph.add_edges_from(zip(parents, others))
            if nx.is_arborescence(graph):
                best = max(best, sum(weights[i, j] for i, j in zip(others, parents)))
    return best


# ------------------------------------------------------------------ #
#  Union-find and edge forest
# ------------------------------------------------------------------ #

class TestDisjointSets:
    """Tests for labelled union-find."""

    def test_singletons(self) -> None:
        """Every element starts in its own set."""
        ds = DisjointSets(4)
        assert [ds.find(i) for i in range(4)] == [0, 1, 2, 3]

    def test_union_keeps_first_label(self) -> None:
        """The merged set is labelled by the first argument's set."""
        ds = DisjointSets(5)
        ds.union(3, 1)
        assert ds.find(1) == 3
        ds.union(0, 3)
        assert {ds.find(i) for i in (0, 1, 3)} == {0}
        assert ds.find(2) == 2

    def test_union_same_set(self) -> None:
        """Merging a set with itself returns its label."""
        ds = DisjointSets(3)
        ds.union(2, 0)
        assert ds.union(0, 2) == 2


class TestEdgeForest:
    """Tests for the edge forest."""

    def test_add_and_delete_up(self) -> None:
        """Deleting a leaf's path releases its siblings as roots."""
        forest = EdgeForest(5)
        forest.add(0, [])
        forest.add(1, [])
        forest.add(2, [])
        forest.add(3, [0, 1, 2])
        assert len(forest) == 1
        assert forest.first_root() == 3

        forest.delete_up(1)
        assert len(forest) == 2
        assert forest.first_root() == 0

        forest.delete_up(0)
        forest.delete_up(2)
        assert not forest


# ------------------------------------------------------------------ #
#  Known graphs
# ------------------------------------------------------------------ #

class TestOptimumBranching:
    """Tests for optimum_branching on hand-checked inputs."""

    def test_three_nodes(self) -> None:
        """Picks the heaviest tree 2 -> 0 -> 1."""
        w = np.array([[0, 1, 5], [4, 0, 1], [1, 3, 0]])
        edges = optimum_branching(w)
        assert sorted((e.tail, e.head) for e in edges) == [(0, 1), (2, 0)]
        assert _total(w, edges) == 9

    def test_weights_are_original(self) -> None:
        """Returned edges carry the matrix weights."""
        w = np.array([[0, 1, 5], [4, 0, 1], [1, 3, 0]], dtype=float)
        for e in optimum_branching(w):
            assert e.weight == w[e.head, e.tail]

    def test_cycle_is_broken(self) -> None:
        """A heavy two-cycle is broken at its lightest edge."""
        w = np.array([
            [0.0, 10.0, 1.0],
            [9.0, 0.0, 1.0],
            [2.0, 1.0, 0.0],
        ])
        edges = optimum_branching(w)
        assert _is_arborescence(3, edges)
        assert _total(w, edges) == pytest.approx(_brute_force(w))

    def test_forced_root(self) -> None:
        """A given root has no parent."""
        w = np.array([[0, 1, 5], [4, 0, 1], [1, 3, 0]])
        edges = optimum_branching(w, root=1)
        assert all(e.head != 1 for e in edges)
        assert _is_arborescence(3, edges)
        assert _total(w, edges) == _brute_force(w, root=1)

    def test_single_node(self) -> None:
        """A single node has no edges."""
        assert optimum_branching(np.zeros((1, 1))) == []

    def test_two_nodes(self) -> None:
        """With two nodes the heavier direction wins."""
        w = np.array([[0.0, 2.0], [3.0, 0.0]])
        edges = optimum_branching(w)
        assert [(e.tail, e.head) for e in edges] == [(0, 1)]

    def test_diagonal_ignored(self) -> None:
        """Diagonal entries never become edges."""
        w = np.full((4, 4), -1.0)
        np.fill_diagonal(w, 100.0)
        edges = optimum_branching(w)
        assert len(edges) == 3
        assert all(e.tail != e.head for e in edges)

    def test_negative_weights(self) -> None:
        """The tree is spanning even when every edge loses weight."""
        w = -np.arange(16, dtype=float).reshape(4, 4)
        edges = optimum_branching(w)
        assert _is_arborescence(4, edges)
        assert _total(w, edges) == pytest.approx(_brute_force(w))

    def test_deterministic(self) -> None:
        """Ties are resolved identically across calls."""
        w = np.ones((5, 5))
        first = optimum_branching(w)
        assert first == optimum_branching(w)
        assert _is_arborescence(5, first)


# ------------------------------------------------------------------ #
#  Optimality
# ------------------------------------------------------------------ #

class TestOptimality:
    """Compare against exhaustive search and networkx."""

    @pytest.mark.parametrize("seed", range(12))
    def test_brute_force(self, seed: int) -> None:
        """Random graphs up to 5 nodes reach the best total weight."""
        rng = np.random.default_rng(seed)
        n = 2 + seed % 4
        w = rng.normal(size=(n, n))
        edges = optimum_branching(w)
        assert len(edges) == n - 1
        assert _is_arborescence(n, edges)
        assert _total(w, edges) == pytest.approx(_brute_force(w))

    @pytest.mark.parametrize("seed", range(8))
    def test_brute_force_forced_root(self, seed: int) -> None:
        """With a forced root the best tree hanging from it is found."""
        rng = np.random.default_rng(100 + seed)
        n = 3 + seed % 3
        root = seed % n
        w = rng.integers(-5, 6, size=(n, n)).astype(float)
        edges = optimum_branching(w, root=root)
        assert len(edges) == n - 1
        assert all(e.head != root for e in edges)
        assert _is_arborescence(n, edges)
        assert _total(w, edges) == pytest.approx(_brute_force(w, root=root))

    @pytest.mark.parametrize("seed", range(5))
    def test_matches_networkx(self, seed: int) -> None:
        """Total weight equals networkx's maximum spanning arborescence."""
        rng = np.random.default_rng(200 + seed)
        n = 8
        w = rng.uniform(1.0, 10.0, size=(n, n))
        graph = nx.DiGraph()
        for i in range(n):
            for j in range(n):
                if i != j:
                    graph.add_edge(j, i, weight=w[i, j])
        tree = nx.maximum_spanning_arborescence(graph)
        expected = sum(w[head, tail] for tail, head in tree.edges())
        assert _total(w, optimum_branching(w)) == pytest.approx(expected)


# ------------------------------------------------------------------ #
#  Errors
# ------------------------------------------------------------------ #

class TestErrors:
    """Tests for invalid inputs."""

    def test_non_square(self) -> None:
        """A rectangular matrix raises ValueError."""
        with pytest.raises(ValueError, match="square"):
            optimum_branching(np.zeros((2, 3)))

    def test_empty(self) -> None:
        """An empty matrix raises ValueError."""
        with pytest.raises(ValueError, match="empty"):
            optimum_branching(np.zeros((0, 0)))

    @pytest.mark.parametrize("root", [-1, 3])
    def test_root_out_of_range(self, root: int) -> None:
        """A root outside [0, n) raises ValueError."""
        with pytest.raises(ValueError, match="Root"):
            optimum_branching(np.zeros((3, 3)), root=root)
