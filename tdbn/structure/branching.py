"""Optimum branching: maximum-weight spanning arborescence of a dense graph.

Implements the Chu-Liu/Edmonds algorithm with the edge forest of Tarjan
and Camerini et al., which records the cycle-breaking decisions taken
while contracting so that the final tree can be read off without
expanding super-nodes explicitly.

The input is an ``n x n`` weight matrix where ``weights[i][j]`` is the
weight of edge ``j -> i``.  Diagonal entries are not edges and are
ignored.  The result has exactly ``n - 1`` edges and a single parentless
root, which is *root* when one is supplied.

Provides:

* :class:`DisjointSets` – union-find over ``range(n)`` with labelled sets.
* :class:`EdgeForest` – hierarchy of chosen edges, addressed by edge id.
* :func:`optimum_branching` – the solver.

Ties between equally heavy (or light) edges go to the first one in
incident-list order, i.e. the smallest source node, which makes the
output reproducible.
"""

from __future__ import annotations

from collections import deque
from typing import Dict, List, Optional, Sequence

import numpy as np

from tdbn.core.types import Edge


# ------------------------------------------------------------------ #
#  Union-find
# ------------------------------------------------------------------ #

class DisjointSets:
    """Union-find with path compression and union by rank.

    Each set carries a *label*, one of its members.  :meth:`find` returns
    the label rather than the internal tree root, and :meth:`union` keeps
    the label of its first argument's set.

    Parameters
    ----------
    n : int
        Number of singleton sets ``{0}, ..., {n-1}``.
    """

    def __init__(self, n: int) -> None:
        self._parent: List[int] = list(range(n))
        self._rank: List[int] = [0] * n
        self._label: List[int] = list(range(n))

    def _root(self, x: int) -> int:
        root = x
        while self._parent[root] != root:
            root = self._parent[root]
        while self._parent[x] != root:
            self._parent[x], x = root, self._parent[x]
        return root

    def find(self, x: int) -> int:
        """Return the label of the set containing *x*."""
        return self._label[self._root(x)]

    def union(self, a: int, b: int) -> int:
        """Merge the sets of *a* and *b*; return the label of the result."""
        root_a = self._root(a)
        root_b = self._root(b)
        label = self._label[root_a]
        if root_a == root_b:
            return label
        if self._rank[root_a] < self._rank[root_b]:
            root_a, root_b = root_b, root_a
        self._parent[root_b] = root_a
        if self._rank[root_a] == self._rank[root_b]:
            self._rank[root_a] += 1
        self._label[root_a] = label
        return label


# ------------------------------------------------------------------ #
#  Edge forest
# ------------------------------------------------------------------ #

class EdgeForest:
    """Forest of chosen edges, one node per edge id.

    When an edge enters a contracted cycle, the cycle's edges become its
    children.  Removing a node together with all its ancestors
    (:meth:`delete_up`) releases the remaining subtrees as new roots.
    """

    def __init__(self, num_edges: int) -> None:
        self._parent: List[int] = [-1] * num_edges
        self._children: List[List[int]] = [[] for _ in range(num_edges)]
        # insertion-ordered set of current roots
        self._roots: Dict[int, None] = {}

    def add(self, edge: int, children: Sequence[int]) -> None:
        """Insert *edge* as a new root above the current roots *children*."""
        for child in children:
            self._parent[child] = edge
            self._roots.pop(child, None)
        self._children[edge] = list(children)
        self._roots[edge] = None

    def delete_up(self, edge: int) -> None:
        """Remove *edge* and every ancestor of it from the forest."""
        path = []
        while edge != -1:
            path.append(edge)
            edge = self._parent[edge]
        on_path = set(path)
        for node in path:
            self._roots.pop(node, None)
            for child in self._children[node]:
                if child not in on_path:
                    self._parent[child] = -1
                    self._roots[child] = None
            self._children[node] = []
            self._parent[node] = -1

    def first_root(self) -> int:
        return next(iter(self._roots))

    def __bool__(self) -> bool:
        return bool(self._roots)

    def __len__(self) -> int:
        return len(self._roots)


# ------------------------------------------------------------------ #
#  Solver
# ------------------------------------------------------------------ #

class _Branching:
    """State of one optimum branching computation."""

    def __init__(self, weights: np.ndarray, root: Optional[int]) -> None:
        n = weights.shape[0]
        self.n = n
        self.root = root

        # edge arena; weights are modified during contraction
        self.tail: List[int] = []
        self.head: List[int] = []
        self.weight: List[float] = []
        self.original: List[float] = []

        # incident edges per node, sorted by tail
        self.incident: List[List[int]] = [[] for _ in range(n)]
        for i in range(n):
            for j in range(n):
                if i != j:
                    self.incident[i].append(len(self.tail))
                    self.tail.append(j)
                    self.head.append(i)
                    self.weight.append(float(weights[i, j]))
        self.original = list(self.weight)

        self.strong = DisjointSets(n)
        self.weak = DisjointSets(n)
        self.forest = EdgeForest(len(self.tail))

        self.cycle: List[List[int]] = [[] for _ in range(n)]
        self.entering: List[Optional[int]] = [None] * n
        self.leaf: List[Optional[int]] = [None] * n
        # node that becomes the root if a component ends up parentless
        self.min: List[int] = list(range(n))

    def _merge(self, first: List[int], second: List[int], component: int) -> List[int]:
        """Merge two tail-sorted edge lists, dropping internal edges.

        When both lists hold an edge from the same tail, only the heavier
        one is kept (the one from *second* on ties).
        """
        find = self.strong.find
        a = [e for e in first if find(self.tail[e]) != component]
        b = [e for e in second if find(self.tail[e]) != component]

        merged: List[int] = []
        i = j = 0
        while i < len(a) and j < len(b):
            ea, eb = a[i], b[j]
            if self.tail[ea] < self.tail[eb]:
                merged.append(ea)
                i += 1
            elif self.tail[ea] > self.tail[eb]:
                merged.append(eb)
                j += 1
            else:
                merged.append(ea if self.weight[ea] > self.weight[eb] else eb)
                i += 1
                j += 1
        merged.extend(a[i:])
        merged.extend(b[j:])
        return merged

    def _contract(self, r: int, heaviest: int) -> None:
        """Contract the cycle closed by *heaviest* into super-node *r*."""
        strong = self.strong
        weight = self.weight

        self.cycle[r] = []
        lightest = heaviest
        edge: Optional[int] = heaviest
        while edge is not None:
            if weight[edge] < weight[lightest]:
                lightest = edge
            self.cycle[r].append(edge)
            edge = self.entering[strong.find(self.tail[edge])]

        for e in self.incident[r]:
            weight[e] += weight[lightest] - weight[heaviest]

        self.min[r] = self.min[strong.find(self.head[lightest])]

        edge = self.entering[strong.find(self.tail[heaviest])]
        while edge is not None:
            component = strong.find(self.head[edge])
            for e in self.incident[component]:
                weight[e] += weight[lightest] - weight[edge]
            strong.union(r, component)
            self.incident[r] = self._merge(
                self.incident[r], self.incident[component], r
            )
            self.incident[component] = []
            edge = self.entering[strong.find(self.tail[edge])]

    def solve(self) -> List[Edge]:
        vertices = deque(range(self.n))
        if self.root is not None:
            vertices.remove(self.root)
        final_root = self.root

        while vertices:
            r = vertices.popleft()
            in_edges = self.incident[r]

            # a component without incoming edges spans the whole graph
            if not in_edges:
                final_root = self.min[r]
                continue

            best = 0
            for k in range(1, len(in_edges)):
                if self.weight[in_edges[k]] > self.weight[in_edges[best]]:
                    best = k
            heaviest = in_edges.pop(best)

            i = self.tail[heaviest]
            j = self.head[heaviest]

            self.forest.add(heaviest, self.cycle[r])
            if not self.cycle[r]:
                self.leaf[j] = heaviest

            if self.weak.find(i) != self.weak.find(j):
                self.weak.union(i, j)
                self.entering[r] = heaviest
            else:
                self._contract(r, heaviest)
                vertices.appendleft(r)

        return self._expand(final_root)

    def _expand(self, final_root: Optional[int]) -> List[Edge]:
        forest = self.forest
        if final_root is not None and self.leaf[final_root] is not None:
            forest.delete_up(self.leaf[final_root])

        branching: List[Edge] = []
        while forest:
            e = forest.first_root()
            branching.append(Edge(self.tail[e], self.head[e], self.original[e]))
            forest.delete_up(self.leaf[self.head[e]])
        return branching


def optimum_branching(
    weights: np.ndarray,
    root: Optional[int] = None,
) -> List[Edge]:
    """Return the maximum-weight spanning arborescence of a dense graph.

    Parameters
    ----------
    weights : array-like
        Square matrix; ``weights[i][j]`` is the weight of edge ``j -> i``.
        The diagonal is ignored.
    root : int, optional
        Node that must be left without a parent.  If *None*, the root is
        chosen by the algorithm.

    Returns
    -------
    list of Edge
        ``n - 1`` edges (none when ``n == 1``) carrying their weights from
        *weights*.

    Raises
    ------
    ValueError
        If *weights* is not a non-empty square matrix or *root* is not in
        ``[0, n)``.

    Examples
    --------
    >>> w = np.array([[0, 1, 5], [4, 0, 1], [1, 3, 0]])
    >>> sorted((e.tail, e.head) for e in optimum_branching(w))
    [(0, 1), (2, 0)]
    """
    weights = np.asarray(weights, dtype=np.float64)
    if weights.ndim != 2 or weights.shape[0] != weights.shape[1]:
        raise ValueError(
            f"Weight matrix must be square, got shape {weights.shape}"
        )
    n = weights.shape[0]
    if n == 0:
        raise ValueError("Weight matrix must not be empty")
    if root is not None and not 0 <= root < n:
        raise ValueError(f"Root {root} not in [0, {n})")

    return _Branching(weights, root).solve()
