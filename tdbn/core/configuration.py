"""Partial assignments over stacked time-slice variables.

A configuration has one entry per position of an observation row: the
``markov_lag * n`` past-slice positions (oldest slice first) followed by
the ``n`` positions of the present slice.  Each entry is either a coded
value or :data:`WILDCARD`, which matches anything.

Provides:

* :class:`Configuration` – an immutable-by-convention value vector,
  hashable and comparable by value.
* :class:`LocalConfiguration` – the assignment of one child node and its
  parents, enumerated in place with a mixed-radix counter.  Used to count
  the sufficient statistics ``Nij`` and ``Nijk`` of a scoring function.
* :class:`MutableConfiguration` – a configuration filled slice by slice
  from an observation, with :meth:`~MutableConfiguration.apply_mask` to
  index a fitted parameter table.
"""

from __future__ import annotations

from typing import List, Optional, Sequence, Tuple

import numpy as np

from tdbn.core.types import Attribute

# Entry that imposes no constraint when matching an observation row
WILDCARD = -1


class Configuration:
    """A vector of coded values and wildcards over an observation row.

    Parameters
    ----------
    attributes : list of Attribute
        Variables of one time slice.
    values : array-like of int
        Entries of length ``(markov_lag + 1) * len(attributes)``.
    """

    def __init__(
        self,
        attributes: Sequence[Attribute],
        values: Sequence[int],
    ) -> None:
        self.attributes: List[Attribute] = list(attributes)
        self._values: np.ndarray = np.array(values, dtype=np.int64)
        n = len(self.attributes)
        if n == 0 or self._values.ndim != 1 or len(self._values) % n != 0:
            raise ValueError(
                f"Configuration of length {self._values.size} does not fit "
                f"{n} attributes per slice"
            )

    @property
    def markov_lag(self) -> int:
        return len(self._values) // len(self.attributes) - 1

    def to_array(self) -> np.ndarray:
        """Return a copy of the raw entries."""
        return self._values.copy()

    def constraints(self) -> Tuple[np.ndarray, np.ndarray]:
        """Return ``(positions, values)`` of the non-wildcard entries."""
        positions = np.flatnonzero(self._values != WILDCARD)
        return positions, self._values[positions]

    def matches(self, row: Sequence[int]) -> bool:
        """Return True if every non-wildcard entry equals *row*'s entry."""
        positions, values = self.constraints()
        return bool(np.array_equal(np.asarray(row)[positions], values))

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Configuration):
            return NotImplemented
        return np.array_equal(self._values, other._values)

    def __hash__(self) -> int:
        return hash(self._values.tobytes())

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self._values.tolist()})"


class LocalConfiguration(Configuration):
    """Assignment of a child node and its parents, enumerated in place.

    The parent positions are the (shifted) past parents followed by the
    optional same-slice parent; all other positions are wildcards.  Start
    with every parent and the child at value 0 and walk the combinations
    with :meth:`next_parents` and :meth:`next_child`.

    Parameters
    ----------
    attributes : list of Attribute
        Variables of one time slice.
    markov_lag : int
        Number of past slices in an observation row.
    parent_nodes_past : sequence of int
        Sorted, duplicate-free positions in ``[0, markov_lag * n)``.
    child_node : int
        Present-slice variable in ``[0, n)``.
    parent_node_present : int, optional
        Present-slice variable forced as an extra parent of *child_node*.

    Raises
    ------
    ValueError
        If the parent set is unsorted, has duplicates or out-of-range
        positions, or if a node index is out of range.
    """

    def __init__(
        self,
        attributes: Sequence[Attribute],
        markov_lag: int,
        parent_nodes_past: Sequence[int],
        child_node: int,
        parent_node_present: Optional[int] = None,
    ) -> None:
        n = len(attributes)
        if markov_lag < 0:
            raise ValueError(f"markov_lag must be non-negative, got {markov_lag}")
        super().__init__(attributes, np.full((markov_lag + 1) * n, WILDCARD))

        past = [int(p) for p in parent_nodes_past]
        num_past = markov_lag * n
        for a, b in zip(past, past[1:]):
            if a >= b:
                raise ValueError(
                    f"Parent nodes must be sorted and unique, got {past}"
                )
        if past and (past[0] < 0 or past[-1] >= num_past):
            raise ValueError(
                f"Past parent nodes must lie in [0, {num_past}), got {past}"
            )
        if not 0 <= child_node < n:
            raise ValueError(f"Child node {child_node} not in [0, {n})")

        positions = list(past)
        if parent_node_present is not None:
            if not 0 <= parent_node_present < n:
                raise ValueError(
                    f"Present parent node {parent_node_present} not in [0, {n})"
                )
            if parent_node_present == child_node:
                raise ValueError(
                    f"Node {child_node} cannot be its own parent"
                )
            positions.append(num_past + parent_node_present)

        self._parent_positions = np.array(positions, dtype=np.int64)
        self._parent_sizes = np.array(
            [self._cardinality(p) for p in positions], dtype=np.int64
        )
        self._child_position = num_past + child_node
        self._consider_child = True

        self.parents_range = int(np.prod(self._parent_sizes)) if positions else 0
        self.child_range = self.attributes[child_node].cardinality

        self._values[self._parent_positions] = 0
        self._values[self._child_position] = 0

    def _cardinality(self, position: int) -> int:
        return self.attributes[position % len(self.attributes)].cardinality

    # ------------------------------------------------------------------ #
    #  Enumeration
    # ------------------------------------------------------------------ #

    def next_parents(self) -> bool:
        """Advance to the next parent combination.

        The first parent position increments fastest.  Returns False, and
        wraps every parent back to 0, once all ``parents_range``
        combinations have been visited.
        """
        for position, size in zip(self._parent_positions, self._parent_sizes):
            self._values[position] += 1
            if self._values[position] < size:
                return True
            self._values[position] = 0
        return False

    def next_child(self) -> bool:
        """Advance the child value; False (and back to 0) after the last."""
        self._values[self._child_position] += 1
        if self._values[self._child_position] < self.child_range:
            return True
        self._values[self._child_position] = 0
        return False

    def reset_child(self) -> None:
        self._values[self._child_position] = 0

    @property
    def consider_child(self) -> bool:
        """Whether the child position takes part in matching."""
        return self._consider_child

    def set_consider_child(self, consider_child: bool) -> None:
        self._consider_child = bool(consider_child)

    # ------------------------------------------------------------------ #
    #  Matching
    # ------------------------------------------------------------------ #

    def constraints(self) -> Tuple[np.ndarray, np.ndarray]:
        """Return ``(positions, values)`` of the entries used for matching."""
        if self._consider_child:
            positions = np.append(self._parent_positions, self._child_position)
        else:
            positions = self._parent_positions
        return positions, self._values[positions]

    # ------------------------------------------------------------------ #
    #  Derived quantities
    # ------------------------------------------------------------------ #

    def num_parameters(self) -> int:
        """Free parameters of the local conditional probability table."""
        return self.parents_range * (self.child_range - 1)

    def parents_index(self) -> int:
        """Mixed-radix code of the current parent combination.

        The first parent is the least significant digit, matching the
        order of :meth:`next_parents`, so codes run from 0 to
        ``parents_range - 1`` along the enumeration.
        """
        index = 0
        for position, size in zip(
            self._parent_positions[::-1], self._parent_sizes[::-1]
        ):
            index = index * int(size) + int(self._values[position])
        return index

    @property
    def child_value(self) -> int:
        return int(self._values[self._child_position])


class MutableConfiguration(Configuration):
    """Configuration built slice by slice from an observation.

    The past slices are copied from *observation* (length
    ``markov_lag * n``); the present slice starts as wildcards and is
    filled in with :meth:`update`.
    """

    def __init__(
        self,
        attributes: Sequence[Attribute],
        markov_lag: int,
        observation: Optional[Sequence[int]] = None,
    ) -> None:
        n = len(attributes)
        super().__init__(attributes, np.full((markov_lag + 1) * n, WILDCARD))
        if observation is not None:
            observation = np.asarray(observation, dtype=np.int64)
            if observation.shape != (markov_lag * n,):
                raise ValueError(
                    f"Observation must have {markov_lag * n} past values, "
                    f"got shape {observation.shape}"
                )
            self._values[: markov_lag * n] = observation

    def update(self, node: int, value: int) -> None:
        """Set the present-slice value of *node*."""
        n = len(self.attributes)
        if not 0 <= node < n:
            raise ValueError(f"Node {node} not in [0, {n})")
        if not 0 <= value < self.attributes[node].cardinality:
            raise ValueError(
                f"Value {value} out of range for attribute "
                f"'{self.attributes[node].name}'"
            )
        self._values[self.markov_lag * n + node] = value

    def apply_mask(
        self,
        parent_nodes: Sequence[int],
        child_node: int,
    ) -> Configuration:
        """Keep only the *parent_nodes* positions and zero the child.

        Parameters
        ----------
        parent_nodes : sequence of int
            Sorted shifted positions (past or present slice).
        child_node : int
            Present-slice variable whose position is set to 0.

        Returns
        -------
        Configuration
            A new configuration with every other entry a wildcard.
        """
        n = len(self.attributes)
        parents = [int(p) for p in parent_nodes]
        if sorted(set(parents)) != parents:
            raise ValueError(f"Parent nodes must be sorted and unique, got {parents}")
        masked = np.full_like(self._values, WILDCARD)
        masked[parents] = self._values[parents]
        masked[self.markov_lag * n + child_node] = 0
        return Configuration(self.attributes, masked)
