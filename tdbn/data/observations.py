"""Coded observation data for dynamic Bayesian network learning.

Provides :class:`Observations`, the in-memory store consumed by the
scoring functions.  Data are kept per transition: for transition ``t`` a
2-D array whose rows are the subjects with complete data in slices
``t, ..., t + markov_lag`` and whose columns are the ``markov_lag * n``
past-slice values followed by the ``n`` present-slice values.

A negative transition index stands for *all* transitions, which is how a
stationary process is learnt.
"""

from __future__ import annotations

from typing import List, Optional, Sequence, Union

import numpy as np

from tdbn.core.configuration import Configuration
from tdbn.core.types import Attribute

# Code of a missing value in a time series passed to from_time_series
MISSING = -1


class Observations:
    """Coded observations grouped by transition.

    Parameters
    ----------
    data : array-like
        Either a 3-D integer array of shape
        ``(transitions, rows, (markov_lag + 1) * n)`` or a sequence of 2-D
        arrays, one per transition, whose row counts may differ.
    markov_lag : int, optional
        Number of past slices in each row.  Defaults to 1.
    attributes : list of Attribute, optional
        Variables of one slice.  If *None*, they are named ``X0..X{n-1}``
        and each cardinality is inferred as the largest observed code
        plus one.

    Raises
    ------
    ValueError
        If the data are empty, have a width incompatible with
        *markov_lag*, or contain codes outside an attribute's range.
    """

    def __init__(
        self,
        data: Union[np.ndarray, Sequence[np.ndarray]],
        markov_lag: int = 1,
        attributes: Optional[Sequence[Attribute]] = None,
    ) -> None:
        if markov_lag < 1:
            raise ValueError(f"markov_lag must be at least 1, got {markov_lag}")
        self.markov_lag: int = int(markov_lag)

        transitions = [np.asarray(d, dtype=np.int64) for d in data]
        if not transitions:
            raise ValueError("Observations need at least one transition")

        widths = {t.shape[1] for t in transitions if t.ndim == 2 and t.size}
        if len(widths) != 1:
            raise ValueError(
                "Every transition must be a 2-D array with the same, "
                "non-zero number of columns"
            )
        width = widths.pop()
        if width % (self.markov_lag + 1) != 0:
            raise ValueError(
                f"Rows of {width} values do not split into "
                f"{self.markov_lag + 1} slices"
            )
        n = width // (self.markov_lag + 1)

        # empty transitions (no complete subject) keep the common width
        transitions = [
            t if t.size else t.reshape(0, width) for t in transitions
        ]
        for t in transitions:
            if t.ndim != 2:
                raise ValueError(f"Transition data must be 2-D, got shape {t.shape}")

        all_rows = np.concatenate(transitions)
        if np.any(all_rows < 0):
            raise ValueError("Coded observations must be non-negative")

        if attributes is None:
            by_attribute = all_rows.reshape(-1, n)
            attributes = [
                Attribute.with_cardinality(f"X{i}", int(by_attribute[:, i].max()) + 1)
                for i in range(n)
            ]
        elif len(attributes) != n:
            raise ValueError(
                f"Expected {n} attributes per slice, got {len(attributes)}"
            )
        self.attributes: List[Attribute] = list(attributes)

        cardinalities = np.tile(
            [a.cardinality for a in self.attributes], self.markov_lag + 1
        )
        if all_rows.size and np.any(all_rows >= cardinalities):
            raise ValueError("Coded observation out of its attribute's range")

        for t in transitions:
            t.flags.writeable = False
        all_rows.flags.writeable = False
        self._transitions: List[np.ndarray] = transitions
        self._all_rows: np.ndarray = all_rows

    @classmethod
    def from_time_series(
        cls,
        series: np.ndarray,
        markov_lag: int = 1,
        attributes: Optional[Sequence[Attribute]] = None,
    ) -> "Observations":
        """Build transitions from per-subject time series.

        Parameters
        ----------
        series : array-like
            Integer array of shape ``(subjects, slices, n)``.  Missing
            values are coded as ``-1``; a subject may only miss whole
            slices.
        markov_lag : int, optional
            Number of past slices per transition.
        attributes : list of Attribute, optional
            See :class:`Observations`.

        Returns
        -------
        Observations
            One transition per window of ``markov_lag + 1`` consecutive
            slices.  A subject contributes a row to a transition only if
            every slice of the window is complete.

        Raises
        ------
        ValueError
            If *series* is not 3-D, is too short for *markov_lag*, or has
            a partially missing slice.
        """
        series = np.asarray(series, dtype=np.int64)
        if series.ndim != 3:
            raise ValueError(
                f"Time series must have shape (subjects, slices, attributes), "
                f"got {series.shape}"
            )
        _, num_slices, n = series.shape
        num_transitions = num_slices - markov_lag
        if num_transitions < 1:
            raise ValueError(
                f"{num_slices} time slices are too few for markov_lag={markov_lag}"
            )

        missing = series == MISSING
        slice_missing = missing.all(axis=2)
        if np.any(missing.any(axis=2) & ~slice_missing):
            subject, ts = np.argwhere(missing.any(axis=2) & ~slice_missing)[0]
            raise ValueError(
                f"Subject {subject} has missing values in slice {ts}; "
                f"only whole slices may be missing"
            )
        complete = ~slice_missing

        data = []
        for t in range(num_transitions):
            present = complete[:, t : t + markov_lag + 1].all(axis=1)
            window = series[present, t : t + markov_lag + 1, :]
            data.append(window.reshape(-1, (markov_lag + 1) * n))

        return cls(data, markov_lag=markov_lag, attributes=attributes)

    # ------------------------------------------------------------------ #
    #  Queries
    # ------------------------------------------------------------------ #

    def num_attributes(self) -> int:
        return len(self.attributes)

    def num_transitions(self) -> int:
        return len(self._transitions)

    def num_observations(self, transition: int = -1) -> int:
        """Return the number of rows of *transition* (all if negative)."""
        return self.rows(transition).shape[0]

    def rows(self, transition: int = -1) -> np.ndarray:
        """Return the read-only row matrix of *transition* (all if negative)."""
        if transition < 0:
            return self._all_rows
        if transition >= len(self._transitions):
            raise ValueError(
                f"Transition {transition} not in [0, {len(self._transitions)})"
            )
        return self._transitions[transition]

    def count(self, configuration: Configuration, transition: int = -1) -> int:
        """Count the rows of *transition* that match *configuration*.

        A negative *transition* counts matches over all transitions.
        """
        rows = self.rows(transition)
        positions, values = configuration.constraints()
        if positions.size == 0:
            return rows.shape[0]
        return int(np.count_nonzero((rows[:, positions] == values).all(axis=1)))

    def __repr__(self) -> str:
        return (
            f"Observations(attributes={[a.name for a in self.attributes]}, "
            f"markov_lag={self.markov_lag}, "
            f"rows_per_transition={[t.shape[0] for t in self._transitions]})"
        )
