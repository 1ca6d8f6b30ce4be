"""End-to-end structure learning."""

from __future__ import annotations

import logging
from typing import Optional, Union

from tdbn.data.observations import Observations
from tdbn.networks.dbn import DynamicBayesNet
from tdbn.scoring.functions import ScoringFunction, get_scoring_function
from tdbn.structure.scores import Scores

logger = logging.getLogger(__name__)


def learn_structure(
    observations: Observations,
    max_parents: int,
    scoring: Union[str, ScoringFunction] = "mdl",
    root: Optional[int] = None,
    stationary_process: bool = False,
    n_workers: Optional[int] = None,
) -> DynamicBayesNet:
    """Learn a tree-augmented dynamic Bayesian network from *observations*.

    Parameters
    ----------
    observations : Observations
        Coded data.
    max_parents : int
        Maximum number of past-slice parents per node.
    scoring : str or ScoringFunction, optional
        ``"ll"``, ``"mdl"`` (default) or a scoring function instance.
    root : int, optional
        Node forced to be the root of every intra-slice tree.
    stationary_process : bool, optional
        Learn one transition network from all transitions pooled.
    n_workers : int, optional
        Worker processes for scoring transitions in parallel.

    Returns
    -------
    DynamicBayesNet

    Raises
    ------
    ValueError
        On an invalid *max_parents*, *scoring* name or *root*.

    Examples
    --------
    >>> obs = Observations.from_time_series(series)   # doctest: +SKIP
    >>> dbn = learn_structure(obs, max_parents=1)      # doctest: +SKIP
    >>> dbn[0].intra_edges                             # doctest: +SKIP
    """
    if isinstance(scoring, str):
        scoring = get_scoring_function(scoring)

    n = observations.num_attributes()
    if root is not None and not 0 <= root < n:
        raise ValueError(f"Root {root} not in [0, {n})")

    logger.info(
        "Learning structure: %d attributes, markov_lag=%d, %d transition(s), "
        "max_parents=%d, scoring=%r, stationary=%s",
        n,
        observations.markov_lag,
        observations.num_transitions(),
        max_parents,
        scoring,
        stationary_process,
    )
    scores = Scores(
        observations,
        max_parents,
        stationary_process=stationary_process,
        n_workers=n_workers,
    )
    dbn = scores.evaluate(scoring).to_dbn(root)
    logger.info("Learnt %r", dbn)
    return dbn
