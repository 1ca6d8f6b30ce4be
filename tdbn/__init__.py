"""tdbn: structure learning for tree-augmented dynamic Bayesian networks.

This package learns the structure of a dynamic Bayesian network over
discretized time-series variables.  For every transition it searches the
best-scoring set of past-slice parents of each variable, and connects the
variables of the present slice with an optimum branching (a maximum-weight
spanning arborescence).
"""

try:
    from tdbn._version import version as __version__
except ImportError:
    __version__ = "0.1.0"

from .core.types import Attribute, Edge
from .data.observations import Observations
from .networks.dbn import DynamicBayesNet, TransitionNetwork
from .scoring.functions import LLScoringFunction, MDLScoringFunction
from .structure.branching import optimum_branching
from .structure.learn import learn_structure
from .structure.scores import Scores

__all__ = [
    "Attribute",
    "Edge",
    "Observations",
    "DynamicBayesNet",
    "TransitionNetwork",
    "LLScoringFunction",
    "MDLScoringFunction",
    "optimum_branching",
    "learn_structure",
    "Scores",
]
