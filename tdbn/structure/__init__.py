"""Structure search for tdbn: candidate scores and optimum branchings."""

from tdbn.structure.branching import DisjointSets, EdgeForest, optimum_branching
from tdbn.structure.learn import learn_structure
from tdbn.structure.scores import Scores, generate_combinations

__all__ = [
    "DisjointSets",
    "EdgeForest",
    "Scores",
    "generate_combinations",
    "learn_structure",
    "optimum_branching",
]
