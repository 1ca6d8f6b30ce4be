"""Example usage of the tdbn package.

This example demonstrates the core features of the tdbn package including:
- Building observations from coded time series
- Scoring candidate parent sets and inspecting the weight matrix
- Finding an optimum branching
- Learning and comparing dynamic Bayesian network structures
"""

from tdbn import (
    Edge,
    DynamicBayesNet, TransitionNetwork,
    MDLScoringFunction,
    Observations, Scores,
    learn_structure, optimum_branching,
)
import numpy as np


def _simulate(subjects=300, slices=4, seed=7):
    """Binary series: x0 persists, x1 follows x0, x2 follows x1."""
    rng = np.random.default_rng(seed)
    series = np.zeros((subjects, slices, 3), dtype=np.int64)
    series[:, 0, 0] = rng.integers(0, 2, subjects)
    for t in range(slices):
        if t > 0:
            keep = rng.random(subjects) < 0.9
            series[:, t, 0] = np.where(keep, series[:, t - 1, 0], 1 - series[:, t - 1, 0])
        noise = rng.random(subjects) < 0.1
        series[:, t, 1] = np.where(noise, 1 - series[:, t, 0], series[:, t, 0])
        noise = rng.random(subjects) < 0.1
        series[:, t, 2] = np.where(noise, 1 - series[:, t, 1], series[:, t, 1])
    return series


def observations_example():
    """Demonstrate building observations."""
    print("=" * 60)
    print("Observations Example")
    print("=" * 60)

    series = _simulate()
    series[0, 2, :] = -1  # subject 0 misses slice 2
    obs = Observations.from_time_series(series)
    print(f"\n   {obs}")
    print(f"   Rows per transition: {[obs.num_observations(t) for t in range(obs.num_transitions())]}")
    return obs


def scores_example(obs):
    """Demonstrate the candidate search."""
    print("\n" + "=" * 60)
    print("Candidate Search Example")
    print("=" * 60)

    scores = Scores(obs, max_parents=1).evaluate(MDLScoringFunction())
    print(f"\n   Candidate parent sets: {scores.parent_sets}")
    print(f"   Best past parents (t=0): {scores.parent_nodes_past(0)}")
    print("   Weight matrix (t=0):")
    for row in scores.scores_matrix(0):
        print("     " + " ".join(f"{w:9.2f}" for w in row))
    print(f"   Intra-slice tree (t=0): {[str(e) for e in scores.branching(0)]}")


def branching_example():
    """Demonstrate the arborescence solver on its own."""
    print("\n" + "=" * 60)
    print("Optimum Branching Example")
    print("=" * 60)

    w = np.array([[0, 1, 5], [4, 0, 1], [1, 3, 0]])
    for root in (None, 1):
        edges = optimum_branching(w, root=root)
        total = sum(e.weight for e in edges)
        print(f"\n   root={root}: {[str(e) for e in edges]} (weight {total})")


def learning_example(obs):
    """Demonstrate end-to-end learning and comparison."""
    print("\n" + "=" * 60)
    print("Structure Learning Example")
    print("=" * 60)

    learnt = learn_structure(obs, max_parents=1, root=0, stationary_process=True)
    net = learnt[0]
    print(f"\n   {learnt}")
    print(f"   Intra edges: {[str(e) for e in net.intra_edges]}")
    print(f"   Inter edges: {[str(e) for e in net.inter_edges]}")
    print(f"   Topological order: {net.topological_order}")

    truth = TransitionNetwork(
        obs.attributes, 1, [Edge(0, 1), Edge(1, 2)], [Edge(0, 0)]
    )
    (result,) = DynamicBayesNet.compare(DynamicBayesNet(obs.attributes, [truth]), learnt)
    print(f"   Precision: {result.precision:.2f}, Recall: {result.recall:.2f}, F1: {result.f1:.2f}")


if __name__ == "__main__":
    print("\n" + "=" * 60)
    print("tdbn Package Examples")
    print("=" * 60)

    observations = observations_example()
    scores_example(observations)
    branching_example()
    learning_example(observations)

    print("\n" + "=" * 60)
    print("Examples completed successfully!")
    print("=" * 60 + "\n")
