#!/usr/bin/env python3
"""
-Requirements:
 - Python 3.9+
 - networkx >= 3.0
-Usage examples:
 python verify_m2m.py --algos default,dijkstra,spfa
 python verify_m2m.py --algos dijkstra --scenarios random_graphs --configs 100:5:10:10,1000:3:20:50 --iterations 5
 python verify_m2m.py --algos spfa --seed 42 --out results.csv
-
-Scenarios:
 Fixed scenarios run an algorithm on hand built graphs and compare against
 literal expected weights and vertex lists. The random_graphs scenario builds
 connected random multigraphs and compares every (source, target) pair against
 networkx single source Dijkstra.
-
-Notes:
 - Random graphs are directed multigraphs, weights are uniform in [0, 1).
 - One seeded random.Random drives topology, then weights, then sampling, so a
   given --seed always reproduces the same graphs and vertex sets.
 - Weights are compared with an absolute tolerance (default 1e-9); vertex lists
   must match exactly, ties between equal weight paths are not tolerated.
"""

import argparse
import csv
import math
import os
import random
import sys
import time
from dataclasses import dataclass
from functools import partial
from typing import Callable, Dict, Hashable, Iterable, List, NamedTuple, Optional, Sequence, Set, Tuple

import networkx as nx

from m2m_paths import ALGO_FUN, GraphPath, ManyToManyShortestPaths

SEED = 17
TOLERANCE = 1e-9

# (num_vertices, vertex_degree, num_sources, num_targets)
DEFAULT_RANDOM_CONFIGS: List[Tuple[int, int, int, int]] = [
    (100, 5, 10, 10),
    (100, 5, 1, 50),
    (100, 10, 50, 1),
    (1000, 3, 10, 10),
    (1000, 5, 20, 5),
]
DEFAULT_ITERATIONS = 10

Factory = Callable[["nx.Graph"], object]


def get_or_generate_seed(seed: Optional[int] = None) -> int:
    """Generate a random seed if none provided and print it for reproducibility."""
    if seed is None:
        seed = random.randint(0, 2**32 - 1)
        print(f"Using generated seed: {seed}")
    return seed

# ------------- Fixtures -------------

SIMPLE_GRAPH_EDGES = [
    (1, 2, 3), (1, 4, 1),
    (2, 3, 3), (2, 5, 1),
    (3, 6, 1),
    (4, 5, 1), (4, 7, 1),
    (5, 6, 1), (5, 8, 1),
    (6, 9, 1),
    (7, 8, 3), (8, 9, 3),
]

# ring 1..6, two parallel edges of distinct weight in each direction
MULTIGRAPH_EDGES = [
    (1, 2, 1), (1, 2, 2), (2, 1, 3), (2, 1, 4),
    (2, 3, 8), (2, 3, 7), (3, 2, 6), (3, 2, 5),
    (3, 4, 9), (3, 4, 10), (4, 3, 11), (4, 3, 12),
    (4, 5, 16), (4, 5, 15), (5, 4, 14), (5, 4, 13),
    (5, 6, 17), (5, 6, 18), (6, 5, 19), (6, 5, 20),
    (6, 1, 24), (6, 1, 23), (1, 6, 22), (1, 6, 21),
]


def get_simple_graph() -> "nx.Graph":
    g = nx.Graph()
    g.add_weighted_edges_from(SIMPLE_GRAPH_EDGES)
    return g


def get_multigraph() -> "nx.MultiDiGraph":
    g = nx.MultiDiGraph()
    g.add_weighted_edges_from(MULTIGRAPH_EDGES)
    return g


def get_isolated_graph(vertices: Iterable[Hashable]) -> "nx.MultiDiGraph":
    g = nx.MultiDiGraph()
    g.add_nodes_from(vertices)
    return g

# ------------- Random graphs -------------

@dataclass(frozen=True)
class RandomGraphSpec:
    num_vertices: int
    num_edges: int
    seed: int = SEED


def add_gnm_edges(g: "nx.MultiDiGraph", m: int, rng: random.Random) -> None:
    """Add m edges, each between a uniformly drawn ordered pair of distinct vertices."""
    vertices = list(g.nodes())
    n = len(vertices)
    if n < 2:
        return
    for _ in range(m):
        u = vertices[rng.randrange(n)]
        v = vertices[rng.randrange(n)]
        while v == u:
            v = vertices[rng.randrange(n)]
        g.add_edge(u, v)


def make_connected(g: "nx.MultiDiGraph") -> None:
    """
    Chain the vertices in iteration order with an edge in both directions
    between neighbours. Always adds 2 * (n - 1) edges and leaves the graph
    strongly connected through the chain alone; it does not look at the
    edges already present.
    """
    vertices = list(g.nodes())
    for u, v in zip(vertices, vertices[1:]):
        g.add_edge(u, v)
        g.add_edge(v, u)


def assign_weights(g: "nx.Graph", rng: random.Random) -> None:
    for _, _, data in g.edges(data=True):
        data["weight"] = rng.random()


def generate_random_graph(spec: RandomGraphSpec, rng: Optional[random.Random] = None) -> "nx.MultiDiGraph":
    """
    G(n, M) multigraph with M = num_edges - num_vertices + 1 random edges,
    made strongly connected and then weighted. The result has
    (num_edges - num_vertices + 1) + 2 * (num_vertices - 1) edges, so
    num_edges is a lower bound rather than the exact edge count.
    """
    if rng is None:
        rng = random.Random(spec.seed)
    g = nx.MultiDiGraph()
    g.add_nodes_from(range(spec.num_vertices))
    add_gnm_edges(g, spec.num_edges - spec.num_vertices + 1, rng)
    make_connected(g)
    assign_weights(g, rng)
    return g


def get_random_vertices(graph: "nx.Graph", k: int, rng: random.Random) -> Set[Hashable]:
    vertices = list(graph.nodes())
    if k > len(vertices):
        raise ValueError(f"Cannot sample {k} distinct vertices from a graph with {len(vertices)}")
    result: Set[Hashable] = set()
    for _ in range(k):
        v = vertices[rng.randrange(len(vertices))]
        while v in result:
            v = vertices[rng.randrange(len(vertices))]
        result.add(v)
    return result

# ------------- Reference -------------

class ReferenceOracle:
    """
    Ground truth shortest paths from networkx single source Dijkstra.

    Built once per graph. The search tree of the most recently queried
    source is kept, asking about another source recomputes it.
    """

    def __init__(self, graph: "nx.Graph", weight: str = "weight"):
        self.graph = graph
        self.weight = weight
        self._source = None
        self._dist: Optional[Dict[Hashable, float]] = None
        self._paths: Optional[Dict[Hashable, List[Hashable]]] = None

    def _load(self, source) -> None:
        if self._dist is None or self._source != source:
            self._dist, self._paths = nx.single_source_dijkstra(self.graph, source, weight=self.weight)
            self._source = source

    def get_path(self, source, target) -> GraphPath:
        self._load(source)
        if target not in self._dist:
            return GraphPath(source, target, None, math.inf)
        return GraphPath(source, target, list(self._paths[target]), float(self._dist[target]))

    def get_weight(self, source, target) -> float:
        return self.get_path(source, target).weight

# ------------- Validation -------------

class ValidationMismatch(AssertionError):
    """An algorithm reported a weight or path that disagrees with the expected one."""

    def __init__(self, source, target, what: str, expected, actual):
        self.source = source
        self.target = target
        self.expected = expected
        self.actual = actual
        super().__init__(f"({source}, {target}): expected {what} {expected!r}, got {actual!r}")


def same_weight(expected: float, actual: float, tolerance: float = TOLERANCE) -> bool:
    # unreachable is a status, not a number to be close to
    if math.isinf(expected) or math.isinf(actual):
        return expected == actual
    return abs(expected - actual) <= tolerance


def _check_pair(paths: ManyToManyShortestPaths, s, t, expected_weight: float,
                expected_vertices: Optional[Sequence], tolerance: float) -> None:
    actual_weight = paths.get_weight(s, t)
    if not same_weight(expected_weight, actual_weight, tolerance):
        raise ValidationMismatch(s, t, "weight", expected_weight, actual_weight)

    actual = paths.get_path(s, t)
    # unreachable means no path object at all
    if expected_vertices is None:
        if actual is not None:
            raise ValidationMismatch(s, t, "path", None, actual)
        return
    expected_vertices = list(expected_vertices)
    if actual is None:
        raise ValidationMismatch(s, t, "path", expected_vertices, None)
    if (actual.start, actual.end) != (s, t):
        raise ValidationMismatch(s, t, "path endpoints", (s, t), (actual.start, actual.end))
    actual_vertices = None if actual.vertices is None else list(actual.vertices)
    if actual_vertices != expected_vertices:
        raise ValidationMismatch(s, t, "path", expected_vertices, actual_vertices)
    if not same_weight(expected_weight, actual.weight, tolerance):
        raise ValidationMismatch(s, t, "path weight", expected_weight, actual.weight)


def assert_correct_paths(graph: "nx.Graph", paths: ManyToManyShortestPaths,
                         sources: Iterable, targets: Iterable,
                         oracle: Optional[ReferenceOracle] = None,
                         tolerance: float = TOLERANCE) -> None:
    """Compare every (source, target) pair of ``paths`` with the reference oracle."""
    if oracle is None:
        oracle = ReferenceOracle(graph)
    targets = list(targets)
    for s in sources:
        for t in targets:
            expected = oracle.get_path(s, t)
            _check_pair(paths, s, t, expected.weight, expected.vertices, tolerance)


def assert_expected_paths(paths: ManyToManyShortestPaths,
                          expected: Dict[Tuple[Hashable, Hashable], Tuple[float, Optional[Sequence]]],
                          tolerance: float = TOLERANCE) -> None:
    """Compare ``paths`` with a literal ``{(s, t): (weight, vertices or None)}`` table."""
    for (s, t), (weight, vertices) in expected.items():
        _check_pair(paths, s, t, weight, vertices, tolerance)

# ------------- Scenarios -------------

SIMPLE_GRAPH_EXPECTED = {
    (4, 8): (2.0, [4, 5, 8]),
    (4, 9): (3.0, [4, 5, 6, 9]),
    (4, 6): (2.0, [4, 5, 6]),
    (1, 8): (3.0, [1, 4, 5, 8]),
    (1, 9): (4.0, [1, 4, 5, 6, 9]),
    (1, 6): (3.0, [1, 4, 5, 6]),
    (2, 8): (2.0, [2, 5, 8]),
    (2, 9): (3.0, [2, 5, 6, 9]),
    (2, 6): (2.0, [2, 5, 6]),
}

SIMPLE_GRAPH_SELF_EXPECTED = {
    (1, 1): (0.0, [1]),
    (5, 5): (0.0, [5]),
    (9, 9): (0.0, [9]),
    (1, 5): (2.0, [1, 4, 5]),
    (5, 1): (2.0, [5, 4, 1]),
    (1, 9): (4.0, [1, 4, 5, 6, 9]),
    (9, 1): (4.0, [9, 6, 5, 4, 1]),
    (5, 9): (2.0, [5, 6, 9]),
    (9, 5): (2.0, [9, 6, 5]),
}

MULTIGRAPH_EXPECTED = {
    (1, 2): (1.0, [1, 2]),
    (1, 5): (32.0, [1, 2, 3, 4, 5]),
    (4, 2): (16.0, [4, 3, 2]),
    (4, 5): (15.0, [4, 5]),
}

MULTIGRAPH_SELF_EXPECTED = {
    (2, 2): (0.0, [2]),
    (4, 4): (0.0, [4]),
    (6, 6): (0.0, [6]),
    (2, 4): (16.0, [2, 3, 4]),
    (4, 2): (16.0, [4, 3, 2]),
    (2, 6): (24.0, [2, 1, 6]),
    (6, 2): (24.0, [6, 1, 2]),
    (4, 6): (32.0, [4, 5, 6]),
    (6, 4): (32.0, [6, 5, 4]),
}


def _expect_value_error(algorithm, sources, targets) -> None:
    try:
        algorithm.get_many_to_many_paths(sources, targets)
    except ValueError:
        return
    raise AssertionError(f"expected ValueError for sources={sources!r}, targets={targets!r}")


def check_empty_graph(factory: Factory) -> None:
    paths = factory(nx.MultiDiGraph()).get_many_to_many_paths(set(), set())
    if paths is None:
        raise AssertionError("no result returned for empty sources and targets")


def check_sources_is_none(factory: Factory) -> None:
    _expect_value_error(factory(nx.MultiDiGraph()), None, set())


def check_targets_is_none(factory: Factory) -> None:
    _expect_value_error(factory(nx.MultiDiGraph()), set(), None)


def check_no_path(factory: Factory) -> None:
    graph = get_isolated_graph([1, 2])
    paths = factory(graph).get_many_to_many_paths({1}, {2})
    assert_expected_paths(paths, {(1, 2): (math.inf, None)})


def check_no_path_multi_set(factory: Factory) -> None:
    graph = get_isolated_graph([1, 2, 3])
    paths = factory(graph).get_many_to_many_paths({1}, {2, 3})
    assert_expected_paths(paths, {(1, 2): (math.inf, None), (1, 3): (math.inf, None)})


def _check_fixture(factory: Factory, graph, sources, targets, expected) -> None:
    paths = factory(graph).get_many_to_many_paths(sources, targets)
    assert_expected_paths(paths, expected)
    assert_correct_paths(graph, paths, sources, targets)


def check_simple_graph_different_sources_targets(factory: Factory) -> None:
    _check_fixture(factory, get_simple_graph(), {4, 1, 2}, {8, 9, 6}, SIMPLE_GRAPH_EXPECTED)


def check_multigraph_different_sources_targets(factory: Factory) -> None:
    _check_fixture(factory, get_multigraph(), {1, 4}, {2, 5}, MULTIGRAPH_EXPECTED)


def check_simple_graph_sources_equal_targets(factory: Factory) -> None:
    _check_fixture(factory, get_simple_graph(), {1, 5, 9}, {1, 5, 9}, SIMPLE_GRAPH_SELF_EXPECTED)


def check_multigraph_sources_equal_targets(factory: Factory) -> None:
    _check_fixture(factory, get_multigraph(), {2, 4, 6}, {2, 4, 6}, MULTIGRAPH_SELF_EXPECTED)


def check_on_graph(factory: Factory, graph: "nx.Graph", sources: Set, targets: Set,
                   oracle: Optional[ReferenceOracle] = None, tolerance: float = TOLERANCE) -> None:
    """Validate sources x targets and sources x sources against the oracle."""
    if oracle is None:
        oracle = ReferenceOracle(graph)
    algorithm = factory(graph)
    to_targets = algorithm.get_many_to_many_paths(sources, targets)
    to_sources = algorithm.get_many_to_many_paths(sources, sources)
    assert_correct_paths(graph, to_targets, sources, targets, oracle, tolerance)
    assert_correct_paths(graph, to_sources, sources, sources, oracle, tolerance)


def check_random_graphs(factory: Factory,
                        configs: Sequence[Tuple[int, int, int, int]] = DEFAULT_RANDOM_CONFIGS,
                        iterations: int = DEFAULT_ITERATIONS,
                        rng: Optional[random.Random] = None,
                        seed: int = SEED,
                        tolerance: float = TOLERANCE) -> int:
    """
    One random graph per config row, then ``iterations`` fresh source/target
    samples on that same graph. Returns the number of graphs checked.
    """
    if rng is None:
        rng = random.Random(seed)
    for num_vertices, vertex_degree, num_sources, num_targets in configs:
        graph = generate_random_graph(RandomGraphSpec(num_vertices, vertex_degree * num_vertices, seed), rng)
        oracle = ReferenceOracle(graph)
        for _ in range(iterations):
            sources = get_random_vertices(graph, num_sources, rng)
            targets = get_random_vertices(graph, num_targets, rng)
            check_on_graph(factory, graph, sources, targets, oracle, tolerance)
    return len(configs)


SCENARIOS: Dict[str, Callable[[Factory], object]] = {
    "empty_graph": check_empty_graph,
    "sources_is_none": check_sources_is_none,
    "targets_is_none": check_targets_is_none,
    "no_path": check_no_path,
    "no_path_multi_set": check_no_path_multi_set,
    "simple_graph_different_sources_targets": check_simple_graph_different_sources_targets,
    "multigraph_different_sources_targets": check_multigraph_different_sources_targets,
    "simple_graph_sources_equal_targets": check_simple_graph_sources_equal_targets,
    "multigraph_sources_equal_targets": check_multigraph_sources_equal_targets,
    "random_graphs": check_random_graphs,
}


class ScenarioResult(NamedTuple):
    name: str
    ok: bool
    message: str


def run_scenarios(factory: Factory, names: Optional[Sequence[str]] = None,
                  scenarios: Optional[Dict[str, Callable[[Factory], object]]] = None) -> List[ScenarioResult]:
    """Run the named scenarios in order, recording each failure instead of stopping."""
    scenarios = SCENARIOS if scenarios is None else scenarios
    names = list(scenarios) if names is None else list(names)
    unknown = [n for n in names if n not in scenarios]
    if unknown:
        raise ValueError(f"Unknown scenario(s): {', '.join(unknown)}")

    results = []
    for name in names:
        try:
            scenarios[name](factory)
        except Exception as e:
            msg = str(e).splitlines()[0] if str(e) else ""
            results.append(ScenarioResult(name, False, f"{type(e).__name__}: {msg}"[:200]))
        else:
            results.append(ScenarioResult(name, True, ""))
    return results

# ------------- Command line -------------

def parse_configs(text: str) -> List[Tuple[int, int, int, int]]:
    """Parse ``n:degree:sources:targets`` rows separated by commas."""
    configs = []
    for row in text.split(","):
        row = row.strip()
        if not row:
            continue
        parts = row.split(":")
        if len(parts) != 4:
            raise ValueError(f"Bad config {row!r}, expected n:degree:sources:targets")
        n, degree, num_sources, num_targets = map(int, parts)
        if n < 1 or degree < 1 or num_sources > n or num_targets > n:
            raise ValueError(f"Bad config {row!r}: need n >= 1, degree >= 1, sources and targets <= n")
        configs.append((n, degree, num_sources, num_targets))
    return configs


def main(argv: Optional[Sequence[str]] = None) -> None:
    parser = argparse.ArgumentParser(description="Many-to-many shortest paths verification harness")
    parser.add_argument("--algos", type=str, default=",".join(ALGO_FUN),
                        help=f"Comma separated. {','.join(ALGO_FUN)}")
    parser.add_argument("--scenarios", type=str, default=None,
                        help="Comma separated scenario names. Default: all")
    parser.add_argument("--list", action="store_true", help="List scenarios and exit")

    r = parser.add_argument_group("Random graphs")
    r.add_argument("--configs", type=str, default=None,
                   help="Comma separated n:degree:sources:targets rows")
    r.add_argument("--iterations", type=int, default=DEFAULT_ITERATIONS,
                   help="Source/target samples per random graph")
    r.add_argument("--seed", type=int, default=SEED, help="Random seed for reproducibility")
    r.add_argument("--random-seed", action="store_true", help="Ignore --seed and draw a fresh one")
    r.add_argument("--tolerance", type=float, default=TOLERANCE)

    parser.add_argument("--out", type=str, default=None, help="Append results to this CSV file")

    args = parser.parse_args(argv)

    if args.list:
        for name in SCENARIOS:
            print(name)
        return

    algos = [a.strip() for a in args.algos.split(",") if a.strip()]
    for a in algos:
        if a not in ALGO_FUN:
            parser.error(f"Unknown algo {a}")

    names = None
    if args.scenarios:
        names = [s.strip() for s in args.scenarios.split(",") if s.strip()]
        for name in names:
            if name not in SCENARIOS:
                parser.error(f"Unknown scenario {name}")

    try:
        configs = parse_configs(args.configs) if args.configs else DEFAULT_RANDOM_CONFIGS
    except ValueError as e:
        parser.error(str(e))

    seed = get_or_generate_seed(None if args.random_seed else args.seed)

    scenarios = dict(SCENARIOS)
    scenarios["random_graphs"] = partial(check_random_graphs, configs=configs,
                                         iterations=args.iterations, seed=seed,
                                         tolerance=args.tolerance)

    failed = 0
    rows = []
    run_id = int(time.time())
    for algo in algos:
        for res in run_scenarios(ALGO_FUN[algo], names, scenarios):
            if res.ok:
                print(f"OK   {algo:<10} {res.name}")
            else:
                failed += 1
                print(f"FAIL {algo:<10} {res.name}: {res.message}")
            rows.append([run_id, algo, res.name, seed, "yes" if res.ok else "no", res.message])

    if args.out:
        need_header = not os.path.exists(args.out)
        with open(args.out, "a", newline="") as f:
            writer = csv.writer(f)
            if need_header:
                writer.writerow(["run_id", "algo", "scenario", "seed", "ok", "message"])
            writer.writerows(rows)
        print(f"Wrote results to {args.out}", file=sys.stderr)

    if failed:
        raise SystemExit(f"{failed} scenario run(s) failed")
    print("All scenarios passed.")


if __name__ == "__main__":
    main()
