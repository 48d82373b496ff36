"""
Path and result types for many-to-many shortest paths, plus the built-in
many-to-many algorithms the verification harness is run against.

An algorithm is plugged in as a factory: any callable taking a graph and
returning an object with

    get_many_to_many_paths(sources, targets) -> ManyToManyShortestPaths

Absent (None) source or target sets raise ValueError before any traversal.
Unreachable pairs report math.inf and no path, a vertex paired with itself
reports weight 0 and the single vertex path [v].
"""

import math
from collections import deque
from dataclasses import dataclass
from heapq import heappop, heappush
from itertools import count
from typing import Dict, Hashable, Iterable, List, Optional, Tuple

import networkx as nx


@dataclass(frozen=True)
class GraphPath:
    start: Hashable
    end: Hashable
    vertices: Optional[List[Hashable]]
    weight: float


class ManyToManyShortestPaths:
    """Distances and vertex lists from every source to every target."""

    def __init__(self, sources: Iterable, targets: Iterable,
                 distances: Dict[Hashable, Dict[Hashable, float]],
                 paths: Dict[Hashable, Dict[Hashable, List[Hashable]]]):
        self.sources = frozenset(sources)
        self.targets = frozenset(targets)
        self._distances = distances
        self._paths = paths

    def get_weight(self, source, target) -> float:
        return self._distances[source].get(target, math.inf)

    def get_path(self, source, target) -> Optional[GraphPath]:
        vertices = self._paths[source].get(target)
        if vertices is None:
            return None
        return GraphPath(source, target, list(vertices), self._distances[source][target])

    def __repr__(self) -> str:
        return f"ManyToManyShortestPaths(sources={len(self.sources)}, targets={len(self.targets)})"


# ------------- Helpers -------------

def _require_sets(sources, targets) -> None:
    if sources is None:
        raise ValueError("sources must not be None")
    if targets is None:
        raise ValueError("targets must not be None")


def _edge_weight(g: "nx.Graph", data: dict, weight: str) -> float:
    # parallel edges: only the lightest one can be on a shortest path
    if g.is_multigraph():
        return min(attr.get(weight, 1.0) for attr in data.values())
    return data.get(weight, 1.0)


def _walk_back(pred: Dict[Hashable, Optional[Hashable]], target) -> List[Hashable]:
    path = [target]
    while pred[path[-1]] is not None:
        path.append(pred[path[-1]])
    path.reverse()
    return path


def _collect(dist: Dict, pred: Dict, targets) -> Tuple[Dict, Dict]:
    reached = [t for t in targets if t in dist]
    return {t: dist[t] for t in reached}, {t: _walk_back(pred, t) for t in reached}


# ------------- Algorithms -------------

class DefaultManyToManyShortestPaths:
    """One networkx single-source Dijkstra run per source vertex."""

    def __init__(self, graph: "nx.Graph", weight: str = "weight"):
        self.graph = graph
        self.weight = weight

    def get_many_to_many_paths(self, sources, targets) -> ManyToManyShortestPaths:
        _require_sets(sources, targets)
        distances, paths = {}, {}
        for s in sources:
            dist, path = nx.single_source_dijkstra(self.graph, s, weight=self.weight)
            distances[s] = {t: float(dist[t]) for t in targets if t in dist}
            paths[s] = {t: path[t] for t in targets if t in dist}
        return ManyToManyShortestPaths(sources, targets, distances, paths)


class DijkstraManyToManyShortestPaths:
    """
    Heap based Dijkstra from each source that stops as soon as every target
    has been settled. Labels are only replaced on strict improvement, so among
    equal weight paths the first one discovered is kept.
    """

    def __init__(self, graph: "nx.Graph", weight: str = "weight"):
        self.graph = graph
        self.weight = weight

    def _search(self, source, targets) -> Tuple[Dict, Dict]:
        g = self.graph
        dist: Dict[Hashable, float] = {}
        seen = {source: 0.0}
        pred: Dict[Hashable, Optional[Hashable]] = {source: None}
        remaining = set(targets)
        c = count()
        fringe = [(0.0, next(c), source)]
        while fringe and remaining:
            d, _, v = heappop(fringe)
            if v in dist:
                continue
            dist[v] = d
            remaining.discard(v)
            for u, data in g.adj[v].items():
                if u in dist:
                    continue
                vu_dist = d + _edge_weight(g, data, self.weight)
                if u not in seen or vu_dist < seen[u]:
                    seen[u] = vu_dist
                    pred[u] = v
                    heappush(fringe, (vu_dist, next(c), u))
        return dist, pred

    def get_many_to_many_paths(self, sources, targets) -> ManyToManyShortestPaths:
        _require_sets(sources, targets)
        distances, paths = {}, {}
        for s in sources:
            dist, pred = self._search(s, targets)
            distances[s], paths[s] = _collect(dist, pred, targets)
        return ManyToManyShortestPaths(sources, targets, distances, paths)


class SPFAManyToManyShortestPaths:
    """Queue based label correcting search (SPFA) from each source."""

    def __init__(self, graph: "nx.Graph", weight: str = "weight"):
        self.graph = graph
        self.weight = weight

    def _search(self, source) -> Tuple[Dict, Dict]:
        g = self.graph
        dist = {source: 0.0}
        pred: Dict[Hashable, Optional[Hashable]] = {source: None}
        inq = {source}
        q = deque([source])
        while q:
            u = q.popleft()
            inq.discard(u)
            du = dist[u]
            for v, data in g.adj[u].items():
                nd = du + _edge_weight(g, data, self.weight)
                if nd < dist.get(v, math.inf):
                    dist[v] = nd
                    pred[v] = u
                    if v not in inq:
                        q.append(v)
                        inq.add(v)
        return dist, pred

    def get_many_to_many_paths(self, sources, targets) -> ManyToManyShortestPaths:
        _require_sets(sources, targets)
        distances, paths = {}, {}
        for s in sources:
            dist, pred = self._search(s)
            distances[s], paths[s] = _collect(dist, pred, targets)
        return ManyToManyShortestPaths(sources, targets, distances, paths)


ALGO_FUN = {
    "default": DefaultManyToManyShortestPaths,
    "dijkstra": DijkstraManyToManyShortestPaths,
    "spfa": SPFAManyToManyShortestPaths,
}
