"""
Package Clustering Layout Planner

Groups the visible part of a call graph by source package and assigns every
visible node a package index and an intra-package depth, then derives
provisional coordinates:

- packages are laid out left to right: if package A calls into package B,
  A gets a smaller index than B (up to cycles between packages);
- inside a package, nodes are arranged in depth columns by longest call
  distance from the package's own entry points.

A flat level layout (no package grouping) is provided for isolated subgraphs.

Author: Olivier Vitrac, PhD, HDR | olivier.vitrac@adservio.fr | Adservio | 2026-10-19
"""

import logging
from collections import deque
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence, Set, Tuple

from .config import LayoutConfig
from .graph_model import Edge, GraphModel, Node

logger = logging.getLogger(__name__)

Position = Tuple[float, float]


@dataclass
class PackageCluster:
    """Visible nodes of one package."""
    name: str
    node_ids: List[str] = field(default_factory=list)
    depends_on: Set[str] = field(default_factory=set)

    def to_dict(self) -> Dict[str, object]:
        return {
            "name": self.name,
            "nodeIds": list(self.node_ids),
            "dependsOn": sorted(self.depends_on),
        }


@dataclass
class NodePlacement:
    """Cluster coordinates of one visible node."""
    node_id: str
    package: str
    package_index: int
    depth: int
    x: float
    y: float


@dataclass
class ClusterPlan:
    """
    Result of a planning pass.

    Attributes:
        clusters: Visible package clusters, left to right
        placements: node id -> NodePlacement for every visible node
        package_order: Order of all packages of the full graph
    """
    clusters: List[PackageCluster] = field(default_factory=list)
    placements: Dict[str, NodePlacement] = field(default_factory=dict)
    package_order: List[str] = field(default_factory=list)

    def package_index(self, package: str) -> Optional[int]:
        for index, cluster in enumerate(self.clusters):
            if cluster.name == package:
                return index
        return None

    def positions(self) -> Dict[str, Position]:
        return {node_id: (p.x, p.y) for node_id, p in self.placements.items()}

    def to_dict(self) -> Dict[str, object]:
        return {
            "packageOrder": list(self.package_order),
            "clusters": [cluster.to_dict() for cluster in self.clusters],
        }


# =============================================================================
# Level computation
# =============================================================================

def _forward_edges(
    roots: List[str],
    children: Dict[str, List[str]],
) -> Dict[str, List[str]]:
    """Drop edges that close a cycle during a DFS from ``roots``."""
    visiting: Set[str] = set()
    visited: Set[str] = set()
    kept: Dict[str, List[str]] = {node_id: [] for node_id in children}

    for root in roots:
        if root in visited:
            continue
        visiting.add(root)
        stack = [(root, iter(children[root]))]
        while stack:
            node_id, pending = stack[-1]
            child = next(pending, None)
            if child is None:
                stack.pop()
                visiting.discard(node_id)
                visited.add(node_id)
                continue
            if child in visiting:
                continue
            kept[node_id].append(child)
            if child not in visited:
                visiting.add(child)
                stack.append((child, iter(children[child])))

    return kept


def compute_levels(node_ids: Sequence[str], edges: Sequence[Edge]) -> Dict[str, int]:
    """
    Longest distance of each node from a root of the subgraph.

    Only edges with both endpoints in ``node_ids`` are used. Roots have no
    incoming edge; levels are relaxed breadth-first and a node is enqueued
    again only when a strictly larger level is found. Edges closing a cycle
    are ignored, and nodes no root reaches stay at level 0.
    """
    members = set(node_ids)
    levels = {node_id: 0 for node_id in node_ids}
    incoming = {node_id: 0 for node_id in node_ids}
    children: Dict[str, List[str]] = {node_id: [] for node_id in node_ids}

    for edge in edges:
        if edge.source in members and edge.target in members and edge.source != edge.target:
            incoming[edge.target] += 1
            children[edge.source].append(edge.target)

    roots = [node_id for node_id in node_ids if incoming[node_id] == 0]
    dag = _forward_edges(roots, children)

    queue = deque((root, 0) for root in roots)
    while queue:
        node_id, level = queue.popleft()
        for child in dag[node_id]:
            if level + 1 > levels[child]:
                levels[child] = level + 1
                queue.append((child, level + 1))

    return levels


def _centred(index: int, count: int, spacing: float) -> float:
    return (index - (count - 1) / 2.0) * spacing


# =============================================================================
# Cluster Planner
# =============================================================================

class ClusterPlanner:
    """
    Assigns package clusters and depths to the visible subset of a graph.

    Example:
        planner = ClusterPlanner(config.layout)
        plan = planner.plan(graph, engine.visible_nodes(), engine.visible_edges())
    """

    def __init__(self, layout: Optional[LayoutConfig] = None):
        self.layout = layout or LayoutConfig()

    def package_dependencies(self, graph: GraphModel) -> Dict[str, List[str]]:
        """Package -> packages it calls into, from the original edges."""
        deps: Dict[str, Dict[str, None]] = {package: {} for package in graph.packages()}
        for edge in graph.edges:
            source = graph.nodes[edge.source].package
            target = graph.nodes[edge.target].package
            if source != target:
                deps[source][target] = None
        return {package: list(targets) for package, targets in deps.items()}

    def package_order(self, graph: GraphModel) -> List[str]:
        """
        Order all packages so that callers come before callees.

        DFS post-order over packages in first-appearance order, reversed.
        Packages still being visited are skipped, which breaks cycles. The
        walk keeps its own stack, so long dependency chains are fine.
        """
        deps = self.package_dependencies(graph)
        visited: Set[str] = set()
        visiting: Set[str] = set()
        post_order: List[str] = []

        for start in deps:
            if start in visited:
                continue
            visiting.add(start)
            stack = [(start, iter(deps.get(start, [])))]
            while stack:
                package, pending = stack[-1]
                for dep in pending:
                    if dep not in visited and dep not in visiting:
                        visiting.add(dep)
                        stack.append((dep, iter(deps.get(dep, []))))
                        break
                else:
                    stack.pop()
                    visiting.discard(package)
                    visited.add(package)
                    post_order.append(package)

        return list(reversed(post_order))

    def plan(
        self,
        graph: GraphModel,
        visible_nodes: Sequence[Node],
        visible_edges: Sequence[Edge],
    ) -> ClusterPlan:
        """
        Build clusters and provisional coordinates for the visible subset.

        ``x = package_index * package_spacing + depth * intra_package_spacing``;
        ``y`` spreads the nodes of each (package, depth) column around 0.
        """
        order = self.package_order(graph)
        deps = self.package_dependencies(graph)

        grouped: Dict[str, List[str]] = {}
        for node in visible_nodes:
            grouped.setdefault(node.package, []).append(node.id)

        clusters = [
            PackageCluster(name=package, node_ids=grouped[package], depends_on=set(deps.get(package, [])))
            for package in order if package in grouped
        ]

        plan = ClusterPlan(clusters=clusters, package_order=order)
        for package_index, cluster in enumerate(clusters):
            members = set(cluster.node_ids)
            internal = [e for e in visible_edges if e.source in members and e.target in members]
            depths = compute_levels(cluster.node_ids, internal)

            columns: Dict[int, List[str]] = {}
            for node_id in cluster.node_ids:
                columns.setdefault(depths[node_id], []).append(node_id)

            for depth, column in columns.items():
                x = package_index * self.layout.package_spacing + depth * self.layout.intra_package_spacing
                for row, node_id in enumerate(column):
                    plan.placements[node_id] = NodePlacement(
                        node_id=node_id,
                        package=cluster.name,
                        package_index=package_index,
                        depth=depth,
                        x=x,
                        y=_centred(row, len(column), self.layout.vertical_spacing),
                    )

        logger.debug(f"Planned {len(plan.placements)} node(s) in {len(clusters)} package cluster(s)")
        return plan

    def level_layout(
        self,
        visible_nodes: Sequence[Node],
        visible_edges: Sequence[Edge],
    ) -> Dict[str, Position]:
        """
        Flat hierarchical layout of the visible subgraph.

        ``x = level * level_spacing``, nodes of a level centred vertically.
        """
        node_ids = [node.id for node in visible_nodes]
        levels = compute_levels(node_ids, visible_edges)

        by_level: Dict[int, List[str]] = {}
        for node_id in node_ids:
            by_level.setdefault(levels[node_id], []).append(node_id)

        positions: Dict[str, Position] = {}
        for level, members in by_level.items():
            for row, node_id in enumerate(members):
                positions[node_id] = (
                    level * self.layout.level_spacing,
                    _centred(row, len(members), self.layout.vertical_spacing),
                )
        return positions
