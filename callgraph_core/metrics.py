"""
Call Chain Metrics

Longest incoming and outgoing call chain for every node of a call graph.

The chain length of a node is the number of calls on the longest path that
starts at the node and never revisits a node already on the path; a call back
into the current path contributes nothing (``A -> B -> A`` gives 1 for ``A``).

Acyclic regions are handled in linear time through a strongly connected
component condensation (iterative Tarjan, sinks first). Exhaustive simple-path
search only happens inside non-trivial components.

Author: Olivier Vitrac, PhD, HDR | olivier.vitrac@adservio.fr | Adservio | 2026-10-19
"""

import logging
from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional

from .graph_model import GraphModel, UNKNOWN_PACKAGE
from .logging_utils import log_duration

logger = logging.getLogger(__name__)


@dataclass
class ChainMetrics:
    """Chain lengths of a single node."""
    node_id: str
    longest_incoming_chain: int = 0
    longest_outgoing_chain: int = 0

    def to_dict(self) -> Dict[str, object]:
        return {
            "id": self.node_id,
            "longestIncomingChain": self.longest_incoming_chain,
            "longestOutgoingChain": self.longest_outgoing_chain,
        }


# =============================================================================
# Graph algorithms
# =============================================================================

def strongly_connected_components(
    node_ids: Iterable[str],
    adjacency: Dict[str, List[str]],
) -> List[List[str]]:
    """
    Tarjan's algorithm without recursion.

    Components are returned in reverse topological order of the condensation:
    a component is emitted only after every component it can reach.
    """
    index: Dict[str, int] = {}
    lowlink: Dict[str, int] = {}
    stack: List[str] = []
    on_stack = set()
    components: List[List[str]] = []
    counter = 0

    for root in node_ids:
        if root in index:
            continue

        index[root] = lowlink[root] = counter
        counter += 1
        stack.append(root)
        on_stack.add(root)
        work = [(root, iter(adjacency.get(root, ())))]

        while work:
            node, successors = work[-1]
            descended = False
            for succ in successors:
                if succ not in index:
                    index[succ] = lowlink[succ] = counter
                    counter += 1
                    stack.append(succ)
                    on_stack.add(succ)
                    work.append((succ, iter(adjacency.get(succ, ()))))
                    descended = True
                    break
                elif succ in on_stack:
                    lowlink[node] = min(lowlink[node], index[succ])
            if descended:
                continue

            work.pop()
            if work:
                parent = work[-1][0]
                lowlink[parent] = min(lowlink[parent], lowlink[node])

            if lowlink[node] == index[node]:
                component = []
                while True:
                    member = stack.pop()
                    on_stack.discard(member)
                    component.append(member)
                    if member == node:
                        break
                components.append(component)

    return components


def _longest_simple_path(
    start: str,
    inner: Dict[str, List[str]],
    exit_value: Dict[str, int],
) -> int:
    """Max over simple paths start..u_k inside one component of k + exit(u_k)."""
    best = exit_value[start]
    path = [start]
    on_path = {start}
    frames = [iter(inner[start])]

    while frames:
        nxt = next(frames[-1], None)
        if nxt is None:
            on_path.discard(path.pop())
            frames.pop()
            continue
        if nxt in on_path:
            continue
        path.append(nxt)
        on_path.add(nxt)
        best = max(best, len(path) - 1 + exit_value[nxt])
        frames.append(iter(inner[nxt]))

    return best


def longest_chains(node_ids: List[str], adjacency: Dict[str, List[str]]) -> Dict[str, int]:
    """
    Longest chain from every node along ``adjacency``.

    Args:
        node_ids: All node ids
        adjacency: node id -> distinct neighbour ids

    Returns:
        node id -> chain length
    """
    chains: Dict[str, int] = {}

    for component in strongly_connected_components(node_ids, adjacency):
        members = set(component)

        # Best continuation once the path leaves the component
        exit_value: Dict[str, int] = {}
        inner: Dict[str, List[str]] = {}
        for node_id in component:
            best = 0
            inside = []
            for succ in adjacency.get(node_id, ()):
                if succ in members:
                    inside.append(succ)
                else:
                    best = max(best, 1 + chains[succ])
            exit_value[node_id] = best
            inner[node_id] = inside

        if len(component) == 1:
            chains[component[0]] = exit_value[component[0]]
            continue

        logger.debug(f"Exhaustive chain search in cyclic component of {len(component)} nodes")
        for node_id in component:
            chains[node_id] = _longest_simple_path(node_id, inner, exit_value)

    return chains


# =============================================================================
# Metrics Calculator
# =============================================================================

class MetricsCalculator:
    """
    Computes and stores chain metrics for a loaded graph.

    Example:
        calculator = MetricsCalculator(graph)
        calculator.compute()
        calculator.top_nodes(5)
    """

    def __init__(self, graph: GraphModel):
        self.graph = graph
        self.metrics: Dict[str, ChainMetrics] = {}

    def compute(self) -> Dict[str, ChainMetrics]:
        """Compute chain lengths and write them onto the graph's nodes."""
        node_ids = self.graph.node_ids()
        outgoing = {n: self.graph.successors(n) for n in node_ids}
        incoming = {n: self.graph.predecessors(n) for n in node_ids}

        with log_duration(logger, "chain metrics", nodes=len(node_ids)):
            out_chains = longest_chains(node_ids, outgoing)
            in_chains = longest_chains(node_ids, incoming)

        self.metrics = {}
        for node_id in node_ids:
            node = self.graph.nodes[node_id]
            node.longest_outgoing_chain = out_chains[node_id]
            node.longest_incoming_chain = in_chains[node_id]
            self.metrics[node_id] = ChainMetrics(
                node_id=node_id,
                longest_incoming_chain=in_chains[node_id],
                longest_outgoing_chain=out_chains[node_id],
            )

        logger.info("Chain statistics calculated")
        return self.metrics

    def get(self, node_id: str) -> Optional[ChainMetrics]:
        return self.metrics.get(node_id)

    def top_nodes(self, count: int = 10) -> List[ChainMetrics]:
        """Nodes ranked by outgoing chain, then incoming chain, then id."""
        ranked = sorted(
            self.metrics.values(),
            key=lambda m: (-m.longest_outgoing_chain, -m.longest_incoming_chain, m.node_id),
        )
        return ranked[:max(count, 0)]

    def package_levels(self) -> Dict[str, int]:
        """
        Rank packages by the longest outgoing chain they hold.

        The package with the longest outgoing chain gets level 0; ties keep
        first-appearance order. ``unknown`` always comes last.
        """
        best: Dict[str, int] = {}
        for node in self.graph.nodes.values():
            chain = self.metrics[node.id].longest_outgoing_chain if node.id in self.metrics else 0
            best[node.package] = max(best.get(node.package, 0), chain)

        order = list(best)
        known = sorted(
            (p for p in order if p != UNKNOWN_PACKAGE),
            key=lambda p: (-best[p], order.index(p)),
        )
        levels = {package: level for level, package in enumerate(known)}
        if UNKNOWN_PACKAGE in best:
            levels[UNKNOWN_PACKAGE] = len(known)
        return levels

    def statistics(self) -> Dict[str, int]:
        """Aggregate chain figures for summaries."""
        if not self.metrics:
            return {"max_outgoing_chain": 0, "max_incoming_chain": 0}
        return {
            "max_outgoing_chain": max(m.longest_outgoing_chain for m in self.metrics.values()),
            "max_incoming_chain": max(m.longest_incoming_chain for m in self.metrics.values()),
        }
