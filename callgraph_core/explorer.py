"""
Call Graph Explorer

Facade consumed by UI layers: owns one loaded graph, its chain metrics, its
visibility engine and the isolated-node display policy, and produces the
node/edge records a renderer draws.

Output contract:
    nodes: {id, label, x, y, collapseState, packageIndex, depth}
    edges: {id, from, to}

Author: Olivier Vitrac, PhD, HDR | olivier.vitrac@adservio.fr | Adservio | 2026-10-19
"""

import logging
from pathlib import Path
from typing import Any, Dict, Iterable, List, Mapping, Optional, Union

from .clustering import ClusterPlan, ClusterPlanner, Position
from .config import ExplorerConfig, get_config
from .graph_model import Edge, GraphModel, Node
from .metrics import MetricsCalculator
from .overlap import OverlapResolver, OverlapResult
from .styles import StyleTag, isolated_style, style_for
from .visibility import CollapseMode, VisibilityEngine

logger = logging.getLogger(__name__)


class CallGraphExplorer:
    """
    Interactive exploration session over one call graph.

    Example:
        explorer = CallGraphExplorer()
        explorer.load(nodes, edges)
        explorer.collapse_all()
        explorer.expand("main", "outgoing")
        view = explorer.view()

    Every operation on an explorer with no graph loaded is a no-op and views
    are empty.
    """

    def __init__(self, config: Optional[ExplorerConfig] = None):
        self.config = config if config is not None else get_config()
        self.graph = GraphModel()
        self.metrics = MetricsCalculator(self.graph)
        self.engine: Optional[VisibilityEngine] = None
        self.show_isolated = self.config.view.show_isolated_nodes
        self.planner = ClusterPlanner(self.config.layout)
        self.resolver = OverlapResolver(self.config.layout)

    @property
    def loaded(self) -> bool:
        return self.engine is not None

    # =========================================================================
    # Loading
    # =========================================================================

    def load(
        self,
        nodes: Iterable[Union[Node, Dict[str, Any]]],
        edges: Iterable[Union[Edge, Dict[str, Any]]],
    ) -> None:
        """
        Load a new graph and reset all visibility state.

        Raises:
            InvalidGraph: the records are rejected; the current graph is kept
        """
        graph = GraphModel()
        graph.load(nodes, edges)

        metrics = MetricsCalculator(graph)
        metrics.compute()

        self.graph = graph
        self.metrics = metrics
        self.engine = VisibilityEngine(graph)

        if len(graph) > self.config.view.large_graph_threshold:
            logger.info(
                f"Large graph ({len(graph)} nodes > {self.config.view.large_graph_threshold}); "
                f"consider collapse_all() before rendering"
            )

    def load_dict(self, data: Mapping[str, Any]) -> None:
        self.load(data.get("nodes", []), data.get("edges", []))

    def load_file(self, path: Union[str, Path]) -> None:
        """Load a JSON document ``{"nodes": [...], "edges": [...]}``."""
        graph = GraphModel.from_json(Path(path))
        self.load(list(graph.nodes.values()), graph.edges)

    # =========================================================================
    # Visibility operations
    # =========================================================================

    def collapse(self, node_id: str, mode: Union[CollapseMode, str] = CollapseMode.BOTH) -> None:
        if self.engine is not None:
            self.engine.collapse(node_id, mode)

    def expand(self, node_id: str, mode: Union[CollapseMode, str] = CollapseMode.BOTH) -> None:
        if self.engine is not None:
            self.engine.expand(node_id, mode)

    def toggle(self, node_id: str) -> None:
        if self.engine is not None:
            self.engine.toggle(node_id)

    def collapse_all(self) -> None:
        if self.engine is not None:
            self.engine.collapse_all()

    def expand_all(self) -> None:
        if self.engine is not None:
            self.engine.expand_all()

    def hide_others(self, node_id: str) -> None:
        if self.engine is not None:
            self.engine.hide_others(node_id)

    def reset(self) -> None:
        """Back to the fully expanded view."""
        self.expand_all()

    def toggle_isolated(self) -> bool:
        """Flip the isolated-node display flag and return the new value."""
        self.show_isolated = not self.show_isolated
        logger.debug(f"Isolated nodes {'shown' if self.show_isolated else 'hidden'}")
        return self.show_isolated

    # =========================================================================
    # Views
    # =========================================================================

    def visible_nodes(self) -> List[Node]:
        """Visible nodes after the isolated-node display policy."""
        if self.engine is None:
            return []
        nodes = self.engine.visible_nodes()
        if not self.show_isolated:
            nodes = [node for node in nodes if not self.graph.is_isolated(node.id)]
        return nodes

    def visible_edges(self) -> List[Edge]:
        if self.engine is None:
            return []
        return self.engine.visible_edges()

    def collapse_state(self, node_id: str) -> Optional[Dict[str, bool]]:
        if self.engine is None:
            return None
        state = self.engine.get_state(node_id)
        return state.to_dict() if state is not None else None

    def style_of(self, node_id: str) -> Optional[StyleTag]:
        """Renderer style of a node, None for unknown ids."""
        if self.engine is None or not self.graph.has_node(node_id):
            return None
        if self.graph.is_isolated(node_id):
            return isolated_style()
        return style_for(self.engine.get_state(node_id))

    def plan(self) -> ClusterPlan:
        if self.engine is None:
            return ClusterPlan()
        return self.planner.plan(self.graph, self.visible_nodes(), self.visible_edges())

    def level_layout(self) -> Dict[str, Position]:
        """Flat level layout of the visible subgraph (no package grouping)."""
        if self.engine is None:
            return {}
        return self.planner.level_layout(self.visible_nodes(), self.visible_edges())

    def view(self, resolve_overlaps: bool = False) -> Dict[str, List[Dict[str, Any]]]:
        """
        Renderer records for the visible subset.

        Isolated nodes (shown only when the flag is on) are placed in a disc
        below the connected nodes instead of their package column.

        Args:
            resolve_overlaps: Run overlap removal on the planned positions
        """
        if self.engine is None:
            return {"nodes": [], "edges": []}

        plan = self.plan()
        positions = plan.positions()

        isolated = [node_id for node_id in positions if self.graph.is_isolated(node_id)]
        if isolated:
            isolated_set = set(isolated)
            connected = {k: v for k, v in positions.items() if k not in isolated_set}
            positions.update(self.resolver.place_isolated(isolated, connected))

        if resolve_overlaps:
            positions = self.resolver.resolve(positions).positions

        nodes = []
        for node in self.visible_nodes():
            placement = plan.placements[node.id]
            x, y = positions[node.id]
            nodes.append({
                "id": node.id,
                "label": node.label,
                "x": x,
                "y": y,
                "collapseState": self.collapse_state(node.id),
                "packageIndex": placement.package_index,
                "depth": placement.depth,
            })

        edges = [edge.to_dict() for edge in self.visible_edges()]
        return {"nodes": nodes, "edges": edges}

    def resolve_overlaps(self, positions: Mapping[str, Position]) -> OverlapResult:
        """Overlap removal on renderer positions (call after a free drag)."""
        return self.resolver.resolve(positions)

    def summary(self) -> Dict[str, Any]:
        """Counts, entry points and top chains of the loaded graph."""
        stats = self.metrics.statistics()
        return {
            "nodes": len(self.graph),
            "edges": len(self.graph.edges),
            "visibleNodes": len(self.visible_nodes()),
            "visibleEdges": len(self.visible_edges()),
            "collapsedNodes": len(self.engine.collapsed) if self.engine is not None else 0,
            "entryNodes": self.graph.entry_nodes(),
            "isolatedNodes": len(self.graph.isolated_nodes()),
            "packages": self.planner.package_order(self.graph),
            "largeGraph": len(self.graph) > self.config.view.large_graph_threshold,
            "maxOutgoingChain": stats["max_outgoing_chain"],
            "maxIncomingChain": stats["max_incoming_chain"],
            "topNodes": [m.to_dict() for m in self.metrics.top_nodes(self.config.view.top_nodes_count)],
        }
