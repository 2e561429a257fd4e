"""
Visibility Engine for Call Graph Exploration

Tracks which nodes and edges of a loaded call graph are currently hidden and
implements the interactive operations: collapse, expand, toggle, collapse to
entry points, expand everything and isolate one node's reachable subgraph.

Model
-----
Every node may carry a collapse state ``{outgoing, incoming}``. Collapsing a
node's outgoing side cuts the calls it makes; collapsing its incoming side
cuts the calls it receives. A node is kept visible while at least one visible
neighbour still references it through an edge that neighbour does not cut
(its *reference count*).

Edge visibility is derived from node state: an edge is hidden when one of its
endpoints is hidden, its source is outgoing-collapsed or its target is
incoming-collapsed. Operations refresh only the edges around the nodes they
touch.

Nodes hidden by ``hide_others`` are out of scope: expand never brings them
back, and they stay hidden until the next ``hide_others``, ``collapse_all``
or ``expand_all``.

Author: Olivier Vitrac, PhD, HDR | olivier.vitrac@adservio.fr | Adservio | 2026-10-19
"""

import logging
from collections import deque
from dataclasses import dataclass
from enum import Enum
from typing import Dict, Iterable, List, Optional, Set, Tuple, Union

from .graph_model import Edge, GraphModel, Node
from .logging_utils import log_duration

logger = logging.getLogger(__name__)


class CollapseMode(str, Enum):
    """Direction(s) affected by a collapse or expand."""
    OUTGOING = "outgoing"
    INCOMING = "incoming"
    BOTH = "both"

    @property
    def affects_outgoing(self) -> bool:
        return self in (CollapseMode.OUTGOING, CollapseMode.BOTH)

    @property
    def affects_incoming(self) -> bool:
        return self in (CollapseMode.INCOMING, CollapseMode.BOTH)


@dataclass
class CollapseState:
    """Per-node collapse flags. A node without an entry is fully expanded."""
    outgoing: bool = False
    incoming: bool = False

    def is_empty(self) -> bool:
        return not self.outgoing and not self.incoming

    def to_dict(self) -> Dict[str, bool]:
        return {"outgoing": self.outgoing, "incoming": self.incoming}


class VisibilityEngine:
    """
    Owns the collapse map and the hidden node/edge sets of one loaded graph.

    Unknown node ids are ignored (logged at DEBUG). No operation raises on a
    structurally valid graph.
    """

    def __init__(self, graph: GraphModel):
        self.graph = graph
        self.collapsed: Dict[str, CollapseState] = {}
        self.hidden_nodes: Set[str] = set()
        self.hidden_edges: Set[str] = set()
        # Subset of hidden_nodes left out by hide_others
        self.out_of_scope: Set[str] = set()

    # =========================================================================
    # State helpers
    # =========================================================================

    def get_state(self, node_id: str) -> Optional[CollapseState]:
        """Collapse state of a node, or None when fully expanded."""
        return self.collapsed.get(node_id)

    def is_visible(self, node_id: str) -> bool:
        return node_id in self.graph.nodes and node_id not in self.hidden_nodes

    def _cuts_outgoing(self, node_id: str) -> bool:
        state = self.collapsed.get(node_id)
        return state is not None and state.outgoing

    def _cuts_incoming(self, node_id: str) -> bool:
        state = self.collapsed.get(node_id)
        return state is not None and state.incoming

    def reference_count(self, node_id: str) -> int:
        """
        Number of edges linking ``node_id`` to a visible node that keeps it.

        A caller ``m`` keeps the edge ``m -> node_id`` unless ``m`` is
        outgoing-collapsed; a callee ``m`` keeps ``node_id -> m`` unless ``m``
        is incoming-collapsed. Self-loops do not count.
        """
        count = 0
        for edge in self.graph.incoming_edges(node_id):
            caller = edge.source
            if caller != node_id and caller not in self.hidden_nodes and not self._cuts_outgoing(caller):
                count += 1
        for edge in self.graph.outgoing_edges(node_id):
            callee = edge.target
            if callee != node_id and callee not in self.hidden_nodes and not self._cuts_incoming(callee):
                count += 1
        return count

    def _edge_hidden(self, edge: Edge) -> bool:
        return (
            edge.source in self.hidden_nodes
            or edge.target in self.hidden_nodes
            or self._cuts_outgoing(edge.source)
            or self._cuts_incoming(edge.target)
        )

    def _refresh_edges(self, node_ids: Iterable[str]) -> None:
        """Recompute the hidden flag of every edge touching ``node_ids``."""
        for node_id in node_ids:
            for edge in self.graph.edges_of(node_id):
                if self._edge_hidden(edge):
                    self.hidden_edges.add(edge.id)
                else:
                    self.hidden_edges.discard(edge.id)

    def _rebuild_edges(self) -> None:
        self.hidden_edges = {edge.id for edge in self.graph.edges if self._edge_hidden(edge)}

    def _neighbours(self, node_id: str, mode: CollapseMode) -> List[str]:
        """Far endpoints in the given direction(s), in edge order, without self."""
        result: List[str] = []
        if mode.affects_outgoing:
            result.extend(e.target for e in self.graph.outgoing_edges(node_id) if e.target != node_id)
        if mode.affects_incoming:
            result.extend(e.source for e in self.graph.incoming_edges(node_id) if e.source != node_id)
        return list(dict.fromkeys(result))

    # =========================================================================
    # Operations
    # =========================================================================

    def collapse(self, node_id: str, mode: Union[CollapseMode, str] = CollapseMode.BOTH) -> None:
        """
        Collapse one or both sides of a node.

        Neighbours on the collapsed side lose their reference through this
        node; those left with no reference are hidden, in edge order. Hiding
        does not cascade further and the node itself stays visible.
        """
        if node_id not in self.graph.nodes:
            logger.debug(f"collapse: unknown node '{node_id}' ignored")
            return
        mode = CollapseMode(mode)

        with log_duration(logger, "collapse", node=node_id, mode=mode.value):
            state = self.collapsed.setdefault(node_id, CollapseState())
            if mode.affects_outgoing:
                state.outgoing = True
            if mode.affects_incoming:
                state.incoming = True

            touched = {node_id}
            for candidate in self._neighbours(node_id, mode):
                if candidate in self.hidden_nodes:
                    continue
                if self.reference_count(candidate) == 0:
                    self.hidden_nodes.add(candidate)
                    touched.add(candidate)

            self._refresh_edges(touched)

        logger.debug(f"Collapsed '{node_id}' ({mode.value}), {len(touched) - 1} node(s) hidden")

    def expand(self, node_id: str, mode: Union[CollapseMode, str] = CollapseMode.BOTH) -> None:
        """
        Expand one or both sides of a collapsed node.

        Hidden neighbours on the expanded side come back when something
        visible references them again, and each revealed node passes the
        reveal on to the hidden nodes it references. A revealed node without
        collapse state does not reveal its callees.

        Progressive disclosure: a stateless node revealed through a call
        (from ``node_id`` or from another revealed node) is marked
        outgoing-collapsed when it calls something other than itself and
        ``node_id``, so one expand shows one more level only. Any other
        revealed stateless node is marked when one of its callees stays
        hidden.
        """
        if node_id not in self.graph.nodes:
            logger.debug(f"expand: unknown node '{node_id}' ignored")
            return
        state = self.collapsed.get(node_id)
        if state is None:
            logger.debug(f"expand: node '{node_id}' is not collapsed")
            return
        mode = CollapseMode(mode)

        with log_duration(logger, "expand", node=node_id, mode=mode.value):
            if mode.affects_outgoing:
                state.outgoing = False
            if mode.affects_incoming:
                state.incoming = False
            if state.is_empty():
                del self.collapsed[node_id]

            candidates: List[Tuple[str, bool]] = []
            if mode.affects_outgoing:
                candidates.extend((e.target, True) for e in self.graph.outgoing_edges(node_id))
            if mode.affects_incoming:
                candidates.extend((e.source, False) for e in self.graph.incoming_edges(node_id))

            revealed, via_call = self._reveal(
                [(other, by_call) for other, by_call in candidates if other != node_id]
            )

            for revealed_id in revealed:
                if revealed_id in self.collapsed:
                    continue
                if self._has_hidden_callee(revealed_id) or (
                    revealed_id in via_call and self._calls_beyond(revealed_id, node_id)
                ):
                    self.collapsed[revealed_id] = CollapseState(outgoing=True, incoming=False)

            self._refresh_edges([node_id, *revealed])

        logger.debug(f"Expanded '{node_id}' ({mode.value}), {len(revealed)} node(s) revealed")

    def _reveal(self, candidates: List[Tuple[str, bool]]) -> Tuple[List[str], Set[str]]:
        """
        Reveal referenced hidden nodes, starting from ``candidates``.

        Candidates are ``(node_id, reached_through_a_call)`` pairs. Returns
        the revealed ids in order and the subset reached through a call.
        """
        revealed: List[str] = []
        via_call: Set[str] = set()
        queue = deque(candidates)

        while queue:
            current, by_call = queue.popleft()
            if current not in self.hidden_nodes or current in self.out_of_scope:
                continue
            if self.reference_count(current) == 0:
                continue
            self.hidden_nodes.discard(current)
            revealed.append(current)
            if by_call:
                via_call.add(current)

            if not self._cuts_incoming(current):
                queue.extend(
                    (e.source, False) for e in self.graph.incoming_edges(current)
                    if e.source != current and e.source in self.hidden_nodes
                )
            state = self.collapsed.get(current)
            if state is not None and not state.outgoing:
                queue.extend(
                    (e.target, True) for e in self.graph.outgoing_edges(current)
                    if e.target != current and e.target in self.hidden_nodes
                )

        return revealed, via_call

    def _calls_beyond(self, node_id: str, origin: str) -> bool:
        """True if ``node_id`` makes a call an outgoing collapse would cut."""
        return any(
            e.target != node_id
            and e.target != origin
            and e.target not in self.out_of_scope
            and not self._cuts_incoming(e.target)
            for e in self.graph.outgoing_edges(node_id)
        )

    def _has_hidden_callee(self, node_id: str) -> bool:
        return any(
            e.target != node_id
            and e.target in self.hidden_nodes
            and e.target not in self.out_of_scope
            for e in self.graph.outgoing_edges(node_id)
        )

    def toggle(self, node_id: str) -> None:
        """Collapse both sides of an expanded node, expand a collapsed one."""
        if node_id not in self.graph.nodes:
            logger.debug(f"toggle: unknown node '{node_id}' ignored")
            return
        if node_id in self.collapsed:
            self.expand(node_id, CollapseMode.BOTH)
        else:
            self.collapse(node_id, CollapseMode.BOTH)

    def collapse_all(self) -> None:
        """
        Reduce the view to the entry points of the call graph.

        Every node with an incoming edge is hidden, every edge is hidden, and
        entry nodes that call something are marked outgoing-collapsed.
        """
        with log_duration(logger, "collapse_all"):
            entries = self.graph.entry_nodes()
            entry_set = set(entries)

            self.collapsed = {}
            self.hidden_nodes = {n for n in self.graph.nodes if n not in entry_set}
            self.out_of_scope = set()
            for node_id in entries:
                if self.graph.outgoing_edges(node_id):
                    self.collapsed[node_id] = CollapseState(outgoing=True, incoming=False)
            self.hidden_edges = {edge.id for edge in self.graph.edges}

        logger.debug(f"Collapsed to {len(entries)} entry node(s)")

    def expand_all(self) -> None:
        """Show everything and forget all collapse state."""
        self.collapsed.clear()
        self.hidden_nodes.clear()
        self.hidden_edges.clear()
        self.out_of_scope.clear()
        logger.debug("Expanded all nodes")

    def hide_others(self, node_id: str) -> None:
        """
        Keep only the nodes connected to ``node_id`` by a directed path.

        The visible set becomes the node, everything it transitively calls
        and everything that transitively calls it. Collapse state is kept;
        the other nodes stay out of scope until the next hide_others,
        collapse_all or expand_all.
        """
        if node_id not in self.graph.nodes:
            logger.debug(f"hide_others: unknown node '{node_id}' ignored")
            return

        with log_duration(logger, "hide_others", node=node_id):
            reachable = {node_id}
            reachable |= self._bfs(node_id, self.graph.successors)
            reachable |= self._bfs(node_id, self.graph.predecessors)

            self.out_of_scope = {n for n in self.graph.nodes if n not in reachable}
            self.hidden_nodes = set(self.out_of_scope)
            self._rebuild_edges()

        logger.debug(f"Isolated '{node_id}': {len(reachable)} node(s) reachable")

    @staticmethod
    def _bfs(start: str, neighbours) -> Set[str]:
        seen: Set[str] = set()
        queue = deque([start])
        while queue:
            current = queue.popleft()
            for nxt in neighbours(current):
                if nxt not in seen and nxt != start:
                    seen.add(nxt)
                    queue.append(nxt)
        return seen

    # =========================================================================
    # Views
    # =========================================================================

    def visible_nodes(self) -> List[Node]:
        return self.graph.visible_nodes(self.hidden_nodes)

    def visible_edges(self) -> List[Edge]:
        return self.graph.visible_edges(self.hidden_nodes, self.hidden_edges)

    def collapse_states(self) -> Dict[str, Dict[str, bool]]:
        """Copy of the collapse map as plain dictionaries."""
        return {node_id: state.to_dict() for node_id, state in self.collapsed.items()}
