"""
Call Graph Data Model

Immutable node/edge storage for a loaded call graph, with adjacency indexes
used by the visibility, metrics and clustering layers.

Nodes are functions or methods, edges are calls. The graph is loaded once from
records produced by an external parser and never mutated afterwards; every
derived view (visible subset, clusters, metrics) is computed on top of it.

Author: Olivier Vitrac, PhD, HDR | olivier.vitrac@adservio.fr | Adservio | 2026-10-19
"""

import json
import logging
from collections import defaultdict
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Set, Union

logger = logging.getLogger(__name__)

UNKNOWN_PACKAGE = "unknown"


class InvalidGraph(Exception):
    """Raised when node/edge records do not form a valid graph."""

    def __init__(self, errors: List[str]):
        self.errors = list(errors)
        summary = "; ".join(self.errors[:10])
        if len(self.errors) > 10:
            summary += f"; ... ({len(self.errors) - 10} more)"
        super().__init__(f"Invalid graph ({len(self.errors)} problem(s)): {summary}")


def derive_package(source_file: Optional[str]) -> str:
    """
    Derive the package name of a node from its source file.

    The package is the innermost folder holding the file
    (``src/utils/io.go`` -> ``utils``). Files without a folder and nodes
    without a source file belong to ``"unknown"``.
    """
    if not source_file:
        return UNKNOWN_PACKAGE
    parts = [p for p in str(source_file).replace("\\", "/").split("/") if p and p != "."]
    if len(parts) < 2:
        return UNKNOWN_PACKAGE
    return parts[-2]


# =============================================================================
# Nodes and Edges
# =============================================================================

@dataclass
class Node:
    """
    A function or method in the call graph.

    Attributes:
        id: Unique, stable identifier
        label: Display label
        source_file: Path of the defining file (optional)
        source_line: Line of the definition (optional)
        package: Folder component of source_file (derived)
        longest_incoming_chain: Set once by MetricsCalculator
        longest_outgoing_chain: Set once by MetricsCalculator
    """
    id: str
    label: str
    source_file: Optional[str] = None
    source_line: Optional[int] = None
    package: str = field(init=False)
    longest_incoming_chain: int = 0
    longest_outgoing_chain: int = 0

    def __post_init__(self):
        self.package = derive_package(self.source_file)

    def to_dict(self) -> Dict[str, Any]:
        """Convert node to an input-contract record."""
        data: Dict[str, Any] = {"id": self.id, "label": self.label}
        if self.source_file is not None:
            data["sourceFile"] = self.source_file
        if self.source_line is not None:
            data["sourceLine"] = self.source_line
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Node":
        """Create node from an input record (camelCase or snake_case keys)."""
        if data.get("id") is None:
            raise KeyError("id")
        node_id = str(data["id"])
        source_file = _first_of(data, "sourceFile", "source_file", "file")
        return cls(
            id=node_id,
            label=str(data.get("label") or node_id),
            source_file=str(source_file) if source_file is not None else None,
            source_line=_as_line(_first_of(data, "sourceLine", "source_line", "line")),
        )


@dataclass(frozen=True)
class Edge:
    """A call from ``source`` to ``target``."""
    source: str
    target: str
    id: str

    def to_dict(self) -> Dict[str, Any]:
        return {"id": self.id, "from": self.source, "to": self.target}

    @classmethod
    def from_dict(cls, data: Dict[str, Any], index: int = 0) -> "Edge":
        """
        Create edge from an input record.

        Accepts ``from``/``to`` or ``source``/``target``. A missing id is
        generated as ``"<from>-><to>#<index>"``.
        """
        source = _first_of(data, "from", "source")
        target = _first_of(data, "to", "target")
        if source is None or target is None:
            raise KeyError("from/to")
        edge_id = data.get("id")
        if edge_id is None:
            edge_id = f"{source}->{target}#{index}"
        return cls(source=str(source), target=str(target), id=str(edge_id))


def _first_of(data: Dict[str, Any], *keys: str) -> Any:
    for key in keys:
        if data.get(key) is not None:
            return data[key]
    return None


def _as_line(value: Any) -> Optional[int]:
    if value is None or value == "":
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


# =============================================================================
# Graph Model
# =============================================================================

class GraphModel:
    """
    Original (unfiltered) call graph with adjacency indexes.

    Edge order is preserved everywhere: ``edges``, ``outgoing_edges`` and
    ``incoming_edges`` list edges in load order. Parallel edges between the
    same pair of nodes are kept.
    """

    def __init__(self):
        self.nodes: Dict[str, Node] = {}
        self.edges: List[Edge] = []
        self._edge_index: Dict[str, Edge] = {}
        self._outgoing: Dict[str, List[Edge]] = {}
        self._incoming: Dict[str, List[Edge]] = {}

    def __len__(self) -> int:
        return len(self.nodes)

    def __contains__(self, node_id: str) -> bool:
        return node_id in self.nodes

    # -------------------------------------------------------------------------
    # Loading
    # -------------------------------------------------------------------------

    def load(
        self,
        nodes: Iterable[Union[Node, Dict[str, Any]]],
        edges: Iterable[Union[Edge, Dict[str, Any]]],
    ) -> None:
        """
        Replace the stored graph.

        All problems are collected before raising, and the previous graph is
        kept when any is found.

        Raises:
            InvalidGraph: duplicate node ids, duplicate edge ids, malformed
                records or edges referencing unknown nodes
        """
        errors: List[str] = []
        new_nodes: Dict[str, Node] = {}
        new_edges: List[Edge] = []
        edge_index: Dict[str, Edge] = {}

        for i, record in enumerate(nodes):
            try:
                node = record if isinstance(record, Node) else Node.from_dict(record)
            except (KeyError, TypeError, AttributeError):
                errors.append(f"Node record #{i} has no id")
                continue
            if node.id in new_nodes:
                errors.append(f"Duplicate node id '{node.id}'")
                continue
            new_nodes[node.id] = node

        for i, record in enumerate(edges):
            try:
                edge = record if isinstance(record, Edge) else Edge.from_dict(record, i)
            except (KeyError, TypeError, AttributeError):
                errors.append(f"Edge record #{i} has no from/to")
                continue
            if edge.id in edge_index:
                errors.append(f"Duplicate edge id '{edge.id}'")
                continue
            if edge.source not in new_nodes:
                errors.append(f"Edge '{edge.id}' references unknown source node '{edge.source}'")
            if edge.target not in new_nodes:
                errors.append(f"Edge '{edge.id}' references unknown target node '{edge.target}'")
            edge_index[edge.id] = edge
            new_edges.append(edge)

        if errors:
            logger.warning(f"Rejected graph with {len(errors)} problem(s)")
            raise InvalidGraph(errors)

        outgoing: Dict[str, List[Edge]] = defaultdict(list)
        incoming: Dict[str, List[Edge]] = defaultdict(list)
        for edge in new_edges:
            outgoing[edge.source].append(edge)
            incoming[edge.target].append(edge)

        self.nodes = new_nodes
        self.edges = new_edges
        self._edge_index = edge_index
        self._outgoing = dict(outgoing)
        self._incoming = dict(incoming)
        logger.info(f"Loaded call graph: {len(self.nodes)} nodes, {len(self.edges)} edges")

    # -------------------------------------------------------------------------
    # Queries
    # -------------------------------------------------------------------------

    def get_node(self, node_id: str) -> Optional[Node]:
        """Get node by ID."""
        return self.nodes.get(node_id)

    def has_node(self, node_id: str) -> bool:
        return node_id in self.nodes

    def get_edge(self, edge_id: str) -> Optional[Edge]:
        return self._edge_index.get(edge_id)

    def node_ids(self) -> List[str]:
        return list(self.nodes)

    def outgoing_edges(self, node_id: str) -> List[Edge]:
        """Edges leaving ``node_id`` in load order."""
        return self._outgoing.get(node_id, [])

    def incoming_edges(self, node_id: str) -> List[Edge]:
        """Edges entering ``node_id`` in load order."""
        return self._incoming.get(node_id, [])

    def edges_of(self, node_id: str) -> List[Edge]:
        """All edges touching ``node_id`` (self-loops listed once)."""
        result = list(self.outgoing_edges(node_id))
        result.extend(e for e in self.incoming_edges(node_id) if e.source != node_id)
        return result

    def successors(self, node_id: str) -> List[str]:
        """Distinct callee ids in first-call order."""
        return list(dict.fromkeys(e.target for e in self.outgoing_edges(node_id)))

    def predecessors(self, node_id: str) -> List[str]:
        """Distinct caller ids in first-call order."""
        return list(dict.fromkeys(e.source for e in self.incoming_edges(node_id)))

    def entry_nodes(self) -> List[str]:
        """
        Get entry nodes (nodes with no incoming edges).

        These are the starting points of the call graph.
        """
        return [node_id for node_id in self.nodes if not self._incoming.get(node_id)]

    def isolated_nodes(self) -> List[str]:
        """Nodes with no edges at all in the original graph."""
        return [node_id for node_id in self.nodes if self.is_isolated(node_id)]

    def is_isolated(self, node_id: str) -> bool:
        return not self._outgoing.get(node_id) and not self._incoming.get(node_id)

    def packages(self) -> List[str]:
        """Package names in order of first appearance."""
        return list(dict.fromkeys(node.package for node in self.nodes.values()))

    # -------------------------------------------------------------------------
    # Filtered views
    # -------------------------------------------------------------------------

    def visible_nodes(self, hidden_nodes: Set[str]) -> List[Node]:
        """Nodes not in ``hidden_nodes``, in load order."""
        return [node for node_id, node in self.nodes.items() if node_id not in hidden_nodes]

    def visible_edges(self, hidden_nodes: Set[str], hidden_edges: Set[str]) -> List[Edge]:
        """Edges not hidden themselves and with both endpoints visible."""
        return [
            edge for edge in self.edges
            if edge.id not in hidden_edges
            and edge.source not in hidden_nodes
            and edge.target not in hidden_nodes
        ]

    # -------------------------------------------------------------------------
    # Serialization
    # -------------------------------------------------------------------------

    def to_dict(self) -> Dict[str, Any]:
        """Convert graph to input-contract dictionary."""
        return {
            "nodes": [node.to_dict() for node in self.nodes.values()],
            "edges": [edge.to_dict() for edge in self.edges],
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "GraphModel":
        """Create graph from ``{"nodes": [...], "edges": [...]}``."""
        graph = cls()
        graph.load(data.get("nodes", []), data.get("edges", []))
        return graph

    def to_json(self) -> str:
        return json.dumps(self.to_dict(), indent=2)

    @classmethod
    def from_json(cls, json_str_or_path: Union[str, Path]) -> "GraphModel":
        """
        Deserialize graph from JSON.

        Args:
            json_str_or_path: JSON string or path to JSON file

        Returns:
            GraphModel instance
        """
        if isinstance(json_str_or_path, Path):
            data = json.loads(json_str_or_path.read_text(encoding="utf-8"))
        else:
            data = cls._parse_json_or_path(str(json_str_or_path))
        if not isinstance(data, dict):
            raise ValueError("Graph JSON must be an object with 'nodes' and 'edges'")
        return cls.from_dict(data)

    @staticmethod
    def _parse_json_or_path(text: str) -> Any:
        # Try to parse as JSON string first
        try:
            return json.loads(text)
        except json.JSONDecodeError:
            # If parsing fails, try as file path
            path = Path(text)
            if path.exists():
                return json.loads(path.read_text(encoding="utf-8"))
            raise ValueError(f"Invalid JSON string or file path: {text}")
