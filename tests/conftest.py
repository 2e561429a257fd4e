"""
Pytest Configuration and Fixtures

Author: Olivier Vitrac, PhD, HDR | olivier.vitrac@adservio.fr | Adservio | 2026-10-19
"""

import json
import logging
import sys
import tempfile
from pathlib import Path
from typing import Generator, Dict, Any

import pytest

# Add project root to path
PROJECT_ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

from callgraph_core.config import ExplorerConfig
from callgraph_core.graph_model import GraphModel


def make_graph(edges, extra_nodes=(), files=None) -> GraphModel:
    """
    Build a GraphModel from ``(source, target)`` pairs.

    Nodes are created in first-appearance order; ``files`` maps node ids to
    source files.
    """
    files = files or {}
    order = []
    for source, target in edges:
        for node_id in (source, target):
            if node_id not in order:
                order.append(node_id)
    for node_id in extra_nodes:
        if node_id not in order:
            order.append(node_id)

    graph = GraphModel()
    graph.load(
        [{"id": n, "label": n, "sourceFile": files.get(n)} for n in order],
        [{"from": s, "to": t} for s, t in edges],
    )
    return graph


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    """Keep CALLGRAPH_* variables from the developer shell out of tests."""
    for key in (
        "CALLGRAPH_SHOW_ISOLATED",
        "CALLGRAPH_LOG_LEVEL",
        "CALLGRAPH_PACKAGE_SPACING",
        "CALLGRAPH_INTRA_PACKAGE_SPACING",
        "CALLGRAPH_LARGE_GRAPH_THRESHOLD",
    ):
        monkeypatch.delenv(key, raising=False)


@pytest.fixture(autouse=True)
def reset_console_handler():
    """Drop the package console handler so it never outlives a test's captured stream."""
    yield
    package_logger = logging.getLogger("callgraph_core")
    for handler in list(package_logger.handlers):
        if handler.get_name() == "callgraph-console":
            package_logger.removeHandler(handler)


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Create a temporary directory for tests."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def config() -> ExplorerConfig:
    """Default configuration, independent of any callgraph.yaml on disk."""
    return ExplorerConfig()


@pytest.fixture
def chain_graph() -> GraphModel:
    """main -> init, main -> run, run -> helper"""
    return make_graph([("main", "init"), ("main", "run"), ("run", "helper")])


@pytest.fixture
def cyclic_graph() -> GraphModel:
    """A -> B -> A"""
    return make_graph([("A", "B"), ("B", "A")])


@pytest.fixture
def sample_records() -> Dict[str, Any]:
    """A small two-package call graph with one isolated node."""
    return {
        "nodes": [
            {"id": "main", "label": "main()", "sourceFile": "cmd/app/main.go", "sourceLine": 10},
            {"id": "serve", "label": "serve()", "sourceFile": "cmd/app/server.go", "sourceLine": 22},
            {"id": "parse", "label": "Parse()", "sourceFile": "pkg/parser/parse.go", "sourceLine": 5},
            {"id": "tokenize", "label": "tokenize()", "sourceFile": "pkg/parser/lexer.go", "sourceLine": 40},
            {"id": "unused", "label": "unused()", "sourceFile": "pkg/parser/old.go", "sourceLine": 3},
        ],
        "edges": [
            {"from": "main", "to": "serve"},
            {"from": "main", "to": "parse"},
            {"from": "parse", "to": "tokenize"},
        ],
    }


@pytest.fixture
def sample_file(temp_dir: Path, sample_records: Dict[str, Any]) -> Path:
    """sample_records written as a JSON document."""
    path = temp_dir / "graph.json"
    path.write_text(json.dumps(sample_records))
    return path
