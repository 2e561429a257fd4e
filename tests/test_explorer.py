"""
Tests for the CallGraphExplorer facade

Author: Olivier Vitrac, PhD, HDR | olivier.vitrac@adservio.fr | Adservio | 2026-10-19
"""

import logging

import pytest

from callgraph_core.config import ExplorerConfig, ViewConfig
from callgraph_core.explorer import CallGraphExplorer
from callgraph_core.graph_model import InvalidGraph
from callgraph_core.styles import COLORS


@pytest.fixture
def explorer(config, sample_records):
    explorer = CallGraphExplorer(config)
    explorer.load_dict(sample_records)
    return explorer


def node_ids(view):
    return [n["id"] for n in view["nodes"]]


class TestLoading:
    """Tests for loading and replacing graphs."""

    def test_unloaded_explorer_is_empty(self, config):
        explorer = CallGraphExplorer(config)
        assert not explorer.loaded
        assert explorer.view() == {"nodes": [], "edges": []}
        assert explorer.visible_nodes() == []
        assert explorer.collapse_state("main") is None

        # Operations are no-ops
        explorer.collapse("main")
        explorer.collapse_all()
        explorer.hide_others("main")
        assert explorer.summary()["nodes"] == 0

    def test_load_file(self, config, sample_file):
        explorer = CallGraphExplorer(config)
        explorer.load_file(sample_file)
        assert explorer.loaded
        assert len(explorer.graph) == 5
        assert explorer.metrics.get("main").longest_outgoing_chain == 2

    def test_failed_load_keeps_current_graph(self, explorer):
        explorer.collapse("main", "outgoing")
        with pytest.raises(InvalidGraph):
            explorer.load([{"id": "x"}], [{"from": "x", "to": "nowhere"}])

        assert len(explorer.graph) == 5
        assert explorer.collapse_state("main") == {"outgoing": True, "incoming": False}

    def test_reload_resets_visibility(self, explorer, sample_records):
        explorer.collapse_all()
        explorer.load_dict(sample_records)
        assert explorer.engine.collapsed == {}
        assert explorer.engine.hidden_nodes == set()

    def test_large_graph_logged(self, caplog):
        config = ExplorerConfig(view=ViewConfig(large_graph_threshold=3))
        explorer = CallGraphExplorer(config)
        caplog.set_level(logging.INFO, logger="callgraph_core")
        explorer.load([{"id": f"n{i}"} for i in range(5)], [])
        assert "Large graph" in caplog.text
        assert explorer.summary()["largeGraph"] is True


class TestIsolatedNodes:
    """Tests for the isolated-node display policy."""

    def test_hidden_by_default(self, explorer):
        assert "unused" not in node_ids(explorer.view())

    def test_shown_without_edges(self, explorer):
        assert explorer.toggle_isolated() is True
        view = explorer.view()
        assert "unused" in node_ids(view)
        assert all("unused" not in (e["from"], e["to"]) for e in view["edges"])

    def test_toggle_back(self, explorer):
        explorer.toggle_isolated()
        assert explorer.toggle_isolated() is False
        assert "unused" not in node_ids(explorer.view())

    def test_placed_below_connected_nodes(self, explorer):
        explorer.toggle_isolated()
        view = explorer.view()
        positions = {n["id"]: n["y"] for n in view["nodes"]}
        connected_max = max(y for node_id, y in positions.items() if node_id != "unused")
        assert positions["unused"] > connected_max

    def test_config_default(self, sample_records):
        explorer = CallGraphExplorer(ExplorerConfig(view=ViewConfig(show_isolated_nodes=True)))
        explorer.load_dict(sample_records)
        assert "unused" in node_ids(explorer.view())


class TestView:
    """Tests for renderer records."""

    def test_contract_keys(self, explorer):
        view = explorer.view()
        for node in view["nodes"]:
            assert set(node) == {"id", "label", "x", "y", "collapseState", "packageIndex", "depth"}
        for edge in view["edges"]:
            assert set(edge) == {"id", "from", "to"}

    def test_package_columns(self, explorer):
        nodes = {n["id"]: n for n in explorer.view()["nodes"]}
        assert nodes["main"]["packageIndex"] == 0
        assert nodes["parse"]["packageIndex"] == 1
        assert nodes["main"]["x"] < nodes["parse"]["x"] < nodes["tokenize"]["x"]

    def test_collapse_all_then_expand(self, explorer):
        explorer.collapse_all()
        view = explorer.view()
        assert node_ids(view) == ["main"]
        assert view["edges"] == []
        assert view["nodes"][0]["collapseState"] == {"outgoing": True, "incoming": False}

        explorer.expand("main", "outgoing")
        view = explorer.view()
        assert node_ids(view) == ["main", "serve", "parse"]
        assert explorer.collapse_state("main") is None
        assert explorer.collapse_state("parse") == {"outgoing": True, "incoming": False}
        assert {(e["from"], e["to"]) for e in view["edges"]} == {("main", "serve"), ("main", "parse")}

    def test_hide_others(self, explorer):
        explorer.hide_others("serve")
        assert node_ids(explorer.view()) == ["main", "serve"]

    def test_reset(self, explorer):
        explorer.collapse_all()
        explorer.reset()
        assert node_ids(explorer.view()) == ["main", "serve", "parse", "tokenize"]

    def test_resolve_overlaps_in_view(self, explorer):
        view = explorer.view(resolve_overlaps=True)
        positions = {n["id"]: (n["x"], n["y"]) for n in view["nodes"]}
        assert explorer.resolver.find_overlaps(positions) == []

    def test_resolve_overlaps_after_drag(self, explorer):
        result = explorer.resolve_overlaps({"main": (0, 0), "parse": (10, 10)})
        assert result.moved == ["parse"]


class TestStylesAndSummary:
    """Tests for style lookup and summaries."""

    def test_style_of(self, explorer):
        explorer.collapse("main", "outgoing")
        style = explorer.style_of("main")
        assert style.border == COLORS["outgoing_collapsed"]["border"]
        assert style.dashes

    def test_style_of_isolated(self, explorer):
        assert explorer.style_of("unused").background == COLORS["isolated"]["background"]

    def test_style_of_unknown(self, explorer):
        assert explorer.style_of("ghost") is None

    def test_summary(self, explorer):
        summary = explorer.summary()
        assert summary["nodes"] == 5
        assert summary["edges"] == 3
        assert summary["visibleNodes"] == 4
        assert summary["entryNodes"] == ["main", "unused"]
        assert summary["isolatedNodes"] == 1
        assert summary["packages"] == ["app", "parser"]
        assert summary["maxOutgoingChain"] == 2
        assert summary["topNodes"][0]["id"] == "main"
        assert summary["largeGraph"] is False
