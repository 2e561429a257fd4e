"""
Tests for the command line interface

Author: Olivier Vitrac, PhD, HDR | olivier.vitrac@adservio.fr | Adservio | 2026-10-19
"""

import json

import pytest

from callgraph_core.cli import main, parse_operation
from callgraph_core.version import BUILD_ORG, __version__, get_short_banner
from callgraph_core.visibility import CollapseMode


@pytest.fixture
def no_config(tmp_path):
    """-c option pointing to a missing file, so defaults are used."""
    return ["-c", str(tmp_path / "none.yaml")]


class TestParseOperation:
    """Tests for ID[:mode] arguments."""

    def test_mode_suffix(self):
        assert parse_operation("main:outgoing") == ("main", CollapseMode.OUTGOING)

    def test_default_mode(self):
        assert parse_operation("main") == ("main", CollapseMode.BOTH)

    def test_colon_in_id(self):
        assert parse_operation("pkg:func") == ("pkg:func", CollapseMode.BOTH)
        assert parse_operation("pkg:func:incoming") == ("pkg:func", CollapseMode.INCOMING)


class TestCommands:
    """Tests for main() dispatch."""

    def test_no_command_prints_help(self, capsys):
        assert main([]) == 0
        assert "usage" in capsys.readouterr().out.lower()

    def test_version(self, capsys):
        with pytest.raises(SystemExit) as exc:
            main(["--version"])
        assert exc.value.code == 0
        out = capsys.readouterr().out
        assert out.strip() == get_short_banner()
        assert __version__ in out and BUILD_ORG in out

    def test_stats_json(self, capsys, sample_file, no_config):
        assert main(no_config + ["stats", str(sample_file), "--json"]) == 0
        summary = json.loads(capsys.readouterr().out)
        assert summary["nodes"] == 5
        assert summary["edges"] == 3
        assert summary["maxOutgoingChain"] == 2

    def test_stats_text(self, capsys, sample_file, no_config):
        assert main(no_config + ["stats", str(sample_file)]) == 0
        out = capsys.readouterr().out
        assert "5 nodes, 3 edges" in out
        assert "Entry nodes: main, unused" in out

    def test_view_collapse_all(self, capsys, sample_file, no_config):
        assert main(no_config + ["view", str(sample_file), "--collapse-all"]) == 0
        view = json.loads(capsys.readouterr().out)
        assert [n["id"] for n in view["nodes"]] == ["main"]
        assert view["edges"] == []

    def test_view_operations(self, capsys, sample_file, no_config):
        code = main(no_config + [
            "view", str(sample_file),
            "--collapse", "main:outgoing",
            "--show-isolated",
        ])
        assert code == 0
        ids = [n["id"] for n in json.loads(capsys.readouterr().out)["nodes"]]
        assert "serve" not in ids
        assert "unused" in ids

    def test_view_isolate(self, capsys, sample_file, no_config):
        assert main(no_config + ["view", str(sample_file), "--isolate", "tokenize", "--resolve-overlaps"]) == 0
        ids = [n["id"] for n in json.loads(capsys.readouterr().out)["nodes"]]
        assert ids == ["main", "parse", "tokenize"]

    def test_view_overlaps_resolved_on_request(self, capsys, temp_dir):
        config_path = temp_dir / "callgraph.yaml"
        config_path.write_text("layout:\n  vertical_spacing: 1\n")
        graph_path = temp_dir / "crowded.json"
        graph_path.write_text(json.dumps({
            "nodes": [{"id": n, "sourceFile": f"src/app/{n}.py"} for n in ("a", "b", "c")],
            "edges": [{"from": "a", "to": "b"}, {"from": "a", "to": "c"}],
        }))

        def gap():
            nodes = {n["id"]: n for n in json.loads(capsys.readouterr().out)["nodes"]}
            return abs(nodes["b"]["y"] - nodes["c"]["y"])

        assert main(["-c", str(config_path), "view", str(graph_path)]) == 0
        assert gap() == pytest.approx(1.0)

        assert main(["-c", str(config_path), "view", str(graph_path), "--resolve-overlaps"]) == 0
        assert gap() >= 120.0

    def test_invalid_graph(self, capsys, temp_dir, no_config):
        path = temp_dir / "bad.json"
        path.write_text(json.dumps({"nodes": [{"id": "a"}], "edges": [{"from": "a", "to": "b"}]}))
        assert main(no_config + ["stats", str(path)]) == 1
        err = capsys.readouterr().err
        assert "Invalid graph" in err
        assert "'b'" in err

    def test_not_json(self, capsys, temp_dir, no_config):
        path = temp_dir / "bad.json"
        path.write_text("not json")
        assert main(no_config + ["stats", str(path)]) == 1
        assert "Cannot read" in capsys.readouterr().err

    def test_missing_file(self, capsys, temp_dir, no_config):
        assert main(no_config + ["view", str(temp_dir / "nope.json")]) == 1
        assert "File not found" in capsys.readouterr().err

    def test_config_json(self, capsys, no_config):
        assert main(no_config + ["config", "--json"]) == 0
        data = json.loads(capsys.readouterr().out)
        assert data["layout"]["package_spacing"] == 600.0
        assert data["logging"]["level"] == "INFO"
