"""
Tests for overlap removal and isolated node placement

Author: Olivier Vitrac, PhD, HDR | olivier.vitrac@adservio.fr | Adservio | 2026-10-19
"""

import math

import pytest

from callgraph_core.config import LayoutConfig
from callgraph_core.overlap import OverlapResolver


@pytest.fixture
def resolver():
    # width + margin = 240, height + margin = 120
    return OverlapResolver(LayoutConfig(node_width=200, node_height=80, min_spacing=40))


class TestFindOverlaps:
    """Tests for pair detection."""

    def test_close_pair(self, resolver):
        pairs = resolver.find_overlaps({"a": (0, 0), "b": (100, 50)})
        assert pairs == [("a", "b")]

    def test_far_in_x(self, resolver):
        assert resolver.find_overlaps({"a": (0, 0), "b": (241, 0)}) == []

    def test_far_in_y(self, resolver):
        assert resolver.find_overlaps({"a": (0, 0), "b": (0, 121)}) == []

    def test_boundary_counts_as_overlap(self, resolver):
        assert resolver.find_overlaps({"a": (0, 0), "b": (240, 120)}) == [("a", "b")]

    def test_origin_not_filtered(self, resolver):
        pairs = resolver.find_overlaps({"a": (0, 0), "b": (0, 0)})
        assert pairs == [("a", "b")]


class TestGroupOverlaps:
    """Tests for merging pairs into groups."""

    def test_chain_merged(self):
        groups = OverlapResolver.group_overlaps([("a", "b"), ("c", "d"), ("b", "c")])
        assert len(groups) == 1
        assert sorted(groups[0]) == ["a", "b", "c", "d"]

    def test_disjoint_groups(self):
        groups = OverlapResolver.group_overlaps([("a", "b"), ("c", "d")])
        assert [sorted(g) for g in groups] == [["a", "b"], ["c", "d"]]


class TestResolve:
    """Tests for the push-down pass."""

    def test_pushes_lower_node(self, resolver):
        result = resolver.resolve({"a": (0, 0), "b": (50, 30)})
        assert result.positions["a"] == (0, 0)
        assert result.positions["b"] == (50, 120)
        assert result.moved == ["b"]
        assert result.overlap_count == 1

    def test_stack_of_three(self, resolver):
        result = resolver.resolve({"a": (0, 0), "b": (0, 10), "c": (0, 20)})
        assert result.positions["b"][1] == 120
        assert result.positions["c"][1] == 240
        assert result.moved == ["b", "c"]

    def test_no_overlap_untouched(self, resolver):
        positions = {"a": (0, 0), "b": (500, 0), "c": (0, 400)}
        result = resolver.resolve(positions)
        assert result.moved == []
        assert result.positions == {k: (float(x), float(y)) for k, (x, y) in positions.items()}

    def test_deterministic(self, resolver):
        positions = {f"n{i}": ((i * 37) % 300, (i * 53) % 200) for i in range(20)}
        first = resolver.resolve(positions)
        second = resolver.resolve(dict(reversed(list(positions.items()))))
        assert first.positions == second.positions

    def test_input_not_mutated(self, resolver):
        positions = {"a": (0, 0), "b": (0, 0)}
        resolver.resolve(positions)
        assert positions == {"a": (0, 0), "b": (0, 0)}

    def test_empty(self, resolver):
        result = resolver.resolve({})
        assert result.positions == {}
        assert result.moved == []


class TestPlaceIsolated:
    """Tests for the isolated-node disc."""

    def test_positions_below_graph(self, resolver):
        connected = {"a": (0, 0), "b": (400, 100)}
        placed = resolver.place_isolated(["z1", "z2", "z3"], connected)

        assert set(placed) == {"z1", "z2", "z3"}
        radius = max(200, math.sqrt(3) * 80)
        for x, y in placed.values():
            assert math.hypot(x - 200, y - 600) <= radius + 1e-6

    def test_reproducible(self, resolver):
        connected = {"a": (0, 0)}
        first = resolver.place_isolated(["z1", "z2"], connected, seed=42)
        second = resolver.place_isolated(["z1", "z2"], connected, seed=42)
        assert first == second

    def test_spacing_respected_when_room(self, resolver):
        connected = {"a": (0, 0)}
        placed = resolver.place_isolated(["z1", "z2"], connected)
        (x1, y1), (x2, y2) = placed.values()
        for x, y in placed.values():
            assert math.hypot(x, y) >= 150
        assert math.hypot(x1 - x2, y1 - y2) >= 120

    def test_ring_fallback(self):
        layout = LayoutConfig(max_placement_attempts=0)
        placed = OverlapResolver(layout).place_isolated(["z1", "z2"], {})

        # Evenly spaced on the ring around (0, 500)
        assert placed["z1"] == pytest.approx((200.0, 500.0))
        assert placed["z2"] == pytest.approx((-200.0, 500.0))

    def test_no_isolated(self, resolver):
        assert resolver.place_isolated([], {"a": (0, 0)}) == {}
