"""
Overlap Removal and Isolated Node Placement

Post-processing of renderer-supplied node positions:

- ``OverlapResolver.resolve`` pushes colliding node boxes apart vertically in
  a single deterministic pass;
- ``OverlapResolver.place_isolated`` scatters nodes without any call edge in
  a disc below the connected graph.

Author: Olivier Vitrac, PhD, HDR | olivier.vitrac@adservio.fr | Adservio | 2026-10-19
"""

import logging
import math
import random
from dataclasses import dataclass, field
from typing import Dict, List, Mapping, Optional, Sequence, Set, Tuple

from .config import LayoutConfig
from .logging_utils import log_duration

logger = logging.getLogger(__name__)

Position = Tuple[float, float]


@dataclass
class OverlapResult:
    """New positions (all input nodes) and the ids that were moved."""
    positions: Dict[str, Position] = field(default_factory=dict)
    moved: List[str] = field(default_factory=list)
    overlap_count: int = 0


class OverlapResolver:
    """
    Removes bounding-box collisions between node boxes.

    Two nodes overlap when ``|dx| <= width + margin`` and
    ``|dy| <= height + margin``. Overlapping pairs are merged into groups;
    inside each group nodes are sorted by y and pushed down to
    ``previous.y + height + margin``. Residual overlaps created by the push
    are accepted.
    """

    def __init__(self, layout: Optional[LayoutConfig] = None):
        self.layout = layout or LayoutConfig()

    def find_overlaps(self, positions: Mapping[str, Position]) -> List[Tuple[str, str]]:
        """Overlapping pairs, scanning nodes sorted by x."""
        reach_x = self.layout.node_width + self.layout.min_spacing
        reach_y = self.layout.node_height + self.layout.min_spacing
        ordered = sorted(positions.items(), key=lambda item: (item[1][0], item[0]))

        pairs: List[Tuple[str, str]] = []
        for i, (id1, (x1, y1)) in enumerate(ordered):
            for id2, (x2, y2) in ordered[i + 1:]:
                if x2 - x1 > reach_x:
                    break
                if abs(y2 - y1) <= reach_y:
                    pairs.append((id1, id2))
        return pairs

    @staticmethod
    def group_overlaps(pairs: Sequence[Tuple[str, str]]) -> List[List[str]]:
        """Merge overlapping pairs into connected groups."""
        groups: List[List[str]] = []
        processed: Set[str] = set()

        for first, second in pairs:
            if first in processed or second in processed:
                continue

            group = {first: None, second: None}
            changed = True
            while changed:
                changed = False
                for a, b in pairs:
                    if a in group and b not in group:
                        group[b] = None
                        changed = True
                    elif b in group and a not in group:
                        group[a] = None
                        changed = True

            groups.append(list(group))
            processed.update(group)

        return groups

    def resolve(self, positions: Mapping[str, Position]) -> OverlapResult:
        """
        Push overlapping nodes apart.

        Args:
            positions: node id -> (x, y) of the visible nodes

        Returns:
            OverlapResult with every input node's (possibly new) position
        """
        result = OverlapResult(positions={k: (float(x), float(y)) for k, (x, y) in positions.items()})
        if not positions:
            return result

        step = self.layout.node_height + self.layout.min_spacing

        with log_duration(logger, "resolve_overlaps", nodes=len(positions)):
            pairs = self.find_overlaps(result.positions)
            result.overlap_count = len(pairs)

            for group in self.group_overlaps(pairs):
                members = sorted(group, key=lambda n: (result.positions[n][1], result.positions[n][0], n))
                previous_y = result.positions[members[0]][1]
                for node_id in members[1:]:
                    x, y = result.positions[node_id]
                    required = previous_y + step
                    if y < required:
                        y = required
                        result.positions[node_id] = (x, y)
                        result.moved.append(node_id)
                    previous_y = y

        if result.moved:
            logger.debug(f"Moved {len(result.moved)} node(s) to fix {result.overlap_count} overlap(s)")
        return result

    def place_isolated(
        self,
        isolated_ids: Sequence[str],
        connected_positions: Mapping[str, Position],
        seed: Optional[int] = None,
    ) -> Dict[str, Position]:
        """
        Scatter isolated nodes in a disc below the connected graph.

        The disc is centred horizontally on the connected nodes,
        ``isolated_offset_y`` below the lowest one, with radius
        ``max(circle_base_radius, sqrt(n) * circle_radius_multiplier)``.
        Candidates too close to a connected node or to an already placed
        isolated node are rejected; after ``max_placement_attempts`` the node
        goes on an evenly spaced ring instead.
        """
        layout = self.layout
        if not isolated_ids:
            return {}

        rng = random.Random(layout.placement_seed if seed is None else seed)
        existing = list(connected_positions.values())
        if existing:
            min_x = min(x for x, _ in existing)
            max_x = max(x for x, _ in existing)
            max_y = max(0.0, max(y for _, y in existing))
        else:
            min_x = max_x = max_y = 0.0

        centre_x = (min_x + max_x) / 2.0
        centre_y = max_y + layout.isolated_offset_y
        radius = max(layout.circle_base_radius, math.sqrt(len(isolated_ids)) * layout.circle_radius_multiplier)

        def too_close(x: float, y: float, others: Sequence[Position], limit: float) -> bool:
            return any(math.hypot(ox - x, oy - y) < limit for ox, oy in others)

        placed: Dict[str, Position] = {}
        for i, node_id in enumerate(isolated_ids):
            position = None
            for _ in range(layout.max_placement_attempts):
                angle = rng.random() * 2 * math.pi
                r = math.sqrt(rng.random()) * radius
                x = centre_x + r * math.cos(angle)
                y = centre_y + r * math.sin(angle)
                if too_close(x, y, existing, layout.isolated_overlap_distance):
                    continue
                if too_close(x, y, list(placed.values()), layout.isolated_min_distance):
                    continue
                position = (x, y)
                break

            if position is None:
                angle = (i / len(isolated_ids)) * 2 * math.pi
                position = (centre_x + radius * math.cos(angle), centre_y + radius * math.sin(angle))

            placed[node_id] = position

        logger.debug(f"Placed {len(placed)} isolated node(s) around ({centre_x:.0f}, {centre_y:.0f})")
        return placed
