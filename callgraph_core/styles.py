"""
Node style mapping for collapse states.

The background encodes the incoming side (grey when collapsed), the border
encodes the outgoing side (dark and dashed when collapsed). Renderers call
``style_for`` on every visible node after each visibility change.

Author: Olivier Vitrac, PhD, HDR | olivier.vitrac@adservio.fr | Adservio | 2026-10-19
"""

from dataclasses import dataclass, asdict
from typing import Any, Dict, Optional, Union

from .visibility import CollapseState

# Background by incoming state, border by outgoing state
COLORS = {
    "incoming_collapsed": {
        "background": "#d1d5db",
        "highlight_background": "#e5e7eb",
        "font": "#1f2937",
    },
    "incoming_expanded": {
        "background": "#ffffff",
        "highlight_background": "#e0e7ff",
        "font": "#1e293b",
    },
    "outgoing_collapsed": {
        "border": "#374151",
        "highlight_border": "#1f2937",
    },
    "outgoing_expanded": {
        "border": "#4f46e5",
        "highlight_border": "#4338ca",
    },
    "isolated": {
        "background": "#f3f4f6",
        "border": "#9ca3af",
        "highlight_background": "#e5e7eb",
        "highlight_border": "#6b7280",
        "font": "#6b7280",
    },
}

COLLAPSED_DASHES = [5, 5]


@dataclass(frozen=True)
class StyleTag:
    """Visual attributes of one node."""
    background: str
    border: str
    highlight_background: str
    highlight_border: str
    font: str
    dashes: Union[bool, tuple] = False

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        if isinstance(self.dashes, tuple):
            data["dashes"] = list(self.dashes)
        return data


def style_for(state: Optional[CollapseState]) -> StyleTag:
    """Style of a node given its collapse state (None means expanded)."""
    incoming = COLORS["incoming_collapsed" if state is not None and state.incoming else "incoming_expanded"]
    outgoing_collapsed = state is not None and state.outgoing
    outgoing = COLORS["outgoing_collapsed" if outgoing_collapsed else "outgoing_expanded"]
    return StyleTag(
        background=incoming["background"],
        border=outgoing["border"],
        highlight_background=incoming["highlight_background"],
        highlight_border=outgoing["highlight_border"],
        font=incoming["font"],
        dashes=tuple(COLLAPSED_DASHES) if outgoing_collapsed else False,
    )


def isolated_style() -> StyleTag:
    colors = COLORS["isolated"]
    return StyleTag(
        background=colors["background"],
        border=colors["border"],
        highlight_background=colors["highlight_background"],
        highlight_border=colors["highlight_border"],
        font=colors["font"],
    )
