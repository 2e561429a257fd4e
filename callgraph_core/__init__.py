"""
Call Graph Core - Visibility, clustering and metrics engine for call graph exploration

Author: Olivier Vitrac, PhD, HDR | olivier.vitrac@adservio.fr | Adservio | 2026-10-19
"""

from .version import __version__

from .logging_utils import LogLevel, configure_logging, log_duration
from .config import (
    ExplorerConfig,
    LayoutConfig,
    ViewConfig,
    LoggingConfig,
    load_config,
    save_config,
    get_config,
    reload_config,
)
from .graph_model import (
    Node,
    Edge,
    GraphModel,
    InvalidGraph,
    derive_package,
    UNKNOWN_PACKAGE,
)
from .metrics import ChainMetrics, MetricsCalculator, longest_chains
from .visibility import CollapseMode, CollapseState, VisibilityEngine
from .clustering import (
    PackageCluster,
    NodePlacement,
    ClusterPlan,
    ClusterPlanner,
    compute_levels,
)
from .overlap import OverlapResolver, OverlapResult
from .styles import StyleTag, style_for, isolated_style
from .explorer import CallGraphExplorer

__all__ = [
    "__version__",
    # Logging
    "LogLevel",
    "configure_logging",
    "log_duration",
    # Configuration
    "ExplorerConfig",
    "LayoutConfig",
    "ViewConfig",
    "LoggingConfig",
    "load_config",
    "save_config",
    "get_config",
    "reload_config",
    # Graph model
    "Node",
    "Edge",
    "GraphModel",
    "InvalidGraph",
    "derive_package",
    "UNKNOWN_PACKAGE",
    # Metrics
    "ChainMetrics",
    "MetricsCalculator",
    "longest_chains",
    # Visibility
    "CollapseMode",
    "CollapseState",
    "VisibilityEngine",
    # Clustering
    "PackageCluster",
    "NodePlacement",
    "ClusterPlan",
    "ClusterPlanner",
    "compute_levels",
    # Overlap
    "OverlapResolver",
    "OverlapResult",
    # Styles
    "StyleTag",
    "style_for",
    "isolated_style",
    # Facade
    "CallGraphExplorer",
]
