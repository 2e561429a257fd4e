"""
Call Graph Explorer Configuration System
========================================

Loads and manages configuration from callgraph.yaml with environment variable
overrides.

Author: Olivier Vitrac, PhD, HDR | olivier.vitrac@adservio.fr | Adservio | 2026-10-19
"""

import os
import yaml
import logging
from pathlib import Path
from dataclasses import dataclass, field
from typing import Optional, Dict, Any

from .logging_utils import LogLevel

logger = logging.getLogger(__name__)

CONFIG_FILENAME = "callgraph.yaml"

TRUE_VALUES = ("true", "1", "yes", "on")


# =============================================================================
# Configuration Data Classes
# =============================================================================

@dataclass
class LayoutConfig:
    """Spacing and footprint constants used by planning and overlap removal."""
    node_width: float = 200.0         # Estimated width of node boxes
    node_height: float = 80.0         # Estimated height of node boxes
    min_spacing: float = 40.0         # Minimum space between nodes
    package_spacing: float = 600.0    # Horizontal distance between package clusters
    intra_package_spacing: float = 200.0  # Horizontal distance between depths inside a package
    level_spacing: float = 200.0      # Horizontal distance between levels (level layout)
    vertical_spacing: float = 150.0   # Provisional vertical distance between nodes
    isolated_offset_y: float = 500.0  # Distance of the isolated-node disc below the graph
    circle_base_radius: float = 200.0
    circle_radius_multiplier: float = 80.0
    isolated_min_distance: float = 120.0
    isolated_overlap_distance: float = 150.0
    max_placement_attempts: int = 100
    placement_seed: int = 0


@dataclass
class ViewConfig:
    """Visibility defaults."""
    show_isolated_nodes: bool = False
    large_graph_threshold: int = 50   # Node count above which a graph is "large"
    top_nodes_count: int = 10         # Number of top chains reported in summaries


@dataclass
class LoggingConfig:
    """Logging configuration."""
    level: str = "INFO"


@dataclass
class ExplorerConfig:
    """Root configuration container."""
    layout: LayoutConfig = field(default_factory=LayoutConfig)
    view: ViewConfig = field(default_factory=ViewConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)
    version: str = "1"


# =============================================================================
# Configuration Loader
# =============================================================================

def find_config_file(start_path: Optional[Path] = None) -> Optional[Path]:
    """
    Find callgraph.yaml by searching upward from start_path.

    Search order:
    1. start_path / callgraph.yaml
    2. start_path / .callgraph / callgraph.yaml
    3. Parent directories (recursive)
    4. ~/.config/callgraph/callgraph.yaml

    Args:
        start_path: Starting directory (defaults to cwd)

    Returns:
        Path to config file or None if not found
    """
    if start_path is None:
        start_path = Path.cwd()

    start_path = Path(start_path).resolve()

    # Search upward
    current = start_path
    for _ in range(10):  # Max 10 levels up
        candidates = [
            current / CONFIG_FILENAME,
            current / ".callgraph" / CONFIG_FILENAME,
        ]
        for candidate in candidates:
            if candidate.exists():
                return candidate

        parent = current.parent
        if parent == current:
            break
        current = parent

    # Check user config
    user_config = Path.home() / ".config" / "callgraph" / CONFIG_FILENAME
    if user_config.exists():
        return user_config

    return None


def load_config(config_path: Optional[Path] = None) -> ExplorerConfig:
    """
    Load configuration from YAML file with environment variable overrides.

    Environment variables override config file values:
    - CALLGRAPH_SHOW_ISOLATED -> view.show_isolated_nodes
    - CALLGRAPH_LARGE_GRAPH_THRESHOLD -> view.large_graph_threshold
    - CALLGRAPH_PACKAGE_SPACING -> layout.package_spacing
    - CALLGRAPH_INTRA_PACKAGE_SPACING -> layout.intra_package_spacing
    - CALLGRAPH_LOG_LEVEL -> logging.level

    Args:
        config_path: Path to config file (auto-detected if None)

    Returns:
        ExplorerConfig instance
    """
    config = ExplorerConfig()

    # Find and load config file
    if config_path is None:
        config_path = find_config_file()

    if config_path and Path(config_path).exists():
        logger.info(f"Loading config from: {config_path}")
        try:
            with open(config_path, 'r') as f:
                data = yaml.safe_load(f) or {}
            config = _parse_config_dict(data)
        except (OSError, yaml.YAMLError, AttributeError, TypeError) as e:
            logger.warning(f"Failed to load config: {e}, using defaults")
    else:
        logger.debug("No config file found, using defaults")

    # Apply environment variable overrides
    config = _apply_env_overrides(config)

    # Validate configuration
    _validate_config(config)

    return config


def _parse_config_dict(data: Dict[str, Any]) -> ExplorerConfig:
    """Parse configuration dictionary into ExplorerConfig."""
    config = ExplorerConfig()

    # Layout config
    if "layout" in data:
        layout = data["layout"] or {}
        defaults = config.layout
        config.layout = LayoutConfig(
            node_width=layout.get("node_width", defaults.node_width),
            node_height=layout.get("node_height", defaults.node_height),
            min_spacing=layout.get("min_spacing", defaults.min_spacing),
            package_spacing=layout.get("package_spacing", defaults.package_spacing),
            intra_package_spacing=layout.get("intra_package_spacing", defaults.intra_package_spacing),
            level_spacing=layout.get("level_spacing", defaults.level_spacing),
            vertical_spacing=layout.get("vertical_spacing", defaults.vertical_spacing),
            isolated_offset_y=layout.get("isolated_offset_y", defaults.isolated_offset_y),
            circle_base_radius=layout.get("circle_base_radius", defaults.circle_base_radius),
            circle_radius_multiplier=layout.get("circle_radius_multiplier", defaults.circle_radius_multiplier),
            isolated_min_distance=layout.get("isolated_min_distance", defaults.isolated_min_distance),
            isolated_overlap_distance=layout.get("isolated_overlap_distance", defaults.isolated_overlap_distance),
            max_placement_attempts=layout.get("max_placement_attempts", defaults.max_placement_attempts),
            placement_seed=layout.get("placement_seed", defaults.placement_seed),
        )

    # View config
    if "view" in data:
        view = data["view"] or {}
        config.view = ViewConfig(
            show_isolated_nodes=bool(view.get("show_isolated_nodes", config.view.show_isolated_nodes)),
            large_graph_threshold=view.get("large_graph_threshold", config.view.large_graph_threshold),
            top_nodes_count=view.get("top_nodes_count", config.view.top_nodes_count),
        )

    # Logging config
    if "logging" in data:
        log = data["logging"] or {}
        config.logging = LoggingConfig(
            level=log.get("level", config.logging.level),
        )

    # Root level
    config.version = str(data.get("version", config.version))

    return config


def _apply_env_overrides(config: ExplorerConfig) -> ExplorerConfig:
    """Apply environment variable overrides to config."""

    if os.environ.get("CALLGRAPH_SHOW_ISOLATED"):
        config.view.show_isolated_nodes = os.environ["CALLGRAPH_SHOW_ISOLATED"].lower() in TRUE_VALUES

    if os.environ.get("CALLGRAPH_LARGE_GRAPH_THRESHOLD"):
        try:
            config.view.large_graph_threshold = int(os.environ["CALLGRAPH_LARGE_GRAPH_THRESHOLD"])
        except ValueError:
            logger.warning("CALLGRAPH_LARGE_GRAPH_THRESHOLD is not an integer, ignoring")

    if os.environ.get("CALLGRAPH_PACKAGE_SPACING"):
        try:
            config.layout.package_spacing = float(os.environ["CALLGRAPH_PACKAGE_SPACING"])
        except ValueError:
            logger.warning("CALLGRAPH_PACKAGE_SPACING is not a number, ignoring")

    if os.environ.get("CALLGRAPH_INTRA_PACKAGE_SPACING"):
        try:
            config.layout.intra_package_spacing = float(os.environ["CALLGRAPH_INTRA_PACKAGE_SPACING"])
        except ValueError:
            logger.warning("CALLGRAPH_INTRA_PACKAGE_SPACING is not a number, ignoring")

    if os.environ.get("CALLGRAPH_LOG_LEVEL"):
        config.logging.level = os.environ["CALLGRAPH_LOG_LEVEL"]

    return config


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _is_integer(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def _validate_config(config: ExplorerConfig) -> None:
    """Validate configuration and log warnings."""
    layout = config.layout
    defaults = LayoutConfig()

    # Footprint and spacing must be positive
    for name in ("node_width", "node_height", "package_spacing",
                 "intra_package_spacing", "level_spacing", "vertical_spacing",
                 "circle_base_radius"):
        value = getattr(layout, name)
        if not _is_number(value) or value <= 0:
            logger.warning(f"Invalid layout.{name}={value!r}, defaulting to {getattr(defaults, name)}")
            setattr(layout, name, getattr(defaults, name))

    for name in ("min_spacing", "circle_radius_multiplier",
                 "isolated_min_distance", "isolated_overlap_distance"):
        value = getattr(layout, name)
        if not _is_number(value) or value < 0:
            logger.warning(f"Invalid layout.{name}={value!r}, defaulting to {getattr(defaults, name)}")
            setattr(layout, name, getattr(defaults, name))

    if not _is_number(layout.isolated_offset_y):
        logger.warning(
            f"Invalid layout.isolated_offset_y={layout.isolated_offset_y!r}, "
            f"defaulting to {defaults.isolated_offset_y}"
        )
        layout.isolated_offset_y = defaults.isolated_offset_y

    if not _is_integer(layout.max_placement_attempts) or layout.max_placement_attempts < 0:
        logger.warning(
            f"Invalid layout.max_placement_attempts={layout.max_placement_attempts!r}, "
            f"defaulting to {defaults.max_placement_attempts}"
        )
        layout.max_placement_attempts = defaults.max_placement_attempts

    if not _is_integer(layout.placement_seed):
        logger.warning(
            f"Invalid layout.placement_seed={layout.placement_seed!r}, defaulting to {defaults.placement_seed}"
        )
        layout.placement_seed = defaults.placement_seed

    # Package clusters must not overlap their neighbours' depth columns
    if layout.package_spacing < layout.intra_package_spacing:
        logger.warning(
            f"layout.package_spacing ({layout.package_spacing}) is smaller than "
            f"layout.intra_package_spacing ({layout.intra_package_spacing}); clusters may interleave"
        )

    view = config.view
    view_defaults = ViewConfig()
    for name in ("large_graph_threshold", "top_nodes_count"):
        value = getattr(view, name)
        if not _is_integer(value) or value < 0:
            logger.warning(
                f"view.{name} must be an integer >= 0 (got {value!r}), "
                f"defaulting to {getattr(view_defaults, name)}"
            )
            setattr(view, name, getattr(view_defaults, name))

    # Check log level validity
    valid_levels = [level.value for level in LogLevel]
    if str(config.logging.level).upper() not in valid_levels:
        logger.warning(f"Unknown log level '{config.logging.level}', defaulting to 'INFO'")
        config.logging.level = "INFO"
    else:
        config.logging.level = str(config.logging.level).upper()


def config_to_dict(config: ExplorerConfig) -> Dict[str, Any]:
    """Convert configuration to a plain dictionary (YAML layout)."""
    layout = config.layout
    return {
        "version": config.version,
        "layout": {
            "node_width": layout.node_width,
            "node_height": layout.node_height,
            "min_spacing": layout.min_spacing,
            "package_spacing": layout.package_spacing,
            "intra_package_spacing": layout.intra_package_spacing,
            "level_spacing": layout.level_spacing,
            "vertical_spacing": layout.vertical_spacing,
            "isolated_offset_y": layout.isolated_offset_y,
            "circle_base_radius": layout.circle_base_radius,
            "circle_radius_multiplier": layout.circle_radius_multiplier,
            "isolated_min_distance": layout.isolated_min_distance,
            "isolated_overlap_distance": layout.isolated_overlap_distance,
            "max_placement_attempts": layout.max_placement_attempts,
            "placement_seed": layout.placement_seed,
        },
        "view": {
            "show_isolated_nodes": config.view.show_isolated_nodes,
            "large_graph_threshold": config.view.large_graph_threshold,
            "top_nodes_count": config.view.top_nodes_count,
        },
        "logging": {
            "level": config.logging.level,
        },
    }


def save_config(config: ExplorerConfig, path: Path) -> None:
    """
    Save configuration to YAML file.

    Args:
        config: ExplorerConfig instance
        path: Output path
    """
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, 'w') as f:
        yaml.dump(config_to_dict(config), f, default_flow_style=False, sort_keys=False)

    logger.info(f"Configuration saved to: {path}")


# =============================================================================
# Global Config Instance
# =============================================================================

_global_config: Optional[ExplorerConfig] = None


def get_config() -> ExplorerConfig:
    """Get the global configuration instance (lazy-loaded)."""
    global _global_config
    if _global_config is None:
        _global_config = load_config()
    return _global_config


def reload_config(config_path: Optional[Path] = None) -> ExplorerConfig:
    """Reload configuration from file."""
    global _global_config
    _global_config = load_config(config_path)
    return _global_config
