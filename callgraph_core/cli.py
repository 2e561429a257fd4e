#!/usr/bin/env python3
"""
Call Graph Explorer Command Line Interface
==========================================

Runs the exploration engine over a JSON call graph document
``{"nodes": [...], "edges": [...]}`` produced by an external parser.

Author: Olivier Vitrac, PhD, HDR | olivier.vitrac@adservio.fr | Adservio | 2026-10-19

Usage:
    callgraph stats FILE          Counts, entry points and longest chains
    callgraph view FILE [...]     Apply operations and print the visible view as JSON
    callgraph config              Show the effective configuration
"""

import argparse
import json
import sys
from pathlib import Path
from typing import Optional, List, Tuple

from .config import ExplorerConfig, config_to_dict, find_config_file, load_config
from .explorer import CallGraphExplorer
from .graph_model import InvalidGraph
from .logging_utils import configure_logging
from .version import get_short_banner
from .visibility import CollapseMode

# =============================================================================
# ANSI Colors
# =============================================================================

class Colors:
    """ANSI color codes for terminal output."""
    RED = '\033[0;31m'
    GREEN = '\033[0;32m'
    YELLOW = '\033[1;33m'
    BLUE = '\033[0;34m'
    CYAN = '\033[0;36m'
    BOLD = '\033[1m'
    NC = '\033[0m'  # No Color

    @classmethod
    def disable(cls):
        """Disable colors (for non-TTY output)."""
        cls.RED = cls.GREEN = cls.YELLOW = cls.BLUE = ''
        cls.CYAN = cls.BOLD = cls.NC = ''


def print_ok(msg: str) -> None:
    print(f"{Colors.GREEN}✓{Colors.NC} {msg}")


def print_warn(msg: str) -> None:
    print(f"{Colors.YELLOW}⚠{Colors.NC} {msg}")


def print_error(msg: str) -> None:
    print(f"{Colors.RED}✗{Colors.NC} {msg}", file=sys.stderr)


def print_info(msg: str) -> None:
    print(f"{Colors.BLUE}ℹ{Colors.NC} {msg}")


def print_header(msg: str) -> None:
    print(f"\n{Colors.BOLD}{Colors.CYAN}{msg}{Colors.NC}")
    print("=" * len(msg))


# =============================================================================
# Helpers
# =============================================================================

def parse_operation(value: str) -> Tuple[str, CollapseMode]:
    """
    Split ``ID[:mode]`` into a node id and a collapse mode.

    Node ids may contain ':'; only a trailing known mode is split off.
    """
    node_id, sep, suffix = value.rpartition(":")
    if sep and suffix in {mode.value for mode in CollapseMode}:
        return node_id, CollapseMode(suffix)
    return value, CollapseMode.BOTH


def _load_explorer(args: argparse.Namespace) -> Optional[CallGraphExplorer]:
    explorer = CallGraphExplorer(args.settings)
    path = Path(args.file)
    if not path.exists():
        print_error(f"File not found: {path}")
        return None
    try:
        explorer.load_file(path)
    except InvalidGraph as e:
        print_error(f"Invalid graph in {path}:")
        for problem in e.errors:
            print(f"    - {problem}", file=sys.stderr)
        return None
    except (OSError, ValueError) as e:
        print_error(f"Cannot read {path}: {e}")
        return None
    return explorer


# =============================================================================
# Commands
# =============================================================================

def cmd_stats(args: argparse.Namespace) -> int:
    """Show graph statistics."""
    explorer = _load_explorer(args)
    if explorer is None:
        return 1

    summary = explorer.summary()
    if args.json:
        print(json.dumps(summary, indent=2))
        return 0

    print_header(f"Call Graph: {args.file}")
    print_ok(f"{summary['nodes']} nodes, {summary['edges']} edges")
    print_info(f"Entry nodes: {', '.join(summary['entryNodes']) or '(none)'}")
    print_info(f"Isolated nodes: {summary['isolatedNodes']}")
    print_info(f"Packages: {', '.join(summary['packages']) or '(none)'}")
    print_info(
        f"Longest chains: outgoing {summary['maxOutgoingChain']}, "
        f"incoming {summary['maxIncomingChain']}"
    )
    if summary["largeGraph"]:
        print_warn("Large graph: start from 'view --collapse-all' for a readable view")

    if summary["topNodes"]:
        print(f"\n{Colors.BOLD}Top chains:{Colors.NC}")
        for entry in summary["topNodes"]:
            print(f"  {entry['id']}: out={entry['longestOutgoingChain']} in={entry['longestIncomingChain']}")
    return 0


def cmd_view(args: argparse.Namespace) -> int:
    """Apply visibility operations and print the view."""
    explorer = _load_explorer(args)
    if explorer is None:
        return 1

    if args.show_isolated:
        explorer.show_isolated = True
    if args.collapse_all:
        explorer.collapse_all()
    for value in args.collapse or []:
        node_id, mode = parse_operation(value)
        explorer.collapse(node_id, mode)
    for value in args.expand or []:
        node_id, mode = parse_operation(value)
        explorer.expand(node_id, mode)
    if args.isolate:
        explorer.hide_others(args.isolate)

    print(json.dumps(explorer.view(resolve_overlaps=args.resolve_overlaps), indent=2))
    return 0


def cmd_config(args: argparse.Namespace) -> int:
    """Show current configuration."""
    path = Path(args.config) if args.config else find_config_file()
    config: ExplorerConfig = args.settings

    if args.json:
        print(json.dumps(config_to_dict(config), indent=2))
        return 0

    print_header("Call Graph Explorer Configuration")
    if path:
        print_ok(f"Config file: {path}")
    else:
        print_warn("No callgraph.yaml found, using defaults")
    print()

    for section, items in config_to_dict(config).items():
        if not isinstance(items, dict):
            continue
        print(f"{Colors.BOLD}{section}:{Colors.NC}")
        for key, value in items.items():
            print(f"  {key}: {value}")
        print()
    return 0


# =============================================================================
# Entry point
# =============================================================================

def main(argv: Optional[List[str]] = None) -> int:
    """Main CLI entry point."""
    # Disable colors if not TTY
    if not sys.stdout.isatty():
        Colors.disable()

    parser = argparse.ArgumentParser(
        prog="callgraph",
        description="Call graph visibility, clustering and metrics engine",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  callgraph stats graph.json                      Show counts and longest chains
  callgraph view graph.json --collapse-all        Entry points only
  callgraph view graph.json --collapse main:outgoing
  callgraph view graph.json --isolate run --resolve-overlaps
  callgraph config                                Show current configuration
        """
    )
    parser.add_argument("--version", action="version", version=get_short_banner())
    parser.add_argument("-c", "--config", help="Path to callgraph.yaml")
    parser.add_argument("--log-level", help="Override logging level (DEBUG, INFO, WARNING, ERROR)")

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # stats
    sub = subparsers.add_parser("stats", help="Show graph statistics")
    sub.add_argument("file", help="JSON graph document")
    sub.add_argument("--json", action="store_true", help="Print the summary as JSON")
    sub.set_defaults(func=cmd_stats)

    # view
    sub = subparsers.add_parser("view", help="Print the visible view as JSON")
    sub.add_argument("file", help="JSON graph document")
    sub.add_argument("--collapse-all", action="store_true", help="Start from entry points only")
    sub.add_argument("--collapse", action="append", metavar="ID[:MODE]",
                     help="Collapse a node (mode: outgoing, incoming, both)")
    sub.add_argument("--expand", action="append", metavar="ID[:MODE]",
                     help="Expand a node (mode: outgoing, incoming, both)")
    sub.add_argument("--isolate", metavar="ID", help="Keep only what reaches or is reached by ID")
    sub.add_argument("--show-isolated", action="store_true", help="Include nodes without edges")
    sub.add_argument("--resolve-overlaps", action="store_true", help="Push overlapping node boxes apart")
    sub.set_defaults(func=cmd_view)

    # config
    sub = subparsers.add_parser("config", help="Show current configuration")
    sub.add_argument("--json", action="store_true", help="Print the configuration as JSON")
    sub.set_defaults(func=cmd_config)

    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        return 0

    configure_logging(args.log_level or "WARNING")
    args.settings = load_config(Path(args.config)) if args.config else load_config()
    if not args.log_level:
        configure_logging(args.settings.logging.level)

    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())
