"""
Call Graph Explorer version

Single source of the package version, re-exported by the package root and
shown by ``callgraph --version``.

Author: Olivier Vitrac, PhD, HDR | olivier.vitrac@adservio.fr | Adservio | 2026-10-19
"""

__version__ = "0.3.0"

BUILD_DATE = "2026-10-19"
BUILD_ORG = "Adservio"


def get_short_banner() -> str:
    """Compact banner for the command line."""
    return f"callgraph v{__version__} | {BUILD_ORG} | {BUILD_DATE}"
