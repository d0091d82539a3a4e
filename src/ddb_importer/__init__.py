"""
D&D Beyond Importer - imports D&D Beyond characters as documents backed by
local compendium packs, built with FastMCP.
"""

from .main import mcp
from .orchestrator import ImportOrchestrator
from .compendium import StoreRegistry

try:
    from importlib.metadata import version as _get_version
    __version__ = _get_version("ddb-importer")
except Exception:
    __version__ = "0.1.0"  # Fallback if metadata unavailable
__all__ = ["mcp", "ImportOrchestrator", "StoreRegistry"]
