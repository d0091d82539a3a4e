"""
Character import from D&D Beyond.

Supports the browser extension's clipboard payload, a live fetch through
the character service, and local JSON exports.
"""

from .dndbeyond.fetcher import fetch_character, fetch_game_data, read_payload_file
from .dndbeyond.mapper import map_ddb_to_character
from .dndbeyond.payload import parse_clipboard_payload
from .base import ImportResult, ImportError, ImportStep

__all__ = [
    "fetch_character",
    "fetch_game_data",
    "read_payload_file",
    "map_ddb_to_character",
    "parse_clipboard_payload",
    "ImportResult",
    "ImportError",
    "ImportStep",
]
