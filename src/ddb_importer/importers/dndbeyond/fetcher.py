"""
Fetch and read D&D Beyond character data.

This module handles online fetching (via the character service, optionally
authenticated with the CobaltSession cookie), local file reading, and
assembling the same clipboard payload the browser extension produces.
"""

from __future__ import annotations

import json
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

import httpx

from ..base import ImportError
from .schema import (
    DDB_API_BASE_URL,
    DDB_CHARACTER_URL_PATTERN,
    DDB_COOKIE_NAME,
    DDB_GAME_DATA_BASE_URL,
    DDB_SITE_URL,
)


def extract_character_id(url_or_id: str) -> int:
    """
    Extract character ID from a D&D Beyond URL or bare numeric ID.

    Accepts:
    - Full URL: https://www.dndbeyond.com/characters/12345678
    - Builder URL: https://www.dndbeyond.com/characters/12345678/builder
    - Bare ID: "12345678"

    Raises:
        ImportError: If the input doesn't match expected format
    """
    match = DDB_CHARACTER_URL_PATTERN.search(url_or_id)
    if match:
        return int(match.group(1))

    try:
        return int(url_or_id.strip())
    except ValueError:
        raise ImportError(
            f"Invalid D&D Beyond character URL or ID: '{url_or_id}'. "
            "Expected format: https://www.dndbeyond.com/characters/12345678 or just the numeric ID."
        ) from None


def character_url(character_id: int | str) -> str:
    return f"{DDB_SITE_URL}/characters/{character_id}"


def _headers(cobalt_cookie: str | None) -> dict[str, str]:
    headers = {"Accept": "application/json"}
    if cobalt_cookie:
        headers["Cookie"] = f"{DDB_COOKIE_NAME}={cobalt_cookie}"
    return headers


def _unwrap(data: Any) -> Any:
    # Unwrap {"data": {...}} envelope if present
    if isinstance(data, dict) and "data" in data:
        return data["data"]
    return data


async def fetch_character(
    url_or_id: str,
    cobalt_cookie: str | None = None,
    base_url: str = DDB_API_BASE_URL,
    timeout: float = 10.0,
) -> dict:
    """
    Fetch character JSON from D&D Beyond API.

    Args:
        url_or_id: D&D Beyond character URL or numeric ID
        cobalt_cookie: CobaltSession cookie value; required for private characters
        base_url: Character service endpoint
        timeout: Request timeout in seconds

    Returns:
        Raw character data (the unwrapped ``data`` object) as dictionary

    Raises:
        ImportError: If fetch fails, character not found, or character is private
    """
    character_id = extract_character_id(url_or_id)
    api_url = f"{base_url}/{character_id}"

    try:
        async with httpx.AsyncClient() as client:
            response = await client.get(api_url, headers=_headers(cobalt_cookie), timeout=timeout)

            # Handle specific HTTP errors with actionable messages
            if response.status_code == 404:
                raise ImportError(
                    f"Character not found. Check the ID or URL: {character_id}"
                )
            elif response.status_code in (401, 403):
                hint = (
                    "The CobaltSession cookie was rejected; copy a fresh one from the extension."
                    if cobalt_cookie
                    else "Set it to Public on D&D Beyond, or provide your CobaltSession cookie."
                )
                raise ImportError(f"Character is private. {hint}")

            response.raise_for_status()

            data = response.json()

    except httpx.TimeoutException:
        raise ImportError(
            "D&D Beyond is not responding. Try again later or paste the character data instead."
        ) from None
    except httpx.HTTPStatusError as e:
        raise ImportError(
            f"D&D Beyond returned HTTP {e.response.status_code}: {e.response.reason_phrase}"
        ) from None
    except httpx.RequestError as e:
        raise ImportError(
            f"Failed to connect to D&D Beyond: {e}"
        ) from None
    except json.JSONDecodeError:
        raise ImportError("Invalid response from D&D Beyond: body is not JSON") from None

    if isinstance(data, dict) and data.get("success") is False:
        raise ImportError(f"D&D Beyond refused the request: {data.get('message') or 'unknown error'}")

    data = _unwrap(data)

    if not isinstance(data, dict):
        raise ImportError("Invalid response from D&D Beyond: expected JSON object")

    if "stats" not in data or "classes" not in data:
        raise ImportError(
            "Invalid character data from D&D Beyond: missing required fields (stats, classes)"
        )

    return data


async def _fetch_list(client: httpx.AsyncClient, url: str, headers: dict[str, str], timeout: float) -> list[dict]:
    """GET a game-data list. Any failure degrades to an empty list."""
    try:
        response = await client.get(url, headers=headers, timeout=timeout)
        response.raise_for_status()
        data = response.json()
    except (httpx.HTTPError, json.JSONDecodeError):
        return []

    data = _unwrap(data)
    if isinstance(data, dict):
        data = data.get("results", [])
    if not isinstance(data, list):
        return []
    return [row for row in data if isinstance(row, dict)]


async def fetch_game_data(
    cobalt_cookie: str | None = None,
    base_url: str = DDB_GAME_DATA_BASE_URL,
    timeout: float = 10.0,
) -> dict[str, list[dict]]:
    """
    Fetch bulk item and class definitions.

    Returns:
        ``{"items": [...], "classes": [...]}``; a list is empty when its
        request failed.
    """
    headers = _headers(cobalt_cookie)
    async with httpx.AsyncClient() as client:
        items = await _fetch_list(client, f"{base_url}/items", headers, timeout)
        classes = await _fetch_list(client, f"{base_url}/classes", headers, timeout)
    return {"items": items, "classes": classes}


def build_clipboard_payload(
    character_data: dict,
    character_id: int | str,
    cobalt_cookie: str | None = None,
    compendium_data: dict | None = None,
) -> dict:
    """Assemble the payload shape the browser extension copies to the clipboard."""
    payload: dict[str, Any] = {
        "characterData": {"success": True, "data": character_data},
        "characterUrl": character_url(character_id),
        "characterId": str(character_id),
        "cobaltCookie": cobalt_cookie,
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }
    if compendium_data is not None:
        payload["compendiumData"] = compendium_data
    return payload


def read_payload_file(file_path: str) -> dict:
    """
    Read a saved clipboard payload or a raw D&D Beyond character export.

    A raw export (enveloped or bare) is wrapped as ``characterData`` so the
    result can go straight to the importer.

    Raises:
        ImportError: If file not found, invalid JSON, or unrecognized format
    """
    path = Path(file_path)

    try:
        with path.open("r", encoding="utf-8") as f:
            data = json.load(f)
    except FileNotFoundError:
        raise ImportError(
            f"Character file not found: {file_path}"
        ) from None
    except json.JSONDecodeError as e:
        raise ImportError(
            f"Invalid JSON in character file: {e}"
        ) from None
    except OSError as e:
        raise ImportError(
            f"Failed to read character file: {e}"
        ) from None

    if not isinstance(data, dict):
        raise ImportError(
            f"Invalid character file format: expected JSON object, got {type(data).__name__}"
        )

    if "characterData" in data:
        return data

    character = _unwrap(data)
    if not isinstance(character, dict) or "stats" not in character or "classes" not in character:
        raise ImportError(
            "Unrecognized character file format: missing required fields (stats, classes). "
            "Ensure this is a valid D&D Beyond character export."
        )

    payload: dict[str, Any] = {"characterData": {"data": character}}
    if character.get("id") is not None:
        payload["characterId"] = str(character["id"])
        payload["characterUrl"] = character_url(character["id"])
    return payload
