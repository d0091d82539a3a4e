"""
Pytest configuration and fixtures for ddb-importer tests.
"""

import copy
import json
import sys
from pathlib import Path
import pytest

# Add src directory to Python path to allow importing ddb_importer
src_path = Path(__file__).parent.parent / "src"
if str(src_path) not in sys.path:
    sys.path.insert(0, str(src_path))

FIXTURES_DIR = Path(__file__).parent / "fixtures"


@pytest.fixture(scope="session")
def _sample_payload_raw() -> dict:
    with (FIXTURES_DIR / "ddb_character_sample.json").open("r", encoding="utf-8") as f:
        return json.load(f)


@pytest.fixture
def sample_payload(_sample_payload_raw) -> dict:
    """The clipboard payload fixture (a fresh copy per test)."""
    return copy.deepcopy(_sample_payload_raw)


@pytest.fixture
def sample_character_data(sample_payload) -> dict:
    """The bare ``data`` object of the fixture character."""
    return sample_payload["characterData"]["data"]


# Configure anyio to only use asyncio (not trio)
@pytest.fixture
def anyio_backend():
    return "asyncio"
