"""
Pytest configuration and shared fixtures for TallyBot tests.
"""

import os
import tempfile

# Keep per-run log files out of the working tree.
os.environ.setdefault("TALLYBOT_LOG_DIR", tempfile.mkdtemp(prefix="tallybot-logs-"))

import pytest

from core.tallies import MEMORY_DB, TallyEngine, TallyStore


@pytest.fixture
def store():
    """An open in-memory tally store."""
    with TallyStore(MEMORY_DB) as s:
        yield s


@pytest.fixture
def engine(store):
    return TallyEngine(store)


@pytest.fixture
def db_path(tmp_path):
    """Path for an on-disk tally database that tests may reopen."""
    return tmp_path / "tallies.db"
