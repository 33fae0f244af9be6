"""
Pytest configuration and shared fixtures.
This file ensures the project root is in sys.path for imports and points the
application at a throwaway SQLite database before any settings are loaded.
"""

import os
import sys
import tempfile
from pathlib import Path

# Add project root to sys.path so we can import domain, services, etc.
project_root = Path(__file__).parent.parent
if str(project_root) not in sys.path:
    sys.path.insert(0, str(project_root))

_test_db_dir = tempfile.mkdtemp(prefix="labeliq-test-")
os.environ["DATABASE_URL"] = f"sqlite:///{Path(_test_db_dir) / 'labeliq.db'}"
os.environ["ENVIRONMENT"] = "testing"
os.environ["REMOTE_SOURCES_ENABLED"] = "false"
os.environ["START_ONLINE"] = "true"
os.environ.pop("SYNC_ENDPOINT_URL", None)
