"""
Shared pytest setup: point the service at a throwaway SQLite file before
any backend module reads its settings.
"""

import os
import sys
import tempfile

ROOT = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
for path in (ROOT, os.path.join(ROOT, "backend")):
    if path not in sys.path:
        sys.path.insert(0, path)

_DB_DIR = tempfile.mkdtemp(prefix="focuswatch-tests-")
os.environ.setdefault("DATABASE_URL", f"sqlite:///{os.path.join(_DB_DIR, 'test.db')}")
os.environ.setdefault("DEBUG", "false")
