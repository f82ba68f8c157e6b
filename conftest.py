"""Pytest configuration.

Ensures that the repository root is importable so that ``graydetox`` and
``scripts`` resolve when tests run from a plain checkout without
``pip install -e .``.
"""

import os
import sys
import tempfile
from pathlib import Path

ROOT = Path(__file__).resolve().parent
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

# テスト中のログはリポジトリの ./log ではなく一時ディレクトリに書く
os.environ.setdefault("GRAYDETOX_LOG_DIR", tempfile.mkdtemp(prefix="graydetox-log-"))

# tests/fakes.py をテストから import できるようにする
TESTS_DIR = ROOT / "tests"
if str(TESTS_DIR) not in sys.path:
    sys.path.insert(0, str(TESTS_DIR))
