"""Pytest configuration shared by the unit and end-to-end suites.

What:
  Establish project import paths and define a fixture that applies a canned
  runtime configuration to every test.

Why:
  Tests must import the in-repo ``smlmail`` package rather than an installed
  wheel, and the runtime configuration is cached globally; without resets a
  test could see another test's settings.

How:
  Prepend ``smlmail/src`` to ``sys.path`` when the source tree is present and
  point ``SMLMAIL_CONFIG_PATH`` at ``tests/data/config.yaml`` around each test,
  clearing the cache before and after.

Interfaces:
  :func:`runtime_config` (autouse pytest fixture).
"""

import sys
from pathlib import Path

PROJECT_ROOT = Path(__file__).resolve().parents[1]
SRC_DIR = PROJECT_ROOT / "smlmail" / "src"
if SRC_DIR.exists():
    sys.path.insert(0, str(SRC_DIR))

import pytest

from smlmail.config.loader import reset_runtime_config

CONFIG_PATH = Path(__file__).resolve().parent / "data" / "config.yaml"


@pytest.fixture(autouse=True)
def runtime_config(monkeypatch: pytest.MonkeyPatch):
    """Apply the canned configuration file for every test."""

    monkeypatch.setenv("SMLMAIL_CONFIG_PATH", str(CONFIG_PATH))
    reset_runtime_config()
    try:
        yield
    finally:
        reset_runtime_config()
