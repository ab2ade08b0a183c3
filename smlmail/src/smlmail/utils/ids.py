"""Identifier and digest helpers.

What:
  Derive stable names from content: SHA-1 hex digests for exported calendar
  files.

Why:
  Exported files are named after their content so repeated exports of the same
  event overwrite one file instead of piling up, and concurrent calls never
  collide on a name.

Interfaces:
  :func:`content_digest`.
"""
from __future__ import annotations

import hashlib


def content_digest(data: bytes) -> str:
    """Return the lowercase SHA-1 hex digest of ``data``."""

    return hashlib.sha1(data).hexdigest()
