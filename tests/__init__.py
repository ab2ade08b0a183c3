"""Test package marker.

What:
  Marks ``tests`` as a package so pytest resolves ``tests.conftest`` and the
  nested suites deterministically.

Invariants & Safety:
  - Importing ``tests`` has no side effects.
"""
