"""Typed failures raised across the structured email pipeline.

What:
  Declare the error taxonomy shared by the composer, extractor, renderer,
  assembler, and URI dispatcher.

Why:
  Each failure has a distinct containment policy: most are recoverable per item
  or per URI, while :class:`EmptyPayloadError` is a precondition violation.
  Distinct types let call sites catch exactly what they are allowed to absorb.

How:
  A single :class:`SmlError` root with one subclass per failure family. Errors
  that wrap lower level exceptions keep them as ``__cause__``.

Interfaces:
  :class:`SmlError`, :class:`EmptyPayloadError`, :class:`TemplateRenderError`,
  :class:`DecodeError`, :class:`NetworkFetchError`, :class:`DateParseError`,
  :class:`BuildError`, :class:`MissingAccountError`.
"""
from __future__ import annotations

from typing import Optional


class SmlError(Exception):
    """Base class for all structured email failures."""


class EmptyPayloadError(SmlError, ValueError):
    """Raised when encoding is requested for an empty structured payload."""


class TemplateRenderError(SmlError):
    """Raised when one structured object cannot be rendered to HTML.

    Covers both I/O failures (template loading) and malformed input (objects
    that are not mappings or break the template).
    """


class DecodeError(SmlError):
    """Raised when an action URI payload is not valid base64url or JSON."""


class NetworkFetchError(SmlError):
    """Raised when an HTTP fetch fails or returns no usable body."""

    def __init__(self, url: str, reason: str) -> None:
        super().__init__(f"{url}: {reason}")
        self.url = url
        self.reason = reason


class DateParseError(SmlError):
    """Raised when a calendar date field cannot be parsed."""

    def __init__(self, field: str, value: str) -> None:
        super().__init__(f"unparsable {field}: {value!r}")
        self.field = field
        self.value = value


class BuildError(SmlError):
    """Raised inside a message build; surfaced through the build outcome."""


class MissingAccountError(SmlError):
    """Raised when an action needs an account but none is configured."""

    def __init__(self, message: Optional[str] = None) -> None:
        super().__init__(message or "no default account configured")
