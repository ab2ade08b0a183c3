"""Structured data extraction facade.

Interfaces:
  ``StructuredSyntax``, ``ExtractedItem``, ``HtmlStructuredDataExtractor``,
  ``extract``, ``extract_with_fallback``, ``parse_json_ld``.
"""

from .structured import (
    ExtractedItem,
    HtmlStructuredDataExtractor,
    StructuredSyntax,
    extract,
    extract_with_fallback,
    parse_json_ld,
    type_name,
)

__all__ = [
    "ExtractedItem",
    "HtmlStructuredDataExtractor",
    "StructuredSyntax",
    "extract",
    "extract_with_fallback",
    "parse_json_ld",
    "type_name",
]
