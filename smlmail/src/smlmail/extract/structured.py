"""Structured data extraction from HTML documents.

What:
  Find structured objects embedded in arbitrary HTML in two syntaxes: JSON-LD
  ``<script type="application/ld+json">`` blocks and Microdata
  ``itemscope``/``itemprop`` attributes.

Why:
  Inbound mails, remote pages fetched by ``xloadcards``, and compose-time URL
  enrichment all need the same extraction. Markup found in the wild is often
  broken, so extraction must degrade to "nothing found" instead of failing.

How:
  Parse with BeautifulSoup's ``html.parser`` backend. JSON-LD blocks are fed to
  :func:`parse_json_ld`, which accepts a single object, an array, or an
  ``@graph`` document. Microdata top-level items (``itemscope`` without
  ``itemprop``) are converted to JSON-LD shaped dictionaries with ``@context``
  and ``@type`` derived from ``itemtype``.

Interfaces:
  :class:`StructuredSyntax`, :class:`ExtractedItem`,
  :class:`HtmlStructuredDataExtractor`, :func:`extract`,
  :func:`extract_with_fallback`, :func:`parse_json_ld`.

Invariants & Safety:
  - No function in this module raises on malformed input; the worst case is
    an empty list.
  - Item order follows document order.
"""
from __future__ import annotations

import enum
import json
from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Optional

from bs4 import BeautifulSoup, Tag
from bs4.builder import ParserRejectedMarkup

from ..utils.logging import JsonLogger, get_logger


JSON_LD_MIME_TYPE = "application/ld+json"

_URL_PROPERTY_ATTRS = {
    "a": "href",
    "area": "href",
    "link": "href",
    "audio": "src",
    "embed": "src",
    "iframe": "src",
    "img": "src",
    "source": "src",
    "track": "src",
    "video": "src",
    "object": "data",
    "data": "value",
    "meter": "value",
    "meta": "content",
}


class StructuredSyntax(str, enum.Enum):
    """Embedding syntaxes the extractor understands."""

    JSON_LD = "json-ld"
    MICRODATA = "microdata"


@dataclass(frozen=True)
class ExtractedItem:
    """One structured object found in a document.

    Attributes:
      syntax: Syntax the object was embedded with.
      data: The object as a JSON-compatible dictionary.
    """

    syntax: StructuredSyntax
    data: Dict[str, Any]

    @property
    def type_name(self) -> str:
        """Return ``@type`` as text (first entry when it is a list)."""

        return type_name(self.data)


def type_name(obj: Dict[str, Any]) -> str:
    value = obj.get("@type", "")
    if isinstance(value, list):
        value = value[0] if value else ""
    return value if isinstance(value, str) else ""


def parse_json_ld(text: str) -> List[Dict[str, Any]]:
    """Deserialize JSON-LD text into a list of objects.

    Accepts a single object, an array of objects, or an object holding an
    ``@graph`` array (graph members inherit the outer ``@context`` when they
    lack their own). Invalid JSON, documents nested too deeply to walk and
    non-object members yield nothing.
    """

    try:
        return list(_flatten_json_ld(json.loads(text), None))
    except (TypeError, ValueError, RecursionError):
        return []


def _flatten_json_ld(document: Any, context: Any) -> Iterable[Dict[str, Any]]:
    if isinstance(document, list):
        for member in document:
            yield from _flatten_json_ld(member, context)
        return
    if not isinstance(document, dict):
        return
    graph = document.get("@graph")
    if isinstance(graph, list):
        outer_context = document.get("@context", context)
        for member in graph:
            yield from _flatten_json_ld(member, outer_context)
        return
    if context is not None and "@context" not in document:
        document = {"@context": context, **document}
    yield document


class HtmlStructuredDataExtractor:
    """Default :class:`~smlmail.protocol.hosts.StructuredDataExtractor`."""

    def __init__(self, logger: Optional[JsonLogger] = None) -> None:
        self._logger = logger or get_logger("smlmail.extract")

    def extract(self, html: str, syntax: StructuredSyntax) -> List[ExtractedItem]:
        """Return every object embedded in ``html`` with ``syntax``."""

        soup = self._parse(html)
        if soup is None:
            return []
        if syntax is StructuredSyntax.JSON_LD:
            objects = self._json_ld_objects(soup)
        else:
            objects = self._microdata_objects(soup)
        return [ExtractedItem(syntax=syntax, data=obj) for obj in objects]

    def extract_with_fallback(self, html: str) -> List[ExtractedItem]:
        """Try JSON-LD first and only fall back to Microdata when it is empty."""

        items = self.extract(html, StructuredSyntax.JSON_LD)
        if items:
            return items
        return self.extract(html, StructuredSyntax.MICRODATA)

    def _parse(self, html: str) -> Optional[BeautifulSoup]:
        if not isinstance(html, str) or not html.strip():
            return None
        try:
            return BeautifulSoup(html, "html.parser")
        except ParserRejectedMarkup as exc:
            self._logger.warning("html_rejected", error=str(exc))
            return None

    def _json_ld_objects(self, soup: BeautifulSoup) -> List[Dict[str, Any]]:
        objects: List[Dict[str, Any]] = []
        for script in soup.find_all("script"):
            script_type = (script.get("type") or "").split(";")[0].strip().lower()
            if script_type != JSON_LD_MIME_TYPE:
                continue
            parsed = parse_json_ld(script.string or script.get_text())
            if not parsed:
                self._logger.debug("json_ld_block_skipped")
            objects.extend(parsed)
        return objects

    def _microdata_objects(self, soup: BeautifulSoup) -> List[Dict[str, Any]]:
        objects = []
        for element in soup.find_all(attrs={"itemscope": True}):
            if element.has_attr("itemprop"):
                continue
            try:
                objects.append(_microdata_item(element))
            except RecursionError:
                self._logger.warning("microdata_too_deep", itemtype=element.get("itemtype") or "")
        return objects


def _microdata_item(element: Tag) -> Dict[str, Any]:
    item: Dict[str, Any] = {}
    itemtypes = (element.get("itemtype") or "").split()
    if itemtypes:
        context, _, type_value = itemtypes[0].rstrip("/").rpartition("/")
        if context:
            item["@context"] = context
        item["@type"] = type_value if len(itemtypes) == 1 else [
            entry.rstrip("/").rpartition("/")[2] for entry in itemtypes
        ]
    itemid = element.get("itemid")
    if itemid:
        item["@id"] = itemid
    _collect_properties(element, item)
    return item


def _collect_properties(element: Tag, item: Dict[str, Any]) -> None:
    for child in element.children:
        if not isinstance(child, Tag):
            continue
        names = (child.get("itemprop") or "").split()
        if names:
            value = _microdata_item(child) if child.has_attr("itemscope") else _property_value(child)
            for name in names:
                _add_property(item, name, value)
        if not child.has_attr("itemscope"):
            _collect_properties(child, item)


def _add_property(item: Dict[str, Any], name: str, value: Any) -> None:
    if name not in item:
        item[name] = value
    elif isinstance(item[name], list):
        item[name].append(value)
    else:
        item[name] = [item[name], value]


def _property_value(element: Tag) -> str:
    attr = _URL_PROPERTY_ATTRS.get(element.name)
    if attr and element.has_attr(attr):
        return str(element[attr]).strip()
    if element.name == "time" and element.has_attr("datetime"):
        return str(element["datetime"]).strip()
    if element.has_attr("content"):
        return str(element["content"]).strip()
    return " ".join(element.get_text(" ").split())


_DEFAULT_EXTRACTOR: Optional[HtmlStructuredDataExtractor] = None


def _default_extractor() -> HtmlStructuredDataExtractor:
    global _DEFAULT_EXTRACTOR
    if _DEFAULT_EXTRACTOR is None:
        _DEFAULT_EXTRACTOR = HtmlStructuredDataExtractor()
    return _DEFAULT_EXTRACTOR


def extract(html: str, syntax: StructuredSyntax) -> List[ExtractedItem]:
    """Module-level shortcut for :meth:`HtmlStructuredDataExtractor.extract`."""

    return _default_extractor().extract(html, syntax)


def extract_with_fallback(html: str) -> List[ExtractedItem]:
    """Module-level shortcut for the JSON-LD then Microdata caller policy."""

    return _default_extractor().extract_with_fallback(html)
