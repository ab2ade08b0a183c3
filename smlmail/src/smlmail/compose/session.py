"""Compose-time helpers for building a structured payload interactively.

What:
  Collect the structured payload of a message being written: from a payload
  handed over by ``xshareasmail``, from JSON attachments, or from a URL the
  user pasted (fetched, extracted and rendered as a preview).

Why:
  The compose window needs the same payload bookkeeping regardless of where
  the objects came from, plus the subject suggestion ("Check out this ...")
  derived from their types.

How:
  :class:`ComposeSession` keeps the payload list, the rendered preview and the
  subject. Remote pages go through the injected
  :class:`~smlmail.protocol.hosts.HttpFetcher` and
  :class:`~smlmail.protocol.hosts.StructuredDataExtractor`; images referenced
  by enriched objects are inlined as ``data:`` URIs when they can be fetched.
"""
from __future__ import annotations

import base64
import re
from typing import Any, Dict, List, Mapping, Optional, Sequence

from ..config import RuntimeConfig, get_runtime_config
from ..errors import NetworkFetchError
from ..extract.structured import HtmlStructuredDataExtractor, parse_json_ld, type_name
from ..protocol.hosts import HttpFetcher, StructuredDataExtractor
from ..render.buttons import buttons_for
from ..render.renderer import CARD_PAGE_HEAD, CardRenderer, TemplateRenderer, render_all
from ..utils.logging import JsonLogger, get_logger
from .builder import ComposedMessageBuilder
from .composer import SmlVariant, compose


SUBJECT_PREFIX = "Check out this "
_URL_PATTERN = re.compile(r"^https?://[^\s/$.?#][^\s]*$", re.IGNORECASE)


def is_json_ld(obj: Any) -> bool:
    """Return whether ``obj`` looks like a schema.org or SML object."""

    if not isinstance(obj, Mapping):
        return False
    context = obj.get("@context")
    if not isinstance(context, str):
        return False
    lowered = context.lower()
    if "schema" not in lowered and "sml" not in lowered:
        return False
    return bool(type_name(obj))


def subject_for(types: Sequence[str]) -> str:
    return SUBJECT_PREFIX + ", ".join(types)


def payload_from_text(text: str) -> List[Dict[str, Any]]:
    """Deserialize JSON-LD text and keep only recognisable objects."""

    return [obj for obj in parse_json_ld(text) if is_json_ld(obj)]


def image_urls(value: Any) -> List[str]:
    """Collect image URLs from a ``thumbnail``/``thumbnailUrl``/``image`` value."""

    if isinstance(value, str):
        return [value]
    if isinstance(value, Mapping):
        value = [value]
    urls: List[str] = []
    if isinstance(value, list):
        for entry in value:
            if isinstance(entry, str):
                urls.append(entry)
            elif isinstance(entry, Mapping):
                url = entry.get("contentUrl")
                if not isinstance(url, str):
                    url = entry.get("url")
                if isinstance(url, str):
                    urls.append(url)
    return urls


class ComposeSession:
    """Payload, preview and subject of one message being composed."""

    def __init__(
        self,
        *,
        fetcher: HttpFetcher,
        extractor: Optional[StructuredDataExtractor] = None,
        renderer: Optional[TemplateRenderer] = None,
        config: Optional[RuntimeConfig] = None,
        logger: Optional[JsonLogger] = None,
    ) -> None:
        self._fetcher = fetcher
        self._logger = logger or get_logger("smlmail.compose.session")
        self._extractor = extractor or HtmlStructuredDataExtractor(self._logger.child("smlmail.extract"))
        self._renderer = renderer or CardRenderer()
        self._config = config or get_runtime_config(allow_default=True)
        self.payload: List[Dict[str, Any]] = []
        self.subject = ""
        self.preview_html: Optional[str] = None

    def load_payload_text(self, text: str) -> None:
        """Start from a payload handed over by another message."""

        self.payload = parse_json_ld(text)
        self._refresh_preview()
        if not self.subject:
            self.subject = subject_for([type_name(obj) for obj in self.payload])

    def add_json_attachment(self, text: str) -> bool:
        """Move JSON-LD objects from an attached file into the payload.

        Returns:
          ``True`` when the attachment contributed objects that rendered, so the
          caller can drop the attachment itself.
        """

        objects = payload_from_text(text)
        if not objects:
            return False
        self.payload.extend(objects)
        if not self._refresh_preview():
            return False
        types = [type_name(obj) for obj in objects]
        if not self.subject:
            self.subject = subject_for(types)
        elif self.subject.startswith(SUBJECT_PREFIX):
            self.subject += ", " + ", ".join(types)
        return True

    def enrich_text(self, text: str) -> bool:
        """Enrich the payload when ``text`` is exactly one URL."""

        candidate = text.strip()
        if not _URL_PATTERN.match(candidate):
            return False
        return self.enrich_url(candidate)

    def enrich_url(self, url: str) -> bool:
        """Replace the payload with the structured data found at ``url``."""

        try:
            html = self._fetcher.fetch(url)
        except NetworkFetchError as exc:
            self._logger.warning("enrich_fetch_failed", url=url, error=exc.reason)
            return False
        items = self._extractor.extract_with_fallback(html)
        if not items:
            self._logger.info("enrich_no_structured_data", url=url)
            return False
        skip_types = set(self._config.cards.skip_types) if len(items) > 1 else set()
        self.payload = [
            self.inline_images(dict(item.data))
            for item in items
            if item.type_name not in skip_types
        ]
        return self._refresh_preview()

    def inline_images(self, obj: Dict[str, Any]) -> Dict[str, Any]:
        """Replace ``image`` with an inline ``data:`` URI when one can be had.

        Candidates are taken from ``thumbnail``, ``thumbnailUrl`` and ``image``
        in that order. An existing ``data:`` URI wins over downloads.
        """

        candidates: List[str] = []
        for key in ("thumbnail", "thumbnailUrl", "image"):
            candidates.extend(image_urls(obj.get(key)))
        for url in candidates:
            if url.startswith("data:"):
                obj["image"] = {"contentUrl": url}
                return obj
        for url in candidates:
            if not url.lower().startswith(("http://", "https://")):
                continue
            try:
                resource = self._fetcher.fetch_binary(url)
            except NetworkFetchError:
                continue
            if resource.content_type.startswith("image/"):
                encoded = base64.b64encode(resource.content).decode("ascii")
                obj["image"] = {"contentUrl": f"data:{resource.content_type};base64,{encoded}"}
                return obj
        return obj

    def compose(
        self,
        variant: Optional[SmlVariant] = None,
        *,
        plain_text: Optional[str] = None,
        builder: Optional[ComposedMessageBuilder] = None,
    ) -> ComposedMessageBuilder:
        """Encode the collected payload and apply the suggested subject."""

        draft = compose(
            self.payload,
            variant or SmlVariant(self._config.compose.variant),
            plain_text=plain_text,
            builder=builder,
            hide_timezone=self._config.compose.hide_timezone,
            renderer=self._renderer,
            logger=self._logger,
        )
        if not draft.subject:
            draft.subject = self.subject
        return draft

    def _refresh_preview(self) -> bool:
        batch = render_all(self._renderer, self.payload, buttons_for=buttons_for, logger=self._logger)
        if not batch.fragments:
            return False
        self.preview_html = CARD_PAGE_HEAD + batch.joined("\n")
        return True
