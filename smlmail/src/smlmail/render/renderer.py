"""Card rendering contract and the default Jinja2 implementation.

What:
  Define how one structured object (plus optional action buttons) becomes an
  HTML card fragment, and provide the batch helper every call site uses so a
  single broken object never aborts a batch.

Why:
  The composer, the message view, and the ``xloadcards``/``xreload`` actions
  all render lists of objects found in untrusted input. Rendering failures are
  expected and must be counted and logged, not silently swallowed.

How:
  :class:`TemplateRenderer` is the structural contract. :class:`CardRenderer`
  loads ``templates/card.html.j2`` through a Jinja2 ``FileSystemLoader`` with
  HTML autoescaping and translates template and I/O failures into
  :class:`~smlmail.errors.TemplateRenderError`. :func:`render_all` returns a
  :class:`RenderBatch` holding fragments and per-item failures.

Interfaces:
  :class:`ActionButton`, :class:`TemplateRenderer`, :class:`CardRenderer`,
  :class:`RenderBatch`, :func:`render_all`, :func:`wrap_cards_page`.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable, Dict, List, Mapping, Optional, Protocol, Sequence, Tuple

from jinja2 import Environment, FileSystemLoader, TemplateError, select_autoescape

from ..errors import TemplateRenderError
from ..utils.logging import JsonLogger, get_logger


TEMPLATE_ROOT = Path(__file__).resolve().parent / "templates"

CARD_PAGE_HEAD = (
    "<head>"
    '<link href="https://unpkg.com/material-components-web@latest/dist/material-components-web.min.css" rel="stylesheet">'
    '<script src="https://unpkg.com/material-components-web@latest/dist/material-components-web.min.js"></script>'
    '<link rel="stylesheet" href="https://fonts.googleapis.com/icon?family=Material+Icons">'
    '<link rel="stylesheet" href="https://fonts.googleapis.com/css?family=Roboto:300,400,500,600,700">'
    "</head>"
)


@dataclass(frozen=True)
class ActionButton:
    """One interactive control rendered under a card.

    Attributes:
      target: URI activated by the button (usually an action URI).
      icon: Material icon name shown on the button.
      label: Optional text label.
    """

    target: str
    icon: Optional[str] = None
    label: Optional[str] = None


class TemplateRenderer(Protocol):
    """Contract for turning one structured object into an HTML fragment."""

    def render(
        self, obj: Mapping[str, Any], buttons: Optional[Sequence[ActionButton]] = None
    ) -> str:
        """Return the HTML fragment or raise :class:`TemplateRenderError`."""


class CardRenderer:
    """Material-style card renderer backed by Jinja2 templates."""

    def __init__(
        self,
        template_root: Path = TEMPLATE_ROOT,
        *,
        template_name: str = "card.html.j2",
    ) -> None:
        self._env = Environment(
            loader=FileSystemLoader(str(template_root)),
            autoescape=select_autoescape(enabled_extensions=("html", "j2"), default=True),
            trim_blocks=True,
            lstrip_blocks=True,
        )
        self._template_name = template_name

    def render(
        self, obj: Mapping[str, Any], buttons: Optional[Sequence[ActionButton]] = None
    ) -> str:
        if not isinstance(obj, Mapping):
            raise TemplateRenderError(f"cannot render {type(obj).__name__}, expected an object")
        try:
            template = self._env.get_template(self._template_name)
            return template.render(self._context(obj, buttons or ()))
        except TemplateError as exc:
            raise TemplateRenderError(f"template failure: {exc}") from exc
        except OSError as exc:
            raise TemplateRenderError(f"template unavailable: {exc}") from exc

    @staticmethod
    def _context(obj: Mapping[str, Any], buttons: Sequence[ActionButton]) -> Dict[str, Any]:
        type_value = obj.get("@type", "")
        if isinstance(type_value, list):
            type_value = ", ".join(str(entry) for entry in type_value)
        name = obj.get("name")
        return {
            "item": obj,
            "type_name": type_value,
            "title": name if isinstance(name, str) and name else type_value,
            "thumbnail": _thumbnail(obj),
            "buttons": list(buttons),
        }


def _thumbnail(obj: Mapping[str, Any]) -> Optional[str]:
    for key in ("thumbnailUrl", "thumbnail", "image"):
        value = obj.get(key)
        if isinstance(value, list) and value:
            value = value[0]
        if isinstance(value, Mapping):
            value = value.get("url") or value.get("contentUrl")
        if isinstance(value, str) and value:
            return value
    return None


@dataclass
class RenderBatch:
    """Fragments rendered from a batch plus the items that failed."""

    fragments: List[str] = field(default_factory=list)
    failures: List[Tuple[int, TemplateRenderError]] = field(default_factory=list)

    def joined(self, separator: str = "\n") -> str:
        return separator.join(self.fragments)


def render_all(
    renderer: TemplateRenderer,
    objects: Sequence[Mapping[str, Any]],
    *,
    buttons_for: Optional[Callable[[Mapping[str, Any]], Sequence[ActionButton]]] = None,
    logger: Optional[JsonLogger] = None,
) -> RenderBatch:
    """Render every object, collecting successes and per-item failures."""

    batch = RenderBatch()
    for index, obj in enumerate(objects):
        try:
            buttons = buttons_for(obj) if buttons_for is not None else None
            batch.fragments.append(renderer.render(obj, buttons))
        except TemplateRenderError as exc:
            batch.failures.append((index, exc))
    if batch.failures:
        (logger or get_logger("smlmail.render")).warning(
            "render_failures", failed=len(batch.failures), rendered=len(batch.fragments)
        )
    return batch


def wrap_cards_page(fragments: Sequence[str]) -> str:
    """Wrap rendered cards into a standalone page for a popup view."""

    return f"<!DOCTYPE html>{CARD_PAGE_HEAD}<html><body>{chr(10).join(fragments)}</body></html>"
