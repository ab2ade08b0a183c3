"""Card rendering: the renderer contract, the Jinja2 card renderer and buttons."""

from .buttons import buttons_for, find_all, share_as_mail_button, show_source_button
from .renderer import (
    CARD_PAGE_HEAD,
    ActionButton,
    CardRenderer,
    RenderBatch,
    TemplateRenderer,
    render_all,
    wrap_cards_page,
)

__all__ = [
    "CARD_PAGE_HEAD",
    "ActionButton",
    "CardRenderer",
    "RenderBatch",
    "TemplateRenderer",
    "buttons_for",
    "find_all",
    "render_all",
    "share_as_mail_button",
    "show_source_button",
    "wrap_cards_page",
]
