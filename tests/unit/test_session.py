"""Unit tests for :mod:`smlmail.compose.session`.

What:
  Cover payload loading, JSON attachment import, URL enrichment with image
  inlining, and the subject suggestion of a compose session.

Why:
  These helpers decide what ends up in an outgoing structured payload when the
  user shares a card, attaches a JSON file or pastes a link.
"""

from __future__ import annotations

import json

from fakes import FakeFetcher, RecordingRenderer
from smlmail.compose import ComposeSession, SmlVariant, is_json_ld, subject_for
from smlmail.compose.session import payload_from_text
from smlmail.protocol.hosts import FetchedResource

RECIPE = {"@context": "https://schema.org", "@type": "Recipe", "name": "Pie"}


def _session(fetcher=None, runtime=None):
    return ComposeSession(fetcher=fetcher or FakeFetcher(), renderer=RecordingRenderer(), config=runtime)


def _page(*objects):
    return "".join(f'<script type="application/ld+json">{json.dumps(obj)}</script>' for obj in objects)


def test_is_json_ld():
    assert is_json_ld(RECIPE)
    assert is_json_ld({"@context": "https://sml.example/v1", "@type": "Note"})
    assert not is_json_ld({"@type": "Recipe"})
    assert not is_json_ld({"@context": "https://example.org", "@type": "Recipe"})
    assert not is_json_ld({"@context": "https://schema.org"})
    assert not is_json_ld(["@context"])


def test_subject_for():
    assert subject_for(["Recipe", "Event"]) == "Check out this Recipe, Event"


def test_payload_from_text_keeps_recognisable_objects():
    text = json.dumps({"@graph": [RECIPE, {"@type": "Thing"}]})

    assert payload_from_text(text) == [RECIPE]
    assert payload_from_text("not json") == []


def test_load_payload_text_sets_preview_and_subject(runtime):
    session = _session(runtime=runtime)

    session.load_payload_text(json.dumps([RECIPE, {"@type": "Event"}]))

    assert len(session.payload) == 2
    assert session.subject == "Check out this Recipe, Event"
    assert session.preview_html.count('class="card"') == 2


def test_json_attachment_extends_payload_and_subject(runtime):
    session = _session(runtime=runtime)
    session.load_payload_text(json.dumps(RECIPE))

    assert session.add_json_attachment(json.dumps({"@context": "https://schema.org", "@type": "Event"}))
    assert not session.add_json_attachment('{"plain": "json"}')

    assert [obj["@type"] for obj in session.payload] == ["Recipe", "Event"]
    assert session.subject == "Check out this Recipe, Event"


def test_enrich_text_requires_a_single_url(runtime):
    session = _session(runtime=runtime)

    assert not session.enrich_text("look at https://example.org/pie")
    assert session.payload == []


def test_enrich_url_skips_boilerplate_and_inlines_images(runtime):
    url = "https://cooking.example.org/pie"
    fetcher = FakeFetcher(
        pages={url: _page({"@type": "WebSite"}, dict(RECIPE, image="https://img.example.org/pie.jpg"))},
        binaries={"https://img.example.org/pie.jpg": FetchedResource(content=b"\xff\xd8jpeg", content_type="image/jpeg")},
    )
    session = _session(fetcher, runtime)

    assert session.enrich_text(f"  {url}  ")

    (recipe,) = session.payload
    assert recipe["name"] == "Pie"
    assert recipe["image"]["contentUrl"].startswith("data:image/jpeg;base64,")
    assert session.preview_html is not None


def test_single_boilerplate_item_is_kept(runtime):
    url = "https://example.org/"
    session = _session(FakeFetcher(pages={url: _page({"@type": "WebSite", "name": "Example"})}), runtime)

    assert session.enrich_url(url)
    assert [obj["@type"] for obj in session.payload] == ["WebSite"]


def test_enrich_url_failure_keeps_payload(runtime):
    session = _session(runtime=runtime)
    session.load_payload_text(json.dumps(RECIPE))

    assert not session.enrich_url("https://down.example.org/")
    assert session.payload == [RECIPE]


def test_existing_data_uri_wins_over_download(runtime):
    fetcher = FakeFetcher()
    obj = {"thumbnailUrl": "https://img.example.org/a.png", "image": [{"contentUrl": "data:image/png;base64,AAAA"}]}

    result = _session(fetcher, runtime).inline_images(obj)

    assert result["image"] == {"contentUrl": "data:image/png;base64,AAAA"}
    assert fetcher.requested == []


def test_compose_applies_subject(runtime):
    session = _session(runtime=runtime)
    session.load_payload_text(json.dumps(RECIPE))

    draft = session.compose(SmlVariant.EMBEDDED_IN_HTML)

    assert draft.subject == "Check out this Recipe"
    assert '<script type="application/ld+json">' in draft.html_text
