"""Unit tests for :mod:`smlmail.protocol.uri`."""

from __future__ import annotations

import pytest

from smlmail.errors import DecodeError
from smlmail.protocol.uri import (
    ActionUri,
    b64url_decode,
    b64url_decode_text,
    b64url_encode,
    build_action_uri,
)


def test_encode_is_unpadded_url_safe():
    token = b64url_encode(b"\xfb\xff\xfe?")

    assert "=" not in token
    assert "+" not in token and "/" not in token
    assert b64url_decode(token) == b"\xfb\xff\xfe?"


def test_decode_accepts_padding():
    assert b64url_decode("aGk=") == b"hi"
    assert b64url_decode("aGk") == b"hi"


@pytest.mark.parametrize("token", ["", "!!!", "a", "abcde", "a b"])
def test_decode_rejects_garbage(token):
    with pytest.raises(DecodeError):
        b64url_decode(token)


def test_decode_text_rejects_non_utf8():
    with pytest.raises(DecodeError):
        b64url_decode_text(b64url_encode(b"\xff\xfe"))


def test_parse_authority_payload_and_params():
    uri = build_action_uri("xshareasfile", b'{"@type":"Recipe"}', {"fileName": "Pie.json"})

    action = ActionUri.parse(uri)

    assert action.scheme == "xshareasfile"
    assert b64url_decode_text(action.authority) == '{"@type":"Recipe"}'
    assert action.param("fileName") == "Pie.json"
    assert action.param("missing") is None


def test_scheme_specific_part_and_tokens():
    action = ActionUri.parse("xloadcards://YQ,,Yg")

    assert action.scheme_specific_part == "YQ,,Yg"
    assert action.payload_tokens() == ["YQ", "Yg"]
    assert ActionUri.parse("xclipboard:123456").scheme_specific_part == "123456"


def test_mailto_parts():
    action = ActionUri.parse("mailto:shop%40example.org?action=ConfirmAction")

    assert action.scheme == "mailto"
    assert action.decoded_path == "shop@example.org"
    assert action.param("action") == "ConfirmAction"


def test_with_scheme_keeps_remainder():
    action = ActionUri.parse("XReload://api.example.org/live?id=1")

    assert action.scheme == "xreload"
    assert action.with_scheme("https") == "https://api.example.org/live?id=1"
