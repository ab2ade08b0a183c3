"""Action URI encoding and decoding.

What:
  Build and take apart the private URIs that rendered cards use to call back
  into the application (``xshareasfile://<payload>?fileName=...``,
  ``xloadcards://<a>,<b>``, ``mailto:addr?action=...``).

Why:
  URIs already embedded in delivered mails must keep working, so the payload
  encoding is fixed: URL-safe base64 with no padding and no line wrapping.
  Decoders accept padded input too, since some producers add it.

How:
  :class:`ActionUri` wraps :func:`urllib.parse.urlsplit` and exposes the parts
  the dispatcher needs: the scheme token, the scheme-specific part without the
  leading ``//``, the authority, and query parameters.

Interfaces:
  :func:`b64url_encode`, :func:`b64url_decode`, :func:`b64url_decode_text`,
  :class:`ActionUri`, :func:`build_action_uri`.
"""
from __future__ import annotations

import base64
import binascii
from dataclasses import dataclass
from typing import Dict, List, Mapping, Optional
from urllib.parse import parse_qs, unquote, urlencode, urlsplit

from ..errors import DecodeError


_B64URL_ALPHABET = frozenset(
    "ABCDEFGHIJKLMNOPQRSTUVWXYZabcdefghijklmnopqrstuvwxyz0123456789-_="
)


def b64url_encode(data: bytes) -> str:
    """Encode ``data`` as unpadded, unwrapped URL-safe base64."""

    return base64.urlsafe_b64encode(data).decode("ascii").rstrip("=")


def b64url_decode(token: str) -> bytes:
    """Decode URL-safe base64 with or without padding.

    Raises:
      DecodeError: If ``token`` is empty, holds characters outside the
        URL-safe alphabet, or has an impossible length.
    """

    token = token.strip()
    if not token or not set(token) <= _B64URL_ALPHABET:
        raise DecodeError(f"not base64url: {token[:32]!r}")
    stripped = token.rstrip("=")
    if len(stripped) % 4 == 1:
        raise DecodeError(f"invalid base64url length: {len(stripped)}")
    padded = stripped + "=" * (-len(stripped) % 4)
    try:
        return base64.urlsafe_b64decode(padded)
    except (binascii.Error, ValueError) as exc:
        raise DecodeError(f"not base64url: {token[:32]!r}") from exc


def b64url_decode_text(token: str) -> str:
    """Decode a base64url token holding UTF-8 text."""

    data = b64url_decode(token)
    try:
        return data.decode("utf-8")
    except UnicodeDecodeError as exc:
        raise DecodeError("payload is not UTF-8 text") from exc


@dataclass(frozen=True)
class ActionUri:
    """Parsed view of one action URI."""

    raw: str
    scheme: str
    authority: str
    path: str
    query: str
    fragment: str

    @classmethod
    def parse(cls, raw: str) -> "ActionUri":
        parts = urlsplit(raw.strip())
        return cls(
            raw=raw,
            scheme=parts.scheme.lower(),
            authority=parts.netloc,
            path=parts.path,
            query=parts.query,
            fragment=parts.fragment,
        )

    @property
    def scheme_specific_part(self) -> str:
        """Return everything between ``scheme:`` and ``?``/``#``, minus ``//``."""

        if self.authority:
            return self.authority + self.path
        return self.path.lstrip("/") if self.path.startswith("//") else self.path

    @property
    def params(self) -> Dict[str, List[str]]:
        return parse_qs(self.query, keep_blank_values=True)

    def param(self, name: str) -> Optional[str]:
        values = self.params.get(name)
        return values[0] if values else None

    def payload_tokens(self) -> List[str]:
        """Split a comma-separated scheme-specific part into non-empty tokens."""

        return [token for token in self.scheme_specific_part.split(",") if token]

    def with_scheme(self, scheme: str) -> str:
        """Return the URI text with its scheme replaced (``xreload`` -> ``https``)."""

        remainder = self.raw.strip().split(":", 1)[1]
        return f"{scheme}:{remainder}"

    @property
    def decoded_path(self) -> str:
        return unquote(self.path)


def build_action_uri(scheme: str, payload: bytes, params: Optional[Mapping[str, str]] = None) -> str:
    """Return ``scheme://<base64url payload>`` with optional query parameters."""

    uri = f"{scheme}://{b64url_encode(payload)}"
    if params:
        uri = f"{uri}?{urlencode(dict(params))}"
    return uri
