"""Action URI protocol: URI codec, collaborator contracts and calendar export.

The dispatcher itself lives in :mod:`smlmail.protocol.dispatcher`.
"""

from .calendar import event_calendar, event_objects, parse_event_time, to_ical_text
from .hosts import FetchedResource, ResolvedAttachment
from .uri import ActionUri, b64url_decode, b64url_decode_text, b64url_encode, build_action_uri

__all__ = [
    "ActionUri",
    "FetchedResource",
    "ResolvedAttachment",
    "b64url_decode",
    "b64url_decode_text",
    "b64url_encode",
    "build_action_uri",
    "event_calendar",
    "event_objects",
    "parse_event_time",
    "to_ical_text",
]
