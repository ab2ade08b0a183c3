"""Action buttons derived from structured objects.

Each button target is an action URI understood by
:class:`~smlmail.protocol.dispatcher.ActionDispatcher`, or an ordinary URI
(``https:``, ``tel:``, ``geo:``) left to the system.
"""
from __future__ import annotations

import json
from typing import Any, List, Mapping, Optional

from ..protocol.uri import build_action_uri
from .renderer import ActionButton


def compact_json(obj: Any) -> bytes:
    return json.dumps(obj, ensure_ascii=False, separators=(",", ":")).encode("utf-8")


def buttons_for(obj: Mapping[str, Any]) -> List[ActionButton]:
    """Return the buttons a card for ``obj`` should offer, in display order."""

    buttons: List[ActionButton] = []
    actions = obj.get("potentialAction")
    if isinstance(actions, Mapping):
        actions = [actions]
    if isinstance(actions, list):
        for action in actions:
            if isinstance(action, Mapping):
                button = _potential_action_button(action)
                if button is not None:
                    buttons.append(button)

    url = obj.get("url")
    if url is not None:
        buttons.append(ActionButton(target=str(url), icon="open_in_browser"))

    type_value = _type_text(obj)
    if type_value == "Recipe" or type_value.endswith("Reservation"):
        name = obj.get("name")
        file_name = f"{name if isinstance(name, str) and name else type_value}.json"
        buttons.append(
            ActionButton(
                target=build_action_uri("xshareasfile", compact_json(obj), {"fileName": file_name}),
                icon="share",
            )
        )
    if type_value.endswith("Event") or _has_dates(obj):
        buttons.append(
            ActionButton(target=build_action_uri("xshareascalendar", compact_json(obj)), icon="event")
        )

    for phone in find_all(obj, "telephone"):
        if isinstance(phone, str):
            buttons.append(ActionButton(target=f"tel:{phone}", icon="call"))

    for geo in find_all(obj, "geo"):
        if not isinstance(geo, Mapping):
            continue
        latitude, longitude = geo.get("latitude"), geo.get("longitude")
        if latitude is None or longitude is None:
            continue
        buttons.append(
            ActionButton(target=f"google.navigation:q={latitude},{longitude}", icon="assistant_direction")
        )
        buttons.append(ActionButton(target=f"geo:{latitude},{longitude}", icon="map"))

    buttons.append(share_as_mail_button(obj))

    live_uri = obj.get("liveUri")
    if isinstance(live_uri, str) and live_uri:
        _, sep, rest = live_uri.partition(":")
        if sep:
            buttons.append(ActionButton(target=f"xreload:{rest}", icon="replay"))
    return buttons


def share_as_mail_button(obj: Mapping[str, Any]) -> ActionButton:
    return ActionButton(
        target=build_action_uri("xshareasmail", compact_json(obj)), icon="forward_to_inbox"
    )


def show_source_button(obj: Any) -> ActionButton:
    """Debug button that shows the pretty-printed object."""

    text = json.dumps(obj, indent=2, ensure_ascii=False)
    return ActionButton(
        target=build_action_uri("xshowsource", text.encode("utf-8")),
        icon="data_object",
        label="Show source",
    )


def find_all(obj: Any, key: str) -> List[Any]:
    """Collect every value stored under ``key`` at any depth.

    Matching values are not searched further.
    """

    found: List[Any] = []
    if isinstance(obj, Mapping):
        for name, value in obj.items():
            if name == key:
                found.append(value)
            else:
                found.extend(find_all(value, key))
    elif isinstance(obj, list):
        for element in obj:
            if isinstance(element, Mapping):
                found.extend(find_all(element, key))
    return found


def _potential_action_button(action: Mapping[str, Any]) -> Optional[ActionButton]:
    action_type = action.get("@type")
    if action_type == "CopyToClipboardAction":
        description = action.get("description")
        if isinstance(description, str) and description:
            return ActionButton(
                target=f"xclipboard:{description}",
                icon="content_paste",
                label=_text(action.get("name"), "Copy to clipboard "),
            )
    elif action_type in ("ConfirmAction", "CancelAction"):
        target = action.get("target")
        if isinstance(target, str) and target:
            default = "Confirm" if action_type == "ConfirmAction" else "Deny"
            return ActionButton(target=target, label=_text(action.get("name"), default))
    return None


def _type_text(obj: Mapping[str, Any]) -> str:
    value = obj.get("@type")
    return value if isinstance(value, str) else ""


def _has_dates(obj: Mapping[str, Any]) -> bool:
    return any(_text(obj.get(key), "") for key in ("startDate", "startTime", "endDate", "endTime"))


def _text(value: Any, default: str) -> str:
    return value if isinstance(value, str) and value else default

