"""Map structured event objects to iCalendar documents.

What:
  Convert one structured object (usually an ``Event`` or a reservation with
  start/end dates) into a ``VCALENDAR`` holding a single ``VEVENT``.

Why:
  ``xshareascalendar`` buttons hand the object to the system calendar, which
  only understands iCalendar. Dates found in mails are frequently sloppy; a bad
  date must cost that one property, not the whole export.

How:
  Properties are built with :mod:`icalendar`. ``startDate``/``startTime`` and
  ``endDate``/``endTime`` are parsed with :meth:`datetime.fromisoformat`:
  values with an offset are written in UTC, values without one stay floating
  local times, and bare dates become all-day values. Parse failures raise
  :class:`~smlmail.errors.DateParseError` internally, are logged, and drop the
  property.

Interfaces:
  :func:`parse_event_time`, :func:`event_calendar`, :func:`to_ical_text`,
  :func:`event_objects`.
"""
from __future__ import annotations

from datetime import date, datetime, timezone
from typing import Any, Dict, List, Mapping, Optional, Union

from icalendar import Calendar, Event

from ..errors import DateParseError
from ..utils.logging import JsonLogger, get_logger


PRODUCT_ID = "-//smlmail//structured email//EN"


def parse_event_time(field: str, value: str) -> Union[date, datetime]:
    """Parse an event date or date-time.

    Raises:
      DateParseError: If ``value`` is not an ISO 8601 date or date-time.
    """

    text = value.strip()
    try:
        if len(text) == 10:
            return date.fromisoformat(text)
        if text[-1:] in ("Z", "z"):
            text = text[:-1] + "+00:00"
        return datetime.fromisoformat(text)
    except ValueError as exc:
        raise DateParseError(field, value) from exc


def event_calendar(obj: Mapping[str, Any], *, logger: Optional[JsonLogger] = None) -> Calendar:
    """Build a calendar with one event describing ``obj``."""

    log = logger or get_logger("smlmail.calendar")
    event = Event()
    uid = _text(obj.get("@id"))
    if uid:
        event.add("uid", uid)
    summary = _text(obj.get("name")) or _text(obj.get("@type"))
    if summary:
        event.add("summary", summary)
    description = _text(obj.get("description"))
    if description:
        event.add("description", description)
    url = _text(obj.get("url"))
    if url:
        event.add("url", url)

    for prop, date_key, time_key in (("dtstart", "startDate", "startTime"), ("dtend", "endDate", "endTime")):
        key = date_key if _text(obj.get(date_key)) else time_key
        raw = _text(obj.get(key))
        if not raw:
            continue
        try:
            event.add(prop, _ical_time(parse_event_time(key, raw)))
        except DateParseError as exc:
            log.warning("calendar_date_unparsable", field=exc.field, value=exc.value)

    location = _location(obj.get("location"))
    if location:
        event.add("location", location)

    calendar = Calendar()
    calendar.add("prodid", PRODUCT_ID)
    calendar.add("version", "2.0")
    calendar.add_component(event)
    return calendar


def _ical_time(value: Union[date, datetime]) -> Union[date, datetime]:
    # fixed offsets have no VTIMEZONE to reference
    if isinstance(value, datetime) and value.tzinfo is not None:
        return value.astimezone(timezone.utc)
    return value


def to_ical_text(calendar: Calendar) -> str:
    return calendar.to_ical().decode("utf-8")


def _text(value: Any) -> str:
    if value is None or isinstance(value, (dict, list)):
        return ""
    return str(value).strip()


def _location(value: Any) -> str:
    if isinstance(value, Mapping):
        name = _text(value.get("name"))
        address = value.get("address")
        if isinstance(address, Mapping):
            address = ", ".join(
                _text(address.get(part))
                for part in ("streetAddress", "postalCode", "addressLocality", "addressCountry")
                if _text(address.get(part))
            )
        parts = [part for part in (name, _text(address)) if part]
        return ", ".join(parts)
    return _text(value)


def event_objects(data: bytes, *, logger: Optional[JsonLogger] = None) -> List[Dict[str, Any]]:
    """Turn the ``VEVENT`` components of an ``.ics`` file into Event objects."""

    try:
        calendar = Calendar.from_ical(data)
    except ValueError as exc:
        (logger or get_logger("smlmail.calendar")).warning("ical_unparsable", error=str(exc))
        return []
    events: List[Dict[str, Any]] = []
    for component in calendar.walk("VEVENT"):
        obj: Dict[str, Any] = {"@context": "https://schema.org", "@type": "Event"}
        for prop, key in (("uid", "@id"), ("summary", "name"), ("description", "description"),
                          ("url", "url"), ("location", "location")):
            value = component.get(prop)
            if value is not None:
                obj[key] = str(value)
        for prop, key in (("dtstart", "startDate"), ("dtend", "endDate")):
            value = component.get(prop)
            if value is not None:
                obj[key] = value.dt.isoformat()
        events.append(obj)
    return events
