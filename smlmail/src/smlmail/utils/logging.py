"""smlmail logging helpers with JSON emission and payload redaction.

What:
  Offer a small facade over text streams so every component emits single-line
  JSON log records with the same fields, while structured payloads and message
  bodies never reach the log verbatim.

Why:
  Structured payloads carry personal data (reservations, addresses, phone
  numbers). Dispatcher and renderer failures must be diagnosable without
  copying that data into log files.

How:
  :class:`JsonLogger` builds a canonical record (``ts``, ``lvl``, ``msg``,
  ``component``), merges a recursively redacted copy of keyword extras, and
  writes it with :func:`json.dump`, flushing after every line.

Interfaces:
  :class:`JsonLogger`, :func:`get_logger`.

Invariants & Safety:
  - Keys listed in :data:`SENSITIVE_KEYS` are replaced with ``[redacted]``,
    including inside nested dictionaries.
  - Values that are not JSON serialisable are logged through ``str``.
"""
from __future__ import annotations

import json
import sys
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, Optional


REDACTED = "[redacted]"
SENSITIVE_KEYS = frozenset({"subject", "body", "payload", "text", "html"})


@dataclass
class JsonLogger:
    """Structured JSON logger with automatic redaction."""

    stream: Any = field(default_factory=lambda: sys.stdout)
    component: str = "smlmail"

    def log(self, level: str, message: str, *, extra: Optional[Dict[str, Any]] = None) -> None:
        """Emit one JSON record to the configured stream.

        Args:
          level: Severity label, upper-cased in the output.
          message: Event name or short description.
          extra: Optional context, redacted recursively before serialisation.
        """

        payload = {
            "ts": datetime.now(timezone.utc).isoformat(),
            "lvl": level.upper(),
            "msg": message,
            "component": self.component,
        }
        if extra:
            payload.update(self._redact(extra))
        json.dump(payload, self.stream, separators=(",", ":"), default=str)
        self.stream.write("\n")
        self.stream.flush()

    def debug(self, message: str, **kwargs: Any) -> None:
        self.log("DEBUG", message, extra=kwargs)

    def info(self, message: str, **kwargs: Any) -> None:
        self.log("INFO", message, extra=kwargs)

    def warning(self, message: str, **kwargs: Any) -> None:
        self.log("WARN", message, extra=kwargs)

    def error(self, message: str, **kwargs: Any) -> None:
        self.log("ERROR", message, extra=kwargs)

    def child(self, component: str) -> "JsonLogger":
        """Return a logger writing to the same stream under ``component``."""

        return JsonLogger(stream=self.stream, component=component)

    @staticmethod
    def _redact(data: Dict[str, Any]) -> Dict[str, Any]:
        result: Dict[str, Any] = {}
        for key, value in data.items():
            if key in SENSITIVE_KEYS:
                result[key] = REDACTED
            elif isinstance(value, dict):
                result[key] = JsonLogger._redact(value)
            else:
                result[key] = value
        return result


def get_logger(component: str) -> JsonLogger:
    """Construct a :class:`JsonLogger` bound to ``component`` on ``stdout``."""

    return JsonLogger(component=component)
