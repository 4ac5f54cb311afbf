"""
In-memory debug log.

Keeps the most recent outcome entries for the ``/debug`` endpoint.
Entries are redacted before they are stored and the buffer is bounded,
so memory use stays flat no matter how much traffic passes through.
"""

import copy
import threading
from collections import deque
from datetime import datetime, timezone
from typing import Any, Deque, Dict, Iterable, List, Optional

from eventgate.config.logging import get_logger
from eventgate.utils.helpers import truncate_string

logger = get_logger(__name__)


REDACTED = "[REDACTED]"
SENSITIVE_FIELDS = (
    "password",
    "token",
    "secret",
    "key",
    "auth",
    "authorization",
    "credit_card",
    "ssn",
    "social_security",
)


def redact(payload: Any, sensitive_fields: Iterable[str] = SENSITIVE_FIELDS) -> Any:
    """
    Return a deep copy of a payload with sensitive values replaced.

    A key is sensitive when its lower-cased name contains any of the
    sensitive field names.

    Examples:
        {"api_key": "abc", "a": 1} -> {"api_key": "[REDACTED]", "a": 1}
    """
    fields = tuple(field.lower() for field in sensitive_fields)

    def scrub(value: Any) -> Any:
        if isinstance(value, dict):
            cleaned = {}
            for key, item in value.items():
                if any(field in str(key).lower() for field in fields):
                    cleaned[key] = REDACTED
                else:
                    cleaned[key] = scrub(item)
            return cleaned
        if isinstance(value, list):
            return [scrub(item) for item in value]
        return copy.deepcopy(value)

    return scrub(payload)


class DebugLog:
    """
    Bounded, most-recent-first buffer of outcome entries.

    A capacity of zero disables retention entirely.
    """

    def __init__(self, max_entries: int = 100, echo: bool = False):
        """
        Args:
            max_entries: Buffer capacity
            echo: Whether every entry is also written to the console logger
        """
        self.max_entries = max(0, max_entries)
        self.echo = echo
        self._entries: Deque[Dict[str, Any]] = deque(maxlen=self.max_entries)
        self._lock = threading.Lock()

    @property
    def enabled(self) -> bool:
        return self.max_entries > 0

    def add(self, record: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        """
        Store an outcome record.

        Args:
            record: Flat outcome dictionary

        Returns:
            The stored entry, or None when retention is disabled
        """
        if not self.enabled:
            return None

        entry = {
            "timestamp": record.get("timestamp"),
            "request_id": record.get("request_id"),
            "source_ip": record.get("source_ip"),
            "source_path": record.get("source_path"),
            "route": record.get("route_name"),
            "original_payload": redact(record.get("original_payload")),
            "transformed_payload": redact(record.get("transformed_payload")),
            "target_url": record.get("target_url"),
            "status": record.get("processing_status"),
            "error": record.get("error_message"),
            "duration_ms": record.get("duration_ms") or 0,
            "user_agent": record.get("user_agent") or "unknown",
        }

        with self._lock:
            self._entries.appendleft(entry)

        if self.echo:
            self._log_to_console(entry)

        return entry

    def entries(self) -> List[Dict[str, Any]]:
        """Snapshot of the stored entries, newest first."""
        with self._lock:
            return list(self._entries)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def stats(self) -> Dict[str, Any]:
        """
        Summary of the stored entries.

        Returns:
            Totals, a per-status breakdown and the average duration
        """
        entries = self.entries()

        status_breakdown: Dict[str, int] = {}
        total_duration = 0
        for entry in entries:
            status = entry["status"]
            status_breakdown[status] = status_breakdown.get(status, 0) + 1
            total_duration += entry["duration_ms"] or 0

        count = len(entries)
        return {
            "total_requests": count,
            "status_breakdown": status_breakdown,
            "average_duration_ms": round(total_duration / count) if count else 0,
            "max_entries": self.max_entries,
            "current_entries": count,
        }

    def _log_to_console(self, entry: Dict[str, Any]) -> None:
        timestamp = datetime.fromtimestamp(entry["timestamp"] or 0, tz=timezone.utc).isoformat()
        status = str(entry["status"]).upper()
        route = entry["route"] or "unknown"
        duration = f"{entry['duration_ms']}ms" if entry["duration_ms"] else "N/A"

        if entry["error"]:
            logger.debug(f"[{timestamp}] {status} {route} ({duration}) - ERROR: {truncate_string(entry['error'], 200)}")
        else:
            logger.debug(f"[{timestamp}] {status} {route} ({duration}) -> {entry['target_url'] or 'N/A'}")
