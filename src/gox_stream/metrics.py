"""Lightweight in-memory counters for stream visibility."""

from __future__ import annotations

from collections import deque
from datetime import datetime, timezone
from threading import Lock
from typing import Deque, Dict


class StreamMetrics:
    """Thread-safe, low-overhead counters for dispatcher and call activity."""

    def __init__(self, max_errors: int = 50) -> None:
        self._lock = Lock()
        self._recent_errors: Deque[Dict[str, str]] = deque(maxlen=max_errors)
        self.messages_received = 0
        self.events_published = 0
        self.events_displaced = 0
        self.unroutable_messages = 0
        self.decode_errors = 0
        self.errors_dropped = 0
        self.frames_rejected = 0
        self.calls_sent = 0

    def record_message(self) -> None:
        with self._lock:
            self.messages_received += 1

    def record_publish(self, displaced: bool = False) -> None:
        """Count a published event, and whether an older one was evicted for it."""

        with self._lock:
            self.events_published += 1
            if displaced:
                self.events_displaced += 1

    def record_unroutable(self) -> None:
        with self._lock:
            self.unroutable_messages += 1

    def record_decode_error(self, message: str) -> None:
        with self._lock:
            self.decode_errors += 1
            self._recent_errors.appendleft(self._format_error(message))

    def record_rejected_frame(self, message: str) -> None:
        with self._lock:
            self.frames_rejected += 1
            self._recent_errors.appendleft(self._format_error(message))

    def record_error(self, message: str) -> None:
        """Store an ad-hoc error message in the rolling buffer."""

        with self._lock:
            self._recent_errors.appendleft(self._format_error(message))

    def record_dropped_error(self) -> None:
        with self._lock:
            self.errors_dropped += 1

    def record_call(self) -> None:
        with self._lock:
            self.calls_sent += 1

    def snapshot(self) -> Dict[str, object]:
        """Return a read-only snapshot of current counters."""

        with self._lock:
            return {
                "messages_received": self.messages_received,
                "events_published": self.events_published,
                "events_displaced": self.events_displaced,
                "unroutable_messages": self.unroutable_messages,
                "decode_errors": self.decode_errors,
                "errors_dropped": self.errors_dropped,
                "frames_rejected": self.frames_rejected,
                "calls_sent": self.calls_sent,
                "recent_errors": list(self._recent_errors),
            }

    @staticmethod
    def _format_error(message: str) -> Dict[str, str]:
        return {
            "at": datetime.now(timezone.utc).isoformat(),
            "message": message,
        }


__all__ = ["StreamMetrics"]
