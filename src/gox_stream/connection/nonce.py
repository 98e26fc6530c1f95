# src/gox_stream/connection/nonce.py

import threading
import time
import uuid
from typing import Protocol


class RequestIdSource(Protocol):
    """Anything that can hand out one request id and one nonce per call."""

    def next_id(self) -> str: ...

    def next_nonce(self) -> int: ...


class NonceGenerator:
    """
    Generates monotonically increasing nonces for authenticated calls.
    Uses high-resolution timer to prevent collisions in quick succession.
    """
    def __init__(self):
        self._lock = threading.Lock()
        self._last_nonce = 0

    def generate(self) -> int:
        """
        Returns a unique, strictly increasing nonce (microseconds based).
        """
        with self._lock:
            nonce = time.time_ns() // 1_000

            # Ensure strict monotonicity
            if nonce <= self._last_nonce:
                nonce = self._last_nonce + 1

            self._last_nonce = nonce
            return nonce


class RequestSequence:
    """Default :class:`RequestIdSource`: uuid4 request ids and time-based nonces."""

    def __init__(self, nonces: NonceGenerator | None = None):
        self._nonces = nonces or NonceGenerator()

    def next_id(self) -> str:
        return uuid.uuid4().hex

    def next_nonce(self) -> int:
        return self._nonces.generate()
