# src/gox_stream/stream/dispatcher.py

from __future__ import annotations

import enum
import logging
import threading
from dataclasses import dataclass
from typing import Any, Callable, Optional, Union

from gox_stream.connection.exceptions import (
    DecodeError,
    GoxError,
    TransportClosedError,
    TransportError,
    UnexpectedFrameError,
)
from gox_stream.connection.transport import FrameKind, Transport
from gox_stream.logging_config import structured_log_extra
from gox_stream.metrics import StreamMetrics

from .decoders import DECODERS, pretty_dump
from .header import Category, categorize, sniff_header
from .models import DebugPayload, DepthPayload, ResultPayload, StreamHeader, TickerPayload, TradePayload
from .queues import BoundedQueue, OverflowPolicy

logger = logging.getLogger(__name__)

DumpFn = Callable[[StreamHeader, str], None]


class DispatcherState(enum.Enum):
    CONNECTED = "connected"
    ERROR = "error"
    CLOSED = "closed"


class StopReason(enum.Enum):
    CLOSE_REQUESTED = "close_requested"
    CONNECTION_CLOSED = "connection_closed"
    TRANSPORT_ERROR = "transport_error"


@dataclass
class StreamChannels:
    """One bounded queue per message category plus the error queue."""

    ticker: BoundedQueue[TickerPayload]
    trades: BoundedQueue[TradePayload]
    depth: BoundedQueue[DepthPayload]
    info: BoundedQueue[ResultPayload]
    debug: BoundedQueue[DebugPayload]
    errors: BoundedQueue[GoxError]

    @classmethod
    def create(cls, channel_capacity: int = 1, error_capacity: int = 10) -> "StreamChannels":
        def latest() -> BoundedQueue[Any]:
            return BoundedQueue(channel_capacity, OverflowPolicy.KEEP_LATEST)

        return cls(
            ticker=latest(),
            trades=latest(),
            depth=latest(),
            info=latest(),
            debug=latest(),
            errors=BoundedQueue(error_capacity, OverflowPolicy.DROP_NEWEST),
        )

    def for_category(self, category: Category) -> BoundedQueue[Any]:
        if category is Category.TICKER:
            return self.ticker
        if category is Category.TRADE:
            return self.trades
        if category is Category.DEPTH:
            return self.depth
        if category is Category.RESULT:
            return self.info
        if category is Category.DEBUG:
            return self.debug
        raise KeyError(f"No channel for category {category.value!r}")


def log_dump(header: StreamHeader, dump: str) -> None:
    logger.info(
        "Unroutable message (private=%r):\n%s",
        header.private,
        dump,
        extra=structured_log_extra(event="stream_unroutable", channel=header.channel or None),
    )


class Dispatcher:
    """
    Reads frames from the transport, routes each one by its ``private``
    discriminator and publishes the decoded payload without ever blocking.

    Decode failures are reported on the error queue and the loop carries on.
    A failed read ends the loop. Setting ``closed`` stops further publishing;
    a read already in progress is only interrupted by closing the transport.
    """

    def __init__(
        self,
        transport: Transport,
        channels: StreamChannels,
        closed: Optional[threading.Event] = None,
        metrics: Optional[StreamMetrics] = None,
        dump: Optional[DumpFn] = None,
    ):
        self._transport = transport
        self._channels = channels
        self._closed = closed or threading.Event()
        self._metrics = metrics or StreamMetrics()
        self._dump = dump or log_dump
        self.state = DispatcherState.CONNECTED
        self.stop_reason: Optional[StopReason] = None

    def run(self) -> None:
        """The read loop; returns once the transport fails or close is signalled."""
        self.state = DispatcherState.CONNECTED
        while not self._closed.is_set():
            try:
                frame = self._transport.read_frame()
            except TransportClosedError as exc:
                self._terminate(StopReason.CONNECTION_CLOSED, exc)
                return
            except TransportError as exc:
                self._terminate(StopReason.TRANSPORT_ERROR, exc)
                return

            if self._closed.is_set():
                break

            if frame.kind is not FrameKind.TEXT:
                error = UnexpectedFrameError(frame.kind.value)
                self._metrics.record_rejected_frame(str(error))
                self.report(error)
                continue

            self.handle(frame.data)

        self._finish(StopReason.CLOSE_REQUESTED)

    def handle(self, raw: Union[str, bytes]) -> None:
        """Classify and decode one message, publishing the result."""
        self._metrics.record_message()
        header = sniff_header(raw)
        category = categorize(header)

        if category is Category.UNKNOWN:
            self._metrics.record_unroutable()
            text = raw.decode("utf-8", errors="replace") if isinstance(raw, bytes) else raw
            try:
                self._dump(header, pretty_dump(text))
            except Exception:
                logger.exception(
                    "Failed to dump unroutable message",
                    extra=structured_log_extra(event="stream_dump_failed", channel=header.channel or None),
                )
            return

        try:
            payload = DECODERS[category](raw)
        except DecodeError as exc:
            self._decode_failed(category, exc)
            return
        except Exception as exc:
            logger.exception(
                "Unexpected failure decoding %s message",
                category.value,
                extra=structured_log_extra(event="stream_decoder_crashed", category=category.value),
            )
            error = DecodeError(category.value, f"{type(exc).__name__}: {exc}")
            error.__cause__ = exc
            self._decode_failed(category, error)
            return

        self.publish(category, payload)

    def _decode_failed(self, category: Category, exc: DecodeError) -> None:
        self.state = DispatcherState.ERROR
        self._metrics.record_decode_error(str(exc))
        logger.warning(
            "Dropping undecodable %s message: %s",
            category.value,
            exc.reason,
            extra=structured_log_extra(event="stream_decode_error", category=category.value),
        )
        self.report(exc)
        self.state = DispatcherState.CONNECTED

    def publish(self, category: Category, payload: Any) -> bool:
        if self._closed.is_set():
            return False
        channel = self._channels.for_category(category)
        before = channel.dropped
        accepted = channel.try_publish(payload)
        self._metrics.record_publish(displaced=channel.dropped > before)
        return accepted

    def report(self, error: GoxError) -> bool:
        """Offer ``error`` to the error queue; a full queue drops it."""
        if self._closed.is_set():
            return False
        accepted = self._channels.errors.try_publish(error)
        if not accepted:
            self._metrics.record_dropped_error()
            logger.debug(
                "Error queue full; dropping error: %s",
                error,
                extra=structured_log_extra(event="stream_error_dropped"),
            )
        return accepted

    def _terminate(self, reason: StopReason, exc: TransportError) -> None:
        if self._closed.is_set():
            self._finish(StopReason.CLOSE_REQUESTED)
            return

        self.state = DispatcherState.ERROR
        self._metrics.record_error(str(exc))
        logger.error(
            "Stream read failed; stopping dispatcher: %s",
            exc,
            extra=structured_log_extra(event="stream_read_failed", reason=reason.value),
        )
        self.report(exc)
        self._finish(reason)

    def _finish(self, reason: StopReason) -> None:
        self.state = DispatcherState.CLOSED
        if self.stop_reason is None:
            self.stop_reason = reason
        logger.info(
            "Dispatcher stopped.",
            extra=structured_log_extra(event="stream_stopped", reason=self.stop_reason.value),
        )
