# src/gox_stream/client.py

from __future__ import annotations

import logging
import threading
from typing import Any, Dict, Mapping, Optional

from gox_stream.config import AppConfig, load_config
from gox_stream.connection.credentials import ApiCredentials
from gox_stream.connection.exceptions import TransportError
from gox_stream.connection.nonce import RequestIdSource, RequestSequence
from gox_stream.connection.signer import CallSigner
from gox_stream.connection.transport import Transport, WebSocketTransport
from gox_stream.logging_config import structured_log_extra
from gox_stream.metrics import StreamMetrics
from gox_stream.stream.dispatcher import Dispatcher, DumpFn, StopReason, StreamChannels

logger = logging.getLogger(__name__)

DEFAULT_ITEM = "BTC"


class GoxClient:
    """
    Streaming client for the Mt. Gox push API.

    Decoded events land on one small queue per category (``ticker``,
    ``trades``, ``depth``, ``info``, ``debug``) and failures on ``errors``.
    Publishing never blocks: category queues keep only the latest values and
    the error queue drops new errors once full, so consumers should treat
    ``errors`` as lossy.
    """

    def __init__(
        self,
        key: Optional[str],
        secret: Optional[str],
        transport: Transport,
        *,
        channel_capacity: int = 1,
        error_capacity: int = 10,
        sequence: Optional[RequestIdSource] = None,
        metrics: Optional[StreamMetrics] = None,
        dump: Optional[DumpFn] = None,
    ):
        credentials = ApiCredentials.decode(key, secret)
        self._signer = CallSigner(credentials.key, credentials.secret)
        self._transport = transport
        self._sequence = sequence or RequestSequence()
        self._write_lock = threading.Lock()
        self._closed = threading.Event()
        self._thread: Optional[threading.Thread] = None
        self.metrics = metrics or StreamMetrics()

        self.channels = StreamChannels.create(channel_capacity, error_capacity)
        self.ticker = self.channels.ticker
        self.trades = self.channels.trades
        self.depth = self.channels.depth
        self.info = self.channels.info
        self.debug = self.channels.debug
        self.errors = self.channels.errors

        self._dispatcher = Dispatcher(
            transport,
            self.channels,
            closed=self._closed,
            metrics=self.metrics,
            dump=dump,
        )

        if not credentials.complete:
            logger.info(
                "No API credentials configured; authenticated calls are disabled.",
                extra=structured_log_extra(event="client_read_only"),
            )

    @classmethod
    def connect(cls, config: Optional[AppConfig] = None, **kwargs: Any) -> "GoxClient":
        """Opens the websocket described by ``config`` and returns an unstarted client."""
        config = config or load_config()
        stream = config.stream
        transport = WebSocketTransport.open(stream.url, origin=stream.origin)
        try:
            return cls(
                config.credentials.api_key,
                config.credentials.api_secret,
                transport,
                channel_capacity=stream.channel_capacity,
                error_capacity=stream.error_capacity,
                **kwargs,
            )
        except Exception:
            transport.close()
            raise

    @property
    def transport(self) -> Transport:
        """Returns the underlying transport."""
        return self._transport

    @property
    def is_running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    @property
    def stop_reason(self) -> Optional[StopReason]:
        return self._dispatcher.stop_reason

    def start(self) -> None:
        """Starts the dispatcher in a background thread."""
        if self.is_running:
            logger.warning("Dispatcher is already running.")
            return
        if self._closed.is_set():
            raise TransportError("Client is closed.")

        self._thread = threading.Thread(
            target=self._dispatcher.run, name="gox-dispatcher", daemon=True
        )
        self._thread.start()
        logger.info("Dispatcher started.", extra=structured_log_extra(event="client_started"))

    def close(self) -> None:
        """
        Signals the dispatcher to stop publishing. A read already blocked on the
        transport is not interrupted; use :meth:`disconnect` for that.
        """
        self._closed.set()

    def disconnect(self, timeout: float = 2.0) -> None:
        """Signals close, closes the transport and waits for the reader thread."""
        self.close()
        self._transport.close()
        if self._thread and self._thread.is_alive():
            self._thread.join(timeout=timeout)
        logger.info("Client disconnected.", extra=structured_log_extra(event="client_disconnected"))

    def call(
        self,
        endpoint: str,
        params: Optional[Mapping[str, Any]] = None,
        item: str = DEFAULT_ITEM,
    ) -> str:
        """
        Sends a signed call over the socket and returns its request id.

        The reply arrives asynchronously as a ``result`` message carrying the
        same id.
        """
        self._signer.require_credentials()
        if self._closed.is_set():
            raise TransportError("Client is closed.")

        # Nonces must reach the wire in the order they were drawn.
        with self._write_lock:
            request_id = self._sequence.next_id()
            request: Dict[str, Any] = {
                "call": endpoint,
                "item": item,
                "params": dict(params or {}),
                "id": request_id,
                "nonce": self._sequence.next_nonce(),
            }
            envelope = self._signer.envelope(request, request_id)
            self._transport.write_json(envelope)

        self.metrics.record_call()
        logger.debug(
            "Sent %s call.",
            endpoint,
            extra=structured_log_extra(event="call_sent", request_id=request_id, endpoint=endpoint),
        )
        return request_id

    def request_info(self) -> str:
        """Requests the account snapshot; it is published on ``info``."""
        return self.call("private/info")
