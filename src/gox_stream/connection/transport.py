# src/gox_stream/connection/transport.py

from __future__ import annotations

import enum
import json
import logging
from dataclasses import dataclass
from typing import Any, Mapping, Optional, Protocol, Union

from websockets.exceptions import ConnectionClosedOK, WebSocketException
from websockets.sync.client import ClientConnection, connect

from .exceptions import TransportClosedError, TransportError

logger = logging.getLogger(__name__)


class FrameKind(enum.Enum):
    TEXT = "text"
    BINARY = "binary"


@dataclass(frozen=True)
class Frame:
    kind: FrameKind
    data: Union[str, bytes]


class Transport(Protocol):
    """The socket primitives the client relies on."""

    def read_frame(self) -> Frame: ...

    def write_json(self, value: Any) -> None: ...

    def close(self) -> None: ...


class WebSocketTransport:
    """
    Blocking websocket transport built on ``websockets.sync``.

    ``read_frame`` blocks until a frame arrives; there is no read timeout, so a
    stalled peer stalls the reader until :meth:`close` is called.
    """

    def __init__(self, connection: ClientConnection):
        self._connection = connection

    @classmethod
    def open(
        cls,
        url: str,
        origin: Optional[str] = None,
        headers: Optional[Mapping[str, str]] = None,
    ) -> "WebSocketTransport":
        try:
            connection = connect(
                url,
                origin=origin,
                additional_headers=dict(headers or {}),
            )
        except (OSError, WebSocketException) as exc:
            raise TransportError(f"Error connecting to {url}: {exc}") from exc

        logger.info(
            "WebSocket connection established.",
            extra={"event": "transport_connected", "url": url},
        )
        return cls(connection)

    def read_frame(self) -> Frame:
        try:
            message = self._connection.recv()
        except ConnectionClosedOK as exc:
            raise TransportClosedError(f"Connection closed: {exc}") from exc
        except (OSError, WebSocketException) as exc:
            raise TransportError(f"Error reading frame: {exc}") from exc

        if isinstance(message, bytes):
            return Frame(FrameKind.BINARY, message)
        return Frame(FrameKind.TEXT, message)

    def write_json(self, value: Any) -> None:
        try:
            self._connection.send(json.dumps(value))
        except (OSError, WebSocketException) as exc:
            raise TransportError(f"Error writing frame: {exc}") from exc

    def close(self) -> None:
        self._connection.close()
