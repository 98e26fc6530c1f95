from __future__ import annotations

from dataclasses import dataclass, field
from typing import List

DEFAULT_HOST = "websocket.mtgox.com"
DEFAULT_PATH = "/mtgox"
DEFAULT_ORIGIN = "http://websocket.mtgox.com"


@dataclass
class StreamConfig:
    currencies: List[str] = field(default_factory=lambda: ["USD"])
    secure: bool = False
    host: str = DEFAULT_HOST
    path: str = DEFAULT_PATH
    origin: str = DEFAULT_ORIGIN
    channel_capacity: int = 1
    error_capacity: int = 10

    @property
    def url(self) -> str:
        scheme, port = ("wss", 443) if self.secure else ("ws", 80)
        return f"{scheme}://{self.host}:{port}{self.path}?Currency={','.join(self.currencies)}"


@dataclass
class CredentialsConfig:
    api_key: str = ""
    api_secret: str = ""

    def __repr__(self) -> str:
        # Intentionally omit secrets to avoid leaking them via logs.
        return (
            "CredentialsConfig("
            f"api_key_set={bool(self.api_key)!r}, "
            f"api_secret_set={bool(self.api_secret)!r})"
        )

    __str__ = __repr__


@dataclass
class AppConfig:
    stream: StreamConfig = field(default_factory=StreamConfig)
    credentials: CredentialsConfig = field(default_factory=CredentialsConfig)
    env: str = "live"
