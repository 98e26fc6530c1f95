from __future__ import annotations

import base64
import binascii
from dataclasses import dataclass

from .exceptions import ConfigurationError


def decode_api_key(key: str) -> bytes:
    """Decode a hex API key, ignoring the ``-`` separators it is issued with."""

    try:
        return bytes.fromhex(key.replace("-", ""))
    except ValueError as exc:
        raise ConfigurationError(f"API key is not valid hex: {exc}") from exc


def decode_api_secret(secret: str) -> bytes:
    """Decode a standard base64 API secret."""

    try:
        return base64.b64decode(secret, validate=True)
    except (binascii.Error, ValueError) as exc:
        raise ConfigurationError(f"API secret is not valid base64: {exc}") from exc


@dataclass(frozen=True)
class ApiCredentials:
    key: bytes
    secret: bytes

    @classmethod
    def decode(cls, key: str | None, secret: str | None) -> "ApiCredentials":
        return cls(
            key=decode_api_key(key or ""),
            secret=decode_api_secret(secret or ""),
        )

    @property
    def complete(self) -> bool:
        return bool(self.key) and bool(self.secret)

    def __repr__(self) -> str:
        # Intentionally omit key material to avoid leaking it via logs.
        return (
            "ApiCredentials("
            f"key_bytes={len(self.key)}, "
            f"secret_bytes={len(self.secret)})"
        )

    __str__ = __repr__
