# src/gox_stream/connection/signer.py

import base64
import hashlib
import hmac
import json
from typing import Any, Dict, Mapping

from .exceptions import ConfigurationError, SigningError

CALL_CONTEXT = "mtgox.com"


class CallSigner:
    """
    Signs authenticated calls and wraps them in the socket call envelope.

    The call body is serialized exactly once; the HMAC-SHA512 signature is
    computed over those bytes and the same bytes are embedded in the envelope,
    so the server can verify the signature against what it receives.
    """

    def __init__(self, key: bytes, secret: bytes):
        self._key = key
        self._secret = secret

    @property
    def ready(self) -> bool:
        return bool(self._key) and bool(self._secret)

    def require_credentials(self) -> None:
        if not self.ready:
            raise ConfigurationError("API key or secret is invalid or missing.")

    @staticmethod
    def serialize(request: Mapping[str, Any]) -> bytes:
        """Serialize a call body to compact JSON with a stable key order."""
        try:
            return json.dumps(request, separators=(",", ":"), sort_keys=True).encode("utf-8")
        except (TypeError, ValueError) as exc:
            raise SigningError(f"Call body is not JSON serializable: {exc}") from exc

    def sign(self, body: bytes) -> bytes:
        """
        Returns the HMAC-SHA512 digest of ``body`` keyed by the decoded secret.
        """
        self.require_credentials()
        try:
            mac = hmac.new(self._secret, body, hashlib.sha512)
        except TypeError as exc:
            raise SigningError(f"Unable to sign call body: {exc}") from exc
        return mac.digest()

    def envelope(self, request: Mapping[str, Any], request_id: Any) -> Dict[str, Any]:
        """Builds the ``op: call`` envelope for ``request``."""
        self.require_credentials()

        body = self.serialize(request)
        signature = self.sign(body)
        encoded = base64.b64encode(self._key + signature + body).decode("ascii")

        return {
            "op": "call",
            "id": request_id,
            "call": encoded,
            "context": CALL_CONTEXT,
        }
