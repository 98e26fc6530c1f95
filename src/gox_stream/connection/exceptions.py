# src/gox_stream/connection/exceptions.py

class GoxError(Exception):
    """Base exception for all streaming client errors."""
    pass

class ConfigurationError(GoxError):
    """Raised when API credentials are missing or cannot be decoded."""
    pass

class SigningError(GoxError):
    """Raised when an outbound call cannot be serialized or signed."""
    pass

class TransportError(GoxError):
    """Raised when reading from or writing to the socket fails."""
    pass

class TransportClosedError(TransportError):
    """Raised when the peer closed the socket cleanly."""
    pass

class UnexpectedFrameError(GoxError):
    """Reported when the socket delivers a non-text frame."""
    def __init__(self, kind: str):
        self.kind = kind
        super().__init__(f"Received unexpected {kind} frame; only text frames are supported.")

class DecodeError(GoxError):
    """Raised when a message payload does not match its category's shape."""
    def __init__(self, category: str, reason: str):
        self.category = category
        self.reason = reason
        super().__init__(f"Failed to decode {category} message: {reason}")
