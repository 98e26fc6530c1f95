"""Cheap first pass over an inbound message to find out where it should go."""

from __future__ import annotations

import enum
import json
from typing import Union

from .models import StreamHeader

_HEADER_FIELDS = ("channel", "channel_name", "op", "origin", "private")


class Category(enum.Enum):
    DEBUG = "debug"
    TICKER = "ticker"
    TRADE = "trade"
    DEPTH = "depth"
    RESULT = "result"
    UNKNOWN = "unknown"


_BY_DISCRIMINATOR = {
    category.value: category for category in Category if category is not Category.UNKNOWN
}


def sniff_header(raw: Union[str, bytes]) -> StreamHeader:
    """Extract the envelope header without decoding the category payload.

    Never raises: malformed JSON, a non-object document or non-string header
    values all leave the affected fields empty. Reporting the problem is left
    to the payload decoder.
    """

    try:
        document = json.loads(raw)
    except (TypeError, ValueError, RecursionError):
        return StreamHeader()

    if not isinstance(document, dict):
        return StreamHeader()

    values = {}
    for name in _HEADER_FIELDS:
        value = document.get(name)
        values[name] = value if isinstance(value, str) else ""
    return StreamHeader(**values)


def categorize(header: StreamHeader) -> Category:
    return _BY_DISCRIMINATOR.get(header.private, Category.UNKNOWN)
