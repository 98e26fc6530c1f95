"""Per-category payload decoders.

Every decoder takes the raw message text and either returns a complete typed
payload or raises :class:`~gox_stream.connection.exceptions.DecodeError`.
Nothing partially decoded ever escapes.

Ticker, depth and result payloads are self-describing and validate straight
into pydantic models. Trade payloads mix string-encoded integers, plain strings
and a numeric epoch under different keys, so they go through a generic JSON
tree first and then through :data:`TRADE_FIELDS`, which says for each wire key
which JSON kind is expected and where the converted value lands.
"""

from __future__ import annotations

import enum
import json
import re
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Callable, Dict, Type, TypeVar, Union

from pydantic import BaseModel, ValidationError

from gox_stream.connection.exceptions import DecodeError

from .header import Category, sniff_header
from .models import (
    DebugPayload,
    Depth,
    DepthPayload,
    Info,
    ResultPayload,
    Ticker,
    TickerPayload,
    Trade,
    TradePayload,
    parse_simple_time,
)

Raw = Union[str, bytes]
ModelT = TypeVar("ModelT", bound=BaseModel)

INT64_MIN = -(2**63)
INT64_MAX = 2**63 - 1
_DECIMAL_INT = re.compile(r"[+-]?[0-9]+")


def parse_int64(text: str) -> int:
    """Parse a base-10 signed 64-bit integer, rejecting anything looser."""

    if not _DECIMAL_INT.fullmatch(text):
        raise ValueError(f"invalid integer {text!r}")
    value = int(text)
    if not INT64_MIN <= value <= INT64_MAX:
        raise ValueError(f"integer {text!r} out of int64 range")
    return value


def epoch_seconds(value: float) -> datetime:
    """Convert float epoch seconds to an aware UTC datetime, truncating the fraction."""

    try:
        return datetime.fromtimestamp(int(value), tz=timezone.utc)
    except (ValueError, OverflowError, OSError) as exc:
        raise ValueError(f"invalid epoch timestamp {value!r}: {exc}") from exc


class FieldKind(enum.Enum):
    STRING = "string"
    NUMBER = "number"

    def matches(self, value: Any) -> bool:
        if self is FieldKind.STRING:
            return isinstance(value, str)
        # bool is an int subclass but never a JSON number
        return isinstance(value, (int, float)) and not isinstance(value, bool)


@dataclass(frozen=True)
class TradeField:
    attribute: str
    kind: FieldKind
    convert: Callable[[Any], Any] = str


TRADE_FIELDS: Dict[str, TradeField] = {
    "type": TradeField("type", FieldKind.STRING),
    "tid": TradeField("tid", FieldKind.STRING),
    "item": TradeField("instrument", FieldKind.STRING),
    "price_currency": TradeField("currency", FieldKind.STRING),
    "trade_type": TradeField("trade_type", FieldKind.STRING),
    "primary": TradeField("primary", FieldKind.STRING),
    "properties": TradeField("properties", FieldKind.STRING),
    "amount_int": TradeField("amount", FieldKind.STRING, parse_int64),
    "price_int": TradeField("price", FieldKind.STRING, parse_int64),
    "date": TradeField("timestamp", FieldKind.NUMBER, epoch_seconds),
}


def _load_object(raw: Raw, category: Category) -> Dict[str, Any]:
    try:
        document = json.loads(raw)
    except (TypeError, ValueError, RecursionError) as exc:
        raise DecodeError(category.value, f"invalid JSON: {exc}") from exc
    if not isinstance(document, dict):
        raise DecodeError(category.value, "message is not a JSON object")
    return document


def _payload_object(document: Dict[str, Any], key: str, category: Category) -> Dict[str, Any]:
    payload = document.get(key)
    if not isinstance(payload, dict):
        raise DecodeError(category.value, f"missing or non-object '{key}' payload")
    return payload


def _validate(model: Type[ModelT], data: Dict[str, Any], category: Category) -> ModelT:
    try:
        return model.model_validate(data)
    except ValidationError as exc:
        problems = "; ".join(
            f"{'.'.join(str(part) for part in error['loc'])}: {error['msg']}"
            for error in exc.errors()
        )
        raise DecodeError(category.value, problems) from exc


def decode_trade_fields(raw_trade: Dict[str, Any]) -> Trade:
    """Build a :class:`Trade` from the untyped ``trade`` object."""

    values: Dict[str, Any] = {}
    for key, value in raw_trade.items():
        spec = TRADE_FIELDS.get(key)
        if spec is None:
            continue
        if not spec.kind.matches(value):
            raise DecodeError(
                Category.TRADE.value,
                f"field '{key}' expected {spec.kind.value}, got {type(value).__name__}",
            )
        try:
            values[spec.attribute] = spec.convert(value)
        except ValueError as exc:
            raise DecodeError(Category.TRADE.value, f"field '{key}': {exc}") from exc
    return Trade(**values)


def decode_trade(raw: Raw) -> TradePayload:
    document = _load_object(raw, Category.TRADE)
    trade = decode_trade_fields(_payload_object(document, "trade", Category.TRADE))
    return TradePayload(header=sniff_header(raw), trade=trade)


def decode_ticker(raw: Raw) -> TickerPayload:
    document = _load_object(raw, Category.TICKER)
    ticker = _validate(Ticker, _payload_object(document, "ticker", Category.TICKER), Category.TICKER)
    return TickerPayload(header=sniff_header(raw), ticker=ticker)


def decode_depth(raw: Raw) -> DepthPayload:
    document = _load_object(raw, Category.DEPTH)
    depth = _validate(Depth, _payload_object(document, "depth", Category.DEPTH), Category.DEPTH)
    return DepthPayload(header=sniff_header(raw), depth=depth)


def decode_result(raw: Raw) -> ResultPayload:
    document = _load_object(raw, Category.RESULT)
    info = _validate(Info, _payload_object(document, "result", Category.RESULT), Category.RESULT)
    request_id = document.get("id")
    return ResultPayload(
        header=sniff_header(raw),
        id="" if request_id is None else str(request_id),
        info=info,
    )


def decode_debug(raw: Raw) -> DebugPayload:
    document = _load_object(raw, Category.DEBUG)
    return DebugPayload(header=sniff_header(raw), debug=document.get("debug"))


def pretty_dump(raw: Raw) -> str:
    """Indented rendering of a message we have no decoder for."""

    try:
        document = json.loads(raw)
    except (TypeError, ValueError, RecursionError):
        return "{}"
    return json.dumps(document, indent=2, sort_keys=True)


DECODERS: Dict[Category, Callable[[Raw], Any]] = {
    Category.DEBUG: decode_debug,
    Category.TICKER: decode_ticker,
    Category.TRADE: decode_trade,
    Category.DEPTH: decode_depth,
    Category.RESULT: decode_result,
}

__all__ = [
    "DECODERS",
    "TRADE_FIELDS",
    "FieldKind",
    "TradeField",
    "decode_debug",
    "decode_depth",
    "decode_result",
    "decode_ticker",
    "decode_trade",
    "decode_trade_fields",
    "epoch_seconds",
    "parse_int64",
    "parse_simple_time",
    "pretty_dump",
]
