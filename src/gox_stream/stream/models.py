from __future__ import annotations

import enum
import re
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import Annotated, Any, Dict, List, Optional

from pydantic import BaseModel, BeforeValidator, ConfigDict, Field

BITCOIN_DIVISION = 100_000_000

SIMPLE_TIME_LAYOUT = "%Y-%m-%d %H:%M:%S"
_SIMPLE_TIME_SHAPE = re.compile(r"\d{4}-\d{2}-\d{2} \d{2}:\d{2}:\d{2}")


def parse_simple_time(value: Any) -> datetime:
    """Parse the ``YYYY-MM-DD HH:MM:SS`` civil timestamps used by account data.

    Anything that does not match the layout exactly is rejected; there is no
    fallback to a zero time.
    """

    if isinstance(value, datetime):
        return value
    if not isinstance(value, str) or not _SIMPLE_TIME_SHAPE.fullmatch(value):
        raise ValueError(f"expected time in 'YYYY-MM-DD HH:MM:SS' layout, got {value!r}")
    return datetime.strptime(value, SIMPLE_TIME_LAYOUT)


SimpleTime = Annotated[datetime, BeforeValidator(parse_simple_time)]

# Exact quantities on the wire are signed 64-bit integers.
Int64 = Annotated[int, Field(ge=-(2**63), le=2**63 - 1)]


class OrderType(str, enum.Enum):
    BID = "bid"
    ASK = "ask"


@dataclass(frozen=True)
class StreamHeader:
    channel: str = ""
    channel_name: str = ""
    op: str = ""
    origin: str = ""
    private: str = ""


class Value(BaseModel):
    """A monetary amount.

    ``value_int`` is the exact quantity scaled by the instrument precision;
    ``value`` is a float rendering of the same amount and may be rounded.
    """

    model_config = ConfigDict(frozen=True)

    value: float = 0.0
    value_int: Int64 = 0
    display: str = ""
    display_short: str = ""
    currency: str = ""

    def as_decimal(self, division: int = BITCOIN_DIVISION) -> Decimal:
        return Decimal(self.value_int) / Decimal(division)


class Wallet(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    balance: Value = Field(default_factory=Value, alias="Balance")
    daily_withdraw_limit: Value = Field(default_factory=Value, alias="Daily_Withdraw_Limit")
    max_withdraw: Value = Field(default_factory=Value, alias="Max_Withdraw")
    monthly_withdraw_limit: Optional[Value] = Field(default=None, alias="Monthly_Withdraw_Limit")
    open_orders: Value = Field(default_factory=Value, alias="Open_Orders")
    operations: int = Field(default=0, alias="Operations")


class Info(BaseModel):
    """Account snapshot carried by a ``result`` message."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    created: Optional[SimpleTime] = Field(default=None, alias="Created")
    id: str = Field(default="", alias="Id")
    index: str = Field(default="", alias="Index")
    language: str = Field(default="", alias="Language")
    last_login: Optional[SimpleTime] = Field(default=None, alias="Last_Login")
    link: str = Field(default="", alias="Link")
    login: str = Field(default="", alias="Login")
    monthly_volume: Value = Field(default_factory=Value, alias="Monthly_Volume")
    trade_fee: float = Field(default=0.0, alias="Trade_Fee")
    rights: List[str] = Field(default_factory=list, alias="Rights")
    wallets: Dict[str, Wallet] = Field(default_factory=dict, alias="Wallets")


class Ticker(BaseModel):
    model_config = ConfigDict(frozen=True)

    high: Optional[Value] = None
    low: Optional[Value] = None
    avg: Optional[Value] = None
    vwap: Optional[Value] = None
    vol: Optional[Value] = None
    last_local: Optional[Value] = None
    last_orig: Optional[Value] = None
    last_all: Optional[Value] = None
    last: Optional[Value] = None
    buy: Optional[Value] = None
    sell: Optional[Value] = None
    item: str = ""
    now: str = ""


class Depth(BaseModel):
    model_config = ConfigDict(frozen=True)

    price: float = 0.0
    type: int = 0
    type_str: str = ""
    volume: float = 0.0
    price_int: Int64 = 0
    volume_int: Int64 = 0
    item: str = ""
    currency: str = ""
    now: str = ""
    total_volume_int: Int64 = 0


@dataclass(frozen=True)
class Trade:
    type: str = ""
    tid: str = ""
    amount: int = 0
    price: int = 0
    instrument: str = ""
    currency: str = ""
    trade_type: str = ""
    primary: str = ""
    properties: str = ""
    timestamp: Optional[datetime] = None


@dataclass(frozen=True)
class TradePayload:
    header: StreamHeader
    trade: Trade


@dataclass(frozen=True)
class TickerPayload:
    header: StreamHeader
    ticker: Ticker


@dataclass(frozen=True)
class DepthPayload:
    header: StreamHeader
    depth: Depth


@dataclass(frozen=True)
class ResultPayload:
    header: StreamHeader
    id: str
    info: Info


@dataclass(frozen=True)
class DebugPayload:
    header: StreamHeader
    debug: Any
