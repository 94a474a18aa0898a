"""
Market data models

Pydantic models for price history structures:
- Bar: Daily (or aggregated) OHLCV bar
- Period: Calendar bucket size for aggregation
- DateRange: Requested window of trading dates
- BarQuery: Request sent to the bar-source collaborator
- InstrumentInfo: Reference data for one instrument
"""

from datetime import date
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, model_validator


class Period(str, Enum):
    """K-line period (calendar bucket)"""

    DAY = "day"
    WEEK = "week"
    MONTH = "month"


class SourceField(str, Enum):
    """Bar field an indicator reads its input values from"""

    OPEN = "open"
    HIGH = "high"
    LOW = "low"
    CLOSE = "close"
    VOLUME = "volume"


class Bar(BaseModel):
    """
    OHLCV bar

    Immutable once produced. String-encoded numerics are parsed (lax mode).
    Non-finite values are representable so indicators can skip them;
    BarValidator rejects them as malformed.
    """

    model_config = ConfigDict(frozen=True)

    time: date = Field(description="Trading date (last trading date for aggregated bars)")
    open: float = Field(description="Opening price")
    high: float = Field(description="Highest price in bucket")
    low: float = Field(description="Lowest price in bucket")
    close: float = Field(description="Closing price")
    volume: float = Field(default=0.0, description="Total shares traded")
    amount: float | None = Field(default=None, description="Total turnover (currency)")
    price_change: float | None = Field(default=None, description="Absolute price change")
    price_change_percent: float | None = Field(
        default=None, description="Price change as percentage"
    )

    def value_of(self, source: SourceField) -> float:
        """Read the given source field"""
        return getattr(self, source.value)

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON payloads"""
        return {
            "time": self.time.isoformat(),
            "open": self.open,
            "high": self.high,
            "low": self.low,
            "close": self.close,
            "volume": self.volume,
            "amount": self.amount,
            "price_change": self.price_change,
            "price_change_percent": self.price_change_percent,
        }


class DateRange(BaseModel):
    """Inclusive date window; either bound may be open"""

    model_config = ConfigDict(frozen=True)

    start: date | None = None
    end: date | None = None

    @model_validator(mode="after")
    def check_order(self) -> "DateRange":
        if self.start and self.end and self.start > self.end:
            raise ValueError(f"start {self.start} is after end {self.end}")
        return self

    def contains(self, day: date) -> bool:
        """Check whether a trading date falls inside the window"""
        if self.start and day < self.start:
            return False
        if self.end and day > self.end:
            return False
        return True


class BarQuery(BaseModel):
    """
    Query sent to the bar-source collaborator

    Mirrors the upstream advanced-query fields.
    """

    instrument_code: str = Field(min_length=1)
    start_date: date | None = None
    end_date: date | None = None
    page_size: int | None = Field(default=None, gt=0)
    sort_field: str | None = "trading_date"
    sort_direction: str | None = "ASC"

    def to_payload(self) -> dict:
        """Serialize to the upstream request body"""
        payload = {
            "stockCodeLike": self.instrument_code,
            "startDate": self.start_date.isoformat() if self.start_date else None,
            "endDate": self.end_date.isoformat() if self.end_date else None,
            "pageSize": self.page_size,
            "sortField": self.sort_field,
            "sortDirection": self.sort_direction,
        }
        return {k: v for k, v in payload.items() if v is not None}


class InstrumentInfo(BaseModel):
    """
    Instrument reference data (company profile + latest quote)

    Changes rarely; cached with the long reference TTL.
    """

    model_config = ConfigDict(frozen=True)

    code: str
    symbol: str | None = None
    area: str | None = None
    sector: str | None = None
    market_type: str | None = None
    exchange: str | None = None
    listing_date: date | None = None
    latest_close: float | None = None
    latest_change: float | None = None
    latest_change_percent: float | None = None
    latest_volume: float | None = None
    latest_date: date | None = None
