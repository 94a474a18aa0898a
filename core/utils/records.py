"""
Raw record parsing

Maps upstream records onto models. Accepts both the API's camelCase
records (tradingDate, openingPrice, ...) and plain bar dicts (time,
open, ...); string-encoded numbers are parsed by pydantic.
"""

from typing import Any

from pydantic import ValidationError

from core.errors import FetchError, MalformedBarError
from core.models.market_data import Bar, InstrumentInfo

# API field → Bar field
_BAR_FIELDS: dict[str, str] = {
    "tradingDate": "time",
    "openingPrice": "open",
    "highestPrice": "high",
    "lowestPrice": "low",
    "closingPrice": "close",
    "tradingVolume": "volume",
    "tradingAmount": "amount",
    "priceChange": "price_change",
    "priceChangePercentage": "price_change_percent",
    "date": "time",
}

_COMPANY_FIELDS: dict[str, str] = {
    "stockCode": "code",
    "stockSymbol": "symbol",
    "companyArea": "area",
    "industrySector": "sector",
    "marketType": "market_type",
    "stockExchange": "exchange",
    "listingDate": "listing_date",
}

_LATEST_FIELDS: dict[str, str] = {
    "closingPrice": "latest_close",
    "priceChange": "latest_change",
    "priceChangePercentage": "latest_change_percent",
    "tradingVolume": "latest_volume",
    "tradingDate": "latest_date",
}


def _date_part(value: Any) -> Any:
    # "2024-01-02T00:00:00.000Z" → "2024-01-02"
    if isinstance(value, str) and len(value) > 10 and value[10] in "T ":
        return value[:10]
    return value


def _rename(record: dict[str, Any], mapping: dict[str, str]) -> dict[str, Any]:
    renamed = {}
    for key, value in record.items():
        field = mapping.get(key, key)
        # Empty strings / nulls mean "not provided"
        if value is None or value == "":
            continue
        renamed.setdefault(field, value)
    return renamed


def parse_bar_record(record: dict[str, Any]) -> Bar:
    """
    Parse one raw record into a Bar

    Args:
        record: camelCase API record (tradingDate, openingPrice, ...) or
                plain bar dict (time, open, high, low, close, volume, ...)

    Returns:
        Bar (invariants are NOT checked here; see BarValidator)

    Raises:
        MalformedBarError: Missing or unparseable fields

    Example:
        >>> parse_bar_record({"tradingDate": "2024-01-02", "openingPrice": "10.5",
        ...                   "highestPrice": "11", "lowestPrice": "10.2",
        ...                   "closingPrice": "10.8", "tradingVolume": "120000"})
        Bar(time=datetime.date(2024, 1, 2), open=10.5, ...)
    """
    if not isinstance(record, dict):
        raise MalformedBarError(f"Bar record must be an object, got {type(record).__name__}")

    fields = _rename(record, _BAR_FIELDS)
    if "time" in fields:
        fields["time"] = _date_part(fields["time"])

    try:
        return Bar.model_validate({k: v for k, v in fields.items() if k in Bar.model_fields})
    except ValidationError as e:
        raise MalformedBarError(f"Unparseable bar record: {e.error_count()} errors ({e.errors()[0]['msg']})") from e


def parse_instrument_info(instrument_code: str, data: dict[str, Any]) -> InstrumentInfo:
    """
    Parse the instrument profile payload

    Args:
        instrument_code: Requested code (used when the payload omits it)
        data: {"company": {...}, "latestPrice": {...} | None}

    Raises:
        FetchError: Payload does not match the expected shape
    """
    company = _rename(data.get("company") or {}, _COMPANY_FIELDS)
    latest = _rename(data.get("latestPrice") or {}, _LATEST_FIELDS)
    fields = {"code": instrument_code, **company, **latest}
    for key in ("listing_date", "latest_date"):
        if key in fields:
            fields[key] = _date_part(fields[key])

    try:
        return InstrumentInfo.model_validate(
            {k: v for k, v in fields.items() if k in InstrumentInfo.model_fields}
        )
    except ValidationError as e:
        raise FetchError(f"Unexpected instrument info payload: {e}", instrument=instrument_code) from e


