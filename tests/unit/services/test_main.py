"""
Unit tests for the query command-line entry point
"""

from datetime import date
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from core.errors import FetchError
from core.models.indicators import IndicatorKind, IndicatorPoint, IndicatorSeries, QueryResult
from core.models.market_data import Bar, Period
from services.query_service.main import parse_args, run, summarize


def sample_result() -> QueryResult:
    return QueryResult(
        instrument="600000",
        period=Period.WEEK,
        bars=(Bar(time=date(2024, 1, 5), open=10, high=11, low=9, close=10.5, volume=100),),
        indicators={
            "sma5": IndicatorSeries(
                id="sma5",
                kind=IndicatorKind.SMA,
                points=(IndicatorPoint(time=date(2024, 1, 5), value=10.25),),
            ),
            "sma20": IndicatorSeries.empty("sma20", IndicatorKind.SMA),
        },
    )


def mock_service(query_result=None, query_error=None):
    service = MagicMock()
    service.start = AsyncMock()
    service.close = AsyncMock()
    service.query = AsyncMock(return_value=query_result, side_effect=query_error)
    return service


@pytest.mark.unit
class TestMain:
    def test_parse_args(self):
        args = parse_args(["600000", "--period", "week", "--start", "2024-01-01", "--indicators", "sma5", "macd"])

        assert args.instrument == "600000"
        assert args.period == "week"
        assert args.start == date(2024, 1, 1)
        assert args.end is None
        assert args.indicators == ["sma5", "macd"]
        assert args.follow is False

    def test_summarize(self, caplog):
        caplog.set_level("INFO")

        summarize(sample_result())

        assert "600000 Weekly: 1 bars" in caplog.text
        assert "sma20: insufficient history" in caplog.text
        assert "'value': 10.25" in caplog.text

    @pytest.mark.asyncio
    async def test_run_query(self):
        service = mock_service(query_result=sample_result())

        with patch("services.query_service.main.create_query_service", return_value=service):
            code = await run(parse_args(["600000", "--period", "week"]))

        assert code == 0
        service.start.assert_awaited_once()
        service.close.assert_awaited_once()
        assert service.query.call_args.args[:2] == ("600000", "week")

    @pytest.mark.asyncio
    async def test_run_reports_engine_errors(self):
        service = mock_service(query_error=FetchError("upstream down", instrument="600000"))

        with patch("services.query_service.main.create_query_service", return_value=service):
            code = await run(parse_args(["600000"]))

        assert code == 1
        service.close.assert_awaited_once()
