"""
Query Service - command-line entry point

Runs one K-line query and, with --follow, keeps printing live updates
until interrupted.

Usage:
    python -m services.query_service.main 600000 --period week --indicators sma5 macd
    python -m services.query_service.main 600000 --follow
"""

import argparse
import asyncio
import logging
import signal
import sys
from datetime import date

from config.settings import get_settings
from core.errors import EngineError, StreamError
from core.models.indicators import QueryResult
from core.models.market_data import DateRange, Period
from core.utils.logging_config import configure_logging
from domain.aggregation.aggregator import Aggregator
from factory.client_factory import create_query_service

logger = logging.getLogger(__name__)


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="K-line query with technical indicators")
    parser.add_argument("instrument", help="Instrument code, e.g. 600000")
    parser.add_argument("--period", choices=[p.value for p in Period], default=Period.DAY.value)
    parser.add_argument("--start", type=date.fromisoformat, default=None, help="YYYY-MM-DD")
    parser.add_argument("--end", type=date.fromisoformat, default=None, help="YYYY-MM-DD")
    parser.add_argument("--indicators", nargs="*", default=None, help="Indicator ids (default: presets)")
    parser.add_argument("--follow", action="store_true", help="Subscribe to live updates")
    return parser.parse_args(argv)


def summarize(result: QueryResult) -> None:
    """Log the last bar and the latest value of every indicator"""
    label = Aggregator.period_label(result.period)
    last = result.last_bar
    if last is None:
        logger.info(f"{result.instrument} {label}: no bars")
        return

    logger.info(
        f"{result.instrument} {label}: {len(result.bars)} bars, last {last.time} "
        f"O={last.open} H={last.high} L={last.low} C={last.close} V={last.volume}"
    )
    for spec_id, series in result.indicators.items():
        if series.is_empty:
            logger.info(f"  {spec_id}: insufficient history")
            continue
        point = series.points[-1]
        logger.info(f"  {spec_id} @ {point.time}: {dict(zip(series.fields, _as_tuple(point.value)))}")


def _as_tuple(value):
    return value if isinstance(value, tuple) else (value,)


async def run(args: argparse.Namespace) -> int:
    service = create_query_service()
    stop = asyncio.Event()

    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, stop.set)
        except NotImplementedError:
            pass  # Windows

    await service.start()
    try:
        date_range = DateRange(start=args.start, end=args.end)
        result = await service.query(args.instrument, args.period, date_range, args.indicators)
        summarize(result)

        if args.follow:

            async def on_update(updated: QueryResult) -> None:
                summarize(updated)

            async def on_error(error: StreamError) -> None:
                logger.error(f"✗ Live updates stopped: {error.message}")
                stop.set()

            unsubscribe = await service.subscribe(
                args.instrument,
                on_update,
                period=args.period,
                date_range=date_range,
                indicators=args.indicators,
                on_error=on_error,
            )
            await stop.wait()
            await unsubscribe()

        return 0

    except EngineError as e:
        logger.error(f"✗ {e.kind.value}: {e.message}")
        return 1

    finally:
        await service.close()


def main(argv: list[str] | None = None) -> int:
    settings = get_settings()
    configure_logging(settings.LOG_LEVEL, settings.LOG_DIR)
    return asyncio.run(run(parse_args(argv)))


if __name__ == "__main__":
    sys.exit(main())
