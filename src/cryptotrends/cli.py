#!/usr/bin/env python3
"""Command-line interface for cryptotrends."""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys

from cryptotrends.types import (RANGE_BUTTONS, ChartKind, PipelineState,
                                Projection, RadarProjection,
                                SnapshotProjection, TimeSeriesProjection)

logger = logging.getLogger(__name__)

_COMPACT_UNITS = ((1e12, "T"), (1e9, "B"), (1e6, "M"), (1e3, "K"))


def format_compact(value: float) -> str:
    """Format a magnitude in compact notation (e.g. 1.23T)."""
    for threshold, suffix in _COMPACT_UNITS:
        if abs(value) >= threshold:
            return f"{value / threshold:.2f}{suffix}"
    return f"{value:.2f}"


def print_projection(projection: Projection, currency: str) -> None:
    """Print a projection as plain text tables."""
    code = currency.upper()
    if isinstance(projection, TimeSeriesProjection):
        print(f"Crypto Market Cap Trends ({code})")
        print(f"Axis ({len(projection.labels)} labels): {', '.join(projection.labels)}")
        print(f"\n{'Asset':<20} {'Points':>8} {'First':>12} {'Latest':>12}")
        print("-" * 56)
        for series in projection.series:
            first = format_compact(series.values[0]) if series.values else "N/A"
            last = format_compact(series.values[-1]) if series.values else "N/A"
            print(f"{series.display_label:<20} {len(series.values):>8} {first:>12} {last:>12}")
    elif isinstance(projection, SnapshotProjection):
        print(f"Current Market Cap Distribution ({code})")
        total = sum(projection.latest_values) or 1.0
        print(f"\n{'Asset':<20} {'Market Cap':>12} {'Share':>8}")
        print("-" * 42)
        for label, value in zip(projection.labels, projection.latest_values):
            print(f"{label:<20} {format_compact(value):>12} {value / total:>8.1%}")
    elif isinstance(projection, RadarProjection):
        print(f"Market Cap Comparison ({code})")
        print(f"\n{'Asset':<20} {'Market Cap':>12}")
        print("-" * 34)
        for series in projection.series:
            print(f"{series.display_label:<20} {format_compact(series.values[0]):>12}")


async def _run_pipeline(config, selection) -> PipelineState | None:
    from cryptotrends.data import (CoinGeckoClient, KnownAssetRegistry,
                                   resolve_market_data_client)
    from cryptotrends.exceptions import TransportError
    from cryptotrends.pipeline import TrendPipeline

    client = resolve_market_data_client(config)
    try:
        assets = list(config.known_assets)
        if not assets and isinstance(client, CoinGeckoClient):
            try:
                assets = await client.list_markets(selection.currency)
            except TransportError as e:
                logger.warning("Could not load known assets, labels fall back to 'Unknown': %s", e)
        pipeline = TrendPipeline(
            client,
            KnownAssetRegistry(assets),
            reference_index=config.reference_index,
            timeout=config.source_params.get("timeout"),
        )
        return await pipeline.run(selection)
    finally:
        await client.close()


def cmd_trends(args: argparse.Namespace) -> int:
    """Run the trend pipeline once and print the projection."""
    from cryptotrends.commands.trends import load_trends_config
    from cryptotrends.exceptions import (ConfigError, SelectionError,
                                         TransportError)
    from cryptotrends.logging_config import setup_logging
    from cryptotrends.types import FetchPhase

    try:
        config = load_trends_config(args.config)
    except ConfigError as e:
        print(f"Configuration error: {e}")
        return 1

    setup_logging(args.log_level or config.log_level)

    selection = config.selection
    try:
        for asset_id in args.add or []:
            selection = selection.add_asset(asset_id)
        for asset_id in args.remove or []:
            selection = selection.remove_asset(asset_id)
        if args.chart_kind:
            selection = selection.with_chart_kind(args.chart_kind)
        if args.currency:
            selection = selection.with_currency(args.currency)
        if args.range:
            selection = selection.with_range_button(args.range)
        if args.start or args.end:
            if not (args.start and args.end):
                print("Error: --start and --end must be given together")
                return 1
            selection = selection.with_date_range(args.start, args.end)
    except SelectionError as e:
        print(f"Selection error: {e}")
        return 1

    print("=" * 60)
    print("MARKET CAP TRENDS")
    print("=" * 60)
    print(f"Assets:     {', '.join(selection.asset_ids) or '(none)'}")
    print(f"Currency:   {selection.currency.value.upper()}")
    print(f"Window:     {selection.window}")
    print(f"Chart:      {selection.chart_kind.value}")
    print(f"Source:     {config.data_source}")

    try:
        state = asyncio.run(_run_pipeline(config, selection))
    except TransportError as e:
        print(f"Data source error: {e}")
        return 1

    if state is None:
        return 1
    if state.phase is FetchPhase.EMPTY:
        print("\nSelect at least one cryptocurrency to view chart")
        return 0
    if state.phase is FetchPhase.ERROR:
        print(f"\n{state.error}")
        return 1

    print()
    if state.projection is not None:
        print_projection(state.projection, selection.currency.value)
    return 0


def cmd_convert(args: argparse.Namespace) -> int:
    """Convert an amount between registry assets."""
    from cryptotrends.commands.trends import load_trends_config
    from cryptotrends.data import CoinGeckoClient, KnownAssetRegistry
    from cryptotrends.exceptions import (ConfigError, ConversionError,
                                         TransportError)
    from cryptotrends.exchange import convert, format_conversion
    from cryptotrends.types import CurrencyCode

    try:
        base = CurrencyCode(args.base.lower())
    except ValueError:
        print(f"Error: Unsupported base currency '{args.base}'")
        return 1

    if args.config:
        try:
            config = load_trends_config(args.config)
        except ConfigError as e:
            print(f"Configuration error: {e}")
            return 1
        registry = KnownAssetRegistry(config.known_assets)
    else:
        async def _load():
            client = CoinGeckoClient()
            try:
                return await client.list_markets(base)
            finally:
                await client.close()

        try:
            registry = KnownAssetRegistry(asyncio.run(_load()))
        except TransportError as e:
            print(f"Data source error: {e}")
            return 1

    try:
        result = convert(args.amount, args.from_symbol, args.to_symbol, registry, base.value)
    except ConversionError as e:
        print(f"Error: {e}")
        return 1

    print(
        f"{args.amount} {args.from_symbol.upper()} = "
        f"{format_conversion(result, args.to_symbol, base.value)}"
    )
    return 0


def main(argv: list[str] | None = None) -> int:
    """Main entry point."""
    parser = argparse.ArgumentParser(
        description="Cryptocurrency market-cap trends CLI",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # Trends command
    trends_parser = subparsers.add_parser(
        "trends", help="Fetch market-cap history and print a chart projection"
    )
    trends_parser.add_argument("config", help="Path to YAML configuration file")
    trends_parser.add_argument(
        "-k",
        "--chart-kind",
        choices=[k.value for k in ChartKind],
        help="Override the configured chart kind",
    )
    trends_parser.add_argument("-c", "--currency", help="Override the quote currency")
    trends_parser.add_argument(
        "-r", "--range", choices=list(RANGE_BUTTONS), help="Relative time range"
    )
    trends_parser.add_argument("--start", help="Start date (YYYY-MM-DD)")
    trends_parser.add_argument("--end", help="End date (YYYY-MM-DD)")
    trends_parser.add_argument(
        "--add", action="append", metavar="ASSET", help="Add an asset to the selection"
    )
    trends_parser.add_argument(
        "--remove", action="append", metavar="ASSET", help="Remove an asset from the selection"
    )
    trends_parser.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        help="Logging level (default: from config)",
    )

    # Convert command
    convert_parser = subparsers.add_parser(
        "convert", help="Convert an amount between assets at current prices"
    )
    convert_parser.add_argument("amount", help="Amount to convert")
    convert_parser.add_argument("from_symbol", help="Source asset symbol (e.g., BTC)")
    convert_parser.add_argument("to_symbol", help="Target asset symbol or base currency")
    convert_parser.add_argument(
        "--base", default="usd", help="Currency prices are quoted in (default: usd)"
    )
    convert_parser.add_argument(
        "--config", help="Trends config whose known_assets provide prices"
    )

    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        return 0

    if args.command == "trends":
        return cmd_trends(args)
    elif args.command == "convert":
        return cmd_convert(args)

    return 0


if __name__ == "__main__":
    sys.exit(main())
