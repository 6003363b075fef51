#!/usr/bin/env python3
"""
run_hunter.py - CLI entrypoint for the new-pool hunter.

Usage:
    python run_hunter.py --dry-run
    python run_hunter.py --config config/hunter.yaml --duration 3600
"""

import asyncio
import signal
import sys

import click
import httpx

from config import load_hunter_config
from core.exceptions import ConfigError, FatalError
from core.logging import get_logger, set_global_context, setup_logging
from pipeline.context import HunterContext
from pipeline.driver import PipelineDriver

logger = get_logger("hunter.cli")

# Graceful shutdown flag
_shutdown_requested = False


def handle_shutdown(signum: int, frame: object) -> None:
    """Handle shutdown signals."""
    global _shutdown_requested
    _shutdown_requested = True
    logger.info("Shutdown requested", extra={"context": {"signal": signum}})


def shutdown_requested() -> bool:
    return _shutdown_requested


async def hunt(ctx: HunterContext, duration_seconds: int | None) -> dict:
    """Preflight, poll until stopped, then wait for in-flight trades."""
    driver = PipelineDriver.from_context(ctx)
    try:
        await ctx.preflight()
        await driver.run(
            duration_seconds=duration_seconds,
            should_stop=shutdown_requested,
        )
    finally:
        await driver.shutdown(wait_for_trades=True)
        await ctx.close()
    return {**ctx.stats.get_summary(), "rpc_endpoints": ctx.rpc_stats()}


@click.command()
@click.option(
    "--config",
    "-c",
    "config_path",
    default=None,
    type=click.Path(dir_okay=False),
    help="Path to hunter.yaml (default: config/hunter.yaml)",
)
@click.option(
    "--interval-ms",
    "-i",
    default=None,
    type=int,
    help="Poll interval in milliseconds (overrides config)",
)
@click.option(
    "--duration",
    "-d",
    default=None,
    type=int,
    help="Session duration in seconds (default: infinite)",
)
@click.option(
    "--dry-run/--live",
    default=None,
    help="Validate and build trades without broadcasting",
)
@click.option(
    "--log-level",
    "-l",
    default="INFO",
    type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR"]),
    help="Log level",
)
@click.option(
    "--json-logs/--plain-logs",
    default=True,
    help="Use JSON log format",
)
@click.option(
    "--log-file",
    default=None,
    help="Also write JSON logs to this file",
)
def main(
    config_path: str | None,
    interval_ms: int | None,
    duration: int | None,
    dry_run: bool | None,
    log_level: str,
    json_logs: bool,
    log_file: str | None,
) -> None:
    """
    Watch for new liquidity pools and buy the new token.
    """
    setup_logging(level=log_level, json_output=json_logs, log_file=log_file)

    try:
        config = load_hunter_config(config_path)
        if dry_run is not None:
            config.dry_run = dry_run
        if interval_ms is not None:
            config.poll_interval_seconds = interval_ms / 1000
        config.validate()
    except ConfigError as e:
        logger.error(str(e), extra={"context": {"error_code": e.code.value}})
        sys.exit(2)

    set_global_context(
        service="poolhunter",
        version="0.1.0",
        chain_id=config.chain_id,
    )

    signal.signal(signal.SIGINT, handle_shutdown)
    signal.signal(signal.SIGTERM, handle_shutdown)

    try:
        ctx = HunterContext.build(config)
    except FatalError as e:
        logger.error(str(e), extra={"context": {"error_code": e.code.value, **e.details}})
        sys.exit(1)

    logger.info(
        "Starting poolhunter",
        extra={"context": {
            **config.to_dict(),
            "wallet": ctx.wallet.address,
            "duration_seconds": duration,
        }},
    )

    try:
        summary = asyncio.run(hunt(ctx, duration))
    except FatalError as e:
        logger.error(str(e), extra={"context": {"error_code": e.code.value}})
        sys.exit(1)
    except KeyboardInterrupt:
        logger.info("Hunter interrupted")
        summary = ctx.stats.get_summary()

    outcomes = summary["outcomes"]
    click.echo("\n" + "=" * 60)
    click.echo("POOLHUNTER SESSION SUMMARY")
    click.echo("=" * 60)
    click.echo(f"Duration: {summary['elapsed_seconds']} seconds")
    click.echo(f"Blocks scanned: {summary['blocks_scanned']} (scan errors: {summary['scan_errors']})")
    click.echo(f"Pools detected: {summary['pools_detected']}")
    click.echo(f"Trades attempted: {summary['trades_attempted']}")
    for outcome, count in outcomes.items():
        click.echo(f"  {outcome}: {count}")
    click.echo(f"Total gas used: {summary['total_gas_used']}")
    click.echo(f"Avg detection-to-broadcast: {summary['avg_detection_to_broadcast_ms']} ms")
    for url, endpoint in summary.get("rpc_endpoints", {}).items():
        click.echo(
            f"RPC {httpx.URL(url).host}: {endpoint['total_requests']} requests, "
            f"{endpoint['success_rate']:.1%} ok, {endpoint['avg_latency_ms']} ms avg"
        )
    click.echo("=" * 60)


if __name__ == "__main__":
    main()
