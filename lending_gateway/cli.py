"""Command-line interface for the lending gateway."""
from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys

from aiohttp import web

from .api import build_app
from .chain import ChainGateway
from .config import AppConfig, load_config
from .errors import GatewayError
from .logging_setup import configure_logging
from .services import LoanService, PoolService, QuoteEngine, StateCache, StateRefresher

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    """Build the argparse CLI parser."""
    parser = argparse.ArgumentParser(
        prog="lending-gateway",
        description="Read/write gateway for the on-chain lending pool",
    )
    parser.add_argument(
        "--config",
        default=None,
        help="Path to config.yaml (default: config.yaml in project root)",
    )
    parser.add_argument(
        "--log-level",
        default="INFO",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging level (default: INFO)",
    )

    sub = parser.add_subparsers(dest="command")

    serve_parser = sub.add_parser("serve", help="Run the HTTP API and state refresher")
    serve_parser.add_argument("--host", default=None, help="Bind host (overrides config)")
    serve_parser.add_argument(
        "--port", type=int, default=None, help="Bind port (overrides config)"
    )

    sub.add_parser("pool-state", help="Print the current pool state")
    sub.add_parser("refresh", help="Run one refresh cycle and print the cache")

    quote_parser = sub.add_parser("quote", help="Quote collateral for a borrow amount")
    quote_parser.add_argument("amount", help="Borrow amount in smallest units")

    loan_parser = sub.add_parser("loan", help="Print a loan and its health")
    loan_parser.add_argument("loan_id", help="On-chain loan id")

    return parser


def _print_json(data: object) -> None:
    print(json.dumps(data, indent=2))


async def _serve(config: AppConfig, host: str | None, port: int | None) -> None:
    runner = web.AppRunner(build_app(config))
    await runner.setup()
    site = web.TCPSite(runner, host or config.server.host, port or config.server.port)
    await site.start()
    logger.info(
        "API server listening on %s:%d (env=%s, network=%s)",
        host or config.server.host,
        port or config.server.port,
        config.env,
        config.network,
    )
    try:
        await asyncio.Event().wait()
    finally:
        await runner.cleanup()


async def _run(args: argparse.Namespace) -> None:
    """Execute the selected command."""
    configure_logging(args.log_level)
    config = load_config(args.config)

    if args.command == "serve":
        await _serve(config, args.host, args.port)
        return

    gateway = ChainGateway(config.chain)

    if args.command == "pool-state":
        state = await PoolService(gateway).get_pool_state()
        _print_json(state.to_dict())
    elif args.command == "refresh":
        cache = StateCache()
        await StateRefresher(gateway, cache, config.refresher.interval_seconds).refresh_once()
        state, has_state = cache.get_pool_state()
        price, has_price = cache.get_native_price()
        _print_json(
            {
                "poolState": state.to_dict() if has_state else None,
                "nativePrice": str(price) if has_price else None,
            }
        )
    elif args.command == "quote":
        engine = QuoteEngine(
            gateway,
            max_ltv_percent=config.protocol.max_ltv_percent,
            borrow_decimals=config.protocol.borrow_decimals,
        )
        quote = await engine.quote_borrow_collateral(args.amount)
        _print_json(quote.to_dict())
    elif args.command == "loan":
        loans = LoanService(gateway)
        loan = await loans.get_loan(args.loan_id)
        loan_health = await loans.get_loan_health(args.loan_id)
        _print_json({"loan": loan.to_dict(), "health": loan_health.to_dict()})
    else:
        build_parser().print_help()
        sys.exit(1)


def main() -> None:
    """Entry point."""
    parser = build_parser()
    args = parser.parse_args()

    if not args.command:
        parser.print_help()
        sys.exit(1)

    try:
        asyncio.run(_run(args))
    except GatewayError as e:
        logger.error("%s", e)
        sys.exit(2)
    except KeyboardInterrupt:
        pass
