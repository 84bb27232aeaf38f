"""HTTP surface: parameter extraction and JSON envelopes only."""
from __future__ import annotations

import json
import logging
from collections.abc import AsyncIterator
from typing import Any

from aiohttp import web

from ..chain import ChainGateway
from ..config import AppConfig
from ..errors import (
    ConfigError,
    DecodeError,
    GatewayError,
    InputError,
    TransportError,
)
from ..interfaces.chain import ChainReader
from ..services import (
    LoanService,
    PoolService,
    QuoteEngine,
    StateCache,
    StateRefresher,
    TransactionBuilder,
)

logger = logging.getLogger(__name__)

CODE_OK = 0
CODE_INTERNAL = 1001
CODE_DECODE = 1002
CODE_TRANSPORT = 1003
CODE_CONFIG = 1004
CODE_BAD_REQUEST = 4001

POOL_SERVICE = web.AppKey("pool_service", PoolService)
LOAN_SERVICE = web.AppKey("loan_service", LoanService)
QUOTE_ENGINE = web.AppKey("quote_engine", QuoteEngine)
TX_BUILDER = web.AppKey("tx_builder", TransactionBuilder)
REFRESHER = web.AppKey("refresher", StateRefresher)


# ---------------------------------------------------------------------------
# Envelope
# ---------------------------------------------------------------------------


def success(data: Any) -> web.Response:
    return web.json_response({"code": CODE_OK, "message": "success", "data": data})


def failure(status: int, code: int, message: str) -> web.Response:
    return web.json_response({"code": code, "message": message}, status=status)


def _classify(error: GatewayError) -> tuple[int, int]:
    if isinstance(error, InputError):
        return 400, CODE_BAD_REQUEST
    if isinstance(error, DecodeError):
        return 502, CODE_DECODE
    if isinstance(error, TransportError):
        return 502, CODE_TRANSPORT
    if isinstance(error, ConfigError):
        return 503, CODE_CONFIG
    return 500, CODE_INTERNAL


@web.middleware
async def error_middleware(request: web.Request, handler: Any) -> web.StreamResponse:
    try:
        return await handler(request)
    except web.HTTPException as e:
        if e.status < 400:
            raise
        return failure(e.status, CODE_BAD_REQUEST, e.reason)
    except GatewayError as e:
        status, code = _classify(e)
        logger.warning("%s %s failed: %s", request.method, request.path, e)
        return failure(status, code, str(e))
    except Exception:
        logger.exception("%s %s crashed", request.method, request.path)
        return failure(500, CODE_INTERNAL, "internal error")


async def _json_body(request: web.Request) -> dict[str, Any]:
    try:
        body = await request.json()
    except (json.JSONDecodeError, UnicodeDecodeError) as e:
        raise InputError(f"invalid JSON body: {e}") from e
    if not isinstance(body, dict):
        raise InputError("JSON body must be an object")
    return body


def _required(body: dict[str, Any], key: str) -> Any:
    if body.get(key) in (None, ""):
        raise InputError(f"{key} is required")
    return body[key]


# ---------------------------------------------------------------------------
# Handlers
# ---------------------------------------------------------------------------


async def health(request: web.Request) -> web.Response:
    return success({"status": "ok"})


async def get_pool_state(request: web.Request) -> web.Response:
    state = await request.app[POOL_SERVICE].get_pool_state()
    return success(state.to_dict())


async def get_user_position(request: web.Request) -> web.Response:
    pos = await request.app[POOL_SERVICE].get_user_position(request.match_info["address"])
    return success(pos.to_dict())


async def get_lender_position(request: web.Request) -> web.Response:
    pos = await request.app[POOL_SERVICE].get_lender_position(request.match_info["address"])
    return success(pos.to_dict())


async def list_user_loans(request: web.Request) -> web.Response:
    loans = await request.app[LOAN_SERVICE].list_user_loans(request.match_info["address"])
    return success([loan.to_dict() for loan in loans])


async def get_loan(request: web.Request) -> web.Response:
    loan = await request.app[LOAN_SERVICE].get_loan(request.match_info["loan_id"])
    return success(loan.to_dict())


async def get_loan_health(request: web.Request) -> web.Response:
    loan_health = await request.app[LOAN_SERVICE].get_loan_health(request.match_info["loan_id"])
    return success(loan_health.to_dict())


async def quote_borrow(request: web.Request) -> web.Response:
    body = await _json_body(request)
    quote = await request.app[QUOTE_ENGINE].quote_borrow_collateral(_required(body, "amount"))
    return success(quote.to_dict())


async def build_deposit(request: web.Request) -> web.Response:
    body = await _json_body(request)
    tx = request.app[TX_BUILDER].build_deposit(_required(body, "amount"))
    return success(tx.to_dict())


async def build_withdraw(request: web.Request) -> web.Response:
    body = await _json_body(request)
    tx = request.app[TX_BUILDER].build_withdraw(_required(body, "amount"))
    return success(tx.to_dict())


async def build_borrow(request: web.Request) -> web.Response:
    body = await _json_body(request)
    tx = request.app[TX_BUILDER].build_borrow(
        _required(body, "amount"),
        _required(body, "duration"),
        _required(body, "collateralWei"),
    )
    return success(tx.to_dict())


async def build_repay(request: web.Request) -> web.Response:
    body = await _json_body(request)
    # loanId 0 is valid, so only absence is rejected
    tx = await request.app[TX_BUILDER].build_repay(_required(body, "loanId"))
    return success(tx.to_dict())


async def build_liquidate(request: web.Request) -> web.Response:
    body = await _json_body(request)
    tx = await request.app[TX_BUILDER].build_liquidate(_required(body, "loanId"))
    return success(tx.to_dict())


async def build_mint(request: web.Request) -> web.Response:
    body = await _json_body(request)
    tx = request.app[TX_BUILDER].build_mint(_required(body, "to"), _required(body, "amount"))
    return success(tx.to_dict())


# ---------------------------------------------------------------------------
# Application factory
# ---------------------------------------------------------------------------


async def _refresher_ctx(app: web.Application) -> AsyncIterator[None]:
    refresher = app[REFRESHER]
    refresher.start()
    yield
    await refresher.stop()


def build_app(
    config: AppConfig,
    reader: ChainReader | None = None,
    run_refresher: bool = True,
) -> web.Application:
    """Wire services and routes. ``reader`` defaults to a live ChainGateway."""
    if reader is None:
        reader = ChainGateway(config.chain)
    cache = StateCache()

    app = web.Application(middlewares=[error_middleware])
    app[POOL_SERVICE] = PoolService(reader, cache)
    app[LOAN_SERVICE] = LoanService(reader)
    app[QUOTE_ENGINE] = QuoteEngine(
        reader,
        cache,
        max_ltv_percent=config.protocol.max_ltv_percent,
        borrow_decimals=config.protocol.borrow_decimals,
    )
    app[TX_BUILDER] = TransactionBuilder(
        reader,
        config.chain.lending_pool,
        config.chain.token,
        quote_validity_seconds=config.protocol.quote_validity_seconds,
    )
    app[REFRESHER] = StateRefresher(reader, cache, config.refresher.interval_seconds)

    if run_refresher:
        app.cleanup_ctx.append(_refresher_ctx)

    app.router.add_get("/api/v1/health", health)
    app.router.add_get("/api/v1/pool/state", get_pool_state)
    app.router.add_get("/api/v1/users/{address}/position", get_user_position)
    app.router.add_get("/api/v1/users/{address}/lender-position", get_lender_position)
    app.router.add_get("/api/v1/users/{address}/loans", list_user_loans)
    app.router.add_get("/api/v1/loans/{loan_id}", get_loan)
    app.router.add_get("/api/v1/loans/{loan_id}/health", get_loan_health)
    app.router.add_post("/api/v1/quote/borrow", quote_borrow)
    app.router.add_post("/api/v1/tx/deposit", build_deposit)
    app.router.add_post("/api/v1/tx/withdraw", build_withdraw)
    app.router.add_post("/api/v1/tx/borrow", build_borrow)
    app.router.add_post("/api/v1/tx/repay", build_repay)
    app.router.add_post("/api/v1/tx/liquidate", build_liquidate)
    app.router.add_post("/api/v1/tx/mint", build_mint)
    return app
