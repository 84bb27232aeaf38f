"""Integration tests for the HTTP surface: routes, envelopes, error codes."""
from __future__ import annotations

from collections.abc import AsyncIterator
from unittest.mock import AsyncMock

import pytest
import pytest_asyncio
from aiohttp import test_utils

from lending_gateway import codec
from lending_gateway.api import build_app
from lending_gateway.api.app import REFRESHER
from lending_gateway.config import AppConfig
from lending_gateway.errors import DecodeError, OracleNotConfiguredError, TransportError
from tests.conftest import BORROWER, POOL, TOKEN


@pytest_asyncio.fixture()
async def client(sample_app_config: AppConfig, fake_reader: AsyncMock) -> AsyncIterator[test_utils.TestClient]:
    app = build_app(sample_app_config, reader=fake_reader, run_refresher=False)
    async with test_utils.TestClient(test_utils.TestServer(app)) as test_client:
        yield test_client


# ---------------------------------------------------------------------------
# Reads
# ---------------------------------------------------------------------------


class TestReads:
    @pytest.mark.asyncio
    async def test_health(self, client: test_utils.TestClient) -> None:
        resp = await client.get("/api/v1/health")
        assert resp.status == 200
        assert await resp.json() == {"code": 0, "message": "success", "data": {"status": "ok"}}

    @pytest.mark.asyncio
    async def test_pool_state(self, client: test_utils.TestClient) -> None:
        resp = await client.get("/api/v1/pool/state")
        body = await resp.json()
        assert body["code"] == 0
        assert body["data"]["totalFTokenSupply"] == "980392156862"

    @pytest.mark.asyncio
    async def test_pool_state_from_cache_after_refresh(
        self, client: test_utils.TestClient, fake_reader: AsyncMock
    ) -> None:
        await client.app[REFRESHER].refresh_once()
        fake_reader.get_pool_state.reset_mock()

        resp = await client.get("/api/v1/pool/state")

        assert resp.status == 200
        fake_reader.get_pool_state.assert_not_called()

    @pytest.mark.asyncio
    async def test_user_position(self, client: test_utils.TestClient) -> None:
        resp = await client.get(f"/api/v1/users/{BORROWER}/position")
        body = await resp.json()
        assert body["data"]["loanIds"] == [7]

    @pytest.mark.asyncio
    async def test_lender_position_nulls(self, client: test_utils.TestClient) -> None:
        resp = await client.get(f"/api/v1/users/{BORROWER}/lender-position")
        data = (await resp.json())["data"]
        assert data["netDeposited"] is None
        assert data["interest"] is None

    @pytest.mark.asyncio
    async def test_user_loans(self, client: test_utils.TestClient) -> None:
        resp = await client.get(f"/api/v1/users/{BORROWER}/loans")
        data = (await resp.json())["data"]
        assert [loan["id"] for loan in data] == [7]

    @pytest.mark.asyncio
    async def test_loan_and_health(self, client: test_utils.TestClient) -> None:
        loan = await (await client.get("/api/v1/loans/7")).json()
        health = await (await client.get("/api/v1/loans/7/health")).json()
        assert loan["data"]["repaymentAmount"] == "123456"
        assert health["data"] == {"ltv": "6500", "isLiquidatable": False}


# ---------------------------------------------------------------------------
# Quotes and transactions
# ---------------------------------------------------------------------------


class TestWrites:
    @pytest.mark.asyncio
    async def test_quote(self, client: test_utils.TestClient) -> None:
        resp = await client.post("/api/v1/quote/borrow", json={"amount": "1000000"})
        body = await resp.json()
        assert body["data"]["collateralWei"] == "666666666666667"
        assert body["data"]["maxLtvPercent"] == "75"

    @pytest.mark.asyncio
    async def test_deposit(self, client: test_utils.TestClient) -> None:
        resp = await client.post("/api/v1/tx/deposit", json={"amount": "1000000"})
        data = (await resp.json())["data"]
        assert [c["to"] for c in data["calls"]] == [TOKEN, POOL]
        assert data["approve"]["data"].startswith("0x" + codec.APPROVE.selector.hex())

    @pytest.mark.asyncio
    async def test_withdraw(self, client: test_utils.TestClient) -> None:
        resp = await client.post("/api/v1/tx/withdraw", json={"amount": "10"})
        data = (await resp.json())["data"]
        assert len(data["calls"]) == 1

    @pytest.mark.asyncio
    async def test_borrow(self, client: test_utils.TestClient) -> None:
        resp = await client.post(
            "/api/v1/tx/borrow",
            json={"amount": "1000000", "duration": 2592000, "collateralWei": "666666666666667"},
        )
        data = (await resp.json())["data"]
        assert data["borrow"]["value"] == "666666666666667"

    @pytest.mark.asyncio
    async def test_repay(self, client: test_utils.TestClient, fake_reader: AsyncMock) -> None:
        resp = await client.post("/api/v1/tx/repay", json={"loanId": 7})
        data = (await resp.json())["data"]
        fake_reader.get_loan.assert_awaited_once_with(7)
        assert data["repaymentAmount"] == "123456"
        assert data["validUntil"] - data["quotedAt"] == 60

    @pytest.mark.asyncio
    async def test_repay_loan_zero(self, client: test_utils.TestClient) -> None:
        resp = await client.post("/api/v1/tx/repay", json={"loanId": 0})
        assert resp.status == 200

    @pytest.mark.asyncio
    async def test_liquidate(self, client: test_utils.TestClient) -> None:
        resp = await client.post("/api/v1/tx/liquidate", json={"loanId": "7"})
        data = (await resp.json())["data"]
        assert data["liquidate"]["to"] == POOL

    @pytest.mark.asyncio
    async def test_mint(self, client: test_utils.TestClient) -> None:
        resp = await client.post("/api/v1/tx/mint", json={"to": BORROWER, "amount": "5"})
        data = (await resp.json())["data"]
        assert data["mint"]["to"] == TOKEN


# ---------------------------------------------------------------------------
# Error envelopes
# ---------------------------------------------------------------------------


class TestErrors:
    @pytest.mark.asyncio
    async def test_bad_address(self, client: test_utils.TestClient) -> None:
        resp = await client.get("/api/v1/users/0x1234/position")
        assert resp.status == 400
        assert (await resp.json())["code"] == 4001

    @pytest.mark.asyncio
    async def test_missing_field(self, client: test_utils.TestClient) -> None:
        resp = await client.post("/api/v1/tx/borrow", json={"amount": "1"})
        body = await resp.json()
        assert resp.status == 400
        assert body == {"code": 4001, "message": "duration is required"}

    @pytest.mark.asyncio
    async def test_invalid_json(self, client: test_utils.TestClient) -> None:
        resp = await client.post("/api/v1/quote/borrow", data=b"{not json")
        assert resp.status == 400
        assert (await resp.json())["code"] == 4001

    @pytest.mark.asyncio
    async def test_non_object_body(self, client: test_utils.TestClient) -> None:
        resp = await client.post("/api/v1/quote/borrow", json=["1000000"])
        assert resp.status == 400

    @pytest.mark.asyncio
    async def test_transport_error(self, client: test_utils.TestClient, fake_reader: AsyncMock) -> None:
        fake_reader.get_loan.side_effect = TransportError("eth_call: HTTP 502")
        resp = await client.get("/api/v1/loans/7")
        assert resp.status == 502
        assert (await resp.json())["code"] == 1003

    @pytest.mark.asyncio
    async def test_decode_error(self, client: test_utils.TestClient, fake_reader: AsyncMock) -> None:
        fake_reader.get_loan_health.side_effect = DecodeError("decode getLoanHealth: short")
        resp = await client.get("/api/v1/loans/7/health")
        assert resp.status == 502
        assert (await resp.json())["code"] == 1002

    @pytest.mark.asyncio
    async def test_oracle_not_configured(self, client: test_utils.TestClient, fake_reader: AsyncMock) -> None:
        fake_reader.get_native_price.side_effect = OracleNotConfiguredError("oracle address not configured")
        resp = await client.post("/api/v1/quote/borrow", json={"amount": "1"})
        assert resp.status == 503
        assert (await resp.json())["code"] == 1004

    @pytest.mark.asyncio
    async def test_unexpected_error_is_internal(
        self, client: test_utils.TestClient, fake_reader: AsyncMock
    ) -> None:
        fake_reader.list_user_loans.side_effect = RuntimeError("bug")
        resp = await client.get(f"/api/v1/users/{BORROWER}/loans")
        assert resp.status == 500
        assert await resp.json() == {"code": 1001, "message": "internal error"}

    @pytest.mark.asyncio
    async def test_unknown_route_is_404(self, client: test_utils.TestClient) -> None:
        resp = await client.get("/api/v1/nope")
        assert resp.status == 404
        assert await resp.json() == {"code": 4001, "message": "Not Found"}

    @pytest.mark.asyncio
    async def test_wrong_method_is_405(self, client: test_utils.TestClient) -> None:
        resp = await client.get("/api/v1/tx/deposit")
        assert resp.status == 405
        assert await resp.json() == {"code": 4001, "message": "Method Not Allowed"}


class TestRefresherLifecycle:
    @pytest.mark.asyncio
    async def test_started_and_stopped_with_app(
        self, sample_app_config: AppConfig, fake_reader: AsyncMock
    ) -> None:
        app = build_app(sample_app_config, reader=fake_reader)
        async with test_utils.TestClient(test_utils.TestServer(app)):
            assert app[REFRESHER].running
        assert not app[REFRESHER].running
        fake_reader.get_pool_state.assert_awaited()
