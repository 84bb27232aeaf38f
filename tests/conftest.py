"""Shared test fixtures and sample data."""
from __future__ import annotations

import textwrap
from pathlib import Path
from unittest.mock import AsyncMock

import pytest

from lending_gateway.config import (
    AppConfig,
    ChainConfig,
    ProtocolConfig,
    RefresherConfig,
    ServerConfig,
)
from lending_gateway.models import LenderPosition, Loan, LoanHealth, PoolState, UserPosition

POOL = "0x1111111111111111111111111111111111111111"
ORACLE = "0x2222222222222222222222222222222222222222"
TOKEN = "0x3333333333333333333333333333333333333333"
BORROWER = "0x5aAeb6053F3E94C9b9A09f33669435E7Ef1BeAed"

WORD = 32


def word(value: int) -> bytes:
    """uint256 word helper for literal result buffers."""
    return value.to_bytes(WORD, "big")


def address_word(address: str) -> bytes:
    return b"\x00" * 12 + bytes.fromhex(address[2:])


# ---------------------------------------------------------------------------
# Config fixtures
# ---------------------------------------------------------------------------


@pytest.fixture()
def sample_chain_config() -> ChainConfig:
    return ChainConfig(
        chain_id=97,
        rpc_url="https://rpc.example.com",
        rpc_timeout=10,
        lending_pool=POOL,
        price_oracle=ORACLE,
        mock_usdt=TOKEN,
    )


@pytest.fixture()
def sample_app_config(sample_chain_config: ChainConfig) -> AppConfig:
    return AppConfig(
        env="test",
        network="bscTestnet",
        chain=sample_chain_config,
        protocol=ProtocolConfig(max_ltv_percent=75, borrow_decimals=6, quote_validity_seconds=60),
        refresher=RefresherConfig(interval_seconds=180),
        server=ServerConfig(host="127.0.0.1", port=8080),
    )


# ---------------------------------------------------------------------------
# Model fixtures
# ---------------------------------------------------------------------------


@pytest.fixture()
def sample_pool_state() -> PoolState:
    return PoolState(
        total_assets="1000000000000",
        total_borrowed="250000000000",
        available_liquidity="750000000000",
        exchange_rate="1020000000000000000",
        total_ftoken_supply="980392156862",
    )


@pytest.fixture()
def sample_loan() -> Loan:
    return Loan(
        id=7,
        borrower=BORROWER,
        collateral_amount="1000000000000000000",
        principal="100000000",
        repayment_amount="123456",
        start_time=1_700_000_000,
        duration=2_592_000,
        is_active=True,
    )


@pytest.fixture()
def fake_reader(sample_pool_state: PoolState, sample_loan: Loan) -> AsyncMock:
    """AsyncMock standing in for ChainGateway."""
    reader = AsyncMock()
    reader.has_oracle = True
    reader.get_pool_state.return_value = sample_pool_state
    reader.get_native_price.return_value = 2000 * 10**18
    reader.get_loan.return_value = sample_loan
    reader.get_loan_health.return_value = LoanHealth(ltv="6500", is_liquidatable=False)
    reader.list_user_loans.return_value = [sample_loan]
    reader.get_user_position.return_value = UserPosition(
        address=BORROWER,
        loan_ids=(7,),
        total_principal="100000000",
        total_repayment="123456",
        total_collateral="1000000000000000000",
    )
    reader.get_lender_position.return_value = LenderPosition(
        address=BORROWER,
        ftoken_balance="5000000",
        exchange_rate="1020000000000000000",
        underlying_balance="5100000",
    )
    return reader


# ---------------------------------------------------------------------------
# Config YAML fixture
# ---------------------------------------------------------------------------

SAMPLE_YAML = textwrap.dedent(f"""\
    env: test
    network: bscTestnet
    networks:
      bscTestnet:
        chain_id: 97
        rpc_url: "https://rpc.example.com"
        rpc_timeout: 10
        lending_pool: "{POOL}"
        price_oracle: "{ORACLE}"
        mock_usdt: "{TOKEN}"
      bscMainnet:
        chain_id: 56
        rpc_url: "https://mainnet.example.com"
        lending_pool: "{POOL}"
        usdt: "{TOKEN}"
    protocol:
      max_ltv_percent: 75
      borrow_decimals: 6
      quote_validity_seconds: 30
    refresher:
      interval_seconds: 120
    server:
      host: 127.0.0.1
      port: 9000
""")


@pytest.fixture()
def sample_yaml_path(tmp_path: Path) -> Path:
    cfg_file = tmp_path / "config.yaml"
    cfg_file.write_text(SAMPLE_YAML)
    return cfg_file
