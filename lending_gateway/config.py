"""Configuration loader: reads config.yaml, interpolates env vars, validates."""
from __future__ import annotations

import logging
import os
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml
from dotenv import load_dotenv

from .errors import ConfigError

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Frozen config dataclasses
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class ChainConfig:
    chain_id: int = 0
    rpc_url: str = ""
    rpc_timeout: int = 30
    lending_pool: str = ""
    price_oracle: str = ""
    usdt: str = ""
    mock_usdt: str = ""

    @property
    def token(self) -> str:
        """Borrowed-asset token; testnets fall back to the mock token."""
        return self.usdt or self.mock_usdt


@dataclass(frozen=True)
class ProtocolConfig:
    max_ltv_percent: int = 75
    borrow_decimals: int = 6
    quote_validity_seconds: int = 60


@dataclass(frozen=True)
class RefresherConfig:
    interval_seconds: float = 180.0


@dataclass(frozen=True)
class ServerConfig:
    host: str = "0.0.0.0"
    port: int = 8080


@dataclass(frozen=True)
class AppConfig:
    env: str = "dev"
    network: str = "bscTestnet"
    chain: ChainConfig = field(default_factory=ChainConfig)
    protocol: ProtocolConfig = field(default_factory=ProtocolConfig)
    refresher: RefresherConfig = field(default_factory=RefresherConfig)
    server: ServerConfig = field(default_factory=ServerConfig)


# ---------------------------------------------------------------------------
# Env interpolation
# ---------------------------------------------------------------------------

_ENV_VAR_RE = re.compile(r"\$\{([^}]+)}")
_ADDRESS_RE = re.compile(r"^0[xX][0-9a-fA-F]{40}$")


def _interpolate_env(value: Any) -> Any:
    """Recursively replace ${VAR} and ${VAR:-default} references."""
    if isinstance(value, str):
        return _ENV_VAR_RE.sub(_env_lookup, value)
    if isinstance(value, dict):
        return {k: _interpolate_env(v) for k, v in value.items()}
    if isinstance(value, list):
        return [_interpolate_env(item) for item in value]
    return value


def _env_lookup(match: re.Match[str]) -> str:
    name, _, default = match.group(1).partition(":-")
    return os.environ.get(name) or default


# ---------------------------------------------------------------------------
# YAML → dataclass builders
# ---------------------------------------------------------------------------


def _build_chain(raw: dict[str, Any]) -> ChainConfig:
    return ChainConfig(
        chain_id=int(raw.get("chain_id", 0)),
        rpc_url=str(raw.get("rpc_url", "") or ""),
        rpc_timeout=int(raw.get("rpc_timeout", 30)),
        lending_pool=str(raw.get("lending_pool", "") or ""),
        price_oracle=str(raw.get("price_oracle", "") or ""),
        usdt=str(raw.get("usdt", "") or ""),
        mock_usdt=str(raw.get("mock_usdt", "") or ""),
    )


def _build_protocol(raw: dict[str, Any]) -> ProtocolConfig:
    return ProtocolConfig(
        max_ltv_percent=int(raw.get("max_ltv_percent", 75)),
        borrow_decimals=int(raw.get("borrow_decimals", 6)),
        quote_validity_seconds=int(raw.get("quote_validity_seconds", 60)),
    )


def _build_refresher(raw: dict[str, Any]) -> RefresherConfig:
    return RefresherConfig(interval_seconds=float(raw.get("interval_seconds", 180)))


def _build_server(raw: dict[str, Any]) -> ServerConfig:
    return ServerConfig(
        host=str(raw.get("host", "0.0.0.0")),
        port=int(raw.get("port", 8080)),
    )


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def load_config(config_path: str | Path | None = None) -> AppConfig:
    """Load and validate application configuration from YAML + .env.

    Args:
        config_path: Path to config.yaml. Defaults to ``config.yaml`` in the
            project root (one level up from this package).
    """
    load_dotenv()

    if config_path is None:
        config_path = Path(__file__).resolve().parent.parent / "config.yaml"
    config_path = Path(config_path)

    if not config_path.exists():
        raise FileNotFoundError(f"Config file not found: {config_path}")

    with open(config_path) as f:
        raw = yaml.safe_load(f) or {}

    raw = _interpolate_env(raw)

    network = raw.get("network") or "bscTestnet"
    networks = raw.get("networks") or {}
    if network not in networks:
        raise ConfigError(f"Unsupported network '{network}'")

    cfg = AppConfig(
        env=raw.get("env") or "dev",
        network=network,
        chain=_build_chain(networks[network] or {}),
        protocol=_build_protocol(raw.get("protocol") or {}),
        refresher=_build_refresher(raw.get("refresher") or {}),
        server=_build_server(raw.get("server") or {}),
    )

    _validate(cfg)
    logger.info("Configuration loaded from %s (network=%s)", config_path, network)
    return cfg


def _validate(cfg: AppConfig) -> None:
    """Raise on invalid configuration."""
    chain = cfg.chain
    if not chain.rpc_url:
        raise ConfigError(f"Network '{cfg.network}' has no rpc_url")
    if not _ADDRESS_RE.match(chain.lending_pool):
        raise ConfigError(f"Invalid lending_pool address: '{chain.lending_pool}'")
    if not _ADDRESS_RE.match(chain.token):
        raise ConfigError(f"Invalid token address: '{chain.token}'")
    if chain.price_oracle and not _ADDRESS_RE.match(chain.price_oracle):
        raise ConfigError(f"Invalid price_oracle address: '{chain.price_oracle}'")

    if not 1 <= cfg.protocol.max_ltv_percent <= 100:
        raise ConfigError("max_ltv_percent must be between 1 and 100")
    if not 0 <= cfg.protocol.borrow_decimals <= 18:
        raise ConfigError("borrow_decimals must be between 0 and 18")
    if cfg.refresher.interval_seconds <= 0:
        raise ConfigError("refresher interval_seconds must be positive")
