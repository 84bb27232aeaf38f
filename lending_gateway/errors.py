"""Error taxonomy shared by every layer of the gateway."""
from __future__ import annotations


class GatewayError(Exception):
    """Base class for all gateway errors."""


class InputError(GatewayError, ValueError):
    """Malformed or out-of-range caller input. Never retried."""


class EncodeError(InputError):
    """A value cannot be packed into a 32-byte word."""


class DecodeError(GatewayError):
    """Truncated or structurally invalid bytes returned by the chain."""


class TransportError(GatewayError):
    """The RPC endpoint was unreachable or answered with an error."""


class ConfigError(GatewayError, ValueError):
    """Missing or malformed configuration."""


class OracleNotConfiguredError(ConfigError):
    """A price read was requested but no oracle address is configured."""
