"""On-chain access: JSON-RPC transport and the typed gateway."""
from .gateway import ChainGateway
from .rpc import JsonRpcClient

__all__ = ["ChainGateway", "JsonRpcClient"]
