"""Read/write gateway between a web frontend and the on-chain lending pool."""

__version__ = "0.1.0"
