"""Protocol interfaces for the lending gateway."""
from .chain import ChainReader

__all__ = ["ChainReader"]
