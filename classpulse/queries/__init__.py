"""Cached read queries over the data store."""

from .gateway import QueryGateway

__all__ = ["QueryGateway"]
