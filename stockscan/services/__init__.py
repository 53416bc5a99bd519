"""Runnable stockscan services."""

__all__ = ["scanner", "inventory_api"]
