"""Use cases layer - Business logic orchestration for inventory runs.

- CollectInventoryUseCase: API -> record store, with per-app retry
- AggregateInventoryUseCase: record set -> report views

Use cases depend only on ports, not concrete implementations.
"""

from .aggregate_inventory import AggregateInventoryUseCase
from .collect_inventory import CollectInventoryUseCase

__all__ = [
    "AggregateInventoryUseCase",
    "CollectInventoryUseCase",
]
