"""Swap services: single swaps, order tracking and batches."""

from routeswap.services.batch import (
    Allocation,
    BatchStatus,
    BatchSwapCoordinator,
    BulkSwapPlan,
    LegFailure,
    SourceAsset,
    SplitSwapPlan,
    SwapBatch,
    even_allocation,
)
from routeswap.services.factory import RouteClients, create_clients
from routeswap.services.order_tracker import (
    OrderLifecycleTracker,
    OrderState,
    SwapOrder,
)
from routeswap.services.swap_service import SwapExecution, SwapService

__all__ = [
    "Allocation",
    "BatchStatus",
    "BatchSwapCoordinator",
    "BulkSwapPlan",
    "LegFailure",
    "SourceAsset",
    "SplitSwapPlan",
    "SwapBatch",
    "even_allocation",
    "RouteClients",
    "create_clients",
    "OrderLifecycleTracker",
    "OrderState",
    "SwapOrder",
    "SwapExecution",
    "SwapService",
]
