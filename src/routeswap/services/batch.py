"""Multi-leg swaps.

Two plan shapes:
- bulk: several source assets, each swapped (fully or partly) into one target
- split: one source amount divided across several targets by percentage

Plans are validated before any request is made. Legs run concurrently and a
failing leg never cancels its siblings; confirmed legs are not rolled back.
"""

import asyncio
import logging
from dataclasses import dataclass, field
from decimal import Decimal
from enum import Enum
from typing import Awaitable, Callable, Optional

from routeswap.amounts import AmountLike, percentage_of, to_decimal
from routeswap.errors import ValidationError
from routeswap.services.order_tracker import (
    DEFAULT_POLL_INTERVAL,
    LedgerClient,
    OrderLifecycleTracker,
    OrderState,
    SwapOrder,
)
from routeswap.services.swap_service import SwapService

logger = logging.getLogger(__name__)

HUNDRED = Decimal(100)


@dataclass(frozen=True)
class Allocation:
    """Share of a split swap going to one target asset."""

    target_asset_id: str
    percentage: AmountLike


@dataclass(frozen=True)
class SourceAsset:
    """One input of a bulk swap."""

    asset_id: str
    amount: AmountLike


@dataclass(frozen=True)
class SwapLeg:
    """A single swap to execute as part of a batch."""

    input_asset_id: str
    output_asset_id: str
    amount: Decimal


@dataclass
class SplitSwapPlan:
    """One source amount divided across targets; percentages must total 100."""

    source_asset_id: str
    source_amount: AmountLike
    allocations: list[Allocation]

    def validate(self) -> None:
        """Raises ValidationError if the plan cannot be executed."""
        if not self.source_asset_id:
            raise ValidationError("Source asset is required")
        if to_decimal(self.source_amount) <= 0:
            raise ValidationError(f"Source amount must be positive, got {self.source_amount}")
        if not self.allocations:
            raise ValidationError("At least one allocation is required")

        seen = set()
        total = Decimal(0)
        for allocation in self.allocations:
            percentage = to_decimal(allocation.percentage)
            if percentage <= 0:
                raise ValidationError(
                    f"Percentage for {allocation.target_asset_id} must be positive, got {percentage}"
                )
            if allocation.target_asset_id == self.source_asset_id:
                raise ValidationError(f"Cannot swap {self.source_asset_id} into itself")
            if allocation.target_asset_id in seen:
                raise ValidationError(f"Duplicate target {allocation.target_asset_id}")
            seen.add(allocation.target_asset_id)
            total += percentage

        if total != HUNDRED:
            raise ValidationError(f"Allocation percentages must total 100, got {total}")
        _check_leg_amounts(self.legs())

    def leg_amounts(self) -> dict[str, Decimal]:
        """Input amount per target, truncated to asset precision."""
        return {
            allocation.target_asset_id: percentage_of(self.source_amount, allocation.percentage)
            for allocation in self.allocations
        }

    def legs(self) -> list[SwapLeg]:
        return [
            SwapLeg(self.source_asset_id, target_asset_id, amount)
            for target_asset_id, amount in self.leg_amounts().items()
        ]


@dataclass
class BulkSwapPlan:
    """Several sources swapped into one target, each at the same percentage."""

    sources: list[SourceAsset]
    target_asset_id: str
    percentage: AmountLike = 100

    def validate(self) -> None:
        """Raises ValidationError if the plan cannot be executed."""
        if not self.target_asset_id:
            raise ValidationError("Target asset is required")
        if not self.sources:
            raise ValidationError("At least one source asset is required")

        percentage = to_decimal(self.percentage)
        if percentage <= 0 or percentage > HUNDRED:
            raise ValidationError(f"Percentage must be in (0, 100], got {percentage}")

        seen = set()
        for source in self.sources:
            if source.asset_id == self.target_asset_id:
                raise ValidationError(f"Cannot swap {source.asset_id} into itself")
            if source.asset_id in seen:
                raise ValidationError(f"Duplicate source {source.asset_id}")
            seen.add(source.asset_id)
            if to_decimal(source.amount) <= 0:
                raise ValidationError(f"Amount for {source.asset_id} must be positive")
        _check_leg_amounts(self.legs())

    def legs(self) -> list[SwapLeg]:
        return [
            SwapLeg(source.asset_id, self.target_asset_id, percentage_of(source.amount, self.percentage))
            for source in self.sources
        ]


def _check_leg_amounts(legs: list[SwapLeg]) -> None:
    for leg in legs:
        if leg.amount <= 0:
            raise ValidationError(
                f"Amount for {leg.input_asset_id} -> {leg.output_asset_id} rounds down to zero"
            )


def even_allocation(target_asset_ids: list[str]) -> list[Allocation]:
    """Split 100% evenly in whole percents; the remainder goes to the first target."""
    if not target_asset_ids:
        raise ValidationError("At least one target is required")
    share, remainder = divmod(100, len(target_asset_ids))
    if share == 0:
        raise ValidationError(f"Cannot split across {len(target_asset_ids)} targets")
    return [
        Allocation(target_asset_id, share + (remainder if index == 0 else 0))
        for index, target_asset_id in enumerate(target_asset_ids)
    ]


@dataclass
class LegFailure:
    """A leg that failed before an order was created."""

    input_asset_id: str
    output_asset_id: str
    amount: Decimal
    error: Exception


class BatchStatus(str, Enum):
    """Aggregate state of a batch."""

    RUNNING = "running"
    COMPLETED = "completed"
    PARTIALLY_FAILED = "partially_failed"
    FAILED = "failed"
    CANCELLED = "cancelled"


@dataclass
class SwapBatch:
    """Orders created by one batch and the trackers watching them."""

    orders: list[SwapOrder] = field(default_factory=list)
    failures: list[LegFailure] = field(default_factory=list)
    trackers: list[OrderLifecycleTracker] = field(default_factory=list)
    cancelled: bool = False

    @property
    def status(self) -> BatchStatus:
        if not self.orders:
            return BatchStatus.FAILED
        if self.cancelled:
            return BatchStatus.CANCELLED

        states = [order.state for order in self.orders]
        if not all(state.is_terminal for state in states):
            return BatchStatus.RUNNING
        if all(state == OrderState.FAILED for state in states):
            return BatchStatus.FAILED
        if all(state == OrderState.CONFIRMED for state in states) and not self.failures:
            return BatchStatus.COMPLETED
        return BatchStatus.PARTIALLY_FAILED

    async def wait(self, timeout: Optional[float] = None) -> BatchStatus:
        """Wait until every tracker is done, then return the aggregate status."""
        waits = asyncio.gather(*(tracker.wait() for tracker in self.trackers))
        if timeout is None:
            await waits
        else:
            await asyncio.wait_for(waits, timeout)
        return self.status

    async def close(self) -> None:
        """Stop all trackers. Orders still in flight are marked cancelled."""
        if any(not order.state.is_terminal for order in self.orders):
            self.cancelled = True
        await asyncio.gather(*(tracker.stop() for tracker in self.trackers))

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()


class BatchSwapCoordinator:
    """Executes bulk and split plans and tracks the resulting orders.

    Usage:
        coordinator = BatchSwapCoordinator(swap_service, payer_id, ledger=mixin_client)
        async with await coordinator.execute_split(plan) as batch:
            status = await batch.wait()
    """

    def __init__(
        self,
        swap_service: SwapService,
        payer_id: str,
        ledger: Optional[LedgerClient] = None,
        referral_id: Optional[str] = None,
        poll_interval: float = DEFAULT_POLL_INTERVAL,
        sleep_func: Optional[Callable[[float], Awaitable[None]]] = None,
    ):
        self.swap_service = swap_service
        self.payer_id = payer_id
        self.ledger = ledger
        self.referral_id = referral_id
        self.poll_interval = poll_interval
        self.sleep_func = sleep_func

    async def execute_bulk(self, plan: BulkSwapPlan) -> SwapBatch:
        plan.validate()
        logger.info(
            f"Executing bulk swap: {len(plan.sources)} sources -> {plan.target_asset_id} "
            f"({plan.percentage}%)"
        )
        return await self._execute(plan.legs())

    async def execute_split(self, plan: SplitSwapPlan) -> SwapBatch:
        plan.validate()
        logger.info(
            f"Executing split swap: {plan.source_amount} {plan.source_asset_id} "
            f"across {len(plan.allocations)} targets"
        )
        return await self._execute(plan.legs())

    async def _execute(self, legs: list[SwapLeg]) -> SwapBatch:
        results = await asyncio.gather(
            *(self._execute_leg(leg) for leg in legs), return_exceptions=True
        )

        batch = SwapBatch()
        for leg, result in zip(legs, results):
            if isinstance(result, Exception):
                logger.error(
                    f"Swap leg {leg.amount} {leg.input_asset_id} -> {leg.output_asset_id} "
                    f"failed: {result}"
                )
                batch.failures.append(
                    LegFailure(leg.input_asset_id, leg.output_asset_id, leg.amount, result)
                )
                continue
            if isinstance(result, BaseException):
                raise result

            batch.orders.append(result)
            tracker = OrderLifecycleTracker(
                result,
                self.swap_service,
                ledger=self.ledger,
                interval=self.poll_interval,
                sleep_func=self.sleep_func,
            )
            batch.trackers.append(tracker)
            tracker.start()

        logger.info(
            f"Batch created {len(batch.orders)} orders, {len(batch.failures)} legs failed"
        )
        return batch

    async def _execute_leg(self, leg: SwapLeg) -> SwapOrder:
        execution = await self.swap_service.execute_swap(
            payer_id=self.payer_id,
            input_asset_id=leg.input_asset_id,
            output_asset_id=leg.output_asset_id,
            amount=leg.amount,
            referral_id=self.referral_id,
        )
        return SwapOrder.from_execution(execution, self.payer_id)
