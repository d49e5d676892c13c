"""Swap order lifecycle tracking.

An order is confirmed by whichever of two independent signals arrives first:
- the route service reports the order as ``success``
- the funding payment (by trace ID) shows up on the ledger as spent

Each tracker owns one background polling task. The first poll runs
immediately, later ones every ``interval`` seconds until the order reaches a
terminal state or the tracker is stopped.
"""

import asyncio
import logging
from dataclasses import dataclass
from decimal import Decimal
from enum import Enum
from typing import Any, Awaitable, Callable, Optional, Protocol

from routeswap.errors import ApiError
from routeswap.mixin import STATE_SPENT
from routeswap.services.swap_service import SwapExecution, SwapService

logger = logging.getLogger(__name__)

DEFAULT_POLL_INTERVAL = 5.0


class OrderState(str, Enum):
    """Local lifecycle state of a swap order."""

    CREATED = "created"      # Order created, payment not yet observed
    PENDING = "pending"      # Being tracked
    CONFIRMED = "confirmed"  # Swap settled
    FAILED = "failed"        # Service reported failure

    @property
    def is_terminal(self) -> bool:
        return self in (OrderState.CONFIRMED, OrderState.FAILED)


# Remote order states with a local meaning; anything else is still pending
REMOTE_STATES = {
    "success": OrderState.CONFIRMED,
    "failed": OrderState.FAILED,
}


def map_remote_state(state: Optional[str]) -> OrderState:
    return REMOTE_STATES.get((state or "").lower(), OrderState.PENDING)


@dataclass
class SwapOrder:
    """A created swap order and its local state."""

    order_id: str
    payer_id: str
    input_asset_id: str
    output_asset_id: str
    input_amount: Decimal
    output_amount: Decimal
    payment_trace_id: Optional[str] = None
    payment_uri: Optional[str] = None
    state: OrderState = OrderState.CREATED

    @classmethod
    def from_execution(cls, execution: SwapExecution, payer_id: str) -> "SwapOrder":
        quote = execution.response.quote
        return cls(
            order_id=execution.order_id,
            payer_id=payer_id,
            input_asset_id=quote.input_asset_id,
            output_asset_id=quote.output_asset_id,
            input_amount=quote.input_amount,
            output_amount=quote.output_amount,
            payment_trace_id=execution.trace_id,
            payment_uri=execution.response.tx,
        )


class LedgerClient(Protocol):
    """Anything that can look up a ledger transaction by trace ID."""

    async def fetch_transaction(self, trace_id: str) -> Any:
        ...


StateChangeCallback = Callable[[SwapOrder, OrderState, OrderState], None]


def _ledger_state(transaction: Any) -> Optional[str]:
    if isinstance(transaction, dict):
        return transaction.get("state")
    return getattr(transaction, "state", None)


class OrderLifecycleTracker:
    """Polls one order until it is confirmed or failed.

    Usage:
        tracker = OrderLifecycleTracker(order, swap_service, ledger=mixin_client)
        tracker.start()
        state = await tracker.wait()
    """

    def __init__(
        self,
        order: SwapOrder,
        swap_service: SwapService,
        ledger: Optional[LedgerClient] = None,
        interval: float = DEFAULT_POLL_INTERVAL,
        sleep_func: Optional[Callable[[float], Awaitable[None]]] = None,
        on_change: Optional[StateChangeCallback] = None,
    ):
        self.order = order
        self.swap_service = swap_service
        self.ledger = ledger
        self.interval = interval
        self.on_change = on_change
        self._sleep = sleep_func or asyncio.sleep
        self._task: Optional[asyncio.Task] = None
        self._polling = False
        self._stopped = False
        self._done = asyncio.Event()
        self.polls = 0

        if order.state.is_terminal:
            self._done.set()

    @property
    def state(self) -> OrderState:
        return self.order.state

    @property
    def is_running(self) -> bool:
        return self._task is not None and not self._task.done()

    @property
    def is_stopped(self) -> bool:
        return self._stopped

    def start(self) -> Optional[asyncio.Task]:
        """Start background polling. Calling it again returns the same task."""
        if self._task is not None or self._stopped or self.order.state.is_terminal:
            return self._task

        self._transition(OrderState.PENDING)
        self._task = asyncio.create_task(
            self._run(), name=f"order-tracker-{self.order.order_id}"
        )
        logger.info(f"Tracking order {self.order.order_id} (interval: {self.interval}s)")
        return self._task

    async def _run(self) -> None:
        try:
            while not self._stopped and not self.order.state.is_terminal:
                await self.poll_once()
                if self._stopped or self.order.state.is_terminal:
                    break
                await self._sleep(self.interval)
        finally:
            self._done.set()

    async def poll_once(self) -> OrderState:
        """Check both confirmation signals once.

        Overlapping calls are no-ops: only one poll per order is in flight.
        """
        if self._polling or self._stopped or self.order.state.is_terminal:
            return self.order.state

        self._polling = True
        try:
            self.polls += 1
            remote_state = await self._check_order()
            if remote_state is not None and not self._stopped:
                self._transition(remote_state)

            if (
                not self._stopped
                and not self.order.state.is_terminal
                and self.ledger is not None
                and self.order.payment_trace_id
            ):
                if await self._check_ledger() and not self._stopped:
                    self._transition(OrderState.CONFIRMED)
        finally:
            self._polling = False

        return self.order.state

    async def _check_order(self) -> Optional[OrderState]:
        try:
            view = await self.swap_service.get_order(self.order.order_id)
        except Exception as e:
            logger.error(f"Order status check failed for {self.order.order_id}: {e}")
            return None
        return map_remote_state(view.state)

    async def _check_ledger(self) -> bool:
        trace_id = self.order.payment_trace_id
        try:
            transaction = await self.ledger.fetch_transaction(trace_id)
        except ApiError as e:
            if e.is_not_found:
                logger.debug(f"Payment {trace_id} not on the ledger yet")
            else:
                logger.error(f"Ledger check failed for {trace_id}: {e}")
            return False
        except Exception as e:
            logger.error(f"Ledger check failed for {trace_id}: {e}")
            return False

        return _ledger_state(transaction) == STATE_SPENT

    def _transition(self, new_state: OrderState) -> None:
        old_state = self.order.state
        if old_state == new_state or old_state.is_terminal:
            return

        self.order.state = new_state
        logger.info(f"Order {self.order.order_id}: {old_state.value} -> {new_state.value}")

        if new_state.is_terminal:
            self._done.set()
        if self.on_change is not None:
            self.on_change(self.order, old_state, new_state)

    async def stop(self) -> None:
        """Cancel polling. Results of an in-flight poll are discarded."""
        self._stopped = True
        task = self._task
        if task is not None and not task.done() and task is not asyncio.current_task():
            task.cancel()
            # asyncio.wait leaves a cancellation of the caller propagating
            await asyncio.wait({task})
        self._done.set()

    async def wait(self, timeout: Optional[float] = None) -> OrderState:
        """Wait until the order is terminal or the tracker is stopped."""
        if timeout is None:
            await self._done.wait()
        else:
            await asyncio.wait_for(self._done.wait(), timeout)
        return self.order.state
