# lotledger/services/ledger/lot_tracker.py
"""
FIFO lot tracker.

Replays a chronological stream of transactions whose prices are already in
the target currency:

    BUY  -> append a new Lot at the back of the queue
    SELL -> consume lots from the front (oldest first):
                matched   = min(to_sell, lot.remaining_quantity)
                realized += matched × (sell_price − lot.unit_cost_in_target)

Example:
    BUY 10 @ 1, BUY 10 @ 2, SELL 15 @ 3
    -> first lot fully consumed:   10 × (3 − 1) = 20
    -> second lot partly consumed:  5 × (3 − 2) =  5
    -> remaining: one lot of 5 @ 2, realized P&L 25

Oversell:
    A SELL larger than everything held stops matching once the queue is
    empty. The unmatched excess contributes nothing to realized P&L, no
    negative lot is created, and an Oversold warning is emitted.

Lots are immutable. A partial match replaces the front lot with a smaller
copy; the queue itself belongs to one tracker instance and one replay.
"""

import logging
from collections import deque
from dataclasses import replace
from datetime import date
from decimal import Decimal
from enum import Enum
from typing import Iterable

from lotledger.services.exceptions import MalformedTransactionError, ValidationError
from lotledger.services.ledger.types import (
    ZERO,
    Lot,
    LotReplayResult,
    NormalizedPrice,
    Oversold,
    Transaction,
    TransactionKind,
)

logger = logging.getLogger(__name__)


# =============================================================================
# VALIDATION
# =============================================================================

def validate_transaction(txn: Transaction) -> None:
    """
    Check that a transaction can be replayed.

    Raises:
        MalformedTransactionError: Naming the transaction and the problem
    """
    if not isinstance(txn.kind, TransactionKind):
        raise MalformedTransactionError(txn.id, f"unknown transaction kind {txn.kind!r}", field="kind")

    if not isinstance(txn.date, date):
        raise MalformedTransactionError(txn.id, f"invalid date {txn.date!r}", field="date")

    if not isinstance(txn.quantity, Decimal) or not txn.quantity.is_finite():
        raise MalformedTransactionError(txn.id, f"quantity is not a finite number: {txn.quantity}", field="quantity")
    if txn.quantity <= 0:
        raise MalformedTransactionError(txn.id, f"quantity must be positive, got {txn.quantity}", field="quantity")

    if not isinstance(txn.price, Decimal) or not txn.price.is_finite():
        raise MalformedTransactionError(txn.id, f"price is not a finite number: {txn.price}", field="price")
    if txn.price < 0:
        raise MalformedTransactionError(txn.id, f"price cannot be negative, got {txn.price}", field="price")

    if not isinstance(txn.currency, str) or not txn.currency:
        raise MalformedTransactionError(txn.id, "missing currency", field="currency")


def sort_chronologically(transactions: Iterable[Transaction]) -> list[Transaction]:
    """
    Order transactions by date.

    The sort is stable: transactions on the same date keep their input order,
    so a same-day BUY listed before a SELL is available to that SELL.
    """
    return sorted(transactions, key=lambda txn: txn.date)


# =============================================================================
# FIFO LOT TRACKER
# =============================================================================

class ReplayState(str, Enum):
    """Lifecycle of one tracker."""
    IDLE = "idle"
    REPLAYING = "replaying"
    DONE = "done"


class FIFOLotTracker:
    """
    Single-use FIFO replay engine.

    One instance replays one transaction history. Calling replay() a second
    time raises RuntimeError; create a new tracker instead.

    Usage:
        tracker = FIFOLotTracker(asset_id="BBCA")
        result = tracker.replay([(txn, normalized_price), ...])
        result.lots          # remaining lots, oldest first
        result.realized_pnl  # in target currency
    """

    def __init__(self, asset_id: str | None = None) -> None:
        self.asset_id = asset_id
        self._state = ReplayState.IDLE
        self._lots: deque[Lot] = deque()
        self._realized_pnl = ZERO
        self._warnings: list[Oversold] = []

    @property
    def state(self) -> ReplayState:
        return self._state

    def replay(
            self,
            entries: Iterable[tuple[Transaction, NormalizedPrice | Decimal]],
    ) -> LotReplayResult:
        """
        Replay transactions in order.

        Args:
            entries: (transaction, price in target currency) pairs sorted by
                     date ascending

        Returns:
            LotReplayResult with remaining lots, realized P&L and warnings

        Raises:
            RuntimeError: If this tracker was already used
            MalformedTransactionError: On a transaction that fails validation
            ValidationError: If the entries are not in chronological order
        """
        if self._state != ReplayState.IDLE:
            raise RuntimeError(f"FIFOLotTracker cannot be reused (state: {self._state.value})")
        self._state = ReplayState.REPLAYING

        last_date: date | None = None
        for txn, price in entries:
            validate_transaction(txn)
            if last_date is not None and txn.date < last_date:
                raise ValidationError(
                    f"Transaction {txn.id!r} on {txn.date} is out of chronological order",
                    field="date",
                )
            last_date = txn.date

            unit_price = price.price if isinstance(price, NormalizedPrice) else price
            if txn.kind == TransactionKind.BUY:
                self._buy(txn, unit_price)
            else:
                self._sell(txn, unit_price)

        self._state = ReplayState.DONE
        return LotReplayResult(
            lots=tuple(self._lots),
            realized_pnl=self._realized_pnl,
            warnings=tuple(self._warnings),
        )

    def _buy(self, txn: Transaction, unit_cost: Decimal) -> None:
        self._lots.append(
            Lot(
                remaining_quantity=txn.quantity,
                unit_cost_in_target=unit_cost,
                origin_date=txn.date,
                transaction_id=txn.id,
            )
        )

    def _sell(self, txn: Transaction, sell_price: Decimal) -> None:
        to_sell = txn.quantity

        while to_sell > 0 and self._lots:
            lot = self._lots[0]
            matched = min(to_sell, lot.remaining_quantity)

            self._realized_pnl += matched * (sell_price - lot.unit_cost_in_target)
            to_sell -= matched

            remaining = lot.remaining_quantity - matched
            if remaining > 0:
                self._lots[0] = replace(lot, remaining_quantity=remaining)
            else:
                self._lots.popleft()

        if to_sell > 0:
            warning = Oversold(
                asset_id=self.asset_id or txn.asset_id,
                transaction_id=txn.id,
                sell_date=txn.date,
                excess_quantity=to_sell,
            )
            logger.warning(warning.message)
            self._warnings.append(warning)
