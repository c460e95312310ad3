"""Inventory ledger: stock movements with history and low-stock detection.

``decrement`` takes stock for the lines of a paid order. Each line is
independent: a shortfall on one line is reported and the rest carry on,
since other sellers' items in the same order are unaffected.

The read-compare-write is guarded by the aggregate version. When another
writer got there first the save raises ``ExpectedVersionError``; the line
is then re-read and re-compared, up to ``MAX_WRITE_ATTEMPTS`` times. A
line whose order already has a SALE row on the stock item is skipped, so
replaying the same order never takes stock twice.

Every successful movement emits ``InventoryUpdated`` and, when stock is at
or below its threshold, ``InventoryLow`` to the injected publisher.
"""

from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum

import structlog
from protean.exceptions import ExpectedVersionError, ObjectNotFoundError

from marketplace.config import Settings, get_settings
from marketplace.fanout.events import FanoutEvent, InventoryLow, InventoryUpdated
from marketplace.inventory.stock import MovementReason, StockItem

logger = structlog.get_logger(__name__)

MAX_WRITE_ATTEMPTS = 3


class DecrementOutcome(Enum):
    DECREMENTED = "decremented"
    ALREADY_APPLIED = "already_applied"
    INSUFFICIENT_STOCK = "insufficient_stock"
    NOT_FOUND = "not_found"
    CONFLICT = "conflict"


@dataclass(frozen=True)
class StockRequest:
    """One order line to take from stock."""

    product_id: str
    quantity: int
    order_reference: str
    variant_id: str | None = None


@dataclass(frozen=True)
class DecrementResult:
    product_id: str
    outcome: DecrementOutcome
    variant_id: str | None = None
    message: str | None = None

    @property
    def success(self) -> bool:
        return self.outcome in (DecrementOutcome.DECREMENTED, DecrementOutcome.ALREADY_APPLIED)


class InventoryLedger:
    def __init__(
        self,
        domain,
        publish: Callable[[FanoutEvent], None] | None = None,
        settings: Settings | None = None,
    ) -> None:
        self._domain = domain
        self._publish = publish
        self._settings = settings or get_settings()

    @property
    def default_threshold(self) -> int:
        return self._settings.low_stock_threshold

    @property
    def _repository(self):
        return self._domain.repository_for(StockItem)

    def _load(self, product_id, variant_id=None) -> StockItem | None:
        return self._repository.find_for(product_id, variant_id)

    # -------------------------------------------------------------------
    # Order-driven decrement
    # -------------------------------------------------------------------
    def decrement(self, items: list[StockRequest]) -> list[DecrementResult]:
        return [self._decrement_line(item) for item in items]

    def _decrement_line(self, item: StockRequest) -> DecrementResult:
        log = logger.bind(
            product_id=str(item.product_id),
            variant_id=item.variant_id,
            order_reference=item.order_reference,
            quantity=item.quantity,
        )

        for attempt in range(1, MAX_WRITE_ATTEMPTS + 1):
            stock = self._load(item.product_id, item.variant_id)
            if stock is None:
                message = "Variant not found" if item.variant_id else "Product not found"
                log.error("Stock record not found for paid line", message=message)
                return DecrementResult(item.product_id, DecrementOutcome.NOT_FOUND, item.variant_id, message)

            if stock.has_sale_for(item.order_reference):
                log.warning("Stock already taken for this order, skipping")
                return DecrementResult(item.product_id, DecrementOutcome.ALREADY_APPLIED, item.variant_id)

            if stock.quantity < item.quantity:
                log.error("Insufficient inventory for paid line", available=stock.quantity)
                return DecrementResult(
                    item.product_id,
                    DecrementOutcome.INSUFFICIENT_STOCK,
                    item.variant_id,
                    "Insufficient inventory",
                )

            previous = stock.quantity
            stock.sell(item.quantity, item.order_reference, default_threshold=self._settings.low_stock_threshold)
            try:
                self._repository.add(stock)
            except ExpectedVersionError:
                log.warning("Stock changed concurrently, re-reading", attempt=attempt)
                continue

            log.info("Stock decremented", previous_quantity=previous, new_quantity=stock.quantity)
            self._announce(stock, previous, MovementReason.SALE, order_reference=item.order_reference)
            return DecrementResult(item.product_id, DecrementOutcome.DECREMENTED, item.variant_id)

        log.error("Gave up decrementing stock after repeated conflicts", attempts=MAX_WRITE_ATTEMPTS)
        return DecrementResult(
            item.product_id,
            DecrementOutcome.CONFLICT,
            item.variant_id,
            "Inventory changed concurrently",
        )

    # -------------------------------------------------------------------
    # Administrative movements
    # -------------------------------------------------------------------
    def adjust(self, product_id, new_quantity, reason=None, actor=None, variant_id=None) -> StockItem:
        """Set stock to a counted quantity, keeping the free-text reason on the history row."""
        return self._apply(
            product_id,
            variant_id,
            lambda stock: stock.adjust(
                new_quantity,
                actor=actor,
                note=reason,
                default_threshold=self._settings.low_stock_threshold,
            ),
        )

    def restock(self, product_id, quantity, actor=None, variant_id=None, note=None) -> StockItem:
        """Add received stock."""
        return self._apply(
            product_id,
            variant_id,
            lambda stock: stock.restock(
                quantity,
                actor=actor,
                note=note,
                default_threshold=self._settings.low_stock_threshold,
            ),
        )

    def _apply(self, product_id, variant_id, change) -> StockItem:
        for attempt in range(1, MAX_WRITE_ATTEMPTS + 1):
            stock = self._load(product_id, variant_id)
            if stock is None:
                raise ObjectNotFoundError(f"No stock registered for product {product_id}")

            previous = stock.quantity
            delta = change(stock)
            try:
                self._repository.add(stock)
            except ExpectedVersionError:
                logger.warning("Stock changed concurrently, re-reading", product_id=str(product_id), attempt=attempt)
                continue

            reason = MovementReason.PURCHASE if delta > 0 else MovementReason.ADJUSTMENT
            logger.info(
                "Stock adjusted",
                product_id=str(product_id),
                variant_id=variant_id,
                reason=reason.value,
                previous_quantity=previous,
                new_quantity=stock.quantity,
            )
            self._announce(stock, previous, reason)
            return stock

        raise ExpectedVersionError(f"Stock for product {product_id} kept changing; giving up")

    # -------------------------------------------------------------------
    # Fan-out
    # -------------------------------------------------------------------
    def _announce(self, stock: StockItem, previous: int, reason: MovementReason, order_reference=None) -> None:
        if self._publish is None:
            return

        variant_id = str(stock.variant_id) if stock.variant_id else None
        self._publish(
            InventoryUpdated(
                seller_id=str(stock.seller_id),
                product_id=str(stock.product_id),
                variant_id=variant_id,
                quantity=stock.quantity,
                previous_quantity=previous,
                reason=reason.value,
                order_reference=order_reference,
            )
        )

        threshold = stock.threshold(self._settings.low_stock_threshold)
        if stock.quantity <= threshold:
            self._publish(
                InventoryLow(
                    seller_id=str(stock.seller_id),
                    product_id=str(stock.product_id),
                    variant_id=variant_id,
                    product_name=stock.name or str(stock.product_id),
                    quantity=stock.quantity,
                    threshold=threshold,
                )
            )
