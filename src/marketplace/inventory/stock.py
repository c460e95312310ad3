"""StockItem aggregate: sellable stock for one product or product variant.

Every movement appends an InventoryHistory row carrying the signed delta
and a reason tag. History rows are never edited or removed, so the current
quantity always reconciles to the initial quantity plus every delta.

Writes go through the versioned repository save. Two writers that loaded
the same version cannot both persist: the second gets
``ExpectedVersionError`` and must re-read before trying again.
"""

from datetime import UTC, datetime
from enum import Enum

from protean import atomic_change, invariant
from protean.exceptions import ValidationError
from protean.fields import DateTime, HasMany, Identifier, Integer, String

from marketplace.domain import marketplace
from marketplace.inventory.events import LowStockDetected, StockAdjusted, StockRegistered, StockSold


class MovementReason(Enum):
    INITIAL = "Initial"
    SALE = "Sale"
    PURCHASE = "Purchase"
    ADJUSTMENT = "Adjustment"


# ---------------------------------------------------------------------------
# Entities
# ---------------------------------------------------------------------------
@marketplace.entity(part_of="StockItem")
class InventoryHistory:
    """Append-only ledger entry for one stock movement."""

    delta = Integer(required=True)
    reason = String(required=True, choices=MovementReason)
    order_reference = String(max_length=50)
    actor = String(max_length=255)
    note = String(max_length=500)
    recorded_at = DateTime(required=True)


# ---------------------------------------------------------------------------
# Aggregate Root
# ---------------------------------------------------------------------------
@marketplace.aggregate
class StockItem:
    product_id = Identifier(required=True)
    variant_id = Identifier()
    seller_id = Identifier(required=True)
    name = String(max_length=255)
    quantity = Integer(default=0, min_value=0)
    low_stock_threshold = Integer()
    history = HasMany(InventoryHistory)
    created_at = DateTime()
    updated_at = DateTime()

    @invariant.post
    def quantity_reconciles_with_history(self):
        if not self.history:
            return
        if sum(entry.delta for entry in self.history) != self.quantity:
            raise ValidationError({"quantity": ["Stock quantity does not reconcile with its history"]})

    # -------------------------------------------------------------------
    # Factory
    # -------------------------------------------------------------------
    @classmethod
    def register(cls, product_id, seller_id, quantity=0, variant_id=None, name=None, low_stock_threshold=None, actor=None):
        if quantity < 0:
            raise ValidationError({"quantity": ["Initial quantity cannot be negative"]})

        now = datetime.now(UTC)
        item = cls(
            product_id=product_id,
            variant_id=variant_id,
            seller_id=seller_id,
            name=name,
            quantity=0,
            low_stock_threshold=low_stock_threshold,
            created_at=now,
            updated_at=now,
        )
        with atomic_change(item):
            item.quantity = quantity
            item._record(quantity, MovementReason.INITIAL, actor=actor)

        item.raise_(
            StockRegistered(
                stock_item_id=str(item.id),
                product_id=str(product_id),
                variant_id=str(variant_id) if variant_id else None,
                seller_id=str(seller_id),
                quantity=quantity,
                registered_at=now,
            )
        )
        return item

    # -------------------------------------------------------------------
    # Helpers
    # -------------------------------------------------------------------
    def _record(self, delta, reason, order_reference=None, actor=None, note=None):
        self.add_history(
            InventoryHistory(
                delta=delta,
                reason=reason.value,
                order_reference=order_reference,
                actor=actor,
                note=note,
                recorded_at=datetime.now(UTC),
            )
        )
        self.updated_at = datetime.now(UTC)

    def threshold(self, default):
        return self.low_stock_threshold if self.low_stock_threshold is not None else default

    def is_low(self, default_threshold) -> bool:
        return self.quantity <= self.threshold(default_threshold)

    def has_sale_for(self, order_reference) -> bool:
        """True if this order has already taken stock from this item."""
        return any(
            entry.reason == MovementReason.SALE.value and entry.order_reference == order_reference
            for entry in self.history
        )

    def _check_low_stock(self, default_threshold):
        if self.is_low(default_threshold):
            self.raise_(
                LowStockDetected(
                    stock_item_id=str(self.id),
                    product_id=str(self.product_id),
                    variant_id=str(self.variant_id) if self.variant_id else None,
                    current_quantity=self.quantity,
                    threshold=self.threshold(default_threshold),
                    detected_at=datetime.now(UTC),
                )
            )

    # -------------------------------------------------------------------
    # Movements
    # -------------------------------------------------------------------
    def sell(self, quantity, order_reference, default_threshold=5):
        """Take stock for a paid order."""
        if quantity <= 0:
            raise ValidationError({"quantity": ["Quantity must be positive"]})
        if self.quantity < quantity:
            raise ValidationError({"quantity": ["Insufficient inventory"]})

        previous = self.quantity
        with atomic_change(self):
            self.quantity = previous - quantity
            self._record(-quantity, MovementReason.SALE, order_reference=order_reference)

        self.raise_(
            StockSold(
                stock_item_id=str(self.id),
                product_id=str(self.product_id),
                quantity=quantity,
                previous_quantity=previous,
                new_quantity=self.quantity,
                order_reference=order_reference,
                sold_at=datetime.now(UTC),
            )
        )
        self._check_low_stock(default_threshold)

    def adjust(self, new_quantity, actor=None, note=None, default_threshold=5):
        """Set stock to a counted quantity.

        The movement is tagged PURCHASE when stock goes up and ADJUSTMENT
        otherwise. Returns the signed delta.
        """
        if new_quantity < 0:
            raise ValidationError({"quantity": ["Quantity cannot be negative"]})

        previous = self.quantity
        delta = new_quantity - previous
        reason = MovementReason.PURCHASE if delta > 0 else MovementReason.ADJUSTMENT

        with atomic_change(self):
            self.quantity = new_quantity
            self._record(delta, reason, actor=actor, note=note)

        self.raise_(
            StockAdjusted(
                stock_item_id=str(self.id),
                product_id=str(self.product_id),
                reason=reason.value,
                delta=delta,
                previous_quantity=previous,
                new_quantity=new_quantity,
                actor=actor,
                adjusted_at=datetime.now(UTC),
            )
        )
        self._check_low_stock(default_threshold)
        return delta

    def restock(self, quantity, actor=None, note=None, default_threshold=5):
        """Receive new stock."""
        if quantity <= 0:
            raise ValidationError({"quantity": ["Quantity must be positive"]})
        return self.adjust(self.quantity + quantity, actor=actor, note=note, default_threshold=default_threshold)
