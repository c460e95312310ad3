"""Domain events for the StockItem aggregate."""

from protean.fields import DateTime, Identifier, Integer, String

from marketplace.domain import marketplace


@marketplace.event(part_of="StockItem")
class StockRegistered:
    __version__ = 1

    stock_item_id = Identifier(required=True)
    product_id = Identifier(required=True)
    variant_id = Identifier()
    seller_id = Identifier(required=True)
    quantity = Integer(required=True)
    registered_at = DateTime(required=True)


@marketplace.event(part_of="StockItem")
class StockSold:
    """Stock was taken for a paid order."""

    __version__ = 1

    stock_item_id = Identifier(required=True)
    product_id = Identifier(required=True)
    quantity = Integer(required=True)
    previous_quantity = Integer(required=True)
    new_quantity = Integer(required=True)
    order_reference = String(required=True)
    sold_at = DateTime(required=True)


@marketplace.event(part_of="StockItem")
class StockAdjusted:
    """Stock was set by hand or replenished."""

    __version__ = 1

    stock_item_id = Identifier(required=True)
    product_id = Identifier(required=True)
    reason = String(required=True)
    delta = Integer(required=True)
    previous_quantity = Integer(required=True)
    new_quantity = Integer(required=True)
    actor = String()
    adjusted_at = DateTime(required=True)


@marketplace.event(part_of="StockItem")
class LowStockDetected:
    """Stock fell to or below its low-stock threshold."""

    __version__ = 1

    stock_item_id = Identifier(required=True)
    product_id = Identifier(required=True)
    variant_id = Identifier()
    current_quantity = Integer(required=True)
    threshold = Integer(required=True)
    detected_at = DateTime(required=True)
