"""Stock registration: command and handler."""

from protean import handle
from protean.exceptions import ValidationError
from protean.fields import Identifier, Integer, String
from protean.utils.globals import current_domain

from marketplace.domain import marketplace
from marketplace.inventory.stock import StockItem


@marketplace.command(part_of="StockItem")
class RegisterStock:
    """Create the stock record for a product or variant."""

    product_id = Identifier(required=True)
    variant_id = Identifier()
    seller_id = Identifier(required=True)
    name = String(max_length=255)
    quantity = Integer(default=0, min_value=0)
    low_stock_threshold = Integer(min_value=0)
    actor = String(max_length=255)


@marketplace.command_handler(part_of=StockItem)
class RegisterStockHandler:
    @handle(RegisterStock)
    def register_stock(self, command):
        repo = current_domain.repository_for(StockItem)
        if repo.find_for(command.product_id, command.variant_id) is not None:
            raise ValidationError({"product_id": ["Stock is already registered for this product"]})

        item = StockItem.register(
            product_id=command.product_id,
            variant_id=command.variant_id,
            seller_id=command.seller_id,
            name=command.name,
            quantity=command.quantity or 0,
            low_stock_threshold=command.low_stock_threshold,
            actor=command.actor,
        )
        repo.add(item)
        return str(item.id)
