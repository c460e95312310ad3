"""Repository for the StockItem aggregate."""

from marketplace.domain import marketplace
from marketplace.inventory.stock import StockItem


@marketplace.repository(part_of=StockItem)
class StockItemRepository:
    def find_for(self, product_id, variant_id=None) -> StockItem | None:
        """Stock record for a product, or for one of its variants."""
        items = self._dao.query.filter(product_id=str(product_id)).all().items
        wanted = str(variant_id) if variant_id else None
        for item in items:
            if (str(item.variant_id) if item.variant_id else None) == wanted:
                return item
        return None
