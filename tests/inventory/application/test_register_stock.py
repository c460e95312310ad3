"""Application tests for the RegisterStock command."""

import pytest
from protean import current_domain
from protean.exceptions import ValidationError

from marketplace.inventory.registration import RegisterStock
from marketplace.inventory.stock import StockItem


class TestRegisterStock:
    def test_register(self):
        stock_id = current_domain.process(
            RegisterStock(product_id="prod-001", seller_id="seller-a", name="Teapot", quantity=8),
            asynchronous=False,
        )
        stock = current_domain.repository_for(StockItem).get(stock_id)
        assert stock.quantity == 8
        assert stock.low_stock_threshold is None

    def test_variants_are_tracked_separately(self):
        current_domain.process(
            RegisterStock(product_id="prod-001", variant_id="var-red", seller_id="seller-a", quantity=3),
            asynchronous=False,
        )
        current_domain.process(
            RegisterStock(product_id="prod-001", variant_id="var-blue", seller_id="seller-a", quantity=5),
            asynchronous=False,
        )

        repo = current_domain.repository_for(StockItem)
        assert repo.find_for("prod-001", "var-red").quantity == 3
        assert repo.find_for("prod-001", "var-blue").quantity == 5
        assert repo.find_for("prod-001", "var-green") is None

    def test_duplicate_registration_is_rejected(self):
        current_domain.process(RegisterStock(product_id="prod-001", seller_id="seller-a", quantity=1), asynchronous=False)
        with pytest.raises(ValidationError):
            current_domain.process(
                RegisterStock(product_id="prod-001", seller_id="seller-a", quantity=1),
                asynchronous=False,
            )
