"""Tests for the StockItem aggregate and its append-only history."""

import pytest
from protean.exceptions import ValidationError

from marketplace.inventory.events import LowStockDetected, StockAdjusted, StockSold
from marketplace.inventory.stock import MovementReason, StockItem


def _stock(quantity=10, threshold=None):
    return StockItem.register(
        product_id="prod-001",
        seller_id="seller-a",
        name="Teapot",
        quantity=quantity,
        low_stock_threshold=threshold,
    )


def _reasons(stock):
    return [entry.reason for entry in stock.history]


class TestRegistration:
    def test_initial_history_row(self):
        stock = _stock(12)
        assert stock.quantity == 12
        assert _reasons(stock) == [MovementReason.INITIAL.value]
        assert stock.history[0].delta == 12

    def test_negative_initial_quantity_is_rejected(self):
        with pytest.raises(ValidationError):
            _stock(-1)


class TestSale:
    def test_sell_records_order_reference(self):
        stock = _stock(10)
        stock.sell(3, "order_abc")

        assert stock.quantity == 7
        sale = stock.history[-1]
        assert sale.delta == -3
        assert sale.reason == MovementReason.SALE.value
        assert sale.order_reference == "order_abc"
        assert stock.has_sale_for("order_abc")
        assert not stock.has_sale_for("order_xyz")
        assert any(isinstance(event, StockSold) for event in stock._events)

    def test_cannot_oversell(self):
        stock = _stock(2)
        with pytest.raises(ValidationError) as exc:
            stock.sell(3, "order_abc")
        assert "quantity" in exc.value.messages
        assert stock.quantity == 2

    def test_low_stock_detected_at_threshold(self):
        stock = _stock(6)
        stock.sell(1, "order_abc", default_threshold=5)
        assert isinstance(stock._events[-1], LowStockDetected)

    def test_item_threshold_overrides_default(self):
        stock = _stock(10, threshold=8)
        stock.sell(2, "order_abc", default_threshold=5)
        assert stock.is_low(5)
        assert stock.threshold(5) == 8


class TestAdjustment:
    def test_increase_is_tagged_purchase(self):
        stock = _stock(10)
        delta = stock.adjust(15, actor="admin-1", note="Delivery received")
        assert delta == 5
        assert stock.history[-1].reason == MovementReason.PURCHASE.value
        assert stock.history[-1].note == "Delivery received"
        assert any(isinstance(event, StockAdjusted) for event in stock._events)

    def test_decrease_is_tagged_adjustment(self):
        stock = _stock(10)
        assert stock.adjust(7, note="Damaged in storage") == -3
        assert stock.history[-1].reason == MovementReason.ADJUSTMENT.value

    def test_restock_adds_quantity(self):
        stock = _stock(4)
        stock.restock(6)
        assert stock.quantity == 10
        assert stock.history[-1].reason == MovementReason.PURCHASE.value

    def test_history_reconciles_with_quantity(self):
        stock = _stock(10)
        stock.sell(4, "order_1")
        stock.adjust(20)
        stock.sell(1, "order_2")
        assert sum(entry.delta for entry in stock.history) == stock.quantity == 19

    def test_quantity_cannot_drift_from_history(self):
        stock = _stock(10)
        with pytest.raises(ValidationError):
            stock.quantity = 11
