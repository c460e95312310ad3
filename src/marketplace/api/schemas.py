"""Pydantic request/response schemas for the marketplace API.

These are external contracts, kept separate from the Protean commands
they are translated into.
"""

from pydantic import BaseModel, Field


# ---------------------------------------------------------------------------
# Cart
# ---------------------------------------------------------------------------
class CreateCartRequest(BaseModel):
    customer_id: str | None = None
    session_id: str | None = None

    model_config = {
        "json_schema_extra": {
            "examples": [
                {
                    "customer_id": None,
                    "session_id": "sess-7f3a",
                }
            ]
        }
    }


class AddToCartRequest(BaseModel):
    product_id: str
    variant_id: str | None = None
    quantity: int = Field(ge=1, default=1)


class UpdateCartQuantityRequest(BaseModel):
    new_quantity: int = Field(ge=1)


class ApplyCouponRequest(BaseModel):
    coupon_code: str


class AssignCartRequest(BaseModel):
    session_id: str
    customer_id: str


class CartIdResponse(BaseModel):
    cart_id: str


class LineIdResponse(BaseModel):
    line_id: str


class StatusResponse(BaseModel):
    status: str = "ok"


# ---------------------------------------------------------------------------
# Checkout
# ---------------------------------------------------------------------------
class CheckoutRequest(BaseModel):
    success_url: str
    cancel_url: str

    model_config = {
        "json_schema_extra": {
            "examples": [
                {
                    "success_url": "https://shop.example.com/checkout/success",
                    "cancel_url": "https://shop.example.com/cart",
                }
            ]
        }
    }


class CheckoutSessionResponse(BaseModel):
    session_id: str
    order_reference: str
    url: str | None = None


class CheckoutStatusResponse(BaseModel):
    status: str | None = None
    payment_status: str | None = None
    order_reference: str
    order_status: str
    order_payment_status: str


class WebhookResponse(BaseModel):
    received: bool = True


# ---------------------------------------------------------------------------
# Inventory
# ---------------------------------------------------------------------------
class RegisterStockRequest(BaseModel):
    product_id: str
    variant_id: str | None = None
    seller_id: str
    name: str | None = None
    quantity: int = Field(ge=0, default=0)
    low_stock_threshold: int | None = Field(ge=0, default=None)


class AdjustStockRequest(BaseModel):
    quantity: int = Field(ge=0)
    variant_id: str | None = None
    reason: str | None = None


class StockItemIdResponse(BaseModel):
    stock_item_id: str


class StockLevelResponse(BaseModel):
    product_id: str
    variant_id: str | None = None
    quantity: int
    low_stock_threshold: int
