"""FastAPI routes for the marketplace: carts, checkout, webhook, inventory."""

from fastapi import APIRouter, Depends, Header, Request
from protean.exceptions import ObjectNotFoundError
from protean.utils.globals import current_domain

from marketplace.api.dependencies import (
    get_actor,
    get_ledger,
    get_orchestrator,
    get_validator,
    get_webhook_processor,
)
from marketplace.api.schemas import (
    AddToCartRequest,
    AdjustStockRequest,
    ApplyCouponRequest,
    AssignCartRequest,
    CartIdResponse,
    CheckoutRequest,
    CheckoutSessionResponse,
    CheckoutStatusResponse,
    CreateCartRequest,
    LineIdResponse,
    RegisterStockRequest,
    StatusResponse,
    StockItemIdResponse,
    StockLevelResponse,
    UpdateCartQuantityRequest,
    WebhookResponse,
)
from marketplace.cart.cart import ShoppingCart
from marketplace.cart.coupons import ApplyCouponToCart, RemoveCouponFromCart
from marketplace.cart.items import AddToCart, RemoveFromCart, UpdateCartQuantity
from marketplace.cart.management import AssignCartToCustomer, ClearCart, CreateCart
from marketplace.checkout.orchestrator import Actor, CheckoutOrchestrator
from marketplace.checkout.validation import CartValidator
from marketplace.errors import CartNotFound
from marketplace.inventory.ledger import InventoryLedger
from marketplace.inventory.registration import RegisterStock
from marketplace.payments.webhook import PaymentWebhookProcessor

# ---------------------------------------------------------------------------
# Cart Router
# ---------------------------------------------------------------------------
cart_router = APIRouter(prefix="/carts", tags=["carts"])


@cart_router.post("", status_code=201, response_model=CartIdResponse)
async def create_cart(body: CreateCartRequest) -> CartIdResponse:
    command = CreateCart(
        customer_id=body.customer_id,
        session_id=body.session_id,
    )
    result = current_domain.process(command, asynchronous=False)
    return CartIdResponse(cart_id=result)


@cart_router.post("/assign", response_model=CartIdResponse)
async def assign_cart(body: AssignCartRequest) -> CartIdResponse:
    command = AssignCartToCustomer(
        session_id=body.session_id,
        customer_id=body.customer_id,
    )
    result = current_domain.process(command, asynchronous=False)
    return CartIdResponse(cart_id=result)


@cart_router.post("/{cart_id}/items", status_code=201, response_model=LineIdResponse)
async def add_cart_item(cart_id: str, body: AddToCartRequest) -> LineIdResponse:
    command = AddToCart(
        cart_id=cart_id,
        product_id=body.product_id,
        variant_id=body.variant_id,
        quantity=body.quantity,
    )
    result = current_domain.process(command, asynchronous=False)
    return LineIdResponse(line_id=result)


@cart_router.put("/{cart_id}/items/{line_id}", response_model=StatusResponse)
async def update_cart_item_quantity(cart_id: str, line_id: str, body: UpdateCartQuantityRequest) -> StatusResponse:
    command = UpdateCartQuantity(
        cart_id=cart_id,
        line_id=line_id,
        new_quantity=body.new_quantity,
    )
    current_domain.process(command, asynchronous=False)
    return StatusResponse()


@cart_router.delete("/{cart_id}/items/{line_id}", response_model=StatusResponse)
async def remove_cart_item(cart_id: str, line_id: str) -> StatusResponse:
    current_domain.process(RemoveFromCart(cart_id=cart_id, line_id=line_id), asynchronous=False)
    return StatusResponse()


@cart_router.delete("/{cart_id}/items", response_model=StatusResponse)
async def clear_cart(cart_id: str) -> StatusResponse:
    current_domain.process(ClearCart(cart_id=cart_id), asynchronous=False)
    return StatusResponse()


@cart_router.post("/{cart_id}/coupon", response_model=StatusResponse)
async def apply_cart_coupon(cart_id: str, body: ApplyCouponRequest) -> StatusResponse:
    command = ApplyCouponToCart(
        cart_id=cart_id,
        coupon_code=body.coupon_code,
    )
    current_domain.process(command, asynchronous=False)
    return StatusResponse()


@cart_router.delete("/{cart_id}/coupon", response_model=StatusResponse)
async def remove_cart_coupon(cart_id: str) -> StatusResponse:
    current_domain.process(RemoveCouponFromCart(cart_id=cart_id), asynchronous=False)
    return StatusResponse()


@cart_router.post("/{cart_id}/validate")
async def validate_cart(cart_id: str, validator: CartValidator = Depends(get_validator)) -> dict:
    """Re-check availability and coupon terms without side effects."""
    try:
        cart = current_domain.repository_for(ShoppingCart).get(cart_id)
    except ObjectNotFoundError as exc:
        raise CartNotFound(f"Cart {cart_id} not found") from exc

    result = validator.validate(cart)
    return {
        **result.to_dict(),
        "items": [validator.check_line(line).to_dict() for line in cart.lines],
    }


# ---------------------------------------------------------------------------
# Checkout Router
# ---------------------------------------------------------------------------
checkout_router = APIRouter(prefix="/checkout", tags=["checkout"])


@checkout_router.post("/webhook", response_model=WebhookResponse)
async def payment_webhook(
    request: Request,
    stripe_signature: str = Header(default=""),
    processor: PaymentWebhookProcessor = Depends(get_webhook_processor),
) -> WebhookResponse:
    """Receive a signed gateway event.

    The signature is verified against the raw body exactly as received.
    Verified events answer 200 whether they were applied, were duplicates,
    or were dropped as unprocessable.
    """
    payload = await request.body()
    processor.handle_payload(payload, stripe_signature)
    return WebhookResponse()


@checkout_router.get("/status/{session_id}", response_model=CheckoutStatusResponse)
async def checkout_status(
    session_id: str,
    actor: Actor = Depends(get_actor),
    orchestrator: CheckoutOrchestrator = Depends(get_orchestrator),
) -> CheckoutStatusResponse:
    status = orchestrator.get_status(session_id, actor)
    return CheckoutStatusResponse(
        status=status.status,
        payment_status=status.payment_status,
        order_reference=status.order_reference,
        order_status=status.order_status,
        order_payment_status=status.order_payment_status,
    )


@checkout_router.post("/{cart_id}", status_code=201, response_model=CheckoutSessionResponse)
async def create_checkout_session(
    cart_id: str,
    body: CheckoutRequest,
    actor: Actor = Depends(get_actor),
    orchestrator: CheckoutOrchestrator = Depends(get_orchestrator),
) -> CheckoutSessionResponse:
    created = orchestrator.create_checkout_session(cart_id, body.success_url, body.cancel_url, actor)
    return CheckoutSessionResponse(
        session_id=created.session_id,
        order_reference=created.order_reference,
        url=created.url,
    )


# ---------------------------------------------------------------------------
# Inventory Router
# ---------------------------------------------------------------------------
inventory_router = APIRouter(prefix="/inventory", tags=["inventory"])


@inventory_router.post("", status_code=201, response_model=StockItemIdResponse)
async def register_stock(body: RegisterStockRequest, actor: Actor = Depends(get_actor)) -> StockItemIdResponse:
    command = RegisterStock(
        product_id=body.product_id,
        variant_id=body.variant_id,
        seller_id=body.seller_id,
        name=body.name,
        quantity=body.quantity,
        low_stock_threshold=body.low_stock_threshold,
        actor=actor.customer_id,
    )
    result = current_domain.process(command, asynchronous=False)
    return StockItemIdResponse(stock_item_id=result)


@inventory_router.put("/{product_id}", response_model=StockLevelResponse)
async def adjust_stock(
    product_id: str,
    body: AdjustStockRequest,
    actor: Actor = Depends(get_actor),
    ledger: InventoryLedger = Depends(get_ledger),
) -> StockLevelResponse:
    stock = ledger.adjust(
        product_id,
        body.quantity,
        reason=body.reason,
        actor=actor.customer_id,
        variant_id=body.variant_id,
    )
    return StockLevelResponse(
        product_id=str(stock.product_id),
        variant_id=str(stock.variant_id) if stock.variant_id else None,
        quantity=stock.quantity,
        low_stock_threshold=stock.threshold(ledger.default_threshold),
    )
