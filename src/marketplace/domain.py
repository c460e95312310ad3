"""Marketplace bounded context: multi-vendor checkout-to-fulfillment pipeline.

Owns the shopping cart, coupons, the checkout orchestration that turns a
multi-seller cart into a pending order, payment webhook processing, the
inventory ledger, and the event fan-out that keeps vendor dashboards current.
"""

import structlog
from protean.domain import Domain

marketplace = Domain(name="marketplace")

logger = structlog.get_logger(__name__)
