"""Template registry: maps email template names to template classes."""

from marketplace.fanout.templates.low_stock_alert import LowStockAlertTemplate
from marketplace.fanout.templates.order_confirmation import OrderConfirmationTemplate

TEMPLATE_REGISTRY: dict[str, type] = {
    OrderConfirmationTemplate.name: OrderConfirmationTemplate,
    LowStockAlertTemplate.name: LowStockAlertTemplate,
}


def get_template(name: str):
    """Look up a template class by name."""
    template_cls = TEMPLATE_REGISTRY.get(name)
    if template_cls is None:
        raise ValueError(f"No template registered for: {name}")
    return template_cls
