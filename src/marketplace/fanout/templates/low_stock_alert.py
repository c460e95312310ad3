"""Low stock alert: sent to the seller's contact address."""


class LowStockAlertTemplate:
    name = "low-inventory-alert"

    @staticmethod
    def render(context: dict) -> dict:
        product_name = context.get("product_name", "N/A")
        return {
            "subject": f"Low Inventory Alert: {product_name}",
            "body": (
                f"Hello {context.get('store_name') or 'there'},\n\n"
                f"{product_name} is running low.\n\n"
                f"Current Stock: {context.get('current_stock', 0)}\n"
                f"Threshold: {context.get('threshold', 0)}\n\n"
                f"Restock it from your dashboard: {context.get('dashboard_url', '')}"
            ),
        }
