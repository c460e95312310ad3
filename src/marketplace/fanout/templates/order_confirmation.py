"""Order confirmation: sent to the customer once payment is confirmed."""


class OrderConfirmationTemplate:
    name = "order-confirmation"

    @staticmethod
    def render(context: dict) -> dict:
        reference = context.get("order_reference", "N/A")
        total = context.get("total", 0.0)
        currency = str(context.get("currency", "usd")).upper()
        lines = "\n".join(
            f"  {item['quantity']} x {item['name']} ({currency} {item['line_total']:.2f})"
            for item in context.get("items", [])
        )
        return {
            "subject": f"Order {reference} confirmed",
            "body": (
                f"Thank you for your order {reference}.\n\n"
                f"{lines}\n\n"
                f"Order Total: {currency} {total:.2f}\n\n"
                "Each seller will let you know when your items ship."
            ),
        }
