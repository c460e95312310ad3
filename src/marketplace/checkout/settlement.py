"""Splitting one payment between the sellers of a checkout.

Each seller's gross share is proportional to their part of the cart
subtotal, so a cart-level discount is borne pro rata. The platform fee is
split the same way. Work is done in minor units; the last seller absorbs
rounding so the shares always add up to the charged total and the fee.
"""

from dataclasses import dataclass

from marketplace.shared.money import round_money, to_minor_units


@dataclass(frozen=True)
class SellerGroup:
    """The cart lines belonging to one seller."""

    seller_id: str
    lines: tuple
    total: float

    @property
    def item_count(self) -> int:
        return len(self.lines)


@dataclass(frozen=True)
class SellerShare:
    seller_id: str
    destination: str
    gross_amount: int
    fee_amount: int

    @property
    def net_amount(self) -> int:
        return self.gross_amount - self.fee_amount

    def to_settlement(self) -> dict:
        """Major-unit form stored on the order."""
        return {
            "seller_id": self.seller_id,
            "destination": self.destination,
            "gross_amount": self.gross_amount / 100,
            "fee_amount": self.fee_amount / 100,
            "net_amount": self.net_amount / 100,
        }


def group_by_seller(lines) -> list[SellerGroup]:
    """Partition cart lines by seller, keeping the order sellers first appear in."""
    grouped: dict[str, list] = {}
    for line in lines:
        grouped.setdefault(str(line.seller_id), []).append(line)

    return [
        SellerGroup(
            seller_id=seller_id,
            lines=tuple(seller_lines),
            total=round_money(sum(line.line_total for line in seller_lines)),
        )
        for seller_id, seller_lines in grouped.items()
    ]


def platform_fee(total: float, fee_percentage: float) -> int:
    """Application fee in minor units: total × fee percentage."""
    return to_minor_units(total * fee_percentage / 100)


def _allocate(amount: int, weights: list[float]) -> list[int]:
    whole = sum(weights)
    shares = []
    allocated = 0
    for index, weight in enumerate(weights):
        if index == len(weights) - 1:
            share = amount - allocated
        else:
            share = round(amount * weight / whole) if whole else 0
            allocated += share
        shares.append(share)
    return shares


def split_payment(
    groups: list[SellerGroup],
    destinations: dict[str, str],
    total: float,
    fee_percentage: float,
) -> list[SellerShare]:
    weights = [group.total for group in groups]
    gross = _allocate(to_minor_units(total), weights)
    fees = _allocate(platform_fee(total, fee_percentage), weights)

    return [
        SellerShare(
            seller_id=group.seller_id,
            destination=destinations[group.seller_id],
            gross_amount=gross_share,
            fee_amount=fee_share,
        )
        for group, gross_share, fee_share in zip(groups, gross, fees, strict=True)
    ]
