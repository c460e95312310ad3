"""Repository for the Coupon aggregate."""

from marketplace.coupon.coupon import Coupon
from marketplace.domain import marketplace


@marketplace.repository(part_of=Coupon)
class CouponRepository:
    def find_by_code(self, code: str) -> Coupon | None:
        """Find a coupon by its (case-sensitive) code."""
        coupons = self._dao.query.filter(code=code).all().items
        return coupons[0] if coupons else None
