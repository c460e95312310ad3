"""Catalogue and seller directory ports (abstract interfaces).

Product CRUD, search and vendor onboarding live outside this service. The
pipeline only needs two read paths: what a product costs and who sells it,
and where a seller gets paid out.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass


@dataclass(frozen=True)
class CatalogueEntry:
    """Purchasable snapshot of a product (or one of its variants)."""

    product_id: str
    name: str
    price: float
    seller_id: str
    variant_id: str | None = None
    published: bool = True


class CatalogueLookup(ABC):
    """Abstract catalogue read interface."""

    @abstractmethod
    def lookup(self, product_id: str, variant_id: str | None = None) -> CatalogueEntry | None:
        """Return the entry for a product/variant, or None if it does not exist."""
        ...


class SellerDirectory(ABC):
    """Abstract seller read interface."""

    @abstractmethod
    def payout_account(self, seller_id: str) -> str | None:
        """Return the seller's settlement destination, or None if not onboarded."""
        ...

    @abstractmethod
    def store_name(self, seller_id: str) -> str | None:
        ...

    @abstractmethod
    def contact_email(self, seller_id: str) -> str | None:
        ...
