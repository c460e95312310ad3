"""In-memory catalogue and seller directory for development and testing."""

from marketplace.catalogue.port import CatalogueEntry, CatalogueLookup, SellerDirectory


class InMemoryCatalogue(CatalogueLookup):
    """Catalogue backed by a dict, keyed by (product_id, variant_id)."""

    def __init__(self) -> None:
        self.entries: dict[tuple[str, str | None], CatalogueEntry] = {}

    def register_product(
        self,
        product_id: str,
        name: str,
        price: float,
        seller_id: str,
        variant_id: str | None = None,
        published: bool = True,
    ) -> CatalogueEntry:
        entry = CatalogueEntry(
            product_id=product_id,
            name=name,
            price=price,
            seller_id=seller_id,
            variant_id=variant_id,
            published=published,
        )
        self.entries[(product_id, variant_id)] = entry
        return entry

    def lookup(self, product_id: str, variant_id: str | None = None) -> CatalogueEntry | None:
        return self.entries.get((str(product_id), str(variant_id) if variant_id else None))

    def reset(self) -> None:
        self.entries.clear()


class InMemorySellerDirectory(SellerDirectory):
    """Seller directory backed by a dict of seller records."""

    def __init__(self) -> None:
        self.sellers: dict[str, dict] = {}

    def register_seller(
        self,
        seller_id: str,
        store_name: str,
        payout_account: str | None = None,
        contact_email: str | None = None,
    ) -> None:
        self.sellers[seller_id] = {
            "store_name": store_name,
            "payout_account": payout_account,
            "contact_email": contact_email,
        }

    def payout_account(self, seller_id: str) -> str | None:
        return self.sellers.get(seller_id, {}).get("payout_account")

    def store_name(self, seller_id: str) -> str | None:
        return self.sellers.get(seller_id, {}).get("store_name")

    def contact_email(self, seller_id: str) -> str | None:
        return self.sellers.get(seller_id, {}).get("contact_email")

    def reset(self) -> None:
        self.sellers.clear()
