"""Catalogue and seller directory factories.

Provides get_*() / set_*() to swap implementations. The in-memory adapters
are the default; a deployment wires in clients for the catalogue and
vendor services.
"""

from marketplace.catalogue.fake_adapter import InMemoryCatalogue, InMemorySellerDirectory
from marketplace.catalogue.port import CatalogueLookup, SellerDirectory

_current_catalogue: CatalogueLookup | None = None
_current_sellers: SellerDirectory | None = None


def get_catalogue() -> CatalogueLookup:
    """Return the current catalogue lookup. Defaults to InMemoryCatalogue."""
    global _current_catalogue
    if _current_catalogue is None:
        _current_catalogue = InMemoryCatalogue()
    return _current_catalogue


def set_catalogue(catalogue: CatalogueLookup) -> None:
    global _current_catalogue
    _current_catalogue = catalogue


def get_seller_directory() -> SellerDirectory:
    """Return the current seller directory. Defaults to InMemorySellerDirectory."""
    global _current_sellers
    if _current_sellers is None:
        _current_sellers = InMemorySellerDirectory()
    return _current_sellers


def set_seller_directory(directory: SellerDirectory) -> None:
    global _current_sellers
    _current_sellers = directory


def reset_catalogue() -> None:
    """Reset both lookups to their defaults."""
    global _current_catalogue, _current_sellers
    _current_catalogue = None
    _current_sellers = None
