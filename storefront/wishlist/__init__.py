"""Wishlist package: models and engine."""
from .models import WishlistItem, Wishlist, ToggleResult, WISHLIST_KIND
from .service import WishlistEngine

__all__ = [
    "WishlistItem",
    "Wishlist",
    "ToggleResult",
    "WISHLIST_KIND",
    "WishlistEngine",
]
