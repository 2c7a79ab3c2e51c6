"""Cart package: models and engine."""
from .models import CartItem, Cart, CART_KIND
from .service import CartEngine

__all__ = [
    "CartItem",
    "Cart",
    "CART_KIND",
    "CartEngine",
]
