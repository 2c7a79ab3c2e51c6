"""storefront-sync: cart and wishlist state kept in local storage and mirrored remotely."""
from .cart import Cart, CartEngine, CartItem
from .client import Storefront, build_backend
from .config import Settings
from .events import ChangeEvent, ChangeType, EventEmitter, Subscription, Topics
from .models import Product
from .remote import (
    GenericRecord,
    HttpRecordBackend,
    RecordBackend,
    RedisRecordBackend,
    RemoteErrorKind,
    RemoteResult,
)
from .storage import FileStore, LocalStore, MemoryStore, StorageManager, StorageSlot
from .wishlist import ToggleResult, Wishlist, WishlistEngine, WishlistItem

__version__ = "0.1.0"

__all__ = [
    "Cart",
    "CartEngine",
    "CartItem",
    "ChangeEvent",
    "ChangeType",
    "EventEmitter",
    "FileStore",
    "GenericRecord",
    "HttpRecordBackend",
    "LocalStore",
    "MemoryStore",
    "Product",
    "RecordBackend",
    "RedisRecordBackend",
    "RemoteErrorKind",
    "RemoteResult",
    "Settings",
    "StorageManager",
    "StorageSlot",
    "Storefront",
    "Subscription",
    "ToggleResult",
    "Topics",
    "Wishlist",
    "WishlistEngine",
    "WishlistItem",
    "build_backend",
]
