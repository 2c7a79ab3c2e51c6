"""
Storefront - composition root for the cart and wishlist engines.

Usage:
    storefront = Storefront.from_env()
    storefront.events.subscribe("cart:item:added", on_added)
    await storefront.cart.add_item(product, 2)

    storefront.set_owner(customer_id)
    await storefront.wishlist.get()  # pulls the owner's remote wishlist
"""

from typing import Optional

from upstash_redis.asyncio import Redis as AsyncRedis

from .cart import CartEngine
from .config import REMOTE_HTTP, REMOTE_NONE, REMOTE_REDIS, Settings
from .engine import OwnerId
from .errors import (
    ConfigurationError,
    ERROR_API_URL_NOT_CONFIGURED,
    ERROR_REDIS_NOT_CONFIGURED,
    ERROR_UNKNOWN_BACKEND,
)
from .events import EventEmitter
from .logging import configure_logging, get_logger
from .remote import HttpRecordBackend, RecordBackend, RedisRecordBackend
from .storage import FileStore, LocalStore, StorageManager
from .wishlist import WishlistEngine

logger = get_logger(__name__)


def build_backend(settings: Settings) -> Optional[RecordBackend]:
    """Create the remote backend named by settings, or None for local-only.

    Raises:
        ConfigurationError: Unknown backend name or missing credentials
    """
    backend = settings.remote_backend

    if backend == REMOTE_NONE:
        return None

    if backend == REMOTE_HTTP:
        if not settings.api_url:
            raise ConfigurationError(ERROR_API_URL_NOT_CONFIGURED)
        return HttpRecordBackend(
            endpoint=settings.api_url,
            api_version=settings.api_version,
            auth_token=settings.auth_token,
            merchant=settings.merchant,
            timeout=settings.timeout,
        )

    if backend == REMOTE_REDIS:
        if not settings.redis_url or not settings.redis_token:
            raise ConfigurationError(ERROR_REDIS_NOT_CONFIGURED)
        redis = AsyncRedis(url=settings.redis_url, token=settings.redis_token)
        return RedisRecordBackend(redis, ttl=settings.remote_ttl)

    raise ConfigurationError(f"{ERROR_UNKNOWN_BACKEND}: {backend}")


class Storefront:
    """Owns one event emitter, one storage namespace and both engines."""

    def __init__(
        self,
        settings: Optional[Settings] = None,
        store: Optional[LocalStore] = None,
        backend: Optional[RecordBackend] = None,
    ) -> None:
        self.settings = settings or Settings()
        self.events = EventEmitter()
        self.storage = StorageManager(
            store if store is not None else FileStore(self.settings.storage_dir),
            prefix=self.settings.namespace,
        )
        self.backend = backend

        owner_id = self.settings.owner_id
        self.cart = CartEngine(self.storage.slot("cart"), self.events, backend, owner_id=owner_id)
        self.wishlist = WishlistEngine(self.storage.slot("wishlist"), self.events, backend, owner_id=owner_id)

    @classmethod
    def from_env(cls, store: Optional[LocalStore] = None) -> "Storefront":
        """Build a Storefront from environment variables."""
        configure_logging()
        settings = Settings.from_env()
        backend = build_backend(settings)
        logger.info(
            f"Storefront ready: namespace={settings.namespace} remote={settings.remote_backend}"
        )
        return cls(settings, store=store, backend=backend)

    def set_owner(self, owner_id: OwnerId) -> None:
        """Scope both collections' remote snapshots to owner_id."""
        self.cart.set_owner(owner_id)
        self.wishlist.set_owner(owner_id)

    def clear_owner(self) -> None:
        self.cart.clear_owner()
        self.wishlist.clear_owner()

    async def aclose(self) -> None:
        """Release the HTTP connection pool, if any."""
        if isinstance(self.backend, HttpRecordBackend):
            await self.backend.aclose()
