"""Shared models: product snapshots, timestamps and entry ids."""
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any, Optional, Union

from .money import to_decimal

ProductId = Union[int, str]

_PRODUCT_FIELDS = ("id", "title", "price", "variant_id", "currency", "image", "permalink")


def utc_now() -> str:
    """Current UTC time as an ISO-8601 string."""
    return datetime.now(timezone.utc).isoformat()


def parse_timestamp(value: str) -> Optional[datetime]:
    """Parse an ISO-8601 timestamp, assuming UTC for naive values."""
    if not value:
        return None
    try:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except (TypeError, ValueError):
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def latest_timestamp(first: str, second: str) -> str:
    """Return whichever of two ISO timestamps is later.

    Unparseable values lose against parseable ones.
    """
    first_dt = parse_timestamp(first)
    second_dt = parse_timestamp(second)
    if first_dt is None:
        return second if second_dt is not None else first
    if second_dt is None:
        return first
    return second if second_dt > first_dt else first


def new_entry_id(prefix: str) -> str:
    """Generate a fresh entry id, e.g. ``item_3f2b...``."""
    return f"{prefix}_{uuid.uuid4().hex}"


@dataclass
class Product:
    """Snapshot of a catalog product taken when it enters a collection.

    Unknown catalog fields are kept in ``extra`` so a snapshot round-trips
    through storage without losing data.
    """
    id: ProductId
    title: str
    price: Decimal
    variant_id: Optional[ProductId] = None
    currency: Optional[str] = None
    image: Optional[str] = None
    permalink: Optional[str] = None
    extra: dict[str, Any] = field(default_factory=dict)

    def __post_init__(self):
        self.price = to_decimal(self.price)

    @property
    def identity(self) -> tuple:
        """Key that must be unique within a collection."""
        return (self.id, self.variant_id)

    def matches(self, product_id: ProductId, variant_id: Optional[ProductId] = None) -> bool:
        """True if this product has ``product_id`` (and ``variant_id`` when given)."""
        if self.id != product_id:
            return False
        return variant_id is None or self.variant_id == variant_id

    def to_dict(self) -> dict:
        """Convert to a JSON-safe dictionary."""
        data = dict(self.extra)
        data.update({
            "id": self.id,
            "title": self.title,
            "price": str(self.price),
            "variant_id": self.variant_id,
            "currency": self.currency,
            "image": self.image,
            "permalink": self.permalink,
        })
        return data

    @classmethod
    def from_dict(cls, data: dict) -> "Product":
        """Create from dictionary."""
        return cls(
            id=data["id"],
            title=data.get("title") or "",
            price=to_decimal(data.get("price")),
            variant_id=data.get("variant_id"),
            currency=data.get("currency"),
            image=data.get("image"),
            permalink=data.get("permalink"),
            extra={k: v for k, v in data.items() if k not in _PRODUCT_FIELDS},
        )
