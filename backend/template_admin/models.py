from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, computed_field

from template_admin.config import SHOPIFY_ADMIN_STORE_HANDLE

PENDING_TAG = "pending"
EMAIL_TAG_PREFIX = "email_"
PRODUCT_GID_PREFIX = "gid://shopify/Product/"


class ProductStatus(str, Enum):
    ACTIVE = "active"
    INACTIVE = "inactive"
    OTHER = "other"


def numeric_id_from_gid(gid: str | None) -> str | None:
    return (gid or "").split("/")[-1] or None


def to_product_gid(product_id: str) -> str:
    """Accept either a numeric product id or a full gid and return the gid."""
    pid = (product_id or "").strip()
    if pid.startswith("gid://"):
        return pid
    return f"{PRODUCT_GID_PREFIX}{pid}"


class Product(BaseModel):
    id: str
    title: str
    tags: List[str] = []
    handle: Optional[str] = None
    featured_image_url: Optional[str] = None

    @classmethod
    def from_node(cls, node: dict) -> "Product":
        image = (node or {}).get("featuredImage") or {}
        return cls(
            id=node["id"],
            title=node.get("title") or "",
            tags=list(node.get("tags") or []),
            handle=node.get("handle"),
            featured_image_url=image.get("url"),
        )

    @computed_field
    @property
    def pending(self) -> bool:
        return PENDING_TAG in self.tags

    @computed_field
    @property
    def customer_template(self) -> bool:
        return any(t.startswith(EMAIL_TAG_PREFIX) for t in self.tags)

    @computed_field
    @property
    def emails(self) -> List[str]:
        return [t[len(EMAIL_TAG_PREFIX):] for t in self.tags if t.startswith(EMAIL_TAG_PREFIX)]

    @computed_field
    @property
    def status(self) -> ProductStatus:
        if not self.customer_template:
            return ProductStatus.OTHER
        return ProductStatus.INACTIVE if self.pending else ProductStatus.ACTIVE

    @property
    def numeric_id(self) -> str | None:
        return numeric_id_from_gid(self.id)

    @computed_field
    @property
    def admin_url(self) -> str:
        return f"https://admin.shopify.com/store/{SHOPIFY_ADMIN_STORE_HANDLE}/products/{self.numeric_id}"


class Metafield(BaseModel):
    id: str
    namespace: str
    key: str
    value: Optional[str] = None


class ImageSlot(BaseModel):
    """One of the image1..image3 form fields: uploaded bytes or an external URL."""

    index: int
    content: Optional[bytes] = None
    url: Optional[str] = None
