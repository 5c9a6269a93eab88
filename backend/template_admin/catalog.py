import logging
import math
from typing import List, Optional

from template_admin.models import Product, ProductStatus

log = logging.getLogger(__name__)

PAGE_SIZE = 250
VIEW_PAGE_SIZE = 25

TABS = ("all", "active", "inactive")


def fetch_collection_products(client, collection_id: str, after: Optional[str] = None) -> List[Product]:
    """Return every product of the collection, starting at the optional cursor.

    Follows pageInfo until hasNextPage is false; a collection that does not
    resolve ends the loop with whatever was gathered so far.
    """
    products: List[Product] = []
    seen: set[str] = set()
    cursor = after
    has_next = True
    while has_next:
        page = client.collection_products_page(collection_id, first=PAGE_SIZE, after=cursor)
        if page is None:
            log.warning("collection %s did not resolve", collection_id)
            break
        for edge in page.get("edges") or []:
            node = (edge or {}).get("node")
            if not node or node.get("id") in seen:
                continue
            seen.add(node["id"])
            products.append(Product.from_node(node))
        info = page.get("pageInfo") or {}
        has_next = bool(info.get("hasNextPage"))
        cursor = info.get("endCursor")
        if has_next and not cursor:
            break
    log.info("collection %s products=%d", collection_id, len(products))
    return products


def filter_products(products: List[Product], tab: str = "all", query: str = "") -> List[Product]:
    """Customer-template products for a tab, narrowed by a title / email-tag search."""
    if tab == "active":
        out = [p for p in products if p.status == ProductStatus.ACTIVE]
    elif tab == "inactive":
        out = [p for p in products if p.status == ProductStatus.INACTIVE]
    else:
        out = [p for p in products if p.customer_template]
    q = (query or "").strip().lower()
    if q:
        out = [p for p in out if q in p.title.lower() or any(q in e.lower() for e in p.emails)]
    return out


def paginate(items: list, page: int = 1, per_page: int = VIEW_PAGE_SIZE) -> dict:
    total = len(items)
    pages = max(1, math.ceil(total / per_page))
    page = min(max(1, page), pages)
    start = (page - 1) * per_page
    return {
        "items": items[start:start + per_page],
        "page": page,
        "pages": pages,
        "total": total,
        "hasPrevious": page > 1,
        "hasNext": page * per_page < total,
    }
