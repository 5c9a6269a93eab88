"""
Shared pytest fixtures.

FakeShopify keeps an in-memory catalog behind the same methods ShopifyClient
exposes, so workflows can be exercised end to end without network access.
"""

import pytest
from fastapi.testclient import TestClient

from template_admin.integrations.shopify_client import ShopifyError
from template_admin.main import app, get_image_store, get_shopify

MUTATIONS = {
    "add_tags",
    "remove_tags",
    "delete_product",
    "create_product",
    "update_product",
    "publish_product",
    "delete_product_media",
    "create_product_media",
}


class FakeShopify:
    def __init__(self):
        self.products = {}
        self.collection = []
        self.collection_exists = True
        self.media_urls = {}
        self.broken_media = set()
        self.metafields = {}
        self.calls = []
        self.fail_on = set()
        self._seq = 1000

    def _record(self, name, *args):
        self.calls.append((name, args))
        if name in self.fail_on:
            raise ShopifyError(f"{name}: simulated failure")

    def _next_id(self, kind):
        self._seq += 1
        return f"gid://shopify/{kind}/{self._seq}"

    # helpers for tests
    def add_product(self, title, tags=(), media_urls=(), in_collection=True):
        gid = self._next_id("Product")
        media = []
        for url in media_urls:
            mid = self._next_id("MediaImage")
            self.media_urls[mid] = url
            media.append(mid)
        self.products[gid] = {
            "id": gid,
            "title": title,
            "tags": list(tags),
            "handle": title.lower().replace(" ", "-"),
            "media": media,
            "publishedAt": None,
        }
        if in_collection:
            self.collection.append(gid)
        return gid

    def media_of(self, gid):
        return [self.media_urls[m] for m in self.products[gid]["media"]]

    def call_names(self):
        return [name for name, _ in self.calls]

    def mutations(self):
        return [name for name in self.call_names() if name in MUTATIONS]

    # ShopifyClient surface
    def collection_products_page(self, collection_id, first=250, after=None):
        self._record("collection_products_page", collection_id, first, after)
        if not self.collection_exists:
            return None
        start = int(after) if after else 0
        ids = self.collection[start:start + first]
        end = start + len(ids)
        edges = []
        for gid in ids:
            p = self.products[gid]
            image = self.media_of(gid)[:1]
            node = {
                "id": gid,
                "title": p["title"],
                "tags": list(p["tags"]),
                "handle": p["handle"],
                "featuredImage": {"url": image[0]} if image else None,
            }
            edges.append({"node": node, "cursor": str(end)})
        return {
            "edges": edges,
            "pageInfo": {"hasNextPage": end < len(self.collection), "endCursor": str(end)},
        }

    def find_product_by_title(self, title):
        self._record("find_product_by_title", title)
        for p in self.products.values():
            if p["title"] == title:
                return {"id": p["id"], "title": p["title"]}
        return None

    def find_products_by_title(self, title):
        self._record("find_products_by_title", title)
        return [{"id": p["id"], "title": p["title"]} for p in self.products.values() if p["title"] == title]

    def add_tags(self, product_id, tags):
        self._record("add_tags", product_id, tags)
        current = self.products[product_id]["tags"]
        for t in tags:
            if t not in current:
                current.append(t)
        return product_id

    def remove_tags(self, product_id, tags):
        self._record("remove_tags", product_id, tags)
        p = self.products[product_id]
        p["tags"] = [t for t in p["tags"] if t not in tags]
        return product_id

    def delete_product(self, product_id):
        self._record("delete_product", product_id)
        self.products.pop(product_id)
        if product_id in self.collection:
            self.collection.remove(product_id)
        return product_id

    def create_product(self, title, tags, price):
        self._record("create_product", title, tags, price)
        gid = self.add_product(title, tags)
        self.products[gid]["price"] = price
        return {"id": gid, "title": title, "handle": self.products[gid]["handle"], "tags": list(tags)}

    def update_product(self, product_id, *, title=None, tags=None):
        self._record("update_product", product_id, title, tags)
        p = self.products[product_id]
        if title is not None:
            p["title"] = title
        if tags is not None:
            p["tags"] = list(tags)
        return {"id": product_id, "title": p["title"], "handle": p["handle"], "tags": list(p["tags"])}

    def publish_product(self, product_id, publication_id):
        self._record("publish_product", product_id, publication_id)
        self.products[product_id]["publishedAt"] = "2024-05-01T12:00:00Z"
        return {"id": product_id, "publishedAt": "2024-05-01T12:00:00Z"}

    def list_product_media_ids(self, product_id):
        self._record("list_product_media_ids", product_id)
        return list(self.products[product_id]["media"])

    def delete_product_media(self, product_id, media_ids):
        self._record("delete_product_media", product_id, media_ids)
        p = self.products[product_id]
        p["media"] = [m for m in p["media"] if m not in media_ids]
        return list(media_ids)

    def create_product_media(self, product_id, image_urls, alt="Product image"):
        self._record("create_product_media", product_id, image_urls, alt)
        out = []
        for url in image_urls:
            mid = self._next_id("MediaImage")
            self.media_urls[mid] = url
            self.products[product_id]["media"].append(mid)
            out.append({"mediaContentType": "IMAGE", "alt": alt})
        return out

    def list_product_metafields(self, product_id):
        self._record("list_product_metafields", product_id)
        return list(self.metafields.get(product_id, []))

    def get_media_image_url(self, media_id):
        self._record("get_media_image_url", media_id)
        if media_id in self.broken_media:
            raise ShopifyError(f"GraphQL errors: media {media_id} unavailable")
        return self.media_urls.get(media_id)


class FakeImageStore:
    def __init__(self):
        self.objects = {}
        self.deleted = []
        self.fail = False

    def save_image(self, key, content):
        if self.fail:
            raise RuntimeError("s3 unavailable")
        url = f"https://test-bucket.s3.us-east-1.amazonaws.com/{key}"
        self.objects[url] = content
        return url

    def delete_image(self, url):
        self.deleted.append(url)
        self.objects.pop(url, None)


@pytest.fixture
def fake_shopify():
    return FakeShopify()


@pytest.fixture
def fake_store():
    return FakeImageStore()


@pytest.fixture
def api_client(fake_shopify, fake_store):
    """TestClient wired to the fakes; the lifespan is not entered so no real clients are built."""
    app.dependency_overrides[get_shopify] = lambda: fake_shopify
    app.dependency_overrides[get_image_store] = lambda: fake_store
    yield TestClient(app)
    app.dependency_overrides.clear()
