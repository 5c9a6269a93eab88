import logging
import threading
import weakref

import requests

from template_admin.config import SHOPIFY_ACCESS_TOKEN, SHOPIFY_API_VERSION, SHOPIFY_SHOP_DOMAIN, normalize_shop_domain

log = logging.getLogger(__name__)

COLLECTION_PRODUCTS_QUERY = """
query getCollectionProducts($collectionId: ID!, $first: Int!, $after: String) {
  collection(id: $collectionId) {
    products(first: $first, after: $after) {
      edges {
        node {
          id
          title
          tags
          handle
          featuredImage { url }
        }
        cursor
      }
      pageInfo { hasNextPage endCursor }
    }
  }
}
"""

TAGS_ADD = """
mutation addTag($id: ID!, $tags: [String!]!) {
  tagsAdd(id: $id, tags: $tags) {
    node { id }
    userErrors { field message }
  }
}
"""

TAGS_REMOVE = """
mutation removeTag($id: ID!, $tags: [String!]!) {
  tagsRemove(id: $id, tags: $tags) {
    node { id }
    userErrors { field message }
  }
}
"""

PRODUCT_DELETE = """
mutation DeleteProduct($input: ProductDeleteInput!) {
  productDelete(input: $input) {
    deletedProductId
    userErrors { field message }
  }
}
"""

PRODUCTS_BY_TITLE_QUERY = """
query productsByTitle($query: String!, $first: Int!, $after: String) {
  products(first: $first, after: $after, query: $query) {
    edges { node { id title } }
    pageInfo { hasNextPage endCursor }
  }
}
"""

PRODUCT_CREATE = """
mutation CreateProduct($input: ProductInput!) {
  productCreate(input: $input) {
    product { id title handle tags }
    userErrors { field message }
  }
}
"""

PRODUCT_UPDATE = """
mutation UpdateProduct($input: ProductInput!) {
  productUpdate(input: $input) {
    product { id title handle tags }
    userErrors { field message }
  }
}
"""

PRODUCT_MEDIA_QUERY = """
query getProductMedia($id: ID!) {
  product(id: $id) {
    media(first: 100) {
      edges { node { id } }
    }
  }
}
"""

PRODUCT_DELETE_MEDIA = """
mutation productDeleteMedia($productId: ID!, $mediaIds: [ID!]!) {
  productDeleteMedia(productId: $productId, mediaIds: $mediaIds) {
    deletedMediaIds
    userErrors { field message }
  }
}
"""

PRODUCT_CREATE_MEDIA = """
mutation productCreateMedia($productId: ID!, $media: [CreateMediaInput!]!) {
  productCreateMedia(productId: $productId, media: $media) {
    media {
      mediaContentType
      alt
      preview { image { src } }
    }
    mediaUserErrors { field message }
  }
}
"""

PRODUCT_PUBLISH = """
mutation PublishProduct($input: ProductPublishInput!) {
  productPublish(input: $input) {
    product { id publishedAt }
    userErrors { field message }
  }
}
"""

PRODUCT_METAFIELDS_QUERY = """
query getProductMetafields($productId: ID!) {
  product(id: $productId) {
    id
    metafields(first: 100) {
      edges { node { id namespace key value } }
    }
  }
}
"""

TITLE_SEARCH_PAGE_SIZE = 250

MEDIA_IMAGE_QUERY = """
query getMedia($mediaId: ID!) {
  node(id: $mediaId) {
    ... on MediaImage {
      image { src }
    }
  }
}
"""


class ShopifyError(RuntimeError):
    """GraphQL-level errors or mutation userErrors returned by the Admin API."""

    def __init__(self, message: str, user_errors: list | None = None):
        super().__init__(message)
        self.user_errors = user_errors or []


def _format_errors(errors: list) -> str:
    parts = []
    for err in errors or []:
        if not isinstance(err, dict):
            parts.append(str(err))
            continue
        field = err.get("field")
        if isinstance(field, list):
            field = ".".join(str(f) for f in field)
        parts.append(f"{field or 'Error'}: {err.get('message')}")
    return ", ".join(parts)


def _title_search_query(title: str) -> str:
    escaped = (title or "").replace("\\", "\\\\").replace('"', '\\"')
    return f'title:"{escaped}"'


class ShopifyClient:
    """Thin Admin GraphQL client bound to one shop.

    Built once at startup and closed on shutdown; every call is a single POST with no retry.
    """

    def __init__(self, shop_domain: str, access_token: str, api_version: str = "2023-10", *, timeout: int = 60, session: requests.Session | None = None):
        self.shop = normalize_shop_domain(shop_domain)
        self.api_version = api_version
        self.timeout = timeout
        self.session = session or requests.Session()
        # requests.Session is not thread-safe; worker threads get their own
        self._local = threading.local()
        self._local.session = self.session
        self._sessions = weakref.WeakSet([self.session])
        self.headers = {"Content-Type": "application/json"}
        if access_token:
            self.headers["X-Shopify-Access-Token"] = access_token

    @classmethod
    def from_config(cls) -> "ShopifyClient":
        return cls(SHOPIFY_SHOP_DOMAIN, SHOPIFY_ACCESS_TOKEN, SHOPIFY_API_VERSION)

    @property
    def gql_url(self) -> str:
        return f"https://{self.shop}/admin/api/{self.api_version}/graphql.json"

    def _thread_session(self) -> requests.Session:
        s = getattr(self._local, "session", None)
        if s is None:
            s = requests.Session()
            self._local.session = s
            self._sessions.add(s)
        return s

    def close(self) -> None:
        for s in list(self._sessions):
            s.close()

    def _gql(self, query: str, variables: dict | None = None) -> dict:
        if not self.shop:
            raise RuntimeError("SHOPIFY_SHOP_DOMAIN is not set. Please configure SHOPIFY_SHOP_DOMAIN env var.")
        if "X-Shopify-Access-Token" not in self.headers:
            raise RuntimeError("SHOPIFY_ACCESS_TOKEN is not set. Please configure SHOPIFY_ACCESS_TOKEN env var.")
        r = self._thread_session().post(self.gql_url, headers=self.headers, json={"query": query, "variables": variables or {}}, timeout=self.timeout)
        r.raise_for_status()
        j = r.json()
        if j.get("errors"):
            raise ShopifyError(f"GraphQL errors: {_format_errors(j['errors'])}", j["errors"])
        data = j.get("data") or {}
        # Every mutation payload carries its own userErrors list
        for payload in data.values():
            if not isinstance(payload, dict):
                continue
            ue = payload.get("userErrors") or payload.get("mediaUserErrors")
            if ue:
                log.warning("shopify userErrors: %s", ue)
                raise ShopifyError(_format_errors(ue), ue)
        return data

    # -------- Catalog --------
    def collection_products_page(self, collection_id: str, first: int = 250, after: str | None = None) -> dict | None:
        """Return the collection's `products` connection for one page, or None when the collection is missing."""
        data = self._gql(COLLECTION_PRODUCTS_QUERY, {"collectionId": collection_id, "first": first, "after": after})
        collection = data.get("collection")
        if not collection:
            return None
        return collection.get("products") or {}

    def _iter_title_matches(self, title: str):
        # Shopify's title search is token-based, so exact matches can sit on any page
        cursor = None
        while True:
            data = self._gql(PRODUCTS_BY_TITLE_QUERY, {"query": _title_search_query(title), "first": TITLE_SEARCH_PAGE_SIZE, "after": cursor})
            conn = data.get("products") or {}
            for edge in conn.get("edges") or []:
                node = (edge or {}).get("node") or {}
                if node.get("title") == title:
                    yield node
            info = conn.get("pageInfo") or {}
            cursor = info.get("endCursor")
            if not (info.get("hasNextPage") and cursor):
                return

    def find_product_by_title(self, title: str) -> dict | None:
        """Return the first product whose title matches exactly (case-sensitive)."""
        return next(self._iter_title_matches(title), None)

    def find_products_by_title(self, title: str) -> list[dict]:
        """Every product whose title matches exactly (case-sensitive), across all result pages."""
        return list(self._iter_title_matches(title))

    # -------- Tags / lifecycle --------
    def add_tags(self, product_id: str, tags: list[str]) -> str:
        self._gql(TAGS_ADD, {"id": product_id, "tags": tags})
        return product_id

    def remove_tags(self, product_id: str, tags: list[str]) -> str:
        self._gql(TAGS_REMOVE, {"id": product_id, "tags": tags})
        return product_id

    def delete_product(self, product_id: str) -> str:
        data = self._gql(PRODUCT_DELETE, {"input": {"id": product_id}})
        return (data.get("productDelete") or {}).get("deletedProductId") or product_id

    def create_product(self, title: str, tags: list[str], price: str) -> dict:
        inp = {
            "title": title,
            "tags": tags,
            "variants": [{"price": price, "sku": ""}],
        }
        data = self._gql(PRODUCT_CREATE, {"input": inp})
        return data["productCreate"]["product"]

    def update_product(self, product_id: str, *, title: str | None = None, tags: list[str] | None = None) -> dict:
        inp: dict = {"id": product_id}
        if title is not None:
            inp["title"] = title
        if tags is not None:
            inp["tags"] = tags
        data = self._gql(PRODUCT_UPDATE, {"input": inp})
        return data["productUpdate"]["product"]

    def publish_product(self, product_id: str, publication_id: str) -> dict:
        inp = {"id": product_id, "productPublications": [{"publicationId": publication_id}]}
        data = self._gql(PRODUCT_PUBLISH, {"input": inp})
        return data["productPublish"]["product"]

    # -------- Media --------
    def list_product_media_ids(self, product_id: str) -> list[str]:
        data = self._gql(PRODUCT_MEDIA_QUERY, {"id": product_id})
        edges = (((data.get("product") or {}).get("media") or {}).get("edges")) or []
        return [e["node"]["id"] for e in edges if (e or {}).get("node")]

    def delete_product_media(self, product_id: str, media_ids: list[str]) -> list[str]:
        data = self._gql(PRODUCT_DELETE_MEDIA, {"productId": product_id, "mediaIds": media_ids})
        return (data.get("productDeleteMedia") or {}).get("deletedMediaIds") or []

    def create_product_media(self, product_id: str, image_urls: list[str], alt: str = "Product image") -> list[dict]:
        media = [{"mediaContentType": "IMAGE", "originalSource": url, "alt": alt} for url in image_urls]
        data = self._gql(PRODUCT_CREATE_MEDIA, {"productId": product_id, "media": media})
        return (data.get("productCreateMedia") or {}).get("media") or []

    # -------- Metafields --------
    def list_product_metafields(self, product_id: str) -> list[dict]:
        data = self._gql(PRODUCT_METAFIELDS_QUERY, {"productId": product_id})
        product = data.get("product")
        if not product:
            raise ShopifyError(f"Product {product_id} not found")
        edges = ((product.get("metafields") or {}).get("edges")) or []
        return [e["node"] for e in edges if (e or {}).get("node")]

    def get_media_image_url(self, media_id: str) -> str | None:
        data = self._gql(MEDIA_IMAGE_QUERY, {"mediaId": media_id})
        return (((data.get("node") or {}).get("image")) or {}).get("src")
