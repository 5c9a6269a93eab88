import os


def normalize_shop_domain(val: str) -> str:
    v = (val or "").strip()
    # remove protocol if provided and any stray whitespace or slashes
    if v.lower().startswith("https://"):
        v = v[8:]
    elif v.lower().startswith("http://"):
        v = v[7:]
    v = v.strip().strip("/\t\n\r ")
    return v


SHOPIFY_SHOP_DOMAIN = normalize_shop_domain(os.getenv("SHOPIFY_SHOP_DOMAIN", ""))  # your-store.myshopify.com
SHOPIFY_ACCESS_TOKEN = os.getenv("SHOPIFY_ACCESS_TOKEN", "")
# productCreate still accepts inline variants on this version.
SHOPIFY_API_VERSION = os.getenv("SHOPIFY_API_VERSION", "2023-10")
# Store handle used in admin deep links (admin.shopify.com/store/<handle>/products/<id>)
SHOPIFY_ADMIN_STORE_HANDLE = os.getenv("SHOPIFY_ADMIN_STORE_HANDLE", "ad7dbd-2")

# Collection that scopes the template listing, and the sales channel new templates are published to
TEMPLATE_COLLECTION_ID = os.getenv("TEMPLATE_COLLECTION_ID", "gid://shopify/Collection/493361496383")
TEMPLATE_PUBLICATION_ID = os.getenv("TEMPLATE_PUBLICATION_ID", "gid://shopify/Publication/185577668927")
TEMPLATE_PRICE = os.getenv("TEMPLATE_PRICE", "15.00")

S3_BUCKET = os.getenv("S3_BUCKET", "greetabl-production")
AWS_REGION = os.getenv("AWS_REGION", "us-east-1")

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
