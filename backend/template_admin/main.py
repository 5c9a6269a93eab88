from contextlib import asynccontextmanager
from typing import List, Optional
import logging

from fastapi import Depends, FastAPI, Form, Request
from fastapi.middleware.cors import CORSMiddleware
from starlette.datastructures import UploadFile
from starlette.middleware.gzip import GZipMiddleware

from template_admin.catalog import TABS, fetch_collection_products, filter_products, paginate
from template_admin.config import LOG_LEVEL, TEMPLATE_COLLECTION_ID
from template_admin.integrations.shopify_client import ShopifyClient
from template_admin.metafields import get_product_metafields, resolve_metafield_images
from template_admin.models import ImageSlot
from template_admin.status import apply_action
from template_admin.steps import StepFailedError
from template_admin.storage import ImageStore
from template_admin.writer import MAX_IMAGE_SLOTS, DuplicateTitleError, create_template, edit_template, remove_template

# Basic logger for diagnostics (stdout captured by the container runtime)
logger = logging.getLogger("template_admin")
if not logger.handlers:
    logger.addHandler(logging.StreamHandler())
logger.setLevel(LOG_LEVEL)

INVALID_ACTION = "Invalid action type or missing required fields."


@asynccontextmanager
async def lifespan(app: FastAPI):
    app.state.shopify = ShopifyClient.from_config()
    app.state.image_store = ImageStore.from_config()
    logger.info("clients ready shop=%s api=%s", app.state.shopify.shop, app.state.shopify.api_version)
    try:
        yield
    finally:
        app.state.shopify.close()
        logger.info("clients closed")


app = FastAPI(title="Template Admin", version="0.1.0", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
app.add_middleware(GZipMiddleware, minimum_size=1024)


def get_shopify(request: Request) -> ShopifyClient:
    return request.app.state.shopify


def get_image_store(request: Request) -> ImageStore:
    return request.app.state.image_store


@app.get("/health")
def health():
    return {"ok": True}


@app.post("/api/products")
def api_products(
    actionType: Optional[str] = Form(None),
    productId: Optional[str] = Form(None),
    after: Optional[str] = Form(None),
    queryValue: Optional[str] = Form(None),
    tab: Optional[str] = Form(None),
    page: Optional[int] = Form(None),
    shopify: ShopifyClient = Depends(get_shopify),
):
    """Status actions when actionType and productId are present, otherwise the full template listing."""
    if actionType and productId:
        return apply_action(shopify, actionType, productId)
    try:
        products = fetch_collection_products(shopify, TEMPLATE_COLLECTION_ID, after=after or None)
    except Exception as e:
        logger.exception("collection listing failed")
        return {"success": False, "error": str(e)}
    out = {
        "products": [p.model_dump() for p in products],
        "pageInfo": {"hasNextPage": False, "endCursor": None},
    }
    if tab or queryValue or page:
        view = paginate(filter_products(products, tab if tab in TABS else "all", queryValue or ""), page or 1)
        view["items"] = [p.model_dump() for p in view["items"]]
        out["view"] = view
    return out


async def _read_image_slots(form) -> List[ImageSlot]:
    slots: List[ImageSlot] = []
    for i in range(1, MAX_IMAGE_SLOTS + 1):
        val = form.get(f"image{i}")
        if isinstance(val, UploadFile):
            content = await val.read()
            if val.filename and content:
                slots.append(ImageSlot(index=i, content=content))
        elif isinstance(val, str) and val:
            slots.append(ImageSlot(index=i, url=val))
    return slots


@app.post("/api/templates")
async def api_templates(
    request: Request,
    shopify: ShopifyClient = Depends(get_shopify),
    image_store: ImageStore = Depends(get_image_store),
):
    form = await request.form()
    action_type = form.get("actionType")
    product_id = form.get("productId") or None
    title = form.get("productTitle") or None
    tag = form.get("productTag") or None
    try:
        if action_type == "remove" and product_id:
            return remove_template(shopify, product_id)
        if action_type == "edit" and product_id and title:
            slots = await _read_image_slots(form)
            return edit_template(shopify, image_store, product_id, title, slots)
        if action_type == "create" and title:
            slots = await _read_image_slots(form)
            return create_template(shopify, image_store, title, tag, slots)
    except DuplicateTitleError as e:
        return {"success": False, "error": str(e)}
    except StepFailedError as e:
        return {"success": False, "error": str(e), **e.to_dict()}
    except Exception as e:
        logger.exception("template %s failed", action_type)
        return {"success": False, "error": str(e)}
    return {"success": False, "error": INVALID_ACTION}


@app.get("/api/product_metafield")
def api_product_metafield(productId: Optional[str] = None, shopify: ShopifyClient = Depends(get_shopify)):
    if not productId:
        return {"success": False, "error": "Product ID is required."}
    try:
        metafields = get_product_metafields(shopify, productId)
        image_urls = resolve_metafield_images(shopify, metafields)
    except Exception as e:
        logger.exception("error fetching metafields for %s", productId)
        return {"success": False, "error": str(e)}
    return {"success": True, "imageUrls": image_urls}
