import logging
from typing import List

from template_admin.config import TEMPLATE_PRICE, TEMPLATE_PUBLICATION_ID
from template_admin.models import PENDING_TAG, ImageSlot, numeric_id_from_gid, to_product_gid
from template_admin.steps import StepSequence
from template_admin.storage import image_key

log = logging.getLogger(__name__)

MAX_IMAGE_SLOTS = 3
CATEGORY_TAGS = [PENDING_TAG, "Boxes", "customdesign"]

DUPLICATE_TITLE = "Product title already exists. Please use a different title."
CREATED_MESSAGE = "Your template has been successfully created. Your template will be checked by our staff."
UPDATED_MESSAGE = "The template has been successfully updated. Your template will be checked by our staff."


class DuplicateTitleError(ValueError):
    pass


def _collect_image_urls(seq: StepSequence, store, slots: List[ImageSlot], *, allow_urls: bool) -> List[str]:
    """Upload file slots (and pass through http URLs when allowed) in slot order; empty slots are skipped."""
    urls: List[str] = []
    for slot in sorted(slots, key=lambda s: s.index)[:MAX_IMAGE_SLOTS]:
        if slot.content:
            url = seq.run(
                f"upload image {slot.index}",
                store.save_image,
                image_key(slot.index),
                slot.content,
                compensate=store.delete_image,
            )
            urls.append(url)
        elif allow_urls and slot.url and slot.url.startswith("http"):
            urls.append(slot.url)
        else:
            log.info("no valid file or URL for image %s", slot.index)
    return urls


def create_template(client, store, title: str, tag: str | None, slots: List[ImageSlot], *, publication_id: str = TEMPLATE_PUBLICATION_ID, price: str = TEMPLATE_PRICE) -> dict:
    if client.find_product_by_title(title):
        raise DuplicateTitleError(DUPLICATE_TITLE)

    seq = StepSequence("create template")
    urls = _collect_image_urls(seq, store, slots, allow_urls=False)
    tags = [t for t in [tag, *CATEGORY_TAGS] if t]
    product = seq.run(
        "create product",
        client.create_product,
        title,
        tags,
        price,
        compensate=lambda p: client.delete_product(p["id"]),
    )
    if urls:
        seq.run("attach media", client.create_product_media, product["id"], urls, "Product image")
    published = seq.run("publish product", client.publish_product, product["id"], publication_id)
    log.info("template created id=%s images=%d", product["id"], len(urls))
    return {
        "success": True,
        "product": product,
        "publishedAt": (published or {}).get("publishedAt"),
        "message": CREATED_MESSAGE,
    }


def edit_template(client, store, product_id: str, title: str, slots: List[ImageSlot]) -> dict:
    """Rename a template, mark it pending again, and replace its media when new images are given.

    Media is only touched when at least one image slot is filled; tags are always rewritten.
    """
    gid = to_product_gid(product_id)
    own_id = numeric_id_from_gid(gid)
    matches = client.find_products_by_title(title)
    if any(numeric_id_from_gid(m.get("id")) != own_id for m in matches):
        raise DuplicateTitleError(DUPLICATE_TITLE)

    seq = StepSequence("edit template")
    urls = _collect_image_urls(seq, store, slots, allow_urls=True)
    product = seq.run("update title", client.update_product, gid, title=title)

    tags = list(product.get("tags") or [])
    if PENDING_TAG not in tags:
        tags.append(PENDING_TAG)
    product = seq.run("update tags", client.update_product, gid, tags=tags)

    if urls:
        media_ids = seq.run("list media", client.list_product_media_ids, gid, record=False)
        if media_ids:
            seq.run("delete media", client.delete_product_media, gid, media_ids)
        seq.run("attach media", client.create_product_media, gid, urls, "Updated product image")
    log.info("template updated id=%s images=%d", gid, len(urls))
    return {"success": True, "product": product, "message": UPDATED_MESSAGE}


def remove_template(client, product_id: str) -> dict:
    deleted = client.delete_product(to_product_gid(product_id))
    return {"success": True, "message": f"Product with ID {deleted} has been deleted."}
