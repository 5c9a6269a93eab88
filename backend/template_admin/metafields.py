import json
import logging
from concurrent.futures import ThreadPoolExecutor
from typing import List, Optional

from template_admin.models import Metafield, to_product_gid

log = logging.getLogger(__name__)

IMAGE_METAFIELD_KEYS = ("custom_image", "builder_images")
MAX_LOOKUP_WORKERS = 8


def get_product_metafields(client, product_id: str) -> List[Metafield]:
    return [Metafield(**node) for node in client.list_product_metafields(to_product_gid(product_id))]


def parse_media_ids(value: str) -> List[str]:
    """A JSON list of media gids, or the raw value as a single reference."""
    try:
        parsed = json.loads(value)
    except (TypeError, ValueError):
        return [value]
    if isinstance(parsed, list):
        return [str(v) for v in parsed]
    return [value]


def _lookup(client, media_id: str) -> Optional[str]:
    try:
        return client.get_media_image_url(media_id)
    except Exception:
        log.warning("media %s could not be resolved", media_id, exc_info=True)
        return None


def resolve_metafield_images(client, metafields: List[Metafield]) -> List[dict]:
    out: List[dict] = []
    with ThreadPoolExecutor(max_workers=MAX_LOOKUP_WORKERS) as pool:
        for mf in metafields:
            if not mf.value or mf.key not in IMAGE_METAFIELD_KEYS:
                continue
            try:
                media_ids = parse_media_ids(mf.value)
                image_urls = list(pool.map(lambda mid: _lookup(client, mid), media_ids))
            except Exception:
                log.exception("error processing metafield %s", mf.key)
                continue
            out.append({"metafieldKey": mf.key, "imageUrls": image_urls})
    return out
