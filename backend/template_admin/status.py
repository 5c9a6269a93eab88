import logging

from template_admin.models import PENDING_TAG

log = logging.getLogger(__name__)

ADD_PENDING = "addPending"
REMOVE_PENDING = "removePending"
REMOVE_PRODUCT = "removeProduct"

GENERIC_ERROR = "An error occurred while processing the request."


def apply_action(client, action_type: str, product_id: str) -> dict:
    """Toggle the pending tag or delete a product; one remote call per action."""
    try:
        if action_type == ADD_PENDING:
            client.add_tags(product_id, [PENDING_TAG])
            return {"success": True, "updatedProductId": product_id}
        if action_type == REMOVE_PENDING:
            client.remove_tags(product_id, [PENDING_TAG])
            return {"success": True, "updatedProductId": product_id}
        if action_type == REMOVE_PRODUCT:
            client.delete_product(product_id)
            return {"success": True, "deletedProductId": product_id}
    except Exception:
        log.exception("status action %s failed for %s", action_type, product_id)
        return {"success": False, "error": GENERIC_ERROR}
    return {"success": False, "error": "Unknown action."}
