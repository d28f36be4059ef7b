"""Fetching the message template catalog of a WhatsApp Business Account."""

from typing import Any

from omnichat.messaging.meta.client import MetaGraphClient

TEMPLATE_FIELDS = "name,status,language,category,id,components"
PAGE_SIZE = 100


async def fetch_message_templates(
    client: MetaGraphClient, business_account_id: str, max_pages: int = 20
) -> list[dict[str, Any]]:
    """Return every template of a business account, following cursor paging."""
    templates: list[dict[str, Any]] = []
    params: dict[str, Any] = {"fields": TEMPLATE_FIELDS, "limit": PAGE_SIZE}

    for _ in range(max_pages):
        response = await client.get(f"{business_account_id}/message_templates", params)
        templates.extend(response.get("data") or [])

        paging = response.get("paging") or {}
        after = (paging.get("cursors") or {}).get("after")
        if not paging.get("next") or not after:
            break
        params = {**params, "after": after}

    return templates
