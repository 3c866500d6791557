import logging

import httpx

from notion_todoist_bridge.notion.block_parser import blocks_mention_user, blocks_to_text
from notion_todoist_bridge.notion.property_parser import (
    PageContent,
    extract_page_content,
    extract_status,
    find_status_property,
    properties_mention_user,
)
from notion_todoist_bridge.sync.status import StatusCategory, resolve_status_option

logger = logging.getLogger(__name__)

NOTION_API_BASE = "https://api.notion.com/v1"
NOTION_API_VERSION = "2022-06-28"


class NotionClient:
    def __init__(self, api_key: str, *, transport: httpx.AsyncBaseTransport | None = None) -> None:
        self._client = httpx.AsyncClient(
            base_url=NOTION_API_BASE,
            headers={
                "Authorization": f"Bearer {api_key}",
                "Notion-Version": NOTION_API_VERSION,
                "Content-Type": "application/json",
            },
            timeout=30.0,
            transport=transport,
        )

    async def close(self) -> None:
        await self._client.aclose()

    async def get_page(self, page_id: str) -> dict:
        resp = await self._client.get(f"/pages/{page_id}")
        resp.raise_for_status()
        return resp.json()

    async def get_page_properties(self, page_id: str) -> dict:
        """Get a page and return its properties dict."""
        page = await self.get_page(page_id)
        return page.get("properties", {})

    async def get_database(self, database_id: str) -> dict:
        resp = await self._client.get(f"/databases/{database_id}")
        resp.raise_for_status()
        return resp.json()

    async def get_block_children(self, block_id: str) -> list[dict]:
        """Get all child blocks of a block/page, handling pagination."""
        blocks = []
        cursor = None

        while True:
            params = {"page_size": 100}
            if cursor:
                params["start_cursor"] = cursor
            resp = await self._client.get(
                f"/blocks/{block_id}/children", params=params
            )
            resp.raise_for_status()
            data = resp.json()
            blocks.extend(data["results"])

            if not data.get("has_more"):
                break
            cursor = data["next_cursor"]

        return blocks

    async def get_page_content(self, page_id: str) -> PageContent:
        """Read title, body, priority, due date and tags of a page."""
        page = await self.get_page(page_id)
        blocks = await self.get_block_children(page_id)
        return extract_page_content(page, blocks_to_text(blocks))

    async def get_page_status(self, page_id: str) -> str | None:
        properties = await self.get_page_properties(page_id)
        return extract_status(properties)

    async def is_user_mentioned(self, page_id: str, user_id: str) -> bool:
        """Check page properties, then top-level blocks, for a reference to ``user_id``."""
        properties = await self.get_page_properties(page_id)
        if properties_mention_user(properties, user_id):
            logger.debug("User %s referenced in properties of page %s", user_id, page_id)
            return True

        blocks = await self.get_block_children(page_id)
        if blocks_mention_user(blocks, user_id):
            logger.debug("User %s mentioned in content of page %s", user_id, page_id)
            return True

        return False

    async def get_status_options(self, page: dict, property_name: str, property_type: str) -> list[str]:
        """List the option names configured for a status/select property.

        Options live on the parent database schema; pages outside a database
        have none.
        """
        database_id = (page.get("parent") or {}).get("database_id")
        if not database_id:
            return []
        database = await self.get_database(database_id)
        prop = database.get("properties", {}).get(property_name, {})
        return [option["name"] for option in prop.get(property_type, {}).get("options", [])]

    async def update_page_status(
        self,
        page_id: str,
        requested: str,
        category: StatusCategory,
    ) -> str:
        """Set the page's status to the closest configured option. Returns the option used."""
        page = await self.get_page(page_id)
        located = find_status_property(page.get("properties", {}))
        if not located:
            raise ValueError(f"Page {page_id} has no status property")
        property_name, property_type = located

        options = await self.get_status_options(page, property_name, property_type)
        status = resolve_status_option(requested, options, category)

        resp = await self._client.patch(
            f"/pages/{page_id}",
            json={"properties": {property_name: {property_type: {"name": status}}}},
        )
        resp.raise_for_status()
        logger.info("Set '%s' of page %s to '%s'", property_name, page_id, status)
        return status
