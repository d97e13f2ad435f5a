"""
Bitrix24 REST client for deal and product-row management.

Uses an inbound webhook URL (https://<portal>/rest/<user>/<token>/), so the
token travels in the URL and no OAuth flow is needed.
"""

import os
import logging
import requests
from typing import Optional

from common.exceptions import BitrixAPIException

logger = logging.getLogger(__name__)

# Bitrix user field holding the Shopify order id on each deal
SHOPIFY_ORDER_ID_FIELD = "UF_SHOPIFY_ORDER_ID"


class BitrixClient:
    def __init__(self, webhook_url: Optional[str] = None):
        self.webhook_url = webhook_url or os.environ.get("BITRIX_WEBHOOK_URL")
        if not self.webhook_url:
            raise ValueError("Bitrix webhook URL is required")
        self.webhook_url = self.webhook_url.rstrip("/")
        self.session = requests.Session()
        self.session.headers.update(
            {
                "Content-Type": "application/json",
                "Accept": "application/json",
            }
        )

    # ------------------------------------------------------------------
    # Transport
    # ------------------------------------------------------------------

    def call(self, method: str, params: Optional[dict] = None):
        """
        Invoke a REST method and return its ``result``.

        Raises:
            BitrixAPIException: The response body carries an ``error``
            requests.HTTPError: Non-2xx response without a Bitrix error body
        """
        url = f"{self.webhook_url}/{method}.json"
        response = self.session.post(url, json=params or {})

        try:
            body = response.json()
        except ValueError:
            body = None

        if isinstance(body, dict) and body.get("error"):
            raise BitrixAPIException(
                f"Bitrix {method} failed: {body.get('error_description') or body['error']}",
                method=method,
                error=str(body["error"]),
                error_description=str(body.get("error_description") or ""),
            )

        response.raise_for_status()
        return (body or {}).get("result")

    # ------------------------------------------------------------------
    # Deals
    # ------------------------------------------------------------------

    def find_deal_by_shopify_order_id(self, order_id: str) -> Optional[str]:
        """Return the id of the deal already linked to a Shopify order, if any."""
        result = self.call(
            "crm.deal.list",
            {
                "filter": {SHOPIFY_ORDER_ID_FIELD: str(order_id)},
                "select": ["ID"],
            },
        )
        if not result:
            return None
        return str(result[0]["ID"])

    def add_deal(self, fields: dict) -> str:
        """Create a deal and return its id."""
        deal_id = self.call("crm.deal.add", {"fields": fields})
        logger.info("Created Bitrix deal: %s", deal_id)
        return str(deal_id)

    def update_deal(self, deal_id: str, fields: dict) -> bool:
        """Update an existing deal's fields."""
        result = self.call("crm.deal.update", {"id": deal_id, "fields": fields})
        logger.info("Updated Bitrix deal: %s", deal_id)
        return bool(result)

    def set_product_rows(self, deal_id: str, rows: list[dict]) -> bool:
        """Replace all product rows on a deal."""
        result = self.call("crm.deal.productrows.set", {"id": deal_id, "rows": rows})
        return bool(result)


def get_bitrix_client() -> BitrixClient:
    """Factory returning a client configured from BITRIX_WEBHOOK_URL."""
    return BitrixClient()
