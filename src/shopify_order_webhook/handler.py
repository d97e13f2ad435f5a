"""
Lambda handler: Shopify order webhook → Bitrix24 deal

Handles the Shopify order topics (orders/create, orders/updated,
orders/paid, ...). The webhook body is the full order object, so no call
back to Shopify is needed.

  1. Map the order to Bitrix deal fields and product rows.
  2. If a deal already carries UF_SHOPIFY_ORDER_ID for this order, update
     it; otherwise create a new deal.
  3. Replace the deal's product rows with the freshly mapped ones.

When BITRIX_WEBHOOK_URL is not configured the handler runs in dry-run mode
and returns the mapped payload without contacting Bitrix.
"""

import os

from common.base_handler import BaseLambdaHandler
from common.exceptions import BitrixAPIException, ValidationException
from common.order_mapper import map_shopify_order_to_bitrix_deal

SHOPIFY_TOPIC_HEADER = "x-shopify-topic"


class ShopifyOrderWebhookHandler(BaseLambdaHandler):
    """
    Syncs Shopify orders delivered by webhook to Bitrix24 deals.
    """

    def _execute(self, event: dict, context: dict) -> dict:
        try:
            order = self._parse_order(event)
        except ValidationException as exc:
            self.logger.warning("Rejected webhook payload: %s", exc)
            return self._error_response(str(exc), 400)

        topic = self._topic(event)
        order_id = str(order["id"])
        self.logger.info("Processing Shopify order %s (%s)", order_id, topic or "unknown topic")

        skipped: list = []

        def on_skip(sku, message: str) -> None:
            self.logger.warning("Order %s: %s", order_id, message)
            skipped.append(sku)

        mapping = map_shopify_order_to_bitrix_deal(order, self.bitrix_config, on_skip=on_skip)

        if skipped:
            self.logger.warning(
                "Order %s: %d line item(s) without a Bitrix product mapping", order_id, len(skipped)
            )

        if not os.environ.get("BITRIX_WEBHOOK_URL"):
            self.logger.info("BITRIX_WEBHOOK_URL not set, returning mapped deal for order %s", order_id)
            return self._success_response({"dryRun": True, "topic": topic, **mapping.to_dict()})

        try:
            deal_id, action = self._upsert_deal(order_id, mapping.deal)
            self.bitrix_client.set_product_rows(deal_id, mapping.product_rows_payload())
        except BitrixAPIException as exc:
            self.logger.error("Bitrix rejected order %s: %s (%s)", order_id, exc, exc.details)
            raise

        self.logger.info(
            "Order %s %s as Bitrix deal %s with %d product row(s)",
            order_id, action, deal_id, len(mapping.product_rows),
        )

        return self._success_response(
            {
                "orderId": order_id,
                "dealId": deal_id,
                "action": action,
                "topic": topic,
                "productRows": len(mapping.product_rows),
                "skippedSkus": mapping.skipped_skus,
            }
        )

    # ---------------------------------------------------------------------------
    # Helpers
    # ---------------------------------------------------------------------------

    def _parse_order(self, event: dict) -> dict:
        """Decode the webhook body; it must be a JSON object with an order id."""
        try:
            order = self._parse_webhook_body(event)
        except ValueError as exc:
            raise ValidationException(f"Webhook body is not valid JSON: {exc}")

        if not isinstance(order, dict) or order.get("id") in (None, ""):
            raise ValidationException(
                "Webhook body is not a Shopify order",
                details={"keys": sorted(order)[:20] if isinstance(order, dict) else []},
            )
        return order

    def _topic(self, event: dict) -> str:
        headers = {k.lower(): v for k, v in (event.get("headers") or {}).items()}
        return headers.get(SHOPIFY_TOPIC_HEADER, "")

    def _upsert_deal(self, order_id: str, fields: dict) -> tuple[str, str]:
        """Update the deal linked to the order, or create one. Returns (deal_id, action)."""
        existing_id = self.bitrix_client.find_deal_by_shopify_order_id(order_id)
        if existing_id:
            self.bitrix_client.update_deal(existing_id, fields)
            return existing_id, "updated"
        return self.bitrix_client.add_deal(fields), "created"


# Lambda entry point
def lambda_handler(event: dict, context: dict) -> dict:
    """
    Lambda entry point for the Shopify order webhook handler.

    Args:
        event: API Gateway event with the Shopify order payload
        context: Lambda context

    Returns:
        HTTP response with status and details
    """
    handler = ShopifyOrderWebhookHandler()
    return handler.handle(event, context)
