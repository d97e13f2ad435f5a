"""
Mapping from a Shopify order to a Bitrix24 deal and its product rows.

This module is the single source of truth for the order → deal translation.
It handles:
  - Monetary aggregates that Shopify exposes under several historical
    field names (current/adjusted values preferred over legacy ones)
  - Channel classification (point-of-sale orders are pre-orders)
  - Stage and source resolution through BitrixConfig lookups
  - Line items → product rows, with per-unit discount netting
  - An optional trailing shipping row

The mapper never raises for partial or malformed orders: every field
degrades to None, 0 or a computed fallback. Line items whose SKU has no
catalog mapping are dropped, reported through ``on_skip`` and returned in
``DealMapping.skipped_skus``.
"""

import logging
from decimal import Decimal
from typing import Any, Callable, Optional

from pydantic import BaseModel, ConfigDict, Field

from common.bitrix_config import BitrixConfig
from common.validators import (
    ZERO,
    dig,
    first_present,
    is_absent,
    parse_amount,
    parse_positive_int,
    to_number,
)

logger = logging.getLogger(__name__)

DEFAULT_CURRENCY = "EUR"

# Sales channel that marks an order as an offline pre-order
PREORDER_SOURCE_NAME = "pos"
PREORDER_DESCRIPTION = "offline (pre-order)"
STOCK_DESCRIPTION = "online (stock)"

# Bitrix DISCOUNT_TYPE_ID: 1 = monetary, 2 = percentage
DISCOUNT_TYPE_MONETARY = 1
TAX_INCLUDED = "Y"

# Provisional: every row uses this rate until orders carry a usable
# per-line tax rate source.
PROVISIONAL_TAX_RATE = 19


# ---------------------------------------------------------------------------
# Output models
# ---------------------------------------------------------------------------

class ProductRow(BaseModel):
    """One crm.deal.productrows entry, serialized with Bitrix field names."""

    product_id: int = Field(alias="PRODUCT_ID", description="Bitrix catalog product id")
    price: float = Field(alias="PRICE", description="Unit price after discount")
    quantity: int = Field(alias="QUANTITY")
    discount_type_id: int = Field(default=DISCOUNT_TYPE_MONETARY, alias="DISCOUNT_TYPE_ID")
    discount_sum: float = Field(default=0, alias="DISCOUNT_SUM", description="Discount per unit")
    tax_included: str = Field(default=TAX_INCLUDED, alias="TAX_INCLUDED")
    tax_rate: float = Field(default=PROVISIONAL_TAX_RATE, alias="TAX_RATE")

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    def to_bitrix(self) -> dict:
        return self.model_dump(by_alias=True)


class DealMapping(BaseModel):
    """Result of mapping one order: deal fields, product rows and dropped SKUs."""

    deal: dict[str, Any] = Field(description="Flat crm.deal field map")
    product_rows: list[ProductRow] = Field(default_factory=list)
    skipped_skus: list[Optional[str]] = Field(
        default_factory=list, description="SKUs of line items dropped for lack of a catalog mapping"
    )

    def product_rows_payload(self) -> list[dict]:
        return [row.to_bitrix() for row in self.product_rows]

    def to_dict(self) -> dict:
        """JSON-ready form: {"deal", "productRows", "skippedSkus"}."""
        return {
            "deal": dict(self.deal),
            "productRows": self.product_rows_payload(),
            "skippedSkus": list(self.skipped_skus),
        }


# ---------------------------------------------------------------------------
# Public: Shopify order → Bitrix deal
# ---------------------------------------------------------------------------

def map_shopify_order_to_bitrix_deal(
    order: dict,
    config: BitrixConfig,
    on_skip: Optional[Callable[[Optional[str], str], None]] = None,
) -> DealMapping:
    """
    Map a Shopify order (REST Admin API / webhook JSON) to Bitrix deal
    fields and product rows.

    Args:
        order: Shopify order object
        config: Bitrix catalog, pipeline and lookup configuration
        on_skip: Called as on_skip(sku, message) once per dropped line
            item. Defaults to a warning on this module's logger.

    Returns:
        DealMapping with deal, product_rows and skipped_skus
    """
    if not isinstance(order, dict):
        order = {}
    report = on_skip or _log_skipped_sku

    # ---- Aggregates ----
    total_price = _total_price(order)
    total_discount = _total_discount(order)
    total_tax = _total_tax(order)
    shipping_price = _shipping_price(order)

    # ---- Classification ----
    source_name = order.get("source_name")
    is_preorder = source_name == PREORDER_SOURCE_NAME
    source_description = PREORDER_DESCRIPTION if is_preorder else STOCK_DESCRIPTION
    source_id = config.source_name_to_source_id(source_name)

    stage_id = config.financial_status_to_stage_id(order.get("financial_status")) or config.default_stage_id

    customer = order.get("customer") if isinstance(order.get("customer"), dict) else None

    order_id = order.get("id")
    order_name = first_present(order.get("name"))
    order_ref = first_present(order_name, order_id)

    deal: dict[str, Any] = {
        "TITLE": order_name or f"Order #{order_id}",
        "OPPORTUNITY": to_number(total_price),
        "CURRENCY_ID": first_present(order.get("currency"), default=DEFAULT_CURRENCY),
        "COMMENTS": f"Shopify order {order_ref}",
        "CATEGORY_ID": config.category_id if config.category_id > 0 else None,
        "STAGE_ID": stage_id,
        "SOURCE_ID": source_id,
        "SOURCE_DESCRIPTION": source_description,
        # Key back to the Shopify order, kept as an exact string
        "UF_SHOPIFY_ORDER_ID": None if is_absent(order_id) else str(order_id),
        "UF_SHOPIFY_CUSTOMER_EMAIL": first_present(order.get("email"), dig(customer, "email")),
        "UF_SHOPIFY_CUSTOMER_NAME": _customer_name(customer),
        # Aggregates for reports
        "UF_SHOPIFY_TOTAL_DISCOUNT": to_number(total_discount),
        "UF_SHOPIFY_SHIPPING_PRICE": to_number(shipping_price),
        "UF_SHOPIFY_TOTAL_TAX": to_number(total_tax),
    }

    # ---- Product rows ----
    product_rows: list[ProductRow] = []
    skipped_skus: list[Optional[str]] = []

    line_items = order.get("line_items")
    if not isinstance(line_items, list):
        line_items = []

    for item in line_items:
        sku = item.get("sku") if isinstance(item, dict) else None
        product_id = config.product_id_for_sku(sku)

        if product_id is None:
            sku_key = None if sku is None else str(sku)
            report(sku_key, f"[ORDER MAPPER] SKU {sku_key} not found in mapping or not configured, skipping")
            skipped_skus.append(sku_key)
            continue

        product_rows.append(_line_item_row(item, product_id))

    if shipping_price > ZERO and config.shipping_product_id > 0:
        product_rows.append(
            ProductRow(
                product_id=config.shipping_product_id,
                price=to_number(shipping_price),
                quantity=1,
                discount_sum=0,
            )
        )

    return DealMapping(deal=deal, product_rows=product_rows, skipped_skus=skipped_skus)


# ---------------------------------------------------------------------------
# Private helpers
# ---------------------------------------------------------------------------

def _log_skipped_sku(sku: Optional[str], message: str) -> None:
    logger.warning(message)


def _total_price(order: dict) -> Decimal:
    return parse_amount(first_present(order.get("current_total_price"), order.get("total_price")))


def _total_discount(order: dict) -> Decimal:
    return parse_amount(first_present(order.get("current_total_discounts"), order.get("total_discounts")))


def _total_tax(order: dict) -> Decimal:
    return parse_amount(order.get("current_total_tax"))


def _shipping_price(order: dict) -> Decimal:
    """Shipping from the newest price set down to the first shipping line."""
    return parse_amount(
        first_present(
            dig(order, "current_total_shipping_price_set", "shop_money", "amount"),
            dig(order, "total_shipping_price_set", "shop_money", "amount"),
            order.get("shipping_price"),
            dig(order, "shipping_lines", 0, "price"),
        )
    )


def _customer_name(customer: Optional[dict]) -> Optional[str]:
    """'First Last' with single spacing, or None when both parts are empty."""
    if not customer:
        return None
    parts = []
    for key in ("first_name", "last_name"):
        value = customer.get(key)
        if not is_absent(value):
            parts.append(str(value).strip())
    return " ".join(parts) or None


def _line_item_row(item: dict, product_id: int) -> ProductRow:
    """
    Net the whole-line discount into the unit price.

    Bitrix stores PRICE as the price actually charged per unit and
    DISCOUNT_SUM as the per-unit discount already subtracted from it.
    """
    quantity = parse_positive_int(item.get("quantity"), default=1)
    line_discount = parse_amount(item.get("total_discount"))
    discount_per_item = line_discount / Decimal(quantity)
    unit_price = parse_amount(item.get("price"))

    return ProductRow(
        product_id=product_id,
        price=to_number(unit_price - discount_per_item),
        quantity=quantity,
        discount_sum=to_number(discount_per_item),
    )
