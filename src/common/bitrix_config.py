"""
Bitrix24 pipeline configuration and the lookup tables used by the order mapper.

Everything here is static: the catalog ids for SKUs and shipping, the deal
pipeline (category) and the translation of Shopify financial statuses and
sales channels into Bitrix stage and source ids. Values come from
environment variables so the same Lambda package can target several portals.
"""

import json
import logging
import os
import re
from typing import Mapping, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from common.exceptions import ConfigurationException

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Stage mappings (Shopify financial_status -> Bitrix deal stage)
# Stage ids without a "C<n>:" prefix belong to the default pipeline.
# ---------------------------------------------------------------------------

SHOPIFY_STATUS_TO_BITRIX_STAGE: dict[str, str] = {
    "pending": "NEW",
    "authorized": "PREPARATION",
    "partially_paid": "PREPAYMENT_INVOICE",
    "paid": "WON",
    "partially_refunded": "WON",
    "refunded": "LOSE",
    "voided": "LOSE",
}

DEFAULT_STAGE_ID = "NEW"

_CATEGORY_PREFIX = re.compile(r"^C\d+:")

# ---------------------------------------------------------------------------
# Source mappings (Shopify source_name -> Bitrix SOURCE_ID)
# ---------------------------------------------------------------------------

SHOPIFY_SOURCE_TO_BITRIX_SOURCE: dict[str, str] = {
    "web": "WEB",
    "pos": "STORE",
    "shopify_draft_order": "CALL",
}

DEFAULT_SOURCE_ID = "OTHER"


def category_stage_id(stage_id: str, category_id: int) -> str:
    """Prefix a stage id with its pipeline ("WON" -> "C3:WON") when category_id > 0."""
    if category_id > 0 and not _CATEGORY_PREFIX.match(stage_id):
        return f"C{category_id}:{stage_id}"
    return stage_id


class BitrixConfig(BaseModel):
    """
    Static Bitrix24 configuration consumed by the order mapper.

    category_id and shipping_product_id use <= 0 to mean "not configured".
    A SKU mapped to 0 (or missing) is treated as unmapped and dropped.
    """

    category_id: int = Field(default=0, description="Deal pipeline (category) id, <= 0 for none")
    default_stage_id: str = Field(default=DEFAULT_STAGE_ID, description="Stage for unknown financial statuses")
    shipping_product_id: int = Field(default=0, description="Catalog product used for the shipping row, <= 0 for none")
    sku_to_product_id: dict[str, int] = Field(default_factory=dict, description="Shopify SKU -> Bitrix catalog product id")
    stage_by_financial_status: dict[str, str] = Field(
        default_factory=lambda: dict(SHOPIFY_STATUS_TO_BITRIX_STAGE),
        description="Shopify financial_status -> Bitrix STAGE_ID",
    )
    source_by_name: dict[str, str] = Field(
        default_factory=lambda: dict(SHOPIFY_SOURCE_TO_BITRIX_SOURCE),
        description="Shopify source_name -> Bitrix SOURCE_ID",
    )
    default_source_id: str = Field(default=DEFAULT_SOURCE_ID, description="SOURCE_ID for unknown channels")

    model_config = ConfigDict(frozen=True)

    @field_validator("stage_by_financial_status", "source_by_name", mode="after")
    @classmethod
    def lowercase_keys(cls, v):
        """Lookups are case-insensitive; store keys lowercased."""
        return {str(k).strip().lower(): val for k, val in v.items()}

    def financial_status_to_stage_id(self, financial_status: Optional[str]) -> Optional[str]:
        """Stage id for a Shopify financial status, or None when unknown."""
        if not isinstance(financial_status, str) or not financial_status.strip():
            return None
        return self.stage_by_financial_status.get(financial_status.strip().lower())

    def source_name_to_source_id(self, source_name: Optional[str]) -> str:
        """Source id for a Shopify sales channel; unknown channels get default_source_id."""
        if not isinstance(source_name, str) or not source_name.strip():
            return self.default_source_id
        return self.source_by_name.get(source_name.strip().lower(), self.default_source_id)

    def product_id_for_sku(self, sku: Optional[str]) -> Optional[int]:
        """Catalog product id for a SKU, or None when unmapped or mapped to <= 0."""
        if sku is None:
            return None
        product_id = self.sku_to_product_id.get(str(sku))
        if not product_id or product_id <= 0:
            return None
        return product_id


# ---------------------------------------------------------------------------
# Environment loading
# ---------------------------------------------------------------------------

def load_bitrix_config(environ: Optional[Mapping[str, str]] = None) -> BitrixConfig:
    """
    Build a BitrixConfig from environment variables.

    Args:
        environ: Mapping to read from (defaults to os.environ)

    Raises:
        ConfigurationException: If a variable holds invalid JSON or a
            non-integer id
    """
    env = os.environ if environ is None else environ

    category_id = _int_var(env, "BITRIX_CATEGORY_ID", 0)
    shipping_product_id = _int_var(env, "BITRIX_SHIPPING_PRODUCT_ID", 0)

    sku_map = _json_object_var(env, "BITRIX_SKU_TO_PRODUCT_ID")
    sku_to_product_id = {}
    for sku, product_id in sku_map.items():
        try:
            sku_to_product_id[str(sku)] = int(product_id)
        except (TypeError, ValueError):
            raise ConfigurationException(
                f"BITRIX_SKU_TO_PRODUCT_ID has a non-integer product id for SKU {sku}",
                details={"variable": "BITRIX_SKU_TO_PRODUCT_ID", "sku": sku, "value": product_id},
            )

    stages = {
        status: category_stage_id(stage, category_id)
        for status, stage in SHOPIFY_STATUS_TO_BITRIX_STAGE.items()
    }
    stages.update({str(k): str(v) for k, v in _json_object_var(env, "BITRIX_STAGE_MAP").items()})

    sources = dict(SHOPIFY_SOURCE_TO_BITRIX_SOURCE)
    sources.update({str(k): str(v) for k, v in _json_object_var(env, "BITRIX_SOURCE_MAP").items()})

    default_stage = (env.get("BITRIX_DEFAULT_STAGE_ID") or "").strip() or category_stage_id(
        DEFAULT_STAGE_ID, category_id
    )
    default_source = (env.get("BITRIX_DEFAULT_SOURCE_ID") or "").strip() or DEFAULT_SOURCE_ID

    config = BitrixConfig(
        category_id=category_id,
        default_stage_id=default_stage,
        shipping_product_id=shipping_product_id,
        sku_to_product_id=sku_to_product_id,
        stage_by_financial_status=stages,
        source_by_name=sources,
        default_source_id=default_source,
    )
    logger.debug(
        "Loaded Bitrix config: category=%s, shipping_product=%s, %d SKUs mapped",
        config.category_id, config.shipping_product_id, len(config.sku_to_product_id),
    )
    return config


def _int_var(env: Mapping[str, str], name: str, default: int) -> int:
    raw = (env.get(name) or "").strip()
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError:
        raise ConfigurationException(
            f"{name} must be an integer, got {raw!r}",
            details={"variable": name, "value": raw},
        )


def _json_object_var(env: Mapping[str, str], name: str) -> dict:
    raw = (env.get(name) or "").strip()
    if not raw:
        return {}
    try:
        value = json.loads(raw)
    except json.JSONDecodeError as e:
        raise ConfigurationException(
            f"{name} is not valid JSON: {e}",
            details={"variable": name},
        )
    if not isinstance(value, dict):
        raise ConfigurationException(
            f"{name} must be a JSON object",
            details={"variable": name},
        )
    return value
