"""
Pytest configuration — adds src/ to the path so all modules can be imported.
"""

import sys
import os

import pytest

# Add the src directory so Lambda modules can be imported without packaging
sys.path.insert(0, os.path.join(os.path.dirname(__file__), "..", "src"))

# Pre-import handler modules so @patch decorators can resolve dotted paths
import shopify_order_webhook.handler  # noqa: F401,E402

from common.bitrix_config import BitrixConfig  # noqa: E402


@pytest.fixture
def bitrix_config():
    """Config matching the worked example: ABC → 42, paid → C1:WON, web → WEB."""
    return BitrixConfig(
        category_id=1,
        default_stage_id="C1:NEW",
        shipping_product_id=900,
        sku_to_product_id={"ABC": 42, "DEF": 43, "UNUSED": 0},
        stage_by_financial_status={"paid": "C1:WON", "pending": "C1:NEW", "refunded": "C1:LOSE"},
        source_by_name={"web": "WEB", "pos": "STORE"},
        default_source_id="OTHER",
    )


@pytest.fixture
def sample_order():
    """Shopify order from the worked example."""
    return {
        "id": 1001,
        "name": "#1001",
        "currency": "EUR",
        "email": "jane@example.com",
        "current_total_price": "59.99",
        "financial_status": "paid",
        "source_name": "web",
        "customer": {"first_name": "Jane", "last_name": "Doe", "email": "jane.customer@example.com"},
        "line_items": [
            {"sku": "ABC", "price": "29.99", "quantity": 2, "total_discount": "10"},
        ],
    }
