"""
Tests for custom exception classes.
"""

from common.exceptions import (
    SyncException,
    ConfigurationException,
    BitrixAPIException,
    ValidationException,
)


def test_sync_exception_basic():
    """Test basic SyncException functionality"""
    exc = SyncException("Test error")
    assert str(exc) == "Test error"
    assert exc.details == {}


def test_sync_exception_with_details():
    """Test SyncException with details dict"""
    details = {"variable": "BITRIX_CATEGORY_ID", "value": "one"}
    exc = SyncException("Test error", details=details)
    assert str(exc) == "Test error"
    assert exc.details == details


def test_configuration_exception():
    """Test ConfigurationException is a SyncException"""
    exc = ConfigurationException("Bad config", details={"variable": "BITRIX_STAGE_MAP"})
    assert isinstance(exc, SyncException)
    assert exc.details["variable"] == "BITRIX_STAGE_MAP"


def test_bitrix_api_exception():
    """Test BitrixAPIException carries the REST error payload"""
    exc = BitrixAPIException(
        "Bitrix crm.deal.add failed: Invalid field",
        method="crm.deal.add",
        error="ERROR_CORE",
        error_description="Invalid field",
    )
    assert isinstance(exc, SyncException)
    assert str(exc) == "Bitrix crm.deal.add failed: Invalid field"
    assert exc.method == "crm.deal.add"
    assert exc.error == "ERROR_CORE"
    assert exc.details == {
        "method": "crm.deal.add",
        "error": "ERROR_CORE",
        "error_description": "Invalid field",
    }


def test_validation_exception():
    """Test ValidationException is a SyncException"""
    exc = ValidationException("Webhook body is not a Shopify order")
    assert isinstance(exc, SyncException)
    assert str(exc) == "Webhook body is not a Shopify order"
