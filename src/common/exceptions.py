"""
Custom exception classes for the Shopify → Bitrix24 integration layer.

The order mapper itself never raises; these are used by configuration
loading, the Bitrix REST client and the Lambda handlers.
"""


class SyncException(Exception):
    """Base exception for all sync operations"""

    def __init__(self, message: str, details: dict = None):
        super().__init__(message)
        self.details = details or {}


class ConfigurationException(SyncException):
    """Raised when environment configuration cannot be parsed"""

    pass


class BitrixAPIException(SyncException):
    """Raised when the Bitrix24 REST API returns an error payload"""

    def __init__(self, message: str, method: str, error: str = "", error_description: str = ""):
        super().__init__(
            message,
            details={
                "method": method,
                "error": error,
                "error_description": error_description,
            },
        )
        self.method = method
        self.error = error
        self.error_description = error_description


class ValidationException(SyncException):
    """Raised when an inbound payload is not a usable Shopify order"""

    pass
