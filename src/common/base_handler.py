"""
Template-method base for the Bitrix sync Lambda handlers.

Handles the parts every webhook entry point shares: request logging, the
500 fallback, JSON responses, base64 body decoding and lazy construction
of the Bitrix client and configuration. Webhook bodies carry customer
data, so only request metadata is logged, never the body itself.
"""

from abc import ABC, abstractmethod
import base64
import json
import logging
import os
from typing import Any

# Request headers safe to log; everything else may identify the customer
LOGGED_HEADERS = ("x-shopify-topic", "x-shopify-shop-domain", "x-shopify-webhook-id")


class BaseLambdaHandler(ABC):
    """
    Base for Lambda handlers that receive webhooks and write to Bitrix24.

    Subclasses implement _execute().
    """

    def __init__(self):
        self.logger = logging.getLogger(self.__class__.__name__)
        self.logger.setLevel(os.getenv("LOG_LEVEL", "INFO"))
        self._bitrix_client = None
        self._bitrix_config = None

    @property
    def bitrix_client(self):
        """Lazy initialization of Bitrix24 client"""
        if self._bitrix_client is None:
            from common.bitrix_client import get_bitrix_client

            self._bitrix_client = get_bitrix_client()
        return self._bitrix_client

    @property
    def bitrix_config(self):
        """Lazy load of Bitrix pipeline/catalog configuration"""
        if self._bitrix_config is None:
            from common.bitrix_config import load_bitrix_config

            self._bitrix_config = load_bitrix_config()
        return self._bitrix_config

    def handle(self, event: dict, context: dict) -> dict:
        """
        Main entry point for Lambda handler (Template Method).

        Args:
            event: Lambda event dict
            context: Lambda context

        Returns:
            HTTP response dict with statusCode and body
        """
        try:
            self.logger.info("Received event: %s", self._describe_event(event))
            result = self._execute(event, context)
            self.logger.info("Handler completed with status %s", result.get("statusCode"))
            return result
        except Exception as e:
            self.logger.error("Handler error: %s", e, exc_info=True)
            return self._error_response(str(e), 500)

    @abstractmethod
    def _execute(self, event: dict, context: dict) -> dict:
        """
        Subclasses implement their specific business logic here.

        Args:
            event: Lambda event dict
            context: Lambda context

        Returns:
            HTTP response dict
        """
        pass

    def _describe_event(self, event: dict) -> dict:
        """Request metadata for logging: route, selected headers, body size."""
        headers = {k.lower(): v for k, v in (event.get("headers") or {}).items()}
        body = event.get("body")
        return {
            "path": event.get("path") or event.get("rawPath"),
            "method": event.get("httpMethod"),
            **{name: headers[name] for name in LOGGED_HEADERS if name in headers},
            "bodyLength": len(body) if isinstance(body, (str, bytes)) else None,
            "isBase64Encoded": bool(event.get("isBase64Encoded")),
        }

    def _success_response(self, data: Any, status_code: int = 200) -> dict:
        """JSON response; data is serialized with default=str"""
        return {
            "statusCode": status_code,
            "headers": {
                "Content-Type": "application/json",
                "Access-Control-Allow-Origin": "*",
            },
            "body": json.dumps(data, default=str),
        }

    def _error_response(self, message: str, status_code: int) -> dict:
        return {
            "statusCode": status_code,
            "headers": {
                "Content-Type": "application/json",
                "Access-Control-Allow-Origin": "*",
            },
            "body": json.dumps({"error": message}),
        }

    def _parse_webhook_body(self, event: dict) -> Any:
        """
        Decode the event body to JSON.

        API Gateway base64-encodes bodies it treats as binary. An empty body
        parses as {}; a body that is already decoded is returned as is.
        Raises ValueError (json.JSONDecodeError) for malformed JSON.
        """
        body = event.get("body", "")

        if event.get("isBase64Encoded"):
            body = base64.b64decode(body).decode("utf-8")

        if isinstance(body, str):
            if body:
                return json.loads(body)
            return {}

        return body
