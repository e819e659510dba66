"""
News API Client Library

A Python client library that sends HHMAC-signed requests to the News
publishing API and classifies its responses.

Example usage:
    from news_api_client import NewsAPIClient

    client = NewsAPIClient("your-api-id", "your-base64-secret", timeout=30000)
    channel = client.get("/channels/<channel-id>")
"""

from .client import NewsAPIClient
from .exceptions import (
    NewsAPIClientError,
    ConfigurationError,
    InvalidRequestError,
    FormEncodingError,
    HTTPError,
    RequestTimeoutError,
    ResponseParseError,
    APIError,
    UnexpectedStatusError
)
from .form_data import encode_form_data
from .payload import AlertPayload, EncodedPayload, build_payload
from .signer import RequestSigner
from .transaction import Outcome, Transaction, TransactionState, classify_body
from .constants import DEFAULT_CONFIG, DEFAULT_HOST

__version__ = "1.0.0"
__all__ = [
    "NewsAPIClient",
    "NewsAPIClientError",
    "ConfigurationError",
    "InvalidRequestError",
    "FormEncodingError",
    "HTTPError",
    "RequestTimeoutError",
    "ResponseParseError",
    "APIError",
    "UnexpectedStatusError",
    "encode_form_data",
    "AlertPayload",
    "EncodedPayload",
    "build_payload",
    "RequestSigner",
    "Outcome",
    "Transaction",
    "TransactionState",
    "classify_body",
    "DEFAULT_CONFIG",
    "DEFAULT_HOST"
]
