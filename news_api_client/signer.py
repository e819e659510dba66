"""
HHMAC request signing for the News API.

The API authenticates every request with an HMAC-SHA256 signature over a
canonical request built from the method, the full URL, a UTC timestamp, the
body content type and the raw body bytes.
"""

import base64
import binascii
import datetime
import hashlib
import hmac
import logging
from typing import Callable, Dict, Optional

from requests.structures import CaseInsensitiveDict

from .constants import (
    AUTH_SCHEME,
    CONTENT_TYPE_JSON,
    HEADER_ACCEPT,
    HEADER_AUTHORIZATION,
    TIMESTAMP_FORMAT,
)
from .exceptions import ConfigurationError

logger = logging.getLogger(__name__)


def utc_now() -> datetime.datetime:
    return datetime.datetime.now(datetime.timezone.utc)


def format_timestamp(moment: datetime.datetime) -> str:
    """Format a datetime as the second-precision UTC string the API signs."""
    if moment.tzinfo is not None:
        moment = moment.astimezone(datetime.timezone.utc)
    return moment.strftime(TIMESTAMP_FORMAT)


def decode_secret(api_secret: str) -> bytes:
    """
    Decode the base64 API secret into raw HMAC key bytes.

    Raises:
        ConfigurationError: If the secret is empty or not valid base64
    """
    if not api_secret:
        raise ConfigurationError("api_secret cannot be empty")
    try:
        return base64.b64decode(api_secret, validate=True)
    except (binascii.Error, ValueError) as e:
        raise ConfigurationError(f"api_secret is not valid base64: {e}") from e


class RequestSigner:
    """
    Computes ``Authorization`` headers for News API requests.

    The decoded key is kept for the lifetime of the signer and is never
    logged or transmitted.
    """

    def __init__(self, api_id: str, api_secret: str,
                 clock: Optional[Callable[[], datetime.datetime]] = None):
        """
        Initialize the signer.

        Args:
            api_id: API key identifier sent in the clear
            api_secret: Base64-encoded API secret
            clock: Callable returning the current time (defaults to UTC now)

        Raises:
            ConfigurationError: If the credentials are unusable
        """
        if not api_id:
            raise ConfigurationError("api_id cannot be empty")
        self.api_id = api_id
        self._key = decode_secret(api_secret)
        self._clock = clock or utc_now

    def timestamp(self) -> str:
        """Current timestamp in the signed format."""
        return format_timestamp(self._clock())

    @staticmethod
    def canonical_request(method: str, host: str, path: str, timestamp: str,
                          content_type: Optional[str] = None,
                          body: Optional[bytes] = None) -> bytes:
        """
        Build the exact byte sequence that gets signed.

        The content type only takes part when the payload supplies one.
        """
        prefix = method + "https://" + host + path + timestamp + (content_type or "")
        canonical = prefix.encode('utf-8')
        if body is not None:
            canonical += body
        return canonical

    def sign(self, method: str, host: str, path: str, timestamp: str,
             content_type: Optional[str] = None,
             body: Optional[bytes] = None) -> str:
        """
        Generate the Authorization header value for a request.

        Format: HHMAC; key="<id>"; signature="<base64>"; date="<timestamp>"

        Args:
            method: HTTP method
            host: API host (without port)
            path: Endpoint path
            timestamp: Value produced by :meth:`timestamp`
            content_type: Body content type, if the request has a body
            body: Raw body bytes exactly as they will be transmitted

        Returns:
            Authorization header value
        """
        canonical = self.canonical_request(method, host, path, timestamp, content_type, body)
        logger.debug(f"Signing {method} {path} ({len(canonical)} canonical bytes)")

        digest = hmac.new(self._key, canonical, hashlib.sha256).digest()
        signature = base64.b64encode(digest).decode('ascii')

        return (f'{AUTH_SCHEME}; key="{self.api_id}"; '
                f'signature="{signature}"; date="{timestamp}"')

    def signed_headers(self, method: str, host: str, path: str,
                       payload=None) -> Dict[str, str]:
        """
        Assemble the full header set for one request.

        Payload headers are merged last and win on key collisions.

        Args:
            method: HTTP method
            host: API host (without port)
            path: Endpoint path
            payload: ``AlertPayload``, ``EncodedPayload`` or None

        Returns:
            Case-insensitive header mapping
        """
        timestamp = self.timestamp()
        if payload is None:
            authorization = self.sign(method, host, path, timestamp)
            payload_headers = {}
        else:
            authorization = self.sign(
                method, host, path, timestamp,
                payload.content_type, payload.body
            )
            payload_headers = payload.headers

        headers = CaseInsensitiveDict({
            HEADER_ACCEPT: CONTENT_TYPE_JSON,
            HEADER_AUTHORIZATION: authorization,
        })
        headers.update(payload_headers)
        return headers
