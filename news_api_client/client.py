"""
News API client.

This module ties the signer and the transaction lifecycle together behind
a single ``request`` entry point, with synchronous, callback and future
based ways of consuming the outcome.
"""

import http.cookiejar
import logging
from concurrent.futures import Future, ThreadPoolExecutor
from typing import Any, Callable, Mapping, Optional

import requests

from .constants import DEFAULT_CONFIG, SUPPORTED_METHODS
from .exceptions import ConfigurationError, InvalidRequestError, UnexpectedStatusError
from .form_data import encode_form_data
from .payload import FormEncoder, build_payload
from .signer import RequestSigner
from .transaction import Transaction

logger = logging.getLogger(__name__)

Callback = Callable[[Optional[BaseException], Any], None]


class NewsAPIClient:
    """
    Client for making HHMAC-authenticated requests to the News API.

    Credentials and configuration are fixed at construction. Every call
    runs its own transaction, so one client can be shared between threads.
    """

    def __init__(self, api_id: str, api_secret: str,
                 form_encoder: Optional[FormEncoder] = None, **config):
        """
        Initialize News API client.

        Args:
            api_id: API key identifier
            api_secret: Base64-encoded API secret
            form_encoder: Callable turning a form payload into an EncodedPayload
            **config: Configuration options (host, port, timeout, verify_ssl, max_workers)

        Raises:
            ConfigurationError: If credentials or configuration are invalid
        """
        # Merge default config with user overrides
        self.config = {**DEFAULT_CONFIG, **config}
        self._validate_config()

        self.signer = RequestSigner(api_id, api_secret)
        self.form_encoder = form_encoder or encode_form_data

        self.session = requests.Session()
        # No cookies carry over between transactions
        self.session.cookies.set_policy(http.cookiejar.DefaultCookiePolicy(allowed_domains=[]))
        self._executor = ThreadPoolExecutor(
            max_workers=self.config['max_workers'],
            thread_name_prefix='news-api'
        )

        logger.info(f"Initialized News API client for {self.base_url}")

    def _validate_config(self):
        """Validate client configuration."""
        if not self.config['host']:
            raise ConfigurationError("host cannot be empty")

        port = self.config['port']
        if port is not None and not (isinstance(port, int) and 0 < port < 65536):
            raise ConfigurationError(f"port must be between 1 and 65535, got {port!r}")

        timeout = self.config['timeout']
        if not isinstance(timeout, (int, float)) or timeout < 0:
            raise ConfigurationError("timeout must be a non-negative number of milliseconds")

        max_workers = self.config['max_workers']
        if max_workers is not None and max_workers <= 0:
            raise ConfigurationError("max_workers must be positive")

    @property
    def host(self) -> str:
        return self.config['host']

    @property
    def base_url(self) -> str:
        port = self.config['port']
        if port:
            return f"https://{self.host}:{port}"
        return f"https://{self.host}"

    def _execute(self, method: str, endpoint: str,
                 form_data: Optional[Mapping[str, Any]] = None) -> Any:
        """
        Run one transaction and apply the status-code gate.

        Returns:
            The ``data`` member of the response, or None for an empty body
        """
        if method not in SUPPORTED_METHODS:
            raise InvalidRequestError(
                f"Unsupported method {method!r}, expected one of {', '.join(SUPPORTED_METHODS)}"
            )
        if not endpoint.startswith('/'):
            raise InvalidRequestError(f"Endpoint must start with '/': {endpoint!r}")

        payload = build_payload(method, form_data, self.form_encoder)
        headers = self.signer.signed_headers(method, self.host, endpoint, payload)

        transaction = Transaction(
            self.session,
            method,
            self.base_url + endpoint,
            headers,
            body=payload.body if payload is not None else None,
            timeout=self.config['timeout'],
            verify=self.config['verify_ssl'],
        )
        outcome = transaction.run()

        # Endpoint returns 2XX on success
        if str(outcome.status_code)[0] != '2':
            raise UnexpectedStatusError(method, endpoint, outcome.status_code)

        return outcome.data

    def request(self, method: str, endpoint: str,
                form_data: Optional[Mapping[str, Any]] = None,
                callback: Optional[Callback] = None) -> Any:
        """
        Make an authenticated request.

        Without a callback the data is returned and failures are raised.
        With a callback, ``callback(error, data)`` is invoked exactly once
        and nothing is returned.

        Args:
            method: GET, POST or DELETE
            endpoint: Endpoint path, e.g. ``/channels/<id>``
            form_data: Payload for POST requests
            callback: Optional ``callback(error, data)``

        Returns:
            The ``data`` member of the response (None for an empty body)

        Raises:
            NewsAPIClientError: When no callback is given and the call fails
        """
        if callback is None:
            return self._execute(method, endpoint, form_data)

        try:
            data = self._execute(method, endpoint, form_data)
        except Exception as e:
            callback(e, None)
            return None
        callback(None, data)
        return None

    def request_async(self, method: str, endpoint: str,
                      form_data: Optional[Mapping[str, Any]] = None,
                      callback: Optional[Callback] = None) -> Future:
        """
        Make an authenticated request on the client's worker pool.

        Returns:
            Future resolving to the response data. When a callback is given
            it is invoked once, as ``callback(error, data)``, on completion.
        """
        future = self._executor.submit(self._execute, method, endpoint, form_data)
        if callback is not None:
            def deliver(done: Future):
                error = done.exception()
                if error is not None:
                    callback(error, None)
                else:
                    callback(None, done.result())
            future.add_done_callback(deliver)
        return future

    def get(self, endpoint: str, **kwargs) -> Any:
        """Make authenticated GET request."""
        return self.request('GET', endpoint, **kwargs)

    def post(self, endpoint: str, form_data=None, **kwargs) -> Any:
        """Make authenticated POST request."""
        return self.request('POST', endpoint, form_data=form_data, **kwargs)

    def delete(self, endpoint: str, **kwargs) -> Any:
        """Make authenticated DELETE request."""
        return self.request('DELETE', endpoint, **kwargs)

    def close(self):
        """Wait for pending requests and close HTTP session."""
        self._executor.shutdown(wait=True)
        if self.session:
            self.session.close()

    def __enter__(self):
        """Context manager entry."""
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        """Context manager exit."""
        self.close()
