"""
Request/response lifecycle for a single News API call.

A :class:`Transaction` sends one signed request, accumulates the streamed
response body, classifies it and releases the connection. It moves through
an explicit state machine and delivers exactly one outcome.
"""

import enum
import errno
import json
import logging
from typing import Any, NamedTuple, Optional

import requests
import requests.auth
from urllib3.exceptions import ReadTimeoutError

from .constants import RESPONSE_CHUNK_SIZE
from .exceptions import (
    APIError,
    HTTPError,
    ResponseParseError,
    RequestTimeoutError,
)

logger = logging.getLogger(__name__)


class SignedHeaderAuth(requests.auth.AuthBase):
    """
    Leaves the signed Authorization header as it is.

    Passing an explicit auth stops requests from filling in credentials
    from .netrc over the HHMAC header.
    """

    def __call__(self, request):
        return request


class TransactionState(enum.Enum):
    IDLE = "idle"
    SENT = "sent"
    TIMED_OUT = "timed_out"
    TRANSPORT_ERROR = "transport_error"
    RECEIVING_BODY = "receiving_body"
    PARSE_ERROR = "parse_error"
    CLASSIFIED = "classified"
    DONE = "done"


_TRANSITIONS = {
    TransactionState.IDLE: {TransactionState.SENT},
    TransactionState.SENT: {
        TransactionState.TIMED_OUT,
        TransactionState.TRANSPORT_ERROR,
        TransactionState.RECEIVING_BODY,
    },
    TransactionState.RECEIVING_BODY: {
        TransactionState.TIMED_OUT,
        TransactionState.TRANSPORT_ERROR,
        TransactionState.PARSE_ERROR,
        TransactionState.CLASSIFIED,
    },
    TransactionState.TIMED_OUT: {TransactionState.DONE},
    TransactionState.TRANSPORT_ERROR: {TransactionState.DONE},
    TransactionState.PARSE_ERROR: {TransactionState.DONE},
    TransactionState.CLASSIFIED: {TransactionState.DONE},
    TransactionState.DONE: set(),
}


class Outcome(NamedTuple):
    """Classified response. ``data`` is None for an empty body."""
    status_code: int
    data: Any


def classify_body(text: str, status_code: Optional[int] = None) -> Any:
    """
    Classify a response body by its envelope.

    Args:
        text: Raw response body
        status_code: HTTP status, attached to any error raised

    Returns:
        The ``data`` member of the envelope, or None for an empty body

    Raises:
        ResponseParseError: If a non-empty body is not JSON
        APIError: If the body has no ``data`` member
    """
    if not text:
        return None

    try:
        parsed = json.loads(text)
    except ValueError as e:
        raise ResponseParseError(
            f"Invalid JSON response: {e}", text, status_code
        ) from e

    if isinstance(parsed, dict) and parsed.get('data') is not None:
        return parsed['data']

    errors = parsed.get('errors') if isinstance(parsed, dict) else None
    if (isinstance(errors, list) and errors
            and isinstance(errors[0], dict) and errors[0].get('code')):
        raise APIError(text, api_error=errors[0], status_code=status_code)

    raise APIError(text, status_code=status_code)


def _is_connection_reset(exc: BaseException) -> bool:
    """Look through a wrapped exception chain for a connection reset."""
    seen = set()
    pending = [exc]
    while pending:
        current = pending.pop()
        if current is None or id(current) in seen:
            continue
        seen.add(id(current))
        if isinstance(current, ConnectionResetError):
            return True
        if getattr(current, 'errno', None) == errno.ECONNRESET:
            return True
        pending.append(current.__cause__)
        pending.append(current.__context__)
        pending.append(getattr(current, 'reason', None))
        pending.extend(arg for arg in current.args if isinstance(arg, BaseException))
    return False


def _is_timeout(exc: requests.RequestException) -> bool:
    if isinstance(exc, requests.Timeout):
        return True
    # iter_content wraps read timeouts in a plain ConnectionError
    return any(isinstance(arg, ReadTimeoutError) for arg in exc.args)


class Transaction:
    """
    One signed request driven from dispatch to a terminal outcome.

    A transaction runs once. The response, when one arrives, is closed
    exactly once on the way to ``DONE``; closing it early is how a timeout
    during body receipt aborts the connection.
    """

    def __init__(self, session: requests.Session, method: str, url: str,
                 headers, body: Optional[bytes] = None, timeout: int = 0,
                 verify: bool = True):
        """
        Args:
            session: HTTP session used to send the request
            method: HTTP method
            url: Full request URL
            headers: Signed header set
            body: Body bytes exactly as signed
            timeout: Timeout in milliseconds, 0 disables it
            verify: Whether to validate the server certificate
        """
        self.session = session
        self.method = method
        self.url = url
        self.headers = headers
        self.body = body
        self.timeout = timeout
        self.verify = verify
        self.state = TransactionState.IDLE
        self._response = None

    def _transition(self, new_state: TransactionState):
        if new_state not in _TRANSITIONS[self.state]:
            raise RuntimeError(
                f"Invalid transaction transition {self.state.value} -> {new_state.value}"
            )
        self.state = new_state

    def _release(self):
        """Close the response, if any. Safe to call repeatedly."""
        response, self._response = self._response, None
        if response is not None:
            response.close()

    def _transport_failure(self, exc: requests.RequestException) -> HTTPError:
        """Map a requests exception onto the client's error taxonomy."""
        if _is_timeout(exc) or (self.timeout and _is_connection_reset(exc)):
            self._transition(TransactionState.TIMED_OUT)
            self._release()
            logger.warning(f"{self.method} {self.url} timed out after {self.timeout} ms")
            return RequestTimeoutError(self.timeout)

        self._transition(TransactionState.TRANSPORT_ERROR)
        logger.warning(f"{self.method} {self.url} failed: {exc}")
        return HTTPError(f"HTTP request failed: {exc}")

    def _read_body(self, response: requests.Response) -> str:
        chunks = []
        for chunk in response.iter_content(chunk_size=RESPONSE_CHUNK_SIZE):
            if chunk:
                chunks.append(chunk)
        raw = b"".join(chunks)
        try:
            return raw.decode('utf-8')
        except UnicodeDecodeError as e:
            self._transition(TransactionState.PARSE_ERROR)
            raise ResponseParseError(
                f"Response body is not UTF-8: {e}",
                raw.decode('utf-8', errors='replace'),
                response.status_code
            ) from e

    def run(self) -> Outcome:
        """
        Send the request and classify the response.

        Returns:
            Outcome with the status code and classified data

        Raises:
            RuntimeError: If the transaction already ran
            RequestTimeoutError: If the timeout elapsed
            HTTPError: On any other transport failure
            ResponseParseError: If the body is not valid JSON
            APIError: If the body reports an API failure
        """
        if self.state is not TransactionState.IDLE:
            raise RuntimeError("Transaction already completed")

        self._transition(TransactionState.SENT)
        logger.debug(f"Sending {self.method} {self.url}")
        try:
            try:
                self._response = self.session.request(
                    self.method,
                    self.url,
                    headers=self.headers,
                    data=self.body,
                    auth=SignedHeaderAuth(),
                    timeout=self.timeout / 1000.0 if self.timeout else None,
                    verify=self.verify,
                    stream=True,
                )
            except requests.RequestException as e:
                raise self._transport_failure(e) from e

            status_code = self._response.status_code
            logger.debug(f"{self.method} {self.url} answered {status_code}")
            self._transition(TransactionState.RECEIVING_BODY)

            try:
                text = self._read_body(self._response)
            except requests.RequestException as e:
                raise self._transport_failure(e) from e

            try:
                data = classify_body(text, status_code)
            except ResponseParseError:
                self._transition(TransactionState.PARSE_ERROR)
                raise
            except APIError:
                self._transition(TransactionState.CLASSIFIED)
                raise

            self._transition(TransactionState.CLASSIFIED)
            return Outcome(status_code, data)
        finally:
            self._release()
            self.state = TransactionState.DONE
