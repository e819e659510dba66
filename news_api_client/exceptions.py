"""
Custom exceptions for News API client library.
"""


class NewsAPIClientError(Exception):
    """Base exception for News API client errors."""
    pass


class ConfigurationError(NewsAPIClientError):
    """Raised when client configuration or credentials are invalid."""
    pass


class InvalidRequestError(NewsAPIClientError):
    """Raised when a request cannot be built from the given arguments."""
    pass


class FormEncodingError(NewsAPIClientError):
    """Raised when a form payload cannot be encoded as multipart data."""
    pass


class HTTPError(NewsAPIClientError):
    """Raised when the HTTP transport fails."""
    pass


class RequestTimeoutError(HTTPError):
    """Raised when a request exceeds the configured timeout."""

    def __init__(self, timeout):
        super().__init__(f"News API endpoint timeout after {timeout} ms")
        self.timeout = timeout


class ResponseParseError(NewsAPIClientError):
    """Raised when a response body is not valid JSON."""

    def __init__(self, message, body, status_code=None):
        super().__init__(message)
        self.body = body
        self.status_code = status_code


class APIError(NewsAPIClientError):
    """
    Raised when the API reports a failure.

    The message is the raw response body. ``api_error`` holds the first
    element of the ``errors`` envelope when the body carries one.
    """

    def __init__(self, body, api_error=None, status_code=None, message=None):
        super().__init__(message or body)
        self.body = body
        self.api_error = api_error
        self.status_code = status_code

    @property
    def code(self):
        """Error code from the structured envelope, if any."""
        if self.api_error is None:
            return None
        return self.api_error.get('code')


class UnexpectedStatusError(APIError):
    """Raised when the API answers with a non-2xx status code."""

    def __init__(self, method, endpoint, status_code, body=''):
        super().__init__(
            body,
            status_code=status_code,
            message=f"{method} {endpoint} code {status_code}"
        )
        self.method = method
        self.endpoint = endpoint
