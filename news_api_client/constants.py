"""
Constants for the News API client library.
"""

DEFAULT_HOST = "news-api.apple.com"

# Authorization scheme expected by the API
AUTH_SCHEME = "HHMAC"

# Timestamp format signed into every request (UTC, second precision)
TIMESTAMP_FORMAT = "%Y-%m-%dT%H:%M:%SZ"

# HTTP Headers
HEADER_ACCEPT = "Accept"
HEADER_AUTHORIZATION = "Authorization"
HEADER_CONTENT_TYPE = "content-type"
HEADER_CONTENT_LENGTH = "content-length"

CONTENT_TYPE_JSON = "application/json"

SUPPORTED_METHODS = ("GET", "POST", "DELETE")

# Default configuration values
DEFAULT_CONFIG = {
    'host': DEFAULT_HOST,
    'port': None,
    'timeout': 0,           # milliseconds, 0 disables the timeout
    'verify_ssl': True,     # False only against test servers
    'max_workers': None,    # thread pool size for request_async
}

# Other constants
RESPONSE_CHUNK_SIZE = 8192
