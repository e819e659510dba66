"""
Request payload variants.

A POST body is either an alert notification, sent as compact JSON, or a
form payload that an encoder has already turned into multipart bytes. The
variant is decided once, at the call boundary, by :func:`build_payload`.
"""

import json
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Mapping, Optional, Union

from .constants import CONTENT_TYPE_JSON, HEADER_CONTENT_LENGTH, HEADER_CONTENT_TYPE
from .exceptions import FormEncodingError


@dataclass(frozen=True)
class EncodedPayload:
    """Pre-encoded body bytes plus the headers describing them."""
    body: bytes
    headers: Dict[str, str] = field(default_factory=dict)

    @property
    def content_type(self) -> Optional[str]:
        for name, value in self.headers.items():
            if name.lower() == HEADER_CONTENT_TYPE:
                return value
        return None


@dataclass(frozen=True)
class AlertPayload:
    """
    Alert notification serialized as JSON.

    The body is serialized once on construction so the bytes that are signed
    are the bytes that are sent.
    """
    notification: Mapping[str, Any]
    body: bytes = field(init=False, repr=False)

    def __post_init__(self):
        body = json.dumps(
            self.notification, separators=(',', ':'), ensure_ascii=False
        ).encode('utf-8')
        object.__setattr__(self, 'body', body)

    @property
    def content_type(self) -> str:
        return CONTENT_TYPE_JSON

    @property
    def headers(self) -> Dict[str, str]:
        return {
            HEADER_CONTENT_TYPE: CONTENT_TYPE_JSON,
            HEADER_CONTENT_LENGTH: str(len(self.body)),
        }


Payload = Union[AlertPayload, EncodedPayload]
FormEncoder = Callable[[Mapping[str, Any]], EncodedPayload]


def is_alert_notification(form_data) -> bool:
    """Check whether a form payload carries ``data.alertBody``."""
    if not isinstance(form_data, Mapping):
        return False
    data = form_data.get('data')
    return isinstance(data, Mapping) and bool(data.get('alertBody'))


def build_payload(method: str, form_data: Optional[Mapping[str, Any]],
                  encoder: FormEncoder) -> Optional[Payload]:
    """
    Decide the payload variant for a request.

    Only POST requests carry a body. Alert notifications bypass the encoder
    entirely; every other form payload goes through it. Exceptions raised by
    the encoder propagate unchanged.

    Returns:
        The payload, or None when the request has no body
    """
    if method != 'POST' or form_data is None:
        return None

    if is_alert_notification(form_data):
        return AlertPayload(form_data)

    encoded = encoder(form_data)
    if not isinstance(encoded, EncodedPayload):
        raise FormEncodingError(
            f"Form encoder returned {type(encoded).__name__}, expected EncodedPayload"
        )
    return encoded
