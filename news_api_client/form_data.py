"""
Default multipart/form-data encoder for article payloads.
"""

import json
from typing import Any, Mapping

from urllib3.fields import RequestField
from urllib3.filepost import encode_multipart_formdata

from .constants import CONTENT_TYPE_JSON, HEADER_CONTENT_LENGTH, HEADER_CONTENT_TYPE
from .exceptions import FormEncodingError
from .payload import EncodedPayload


def _make_field(name: str, value: Any) -> RequestField:
    if isinstance(value, tuple):
        if len(value) == 2:
            filename, data = value
            content_type = None
        elif len(value) == 3:
            filename, data, content_type = value
        else:
            raise FormEncodingError(
                f"Field '{name}': file tuples take (filename, data[, content_type])"
            )
        if isinstance(data, (dict, list)):
            data = json.dumps(data, separators=(',', ':'))
            content_type = content_type or CONTENT_TYPE_JSON
        rf = RequestField(name, data, filename=filename)
        rf.make_multipart(content_type=content_type or 'application/octet-stream')
        return rf

    if isinstance(value, (dict, list)):
        rf = RequestField(name, json.dumps(value, separators=(',', ':')))
        rf.make_multipart(content_type=CONTENT_TYPE_JSON)
    elif isinstance(value, bytes):
        rf = RequestField(name, value)
        rf.make_multipart(content_type='application/octet-stream')
    elif isinstance(value, str):
        rf = RequestField(name, value)
        rf.make_multipart()
    else:
        raise FormEncodingError(
            f"Field '{name}': cannot encode value of type {type(value).__name__}"
        )
    return rf


def encode_form_data(fields: Mapping[str, Any], boundary=None) -> EncodedPayload:
    """
    Encode a form payload as multipart/form-data.

    Args:
        fields: Mapping of part name to value. Strings become text parts,
            bytes become binary parts, dicts and lists become JSON parts and
            ``(filename, data[, content_type])`` tuples become file parts.
        boundary: Fixed multipart boundary (random when omitted)

    Returns:
        EncodedPayload with content-type and content-length headers

    Raises:
        FormEncodingError: If a field value cannot be encoded
    """
    if not isinstance(fields, Mapping):
        raise FormEncodingError(
            f"Form data must be a mapping, got {type(fields).__name__}"
        )

    parts = [_make_field(name, value) for name, value in fields.items()]
    body, content_type = encode_multipart_formdata(parts, boundary=boundary)

    return EncodedPayload(body, {
        HEADER_CONTENT_TYPE: content_type,
        HEADER_CONTENT_LENGTH: str(len(body)),
    })
