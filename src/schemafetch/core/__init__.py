r"""Core shared logic for the request executor and its variants.

This package contains the configuration defaults, parameter validation,
and the HTTP helpers (URL assembly, body serialization, payload
decoding) shared by ``fetch``, ``stream`` and ``upload``.
"""

from __future__ import annotations

__all__ = [
    "DEFAULT_RETRY_DELAY",
    "DEFAULT_TIMEOUT",
    "JSON_CONTENT_TYPE",
    "SERVER_ERROR_STATUS",
    "TIMEOUT_REASON",
    "ClientConfig",
    "FormData",
    "UrlEncodedForm",
    "build_url",
    "decode_payload",
    "parse_json_or_text",
    "receive",
    "serialize_body",
    "validate_retry_params",
    "validate_timeout",
]

from schemafetch.core.config import (
    DEFAULT_RETRY_DELAY,
    DEFAULT_TIMEOUT,
    JSON_CONTENT_TYPE,
    SERVER_ERROR_STATUS,
    TIMEOUT_REASON,
    ClientConfig,
)
from schemafetch.core.http_logic import (
    FormData,
    UrlEncodedForm,
    build_url,
    decode_payload,
    parse_json_or_text,
    receive,
    serialize_body,
)
from schemafetch.core.validation import validate_retry_params, validate_timeout
