"""
Normalization of Lambda transport envelopes into one inbound request shape.

Two envelopes are supported:
- API Gateway proxy integration (REST API, payload v1): requestContext.httpMethod
- Lambda Function URL (payload v2): requestContext.http.method

Both carry the same headers/body under different field names.
"""

import base64
import binascii
from dataclasses import dataclass, field
from typing import Any, Dict, Mapping, Optional

from requests.structures import CaseInsensitiveDict

METHOD_POST = "POST"


class MethodNotAllowedError(Exception):
    """Raised when the inbound request is not a POST."""

    def __init__(self, method: Optional[str]):
        self.method = method
        super().__init__(f"method not allowed: {method}")


class MalformedEnvelopeError(Exception):
    """Raised when the envelope body cannot be read."""

    pass


@dataclass(frozen=True)
class InboundRequest:
    """Canonical (method, headers, body) triple."""

    method: str
    headers: CaseInsensitiveDict
    body: bytes
    user_agent: Optional[str] = None
    source: str = field(default="api_gateway")


def _merge_headers(*header_maps: Optional[Mapping[str, Any]]) -> CaseInsensitiveDict:
    merged: CaseInsensitiveDict = CaseInsensitiveDict()
    for headers in header_maps:
        if not headers:
            continue
        for key, value in headers.items():
            if isinstance(value, list):
                if not value:
                    continue
                value = value[0]
            if key not in merged:
                merged[key] = value
    return merged


def _decode_body(event: Mapping[str, Any]) -> bytes:
    body = event.get("body") or ""
    if event.get("isBase64Encoded"):
        try:
            return base64.b64decode(body, validate=True)
        except (binascii.Error, ValueError) as e:
            raise MalformedEnvelopeError(f"invalid base64 body: {e}") from e
    return body.encode("utf-8")


def require_post(method: Optional[str]) -> str:
    """
    Reject anything other than POST.

    Raises:
        MethodNotAllowedError: request method is not POST
    """
    if method != METHOD_POST:
        raise MethodNotAllowedError(method)
    return METHOD_POST


def normalize_api_gateway_event(event: Mapping[str, Any]) -> InboundRequest:
    """
    Normalize an API Gateway proxy event (requestContext.httpMethod).

    The method is checked before the body is touched. Headers fall back to the
    first value of multiValueHeaders when the single-value map is absent.

    Raises:
        MethodNotAllowedError: request method is not POST
        MalformedEnvelopeError: body flagged as base64 but not decodable
    """
    request_context: Dict[str, Any] = event.get("requestContext") or {}
    method = require_post(request_context.get("httpMethod") or event.get("httpMethod"))
    return InboundRequest(
        method=method,
        headers=_merge_headers(event.get("headers"), event.get("multiValueHeaders")),
        body=_decode_body(event),
        source="api_gateway",
    )


def normalize_function_url_event(event: Mapping[str, Any]) -> InboundRequest:
    """
    Normalize a Lambda Function URL event (requestContext.http.method).

    Raises:
        MethodNotAllowedError: request method is not POST
        MalformedEnvelopeError: body flagged as base64 but not decodable
    """
    http: Dict[str, Any] = (event.get("requestContext") or {}).get("http") or {}
    method = require_post(http.get("method"))
    return InboundRequest(
        method=method,
        headers=_merge_headers(event.get("headers")),
        body=_decode_body(event),
        user_agent=http.get("userAgent"),
        source="function_url",
    )
