"""Unit tests for request_normalizer.py."""

import base64

import pytest

from conftest import api_gateway_event, function_url_event
from request_normalizer import (
    MalformedEnvelopeError,
    MethodNotAllowedError,
    normalize_api_gateway_event,
    normalize_function_url_event,
    require_post,
)


class TestNormalizeApiGatewayEvent:
    def test_post_event(self):
        request = normalize_api_gateway_event(
            api_gateway_event('{"type":1}', headers={"X-Signature-Timestamp": "1"})
        )

        assert request.method == "POST"
        assert request.body == b'{"type":1}'
        assert request.headers["x-signature-timestamp"] == "1"
        assert request.source == "api_gateway"

    def test_get_event_rejected(self):
        with pytest.raises(MethodNotAllowedError) as exc_info:
            normalize_api_gateway_event(api_gateway_event("", method="GET"))

        assert exc_info.value.method == "GET"

    def test_method_checked_before_body(self):
        """A bad body on a GET still yields method-not-allowed."""
        event = api_gateway_event("!!!", method="GET")
        event["isBase64Encoded"] = True

        with pytest.raises(MethodNotAllowedError):
            normalize_api_gateway_event(event)

    def test_multi_value_headers_fallback(self):
        event = api_gateway_event("{}")
        event["headers"] = None
        event["multiValueHeaders"] = {"X-Signature-Ed25519": ["abc", "def"]}

        request = normalize_api_gateway_event(event)

        assert request.headers["x-signature-ed25519"] == "abc"

    def test_missing_body_is_empty(self):
        event = api_gateway_event("")
        event["body"] = None

        assert normalize_api_gateway_event(event).body == b""


class TestNormalizeFunctionUrlEvent:
    def test_post_request(self):
        request = normalize_function_url_event(
            function_url_event('{"type":1}', headers={"x-signature-ed25519": "ab"})
        )

        assert request.method == "POST"
        assert request.body == b'{"type":1}'
        assert request.headers["X-Signature-Ed25519"] == "ab"
        assert request.user_agent == "Discord-Interactions/1.0"
        assert request.source == "function_url"

    def test_lowercase_method_rejected(self):
        """Only the exact method "POST" is accepted."""
        with pytest.raises(MethodNotAllowedError):
            normalize_function_url_event(function_url_event("{}", method="post"))

    def test_put_request_rejected(self):
        with pytest.raises(MethodNotAllowedError):
            normalize_function_url_event(function_url_event("{}", method="PUT"))

    def test_base64_body_decoded(self):
        event = function_url_event(base64.b64encode(b'{"type":1}').decode())
        event["isBase64Encoded"] = True

        assert normalize_function_url_event(event).body == b'{"type":1}'

    def test_invalid_base64_body(self):
        event = function_url_event("not base64!")
        event["isBase64Encoded"] = True

        with pytest.raises(MalformedEnvelopeError):
            normalize_function_url_event(event)


class TestEnvelopeEquivalence:
    def test_both_envelopes_normalize_identically(self):
        headers = {"X-Signature-Ed25519": "ab", "x-signature-timestamp": "1"}
        a = normalize_api_gateway_event(api_gateway_event('{"type":2}', headers=headers))
        b = normalize_function_url_event(function_url_event('{"type":2}', headers=headers))

        assert (a.method, dict(a.headers.lower_items()), a.body) == (
            b.method,
            dict(b.headers.lower_items()),
            b.body,
        )


def test_require_post():
    assert require_post("POST") == "POST"
    for method in ("post", "Post", None):
        with pytest.raises(MethodNotAllowedError):
            require_post(method)
