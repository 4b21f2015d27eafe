"""
Conftest for interaction endpoint tests.

Puts src/ on sys.path and provides Ed25519 keys plus Lambda event builders.
"""

import json
import os
import sys
from typing import Optional
from unittest.mock import Mock

import pytest
from nacl.signing import SigningKey

sys.path.insert(0, os.path.join(os.path.dirname(__file__), "..", "src"))

TIMESTAMP = "1700000000"


@pytest.fixture
def signing_key() -> SigningKey:
    return SigningKey.generate()


@pytest.fixture
def public_key(signing_key) -> bytes:
    return bytes(signing_key.verify_key)


@pytest.fixture
def sign(signing_key):
    """Return headers carrying a valid signature for (timestamp, body)."""

    def _sign(body: str, timestamp: str = TIMESTAMP) -> dict:
        signed = signing_key.sign(timestamp.encode("utf-8") + body.encode("utf-8"))
        return {
            "x-signature-ed25519": signed.signature.hex(),
            "x-signature-timestamp": timestamp,
        }

    return _sign


@pytest.fixture
def lambda_context():
    context = Mock()
    context.aws_request_id = "test-request-id"
    return context


def api_gateway_event(body: str, headers: Optional[dict] = None, method: str = "POST") -> dict:
    return {
        "resource": "/",
        "path": "/",
        "httpMethod": method,
        "headers": headers or {},
        "requestContext": {"httpMethod": method, "requestId": "req-1"},
        "body": body,
        "isBase64Encoded": False,
    }


def function_url_event(body: str, headers: Optional[dict] = None, method: str = "POST") -> dict:
    return {
        "version": "2.0",
        "rawPath": "/",
        "headers": headers or {},
        "requestContext": {
            "http": {"method": method, "path": "/", "userAgent": "Discord-Interactions/1.0"},
            "requestId": "req-1",
        },
        "body": body,
        "isBase64Encoded": False,
    }


def command_interaction(name: str = "foo", command_type: int = 3, **extra) -> str:
    payload = {
        "id": "interaction_id",
        "application_id": "application_id",
        "type": 2,
        "token": "interaction_token",
        "data": {"name": name, "type": command_type},
    }
    payload.update(extra)
    return json.dumps(payload)
