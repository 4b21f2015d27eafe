"""
Environment configuration for the interaction endpoint.

Read once at cold start. Values:
- DISCORD_PUBLIC_KEY: hex Ed25519 application public key (empty disables verification)
- DISCORD_TOKEN_PARAMETER_NAME: Parameter Store name of the bot token (optional)
- DISCORD_API_BASE_URL: REST base URL (default: public API v10)
- DEFERRED_RESPONSE_ENABLED: acknowledge commands before running handlers
- PARAMETER_STORE_BACKEND: "ssm" or "extension"
"""

import os
from dataclasses import dataclass
from typing import Optional

from discord_session import DEFAULT_API_BASE_URL

PUBLIC_KEY_LENGTH = 32

_TRUE_VALUES = ("1", "true", "yes", "on")


class ConfigurationError(Exception):
    """Raised when the environment holds an unusable value."""

    pass


@dataclass(frozen=True)
class EndpointConfig:
    public_key: bytes = b""
    token_parameter_name: Optional[str] = None
    api_base_url: str = DEFAULT_API_BASE_URL
    deferred_response_enabled: bool = False
    parameter_store_backend: str = "ssm"


def parse_public_key(raw: Optional[str]) -> bytes:
    """
    Decode a hex public key. Empty input yields b"" (verification disabled).

    Raises:
        ConfigurationError: not hex, or not 32 bytes
    """
    if raw is None or not raw.strip():
        return b""
    try:
        key = bytes.fromhex(raw.strip())
    except ValueError as e:
        raise ConfigurationError(f"DISCORD_PUBLIC_KEY is not valid hex: {e}") from e
    if len(key) != PUBLIC_KEY_LENGTH:
        raise ConfigurationError(
            f"DISCORD_PUBLIC_KEY must be {PUBLIC_KEY_LENGTH} bytes, got {len(key)}"
        )
    return key


def _get_bool(name: str, default: bool = False) -> bool:
    raw = os.environ.get(name)
    if raw is None or not raw.strip():
        return default
    return raw.strip().lower() in _TRUE_VALUES


def load_config() -> EndpointConfig:
    """Build EndpointConfig from the environment."""
    backend = (os.environ.get("PARAMETER_STORE_BACKEND") or "ssm").strip().lower()
    if backend not in ("ssm", "extension"):
        raise ConfigurationError(f"PARAMETER_STORE_BACKEND must be 'ssm' or 'extension', got {backend!r}")

    return EndpointConfig(
        public_key=parse_public_key(os.environ.get("DISCORD_PUBLIC_KEY")),
        token_parameter_name=(os.environ.get("DISCORD_TOKEN_PARAMETER_NAME") or "").strip() or None,
        api_base_url=(os.environ.get("DISCORD_API_BASE_URL") or DEFAULT_API_BASE_URL).strip(),
        deferred_response_enabled=_get_bool("DEFERRED_RESPONSE_ENABLED"),
        parameter_store_backend=backend,
    )
