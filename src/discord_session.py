"""
Authenticated Discord REST client.

A DiscordSession is built either per request from an interaction's own token
or once from the bot token and shared across requests. It is never mutated
after construction.
"""

import os
from typing import Any, Dict, Optional

import requests

DEFAULT_API_BASE_URL = "https://discord.com/api/v10"
DEFAULT_TIMEOUT_SECONDS = 10


class DiscordApiError(Exception):
    """Raised when the Discord REST API returns a non-2xx response."""

    def __init__(self, method: str, path: str, status_code: int, body: str):
        self.method = method
        self.path = path
        self.status_code = status_code
        self.body = body
        super().__init__(f"{method} {path} failed with HTTP {status_code}: {body}")


class DiscordSession:
    """
    Thin REST client bound to one credential.

    Args:
        token: Full Authorization header value (e.g. "Bot <token>")
        api_base_url: REST base URL (defaults to DISCORD_API_BASE_URL or the public API)
        http: Optional requests.Session to send requests with
    """

    def __init__(
        self,
        token: str,
        api_base_url: Optional[str] = None,
        http: Optional[requests.Session] = None,
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
    ):
        self.token = token
        self.api_base_url = (
            api_base_url or os.environ.get("DISCORD_API_BASE_URL") or DEFAULT_API_BASE_URL
        ).rstrip("/")
        self.timeout = timeout
        self._owns_http = http is None
        self._http = http or requests.Session()

    def request(self, method: str, path: str, json: Optional[Dict[str, Any]] = None) -> Optional[Dict[str, Any]]:
        """
        Send a request to the REST API.

        Returns:
            Decoded JSON body, or None for empty responses

        Raises:
            DiscordApiError: non-2xx response
            requests.RequestException: transport failure
        """
        headers = {"Authorization": self.token}
        if json is not None:
            headers["Content-Type"] = "application/json"

        response = self._http.request(
            method,
            f"{self.api_base_url}{path}",
            headers=headers,
            json=json,
            timeout=self.timeout,
        )
        if not response.ok:
            raise DiscordApiError(method, path, response.status_code, response.text)
        if not response.content:
            return None
        return response.json()

    def close(self) -> None:
        """Release pooled connections. An injected requests.Session is left open."""
        if self._owns_http:
            self._http.close()

    def interaction_respond(self, interaction, response) -> None:
        """Send the initial callback for an interaction."""
        self.request(
            "POST",
            f"/interactions/{interaction.id}/{interaction.token}/callback",
            json=response.to_dict(),
        )

    def interaction_response_edit(self, interaction, data: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        """Edit the original interaction response (used after a deferred callback)."""
        return self.request(
            "PATCH",
            f"/webhooks/{interaction.application_id}/{interaction.token}/messages/@original",
            json=data,
        )

    def followup_message_create(self, interaction, data: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        """Post a followup message for an interaction."""
        return self.request(
            "POST",
            f"/webhooks/{interaction.application_id}/{interaction.token}",
            json=data,
        )


def new_bot_session(token: str, api_base_url: Optional[str] = None) -> DiscordSession:
    """Build a session authenticated as "Bot <token>"."""
    return DiscordSession("Bot " + token, api_base_url=api_base_url)
