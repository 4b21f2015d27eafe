"""
Discord interaction payloads.

Only the fields the endpoint and router read are lifted into attributes; the
full decoded payload is kept in ``raw`` so nothing is lost.
"""

import json
from dataclasses import dataclass, field
from enum import IntEnum
from typing import Any, Dict, Optional, Union


class InteractionType(IntEnum):
    PING = 1
    APPLICATION_COMMAND = 2
    MESSAGE_COMPONENT = 3
    APPLICATION_COMMAND_AUTOCOMPLETE = 4
    MODAL_SUBMIT = 5


class InteractionResponseType(IntEnum):
    PONG = 1
    CHANNEL_MESSAGE_WITH_SOURCE = 4
    DEFERRED_CHANNEL_MESSAGE_WITH_SOURCE = 5
    DEFERRED_UPDATE_MESSAGE = 6
    UPDATE_MESSAGE = 7
    APPLICATION_COMMAND_AUTOCOMPLETE_RESULT = 8
    MODAL = 9


class ApplicationCommandType(IntEnum):
    CHAT_INPUT = 1
    USER = 2
    MESSAGE = 3


class InteractionDecodeError(Exception):
    """Raised when a request body is not a decodable interaction."""

    pass


class ResponseEncodeError(Exception):
    """Raised when an interaction response cannot be serialized."""

    pass


@dataclass
class Interaction:
    """A single inbound interaction (command, component click, modal submit...)."""

    type: int
    id: str = ""
    token: str = ""
    application_id: str = ""
    data: Dict[str, Any] = field(default_factory=dict)
    raw: Dict[str, Any] = field(default_factory=dict, repr=False)

    @classmethod
    def from_dict(cls, payload: Dict[str, Any]) -> "Interaction":
        interaction_type = payload.get("type", 0)
        if not isinstance(interaction_type, int) or isinstance(interaction_type, bool):
            raise InteractionDecodeError(f"unmarshal interaction create: invalid type {interaction_type!r}")
        data = payload.get("data") or {}
        if not isinstance(data, dict):
            raise InteractionDecodeError("unmarshal interaction create: data must be an object")
        return cls(
            type=interaction_type,
            id=str(payload.get("id") or ""),
            token=str(payload.get("token") or ""),
            application_id=str(payload.get("application_id") or ""),
            data=data,
            raw=payload,
        )

    def to_dict(self) -> Dict[str, Any]:
        payload = dict(self.raw)
        payload.update(
            {
                "type": self.type,
                "id": self.id,
                "token": self.token,
                "application_id": self.application_id,
                "data": self.data,
            }
        )
        return payload


@dataclass
class InteractionResponse:
    """Synchronous reply to an interaction."""

    type: int
    data: Optional[Dict[str, Any]] = None

    def to_dict(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {"type": int(self.type)}
        if self.data is not None:
            payload["data"] = self.data
        return payload


def decode_interaction(body: Union[bytes, str]) -> Interaction:
    """
    Decode a raw request body into an Interaction.

    Raises:
        InteractionDecodeError: body is not JSON or not a JSON object
    """
    try:
        payload = json.loads(body)
    except (json.JSONDecodeError, UnicodeDecodeError) as e:
        raise InteractionDecodeError(f"unmarshal interaction create: {e}") from e

    if not isinstance(payload, dict):
        raise InteractionDecodeError(
            f"unmarshal interaction create: expected object, got {type(payload).__name__}"
        )
    return Interaction.from_dict(payload)


def encode_interaction_response(response: InteractionResponse) -> str:
    """
    Serialize an InteractionResponse to its JSON wire form.

    Raises:
        ResponseEncodeError: response data is not JSON serializable
    """
    try:
        return json.dumps(response.to_dict(), ensure_ascii=False)
    except (TypeError, ValueError) as e:
        raise ResponseEncodeError(f"marshal interaction response: {e}") from e
