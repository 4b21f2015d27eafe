"""Command router: matches interactions to registered handlers."""

from typing import Any, Callable, Dict, Optional, Tuple

from discord_session import DiscordSession
from interactions import (
    ApplicationCommandType,
    Interaction,
    InteractionResponse,
    InteractionResponseType,
    InteractionType,
)
from logger_util import get_discard_logger, log

# (session, interaction, data) -> optional synchronous reply
InteractionHandler = Callable[[DiscordSession, Interaction, Dict[str, Any]], Optional[InteractionResponse]]


class InteractionRouter:
    """
    Routes interactions to handlers.

    PING interactions are answered with PONG. Application commands are matched
    on (name, command type), message components on custom_id.

    With deferred responses enabled, application commands are first
    acknowledged through the interaction callback and the handler's reply, if
    any, replaces the original response afterwards. dispatch() then returns
    None so the endpoint answers 202.
    """

    def __init__(self, logger=None, deferred_response_enabled: bool = False):
        self._logger = logger or get_discard_logger()
        self._deferred_response_enabled = deferred_response_enabled
        self._commands: Dict[Tuple[str, int], InteractionHandler] = {}
        self._components: Dict[str, InteractionHandler] = {}

    def _log(self, level: str, event_type: str, data: dict) -> None:
        log(self._logger, level, event_type, data, service="interaction-router")

    def register_command(
        self,
        name: str,
        command_type: int,
        handler: InteractionHandler,
    ) -> "InteractionRouter":
        self._commands[(name, int(command_type))] = handler
        return self

    def register_component(self, custom_id: str, handler: InteractionHandler) -> "InteractionRouter":
        self._components[custom_id] = handler
        return self

    def dispatch(
        self,
        session: DiscordSession,
        interaction: Interaction,
        context: Any = None,
    ) -> Optional[InteractionResponse]:
        """
        Handle an interaction and return its optional synchronous reply.

        Handler exceptions propagate unchanged.
        """
        if interaction.type == InteractionType.PING:
            return InteractionResponse(InteractionResponseType.PONG)

        if interaction.type == InteractionType.APPLICATION_COMMAND:
            return self._dispatch_command(session, interaction)

        if interaction.type == InteractionType.MESSAGE_COMPONENT:
            custom_id = interaction.data.get("custom_id", "")
            handler = self._components.get(custom_id)
            if handler is None:
                self._log("WARN", "unknown_component", {"custom_id": custom_id, "interaction_id": interaction.id})
                return None
            return handler(session, interaction, interaction.data)

        self._log("WARN", "unhandled_interaction_type", {"type": interaction.type, "interaction_id": interaction.id})
        return None

    def _dispatch_command(self, session: DiscordSession, interaction: Interaction) -> Optional[InteractionResponse]:
        name = interaction.data.get("name", "")
        command_type = interaction.data.get("type", ApplicationCommandType.CHAT_INPUT)
        handler = self._commands.get((name, int(command_type)))
        if handler is None:
            self._log("WARN", "unknown_command", {"name": name, "command_type": command_type})
            return None

        if not self._deferred_response_enabled:
            return handler(session, interaction, interaction.data)

        session.interaction_respond(
            interaction,
            InteractionResponse(InteractionResponseType.DEFERRED_CHANNEL_MESSAGE_WITH_SOURCE),
        )
        self._log("DEBUG", "deferred_response_sent", {"interaction_id": interaction.id, "name": name})

        response = handler(session, interaction, interaction.data)
        if response is not None and response.data is not None:
            session.interaction_response_edit(interaction, response.data)
        return None
