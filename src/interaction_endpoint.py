"""
Discord interactions endpoint for AWS Lambda.

Pipeline per invocation:
1. Normalize the envelope (API Gateway proxy or Function URL) and require POST (405)
2. Verify the Ed25519 signature over timestamp || body (401)
3. Decode the interaction (raises on malformed JSON)
4. Resolve a session: the configured provider, or one scoped to the interaction's token
5. Dispatch to the router
6. No reply -> 202 with empty body; reply -> 200 with the JSON reply

Protocol-boundary failures (method, signature) become status codes. Everything
after verification that fails raises, so the Lambda runtime reports an
invocation error.
"""

from typing import Any, Dict, Optional, Tuple

from nacl.signing import VerifyKey

from discord_session import DiscordSession, new_bot_session
from discord_verifier import SignatureVerificationError, verify_signature
from interaction_router import InteractionHandler, InteractionRouter
from interactions import (
    ApplicationCommandType,
    Interaction,
    decode_interaction,
    encode_interaction_response,
)
from logger_util import get_discard_logger, log
from request_normalizer import (
    InboundRequest,
    MethodNotAllowedError,
    normalize_api_gateway_event,
    normalize_function_url_event,
)
from session_provider import ProviderLike, StaticSessionProvider

STATUS_OK = 200
STATUS_ACCEPTED = 202
STATUS_UNAUTHORIZED = 401
STATUS_METHOD_NOT_ALLOWED = 405


class SessionResolutionError(Exception):
    """Raised when the configured session provider fails."""

    def __init__(self, cause: Exception):
        self.cause = cause
        super().__init__(f"get session from source: {cause}")


class InteractionEndpoint:
    """
    Lambda handler for Discord interactions.

    Args:
        public_key: Application Ed25519 public key (32 raw bytes). Empty or None
            disables signature verification.
        router: Router used to dispatch interactions (a new one by default)
        logger: Logger (discards by default)
        session_provider: Overrides the per-interaction session. Useful when
            handlers need more permissions than the interaction token grants.
        deferred_response_enabled: Passed to the default router
        api_base_url: REST base URL for interaction-scoped sessions

    Configuration is fixed at construction; build one endpoint per process.
    """

    def __init__(
        self,
        public_key: Optional[bytes] = None,
        *,
        router: Optional[InteractionRouter] = None,
        logger=None,
        session_provider: Optional[ProviderLike] = None,
        deferred_response_enabled: bool = False,
        api_base_url: Optional[str] = None,
    ):
        self._verify_key: Optional[VerifyKey] = VerifyKey(bytes(public_key)) if public_key else None
        self._logger = logger or get_discard_logger()
        self._router = router or InteractionRouter(
            logger=self._logger,
            deferred_response_enabled=deferred_response_enabled,
        )
        self._session_provider = session_provider
        self._api_base_url = api_base_url

    @property
    def router(self) -> InteractionRouter:
        return self._router

    def _log(self, level: str, event_type: str, data: dict) -> None:
        log(self._logger, level, event_type, data)

    def with_session_provider(self, provider: ProviderLike) -> "InteractionEndpoint":
        """Use a provider's session instead of the interaction-scoped one."""
        self._session_provider = provider
        return self

    def with_session(self, session: DiscordSession) -> "InteractionEndpoint":
        """Use one fixed session for every interaction. See with_session_provider."""
        return self.with_session_provider(StaticSessionProvider(session))

    def with_application_command(
        self, name: str, command_type: int, handler: InteractionHandler
    ) -> "InteractionEndpoint":
        """Register an application command with the router."""
        self._router.register_command(name, command_type, handler)
        return self

    def with_chat_application_command(self, name: str, handler: InteractionHandler) -> "InteractionEndpoint":
        return self.with_application_command(name, ApplicationCommandType.CHAT_INPUT, handler)

    def with_user_application_command(self, name: str, handler: InteractionHandler) -> "InteractionEndpoint":
        return self.with_application_command(name, ApplicationCommandType.USER, handler)

    def with_message_application_command(self, name: str, handler: InteractionHandler) -> "InteractionEndpoint":
        return self.with_application_command(name, ApplicationCommandType.MESSAGE, handler)

    def with_component(self, custom_id: str, handler: InteractionHandler) -> "InteractionEndpoint":
        """Register a message component handler with the router."""
        self._router.register_component(custom_id, handler)
        return self

    def handle_event(self, event: Dict[str, Any], context: Any = None) -> Dict[str, Any]:
        """
        Handle an API Gateway proxy integration event (REST API, payload v1).

        See https://docs.aws.amazon.com/apigateway/latest/developerguide/set-up-lambda-proxy-integrations.html
        """
        try:
            request = normalize_api_gateway_event(event)
        except MethodNotAllowedError as e:
            return self._method_not_allowed(e, context)

        self._log("DEBUG", "event_received", {"request_id": _request_id(context)})
        return self._respond(request, context)

    def handle_request(self, event: Dict[str, Any], context: Any = None) -> Dict[str, Any]:
        """
        Handle a Lambda Function URL request (payload v2).

        See https://docs.aws.amazon.com/lambda/latest/dg/urls-configuration.html
        """
        try:
            request = normalize_function_url_event(event)
        except MethodNotAllowedError as e:
            return self._method_not_allowed(e, context)

        self._log(
            "DEBUG",
            "request_received",
            {"request_id": _request_id(context), "user_agent": request.user_agent},
        )
        return self._respond(request, context)

    def _method_not_allowed(self, error: MethodNotAllowedError, context: Any) -> Dict[str, Any]:
        # Anything other than POST points to a misconfigured integration
        self._log(
            "ERROR",
            "unexpected_http_method",
            {"method": error.method, "request_id": _request_id(context)},
        )
        return {"statusCode": STATUS_METHOD_NOT_ALLOWED, "body": ""}

    def _respond(self, request: InboundRequest, context: Any) -> Dict[str, Any]:
        body, status_code = self._handle(request, context)
        return {"statusCode": status_code, "body": body}

    def _handle(self, request: InboundRequest, context: Any) -> Tuple[str, int]:
        try:
            verify_signature(self._verify_key, request.headers, request.body)
        except SignatureVerificationError as e:
            self._log(
                "ERROR",
                "signature_verification_failed",
                {"error": str(e), "request_id": _request_id(context)},
            )
            return "", STATUS_UNAUTHORIZED

        interaction = decode_interaction(request.body)

        response = self._handle_interaction(interaction, context)

        # No synchronous reply: acknowledge and let the reply arrive out of band
        # https://discord.com/developers/docs/interactions/receiving-and-responding#interaction-callback
        if response is None:
            return "", STATUS_ACCEPTED

        return encode_interaction_response(response), STATUS_OK

    def _handle_interaction(self, interaction: Interaction, context: Any):
        self._log(
            "DEBUG",
            "handling_interaction",
            {"type": interaction.type, "interaction_id": interaction.id},
        )

        if self._session_provider is not None:
            try:
                session = self._session_provider(context)
            except Exception as e:
                raise SessionResolutionError(e) from e
            self._log("DEBUG", "session_resolved", {"source": "provider"})
            return self._router.dispatch(session, interaction, context)

        # Scoped to this interaction only; closed once dispatch returns
        session = new_bot_session(interaction.token, api_base_url=self._api_base_url)
        try:
            return self._router.dispatch(session, interaction, context)
        finally:
            session.close()


def _request_id(context: Any) -> Optional[str]:
    return getattr(context, "aws_request_id", None)
