"""
Lambda entry points.

Register one of these as the function handler:
- handler.api_gateway_handler: API Gateway proxy integration
- handler.function_url_handler: Lambda Function URL

Applications that register commands build their own endpoint with
build_endpoint() and expose its handle_event / handle_request.
"""

import threading
from typing import Any, Dict, Optional

from endpoint_config import EndpointConfig, load_config
from interaction_endpoint import InteractionEndpoint
from interaction_router import InteractionRouter
from logger_util import get_logger
from parameter_store_client import create_parameter_store_client
from session_provider import CachedSessionProvider, ParameterStoreSessionProvider

_endpoint: Optional[InteractionEndpoint] = None
_endpoint_lock = threading.Lock()


def build_endpoint(
    config: Optional[EndpointConfig] = None,
    router: Optional[InteractionRouter] = None,
) -> InteractionEndpoint:
    """
    Compose an endpoint from configuration.

    When a token parameter is configured, the bot session is read from
    Parameter Store on first use and reused for the lifetime of the process.
    """
    config = config or load_config()
    logger = get_logger()

    endpoint = InteractionEndpoint(
        config.public_key,
        router=router,
        logger=logger,
        deferred_response_enabled=config.deferred_response_enabled,
        api_base_url=config.api_base_url,
    )

    if config.token_parameter_name:
        endpoint.with_session_provider(
            CachedSessionProvider(
                ParameterStoreSessionProvider(
                    config.token_parameter_name,
                    client=create_parameter_store_client(config.parameter_store_backend),
                    api_base_url=config.api_base_url,
                    logger=logger,
                )
            )
        )

    return endpoint


def get_endpoint() -> InteractionEndpoint:
    """Return the process-wide endpoint, building it on first use."""
    global _endpoint
    with _endpoint_lock:
        if _endpoint is None:
            _endpoint = build_endpoint()
    return _endpoint


def api_gateway_handler(event: Dict[str, Any], context: Any) -> Dict[str, Any]:
    return get_endpoint().handle_event(event, context)


def function_url_handler(event: Dict[str, Any], context: Any) -> Dict[str, Any]:
    return get_endpoint().handle_request(event, context)
