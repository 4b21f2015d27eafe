"""
Session providers.

A provider produces the DiscordSession an interaction is handled with, or
raises. Three strategies:
- StaticSessionProvider: always returns one pre-built session
- CachedSessionProvider: resolves an inner provider at most once for its lifetime
- ParameterStoreSessionProvider: builds a bot session from a token held in
  Parameter Store (one network call per invocation)

Production wiring is CachedSessionProvider(ParameterStoreSessionProvider(name)).
"""

import enum
import threading
from typing import Any, Callable, Optional, Union

from discord_session import DiscordSession, new_bot_session
from logger_util import get_discard_logger, log
from parameter_store_client import ParameterStoreClient, create_parameter_store_client


class SessionProviderError(Exception):
    """Base exception for session provider failures."""

    pass


class EmptyParameterNameError(SessionProviderError):
    """Raised when the Parameter Store parameter name is not configured."""

    def __init__(self) -> None:
        super().__init__("empty discord token paramstore parameter name")


class ParameterEmptyError(SessionProviderError):
    """Raised when the parameter exists but holds no value."""

    def __init__(self, name: str) -> None:
        self.name = name
        super().__init__("parameter empty")


class SessionProvider:
    """Produces a DiscordSession for an invocation, or raises."""

    def get_session(self, context: Any = None) -> DiscordSession:
        raise NotImplementedError

    def __call__(self, context: Any = None) -> DiscordSession:
        return self.get_session(context)


ProviderLike = Union[SessionProvider, Callable[[Any], DiscordSession]]


class StaticSessionProvider(SessionProvider):
    """Always returns the provided session."""

    def __init__(self, session: DiscordSession):
        self._session = session

    def get_session(self, context: Any = None) -> DiscordSession:
        return self._session


class _Resolution(enum.Enum):
    UNRESOLVED = "unresolved"
    RESOLVED = "resolved"
    FAILED = "failed"


class CachedSessionProvider(SessionProvider):
    """
    Resolve an inner provider exactly once and reuse the outcome forever.

    The first caller runs the inner provider while holding the lock; callers
    arriving meanwhile block on the same lock and then read the stored
    outcome. A failure is stored too and re-raised to every later caller.
    There is no retry and no expiry.

    The inner provider is invoked with ``context=None`` rather than the
    triggering invocation's context, since the result outlives that request.
    """

    def __init__(self, inner: ProviderLike):
        self._inner = inner
        self._lock = threading.Lock()
        self._state = _Resolution.UNRESOLVED
        self._session: Optional[DiscordSession] = None
        self._error: Optional[Exception] = None
        self._error_traceback = None

    @property
    def resolved(self) -> bool:
        return self._state in (_Resolution.RESOLVED, _Resolution.FAILED)

    def _resolve(self) -> None:
        try:
            self._session = self._inner(None)
        except Exception as e:
            self._error = e
            self._error_traceback = e.__traceback__
            self._state = _Resolution.FAILED
        except BaseException:
            self._state = _Resolution.UNRESOLVED
            raise
        else:
            self._state = _Resolution.RESOLVED

    def get_session(self, context: Any = None) -> DiscordSession:
        with self._lock:
            if self._state is _Resolution.UNRESOLVED:
                self._resolve()

        if self._state is _Resolution.FAILED:
            # Raise with the traceback captured at resolution time
            raise self._error.with_traceback(self._error_traceback)
        return self._session


class ParameterStoreSessionProvider(SessionProvider):
    """
    Build a bot session from a token stored in Parameter Store.

    Not memoized: every call performs one retrieval. Wrap it in
    CachedSessionProvider for production use.

    Args:
        parameter_name: SecureString parameter holding the bot token
        client: Parameter Store client (defaults to PARAMETER_STORE_BACKEND)
        api_base_url: REST base URL passed to the created session
    """

    def __init__(
        self,
        parameter_name: str,
        client: Optional[ParameterStoreClient] = None,
        api_base_url: Optional[str] = None,
        logger=None,
    ):
        self._parameter_name = parameter_name
        self._client = client
        self._api_base_url = api_base_url
        self._logger = logger or get_discard_logger()

    def get_session(self, context: Any = None) -> DiscordSession:
        """
        Raises:
            EmptyParameterNameError: no parameter name configured (no network call)
            ParameterStoreError: the store could not be reached or refused the request
            ParameterEmptyError: the store returned no value
        """
        if not self._parameter_name:
            raise EmptyParameterNameError()

        if self._client is None:
            self._client = create_parameter_store_client()

        value = self._client.get_with_decryption(self._parameter_name)
        if not value:
            raise ParameterEmptyError(self._parameter_name)

        log(self._logger, "DEBUG", "bot_token_retrieved", {"parameter_name": self._parameter_name})
        return new_bot_session(value, api_base_url=self._api_base_url)
