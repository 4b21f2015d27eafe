"""Unit tests for session providers."""

import threading
import time
from unittest.mock import Mock

import pytest

from discord_session import DiscordSession
from parameter_store_client import ParameterStoreClient, ParameterStoreError
from session_provider import (
    CachedSessionProvider,
    EmptyParameterNameError,
    ParameterEmptyError,
    ParameterStoreSessionProvider,
    StaticSessionProvider,
)


class TestStaticSessionProvider:
    def test_returns_same_session(self):
        session = DiscordSession("Bot static")
        provider = StaticSessionProvider(session)

        assert provider() is session
        assert provider.get_session(Mock()) is session


class TestParameterStoreSessionProvider:
    """Given a parameter store, When a session is requested, Then ..."""

    def _client(self, **kwargs) -> Mock:
        return Mock(spec=ParameterStoreClient, **kwargs)

    def test_session_from_param_store(self):
        """A parameter "foo" with value "bar" yields a session with token "Bot bar"."""
        client = self._client()
        client.get_with_decryption.return_value = "bar"

        session = ParameterStoreSessionProvider("foo", client=client)()

        assert session.token == "Bot bar"
        client.get_with_decryption.assert_called_once_with("foo")

    def test_empty_param_name(self):
        """An empty name fails immediately without calling the store."""
        client = self._client()

        with pytest.raises(EmptyParameterNameError, match="empty discord token paramstore parameter name"):
            ParameterStoreSessionProvider("", client=client)()

        client.get_with_decryption.assert_not_called()

    @pytest.mark.parametrize("value", ["", None])
    def test_empty_param_value(self, value):
        client = self._client()
        client.get_with_decryption.return_value = value

        with pytest.raises(ParameterEmptyError, match="parameter empty"):
            ParameterStoreSessionProvider("foo", client=client)()

    def test_http_error_propagates(self):
        client = self._client()
        client.get_with_decryption.side_effect = ParameterStoreError(
            "failed to get parameter - http request error: 503"
        )

        with pytest.raises(ParameterStoreError, match="failed to get parameter - http request error"):
            ParameterStoreSessionProvider("foo", client=client)()

    def test_not_memoized(self):
        client = self._client()
        client.get_with_decryption.return_value = "bar"
        provider = ParameterStoreSessionProvider("foo", client=client)

        provider()
        provider()

        assert client.get_with_decryption.call_count == 2

    def test_api_base_url_passed_to_session(self):
        client = self._client()
        client.get_with_decryption.return_value = "bar"

        session = ParameterStoreSessionProvider("foo", client=client, api_base_url="http://fake/api/")()

        assert session.api_base_url == "http://fake/api"


class TestCachedSessionProvider:
    def test_cached(self):
        """The inner provider runs once and every caller sees the same session."""
        count = 0

        def inner(context):
            nonlocal count
            count += 1
            return DiscordSession(f"Bot {count}")  # changes with every call

        provider = CachedSessionProvider(inner)

        v1 = provider(Mock())
        v2 = provider(Mock())

        assert count == 1
        assert v1 is v2
        assert provider.resolved is True

    def test_inner_called_without_request_context(self):
        inner = Mock(return_value=DiscordSession("Bot x"))
        provider = CachedSessionProvider(inner)

        provider(Mock(name="request-context"))

        inner.assert_called_once_with(None)

    def test_error_is_frozen(self):
        """A failed resolution is returned to every later caller without retry."""
        error = ParameterStoreError("failed to get parameter - http request error")
        inner = Mock(side_effect=error)
        provider = CachedSessionProvider(inner)

        for _ in range(3):
            with pytest.raises(ParameterStoreError) as exc_info:
                provider()
            assert exc_info.value is error

        assert inner.call_count == 1

    def test_frozen_error_traceback_does_not_grow(self):
        """
        Given a cached provider whose resolution failed
        When it is called many times
        Then the re-raised error carries a traceback of constant depth
        """

        def failing_inner(context):
            raise ParameterStoreError("failed to get parameter - http request error")

        provider = CachedSessionProvider(failing_inner)

        def traceback_depth() -> int:
            try:
                provider()
            except ParameterStoreError as e:
                depth = 0
                tb = e.__traceback__
                while tb is not None:
                    depth += 1
                    tb = tb.tb_next
                return depth
            raise AssertionError("expected ParameterStoreError")

        depths = [traceback_depth() for _ in range(200)]

        assert depths[0] == depths[-1]
        assert len(set(depths)) == 1

    def test_wraps_provider_instances(self):
        client = Mock(spec=ParameterStoreClient)
        client.get_with_decryption.return_value = "bar"
        provider = CachedSessionProvider(ParameterStoreSessionProvider("foo", client=client))

        assert provider().token == "Bot bar"
        assert provider().token == "Bot bar"
        client.get_with_decryption.assert_called_once_with("foo")

    def test_concurrent_callers_resolve_once(self):
        """N concurrent callers trigger exactly one resolution and observe one session."""
        calls = 0
        calls_lock = threading.Lock()
        started = threading.Event()

        def slow_inner(context):
            nonlocal calls
            with calls_lock:
                calls += 1
            started.set()
            time.sleep(0.05)
            return DiscordSession("Bot shared")

        provider = CachedSessionProvider(slow_inner)
        barrier = threading.Barrier(16)
        results = []
        results_lock = threading.Lock()

        def worker():
            barrier.wait()
            session = provider()
            with results_lock:
                results.append(session)

        threads = [threading.Thread(target=worker) for _ in range(16)]
        for t in threads:
            t.start()
        for t in threads:
            t.join(timeout=5)

        assert started.is_set()
        assert calls == 1
        assert len(results) == 16
        assert all(r is results[0] for r in results)

    def test_concurrent_callers_share_error(self):
        error = RuntimeError("boom")
        inner = Mock(side_effect=error)
        provider = CachedSessionProvider(inner)
        errors = []
        errors_lock = threading.Lock()

        def worker():
            try:
                provider()
            except RuntimeError as e:
                with errors_lock:
                    errors.append(e)

        threads = [threading.Thread(target=worker) for _ in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join(timeout=5)

        assert inner.call_count == 1
        assert len(errors) == 8
        assert all(e is error for e in errors)
