"""Tests for the request pipeline."""

from __future__ import annotations

import base64
import json
import time

import httpx
import pytest

from akhetclient.cache import CACHE_MISS, make_cache_key
from akhetclient.client import RequestPipeline, compact_payload
from akhetclient.exceptions import (
    InvalidHTTPStatus,
    InvalidProtocol,
    MethodNotSupported,
    ServerNotAvailable,
    ServerSideError,
    Unauthorized,
    VersionMismatch,
)
from akhetclient.output import OutputManager, set_output


def _pipeline(handler, **kwargs) -> RequestPipeline:
    return RequestPipeline(
        "akhet.test", "admin", "secret", transport=httpx.MockTransport(handler), **kwargs
    )


def _refuse(request: httpx.Request) -> httpx.Response:
    raise httpx.ConnectError("Connection refused", request=request)


# ---------------------------------------------------------------------------
# Construction
# ---------------------------------------------------------------------------


class TestConstruction:
    def test_default_protocol_is_http(self) -> None:
        p = RequestPipeline("akhet.test", "admin", "secret")
        assert p.base_url == "http://akhet.test"
        assert p.api_version == "0.8"
        p.close()

    @pytest.mark.parametrize(
        "protocol,expected",
        [("http", "http"), ("https", "https"), ("HTTP", "http"), ("HTTPS", "https"), ("HtTpS", "https")],
    )
    def test_protocol_is_normalised(self, protocol: str, expected: str) -> None:
        p = RequestPipeline("akhet.test", "admin", "secret", protocol)
        assert p.config.protocol == expected
        assert p.base_url == f"{expected}://akhet.test"
        p.close()

    @pytest.mark.parametrize("protocol", ["ftp", "ws", "", "http ", "httpss"])
    def test_unsupported_protocol_fails(self, protocol: str) -> None:
        with pytest.raises(InvalidProtocol):
            RequestPipeline("akhet.test", "admin", "secret", protocol)

    def test_config_is_immutable(self) -> None:
        p = RequestPipeline("akhet.test", "admin", "secret")
        with pytest.raises(Exception):
            p.config.host = "elsewhere"  # type: ignore[misc]
        p.close()

    def test_password_not_in_repr(self) -> None:
        p = RequestPipeline("akhet.test", "admin", "s3cr3t")
        assert "s3cr3t" not in repr(p.config)
        p.close()

    def test_caching_off_until_configured(self) -> None:
        p = RequestPipeline("akhet.test", "admin", "secret")
        assert p.cache_enabled is False
        assert p.cache is None
        p.close()


# ---------------------------------------------------------------------------
# Method validation
# ---------------------------------------------------------------------------


class TestMethodValidation:
    @pytest.mark.parametrize("method", ["PUT", "DELETE", "PATCH", "get", "post", ""])
    def test_unsupported_method_fails_without_io(self, server, pipeline, method: str) -> None:
        with pytest.raises(MethodNotSupported):
            pipeline.execute("hostinfo", method)
        assert server.calls == 0

    def test_method_check_precedes_cache(self, server, pipeline, memory_cache) -> None:
        pipeline.use_cache(memory_cache)
        with pytest.raises(MethodNotSupported):
            pipeline.execute("hostinfo", "PUT")
        assert memory_cache.gets == 0


# ---------------------------------------------------------------------------
# Request building
# ---------------------------------------------------------------------------


class TestRequestBuilding:
    def test_url_contains_api_version(self, server, pipeline) -> None:
        server.respond("GET", "hostinfo", {"cpus": 4})
        pipeline.execute("hostinfo")
        assert str(server.requests[0].url) == "http://akhet.test/0.8/hostinfo"

    def test_https_url(self, server, quiet_output) -> None:
        server.respond("GET", "hostinfo", {})
        p = RequestPipeline(
            "akhet.test:8443", "admin", "secret", "HTTPS", transport=httpx.MockTransport(server)
        )
        p.execute("hostinfo")
        assert str(server.requests[0].url) == "https://akhet.test:8443/0.8/hostinfo"
        p.close()

    def test_basic_auth_and_content_type(self, server, pipeline) -> None:
        server.respond("POST", "instance", {"token": "t"})
        pipeline.execute("instance", "POST", {"image": "ubuntu"})
        request = server.requests[0]
        expected = base64.b64encode(b"admin:secret").decode("ascii")
        assert request.headers["Authorization"] == f"Basic {expected}"
        assert request.headers["Content-Type"] == "application/json"
        assert request.method == "POST"

    def test_null_values_are_dropped(self, server, pipeline) -> None:
        server.respond("POST", "instance", {"token": "t"})
        pipeline.execute("instance", "POST", {"image": "x", "user": None, "shared": False})
        assert server.body_of() == {"image": "x", "shared": False}

    def test_no_payload_sends_empty_object(self, server, pipeline) -> None:
        server.respond("GET", "hostinfo", {})
        pipeline.execute("hostinfo")
        assert server.requests[0].content == b"{}"

    def test_get_sends_json_body(self, server, pipeline) -> None:
        server.respond("GET", "instance", {"state": "running"})
        pipeline.execute("instance", "GET", {"token": "abc"})
        assert server.body_of() == {"token": "abc"}

    def test_compact_payload(self) -> None:
        assert compact_payload(None) == {}
        assert compact_payload({}) == {}
        assert compact_payload({"a": None, "b": 0, "c": ""}) == {"b": 0, "c": ""}


# ---------------------------------------------------------------------------
# Response interpretation
# ---------------------------------------------------------------------------


class TestResponseInterpretation:
    def test_returns_envelope_data(self, server, pipeline) -> None:
        server.respond("GET", "hostinfo", {"cpus": 16, "gpus": ["a100"]})
        assert pipeline.execute("hostinfo") == {"cpus": 16, "gpus": ["a100"]}

    def test_returns_null_data(self, server, pipeline) -> None:
        server.respond("POST", "instance-resolution", None)
        assert pipeline.execute("instance-resolution", "POST", {"token": "t"}) is None

    def test_version_mismatch(self, server, pipeline) -> None:
        server.respond("GET", "hostinfo", {"cpus": 4}, version="0.9")
        with pytest.raises(VersionMismatch) as exc_info:
            pipeline.execute("hostinfo")
        assert exc_info.value.expected == "0.8"
        assert exc_info.value.received == "0.9"

    def test_missing_version_is_a_mismatch(self, server, pipeline) -> None:
        server.respond("GET", "hostinfo", body=json.dumps({"data": {}}).encode())
        with pytest.raises(VersionMismatch):
            pipeline.execute("hostinfo")

    def test_version_checked_before_error(self, server, pipeline) -> None:
        server.respond("GET", "hostinfo", {"error": "boom", "errorno": 3}, version="0.7")
        with pytest.raises(VersionMismatch):
            pipeline.execute("hostinfo")

    def test_server_side_error_carries_message_and_code(self, server, pipeline) -> None:
        server.respond("POST", "instance", {"error": "Image not found", "errorno": 404})
        with pytest.raises(ServerSideError) as exc_info:
            pipeline.execute("instance", "POST", {"image": "nope"})
        assert exc_info.value.message == "Image not found"
        assert exc_info.value.errorno == 404

    def test_unauthorized(self, server, pipeline) -> None:
        server.respond("GET", "hostinfo", {"cpus": 4}, status_code=401)
        with pytest.raises(Unauthorized):
            pipeline.execute("hostinfo")

    def test_unauthorized_regardless_of_body(self, server, pipeline) -> None:
        server.respond("GET", "hostinfo", status_code=401, body=b"<html>denied</html>")
        with pytest.raises(Unauthorized):
            pipeline.execute("hostinfo")

    @pytest.mark.parametrize("status", [201, 302, 400, 403, 404, 500, 503])
    def test_other_status_is_invalid(self, server, pipeline, status: int) -> None:
        server.respond("GET", "hostinfo", status_code=status, body=b"oops")
        with pytest.raises(InvalidHTTPStatus) as exc_info:
            pipeline.execute("hostinfo")
        assert exc_info.value.status_code == status
        assert exc_info.value.body == "oops"

    def test_empty_200_body(self, server, pipeline) -> None:
        server.respond("GET", "hostinfo", body=b"")
        with pytest.raises(ServerNotAvailable):
            pipeline.execute("hostinfo")

    def test_malformed_200_body(self, server, pipeline) -> None:
        server.respond("GET", "hostinfo", body=b"<html>")
        with pytest.raises(ServerNotAvailable):
            pipeline.execute("hostinfo")

    def test_non_object_200_body(self, server, pipeline) -> None:
        server.respond("GET", "hostinfo", body=b"[1, 2]")
        with pytest.raises(ServerNotAvailable):
            pipeline.execute("hostinfo")

    def test_connection_refused_is_status_zero(self, quiet_output) -> None:
        p = _pipeline(_refuse)
        with pytest.raises(InvalidHTTPStatus) as exc_info:
            p.execute("hostinfo")
        assert exc_info.value.status_code == 0
        assert exc_info.value.body == ""
        assert isinstance(exc_info.value.__cause__, httpx.ConnectError)
        p.close()

    def test_timeout_is_status_zero(self, quiet_output) -> None:
        def _slow(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectTimeout("timed out", request=request)

        p = _pipeline(_slow)
        with pytest.raises(InvalidHTTPStatus) as exc_info:
            p.execute("instance", "POST", {"image": "x"})
        assert exc_info.value.status_code == 0
        p.close()

    def test_body_lost_after_status(self, quiet_output) -> None:
        def _reset(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, stream=_BrokenStream())

        p = _pipeline(_reset)
        with pytest.raises(ServerNotAvailable) as exc_info:
            p.execute("hostinfo")
        assert isinstance(exc_info.value.__cause__, httpx.ReadError)
        p.close()

    def test_failures_are_not_retried(self, server, pipeline) -> None:
        server.respond("GET", "hostinfo", status_code=503, body=b"")
        with pytest.raises(InvalidHTTPStatus):
            pipeline.execute("hostinfo")
        assert server.calls == 1


# ---------------------------------------------------------------------------
# Caching
# ---------------------------------------------------------------------------


class TestCaching:
    def test_cache_hit_skips_network(self, server, pipeline, memory_cache) -> None:
        pipeline.use_cache(memory_cache)
        server.respond("GET", "imageslocal", ["ubuntu", "debian"])
        first = pipeline.execute("imageslocal", "GET", {"page": 1})
        second = pipeline.execute("imageslocal", "GET", {"page": 1})
        assert first == second == ["ubuntu", "debian"]
        assert server.calls == 1

    def test_stores_under_derived_key_with_ttl(self, server, pipeline, memory_cache) -> None:
        pipeline.use_cache(memory_cache, ttl=120)
        server.respond("GET", "hostinfo", {"cpus": 4})
        before = time.time()
        pipeline.execute("hostinfo")
        key = make_cache_key("hostinfo", {})
        value, expires_at = memory_cache.entries[key]
        assert value == {"cpus": 4}
        assert before + 120 <= expires_at <= time.time() + 120

    def test_different_payload_misses(self, server, pipeline, memory_cache) -> None:
        pipeline.use_cache(memory_cache)
        server.respond("GET", "imageslocal", ["ubuntu"])
        pipeline.execute("imageslocal", "GET", {"page": 1})
        pipeline.execute("imageslocal", "GET", {"page": 2})
        assert server.calls == 2

    def test_bypass_always_hits_network(self, server, pipeline, memory_cache) -> None:
        pipeline.use_cache(memory_cache)
        server.respond("GET", "hostinfo", {"cpus": 4})
        pipeline.execute("hostinfo")
        pipeline.execute("hostinfo", bypass_cache=True)
        pipeline.execute("hostinfo", bypass_cache=True)
        assert server.calls == 3

    def test_bypass_does_not_store(self, server, pipeline, memory_cache) -> None:
        pipeline.use_cache(memory_cache)
        server.respond("GET", "instance", {"state": "running"})
        pipeline.execute("instance", "GET", {"token": "t"}, bypass_cache=True)
        assert memory_cache.sets == 0
        assert memory_cache.gets == 0

    def test_post_is_never_cached(self, server, pipeline, memory_cache) -> None:
        pipeline.use_cache(memory_cache)
        server.respond("POST", "instance", {"token": "t"})
        pipeline.execute("instance", "POST", {"image": "x"})
        pipeline.execute("instance", "POST", {"image": "x"})
        assert server.calls == 2
        assert memory_cache.gets == 0
        assert memory_cache.sets == 0

    def test_server_error_not_cached(self, server, pipeline, memory_cache) -> None:
        pipeline.use_cache(memory_cache)
        server.respond("GET", "hostinfo", {"error": "busy", "errorno": 7})
        with pytest.raises(ServerSideError):
            pipeline.execute("hostinfo")
        assert memory_cache.entries == {}

    def test_version_mismatch_not_cached(self, server, pipeline, memory_cache) -> None:
        pipeline.use_cache(memory_cache)
        server.respond("GET", "hostinfo", {"cpus": 4}, version="1.0")
        with pytest.raises(VersionMismatch):
            pipeline.execute("hostinfo")
        assert memory_cache.entries == {}

    def test_cache_hit_skips_validation(self, server, pipeline, memory_cache) -> None:
        pipeline.use_cache(memory_cache)
        key = make_cache_key("hostinfo", {})
        memory_cache.set(key, {"cached": True}, time.time() + 60)
        server.respond("GET", "hostinfo", {"cpus": 4}, version="9.9")
        assert pipeline.execute("hostinfo") == {"cached": True}
        assert server.calls == 0

    def test_cached_null_is_a_hit(self, server, pipeline, memory_cache) -> None:
        pipeline.use_cache(memory_cache)
        memory_cache.set(make_cache_key("hostinfo", {}), None, time.time() + 60)
        assert pipeline.execute("hostinfo") is None
        assert server.calls == 0

    def test_expired_entry_refetches(self, server, pipeline, memory_cache) -> None:
        pipeline.use_cache(memory_cache)
        memory_cache.set(make_cache_key("hostinfo", {}), {"stale": True}, time.time() - 1)
        server.respond("GET", "hostinfo", {"cpus": 4})
        assert pipeline.execute("hostinfo") == {"cpus": 4}
        assert server.calls == 1

    def test_null_payload_entries_share_key(self, server, pipeline, memory_cache) -> None:
        pipeline.use_cache(memory_cache)
        server.respond("GET", "hostinfo", {"cpus": 4})
        pipeline.execute("hostinfo", "GET", {"filter": None})
        pipeline.execute("hostinfo")
        assert server.calls == 1

    def test_detach_cache(self, server, pipeline, memory_cache) -> None:
        pipeline.use_cache(memory_cache)
        pipeline.use_cache(None)
        server.respond("GET", "hostinfo", {"cpus": 4})
        pipeline.execute("hostinfo")
        assert memory_cache.gets == 0
        assert pipeline.cache_enabled is False

    def test_cache_hit_logged_in_verbose_mode(self, server, memory_cache, capfd) -> None:
        set_output(OutputManager(no_color=True, verbose=True))
        p = _pipeline(server, cache=memory_cache)
        server.respond("GET", "hostinfo", {"cpus": 4})
        p.execute("hostinfo")
        p.execute("hostinfo")
        captured = capfd.readouterr()
        assert "Cache miss: GET hostinfo" in captured.err
        assert "Cache hit: GET hostinfo" in captured.err
        p.close()


class TestEnableCache:
    def test_enable_cache_uses_memcached(self, pipeline, monkeypatch) -> None:
        created = []

        class FakeMemcached:
            def __init__(self, host, port):
                created.append((host, port))

            def get(self, key):
                return CACHE_MISS

            def set(self, key, value, expires_at):
                pass

        monkeypatch.setattr("akhetclient.client.pipeline.memcached_available", lambda: True)
        monkeypatch.setattr("akhetclient.client.pipeline.MemcachedCache", FakeMemcached)
        pipeline.enable_cache("127.0.0.1", 11211, ttl=45)
        assert created == [("127.0.0.1", 11211)]
        assert pipeline.cache_enabled is True
        assert pipeline.cache_ttl == 45

    def test_enable_cache_last_call_wins(self, pipeline, monkeypatch) -> None:
        monkeypatch.setattr("akhetclient.client.pipeline.memcached_available", lambda: True)
        monkeypatch.setattr(
            "akhetclient.client.pipeline.MemcachedCache",
            lambda host, port: f"{host}:{port}",
        )
        pipeline.enable_cache("first", 1)
        pipeline.enable_cache("second", 2, ttl=10)
        assert pipeline.cache == "second:2"
        assert pipeline.cache_ttl == 10

    def test_missing_backend_disables_caching(self, server, monkeypatch, capfd) -> None:
        set_output(OutputManager(no_color=True))
        monkeypatch.setattr("akhetclient.client.pipeline.memcached_available", lambda: False)
        p = _pipeline(server)
        p.enable_cache("127.0.0.1", 11211)
        assert p.cache_enabled is False
        server.respond("GET", "hostinfo", {"cpus": 4})
        assert p.execute("hostinfo") == {"cpus": 4}
        assert "caching is disabled" in capfd.readouterr().err
        p.close()


class TestLifecycle:
    def test_context_manager_closes_client(self, server, quiet_output) -> None:
        with _pipeline(server) as p:
            assert p._client.is_closed is False
        assert p._client.is_closed is True

    def test_close_closes_cache_backend(self, server, memory_cache, quiet_output) -> None:
        p = _pipeline(server, cache=memory_cache)
        p.close()
        assert memory_cache.closes == 1

    def test_replaced_cache_backend_is_closed(self, server, memory_cache, quiet_output) -> None:
        p = _pipeline(server, cache=memory_cache)
        replacement = type(memory_cache)()
        p.use_cache(replacement)
        assert memory_cache.closes == 1
        assert replacement.closes == 0
        p.close()
        assert replacement.closes == 1

    def test_reattaching_same_backend_keeps_it_open(
        self, server, memory_cache, quiet_output
    ) -> None:
        p = _pipeline(server, cache=memory_cache)
        p.use_cache(memory_cache, ttl=5)
        assert memory_cache.closes == 0
        assert p.cache_ttl == 5
        p.close()

    def test_backend_without_close(self, server, quiet_output) -> None:
        class _Plain:
            def get(self, key):
                return CACHE_MISS

            def set(self, key, value, expires_at):
                pass

        p = _pipeline(server, cache=_Plain())
        p.use_cache(None)
        p.close()
        assert p.cache is None
