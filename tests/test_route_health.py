import socket
import threading
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer

import pytest

from dnsvard.route_health import (
    HEALTH_CACHE_MAX_AGE,
    HEALTHY_CACHE_TTL,
    UNHEALTHY_CACHE_TTL,
    HealthCacheEntry,
    HttpRoute,
    is_http_route_healthy,
    is_http_route_healthy_cached,
    preserve_last_healthy_http_routes,
    prune_http_route_health_cache,
    route_targets_by_host,
)


class CountingProbe:
    def __init__(self, healthy_targets):
        self.healthy_targets = set(healthy_targets)
        self.calls = []

    def __call__(self, target):
        self.calls.append(target)
        return target in self.healthy_targets


def _serve(status):
    class Handler(BaseHTTPRequestHandler):
        def do_HEAD(self):
            self.send_response(status)
            self.send_header("Content-Length", "0")
            self.end_headers()

        def log_message(self, *args):
            pass

    server = ThreadingHTTPServer(("127.0.0.1", 0), Handler)
    thread = threading.Thread(target=server.serve_forever, daemon=True)
    thread.start()
    return server


@pytest.fixture
def ok_server():
    server = _serve(200)
    yield f"http://127.0.0.1:{server.server_address[1]}/"
    server.shutdown()
    server.server_close()


@pytest.fixture
def failing_server():
    server = _serve(500)
    yield f"http://127.0.0.1:{server.server_address[1]}/"
    server.shutdown()
    server.server_close()


def test_route_targets_by_host_normalises_and_skips_incomplete():
    routes = [
        HttpRoute(" App.Test ", " http://127.0.0.1:8080 "),
        HttpRoute("", "http://127.0.0.1:9000"),
        HttpRoute("empty.test", "  "),
    ]
    assert route_targets_by_host(routes) == {"app.test": "http://127.0.0.1:8080"}


def test_is_http_route_healthy_accepts_running_server(ok_server):
    assert is_http_route_healthy(ok_server) is True


def test_is_http_route_healthy_rejects_server_error(failing_server):
    assert is_http_route_healthy(failing_server) is False


@pytest.mark.parametrize("target", ["", "ftp://127.0.0.1:21", "not a url", "http://"])
def test_is_http_route_healthy_rejects_invalid_targets(target):
    assert is_http_route_healthy(target) is False


def test_is_http_route_healthy_rejects_closed_port():
    sock = socket.socket()
    sock.bind(("127.0.0.1", 0))
    port = sock.getsockname()[1]
    sock.close()
    assert is_http_route_healthy(f"http://127.0.0.1:{port}/") is False


def test_cached_health_reuses_fresh_healthy_result():
    probe = CountingProbe({"http://a:1"})
    cache = {}
    assert is_http_route_healthy_cached("http://a:1", cache, 100.0, probe) is True
    assert is_http_route_healthy_cached("http://a:1", cache, 100.0 + HEALTHY_CACHE_TTL - 1, probe) is True
    assert probe.calls == ["http://a:1"]
    assert cache["http://a:1"] == HealthCacheEntry(checked_at=100.0, healthy=True)


def test_cached_health_reprobes_after_ttl():
    probe = CountingProbe(set())
    cache = {}
    assert is_http_route_healthy_cached("http://b:1", cache, 10.0, probe) is False
    later = 10.0 + UNHEALTHY_CACHE_TTL
    assert is_http_route_healthy_cached("http://b:1", cache, later, probe) is False
    assert probe.calls == ["http://b:1", "http://b:1"]
    assert cache["http://b:1"].checked_at == later


def test_cached_health_blank_target_never_probes():
    probe = CountingProbe({""})
    assert is_http_route_healthy_cached("  ", {}, 1.0, probe) is False
    assert probe.calls == []


def test_cached_health_without_cache_always_probes():
    probe = CountingProbe({"http://c:1"})
    assert is_http_route_healthy_cached("http://c:1", None, 1.0, probe) is True
    assert is_http_route_healthy_cached("http://c:1", None, 1.0, probe) is True
    assert len(probe.calls) == 2


def test_prune_removes_only_old_entries():
    cache = {
        "old": HealthCacheEntry(checked_at=0.0, healthy=True),
        "fresh": HealthCacheEntry(checked_at=HEALTH_CACHE_MAX_AGE, healthy=False),
    }
    prune_http_route_health_cache(cache, HEALTH_CACHE_MAX_AGE + 1)
    assert set(cache) == {"fresh"}


def test_preserve_falls_back_to_healthy_previous_target():
    probe = CountingProbe({"http://old:1"})
    routes = [HttpRoute("app.test", "http://new:1")]
    out, fallbacks = preserve_last_healthy_http_routes(
        routes, {"app.test": "http://old:1"}, {}, 50.0, probe
    )
    assert out == [HttpRoute("app.test", "http://old:1")]
    assert fallbacks == 1


def test_preserve_keeps_healthy_new_target():
    probe = CountingProbe({"http://new:1", "http://old:1"})
    routes = [HttpRoute("app.test", "http://new:1")]
    out, fallbacks = preserve_last_healthy_http_routes(
        routes, {"app.test": "http://old:1"}, {}, 50.0, probe
    )
    assert out == routes
    assert fallbacks == 0


def test_preserve_keeps_new_target_when_previous_also_unhealthy():
    probe = CountingProbe(set())
    routes = [HttpRoute("App.Test", "http://new:1")]
    out, fallbacks = preserve_last_healthy_http_routes(
        routes, {"app.test": "http://old:1"}, {}, 50.0, probe
    )
    assert out == routes
    assert fallbacks == 0
    assert probe.calls == ["http://new:1", "http://old:1"]


def test_preserve_without_previous_targets_skips_probing():
    probe = CountingProbe(set())
    routes = [HttpRoute("app.test", "http://new:1")]
    out, fallbacks = preserve_last_healthy_http_routes(routes, {}, {}, 50.0, probe)
    assert out == routes
    assert fallbacks == 0
    assert probe.calls == []


def test_preserve_prunes_stale_cache_entries():
    probe = CountingProbe({"http://new:1"})
    cache = {"http://gone:1": HealthCacheEntry(checked_at=0.0, healthy=True)}
    now = HEALTH_CACHE_MAX_AGE + 10
    preserve_last_healthy_http_routes(
        [HttpRoute("app.test", "http://new:1")], {"app.test": "http://old:1"}, cache, now, probe
    )
    assert "http://gone:1" not in cache
    assert cache["http://new:1"] == HealthCacheEntry(checked_at=now, healthy=True)