"""Tests for htmlcache.proxy -- the caching reverse proxy behind ``serve``."""

from __future__ import annotations

import httpx
import pytest
from starlette.testclient import TestClient

from htmlcache.models import HtmlCacheConfig
from htmlcache.proxy import create_proxy_app

ORIGIN = "http://origin.test"
HTML_ACCEPT = {"accept": "text/html,application/xhtml+xml;q=0.9,*/*;q=0.8"}


def _proxy(origin, config: HtmlCacheConfig | None = None):
    return create_proxy_app(ORIGIN, config, upstream_transport=origin.transport())


class TestProxy:
    def test_origin_is_asked_once(self, origin) -> None:
        app = _proxy(origin)
        with TestClient(app) as client:
            first = client.get("/docs/intro", headers=HTML_ACCEPT)
            second = client.get("/docs/intro", headers=HTML_ACCEPT)

        assert first.text == second.text == "<html><body>/docs/intro</body></html>"
        assert origin.calls == 1

    def test_origin_never_sees_the_marker(self, origin) -> None:
        app = _proxy(origin)
        with TestClient(app) as client:
            client.get("/search?q=cache", headers=HTML_ACCEPT)

        (request,) = origin.requests
        assert request.url.host == "origin.test"
        assert dict(request.url.params) == {"q": "cache"}

    def test_cache_is_exposed_on_app_state(self, origin) -> None:
        app = _proxy(origin, HtmlCacheConfig(ttl_ms=1234))
        assert app.state.html_cache.config.ttl_ms == 1234

    def test_post_is_forwarded_every_time(self, quiet_output) -> None:
        bodies = []

        def handler(request: httpx.Request) -> httpx.Response:
            bodies.append(request.content)
            return httpx.Response(201, json={"ok": True})

        app = create_proxy_app(ORIGIN, upstream_transport=httpx.MockTransport(handler))
        with TestClient(app) as client:
            first = client.post("/api/items", content=b"one")
            client.post("/api/items", content=b"two")

        assert first.status_code == 201
        assert first.json() == {"ok": True}
        assert bodies == [b"one", b"two"]

    def test_origin_error_is_replayed(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(404, text="gone", headers={"content-type": "text/plain"})

        app = create_proxy_app(ORIGIN, upstream_transport=httpx.MockTransport(handler))
        with TestClient(app) as client:
            response = client.get("/old", headers=HTML_ACCEPT)

        assert response.status_code == 404
        assert response.text == "gone"
        assert len(app.state.html_cache.store) == 0

    def test_unreachable_origin_is_bad_gateway(self, quiet_output) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("refused", request=request)

        app = create_proxy_app(ORIGIN, upstream_transport=httpx.MockTransport(handler))
        with TestClient(app) as client:
            response = client.get("/page")

        assert response.status_code == 502

    @pytest.mark.parametrize("header", ["connection", "transfer-encoding", "keep-alive"])
    def test_hop_by_hop_headers_are_dropped(self, header: str) -> None:
        from htmlcache.proxy import _filter_headers

        filtered = _filter_headers({header: "x", "x-request-id": "abc"})
        assert filtered == {"x-request-id": "abc"}


class TestAssets:
    """Requests that do not ask for HTML bypass the cache."""

    PNG = b"\x89PNG\r\n\x1a\n\x00\xff\xfe"

    def _image_origin(self, seen: list) -> httpx.MockTransport:
        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, content=self.PNG, headers={"content-type": "image/png"})

        return httpx.MockTransport(handler)

    def test_binary_asset_passes_through_unchanged(self) -> None:
        seen: list = []
        app = create_proxy_app(ORIGIN, upstream_transport=self._image_origin(seen))
        with TestClient(app) as client:
            first = client.get("/logo.png", headers={"accept": "image/avif,image/webp,*/*"})
            second = client.get("/logo.png", headers={"accept": "image/avif,image/webp,*/*"})

        assert first.content == second.content == self.PNG
        assert first.headers["content-type"] == "image/png"
        assert len(seen) == 2
        assert len(app.state.html_cache.store) == 0

    def test_custom_exclude_is_kept(self, origin) -> None:
        app = _proxy(origin, HtmlCacheConfig(exclude=lambda request: True))
        with TestClient(app) as client:
            client.get("/page")
            client.get("/page")

        assert origin.calls == 1
