"""
HTTP Application Tests
======================

End-to-end request handling through FastAPI's TestClient.
"""

import gzip

import pytest
from fastapi.testclient import TestClient

from ascii_pet.config import AssetsConfig, Settings, VisitorsConfig
from ascii_pet.errors import ConfigError
from ascii_pet.main import accepts_gzip, create_app


def make_settings(root, **visitor_overrides) -> Settings:
    visitors = {"max_visitors": 0, "ttl_seconds": 0}
    visitors.update(visitor_overrides)
    return Settings(
        assets=AssetsConfig(root=str(root), rotation_check_interval_seconds=0),
        visitors=VisitorsConfig(**visitors),
    )


class TestFrameEndpoint:
    """Tests for GET /."""

    def test_cycles_frames_per_visitor(self, asset_root):
        """Day 0 of 2 animations may be either; frames cycle in order."""
        with TestClient(create_app(make_settings(asset_root))) as client:
            frame_count = client.app.state.frame_store.frame_count
            bodies = [client.get("/").content for _ in range(frame_count + 1)]

        expected = [f"<svg>frame{i}</svg>".encode() for i in range(1, frame_count + 1)]
        assert bodies == expected + [expected[0]]

    def test_response_headers(self, asset_root):
        with TestClient(create_app(make_settings(asset_root))) as client:
            response = client.get("/")

        assert response.status_code == 200
        assert response.headers["content-type"] == "image/svg+xml; charset=utf-8"
        assert response.headers["cache-control"] == (
            "max-age=0, no-cache, no-store, must-revalidate"
        )
        assert response.headers["x-content-type-options"] == "nosniff"
        assert response.headers["content-length"] == str(len(response.content))

    def test_visitors_are_independent(self, asset_root):
        with TestClient(create_app(make_settings(asset_root))) as client:
            a1 = client.get("/", headers={"User-Agent": "visitor-a"}).content
            a2 = client.get("/", headers={"User-Agent": "visitor-a"}).content
            b1 = client.get("/", headers={"User-Agent": "visitor-b"}).content

        assert a1 == b1
        assert a1 != a2

    def test_client_ip_header_distinguishes_visitors(self, asset_root):
        with TestClient(create_app(make_settings(asset_root))) as client:
            first = client.get("/", headers={"CF-Connecting-IP": "198.51.100.1"}).content
            other = client.get("/", headers={"CF-Connecting-IP": "198.51.100.2"}).content
            again = client.get("/", headers={"CF-Connecting-IP": "198.51.100.1"}).content

        assert first == other
        assert again != first

    def test_capacity_enforced(self, asset_root):
        cfg = make_settings(asset_root, max_visitors=2)
        with TestClient(create_app(cfg)) as client:
            for ua in ("A", "B", "C"):
                client.get("/", headers={"User-Agent": ua})
            assert len(client.app.state.visitor_store) == 2

    def test_gzip_passthrough(self, gz_asset_root):
        with TestClient(create_app(make_settings(gz_asset_root))) as client:
            response = client.get("/", headers={"Accept-Encoding": "gzip"})

        assert response.headers["content-encoding"] == "gzip"
        # httpx decodes the body transparently
        assert response.content == b"<svg>frame1</svg>"

    def test_gzip_decoded_for_identity_clients(self, gz_asset_root):
        with TestClient(create_app(make_settings(gz_asset_root))) as client:
            response = client.get("/", headers={"Accept-Encoding": "identity"})

        assert "content-encoding" not in response.headers
        assert response.content == b"<svg>frame1</svg>"
        assert response.headers["content-length"] == str(len(b"<svg>frame1</svg>"))

    def test_vary_on_precompressed_frames(self, gz_asset_root, asset_root):
        """Only gzip frames vary by Accept-Encoding."""
        with TestClient(create_app(make_settings(gz_asset_root))) as client:
            gzipped = client.get("/", headers={"Accept-Encoding": "gzip"})
            identity = client.get("/", headers={"Accept-Encoding": "identity"})

        assert gzipped.headers["vary"] == "Accept-Encoding"
        assert identity.headers["vary"] == "Accept-Encoding"

        with TestClient(create_app(make_settings(asset_root))) as client:
            plain = client.get("/")

        assert "vary" not in plain.headers

    def test_kv_backend(self, asset_root):
        cfg = make_settings(asset_root, backend="kv", ttl_seconds=60)
        with TestClient(create_app(cfg)) as client:
            bodies = [client.get("/").content for _ in range(2)]
        assert bodies[0] != bodies[1]


class TestUnavailable:
    """Tests for startup failure modes."""

    def test_no_frames_returns_503(self, tmp_path):
        (tmp_path / "0").mkdir()
        with TestClient(create_app(make_settings(tmp_path))) as client:
            response = client.get("/")
            ready = client.get("/ready")

        assert response.status_code == 503
        assert response.text == "frames-unavailable"
        assert ready.status_code == 503

    def test_no_animations_fails_startup(self, tmp_path):
        with pytest.raises(ConfigError):
            with TestClient(create_app(make_settings(tmp_path))):
                pass


class TestOperationalEndpoints:
    """Tests for health, readiness and metrics."""

    def test_health(self, asset_root):
        with TestClient(create_app(make_settings(asset_root))) as client:
            response = client.get("/health")
        assert response.status_code == 200
        assert response.text == "ok"

    def test_ready(self, asset_root):
        with TestClient(create_app(make_settings(asset_root))) as client:
            response = client.get("/ready")
        assert response.status_code == 200
        body = response.json()
        assert body["status"] == "ready"
        assert body["animation_id"] in ("0", "1")

    def test_metrics(self, asset_root):
        with TestClient(create_app(make_settings(asset_root))) as client:
            client.get("/")
            body = client.get("/metrics").json()

        assert body["visitors"]["size"] == 1
        assert body["frames"]["frame_count"] in (2, 3)
        assert body["sweeper"]["sweeps"] == 0

    def test_unknown_path(self, asset_root):
        with TestClient(create_app(make_settings(asset_root))) as client:
            assert client.get("/nope").status_code == 404


class TestHelpers:
    """Tests for request helper functions."""

    @pytest.mark.parametrize(
        "header, expected",
        [
            ("gzip", True),
            ("gzip, deflate, br", True),
            ("deflate, gzip;q=0.5", True),
            ("gzip;q=0", False),
            ("*", True),
            ("*, gzip;q=0", False),
            ("gzip;q=0, *", False),
            ("*;q=0", False),
            ("identity, *", True),
            ("identity", False),
            ("", False),
        ],
    )
    def test_accepts_gzip(self, header, expected):
        class FakeRequest:
            headers = {"Accept-Encoding": header}

        assert accepts_gzip(FakeRequest()) is expected
